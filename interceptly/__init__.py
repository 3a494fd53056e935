"""
Interceptly - Interceptor Session Manager

Lets an intercepting HTTP(S) proxy be adopted by client environments
(shells, language processes, desktop apps) that the manager does not
control, and later released again.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- session: Activation session registry
- setup: One-shot setup listener and confirmation protocol
- scripts: Per-environment bootstrap script templates
- interceptors: Interceptor contract, variants and registry
"""

__version__ = "1.0.0"
