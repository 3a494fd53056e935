"""
Session Module - Black Box Interface

Purpose: Track activation attempts per (interceptor kind, proxy port)
Interface: create_session(), get_session(), confirm_session(), end_session()
Hidden: Storage layout, per-key locking, state transitions

Replaceable with any session backend that keeps the same atomicity.
"""

from .session import Session, SessionRegistry, SessionState

__all__ = ["Session", "SessionRegistry", "SessionState"]
