"""
Setup Module - Black Box Interface

Purpose: Deliver a bootstrap payload to a process the manager cannot signal
Interface: SetupService.start(), SetupService.close()
Hidden: HTTP stack, port selection, one-shot listener teardown

The only observable confirmation is that GET /setup was requested.
"""

from .service import SETUP_PATH, SetupService

__all__ = ["SETUP_PATH", "SetupService"]
