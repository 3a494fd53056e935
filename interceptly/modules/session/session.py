"""
Session registry for interceptor activations.

One Session tracks one activation attempt for one (interceptor kind,
target proxy port) pair. The registry is created once per manager process
and shared by every interceptor; it never persists anything.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

logger = logging.getLogger("interceptly.session")

SessionKey = Tuple[str, int]


class SessionState(str, Enum):
    """Lifecycle state of an activation attempt."""

    PENDING = "pending"
    ACTIVE = "active"
    TERMINATED = "terminated"


@dataclass
class Session:
    """
    State record for a single activation attempt.

    The ephemeral port belongs to the setup service started for this
    attempt and is distinct from the target proxy port.
    """

    interceptor_kind: str
    target_proxy_port: int
    ephemeral_port: int
    state: SessionState = SessionState.PENDING
    options: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    confirmed_at: Optional[str] = None

    @property
    def key(self) -> SessionKey:
        return (self.interceptor_kind, self.target_proxy_port)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["state"] = self.state.value
        return data


class SessionRegistry:
    """
    In-memory mapping from (kind, target port) to Session.

    Single reads and writes are atomic on the event loop. Callers that need
    a read-modify-write sequence (activate, confirm, deactivate) hold the
    per-key lock returned by lock_for().
    """

    def __init__(self):
        self._sessions: Dict[SessionKey, Session] = {}
        self._locks: Dict[SessionKey, asyncio.Lock] = {}

    def lock_for(self, interceptor_kind: str, target_proxy_port: int) -> asyncio.Lock:
        """Return the critical section guarding one (kind, port) key."""
        key = (interceptor_kind, target_proxy_port)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def create_session(
        self,
        interceptor_kind: str,
        target_proxy_port: int,
        ephemeral_port: int,
        options: Optional[Dict[str, Any]] = None,
    ) -> Session:
        """
        Insert a new Pending session.

        Args:
            interceptor_kind: Owning interceptor id
            target_proxy_port: Port of the proxy being adopted
            ephemeral_port: Port of the setup service for this attempt
            options: Activation options supplied by the caller

        Returns:
            The new Session

        Raises:
            ValueError: If a live session already holds the key, or the
                ephemeral port equals the target port or is in use by
                another live session
        """
        key = (interceptor_kind, target_proxy_port)

        if key in self._sessions:
            raise ValueError(
                f"Session already exists for {interceptor_kind} on port {target_proxy_port}"
            )
        if ephemeral_port == target_proxy_port:
            raise ValueError(f"Ephemeral port {ephemeral_port} equals the target proxy port")
        if ephemeral_port in self.ephemeral_ports():
            raise ValueError(f"Ephemeral port {ephemeral_port} is held by another session")

        session = Session(
            interceptor_kind=interceptor_kind,
            target_proxy_port=target_proxy_port,
            ephemeral_port=ephemeral_port,
            options=dict(options or {}),
        )
        self._sessions[key] = session

        logger.debug(
            f"Created pending session for {interceptor_kind} "
            f"(proxy port {target_proxy_port}, setup port {ephemeral_port})"
        )
        return session

    def get_session(self, interceptor_kind: str, target_proxy_port: int) -> Optional[Session]:
        """Return the live session for a key, or None."""
        return self._sessions.get((interceptor_kind, target_proxy_port))

    def is_active(self, interceptor_kind: str, target_proxy_port: int) -> bool:
        """
        Check whether a key has a confirmed session.

        This may be polled frequently by callers, so it is a single dict
        lookup with no side effects.
        """
        session = self._sessions.get((interceptor_kind, target_proxy_port))
        return session is not None and session.state == SessionState.ACTIVE

    def confirm_session(
        self, interceptor_kind: str, target_proxy_port: int, ephemeral_port: int
    ) -> Optional[Session]:
        """
        Flip a Pending session to Active.

        The ephemeral port must match, so a listener left over from an
        earlier attempt can never confirm a newer session for the same key.

        Returns:
            The confirmed Session, or None if there was nothing to confirm
        """
        session = self._sessions.get((interceptor_kind, target_proxy_port))
        if session is None or session.ephemeral_port != ephemeral_port:
            return None
        if session.state != SessionState.PENDING:
            return None

        session.state = SessionState.ACTIVE
        session.confirmed_at = datetime.now(UTC).isoformat()
        logger.debug(f"Confirmed session for {interceptor_kind} on port {target_proxy_port}")
        return session

    def end_session(self, interceptor_kind: str, target_proxy_port: int) -> Optional[Session]:
        """
        Terminate and erase the session for a key.

        Returns:
            The removed Session (now Terminated), or None if there was none
        """
        session = self._sessions.pop((interceptor_kind, target_proxy_port), None)
        if session is None:
            return None

        session.state = SessionState.TERMINATED
        logger.debug(f"Ended session for {interceptor_kind} on port {target_proxy_port}")
        return session

    def get_sessions(self, interceptor_kind: Optional[str] = None) -> List[Session]:
        """List live sessions, optionally only those of one interceptor."""
        return [
            session
            for session in self._sessions.values()
            if interceptor_kind is None or session.interceptor_kind == interceptor_kind
        ]

    def ephemeral_ports(self) -> Set[int]:
        """Ports currently held by live sessions."""
        return {session.ephemeral_port for session in self._sessions.values()}

    def __len__(self) -> int:
        return len(self._sessions)
