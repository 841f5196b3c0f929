"""Realtime session registry.

Tracks live websocket sessions per user so the realtime channel can write
to a connected client. Process-local and never persisted; a user may hold
several sessions (tabs, devices) and the most recently active one is used
for delivery.
"""

import asyncio
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import utc_now

logger = get_module_logger()


class RealtimeSession(ABC):
    """A connected realtime client."""

    def __init__(self, user_id: str, session_id: Optional[str] = None):
        self.session_id = session_id or str(uuid.uuid4())
        self.user_id = user_id
        self.connected_at = utc_now()
        self.last_active = self.connected_at

    def touch(self, now: Optional[datetime] = None) -> None:
        self.last_active = now or utc_now()

    @abstractmethod
    def send(self, message: Dict[str, Any], timeout: float) -> None:
        """Write message to the client, raising on failure or timeout."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the connection."""
        pass


class WebSocketSession(RealtimeSession):
    """Session backed by a FastAPI WebSocket.

    Dispatch workers run in threads, so writes are scheduled on the event
    loop that owns the socket and awaited from the calling thread.
    """

    def __init__(
        self,
        user_id: str,
        websocket: Any,
        loop: asyncio.AbstractEventLoop,
        session_id: Optional[str] = None,
    ):
        super().__init__(user_id, session_id)
        self._websocket = websocket
        self._loop = loop

    def _in_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def send(self, message: Dict[str, Any], timeout: float) -> None:
        if self._in_loop_thread():
            raise RuntimeError("Synchronous send called from the event loop thread")
        future = asyncio.run_coroutine_threadsafe(
            self._websocket.send_json(message), self._loop
        )
        future.result(timeout=timeout)
        self.touch()

    def close(self) -> None:
        if self._in_loop_thread():
            self._loop.create_task(self._websocket.close(code=1001))
            return
        if self._loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self._websocket.close(code=1001), self._loop)


class RealtimeSessionRegistry:
    """Bidirectional user <-> session index guarded by a lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions_by_user: Dict[str, Dict[str, RealtimeSession]] = {}
        self._user_by_session: Dict[str, str] = {}

    def register(self, user_id: str, session: RealtimeSession) -> None:
        with self._lock:
            self._sessions_by_user.setdefault(user_id, {})[session.session_id] = session
            self._user_by_session[session.session_id] = user_id
            session_count = len(self._sessions_by_user[user_id])
        logger.info(
            "realtime_session_registered",
            user_id=user_id,
            session_id=session.session_id,
            user_session_count=session_count,
        )

    def unregister(self, session: RealtimeSession) -> Optional[str]:
        """Remove a session.

        Returns:
            The user id the session belonged to, or None if unknown.
        """
        with self._lock:
            user_id = self._remove_locked(session.session_id)
        if user_id is not None:
            logger.info(
                "realtime_session_unregistered",
                user_id=user_id,
                session_id=session.session_id,
            )
        return user_id

    def _remove_locked(self, session_id: str) -> Optional[str]:
        user_id = self._user_by_session.pop(session_id, None)
        if user_id is None:
            return None
        sessions = self._sessions_by_user.get(user_id, {})
        sessions.pop(session_id, None)
        if not sessions:
            self._sessions_by_user.pop(user_id, None)
        return user_id

    def is_online(self, user_id: str) -> bool:
        with self._lock:
            return bool(self._sessions_by_user.get(user_id))

    def lookup(self, user_id: str) -> Optional[RealtimeSession]:
        """Most recently active session for user_id."""
        with self._lock:
            sessions = list(self._sessions_by_user.get(user_id, {}).values())
        if not sessions:
            return None
        return max(sessions, key=lambda s: s.last_active)

    def touch(self, session: RealtimeSession) -> None:
        session.touch()

    def sweep_inactive(
        self, threshold_seconds: int, now: Optional[datetime] = None
    ) -> int:
        """Close and remove sessions idle for longer than threshold_seconds.

        Returns:
            Number of sessions removed.
        """
        cutoff = (now or utc_now()) - timedelta(seconds=threshold_seconds)
        with self._lock:
            stale: List[RealtimeSession] = [
                session
                for sessions in self._sessions_by_user.values()
                for session in sessions.values()
                if session.last_active < cutoff
            ]
            for session in stale:
                self._remove_locked(session.session_id)

        for session in stale:
            try:
                session.close()
            except Exception as e:  # pylint: disable=broad-except
                logger.warning(
                    "realtime_session_close_failed",
                    session_id=session.session_id,
                    error=str(e),
                )

        if stale:
            logger.info(
                "realtime_sessions_swept",
                removed=len(stale),
                threshold_seconds=threshold_seconds,
            )
        return len(stale)

    def online_count(self) -> int:
        """Number of users with at least one session."""
        with self._lock:
            return len(self._sessions_by_user)

    def session_count(self) -> int:
        with self._lock:
            return len(self._user_by_session)
