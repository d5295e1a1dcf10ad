"""In-memory call session store with per-call locking."""
import asyncio
import inspect
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from receptionist.core.exceptions import SessionNotFound
from receptionist.services.call_session.models import CallSession, utcnow

logger = logging.getLogger(__name__)

Mutation = Callable[[CallSession], Union[Any, Awaitable[Any]]]


class _Entry:
    """A stored session and the lock that serializes access to it."""

    __slots__ = ("session", "lock")

    def __init__(self, session: CallSession):
        self.session = session
        self.lock = asyncio.Lock()


class SessionStore:
    """
    Holds one session per live call.

    Every operation on a call id is serialized by that call's own lock, so two
    requests for the same call can never interleave a read-modify-write.
    Different calls never wait on each other.
    """

    def __init__(self):
        self._entries: Dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, call_id: str) -> bool:
        return call_id in self._entries

    async def create(
        self,
        call_id: str,
        client_id: str,
        from_number: Optional[str] = None,
        to_number: Optional[str] = None,
    ) -> CallSession:
        """Create a session, or return the existing one for this call id unchanged."""
        session, _ = await self.create_or_get(call_id, client_id, from_number, to_number)
        return session

    async def create_or_get(
        self,
        call_id: str,
        client_id: str,
        from_number: Optional[str] = None,
        to_number: Optional[str] = None,
    ) -> Tuple[CallSession, bool]:
        """Like create, but also report whether a new session was made."""
        entry = self._entries.get(call_id)
        if entry is not None:
            logger.info(f"[SESSION STORE] Session already exists - CallSid: {call_id}")
            return entry.session, False

        session = CallSession(
            call_id=call_id,
            client_id=client_id,
            from_number=from_number,
            to_number=to_number,
        )
        self._entries[call_id] = _Entry(session)
        logger.info(
            f"[SESSION STORE] Session created - CallSid: {call_id}, Client: {client_id}, "
            f"Active sessions: {len(self._entries)}"
        )
        return session, True

    async def get(self, call_id: str) -> CallSession:
        """Get the session for a call id."""
        entry = self._entries.get(call_id)
        if entry is None:
            raise SessionNotFound(call_id)
        return entry.session

    async def mutate(self, call_id: str, fn: Mutation) -> Any:
        """
        Apply fn to the session while holding the call's lock.

        fn may be a plain function or a coroutine function. Its return value
        is passed back to the caller.

        Raises:
            SessionNotFound: no session, or it was deleted while waiting
        """
        entry = self._entries.get(call_id)
        if entry is None:
            raise SessionNotFound(call_id)

        async with entry.lock:
            # Deleted (or replaced) while we waited for the lock
            if self._entries.get(call_id) is not entry:
                raise SessionNotFound(call_id)
            try:
                result = fn(entry.session)
                if inspect.isawaitable(result):
                    result = await result
                return result
            finally:
                entry.session.touch()

    async def delete(self, call_id: str) -> None:
        """Remove a session. Removing an absent call id is not an error."""
        if self._entries.pop(call_id, None) is not None:
            logger.info(
                f"[SESSION STORE] Session removed - CallSid: {call_id}, "
                f"Active sessions: {len(self._entries)}"
            )

    async def expire_idle(
        self, max_idle: timedelta, now: Optional[datetime] = None
    ) -> List[CallSession]:
        """
        Remove sessions with no activity for longer than max_idle.

        Sessions whose lock is held are busy and are left alone.

        Returns:
            The removed sessions
        """
        now = now or utcnow()
        expired: List[CallSession] = []
        for call_id, entry in list(self._entries.items()):
            if entry.lock.locked():
                continue
            if now - entry.session.last_activity_at <= max_idle:
                continue
            async with entry.lock:
                if self._entries.get(call_id) is not entry:
                    continue
                if now - entry.session.last_activity_at <= max_idle:
                    continue
                del self._entries[call_id]
                expired.append(entry.session)
                logger.info(
                    f"[SESSION STORE] Session expired after inactivity - CallSid: {call_id}"
                )
        return expired

    def clear(self) -> None:
        self._entries.clear()
