"""Call log persistence."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc

from receptionist.core.exceptions import LogWriteFailed
from receptionist.db.models import CallRecord

logger = logging.getLogger(__name__)


class CallRecordService:
    """Service for reading and writing call records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_record(
        self,
        client_id: str,
        from_number: Optional[str],
        to_number: Optional[str],
        transcript: str,
        duration_seconds: int,
        call_type: str,
        status: str,
        call_sid: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> CallRecord:
        """Append a call record."""
        record = CallRecord(
            call_sid=call_sid,
            client_id=client_id,
            from_number=from_number,
            to_number=to_number,
            timestamp=timestamp or datetime.now(timezone.utc),
            transcript=transcript,
            duration_seconds=duration_seconds,
            call_type=call_type,
            status=status,
        )
        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)
        return record

    async def list_records(
        self, client_id: Optional[str] = None, limit: int = 100
    ) -> List[CallRecord]:
        """List call records, newest first."""
        query = select(CallRecord)
        if client_id:
            query = query.where(CallRecord.client_id == client_id)
        result = await self.db.execute(
            query.order_by(desc(CallRecord.timestamp), desc(CallRecord.id)).limit(limit)
        )
        return list(result.scalars().all())


class CallLogWriter:
    """
    Writes call records outside the request that produced them.

    Each attempt opens its own database session, so a write can outlive the
    webhook request. Failed attempts are retried with exponential backoff and
    abandoned with a warning once the attempts are exhausted.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
    ):
        self.session_factory = session_factory
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self._pending: Set[asyncio.Task] = set()

    async def append_call_record(self, **fields) -> Optional[CallRecord]:
        """
        Write one call record, retrying on failure.

        Returns:
            The stored record, or None if every attempt failed
        """
        try:
            return await self._write_with_retries(fields)
        except LogWriteFailed as e:
            logger.warning(
                f"[CALL LOG] Giving up on call record - CallSid: {fields.get('call_sid')}, "
                f"Client: {fields.get('client_id')}, Error: {e}"
            )
            return None

    async def _write_with_retries(self, fields: dict) -> CallRecord:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self.session_factory() as db:
                    record = await CallRecordService(db).create_record(**fields)
                logger.info(
                    f"[CALL LOG] Call logged for {fields.get('client_id')} - "
                    f"CallSid: {fields.get('call_sid')}, Type: {fields.get('call_type')}, "
                    f"Status: {fields.get('status')}"
                )
                return record
            except Exception as e:
                last_error = e
                logger.warning(
                    f"[CALL LOG] Write attempt {attempt}/{self.max_attempts} failed - "
                    f"CallSid: {fields.get('call_sid')}, Error: {type(e).__name__}: {e}"
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.backoff_seconds * (2 ** (attempt - 1)))
        raise LogWriteFailed(
            f"{self.max_attempts} attempts failed: {type(last_error).__name__}: {last_error}"
        )

    def schedule(self, **fields) -> asyncio.Task:
        """Write a call record in the background (fire-and-forget)."""
        task = asyncio.create_task(self.append_call_record(**fields))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for all scheduled writes to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
