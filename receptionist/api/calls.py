"""Call log API endpoints."""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Request, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, ConfigDict

from receptionist.db.database import get_db
from receptionist.services.persistence.calls import CallRecordService


router = APIRouter()
logger = logging.getLogger(__name__)


class CallRecordResponse(BaseModel):
    """Call record response model."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    call_sid: Optional[str] = None
    client_id: str
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    timestamp: str
    transcript: Optional[str] = None
    duration_seconds: int
    call_type: str
    status: str


@router.get("/api/calls", response_model=List[CallRecordResponse])
async def list_calls(
    request: Request,
    client_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    """Get logged calls, newest first."""
    logger.info(
        f"[CALLS] Request received - client_id: {client_id}, limit: {limit}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )

    try:
        records = await CallRecordService(db).list_records(client_id=client_id, limit=limit)
        logger.info(f"[CALLS] Found {len(records)} call records")
        return [
            CallRecordResponse(
                id=record.id,
                call_sid=record.call_sid,
                client_id=record.client_id,
                from_number=record.from_number,
                to_number=record.to_number,
                timestamp=record.timestamp.isoformat() if record.timestamp else "",
                transcript=record.transcript,
                duration_seconds=record.duration_seconds,
                call_type=record.call_type,
                status=record.status,
            )
            for record in records
        ]

    except Exception as e:
        logger.error(
            f"[CALLS] Error fetching call records - "
            f"limit: {limit}, Error: {type(e).__name__}: {str(e)}",
            exc_info=True
        )
        raise HTTPException(status_code=500, detail=f"Error fetching call records: {str(e)}")
