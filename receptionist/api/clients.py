"""Client config API endpoints."""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from receptionist.core.dependencies import get_client_config_repository
from receptionist.core.exceptions import ClientConfigNotFound
from receptionist.services.clients.base import ClientConfig
from receptionist.services.clients.repository import ClientConfigRepository

router = APIRouter()
logger = logging.getLogger(__name__)


class ClientConfigUpdate(BaseModel):
    """Body of a client config create/replace."""
    greeting: str
    escalation_number: Optional[str] = None
    business_hours: Optional[str] = None


@router.get("/api/clients", response_model=List[ClientConfig])
async def list_clients(
    repository: ClientConfigRepository = Depends(get_client_config_repository),
):
    """Get every client config."""
    configs = await repository.list_client_configs()
    logger.info(f"[CLIENTS] Listed {len(configs)} client configs")
    return configs


@router.get("/api/clients/{client_id}", response_model=ClientConfig)
async def get_client(
    client_id: str,
    repository: ClientConfigRepository = Depends(get_client_config_repository),
):
    """Get one client config."""
    try:
        return await repository.get_client_config(client_id)
    except ClientConfigNotFound:
        raise HTTPException(status_code=404, detail=f"Client '{client_id}' not found")


@router.put("/api/clients/{client_id}", response_model=ClientConfig)
async def put_client(
    client_id: str,
    update: ClientConfigUpdate,
    repository: ClientConfigRepository = Depends(get_client_config_repository),
):
    """Create or replace a client config. Applies to the next call."""
    try:
        config = ClientConfig(client_id=client_id, **update.model_dump())
        return await repository.save_client_config(config)
    except Exception as e:
        logger.error(
            f"[CLIENTS] Error saving client config - Client: {client_id}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        raise HTTPException(status_code=500, detail=f"Error saving client config: {str(e)}")
