"""Client config repository."""
import logging
from typing import List
from receptionist.core.exceptions import ClientConfigNotFound
from receptionist.services.clients.base import ClientConfig, ClientConfigProvider

logger = logging.getLogger(__name__)


class ClientConfigRepository:
    """Repository for client config lookups. Never caches."""

    def __init__(self, provider: ClientConfigProvider):
        self.provider = provider

    async def get_client_config(self, client_id: str) -> ClientConfig:
        """
        Get a client's config.

        Raises:
            ClientConfigNotFound: unknown client, or the provider failed
        """
        try:
            config = await self.provider.get_client_config(client_id)
        except Exception as e:
            logger.error(
                f"[CLIENT CONFIG] Lookup failed - Client: {client_id}, "
                f"Error: {type(e).__name__}: {e}",
                exc_info=True,
            )
            raise ClientConfigNotFound(client_id) from e
        if config is None:
            raise ClientConfigNotFound(client_id)
        return config

    async def list_client_configs(self) -> List[ClientConfig]:
        """Get every client config."""
        return await self.provider.list_client_configs()

    async def save_client_config(self, config: ClientConfig) -> ClientConfig:
        """Create or replace a client config."""
        logger.info(f"[CLIENT CONFIG] Saving config - Client: {config.client_id}")
        return await self.provider.save_client_config(config)
