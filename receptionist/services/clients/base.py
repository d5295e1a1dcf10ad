"""Client config provider interface."""
from abc import ABC, abstractmethod
from typing import List, Optional
from pydantic import BaseModel


class ClientConfig(BaseModel):
    """Business configuration for one client."""

    client_id: str
    greeting: str = "Hello, thanks for calling!"
    escalation_number: Optional[str] = None
    business_hours: Optional[str] = None


class ClientConfigProvider(ABC):
    """Abstract base class for client config providers."""

    @abstractmethod
    async def get_client_config(self, client_id: str) -> Optional[ClientConfig]:
        """Get the config for a client, or None if unknown."""
        pass

    @abstractmethod
    async def list_client_configs(self) -> List[ClientConfig]:
        """Get every client config."""
        pass

    @abstractmethod
    async def save_client_config(self, config: ClientConfig) -> ClientConfig:
        """Create or replace a client config."""
        pass
