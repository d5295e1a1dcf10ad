"""YAML-file client config provider."""
import yaml
from pathlib import Path
from typing import Dict, List, Optional
from receptionist.services.clients.base import ClientConfig, ClientConfigProvider

DEFAULT_CLIENTS_FILE = Path(__file__).parent / "data" / "clients.yaml"


class YamlClientConfigProvider(ClientConfigProvider):
    """
    Client configs stored in a YAML file.

    The file is read on every lookup, so edits take effect on the next call
    without a restart.
    """

    def __init__(self, clients_file: Optional[str] = None):
        self.clients_file = Path(clients_file) if clients_file else DEFAULT_CLIENTS_FILE

    def _read(self) -> Dict[str, ClientConfig]:
        if not self.clients_file.exists():
            return {}
        with open(self.clients_file, "r") as f:
            data = yaml.safe_load(f) or {}
        configs = {}
        for entry in data.get("clients", []):
            config = ClientConfig(**entry)
            configs[config.client_id] = config
        return configs

    def _write(self, configs: Dict[str, ClientConfig]) -> None:
        self.clients_file.parent.mkdir(parents=True, exist_ok=True)
        data = {"clients": [config.model_dump() for config in configs.values()]}
        with open(self.clients_file, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    async def get_client_config(self, client_id: str) -> Optional[ClientConfig]:
        """Get the config for a client, or None if unknown."""
        return self._read().get(client_id)

    async def list_client_configs(self) -> List[ClientConfig]:
        """Get every client config."""
        return list(self._read().values())

    async def save_client_config(self, config: ClientConfig) -> ClientConfig:
        """Create or replace a client config."""
        configs = self._read()
        configs[config.client_id] = config
        self._write(configs)
        return config
