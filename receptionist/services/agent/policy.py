"""Receptionist persona and fixed caller-facing phrases."""
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict

DEFAULT_POLICY_FILE = Path(__file__).parent / "data" / "policy.yaml"


class Phrases(BaseModel):
    """Fixed things the receptionist says outside of generated replies."""

    model_config = ConfigDict(frozen=True)

    greeting_follow_up: str
    no_speech: str
    completion_apology: str
    config_missing: str
    session_expired: str
    unexpected_error: str
    connecting: str
    start_recording: str
    voicemail_saved: str


class ReceptionistPolicy(BaseModel):
    """Persona prompt, escalation triggers and phrases; immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    system_prompt: str
    escalation_triggers: Tuple[str, ...]
    phrases: Phrases


def load_policy(path: Optional[Path] = None) -> ReceptionistPolicy:
    """Load a policy from YAML."""
    path = Path(path) if path else DEFAULT_POLICY_FILE
    with open(path, "r") as f:
        data = yaml.safe_load(f)
    data["escalation_triggers"] = tuple(
        trigger.lower().strip() for trigger in data.get("escalation_triggers", [])
    )
    return ReceptionistPolicy(**data)


@lru_cache(maxsize=1)
def get_policy() -> ReceptionistPolicy:
    """Process-wide policy, read once."""
    return load_policy()
