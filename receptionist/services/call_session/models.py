"""Call session models."""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Speaker(str, Enum):
    """Who said a turn."""

    CALLER = "caller"
    RECEPTIONIST = "receptionist"

    @property
    def label(self) -> str:
        return self.value.title()


class CallState(str, Enum):
    """Lifecycle states of a call session."""

    GATHERING = "gathering"  # Collecting caller speech turn by turn
    ESCALATING = "escalating"  # Handing off to a human or to voicemail
    RECORDING = "recording"  # Waiting for the voicemail recording to finish
    TERMINATED = "terminated"  # Done; removed from the store

    def __str__(self) -> str:
        return self.value


class Turn(BaseModel):
    """One utterance by either side of the call."""

    speaker: Speaker
    text: str


class CallSession(BaseModel):
    """Conversational state of one in-progress call."""

    call_id: str = Field(frozen=True)
    client_id: str = Field(frozen=True)
    from_number: Optional[str] = Field(default=None, frozen=True)
    to_number: Optional[str] = Field(default=None, frozen=True)
    started_at: datetime = Field(default_factory=utcnow, frozen=True)
    last_activity_at: datetime = Field(default_factory=utcnow)
    state: CallState = CallState.GATHERING
    turns: List[Turn] = []
    recording_url: Optional[str] = None
    consecutive_failures: int = 0

    @property
    def turn_count(self) -> int:
        return len(self.turns)

    @property
    def transcript(self) -> str:
        """Human-readable rendering of the turns."""
        lines = [f"{turn.speaker.label}: {turn.text}" for turn in self.turns]
        text = "\n".join(lines)
        if self.recording_url:
            text += f"\n[Voicemail: {self.recording_url}]"
        return text

    def add_turn(self, speaker: Speaker, text: str) -> None:
        """Append a turn to the conversation."""
        self.turns.append(Turn(speaker=speaker, text=text))

    def duration_seconds(self, now: Optional[datetime] = None) -> int:
        """Whole seconds since the call started."""
        now = now or utcnow()
        return max(0, round((now - self.started_at).total_seconds()))

    def touch(self) -> None:
        self.last_activity_at = utcnow()
