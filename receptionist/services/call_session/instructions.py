"""
Transport-agnostic call events and instructions.

Events are what the telephony provider tells us; instructions are what the
lifecycle controller wants the provider to do next. The webhook layer maps
them to and from TwiML.
"""

from dataclasses import dataclass
from typing import List, Optional, Union


@dataclass(frozen=True)
class CallStarted:
    """A new inbound call reached the service."""
    call_id: str
    from_number: Optional[str]
    to_number: Optional[str]
    client_id: str


@dataclass(frozen=True)
class SpeechReceived:
    """The provider transcribed one caller utterance (may be empty)."""
    call_id: str
    text: str


@dataclass(frozen=True)
class RecordingCompleted:
    """The caller's voicemail recording finished."""
    call_id: str
    url: str


@dataclass(frozen=True)
class Speak:
    """Say text to the caller."""
    text: str


@dataclass(frozen=True)
class GatherSpeech:
    """Say a prompt and collect the caller's next utterance."""
    prompt: str
    follow_up: Optional[str] = None


@dataclass(frozen=True)
class Dial:
    """Connect the caller to another number."""
    number: str

    def __post_init__(self):
        if not self.number:
            raise ValueError("Dial number cannot be empty")


@dataclass(frozen=True)
class Record:
    """Record a voicemail."""
    max_length_seconds: int = 120

    def __post_init__(self):
        if self.max_length_seconds < 1:
            raise ValueError("Recording length must be at least 1 second")


@dataclass(frozen=True)
class Hangup:
    """End the call."""
    pass


Instruction = Union[Speak, GatherSpeech, Dial, Record, Hangup]
Instructions = List[Instruction]
