"""Escalation decision."""
from typing import Iterable, Optional

from receptionist.services.agent.policy import get_policy

DEFAULT_MAX_TURNS = 12


def should_escalate(
    reply: str,
    turn_count: int,
    max_turns: int = DEFAULT_MAX_TURNS,
    triggers: Optional[Iterable[str]] = None,
) -> bool:
    """
    Decide whether the call should leave the automated conversation.

    Args:
        reply: Latest receptionist utterance
        turn_count: Turns so far, counting both speakers
        max_turns: Hard cap on turns per call
        triggers: Phrases that signal a hand-off (defaults to the loaded policy)

    Returns:
        True if the reply mentions a trigger phrase or the cap is reached
    """
    if turn_count >= max_turns:
        return True
    if triggers is None:
        triggers = get_policy().escalation_triggers
    text = (reply or "").lower()
    return any(
        trigger.lower().strip() in text for trigger in triggers if trigger and trigger.strip()
    )
