"""Turn engine: one caller utterance in, one receptionist utterance out."""
import logging
from typing import Optional

from receptionist.core.exceptions import CompletionFailed
from receptionist.services.agent.completion import CompletionClient
from receptionist.services.agent.policy import ReceptionistPolicy, get_policy
from receptionist.services.call_session.models import CallSession, Speaker

logger = logging.getLogger(__name__)


class TurnEngine:
    """Appends the caller's words, asks the completion engine for a reply, appends it."""

    def __init__(
        self,
        completion_client: CompletionClient,
        policy: Optional[ReceptionistPolicy] = None,
        max_tokens: int = 150,
    ):
        self.completion_client = completion_client
        self.policy = policy or get_policy()
        self.max_tokens = max_tokens

    async def produce_next_utterance(self, session: CallSession, caller_utterance: str) -> str:
        """
        Produce the receptionist's next utterance.

        Must be called while holding the session's lock (SessionStore.mutate).

        Raises:
            CompletionFailed: the caller turn stays, no receptionist turn is added
        """
        caller_utterance = (caller_utterance or "").strip()
        if caller_utterance:
            session.add_turn(Speaker.CALLER, caller_utterance)

        logger.info(
            f"[TURN ENGINE] Requesting reply - CallSid: {session.call_id}, "
            f"Turns so far: {session.turn_count}"
        )
        try:
            reply = await self.completion_client.complete(
                self.policy.system_prompt, list(session.turns), self.max_tokens
            )
        except CompletionFailed:
            session.consecutive_failures += 1
            raise

        session.consecutive_failures = 0
        session.add_turn(Speaker.RECEPTIONIST, reply)
        logger.info(
            f"[TURN ENGINE] Reply ready - CallSid: {session.call_id}, "
            f"Reply: '{reply[:100]}', Turns: {session.turn_count}"
        )
        return reply
