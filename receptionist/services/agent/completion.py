"""Completion engine client."""
import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from openai import AsyncOpenAI, OpenAIError

from receptionist.core.config import settings
from receptionist.core.exceptions import CompletionFailed
from receptionist.services.call_session.models import Speaker, Turn

logger = logging.getLogger(__name__)

_ROLES = {
    Speaker.CALLER: "user",
    Speaker.RECEPTIONIST: "assistant",
}


def build_messages(system_instruction: str, turns: Sequence[Turn]) -> List[Dict[str, str]]:
    """Chat messages for the system instruction plus the turn history."""
    messages = [{"role": "system", "content": system_instruction}]
    messages.extend({"role": _ROLES[turn.speaker], "content": turn.text} for turn in turns)
    return messages


class CompletionClient:
    """Produces receptionist replies with the OpenAI chat completions API."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        self.model = model or settings.openai_model
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.completion_timeout_seconds
        )

    async def complete(
        self, system_instruction: str, turns: Sequence[Turn], max_tokens: int
    ) -> str:
        """
        Generate the next receptionist utterance.

        Raises:
            CompletionFailed: on timeout, API error or an empty reply
        """
        messages = build_messages(system_instruction, turns)
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    max_tokens=max_tokens,
                    temperature=0.7,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"[COMPLETION] Timed out after {self.timeout_seconds:.1f}s")
            raise CompletionFailed(f"completion timed out after {self.timeout_seconds}s")
        except OpenAIError as e:
            logger.error(f"[COMPLETION] API error: {type(e).__name__}: {e}")
            raise CompletionFailed(f"completion API error: {e}") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise CompletionFailed(f"malformed completion response: {e}") from e

        text = (content or "").strip()
        if not text:
            logger.warning("[COMPLETION] Empty reply from completion engine")
            raise CompletionFailed("empty completion")
        return text
