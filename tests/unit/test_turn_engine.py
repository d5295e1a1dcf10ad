"""Unit tests for the turn engine."""
import pytest

from receptionist.core.exceptions import CompletionFailed
from receptionist.services.agent.policy import get_policy
from receptionist.services.call_session.models import CallSession, Speaker


@pytest.fixture
def session():
    return CallSession(call_id="CA1", client_id="acme", from_number="+1555", to_number="+1800")


class TestProduceNextUtterance:
    """Test producing receptionist replies."""

    @pytest.mark.asyncio
    async def test_appends_caller_then_reply(self, turn_engine, mock_completion, session):
        """Test that both sides are appended in order."""
        mock_completion.complete.return_value = "Sure, what time?"

        reply = await turn_engine.produce_next_utterance(session, "I want to book an appointment")

        assert reply == "Sure, what time?"
        assert [(t.speaker, t.text) for t in session.turns] == [
            (Speaker.CALLER, "I want to book an appointment"),
            (Speaker.RECEPTIONIST, "Sure, what time?"),
        ]

    @pytest.mark.asyncio
    async def test_completion_sees_caller_turn(self, turn_engine, mock_completion, session):
        """Test that the caller's words are in the history sent to the engine."""
        await turn_engine.produce_next_utterance(session, "Hello there")

        system_instruction, turns, max_tokens = mock_completion.complete.call_args.args
        assert system_instruction == get_policy().system_prompt
        assert [t.text for t in turns] == ["Hello there"]
        assert max_tokens == 150

    @pytest.mark.asyncio
    async def test_empty_utterance_not_appended(self, turn_engine, mock_completion, session):
        """Test that silence adds only the receptionist's turn."""
        mock_completion.complete.return_value = "Are you still there?"

        await turn_engine.produce_next_utterance(session, "   ")

        assert [t.speaker for t in session.turns] == [Speaker.RECEPTIONIST]

    @pytest.mark.asyncio
    async def test_failure_keeps_only_caller_turn(self, turn_engine, mock_completion, session):
        """Test that a failed completion leaves just the caller's utterance."""
        mock_completion.complete.side_effect = CompletionFailed("timeout")

        with pytest.raises(CompletionFailed):
            await turn_engine.produce_next_utterance(session, "Hello?")

        assert [(t.speaker, t.text) for t in session.turns] == [(Speaker.CALLER, "Hello?")]
        assert session.consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, turn_engine, mock_completion, session):
        """Test that a good reply clears the consecutive failure count."""
        mock_completion.complete.side_effect = [CompletionFailed("boom"), "Back again."]

        with pytest.raises(CompletionFailed):
            await turn_engine.produce_next_utterance(session, "One")
        await turn_engine.produce_next_utterance(session, "Two")

        assert session.consecutive_failures == 0
        assert [t.text for t in session.turns] == ["One", "Two", "Back again."]

    @pytest.mark.asyncio
    async def test_history_grows_across_turns(self, turn_engine, mock_completion, session):
        """Test that every call sees the full history so far."""
        mock_completion.complete.side_effect = ["Reply one", "Reply two"]

        await turn_engine.produce_next_utterance(session, "First")
        await turn_engine.produce_next_utterance(session, "Second")

        second_call_turns = mock_completion.complete.call_args_list[1].args[1]
        assert [t.text for t in second_call_turns] == ["First", "Reply one", "Second"]
        assert session.transcript == (
            "Caller: First\nReceptionist: Reply one\nCaller: Second\nReceptionist: Reply two"
        )
