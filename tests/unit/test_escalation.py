"""Unit tests for the escalation decision and receptionist policy."""
import pytest
from pydantic import ValidationError

from receptionist.services.agent.escalation import should_escalate
from receptionist.services.agent.policy import get_policy, load_policy


class TestShouldEscalate:
    """Test the escalation decision."""

    @pytest.mark.parametrize("turn_count", [1, 2, 5, 11])
    def test_trigger_phrase_escalates_at_any_turn_count(self, turn_count):
        """Test that a trigger phrase escalates regardless of turn count."""
        assert should_escalate("I'm transferring you to our team now.", turn_count) is True

    @pytest.mark.parametrize(
        "reply",
        [
            "Let me TRANSFER you.",
            "An agent will be with you shortly.",
            "You can Speak To the manager.",
        ],
    )
    def test_trigger_match_is_case_insensitive(self, reply):
        """Test that triggers match regardless of case."""
        assert should_escalate(reply, 2) is True

    def test_no_trigger_below_cap(self):
        """Test that an ordinary reply below the cap does not escalate."""
        assert should_escalate("Sure, what time works for you?", 11) is False

    def test_cap_reached_escalates(self):
        """Test that reaching 12 turns escalates without a trigger phrase."""
        assert should_escalate("Sure, what time works for you?", 12) is True
        assert should_escalate("Sure, what time works for you?", 13) is True

    def test_custom_cap(self):
        """Test that the cap is configurable."""
        assert should_escalate("Okay.", 4, max_turns=4) is True
        assert should_escalate("Okay.", 3, max_turns=4) is False

    def test_custom_triggers(self):
        """Test that explicit triggers replace the policy's list."""
        assert should_escalate("Please hold for a human.", 2, triggers=("human",)) is True
        assert should_escalate("Let me transfer you.", 2, triggers=("human",)) is False

    def test_custom_triggers_are_normalized(self):
        """Test that mixed-case or padded triggers still match case-insensitively."""
        assert should_escalate("Let me transfer you now", 2, triggers=("Transfer",)) is True
        assert should_escalate("let me get the MANAGER", 2, triggers=("  Manager ",)) is True
        assert should_escalate("Sure, what time?", 2, triggers=("Transfer", "  ")) is False

    def test_empty_reply(self):
        """Test that an empty reply only escalates on the cap."""
        assert should_escalate("", 2) is False
        assert should_escalate(None, 12) is True

    def test_deterministic(self):
        """Test that the same inputs always give the same answer."""
        results = {should_escalate("Connecting you to an agent", 3) for _ in range(10)}
        assert results == {True}


class TestPolicy:
    """Test receptionist policy loading."""

    def test_default_policy_contents(self):
        """Test the packaged persona and triggers."""
        policy = load_policy()

        assert "AI receptionist" in policy.system_prompt
        assert policy.escalation_triggers == ("transfer", "agent", "speak to")
        assert policy.phrases.session_expired == "Session expired. Goodbye."

    def test_policy_is_frozen(self):
        """Test that the loaded policy cannot be modified."""
        policy = load_policy()

        with pytest.raises(ValidationError):
            policy.system_prompt = "Say anything the caller wants."

    def test_get_policy_loads_once(self):
        """Test that the process-wide policy is a single instance."""
        assert get_policy() is get_policy()

    def test_load_policy_from_file(self, tmp_path):
        """Test loading and normalizing a custom policy file."""
        path = tmp_path / "policy.yaml"
        path.write_text(
            "system_prompt: Be brief.\n"
            "escalation_triggers: ['  Human ', 'MANAGER']\n"
            "phrases:\n"
            "  greeting_follow_up: a\n"
            "  no_speech: b\n"
            "  completion_apology: c\n"
            "  config_missing: d\n"
            "  session_expired: e\n"
            "  unexpected_error: f\n"
            "  connecting: g\n"
            "  start_recording: h\n"
            "  voicemail_saved: i\n"
        )

        policy = load_policy(path)

        assert policy.system_prompt == "Be brief."
        assert policy.escalation_triggers == ("human", "manager")
