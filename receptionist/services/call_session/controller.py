"""Call lifecycle controller: the per-call state machine."""
import logging
from datetime import timedelta
from typing import Optional

from receptionist.core.exceptions import (
    ClientConfigNotFound,
    CompletionFailed,
    IllegalTransition,
    SessionNotFound,
)
from receptionist.services.agent.escalation import DEFAULT_MAX_TURNS, should_escalate
from receptionist.services.agent.policy import ReceptionistPolicy, get_policy
from receptionist.services.agent.turn_engine import TurnEngine
from receptionist.services.call_session.instructions import (
    CallStarted,
    Dial,
    GatherSpeech,
    Hangup,
    Instructions,
    Record,
    RecordingCompleted,
    Speak,
    SpeechReceived,
)
from receptionist.services.call_session.models import CallSession, CallState, utcnow
from receptionist.services.call_session.store import SessionStore
from receptionist.services.clients.repository import ClientConfigRepository
from receptionist.services.persistence.calls import CallLogWriter

logger = logging.getLogger(__name__)

# Twilio statuses that mean the call is over
CALL_ENDED_STATUSES = {"completed", "failed", "busy", "no-answer", "canceled"}


class CallLifecycleController:
    """
    Turns inbound telephony events into transport instructions.

    States: gathering -> {gathering, escalating, recording} -> terminated.
    Every event for an existing call runs inside SessionStore.mutate, so turns
    for one call are applied one at a time and in delivery order. No handler
    raises: failures become a spoken apology.
    """

    def __init__(
        self,
        store: SessionStore,
        turn_engine: TurnEngine,
        config_repository: ClientConfigRepository,
        log_writer: CallLogWriter,
        policy: Optional[ReceptionistPolicy] = None,
        max_turns: int = DEFAULT_MAX_TURNS,
        record_max_length_seconds: int = 120,
        max_consecutive_failures: int = 3,
    ):
        self.store = store
        self.turn_engine = turn_engine
        self.config_repository = config_repository
        self.log_writer = log_writer
        self.policy = policy or get_policy()
        self.max_turns = max_turns
        self.record_max_length_seconds = record_max_length_seconds
        self.max_consecutive_failures = max_consecutive_failures

    @property
    def phrases(self):
        return self.policy.phrases

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------

    async def handle_call_started(self, event: CallStarted) -> Instructions:
        """Create the session and greet the caller."""
        try:
            session, created = await self.store.create_or_get(
                event.call_id, event.client_id, event.from_number, event.to_number
            )
            if not created and session.state != CallState.GATHERING:
                return self._rearm(session.state)

            try:
                config = await self.config_repository.get_client_config(session.client_id)
            except ClientConfigNotFound:
                logger.warning(
                    f"[CALL START] No config for client - CallSid: {event.call_id}, "
                    f"Client: {session.client_id}"
                )
                await self._terminate_without_log(event.call_id)
                return [Speak(self.phrases.config_missing), Hangup()]

            logger.info(
                f"[CALL START] Greeting caller - CallSid: {event.call_id}, "
                f"Client: {session.client_id}, New session: {created}"
            )
            return [GatherSpeech(config.greeting, follow_up=self.phrases.greeting_follow_up)]
        except Exception as e:
            return self._unexpected_error(event.call_id, e)

    async def handle_speech(self, event: SpeechReceived) -> Instructions:
        """Run one conversational turn."""
        try:
            return await self.store.mutate(
                event.call_id, lambda session: self._take_turn(session, event.text)
            )
        except SessionNotFound:
            return self._session_expired(event.call_id)
        except IllegalTransition as e:
            logger.warning(f"[GATHER] {e}")
            return self._rearm(CallState(e.state))
        except Exception as e:
            return self._unexpected_error(event.call_id, e)

    async def handle_recording_completed(self, event: RecordingCompleted) -> Instructions:
        """Store the voicemail reference, log the message and end the call."""
        try:
            return await self.store.mutate(
                event.call_id, lambda session: self._finish_recording(session, event.url)
            )
        except SessionNotFound:
            return self._session_expired(event.call_id)
        except IllegalTransition as e:
            logger.warning(f"[RECORDING] {e}")
            return self._rearm(CallState(e.state))
        except Exception as e:
            return self._unexpected_error(event.call_id, e)

    async def handle_call_ended(self, call_id: str, provider_status: str) -> bool:
        """
        Reclaim the session of a call the provider reports as over.

        Sessions waiting for a voicemail recording are left for the
        recording callback (or idle expiry).

        Returns:
            True if a session was removed
        """
        if provider_status not in CALL_ENDED_STATUSES:
            return False
        try:
            return await self.store.mutate(
                call_id, lambda session: self._abandon(session, provider_status)
            )
        except SessionNotFound:
            return False
        except Exception as e:
            logger.error(
                f"[CALL STATUS] Error reclaiming session - CallSid: {call_id}, "
                f"Error: {type(e).__name__}: {e}",
                exc_info=True,
            )
            return False

    async def expire_idle_sessions(self, max_idle: timedelta) -> int:
        """Remove idle sessions and log each one as abandoned."""
        expired = await self.store.expire_idle(max_idle)
        for session in expired:
            session.state = CallState.TERMINATED
            self._schedule_log(session, call_type="abandoned", status="abandoned")
        if expired:
            logger.info(f"[SESSION SWEEP] Expired {len(expired)} idle session(s)")
        return len(expired)

    # ------------------------------------------------------------------
    # Transitions (run under the session's lock)
    # ------------------------------------------------------------------

    async def _take_turn(self, session: CallSession, caller_utterance: str) -> Instructions:
        if session.state != CallState.GATHERING:
            raise IllegalTransition(session.call_id, session.state.value, "speech")

        try:
            reply = await self.turn_engine.produce_next_utterance(session, caller_utterance)
        except CompletionFailed as e:
            logger.warning(
                f"[GATHER] Completion failed - CallSid: {session.call_id}, "
                f"Consecutive failures: {session.consecutive_failures}, Error: {e}"
            )
            if session.consecutive_failures >= self.max_consecutive_failures:
                logger.warning(
                    f"[GATHER] Too many completion failures, escalating - CallSid: {session.call_id}"
                )
                return await self._escalate(session)
            return [GatherSpeech(self.phrases.completion_apology)]

        if should_escalate(
            reply,
            session.turn_count,
            max_turns=self.max_turns,
            triggers=self.policy.escalation_triggers,
        ):
            logger.info(
                f"[GATHER] Escalating - CallSid: {session.call_id}, Turns: {session.turn_count}"
            )
            return await self._escalate(session)

        return [GatherSpeech(reply)]

    async def _escalate(self, session: CallSession) -> Instructions:
        session.state = CallState.ESCALATING
        self._schedule_log(session, call_type="escalated", status="transferred")

        escalation_number = None
        try:
            config = await self.config_repository.get_client_config(session.client_id)
            escalation_number = config.escalation_number
        except ClientConfigNotFound:
            logger.warning(
                f"[ESCALATION] Config unavailable, falling back to voicemail - "
                f"CallSid: {session.call_id}, Client: {session.client_id}"
            )

        if escalation_number:
            logger.info(
                f"[ESCALATION] Transferring call - CallSid: {session.call_id}, "
                f"To: {escalation_number}"
            )
            session.state = CallState.TERMINATED
            await self.store.delete(session.call_id)
            return [Speak(self.phrases.connecting), Dial(escalation_number)]

        logger.info(f"[ESCALATION] Recording voicemail - CallSid: {session.call_id}")
        session.state = CallState.RECORDING
        return [Speak(self.phrases.start_recording), Record(self.record_max_length_seconds)]

    async def _finish_recording(self, session: CallSession, url: str) -> Instructions:
        if session.state != CallState.RECORDING:
            raise IllegalTransition(session.call_id, session.state.value, "recording")

        session.recording_url = url
        self._schedule_log(session, call_type="message", status="voicemail")
        session.state = CallState.TERMINATED
        await self.store.delete(session.call_id)
        logger.info(f"[RECORDING] Voicemail saved - CallSid: {session.call_id}")
        return [Speak(self.phrases.voicemail_saved), Hangup()]

    async def _abandon(self, session: CallSession, provider_status: str) -> bool:
        if session.state == CallState.RECORDING:
            return False
        logger.info(
            f"[CALL STATUS] Call ended mid-conversation - CallSid: {session.call_id}, "
            f"Status: {provider_status}"
        )
        self._schedule_log(session, call_type="abandoned", status="abandoned")
        session.state = CallState.TERMINATED
        await self.store.delete(session.call_id)
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _terminate_without_log(self, call_id: str) -> None:
        """Tear down a session under its lock, writing no call record."""
        async def terminate(session: CallSession) -> None:
            session.state = CallState.TERMINATED
            await self.store.delete(call_id)

        try:
            await self.store.mutate(call_id, terminate)
        except SessionNotFound:
            pass

    def _schedule_log(self, session: CallSession, call_type: str, status: str) -> None:
        now = utcnow()
        self.log_writer.schedule(
            call_sid=session.call_id,
            client_id=session.client_id,
            from_number=session.from_number,
            to_number=session.to_number,
            transcript=session.transcript,
            duration_seconds=session.duration_seconds(now),
            timestamp=now,
            call_type=call_type,
            status=status,
        )

    def _rearm(self, state: CallState) -> Instructions:
        """Instructions that keep a session in its current state."""
        if state == CallState.RECORDING:
            return [Record(self.record_max_length_seconds)]
        if state == CallState.GATHERING:
            return [GatherSpeech(self.phrases.no_speech)]
        return [Hangup()]

    def _session_expired(self, call_id: str) -> Instructions:
        logger.warning(f"[SESSION] No active session - CallSid: {call_id}")
        return [Speak(self.phrases.session_expired), Hangup()]

    def _unexpected_error(self, call_id: str, error: Exception) -> Instructions:
        logger.error(
            f"[CONTROLLER] Unexpected error - CallSid: {call_id}, "
            f"Error: {type(error).__name__}: {error}",
            exc_info=True,
        )
        return [Speak(self.phrases.unexpected_error), Hangup()]
