"""FastAPI dependencies."""
from functools import lru_cache

from receptionist.core.config import settings
from receptionist.db.database import AsyncSessionLocal
from receptionist.services.agent.completion import CompletionClient
from receptionist.services.agent.policy import get_policy
from receptionist.services.agent.turn_engine import TurnEngine
from receptionist.services.call_session.controller import CallLifecycleController
from receptionist.services.call_session.store import SessionStore
from receptionist.services.clients.repository import ClientConfigRepository
from receptionist.services.clients.yaml_provider import YamlClientConfigProvider
from receptionist.services.persistence.calls import CallLogWriter
from receptionist.services.speech.twiml import TwimlRenderer


def get_client_config_repository() -> ClientConfigRepository:
    """Get client config repository instance."""
    return ClientConfigRepository(provider=YamlClientConfigProvider(settings.clients_file))


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    """Process-wide session store."""
    return SessionStore()


@lru_cache(maxsize=1)
def get_call_controller() -> CallLifecycleController:
    """Process-wide call lifecycle controller."""
    policy = get_policy()
    turn_engine = TurnEngine(
        CompletionClient(),
        policy=policy,
        max_tokens=settings.completion_max_tokens,
    )
    log_writer = CallLogWriter(
        AsyncSessionLocal,
        max_attempts=settings.log_write_max_attempts,
        backoff_seconds=settings.log_write_backoff_seconds,
    )
    return CallLifecycleController(
        store=get_session_store(),
        turn_engine=turn_engine,
        config_repository=get_client_config_repository(),
        log_writer=log_writer,
        policy=policy,
        max_turns=settings.max_turns,
        record_max_length_seconds=settings.record_max_length_seconds,
        max_consecutive_failures=settings.max_consecutive_completion_failures,
    )


def get_twiml_renderer() -> TwimlRenderer:
    """Get TwiML renderer instance."""
    return TwimlRenderer(no_speech_prompt=get_policy().phrases.no_speech)
