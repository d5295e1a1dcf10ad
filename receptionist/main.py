"""Main FastAPI application."""
import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager

from receptionist.core.config import settings
from receptionist.core.dependencies import get_call_controller
from receptionist.core.logging import setup_logging
from receptionist.db.database import init_db
from receptionist.api import health, calls, clients
from receptionist.api.webhooks import voice
from receptionist.services.call_session.sweeper import SessionSweeper

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    await init_db()
    controller = get_call_controller()
    sweeper = SessionSweeper(
        controller,
        idle_timeout_seconds=settings.session_idle_timeout_seconds,
        interval_seconds=settings.session_sweep_interval_seconds,
    )
    sweeper.start()
    yield
    # Shutdown
    await sweeper.stop()
    if controller.log_writer.pending:
        logger.info(f"Waiting for {controller.log_writer.pending} call log write(s)")
    await controller.log_writer.drain()


app = FastAPI(
    title="AI Receptionist",
    description="AI receptionist that answers inbound business calls",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router, tags=["health"])
app.include_router(voice.router, prefix="/webhooks", tags=["webhooks"])
app.include_router(calls.router, tags=["calls"])
app.include_router(clients.router, tags=["clients"])


@app.get("/")
async def root():
    """Service banner."""
    return {
        "message": "AI Receptionist API",
        "version": "0.1.0",
        "webhook": "/webhooks/voice/incoming?clientId=YOUR_CLIENT_ID",
    }


def run() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    uvicorn.run("receptionist.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
