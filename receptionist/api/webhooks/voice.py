"""Twilio voice webhook endpoints."""
import logging
from fastapi import APIRouter, Request, Form, Depends, Query
from fastapi.responses import Response

from receptionist.core.config import settings
from receptionist.core.dependencies import get_call_controller, get_twiml_renderer
from receptionist.services.agent.policy import get_policy
from receptionist.services.call_session.controller import CallLifecycleController
from receptionist.services.call_session.instructions import (
    CallStarted,
    Hangup,
    Instructions,
    RecordingCompleted,
    Speak,
    SpeechReceived,
)
from receptionist.services.speech.twiml import TwimlRenderer

router = APIRouter()
logger = logging.getLogger(__name__)


def get_base_url(request: Request) -> str:
    """
    Get the base URL for constructing absolute callback URLs.

    Uses BASE_URL if set (e.g. behind a proxy or tunnel), otherwise the
    request's own base URL.
    """
    if settings.base_url:
        return settings.base_url.rstrip("/")
    return str(request.base_url).rstrip("/")


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _twiml_response(
    request: Request,
    renderer: TwimlRenderer,
    call_sid: str,
    instructions: Instructions,
) -> Response:
    base_url = get_base_url(request)
    try:
        twiml = renderer.render(
            instructions,
            gather_url=f"{base_url}/webhooks/voice/gather?CallSid={call_sid}",
            recording_url=f"{base_url}/webhooks/voice/recording?CallSid={call_sid}",
        )
    except Exception as e:
        logger.error(
            f"[TWIML] Error rendering response - CallSid: {call_sid}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        twiml = renderer.render(
            [Speak(get_policy().phrases.unexpected_error), Hangup()], "", ""
        )
    logger.debug(f"[TWIML] CallSid: {call_sid}, TwiML length: {len(twiml)} bytes")
    return Response(content=twiml, media_type="application/xml")


@router.post("/voice/incoming")
async def handle_incoming_call(
    request: Request,
    CallSid: str = Form(...),
    From: str = Form(None),
    To: str = Form(None),
    client_id: str = Query("default", alias="clientId"),
    controller: CallLifecycleController = Depends(get_call_controller),
    renderer: TwimlRenderer = Depends(get_twiml_renderer),
):
    """
    Handle incoming call from Twilio.

    Configure the phone number's voice webhook as
    https://<host>/webhooks/voice/incoming?clientId=<client id>.
    """
    logger.info(
        f"[INCOMING CALL] Received incoming call webhook - CallSid: {CallSid}, "
        f"Client: {client_id}, From: {From}, To: {To}, Host: {_client_host(request)}"
    )
    instructions = await controller.handle_call_started(
        CallStarted(call_id=CallSid, from_number=From, to_number=To, client_id=client_id)
    )
    return _twiml_response(request, renderer, CallSid, instructions)


@router.post("/voice/gather")
async def handle_gather(
    request: Request,
    CallSid: str = Query(...),
    SpeechResult: str = Form(None),
    controller: CallLifecycleController = Depends(get_call_controller),
    renderer: TwimlRenderer = Depends(get_twiml_renderer),
):
    """
    Handle gathered speech from Twilio.

    This endpoint is called after Twilio collects user speech, or with no
    SpeechResult when the caller stayed silent.
    """
    logger.info(
        f"[GATHER] Received speech input - CallSid: {CallSid}, "
        f"SpeechResult length: {len(SpeechResult) if SpeechResult else 0}, "
        f"Host: {_client_host(request)}"
    )
    if not SpeechResult:
        logger.warning(f"[GATHER] No speech result provided - CallSid: {CallSid}")

    instructions = await controller.handle_speech(
        SpeechReceived(call_id=CallSid, text=SpeechResult or "")
    )
    return _twiml_response(request, renderer, CallSid, instructions)


@router.post("/voice/recording")
async def handle_recording(
    request: Request,
    CallSid: str = Query(...),
    RecordingUrl: str = Form(...),
    controller: CallLifecycleController = Depends(get_call_controller),
    renderer: TwimlRenderer = Depends(get_twiml_renderer),
):
    """Handle a finished voicemail recording from Twilio."""
    logger.info(
        f"[RECORDING] Recording completed - CallSid: {CallSid}, "
        f"RecordingUrl: {RecordingUrl}, Host: {_client_host(request)}"
    )
    instructions = await controller.handle_recording_completed(
        RecordingCompleted(call_id=CallSid, url=RecordingUrl)
    )
    return _twiml_response(request, renderer, CallSid, instructions)


@router.post("/voice/status")
async def handle_call_status(
    request: Request,
    CallSid: str = Form(...),
    CallStatus: str = Form(...),
    controller: CallLifecycleController = Depends(get_call_controller),
):
    """
    Handle call status updates from Twilio.

    A call that ends mid-conversation has its session reclaimed right away.
    """
    logger.info(
        f"[CALL STATUS] Received status update - CallSid: {CallSid}, "
        f"CallStatus: {CallStatus}, Host: {_client_host(request)}"
    )
    removed = await controller.handle_call_ended(CallSid, CallStatus)
    if removed:
        logger.info(f"[CALL STATUS] Session reclaimed - CallSid: {CallSid}")

    # Always OK so Twilio does not retry
    return Response(content="OK", media_type="text/plain")
