"""
Session API endpoints

Handles the spoken interview session:
- Starting a session in the background
- Signalling the end of an answer
- Ending a session
- Streaming session events over WebSocket
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from mockvoice.api.broadcaster import EventBroadcaster
from mockvoice.api.dependencies import get_broadcaster, get_controller
from mockvoice.core.session_controller import SessionController

logger = logging.getLogger(__name__)

router = APIRouter()

# Running session loops; referenced so they are not garbage collected
_session_tasks: set[asyncio.Task] = set()


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class StartRequest(BaseModel):
    """Request model for starting a session."""
    topics: list[str] = Field(..., min_length=1)
    job_context: str = Field(..., min_length=1)


class StartResponse(BaseModel):
    """Response after starting a session."""
    status: str
    version: int
    topics: list[str]


class ActionResponse(BaseModel):
    """Response for simple session actions."""
    status: str
    message: str


class SessionStatusResponse(BaseModel):
    """Response for session status."""
    active: bool
    phase: str
    state: str
    version: int
    recording: bool
    speaking: bool
    waiting_for_user_done: bool
    questions_answered: int
    topics: dict[str, int]
    last_event: dict | None = None


# ============================================================================
# REST ENDPOINTS
# ============================================================================

@router.post("/start", response_model=StartResponse, status_code=202)
async def start_session(
    request: StartRequest,
    controller: SessionController = Depends(get_controller),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    """
    Start a new interview session.

    The session runs in the background; progress is streamed on /events.
    """
    topics = [t.strip() for t in request.topics if t.strip()]
    if not topics:
        raise HTTPException(status_code=400, detail="At least one non-empty topic is required")
    if not request.job_context.strip():
        raise HTTPException(status_code=400, detail="Job context must not be empty")
    if controller.is_session_active():
        raise HTTPException(status_code=409, detail="A session is already running")

    # Reserved before the task runs so a second request sees it as active
    version = controller.begin_session(topics, request.job_context, broadcaster.publish)
    task = asyncio.create_task(
        controller.run_session(version),
        name=f"mock-interview-session-v{version}",
    )
    _session_tasks.add(task)
    task.add_done_callback(_session_tasks.discard)

    logger.info(f"Session v{version} requested with {len(topics)} topic(s)")
    return StartResponse(
        status="started",
        version=version,
        topics=topics,
    )


@router.post("/done", response_model=ActionResponse)
async def answer_done(controller: SessionController = Depends(get_controller)):
    """Signal that the candidate finished answering."""
    if not controller.is_recording():
        raise HTTPException(status_code=409, detail="No answer is being recorded")

    controller.user_done()
    return ActionResponse(status="ok", message="Recording stopped")


@router.post("/end", response_model=ActionResponse)
async def end_session(controller: SessionController = Depends(get_controller)):
    """End the current session. Safe to call when nothing is running."""
    was_active = controller.is_session_active()
    controller.end_session()
    return ActionResponse(
        status="ended" if was_active else "idle",
        message="Session ended" if was_active else "No active session",
    )


@router.get("/status", response_model=SessionStatusResponse)
async def get_status(
    controller: SessionController = Depends(get_controller),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    """Get the current session status."""
    session = controller.session
    return SessionStatusResponse(
        active=controller.is_session_active(),
        phase=session.phase.value if session else "idle",
        state=controller.state.value,
        version=controller.version,
        recording=controller.is_recording(),
        speaking=controller.is_tts_speaking(),
        waiting_for_user_done=controller.is_waiting_for_user_done(),
        questions_answered=session.total_questions if session else 0,
        topics={t.label: t.questions_asked for t in session.topics} if session else {},
        last_event=broadcaster.last_event,
    )


# ============================================================================
# WEBSOCKET
# ============================================================================

@router.websocket("/events")
async def session_events(
    websocket: WebSocket,
    controller: SessionController = Depends(get_controller),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    """
    WebSocket endpoint for real-time session events.

    Server sends every session event as JSON (see the `type` field).

    Client may send:
    - done: The candidate finished answering
    - end: End the session
    - ping: Keep-alive
    """
    queue = broadcaster.subscribe()
    await websocket.accept()

    async def forward_events():
        while True:
            event = await queue.get()
            await websocket.send_json(event)

    sender = asyncio.create_task(forward_events())

    try:
        while True:
            data = await websocket.receive_json()
            message_type = data.get("type")

            if message_type == "done":
                controller.user_done()
            elif message_type == "end":
                controller.end_session()
            elif message_type == "ping":
                await websocket.send_json({"type": "pong"})
            else:
                logger.debug(f"Ignoring unknown message type: {message_type}")

    except WebSocketDisconnect:
        # Client disconnected
        pass
    finally:
        sender.cancel()
        broadcaster.unsubscribe(queue)
        results = await asyncio.gather(sender, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.warning(f"Event forwarding stopped: {result}")
