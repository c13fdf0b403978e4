"""
FastAPI server for HeavenlyHub voice sessions.

Issues LiveKit room tokens and tracks voice sessions for the mobile app,
and serves persona text chat.

Endpoints:
    GET  /                              - Service status
    POST /api/voice/start               - Start a voice session, returns roomName
    GET  /api/voice/token               - Issue a room token (?roomName&participantId)
    POST /api/voice/end                 - End a voice session (idempotent)
    POST /api/voice/clear-memory        - Reset an app session's history and chat memory
    GET  /api/voice/test-connection     - Check LiveKit configuration
    GET  /api/voice/sessions            - List registered sessions
    POST /api/chat/{persona}            - Text chat with a persona

Errors are returned as ``{"success": false, "error": "..."}``.
"""

import asyncio
import uuid as _uuid
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.middleware.base import BaseHTTPMiddleware

from src.chat.service import PersonaChatService
from src.config.persona_loader import PersonaLoader
from src.config.settings import Settings
from src.llm.openai_client import OpenAICompatibleClient
from src.logging_config import setup_logging
from src.session.exceptions import ConfigurationError, InvalidArgument, VoiceSessionError
from src.session.store import InMemorySessionStore, SessionStore
from src.voice.rooms import LiveKitRoomAdmin
from src.voice.service import VoiceSessionService

SERVICE_NAME = "HeavenlyHub Voice API"
VERSION = "1.0"
SWEEP_INTERVAL_SECONDS = 300

logger = structlog.get_logger("server")
livekit_log = structlog.get_logger("livekit")
session_log = structlog.get_logger("session")


# ---------------------------------------------------------------------------
# Pydantic request models
# ---------------------------------------------------------------------------


class StartSessionRequest(BaseModel):
    """Request body for starting a voice session."""
    model_config = ConfigDict(populate_by_name=True)

    persona: Optional[str] = Field(default=None, max_length=32)
    participant_id: Optional[str] = Field(default=None, alias="participantId", max_length=128)
    session_id: Optional[str] = Field(default=None, alias="sessionId", max_length=128)


class EndSessionRequest(BaseModel):
    """Request body for ending a voice session."""
    model_config = ConfigDict(populate_by_name=True)

    room_name: Optional[str] = Field(default=None, alias="roomName", max_length=256)
    session_id: Optional[str] = Field(default=None, alias="sessionId", max_length=128)


class ClearMemoryRequest(BaseModel):
    """Request body for clearing an app session's memory."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId", max_length=128)


class ChatRequest(BaseModel):
    """Request body for persona chat."""
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    session_id: Optional[str] = Field(default=None, alias="sessionId", max_length=128)


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(_uuid.uuid4())[:12]
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id
        return response


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Log method, path and status of every request (never bodies)."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
        )
        return response


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_store(settings: Settings) -> SessionStore:
    """Session store selected by SESSION_STORE."""
    if settings.session_store == "redis":
        from src.storage.redis import RedisSessionStore
        return RedisSessionStore.from_url(settings.redis_url, session_ttl=settings.session_ttl_seconds)
    return InMemorySessionStore()


def build_chat(settings: Settings) -> Optional[PersonaChatService]:
    """Persona chat, or None when no OpenAI key is configured."""
    if not settings.openai_api_key:
        return None
    llm = OpenAICompatibleClient(
        api_key=settings.openai_api_key,
        endpoint=settings.openai_base_url,
        model=settings.openai_model,
    )
    return PersonaChatService(PersonaLoader(), llm)


def sweep_interval(settings: Settings) -> float:
    """Seconds between sweeps; shorter when sessions expire quickly."""
    if settings.session_max_age_seconds:
        return min(SWEEP_INTERVAL_SECONDS, settings.session_max_age_seconds)
    return SWEEP_INTERVAL_SECONDS


async def sweep_loop(
    voice: VoiceSessionService,
    chat: Optional[PersonaChatService],
    interval: float,
) -> None:
    """
    Periodically evict stale sessions, idle app-session activity and idle
    chat memory. A failed sweep is logged and retried on the next tick.
    """
    memory_max_age = voice.settings.memory_max_age_seconds
    while True:
        await asyncio.sleep(interval)
        try:
            voice.evict_stale()
            if chat is not None and memory_max_age:
                chat.evict_idle(memory_max_age)
        except Exception as exc:
            logger.error(
                "session_sweep_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )


def get_voice(request: Request) -> VoiceSessionService:
    return request.app.state.voice


def get_chat(request: Request) -> PersonaChatService:
    chat = request.app.state.chat
    if chat is None:
        raise ConfigurationError("Chat is not configured (set OPENAI_API_KEY)", missing=["OPENAI_API_KEY"])
    return chat


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, **extra},
    )


def create_app(
    settings: Optional[Settings] = None,
    voice: Optional[VoiceSessionService] = None,
    chat: Optional[PersonaChatService] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Startup settings; read from the environment when omitted
        voice: Pre-built session service (tests inject one with its own store)
        chat: Pre-built persona chat service

    Raises:
        ConfigurationError: Malformed settings, or STRICT_CONFIG with
            missing LiveKit credentials
    """
    if settings is None:
        settings = Settings.from_env()
        setup_logging("server", level=settings.log_level, logs_dir=settings.logs_dir)
        if chat is None:
            chat = build_chat(settings)

    if voice is None:
        room_admin = None
        if settings.delete_room_on_end and settings.livekit is not None:
            room_admin = LiveKitRoomAdmin(settings.livekit)
        voice = VoiceSessionService(settings, build_store(settings), room_admin=room_admin)

    @asynccontextmanager
    async def _lifespan(application: FastAPI):
        if settings.livekit is None:
            logger.error("missing_required_env_vars", vars=settings.livekit_missing)
            logger.warning("Server will start but token issuance will fail")

        sweep_task = asyncio.create_task(
            sweep_loop(voice, application.state.chat, sweep_interval(settings))
        )

        yield

        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass
        voice.store.close()
        if application.state.chat is not None:
            await application.state.chat.llm.aclose()
        logger.info("server_shutdown_complete")

    app = FastAPI(title=SERVICE_NAME, version=VERSION, lifespan=_lifespan)
    app.state.settings = settings
    app.state.voice = voice
    app.state.chat = chat

    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # -----------------------------------------------------------------------
    # Error mapping
    # -----------------------------------------------------------------------

    @app.exception_handler(VoiceSessionError)
    async def _voice_error(request: Request, exc: VoiceSessionError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "request_failed",
            path=request.url.path,
            error=exc.message,
            error_type=type(exc).__name__,
        )
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in err["loc"][1:]) or "body" for err in exc.errors()]
        logger.warning("request_invalid", path=request.url.path, fields=fields)
        return _error(400, f"Invalid request: {', '.join(fields)}")

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------

    @app.get("/")
    async def index():
        return {"status": "ok", "service": SERVICE_NAME, "version": VERSION}

    @app.post("/api/voice/start")
    async def start_session(req: StartSessionRequest, svc: VoiceSessionService = Depends(get_voice)):
        """Start a voice session and return the generated room name."""
        session = svc.start_session(
            req.persona,
            participant_id=req.participant_id,
            client_session_id=req.session_id,
        )
        return {
            "success": True,
            "roomName": session.room_name,
            "persona": session.persona.value,
            "message": "Voice session started",
        }

    @app.get("/api/voice/token")
    async def get_token(
        room_name: Optional[str] = Query(default=None, alias="roomName"),
        participant_id: Optional[str] = Query(default=None, alias="participantId"),
        participant_name: Optional[str] = Query(default=None, alias="participantName"),
        persona: Optional[str] = Query(default=None),
        svc: VoiceSessionService = Depends(get_voice),
    ):
        """Issue a LiveKit token for a room."""
        identity = participant_id or participant_name
        credential, url = svc.issue_token(room_name, identity, persona=persona)
        return {
            "success": True,
            "token": credential.token,
            "url": url,
            "roomName": credential.room,
            "participantId": credential.issued_to,
            "expiresAt": credential.expires_at.isoformat(),
        }

    @app.post("/api/voice/end")
    async def end_session(req: Optional[EndSessionRequest] = None, svc: VoiceSessionService = Depends(get_voice)):
        """End a voice session. Never fails for unknown rooms."""
        room_name = req.room_name if req else None
        session_id = req.session_id if req else None
        existed = await svc.end_session(room_name, client_session_id=session_id)
        return {"ok": True, "success": True, "ended": existed}

    @app.post("/api/voice/clear-memory")
    async def clear_memory(
        request: Request,
        req: ClearMemoryRequest,
        svc: VoiceSessionService = Depends(get_voice),
    ):
        """Reset interaction history and persona chat memory of an app session."""
        if not req.session_id:
            raise InvalidArgument("Session ID is required")
        reset = svc.reset_activity(req.session_id)
        chat_svc = request.app.state.chat
        conversations = chat_svc.clear_memory(req.session_id) if chat_svc is not None else 0
        session_log.info(
            "memory_cleared",
            session_id=req.session_id,
            activity_reset=reset,
            conversations=conversations,
        )
        return {
            "success": True,
            "message": f"Memory cleared for session: {req.session_id}",
            "memoriesCleared": conversations + (1 if reset else 0),
        }

    @app.get("/api/voice/test-connection")
    async def test_connection(request: Request, svc: VoiceSessionService = Depends(get_voice)):
        """Report LiveKit configuration presence; 500 if incomplete."""
        try:
            config = svc.test_connection()
        except ConfigurationError as exc:
            livekit_log.error("livekit_config_incomplete", missing=exc.missing)
            return _error(
                500,
                "LiveKit configuration incomplete",
                config=request.app.state.settings.config_flags(),
            )
        return {"success": True, "message": "LiveKit configuration is valid", "config": config}

    @app.get("/api/voice/sessions")
    async def list_sessions(svc: VoiceSessionService = Depends(get_voice)):
        sessions = [
            {
                "roomName": s.room_name,
                "persona": s.persona.value,
                "participantId": s.participant_identity,
                "createdAt": s.created_at.isoformat(),
            }
            for s in svc.list_sessions()
        ]
        return {"sessions": sessions, "total": len(sessions)}

    @app.post("/api/chat/{persona}")
    async def persona_chat(persona: str, req: ChatRequest, chat_svc: PersonaChatService = Depends(get_chat)):
        """Text chat with a persona."""
        answer = await chat_svc.reply(persona, req.message, session_id=req.session_id)
        return {"response": answer, "persona": persona}

    return app


app = create_app()
