"""Coachgate FastAPI server."""

from __future__ import annotations

import logging
import sqlite3
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import Body, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from contracts.api import ChatRequest, ChatResponse, ToolListResponse
from contracts.config import GateConfig

from coachgate.coach_service import CoachService
from coachgate.config_loader import config_path_from_env, load_config
from coachgate.logging_config import setup_logging
from coachgate.model_adapters import create_adapter
from coachgate.store import SqliteStore

logger = logging.getLogger(__name__)

# ── Module-level state (set during lifespan) ─────────────────────────

_service: CoachService | None = None
_config: GateConfig | None = None
_start_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialise all components on startup."""
    global _service, _config, _start_time  # noqa: PLW0603

    setup_logging()
    _start_time = time.time()

    config_path = config_path_from_env()
    _config = load_config(config_path)

    store = SqliteStore(_config.storage.sqlite_path)
    store.initialise()

    _service = CoachService(store, create_adapter(_config.models), _config)
    logger.info(
        "Coachgate ready: config=%s backend=%s model=%s rollout=%d%%",
        config_path,
        _config.models.backend.value,
        _config.models.default,
        _config.rollout.percent,
    )

    yield

    _service = None


app = FastAPI(title="Coachgate", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_methods=["*"],
    allow_headers=["*"],
)


def _require_service() -> CoachService:
    if _service is None:
        raise HTTPException(status_code=503, detail="Service not initialised")
    return _service


def _require_user(x_user_id: str | None) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


# ── Endpoints ────────────────────────────────────────────────────────


@app.get("/v1/coach/health")
async def health() -> dict[str, Any]:
    """Extended health-check endpoint."""
    result: dict[str, Any] = {"status": "ok", "version": "0.1.0"}
    result["uptime_seconds"] = round(time.time() - _start_time, 1) if _start_time else 0

    if _config:
        result["config"] = {
            "app": _config.app.name,
            "app_version": _config.app.version,
            "model_backend": _config.models.backend.value,
            "default_model": _config.models.default,
            "max_steps": _config.agent.max_steps,
            "rollout_percent": _config.rollout.percent,
        }

    store_status: dict[str, Any] = {"reachable": False}
    if _service is not None:
        try:
            await _service.store.fetch_one("SELECT 1 AS ok")
            store_status["reachable"] = True
        except sqlite3.Error as exc:
            store_status["error"] = str(exc)
    result["store"] = store_status

    return result


@app.post("/v1/coach/chat", response_model=None)
async def chat(
    request: ChatRequest, x_user_id: str | None = Header(None)
) -> ChatResponse | StreamingResponse:
    """Run one coach turn for the calling user.

    With ``stream: true`` the turn is sent as server-sent events: text
    deltas, then one event carrying the final response.
    """
    service = _require_service()
    user_id = _require_user(x_user_id)
    if not request.messages:
        raise HTTPException(status_code=422, detail="messages must not be empty")

    if not request.stream:
        return await service.process_message(user_id, request.messages, model=request.model)

    async def event_generator():
        async for event in service.stream_message(user_id, request.messages, model=request.model):
            data = event.model_dump_json(exclude_none=True)
            yield f"data: {data}\n\n"

    return StreamingResponse(event_generator(), media_type="text/event-stream")


@app.get("/v1/coach/tools")
async def list_tools(x_user_id: str | None = Header(None)) -> ToolListResponse:
    """The calling user's tool manifest."""
    service = _require_service()
    user_id = _require_user(x_user_id)
    entries = await service.manifest_for(user_id)
    return ToolListResponse(tools=[e.model_dump(mode="json", by_alias=True) for e in entries])


@app.post("/v1/coach/tools/{tool_name}")
async def call_tool(
    tool_name: str,
    arguments: dict[str, Any] | None = Body(None),
    x_user_id: str | None = Header(None),
) -> dict[str, Any]:
    """Dispatch one tool through the permission gate.

    Always 200: failures are reported inside the envelope.
    """
    service = _require_service()
    user_id = _require_user(x_user_id)
    result = await service.dispatch_for(user_id, tool_name, arguments)
    return result.model_dump(mode="json")
