"""
FastAPI service for the productivity agent.

This service exposes the action dispatcher and reminder scheduler over HTTP:
free-text commands, the state snapshot, a server-sent event stream of
reminder changes, and standalone email drafting.
"""
from __future__ import annotations

import logging
import typing as t
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from orchestrator.commands import draft_email_preview, handle_command
from orchestrator.state import AgentState, create_agent_state
from productivity_server.config import Settings, get_settings
from productivity_server.errors import ActionFailed, AgentError
from productivity_server.logging_setup import setup_logging
from services.productivity_service.sse import event_stream
from services.shared.models import (
    CommandRequest,
    CommandResponse,
    DraftEmailRequest,
    DraftEmailResponse,
    ErrorResponse,
    FailedAction,
    StateSnapshotModel,
    action_result_model,
    entity_model,
    snapshot_model,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_agent(request: Request) -> AgentState:
    """The AgentState built at startup."""
    return request.app.state.agent


def _error_response(error: AgentError) -> JSONResponse:
    """Render an AgentError as a 400 JSON body."""
    if isinstance(error, ActionFailed):
        body = ErrorResponse(
            error=str(error),
            error_kind=error.cause_kind,
            failed_action=FailedAction(index=error.index, kind=error.action),
        )
    else:
        body = ErrorResponse(error=str(error), error_kind=error.kind)
    return JSONResponse(status_code=400, content=body.model_dump(mode="json", by_alias=True, exclude_none=True))


@router.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "service": "productivity-agent"}


@router.get("/state", response_model=StateSnapshotModel)
async def get_state(agent: AgentState = Depends(get_agent)) -> StateSnapshotModel:
    """
    Return the full store contents.

    Clients call this on (re)connect; the event stream never replays history.
    """
    return snapshot_model(agent.store.snapshot())


@router.post("/agent", response_model=CommandResponse, responses={400: {"model": ErrorResponse}})
async def run_command(request: CommandRequest, agent: AgentState = Depends(get_agent)) -> t.Any:
    """
    Interpret a free-text command and apply the resulting actions.

    Actions applied before a failing one stay applied; the error names the
    failing action.
    """
    try:
        outcome = await handle_command(agent, request.text)
    except AgentError as e:
        logger.warning("Agent error: %s", e)
        return _error_response(e)

    return CommandResponse(
        actions=[action_result_model(result.kind, result.item) for result in outcome.results],
        state=snapshot_model(outcome.state),
    )


@router.get("/events")
async def events(agent: AgentState = Depends(get_agent)) -> StreamingResponse:
    """
    Open a server-sent event stream of reminder changes.

    The first frame is a reconnect-delay hint.
    """
    return StreamingResponse(
        event_stream(agent.broadcaster, agent.settings.sse_keepalive_seconds),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"},
    )


@router.post("/draft-email", response_model=DraftEmailResponse, responses={400: {"model": ErrorResponse}})
async def draft_email(request: DraftEmailRequest, agent: AgentState = Depends(get_agent)) -> t.Any:
    """
    Draft an email from instructions without storing it.
    """
    try:
        draft = await draft_email_preview(agent, request.instructions)
    except AgentError as e:
        logger.warning("Email draft error: %s", e)
        return _error_response(e)

    return DraftEmailResponse(draft=entity_model(draft))


def create_app(
        state_factory: t.Optional[t.Callable[[], AgentState]] = None,
        settings: t.Optional[Settings] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        state_factory: Builds the AgentState on startup; defaults to
            :func:`create_agent_state` with the given settings.
        settings: Service settings; defaults to the environment.
    """
    settings = settings or get_settings()
    factory = state_factory or (lambda: create_agent_state(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the agent state on startup and tear it down on shutdown."""
        app.state.agent = factory()
        logger.info("Productivity agent ready")
        try:
            yield
        finally:
            app.state.agent.close()

    app = FastAPI(
        title="Productivity Agent",
        description="Turns free-text commands into tasks, notes, reminders and email drafts",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()


def main() -> None:
    """Run the service with uvicorn."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
