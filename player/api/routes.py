from __future__ import annotations

import json
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, WebSocket, WebSocketDisconnect, status

from player.api.deps import get_player_services, get_registry
from player.api.models import (
    AnswerResponse,
    CreateSessionRequest,
    PlayerMode,
    SessionPhase,
    SessionView,
    SubmitAnswerRequest,
    TransitionPayload,
    WidgetHtmlResponse,
)
from player.errors import PreconditionError
from player.registry import SessionRegistry
from player.services import PlayerServices
from player.session import PlayerSession
from player.websocket_hub import hub

router = APIRouter()


def _session_view(handle: UUID, session: PlayerSession) -> SessionView:
    state = session.snapshot()
    return SessionView(
        handle=str(handle),
        exploration_id=state.exploration_id,
        title=session.exploration_title if session.has_exploration else None,
        mode=state.mode,
        phase=state.phase,
        current_state_name=state.current_state_name,
        state_history=state.state_history,
        parameters=state.parameters,
        answer_pending=state.answer_pending,
        session_id=state.session_id,
        exploration_version=state.exploration_version,
        is_logged_in=state.is_logged_in,
        can_edit=state.can_edit,
        content_html=session.current_content_html,
        warnings=session.warnings.messages,
    )


async def _require_session(registry: SessionRegistry, handle: UUID) -> PlayerSession:
    session = await registry.get(handle)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return session


@router.websocket("/ws/sessions/{handle}")
async def session_updates_ws(websocket: WebSocket, handle: UUID) -> None:
    key = str(handle)
    await hub.connect(key, websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(key, websocket)
    except Exception:
        await hub.disconnect(key, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/sessions", response_model=SessionView, status_code=status.HTTP_201_CREATED)
async def create_session_route(
    payload: CreateSessionRequest,
    services: PlayerServices = Depends(get_player_services),
    registry: SessionRegistry = Depends(get_registry),
) -> SessionView:
    try:
        session = PlayerSession(
            exploration_id=payload.exploration_id,
            mode=payload.mode,
            version=payload.version,
            loader=services.loader,
            classifier=services.classifier,
            events=services.events,
        )
        if payload.mode == PlayerMode.editor_preview:
            if payload.exploration is None:
                raise PreconditionError("An exploration is required in preview mode.")
            session.populate_exploration(payload.exploration)
        await session.init()
    except PreconditionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    handle = await registry.add(session)
    return _session_view(handle, session)


@router.get("/sessions/{handle}", response_model=SessionView)
async def get_session_route(handle: UUID, registry: SessionRegistry = Depends(get_registry)) -> SessionView:
    session = await _require_session(registry, handle)
    return _session_view(handle, session)


@router.post("/sessions/{handle}/init", response_model=SessionView)
async def retry_init_route(handle: UUID, registry: SessionRegistry = Depends(get_registry)) -> SessionView:
    session = await _require_session(registry, handle)
    try:
        await session.init()
    except PreconditionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return _session_view(handle, session)


@router.post("/sessions/{handle}/answers", response_model=AnswerResponse)
async def submit_answer_route(
    handle: UUID,
    payload: SubmitAnswerRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> AnswerResponse:
    session = await _require_session(registry, handle)
    if session.phase != SessionPhase.ready:
        return AnswerResponse(dispatched=False, session=_session_view(handle, session))

    view = await session.submit_answer(payload.answer, payload.handler)

    transition = None
    if view is not None:
        transition = TransitionPayload(
            state_name=view.state_name,
            is_sticky=view.is_sticky,
            content_html=view.content_html,
            response_html=view.response_html,
            feedback_html=view.feedback_html,
        )
        if not session.is_in_preview_mode():
            await hub.broadcast(
                str(handle),
                {
                    "type": "state_transition",
                    "old_state_name": view.old_state_name,
                    "json_answer": json.dumps(payload.answer),
                    "new_state_name": view.state_name,
                },
            )

    return AnswerResponse(dispatched=True, transition=transition, session=_session_view(handle, session))


@router.post("/sessions/{handle}/leave", status_code=status.HTTP_202_ACCEPTED)
async def maybe_leave_route(handle: UUID, registry: SessionRegistry = Depends(get_registry)) -> dict[str, object]:
    session = await _require_session(registry, handle)
    try:
        session.register_maybe_leave()
    except PreconditionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return {"handle": str(handle), "recorded": not session.is_in_preview_mode()}


@router.get("/sessions/{handle}/states/{state_name}/widget", response_model=WidgetHtmlResponse)
async def widget_html_route(
    handle: UUID,
    state_name: str,
    registry: SessionRegistry = Depends(get_registry),
) -> WidgetHtmlResponse:
    session = await _require_session(registry, handle)
    try:
        html = session.get_interactive_widget_html(state_name)
    except PreconditionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return WidgetHtmlResponse(state_name=state_name, html=html)


@router.delete("/sessions/{handle}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session_route(handle: UUID, registry: SessionRegistry = Depends(get_registry)) -> Response:
    session = await registry.remove(handle)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    await hub.close_session(str(handle))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
