from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect

from voicehand_backend.api.deps import get_session_service
from voicehand_backend.replay.models import Cursor, PlaybackState
from voicehand_backend.replay.playback import PlaybackCommand
from voicehand_backend.sessions.models import (
    CreateSessionRequest,
    CreateSessionResponse,
    HandConfig,
    HistoryResponse,
    LoadDocumentRequest,
    ResetSessionResponse,
    SessionView,
    SnapshotResponse,
    SocketMessage,
    SubmitFragmentRequest,
    SubmitFragmentResponse,
)
from voicehand_backend.sessions.service import SessionRejected, SessionService


router = APIRouter(prefix="/api")

REJECTION_STATUS = {
    "SESSION_BUSY": 409,
    "FRAGMENT_DROPPED": 409,
    "INTERPRETER_UNAVAILABLE": 503,
}


def _not_found(session_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": "SESSION_NOT_FOUND", "message": f"Session {session_id} does not exist."},
    )


def _rejected(exc: SessionRejected) -> HTTPException:
    return HTTPException(
        status_code=REJECTION_STATUS.get(exc.code, 400),
        detail={"code": exc.code, "message": exc.message},
    )


@router.post("/sessions", response_model=CreateSessionResponse)
async def create_session(
    request: CreateSessionRequest | None = None,
    service: SessionService = Depends(get_session_service),
) -> CreateSessionResponse:
    config = request.config if request is not None else HandConfig()
    try:
        session_id = await service.create_session(config)
    except SessionRejected as exc:
        raise _rejected(exc) from exc
    view = await service.get_view(session_id)
    return CreateSessionResponse(session_id=session_id, view=view)


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(
    session_id: str,
    service: SessionService = Depends(get_session_service),
) -> None:
    try:
        await service.delete_session(session_id)
    except KeyError as exc:
        raise _not_found(session_id) from exc


@router.post("/sessions/{session_id}/fragments", response_model=SubmitFragmentResponse)
async def submit_fragment(
    session_id: str,
    request: SubmitFragmentRequest,
    wait: bool = False,
    service: SessionService = Depends(get_session_service),
) -> SubmitFragmentResponse:
    try:
        return await service.submit_fragment(session_id, request.text, wait=wait)
    except KeyError as exc:
        raise _not_found(session_id) from exc
    except SessionRejected as exc:
        raise _rejected(exc) from exc


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_view(
    session_id: str,
    service: SessionService = Depends(get_session_service),
) -> SessionView:
    try:
        return await service.get_view(session_id)
    except KeyError as exc:
        raise _not_found(session_id) from exc


@router.get("/sessions/{session_id}/history", response_model=HistoryResponse)
async def get_history(
    session_id: str,
    service: SessionService = Depends(get_session_service),
) -> HistoryResponse:
    try:
        return await service.get_history(session_id)
    except KeyError as exc:
        raise _not_found(session_id) from exc


@router.get("/sessions/{session_id}/document")
async def get_document(
    session_id: str,
    service: SessionService = Depends(get_session_service),
) -> dict[str, Any]:
    try:
        document = await service.get_document(session_id)
    except KeyError as exc:
        raise _not_found(session_id) from exc
    return document.to_ohh()


@router.put("/sessions/{session_id}/document", response_model=SessionView)
async def load_document(
    session_id: str,
    request: LoadDocumentRequest,
    service: SessionService = Depends(get_session_service),
) -> SessionView:
    try:
        return await service.load_document(session_id, request.document)
    except KeyError as exc:
        raise _not_found(session_id) from exc
    except SessionRejected as exc:
        raise _rejected(exc) from exc


@router.get("/sessions/{session_id}/snapshot", response_model=SnapshotResponse)
async def get_snapshot(
    session_id: str,
    round_idx: int | None = None,
    action_idx: int = -1,
    service: SessionService = Depends(get_session_service),
) -> SnapshotResponse:
    cursor = None if round_idx is None else Cursor(round_idx=round_idx, action_idx=action_idx)
    try:
        snapshot = await service.get_snapshot(session_id, cursor)
    except KeyError as exc:
        raise _not_found(session_id) from exc
    return SnapshotResponse(session_id=session_id, snapshot=snapshot)


@router.post("/sessions/{session_id}/playback/{command}", response_model=PlaybackState)
async def playback(
    session_id: str,
    command: PlaybackCommand,
    service: SessionService = Depends(get_session_service),
) -> PlaybackState:
    try:
        return await service.playback(session_id, command)
    except KeyError as exc:
        raise _not_found(session_id) from exc


@router.post("/sessions/{session_id}/reset", response_model=ResetSessionResponse)
async def reset_session(
    session_id: str,
    config: HandConfig | None = None,
    service: SessionService = Depends(get_session_service),
) -> ResetSessionResponse:
    try:
        dropped, view = await service.reset_session(session_id, config)
    except KeyError as exc:
        raise _not_found(session_id) from exc
    return ResetSessionResponse(dropped_fragments=dropped, view=view)


@router.websocket("/ws/sessions/{session_id}")
async def session_socket(
    websocket: WebSocket,
    session_id: str,
    service: SessionService = Depends(get_session_service),
) -> None:
    await websocket.accept()
    try:
        queue = await service.subscribe(session_id)
    except KeyError:
        await websocket.close(code=1008)
        return

    try:
        view = await service.get_view(session_id)
        greeting = SocketMessage(type="VIEW_STATE", payload=view.model_dump(mode="json", by_alias=True))
        await websocket.send_json(greeting.model_dump())
        while True:
            event = await queue.get()
            await websocket.send_json(SocketMessage.from_event(event).model_dump())
    except WebSocketDisconnect:
        pass
    finally:
        await service.unsubscribe(session_id, queue)
