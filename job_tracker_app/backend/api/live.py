"""
Live dashboard feed.

``WS /api/applications/live?token=...&view=list|board|analytics`` pushes the
selected view each time the user's applications change, starting with the
current state. The list view accepts the same ``q``, ``status`` and
``job_type`` filters as ``GET /api/applications/``.
"""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, WebSocketException, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from .. import schemas
from ..models.db.database import get_db
from ..services import application_tracker as application_service
from ..services.analytics import compute_analytics
from ..services.application_filter import filter_applications
from ..services.kanban_board import build_board
from .auth import get_current_user_ws

logger = logging.getLogger(__name__)
router = APIRouter()

VIEWS = ("list", "board", "analytics")


def render_view(view: str, applications, search_text="", status_filter=schemas.ALL_FILTER, job_type_filter=schemas.ALL_FILTER):
    if view == "board":
        payload = build_board(applications)
    elif view == "analytics":
        payload = compute_analytics(applications)
    else:
        payload = filter_applications(applications, search_text, status_filter, job_type_filter)
    return {"type": "snapshot", "view": view, "data": jsonable_encoder(payload)}


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    # The feed is push-only; anything the client sends is ignored
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


def _filter_or_reject(value: Optional[str], allowed) -> str:
    if not value or value == schemas.ALL_FILTER:
        return schemas.ALL_FILTER
    if value not in {member.value for member in allowed}:
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason=f"Unknown filter value: {value}")
    return value


@router.websocket("/live")
async def live_applications(
    websocket: WebSocket,
    view: str = Query("list"),
    q: str = Query(""),
    status_filter: Optional[str] = Query(schemas.ALL_FILTER, alias="status"),
    job_type: Optional[str] = Query(schemas.ALL_FILTER),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_ws),
):
    if view not in VIEWS:
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason=f"Unknown view: {view}")
    status_value = _filter_or_reject(status_filter, schemas.ApplicationStatus)
    job_type_value = _filter_or_reject(job_type, schemas.JobType)

    async def push_snapshots():
        async with application_service.subscribe(db, current_user.id) as snapshots:
            async for applications in snapshots:
                await websocket.send_json(
                    render_view(view, applications, q, status_value, job_type_value)
                )

    await websocket.accept()
    logger.info("Live %s view opened for user %s", view, current_user.id)

    sender = asyncio.create_task(push_snapshots())
    watcher = asyncio.create_task(_wait_for_disconnect(websocket))
    done, pending = await asyncio.wait({sender, watcher}, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()
    # Cancelling the sender leaves its subscription context, which unregisters it
    await asyncio.gather(*pending, return_exceptions=True)
    logger.info("Live %s view closed for user %s", view, current_user.id)

    for task in done:
        error = task.exception()
        if error is not None and not isinstance(error, WebSocketDisconnect):
            raise error
