"""
Kanban board endpoints.

``GET /api/board`` returns the five status columns. ``WS /api/board/gestures``
runs one drag state machine per connection; the client streams pointer or touch
events and receives the machine's state and gesture outcomes.

Client messages::

    {"type": "layout", "columns": {"wishlist": {"left": 0, "top": 0, "width": 240, "height": 900}, ...}}
    {"type": "pointer", "event": "drag_start", "applicationId": "..."}
    {"type": "pointer", "event": "drag_over", "x": 310, "y": 120}
    {"type": "pointer", "event": "drop", "x": 310, "y": 120}
    {"type": "pointer", "event": "drag_end"}
    {"type": "pointer", "event": "click", "applicationId": "..."}
    {"type": "touch", "event": "start", "applicationId": "...", "x": 20, "y": 40}
    {"type": "touch", "event": "move", "x": 300, "y": 45}
    {"type": "touch", "event": "end"}
    {"type": "touch", "event": "cancel"}

A ``layout`` message may be sent at any time (e.g. after a resize); each move
is hit-tested against the latest one.
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from .. import schemas
from ..config.settings import get_settings
from ..errors import TrackerError
from ..models.db.database import get_db
from ..services import application_tracker as application_service
from ..services.kanban_board import (
    BoardLayout,
    BoardStateMachine,
    Dragging,
    HoveringColumn,
    PointerDragAdapter,
    Rect,
    TouchDragAdapter,
    build_board,
)
from .auth import get_current_active_user, get_current_user_ws

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()


@router.get("", response_model=schemas.Board)
def read_board(
    db: Session = Depends(get_db),
    current_user: schemas.User = Depends(get_current_active_user)
):
    """The user's applications grouped into status columns, newest first."""
    return build_board(application_service.list_applications(db, user_id=current_user.id))


def _state_message(machine: BoardStateMachine, prevent_default: bool = False) -> Dict[str, Any]:
    state = machine.state
    message = {"type": "state", "state": "idle", "preventDefault": prevent_default}
    if isinstance(state, Dragging):
        message.update(state="dragging", applicationId=state.item.id, origin=state.origin.value)
    elif isinstance(state, HoveringColumn):
        message.update(
            state="hovering",
            applicationId=state.item.id,
            origin=state.origin.value,
            candidate=state.candidate.value,
        )
    return message


def _result_message(result: schemas.GestureResult) -> Dict[str, Any]:
    return {"type": "result", **jsonable_encoder(result)}


class GestureSession:
    """Per-connection glue between client messages and the board machine."""

    def __init__(self, db: Session, user_id: str, drag_threshold_px: float):
        self.db = db
        self.user_id = user_id
        self.layout = BoardLayout()
        self.machine = BoardStateMachine(update=self._update_status, layout=self.layout)
        self.pointer = PointerDragAdapter(self.machine)
        self.touch = TouchDragAdapter(self.machine, drag_threshold_px=drag_threshold_px)

    def _update_status(self, application_id: str, fields: dict) -> None:
        application_service.update_application(
            self.db,
            application_id=application_id,
            application_update=schemas.ApplicationUpdate(**fields),
            user_id=self.user_id,
        )

    def _item(self, message: Dict[str, Any]) -> schemas.JobApplication:
        application_id = message.get("applicationId")
        if not application_id:
            raise ValueError("applicationId is required")
        return application_service.get_application(self.db, application_id, self.user_id)

    @staticmethod
    def _point(message: Dict[str, Any]):
        try:
            return float(message["x"]), float(message["y"])
        except (KeyError, TypeError, ValueError):
            raise ValueError("x and y coordinates are required")

    def handle(self, message: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return self._dispatch(message)
        finally:
            # The socket outlives any one message; hand the connection back
            self.db.rollback()

    def _dispatch(self, message: Dict[str, Any]) -> Dict[str, Any]:
        kind = message.get("type")
        event = message.get("event")

        if kind == "layout":
            columns = message.get("columns") or {}
            try:
                self.layout.update({
                    name: Rect(**{edge: float(value) for edge, value in rect.items()})
                    for name, rect in columns.items()
                })
            except (AttributeError, TypeError, ValueError):
                raise ValueError("layout columns must map status names to left/top/width/height")
            return {"type": "layout", "columns": sorted(columns)}

        if kind == "pointer":
            if event == "drag_start":
                self.pointer.drag_start(self._item(message))
                return _state_message(self.machine)
            if event == "drag_over":
                accept = self.pointer.drag_over(*self._point(message))
                return _state_message(self.machine, prevent_default=accept)
            if event == "drop":
                if "x" in message and "y" in message:
                    return _result_message(self.pointer.drop(*self._point(message)))
                return _result_message(self.pointer.drop())
            if event == "drag_end":
                return _result_message(self.pointer.drag_end())
            if event == "click":
                return _result_message(self.pointer.click(self._item(message)))

        if kind == "touch":
            if event == "start":
                self.touch.touch_start(self._item(message), *self._point(message))
                return _state_message(self.machine)
            if event == "move":
                suppress_scroll = self.touch.touch_move(*self._point(message))
                return _state_message(self.machine, prevent_default=suppress_scroll)
            if event == "end":
                return _result_message(self.touch.touch_end())
            if event == "cancel":
                return _result_message(self.touch.touch_cancel())

        raise ValueError(f"Unsupported message: type={kind!r} event={event!r}")


@router.websocket("/gestures")
async def board_gestures(
    websocket: WebSocket,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_ws),
):
    await websocket.accept()
    session = GestureSession(db, current_user.id, settings.board_drag_threshold_px)
    logger.info("Board gesture session opened for user %s", current_user.id)
    try:
        while True:
            try:
                message = await websocket.receive_json()
                if not isinstance(message, dict):
                    raise ValueError("Messages must be JSON objects")
                reply = await run_in_threadpool(session.handle, message)
            except TrackerError as e:
                reply = {"type": "error", "detail": e.message}
            except ValueError as e:
                reply = {"type": "error", "detail": str(e)}
            await websocket.send_json(reply)
    except WebSocketDisconnect:
        session.machine.cancel()
        logger.info("Board gesture session closed for user %s", current_user.id)
