"""
Kanban board: column projection and the drag-and-drop state machine.

The machine has three states::

    Idle --start--> Dragging --move over a column--> HoveringColumn
                        ^                              |   ^
                        |                              |   | move (sticky when
                        +------------- start ----------+   |  over no column)
    any --end/cancel--> Idle

``end`` is the only transition that writes: it issues a single status update
when the hovered column differs from the card's status. Mouse and touch
gestures drive the same machine through ``PointerDragAdapter`` and
``TouchDragAdapter``.
"""
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Mapping, Optional, Union

from .. import schemas

logger = logging.getLogger(__name__)

BOARD_COLUMNS = tuple(schemas.ApplicationStatus)

StatusUpdate = Callable[[str, dict], object]


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    width: float
    height: float

    def contains(self, point: Point) -> bool:
        return (
            self.left <= point.x < self.left + self.width
            and self.top <= point.y < self.top + self.height
        )


def column_at(rects: Mapping[schemas.ApplicationStatus, Rect], point: Point) -> Optional[schemas.ApplicationStatus]:
    """Column whose rectangle contains ``point``; board order breaks overlaps."""
    for column in BOARD_COLUMNS:
        rect = rects.get(column)
        if rect is not None and rect.contains(point):
            return column
    return None


class BoardLayout:
    """The most recent on-screen column rectangles reported by the client."""

    def __init__(self, rects: Optional[Mapping[str, Rect]] = None):
        self._rects: Dict[schemas.ApplicationStatus, Rect] = {}
        if rects:
            self.update(rects)

    def update(self, rects: Mapping[str, Rect]) -> None:
        self._rects = {schemas.ApplicationStatus(column): rect for column, rect in rects.items()}

    def __call__(self) -> Dict[schemas.ApplicationStatus, Rect]:
        return dict(self._rects)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    item: schemas.JobApplication
    origin: schemas.ApplicationStatus


@dataclass(frozen=True)
class HoveringColumn:
    item: schemas.JobApplication
    origin: schemas.ApplicationStatus
    candidate: schemas.ApplicationStatus


BoardState = Union[Idle, Dragging, HoveringColumn]
IDLE = Idle()


class GestureOutcome(str, Enum):
    MOVED = "moved"              # status update issued
    UNCHANGED = "unchanged"      # released over the card's own column, or over none
    OPEN_DETAIL = "open_detail"  # a tap or click: navigate to the detail view
    CANCELLED = "cancelled"
    IGNORED = "ignored"          # end/cancel with no gesture in progress


class BoardStateMachine:
    """
    Tracks the one card being moved and commits its new status on release.

    Args:
        update: called as ``update(application_id, {"status": value})`` on commit
        layout: returns the current column rectangles; called on every move
    """

    def __init__(self, update: StatusUpdate, layout: Callable[[], Mapping[schemas.ApplicationStatus, Rect]]):
        self._update = update
        self._layout = layout
        self._state: BoardState = IDLE

    @property
    def state(self) -> BoardState:
        return self._state

    @property
    def is_active(self) -> bool:
        return not isinstance(self._state, Idle)

    def start(self, item: schemas.JobApplication) -> BoardState:
        if self.is_active:
            logger.debug("Abandoning drag of %s for %s", self._state.item.id, item.id)
        self._state = Dragging(item=item, origin=item.status)
        logger.debug("Drag started: %s from %s", item.id, item.status.value)
        return self._state

    def move(self, point: Point) -> BoardState:
        if not self.is_active:
            return self._state
        column = column_at(self._layout(), point)
        if column is None:
            # Sticky: keep the last candidate (or keep Dragging if none yet)
            return self._state
        state = self._state
        if not isinstance(state, HoveringColumn) or state.candidate != column:
            self._state = HoveringColumn(item=state.item, origin=state.origin, candidate=column)
            logger.debug("Drag of %s over %s", state.item.id, column.value)
        return self._state

    def end(self) -> schemas.GestureResult:
        state = self._state
        if isinstance(state, Idle):
            return schemas.GestureResult(outcome=GestureOutcome.IGNORED.value)

        try:
            if isinstance(state, HoveringColumn) and state.candidate != state.item.status:
                self._update(state.item.id, {"status": state.candidate.value})
                logger.info("Moved %s from %s to %s", state.item.id, state.item.status.value, state.candidate.value)
                return schemas.GestureResult(
                    outcome=GestureOutcome.MOVED.value,
                    application_id=state.item.id,
                    status=state.candidate,
                )
            return schemas.GestureResult(
                outcome=GestureOutcome.UNCHANGED.value,
                application_id=state.item.id,
                status=state.item.status,
            )
        finally:
            self._state = IDLE

    def cancel(self) -> schemas.GestureResult:
        state = self._state
        self._state = IDLE
        if isinstance(state, Idle):
            return schemas.GestureResult(outcome=GestureOutcome.IGNORED.value)
        logger.debug("Drag of %s cancelled", state.item.id)
        return schemas.GestureResult(outcome=GestureOutcome.CANCELLED.value, application_id=state.item.id)


def _open_detail(item: schemas.JobApplication) -> schemas.GestureResult:
    return schemas.GestureResult(
        outcome=GestureOutcome.OPEN_DETAIL.value, application_id=item.id, status=item.status
    )


class PointerDragAdapter:
    """Native mouse drag-and-drop events."""

    def __init__(self, machine: BoardStateMachine):
        self.machine = machine

    def drag_start(self, item: schemas.JobApplication) -> BoardState:
        return self.machine.start(item)

    def drag_over(self, x: float, y: float) -> bool:
        """Returns True: the column must accept the drag (preventDefault)."""
        self.machine.move(Point(x, y))
        return self.machine.is_active

    def drop(self, x: Optional[float] = None, y: Optional[float] = None) -> schemas.GestureResult:
        if x is not None and y is not None:
            self.machine.move(Point(x, y))
        return self.machine.end()

    def drag_end(self) -> schemas.GestureResult:
        # dragend follows drop; reaching here with a live drag means no drop happened
        return self.machine.cancel()

    def click(self, item: schemas.JobApplication) -> schemas.GestureResult:
        return _open_detail(item)


class TouchDragAdapter:
    """
    Synthesized drag from touch events.

    A release counts as a drag only when the finger travelled more than
    ``drag_threshold_px`` from where it landed *and* entered a column other
    than the card's own. Anything else is a tap and opens the detail view.
    """

    def __init__(self, machine: BoardStateMachine, drag_threshold_px: float = 10.0):
        self.machine = machine
        self.drag_threshold_px = drag_threshold_px
        self._item: Optional[schemas.JobApplication] = None
        self._start_point: Optional[Point] = None
        self._travelled = False
        self._left_origin = False

    def _owns_drag(self) -> bool:
        """True when the active drag is the one the last touch_start began."""
        state = self.machine.state
        return not isinstance(state, Idle) and state.item is self._item

    def touch_start(self, item: schemas.JobApplication, x: float, y: float) -> BoardState:
        self._item = item
        self._start_point = Point(x, y)
        self._travelled = False
        self._left_origin = False
        return self.machine.start(item)

    def touch_move(self, x: float, y: float) -> bool:
        """Returns True while dragging: the page must not scroll."""
        if not self._owns_drag():
            return False
        point = Point(x, y)
        if math.hypot(point.x - self._start_point.x, point.y - self._start_point.y) > self.drag_threshold_px:
            self._travelled = True
        state = self.machine.move(point)
        if isinstance(state, HoveringColumn) and state.candidate != state.origin:
            self._left_origin = True
        return True

    def touch_end(self) -> schemas.GestureResult:
        state = self.machine.state
        if not self._owns_drag():
            return schemas.GestureResult(outcome=GestureOutcome.IGNORED.value)
        if not (self._travelled and self._left_origin):
            self.machine.cancel()
            return _open_detail(state.item)
        return self.machine.end()

    def touch_cancel(self) -> schemas.GestureResult:
        if not self._owns_drag():
            return schemas.GestureResult(outcome=GestureOutcome.IGNORED.value)
        return self.machine.cancel()


def build_board(applications: Iterable[schemas.JobApplication]) -> schemas.Board:
    """Group the collection into the five status columns, keeping its order."""
    grouped = {column: [] for column in BOARD_COLUMNS}
    for application in applications:
        grouped[application.status].append(application)
    return schemas.Board(columns=[
        schemas.BoardColumn(
            status=column,
            label=schemas.STATUS_LABELS[column],
            count=len(grouped[column]),
            applications=grouped[column],
        )
        for column in BOARD_COLUMNS
    ])
