# clinic_crm/scheduling/calendar.py
"""
Content calendar view-model.

The month grid and the drag-and-drop interaction are expressed as an immutable
state plus pure reducers, so a drop can be applied optimistically, persisted,
and reconciled against the stored row if the write fails.

    idle -> dragging -> dropped | cancelled
"""
import calendar as _calendar
import enum
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_DROP_TIME = time(10, 0)


class DragPhase(str, enum.Enum):
    idle = "idle"
    dragging = "dragging"
    dropped = "dropped"
    cancelled = "cancelled"


@dataclass(frozen=True)
class CalendarPost:
    id: int
    title: str
    scheduled_date: Optional[datetime]
    workflow_status: str = "new"
    platforms: Tuple[str, ...] = ()

    @classmethod
    def from_orm(cls, post: Any) -> "CalendarPost":
        status = post.workflow_status
        return cls(
            id=post.id,
            title=post.title,
            scheduled_date=post.scheduled_date,
            workflow_status=getattr(status, "value", status),
            platforms=tuple(post.platforms or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "workflow_status": self.workflow_status,
            "platforms": list(self.platforms),
        }


@dataclass(frozen=True)
class DragState:
    phase: DragPhase = DragPhase.idle
    item_id: Optional[int] = None


@dataclass(frozen=True)
class CalendarState:
    year: int
    month: int
    posts: Tuple[CalendarPost, ...] = ()
    drag: DragState = field(default_factory=DragState)

    def get_post(self, post_id: int) -> Optional[CalendarPost]:
        for post in self.posts:
            if post.id == post_id:
                return post
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "posts": [p.to_dict() for p in self.posts],
            "drag": {"phase": self.drag.phase.value, "item_id": self.drag.item_id},
        }


@dataclass(frozen=True)
class RescheduleResult:
    """Outcome of persisting a drop. `ok=False` means the store did not take the write."""
    ok: bool
    post_id: int
    scheduled_date: Optional[datetime] = None
    error: Optional[str] = None


# ---- month grid ----

def build_month_grid(year: int, month: int) -> List[Optional[int]]:
    """Leading None padding (weeks start on Sunday) followed by the day numbers."""
    # calendar.weekday: Monday=0 .. Sunday=6; shift so Sunday=0
    first_weekday = (_calendar.weekday(year, month, 1) + 1) % 7
    days_in_month = _calendar.monthrange(year, month)[1]
    return [None] * first_weekday + list(range(1, days_in_month + 1))


def resolve_drop_target(year: int, month: int, cell_day: Optional[int]) -> Optional[date]:
    """Map a grid cell to its date; padding cells and out-of-range days are not drop targets."""
    if cell_day is None:
        return None
    if not 1 <= cell_day <= _calendar.monthrange(year, month)[1]:
        return None
    return date(year, month, cell_day)


def posts_for_day(posts, year: int, month: int, day: int) -> List[CalendarPost]:
    return [
        p for p in posts
        if p.scheduled_date is not None
        and (p.scheduled_date.year, p.scheduled_date.month, p.scheduled_date.day) == (year, month, day)
    ]


def drop_datetime(target: date, drop_time: time = DEFAULT_DROP_TIME) -> datetime:
    return datetime.combine(target, drop_time)


# ---- reducers ----

def start_drag(state: CalendarState, post_id: int) -> CalendarState:
    if state.get_post(post_id) is None:
        return state
    return replace(state, drag=DragState(DragPhase.dragging, post_id))


def cancel_drag(state: CalendarState) -> CalendarState:
    if state.drag.phase != DragPhase.dragging:
        return state
    return replace(state, drag=DragState(DragPhase.cancelled, None))


def drop(state: CalendarState, target: Optional[date], drop_time: time = DEFAULT_DROP_TIME) -> CalendarState:
    """
    Release the dragged post over `target`.

    A None target (pointer released outside any cell) cancels. Otherwise the
    post's date becomes `target` at `drop_time`; the local state changes right
    away, before anything is persisted.
    """
    if state.drag.phase != DragPhase.dragging:
        return state
    if target is None:
        return cancel_drag(state)

    post_id = state.drag.item_id
    new_date = drop_datetime(target, drop_time)
    posts = tuple(
        replace(p, scheduled_date=new_date) if p.id == post_id else p
        for p in state.posts
    )
    return replace(state, posts=posts, drag=DragState(DragPhase.dropped, post_id))


def reconcile(state: CalendarState, result: RescheduleResult, stored: Optional[CalendarPost]) -> CalendarState:
    """
    Settle an optimistic drop against the store.

    On success the state is kept as is. On failure the local copy is replaced by
    the re-fetched `stored` post (or removed if the row no longer exists).
    """
    if result.ok:
        return state
    if stored is None:
        posts = tuple(p for p in state.posts if p.id != result.post_id)
    else:
        posts = tuple(stored if p.id == result.post_id else p for p in state.posts)
    return replace(state, posts=posts)


def settle(state: CalendarState) -> CalendarState:
    """Return to idle once a drop/cancel has been handled."""
    return replace(state, drag=DragState())
