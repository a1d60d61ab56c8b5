# tests/test_calendar.py
from datetime import date, datetime, time

from clinic_crm.scheduling.calendar import (
    CalendarPost,
    CalendarState,
    DragPhase,
    RescheduleResult,
    build_month_grid,
    cancel_drag,
    drop,
    posts_for_day,
    reconcile,
    resolve_drop_target,
    settle,
    start_drag,
)


def make_state():
    posts = (
        CalendarPost(id=1, title="Before/after reel", scheduled_date=datetime(2024, 3, 5, 14, 30)),
        CalendarPost(id=2, title="Team intro", scheduled_date=datetime(2024, 3, 12, 9, 0)),
        CalendarPost(id=3, title="Unscheduled idea", scheduled_date=None),
    )
    return CalendarState(year=2024, month=3, posts=posts)


class TestMonthGrid:
    def test_month_starting_on_sunday_has_no_padding(self):
        grid = build_month_grid(2024, 9)
        assert grid[0] == 1
        assert len(grid) == 30

    def test_month_starting_on_monday(self):
        grid = build_month_grid(2024, 1)
        assert grid[:2] == [None, 1]
        assert grid[-1] == 31

    def test_leap_february(self):
        assert build_month_grid(2024, 2)[-1] == 29

    def test_drop_targets(self):
        assert resolve_drop_target(2024, 3, 20) == date(2024, 3, 20)
        assert resolve_drop_target(2024, 3, None) is None
        assert resolve_drop_target(2024, 2, 30) is None
        assert resolve_drop_target(2024, 2, 0) is None

    def test_posts_for_day(self):
        state = make_state()
        assert [p.id for p in posts_for_day(state.posts, 2024, 3, 5)] == [1]
        assert posts_for_day(state.posts, 2024, 3, 6) == []


class TestDragAndDrop:
    def test_drop_moves_post_to_target_at_ten(self):
        state = start_drag(make_state(), 1)
        assert state.drag.phase == DragPhase.dragging

        state = drop(state, date(2024, 3, 20))
        assert state.drag.phase == DragPhase.dropped
        assert state.get_post(1).scheduled_date == datetime(2024, 3, 20, 10, 0)
        # other posts untouched
        assert state.get_post(2).scheduled_date == datetime(2024, 3, 12, 9, 0)

    def test_drop_time_is_overridable(self):
        state = drop(start_drag(make_state(), 2), date(2024, 3, 1), drop_time=time(8, 15))
        assert state.get_post(2).scheduled_date == datetime(2024, 3, 1, 8, 15)

    def test_unscheduled_post_can_be_dropped(self):
        state = drop(start_drag(make_state(), 3), date(2024, 3, 2))
        assert state.get_post(3).scheduled_date == datetime(2024, 3, 2, 10, 0)

    def test_drop_outside_grid_cancels(self):
        original = make_state()
        state = drop(start_drag(original, 1), None)
        assert state.drag.phase == DragPhase.cancelled
        assert state.posts == original.posts

    def test_cancel_keeps_dates(self):
        original = make_state()
        state = cancel_drag(start_drag(original, 1))
        assert state.drag.phase == DragPhase.cancelled
        assert state.posts == original.posts

    def test_unknown_post_does_not_start_drag(self):
        state = make_state()
        assert start_drag(state, 99) is state

    def test_drop_without_drag_is_noop(self):
        state = make_state()
        assert drop(state, date(2024, 3, 20)) is state
        assert cancel_drag(state) is state

    def test_settle_returns_to_idle(self):
        state = settle(drop(start_drag(make_state(), 1), date(2024, 3, 20)))
        assert state.drag.phase == DragPhase.idle
        assert state.drag.item_id is None
        assert state.get_post(1).scheduled_date == datetime(2024, 3, 20, 10, 0)

    def test_original_state_is_not_mutated(self):
        original = make_state()
        drop(start_drag(original, 1), date(2024, 3, 20))
        assert original.get_post(1).scheduled_date == datetime(2024, 3, 5, 14, 30)
        assert original.drag.phase == DragPhase.idle


class TestReconcile:
    def test_success_keeps_optimistic_date(self):
        state = drop(start_drag(make_state(), 1), date(2024, 3, 20))
        result = RescheduleResult(ok=True, post_id=1, scheduled_date=datetime(2024, 3, 20, 10, 0))
        assert reconcile(state, result, None) is state

    def test_failure_restores_stored_copy(self):
        state = drop(start_drag(make_state(), 1), date(2024, 3, 20))
        stored = CalendarPost(id=1, title="Before/after reel", scheduled_date=datetime(2024, 3, 5, 14, 30))
        result = RescheduleResult(ok=False, post_id=1, error="database unavailable")
        state = reconcile(state, result, stored)
        assert state.get_post(1).scheduled_date == datetime(2024, 3, 5, 14, 30)

    def test_failure_for_deleted_post_removes_it(self):
        state = drop(start_drag(make_state(), 2), date(2024, 3, 20))
        state = reconcile(state, RescheduleResult(ok=False, post_id=2, error="Post not found."), None)
        assert state.get_post(2) is None
        assert len(state.posts) == 2

    def test_to_dict(self):
        state = drop(start_drag(make_state(), 1), date(2024, 3, 20))
        data = state.to_dict()
        assert data["drag"] == {"phase": "dropped", "item_id": 1}
        assert data["posts"][0]["scheduled_date"] == "2024-03-20T10:00:00"
        assert data["posts"][2]["scheduled_date"] is None
