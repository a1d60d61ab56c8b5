# clinic_crm/scheduling/slots.py
"""
Slot availability for the booking form.

Works entirely in minutes-from-midnight of the clinic's local day. Given the
appointments already on a day, returns every start time (on the step grid) at
which a consultation of the requested length fits without touching another
appointment.
"""
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

DAY_START_MINUTES = 8 * 60
DAY_END_MINUTES = 17 * 60
SLOT_STEP_MINUTES = 15
DEFAULT_APPOINTMENT_MINUTES = SLOT_STEP_MINUTES * 2


@dataclass(frozen=True)
class OperatingWindow:
    start_minutes: int = DAY_START_MINUTES
    end_minutes: int = DAY_END_MINUTES
    step_minutes: int = SLOT_STEP_MINUTES
    default_appointment_minutes: int = DEFAULT_APPOINTMENT_MINUTES
    timezone: Optional[str] = None

    def __post_init__(self):
        if not 0 <= self.start_minutes < self.end_minutes <= 24 * 60:
            raise ValueError(f"Invalid operating window {self.start_minutes}-{self.end_minutes}")
        if self.step_minutes <= 0:
            raise ValueError("Slot step must be positive")

    @classmethod
    def from_settings(cls, settings) -> "OperatingWindow":
        return cls(
            start_minutes=settings.day_start_minutes,
            end_minutes=settings.day_end_minutes,
            step_minutes=settings.slot_step_minutes,
            default_appointment_minutes=settings.default_appointment_minutes,
            timezone=settings.clinic_timezone,
        )


@dataclass(frozen=True)
class TimeSlot:
    value: str
    label: str
    start_minutes: int
    end_minutes: int

    def to_dict(self) -> dict:
        return {"value": self.value, "label": self.label}


def format_time_value(minutes: int) -> str:
    """540 -> '09:00'"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_time_label(minutes: int) -> str:
    """540 -> '9:00 AM', 780 -> '1:00 PM'"""
    hours24, mins = divmod(minutes, 60)
    suffix = "AM" if hours24 < 12 else "PM"
    hours12 = hours24 % 12 or 12
    return f"{hours12}:{mins:02d} {suffix}"


def parse_time_value(value: str) -> int:
    """'09:30' -> 570. Raises ValueError on anything that is not HH:MM."""
    try:
        hours_str, minutes_str = value.split(":")
        hours, minutes = int(hours_str), int(minutes_str)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time value {value!r}, expected HH:MM")
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Invalid time value {value!r}, expected HH:MM")
    return hours * 60 + minutes


def _get(appointment: Any, key: str):
    if isinstance(appointment, dict):
        return appointment.get(key)
    return getattr(appointment, key, None)


def _to_local(value: Any, tz: Optional[ZoneInfo]) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is not None and tz is not None:
        value = value.astimezone(tz)
    return value


def _minutes_of(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute


def effective_interval(
    appointment: Any,
    day: date,
    window: OperatingWindow = OperatingWindow(),
) -> Optional[Tuple[int, int]]:
    """
    Busy interval of one existing appointment, clamped to the operating window.

    Returns None when the appointment does not start on `day`, has an unreadable
    start, or lies entirely outside the window.
    """
    tz = ZoneInfo(window.timezone) if window.timezone else None
    start = _to_local(_get(appointment, "start_time") or _get(appointment, "start"), tz)
    if start is None or start.date() != day:
        return None

    start_minutes = _minutes_of(start)
    end = _to_local(_get(appointment, "end_time") or _get(appointment, "end"), tz)
    if end is None or end <= start:
        end_minutes = start_minutes + window.default_appointment_minutes
    elif end.date() != day:
        end_minutes = window.end_minutes
    else:
        end_minutes = _minutes_of(end)

    busy_start = max(start_minutes, window.start_minutes)
    busy_end = min(end_minutes, window.end_minutes)
    if busy_end <= busy_start:
        return None
    return busy_start, busy_end


def _effective_duration(duration_minutes: Optional[int], window: OperatingWindow) -> int:
    if duration_minutes is None or duration_minutes == 0:
        return window.step_minutes
    if duration_minutes < 0:
        raise ValueError(f"Duration must not be negative, got {duration_minutes}")
    return int(duration_minutes)


def _overlaps(start: int, end: int, busy: Iterable[Tuple[int, int]]) -> bool:
    # Half-open intervals: touching at an endpoint is not an overlap
    return any(start < busy_end and end > busy_start for busy_start, busy_end in busy)


def compute_available_slots(
    day: Optional[date],
    duration_minutes: Optional[int],
    existing: Iterable[Any],
    window: Optional[OperatingWindow] = None,
) -> List[TimeSlot]:
    """
    Bookable start times on `day` for a consultation of `duration_minutes`.

    Args:
        day: the calendar day being booked; None yields no slots.
        duration_minutes: requested length; 0/None falls back to the step size.
        existing: appointments on that day, as ORM rows or dicts exposing
            `start_time`/`end_time` (or `start`/`end`). End may be missing.
        window: operating window; defaults to 08:00-17:00 in 15 minute steps.

    Returns:
        Slots ordered by start time, each with an "HH:MM" value and a 12h label.
    """
    if day is None:
        return []
    window = window or OperatingWindow()
    duration = _effective_duration(duration_minutes, window)

    busy = []
    for appointment in existing:
        interval = effective_interval(appointment, day, window)
        if interval is not None:
            busy.append(interval)

    slots = []
    minutes = window.start_minutes
    while minutes + duration <= window.end_minutes:
        slot_end = minutes + duration
        if not _overlaps(minutes, slot_end, busy):
            slots.append(TimeSlot(
                value=format_time_value(minutes),
                label=format_time_label(minutes),
                start_minutes=minutes,
                end_minutes=slot_end,
            ))
        minutes += window.step_minutes
    return slots


def is_slot_available(
    day: date,
    start_minutes: int,
    duration_minutes: Optional[int],
    existing: Iterable[Any],
    window: Optional[OperatingWindow] = None,
) -> bool:
    """Booking-time re-check: does [start, start+duration) fit the window and avoid every existing appointment?"""
    window = window or OperatingWindow()
    duration = _effective_duration(duration_minutes, window)
    end_minutes = start_minutes + duration
    if start_minutes < window.start_minutes or end_minutes > window.end_minutes:
        return False
    busy = [i for i in (effective_interval(a, day, window) for a in existing) if i is not None]
    return not _overlaps(start_minutes, end_minutes, busy)


def expected_slot_count(duration_minutes: Optional[int], window: Optional[OperatingWindow] = None) -> int:
    """Slots on an empty day: (close - open) / step - ceil(duration / step) + 1, floored at 0."""
    window = window or OperatingWindow()
    duration = _effective_duration(duration_minutes, window)
    total_steps = (window.end_minutes - window.start_minutes) // window.step_minutes
    return max(0, total_steps - math.ceil(duration / window.step_minutes) + 1)
