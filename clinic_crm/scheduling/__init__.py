from .slots import (
    DAY_END_MINUTES,
    DAY_START_MINUTES,
    DEFAULT_APPOINTMENT_MINUTES,
    SLOT_STEP_MINUTES,
    OperatingWindow,
    TimeSlot,
    compute_available_slots,
    is_slot_available,
)

__all__ = [
    "DAY_END_MINUTES",
    "DAY_START_MINUTES",
    "DEFAULT_APPOINTMENT_MINUTES",
    "SLOT_STEP_MINUTES",
    "OperatingWindow",
    "TimeSlot",
    "compute_available_slots",
    "is_slot_available",
]
