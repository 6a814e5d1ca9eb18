"""Shift calendar: which shift an instant falls in and what it covers."""

from datetime import datetime

from carelog.core.errors import ValidationError

SHIFTS = ("morning", "afternoon", "evening", "night")
CATEGORIES = ("morning", "afternoon", "evening", "prn")

CATEGORY_ORDER = list(CATEGORIES)

CATEGORY_LABELS = {
    "morning": "Morning (6am - 12pm)",
    "afternoon": "Afternoon (12pm - 6pm)",
    "evening": "Evening (6pm - 12am)",
    "prn": "As Needed (PRN)",
}

SHIFT_LABELS = {
    "morning": "Morning (6am - 12pm)",
    "afternoon": "Afternoon (12pm - 6pm)",
    "evening": "Evening (6pm - 12am)",
    "night": "Night (12am - 6am)",
}


def shift_for_instant(now: datetime) -> str:
    """Return the shift for ``now`` using its own (local) hour."""
    hour = now.hour
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 18:
        return "afternoon"
    if 18 <= hour < 24:
        return "evening"
    return "night"


def relevant_categories(shift: str) -> tuple[str, ...]:
    """Task categories shown to staff on ``shift``.

    Night staff only see as-needed tasks; every other shift sees its own
    scheduled tasks plus the as-needed ones.
    """
    validate_shift(shift)
    if shift == "night":
        return ("prn",)
    return (shift, "prn")


def next_shift(shift: str) -> str:
    """The shift that receives a handover from ``shift``."""
    validate_shift(shift)
    return SHIFTS[(SHIFTS.index(shift) + 1) % len(SHIFTS)]


def validate_shift(shift: str) -> str:
    if shift not in SHIFTS:
        raise ValidationError(
            f"Invalid shift: {shift!r}. Must be one of: {', '.join(SHIFTS)}"
        )
    return shift


def validate_category(category: str) -> str:
    if category not in CATEGORIES:
        raise ValidationError(
            f"Invalid category: {category!r}. Must be one of: {', '.join(CATEGORIES)}"
        )
    return category
