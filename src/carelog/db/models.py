"""Data models for the care task and shift journal engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class Task:
    id: str
    label: str
    description: str
    category: str
    required: bool
    emoji: str = ""
    estimated_minutes: int | None = None
    dependencies: tuple[str, ...] = ()


@dataclass
class CompletionEvent:
    id: str
    task_id: str
    resident_id: str
    staff_id: str
    completed_at: datetime
    day: str
    notes: str | None = None
    skipped: bool = False
    skip_reason: str | None = None


@dataclass
class JournalEntry:
    id: str
    staff_id: str
    shift: str
    content: str
    created_at: datetime
    day: str
    resident_id: str | None = None
    is_handover: bool = False
    priority: str = "normal"
    tags: list[str] = field(default_factory=list)
    audio_url: str | None = None


@dataclass
class Progress:
    total: int = 0
    completed: int = 0
    percentage: int = 100
    required_total: int = 0
    required_completed: int = 0
    required_percentage: int = 100
    shift: str | None = None
    remaining_minutes: int = 0


# ── Serialization ─────────────────────────────────────────────────────────────


def task_to_dict(t: Task) -> dict:
    return {
        "id": t.id,
        "label": t.label,
        "description": t.description,
        "emoji": t.emoji,
        "category": t.category,
        "required": t.required,
        "estimated_minutes": t.estimated_minutes,
        "dependencies": list(t.dependencies),
    }


def completion_to_dict(e: CompletionEvent) -> dict:
    return {
        "id": e.id,
        "task_id": e.task_id,
        "resident_id": e.resident_id,
        "staff_id": e.staff_id,
        "completed_at": e.completed_at.isoformat(),
        "day": e.day,
        "notes": e.notes,
        "skipped": e.skipped,
        "skip_reason": e.skip_reason,
    }


def entry_to_dict(e: JournalEntry) -> dict:
    return {
        "id": e.id,
        "resident_id": e.resident_id,
        "staff_id": e.staff_id,
        "shift": e.shift,
        "content": e.content,
        "is_handover": e.is_handover,
        "priority": e.priority,
        "tags": list(e.tags),
        "created_at": e.created_at.isoformat(),
        "day": e.day,
        "audio_url": e.audio_url,
    }


def progress_to_dict(p: Progress) -> dict:
    return {
        "shift": p.shift,
        "total": p.total,
        "completed": p.completed,
        "percentage": p.percentage,
        "required_total": p.required_total,
        "required_completed": p.required_completed,
        "required_percentage": p.required_percentage,
        "remaining_minutes": p.remaining_minutes,
    }


# ── Deserialization ───────────────────────────────────────────────────────────


def parse_dt(val: str) -> datetime:
    """Parse an ISO-8601 timestamp. A trailing ``Z`` and naive values are taken as UTC."""
    if val.endswith("Z"):
        val = val[:-1] + "+00:00"
    dt = datetime.fromisoformat(val)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def completion_from_dict(r: dict) -> CompletionEvent:
    return CompletionEvent(
        id=r["id"],
        task_id=r["task_id"],
        resident_id=r["resident_id"],
        staff_id=r["staff_id"],
        completed_at=parse_dt(r["completed_at"]),
        day=r.get("day") or r["completed_at"][:10],
        notes=r.get("notes"),
        skipped=bool(r.get("skipped", False)),
        skip_reason=r.get("skip_reason"),
    )


def entry_from_dict(r: dict) -> JournalEntry:
    return JournalEntry(
        id=r["id"],
        staff_id=r["staff_id"],
        shift=r["shift"],
        content=r["content"],
        created_at=parse_dt(r["created_at"]),
        day=r.get("day") or r["created_at"][:10],
        resident_id=r.get("resident_id"),
        is_handover=bool(r.get("is_handover", False)),
        priority=r.get("priority", "normal"),
        tags=list(r.get("tags") or []),
        audio_url=r.get("audio_url"),
    )
