"""Completion ledger: task completion and skip events per resident and day."""

import uuid
from dataclasses import replace
from datetime import datetime

from carelog.core.errors import ValidationError
from carelog.db.models import CompletionEvent, completion_from_dict, completion_to_dict

UPDATABLE_FIELDS = {"notes", "skipped", "skip_reason"}


def new_id() -> str:
    return uuid.uuid4().hex[:12]


def validate_fields(fields: dict):
    """Reject values of the wrong type for the mutable completion fields."""
    if "skipped" in fields and not isinstance(fields["skipped"], bool):
        raise ValidationError(f"skipped must be true or false, got {fields['skipped']!r}")
    for name in ("notes", "skip_reason"):
        value = fields.get(name)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{name} must be a string, got {value!r}")


class CompletionLedger:
    """Append-mostly collection of completion events.

    Inserts are never deduplicated; "is this task done" is a set-membership
    question answered by the readers. Every returned event is a copy.
    """

    def __init__(self, events: list[CompletionEvent] | None = None):
        self._events: list[CompletionEvent] = list(events or [])

    def __len__(self) -> int:
        return len(self._events)

    def record(
        self,
        task_id: str,
        resident_id: str,
        staff_id: str,
        *,
        now: datetime,
        day: str,
        notes: str | None = None,
        skipped: bool = False,
        skip_reason: str | None = None,
    ) -> CompletionEvent:
        """Append a completion (or skip) event stamped with ``now``."""
        validate_fields({"notes": notes, "skipped": skipped, "skip_reason": skip_reason})
        event = CompletionEvent(
            id=new_id(),
            task_id=task_id,
            resident_id=resident_id,
            staff_id=staff_id,
            completed_at=now,
            day=day,
            notes=notes,
            skipped=skipped,
            skip_reason=skip_reason,
        )
        self._events.append(event)
        return replace(event)

    def get(self, completion_id: str) -> CompletionEvent | None:
        for event in self._events:
            if event.id == completion_id:
                return replace(event)
        return None

    def remove(self, completion_id: str) -> bool:
        """Remove an event. Unknown ids are ignored."""
        before = len(self._events)
        self._events = [e for e in self._events if e.id != completion_id]
        return len(self._events) < before

    def update(self, completion_id: str, **fields) -> CompletionEvent | None:
        """Merge ``fields`` into an event, leaving the others untouched."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update completion fields: {', '.join(sorted(unknown))}")
        validate_fields(fields)
        for i, event in enumerate(self._events):
            if event.id == completion_id:
                self._events[i] = replace(event, **fields)
                return replace(self._events[i])
        return None

    def completions_for(self, resident_id: str, day: str) -> list[CompletionEvent]:
        """Events for a resident on a calendar day, in insertion order."""
        return [
            replace(e) for e in self._events
            if e.resident_id == resident_id and e.day == day
        ]

    def active_completions(self, resident_id: str, day: str) -> list[CompletionEvent]:
        """The latest event per task for a resident on a day."""
        latest: dict[str, CompletionEvent] = {}
        for event in self.completions_for(resident_id, day):
            current = latest.get(event.task_id)
            if current is None or event.completed_at >= current.completed_at:
                latest[event.task_id] = event
        return list(latest.values())

    def clear(self):
        self._events = []

    # ── Persistence ──────────────────────────────────────────────────────────

    def snapshot(self) -> list[dict]:
        return [completion_to_dict(e) for e in self._events]

    def load(self, records: list[dict]):
        self._events = [completion_from_dict(r) for r in records]
