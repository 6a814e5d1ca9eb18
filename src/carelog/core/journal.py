"""Shift journal: free-text staff notes with handover flags and tags."""

import re
import uuid
from dataclasses import replace
from datetime import datetime

from carelog.core.errors import ValidationError
from carelog.core.shifts import validate_shift
from carelog.db.models import JournalEntry, entry_from_dict, entry_to_dict

PRIORITIES = ("low", "normal", "high", "urgent")
UPDATABLE_FIELDS = {"content", "priority", "tags", "is_handover", "audio_url"}

TAG_RE = re.compile(r"#(\w+(?:-\w+)*)")


def extract_tags(content: str) -> list[str]:
    """Pull ``#tag`` tokens out of ``content`` in order, keeping repeats."""
    return TAG_RE.findall(content)


def validate_priority(priority: str) -> str:
    if priority not in PRIORITIES:
        raise ValidationError(
            f"Invalid priority: {priority!r}. Must be one of: {', '.join(PRIORITIES)}"
        )
    return priority


def validate_fields(fields: dict):
    """Reject malformed entry fields before anything is written."""
    if "content" in fields and not isinstance(fields["content"], str):
        raise ValidationError(f"content must be a string, got {fields['content']!r}")
    if "priority" in fields:
        validate_priority(fields["priority"])
    if "tags" in fields:
        tags = fields["tags"]
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise ValidationError(f"tags must be a list of strings, got {tags!r}")
    if "is_handover" in fields and not isinstance(fields["is_handover"], bool):
        raise ValidationError(f"is_handover must be true or false, got {fields['is_handover']!r}")
    audio_url = fields.get("audio_url")
    if audio_url is not None and not isinstance(audio_url, str):
        raise ValidationError(f"audio_url must be a string, got {audio_url!r}")


def _copy(entry: JournalEntry) -> JournalEntry:
    return replace(entry, tags=list(entry.tags))


class JournalLedger:
    """Journal entries, read newest first."""

    def __init__(self, entries: list[JournalEntry] | None = None):
        self._entries: list[JournalEntry] = list(entries or [])

    def __len__(self) -> int:
        return len(self._entries)

    def create(
        self,
        staff_id: str,
        content: str,
        *,
        shift: str,
        now: datetime,
        day: str,
        resident_id: str | None = None,
        is_handover: bool = False,
        priority: str = "normal",
        tags: list[str] | None = None,
        audio_url: str | None = None,
    ) -> JournalEntry:
        """Add an entry. Tags are extracted from ``content`` when not given."""
        validate_shift(shift)
        checked = {
            "content": content,
            "priority": priority,
            "is_handover": is_handover,
            "audio_url": audio_url,
        }
        if tags is not None:
            checked["tags"] = tags
        validate_fields(checked)
        entry = JournalEntry(
            id=uuid.uuid4().hex[:12],
            staff_id=staff_id,
            shift=shift,
            content=content,
            created_at=now,
            day=day,
            resident_id=resident_id,
            is_handover=is_handover,
            priority=priority,
            tags=list(tags) if tags is not None else extract_tags(content),
            audio_url=audio_url,
        )
        self._entries.insert(0, entry)
        return _copy(entry)

    def get(self, entry_id: str) -> JournalEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return _copy(entry)
        return None

    def update(self, entry_id: str, **fields) -> JournalEntry | None:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update journal fields: {', '.join(sorted(unknown))}")
        validate_fields(fields)
        if "tags" in fields:
            fields["tags"] = list(fields["tags"])
        for i, entry in enumerate(self._entries):
            if entry.id == entry_id:
                self._entries[i] = replace(entry, **fields)
                return _copy(self._entries[i])
        return None

    def delete(self, entry_id: str) -> bool:
        """Delete an entry. Unknown ids are ignored."""
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.id != entry_id]
        return len(self._entries) < before

    def entries(
        self,
        resident_id: str | None = None,
        shift: str | None = None,
        *,
        day: str,
    ) -> list[JournalEntry]:
        """Entries for ``day`` matching every given filter, newest first."""
        matched = [
            e for e in self._entries
            if e.day == day
            and (resident_id is None or e.resident_id == resident_id)
            and (shift is None or e.shift == shift)
        ]
        matched.sort(key=lambda e: e.created_at, reverse=True)
        return [_copy(e) for e in matched]

    def handover_entries(self, shift: str, *, day: str) -> list[JournalEntry]:
        return [e for e in self.entries(None, shift, day=day) if e.is_handover]

    def clear(self):
        self._entries = []

    # ── Persistence ──────────────────────────────────────────────────────────

    def snapshot(self) -> list[dict]:
        return [entry_to_dict(e) for e in self._entries]

    def load(self, records: list[dict]):
        self._entries = [entry_from_dict(r) for r in records]
