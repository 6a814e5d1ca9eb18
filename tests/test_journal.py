"""Tests for the shift journal ledger."""

from datetime import datetime, timedelta, timezone

import pytest

from carelog.core.errors import ValidationError
from carelog.core.journal import JournalLedger, extract_tags

NOW = datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)
DAY = "2026-10-17"


@pytest.fixture
def ledger():
    return JournalLedger()


def write(ledger, content, minutes=0, shift="morning", day=DAY, **kwargs):
    return ledger.create(
        "S1", content, shift=shift, now=NOW + timedelta(minutes=minutes), day=day, **kwargs
    )


class TestExtractTags:
    def test_hyphenated_tags(self):
        content = "Robert is happy #mood-good and drank water #hydration"
        assert extract_tags(content) == ["mood-good", "hydration"]

    def test_repeats_kept(self):
        assert extract_tags("#a #a") == ["a", "a"]

    def test_no_tags(self):
        assert extract_tags("Quiet night, no concerns.") == []

    def test_bare_hash_ignored(self):
        assert extract_tags("Room # 12 #ok") == ["ok"]

    def test_trailing_hyphen_dropped(self):
        assert extract_tags("#tired- today") == ["tired"]


class TestJournalLedger:
    def test_create_defaults(self, ledger):
        entry = write(ledger, "Shift went well #calm")
        assert entry.shift == "morning"
        assert entry.priority == "normal"
        assert entry.is_handover is False
        assert entry.resident_id is None
        assert entry.tags == ["calm"]

    def test_explicit_tags_win(self, ledger):
        entry = write(ledger, "Ate well #breakfast", tags=["meals"])
        assert entry.tags == ["meals"]

    def test_explicit_empty_tags_kept(self, ledger):
        entry = write(ledger, "Ate well #breakfast", tags=[])
        assert entry.tags == []

    def test_invalid_priority_rejected(self, ledger):
        with pytest.raises(ValidationError):
            write(ledger, "Note", priority="critical")
        assert len(ledger) == 0

    def test_invalid_shift_rejected(self, ledger):
        with pytest.raises(ValidationError):
            write(ledger, "Note", shift="graveyard")
        assert len(ledger) == 0

    def test_entries_newest_first(self, ledger):
        first = write(ledger, "first", minutes=0)
        second = write(ledger, "second", minutes=10)
        third = write(ledger, "third", minutes=5)
        ids = [e.id for e in ledger.entries(day=DAY)]
        assert ids == [second.id, third.id, first.id]

    def test_entries_filters(self, ledger):
        write(ledger, "about R1", resident_id="R1")
        write(ledger, "about R2", resident_id="R2")
        write(ledger, "general")
        write(ledger, "afternoon R1", resident_id="R1", shift="afternoon")
        write(ledger, "yesterday", resident_id="R1", day="2026-10-16")

        assert len(ledger.entries(day=DAY)) == 4
        assert {e.content for e in ledger.entries("R1", day=DAY)} == {"about R1", "afternoon R1"}
        assert [e.content for e in ledger.entries("R1", "morning", day=DAY)] == ["about R1"]
        assert len(ledger.entries(None, "morning", day=DAY)) == 3

    def test_handover_entries(self, ledger):
        kept = write(ledger, "handover", is_handover=True)
        write(ledger, "not handover", is_handover=False)
        write(ledger, "other shift", is_handover=True, shift="afternoon")
        result = ledger.handover_entries("morning", day=DAY)
        assert [e.id for e in result] == [kept.id]

    def test_update_merges(self, ledger):
        entry = write(ledger, "Note #a", priority="low")
        updated = ledger.update(entry.id, priority="urgent")
        assert updated.priority == "urgent"
        assert updated.content == "Note #a"
        assert updated.tags == ["a"]

    def test_update_invalid_priority(self, ledger):
        entry = write(ledger, "Note")
        with pytest.raises(ValidationError):
            ledger.update(entry.id, priority="meh")
        assert ledger.get(entry.id).priority == "normal"

    def test_update_cannot_change_shift(self, ledger):
        entry = write(ledger, "Note")
        with pytest.raises(ValidationError):
            ledger.update(entry.id, shift="night")

    def test_update_unknown(self, ledger):
        assert ledger.update("missing", content="x") is None

    def test_delete_idempotent(self, ledger):
        entry = write(ledger, "Note")
        assert ledger.delete(entry.id) is True
        assert ledger.delete(entry.id) is False
        assert len(ledger) == 0

    def test_tags_are_copied(self, ledger):
        entry = write(ledger, "Note #a")
        entry.tags.append("leak")
        assert ledger.get(entry.id).tags == ["a"]

    def test_snapshot_and_load(self, ledger):
        write(ledger, "Note #a", resident_id="R1", is_handover=True, audio_url="voice.m4a")
        other = JournalLedger()
        other.load(ledger.snapshot())
        assert other.entries(day=DAY) == ledger.entries(day=DAY)

    def test_update_rejects_null_tags(self, ledger):
        entry = write(ledger, "Note #a")
        with pytest.raises(ValidationError):
            ledger.update(entry.id, tags=None)
        assert ledger.get(entry.id).tags == ["a"]
        assert len(ledger.entries(day=DAY)) == 1

    @pytest.mark.parametrize(
        "fields",
        [
            {"tags": "a,b"},
            {"tags": ["a", 1]},
            {"content": None},
            {"is_handover": "false"},
            {"audio_url": 42},
        ],
    )
    def test_update_rejects_malformed_values(self, ledger, fields):
        entry = write(ledger, "Note #a")
        with pytest.raises(ValidationError):
            ledger.update(entry.id, **fields)
        assert ledger.get(entry.id) == entry

    def test_create_rejects_malformed_values(self, ledger):
        with pytest.raises(ValidationError):
            write(ledger, "Note", is_handover="yes")
        with pytest.raises(ValidationError):
            write(ledger, "Note", tags=("a",))
        with pytest.raises(ValidationError):
            write(ledger, None)
        assert len(ledger) == 0

    def test_load_legacy_timestamps(self, ledger):
        ledger.load([
            {
                "id": "old1",
                "staff_id": "S0",
                "shift": "morning",
                "content": "Written before days were stored",
                "created_at": "2026-10-17T08:00:00",
            },
            {
                "id": "old2",
                "staff_id": "S0",
                "shift": "morning",
                "content": "Written with a Z suffix",
                "created_at": "2026-10-17T08:30:00.000Z",
            },
        ])
        fresh = write(ledger, "New note")
        result = ledger.entries(day=DAY)
        assert [e.id for e in result] == [fresh.id, "old2", "old1"]
        assert all(e.created_at.tzinfo is not None for e in result)
