"""Tests for the MCP tools and prompts."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from carelog.core.clock import Clock
from carelog.core.facade import CareFacade
from carelog.mcp import prompts
from carelog.mcp import server

MORNING = datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def ctx():
    """A tool context whose lifespan holds an in-memory facade."""
    context = MagicMock()
    context.request_context.lifespan_context.facade = CareFacade(
        clock=Clock("UTC", now_fn=lambda: MORNING), actor=lambda: "S1"
    )
    return context


class TestJournalTools:
    def test_attach_voice_note(self, ctx):
        entry = server.add_journal_entry(ctx, "Voice note follows", resident_id="R1")
        result = server.attach_voice_note(ctx, entry["id"], "voice-1.m4a")
        assert result["audio_url"] == "voice-1.m4a"
        listed = server.list_journal_entries(ctx, resident_id="R1")
        assert listed[0]["audio_url"] == "voice-1.m4a"

    def test_attach_voice_note_missing_entry(self, ctx):
        result = server.attach_voice_note(ctx, "nope", "voice-1.m4a")
        assert result == {"error": "Entry not found: nope"}

    def test_invalid_priority_is_reported(self, ctx):
        result = server.add_journal_entry(ctx, "Note", priority="whenever")
        assert "error" in result


class TestPrompts:
    def test_handover_brief(self):
        text = prompts.handover_brief("evening")
        assert "evening shift is ending" in text
        assert "night shift is taking over" in text

    def test_handover_brief_unknown_shift(self):
        text = prompts.handover_brief("graveyard")
        assert "'graveyard' is not a shift" in text
        assert "morning, afternoon, evening, night" in text
