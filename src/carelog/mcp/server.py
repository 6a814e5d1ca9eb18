"""MCP server exposing checklist and shift journal tools."""

from __future__ import annotations

import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from mcp.server.fastmcp import Context, FastMCP

from carelog.config import Config, get_config
from carelog.core.errors import CarelogError
from carelog.core.facade import CareFacade, open_facade
from carelog.core.shifts import SHIFT_LABELS, relevant_categories
from carelog.db.engine import init_db
from carelog.db.models import completion_to_dict, entry_to_dict, progress_to_dict, task_to_dict
from carelog.integrations import slack as slack_mod


@dataclass
class AppContext:
    db: sqlite3.Connection
    config: Config
    facade: CareFacade


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Open the database and load the ledgers on startup, close on shutdown."""
    config = get_config()
    db = init_db(config.db_path)
    facade = open_facade(db, config)
    if config.slack_bot_token:
        facade.subscribe(
            slack_mod.urgent_entry_notifier(config.slack_bot_token, config.handover_channel)
        )
    try:
        yield AppContext(db=db, config=config, facade=facade)
    finally:
        db.close()


mcp = FastMCP("carelog", lifespan=app_lifespan)


def _facade(ctx: Context) -> CareFacade:
    return ctx.request_context.lifespan_context.facade


# ── Checklist Tools ───────────────────────────────────────────────────────────


@mcp.tool()
def current_shift(ctx: Context) -> dict:
    """Get the current shift and which task categories it covers."""
    facade = _facade(ctx)
    shift = facade.current_shift()
    return {
        "shift": shift,
        "label": SHIFT_LABELS[shift],
        "relevant_categories": list(relevant_categories(shift)),
        "today": facade.clock.today(),
    }


@mcp.tool()
def list_checklist_tasks(ctx: Context, category: str | None = None) -> list[dict] | dict:
    """List checklist tasks, optionally for one category (morning, afternoon, evening, prn)."""
    try:
        return [task_to_dict(t) for t in _facade(ctx).checklist_items(category)]
    except CarelogError as e:
        return {"error": str(e)}


@mcp.tool()
def complete_task(
    ctx: Context,
    task_id: str,
    resident_id: str,
    notes: str | None = None,
    skipped: bool = False,
    skip_reason: str | None = None,
) -> dict:
    """Mark a checklist task as done for a resident, or skipped with a reason."""
    try:
        event = _facade(ctx).complete_task(
            task_id, resident_id, notes=notes, skipped=skipped, skip_reason=skip_reason
        )
    except CarelogError as e:
        return {"error": str(e)}
    return completion_to_dict(event)


@mcp.tool()
def uncomplete_task(ctx: Context, completion_id: str, resident_id: str | None = None) -> dict:
    """Remove a completion record. Removing an unknown id does nothing."""
    try:
        removed = _facade(ctx).uncomplete_task(completion_id, resident_id)
    except CarelogError as e:
        return {"error": str(e)}
    return {"id": completion_id, "removed": removed}


@mcp.tool()
def list_completions(ctx: Context, resident_id: str, date: str | None = None) -> list[dict]:
    """List a resident's completion records for a day (default today)."""
    return [completion_to_dict(e) for e in _facade(ctx).completions(resident_id, date)]


@mcp.tool()
def checklist_progress(ctx: Context, resident_id: str, date: str | None = None) -> dict:
    """Progress on the current shift's tasks for a resident."""
    facade = _facade(ctx)
    result = progress_to_dict(facade.progress(resident_id, date))
    result["waiting_on"] = facade.dependency_hints(resident_id, date)
    return result


# ── Journal Tools ─────────────────────────────────────────────────────────────


@mcp.tool()
def add_journal_entry(
    ctx: Context,
    content: str,
    resident_id: str | None = None,
    is_handover: bool = False,
    priority: str = "normal",
    tags: list[str] | None = None,
) -> dict:
    """Write a shift journal note. #tags in the content become tags unless tags are given."""
    try:
        entry = _facade(ctx).create_entry(
            content,
            resident_id=resident_id,
            is_handover=is_handover,
            priority=priority,
            tags=tags,
        )
    except CarelogError as e:
        return {"error": str(e)}
    return entry_to_dict(entry)


@mcp.tool()
def list_journal_entries(
    ctx: Context,
    resident_id: str | None = None,
    shift: str | None = None,
    date: str | None = None,
) -> list[dict] | dict:
    """List journal entries for a day, newest first."""
    try:
        entries = _facade(ctx).journal_entries(resident_id, shift, date)
    except CarelogError as e:
        return {"error": str(e)}
    return [entry_to_dict(e) for e in entries]


@mcp.tool()
def update_journal_entry(
    ctx: Context,
    entry_id: str,
    content: str | None = None,
    priority: str | None = None,
    tags: list[str] | None = None,
) -> dict:
    """Change an entry's content, priority or tags."""
    updates = {}
    if content is not None:
        updates["content"] = content
    if priority is not None:
        updates["priority"] = priority
    if tags is not None:
        updates["tags"] = tags
    try:
        entry = _facade(ctx).update_entry(entry_id, **updates)
    except CarelogError as e:
        return {"error": str(e)}
    if not entry:
        return {"error": f"Entry not found: {entry_id}"}
    return entry_to_dict(entry)


@mcp.tool()
def delete_journal_entry(ctx: Context, entry_id: str) -> dict:
    """Delete a journal entry."""
    try:
        deleted = _facade(ctx).delete_entry(entry_id)
    except CarelogError as e:
        return {"error": str(e)}
    return {"id": entry_id, "deleted": deleted}


@mcp.tool()
def handover_summary(ctx: Context, shift: str, date: str | None = None) -> list[dict] | dict:
    """Handover notes written during a shift (default today)."""
    try:
        entries = _facade(ctx).handover_summary(shift, date)
    except CarelogError as e:
        return {"error": str(e)}
    return [entry_to_dict(e) for e in entries]


@mcp.tool()
def attach_voice_note(ctx: Context, entry_id: str, audio_ref: str) -> dict:
    """Attach an uploaded voice note reference to a journal entry."""
    try:
        entry = _facade(ctx).attach_voice_note(entry_id, audio_ref)
    except CarelogError as e:
        return {"error": str(e)}
    if not entry:
        return {"error": f"Entry not found: {entry_id}"}
    return entry_to_dict(entry)
