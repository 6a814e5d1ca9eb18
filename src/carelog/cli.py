"""CLI entry point for the care task and shift journal engine."""

import json
import sys
from contextlib import contextmanager

import click

from carelog.config import get_config
from carelog.core.errors import CarelogError
from carelog.core.facade import open_facade
from carelog.core.journal import PRIORITIES
from carelog.core.shifts import CATEGORIES, CATEGORY_LABELS, SHIFT_LABELS, SHIFTS
from carelog.db.engine import get_db
from carelog.db.models import completion_to_dict, entry_to_dict, progress_to_dict, task_to_dict
from carelog.integrations import slack as slack_mod


@contextmanager
def _facade(ctx: click.Context):
    config = get_config()
    with get_db(config.db_path) as db:
        yield open_facade(db, config, staff_id=ctx.obj.get("staff"))


@contextmanager
def _reported():
    """Turn engine errors into a message on stderr and exit status 1."""
    try:
        yield
    except CarelogError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option("--staff", envvar="CARELOG_STAFF_ID", default=None, help="Acting staff id")
@click.pass_context
def main(ctx, staff):
    """carelog - care task checklists and shift journal"""
    ctx.ensure_object(dict)
    ctx.obj["staff"] = staff


@main.command("shift")
@click.pass_context
def shift_command(ctx):
    """Show the current shift."""
    with _facade(ctx) as facade:
        shift = facade.current_shift()
        click.echo(f"Current shift: {shift} - {SHIFT_LABELS[shift]}")


# ── Checklist Commands ───────────────────────────────────────────────────────


@main.command("tasks")
@click.option("--category", type=click.Choice(CATEGORIES), default=None, help="Filter by category")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
@click.pass_context
def tasks_command(ctx, category, json_output):
    """List the checklist tasks."""
    with _facade(ctx) as facade:
        tasks = facade.checklist_items(category)

    if json_output:
        click.echo(json.dumps([task_to_dict(t) for t in tasks], indent=2, ensure_ascii=False))
        return

    current = None
    for task in tasks:
        if task.category != current:
            current = task.category
            click.echo(CATEGORY_LABELS[current])
        flag = "*" if task.required else " "
        minutes = f" ~{task.estimated_minutes}m" if task.estimated_minutes else ""
        deps = f" [after: {', '.join(task.dependencies)}]" if task.dependencies else ""
        click.echo(f"  {flag} {task.id}: {task.label}{minutes}{deps}")


@main.command("complete")
@click.argument("task_id")
@click.argument("resident_id")
@click.option("--notes", default=None, help="Notes about the care given")
@click.option("--skip", "skipped", is_flag=True, help="Record the task as skipped")
@click.option("--reason", "skip_reason", default=None, help="Why the task was skipped")
@click.pass_context
def complete_command(ctx, task_id, resident_id, notes, skipped, skip_reason):
    """Mark a checklist task as done (or skipped) for a resident."""
    with _reported(), _facade(ctx) as facade:
        waiting = facade.dependency_hints(resident_id).get(task_id)
        event = facade.complete_task(
            task_id, resident_id, notes=notes, skipped=skipped, skip_reason=skip_reason
        )
        verb = "Skipped" if event.skipped else "Completed"
        click.echo(f"{verb} {event.task_id} for resident {event.resident_id} ({event.id})")
        if waiting and not event.skipped:
            click.echo(f"  Note: usually done after {', '.join(waiting)}")


@main.command("uncomplete")
@click.argument("completion_id")
@click.option("--resident", default=None, help="Resident the completion belongs to")
@click.pass_context
def uncomplete_command(ctx, completion_id, resident):
    """Remove a completion record."""
    with _reported(), _facade(ctx) as facade:
        if facade.uncomplete_task(completion_id, resident):
            click.echo(f"Removed completion {completion_id}")
        else:
            click.echo(f"No completion {completion_id} (nothing to do)")


@main.command("completions")
@click.argument("resident_id")
@click.option("--date", "day", default=None, help="Calendar day (YYYY-MM-DD), default today")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
@click.pass_context
def completions_command(ctx, resident_id, day, json_output):
    """List a resident's completion records for a day."""
    with _facade(ctx) as facade:
        events = facade.completions(resident_id, day)

    if json_output:
        click.echo(json.dumps([completion_to_dict(e) for e in events], indent=2))
        return
    if not events:
        click.echo("No completions found.")
        return
    for e in events:
        mark = "-" if e.skipped else "✓"
        extra = f" (skipped: {e.skip_reason})" if e.skipped and e.skip_reason else ""
        notes = f" - {e.notes}" if e.notes else ""
        click.echo(f"  {mark} {e.completed_at:%H:%M} {e.task_id} by {e.staff_id}{extra}{notes} [{e.id}]")


@main.command("progress")
@click.argument("resident_id")
@click.option("--date", "day", default=None, help="Calendar day (YYYY-MM-DD), default today")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
@click.pass_context
def progress_command(ctx, resident_id, day, json_output):
    """Show checklist progress for the current shift."""
    with _facade(ctx) as facade:
        p = facade.progress(resident_id, day)
        hints = facade.dependency_hints(resident_id, day)

    if json_output:
        click.echo(json.dumps(progress_to_dict(p), indent=2))
        return
    click.echo(f"Resident {resident_id} - {p.shift} shift")
    click.echo(f"  All tasks:      {p.completed}/{p.total} ({p.percentage}%)")
    click.echo(f"  Required tasks: {p.required_completed}/{p.required_total} ({p.required_percentage}%)")
    if p.remaining_minutes:
        click.echo(f"  About {p.remaining_minutes} minutes of care remaining")
    for task_id, waiting in hints.items():
        click.echo(f"  {task_id} waits on {', '.join(waiting)}")


# ── Journal Commands ─────────────────────────────────────────────────────────


@main.group("journal")
def journal_group():
    """Manage shift journal entries."""
    pass


@journal_group.command("add")
@click.argument("content")
@click.option("--resident", default=None, help="Resident the note is about")
@click.option("--handover", is_flag=True, help="Flag the note for the next shift")
@click.option("--priority", type=click.Choice(PRIORITIES), default="normal")
@click.option("--tag", "tags", multiple=True, help="Tags (default: #tags in the content)")
@click.pass_context
def journal_add(ctx, content, resident, handover, priority, tags):
    """Write a journal entry for the current shift."""
    with _reported(), _facade(ctx) as facade:
        entry = facade.create_entry(
            content,
            resident_id=resident,
            is_handover=handover,
            priority=priority,
            tags=list(tags) if tags else None,
        )
        click.echo(f"Created entry: {entry.id}")
        click.echo(f"  Shift: {entry.shift}")
        if entry.tags:
            click.echo(f"  Tags: {', '.join(entry.tags)}")


@journal_group.command("list")
@click.option("--resident", default=None, help="Only entries about this resident")
@click.option("--shift", type=click.Choice(SHIFTS), default=None)
@click.option("--date", "day", default=None, help="Calendar day (YYYY-MM-DD), default today")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
@click.pass_context
def journal_list(ctx, resident, shift, day, json_output):
    """List journal entries, newest first."""
    with _facade(ctx) as facade:
        entries = facade.journal_entries(resident, shift, day)
    _echo_entries(entries, json_output)


@journal_group.command("handover")
@click.argument("shift", type=click.Choice(SHIFTS))
@click.option("--date", "day", default=None, help="Calendar day (YYYY-MM-DD), default today")
@click.option("--notify", is_flag=True, help="Post the summary to Slack")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
@click.pass_context
def journal_handover(ctx, shift, day, notify, json_output):
    """Show the handover notes written during a shift."""
    config = get_config()
    with _facade(ctx) as facade:
        day = day or facade.clock.today()
        entries = facade.handover_summary(shift, day)
    _echo_entries(entries, json_output)

    if notify:
        try:
            msg = slack_mod.send_handover_summary(
                config.slack_bot_token, config.handover_channel, shift, day, entries
            )
            click.echo(f"Posted handover to {msg.channel}")
        except slack_mod.SlackError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)


@journal_group.command("edit")
@click.argument("entry_id")
@click.option("--content", default=None)
@click.option("--priority", type=click.Choice(PRIORITIES), default=None)
@click.option("--tag", "tags", multiple=True, help="Replace the entry's tags")
@click.option("--handover/--no-handover", default=None)
@click.pass_context
def journal_edit(ctx, entry_id, content, priority, tags, handover):
    """Change an entry's content, priority, tags or handover flag."""
    updates = {}
    if content is not None:
        updates["content"] = content
    if priority is not None:
        updates["priority"] = priority
    if tags:
        updates["tags"] = list(tags)
    if handover is not None:
        updates["is_handover"] = handover

    with _reported(), _facade(ctx) as facade:
        entry = facade.update_entry(entry_id, **updates)
        if not entry:
            click.echo(f"Entry not found: {entry_id}", err=True)
            sys.exit(1)
        click.echo(f"Updated entry: {entry.id}")


@journal_group.command("delete")
@click.argument("entry_id")
@click.pass_context
def journal_delete(ctx, entry_id):
    """Delete a journal entry."""
    with _reported(), _facade(ctx) as facade:
        if facade.delete_entry(entry_id):
            click.echo(f"Deleted entry {entry_id}")
        else:
            click.echo(f"No entry {entry_id} (nothing to do)")


@journal_group.command("attach-audio")
@click.argument("entry_id")
@click.argument("audio_ref")
@click.pass_context
def journal_attach_audio(ctx, entry_id, audio_ref):
    """Attach an uploaded voice note reference to an entry."""
    with _reported(), _facade(ctx) as facade:
        entry = facade.attach_voice_note(entry_id, audio_ref)
        if not entry:
            click.echo(f"Entry not found: {entry_id}", err=True)
            sys.exit(1)
        click.echo(f"Attached {audio_ref} to entry {entry.id}")


# ── Server Commands ──────────────────────────────────────────────────────────


@main.command("serve")
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8787, type=int, help="Port to listen on")
def serve_command(host, port):
    """Run the JSON web API."""
    from carelog.web.app import run_server

    click.echo(f"Serving carelog API at http://{host}:{port}")
    run_server(host=host, port=port)


@main.group("mcp")
def mcp_group():
    """MCP server commands."""
    pass


@mcp_group.command("serve")
def mcp_serve():
    """Start the MCP server (stdio transport)."""
    from carelog.mcp.server import mcp
    from carelog.mcp import prompts  # noqa: F401 - registers prompts

    mcp.run(transport="stdio")


# ── Helpers ───────────────────────────────────────────────────────────────────


def _echo_entries(entries, json_output: bool):
    if json_output:
        click.echo(json.dumps([entry_to_dict(e) for e in entries], indent=2))
        return
    if not entries:
        click.echo("No journal entries found.")
        return
    for e in entries:
        who = f"resident {e.resident_id}" if e.resident_id else "general"
        flags = " [handover]" if e.is_handover else ""
        click.echo(f"  {e.created_at:%H:%M} ({e.shift}, {e.priority}, {who}){flags} {e.id}")
        click.echo(f"    {e.content}")


if __name__ == "__main__":
    main()
