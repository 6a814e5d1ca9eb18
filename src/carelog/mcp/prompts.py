"""MCP prompt templates for shift workflows."""

from carelog.core.shifts import SHIFTS, next_shift
from carelog.mcp.server import mcp


@mcp.prompt()
def handover_brief(shift: str) -> str:
    """Generate a prompt to brief the incoming shift."""
    if shift not in SHIFTS:
        return (
            f"'{shift}' is not a shift. Ask which shift is handing over "
            f"({', '.join(SHIFTS)}), then use the handover_brief prompt again."
        )
    return (
        f"The {shift} shift is ending and the {next_shift(shift)} shift is taking over.\n\n"
        f"Use the handover_summary tool for the '{shift}' shift, then write a short brief that:\n"
        f"1. Leads with any urgent or high-priority notes\n"
        f"2. Groups the remaining notes by resident, with general notes last\n"
        f"3. Keeps each point to one line\n"
        f"4. Ends with anything the incoming staff must follow up on"
    )


@mcp.prompt()
def resident_checkin(resident_id: str) -> str:
    """Generate a prompt to review a resident's care so far today."""
    return (
        f"Please review today's care for resident '{resident_id}'.\n\n"
        f"Use checklist_progress and list_completions for this resident, and "
        f"list_journal_entries filtered to them. Then provide:\n"
        f"1. Which required tasks for the current shift are still open\n"
        f"2. Any tasks that were skipped and why\n"
        f"3. Tasks waiting on another task to be done first\n"
        f"4. Anything from the journal the next carer should know"
    )
