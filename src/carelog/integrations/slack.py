"""Slack Web API integration for handover summaries and urgent notes."""

import logging
from dataclasses import dataclass

from carelog.core.shifts import SHIFT_LABELS, next_shift
from carelog.db.models import JournalEntry

logger = logging.getLogger(__name__)


class SlackError(Exception):
    """Raised when a Slack operation fails."""


@dataclass
class SlackMessage:
    channel: str
    ts: str
    text: str


PRIORITY_EMOJI = {
    "low": ":white_circle:",
    "normal": ":large_blue_circle:",
    "high": ":large_orange_circle:",
    "urgent": ":red_circle:",
}


def get_client(token: str | None):
    """Get a Slack WebClient. Returns None if no token provided."""
    if not token:
        return None
    from slack_sdk import WebClient
    return WebClient(token=token)


def send_message(
    token: str | None,
    channel: str,
    text: str,
    blocks: list[dict] | None = None,
) -> SlackMessage:
    """Send a message to a Slack channel."""
    client = get_client(token)
    if not client:
        raise SlackError("Slack not configured: SLACK_BOT_TOKEN not set")

    response = client.chat_postMessage(
        channel=channel,
        text=text,
        blocks=blocks,
    )

    return SlackMessage(
        channel=response["channel"],
        ts=response["ts"],
        text=text,
    )


def _entry_line(entry: JournalEntry) -> str:
    emoji = PRIORITY_EMOJI.get(entry.priority, ":grey_question:")
    who = f"Resident {entry.resident_id}" if entry.resident_id else "General"
    tags = " ".join(f"`#{t}`" for t in entry.tags)
    audio = " :microphone:" if entry.audio_url else ""
    line = f"{emoji} *{who}* ({entry.created_at:%H:%M}){audio}\n{entry.content}"
    return f"{line}\n{tags}" if tags else line


def format_handover_summary(shift: str, day: str, entries: list[JournalEntry]) -> list[dict]:
    """Format a shift's handover notes as Slack blocks."""
    header = (
        f":clipboard: *Handover: {SHIFT_LABELS[shift]} → {next_shift(shift)}* ({day})\n"
        f"{len(entries)} note{'s' if len(entries) != 1 else ''}"
    )
    blocks = [{"type": "section", "text": {"type": "mrkdwn", "text": header}}]
    if not entries:
        blocks.append(
            {"type": "section", "text": {"type": "mrkdwn", "text": "_No handover notes._"}}
        )
        return blocks

    blocks.append({"type": "divider"})
    for entry in entries:
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": _entry_line(entry)}})
    return blocks


def format_urgent_entry(entry: JournalEntry) -> list[dict]:
    """Format a single high-priority note as Slack blocks."""
    return [
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": f":rotating_light: *{entry.priority.upper()} note* ({entry.shift} shift)\n"
                        + _entry_line(entry),
            },
        }
    ]


def send_handover_summary(
    token: str | None,
    channel: str,
    shift: str,
    day: str,
    entries: list[JournalEntry],
) -> SlackMessage:
    blocks = format_handover_summary(shift, day, entries)
    text = f"Handover for {shift} shift on {day}: {len(entries)} notes"
    return send_message(token, channel, text, blocks=blocks)


def urgent_entry_notifier(token: str | None, channel: str):
    """Build a journal listener that posts high and urgent entries to Slack.

    Send failures are logged so a Slack outage never blocks a journal write.
    """

    def notify(entry: JournalEntry):
        if entry.priority not in ("high", "urgent"):
            return
        try:
            send_message(
                token,
                channel,
                f"{entry.priority.upper()} note: {entry.content}",
                blocks=format_urgent_entry(entry),
            )
        except Exception:
            logger.exception("Failed to send Slack notification for entry %s", entry.id)

    return notify
