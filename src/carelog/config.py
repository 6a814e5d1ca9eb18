"""Configuration loading from environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Config:
    db_path: Path = field(default_factory=lambda: Path.home() / ".carelog" / "carelog.db")
    staff_id: str | None = None
    timezone: str = "UTC"
    slack_bot_token: str | None = None
    handover_channel: str = "#handover"

    @classmethod
    def from_env(cls) -> "Config":
        config = cls()

        if db := os.environ.get("CARELOG_DB_PATH"):
            config.db_path = Path(db)

        config.staff_id = os.environ.get("CARELOG_STAFF_ID") or None

        if tz := os.environ.get("CARELOG_TIMEZONE"):
            config.timezone = tz

        config.slack_bot_token = os.environ.get("SLACK_BOT_TOKEN")

        if channel := os.environ.get("CARELOG_HANDOVER_CHANNEL"):
            config.handover_channel = channel

        return config


def get_config() -> Config:
    return Config.from_env()
