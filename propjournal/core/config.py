"""
Configuration management for PropJournal.

Loads settings from an optional JSON file and environment variables.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Any


@dataclass
class Config:
    """Application configuration."""

    # Database
    database_path: str = "data/propjournal.db"

    # Telegram
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None

    # Timezone
    timezone: str = "UTC"

    # Account rules (from settings JSON)
    consistency_caution_ratio: float = 0.8
    default_risk_multiplier: float = 1.0
    currency: str = "USD"

    # Settings file name
    settings_path: str = "config/settings.json"

    @classmethod
    def _load_json(cls, json_path: Path) -> Dict[str, Any]:
        """Load JSON configuration file."""
        if not json_path.exists():
            raise FileNotFoundError(f"Config file not found: {json_path}")

        with open(json_path, 'r') as f:
            return json.load(f)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from the settings JSON + environment variables."""
        explicit_path = os.getenv("PROPJOURNAL_SETTINGS")
        settings_path = Path(explicit_path or "config/settings.json")

        # An explicitly named settings file must exist
        if explicit_path or settings_path.exists():
            settings = cls._load_json(settings_path)
        else:
            settings = {}

        rules = settings.get("account_rules", {})

        config = cls(
            database_path=os.getenv("PROPJOURNAL_DB_PATH", "data/propjournal.db"),
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN"),
            telegram_chat_id=os.getenv("TELEGRAM_CHAT_ID"),
            timezone=os.getenv("TIMEZONE", settings.get("timezone", "UTC")),

            # From settings JSON
            consistency_caution_ratio=rules.get("consistency_caution_ratio", 0.8),
            default_risk_multiplier=rules.get("default_risk_multiplier", 1.0),
            currency=settings.get("currency", "USD"),

            settings_path=str(settings_path),
        )

        return config

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    def get_summary(self) -> str:
        """Get a summary of current settings."""
        return f"""Settings: {self.settings_path}
Database: {self.database_path}
Timezone: {self.timezone}
Currency: {self.currency}

Account Rules:
  Consistency Caution: {self.consistency_caution_ratio:.0%} of daily cap
  Default Copy Multiplier: {self.default_risk_multiplier}x

Telegram: {"enabled" if self.telegram_enabled else "disabled"}
"""
