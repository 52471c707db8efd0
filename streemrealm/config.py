"""Streem Realm configuration management.

Loads configuration from environment variables with sensible defaults.
Secrets (Airtable token, Claude API key) are read from the environment or
from the local token store, never from source.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from streemrealm.storage.local_store import TokenStore

# Load .env file if present
load_dotenv()

DEFAULT_AIRTABLE_URL = "https://api.airtable.com/v0"
DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-20250514"


@dataclass(frozen=True)
class TableNames:
    """Airtable table names read and written by the app."""

    zones: str = "Zones"
    structures: str = "Structures"
    materials: str = "Materials"
    sessions: str = "Build_Sessions"


@dataclass
class AirtableConfig:
    """Airtable base connection settings."""

    api_key: str
    base_id: str
    base_url: str = DEFAULT_AIRTABLE_URL
    timeout_seconds: float = 30.0  # single-record create/update/get
    list_timeout_seconds: float = 60.0  # multi-page listings
    tables: TableNames = field(default_factory=TableNames)


@dataclass
class ClaudeConfig:
    """Claude build assistant settings."""

    api_key: str | None = None
    model: str = DEFAULT_CLAUDE_MODEL
    max_tokens: int = 4096
    history_window: int = 20  # prior turns sent with each request


@dataclass
class StorageConfig:
    """Local persistence locations."""

    data_dir: Path = field(default_factory=lambda: Path.home() / ".streemrealm")

    @property
    def overrides_path(self) -> Path:
        """Zone overrides absorbed from schema-rejected writes."""
        return self.data_dir / "zone_local_state.json"

    @property
    def chat_history_path(self) -> Path:
        return self.data_dir / "chat_history.json"

    @property
    def airtable_token_path(self) -> Path:
        return self.data_dir / "airtable_token.json"

    @property
    def claude_token_path(self) -> Path:
        return self.data_dir / "claude_api_key.json"

    @classmethod
    def from_env(cls) -> StorageConfig:
        data_dir = os.getenv("STREEMREALM_DATA_DIR")
        return cls(data_dir=Path(data_dir).expanduser()) if data_dir else cls()


@dataclass
class AppConfig:
    """Root application configuration.

    Loads from environment variables with fail-fast on missing required values.
    """

    airtable: AirtableConfig
    log_level: str = "INFO"
    kids_session_limit: int = 10

    claude: ClaudeConfig = field(default_factory=ClaudeConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        Required environment variables:
        - AIRTABLE_BASE_ID: Airtable base identifier
        - AIRTABLE_API_KEY: Personal access token (or a token saved with
          ``streemrealm set-token``)

        Optional (with defaults):
        - AIRTABLE_BASE_URL, AIRTABLE_TIMEOUT_SECONDS, AIRTABLE_LIST_TIMEOUT_SECONDS
        - KIDS_SESSION_LIMIT: Sessions kept for the kids view (default: 10)
        - ANTHROPIC_API_KEY, CLAUDE_MODEL, CLAUDE_MAX_TOKENS, CLAUDE_HISTORY_WINDOW
        - STREEMREALM_DATA_DIR: Local state directory (default: ~/.streemrealm)
        - LOG_LEVEL: Logging verbosity (default: "INFO")

        Raises:
            KeyError: If required environment variables are missing
        """
        storage = StorageConfig.from_env()

        base_id = os.environ.get("AIRTABLE_BASE_ID")
        if not base_id:
            raise KeyError(
                "AIRTABLE_BASE_ID environment variable is required. "
                "Example: appXXXXXXXXXXXXXX"
            )

        api_key = os.environ.get("AIRTABLE_API_KEY") or TokenStore(
            storage.airtable_token_path
        ).get()
        if not api_key:
            raise KeyError(
                "AIRTABLE_API_KEY environment variable is required "
                "(or save one with `streemrealm set-token`)."
            )

        claude_key = os.getenv("ANTHROPIC_API_KEY") or TokenStore(
            storage.claude_token_path
        ).get()

        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            kids_session_limit=int(os.getenv("KIDS_SESSION_LIMIT", "10")),
            airtable=AirtableConfig(
                api_key=api_key,
                base_id=base_id,
                base_url=os.getenv("AIRTABLE_BASE_URL", DEFAULT_AIRTABLE_URL),
                timeout_seconds=float(os.getenv("AIRTABLE_TIMEOUT_SECONDS", "30")),
                list_timeout_seconds=float(
                    os.getenv("AIRTABLE_LIST_TIMEOUT_SECONDS", "60")
                ),
            ),
            claude=ClaudeConfig(
                api_key=claude_key,
                model=os.getenv("CLAUDE_MODEL", DEFAULT_CLAUDE_MODEL),
                max_tokens=int(os.getenv("CLAUDE_MAX_TOKENS", "4096")),
                history_window=int(os.getenv("CLAUDE_HISTORY_WINDOW", "20")),
            ),
            storage=storage,
        )


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment.

    Returns:
        AppConfig: Application configuration

    Raises:
        KeyError: If required environment variables are missing
    """
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next call reloads it."""
    global _config
    _config = None
