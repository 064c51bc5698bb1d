"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Reverie journal configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: the MCP surface carries a bearer credential for the
    # signed-in user and has no auth layer of its own.
    reverie_host: str = "127.0.0.1"
    reverie_port: int = 8001
    reverie_log_level: str = "info"
    reverie_allow_insecure_bind: bool = False

    # REST backend
    reverie_api_url: str = "http://127.0.0.1:5000"
    reverie_request_timeout_s: float = 10.0

    # Local storage
    db_path: str = "~/.reverie/journal.db"
    persist_session: bool = True

    # Encryption (optional, Fernet key)
    encryption_key: str = ""

    # Sync
    resubmit_pending_on_start: bool = True


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
