"""Configuration management for loanledger.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path
    db_url: Optional[str]  # full SQLAlchemy async URL, overrides db_path
    echo_sql: bool

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "LOANLEDGER_DB_PATH",
            str(Path.home() / ".loanledger" / "loans.db"),
        )
        db_path = Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            db_url=os.environ.get("LOANLEDGER_DB_URL") or None,
            echo_sql=os.environ.get("LOANLEDGER_ECHO_SQL", "").lower() in _TRUE_VALUES,
            log_level=os.environ.get("LOANLEDGER_LOG_LEVEL", "WARNING").upper(),
        )

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL for the configured database."""
        if self.db_url:
            return self.db_url
        return f"sqlite+aiosqlite:///{self.db_path}"

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.log_level not in LOG_LEVELS:
            errors.append(f"Invalid log level: {self.log_level}")

        if self.db_url:
            if "+" not in self.db_url.split("://", 1)[0]:
                errors.append(f"Database URL must name an async driver: {self.db_url}")
        elif not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
