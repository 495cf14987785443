"""
Configuration settings for the observation import/export tools.

**Conceptual**: Settings are strongly-typed frozen dataclasses loaded from
environment variables (and a `.env` file at the project root, via
python-dotenv). Invalid values fail at load time with a message naming the
variable, not later in the middle of an import.

The codecs themselves take plain arguments and never read settings; only the
actions and services pass configured values down.

**Environment variables** (all optional):
  - SEAICE_EXPORT_DIR: directory for exported files (default "data/exports").
  - SEAICE_FILE_ENCODING: encoding used to read uploaded files
    (default "utf-8-sig", which also strips a UTF-8 byte order mark).
  - SEAICE_COORDINATE_DECIMALS: fractional digits written for latitude and
    longitude on export (default 6, minimum 4).
  - SEAICE_LOG_LEVEL: logging level name (default "INFO").
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# Load .env from project root (dev/local environments); real environment wins
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


MIN_COORDINATE_DECIMALS = 4
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ObservationIOSettings:
    """
    Settings for reading and writing observation files.

    Attributes:
        export_dir: Directory where the export action writes files.
        file_encoding: Text encoding used to read uploaded files.
        coordinate_decimals: Fractional digits for exported coordinates.
        log_level: Logging level name used by the actions.
    """
    export_dir: Path = Path("data/exports")
    file_encoding: str = "utf-8-sig"
    coordinate_decimals: int = 6
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.coordinate_decimals < MIN_COORDINATE_DECIMALS:
            raise ValueError(
                f"SEAICE_COORDINATE_DECIMALS must be at least {MIN_COORDINATE_DECIMALS}, "
                f"got: {self.coordinate_decimals}"
            )
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(
                f"SEAICE_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got: {self.log_level}"
            )
        if not self.file_encoding:
            raise ValueError("SEAICE_FILE_ENCODING must not be empty.")

    @property
    def logging_level(self) -> int:
        """Numeric logging level for setup_logger()."""
        return getattr(logging, self.log_level.upper())

    @classmethod
    def from_env(cls) -> "ObservationIOSettings":
        """
        Load settings from SEAICE_* environment variables.

        Raises:
            ValueError: If a variable is present but invalid.

        Usage example:
            >>> # In .env file:
            >>> # SEAICE_EXPORT_DIR=exports
            >>> # SEAICE_COORDINATE_DECIMALS=5
            >>> settings = ObservationIOSettings.from_env()
            >>> settings.coordinate_decimals
            5
        """
        export_dir = os.getenv("SEAICE_EXPORT_DIR", "data/exports")
        file_encoding = os.getenv("SEAICE_FILE_ENCODING", "utf-8-sig")
        decimals_str = os.getenv("SEAICE_COORDINATE_DECIMALS", "6")
        log_level = os.getenv("SEAICE_LOG_LEVEL", "INFO")

        try:
            coordinate_decimals = int(decimals_str)
        except ValueError:
            raise ValueError(
                f"SEAICE_COORDINATE_DECIMALS must be an integer, got: {decimals_str}"
            )

        return cls(
            export_dir=Path(export_dir),
            file_encoding=file_encoding,
            coordinate_decimals=coordinate_decimals,
            log_level=log_level.upper(),
        )


@dataclass(frozen=True)
class Settings:
    """
    Top-level settings object.

    Attributes:
        io: File import/export settings.
    """
    io: ObservationIOSettings = field(default_factory=ObservationIOSettings)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(io=ObservationIOSettings.from_env())


# Lazily loaded singleton; tests call reset_settings() or build Settings directly
_default_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings singleton, loading it from the environment on
    first use.

    Raises:
        ValueError: If any SEAICE_* variable is invalid.
    """
    global _default_settings

    if _default_settings is None:
        _default_settings = Settings.from_env()

    return _default_settings


def reset_settings():
    """Clear the cached settings so the next get_settings() reloads them."""
    global _default_settings
    _default_settings = None
