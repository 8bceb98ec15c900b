"""Configuration schema for SafeApply.

Configuration is loaded from .safeapply.yml in the base directory.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAME = ".safeapply.yml"
DEFAULT_JOURNAL_PATH = ".safeapply/ledger.jsonl"

DEFAULT_BINARY_EXTENSIONS = [
    ".exe", ".dll", ".so", ".dylib", ".bin", ".o", ".a", ".lib",
    ".png", ".jpg", ".jpeg", ".gif", ".ico", ".pdf",
    ".zip", ".tar", ".gz", ".rar",
]


class PolicyConfig(BaseModel):
    """What the executor refuses or warns about."""

    binary_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BINARY_EXTENSIONS)
    )
    large_file_warning_chars: int = 50_000

    @field_validator("binary_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        out: list[str] = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            out.append(ext if ext.startswith(".") else f".{ext}")
        return out

    def is_binary(self, path: str | Path) -> bool:
        return Path(path).suffix.lower() in self.binary_extensions


class PathsConfig(BaseModel):
    """Sandbox resolution behavior."""

    # Lexical checks miss symlinks pointing outside the base path.
    resolve_symlinks: bool = False


class LedgerConfig(BaseModel):
    """Undo ledger sizing and persistence."""

    max_entries: int = 50
    # Relative paths are taken from the base path. None keeps history in memory only.
    journal_path: str | None = None

    @field_validator("max_entries")
    @classmethod
    def validate_max_entries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_entries must be >= 1")
        return v


class TelemetryConfig(BaseModel):
    """Telemetry and logging configuration."""

    enabled: bool = False
    log_path: str = ".safeapply/telemetry.jsonl"


class SafeApplyConfig(BaseModel):
    """Complete SafeApply configuration."""

    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @classmethod
    def load_from_file(cls, config_path: Path | str) -> SafeApplyConfig:
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f)

        return cls(**(data or {}))

    @classmethod
    def load_from_repo(cls, base_path: Path | str) -> SafeApplyConfig:
        """Load configuration from the base directory's .safeapply.yml."""
        config_path = Path(base_path) / CONFIG_FILENAME

        if not config_path.exists():
            return cls()

        return cls.load_from_file(config_path)

    def apply_env_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        if v := os.getenv("SAFEAPPLY_LEDGER_MAX_ENTRIES"):
            self.ledger = LedgerConfig(
                max_entries=int(v), journal_path=self.ledger.journal_path
            )
        if v := os.getenv("SAFEAPPLY_JOURNAL_PATH"):
            self.ledger.journal_path = v
        if os.getenv("SAFEAPPLY_RESOLVE_SYMLINKS") == "1":
            self.paths.resolve_symlinks = True
        if v := os.getenv("SAFEAPPLY_LARGE_FILE_CHARS"):
            self.policy.large_file_warning_chars = int(v)
        if log_path := os.getenv("SAFEAPPLY_TELEMETRY_PATH"):
            self.telemetry.enabled = True
            self.telemetry.log_path = log_path


def load_config(base_path: Path | str) -> SafeApplyConfig:
    """
    Load configuration for a base directory.

    Args:
        base_path: Sandbox directory that may hold a .safeapply.yml

    Returns:
        Loaded and validated configuration
    """
    config = SafeApplyConfig.load_from_repo(base_path)
    config.apply_env_overrides()
    return config
