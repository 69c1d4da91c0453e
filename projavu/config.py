"""
Idea Book Configuration

Configuration dataclasses for projavu: store location and CLI behaviour.
Includes load_config() for reading a JSON config file with silent fallback
to compiled defaults, and resolve_root() for locating the idea book.

Root precedence (invariant):
    --target-path  >  PROJAVU_HOME  >  store.root  >  $XDG_DATA_HOME/projavu
    >  ~/.local/share/projavu
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from projavu.content import BLOB_NAME_LENGTH

APP_NAME = "projavu"
CONFIG_FILENAME = "config.json"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(ValueError):
    """Raised when config values are out of valid range."""

    pass


def _check_range(
    errors: List[str], name: str, value, lo, hi, typ=None,
) -> None:
    """Append an error message if value is out of [lo, hi] or wrong type."""
    if typ is not None and (not isinstance(value, typ) or isinstance(value, bool)):
        errors.append(f"{name}: expected {typ.__name__}, got {type(value).__name__}")
        return
    if value < lo or value > hi:
        errors.append(f"{name}: {value} not in [{lo}, {hi}]")


@dataclass
class StoreConfig:
    """Idea book location."""
    root: str = ""
    table_basename: str = "table.csv"

    def validate(self) -> List[str]:
        """Return list of validation error messages (empty = valid)."""
        errors: List[str] = []
        name = self.table_basename
        if not name or os.sep in name or "/" in name or not name.endswith(".csv"):
            errors.append(
                f"store.table_basename: {name!r} must be a bare *.csv file name"
            )
        elif name == ".csv" or len(name) == BLOB_NAME_LENGTH:
            errors.append(
                f"store.table_basename: {name!r} is reserved for content blobs"
            )
        return errors


@dataclass
class CliConfig:
    """Command-line behaviour."""
    purge_delay_seconds: int = 15
    confirm_delete: bool = True
    fuzzy_distance: int = 2
    min_word_length: int = 3

    def validate(self) -> List[str]:
        """Return list of validation error messages (empty = valid)."""
        errors: List[str] = []
        _check_range(errors, "cli.purge_delay_seconds",
                     self.purge_delay_seconds, 0, 3600, int)
        if not isinstance(self.confirm_delete, bool):
            errors.append(
                f"cli.confirm_delete: expected bool, got {type(self.confirm_delete).__name__}"
            )
        _check_range(errors, "cli.fuzzy_distance",
                     self.fuzzy_distance, 0, 10, int)
        _check_range(errors, "cli.min_word_length",
                     self.min_word_length, 1, 50, int)
        return errors


@dataclass
class BookConfig:
    """Top-level projavu configuration."""
    store: StoreConfig = field(default_factory=StoreConfig)
    cli: CliConfig = field(default_factory=CliConfig)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> BookConfig:
        """Build config from a nested dict (e.g. JSON)."""
        kwargs: Dict[str, Any] = {}
        if "store" in d:
            kwargs["store"] = StoreConfig(**d["store"])
        if "cli" in d:
            kwargs["cli"] = CliConfig(**d["cli"])
        return cls(**kwargs)

    def validate(self) -> List[str]:
        """Validate all config sections. Returns list of error messages."""
        errors: List[str] = []
        errors.extend(self.store.validate())
        errors.extend(self.cli.validate())
        return errors


def load_config(
    path: Optional[str] = None, *, strict: bool = False,
) -> BookConfig:
    """Load config from a JSON file. Returns defaults if file missing/invalid.

    Args:
        path: Path to config.json. If None, returns compiled defaults.
        strict: If True, raise ValidationError on invalid config values.

    Returns:
        BookConfig with values from file or defaults.

    Raises:
        ValidationError: If strict=True and config values are out of range.
    """
    if path is None:
        cfg = BookConfig()
    else:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            cfg = BookConfig.from_dict(data)
        except (FileNotFoundError, json.JSONDecodeError, TypeError, KeyError):
            cfg = BookConfig()

    if strict:
        errors = cfg.validate()
        if errors:
            raise ValidationError(
                f"Config validation failed: {'; '.join(errors)}"
            )

    return cfg


# ---------------------------------------------------------------------------
# Location
# ---------------------------------------------------------------------------


def default_root(env: Optional[Dict[str, str]] = None) -> Path:
    """$XDG_DATA_HOME/projavu, or ~/.local/share/projavu when unset."""
    env = os.environ if env is None else env
    xdg = env.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / APP_NAME
    return Path.home() / ".local" / "share" / APP_NAME


def resolve_root(
    target_path: Optional[str] = None,
    config: Optional[BookConfig] = None,
    env: Optional[Dict[str, str]] = None,
) -> Path:
    """Resolve the idea book root following the documented precedence."""
    env = os.environ if env is None else env
    if target_path:
        return Path(target_path).expanduser()
    if env.get("PROJAVU_HOME"):
        return Path(env["PROJAVU_HOME"]).expanduser()
    if config is not None and config.store.root:
        return Path(config.store.root).expanduser()
    return default_root(env)


def resolve_config_path(
    config_path: Optional[str] = None,
    root: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    """Config file: --config > PROJAVU_CONFIG > <root>/config.json if present."""
    env = os.environ if env is None else env
    if config_path:
        return config_path
    if env.get("PROJAVU_CONFIG"):
        return env["PROJAVU_CONFIG"]
    if root is not None:
        candidate = root / CONFIG_FILENAME
        if candidate.is_file():
            return str(candidate)
    return None
