"""Load biograph configuration from TOML (e.g. biograph.toml).

Config file is looked up in order:
  1. Path in BIOGRAPH_CONFIG env var (if set)
  2. biograph.toml in the current working directory

If no file is found, built-in defaults are used. Example::

    [ner]
    model_name = "dslim/bert-base-NER"
    score_threshold = 0.5

    [graph]
    unknown_names = ["Unknown", "Desconocido"]
    sentinel_date = 1900-01-01

    [aliases]
    "Theo van Gogh" = ["Theo", "T. van Gogh"]

    [dictionaries]
    vangogh = "dictionaries/vangogh.yaml"
"""

from __future__ import annotations

import datetime as dt
import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

CONFIG_ENV = "BIOGRAPH_CONFIG"
CONFIG_FILENAME = "biograph.toml"

DEFAULT_MODEL = "dslim/bert-base-NER"
DEFAULT_SCORE_THRESHOLD = 0.5
DEFAULT_MAX_CHARS = 2000
DEFAULT_LOAD_TIMEOUT = 60.0
DEFAULT_ACTIVITY_CAP = 20


class ConfigError(Exception):
    """Raised when a config file exists but cannot be read or validated."""


class NERConfig(BaseModel, frozen=True):
    """Settings for the token-classification model."""

    model_name: str = Field(default=DEFAULT_MODEL, description="Hugging Face model id or local path.")
    score_threshold: float = Field(default=DEFAULT_SCORE_THRESHOLD, ge=0.0, le=1.0)
    max_chars: int = Field(
        default=DEFAULT_MAX_CHARS,
        ge=1,
        description="Letter text is truncated to this many characters before tagging.",
    )
    load_timeout: float = Field(default=DEFAULT_LOAD_TIMEOUT, gt=0.0, description="Seconds.")
    device: str | None = Field(default=None, description='"cpu", "cuda", or None for auto.')


class GraphConfig(BaseModel, frozen=True):
    """Settings for graph synthesis."""

    unknown_names: tuple[str, ...] = Field(
        default=("Unknown", "Desconocido"),
        description="Sender/recipient values meaning 'nobody'.",
    )
    sentinel_date: dt.date = Field(
        default=dt.date(1900, 1, 1),
        description="Date used for letters whose date cannot be parsed.",
    )
    activity_cap: int = Field(default=DEFAULT_ACTIVITY_CAP, ge=0)
    fallback_central_person: str | None = Field(
        default=None,
        description="Central person used when no letter names a sender or recipient.",
    )


class BiographConfig(BaseModel, frozen=True):
    """Top-level configuration."""

    ner: NERConfig = Field(default_factory=NERConfig)
    graph: GraphConfig = Field(default_factory=GraphConfig)
    aliases: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Canonical correspondent name -> spelling/title variants.",
    )
    dictionaries: dict[str, Path] = Field(
        default_factory=dict,
        description="Known-entity dictionary name -> YAML file.",
    )


def _default_config_paths() -> list[Path]:
    """Return paths to check for biograph.toml (first existing wins)."""
    paths: list[Path] = []
    if os.environ.get(CONFIG_ENV):
        paths.append(Path(os.environ[CONFIG_ENV]))
    paths.append(Path.cwd() / CONFIG_FILENAME)
    return paths


def _resolve_dictionary_paths(data: dict[str, Any], base_dir: Path) -> None:
    """Make relative dictionary paths relative to the config file, not the cwd."""
    dictionaries = data.get("dictionaries")
    if not isinstance(dictionaries, dict):
        return
    for name, value in list(dictionaries.items()):
        path = Path(str(value))
        if not path.is_absolute():
            dictionaries[name] = base_dir / path


def parse_config(data: dict[str, Any], base_dir: Path | None = None) -> BiographConfig:
    """Validate a raw config mapping (already parsed from TOML)."""
    data = dict(data)
    if base_dir is not None:
        _resolve_dictionary_paths(data, base_dir)
    try:
        return BiographConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid biograph configuration: {e}") from e


def load_config(path: Path | None = None) -> BiographConfig:
    """Load configuration from TOML.

    Args:
        path: Explicit config file. When None, BIOGRAPH_CONFIG and then
            ./biograph.toml are tried; with neither present, defaults are used.

    Raises:
        ConfigError: If the chosen file cannot be read, is not valid TOML, or
            does not validate. An explicit ``path`` that does not exist is
            also an error; a missing default location is not.
    """
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        candidates = [path]
    else:
        candidates = [p for p in _default_config_paths() if p.is_file()]
    if not candidates:
        return BiographConfig()

    chosen = candidates[0]
    try:
        with open(chosen, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read config file {chosen}: {e}") from e
    return parse_config(data, base_dir=chosen.resolve().parent)
