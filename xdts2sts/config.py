"""
Converter settings.

Precedence, lowest to highest:
  1. defaults below
  2. TOML file (explicit path, else ./xdts2sts.toml when present)
  3. environment: XDTS2STS_OUTPUT_DIR, XDTS2STS_WORKERS, XDTS2STS_SPLIT_CUTS,
     XDTS2STS_LOG_FILE, XDTS2STS_LOG_LEVEL
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import toml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "xdts2sts.toml"
ENV_PREFIX = "XDTS2STS_"


class ConfigError(ValueError):
    pass


@dataclass
class ConvertConfig:
    output_dir: str = "converted_sts"
    workers: int = 4
    split_cuts: bool = False
    log_file: Optional[str] = None
    log_level: str = "INFO"


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    raise ConfigError(f"{key}: expected a boolean, got {value!r}")


def _as_workers(value: Any, key: str) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key}: expected an integer, got {value!r}") from None
    if n < 1:
        raise ConfigError(f"{key}: must be >= 1, got {n}")
    return n


def _apply(config: ConvertConfig, values: Mapping[str, Any], origin: str) -> None:
    known = {f.name for f in dataclasses.fields(ConvertConfig)}
    for key, value in values.items():
        if key not in known:
            logger.warning("%s: ignoring unknown setting %r", origin, key)
            continue
        if key == "workers":
            value = _as_workers(value, f"{origin}:{key}")
        elif key == "split_cuts":
            value = _as_bool(value, f"{origin}:{key}")
        elif key == "log_level":
            value = str(value).upper()
        elif value is not None:
            value = str(value)
        setattr(config, key, value)


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = toml.load(f)
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    # Settings may sit at the top level or under [xdts2sts].
    section = data.get("xdts2sts")
    return section if isinstance(section, dict) else data


def load_config(path: Union[str, Path, None] = None, env: Optional[Mapping[str, str]] = None) -> ConvertConfig:
    config = ConvertConfig()

    if path is None and Path(DEFAULT_CONFIG_FILE).is_file():
        path = DEFAULT_CONFIG_FILE
    if path is not None:
        _apply(config, _read_toml(Path(path)), str(path))

    env = os.environ if env is None else env
    overrides = {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in env.items()
        if key.startswith(ENV_PREFIX)
    }
    if overrides:
        _apply(config, overrides, "environment")
    return config
