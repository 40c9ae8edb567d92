"""Extraction settings loading.

Settings come from an optional YAML file (``doctract.yml`` in the working
directory, or the path in ``DOCTRACT_CONFIG``) and are then overridden by
``DOCTRACT_*`` environment variables, including those from a ``.env`` file.
Invalid values raise ``ConfigValidationError`` in strict mode and fall back
to defaults with a warning otherwise.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from extraction.config import OBJECT_SUFFIX, SETUP_ANCHOR, TEMP_DIR_PREFIX

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "doctract.yml"
CONFIG_PATH_ENV = "DOCTRACT_CONFIG"
ENV_PREFIX = "DOCTRACT_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigValidationError(RuntimeError):
    """Raised when strict settings validation fails."""


@dataclass(frozen=True)
class ExtractSettings:
    """Tunables for a documentation extraction run.

    Attributes:
        object_suffix: Suffix of compiled-object inputs to drop before
            target resolution.
        setup_anchor: Name of the named doc chunk treated as module setup.
        strict_setup: Fail a module that declares the setup chunk twice.
        temp_dir_root: Parent of the per-run scratch directory; ``None``
            uses the system temp directory.
        temp_dir_prefix: Prefix of the scratch directory name.
        report_dir: Where run reports are written.
        log_level: Root logging level name.
    """

    object_suffix: str = OBJECT_SUFFIX
    setup_anchor: str = SETUP_ANCHOR
    strict_setup: bool = False
    temp_dir_root: Optional[str] = None
    temp_dir_prefix: str = TEMP_DIR_PREFIX
    report_dir: str = "output/run_reports"
    log_level: str = "INFO"


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def resolve_strict_config_validation(default: bool = False) -> bool:
    """Resolve strict validation mode from ``STRICT_CONFIG_VALIDATION`` env."""
    return _env_flag("STRICT_CONFIG_VALIDATION", default=default)


def _fail(msg: str, strict: bool) -> None:
    if strict:
        raise ConfigValidationError(msg)
    logger.warning("%s; continuing with defaults", msg)


def _coerce(name: str, raw: Any, default: Any, strict: bool) -> Any:
    """Convert a raw config value to the type of the field default."""
    if name == "temp_dir_root":
        if raw is None or raw == "":
            return None
        if isinstance(raw, str):
            return raw
        _fail(f"Setting '{name}' must be a string, got {type(raw).__name__}", strict)
        return default

    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        _fail(f"Setting '{name}' must be a boolean, got {raw!r}", strict)
        return default

    if not isinstance(raw, str) or not raw:
        _fail(f"Setting '{name}' must be a non-empty string, got {raw!r}", strict)
        return default
    if name == "log_level" and not isinstance(logging.getLevelName(raw.upper()), int):
        _fail(f"Unknown log level: {raw}", strict)
        return default
    return raw


def load_settings_file(path: str, strict: bool = False) -> dict[str, Any]:
    """Load the YAML settings mapping.

    In non-strict mode this returns an empty dict on read/parse failures.
    In strict mode this raises ``ConfigValidationError``.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = yaml.safe_load(f)
    except FileNotFoundError as exc:
        msg = f"Settings file not found: {path}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing with defaults", msg)
        return {}
    except yaml.YAMLError as exc:
        msg = f"Failed to parse settings YAML at {path}: {exc}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing with defaults", msg)
        return {}

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        _fail(f"Unexpected settings payload type: {type(payload).__name__}", strict)
        return {}
    return payload


def load_settings(path: Optional[str] = None, strict: Optional[bool] = None) -> ExtractSettings:
    """Build ExtractSettings from defaults, a YAML file and the environment.

    Args:
        path: Settings file. ``None`` uses ``$DOCTRACT_CONFIG`` or
            ``doctract.yml`` when that file exists.
        strict: Raise on invalid settings. ``None`` reads
            ``STRICT_CONFIG_VALIDATION``.

    Raises:
        ConfigValidationError: In strict mode, on any invalid setting.
    """
    load_dotenv()
    if strict is None:
        strict = resolve_strict_config_validation(default=False)

    explicit = path or os.getenv(CONFIG_PATH_ENV)
    raw: dict[str, Any] = {}
    if explicit:
        raw = load_settings_file(explicit, strict=strict)
    elif os.path.isfile(DEFAULT_CONFIG_PATH):
        raw = load_settings_file(DEFAULT_CONFIG_PATH, strict=strict)

    defaults = ExtractSettings()
    known = {f.name for f in fields(ExtractSettings)}
    values: dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            _fail(f"Unknown setting: {key}", strict)
            continue
        values[key] = _coerce(key, value, getattr(defaults, key), strict)

    for name in known:
        env_value = os.getenv(ENV_PREFIX + name.upper())
        if env_value is not None:
            values[name] = _coerce(name, env_value, getattr(defaults, name), strict)

    settings = replace(defaults, **values)
    logger.debug("Loaded settings: %s", settings)
    return settings
