"""Core shared settings, logging and reporting utilities."""

from core.structured_logging import (
    configure_structured_logging,
    get_run_id,
    module_scope,
    phase_scope,
    set_run_id,
)
from core.settings import (
    ConfigValidationError,
    ExtractSettings,
    load_settings,
    resolve_strict_config_validation,
)
from core.run_artifacts import build_extraction_report, write_run_report

__all__ = [
    "configure_structured_logging",
    "get_run_id",
    "module_scope",
    "phase_scope",
    "set_run_id",
    "ConfigValidationError",
    "ExtractSettings",
    "load_settings",
    "resolve_strict_config_validation",
    "build_extraction_report",
    "write_run_report",
]
