"""Skillgate Core: shared config, errors, and logging."""
from __future__ import annotations

from skillgate_core._version import __version__
from skillgate_core.config import (
    GateConfig,
    LoggingConfig,
    SelectionConfig,
    SkillgateConfig,
    SourcesConfig,
)
from skillgate_core.errors import (
    ActivationError,
    BudgetOverflowError,
    ConfigError,
    DuplicateNameError,
    MalformedRecordError,
    PermissionDeniedError,
    RegistryError,
    SkillgateError,
    SkillNotFoundError,
)
from skillgate_core.logging import configure_logging, get_logger, setup_logging

__all__ = [
    "ActivationError",
    "BudgetOverflowError",
    "ConfigError",
    "DuplicateNameError",
    "GateConfig",
    "LoggingConfig",
    "MalformedRecordError",
    "PermissionDeniedError",
    "RegistryError",
    "SelectionConfig",
    "SkillNotFoundError",
    "SkillgateConfig",
    "SkillgateError",
    "SourcesConfig",
    "__version__",
    "configure_logging",
    "get_logger",
    "setup_logging",
]
