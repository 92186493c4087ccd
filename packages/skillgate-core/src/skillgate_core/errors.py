from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence


class SkillgateError(Exception):
    """Base exception for all Skillgate errors."""


# ── Config Errors ────────────────────────────────────────────────────

class ConfigError(SkillgateError):
    """Invalid or missing configuration."""


# ── Registry Errors ──────────────────────────────────────────────────

class RegistryError(SkillgateError):
    """Base for skill registration and lookup errors."""


class DuplicateNameError(RegistryError):
    """A skill with the same name is already registered."""

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        super().__init__(message or f"Skill '{name}' is already registered")


class MalformedRecordError(RegistryError):
    """A source record could not be turned into a skill record."""

    def __init__(
        self,
        message: str,
        *,
        name: str | None = None,
        index: int | None = None,
    ) -> None:
        self.name = name
        self.index = index
        super().__init__(message)


class SkillNotFoundError(RegistryError):
    """Skill not found in the live registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Skill '{name}' is not registered")


# ── Activation Errors ────────────────────────────────────────────────

class ActivationError(SkillgateError):
    """Base for selection and permission errors."""


class PermissionDeniedError(ActivationError):
    """A tool invocation was denied for an activated skill."""

    def __init__(self, authorization: Any) -> None:
        self.authorization = authorization
        super().__init__(
            f"Tool '{authorization.tool}' denied for skill "
            f"'{authorization.skill_name}': {authorization.reason.value}"
        )


class BudgetOverflowError(ActivationError):
    """More candidates qualified than the activation budget allows.

    Reported alongside a truncated selection rather than raised.
    """

    def __init__(self, budget: int, dropped: Sequence[Any]) -> None:
        self.budget = budget
        self.dropped = tuple(dropped)
        names = ", ".join(c.skill_name for c in self.dropped)
        super().__init__(
            f"{len(self.dropped)} candidate(s) over budget {budget} dropped: {names}"
        )
