"""Permission gate: enforces a skill's allowed-tools during activation."""
from __future__ import annotations

from typing import TYPE_CHECKING

from skillgate_core.errors import PermissionDeniedError
from skillgate_core.logging import get_logger

from skillgate_engine.tools import ToolCatalog
from skillgate_engine.types import Authorization, DenialReason

if TYPE_CHECKING:
    from collections.abc import Callable

    from skillgate_engine.store import RegistrySnapshot
    from skillgate_engine.types import ActivationToken

logger = get_logger("engine.gate")


class PermissionGate:
    """Checks tool requests made on behalf of an activated skill.

    Checks run in a fixed order and fail closed:

    1. released token  -> ``TOKEN_RELEASED``
    2. stale token     -> ``STALE_TOKEN`` (registry changed underneath it)
    3. unknown tool    -> ``UNKNOWN_TOOL``
    4. not allowlisted -> ``NOT_IN_ALLOW_LIST``

    Every decision lands in the token's audit trail; denials are also
    logged at WARNING.
    """

    def __init__(
        self,
        snapshot: Callable[[], RegistrySnapshot],
        catalog: ToolCatalog | None = None,
    ) -> None:
        self._snapshot = snapshot
        self._catalog = catalog or ToolCatalog()

    @property
    def catalog(self) -> ToolCatalog:
        return self._catalog

    def authorize(self, token: ActivationToken, tool: str) -> Authorization:
        """Decide whether *token*'s skill may invoke *tool*."""
        reason = self._check(token, tool)
        decision = Authorization(
            token_id=token.token_id,
            skill_name=token.skill_name,
            tool=tool,
            reason=reason,
        )
        token._record(decision)

        if reason is None:
            logger.debug("Allowed %s for skill %s", tool, token.skill_name)
        else:
            logger.warning(
                "Denied %r for skill %s (token %s): %s",
                tool,
                token.skill_name,
                token.token_id[:8],
                reason.value,
            )
        return decision

    def require(self, token: ActivationToken, tool: str) -> Authorization:
        """Like :meth:`authorize`, but raise on denial.

        Raises:
            PermissionDeniedError: Carrying the denied Authorization.
        """
        decision = self.authorize(token, tool)
        if decision.denied:
            raise PermissionDeniedError(decision)
        return decision

    def release(self, token: ActivationToken) -> None:
        """Revoke *token*. Releasing twice is a no-op."""
        if token._mark_released():
            logger.debug(
                "Released token %s for skill %s",
                token.token_id[:8],
                token.skill_name,
            )

    def _check(self, token: ActivationToken, tool: str) -> DenialReason | None:
        if token.released:
            return DenialReason.TOKEN_RELEASED

        snapshot = self._snapshot()
        if not snapshot.is_current(token.record, token.generation):
            return DenialReason.STALE_TOKEN

        if not isinstance(tool, str) or not self._catalog.knows(
            tool, snapshot.declared_tools
        ):
            return DenialReason.UNKNOWN_TOOL

        if tool not in token.allowed_tools:
            return DenialReason.NOT_IN_ALLOW_LIST

        return None
