"""Activation selection: turns ranked candidates into a bounded set."""
from __future__ import annotations

from typing import TYPE_CHECKING

from skillgate_core.errors import BudgetOverflowError
from skillgate_core.logging import get_logger

from skillgate_engine.types import Selection, SelectionMode, SelectionPolicy

if TYPE_CHECKING:
    from collections.abc import Sequence

    from skillgate_engine.types import RankedCandidate

logger = get_logger("engine.selector")


class ActivationSelector:
    """Applies a SelectionPolicy to a ranked candidate list.

    Modes:
    1. **top1** -- the best qualifying candidate, if any.
    2. **topK** -- the first ``budget`` qualifying candidates.
    3. **threshold** -- every qualifying candidate, capped at ``budget``;
       anything cut off is reported as a BudgetOverflowError on the
       result instead of being dropped silently.

    A candidate qualifies when its score is positive and at least
    ``min_score``. Candidates are taken in rank order, so ties resolve
    the same way the ranker broke them.
    """

    def select(
        self,
        candidates: Sequence[RankedCandidate],
        policy: SelectionPolicy | None = None,
    ) -> Selection:
        policy = policy or SelectionPolicy()
        qualified = [c for c in candidates if policy.qualifies(c.score)]

        if not qualified:
            return Selection()

        if policy.mode is SelectionMode.TOP1:
            chosen = qualified[: min(1, policy.budget)]
        else:
            chosen = qualified[: policy.budget]

        overflow: BudgetOverflowError | None = None
        if policy.mode is SelectionMode.THRESHOLD and len(qualified) > policy.budget:
            overflow = BudgetOverflowError(policy.budget, qualified[policy.budget :])
            logger.warning("Selection over budget: %s", overflow)

        logger.debug(
            "Selected %d of %d qualifying candidate(s) (mode=%s, budget=%d)",
            len(chosen),
            len(qualified),
            policy.mode.value,
            policy.budget,
        )
        return Selection(
            candidates=tuple(chosen),
            qualified_count=len(qualified),
            overflow=overflow,
        )
