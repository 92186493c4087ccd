"""Relevance ranking: scores skill descriptions against a task query."""
from __future__ import annotations

import re
from typing import TYPE_CHECKING

from skillgate_core.logging import get_logger

from skillgate_engine.types import Query, RankedCandidate

if TYPE_CHECKING:
    from collections.abc import Iterable

    from skillgate_engine.types import SkillRecord

logger = get_logger("engine.ranker")

_WORD = re.compile(r"\w+")


def tokenize(text: str) -> frozenset[str]:
    """Case-insensitive word set of *text*.

    Words are runs of Unicode word characters, so accented and CJK
    text tokenize as words too.
    """
    if not text:
        return frozenset()
    return frozenset(_WORD.findall(text.casefold()))


def jaccard(left: frozenset[str], right: frozenset[str]) -> float:
    """Intersection over union; an empty union scores 0."""
    union = len(left | right)
    if union == 0:
        return 0.0
    return len(left & right) / union


class RelevanceRanker:
    """Scores every record's description by token overlap with the query.

    The score is the Jaccard similarity of the two word sets, so it is
    deterministic and always within [0, 1]. Every record is returned,
    including zero scores; filtering is the selector's job. Ties keep
    registration order.
    """

    def rank(
        self,
        query: Query | str,
        records: Iterable[SkillRecord],
    ) -> list[RankedCandidate]:
        """Return one RankedCandidate per record, best first.

        Args:
            query: The task query (or its raw text).
            records: Records in registration order. A RegistrySnapshot
                is preferred since it carries pre-tokenized descriptions.
        """
        text = query.text if isinstance(query, Query) else query
        query_terms = tokenize(text)
        cached = getattr(records, "terms_for", None)

        scored: list[tuple[float, str, tuple[str, ...]]] = []
        for record in records:
            terms = cached(record.name) if cached else tokenize(record.description)
            score = jaccard(query_terms, terms)
            matched = tuple(sorted(query_terms & terms))
            scored.append((score, record.name, matched))

        # sort() is stable, so equal scores stay in registration order
        scored.sort(key=lambda item: -item[0])

        candidates = [
            RankedCandidate(
                skill_name=name,
                score=score,
                rank=position,
                matched_terms=matched,
            )
            for position, (score, name, matched) in enumerate(scored, start=1)
        ]
        if candidates:
            logger.debug(
                "Ranked %d skill(s) for %r; best %s (score=%.3f)",
                len(candidates),
                text,
                candidates[0].skill_name,
                candidates[0].score,
            )
        return candidates
