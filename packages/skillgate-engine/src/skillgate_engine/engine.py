"""Skill engine: the caller-facing API over registry, ranker, selector and gate."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from skillgate_core.config import SkillgateConfig
from skillgate_core.logging import get_logger

from skillgate_engine.gate import PermissionGate
from skillgate_engine.ranker import RelevanceRanker
from skillgate_engine.registry import SkillRegistry
from skillgate_engine.selector import ActivationSelector
from skillgate_engine.tools import ToolCatalog
from skillgate_engine.types import (
    ActivationToken,
    Query,
    QueryResult,
    SelectionPolicy,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, Iterable, Mapping

    from skillgate_engine.store import RegistrySnapshot
    from skillgate_engine.types import (
        Authorization,
        LoadReport,
        RankedCandidate,
        SkillMetadata,
        SkillRecord,
    )

logger = get_logger("engine")


class SkillEngine:
    """Selects skills for a task and polices what they may do.

    Typical use::

        engine = SkillEngine()
        engine.load_skills(DirectorySkillSource(["./skills"]))
        for token in engine.query("write a multi-stage Dockerfile"):
            if engine.authorize(token, "Bash").allowed:
                ...
            engine.release(token)

    Each query works against the snapshot current when it started, so
    a concurrent reload never produces a mixed result. Tokens issued
    before a reload are denied as stale afterwards.
    """

    def __init__(
        self,
        config: SkillgateConfig | None = None,
        *,
        registry: SkillRegistry | None = None,
        catalog: ToolCatalog | None = None,
        ranker: RelevanceRanker | None = None,
        selector: ActivationSelector | None = None,
    ) -> None:
        self._config = config or SkillgateConfig()
        self._registry = registry or SkillRegistry(
            strict_names=self._config.sources.strict_names
        )
        self._ranker = ranker or RelevanceRanker()
        self._selector = selector or ActivationSelector()
        self._gate = PermissionGate(
            self._registry.snapshot,
            catalog
            or ToolCatalog(
                self._config.gate.extra_tools,
                include_builtin=self._config.gate.include_builtin_tools,
            ),
        )
        selection = self._config.selection
        self._default_policy = SelectionPolicy(
            mode=selection.mode,
            budget=selection.budget,
            min_score=selection.min_score,
        )

    @classmethod
    def from_config(cls, project_dir: Any = None) -> SkillEngine:
        """Build an engine from layered TOML configuration."""
        return cls(SkillgateConfig.load(project_dir))

    @property
    def config(self) -> SkillgateConfig:
        return self._config

    @property
    def registry(self) -> SkillRegistry:
        return self._registry

    @property
    def gate(self) -> PermissionGate:
        return self._gate

    @property
    def default_policy(self) -> SelectionPolicy:
        return self._default_policy

    # ── Registry ──────────────────────────────────────────────

    def load_skills(self, source: Iterable[Any]) -> LoadReport:
        return self._registry.load_skills(source)

    def reload(self, source: Iterable[Any]) -> LoadReport:
        return self._registry.reload(source)

    async def load_skills_async(
        self, source: Iterable[Any] | AsyncIterable[Any]
    ) -> LoadReport:
        return await self._registry.load_skills_async(source)

    async def reload_async(
        self, source: Iterable[Any] | AsyncIterable[Any]
    ) -> LoadReport:
        return await self._registry.reload_async(source)

    def register(
        self,
        metadata: Mapping[str, Any] | SkillMetadata,
        body: str = "",
    ) -> SkillRecord:
        return self._registry.register(metadata, body)

    def unregister(self, name: str) -> None:
        self._registry.unregister(name)

    def lookup(self, name: str) -> SkillRecord:
        return self._registry.lookup(name)

    def list_skills(self) -> RegistrySnapshot:
        return self._registry.list_skills()

    # ── Queries ───────────────────────────────────────────────

    def rank(self, text: str) -> list[RankedCandidate]:
        """Score every registered skill against *text* without selecting."""
        return self._ranker.rank(Query(text), self._registry.snapshot())

    def query(
        self,
        text: str,
        policy: SelectionPolicy | None = None,
        *,
        tool_budget: int | None = None,
        score_threshold: float | None = None,
    ) -> QueryResult:
        """Rank, select, and issue activation tokens for a task.

        Args:
            text: Free-text description of the task.
            policy: Selection policy; defaults to the configured one.
            tool_budget: Overrides the policy's budget for this query.
            score_threshold: Overrides the policy's min_score.

        Returns:
            A QueryResult iterating over the issued tokens in rank
            order. It is empty (not an error) when nothing qualifies.
        """
        query = Query(text, tool_budget=tool_budget, score_threshold=score_threshold)
        effective = query.apply(policy or self._default_policy)
        snapshot = self._registry.snapshot()

        candidates = self._ranker.rank(query, snapshot)
        logger.debug(
            "Ranked %d candidate(s) against generation %d",
            len(candidates),
            snapshot.generation,
        )

        selection = self._selector.select(candidates, effective)
        tokens = tuple(
            ActivationToken(
                snapshot.lookup(candidate.skill_name),
                generation=snapshot.generation,
                rank=candidate.rank,
                score=candidate.score,
            )
            for candidate in selection.candidates
        )

        logger.info(
            "Issued %d token(s) for %r: %s",
            len(tokens),
            text,
            ", ".join(t.skill_name for t in tokens) or "no applicable skill",
        )
        return QueryResult(
            tokens=tokens,
            candidates=tuple(candidates),
            overflow=selection.overflow,
            generation=snapshot.generation,
            policy=effective,
        )

    def activate(self, name: str) -> ActivationToken:
        """Issue a token for a skill chosen by name, bypassing ranking.

        Explicit activations carry rank 0 and score 1.0.

        Raises:
            SkillNotFoundError: If *name* is not registered.
        """
        snapshot = self._registry.snapshot()
        token = ActivationToken(
            snapshot.lookup(name),
            generation=snapshot.generation,
            rank=0,
            score=1.0,
        )
        logger.info("Activated skill by name: %s", name)
        return token

    # ── Permissions ───────────────────────────────────────────

    def authorize(self, token: ActivationToken, tool: str) -> Authorization:
        return self._gate.authorize(token, tool)

    def require(self, token: ActivationToken, tool: str) -> Authorization:
        return self._gate.require(token, tool)

    def release(self, token: ActivationToken) -> None:
        self._gate.release(token)
