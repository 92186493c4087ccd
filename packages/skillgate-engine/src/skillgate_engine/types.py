"""Value types for the skillgate-engine package."""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from skillgate_core.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from skillgate_core.errors import BudgetOverflowError


# ── Skill records ────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class SkillMetadata:
    """The header of a skill document: identity, ranking text, tool allowlist."""

    name: str
    description: str
    allowed_tools: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SkillRecord:
    """A registered skill.

    The body is opaque: the engine never reads it and only hands it back
    to the caller through an activation token.
    """

    metadata: SkillMetadata
    body: str = ""
    source_version: int = 1
    source_id: str = "static"

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def description(self) -> str:
        return self.metadata.description

    @property
    def allowed_tools(self) -> tuple[str, ...]:
        return self.metadata.allowed_tools


# ── Loading ──────────────────────────────────────────────────────────


class RejectionReason(enum.Enum):
    DUPLICATE_NAME = "duplicate_name"
    MALFORMED_RECORD = "malformed_record"


@dataclass(frozen=True, slots=True)
class Rejection:
    """A source entry that did not make it into the registry."""

    index: int
    reason: RejectionReason
    message: str
    name: str | None = None


@dataclass(frozen=True, slots=True)
class LoadReport:
    """Outcome of a batch load or reload."""

    loaded_count: int
    rejected: tuple[Rejection, ...] = ()
    source_id: str = "static"
    source_version: int = 1
    generation: int = 0

    @property
    def ok(self) -> bool:
        return not self.rejected


# ── Queries and selection ────────────────────────────────────────────


class SelectionMode(enum.Enum):
    TOP1 = "top1"
    TOP_K = "topK"
    THRESHOLD = "threshold"

    @classmethod
    def parse(cls, value: str | SelectionMode) -> SelectionMode:
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "").replace("-", "")
        for mode in cls:
            if mode.value.lower() == normalized:
                return mode
        msg = f"Unknown selection mode: {value!r} (expected top1, topK or threshold)"
        raise ConfigError(msg)


@dataclass(frozen=True, slots=True)
class SelectionPolicy:
    """How ranked candidates become an activation set."""

    mode: SelectionMode = SelectionMode.TOP1
    budget: int = 1
    min_score: float = 1e-6

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", SelectionMode.parse(self.mode))
        if isinstance(self.budget, bool) or not isinstance(self.budget, int):
            msg = f"Selection budget must be an integer, got {self.budget!r}"
            raise ConfigError(msg)
        if self.budget < 0:
            msg = f"Selection budget must be >= 0, got {self.budget}"
            raise ConfigError(msg)
        if isinstance(self.min_score, bool) or not isinstance(self.min_score, (int, float)):
            msg = f"Selection min_score must be a number, got {self.min_score!r}"
            raise ConfigError(msg)
        if not 0.0 <= self.min_score <= 1.0:
            msg = f"Selection min_score must be within [0, 1], got {self.min_score}"
            raise ConfigError(msg)

    def qualifies(self, score: float) -> bool:
        """Zero-score candidates never qualify, whatever ``min_score`` says."""
        return score > 0.0 and score >= self.min_score


@dataclass(frozen=True, slots=True)
class Query:
    """A task description plus optional per-query overrides."""

    text: str
    tool_budget: int | None = None
    score_threshold: float | None = None

    def apply(self, policy: SelectionPolicy) -> SelectionPolicy:
        """Return *policy* with this query's overrides applied."""
        if self.tool_budget is None and self.score_threshold is None:
            return policy
        return SelectionPolicy(
            mode=policy.mode,
            budget=policy.budget if self.tool_budget is None else self.tool_budget,
            min_score=(
                policy.min_score
                if self.score_threshold is None
                else self.score_threshold
            ),
        )


@dataclass(frozen=True, slots=True)
class RankedCandidate:
    """A skill paired with its relevance score and 1-based rank."""

    skill_name: str
    score: float
    rank: int
    matched_terms: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Selection:
    """Candidates chosen by the selector, with any overflow report."""

    candidates: tuple[RankedCandidate, ...] = ()
    qualified_count: int = 0
    overflow: BudgetOverflowError | None = None


# ── Permissions ──────────────────────────────────────────────────────


class DenialReason(enum.Enum):
    NOT_IN_ALLOW_LIST = "not_in_allow_list"
    TOKEN_RELEASED = "token_released"
    UNKNOWN_TOOL = "unknown_tool"
    STALE_TOKEN = "stale_token"


@dataclass(frozen=True, slots=True)
class Authorization:
    """Result of a permission check: allowed, or denied with a reason."""

    token_id: str
    skill_name: str
    tool: str
    reason: DenialReason | None = None

    @property
    def allowed(self) -> bool:
        return self.reason is None

    @property
    def denied(self) -> bool:
        return self.reason is not None


class ActivationToken:
    """Opaque handle for one activated skill.

    Binds a record, a snapshot of its capability set, and the registry
    generation it was issued under. The released flag and the audit
    trail belong to this token alone.
    """

    __slots__ = (
        "_audit",
        "_released",
        "allowed_tools",
        "generation",
        "rank",
        "record",
        "score",
        "token_id",
    )

    def __init__(
        self,
        record: SkillRecord,
        *,
        generation: int,
        rank: int,
        score: float,
    ) -> None:
        self.token_id = uuid.uuid4().hex
        self.record = record
        self.allowed_tools: frozenset[str] = frozenset(record.allowed_tools)
        self.generation = generation
        self.rank = rank
        self.score = score
        self._released = False
        self._audit: list[Authorization] = []

    @property
    def skill_name(self) -> str:
        return self.record.name

    @property
    def body(self) -> str:
        return self.record.body

    @property
    def released(self) -> bool:
        return self._released

    @property
    def audit_trail(self) -> tuple[Authorization, ...]:
        return tuple(self._audit)

    def _mark_released(self) -> bool:
        """Flip the released flag; return False if it was already set."""
        if self._released:
            return False
        self._released = True
        return True

    def _record(self, decision: Authorization) -> None:
        self._audit.append(decision)

    def __repr__(self) -> str:
        state = "released" if self._released else "active"
        return (
            f"ActivationToken({self.skill_name!r}, rank={self.rank}, "
            f"score={self.score:.3f}, {state})"
        )


@dataclass(frozen=True, slots=True)
class QueryResult:
    """The issued activation set for one query.

    Behaves as an ordered sequence of ActivationToken; ranking details and
    any budget overflow report travel alongside.
    """

    tokens: tuple[ActivationToken, ...] = ()
    candidates: tuple[RankedCandidate, ...] = ()
    overflow: BudgetOverflowError | None = None
    generation: int = 0
    policy: SelectionPolicy = field(default_factory=SelectionPolicy)

    def __iter__(self) -> Iterator[ActivationToken]:
        return iter(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)

    def __getitem__(self, index: int) -> ActivationToken:
        return self.tokens[index]

    def __bool__(self) -> bool:
        return bool(self.tokens)

    @property
    def skill_names(self) -> list[str]:
        return [t.skill_name for t in self.tokens]
