"""Skillgate Engine: skill registration, ranking, selection and permission gating."""
from __future__ import annotations

from skillgate_engine.engine import SkillEngine
from skillgate_engine.gate import PermissionGate
from skillgate_engine.ranker import RelevanceRanker, jaccard, tokenize
from skillgate_engine.records import build_metadata, build_record, parse_allowed_tools
from skillgate_engine.registry import SkillRegistry
from skillgate_engine.selector import ActivationSelector
from skillgate_engine.sources import (
    DirectorySkillSource,
    SkillSource,
    SourceEntry,
    StaticSkillSource,
    split_frontmatter,
)
from skillgate_engine.store import RegistrySnapshot, SkillRecordStore
from skillgate_engine.tools import BUILTIN_TOOLS, ToolCatalog
from skillgate_engine.types import (
    ActivationToken,
    Authorization,
    DenialReason,
    LoadReport,
    Query,
    QueryResult,
    RankedCandidate,
    Rejection,
    RejectionReason,
    Selection,
    SelectionMode,
    SelectionPolicy,
    SkillMetadata,
    SkillRecord,
)

__all__ = [
    "BUILTIN_TOOLS",
    "ActivationSelector",
    "ActivationToken",
    "Authorization",
    "DenialReason",
    "DirectorySkillSource",
    "LoadReport",
    "PermissionGate",
    "Query",
    "QueryResult",
    "RankedCandidate",
    "RegistrySnapshot",
    "Rejection",
    "RejectionReason",
    "RelevanceRanker",
    "Selection",
    "SelectionMode",
    "SelectionPolicy",
    "SkillEngine",
    "SkillMetadata",
    "SkillRecord",
    "SkillRecordStore",
    "SkillRegistry",
    "SkillSource",
    "SourceEntry",
    "StaticSkillSource",
    "ToolCatalog",
    "build_metadata",
    "build_record",
    "jaccard",
    "parse_allowed_tools",
    "split_frontmatter",
    "tokenize",
]
