"""Record factory: turns raw source metadata into validated skill records."""
from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from skillgate_core.errors import MalformedRecordError

from skillgate_engine.types import SkillMetadata, SkillRecord

_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")
_NAME_MAX_LENGTH = 64
_DESCRIPTION_MAX_LENGTH = 1024

# Header spellings seen in the wild for the allowlist field.
_ALLOWED_TOOLS_KEYS = ("allowed-tools", "allowed_tools", "allowedTools")

_TOOL_SEPARATOR = re.compile(r"[,\s]+")


def parse_allowed_tools(value: Any, *, name: str | None = None) -> tuple[str, ...]:
    """Coerce an ``allowed-tools`` value to an ordered, de-duplicated tuple.

    Accepts a list/tuple/set of strings, or a single string of comma- and/or
    whitespace-separated tokens. ``None`` means no tools.

    Raises:
        MalformedRecordError: If a member is not a string.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        items: list[Any] = [t for t in _TOOL_SEPARATOR.split(value) if t]
    elif isinstance(value, (list, tuple)):
        items = list(value)
    elif isinstance(value, (set, frozenset)):
        items = sorted(value, key=str)
    else:
        msg = (
            f"allowed-tools must be a list or a comma-separated string, "
            f"got {type(value).__name__}"
        )
        raise MalformedRecordError(msg, name=name)

    seen: set[str] = set()
    tools: list[str] = []
    for item in items:
        if not isinstance(item, str):
            msg = f"allowed-tools entry is not a string: {item!r}"
            raise MalformedRecordError(msg, name=name)
        token = item.strip()
        if not token or token in seen:
            continue
        seen.add(token)
        tools.append(token)
    return tuple(tools)


def naming_errors(metadata: SkillMetadata) -> list[str]:
    """Return strict naming violations for *metadata* (empty when clean)."""
    errors: list[str] = []
    if len(metadata.name) > _NAME_MAX_LENGTH:
        errors.append(
            f"Skill name exceeds {_NAME_MAX_LENGTH} characters: "
            f"'{metadata.name}' ({len(metadata.name)} chars)."
        )
    if not _NAME_PATTERN.match(metadata.name):
        errors.append(
            f"Skill name must be lowercase alphanumeric with hyphens: "
            f"'{metadata.name}'."
        )
    if len(metadata.description) > _DESCRIPTION_MAX_LENGTH:
        errors.append(
            f"Skill description exceeds {_DESCRIPTION_MAX_LENGTH} characters "
            f"({len(metadata.description)} chars)."
        )
    return errors


def build_metadata(raw: Mapping[str, Any] | SkillMetadata) -> SkillMetadata:
    """Validate a raw metadata mapping (or pass through a SkillMetadata).

    Raises:
        MalformedRecordError: If ``name`` or ``description`` is missing,
            empty, or not a string, or ``allowed-tools`` is malformed.
    """
    if isinstance(raw, SkillMetadata):
        name, description, tools = raw.name, raw.description, raw.allowed_tools
    elif isinstance(raw, Mapping):
        name = raw.get("name")
        description = raw.get("description")
        tools = next(
            (raw[key] for key in _ALLOWED_TOOLS_KEYS if key in raw), None
        )
    else:
        msg = f"Skill metadata must be a mapping, got {type(raw).__name__}"
        raise MalformedRecordError(msg)

    if not isinstance(name, str) or not name.strip():
        msg = "Skill metadata missing required field 'name'"
        raise MalformedRecordError(msg)
    name = name.strip()
    if not isinstance(description, str) or not description.strip():
        msg = f"Skill '{name}' missing required field 'description'"
        raise MalformedRecordError(msg, name=name)

    return SkillMetadata(
        name=name,
        description=description.strip(),
        allowed_tools=parse_allowed_tools(tools, name=name),
    )


def build_record(
    raw: Mapping[str, Any] | SkillMetadata,
    body: Any = "",
    *,
    source_version: int = 1,
    source_id: str = "static",
    strict_names: bool = False,
) -> SkillRecord:
    """Build an immutable SkillRecord from one source entry.

    Raises:
        MalformedRecordError: On any metadata problem, or naming violations
            when *strict_names* is set.
    """
    metadata = build_metadata(raw)
    if strict_names:
        errors = naming_errors(metadata)
        if errors:
            msg = f"Skill '{metadata.name}' validation failed: {'; '.join(errors)}"
            raise MalformedRecordError(msg, name=metadata.name)
    if body is None:
        body = ""
    elif not isinstance(body, str):
        msg = f"Skill '{metadata.name}' body must be text, got {type(body).__name__}"
        raise MalformedRecordError(msg, name=metadata.name)
    return SkillRecord(
        metadata=metadata,
        body=body,
        source_version=source_version,
        source_id=source_id,
    )
