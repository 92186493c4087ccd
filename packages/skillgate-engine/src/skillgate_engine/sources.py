"""Skill sources: where (metadata, body) records come from."""
from __future__ import annotations

from collections.abc import AsyncIterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import yaml
from skillgate_core.logging import get_logger

from skillgate_engine.types import SkillMetadata

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = get_logger("engine.sources")

_SKILL_FILENAME = "SKILL.md"


@dataclass(frozen=True, slots=True)
class SourceEntry:
    """One item yielded by a source.

    ``error`` is set when the source found something it could not read;
    the registry turns it into a MALFORMED_RECORD rejection.
    """

    metadata: Mapping[str, Any] | SkillMetadata | None
    body: str = ""
    origin: str = ""
    error: str | None = None


@runtime_checkable
class SkillSource(Protocol):
    """A finite, restartable sequence of ``(metadata, body)`` pairs."""

    source_id: str

    def __iter__(self) -> Iterator[Any]: ...


def to_entry(item: Any) -> SourceEntry:
    """Normalize a source item to a SourceEntry.

    Accepts a SourceEntry, a ``(metadata, body)`` pair, or a bare
    metadata mapping / SkillMetadata with an empty body.
    """
    if isinstance(item, SourceEntry):
        return item
    if isinstance(item, (Mapping, SkillMetadata)):
        return SourceEntry(metadata=item)
    if isinstance(item, tuple) and len(item) == 2:
        metadata, body = item
        return SourceEntry(metadata=metadata, body=body)
    return SourceEntry(
        metadata=None,
        error=f"Unrecognized source item of type {type(item).__name__}",
    )


def source_id_of(source: Any) -> str:
    return str(getattr(source, "source_id", None) or f"anonymous:{id(source):x}")


def iter_entries(source: Iterable[Any]) -> list[SourceEntry]:
    """Read a synchronous source to the end."""
    return [to_entry(item) for item in source]


async def aiter_entries(source: Iterable[Any] | AsyncIterable[Any]) -> list[SourceEntry]:
    """Read a source to the end, awaiting it if it is async-iterable."""
    if isinstance(source, AsyncIterable):
        return [to_entry(item) async for item in source]
    return iter_entries(source)


# ── Static source ─────────────────────────────────────────────


class StaticSkillSource:
    """An in-memory source over a fixed list of entries."""

    def __init__(self, entries: Iterable[Any], source_id: str = "static") -> None:
        self._entries = list(entries)
        self.source_id = source_id

    def __iter__(self) -> Iterator[Any]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


# ── Directory source ──────────────────────────────────────────


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split a skill document into its YAML header mapping and body.

    The header is enclosed between two ``---`` lines at the top.

    Raises:
        ValueError: If the header is missing, unterminated, not valid
            YAML, or not a mapping.
    """
    stripped = text.lstrip("\n")
    if not stripped.startswith("---"):
        msg = "missing YAML frontmatter (no opening '---')"
        raise ValueError(msg)

    first_newline = stripped.find("\n")
    if first_newline == -1:
        msg = "missing closing '---' for frontmatter"
        raise ValueError(msg)
    rest = stripped[first_newline + 1 :]
    if rest.startswith("---"):
        frontmatter, body = "", rest[3:]
    else:
        closing_idx = rest.find("\n---")
        if closing_idx == -1:
            msg = "missing closing '---' for frontmatter"
            raise ValueError(msg)
        frontmatter = rest[:closing_idx]
        body = rest[closing_idx + 4 :]  # skip past "\n---"

    try:
        meta = yaml.safe_load(frontmatter) if frontmatter.strip() else {}
    except yaml.YAMLError as exc:
        msg = f"invalid YAML frontmatter: {exc}"
        raise ValueError(msg) from exc
    if not isinstance(meta, dict):
        msg = f"YAML frontmatter must be a mapping, got {type(meta).__name__}"
        raise ValueError(msg)

    return meta, body.strip()


class DirectorySkillSource:
    """Discovers ``SKILL.md`` files under one or more directories.

    Directories are scanned recursively and files are visited in sorted
    order, so repeated iteration yields the same sequence. Files that
    cannot be read or split are yielded as error entries rather than
    skipped, so the load report can name them.
    """

    def __init__(
        self,
        paths: Iterable[Path | str],
        source_id: str | None = None,
    ) -> None:
        self._paths = [Path(p) for p in paths]
        self.source_id = source_id or "dir:" + ",".join(str(p) for p in self._paths)

    @property
    def search_paths(self) -> list[Path]:
        return list(self._paths)

    def skill_files(self) -> list[Path]:
        files: list[Path] = []
        for base in self._paths:
            resolved = base.expanduser().resolve()
            if resolved.is_file() and resolved.name == _SKILL_FILENAME:
                files.append(resolved)
                continue
            if not resolved.is_dir():
                logger.debug("Skipping non-existent path: %s", resolved)
                continue
            files.extend(sorted(resolved.rglob(_SKILL_FILENAME)))
        return files

    def __iter__(self) -> Iterator[SourceEntry]:
        for skill_file in self.skill_files():
            yield self.read(skill_file)

    @staticmethod
    def read(skill_file: Path) -> SourceEntry:
        origin = str(skill_file)
        try:
            text = skill_file.read_text(encoding="utf-8")
            meta, body = split_frontmatter(text)
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            logger.warning("Failed to read skill from %s: %s", skill_file, exc)
            return SourceEntry(metadata=None, origin=origin, error=f"{origin}: {exc}")
        return SourceEntry(metadata=meta, body=body, origin=origin)
