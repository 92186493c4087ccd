"""Skill record store: copy-on-write table of registered skills."""
from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from skillgate_core.errors import DuplicateNameError, SkillNotFoundError
from skillgate_core.logging import get_logger

from skillgate_engine.ranker import tokenize

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from skillgate_engine.types import SkillRecord

logger = get_logger("engine.store")


class RegistrySnapshot:
    """An immutable point-in-time view of the registry.

    Iterating yields records in registration order and may be repeated.
    ``generation`` changes only on bulk replacement; ``version`` changes
    on every mutation.
    """

    __slots__ = ("_declared", "_index", "_records", "_terms", "generation", "version")

    def __init__(
        self,
        records: Iterable[SkillRecord] = (),
        *,
        generation: int = 0,
        version: int = 0,
        terms: Mapping[str, frozenset[str]] | None = None,
    ) -> None:
        self._records: tuple[SkillRecord, ...] = tuple(records)
        self._index: dict[str, SkillRecord] = {r.name: r for r in self._records}
        known = terms or {}
        self._terms: dict[str, frozenset[str]] = {
            r.name: (
                known[r.name]
                if r.name in known
                else tokenize(r.description)
            )
            for r in self._records
        }
        self._declared = frozenset(t for r in self._records for t in r.allowed_tools)
        self.generation = generation
        self.version = version

    def __iter__(self) -> Iterator[SkillRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def get(self, name: str) -> SkillRecord | None:
        return self._index.get(name)

    def lookup(self, name: str) -> SkillRecord:
        record = self._index.get(name)
        if record is None:
            raise SkillNotFoundError(name)
        return record

    def terms_for(self, name: str) -> frozenset[str]:
        """Pre-tokenized description words for a registered skill."""
        return self._terms[name]

    @property
    def names(self) -> list[str]:
        return [r.name for r in self._records]

    @property
    def declared_tools(self) -> frozenset[str]:
        """Every tool named in any record's allowlist."""
        return self._declared

    def is_current(self, record: SkillRecord, generation: int) -> bool:
        """True if *record* is still the live entry for its name."""
        return generation == self.generation and self._index.get(record.name) is record

    def __repr__(self) -> str:
        return (
            f"RegistrySnapshot(skills={len(self._records)}, "
            f"generation={self.generation}, version={self.version})"
        )


class SkillRecordStore:
    """Single-writer, multi-reader table of SkillRecords keyed by name.

    Writers serialize on a lock and publish a fresh RegistrySnapshot by
    swapping one reference. Readers never lock: whatever snapshot they
    picked up stays consistent for as long as they hold it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot = RegistrySnapshot()

    def snapshot(self) -> RegistrySnapshot:
        return self._snapshot

    def list(self) -> RegistrySnapshot:
        """All current records in registration order (restartable)."""
        return self._snapshot

    def lookup(self, name: str) -> SkillRecord:
        """Return the record for *name*.

        Raises:
            SkillNotFoundError: If *name* is not registered.
        """
        return self._snapshot.lookup(name)

    def __len__(self) -> int:
        return len(self._snapshot)

    def __contains__(self, name: object) -> bool:
        return name in self._snapshot

    def register(self, record: SkillRecord) -> RegistrySnapshot:
        """Append one record.

        Raises:
            DuplicateNameError: If the name is already registered.
        """
        with self._lock:
            current = self._snapshot
            if record.name in current:
                raise DuplicateNameError(record.name)
            snapshot = RegistrySnapshot(
                (*current, record),
                generation=current.generation,
                version=current.version + 1,
                terms=current._terms,
            )
            self._snapshot = snapshot
        logger.debug("Registered skill: %s", record.name)
        return snapshot

    def register_many(
        self,
        records: Iterable[tuple[int, SkillRecord]],
    ) -> tuple[RegistrySnapshot, list[tuple[int, DuplicateNameError]]]:
        """Append a batch of ``(index, record)`` pairs in one swap.

        Records whose name is already taken (live, or earlier in the
        batch) are skipped and returned as ``(index, error)`` pairs.
        """
        failures: list[tuple[int, DuplicateNameError]] = []
        with self._lock:
            snapshot = current = self._snapshot
            taken = set(current.names)
            added: list[SkillRecord] = []
            for index, record in records:
                if record.name in taken:
                    failures.append((index, DuplicateNameError(record.name)))
                    continue
                taken.add(record.name)
                added.append(record)
            if added:
                snapshot = RegistrySnapshot(
                    (*current, *added),
                    generation=current.generation,
                    version=current.version + 1,
                    terms=current._terms,
                )
                self._snapshot = snapshot
        return snapshot, failures

    def unregister(self, name: str) -> RegistrySnapshot:
        """Remove *name* from the table.

        Raises:
            SkillNotFoundError: If *name* is not registered.
        """
        with self._lock:
            current = self._snapshot
            if name not in current:
                raise SkillNotFoundError(name)
            snapshot = RegistrySnapshot(
                (r for r in current if r.name != name),
                generation=current.generation,
                version=current.version + 1,
                terms=current._terms,
            )
            self._snapshot = snapshot
        logger.debug("Unregistered skill: %s", name)
        return snapshot

    def bulk_replace(self, records: Iterable[SkillRecord]) -> RegistrySnapshot:
        """Atomically replace the whole table and bump the generation.

        Raises:
            DuplicateNameError: If *records* repeats a name. Nothing is
                swapped in that case.
        """
        batch = tuple(records)
        seen: set[str] = set()
        for record in batch:
            if record.name in seen:
                raise DuplicateNameError(record.name)
            seen.add(record.name)

        with self._lock:
            current = self._snapshot
            snapshot = RegistrySnapshot(
                batch,
                generation=current.generation + 1,
                version=current.version + 1,
            )
            self._snapshot = snapshot
        logger.debug(
            "Replaced registry table: %d skill(s), generation %d",
            len(batch),
            snapshot.generation,
        )
        return snapshot
