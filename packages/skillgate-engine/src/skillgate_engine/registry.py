"""Registry lifecycle: loading, reloading, and versioning skill records."""
from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from skillgate_core.errors import MalformedRecordError
from skillgate_core.logging import get_logger

from skillgate_engine.records import build_record
from skillgate_engine.sources import aiter_entries, iter_entries, source_id_of
from skillgate_engine.store import SkillRecordStore
from skillgate_engine.types import LoadReport, Rejection, RejectionReason

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, Iterable

    from skillgate_engine.sources import SourceEntry
    from skillgate_engine.store import RegistrySnapshot
    from skillgate_engine.types import SkillMetadata, SkillRecord

logger = get_logger("engine.registry")


class SkillRegistry:
    """Owns the record store and every mutation of it.

    Sources are read to the end *before* the store's writer lock is
    taken, so a slow source never holds up readers, and a reload
    becomes visible all at once. Each load or reload from a given
    ``source_id`` stamps its records with the next source version.
    """

    def __init__(
        self,
        *,
        strict_names: bool = False,
        store: SkillRecordStore | None = None,
    ) -> None:
        self._store = store or SkillRecordStore()
        self._strict_names = strict_names
        self._source_versions: dict[str, int] = {}
        self._versions_lock = threading.Lock()

    # ── Reads ─────────────────────────────────────────────────

    @property
    def store(self) -> SkillRecordStore:
        return self._store

    def snapshot(self) -> RegistrySnapshot:
        return self._store.snapshot()

    def lookup(self, name: str) -> SkillRecord:
        return self._store.lookup(name)

    def list_skills(self) -> RegistrySnapshot:
        return self._store.list()

    def source_version(self, source_id: str) -> int:
        """The last version stamped for *source_id* (0 if never loaded)."""
        return self._source_versions.get(source_id, 0)

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, name: object) -> bool:
        return name in self._store

    # ── Single-record mutations ───────────────────────────────

    def register(
        self,
        metadata: Mapping[str, Any] | SkillMetadata,
        body: str = "",
        *,
        source_id: str = "manual",
    ) -> SkillRecord:
        """Validate and register one skill.

        Raises:
            MalformedRecordError: If the metadata is invalid.
            DuplicateNameError: If the name is already registered.
        """
        record = build_record(
            metadata,
            body,
            source_version=max(self.source_version(source_id), 1),
            source_id=source_id,
            strict_names=self._strict_names,
        )
        self._store.register(record)
        logger.info("Registered skill: %s", record.name)
        return record

    def unregister(self, name: str) -> None:
        """Remove one skill; tokens issued for it go stale.

        Raises:
            SkillNotFoundError: If *name* is not registered.
        """
        self._store.unregister(name)
        logger.info("Unregistered skill: %s", name)

    # ── Batch loading ─────────────────────────────────────────

    def load_skills(self, source: Iterable[Any]) -> LoadReport:
        """Add every valid record from *source* to the live registry.

        Malformed records and names that are already taken are rejected
        one by one; the rest are registered in a single swap.
        """
        return self._load(source_id_of(source), iter_entries(source))

    def reload(self, source: Iterable[Any]) -> LoadReport:
        """Replace the whole registry with the contents of *source*.

        Every previously issued activation token goes stale.
        """
        return self._replace(source_id_of(source), iter_entries(source))

    async def load_skills_async(
        self, source: Iterable[Any] | AsyncIterable[Any]
    ) -> LoadReport:
        """:meth:`load_skills` for sources that may be async-iterable."""
        entries = await aiter_entries(source)
        return self._load(source_id_of(source), entries)

    async def reload_async(
        self, source: Iterable[Any] | AsyncIterable[Any]
    ) -> LoadReport:
        """:meth:`reload` for sources that may be async-iterable."""
        entries = await aiter_entries(source)
        return self._replace(source_id_of(source), entries)

    def _load(self, source_id: str, entries: list[SourceEntry]) -> LoadReport:
        version = self._next_source_version(source_id)
        built, rejected = self._build(entries, source_id, version)

        snapshot, failures = self._store.register_many(built)
        rejected.extend(
            Rejection(
                index=index,
                reason=RejectionReason.DUPLICATE_NAME,
                message=str(exc),
                name=exc.name,
            )
            for index, exc in failures
        )
        return self._report(
            "Loaded",
            loaded=len(built) - len(failures),
            rejected=rejected,
            source_id=source_id,
            version=version,
            snapshot=snapshot,
        )

    def _replace(self, source_id: str, entries: list[SourceEntry]) -> LoadReport:
        version = self._next_source_version(source_id)
        built, rejected = self._build(entries, source_id, version)

        # First occurrence of a name wins within the batch.
        seen: set[str] = set()
        records: list[SkillRecord] = []
        for index, record in built:
            if record.name in seen:
                rejected.append(
                    Rejection(
                        index=index,
                        reason=RejectionReason.DUPLICATE_NAME,
                        message=f"Skill '{record.name}' appears more than once in the source",
                        name=record.name,
                    )
                )
                continue
            seen.add(record.name)
            records.append(record)

        snapshot = self._store.bulk_replace(records)
        return self._report(
            "Reloaded",
            loaded=len(records),
            rejected=rejected,
            source_id=source_id,
            version=version,
            snapshot=snapshot,
        )

    def _build(
        self,
        entries: list[SourceEntry],
        source_id: str,
        source_version: int,
    ) -> tuple[list[tuple[int, SkillRecord]], list[Rejection]]:
        built: list[tuple[int, SkillRecord]] = []
        rejected: list[Rejection] = []
        for index, entry in enumerate(entries):
            if entry.error is not None:
                rejected.append(
                    Rejection(
                        index=index,
                        reason=RejectionReason.MALFORMED_RECORD,
                        message=entry.error,
                        name=_raw_name(entry.metadata),
                    )
                )
                continue
            try:
                record = build_record(
                    entry.metadata,
                    entry.body,
                    source_version=source_version,
                    source_id=source_id,
                    strict_names=self._strict_names,
                )
            except MalformedRecordError as exc:
                message = f"{entry.origin}: {exc}" if entry.origin else str(exc)
                rejected.append(
                    Rejection(
                        index=index,
                        reason=RejectionReason.MALFORMED_RECORD,
                        message=message,
                        name=exc.name or _raw_name(entry.metadata),
                    )
                )
                continue
            built.append((index, record))
        return built, rejected

    def _next_source_version(self, source_id: str) -> int:
        with self._versions_lock:
            version = self._source_versions.get(source_id, 0) + 1
            self._source_versions[source_id] = version
        return version

    @staticmethod
    def _report(
        verb: str,
        *,
        loaded: int,
        rejected: list[Rejection],
        source_id: str,
        version: int,
        snapshot: RegistrySnapshot,
    ) -> LoadReport:
        rejected.sort(key=lambda r: r.index)
        for rejection in rejected:
            logger.warning(
                "Rejected record #%d from %s (%s): %s",
                rejection.index,
                source_id,
                rejection.reason.value,
                rejection.message,
            )
        logger.info(
            "%s %d skill(s) from %s (version %d, %d rejected, generation %d)",
            verb,
            loaded,
            source_id,
            version,
            len(rejected),
            snapshot.generation,
        )
        return LoadReport(
            loaded_count=loaded,
            rejected=tuple(rejected),
            source_id=source_id,
            source_version=version,
            generation=snapshot.generation,
        )


def _raw_name(metadata: Any) -> str | None:
    if isinstance(metadata, Mapping):
        name = metadata.get("name")
        return name if isinstance(name, str) and name else None
    return getattr(metadata, "name", None)
