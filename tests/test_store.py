"""Tests for the copy-on-write skill record store."""
from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from skillgate_core.errors import DuplicateNameError, SkillNotFoundError
from skillgate_engine.records import build_record
from skillgate_engine.store import RegistrySnapshot, SkillRecordStore


def _record(name: str, description: str = "does things", *, tools=(), version: int = 1):
    return build_record(
        {"name": name, "description": description, "allowed-tools": list(tools)},
        source_version=version,
    )


class TestSkillRecordStore:
    """Tests for register/lookup/list/unregister/bulk_replace."""

    def test_register_and_lookup_round_trip(self) -> None:
        """lookup returns the same allowed-tools set that was registered."""
        store = SkillRecordStore()
        store.register(_record("security-checklist", tools=["Read", "Grep", "Glob"]))

        record = store.lookup("security-checklist")
        assert set(record.allowed_tools) == {"Read", "Grep", "Glob"}
        assert "security-checklist" in store
        assert len(store) == 1

    def test_register_duplicate(self) -> None:
        store = SkillRecordStore()
        store.register(_record("dup"))
        with pytest.raises(DuplicateNameError) as exc_info:
            store.register(_record("dup", "other"))
        assert exc_info.value.name == "dup"
        assert store.lookup("dup").description == "does things"

    def test_lookup_missing(self) -> None:
        with pytest.raises(SkillNotFoundError, match="nope"):
            SkillRecordStore().lookup("nope")

    def test_list_is_ordered_and_restartable(self) -> None:
        """list() yields registration order and can be iterated again."""
        store = SkillRecordStore()
        for name in ["c", "a", "b"]:
            store.register(_record(name))

        listing = store.list()
        assert [r.name for r in listing] == ["c", "a", "b"]
        assert [r.name for r in listing] == ["c", "a", "b"]

    def test_unregister(self) -> None:
        store = SkillRecordStore()
        store.register(_record("a"))
        store.register(_record("b"))
        store.unregister("a")
        assert store.snapshot().names == ["b"]
        with pytest.raises(SkillNotFoundError):
            store.unregister("a")

    def test_register_many_reports_duplicates(self) -> None:
        """Batch registration skips taken names and reports their indices."""
        store = SkillRecordStore()
        store.register(_record("live"))

        snapshot, failures = store.register_many([
            (0, _record("new")),
            (1, _record("live")),
            (2, _record("new")),
        ])

        assert snapshot.names == ["live", "new"]
        assert [index for index, _ in failures] == [1, 2]
        assert all(isinstance(exc, DuplicateNameError) for _, exc in failures)

    def test_register_many_empty_batch_keeps_snapshot(self) -> None:
        store = SkillRecordStore()
        before = store.snapshot()
        snapshot, failures = store.register_many([])
        assert snapshot is before
        assert failures == []

    def test_bulk_replace(self) -> None:
        """bulk_replace swaps the whole table and bumps the generation."""
        store = SkillRecordStore()
        store.register(_record("old"))
        before = store.snapshot()

        after = store.bulk_replace([_record("new-a"), _record("new-b")])

        assert after.names == ["new-a", "new-b"]
        assert after.generation == before.generation + 1
        # The old snapshot is untouched
        assert before.names == ["old"]
        with pytest.raises(SkillNotFoundError):
            store.lookup("old")

    def test_bulk_replace_duplicate_leaves_table(self) -> None:
        store = SkillRecordStore()
        store.register(_record("keep"))
        with pytest.raises(DuplicateNameError):
            store.bulk_replace([_record("x"), _record("x")])
        assert store.snapshot().names == ["keep"]

    def test_versions(self) -> None:
        """Every mutation bumps version; only bulk_replace bumps generation."""
        store = SkillRecordStore()
        store.register(_record("a"))
        store.register(_record("b"))
        store.unregister("a")
        snapshot = store.snapshot()
        assert snapshot.version == 3
        assert snapshot.generation == 0

        snapshot = store.bulk_replace([])
        assert snapshot.version == 4
        assert snapshot.generation == 1
        assert len(snapshot) == 0


class TestRegistrySnapshot:
    def test_is_current(self) -> None:
        record = _record("a")
        snapshot = RegistrySnapshot([record], generation=2)
        assert snapshot.is_current(record, 2)
        assert not snapshot.is_current(record, 1)
        assert not snapshot.is_current(_record("a"), 2)

    def test_declared_tools(self) -> None:
        snapshot = RegistrySnapshot([
            _record("a", tools=["Read"]),
            _record("b", tools=["Bash", "Read"]),
        ])
        assert snapshot.declared_tools == {"Read", "Bash"}

    def test_terms_cached(self) -> None:
        snapshot = RegistrySnapshot([_record("a", "Lint Python code")])
        assert snapshot.terms_for("a") == {"lint", "python", "code"}


class TestConcurrentReaders:
    def test_readers_never_see_partial_reload(self) -> None:
        """Every snapshot a reader picks up comes from a single reload."""
        store = SkillRecordStore()
        names = ["a", "b", "c", "d", "e"]
        store.bulk_replace([_record(n, version=0) for n in names])

        stop = threading.Event()
        inconsistent: list[RegistrySnapshot] = []

        def reader() -> int:
            reads = 0
            while not stop.is_set():
                snapshot = store.snapshot()
                versions = {r.source_version for r in snapshot}
                if len(snapshot) != len(names) or len(versions) != 1:
                    inconsistent.append(snapshot)
                reads += 1
            return reads

        with ThreadPoolExecutor(max_workers=4) as pool:
            futures = [pool.submit(reader) for _ in range(3)]
            for version in range(1, 200):
                store.bulk_replace([_record(n, version=version) for n in names])
            stop.set()
            total_reads = sum(f.result() for f in futures)

        assert inconsistent == []
        assert total_reads > 0
        assert store.snapshot().generation == 200
