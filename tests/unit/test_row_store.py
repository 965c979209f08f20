"""Tests for SqliteRowStore versioned cells and conditional commits."""

from __future__ import annotations

from pathlib import Path

import pytest

from modelrepo.core.row_store import RowStore, SqliteRowStore
from modelrepo.models.record import RowKey

KEY = RowKey(name="org.acme.model", version="1.0.0")


class TestReadsAndWrites:
    def test_satisfies_protocol(self, store: SqliteRowStore):
        assert isinstance(store, RowStore)

    def test_get_missing_row(self, store: SqliteRowStore):
        assert store.get(KEY) is None

    def test_put_and_get(self, store: SqliteRowStore):
        store.put(KEY, "location", "org/acme/model/1.0.0/model-1.0.0.zip")
        row = store.get(KEY)
        assert row is not None
        assert row.most_recent("location") == "org/acme/model/1.0.0/model-1.0.0.zip"
        assert not row.contains("uploaded")

    def test_structured_values_round_trip(self, store: SqliteRowStore):
        blob = {"b": [1, 2, {"c": None}], "a": "x", "unicode": "héllo"}
        store.put(KEY, "container", blob)
        assert store.get(KEY).most_recent("container") == blob

    def test_history_is_newest_first(self, store: SqliteRowStore):
        for text in ("first", "second", "third"):
            store.put(KEY, "message", text)
        row = store.get(KEY, max_versions=None)
        assert [cell.value for cell in row.history("message")] == ["third", "second", "first"]

    def test_max_versions_limits_history(self, store: SqliteRowStore):
        for text in ("first", "second", "third"):
            store.put(KEY, "message", text)
        row = store.get(KEY, max_versions=2)
        assert [cell.value for cell in row.history("message")] == ["third", "second"]

    def test_field_projection(self, store: SqliteRowStore):
        store.put(KEY, "location", "loc")
        store.put(KEY, "message", "hi")
        row = store.get(KEY, fields={"message"})
        assert row.contains("message")
        assert not row.contains("location")

    def test_delete_row(self, store: SqliteRowStore):
        store.put(KEY, "location", "loc")
        store.put(KEY, "uploaded", True)
        store.delete_row(KEY)
        assert store.get(KEY) is None

    def test_delete_only_touches_one_row(self, store: SqliteRowStore):
        other = RowKey(name="org.acme.model", version="1.0.1")
        store.put(KEY, "uploaded", True)
        store.put(other, "uploaded", True)
        store.delete_row(KEY)
        assert store.get(other) is not None


class TestConditionalPut:
    def test_commit_if_absent_succeeds_once(self, store: SqliteRowStore):
        first = store.begin(KEY)
        first.put("uploaded", False)
        assert first.check_and_commit("uploaded", None) is True

        second = store.begin(KEY)
        second.put("uploaded", False)
        assert second.check_and_commit("uploaded", None) is False

    def test_failed_check_applies_nothing(self, store: SqliteRowStore):
        store.put(KEY, "uploaded", True)
        putter = store.begin(KEY)
        putter.put("location", "should-not-appear")
        putter.put("uploaded", False)
        assert putter.check_and_commit("uploaded", False) is False
        row = store.get(KEY)
        assert not row.contains("location")
        assert row.most_recent("uploaded") is True

    def test_commit_if_equals(self, store: SqliteRowStore):
        store.put(KEY, "uploaded", False)
        putter = store.begin(KEY)
        putter.put("location", "loc")
        putter.put("uploaded", True)
        assert putter.check_and_commit("uploaded", False) is True
        row = store.get(KEY)
        assert row.most_recent("location") == "loc"
        assert row.most_recent("uploaded") is True

    def test_expected_value_on_missing_row_fails(self, store: SqliteRowStore):
        putter = store.begin(KEY)
        putter.put("production_ready", True)
        assert putter.check_and_commit("uploaded", True) is False
        assert store.get(KEY) is None

    def test_cannot_reuse_after_commit(self, store: SqliteRowStore):
        putter = store.begin(KEY)
        putter.put("uploaded", False)
        putter.check_and_commit("uploaded", None)
        with pytest.raises(RuntimeError):
            putter.put("uploaded", True)
        with pytest.raises(RuntimeError):
            putter.check_and_commit("uploaded", False)


class TestScan:
    def test_scan_groups_cells_by_row(self, store: SqliteRowStore):
        keys = [RowKey(name="org.acme.a", version=f"0.0.{i}") for i in range(1, 4)]
        for key in keys:
            store.put(key, "uploaded", True)
            store.put(key, "location", f"loc-{key.version}")
        with store.scan() as scanner:
            rows = list(scanner)
        assert {row.key for row in rows} == set(keys)
        for row in rows:
            assert row.most_recent("location") == f"loc-{row.key.version}"

    def test_scan_empty_table(self, store: SqliteRowStore):
        with store.scan() as scanner:
            assert list(scanner) == []

    def test_scan_is_single_pass(self, store: SqliteRowStore):
        store.put(KEY, "uploaded", True)
        with store.scan() as scanner:
            list(scanner)
            with pytest.raises(RuntimeError):
                iter(scanner)

    def test_closed_scanner_cannot_iterate(self, store: SqliteRowStore):
        scanner = store.scan()
        scanner.close()
        with pytest.raises(RuntimeError):
            iter(scanner)

    def test_scan_field_filter(self, store: SqliteRowStore):
        store.put(KEY, "uploaded", True)
        store.put(KEY, "container", {"x": 1})
        with store.scan(fields={"uploaded"}) as scanner:
            (row,) = list(scanner)
        assert row.contains("uploaded")
        assert not row.contains("container")


class TestTableLifecycle:
    def test_table_exists(self, tmp_path: Path):
        row_store = SqliteRowStore(tmp_path / "db.sqlite", table_name="models")
        assert row_store.table_exists() is False
        row_store.create_table()
        assert row_store.table_exists() is True
        row_store.drop_table()
        assert row_store.table_exists() is False

    def test_meta_round_trip(self, store: SqliteRowStore):
        assert store.get_meta("some.key") is None
        store.put_meta("some.key", "v1")
        store.put_meta("some.key", "v2")
        assert store.get_meta("some.key") == "v2"

    def test_invalid_table_name(self, tmp_path: Path):
        with pytest.raises(ValueError):
            SqliteRowStore(tmp_path / "db.sqlite", table_name="models; DROP TABLE x")
