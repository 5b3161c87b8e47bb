"""Tests for local persistence."""

import json

import pytest
from datetime import date

from financeflow.models import (
    Spreadsheet,
    SpreadsheetRow,
    SpreadsheetType,
    Transaction,
    default_columns,
    default_divisions,
)
from financeflow.services import InMemoryKeyValueStore, JsonFileKeyValueStore, LocalFinanceStore


class TestKeyValueStores:
    """Tests for the key-value backends."""

    def test_in_memory_roundtrip(self):
        store = InMemoryKeyValueStore()
        assert store.get("k") is None
        store.set("k", "v")
        assert store.get("k") == "v"
        store.delete("k")
        store.delete("k")
        assert store.keys() == []

    def test_json_file_store_writes_one_file_per_key(self, tmp_path):
        store = JsonFileKeyValueStore(str(tmp_path / "data"))
        assert store.get("financeflow_divisions") is None

        store.set("financeflow_divisions", "[]")
        assert (tmp_path / "data" / "financeflow_divisions.json").read_text() == "[]"
        assert store.get("financeflow_divisions") == "[]"
        assert not list((tmp_path / "data").glob("*.tmp"))

        store.delete("financeflow_divisions")
        store.delete("financeflow_divisions")
        assert store.get("financeflow_divisions") is None


class TestLocalFinanceStore:
    """Tests for typed collection blobs."""

    def test_keys_use_prefix(self, local_store):
        assert local_store.key("transactions") == "financeflow_transactions"
        assert LocalFinanceStore(InMemoryKeyValueStore(), key_prefix="dev_").key("divisions") == "dev_divisions"

    def test_absent_key_loads_none(self, local_store):
        assert local_store.load_transactions() is None
        assert local_store.load_divisions() is None
        assert local_store.load_spreadsheets() is None

    def test_empty_list_is_not_absent(self, local_store):
        local_store.save_divisions([])
        assert local_store.load_divisions() == []

    def test_transactions_roundtrip_with_camel_case_blob(self, local_store, key_value_store):
        transaction = Transaction(
            id="local-1",
            type="expense",
            amount=42,
            date=date(2024, 4, 1),
            is_recurring=True,
            due_date=date(2024, 4, 10),
            status="pending",
        )
        local_store.save_transactions([transaction])

        blob = json.loads(key_value_store.get("financeflow_transactions"))
        assert blob[0]["isRecurring"] is True
        assert blob[0]["dueDate"] == "2024-04-10"

        assert local_store.load_transactions() == [transaction]

    def test_spreadsheets_roundtrip(self, local_store):
        spreadsheet = Spreadsheet(
            id="s1",
            name="Portfolio",
            type=SpreadsheetType.INVESTMENTS,
            columns=default_columns(SpreadsheetType.INVESTMENTS),
            rows=[SpreadsheetRow(id="r1", values={"asset": "ACME", "quantity": "3"})],
        )
        local_store.save_spreadsheets([spreadsheet])
        loaded = local_store.load_spreadsheets()
        assert loaded == [spreadsheet]
        assert loaded[0].rows[0].get("asset") == "ACME"

    def test_divisions_roundtrip(self, local_store):
        local_store.save_divisions(default_divisions())
        assert [d.name for d in local_store.load_divisions()] == [d.name for d in default_divisions()]

    @pytest.mark.parametrize("raw", ["not json", "{\"a\": 1}", "[{\"id\": \"x\"}]"])
    def test_malformed_blob_is_discarded(self, raw):
        store = LocalFinanceStore(InMemoryKeyValueStore({"financeflow_divisions": raw}))
        assert store.load_divisions() is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
