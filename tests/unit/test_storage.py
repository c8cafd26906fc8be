"""
Tests for sysperf.storage.JsonFileStore.
"""

import json

import pytest

from sysperf.errors import ConfigurationError
from sysperf.interfaces.storage import KeyValueStoreInterface
from sysperf.storage import JsonFileStore


@pytest.fixture
def store(tmp_path, mock_logger):
    return JsonFileStore(str(tmp_path / "store.json"), logger=mock_logger)


class TestJsonFileStore:

    def test_implements_interface(self, store):
        assert isinstance(store, KeyValueStoreInterface)

    def test_missing_key(self, store):
        assert store.get("benchmark/none") is None

    def test_set_and_get(self, store, mock_logger):
        store.set("benchmark/20250111_143000", {"total": 5, "failed": 1})
        assert store.get("benchmark/20250111_143000") == {"total": 5, "failed": 1}
        assert mock_logger.has_message('verbose', 'Stored benchmark/20250111_143000')

    def test_values_stored_as_json(self, store):
        store.set("tags", ("a", "b"))
        assert store.get("tags") == ["a", "b"]

    def test_persists_across_instances(self, store, tmp_path):
        store.set("k", 1)
        assert JsonFileStore(str(tmp_path / "store.json")).get("k") == 1

    def test_overwrite(self, store):
        store.set("k", 1)
        store.set("k", 2)
        assert store.get("k") == 2

    def test_delete(self, store):
        store.set("k", 1)
        assert store.delete("k") is True
        assert store.delete("k") is False
        assert store.get("k") is None

    def test_keys_with_prefix(self, store):
        store.set("benchmark/2", {})
        store.set("benchmark/1", {})
        store.set("metrics/1", {})
        assert list(store.keys("benchmark/")) == ["benchmark/1", "benchmark/2"]
        assert len(list(store.keys())) == 3

    def test_creates_parent_directory(self, tmp_path):
        store = JsonFileStore(str(tmp_path / "nested" / "dir" / "store.json"))
        store.set("k", "v")
        assert (tmp_path / "nested" / "dir" / "store.json").exists()

    def test_no_temporary_files_left(self, store, tmp_path):
        store.set("k", "v")
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]

    def test_empty_file_is_empty_store(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("")
        assert JsonFileStore(str(path)).get("k") is None

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            JsonFileStore(str(path)).get("k")

    def test_non_object_document(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text(json.dumps([1, 2, 3]))
        with pytest.raises(ConfigurationError):
            JsonFileStore(str(path)).set("k", 1)
