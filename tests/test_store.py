"""
Tests for the device-local key/value stores.
"""
import json

import pytest

from medica_quiz.auth import AccessManager
from medica_quiz.store import AUTH_KEY, THEME_KEY, JsonFileStore, MemoryStore, StoreError


def test_memory_store_basic():
    store = MemoryStore({"a": "1"})
    assert store.get("a") == "1"
    store.set("b", "2")
    assert store.get("b") == "2"
    store.remove("a")
    store.remove("missing")
    assert store.get("a") is None


def test_json_store_missing_file_is_empty(tmp_path):
    store = JsonFileStore(tmp_path / "nested" / "store.json")
    assert store.get(THEME_KEY) is None


def test_json_store_persists_across_instances(tmp_path):
    path = tmp_path / "store.json"
    JsonFileStore(path).set(THEME_KEY, "dark")

    assert JsonFileStore(path).get(THEME_KEY) == "dark"
    assert json.loads(path.read_text(encoding="utf-8")) == {THEME_KEY: "dark"}


def test_json_store_remove(tmp_path):
    store = JsonFileStore(tmp_path / "store.json")
    store.set(THEME_KEY, "light")
    store.set(AUTH_KEY, "x")
    store.remove(AUTH_KEY)
    assert store.get(AUTH_KEY) is None
    assert store.get(THEME_KEY) == "light"


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_json_store_corrupt_file_raises_on_get(tmp_path, content):
    path = tmp_path / "store.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(StoreError):
        JsonFileStore(path).get(THEME_KEY)


def test_json_store_corrupt_file_is_rewritten_on_set(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFileStore(path)
    store.set(THEME_KEY, "dark")
    assert store.get(THEME_KEY) == "dark"


def test_corrupt_file_means_unauthorized(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("garbage", encoding="utf-8")
    manager = AccessManager(JsonFileStore(path), ["sad"], 1000, clock=lambda: 0)

    assert manager.check_session().authorized is False
    # the purge rewrites the file so the next read succeeds
    assert JsonFileStore(path).get(AUTH_KEY) is None


def test_unlock_round_trip_through_file(tmp_path):
    path = tmp_path / "store.json"
    manager = AccessManager(JsonFileStore(path), ["sad"], 1000, clock=lambda: 500)
    assert manager.unlock(" Sad ")

    reloaded = AccessManager(JsonFileStore(path), ["sad"], 1000, clock=lambda: 600)
    status = reloaded.check_session()
    assert status.authorized is True
    assert status.expires_at == 1500


def test_json_store_unwritable_parent_raises_store_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a regular file", encoding="utf-8")
    store = JsonFileStore(blocker / "store.json")

    with pytest.raises(StoreError):
        store.set(THEME_KEY, "dark")


def test_unlock_with_unwritable_store_is_refused(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a regular file", encoding="utf-8")
    manager = AccessManager(JsonFileStore(blocker / "store.json"), ["sad"], 1000, clock=lambda: 0)

    assert manager.unlock("sad") is False
    assert manager.check_session().authorized is False
