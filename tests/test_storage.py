import json

from issuecache.storage import JsonFileStorage, MemoryStorage


def test_memory_storage_read_write_erase():
    storage = MemoryStorage()
    storage.write("b", {"v": 2})
    storage.write("a", {"v": 1})

    assert storage.read("a") == {"v": 1}
    assert storage.keys() == ["a", "b"]
    storage.erase("a")
    storage.erase("missing")
    assert storage.read("a") is None


def test_json_storage_persists_across_instances(tmp_path):
    path = tmp_path / "nested" / "cache.json"
    JsonFileStorage(path).write("githubIssues_o_r", {"timestamp": 1.5, "issues": []})

    reopened = JsonFileStorage(path)
    assert reopened.read("githubIssues_o_r") == {"timestamp": 1.5, "issues": []}
    assert reopened.keys() == ["githubIssues_o_r"]

    doc = json.loads(path.read_text())
    assert doc["version"] == 1
    assert not path.with_suffix(".json.tmp").exists()


def test_json_storage_erase_only_target_key(tmp_path):
    storage = JsonFileStorage(tmp_path / "cache.json")
    storage.write("one", {"x": 1})
    storage.write("two", {"x": 2})
    storage.erase("one")

    assert storage.read("one") is None
    assert storage.read("two") == {"x": 2}


def test_json_storage_missing_or_corrupt_file_reads_empty(tmp_path):
    path = tmp_path / "cache.json"
    storage = JsonFileStorage(path)
    assert storage.read("k") is None

    path.write_text("{not json")
    assert storage.read("k") is None
    assert storage.keys() == []

    path.write_text(json.dumps({"version": 1, "entries": ["bad"]}))
    assert storage.read("k") is None


def test_json_storage_recovers_from_corrupt_file_on_write(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("garbage")
    storage = JsonFileStorage(path)
    storage.write("k", {"x": 1})
    assert storage.read("k") == {"x": 1}
