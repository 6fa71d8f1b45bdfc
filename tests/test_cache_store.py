from datetime import datetime, timedelta, timezone

import pytest

from issuecache.cache_store import CacheStore, Freshness, repository_key
from issuecache.errors import CacheWriteFailed
from issuecache.models import IssueRecord
from issuecache.storage import JsonFileStorage, MemoryStorage

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
KEY = repository_key("octo", "widgets")


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kw: float) -> None:
        self.now = self.now + timedelta(**kw)


def _store(clock: _Clock | None = None) -> CacheStore:
    return CacheStore(MemoryStorage(), clock=clock or _Clock(T0))


def _records(*numbers: int) -> list[IssueRecord]:
    return [IssueRecord(number=n, title=f"Issue {n}") for n in numbers]


def test_repository_key_format():
    assert repository_key("octo", "widgets") == "githubIssues_octo_widgets"


def test_get_missing_returns_none_and_absent():
    store = _store()
    assert store.get(KEY) is None
    assert store.freshness(None) is Freshness.ABSENT


def test_put_then_get_round_trips_collections():
    clock = _Clock(T0)
    store = _store(clock)
    pr = IssueRecord(number=3, title="PR", extra={"pull_request": {"url": "x"}})

    assert store.put(KEY, _records(1, 2), [pr]) is True
    entry = store.get(KEY)

    assert entry is not None
    assert entry.fetched_at == T0
    assert [r.number for r in entry.issues] == [1, 2]
    assert entry.pull_requests[0].extra == {"pull_request": {"url": "x"}}


@pytest.mark.parametrize(
    ("minutes", "expected"),
    [
        (0, Freshness.FRESH),
        (2, Freshness.FRESH),
        (5, Freshness.STALE),
        (20, Freshness.STALE),
        (30, Freshness.EXPIRED),
        (40, Freshness.EXPIRED),
    ],
)
def test_freshness_thresholds(minutes, expected):
    clock = _Clock(T0)
    store = _store(clock)
    store.put(KEY, _records(1), [])
    clock.advance(minutes=minutes)

    assert store.freshness(store.get(KEY)) is expected


def test_expired_entry_is_never_deleted():
    clock = _Clock(T0)
    store = _store(clock)
    store.put(KEY, _records(1), [])
    clock.advance(days=30)

    entry = store.get(KEY)
    assert entry is not None
    assert store.age(entry) == timedelta(days=30)


def test_out_of_order_put_is_rejected():
    store = _store()
    later = T0 + timedelta(seconds=10)
    assert store.put(KEY, _records(2), [], fetched_at=later)

    assert store.put(KEY, _records(1), [], fetched_at=T0) is False
    entry = store.get(KEY)
    assert entry is not None
    assert [r.number for r in entry.issues] == [2]
    assert entry.fetched_at == later


def test_put_with_equal_timestamp_replaces():
    store = _store()
    store.put(KEY, _records(1), [], fetched_at=T0)
    assert store.put(KEY, _records(9), [], fetched_at=T0) is True
    assert [r.number for r in store.get(KEY).issues] == [9]


def test_clear_then_put_is_accepted():
    clock = _Clock(T0)
    store = _store(clock)
    store.put(KEY, _records(1), [])
    store.clear(KEY)
    assert store.get(KEY) is None

    clock.advance(seconds=1)
    assert store.put(KEY, _records(2), []) is True
    assert store.get(KEY).fetched_at >= T0


def test_keys_are_isolated_per_repository():
    store = _store()
    other = repository_key("octo", "gadgets")
    store.put(KEY, _records(1), [])
    store.put(other, _records(2), [])
    store.clear(KEY)

    assert store.get(KEY) is None
    assert [r.number for r in store.get(other).issues] == [2]


def test_malformed_entry_reads_as_missing():
    storage = MemoryStorage()
    storage.write(KEY, {"issues": []})
    store = CacheStore(storage)
    assert store.get(KEY) is None


def test_replace_keeps_timestamp():
    store = _store()
    store.put(KEY, _records(1), [])
    entry = store.get(KEY)
    entry.issues[0].title = "Renamed"
    store.replace(entry)

    stored = store.get(KEY)
    assert stored.issues[0].title == "Renamed"
    assert stored.fetched_at == T0


def test_fresh_window_cannot_exceed_usable_window():
    with pytest.raises(ValueError):
        CacheStore(MemoryStorage(), fresh_for=timedelta(hours=1), usable_for=timedelta(minutes=5))


def test_patch_record_updates_one_cached_record():
    store = _store()
    store.put(KEY, _records(1, 2), [])

    assert store.patch_record(KEY, 2, body="- [x] done") is True
    assert store.patch_record(KEY, 7, body="ignored") is False
    assert store.patch_record(repository_key("octo", "other"), 1, title="x") is False

    stored = store.get(KEY)
    assert stored.find(2).body == "- [x] done"
    assert stored.fetched_at == T0


def test_unwritable_storage_raises_cache_write_failed(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    store = CacheStore(JsonFileStorage(blocker / "cache.json"), clock=_Clock(T0))

    with pytest.raises(CacheWriteFailed) as excinfo:
        store.put(KEY, _records(1), [])

    assert isinstance(excinfo.value.__cause__, OSError)
    assert store.get(KEY) is None
