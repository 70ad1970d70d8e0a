import json

import pytest

from application.services.stats_service import StatsService
from domain.common.exceptions import BackendUnavailableException
from domain.stats import StatsLedger
from infrastructure.ledger import JsonStatsStore


def test_record_presign_counts_contributors_once():
    ledger = StatsLedger()
    ledger.record_presign(100, "alice")
    ledger.record_presign(50, "alice")
    ledger.record_presign(None, "bob")

    assert ledger.presign_count == 3
    assert ledger.object_count == 3
    assert ledger.bytes_requested == 150
    assert ledger.contributor_count == 2
    assert ledger.last_updated is not None


def test_resync_overwrites_counters_but_keeps_contributors():
    ledger = StatsLedger(object_count=40, bytes_stored=9999, presign_count=41, contributors={"a", "b"})
    ledger.resync([10, 20, 30])

    assert ledger.object_count == 3
    assert ledger.bytes_stored == 60
    assert ledger.presign_count == 41
    assert ledger.contributor_count == 2
    assert ledger.last_synced_at == ledger.last_updated


def test_ledger_dict_round_trip_tolerates_bad_values():
    ledger = StatsLedger.from_dict({"object_count": "x", "bytes_stored": -4, "contributors": ["a", None]})
    assert ledger.object_count == 0
    assert ledger.bytes_stored == 0
    assert ledger.contributors == {"a"}


@pytest.mark.asyncio
async def test_store_persists_updates(tmp_path):
    store = JsonStatsStore(tmp_path / "nested" / "stats.json")
    await store.update(lambda l: l.record_presign(10, "c1"))
    await store.update(lambda l: l.record_presign(5, "c2"))

    reloaded = await JsonStatsStore(tmp_path / "nested" / "stats.json").load()
    assert reloaded.presign_count == 2
    assert reloaded.bytes_requested == 15
    assert sorted(json.loads((tmp_path / "nested" / "stats.json").read_text())["contributors"]) == ["c1", "c2"]
    # No temp files left behind
    assert [p.name for p in (tmp_path / "nested").iterdir()] == ["stats.json"]


@pytest.mark.asyncio
async def test_corrupt_stats_file_is_rebuilt(tmp_path):
    path = tmp_path / "stats.json"
    path.write_text("{not json")
    store = JsonStatsStore(path)

    assert (await store.load()).object_count == 0
    await store.update(lambda l: l.record_presign(1, None))
    assert json.loads(path.read_text())["presign_count"] == 1


@pytest.mark.asyncio
async def test_resync_matches_live_listing_exactly(tmp_path, storage):
    service = StatsService(JsonStatsStore(tmp_path / "stats.json"))
    for _ in range(7):
        await service.record_presign(1000, "someone")
    storage.add("a.jpg", size=10)
    storage.add("b.jpg", size=32)

    result = await service.resync(storage)

    assert result.object_count == 2
    assert result.bytes_stored == 42
    assert result.presign_count == 7
    assert (await service.snapshot()).object_count == 2


@pytest.mark.asyncio
async def test_resync_listing_failure_leaves_ledger_untouched(tmp_path, storage):
    service = StatsService(JsonStatsStore(tmp_path / "stats.json"))
    await service.record_presign(5, "x")
    storage.fail_list = True

    with pytest.raises(BackendUnavailableException):
        await service.resync(storage)
    assert (await service.snapshot()).object_count == 1


@pytest.mark.asyncio
async def test_disabled_stats_do_not_record(tmp_path):
    service = StatsService(JsonStatsStore(tmp_path / "stats.json"), enabled=False)
    await service.record_presign(5, "x")
    assert not (tmp_path / "stats.json").exists()


@pytest.mark.asyncio
async def test_resync_counts_every_object_in_large_buckets(tmp_path, storage):
    service = StatsService(JsonStatsStore(tmp_path / "stats.json"))
    for i in range(12_000):
        storage.add(f"{i:05d}.jpg", size=2)

    result = await service.resync(storage)

    assert result.object_count == 12_000
    assert result.bytes_stored == 24_000
