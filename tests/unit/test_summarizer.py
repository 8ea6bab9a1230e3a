"""
Unit tests for SummaryManager and summary content.

Tests:
- Counter increments and persistence (camelCase state file)
- Threshold, floor and ceiling triggers through on_memory_added()
- Manual trigger and empty periods
- Mirror failure never blocks the local reset
- Concurrent adds in one scope yield exactly one summary
"""

import asyncio
import json
from datetime import timedelta

import pytest

from memkeep.memory.policy import SummaryPolicy
from memkeep.memory.store import RecordStore
from memkeep.memory.summarizer import SummaryManager, build_summary_content, top_tags
from memkeep.persist.clock import to_iso

pytestmark = pytest.mark.asyncio


@pytest.fixture
def store(tmp_path, clock):
    s = RecordStore(tmp_path / "local.db", clock=clock)
    yield s
    s.close()


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "summary-state.json"


@pytest.fixture
def manager(store, state_path, clock):
    return SummaryManager(store, state_path, clock=clock)


async def add_and_notify(store, manager, scope="global", content="note", tags=None):
    store.add(content, scope=scope, tags=tags or [])
    return await manager.on_memory_added(scope)


async def seed_first_summary(store, manager, clock, scope="global", prefix="seed"):
    """Add threshold records, then summarize them one second later."""
    for i in range(12):
        store.add(f"{prefix} {i}", scope=scope)
    clock.advance(seconds=1)
    outcomes = [await manager.on_memory_added(scope) for _ in range(12)]
    assert outcomes[-1].summarized is True
    return outcomes[-1]


# ============================================================================
# Content
# ============================================================================

async def test_top_tags_ties_keep_first_seen_order(store):
    records = [
        store.add("a", tags=["beta", "alpha"]),
        store.add("b", tags=["alpha", "gamma"]),
        store.add("c", tags=["beta"]),
    ]
    assert top_tags(records) == ["beta", "alpha", "gamma"]


async def test_build_summary_content_layout(store, clock):
    start = clock.now - timedelta(days=7)
    records = [
        store.add("x" * 150, tags=["sync"]),
        store.add("short note", tags=["sync", "api"]),
    ]

    content = build_summary_content("project:alpha", records, start, clock.now)
    lines = content.split("\n")

    assert lines[0] == "Activity summary for project:alpha (2 memories, 2024-12-25 to 2025-01-01)"
    assert lines[1] == "Top themes: sync, api"
    assert lines[2] == ""
    assert lines[3] == "Key items:"
    assert lines[4] == "- " + "x" * 97 + "..."
    assert lines[5] == "- short note"


async def test_build_summary_content_without_tags(store, clock):
    records = [store.add("only item")]
    content = build_summary_content("global", records, clock.now, clock.now)

    assert "Top themes" not in content
    assert content.endswith("Key items:\n- only item")


async def test_build_summary_content_caps_key_items(store):
    records = [store.add(f"item {i}") for i in range(8)]
    content = build_summary_content("global", records, records[0].created_at, records[-1].created_at)
    assert content.count("\n- ") == 5


# ============================================================================
# Counters and persistence
# ============================================================================

async def test_record_activity_persists_camel_case(manager, state_path):
    assert await manager.record_activity("global") == 1
    assert await manager.record_activity("global") == 2
    assert await manager.record_activity("project:alpha") == 1

    data = json.loads(state_path.read_text())
    assert data == {"activityCounts": {"global": 2, "project:alpha": 1}, "lastSummaryTime": {}}


async def test_state_reloaded_by_new_manager(store, state_path, clock, manager):
    await manager.record_activity("global")
    await manager.record_activity("global")

    reloaded = SummaryManager(store, state_path, clock=clock)
    assert reloaded.get_activity_count("global") == 2
    assert reloaded.get_last_summary_time("global") is None


async def test_corrupt_state_starts_fresh(store, state_path, clock):
    state_path.write_text("{not json")
    manager = SummaryManager(store, state_path, clock=clock)

    assert manager.get_activity_count("global") == 0
    assert await manager.record_activity("global") == 1


async def test_malformed_last_summary_time_is_ignored(store, state_path, clock):
    state_path.write_text(json.dumps({"activityCounts": {"global": 3}, "lastSummaryTime": {"global": "yesterday"}}))
    manager = SummaryManager(store, state_path, clock=clock)

    assert manager.get_activity_count("global") == 3
    assert manager.get_last_summary_time("global") is None


# ============================================================================
# Triggers
# ============================================================================

async def test_threshold_triggers_first_summary(store, manager, clock):
    for i in range(11):
        outcome = await add_and_notify(store, manager, content=f"note {i}")
        assert outcome.summarized is False

    outcome = await add_and_notify(store, manager, content="note 11")

    assert outcome.summarized is True
    assert outcome.summary.memory_count == 12
    assert outcome.summary.scope == "global"
    assert manager.get_activity_count("global") == 0
    assert manager.get_last_summary_time("global") == clock.now


async def test_min_interval_floor_then_threshold(store, manager, clock):
    await seed_first_summary(store, manager, clock, prefix="first")

    clock.advance(minutes=1)
    for i in range(12):
        outcome = await add_and_notify(store, manager, content=f"second {i}")
        assert outcome.summarized is False
    assert manager.get_activity_count("global") == 12

    clock.advance(days=1)
    outcome = await add_and_notify(store, manager, content="next day")

    assert outcome.summarized is True
    assert outcome.summary.memory_count == 13
    assert "first" not in outcome.summary.content


async def test_max_interval_forces_summary(store, manager, clock):
    await seed_first_summary(store, manager, clock)

    clock.advance(days=7)
    outcome = await add_and_notify(store, manager, content="a week later")

    assert outcome.summarized is True
    assert outcome.summary.memory_count == 1


async def test_scopes_are_independent(store, manager):
    for _ in range(11):
        await add_and_notify(store, manager, scope="project:alpha")
    outcome = await add_and_notify(store, manager, scope="project:beta")

    assert outcome.summarized is False
    assert manager.get_activity_count("project:alpha") == 11
    assert manager.get_activity_count("project:beta") == 1


async def test_custom_policy(store, state_path, clock):
    manager = SummaryManager(store, state_path, policy=SummaryPolicy(activity_threshold=2), clock=clock)

    assert (await add_and_notify(store, manager)).summarized is False
    assert (await add_and_notify(store, manager)).summarized is True


# ============================================================================
# Manual trigger / edge cases
# ============================================================================

async def test_trigger_summary_ignores_thresholds(store, manager, clock):
    store.add("one", tags=["t"])
    await manager.record_activity("global")

    summary = await manager.trigger_summary("global")

    assert summary is not None
    assert summary.memory_count == 1
    assert summary.timestamp == to_iso(clock.now)
    assert manager.get_activity_count("global") == 0


async def test_empty_period_returns_none_and_keeps_counters(manager):
    await manager.record_activity("global")

    assert await manager.trigger_summary("global") is None
    assert manager.get_activity_count("global") == 1
    assert manager.get_last_summary_time("global") is None


async def test_default_period_excludes_old_records(store, manager, clock):
    store.add("ancient")
    clock.advance(days=8)

    assert await manager.trigger_summary("global") is None


async def test_max_lookback_caps_window(store, state_path, clock):
    manager = SummaryManager(store, state_path, max_lookback=timedelta(days=1), clock=clock)
    store.add("old")
    clock.advance(days=3)
    store.add("recent")

    summary = await manager.trigger_summary("global")

    assert summary.memory_count == 1
    assert "recent" in summary.content


# ============================================================================
# Mirror
# ============================================================================

async def test_summary_mirrored(store, state_path, clock, fake_mirror):
    manager = SummaryManager(store, state_path, mirror=fake_mirror, clock=clock)
    store.add("mirrored")

    summary = await manager.trigger_summary("global")

    assert summary.remote_id == "sum-1"
    assert fake_mirror.summaries[0]["scope"] == "global"
    assert fake_mirror.summaries[0]["memory_count"] == 1


async def test_mirror_failure_still_resets(store, state_path, clock, fake_mirror):
    fake_mirror.fail = True
    manager = SummaryManager(store, state_path, mirror=fake_mirror, clock=clock)

    for _ in range(12):
        outcome = await add_and_notify(store, manager)

    assert outcome.summarized is True
    assert outcome.summary.remote_id is None
    assert manager.get_activity_count("global") == 0
    assert manager.get_last_summary_time("global") == clock.now


# ============================================================================
# Concurrency
# ============================================================================

async def test_concurrent_adds_produce_one_summary(store, manager):
    for i in range(12):
        store.add(f"concurrent {i}")

    outcomes = await asyncio.gather(*[manager.on_memory_added("global") for _ in range(12)])

    assert sum(1 for o in outcomes if o.summarized) == 1
    assert manager.get_activity_count("global") == 0
