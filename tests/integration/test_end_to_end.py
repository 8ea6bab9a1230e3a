"""
Scenario tests across store, summary engine, profile reconciliation and
inference queue, wired the way the service wires them.
"""

import json
from datetime import timedelta

import pytest

from memkeep.memory.integrate import MemoryService
from memkeep.memory.policy import SummaryPolicy
from memkeep.memory.store import RecordStore
from memkeep.memory.summarizer import SummaryManager, top_tags
from memkeep.persist.clock import to_iso
from memkeep.profile.manager import ProfileManager
from memkeep.profile.schemas import InferenceCandidate, ProfileSnapshot, UserProfile

pytestmark = [pytest.mark.asyncio, pytest.mark.integration]


@pytest.fixture
def store(settings, clock):
    s = RecordStore(settings.paths.local_db_path, clock=clock)
    yield s
    s.close()


@pytest.fixture
def summaries(settings, store, clock):
    return SummaryManager(store, settings.paths.summary_state_path, clock=clock)


@pytest.fixture
def profiles(settings, fake_mirror, clock):
    fake_mirror.clock = clock
    return ProfileManager(
        settings.paths.profile_path,
        settings.paths.inferences_path,
        mirror=fake_mirror,
        clock=clock,
    )


def write_state(settings, counts, last_times):
    settings.paths.summary_state_path.parent.mkdir(parents=True, exist_ok=True)
    settings.paths.summary_state_path.write_text(json.dumps({
        "activityCounts": counts,
        "lastSummaryTime": last_times,
    }))


async def test_idempotent_delete(store):
    record = store.add("once")

    results = [store.delete(record.id) for _ in range(4)]

    assert results == [True, False, False, False]


async def test_scope_isolation(store):
    a = [store.add(f"a{i}", scope="project:a") for i in range(3)]
    b = [store.add(f"b{i}", scope="project:b") for i in range(3)]

    listed_a = {r.id for r in store.list(scope="project:a")}
    listed_b = {r.id for r in store.list(scope="project:b")}

    assert listed_a == {r.id for r in a}
    assert listed_b == {r.id for r in b}
    assert not listed_a & listed_b


async def test_floor_suppresses_summary(settings, store, clock):
    write_state(settings, {}, {"project:x": to_iso(clock.now - timedelta(hours=1))})
    summaries = SummaryManager(store, settings.paths.summary_state_path, clock=clock)

    for i in range(12):
        store.add(f"x{i}", scope="project:x")
        await summaries.record_activity("project:x")

    assert summaries.should_generate_summary("project:x") is False


async def test_ceiling_forces_summary(settings, store, clock):
    write_state(settings, {}, {"project:x": to_iso(clock.now - timedelta(days=8))})
    summaries = SummaryManager(store, settings.paths.summary_state_path, clock=clock)

    store.add("lonely", scope="project:x")
    await summaries.record_activity("project:x")

    assert summaries.should_generate_summary("project:x") is True


async def test_first_time_threshold(settings, store, clock):
    summaries = SummaryManager(
        store,
        settings.paths.summary_state_path,
        policy=SummaryPolicy(activity_threshold=5),
        clock=clock,
    )

    for i in range(4):
        await summaries.record_activity("project:fresh")
    assert summaries.should_generate_summary("project:fresh") is False

    await summaries.record_activity("project:fresh")
    assert summaries.should_generate_summary("project:fresh") is True


async def test_top_themes_determinism(store):
    records = [
        store.add("1", tags=["a"]),
        store.add("2", tags=["a", "b"]),
        store.add("3", tags=["c"]),
        store.add("4", tags=["a", "b"]),
    ]

    assert top_tags(records) == ["a", "b", "c"]


async def test_record_round_trip(store, clock):
    start = clock.now
    added = store.add("round trip", scope="project:rt", tags=["z", "a", "m"])

    via_list = store.list(scope="project:rt")[0]
    via_search = store.search("round")[0]
    via_range = store.get_by_date_range("project:rt", start, clock.now)[0]

    for record in (via_list, via_search, via_range):
        assert record.id == added.id
        assert record.content == "round trip"
        assert record.scope == "project:rt"
        assert record.tags == ["z", "a", "m"]


async def test_reconciliation_remote_newer(profiles, fake_mirror, clock, settings):
    await profiles.set("identity.name", "Local")
    t1 = clock.now

    remote = UserProfile()
    remote.identity.name = "Remote"
    remote.technical.languages = ["Go"]
    fake_mirror.snapshots.append(
        ProfileSnapshot(profile=remote, timestamp=to_iso(t1 + timedelta(minutes=5)))
    )

    result = await profiles.sync_from_remote()

    assert result.action == "pulled"
    on_disk = json.loads(settings.paths.profile_path.read_text())
    assert on_disk["identity"]["name"] == "Remote"
    assert on_disk["technical"]["languages"] == ["Go"]


async def test_reconciliation_local_newer_repushes_changes(profiles, fake_mirror, clock):
    fake_mirror.snapshots.append(
        ProfileSnapshot(profile=UserProfile(), timestamp=to_iso(clock.now - timedelta(days=1)))
    )
    await profiles.set("identity.name", "Local")

    # Local-only save: the file now differs from the last pushed snapshot
    profile = await profiles.load()
    profile.identity.role = "Founder"
    await profiles.save(profile, skip_remote_sync=True)
    before = len(fake_mirror.snapshots)

    result = await profiles.sync_from_remote()

    assert result.action == "pushed"
    assert result.profile.identity.name == "Local"
    assert len(fake_mirror.snapshots) == before + 1
    assert fake_mirror.snapshots[-1].profile.identity.role == "Founder"


async def test_inference_lifecycle(profiles):
    await profiles.add_to_array("technical.languages", ["Python"])
    dup = await profiles.add_inference(InferenceCandidate(field="technical.languages", value="Python"))
    new = await profiles.add_inference(InferenceCandidate(field="technical.languages", value="Rust"))
    rejected = await profiles.add_inference(InferenceCandidate(field="technical.tools", value="Docker"))

    assert await profiles.confirm_inference(dup.id) is True
    assert await profiles.confirm_inference(new.id) is True
    assert await profiles.confirm_inference(new.id) is False

    languages = await profiles.get("technical.languages")
    assert sorted(languages) == ["Python", "Rust"]

    assert await profiles.reject_inference(rejected.id) is True
    assert await profiles.reject_inference(rejected.id) is False
    assert await profiles.get("technical.tools") == []

    stored = {i.id: i.status for i in profiles.load_inferences()}
    assert stored == {dup.id: "confirmed", new.id: "confirmed", rejected.id: "rejected"}


async def test_demo_scope_scenario(settings, store, summaries, clock):
    scope = "project:demo"

    for i in range(7):
        store.add(f"demo {i}", scope=scope, tags=["demo"])
        await summaries.record_activity(scope)
    assert summaries.should_generate_summary(scope) is False

    for i in range(7, 12):
        store.add(f"demo {i}", scope=scope)
        await summaries.record_activity(scope)
    assert summaries.should_generate_summary(scope) is True

    clock.advance(seconds=30)
    summary = await summaries.generate_summary(scope)

    assert summary.memory_count == 12
    state = json.loads(settings.paths.summary_state_path.read_text())
    assert state["activityCounts"][scope] == 0
    assert state["lastSummaryTime"][scope] == to_iso(clock.now)


async def test_service_end_to_end_with_mirror(store, summaries, fake_mirror):
    service = MemoryService(store, summaries=summaries, mirror=fake_mirror)

    for i in range(12):
        outcome = await service.add(f"event {i}", scope="project:svc", tags=["svc"])

    assert outcome.summarized is True
    assert outcome.summary.remote_id is not None

    await service.background.drain()
    assert len(fake_mirror.added) == 12
    assert fake_mirror.summaries[0]["scope"] == "project:svc"
