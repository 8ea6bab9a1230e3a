"""
Unit tests for BackgroundQueue (fire-and-forget remote writes).
"""

import asyncio

import pytest

from memkeep.ops.background import BackgroundQueue

pytestmark = pytest.mark.asyncio


async def test_submit_returns_before_task_runs():
    queue = BackgroundQueue()
    started = asyncio.Event()

    async def work():
        started.set()

    task_id = queue.submit("work", work)

    assert queue.get(task_id).state == "queued"
    assert not started.is_set()

    await queue.drain()
    assert queue.get(task_id).state == "succeeded"
    assert queue.get(task_id).finished_at is not None


async def test_failure_is_recorded_not_raised():
    queue = BackgroundQueue()

    async def boom():
        raise RuntimeError("remote down")

    task_id = queue.submit("mirror.add", boom)
    await queue.drain()

    record = queue.get(task_id)
    assert record.state == "failed"
    assert record.error == "RuntimeError: remote down"
    assert queue.stats()["failed"] == 1


async def test_timeout_marks_failed():
    queue = BackgroundQueue(timeout_s=0.05)

    async def slow():
        await asyncio.sleep(5)

    task_id = queue.submit("slow", slow)
    await queue.drain()

    assert queue.get(task_id).state == "failed"
    assert "TimeoutError" in queue.get(task_id).error


async def test_list_tasks_by_state():
    queue = BackgroundQueue()

    async def ok():
        return 1

    async def bad():
        raise ValueError("x")

    queue.submit("ok", ok)
    queue.submit("bad", bad)
    await queue.drain()

    assert [t.label for t in queue.list_tasks("succeeded")] == ["ok"]
    assert [t.label for t in queue.list_tasks("failed")] == ["bad"]
    assert len(queue.list_tasks()) == 2
    assert queue.list_tasks("failed")[0].to_dict()["label"] == "bad"


async def test_history_is_bounded():
    queue = BackgroundQueue(max_history=3)

    async def ok():
        return None

    for i in range(5):
        queue.submit(f"t{i}", ok)
        await queue.drain()

    assert len(queue.tasks) <= 4
    assert queue.stats()["succeeded"] == len(queue.tasks)
