"""Test configuration and fixtures."""

import itertools
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

import pytest

from memkeep.config.settings import Settings
from memkeep.memory.schemas import MemoryRecord
from memkeep.mirror.client import MirrorError
from memkeep.persist.clock import to_iso, utcnow
from memkeep.profile.schemas import ProfileSnapshot, UserProfile


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeMirror:
    """
    In-memory stand-in for Mem0Mirror.

    Records every call; set fail=True to make every call raise MirrorError.
    """

    def __init__(self, clock=utcnow):
        self.clock = clock
        self.fail = False
        self.added: List[dict] = []
        self.deleted: List[str] = []
        self.snapshots: List[ProfileSnapshot] = []
        self.summaries: List[dict] = []
        self.search_results: List[MemoryRecord] = []
        self.closed = False
        self._ids = itertools.count(1)

    def _check(self):
        if self.fail:
            raise MirrorError("remote unavailable", status_code=503)

    async def add(self, content, metadata=None, infer=True):
        self._check()
        remote_id = f"rem-{next(self._ids)}"
        self.added.append({"id": remote_id, "content": content, "metadata": metadata or {}, "infer": infer})
        return remote_id

    async def search(self, query, limit=10):
        self._check()
        return [r for r in self.search_results if query in r.content][:limit]

    async def delete(self, memory_id):
        self._check()
        self.deleted.append(memory_id)
        return any(a["id"] == memory_id for a in self.added)

    async def get_latest_profile(self):
        if self.fail or not self.snapshots:
            return None
        return sorted(self.snapshots, key=lambda s: s.timestamp)[-1]

    async def save_profile_snapshot(self, profile: UserProfile):
        if self.fail:
            return None
        remote_id = f"snap-{next(self._ids)}"
        self.snapshots.append(
            ProfileSnapshot(
                profile=UserProfile.model_validate(profile.to_document()),
                timestamp=to_iso(self.clock()),
                remote_id=remote_id,
            )
        )
        return remote_id

    async def get_profile_history(self, since=None, limit=None):
        history = sorted(self.snapshots, key=lambda s: s.timestamp, reverse=True)
        if since is not None:
            history = [s for s in history if s.timestamp >= to_iso(since)]
        return history[:limit] if limit else history

    async def save_summary(self, scope, content, period_start, period_end, memory_count):
        self._check()
        remote_id = f"sum-{next(self._ids)}"
        self.summaries.append({"id": remote_id, "scope": scope, "content": content, "memory_count": memory_count})
        return remote_id

    async def aclose(self):
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_mirror():
    return FakeMirror()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings rooted in a temporary config directory, local-only."""
    return Settings(config_dir=tmp_path / "memkeep")


@pytest.fixture
def config_dir(settings) -> Path:
    return Path(settings.config_dir)
