"""
Best-effort background work for remote mirror writes.

Remote writes on the hot path must never block or fail a local write.
Each submission runs at most once (no retries), bounded by an optional
timeout; failures are recorded and logged, never raised to the caller.
"""

import asyncio
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Set

import structlog

from memkeep.persist.clock import to_iso, utcnow

logger = structlog.get_logger(__name__)

TaskState = Literal["queued", "running", "succeeded", "failed"]


@dataclass
class TaskRecord:
    """Status of a background task."""

    id: str
    label: str
    state: TaskState
    submitted_at: str
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dict for JSON serialization."""
        return asdict(self)


class BackgroundQueue:
    """
    In-process fire-and-forget runner with state tracking.

    Uses asyncio tasks on the running loop; keeps a bounded history of
    finished tasks for health reporting.
    """

    def __init__(self, timeout_s: Optional[float] = None, max_history: int = 200):
        """
        Initialize background queue.

        Args:
            timeout_s: Upper bound for each task (None = client timeouts only)
            max_history: Finished tasks kept for inspection
        """
        self.timeout_s = timeout_s
        self.max_history = max_history
        self.tasks: Dict[str, TaskRecord] = {}
        self._pending: Set[asyncio.Task] = set()

    def submit(self, label: str, factory: Callable[[], Awaitable[Any]]) -> str:
        """
        Schedule a coroutine without awaiting it.

        Args:
            label: Short description for logs (e.g. "mirror.add")
            factory: Zero-arg callable returning the awaitable to run

        Returns:
            Task ID
        """
        task_id = uuid.uuid4().hex[:12]
        self.tasks[task_id] = TaskRecord(
            id=task_id,
            label=label,
            state="queued",
            submitted_at=to_iso(utcnow()),
        )

        task = asyncio.get_running_loop().create_task(self._run(task_id, factory))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

        self._trim_history()
        return task_id

    async def _run(self, task_id: str, factory: Callable[[], Awaitable[Any]]) -> None:
        record = self.tasks[task_id]
        record.state = "running"
        record.started_at = to_iso(utcnow())

        try:
            if self.timeout_s is not None:
                await asyncio.wait_for(factory(), timeout=self.timeout_s)
            else:
                await factory()
            record.state = "succeeded"
        except asyncio.CancelledError:
            record.state = "failed"
            record.error = "cancelled"
            raise
        except Exception as e:
            record.state = "failed"
            record.error = f"{type(e).__name__}: {e}"
            logger.warning(
                "background_task_failed",
                task_id=task_id,
                label=record.label,
                error=record.error,
            )
        finally:
            record.finished_at = to_iso(utcnow())

    async def drain(self) -> None:
        """Wait for every outstanding task to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def get(self, task_id: str) -> Optional[TaskRecord]:
        return self.tasks.get(task_id)

    def list_tasks(self, state: Optional[TaskState] = None) -> List[TaskRecord]:
        return [t for t in self.tasks.values() if state is None or t.state == state]

    def stats(self) -> Dict[str, int]:
        """Task counts by state."""
        counts = {"queued": 0, "running": 0, "succeeded": 0, "failed": 0}
        for t in self.tasks.values():
            counts[t.state] += 1
        return counts

    def _trim_history(self) -> None:
        finished = [t for t in self.tasks.values() if t.finished_at is not None]
        excess = len(self.tasks) - self.max_history
        for t in finished[:max(0, excess)]:
            del self.tasks[t.id]
