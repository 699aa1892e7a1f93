"""Per task type serialization of cycle mutations."""

from __future__ import annotations

import asyncio

from plantmap.models import TaskType


class TaskTypeLocks:
    """One asyncio.Lock per task type.

    Approvals and resets for the same task type acquire the same lock and
    commit before releasing it, so a reset never interleaves with an
    approval that is still being applied.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, task_type: TaskType | str) -> asyncio.Lock:
        key = task_type.value if isinstance(task_type, TaskType) else str(task_type)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock


# Process-wide instance used by the web app and CLI
_locks: TaskTypeLocks | None = None


def get_task_locks() -> TaskTypeLocks:
    global _locks
    if _locks is None:
        _locks = TaskTypeLocks()
    return _locks
