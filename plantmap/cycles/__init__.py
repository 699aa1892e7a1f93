"""Cycle state, completion/reset, progress and history."""

from plantmap.cycles.history import compute_cycle_stats, fetch_cycle_history
from plantmap.cycles.locks import TaskTypeLocks, get_task_locks
from plantmap.cycles.progress import compute_progress
from plantmap.cycles.store import CycleStateStore, get_cycle_info

__all__ = [
    "CycleStateStore",
    "TaskTypeLocks",
    "compute_cycle_stats",
    "compute_progress",
    "fetch_cycle_history",
    "get_cycle_info",
    "get_task_locks",
]
