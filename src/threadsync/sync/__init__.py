"""Thread view synchronization: state snapshot, category machines, orchestrator."""

from threadsync.sync.machine import CategoryStateMachine
from threadsync.sync.orchestrator import ThreadSyncOrchestrator
from threadsync.sync.state import SyncState
from threadsync.sync.transitions import TRANSITIONS, CategoryEvent

__all__ = [
    "CategoryEvent",
    "CategoryStateMachine",
    "SyncState",
    "TRANSITIONS",
    "ThreadSyncOrchestrator",
]
