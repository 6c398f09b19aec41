from copysync.services.observers import ObserverHub
from copysync.services.sync_service import PositionSyncService, SyncerState

__all__ = [
    "ObserverHub",
    "PositionSyncService",
    "SyncerState",
]
