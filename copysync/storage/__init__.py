"""Storage layer: append-only journal of sync cycles."""

from copysync.storage.cycle_journal import CycleJournal, success_rate

__all__ = [
    "CycleJournal",
    "success_rate",
]
