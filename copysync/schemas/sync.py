"""Sync schemas: read-only snapshots handed to observers and the journal.

Observers never receive live state: every payload here is frozen and
built fresh at the end of a cycle or action.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from copysync.schemas.diff import Adjustment, DiffResult
from copysync.schemas.enums import CycleStatus, SyncAction
from copysync.schemas.position import Position


class SyncStats(BaseModel):
    """Running counters for one sync session."""

    model_config = ConfigDict(frozen=True)

    syncs_completed: int = Field(default=0, ge=0)
    positions_added: int = Field(default=0, ge=0)
    positions_removed: int = Field(default=0, ge=0)
    positions_adjusted: int = Field(default=0, ge=0)
    actions_skipped: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    last_sync_time: Optional[datetime] = Field(default=None)
    is_running: bool = Field(default=False)
    scaling_factor: Decimal = Field(default=Decimal("1"))


class ActionEvent(BaseModel):
    """Progress notification for a single executed action."""

    model_config = ConfigDict(frozen=True)

    action: SyncAction = Field(...)
    position: Optional[Position] = Field(default=None)
    adjustment: Optional[Adjustment] = Field(default=None)
    dry_run: bool = Field(default=False)


class ActionOutcome(BaseModel):
    """Result record of one action attempted during a cycle."""

    model_config = ConfigDict(frozen=True)

    action: SyncAction = Field(...)
    symbol: str = Field(...)
    succeeded: bool = Field(...)
    skipped: bool = Field(default=False)
    size: Optional[Decimal] = Field(default=None)
    external_id: Optional[str] = Field(default=None)
    error: Optional[str] = Field(default=None)


class SyncReport(BaseModel):
    """Before/after snapshot of a completed sync cycle."""

    model_config = ConfigDict(frozen=True)

    cycle_id: UUID = Field(default_factory=uuid4)
    trigger: str = Field(default="schedule", description="schedule, start, manual, or once")
    status: CycleStatus = Field(...)
    started_at: datetime = Field(...)
    finished_at: datetime = Field(...)
    dry_run: bool = Field(default=True)
    reference_positions: list[Position] = Field(default_factory=list)
    managed_positions: list[Position] = Field(default_factory=list)
    target_positions: list[Position] = Field(default_factory=list)
    changes: DiffResult = Field(default_factory=DiffResult)
    outcomes: list[ActionOutcome] = Field(default_factory=list)
    scaling_factor: Decimal = Field(default=Decimal("1"))
    warnings: list[str] = Field(default_factory=list)
    stats: SyncStats = Field(default_factory=SyncStats)
    error: Optional[str] = Field(default=None)

    @property
    def duration_ms(self) -> float:
        return (self.finished_at - self.started_at).total_seconds() * 1000
