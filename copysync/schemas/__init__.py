"""Schemas for CopySync: positions, diffs, account data and sync snapshots."""

from copysync.schemas.account import Balance, CloseResult, OrderResult
from copysync.schemas.diff import Adjustment, DiffResult, Flip
from copysync.schemas.enums import (
    AdjustAction,
    CycleStatus,
    OrderStatus,
    PositionSide,
    SyncAction,
    Venue,
)
from copysync.schemas.position import Position, ScalingResult, TradeScaleResult
from copysync.schemas.sync import ActionEvent, ActionOutcome, SyncReport, SyncStats

__all__ = [
    "ActionEvent",
    "ActionOutcome",
    "AdjustAction",
    "Adjustment",
    "Balance",
    "CloseResult",
    "CycleStatus",
    "DiffResult",
    "Flip",
    "OrderResult",
    "OrderStatus",
    "Position",
    "PositionSide",
    "ScalingResult",
    "SyncAction",
    "SyncReport",
    "SyncStats",
    "TradeScaleResult",
    "Venue",
]
