"""Session configuration for a copy-sync run.

Defines the accounts being mirrored, the copy budget and the loop
tuning knobs. Loaded from YAML at session start and immutable after.
"""

import re
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from copysync.exceptions import InvalidInputError
from copysync.schemas.enums import Venue

_ADDRESS = re.compile(r"^[0-9a-f]{40}$")


def normalize_address(value: str) -> str:
    """Validate a 0x-prefixed 40-hex account address and lower-case it."""
    if not isinstance(value, str) or not value:
        raise ValueError("Address is required")
    clean = value.strip().lower()
    if clean.startswith("0x"):
        clean = clean[2:]
    if not _ADDRESS.match(clean):
        raise ValueError("Invalid address format (40 hex characters)")
    return "0x" + clean


class SyncConfig(BaseModel):
    """Configuration consumed by the sync service at session start."""

    model_config = ConfigDict(frozen=True)

    reference_account: str = Field(..., description="Address of the account being copied")
    managed_account: Optional[str] = Field(
        default=None,
        description="Address of the controlled account (required for live margin venue)",
    )
    copy_budget: Decimal = Field(..., gt=0, description="Capital earmarked for copying")
    sync_interval_ms: int = Field(default=30_000, gt=0)
    min_position_size: Decimal = Field(default=Decimal("0.0001"), ge=0)
    min_position_value: Decimal = Field(default=Decimal("200"), ge=0)
    size_threshold: Decimal = Field(default=Decimal("0.05"), ge=0)
    default_leverage: Decimal = Field(default=Decimal("10"), ge=1)
    safety_buffer: Decimal = Field(default=Decimal("0.8"), gt=0, le=1)
    action_delay_ms: int = Field(default=500, ge=0)
    dry_run: bool = Field(default=True, description="Simulate actions instead of trading")
    venue: Venue = Field(default=Venue.HYPERLIQUID)
    testnet: bool = Field(default=False)

    @field_validator("reference_account")
    @classmethod
    def _validate_reference(cls, v: str) -> str:
        return normalize_address(v)

    @field_validator("managed_account")
    @classmethod
    def _validate_managed(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return normalize_address(v)

    @property
    def sync_interval_seconds(self) -> float:
        return self.sync_interval_ms / 1000

    @property
    def action_delay_seconds(self) -> float:
        return self.action_delay_ms / 1000

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "SyncConfig":
        """Validate a raw mapping, raising InvalidInputError on failure."""
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            fields = ", ".join(
                ".".join(str(p) for p in err["loc"]) for err in exc.errors()
            )
            raise InvalidInputError(
                f"Invalid sync configuration ({fields}): {exc}",
                field=fields or None,
            ) from exc

    @classmethod
    def from_yaml(cls, path: str | Path, **overrides: Any) -> "SyncConfig":
        """Load a session configuration from a YAML file.

        Expected format::

            reference_account: "0xabc..."
            copy_budget: 1000
            dry_run: true

        Args:
            path: YAML file location.
            **overrides: Values that replace the file's entries when not None.

        Raises:
            InvalidInputError: If the file is missing, malformed or invalid.
        """
        path = Path(path)
        if not path.exists():
            raise InvalidInputError(f"Config file not found: {path}", field="path")

        with open(path) as f:
            raw = yaml.safe_load(f) or {}

        if not isinstance(raw, dict):
            raise InvalidInputError(
                f"Config file {path} must contain a mapping", field="path"
            )

        # Decimals keep their written precision when passed as strings.
        data = {k: str(v) if isinstance(v, float) else v for k, v in raw.items()}
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_mapping(data)
