from __future__ import annotations

import json
import os
from typing import Dict

from pydantic import BaseModel, Field


class SchedulerSettings(BaseModel):
    """
    Tunables of the block scheduling engine.

    Defaults mirror how the family schedule actually runs: 45 minute assignment
    blocks with a 5 minute buffer, at most one heavy task worth of load per block.
    """

    # blocks / capacity
    block_minutes: int = Field(45, gt=0)
    max_block_minutes: int = Field(45, gt=0)
    min_placeable_minutes: int = Field(15, gt=0)
    buffer_minutes: int = Field(5, ge=0)
    fill_in_buffer_minutes: int = Field(5, ge=0)

    # cognitive load
    load_ceiling: float = Field(2.0, gt=0)
    load_weights: Dict[str, float] = Field(
        default_factory=lambda: {"heavy": 2.0, "medium": 1.0, "light": 0.5}
    )

    # availability
    horizon_days: int = Field(7, ge=1)
    cutoff_hour: int = Field(20, ge=0, le=24)
    window_lookback_days: int = Field(3, ge=0)
    window_lookahead_days: int = Field(7, ge=0)

    # subject -> preferred block number
    preferred_blocks: Dict[str, int] = Field(default_factory=lambda: {"Math": 2})

    # diagnostics
    min_buffer_minutes: int = Field(10, ge=0)

    def load_weight(self, load: str) -> float:
        return self.load_weights.get(load, 1.0)

    @classmethod
    def from_env(cls) -> "SchedulerSettings":
        """Build settings from SCHEDULER_* environment variables."""
        data: dict = {}
        for name in cls.model_fields:
            raw = os.getenv(f"SCHEDULER_{name.upper()}")
            if raw is None or raw.strip() == "":
                continue
            # dict-valued settings are given as JSON
            if name in {"load_weights", "preferred_blocks"}:
                data[name] = json.loads(raw)
            else:
                data[name] = raw.strip()
        return cls(**data)
