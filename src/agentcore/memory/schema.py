"""Typed records persisted by the context store."""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def epoch_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class RecordModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class ContextMessage(RecordModel):
    """Single message appended to a lane. Never mutated after append."""

    role: str
    content: str
    ts: int = Field(default_factory=epoch_ms)
    model: Optional[str] = None
    tokens: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class LaneSnapshot(RecordModel):
    """Materialised view of a lane returned to callers."""

    lane_id: str
    messages: List[ContextMessage] = Field(default_factory=list)
    message_count: int = 0
    byte_size: int = 0
    updated_at: float = 0.0
