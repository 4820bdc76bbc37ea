"""Session data model. Deltas, lane states and snapshots are Pydantic models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SessionState(str, Enum):
    """Lifecycle of one decode session."""

    IDLE = "idle"
    READING = "reading"
    DRAINING = "draining"
    CANCELLED = "cancelled"
    FINALIZING = "finalizing"
    CLOSED = "closed"


class SessionOutcome(str, Enum):
    """How a session ended. Set once, at finalization."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    TRANSPORT_ERROR = "transport_error"


class Delta(BaseModel):
    """Incremental text addressed to one lane."""

    lane_index: int = Field(ge=0)
    text: str


class LaneState(BaseModel):
    """Point-in-time view of one lane."""

    index: int
    text: str = ""
    is_complete: bool = False
    label: str = Field(default="", description="Optional caller label, e.g. a style name")


class Snapshot(BaseModel):
    """Full state of all lanes, emitted after each applied frame and once at finalization."""

    lanes: list[LaneState] = Field(default_factory=list)
    final: bool = False
    outcome: Optional[SessionOutcome] = None
    error: Optional[str] = Field(default=None, description="Set when the transport failed mid-stream")

    @property
    def texts(self) -> list[str]:
        return [lane.text for lane in self.lanes]

    @property
    def is_complete(self) -> bool:
        return bool(self.lanes) and all(lane.is_complete for lane in self.lanes)
