"""Sync models - progress, failure and summary of one applied action batch."""

from typing import Any

from pydantic import BaseModel, Field


class ProgressEvent(BaseModel):
    """Emitted once a destination of an ADD batch has been handled."""

    current_index: int = Field(..., ge=1)
    total: int = Field(..., ge=1)
    destination_name: str


class FailureEvent(BaseModel):
    """Emitted for a destination that could not be located or added."""

    destination_name: str
    reason: str


class SkippedAction(BaseModel):
    """An action that was skipped or failed without aborting the batch."""

    kind: str
    reason: str


class SyncReport(BaseModel):
    """What happened while applying one AI turn."""

    applied: list[str] = Field(default_factory=list)
    skipped: list[SkippedAction] = Field(default_factory=list)
    added: list[str] = Field(default_factory=list)
    unlocated: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    moved: list[str] = Field(default_factory=list)
    advisories: list[dict[str, Any]] = Field(default_factory=list)
    progress: list[ProgressEvent] = Field(default_factory=list)
    cancelled: bool = False
    target_day: int | None = None
    previous_location: str | None = None

    @property
    def summary(self) -> str:
        """Toast-style summary line."""
        text = f"{len(self.added)} destinations added, {len(self.unlocated)} failed to locate"
        if self.failed:
            text += f", {len(self.failed)} failed to add"
        return text
