"""Relocation request and result models."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class RelocationMode(str, Enum):
    MOVE = "move"
    CLONE = "clone"


class NoteSelection(BaseModel):
    """One note picked by the user for relocation.

    A known source branch means the branch itself is moved; without one the
    note is cloned under the destination.
    """

    note_id: str
    source_branch_id: str | None = None

    @property
    def mode(self) -> RelocationMode:
        return RelocationMode.MOVE if self.source_branch_id else RelocationMode.CLONE


class RelocationRequest(BaseModel):
    """Selections and destination of a single user action."""

    selections: list[NoteSelection] = Field(..., description="Notes to relocate, in order")
    destination_path: str = Field(..., description="Note path of the destination, '/'-joined")


class ItemOutcome(BaseModel):
    """What happened to a single selection."""

    note_id: str
    status: Literal["moved", "cloned", "skipped"]
    branch_id: str | None = None
    reason: str | None = None
    message: str = ""

    @property
    def label(self) -> str:
        if self.status == "skipped":
            return f"skipped:{self.reason}"
        return self.status


class RelocationResult(BaseModel):
    """Per-item report for a relocation batch."""

    target_note_id: str
    target_title: str
    items: list[ItemOutcome] = []

    @property
    def moved(self) -> list[ItemOutcome]:
        return [item for item in self.items if item.status == "moved"]

    @property
    def cloned(self) -> list[ItemOutcome]:
        return [item for item in self.items if item.status == "cloned"]

    @property
    def skipped(self) -> list[ItemOutcome]:
        return [item for item in self.items if item.status == "skipped"]

    def statuses(self) -> list[str]:
        return [item.label for item in self.items]

    @property
    def message(self) -> str:
        """The notice shown to the user once the batch has been applied."""
        lines = []
        if len(self.skipped) < len(self.items):
            lines.append(f"Selected notes have been moved into {self.target_title}")
        for item in self.skipped:
            lines.append(f"Skipped note {item.note_id}: {item.message or item.reason}")
        return "\n".join(lines)
