"""Cache invalidation event model."""

from pydantic import BaseModel, model_validator


class InvalidationEvent(BaseModel):
    """Broadcast whenever cached state for a note or a child list is dropped.

    Exactly one of the two ids is set.
    """

    note_id: str | None = None
    parent_note_id: str | None = None

    @model_validator(mode="after")
    def _one_target(self) -> "InvalidationEvent":
        if (self.note_id is None) == (self.parent_note_id is None):
            raise ValueError("Exactly one of note_id and parent_note_id must be set")
        return self
