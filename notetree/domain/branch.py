"""Branch domain models."""

from pydantic import BaseModel

POSITION_STEP = 10


class Branch(BaseModel):
    """An edge placing a note under a parent note.

    Attributes:
        id: Unique identifier of the edge
        note_id: The child note
        parent_note_id: The parent note, or the virtual root
        position: Sibling order under the parent (ties broken by id)
        prefix: Optional label shown before the note title under this parent
        is_expanded: Whether the UI shows this branch expanded
    """

    id: str
    note_id: str
    parent_note_id: str
    position: int = 0
    prefix: str | None = None
    is_expanded: bool = False

    @property
    def sort_key(self) -> tuple[int, str]:
        return (self.position, self.id)
