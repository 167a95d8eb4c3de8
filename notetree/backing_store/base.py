from typing import Protocol

from notetree.domain.branch import Branch
from notetree.domain.note import Note


class BackingStore(Protocol):
    """Persistent storage the cache and branch store synchronize with.

    Absence and failure are distinct: a missing note is reported as ``None``,
    a store that cannot answer raises ``BackingStoreError``.
    """

    async def fetch_note(self, note_id: str) -> Note | None:
        """Fetch a note by its ID."""
        ...

    async def fetch_note_ids(self) -> set[str]:
        """Get all note IDs in the store."""
        ...

    async def fetch_branches(self) -> list[Branch]:
        """Get every branch in the store."""
        ...

    async def save_branch(self, branch: Branch) -> None:
        """Add a new branch or update an existing one."""
        ...

    async def delete_branch(self, branch_id: str) -> None:
        """Delete a branch. Deleting an unknown branch is a no-op."""
        ...
