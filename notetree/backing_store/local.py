import json
from pathlib import Path

from loguru import logger

from notetree.backing_store.base import BackingStore
from notetree.domain.branch import Branch
from notetree.domain.note import Note
from notetree.exceptions import BackingStoreError


class LocalBackingStore(BackingStore):
    """Local backing store that keeps notes and branches in a JSON file."""

    def __init__(self, filepath: str | Path | None = None) -> None:
        """Initialize LocalBackingStore.

        Args:
            filepath: Path to store file. If provided and exists, will auto-load.
                     If provided, branch writes are flushed to this path.
                     If not provided, the store lives in memory only.
        """
        self._filepath = str(filepath) if filepath else None

        if self._filepath and Path(self._filepath).exists():
            try:
                with open(self._filepath, "r") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise BackingStoreError(
                    f"Could not read store file {self._filepath}",
                    operation="load",
                    original_error=e,
                ) from e
            self._notes = {
                note_id: Note(**note_data) for note_id, note_data in data["notes"].items()
            }
            self._branches = {
                branch_id: Branch(**branch_data)
                for branch_id, branch_data in data["branches"].items()
            }
        else:
            self._notes = {}
            self._branches = {}

    @classmethod
    def from_data(
        cls,
        notes: dict[str, Note] | None = None,
        branches: dict[str, Branch] | None = None,
    ) -> "LocalBackingStore":
        """Create LocalBackingStore from provided data (useful for testing)."""
        instance = cls(filepath=None)
        instance._notes = notes or {}
        instance._branches = branches or {}
        return instance

    async def fetch_note(self, note_id: str) -> Note | None:
        return self._notes.get(note_id)

    async def fetch_note_ids(self) -> set[str]:
        return set(self._notes.keys())

    async def fetch_branches(self) -> list[Branch]:
        return list(self._branches.values())

    async def save_branch(self, branch: Branch) -> None:
        self._branches[branch.id] = branch
        self._flush()

    async def delete_branch(self, branch_id: str) -> None:
        if branch_id in self._branches:
            del self._branches[branch_id]
            self._flush()

    def add_note(self, note: Note) -> None:
        """Add a new note or update an existing one."""
        self._notes[note.id] = note

    def add_branch(self, branch: Branch) -> None:
        self._branches[branch.id] = branch

    def save(self, filepath: str | None = None) -> None:
        """Save the store to a JSON file.

        Args:
            filepath: Path to save to. If not provided, uses the filepath from initialization.
        """
        save_path = filepath or self._filepath
        if not save_path:
            raise ValueError(
                "No filepath provided and no default filepath set during initialization"
            )

        data = {
            "notes": {
                note_id: note.model_dump(mode="json") for note_id, note in self._notes.items()
            },
            "branches": {
                branch_id: branch.model_dump() for branch_id, branch in self._branches.items()
            },
        }
        try:
            with open(str(save_path), "w") as f:
                json.dump(data, f)
        except OSError as e:
            raise BackingStoreError(
                f"Could not write store file {save_path}", operation="save", original_error=e
            ) from e
        logger.debug(f"Saved {len(self._notes)} notes and {len(self._branches)} branches")

    def _flush(self) -> None:
        if self._filepath:
            self.save()
