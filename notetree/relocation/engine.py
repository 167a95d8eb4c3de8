"""Moving and cloning notes within the tree."""

from loguru import logger

from notetree.autocomplete.recent import RecentNotes
from notetree.backing_store.base import BackingStore
from notetree.branches.store import BranchStore
from notetree.cache.note_cache import NoteCache
from notetree.domain.branch import Branch
from notetree.domain.relocation import ItemOutcome, NoteSelection, RelocationMode, RelocationResult
from notetree.exceptions import (
    BackingStoreError,
    NoteNotFound,
    NoteTreeError,
    PathNotFound,
    UnknownBranch,
)
from notetree.paths.resolver import PathResolver, parse_path


class _Changes:
    """Notes, child lists and branches touched while applying a batch."""

    def __init__(self) -> None:
        self.notes: set[str] = set()
        self.parents: set[str] = set()
        self.saved: dict[str, Branch] = {}
        self.deleted: set[str] = set()


class RelocationEngine:
    """Validates and applies structural changes, then invalidates and persists them."""

    def __init__(
        self,
        *,
        branch_store: BranchStore,
        note_cache: NoteCache,
        path_resolver: PathResolver,
        backing_store: BackingStore,
        recent_notes: RecentNotes | None = None,
    ):
        """Initialize the engine with the shared graph services.

        Args:
            branch_store: The edge set being mutated
            note_cache: Cache invalidated after every change
            path_resolver: Resolves destination paths
            backing_store: Receives the changed branches
            recent_notes: Records destinations for autocomplete
        """
        self.branch_store = branch_store
        self.note_cache = note_cache
        self.path_resolver = path_resolver
        self.backing_store = backing_store
        self.recent_notes = recent_notes

    async def relocate(
        self, selections: list[NoteSelection], destination_path: str
    ) -> RelocationResult:
        """Move or clone a batch of notes under the note at destination_path.

        Items are validated and applied in the order given. An item that fails
        validation is skipped and reported; the others still go through.

        Raises:
            PathNotFound: The destination path does not resolve to a note
            BackingStoreError: The destination note or the write-back failed
        """
        target_note_id = self.path_resolver.resolve_target(destination_path)
        try:
            target = await self.note_cache.get_note(target_note_id)
        except NoteNotFound as e:
            raise PathNotFound(
                destination_path, f"Destination note '{target_note_id}' no longer exists"
            ) from e

        # the graph may have changed while the title was fetched
        target_note_id = self.path_resolver.resolve_target(destination_path)

        changes = _Changes()
        items = [self._apply(selection, target_note_id, changes) for selection in selections]
        self._invalidate(changes)

        result = RelocationResult(
            target_note_id=target_note_id, target_title=target.title, items=items
        )
        logger.info(
            f"Relocated into {target_note_id}: {len(result.moved)} moved, "
            f"{len(result.cloned)} cloned, {len(result.skipped)} skipped"
        )

        if self.recent_notes is not None and len(result.skipped) < len(items):
            self.recent_notes.record(self.path_resolver.normalize(parse_path(destination_path)))

        await self._persist(changes)
        return result

    async def clone_to(
        self, note_id: str, parent_note_id: str, prefix: str | None = None
    ) -> Branch:
        """Attach a note under an additional parent."""
        branch = self.branch_store.create_branch(note_id, parent_note_id, prefix=prefix)
        changes = _Changes()
        changes.notes.add(note_id)
        changes.parents.add(parent_note_id)
        changes.saved[branch.id] = branch
        self._invalidate(changes)
        await self._persist(changes)
        return branch

    async def remove(self, branch_id: str) -> Branch:
        """Detach a single branch, orphaning the note if it was the last one."""
        branch = self.branch_store.remove_branch(branch_id)
        changes = _Changes()
        changes.notes.add(branch.note_id)
        changes.parents.add(branch.parent_note_id)
        changes.deleted.add(branch.id)
        self._invalidate(changes)
        await self._persist(changes)
        return branch

    async def reorder(self, parent_note_id: str, branch_ids: list[str]) -> list[Branch]:
        children = self.branch_store.reorder(parent_note_id, branch_ids)
        changes = _Changes()
        changes.notes.update(branch.note_id for branch in children)
        changes.parents.add(parent_note_id)
        changes.saved.update((branch.id, branch) for branch in children)
        self._invalidate(changes)
        await self._persist(changes)
        return children

    async def set_prefix(self, branch_id: str, prefix: str | None) -> Branch:
        branch = self.branch_store.set_prefix(branch_id, prefix)
        changes = _Changes()
        changes.notes.add(branch.note_id)
        changes.parents.add(branch.parent_note_id)
        changes.saved[branch.id] = branch
        self._invalidate(changes)
        await self._persist(changes)
        return branch

    def _apply(
        self, selection: NoteSelection, target_note_id: str, changes: _Changes
    ) -> ItemOutcome:
        try:
            if selection.mode is RelocationMode.MOVE:
                return self._move(selection, target_note_id, changes)
            return self._clone(selection, target_note_id, changes)
        except NoteTreeError as e:
            logger.warning(f"Skipping {selection.note_id}: {e}")
            return ItemOutcome(
                note_id=selection.note_id,
                status="skipped",
                branch_id=selection.source_branch_id,
                reason=e.reason,
                message=e.message,
            )

    def _move(
        self, selection: NoteSelection, target_note_id: str, changes: _Changes
    ) -> ItemOutcome:
        branch = self.branch_store.get_branch(selection.source_branch_id)
        if branch.note_id != selection.note_id:
            raise UnknownBranch(
                branch.id, f"Branch '{branch.id}' does not belong to note '{selection.note_id}'"
            )

        moved = self.branch_store.move_branch(branch.id, target_note_id)
        changes.notes.add(branch.note_id)
        changes.parents.update({branch.parent_note_id, target_note_id})
        changes.saved[moved.id] = moved
        return ItemOutcome(note_id=selection.note_id, status="moved", branch_id=moved.id)

    def _clone(
        self, selection: NoteSelection, target_note_id: str, changes: _Changes
    ) -> ItemOutcome:
        branch = self.branch_store.create_branch(selection.note_id, target_note_id)
        changes.notes.add(branch.note_id)
        changes.parents.add(target_note_id)
        changes.saved[branch.id] = branch
        return ItemOutcome(note_id=selection.note_id, status="cloned", branch_id=branch.id)

    def _invalidate(self, changes: _Changes) -> None:
        for note_id in sorted(changes.notes):
            self.note_cache.invalidate(note_id)
        for parent_note_id in sorted(changes.parents):
            self.note_cache.invalidate_children_of(parent_note_id)

    async def _persist(self, changes: _Changes) -> None:
        try:
            # write the snapshots taken while applying, not the live graph
            for branch_id in sorted(changes.saved.keys() - changes.deleted):
                await self.backing_store.save_branch(changes.saved[branch_id])
            for branch_id in sorted(changes.deleted):
                await self.backing_store.delete_branch(branch_id)
        except BackingStoreError:
            logger.error("Failed to write tree changes to the backing store")
            raise
        except NoteTreeError:
            raise
        except Exception as e:
            logger.error(f"Failed to write tree changes to the backing store: {e}")
            raise BackingStoreError(
                "Failed to write tree changes", operation="save_branch", original_error=e
            ) from e
