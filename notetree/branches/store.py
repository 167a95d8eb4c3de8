"""In-memory edge set of the note graph and the invariants that guard it."""

import uuid
from collections import deque

from loguru import logger

from notetree.backing_store.base import BackingStore
from notetree.config import settings
from notetree.domain.branch import POSITION_STEP, Branch
from notetree.exceptions import CycleDetected, DuplicateEdge, UnknownBranch, UnknownNote


def generate_branch_id() -> str:
    return uuid.uuid4().hex[:12]


class BranchStore:
    """Maintains branches and the parent -> children and note -> branches indices.

    All mutations run to completion without suspending, so a caller that
    validated state in the same turn can rely on it.
    """

    def __init__(
        self,
        root_note_id: str = settings.root_note_id,
        max_ancestor_visits: int = settings.max_ancestor_visits,
    ) -> None:
        self.root_note_id = root_note_id
        self.max_ancestor_visits = max_ancestor_visits
        self._branches: dict[str, Branch] = {}
        self._children: dict[str, set[str]] = {}
        self._owning: dict[str, set[str]] = {}
        self._note_ids: set[str] = {root_note_id}
        self._orphans: set[str] = set()

    def load(self, note_ids: set[str], branches: list[Branch]) -> None:
        """Replace the whole graph with a snapshot from the backing store."""
        self._branches.clear()
        self._children.clear()
        self._owning.clear()
        self._note_ids = {self.root_note_id, *note_ids}
        for branch in branches:
            self._index(branch)
        self._orphans = {
            note_id
            for note_id in self._note_ids
            if note_id != self.root_note_id and not self._owning.get(note_id)
        }
        logger.info(
            f"Loaded {len(self._branches)} branches for {len(self._note_ids)} notes "
            f"({len(self._orphans)} orphans)"
        )

    async def sync_from(self, backing_store: BackingStore) -> None:
        """Load the graph from the backing store."""
        note_ids = await backing_store.fetch_note_ids()
        branches = await backing_store.fetch_branches()
        self.load(note_ids, branches)

    def register_note(self, note_id: str) -> None:
        """Make a note known to the graph. A note without branches starts orphaned."""
        self._note_ids.add(note_id)
        if note_id != self.root_note_id and not self._owning.get(note_id):
            self._orphans.add(note_id)

    def has_note(self, note_id: str) -> bool:
        return note_id in self._note_ids

    def note_ids(self) -> set[str]:
        return set(self._note_ids)

    def get_branch(self, branch_id: str) -> Branch:
        try:
            return self._branches[branch_id]
        except KeyError:
            raise UnknownBranch(branch_id) from None

    def find_branch(self, note_id: str, parent_note_id: str) -> Branch | None:
        """Get the branch placing note_id directly under parent_note_id."""
        for branch_id in self._owning.get(note_id, ()):
            branch = self._branches[branch_id]
            if branch.parent_note_id == parent_note_id:
                return branch
        return None

    def branches_of(self, note_id: str) -> list[Branch]:
        branches = [self._branches[bid] for bid in self._owning.get(note_id, ())]
        return sorted(branches, key=lambda b: (b.parent_note_id, b.sort_key))

    def parents_of(self, note_id: str) -> list[str]:
        return sorted({b.parent_note_id for b in self.branches_of(note_id)})

    def list_children(self, parent_note_id: str) -> list[Branch]:
        """Get child branches ordered by position, then id. Empty when there are none."""
        branches = [self._branches[bid] for bid in self._children.get(parent_note_id, ())]
        return sorted(branches, key=lambda b: b.sort_key)

    def is_orphan(self, note_id: str) -> bool:
        return note_id in self._orphans

    def orphans(self) -> set[str]:
        return set(self._orphans)

    def snapshot(self) -> list[Branch]:
        return [branch.model_copy() for branch in self._branches.values()]

    def is_ancestor(self, candidate_id: str, note_id: str) -> bool:
        """Check whether candidate_id can be reached going upward from note_id.

        A note can have several parents, so this walks every incoming edge
        breadth-first, visiting each note once. When the visit budget runs out
        the answer is assumed to be yes.
        """
        visited = {note_id}
        queue = deque([note_id])

        while queue:
            current_id = queue.popleft()
            if current_id == candidate_id:
                return True

            for branch_id in self._owning.get(current_id, ()):
                parent_id = self._branches[branch_id].parent_note_id
                if parent_id in visited:
                    continue
                if len(visited) >= self.max_ancestor_visits:
                    logger.warning(
                        f"Ancestor search from {note_id} exceeded {self.max_ancestor_visits} notes"
                    )
                    return True
                visited.add(parent_id)
                queue.append(parent_id)

        return False

    def rooted_ancestors(self, note_id: str) -> set[str]:
        """Return note_id and its ancestors that sit on some chain down from the root.

        Empty when the note cannot be reached from the root at all.
        """
        ancestors = {note_id}
        queue = deque([note_id])
        while queue:
            current_id = queue.popleft()
            for branch_id in self._owning.get(current_id, ()):
                parent_id = self._branches[branch_id].parent_note_id
                if parent_id not in ancestors:
                    ancestors.add(parent_id)
                    queue.append(parent_id)

        if self.root_note_id not in ancestors:
            return set()

        rooted = {self.root_note_id}
        queue = deque([self.root_note_id])
        while queue:
            current_id = queue.popleft()
            for branch_id in self._children.get(current_id, ()):
                child_id = self._branches[branch_id].note_id
                if child_id in ancestors and child_id not in rooted:
                    rooted.add(child_id)
                    queue.append(child_id)
        return rooted

    def check_cycle(self, note_id: str, parent_note_id: str) -> None:
        """Raise CycleDetected if parent_note_id is note_id or one of its descendants."""
        if note_id == parent_note_id:
            message = f"Note '{note_id}' cannot be its own parent"
            raise CycleDetected(note_id, parent_note_id, message)
        if self.is_ancestor(note_id, parent_note_id):
            raise CycleDetected(note_id, parent_note_id)

    def check_can_attach(
        self, note_id: str, parent_note_id: str, ignore_branch_id: str | None = None
    ) -> None:
        """Validate a prospective edge without changing anything.

        Args:
            note_id: The child note
            parent_note_id: The prospective parent
            ignore_branch_id: Branch being moved, which must not count as a duplicate
        """
        for candidate in (note_id, parent_note_id):
            if candidate not in self._note_ids:
                raise UnknownNote(candidate)

        existing = self.find_branch(note_id, parent_note_id)
        if existing is not None and existing.id != ignore_branch_id:
            raise DuplicateEdge(note_id, parent_note_id, existing.id)

        self.check_cycle(note_id, parent_note_id)

    def create_branch(
        self,
        note_id: str,
        parent_note_id: str,
        position: int | None = None,
        prefix: str | None = None,
        branch_id: str | None = None,
    ) -> Branch:
        """Attach note_id under parent_note_id.

        Args:
            note_id: The child note
            parent_note_id: The parent note
            position: Sibling position, appended after the last child if omitted
            prefix: Optional display prefix
            branch_id: Explicit id, generated if omitted

        Returns:
            The new branch
        """
        self.check_can_attach(note_id, parent_note_id)
        if branch_id is not None and branch_id in self._branches:
            raise DuplicateEdge(note_id, parent_note_id, branch_id)

        branch = Branch(
            id=branch_id or generate_branch_id(),
            note_id=note_id,
            parent_note_id=parent_note_id,
            position=self._next_position(parent_note_id) if position is None else position,
            prefix=prefix,
        )
        self._index(branch)
        self._orphans.discard(note_id)
        logger.debug(f"Created branch {branch.id}: {note_id} under {parent_note_id}")
        return branch

    def remove_branch(self, branch_id: str) -> Branch:
        """Detach one edge. The note is flagged as orphan when it was its last branch."""
        branch = self.get_branch(branch_id)
        del self._branches[branch_id]
        self._children[branch.parent_note_id].discard(branch_id)
        self._owning[branch.note_id].discard(branch_id)

        if not self._owning[branch.note_id]:
            self._orphans.add(branch.note_id)
            logger.info(f"Note {branch.note_id} lost its last branch and is now orphaned")
        return branch

    def move_branch(
        self, branch_id: str, new_parent_note_id: str, position: int | None = None
    ) -> Branch:
        """Re-point an existing branch to a new parent, keeping its identity and prefix."""
        branch = self.get_branch(branch_id)
        self.check_can_attach(branch.note_id, new_parent_note_id, ignore_branch_id=branch_id)

        self._children[branch.parent_note_id].discard(branch_id)
        if position is None:
            position = self._next_position(new_parent_note_id)
        moved = branch.model_copy(
            update={"parent_note_id": new_parent_note_id, "position": position}
        )
        self._branches[branch_id] = moved
        self._children.setdefault(new_parent_note_id, set()).add(branch_id)
        logger.debug(
            f"Moved branch {branch_id}: {branch.note_id} from {branch.parent_note_id} "
            f"to {new_parent_note_id}"
        )
        return moved

    def reorder(self, parent_note_id: str, ordered_branch_ids: list[str]) -> list[Branch]:
        """Reassign sibling positions in the given order.

        Children not listed keep their relative order after the listed ones.
        Nothing changes unless every id is a distinct child of parent_note_id.
        """
        children = self._children.get(parent_note_id, set())
        seen: set[str] = set()
        for branch_id in ordered_branch_ids:
            if branch_id not in children:
                raise UnknownBranch(
                    branch_id, f"Branch '{branch_id}' is not a child of '{parent_note_id}'"
                )
            if branch_id in seen:
                raise UnknownBranch(branch_id, f"Branch '{branch_id}' is listed more than once")
            seen.add(branch_id)

        rest = [b.id for b in self.list_children(parent_note_id) if b.id not in seen]
        for index, branch_id in enumerate([*ordered_branch_ids, *rest]):
            self._branches[branch_id] = self._branches[branch_id].model_copy(
                update={"position": (index + 1) * POSITION_STEP}
            )
        return self.list_children(parent_note_id)

    def set_prefix(self, branch_id: str, prefix: str | None) -> Branch:
        branch = self.get_branch(branch_id)
        updated = branch.model_copy(update={"prefix": prefix or None})
        self._branches[branch_id] = updated
        return updated

    def _next_position(self, parent_note_id: str) -> int:
        children = self.list_children(parent_note_id)
        if not children:
            return POSITION_STEP
        return children[-1].position + POSITION_STEP

    def _index(self, branch: Branch) -> None:
        self._branches[branch.id] = branch
        self._children.setdefault(branch.parent_note_id, set()).add(branch.id)
        self._owning.setdefault(branch.note_id, set()).add(branch.id)
        self._note_ids.add(branch.note_id)
