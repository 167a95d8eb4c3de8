"""Process-wide note and child-list cache."""

import asyncio

from loguru import logger

from notetree.backing_store.base import BackingStore
from notetree.branches.store import BranchStore
from notetree.cache.events import EventBus
from notetree.domain.branch import Branch
from notetree.domain.events import InvalidationEvent
from notetree.domain.note import Note
from notetree.exceptions import BackingStoreError, NoteNotFound, NoteTreeError


class NoteCache:
    """Lazily populated cache in front of the backing store and the branch store.

    Entries are only ever filled from a completed read and are dropped, never
    patched, when the graph changes. Concurrent reads of the same uncached note
    share a single backing store fetch.
    """

    def __init__(
        self,
        backing_store: BackingStore,
        branch_store: BranchStore,
        events: EventBus | None = None,
    ) -> None:
        self._backing_store = backing_store
        self._branch_store = branch_store
        self._events = events or EventBus()
        self._notes: dict[str, Note] = {}
        self._children: dict[str, list[Branch]] = {}
        self._owning: dict[str, list[Branch]] = {}
        self._pending: dict[str, asyncio.Task[Note]] = {}
        self._generations: dict[str, int] = {}
        self._epoch = 0

    @property
    def events(self) -> EventBus:
        return self._events

    async def get_note(self, note_id: str) -> Note:
        """Get a note, fetching it from the backing store on a miss.

        Raises:
            NoteNotFound: The backing store has no such note
            BackingStoreError: The backing store failed; the note state is unknown
        """
        if note_id in self._notes:
            return self._notes[note_id]

        task = self._pending.get(note_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch(note_id))
            self._pending[note_id] = task
            task.add_done_callback(lambda done: self._settle(note_id, done))
        return await asyncio.shield(task)

    async def get_notes(self, note_ids: list[str]) -> list[Note]:
        """Get several notes concurrently, in the order requested."""
        return list(await asyncio.gather(*(self.get_note(note_id) for note_id in note_ids)))

    def get_child_branches(self, parent_note_id: str) -> list[Branch]:
        """Get the ordered child branches of a note."""
        if parent_note_id not in self._children:
            self._children[parent_note_id] = self._branch_store.list_children(parent_note_id)
        return list(self._children[parent_note_id])

    def get_owning_branches(self, note_id: str) -> list[Branch]:
        """Get every branch that places the note somewhere in the tree."""
        if note_id not in self._owning:
            self._owning[note_id] = self._branch_store.branches_of(note_id)
        return list(self._owning[note_id])

    def is_cached(self, note_id: str) -> bool:
        return note_id in self._notes

    def invalidate(self, note_id: str) -> None:
        """Drop the cached note and its owning branches."""
        self._notes.pop(note_id, None)
        self._owning.pop(note_id, None)
        self._pending.pop(note_id, None)
        self._generations[note_id] = self._generations.get(note_id, 0) + 1
        self._events.publish(InvalidationEvent(note_id=note_id))

    def invalidate_children_of(self, parent_note_id: str) -> None:
        """Drop the cached child list of a note."""
        self._children.pop(parent_note_id, None)
        self._events.publish(InvalidationEvent(parent_note_id=parent_note_id))

    def clear(self) -> None:
        self._notes.clear()
        self._children.clear()
        self._owning.clear()
        self._pending.clear()
        self._generations.clear()
        self._epoch += 1

    async def _fetch(self, note_id: str) -> Note:
        generation = (self._epoch, self._generations.get(note_id, 0))
        logger.debug(f"Fetching note {note_id} from backing store")

        try:
            note = await self._backing_store.fetch_note(note_id)
        except NoteTreeError:
            raise
        except Exception as e:
            logger.error(f"Backing store failed to fetch note {note_id}: {e}")
            raise BackingStoreError(
                f"Failed to fetch note {note_id}", operation="fetch_note", original_error=e
            ) from e

        if note is None:
            raise NoteNotFound(note_id)

        # an invalidation that arrived mid-fetch makes this result unsafe to keep
        if (self._epoch, self._generations.get(note_id, 0)) == generation:
            self._notes[note_id] = note
        return note

    def _settle(self, note_id: str, task: "asyncio.Task[Note]") -> None:
        if self._pending.get(note_id) is task:
            del self._pending[note_id]
        if not task.cancelled():
            # retrieved here so an unawaited failure is not reported as lost
            task.exception()
