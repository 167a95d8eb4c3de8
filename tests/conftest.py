import pytest
from fastapi.testclient import TestClient

from notetree.api import create_app
from notetree.autocomplete.recent import RecentNotes
from notetree.autocomplete.resolver import ReferenceResolver
from notetree.branches.store import BranchStore
from notetree.cache.events import EventBus
from notetree.cache.note_cache import NoteCache
from notetree.domain.branch import Branch
from notetree.domain.events import InvalidationEvent
from notetree.domain.note import Note, NoteType
from notetree.paths.resolver import PathResolver
from notetree.relocation.engine import RelocationEngine
from tests.fakes import FakeBackingStore


@pytest.fixture
def anyio_backend() -> str:
    """Run anyio tests on asyncio only."""
    return "asyncio"


@pytest.fixture
def test_notes() -> dict[str, Note]:
    notes = [
        Note(id="root", title="root", type=NoteType.BOOK),
        Note(id="p1", title="Projects"),
        Note(id="p2", title="Planning"),
        Note(id="a", title="Alpha tasks"),
        Note(id="n1", title="Shared checklist"),
        Note(id="q", title="Queue"),
        Note(id="b", title="Beta release"),
        Note(id="c", title="Gamma notes", type=NoteType.CODE, mime="text/x-python"),
        Note(id="o", title="Orphaned draft"),
    ]
    return {note.id: note for note in notes}


@pytest.fixture
def test_branches() -> dict[str, Branch]:
    """The tree used throughout the tests.

    root
    ├── p1 Projects
    │   ├── p2 Planning
    │   │   └── a Alpha tasks
    │   └── n1 Shared checklist
    ├── q Queue
    │   └── n1 Shared checklist (clone)
    ├── b Beta release
    └── c Gamma notes

    o Orphaned draft has no branch at all.
    """
    branches = [
        Branch(id="b_p1", note_id="p1", parent_note_id="root", position=10),
        Branch(id="b_p2", note_id="p2", parent_note_id="p1", position=10),
        Branch(id="b_a", note_id="a", parent_note_id="p2", position=10),
        Branch(id="b_n1_p1", note_id="n1", parent_note_id="p1", position=20),
        Branch(id="b_q", note_id="q", parent_note_id="root", position=20),
        Branch(id="b_n1_q", note_id="n1", parent_note_id="q", position=10, prefix="Ref"),
        Branch(id="b_b", note_id="b", parent_note_id="root", position=30),
        Branch(id="b_c", note_id="c", parent_note_id="root", position=40),
    ]
    return {branch.id: branch for branch in branches}


@pytest.fixture
def fake_backing_store(
    test_notes: dict[str, Note], test_branches: dict[str, Branch]
) -> FakeBackingStore:
    return FakeBackingStore(dict(test_notes), dict(test_branches))


@pytest.fixture
def branch_store(test_notes: dict[str, Note], test_branches: dict[str, Branch]) -> BranchStore:
    store = BranchStore(root_note_id="root")
    store.load(set(test_notes), list(test_branches.values()))
    return store


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def received_events(events: EventBus) -> list[InvalidationEvent]:
    """Every invalidation event published during the test."""
    received: list[InvalidationEvent] = []
    events.subscribe(received.append)
    return received


@pytest.fixture
def note_cache(
    fake_backing_store: FakeBackingStore, branch_store: BranchStore, events: EventBus
) -> NoteCache:
    return NoteCache(fake_backing_store, branch_store, events=events)


@pytest.fixture
def path_resolver(branch_store: BranchStore) -> PathResolver:
    return PathResolver(branch_store, max_paths=50)


@pytest.fixture
def recent_notes() -> RecentNotes:
    return RecentNotes(limit=5)


@pytest.fixture
def engine(
    branch_store: BranchStore,
    note_cache: NoteCache,
    path_resolver: PathResolver,
    fake_backing_store: FakeBackingStore,
    recent_notes: RecentNotes,
) -> RelocationEngine:
    return RelocationEngine(
        branch_store=branch_store,
        note_cache=note_cache,
        path_resolver=path_resolver,
        backing_store=fake_backing_store,
        recent_notes=recent_notes,
    )


@pytest.fixture
def reference_resolver(
    branch_store: BranchStore,
    note_cache: NoteCache,
    path_resolver: PathResolver,
    recent_notes: RecentNotes,
) -> ReferenceResolver:
    return ReferenceResolver(
        branch_store=branch_store,
        note_cache=note_cache,
        path_resolver=path_resolver,
        recent_notes=recent_notes,
        limit=10,
    )


@pytest.fixture
def test_client(
    branch_store: BranchStore,
    note_cache: NoteCache,
    path_resolver: PathResolver,
    engine: RelocationEngine,
    reference_resolver: ReferenceResolver,
    events: EventBus,
) -> TestClient:
    """Create test client wired to the fake backing store."""
    app = create_app(
        branch_store=branch_store,
        note_cache=note_cache,
        path_resolver=path_resolver,
        engine=engine,
        reference_resolver=reference_resolver,
        events=events,
    )
    return TestClient(app)
