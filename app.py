import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from notetree.api import create_app
from notetree.autocomplete.recent import RecentNotes
from notetree.autocomplete.resolver import ReferenceResolver
from notetree.backing_store.local import LocalBackingStore
from notetree.branches.store import BranchStore
from notetree.cache.events import EventBus
from notetree.cache.note_cache import NoteCache
from notetree.config import settings
from notetree.paths.resolver import PathResolver
from notetree.relocation.engine import RelocationEngine

logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])

logger.info(f"Initializing note tree from {settings.local_store_path}")
backing_store = LocalBackingStore(settings.local_store_path)
events = EventBus()
branch_store = BranchStore()
note_cache = NoteCache(backing_store, branch_store, events=events)
path_resolver = PathResolver(branch_store)
recent_notes = RecentNotes()
engine = RelocationEngine(
    branch_store=branch_store,
    note_cache=note_cache,
    path_resolver=path_resolver,
    backing_store=backing_store,
    recent_notes=recent_notes,
)
reference_resolver = ReferenceResolver(
    branch_store=branch_store,
    note_cache=note_cache,
    path_resolver=path_resolver,
    recent_notes=recent_notes,
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    await branch_store.sync_from(backing_store)
    yield


app = create_app(
    branch_store=branch_store,
    note_cache=note_cache,
    path_resolver=path_resolver,
    engine=engine,
    reference_resolver=reference_resolver,
    events=events,
    lifespan=lifespan,
)
