from typing import Any, AsyncContextManager, Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notetree.api.endpoints import get_endpoints_router
from notetree.autocomplete.resolver import ReferenceResolver
from notetree.branches.store import BranchStore
from notetree.cache.events import EventBus
from notetree.cache.note_cache import NoteCache
from notetree.paths.resolver import PathResolver
from notetree.relocation.engine import RelocationEngine


def create_app(
    *,
    branch_store: BranchStore,
    note_cache: NoteCache,
    path_resolver: PathResolver,
    engine: RelocationEngine,
    reference_resolver: ReferenceResolver,
    events: EventBus,
    lifespan: Callable[[FastAPI], AsyncContextManager[Any]] | None = None,
) -> FastAPI:
    """Create FastAPI app."""
    app = FastAPI(lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        router=get_endpoints_router(
            branch_store=branch_store,
            note_cache=note_cache,
            path_resolver=path_resolver,
            engine=engine,
            reference_resolver=reference_resolver,
            events=events,
        )
    )

    return app
