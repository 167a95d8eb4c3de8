from typing import AsyncGenerator

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse
from loguru import logger
from pydantic import BaseModel

from notetree.api.errors import to_http_exception
from notetree.autocomplete.resolver import ReferenceResolver
from notetree.branches.store import BranchStore
from notetree.cache.events import EventBus
from notetree.cache.note_cache import NoteCache
from notetree.config import settings
from notetree.domain.events import InvalidationEvent
from notetree.domain.relocation import RelocationRequest
from notetree.exceptions import NoteTreeError
from notetree.paths.resolver import PathResolver, format_path
from notetree.relocation.engine import RelocationEngine


class CreateBranchRequest(BaseModel):
    note_id: str
    parent_note_id: str
    prefix: str | None = None


class ReorderRequest(BaseModel):
    branch_ids: list[str]


class PrefixRequest(BaseModel):
    prefix: str | None = None


def format_event(event: InvalidationEvent) -> str:
    """Format an invalidation event as an SSE message."""
    return f"event: invalidate\ndata: {event.model_dump_json(exclude_none=True)}\n\n"


async def stream_events(
    event_stream: AsyncGenerator[InvalidationEvent, None],
) -> AsyncGenerator[str, None]:
    try:
        async for event in event_stream:
            yield format_event(event)
    except Exception as e:
        logger.error(f"Error in event stream: {str(e)}")
        yield f"event: error\ndata: {str(e)}\n\n"


def _create_note_endpoint(note_cache: NoteCache):
    """Create the note lookup endpoint handler."""

    async def get_note(note_id: str):
        try:
            note = await note_cache.get_note(note_id)
        except NoteTreeError as e:
            raise to_http_exception(e) from e
        return {
            **note.model_dump(mode="json"),
            "is_read_only": note.is_read_only,
            "capabilities": sorted(capability.value for capability in note.capabilities),
        }

    return get_note


def _create_children_endpoint(branch_store: BranchStore, note_cache: NoteCache):
    """Create the child listing endpoint handler."""

    async def list_children(note_id: str):
        if not branch_store.has_note(note_id):
            raise HTTPException(status_code=404, detail="Note not found")
        return [branch.model_dump() for branch in note_cache.get_child_branches(note_id)]

    return list_children


def _create_paths_endpoint(branch_store: BranchStore, path_resolver: PathResolver):
    """Create the endpoint listing every path leading to a note."""

    async def list_paths(note_id: str):
        if not branch_store.has_note(note_id):
            raise HTTPException(status_code=404, detail="Note not found")
        return {
            "note_id": note_id,
            "is_orphan": branch_store.is_orphan(note_id),
            "paths": [format_path(path) for path in path_resolver.paths_to(note_id)],
        }

    return list_paths


def _create_relocate_endpoint(engine: RelocationEngine):
    """Create the batch move/clone endpoint handler."""

    async def relocate(request: RelocationRequest):
        try:
            result = await engine.relocate(request.selections, request.destination_path)
        except NoteTreeError as e:
            raise to_http_exception(e) from e
        return {
            "target_note_id": result.target_note_id,
            "message": result.message,
            "results": [
                {"note_id": item.note_id, "branch_id": item.branch_id, "status": item.label}
                for item in result.items
            ],
        }

    return relocate


def _create_autocomplete_endpoint(reference_resolver: ReferenceResolver):
    """Create the mention feed endpoint handler."""

    async def autocomplete(query: str = "", marker: str = settings.mention_marker):
        items = await reference_resolver.mention_feed(query, marker=marker)
        return [item.model_dump() for item in items]

    return autocomplete


def _create_search_endpoint(reference_resolver: ReferenceResolver):
    """Create the note search endpoint handler."""

    async def search_notes(query: str, limit: int | None = Query(None, ge=1)):
        candidates = await reference_resolver.query(query, limit=limit)
        return [candidate.model_dump() for candidate in candidates]

    return search_notes


def get_endpoints_router(
    *,
    branch_store: BranchStore,
    note_cache: NoteCache,
    path_resolver: PathResolver,
    engine: RelocationEngine,
    reference_resolver: ReferenceResolver,
    events: EventBus,
) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health_check():
        return {"status": "healthy"}

    router.get("/api/notes/search")(_create_search_endpoint(reference_resolver))
    router.get("/api/notes/{note_id}")(_create_note_endpoint(note_cache))
    router.get("/api/notes/{note_id}/children")(_create_children_endpoint(branch_store, note_cache))
    router.get("/api/notes/{note_id}/paths")(_create_paths_endpoint(branch_store, path_resolver))
    router.post("/api/relocate")(_create_relocate_endpoint(engine))
    router.get("/api/autocomplete")(_create_autocomplete_endpoint(reference_resolver))

    @router.put("/api/notes/{parent_note_id}/children/order")
    async def reorder_children(parent_note_id: str, request: ReorderRequest):
        try:
            children = await engine.reorder(parent_note_id, request.branch_ids)
        except NoteTreeError as e:
            raise to_http_exception(e) from e
        return [branch.model_dump() for branch in children]

    @router.post("/api/branches", status_code=201)
    async def create_branch(request: CreateBranchRequest):
        try:
            branch = await engine.clone_to(
                request.note_id, request.parent_note_id, prefix=request.prefix
            )
        except NoteTreeError as e:
            raise to_http_exception(e) from e
        return branch.model_dump()

    @router.delete("/api/branches/{branch_id}")
    async def delete_branch(branch_id: str):
        try:
            branch = await engine.remove(branch_id)
        except NoteTreeError as e:
            raise to_http_exception(e) from e
        return {"branch_id": branch.id, "is_orphan": branch_store.is_orphan(branch.note_id)}

    @router.put("/api/branches/{branch_id}/prefix")
    async def set_prefix(branch_id: str, request: PrefixRequest):
        try:
            branch = await engine.set_prefix(branch_id, request.prefix)
        except NoteTreeError as e:
            raise to_http_exception(e) from e
        return branch.model_dump()

    @router.get("/api/events")
    async def invalidation_events() -> StreamingResponse:
        return StreamingResponse(
            stream_events(events.stream()),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "Content-Type": "text/event-stream",
            },
        )

    return router
