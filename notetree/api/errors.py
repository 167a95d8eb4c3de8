from fastapi import HTTPException
from loguru import logger

from notetree.exceptions import (
    BackingStoreError,
    BrokenPath,
    CycleDetected,
    DuplicateEdge,
    NoteNotFound,
    NoteTreeError,
    PathNotFound,
    UnknownBranch,
    UnknownNote,
)

STATUS_CODES: dict[type[NoteTreeError], int] = {
    UnknownNote: 404,
    NoteNotFound: 404,
    UnknownBranch: 404,
    PathNotFound: 404,
    BrokenPath: 404,
    DuplicateEdge: 409,
    CycleDetected: 409,
    BackingStoreError: 503,
}


def to_http_exception(error: NoteTreeError) -> HTTPException:
    """Translate a tree error into the HTTP error returned to the UI."""
    status_code = STATUS_CODES.get(type(error), 400)
    if status_code >= 500:
        logger.error(f"Backing store unavailable: {error}")
        return HTTPException(
            status_code=status_code, detail=error.to_dict(), headers={"Retry-After": "1"}
        )
    logger.warning(f"Request rejected: {error}")
    return HTTPException(status_code=status_code, detail=error.to_dict())
