"""Note domain models."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class NoteCapability(str, Enum):
    """What the editing surface may do with a note."""

    EDIT_RICH_TEXT = "edit_rich_text"
    EDIT_SOURCE = "edit_source"
    PREVIEW = "preview"
    MENTION = "mention"
    CHILDREN_VIEW = "children_view"


EDIT_CAPABILITIES = frozenset({NoteCapability.EDIT_RICH_TEXT, NoteCapability.EDIT_SOURCE})


class NoteType(str, Enum):
    """Content type of a note together with the capabilities it supports."""

    TEXT = "text"
    CODE = "code"
    FILE = "file"
    IMAGE = "image"
    SEARCH = "search"
    BOOK = "book"
    RELATION_MAP = "relation-map"
    RENDER = "render"

    @property
    def capabilities(self) -> frozenset[NoteCapability]:
        return _TYPE_CAPABILITIES[self]


_TYPE_CAPABILITIES: dict[NoteType, frozenset[NoteCapability]] = {
    NoteType.TEXT: frozenset(
        {NoteCapability.EDIT_RICH_TEXT, NoteCapability.MENTION, NoteCapability.PREVIEW}
    ),
    NoteType.CODE: frozenset({NoteCapability.EDIT_SOURCE, NoteCapability.PREVIEW}),
    NoteType.FILE: frozenset({NoteCapability.PREVIEW}),
    NoteType.IMAGE: frozenset({NoteCapability.PREVIEW}),
    NoteType.SEARCH: frozenset({NoteCapability.CHILDREN_VIEW}),
    NoteType.BOOK: frozenset({NoteCapability.CHILDREN_VIEW, NoteCapability.PREVIEW}),
    NoteType.RELATION_MAP: frozenset({NoteCapability.CHILDREN_VIEW}),
    NoteType.RENDER: frozenset({NoteCapability.PREVIEW}),
}


class Attribute(BaseModel):
    """A label or relation attached to a note."""

    type: Literal["label", "relation"]
    name: str
    value: str = ""


class Note(BaseModel):
    """A content unit as seen by the tree core.

    The content blob is owned by the editing subsystem; only its size is kept
    here.

    Attributes:
        id: Opaque note identifier
        title: Note title
        type: Content type tag
        mime: MIME type for code and file notes
        attributes: Labels and relations owned by the note
        is_protected: Whether the content is encrypted
        content_length: Size of the content blob in characters
    """

    id: str
    title: str
    type: NoteType = NoteType.TEXT
    mime: str = ""
    attributes: list[Attribute] = []
    is_protected: bool = False
    content_length: int = 0

    @property
    def is_read_only(self) -> bool:
        return any(attr.type == "label" and attr.name == "readOnly" for attr in self.attributes)

    @property
    def capabilities(self) -> frozenset[NoteCapability]:
        capabilities = self.type.capabilities
        if self.is_read_only:
            return capabilities - EDIT_CAPABILITIES
        return capabilities

    def supports(self, capability: NoteCapability) -> bool:
        return capability in self.capabilities
