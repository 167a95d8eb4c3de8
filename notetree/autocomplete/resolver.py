"""Resolution of free-text queries into linkable note references."""

import asyncio
import html
import logging
import re

from pydantic import BaseModel

from notetree.autocomplete.recent import RecentNotes
from notetree.branches.store import BranchStore
from notetree.cache.note_cache import NoteCache
from notetree.config import settings
from notetree.domain.note import Note
from notetree.paths.resolver import PathResolver, format_path

logger = logging.getLogger(__name__)


class Candidate(BaseModel):
    """A note matching an autocomplete query."""

    note_id: str
    title: str
    path: str
    path_title: str = ""
    highlighted_title: str = ""


class MentionItem(BaseModel):
    """A candidate shaped for the editor's mention feed."""

    id: str
    text: str
    link: str


NO_RESULTS: tuple[Candidate, ...] = ()


def tokenize(text: str) -> list[str]:
    return [token.lower() for token in text.split() if token]


def highlight(title: str, tokens: list[str]) -> str:
    """HTML-escape a title and wrap every matched token in <b> tags."""
    if not tokens:
        return html.escape(title)
    alternatives = sorted(tokens, key=len, reverse=True)
    pattern = re.compile("|".join(re.escape(token) for token in alternatives), re.IGNORECASE)
    parts = []
    last = 0
    for match in pattern.finditer(title):
        parts.append(html.escape(title[last : match.start()]))
        parts.append(f"<b>{html.escape(match.group(0))}</b>")
        last = match.end()
    parts.append(html.escape(title[last:]))
    return "".join(parts)


class ReferenceResolver:
    """Answers autocomplete queries by reading through the note cache."""

    def __init__(
        self,
        *,
        branch_store: BranchStore,
        note_cache: NoteCache,
        path_resolver: PathResolver,
        recent_notes: RecentNotes | None = None,
        limit: int = settings.autocomplete_limit,
    ):
        """Initialize resolver.

        Args:
            branch_store: Source of the attached notes to consider
            note_cache: Where titles are read from
            path_resolver: Builds the path each candidate links to
            recent_notes: Offered when the query is empty
            limit: Default maximum number of candidates
        """
        self.branch_store = branch_store
        self.note_cache = note_cache
        self.path_resolver = path_resolver
        self.recent_notes = recent_notes or RecentNotes()
        self.limit = limit

    async def query(self, text: str, limit: int | None = None) -> tuple[Candidate, ...]:
        """Find notes whose title contains every token of text.

        Returns:
            Ranked candidates, or NO_RESULTS when nothing matches
        """
        if limit is None:
            limit = self.limit
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        tokens = tokenize(text)
        if not tokens:
            return await self._recent(limit)

        note_ids = sorted(
            note_id
            for note_id in self.branch_store.note_ids()
            if note_id != self.branch_store.root_note_id
            and not self.branch_store.is_orphan(note_id)
        )
        notes = await self._load(note_ids)

        matches = []
        for note in notes:
            title = note.title.lower()
            if all(token in title for token in tokens):
                path = self.path_resolver.best_path(note.id)
                if path is not None:
                    matches.append((note, path))

        if not matches:
            return NO_RESULTS

        query_text = " ".join(tokens)

        def rank(match: tuple[Note, list[str]]) -> tuple[int, int, int, str]:
            note, path = match
            title = note.title.lower()
            return (title != query_text, not title.startswith(tokens[0]), len(path), title)

        matches.sort(key=rank)
        return tuple([await self._candidate(note, path, tokens) for note, path in matches[:limit]])

    async def mention_feed(
        self, query_text: str, marker: str = settings.mention_marker
    ) -> list[MentionItem]:
        """Candidates shaped as editor mentions. An empty list when nothing matches."""
        candidates = await self.query(query_text)
        return [
            MentionItem(id=f"{marker}{c.title}", text=c.title, link=f"#{c.path}")
            for c in candidates
        ]

    async def _recent(self, limit: int) -> tuple[Candidate, ...]:
        candidates = []
        for path in self.recent_notes.paths():
            note_id = path[-1]
            if note_id == self.branch_store.root_note_id:
                continue
            # the note may have been moved or detached since it was recorded
            current = self.path_resolver.best_path(note_id, context_path=path)
            if current is None:
                continue
            notes = await self._load([note_id])
            if notes:
                candidates.append(await self._candidate(notes[0], current, []))
            if len(candidates) >= limit:
                break
        return tuple(candidates) or NO_RESULTS

    async def _load(self, note_ids: list[str]) -> list[Note]:
        results = await asyncio.gather(
            *(self.note_cache.get_note(note_id) for note_id in note_ids), return_exceptions=True
        )
        notes = []
        for note_id, result in zip(note_ids, results):
            if isinstance(result, BaseException):
                logger.warning(f"Could not read note {note_id} for autocomplete: {result}")
                continue
            notes.append(result)
        return notes

    async def _candidate(self, note: Note, path: list[str], tokens: list[str]) -> Candidate:
        ancestors = await self._load(path[1:-1])
        return Candidate(
            note_id=note.id,
            title=note.title,
            path=format_path(path),
            path_title=" / ".join(n.title for n in [*ancestors, note]),
            highlighted_title=highlight(note.title, tokens),
        )
