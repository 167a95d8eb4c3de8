"""Recently targeted notes, offered before the user types anything."""

from collections import deque

from notetree.config import settings


class RecentNotes:
    """Most-recent-first list of note paths, one entry per note."""

    def __init__(self, limit: int = settings.recent_notes_limit) -> None:
        self._paths: deque[list[str]] = deque(maxlen=limit)

    def record(self, note_path: list[str]) -> None:
        if not note_path:
            return
        note_id = note_path[-1]
        for existing in list(self._paths):
            if existing[-1] == note_id:
                self._paths.remove(existing)
        self._paths.appendleft(list(note_path))

    def paths(self) -> list[list[str]]:
        return [list(path) for path in self._paths]
