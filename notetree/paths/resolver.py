"""Conversion between note paths and branch chains."""

import re

from loguru import logger

from notetree.branches.store import BranchStore
from notetree.config import settings
from notetree.domain.branch import Branch
from notetree.exceptions import BrokenPath, PathNotFound

IMAGE_URL_PATTERN = re.compile(r"/api/images/([A-Za-z0-9_]+)/")


def parse_path(note_path: str) -> list[str]:
    """Split a '/'-joined note path into note ids, ignoring empty segments."""
    return [segment.strip() for segment in note_path.split("/") if segment.strip()]


def format_path(note_ids: list[str]) -> str:
    return "/".join(note_ids)


def note_id_from_image_url(url: str) -> str | None:
    """Extract the owning note id from an embedded image link, if it is one."""
    match = IMAGE_URL_PATTERN.search(url)
    return match.group(1) if match else None


class PathResolver:
    """Resolve note paths against the branch store with the root as the implicit start."""

    def __init__(self, branch_store: BranchStore, max_paths: int = settings.max_paths):
        """
        Initialize PathResolver.

        Args:
            branch_store: Graph the paths are resolved against
            max_paths: Upper bound on the number of paths enumerated for one note
        """
        self.branch_store = branch_store
        self.max_paths = max_paths

    @property
    def root_note_id(self) -> str:
        return self.branch_store.root_note_id

    def normalize(self, path: list[str]) -> list[str]:
        """Prepend the root when the path does not already start there."""
        if path and path[0] == self.root_note_id:
            return list(path)
        return [self.root_note_id, *path]

    def resolve(self, path: list[str]) -> list[Branch]:
        """Walk a path pairwise and return the connecting branches.

        Raises:
            BrokenPath: A pair of consecutive notes is not connected
        """
        note_ids = self.normalize(path)
        chain = []
        for parent_note_id, note_id in zip(note_ids, note_ids[1:]):
            branch = self.branch_store.find_branch(note_id, parent_note_id)
            if branch is None:
                raise BrokenPath(parent_note_id, note_id)
            chain.append(branch)
        return chain

    def resolve_target(self, note_path: str) -> str:
        """Turn a destination path string into the target note id.

        Raises:
            PathNotFound: The path is empty or does not lead anywhere
        """
        note_ids = parse_path(note_path)
        if not note_ids:
            raise PathNotFound(note_path, "No destination path given")

        try:
            self.resolve(note_ids)
        except BrokenPath as e:
            # a bare note id names the note wherever it lives
            if len(note_ids) == 1 and self.paths_to(note_ids[0]):
                return note_ids[0]
            logger.warning(f"Destination path {note_path} is broken: {e.message}")
            raise PathNotFound(note_path) from e

        target_note_id = note_ids[-1]
        if not self.branch_store.has_note(target_note_id):
            raise PathNotFound(note_path)
        return target_note_id

    def paths_to(self, note_id: str) -> list[list[str]]:
        """Enumerate root-to-note paths, one per chain of branches, sorted.

        Orphans and unknown notes have no paths.
        """
        if note_id == self.root_note_id:
            return [[self.root_note_id]]
        if not self.branch_store.has_note(note_id) or self.branch_store.is_orphan(note_id):
            return []

        # ancestors hanging under a detached note can never complete a path
        rooted = self.branch_store.rooted_ancestors(note_id)
        if not rooted:
            return []

        paths: list[list[str]] = []
        # each entry is a partial path from some ancestor down to note_id
        stack = [[note_id]]
        while stack and len(paths) < self.max_paths:
            partial = stack.pop()
            head = partial[0]
            if head == self.root_note_id:
                paths.append(partial)
                continue
            for parent_note_id in reversed(self.branch_store.parents_of(head)):
                if parent_note_id not in rooted or parent_note_id in partial:
                    continue
                stack.append([parent_note_id, *partial])

        if stack:
            logger.warning(f"Stopped enumerating paths to {note_id} at {self.max_paths}")
        return sorted(paths)

    def best_path(self, note_id: str, context_path: list[str] | None = None) -> list[str] | None:
        """Pick the occurrence of a note to act on.

        Prefers the path sharing the longest prefix with context_path (e.g. the
        path currently displayed), then the first path in sorted order.
        """
        paths = self.paths_to(note_id)
        if not paths:
            return None
        if not context_path:
            return paths[0]

        context = self.normalize(context_path)

        def shared_prefix(path: list[str]) -> int:
            length = 0
            for a, b in zip(path, context):
                if a != b:
                    break
                length += 1
            return length

        return max(paths, key=shared_prefix)
