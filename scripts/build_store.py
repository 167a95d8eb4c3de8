"""CLI for building a local note store from a nested JSON outline.

The outline is a list of nodes shaped like
``{"id": ..., "title": ..., "type": "text", "prefix": null, "children": [...]}``.
A node id that appears more than once is attached under each of its parents
(a clone); its title and type are taken from the first occurrence.
"""

import argparse
import json
from pathlib import Path

from loguru import logger

from notetree.backing_store.local import LocalBackingStore
from notetree.branches.store import BranchStore
from notetree.config import settings
from notetree.domain.note import Note, NoteType


def build_store(outline: list[dict], root_title: str = "root") -> LocalBackingStore:
    """Turn an outline into a backing store, validating every edge on the way."""
    store = LocalBackingStore()
    branch_store = BranchStore()
    store.add_note(Note(id=branch_store.root_note_id, title=root_title, type=NoteType.BOOK))

    stack = [(node, branch_store.root_note_id) for node in reversed(outline)]
    while stack:
        node, parent_note_id = stack.pop()
        note_id = node["id"]
        if not branch_store.has_note(note_id):
            store.add_note(
                Note(id=note_id, title=node.get("title", note_id), type=node.get("type", "text"))
            )
            branch_store.register_note(note_id)

        branch = branch_store.create_branch(note_id, parent_note_id, prefix=node.get("prefix"))
        store.add_branch(branch)
        stack.extend((child, note_id) for child in reversed(node.get("children", [])))

    logger.info(f"Built store with {len(branch_store.note_ids())} notes")
    return store


def main(in_file: str, outfile: str) -> None:
    outline = json.loads(Path(in_file).read_text())
    store = build_store(outline)
    store.save(outfile)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--in-file", type=str, required=True, help="JSON outline of the tree")
    parser.add_argument(
        "--outfile",
        type=str,
        required=False,
        help="Local output store file",
        default=settings.local_store_path,
    )

    args = parser.parse_args()

    main(in_file=args.in_file, outfile=args.outfile)
