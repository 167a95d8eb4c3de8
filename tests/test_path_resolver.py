"""Tests for PathResolver functionality."""

import pytest

from notetree.branches.store import BranchStore
from notetree.exceptions import BrokenPath, PathNotFound
from notetree.paths.resolver import PathResolver, format_path, note_id_from_image_url, parse_path


def test_parse_path_ignores_empty_segments() -> None:
    assert parse_path("root/p1//p2/") == ["root", "p1", "p2"]
    assert parse_path("  ") == []
    assert format_path(["root", "q"]) == "root/q"


def test_resolve_returns_branch_chain(path_resolver: PathResolver) -> None:
    chain = path_resolver.resolve(["root", "p1", "p2", "a"])
    assert [b.id for b in chain] == ["b_p1", "b_p2", "b_a"]


def test_resolve_without_leading_root(path_resolver: PathResolver) -> None:
    chain = path_resolver.resolve(["q", "n1"])
    assert [b.id for b in chain] == ["b_q", "b_n1_q"]


def test_resolve_broken_hop(path_resolver: PathResolver) -> None:
    with pytest.raises(BrokenPath) as exc_info:
        path_resolver.resolve(["root", "q", "a"])
    assert exc_info.value.parent_note_id == "q"
    assert exc_info.value.note_id == "a"


def test_resolve_target(path_resolver: PathResolver) -> None:
    assert path_resolver.resolve_target("root/p1/p2") == "p2"
    assert path_resolver.resolve_target("root") == "root"
    # a bare id resolves wherever the note lives
    assert path_resolver.resolve_target("a") == "a"


@pytest.mark.parametrize("note_path", ["", "root/q/a", "ghost", "o"])
def test_resolve_target_unresolvable(path_resolver: PathResolver, note_path: str) -> None:
    with pytest.raises(PathNotFound):
        path_resolver.resolve_target(note_path)


def test_paths_to_cloned_note(path_resolver: PathResolver) -> None:
    assert path_resolver.paths_to("n1") == [["root", "p1", "n1"], ["root", "q", "n1"]]


def test_paths_to_root_orphan_and_unknown(path_resolver: PathResolver) -> None:
    assert path_resolver.paths_to("root") == [["root"]]
    assert path_resolver.paths_to("o") == []
    assert path_resolver.paths_to("ghost") == []


def test_paths_to_expands_cloned_ancestors(
    branch_store: BranchStore, path_resolver: PathResolver
) -> None:
    branch_store.create_branch("p2", "b")
    assert path_resolver.paths_to("a") == [
        ["root", "b", "p2", "a"],
        ["root", "p1", "p2", "a"],
    ]


def test_paths_to_is_capped(branch_store: BranchStore) -> None:
    resolver = PathResolver(branch_store, max_paths=1)
    assert len(resolver.paths_to("n1")) == 1


def test_best_path_prefers_context(path_resolver: PathResolver) -> None:
    assert path_resolver.best_path("n1") == ["root", "p1", "n1"]
    assert path_resolver.best_path("n1", context_path=["root", "q"]) == ["root", "q", "n1"]
    assert path_resolver.best_path("n1", context_path=["q"]) == ["root", "q", "n1"]
    assert path_resolver.best_path("o") is None


def test_note_id_from_image_url() -> None:
    assert note_id_from_image_url("http://localhost/api/images/abc123/diagram.png") == "abc123"
    assert note_id_from_image_url("https://example.com/cat.png") is None


def _diamond_lattice(branch_store: BranchStore, top: str, levels: int) -> str:
    """Hang a chain of diamonds under top and return the bottom note."""
    branch_store.register_note(top)
    previous = top
    for level in range(levels):
        left, right, bottom = f"l{level}", f"r{level}", f"m{level}"
        for note_id in (left, right, bottom):
            branch_store.register_note(note_id)
        branch_store.create_branch(left, previous)
        branch_store.create_branch(right, previous)
        branch_store.create_branch(bottom, left)
        branch_store.create_branch(bottom, right)
        previous = bottom
    return previous


def test_paths_to_note_under_detached_lattice(
    branch_store: BranchStore, path_resolver: PathResolver
) -> None:
    bottom = _diamond_lattice(branch_store, "top", levels=40)
    assert branch_store.is_orphan("top")
    assert path_resolver.paths_to(bottom) == []
    assert path_resolver.best_path(bottom) is None


def test_paths_to_skips_detached_ancestors(
    branch_store: BranchStore, path_resolver: PathResolver
) -> None:
    bottom = _diamond_lattice(branch_store, "top", levels=40)
    branch_store.create_branch(bottom, "q")
    assert path_resolver.paths_to(bottom) == [["root", "q", bottom]]
    assert path_resolver.resolve_target(bottom) == bottom


def test_paths_to_rooted_lattice_is_capped(branch_store: BranchStore) -> None:
    bottom = _diamond_lattice(branch_store, "top", levels=40)
    branch_store.create_branch("top", "root")
    resolver = PathResolver(branch_store, max_paths=5)
    paths = resolver.paths_to(bottom)
    assert len(paths) == 5
    assert all(path[:2] == ["root", "top"] and path[-1] == bottom for path in paths)
