from __future__ import annotations

import os
from pathlib import Path

import pytest

from markport.app.tree.builder import build_tree, single_file_tree
from markport.domain.tree import NodeKind, TreeNode


def _names(nodes: tuple[TreeNode, ...]) -> list[str]:
    return [node.name for node in nodes]


def test_build_tree_prunes_and_ignores(docs_root: Path) -> None:
    tree = build_tree(docs_root, docs_root)
    assert _names(tree) == ["docs", "readme.md"]
    docs = tree[0]
    assert docs.kind is NodeKind.DIRECTORY
    assert _names(docs.children) == ["sub", "guide.md"]
    assert docs.children[0].children[0].path == "docs/sub/deep.markdown"


def test_build_tree_orders_directories_first_then_alphabetically(tmp_path: Path) -> None:
    for name in ("b.md", "A.md", "c.MD"):
        (tmp_path / name).write_text("# x", encoding="utf-8")
    (tmp_path / "zeta").mkdir()
    (tmp_path / "zeta" / "inner.md").write_text("# inner", encoding="utf-8")
    (tmp_path / "Alpha").mkdir()
    (tmp_path / "Alpha" / "inner.md").write_text("# inner", encoding="utf-8")

    tree = build_tree(tmp_path, tmp_path)
    assert _names(tree) == ["Alpha", "zeta", "A.md", "b.md", "c.MD"]


def test_build_tree_paths_relative_to_base(docs_root: Path) -> None:
    tree = build_tree(docs_root / "docs", docs_root)
    assert [node.path for node in tree] == ["docs/sub", "docs/guide.md"]
    for node in tree:
        assert (docs_root / node.path).exists()


def test_build_tree_skips_ignored_names_at_every_depth(tmp_path: Path) -> None:
    nested = tmp_path / "pkg" / "dist"
    nested.mkdir(parents=True)
    (nested / "bundle.md").write_text("# built", encoding="utf-8")
    (tmp_path / "pkg" / ".git").mkdir()
    (tmp_path / "pkg" / ".git" / "notes.md").write_text("# git", encoding="utf-8")
    assert build_tree(tmp_path, tmp_path) == ()


def test_build_tree_is_repeatable(docs_root: Path) -> None:
    assert build_tree(docs_root, docs_root) == build_tree(docs_root, docs_root)


def test_build_tree_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        build_tree(tmp_path / "missing", tmp_path)


def test_build_tree_does_not_follow_directory_symlinks(tmp_path: Path) -> None:
    real = tmp_path / "real"
    real.mkdir()
    (real / "doc.md").write_text("# doc", encoding="utf-8")
    try:
        os.symlink(real, tmp_path / "loop", target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported")
    assert _names(build_tree(tmp_path, tmp_path)) == ["real"]


def test_tree_node_serialisation(docs_root: Path) -> None:
    payload = [node.to_dict() for node in build_tree(docs_root, docs_root)]
    assert payload[1] == {"name": "readme.md", "path": "readme.md", "type": "file"}
    assert payload[0]["type"] == "directory"
    assert payload[0]["children"][1]["path"] == "docs/guide.md"


def test_single_file_tree() -> None:
    assert single_file_tree("notes.md") == (TreeNode(name="notes.md", path="notes.md", kind=NodeKind.FILE),)
