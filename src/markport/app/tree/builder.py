"""Recursive discovery of Markdown files under the served root."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Tuple

from markport.domain.exclusion import DEFAULT_POLICY, ExclusionPolicy, is_markdown_file
from markport.domain.tree import NodeKind, TreeNode


def _relative_posix(path: Path, base_dir: Path) -> str:
    return Path(os.path.relpath(path, base_dir)).as_posix()


def _sort_key(node: TreeNode) -> tuple[int, str, str]:
    return (0 if node.is_directory else 1, node.name.casefold(), node.name)


def build_tree(
    root_dir: Path,
    base_dir: Path,
    *,
    policy: ExclusionPolicy = DEFAULT_POLICY,
) -> Tuple[TreeNode, ...]:
    """Return the Markdown hierarchy under ``root_dir`` with paths relative to ``base_dir``.

    Directories without an eligible file at any depth are pruned. Errors
    listing ``root_dir`` itself propagate to the caller.
    """

    nodes: List[TreeNode] = []
    with os.scandir(root_dir) as entries:
        listing = list(entries)
    for entry in listing:
        if policy.skip_entry(entry.name):
            continue
        full_path = Path(root_dir) / entry.name
        if entry.is_dir(follow_symlinks=False):
            children = build_tree(full_path, base_dir, policy=policy)
            if children:
                nodes.append(
                    TreeNode(
                        name=entry.name,
                        path=_relative_posix(full_path, base_dir),
                        kind=NodeKind.DIRECTORY,
                        children=children,
                    )
                )
        elif entry.is_file() and is_markdown_file(entry.name):
            nodes.append(
                TreeNode(
                    name=entry.name,
                    path=_relative_posix(full_path, base_dir),
                    kind=NodeKind.FILE,
                )
            )
    nodes.sort(key=_sort_key)
    return tuple(nodes)


def single_file_tree(target_path: str) -> Tuple[TreeNode, ...]:
    name = target_path.replace("\\", "/").rsplit("/", 1)[-1] or target_path
    return (TreeNode(name=name, path=name, kind=NodeKind.FILE),)
