"""Single exclusion policy consumed by the tree builder and the change watcher."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import Iterable

MARKDOWN_SUFFIXES = (".md", ".markdown")

IGNORED_NAMES = frozenset(
    {
        "node_modules",
        ".git",
        ".DS_Store",
        "dist",
        ".next",
        ".cache",
    }
)


def is_markdown_file(name: str) -> bool:
    return name.lower().endswith(MARKDOWN_SUFFIXES)


@dataclass(frozen=True)
class ExclusionPolicy:
    """Names skipped while listing and paths ignored while watching.

    Listing skips exact names only, so hidden directories holding Markdown
    still show up in the tree. Watching is coarser and also drops every
    hidden component.
    """

    ignored_names: frozenset[str] = IGNORED_NAMES

    def skip_entry(self, name: str) -> bool:
        return name in self.ignored_names

    def skip_watch_path(self, parts: Iterable[str]) -> bool:
        for part in parts:
            if part in (".", ".."):
                continue
            if part.startswith(".") or part in self.ignored_names:
                return True
        return False

    def skip_relative(self, relative: PurePath) -> bool:
        return self.skip_watch_path(relative.parts)


DEFAULT_POLICY = ExclusionPolicy()
