"""Info, tree and content operations behind the preview HTTP API."""

from __future__ import annotations

import logging
import posixpath
import re
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Match

from markport import __version__
from markport.app.render.markdown import render_markdown
from markport.app.tree.builder import build_tree, single_file_tree
from markport.domain.content import ContentResult
from markport.domain.context import AppContext
from markport.domain.errors import ContentNotFoundError, ForbiddenPathError, MissingParameterError

logger = logging.getLogger(__name__)

ASSET_PREFIX = "/assets"

_IMG_SRC = re.compile(r"""(<img\s+[^>]*src=["'])([^"']+)(["'][^>]*>)""", re.IGNORECASE)
_UNTOUCHED_SRC_PREFIXES = ("http://", "https://", "data:", "/")
_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")


def rewrite_asset_paths(html: str, file_dir: str) -> str:
    """Point relative ``<img src>`` values into the asset namespace.

    ``file_dir`` is the root-relative directory of the rendered file. Absolute
    URLs, data URIs, root-relative paths and references climbing above the
    served root are left alone.
    """

    def _replace(match: Match[str]) -> str:
        src = match.group(2)
        if src.startswith(_UNTOUCHED_SRC_PREFIXES):
            return match.group(0)
        asset_path = posixpath.normpath(posixpath.join(ASSET_PREFIX, file_dir, src))
        if not asset_path.startswith(ASSET_PREFIX + "/"):
            return match.group(0)
        return f"{match.group(1)}{asset_path}{match.group(3)}"

    return _IMG_SRC.sub(_replace, html)


def normalize_request_path(file: str) -> str:
    """Normalize a client supplied path, rejecting traversal and absolute forms."""

    if "\x00" in file:
        raise ForbiddenPathError("Invalid file path")
    normalized = posixpath.normpath(file.replace("\\", "/"))
    if normalized.startswith("/") or _DRIVE_PREFIX.match(normalized):
        raise ForbiddenPathError("Invalid file path")
    if ".." in PurePosixPath(normalized).parts:
        raise ForbiddenPathError("Invalid file path")
    return normalized


class PreviewService:
    """Stateless request operations over one :class:`AppContext`."""

    def __init__(self, context: AppContext) -> None:
        self._context = context
        self._root = context.base_path.resolve()

    @property
    def context(self) -> AppContext:
        return self._context

    def info(self) -> Dict[str, Any]:
        return {
            "mode": self._context.mode.value,
            "targetPath": self._context.target_path,
            "version": __version__,
        }

    def tree(self) -> Dict[str, Any]:
        if self._context.is_file_mode:
            nodes = single_file_tree(self._context.target_path)
        else:
            nodes = build_tree(self._root, self._root)
        return {"tree": [node.to_dict() for node in nodes]}

    def resolve(self, file: str | None) -> tuple[str, Path]:
        """Validate ``file`` and return its normalized form and absolute location."""

        if not file:
            raise MissingParameterError("File parameter is required")
        normalized = normalize_request_path(file)
        if self._context.is_file_mode:
            normalized = self._context.target_path
        resolved = (self._root / normalized).resolve()
        if resolved != self._root and self._root not in resolved.parents:
            logger.warning("rejected %s: resolves outside %s", file, self._root)
            raise ForbiddenPathError("Access denied")
        if not resolved.is_file():
            raise ContentNotFoundError("File not found")
        return normalized, resolved

    def content(self, file: str | None) -> ContentResult:
        normalized, resolved = self.resolve(file)
        raw = resolved.read_text(encoding="utf-8", errors="replace")
        rendered = render_markdown(raw)
        file_dir = posixpath.dirname(normalized)
        return ContentResult(
            file=normalized,
            html=rewrite_asset_paths(rendered.html, file_dir),
            headings=rendered.headings,
            raw=raw,
        )
