"""Domain model for the Markdown preview server."""

from .content import ChangeKind, ContentResult, FileChangeEvent, Heading
from .context import AppContext, ServeMode, ServeOptions
from .errors import (
    ConfigError,
    ContentError,
    ContentNotFoundError,
    ForbiddenPathError,
    MarkportError,
    MissingParameterError,
    WatcherError,
    WatcherStartError,
)
from .exclusion import DEFAULT_POLICY, ExclusionPolicy, is_markdown_file
from .tree import NodeKind, TreeNode

__all__ = [
    "AppContext",
    "ChangeKind",
    "ConfigError",
    "ContentError",
    "ContentNotFoundError",
    "ContentResult",
    "DEFAULT_POLICY",
    "ExclusionPolicy",
    "FileChangeEvent",
    "ForbiddenPathError",
    "Heading",
    "MarkportError",
    "MissingParameterError",
    "NodeKind",
    "ServeMode",
    "ServeOptions",
    "TreeNode",
    "WatcherError",
    "WatcherStartError",
    "is_markdown_file",
]
