"""Markdown rendering."""

from .markdown import (
    MarkdownRenderer,
    RenderResult,
    extract_headings,
    highlight_stylesheet,
    render_markdown,
    slugify,
)

__all__ = [
    "MarkdownRenderer",
    "RenderResult",
    "extract_headings",
    "highlight_stylesheet",
    "render_markdown",
    "slugify",
]
