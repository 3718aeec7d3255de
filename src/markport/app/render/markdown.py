"""Markdown to HTML rendering with highlighted code, diagram fences and a heading outline."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Any, List, MutableMapping, Sequence, Tuple

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.tasklists import tasklists_plugin
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_by_name, guess_lexer
from pygments.util import ClassNotFound

from markport.domain.content import Heading

DIAGRAM_LANGUAGES = frozenset({"mermaid"})
HIGHLIGHT_CSS_CLASS = "highlight"

_HEADINGS_ENV_KEY = "headings"
_SLUG_STRIP = re.compile(r"[^\w\s-]")
_SLUG_SPACES = re.compile(r"\s+")
_HEADING_LINE = re.compile(r"^(#{1,6})[ \t]+(.+)$", re.MULTILINE)


def slugify(text: str) -> str:
    """Return the anchor id used for a heading with ``text``."""
    lowered = _SLUG_STRIP.sub("", text.lower())
    return _SLUG_SPACES.sub("-", lowered)


def extract_headings(raw: str) -> List[Heading]:
    """Outline of ``raw`` from ATX heading lines, without rendering."""
    headings: List[Heading] = []
    for match in _HEADING_LINE.finditer(raw):
        text = match.group(2).strip()
        headings.append(Heading(level=len(match.group(1)), text=text, id=slugify(text)))
    return headings


def highlight_stylesheet(style: str = "default") -> str:
    return HtmlFormatter(style=style).get_style_defs(f".{HIGHLIGHT_CSS_CLASS}")


@dataclass(frozen=True)
class RenderResult:
    html: str
    headings: Tuple[Heading, ...]


def _fence_language(token: Token) -> str:
    info = token.info.strip() if token.info else ""
    return info.split(maxsplit=1)[0] if info else ""


def _resolve_lexer(language: str, code: str) -> Lexer:
    if language:
        try:
            return get_lexer_by_name(language.lower())
        except ClassNotFound:
            pass
    try:
        return guess_lexer(code)
    except ClassNotFound:
        return TextLexer()


class MarkdownRenderer:
    """GitHub-flavoured Markdown renderer.

    Headings are collected into a list stored in the ``env`` mapping that
    markdown-it threads through a single ``render`` call, so every call owns its
    accumulator and nothing is shared between documents.
    """

    def __init__(self) -> None:
        self._formatter = HtmlFormatter(nowrap=True)
        self._md = (
            MarkdownIt("commonmark", {"html": True, "linkify": True, "breaks": True})
            .enable(["table", "strikethrough", "linkify"])
            .use(tasklists_plugin)
        )
        self._md.renderer.rules["fence"] = self._render_fence
        self._md.renderer.rules["heading_open"] = self._render_heading_open

    def render(self, raw: str) -> RenderResult:
        env: MutableMapping[str, Any] = {_HEADINGS_ENV_KEY: []}
        markup = self._md.render(raw, env)
        return RenderResult(html=markup, headings=tuple(env[_HEADINGS_ENV_KEY]))

    def _render_fence(self, tokens: Sequence[Token], idx: int, options: Any, env: MutableMapping[str, Any]) -> str:
        token = tokens[idx]
        language = _fence_language(token)
        code = token.content
        if language.lower() in DIAGRAM_LANGUAGES:
            # Diagram sources must reach the client untouched.
            body = code.rstrip("\n")
            return f'<div class="{language.lower()}">{body}</div>\n'

        highlighted = highlight(code, _resolve_lexer(language, code), self._formatter)
        css_class = HIGHLIGHT_CSS_CLASS
        if language:
            css_class += f" language-{html.escape(language, quote=True)}"
        return f'<pre><code class="{css_class}">{highlighted}</code></pre>\n'

    def _render_heading_open(
        self, tokens: Sequence[Token], idx: int, options: Any, env: MutableMapping[str, Any]
    ) -> str:
        token = tokens[idx]
        inline = tokens[idx + 1] if idx + 1 < len(tokens) else None
        text = inline.content.strip() if inline is not None and inline.type == "inline" else ""
        slug = slugify(text)
        token.attrSet("id", slug)
        env.setdefault(_HEADINGS_ENV_KEY, []).append(Heading(level=int(token.tag[1]), text=text, id=slug))
        return self._md.renderer.renderToken(tokens, idx, options, env)


_RENDERER = MarkdownRenderer()


def render_markdown(raw: str) -> RenderResult:
    return _RENDERER.render(raw)
