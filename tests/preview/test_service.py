from __future__ import annotations

import os
from pathlib import Path

import pytest

from markport import __version__
from markport.app.preview.service import PreviewService, normalize_request_path, rewrite_asset_paths
from markport.domain.context import AppContext
from markport.domain.errors import ContentNotFoundError, ForbiddenPathError, MissingParameterError


def test_info_reports_mode_target_and_version(docs_root: Path) -> None:
    service = PreviewService(AppContext.from_target(docs_root))
    assert service.info() == {"mode": "directory", "targetPath": ".", "version": __version__}


def test_tree_in_directory_mode(docs_root: Path) -> None:
    tree = PreviewService(AppContext.from_target(docs_root)).tree()["tree"]
    assert [node["name"] for node in tree] == ["docs", "readme.md"]


def test_tree_in_file_mode_is_synthetic(docs_root: Path) -> None:
    service = PreviewService(AppContext.from_target(docs_root / "docs" / "guide.md"))
    assert service.tree() == {"tree": [{"name": "guide.md", "path": "guide.md", "type": "file"}]}


def test_content_renders_file(docs_root: Path) -> None:
    result = PreviewService(AppContext.from_target(docs_root)).content("docs/guide.md")
    assert result.file == "docs/guide.md"
    assert [heading.text for heading in result.headings] == ["Guide", "Section 1", "Section 2"]
    assert result.raw.startswith("# Guide")
    assert 'src="/assets/assets/photo.jpg"' in result.html
    assert 'src="https://example.com/img.png"' in result.html


def test_content_normalizes_path(docs_root: Path) -> None:
    result = PreviewService(AppContext.from_target(docs_root)).content("docs/./sub/../guide.md")
    assert result.file == "docs/guide.md"


@pytest.mark.parametrize("value", [None, ""])
def test_content_requires_file(docs_root: Path, value: str | None) -> None:
    with pytest.raises(MissingParameterError):
        PreviewService(AppContext.from_target(docs_root)).content(value)


@pytest.mark.parametrize(
    "value",
    [
        "../../../etc/passwd",
        "/etc/passwd",
        "docs/../../secret.md",
        "..\\secret.md",
        "C:/Windows/win.ini",
        "read\x00me.md",
    ],
)
def test_content_rejects_traversal(docs_root: Path, value: str) -> None:
    with pytest.raises(ForbiddenPathError) as excinfo:
        PreviewService(AppContext.from_target(docs_root)).content(value)
    assert excinfo.value.message == "Invalid file path"
    assert int(excinfo.value.status) == 403


def test_content_rejects_symlink_escape(docs_root: Path, tmp_path: Path) -> None:
    outside = tmp_path / "outside.md"
    outside.write_text("# Secret", encoding="utf-8")
    try:
        os.symlink(outside, docs_root / "link.md")
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported")
    with pytest.raises(ForbiddenPathError) as excinfo:
        PreviewService(AppContext.from_target(docs_root)).content("link.md")
    assert excinfo.value.message == "Access denied"


@pytest.mark.parametrize("value", ["missing.md", "docs", "."])
def test_content_not_found(docs_root: Path, value: str) -> None:
    with pytest.raises(ContentNotFoundError):
        PreviewService(AppContext.from_target(docs_root)).content(value)


def test_file_mode_always_serves_target(docs_root: Path) -> None:
    service = PreviewService(AppContext.from_target(docs_root / "docs" / "guide.md"))
    result = service.content("anything-else.md")
    assert result.file == "guide.md"
    assert result.headings[0].text == "Guide"
    assert 'src="/assets/photo.jpg"' in result.html


def test_file_mode_still_rejects_traversal(docs_root: Path) -> None:
    service = PreviewService(AppContext.from_target(docs_root / "readme.md"))
    with pytest.raises(ForbiddenPathError):
        service.content("../etc/passwd")


def test_rewrite_asset_paths() -> None:
    html = (
        '<p><img src="../assets/photo.jpg" alt="a"></p>'
        '<img src="https://example.com/img.png">'
        "<img src='data:image/png;base64,AAAA'>"
        '<img alt="x" src="/static/logo.svg">'
        '<img src="diagram.png" title="t">'
    )
    rewritten = rewrite_asset_paths(html, "docs")
    assert 'src="/assets/assets/photo.jpg"' in rewritten
    assert 'src="https://example.com/img.png"' in rewritten
    assert "src='data:image/png;base64,AAAA'" in rewritten
    assert 'src="/static/logo.svg"' in rewritten
    assert 'src="/assets/docs/diagram.png"' in rewritten


def test_rewrite_asset_paths_at_root() -> None:
    assert rewrite_asset_paths('<img src="./img/a.png">', "") == '<img src="/assets/img/a.png">'


def test_rewrite_asset_paths_leaves_references_above_the_root() -> None:
    html = '<img src="../../x.png">'
    assert rewrite_asset_paths(html, "docs") == html
    assert rewrite_asset_paths('<img src="../x.png">', "docs") == '<img src="/assets/x.png">'


def test_normalize_request_path() -> None:
    assert normalize_request_path("docs//guide.md") == "docs/guide.md"
    assert normalize_request_path("docs\\guide.md") == "docs/guide.md"
    with pytest.raises(ForbiddenPathError):
        normalize_request_path("..")
