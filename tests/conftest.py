from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SANDBOX_HOME = ROOT / ".test_place" / "markport-home"
os.environ.setdefault("MARKPORT_HOME", str(SANDBOX_HOME))
SANDBOX_HOME.mkdir(parents=True, exist_ok=True)
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from markport import __version__  # noqa: E402
from markport.settings import RuntimeSettings  # noqa: E402
import markport.app.preview.web as preview_web_module  # noqa: E402
import markport.cli.main as cli_main_module  # noqa: E402
import markport.settings as settings_module  # noqa: E402


@pytest.fixture()
def runtime_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> RuntimeSettings:
    home = tmp_path / "runtime" / "home"
    log_dir = home / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    settings = RuntimeSettings(home_dir=home, log_dir=log_dir, cli_version=__version__)
    monkeypatch.setattr(settings_module, "SETTINGS", settings, raising=False)
    monkeypatch.setattr(cli_main_module, "SETTINGS", settings, raising=False)
    monkeypatch.setattr(preview_web_module, "SETTINGS", settings, raising=False)
    return settings


@pytest.fixture()
def docs_root(tmp_path: Path) -> Path:
    """A served directory with nested docs, an asset and content that must be pruned."""

    root = tmp_path / "site"
    (root / "docs" / "sub").mkdir(parents=True)
    (root / "empty" / "deeper").mkdir(parents=True)
    (root / "node_modules" / "pkg").mkdir(parents=True)
    (root / "assets").mkdir()
    (root / "readme.md").write_text("# Hello World\n\nThis is a test.", encoding="utf-8")
    (root / "docs" / "guide.md").write_text(
        "# Guide\n## Section 1\n## Section 2\n\n"
        "![photo](../assets/photo.jpg)\n\n"
        "![remote](https://example.com/img.png)\n",
        encoding="utf-8",
    )
    (root / "docs" / "sub" / "deep.markdown").write_text("# Deep\n", encoding="utf-8")
    (root / "empty" / "deeper" / "notes.txt").write_text("not markdown", encoding="utf-8")
    (root / "node_modules" / "pkg" / "readme.md").write_text("# Ignored\n", encoding="utf-8")
    (root / "assets" / "photo.jpg").write_bytes(b"\xff\xd8\xff fake jpeg")
    return root
