"""Immutable run configuration shared by handlers and the watcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
DEFAULT_HEARTBEAT_INTERVAL = 30.0


class ServeMode(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class ServeOptions:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    open: bool = True
    watch: bool = True
    heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL


@dataclass(frozen=True)
class AppContext:
    """What is being served and how.

    ``base_path`` is the resolved directory everything is served from: the
    target directory itself, or the parent of a single target file.
    ``target_path`` is the logical target relative to it.
    """

    mode: ServeMode
    base_path: Path
    target_path: str
    options: ServeOptions = field(default_factory=ServeOptions)

    @classmethod
    def from_target(cls, path: Path, options: ServeOptions | None = None) -> "AppContext":
        resolved = path.expanduser().resolve()
        if not resolved.exists():
            raise FileNotFoundError(f"no such file or directory: {resolved}")
        opts = options or ServeOptions()
        if resolved.is_file():
            return cls(mode=ServeMode.FILE, base_path=resolved.parent, target_path=resolved.name, options=opts)
        return cls(mode=ServeMode.DIRECTORY, base_path=resolved, target_path=".", options=opts)

    @property
    def is_file_mode(self) -> bool:
        return self.mode is ServeMode.FILE

    @property
    def watch_path(self) -> Path:
        if self.is_file_mode:
            return self.base_path / self.target_path
        return self.base_path
