"""Rendered content and change notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.level, "text": self.text, "id": self.id}


@dataclass(frozen=True)
class ContentResult:
    file: str
    html: str
    headings: Tuple[Heading, ...] = field(default_factory=tuple)
    raw: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "html": self.html,
            "headings": [heading.to_dict() for heading in self.headings],
            "raw": self.raw,
        }


class ChangeKind(str, Enum):
    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"

    @property
    def wire_name(self) -> str:
        """Event type understood by the bundled browser client."""
        return _WIRE_NAMES[self]


_WIRE_NAMES = {
    ChangeKind.ADDED: "add",
    ChangeKind.CHANGED: "change",
    ChangeKind.REMOVED: "unlink",
}


@dataclass(frozen=True)
class FileChangeEvent:
    kind: ChangeKind
    file: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind.wire_name, "kind": self.kind.value, "file": self.file}
