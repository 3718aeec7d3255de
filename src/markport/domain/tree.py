"""File tree nodes returned by the tree endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple


class NodeKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class TreeNode:
    name: str
    path: str
    kind: NodeKind
    children: Tuple["TreeNode", ...] = ()

    @property
    def is_directory(self) -> bool:
        return self.kind is NodeKind.DIRECTORY

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "path": self.path,
            "type": self.kind.value,
        }
        if self.is_directory:
            payload["children"] = [child.to_dict() for child in self.children]
        return payload
