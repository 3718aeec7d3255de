"""Exception taxonomy shared by the preview components."""

from __future__ import annotations

from http import HTTPStatus


class MarkportError(RuntimeError):
    """Base class for errors raised by markport."""


class ContentError(MarkportError):
    """A content request that cannot be served; carries its HTTP status."""

    status: HTTPStatus = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message}


class MissingParameterError(ContentError):
    status = HTTPStatus.BAD_REQUEST


class ForbiddenPathError(ContentError):
    """Raised for traversal attempts and paths that escape the served root."""

    status = HTTPStatus.FORBIDDEN


class ContentNotFoundError(ContentError):
    status = HTTPStatus.NOT_FOUND


class WatcherError(MarkportError):
    """Raised on misuse of the change watcher lifecycle."""


class WatcherStartError(WatcherError):
    """Raised when the OS-level watch cannot be established."""


class ConfigError(MarkportError):
    """Raised when the configuration file is unreadable or invalid."""
