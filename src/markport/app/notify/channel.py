"""Per-client push stream relaying watcher events as Server-Sent Events."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Optional, Protocol, Set

from markport.domain.content import FileChangeEvent
from markport.domain.context import DEFAULT_HEARTBEAT_INTERVAL

logger = logging.getLogger(__name__)

CONNECTED_EVENT = "connected"
FILE_CHANGE_EVENT = "fileChange"
HEARTBEAT_COMMENT = "heartbeat"


class _Cancellable(Protocol):
    def cancel(self) -> None: ...


class ChangeSource(Protocol):
    def subscribe(self, listener: Any) -> _Cancellable: ...


@dataclass(frozen=True)
class SSEMessage:
    """One frame on the stream; a message without ``event`` is a comment line."""

    event: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    comment: Optional[str] = None

    @classmethod
    def connected(cls) -> "SSEMessage":
        return cls(event=CONNECTED_EVENT)

    @classmethod
    def file_change(cls, change: FileChangeEvent) -> "SSEMessage":
        return cls(event=FILE_CHANGE_EVENT, data=change.to_dict())

    @classmethod
    def heartbeat(cls) -> "SSEMessage":
        return cls(comment=HEARTBEAT_COMMENT)

    @property
    def is_heartbeat(self) -> bool:
        return self.event is None

    def encode(self) -> bytes:
        if self.event is None:
            return f":{self.comment or ''}\n\n".encode("utf-8")
        payload = json.dumps(self.data, ensure_ascii=False)
        return f"event: {self.event}\ndata: {payload}\n\n".encode("utf-8")


class ChangeChannel:
    """Relays change events to a single connected client.

    ``messages()`` yields the connection acknowledgement first, then every
    change in the order the source emitted it, and a heartbeat every
    ``heartbeat_interval`` seconds whether or not changes flowed. Events
    emitted before ``messages()`` starts are never replayed.
    """

    def __init__(
        self,
        source: Optional[ChangeSource],
        *,
        heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL,
    ) -> None:
        if heartbeat_interval <= 0:
            raise ValueError("heartbeat_interval must be positive")
        self._source = source
        self._heartbeat_interval = heartbeat_interval
        self._queue: asyncio.Queue[Optional[FileChangeEvent]] = asyncio.Queue()
        self._subscription: Optional[_Cancellable] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _on_change(self, change: FileChangeEvent) -> None:
        if self._closed:
            return
        self._queue.put_nowait(change)

    def _open(self) -> None:
        if self._subscription is None and self._source is not None:
            self._subscription = self._source.subscribe(self._on_change)

    async def messages(self) -> AsyncIterator[SSEMessage]:
        if self._closed:
            return
        self._open()
        loop = asyncio.get_running_loop()
        try:
            yield SSEMessage.connected()
            next_beat = loop.time() + self._heartbeat_interval
            while not self._closed:
                remaining = next_beat - loop.time()
                if remaining <= 0:
                    next_beat = loop.time() + self._heartbeat_interval
                    yield SSEMessage.heartbeat()
                    continue
                try:
                    change = await asyncio.wait_for(self._queue.get(), timeout=remaining)
                except asyncio.TimeoutError:
                    continue
                if change is None:
                    break
                yield SSEMessage.file_change(change)
        finally:
            self.close()

    def close(self) -> None:
        """Detach from the source and end ``messages()``; safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.cancel()
        self._queue.put_nowait(None)


class ChannelHub:
    """Open channels, so that shutdown can end every stream."""

    def __init__(self) -> None:
        self._channels: Set[ChangeChannel] = set()

    def __len__(self) -> int:
        return len(self._channels)

    def add(self, channel: ChangeChannel) -> None:
        self._channels.add(channel)
        logger.debug("stream opened (%d active)", len(self._channels))

    def discard(self, channel: ChangeChannel) -> None:
        self._channels.discard(channel)
        logger.debug("stream closed (%d active)", len(self._channels))

    def close_all(self) -> None:
        for channel in tuple(self._channels):
            channel.close()
        self._channels.clear()
