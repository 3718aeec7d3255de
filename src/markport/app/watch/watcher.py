"""Filesystem watcher that broadcasts Markdown change events."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Callable, FrozenSet, List, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler, FileSystemMovedEvent
from watchdog.observers import Observer

from markport.domain.content import ChangeKind, FileChangeEvent
from markport.domain.errors import WatcherError, WatcherStartError
from markport.domain.exclusion import DEFAULT_POLICY, ExclusionPolicy, is_markdown_file

logger = logging.getLogger(__name__)

ChangeListener = Callable[[FileChangeEvent], None]


@dataclass
class Subscription:
    """Handle returned by :meth:`ChangeWatcher.subscribe`."""

    watcher: "ChangeWatcher"
    listener: ChangeListener

    def cancel(self) -> None:
        self.watcher.unsubscribe(self.listener)


class _ObserverBridge(FileSystemEventHandler):
    """Runs on the watchdog thread and hands events over to the event loop."""

    def __init__(self, watcher: "ChangeWatcher", loop: asyncio.AbstractEventLoop) -> None:
        super().__init__()
        self._watcher = watcher
        self._loop = loop

    def _post(self, kind: ChangeKind, path: str | bytes) -> None:
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        try:
            self._loop.call_soon_threadsafe(self._watcher.notify, kind, path)
        except RuntimeError:
            # loop already closed during shutdown
            logger.debug("dropping %s for %s: event loop closed", kind.value, path)

    def _post_directory_removed(self, path: str | bytes) -> None:
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        try:
            self._loop.call_soon_threadsafe(self._watcher.notify_directory_removed, path)
        except RuntimeError:
            logger.debug("dropping directory removal for %s: event loop closed", path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._post(ChangeKind.ADDED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._post(ChangeKind.CHANGED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            self._post_directory_removed(event.src_path)
        else:
            self._post(ChangeKind.REMOVED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not isinstance(event, FileSystemMovedEvent):
            return
        if event.is_directory:
            # moves within the root arrive as per-file sub events
            if not self._watcher.contains(os.fsdecode(event.dest_path)):
                self._post_directory_removed(event.src_path)
            return
        self._post(ChangeKind.REMOVED, event.src_path)
        self._post(ChangeKind.ADDED, event.dest_path)


class ChangeWatcher:
    """Observes a file or directory and emits ``FileChangeEvent`` to listeners.

    Listeners are invoked on the event loop thread, in emission order. A
    watcher can be started once at a time; ``stop`` is always safe and
    silences any event still queued on the loop.

    The watcher keeps the set of Markdown files it knows about so that a
    directory removed as a whole (deleted, or moved out of the root) is
    reported as one ``removed`` event per file it held.
    """

    def __init__(self, base_path: Path, *, policy: ExclusionPolicy = DEFAULT_POLICY) -> None:
        self._base_path = Path(base_path).resolve()
        self._policy = policy
        self._listeners: List[ChangeListener] = []
        self._observer: Optional[Observer] = None
        self._only_file: Optional[Path] = None
        self._known: Set[str] = set()
        self._stopped = False

    @property
    def base_path(self) -> Path:
        return self._base_path

    @property
    def running(self) -> bool:
        return self._observer is not None

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    @property
    def known_files(self) -> FrozenSet[str]:
        return frozenset(self._known)

    def contains(self, path: str | os.PathLike[str]) -> bool:
        """True when ``path`` lies under the base directory."""
        absolute = Path(os.path.abspath(path))
        return absolute == self._base_path or self._base_path in absolute.parents

    def subscribe(self, listener: ChangeListener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self, listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def start(self, path: Path, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Begin observing ``path``; must be called with a running loop unless ``loop`` is given."""

        if self._observer is not None:
            raise WatcherError("watcher already started; call stop() first")
        target = Path(path).resolve()
        if not target.exists():
            raise WatcherStartError(f"cannot watch {target}: no such file or directory")
        event_loop = loop or asyncio.get_running_loop()
        if target.is_file():
            watch_root, recursive, only_file = target.parent, False, target
        else:
            watch_root, recursive, only_file = target, True, None

        self._only_file = only_file
        self._seed(target)
        observer = Observer()
        try:
            observer.schedule(_ObserverBridge(self, event_loop), str(watch_root), recursive=recursive)
            observer.start()
        except OSError as exc:
            raise WatcherStartError(f"cannot watch {watch_root}: {exc}") from exc
        self._observer = observer
        self._stopped = False
        logger.info("watching %s (recursive=%s, %d files)", watch_root, recursive, len(self._known))

    def stop(self) -> None:
        self._stopped = True
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5)
        logger.info("watcher stopped")

    def notify(self, kind: ChangeKind, path: str | os.PathLike[str]) -> Optional[FileChangeEvent]:
        """Turn a raw filesystem observation into an event and broadcast it."""

        if self._stopped:
            return None
        relative = self._relevant(path)
        if relative is None:
            return None
        if kind is ChangeKind.REMOVED:
            self._known.discard(relative)
        else:
            self._known.add(relative)
        event = FileChangeEvent(kind=kind, file=relative)
        self._emit(event)
        return event

    def notify_directory_removed(self, path: str | os.PathLike[str]) -> List[FileChangeEvent]:
        """Report every known file under the removed directory ``path`` as removed."""

        if self._stopped:
            return []
        try:
            prefix = Path(path).relative_to(self._base_path).as_posix()
        except ValueError:
            return []
        if prefix == ".":
            affected = sorted(self._known)
        else:
            affected = sorted(name for name in self._known if name.startswith(prefix + "/"))
        events: List[FileChangeEvent] = []
        for relative in affected:
            self._known.discard(relative)
            event = FileChangeEvent(kind=ChangeKind.REMOVED, file=relative)
            self._emit(event)
            events.append(event)
        return events

    def _relevant(self, path: str | os.PathLike[str]) -> Optional[str]:
        absolute = Path(path)
        if self._only_file is not None and absolute != self._only_file:
            return None
        try:
            relative = PurePosixPath(absolute.relative_to(self._base_path).as_posix())
        except ValueError:
            return None
        if self._policy.skip_relative(relative) or not is_markdown_file(relative.name):
            return None
        return str(relative)

    def _seed(self, target: Path) -> None:
        self._known.clear()
        if self._only_file is not None:
            relative = self._relevant(self._only_file)
            if relative is not None:
                self._known.add(relative)
            return
        for current, dirnames, filenames in os.walk(target):
            dirnames[:] = [name for name in dirnames if not self._policy.skip_watch_path((name,))]
            for name in filenames:
                relative = self._relevant(Path(current) / name)
                if relative is not None:
                    self._known.add(relative)

    def _emit(self, event: FileChangeEvent) -> None:
        logger.debug("%s %s", event.kind.value, event.file)
        for listener in tuple(self._listeners):
            try:
                listener(event)
            except Exception:  # noqa: BLE001
                logger.exception("change listener failed for %s", event.file)
