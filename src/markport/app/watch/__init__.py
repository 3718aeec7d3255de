"""Filesystem change watching."""

from .watcher import ChangeListener, ChangeWatcher, Subscription

__all__ = ["ChangeListener", "ChangeWatcher", "Subscription"]
