"""Change notification streams."""

from .channel import ChangeChannel, ChannelHub, SSEMessage

__all__ = ["ChangeChannel", "ChannelHub", "SSEMessage"]
