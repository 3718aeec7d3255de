"""markport: live-reloading Markdown preview server."""

__version__ = "1.0.0"

__all__ = ["__version__"]
