"""Preview HTTP surface: request operations and the aiohttp application."""

from .service import PreviewService, normalize_request_path, rewrite_asset_paths
from .web import PreviewServer, create_app

__all__ = [
    "PreviewServer",
    "PreviewService",
    "create_app",
    "normalize_request_path",
    "rewrite_asset_paths",
]
