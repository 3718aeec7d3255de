"""aiohttp application serving the preview page, JSON API and change stream."""

from __future__ import annotations

import logging
import time
from importlib import resources
from typing import Optional

from aiohttp import web

from markport.app.notify.channel import ChangeChannel, ChannelHub
from markport.app.preview.service import ASSET_PREFIX, PreviewService
from markport.app.render.markdown import highlight_stylesheet
from markport.app.watch.watcher import ChangeWatcher
from markport.domain.context import AppContext
from markport.domain.errors import ContentError, WatcherStartError
from markport.settings import SETTINGS, RuntimeSettings
from markport.utils.telemetry import record_structured_event

logger = logging.getLogger(__name__)

_STYLE_PLACEHOLDER = "/*__HIGHLIGHT_CSS__*/"
_SSE_HEADERS = {
    "Content-Type": "text/event-stream; charset=utf-8",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
}


def _read_resource(name: str) -> str:
    return (resources.files("markport.resources") / name).read_text(encoding="utf-8")


class PreviewHandlers:
    """Route handlers bound to one service, watcher and channel hub."""

    def __init__(
        self,
        service: PreviewService,
        watcher: Optional[ChangeWatcher],
        hub: ChannelHub,
        settings: RuntimeSettings,
    ) -> None:
        self._service = service
        self._watcher = watcher
        self._hub = hub
        self._settings = settings
        self._index_html: Optional[bytes] = None

    async def index(self, request: web.Request) -> web.Response:
        if self._index_html is None:
            page = _read_resource("index.html").replace(_STYLE_PLACEHOLDER, highlight_stylesheet())
            self._index_html = page.encode("utf-8")
        return web.Response(
            body=self._index_html,
            content_type="text/html",
            charset="utf-8",
            headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
        )

    async def script(self, request: web.Request) -> web.Response:
        return web.Response(text=_read_resource("app.js"), content_type="application/javascript")

    async def healthz(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "streams": len(self._hub)})

    async def info(self, request: web.Request) -> web.Response:
        return web.json_response(self._service.info())

    async def tree(self, request: web.Request) -> web.Response:
        return web.json_response(self._service.tree())

    async def content(self, request: web.Request) -> web.Response:
        start = time.perf_counter()
        try:
            result = self._service.content(request.query.get("file"))
        except ContentError as exc:
            return web.json_response(exc.to_dict(), status=int(exc.status))
        record_structured_event(
            self._settings,
            "content.render",
            status="success",
            component="preview",
            duration_ms=(time.perf_counter() - start) * 1000,
            payload={"file": result.file, "headings": len(result.headings)},
        )
        return web.json_response(result.to_dict())

    async def changes(self, request: web.Request) -> web.StreamResponse:
        response = web.StreamResponse(status=200, headers=_SSE_HEADERS)
        await response.prepare(request)
        channel = ChangeChannel(
            self._watcher,
            heartbeat_interval=self._service.context.options.heartbeat_interval,
        )
        self._hub.add(channel)
        try:
            async for message in channel.messages():
                await response.write(message.encode())
        except ConnectionResetError:
            logger.debug("change stream client went away")
        finally:
            channel.close()
            self._hub.discard(channel)
        return response


def create_app(
    context: AppContext,
    watcher: Optional[ChangeWatcher] = None,
    *,
    hub: Optional[ChannelHub] = None,
    settings: Optional[RuntimeSettings] = None,
) -> web.Application:
    channel_hub = hub if hub is not None else ChannelHub()
    handlers = PreviewHandlers(PreviewService(context), watcher, channel_hub, settings or SETTINGS)

    async def _close_streams(app: web.Application) -> None:
        channel_hub.close_all()

    app = web.Application()
    app.router.add_get("/", handlers.index)
    app.router.add_get("/app.js", handlers.script)
    app.router.add_get("/healthz", handlers.healthz)
    app.router.add_get("/api/info", handlers.info)
    app.router.add_get("/api/tree", handlers.tree)
    app.router.add_get("/api/content", handlers.content)
    app.router.add_get("/sse/changes", handlers.changes)
    app.router.add_static(f"{ASSET_PREFIX}/", context.base_path, follow_symlinks=False)
    app.on_shutdown.append(_close_streams)
    return app


class PreviewServer:
    """Owns the watcher, open streams and the aiohttp runner for one run."""

    def __init__(self, context: AppContext, *, settings: Optional[RuntimeSettings] = None) -> None:
        self._context = context
        self._settings = settings or SETTINGS
        self._hub = ChannelHub()
        self._watcher: Optional[ChangeWatcher] = None
        self._runner: Optional[web.AppRunner] = None
        self._port: Optional[int] = None

    @property
    def context(self) -> AppContext:
        return self._context

    @property
    def watcher(self) -> Optional[ChangeWatcher]:
        return self._watcher

    @property
    def url(self) -> str:
        if self._port is None:
            raise RuntimeError("server not started")
        return f"http://{self._context.options.host}:{self._port}/"

    async def start(self) -> None:
        options = self._context.options
        if options.watch:
            watcher = ChangeWatcher(self._context.base_path)
            try:
                watcher.start(self._context.watch_path)
            except WatcherStartError as exc:
                logger.warning("live reload disabled: %s", exc)
            else:
                self._watcher = watcher

        app = create_app(self._context, self._watcher, hub=self._hub, settings=self._settings)
        runner = web.AppRunner(app, handler_cancellation=True, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, options.host, options.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            self._stop_watcher()
            raise
        self._runner = runner
        addresses = runner.addresses
        self._port = addresses[0][1] if addresses else options.port

    async def stop(self) -> None:
        self._hub.close_all()
        self._stop_watcher()
        runner, self._runner = self._runner, None
        if runner is not None:
            await runner.cleanup()

    def _stop_watcher(self) -> None:
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            watcher.stop()
