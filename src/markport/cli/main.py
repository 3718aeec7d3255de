#!/usr/bin/env python3
"""Entry point for the markport CLI."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import time
import webbrowser
from pathlib import Path
from textwrap import dedent
from typing import Any, Callable, Optional

from markport import __version__
from markport.app.preview.web import PreviewServer
from markport.config import apply_config, load_config
from markport.domain.context import AppContext, ServeOptions
from markport.domain.errors import ConfigError
from markport.settings import SETTINGS
from markport.utils.telemetry import record_structured_event

logger = logging.getLogger(__name__)

HELP_EPILOG = dedent(
    """
    Examples:
      markport                 preview every Markdown file under the current directory
      markport README.md       preview a single file
      markport docs -p 8080    serve docs/ on port 8080

    Defaults can be set in ~/.markport/config.yaml (host, port, open, watch,
    heartbeat_interval); command line flags take precedence.
    """
)

_SHUTDOWN_SIGNALS = tuple(
    sig for sig in (getattr(signal, name, None) for name in ("SIGINT", "SIGTERM", "SIGHUP")) if sig is not None
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="markport",
        description="Markdown real-time preview server",
        epilog=HELP_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("path", nargs="?", default=".", help="Markdown file or directory to preview (default: .)")
    parser.add_argument("-p", "--port", type=int, default=None, help="Port to run the server on (default: 3000)")
    parser.add_argument("--host", default=None, help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument(
        "--open",
        dest="open",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Open the browser once the server is up (default: on)",
    )
    parser.add_argument(
        "--watch",
        dest="watch",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Push file changes to the browser (default: on)",
    )
    parser.add_argument("--config", type=Path, default=None, help="Configuration file (default: ~/.markport/config.yaml)")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity (default: WARNING)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level), format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def resolve_options(args: argparse.Namespace) -> ServeOptions:
    """Defaults, then the config file, then explicit flags."""

    config_path = args.config or SETTINGS.config_file
    if args.config is not None and not config_path.exists():
        raise ConfigError(f"config file not found: {config_path}")
    options = apply_config(ServeOptions(), load_config(config_path))
    overrides: dict[str, Any] = {}
    for key in ("host", "port", "open", "watch"):
        value = getattr(args, key, None)
        if value is not None:
            overrides[key] = value
    if overrides:
        options = apply_config(options, overrides)
    return options


def _print_banner(context: AppContext, url: str, watching: bool) -> None:
    target = context.base_path / context.target_path if context.is_file_mode else context.base_path
    print("\n  markport is running!\n")
    print(f"  Mode:     {context.mode.value}")
    print(f"  Target:   {target}")
    print(f"  Server:   {url}")
    print(f"  Watching: {'enabled' if watching else 'disabled'}\n")


async def serve(
    context: AppContext,
    *,
    open_browser: Callable[[str], Any] = webbrowser.open,
    stop_event: Optional[asyncio.Event] = None,
) -> int:
    """Run the preview server until a shutdown signal or ``stop_event`` fires."""

    server = PreviewServer(context)
    stop = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []

    def _on_signal(sig: signal.Signals) -> None:
        print(f"\n  Received {sig.name}, shutting down...")
        stop.set()

    for sig in _SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, _on_signal, sig)
        except (NotImplementedError, RuntimeError):
            continue
        installed.append(sig)

    event_context = {"mode": context.mode.value, "path": str(context.base_path), "watch": context.options.watch}
    record_structured_event(SETTINGS, "serve.start", status="start", component="cli", payload=event_context)
    start = time.perf_counter()
    status = 0
    try:
        await server.start()
        _print_banner(context, server.url, server.watcher is not None)
        if context.options.open:
            open_browser(server.url)
        await stop.wait()
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        status = 1
    except Exception as exc:  # noqa: BLE001 - last-resort handler
        logger.exception("unexpected failure")
        print(f"\n  Uncaught exception: {exc}", file=sys.stderr)
        record_structured_event(
            SETTINGS,
            "serve.error",
            level="error",
            status="error",
            component="cli",
            payload=event_context | {"error": str(exc)},
        )
        status = 1
    finally:
        await server.stop()
        for sig in installed:
            loop.remove_signal_handler(sig)
    record_structured_event(
        SETTINGS,
        "serve.stop",
        status="success" if status == 0 else "error",
        component="cli",
        duration_ms=(time.perf_counter() - start) * 1000,
        payload=event_context,
    )
    return status


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    try:
        options = resolve_options(args)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    try:
        context = AppContext.from_target(Path(args.path), options)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    try:
        return asyncio.run(serve(context))
    except KeyboardInterrupt:  # pragma: no cover - signal handlers normally take over
        print("\n  Shutting down...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
