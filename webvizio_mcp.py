#!/usr/bin/env python3
"""Entry point: resolve config, wire client -> dispatcher -> stdio server."""

from __future__ import annotations

import argparse
import signal
import sys
from typing import List, Optional, TextIO

from application.tools import ToolDispatcher
from config import API_KEY_ENV, USER_CONFIG_PATH, ConfigError, load_config, parse_assignments, resolve_log_level
from infrastructure.webvizio import WebvizioClient
from interface.mcp_server import MCPServer, run_stdio
from util.logging_setup import configure_logging, get_logger

CONFIG_HELP = f"""
Configuration Help:
  You can provide the API key in three ways:
  1. As a command line argument:
     webvizio-mcp {API_KEY_ENV}=your_key_here
  2. As an environment variable (a .env file in the working directory is read too):
     export {API_KEY_ENV}=your_key_here
  3. In {USER_CONFIG_PATH}:
     api_key: your_key_here
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="webvizio-mcp", description="Webvizio MCP server (stdio).")
    parser.add_argument(
        "assignments",
        nargs="*",
        metavar="NAME=VALUE",
        help=f"Settings passed as assignments, e.g. {API_KEY_ENV}=<key>.",
    )
    parser.add_argument("--api-key", dest="api_key", help=f"Webvizio API key (overrides {API_KEY_ENV}).")
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Disable TLS certificate verification towards the Webvizio API (not recommended).",
    )
    parser.add_argument("--log-level", dest="log_level", help="Logging level for stderr output (default INFO).")
    return parser


def _install_signal_handlers(server: MCPServer, client: WebvizioClient) -> None:
    logger = get_logger("harness")

    def _shutdown(signum, frame):  # pragma: no cover - exercised by real signals
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        server.request_shutdown()
        client.close()
        raise SystemExit(0)

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _shutdown)


def _install_excepthook(logger) -> None:
    """Log anything that escapes ``main`` before the interpreter exits with status 1."""
    previous = sys.excepthook

    def _hook(exc_type, exc, tb):
        if issubclass(exc_type, KeyboardInterrupt):
            previous(exc_type, exc, tb)
            return
        logger.critical("Unhandled exception, exiting", exc_info=(exc_type, exc, tb))

    sys.excepthook = _hook


def main(
    argv: Optional[List[str]] = None,
    *,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
    install_signals: bool = True,
) -> int:
    args = build_parser().parse_args(argv)
    assignments = parse_assignments(args.assignments)
    configure_logging(resolve_log_level(args.log_level))
    logger = get_logger("harness")

    try:
        config = load_config(api_key=args.api_key, assignments=assignments, insecure=args.insecure)
    except ConfigError as exc:
        logger.error("Failed to start Webvizio MCP server: %s", exc)
        print(CONFIG_HELP, file=sys.stderr)
        return 1

    client = WebvizioClient(config, logger=get_logger("api"))
    server = MCPServer(ToolDispatcher(client, logger=get_logger("tools")), logger=get_logger("server"))
    if install_signals:
        _install_signal_handlers(server, client)
        _install_excepthook(logger)

    try:
        return run_stdio(server, stdin=stdin, stdout=stdout)
    except Exception:
        # Nothing below the dispatcher should get here; no recovery is possible.
        logger.exception("Fatal error in Webvizio MCP server")
        return 1
    finally:
        client.close()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
