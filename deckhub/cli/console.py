"""deckhub-console: terminal operator console for a video-agent hub.

Usage: deckhub-console [--host HOST] [--api-host HOST] [--secure] [--agent ID [--shell]]
"""

from __future__ import annotations

import argparse
import sys

from instrukt_ai_logging import get_logger
from pydantic import ValidationError

from deckhub import __version__
from deckhub.cli.api_client import HubAPIClient
from deckhub.config import config, with_overrides
from deckhub.config.schema import ConsoleConfig
from deckhub.logging_config import setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="deckhub-console", description="Operator console for a video-agent hub.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--host", default=None, help="Hub host[:port] (default from config).")
    parser.add_argument(
        "--api-host",
        default=None,
        help="Host[:port] for API and shell traffic when it differs from --host.",
    )
    parser.add_argument(
        "--secure",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Use https/wss instead of http/ws.",
    )
    parser.add_argument("--agent", default=None, help="Open this agent on start.")
    parser.add_argument("--shell", action="store_true", help="With --agent, open its shell on start.")
    parser.add_argument("--log-level", default=None, help="Override DECKHUB_LOG_LEVEL.")
    return parser


def resolve_config(args: argparse.Namespace, base: ConsoleConfig) -> ConsoleConfig:
    """Apply command line hub settings on top of file and environment config."""
    return with_overrides(base, host=args.host, api_host=args.api_host, secure=args.secure)


def _main_impl(argv: list[str] | None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.shell and not args.agent:
        parser.error("--shell requires --agent")

    setup_logging(args.log_level)
    try:
        console_config = resolve_config(args, config)
    except ValidationError as exc:
        sys.stderr.write(f"deckhub-console error: {exc}\n")
        return 2

    hub = console_config.hub
    logger.info("Starting console", host=hub.effective_host, secure=hub.secure)

    from deckhub.cli.tui.app import DeckhubApp

    api = HubAPIClient(hub.effective_host, secure=hub.secure)
    app = DeckhubApp(api, console_config, start_agent=args.agent, start_shell=args.shell)
    app.run()
    return 0


def main(argv: list[str] | None = None) -> int:
    try:
        return _main_impl(argv)
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
