"""
Serve command for the BreachWatch CLI.

Usage:
    breachwatch serve [--host HOST] [--port PORT]
"""

import argparse
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from breachwatch.cli.main import CLIContext


def register(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP API server",
        description="Serve the BreachWatch JSON API until interrupted.",
    )
    parser.add_argument(
        "--host",
        help="Host address to bind to (overrides server.host)",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Port to listen on (overrides server.port)",
    )
    parser.set_defaults(func=run_serve)


def run_serve(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the serve command."""
    from breachwatch.cli.main import EXIT_SUCCESS
    from breachwatch.server.app import BreachWatchApplication

    config = ctx.config
    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port

    ctx.configure_logging()
    ctx.logger.info(
        f"Serving on {config.server.host}:{config.server.port} "
        f"({config.database.backend} storage)"
    )
    BreachWatchApplication(config).run()
    return EXIT_SUCCESS
