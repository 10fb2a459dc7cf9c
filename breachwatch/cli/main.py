"""
Main entry point for the BreachWatch CLI.

This module provides the command-line interface for BreachWatch using
argparse. It supports global options, subcommands, and proper exit codes.

Exit Codes:
    0: Success
    1: General error (including unknown incidents)
    2: Validation error or rejected status transition
    3: Configuration error
"""

import argparse
import logging
import sys
from typing import Any

from breachwatch import __version__
from breachwatch.exceptions import (
    BreachWatchError,
    ConfigurationError,
    InvalidTransitionError,
    ValidationError,
)

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_VALIDATION_ERROR = 2
EXIT_CONFIG_ERROR = 3


class CLIContext:
    """
    Context object that holds CLI state and lazily built services.

    Attributes:
        config_path: Path to the configuration file.
        database_path: Path to the database file.
        verbose: Enable verbose output.
        quiet: Suppress non-essential output.
        output_format: Output format (table, json, yaml).
    """

    def __init__(
        self,
        config_path: str | None = None,
        database_path: str | None = None,
        verbose: bool = False,
        quiet: bool = False,
        output_format: str = "table",
    ) -> None:
        self.config_path = config_path
        self.database_path = database_path
        self.verbose = verbose
        self.quiet = quiet
        self.output_format = output_format
        self._config: Any = None
        self._stores: Any = None
        self._manager: Any = None
        self._logger: logging.Logger | None = None

    @property
    def config(self) -> Any:
        """
        Load and return configuration.

        Returns:
            BreachWatchConfig object.

        Raises:
            ConfigurationError: If configuration cannot be loaded.
        """
        if self._config is None:
            from breachwatch.config.loader import ConfigLoader

            self._config = ConfigLoader().load(self.config_path)
            if self.database_path:
                self._config.database.path = self.database_path
        return self._config

    @property
    def stores(self) -> Any:
        """
        Get the configured stores.

        Raises:
            StorageError: If the database cannot be opened.
        """
        if self._stores is None:
            from breachwatch.storage import create_stores

            self.configure_logging()
            self._stores = create_stores(self.config.database)
        return self._stores

    @property
    def manager(self) -> Any:
        """Get an IncidentManager over the configured stores."""
        if self._manager is None:
            from breachwatch.incidents.deduplication import (
                DeduplicationEngine,
                DeduplicationSettings,
            )
            from breachwatch.incidents.manager import IncidentManager

            dedup = self.config.deduplication
            self._manager = IncidentManager(
                self.stores.incidents,
                self.stores.timeline,
                DeduplicationEngine(
                    DeduplicationSettings(
                        enabled=dedup.enabled,
                        same_source_threshold=dedup.same_source_threshold,
                        cross_source_threshold=dedup.cross_source_threshold,
                    )
                ),
            )
        return self._manager

    @property
    def logger(self) -> logging.Logger:
        """Get the CLI logger, configuring BreachWatch logging on first use."""
        self.configure_logging()
        return self._logger  # type: ignore[return-value]

    def configure_logging(self) -> None:
        """Apply the logging configuration once; -v and -q override its level."""
        if self._logger is not None:
            return
        from breachwatch.logs import configure_logging

        logging_config = self.config.logging
        if self.verbose:
            logging_config.level = "DEBUG"
        elif self.quiet:
            logging_config.level = "ERROR"
        configure_logging(logging_config)
        self._logger = logging.getLogger("breachwatch.cli")

    def print(self, message: str, error: bool = False) -> None:
        """
        Print a message to stdout or stderr.

        Args:
            message: The message to print.
            error: If True, print to stderr.
        """
        if self.quiet and not error:
            return
        output = sys.stderr if error else sys.stdout
        print(message, file=output)

    def print_error(self, message: str) -> None:
        """Print an error message to stderr."""
        print(f"Error: {message}", file=sys.stderr)

    def cleanup(self) -> None:
        """Clean up resources."""
        if self._stores is not None:
            self._stores.close()
            self._stores = None


def create_parser() -> argparse.ArgumentParser:
    """
    Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="breachwatch",
        description="BreachWatch: cybersecurity incident tracking",
        epilog="Use 'breachwatch <command> --help' for more information on a command.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"breachwatch {__version__}",
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="PATH",
        help="Path to configuration file",
    )
    parser.add_argument(
        "-d",
        "--database",
        metavar="PATH",
        help="Path to database file (overrides config)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["table", "json", "yaml"],
        default="table",
        help="Output format (default: table)",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        metavar="<command>",
    )
    _register_commands(subparsers)

    return parser


def _register_commands(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    from breachwatch.cli.commands import config as config_cmd
    from breachwatch.cli.commands import incident as incident_cmd
    from breachwatch.cli.commands import serve as serve_cmd

    incident_cmd.register(subparsers)
    config_cmd.register(subparsers)
    serve_cmd.register(subparsers)


def _print_details(ctx: CLIContext, error: BreachWatchError) -> None:
    if not error.details:
        return
    for message in error.details.get("errors", []):
        if isinstance(message, dict):
            message = f"{message['field']}: {message['message']}"
        ctx.print_error(f"  - {message}")
    if ctx.verbose:
        ctx.print_error(f"Details: {error.details}")


def run_command(
    args: argparse.Namespace,
    ctx: CLIContext,
) -> int:
    """
    Execute the selected command.

    Args:
        args: Parsed command-line arguments.
        ctx: CLI context object.

    Returns:
        Exit code.
    """
    if not hasattr(args, "func"):
        return EXIT_ERROR

    try:
        return args.func(args, ctx)
    except ConfigurationError as e:
        ctx.print_error(e.message)
        _print_details(ctx, e)
        return EXIT_CONFIG_ERROR
    except (ValidationError, InvalidTransitionError) as e:
        ctx.print_error(e.message)
        _print_details(ctx, e)
        return EXIT_VALIDATION_ERROR
    except BreachWatchError as e:
        ctx.print_error(e.message)
        _print_details(ctx, e)
        return EXIT_ERROR
    except KeyboardInterrupt:
        ctx.print("\nOperation cancelled.", error=True)
        return EXIT_ERROR
    except Exception as e:
        ctx.print_error(f"Unexpected error: {e}")
        if ctx.verbose:
            import traceback

            traceback.print_exc()
        return EXIT_ERROR


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_SUCCESS

    ctx = CLIContext(
        config_path=args.config,
        database_path=args.database,
        verbose=args.verbose,
        quiet=args.quiet,
        output_format=args.format,
    )

    try:
        return run_command(args, ctx)
    finally:
        ctx.cleanup()


if __name__ == "__main__":
    sys.exit(main())
