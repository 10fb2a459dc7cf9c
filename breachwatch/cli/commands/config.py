"""
Configuration commands for the BreachWatch CLI.

Usage:
    breachwatch config show [--section SECTION]
    breachwatch config validate [PATH]
"""

import argparse
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from breachwatch.cli.main import CLIContext


def register(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    """
    Register the config command with the parser.

    Args:
        subparsers: Subparsers action to add command to.
    """
    parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="View and validate BreachWatch configuration.",
    )

    config_subparsers = parser.add_subparsers(
        title="config commands",
        dest="config_command",
        metavar="<subcommand>",
    )

    # config show
    show_parser = config_subparsers.add_parser(
        "show",
        help="Display current configuration",
        description=(
            "Display the active configuration after defaults, the config "
            "file, and BREACHWATCH_* environment variables are applied."
        ),
    )
    show_parser.add_argument(
        "--section",
        "-s",
        metavar="SECTION",
        help="Show only one section (database, deduplication, alerts, logging, server)",
    )
    show_parser.set_defaults(func=run_config_show)

    # config validate
    validate_parser = config_subparsers.add_parser(
        "validate",
        help="Validate configuration file",
        description="Validate a configuration file for errors.",
    )
    validate_parser.add_argument(
        "path",
        nargs="?",
        metavar="PATH",
        help="Path to configuration file (uses --config if not specified)",
    )
    validate_parser.set_defaults(func=run_config_validate)

    parser.set_defaults(func=lambda args, ctx: run_config_help(parser, args, ctx))


def run_config_help(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    ctx: "CLIContext",
) -> int:
    """Show help when no subcommand is specified."""
    parser.print_help()
    return 0


def run_config_show(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """
    Execute the config show command.

    Args:
        args: Parsed command-line arguments.
        ctx: CLI context.

    Returns:
        Exit code.
    """
    from breachwatch.cli.formatters import format_output
    from breachwatch.cli.main import EXIT_ERROR, EXIT_SUCCESS

    config_dict = ctx.config.to_dict()

    if args.section:
        section = args.section.lower()
        if section not in config_dict or section == "environment":
            ctx.print_error(f"Unknown section: {section}")
            available = [k for k in config_dict if k != "environment"]
            ctx.print_error(f"Available sections: {', '.join(available)}")
            return EXIT_ERROR
        config_dict = {section: config_dict[section]}

    ctx.print(format_output(config_dict, ctx.output_format, title="Configuration"))
    return EXIT_SUCCESS


def run_config_validate(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """
    Execute the config validate command.

    Args:
        args: Parsed command-line arguments.
        ctx: CLI context.

    Returns:
        Exit code.
    """
    from breachwatch.cli.main import EXIT_CONFIG_ERROR, EXIT_SUCCESS
    from breachwatch.config.loader import ConfigLoader
    from breachwatch.exceptions import ConfigurationError

    config_path = args.path or ctx.config_path
    if config_path is None:
        ctx.print_error("No configuration file specified.")
        ctx.print_error("Use 'breachwatch config validate PATH' or '--config PATH'")
        return EXIT_CONFIG_ERROR

    config_path = Path(config_path)
    ctx.print(f"Validating: {config_path}")

    try:
        config = ConfigLoader().load(config_path)
    except ConfigurationError as e:
        ctx.print_error(f"Configuration validation failed: {e.message}")
        for error in (e.details or {}).get("errors", []):
            ctx.print_error(f"  - {error}")
        return EXIT_CONFIG_ERROR

    ctx.print("")
    ctx.print("Configuration is valid.")
    ctx.print("")
    ctx.print(f"  Environment:    {config.environment}")
    ctx.print(f"  Storage:        {config.database.backend} ({config.database.path})")
    ctx.print(
        f"  Deduplication:  "
        f"{'on' if config.deduplication.enabled else 'off'} "
        f"(same source > {config.deduplication.same_source_threshold}, "
        f"cross source > {config.deduplication.cross_source_threshold})"
    )
    ctx.print(f"  Alerts:         {'on' if config.alerts.enabled else 'off'}")
    return EXIT_SUCCESS
