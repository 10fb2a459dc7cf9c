"""
Command-line interface for BreachWatch.

Usage:
    breachwatch [-c CONFIG] [-d DATABASE] [-f table|json|yaml] <command>

Commands:
    incident: Create, list, transition, and inspect incidents
    config: Show and validate configuration
    serve: Run the HTTP API server
"""

from breachwatch.cli.main import CLIContext, create_parser, main

__all__ = ["CLIContext", "create_parser", "main"]
