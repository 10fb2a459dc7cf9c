"""
Command modules for the BreachWatch CLI.

Each module exposes register(subparsers) and one run_* function per
subcommand.
"""
