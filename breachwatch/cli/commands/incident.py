"""
Incident commands for the BreachWatch CLI.

This module implements the 'breachwatch incident' commands.

Usage:
    breachwatch incident create --title TITLE --description TEXT --severity SEVERITY
    breachwatch incident report --title TITLE --description TEXT --severity SEVERITY --source SOURCE
    breachwatch incident list [--status STATUS] [--severity SEVERITY]
    breachwatch incident show INCIDENT_ID [--timeline]
    breachwatch incident status INCIDENT_ID NEW_STATUS
    breachwatch incident timeline INCIDENT_ID
    breachwatch incident note INCIDENT_ID --message MESSAGE
    breachwatch incident delete INCIDENT_ID [--yes]
    breachwatch incident check-duplicate --title TITLE --source SOURCE
"""

import argparse
import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from breachwatch.cli.main import CLIContext

SEVERITIES = ["critical", "high", "medium", "low"]
STATUSES = ["reported", "confirmed", "ongoing", "mitigated", "resolved", "disputed"]


def register(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    """
    Register the incident command with the parser.

    Args:
        subparsers: Subparsers action to add command to.
    """
    parser = subparsers.add_parser(
        "incident",
        help="Manage incidents",
        description=(
            "Track cybersecurity incidents: create them, move them through "
            "their lifecycle, and inspect their timelines."
        ),
    )
    parser.set_defaults(func=lambda args, ctx: _run_help(parser))

    incident_subparsers = parser.add_subparsers(
        dest="incident_command",
        help="Incident command to execute",
    )

    # incident create
    create_parser = incident_subparsers.add_parser(
        "create",
        help="Create a new incident",
        description="Create an incident in the reported status.",
    )
    _add_report_arguments(create_parser)
    create_parser.add_argument(
        "--source",
        dest="sources",
        action="append",
        default=[],
        help="Reporting source ID (repeatable)",
    )
    create_parser.set_defaults(func=run_incident_create)

    # incident report
    report_parser = incident_subparsers.add_parser(
        "report",
        help="Submit a source report",
        description=(
            "Submit a report from a source. A new incident is created unless "
            "the report duplicates a known one."
        ),
    )
    _add_report_arguments(report_parser)
    report_parser.add_argument(
        "--source",
        required=True,
        help="Reporting source ID",
    )
    report_parser.set_defaults(func=run_incident_report)

    # incident list
    list_parser = incident_subparsers.add_parser(
        "list",
        help="List incidents",
        description="List incidents, oldest first, with optional filters.",
    )
    list_parser.add_argument(
        "--status",
        type=str.lower,
        choices=STATUSES,
        help="Filter by status",
    )
    list_parser.add_argument(
        "--severity",
        type=str.lower,
        choices=SEVERITIES,
        help="Filter by severity",
    )
    list_parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Maximum number of results (default: 50)",
    )
    list_parser.add_argument(
        "--offset",
        type=int,
        default=0,
        help="Number of results to skip (default: 0)",
    )
    list_parser.set_defaults(func=run_incident_list)

    # incident show
    show_parser = incident_subparsers.add_parser(
        "show",
        help="Show incident details",
        description="Display detailed information about an incident.",
    )
    show_parser.add_argument("incident_id", help="Incident ID")
    show_parser.add_argument(
        "--timeline",
        action="store_true",
        dest="include_timeline",
        help="Include the full timeline",
    )
    show_parser.set_defaults(func=run_incident_show)

    # incident status
    status_parser = incident_subparsers.add_parser(
        "status",
        help="Change incident status",
        description=(
            "Move an incident to a new status. Allowed moves: "
            "reported -> confirmed, confirmed -> ongoing, ongoing -> mitigated, "
            "mitigated -> resolved, any status -> disputed, and disputed -> "
            "reported or confirmed."
        ),
    )
    status_parser.add_argument("incident_id", help="Incident ID")
    status_parser.add_argument(
        "new_status",
        type=str.lower,
        choices=STATUSES,
        help="Target status",
    )
    status_parser.set_defaults(func=run_incident_status)

    # incident timeline
    timeline_parser = incident_subparsers.add_parser(
        "timeline",
        help="Show incident timeline",
        description="Show the chronological timeline of an incident.",
    )
    timeline_parser.add_argument("incident_id", help="Incident ID")
    timeline_parser.set_defaults(func=run_incident_timeline)

    # incident note
    note_parser = incident_subparsers.add_parser(
        "note",
        help="Annotate an incident",
        description="Add an analyst note to an incident's timeline.",
    )
    note_parser.add_argument("incident_id", help="Incident ID")
    note_parser.add_argument(
        "--message",
        "-m",
        required=True,
        help="Note text",
    )
    note_parser.set_defaults(func=run_incident_note)

    # incident delete
    delete_parser = incident_subparsers.add_parser(
        "delete",
        help="Delete an incident",
        description="Delete an incident together with its timeline and alerts.",
    )
    delete_parser.add_argument("incident_id", help="Incident ID")
    delete_parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Do not ask for confirmation",
    )
    delete_parser.set_defaults(func=run_incident_delete)

    # incident check-duplicate
    dup_parser = incident_subparsers.add_parser(
        "check-duplicate",
        help="Check a report for duplicates",
        description=(
            "Check whether a report title from a source restates a known "
            "incident. Nothing is modified."
        ),
    )
    dup_parser.add_argument("--title", required=True, help="Report title")
    dup_parser.add_argument("--source", required=True, help="Reporting source ID")
    dup_parser.set_defaults(func=run_incident_check_duplicate)


def _add_report_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--title", required=True, help="Incident title")
    parser.add_argument(
        "--description",
        required=True,
        help="Detailed description",
    )
    parser.add_argument(
        "--severity",
        type=str.lower,
        choices=SEVERITIES,
        default="medium",
        help="Severity level (default: medium)",
    )
    parser.add_argument(
        "--discovered",
        dest="discovery_date",
        metavar="ISO_DATE",
        help="Discovery date in ISO 8601 format (default: now)",
    )
    parser.add_argument(
        "--classification",
        dest="classifications",
        action="append",
        default=[],
        help="Classification tag (repeatable)",
    )


def _run_help(parser: argparse.ArgumentParser) -> int:
    parser.print_help()
    return 0


def _validate_report(args: argparse.Namespace) -> None:
    from breachwatch.incidents.validator import IncidentValidator

    payload: dict[str, Any] = {
        "title": args.title,
        "description": args.description,
        "severity": args.severity,
        "classifications": args.classifications,
    }
    if args.discovery_date:
        payload["discovery_date"] = args.discovery_date
    IncidentValidator().validate_create(payload).raise_if_invalid()


def _print_incident(ctx: "CLIContext", incident: Any) -> None:
    ctx.print(f"{_severity_marker(incident.severity.value)} {incident.title}")
    ctx.print(f"  ID:          {incident.incident_id}")
    ctx.print(f"  Status:      {incident.status.value}")
    ctx.print(f"  Severity:    {incident.severity.value}")
    ctx.print(f"  Discovered:  {incident.discovery_date.isoformat()}")
    ctx.print(f"  Updated:     {incident.last_updated.isoformat()}")
    if incident.source_ids:
        ctx.print(f"  Sources:     {', '.join(incident.source_ids)}")
    if incident.classifications:
        ctx.print(f"  Tags:        {', '.join(incident.classifications)}")


def _print_timeline(ctx: "CLIContext", events: list[Any]) -> None:
    from breachwatch.cli.formatters import TableFormatter

    rows = [
        [
            e.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            e.event,
            json.dumps(e.details, sort_keys=True) if e.details else "",
        ]
        for e in events
    ]
    ctx.print(TableFormatter.format_table(["Timestamp", "Event", "Details"], rows))


def _severity_marker(severity: str) -> str:
    markers = {
        "critical": "[!!!]",
        "high": "[!! ]",
        "medium": "[!  ]",
        "low": "[   ]",
    }
    return markers.get(severity, "[?  ]")


def run_incident_create(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the incident create command."""
    from breachwatch.cli.formatters import format_output
    from breachwatch.cli.main import EXIT_SUCCESS

    _validate_report(args)
    incident = ctx.manager.create_incident(
        title=args.title.strip(),
        description=args.description.strip(),
        severity=args.severity,
        discovery_date=args.discovery_date,
        source_ids=args.sources,
        classifications=args.classifications,
    )

    if ctx.output_format == "table":
        ctx.print("Incident created.")
        ctx.print("")
        _print_incident(ctx, incident)
    else:
        ctx.print(format_output(incident.to_dict(), ctx.output_format))
    return EXIT_SUCCESS


def run_incident_report(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the incident report command."""
    from breachwatch.cli.formatters import format_output
    from breachwatch.cli.main import EXIT_SUCCESS

    _validate_report(args)
    incident, result = ctx.manager.submit_report(
        title=args.title.strip(),
        description=args.description.strip(),
        severity=args.severity,
        source=args.source,
        discovery_date=args.discovery_date,
        classifications=args.classifications,
    )

    if ctx.output_format == "table":
        if result.is_duplicate:
            ctx.print(
                f"Duplicate of incident {result.matched_incident_id} "
                f"(similarity {result.similarity:.2f})."
            )
        else:
            ctx.print("New incident created.")
        ctx.print("")
        _print_incident(ctx, incident)
    else:
        ctx.print(
            format_output(
                {"incident": incident.to_dict(), "duplicate": result.to_dict()},
                ctx.output_format,
            )
        )
    return EXIT_SUCCESS


def run_incident_list(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the incident list command."""
    from breachwatch.cli.formatters import TableFormatter, format_output
    from breachwatch.cli.main import EXIT_SUCCESS

    incidents = ctx.manager.list_incidents(
        status=args.status,
        severity=args.severity,
        limit=args.limit,
        offset=args.offset,
    )

    if ctx.output_format != "table":
        ctx.print(format_output([i.to_dict() for i in incidents], ctx.output_format))
        return EXIT_SUCCESS

    if not incidents:
        ctx.print("No incidents found.")
        return EXIT_SUCCESS

    rows = [
        [
            i.incident_id,
            i.severity.value,
            i.status.value,
            i.discovery_date.strftime("%Y-%m-%d"),
            i.title,
        ]
        for i in incidents
    ]
    ctx.print(
        TableFormatter.format_table(
            ["ID", "Severity", "Status", "Discovered", "Title"], rows
        )
    )
    ctx.print("")
    ctx.print(f"Total: {len(incidents)} incident(s)")
    return EXIT_SUCCESS


def run_incident_show(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the incident show command."""
    from breachwatch.cli.formatters import format_output
    from breachwatch.cli.main import EXIT_SUCCESS

    incident = ctx.manager.get_or_raise(args.incident_id)
    events = ctx.manager.list_timeline(args.incident_id) if args.include_timeline else []

    if ctx.output_format != "table":
        data = incident.to_dict()
        if args.include_timeline:
            data["timeline"] = [e.to_dict() for e in events]
        ctx.print(format_output(data, ctx.output_format))
        return EXIT_SUCCESS

    _print_incident(ctx, incident)
    ctx.print("")
    ctx.print("Description:")
    ctx.print(f"  {incident.description}")
    if args.include_timeline:
        ctx.print("")
        ctx.print("Timeline:")
        _print_timeline(ctx, events)
    return EXIT_SUCCESS


def run_incident_status(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the incident status command."""
    from breachwatch.cli.formatters import format_output
    from breachwatch.cli.main import EXIT_SUCCESS

    before = ctx.manager.get_or_raise(args.incident_id)
    incident = ctx.manager.apply_transition(args.incident_id, args.new_status)

    if ctx.output_format == "table":
        ctx.print(
            f"Incident {incident.incident_id}: "
            f"{before.status.value} -> {incident.status.value}"
        )
    else:
        ctx.print(format_output(incident.to_dict(), ctx.output_format))
    return EXIT_SUCCESS


def run_incident_timeline(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the incident timeline command."""
    from breachwatch.cli.formatters import format_output
    from breachwatch.cli.main import EXIT_SUCCESS

    ctx.manager.get_or_raise(args.incident_id)
    events = ctx.manager.list_timeline(args.incident_id)

    if ctx.output_format == "table":
        _print_timeline(ctx, events)
    else:
        ctx.print(format_output([e.to_dict() for e in events], ctx.output_format))
    return EXIT_SUCCESS


def run_incident_note(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the incident note command."""
    from breachwatch.cli.formatters import format_output
    from breachwatch.cli.main import EXIT_SUCCESS

    event = ctx.manager.add_timeline_event(
        args.incident_id, "note", {"text": args.message}
    )
    if ctx.output_format == "table":
        ctx.print(f"Note added to incident {args.incident_id}.")
    else:
        ctx.print(format_output(event.to_dict(), ctx.output_format))
    return EXIT_SUCCESS


def run_incident_delete(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the incident delete command."""
    from breachwatch.cli.main import EXIT_ERROR, EXIT_SUCCESS

    incident = ctx.manager.get_or_raise(args.incident_id)

    if not args.yes:
        try:
            answer = input(f"Delete incident '{incident.title}'? [y/N] ")
        except EOFError:
            answer = ""
        if answer.strip().lower() not in ("y", "yes"):
            ctx.print("Aborted.")
            return EXIT_ERROR

    ctx.stores.alerts.delete_alerts(args.incident_id)
    ctx.stores.alerts.delete_webhooks(args.incident_id)
    ctx.manager.delete_incident(args.incident_id)
    ctx.print(f"Deleted incident {args.incident_id}.")
    return EXIT_SUCCESS


def run_incident_check_duplicate(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the incident check-duplicate command."""
    from breachwatch.cli.formatters import format_output
    from breachwatch.cli.main import EXIT_SUCCESS

    result = ctx.manager.check_duplicate(args.title, args.source)

    if ctx.output_format != "table":
        ctx.print(format_output(result.to_dict(), ctx.output_format))
    elif result.is_duplicate:
        ctx.print(
            f"Duplicate of incident {result.matched_incident_id} "
            f"(similarity {result.similarity:.2f})"
        )
    else:
        ctx.print("No duplicate found.")
    return EXIT_SUCCESS
