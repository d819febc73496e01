"""
LiquidPlanner CLI - Opinionated command-line interface.

This layer provides the user-facing CLI commands, using the SDK layer
for all operations. It handles:
- Argument parsing
- TTY detection for human vs machine output
- JSON input from arguments or stdin
- JSON output for piping/automation
"""

import argparse
import json
import logging
import sys
from typing import Any

from lp_cli.core.client import DEFAULT_TIMEOUT, CLIError, ValidationError
from lp_cli.sdk import LiquidPlannerClient

# =============================================================================
# Output Helpers
# =============================================================================


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def is_tty() -> bool:
    """Check if stdout is a TTY (human) or pipe (machine)."""
    return sys.stdout.isatty()


def json_output(data: Any, pretty: bool = False) -> None:
    """Print JSON output."""
    indent = 2 if pretty or is_tty() else None
    print(json.dumps(data, indent=indent, default=str))


def error_output(error: CLIError) -> None:
    """Print error and exit."""
    json_output(error.to_dict())
    sys.exit(1)


def success_output(data: Any) -> None:
    """Print success output."""
    json_output(data)


def table_output(
    headers: list[str],
    rows: list[list[str]],
    widths: list[int],
) -> None:
    """Print a formatted table for human output."""
    # Header
    header_line = "  ".join(h.ljust(w) if i < len(widths) else h for i, (h, w) in enumerate(zip(headers, widths)))
    print(header_line)
    print("-" * len(header_line))

    # Rows
    for row in rows:
        row_line = "  ".join(
            str(v)[:w].ljust(w) if i < len(widths) else str(v) for i, (v, w) in enumerate(zip(row, widths))
        )
        print(row_line)


def list_output(items: Any, empty_message: str) -> None:
    """Print a list of resources: a table on a TTY, JSON otherwise."""
    if not is_tty() or not isinstance(items, list):
        success_output(items)
        return
    if not items:
        print(empty_message)
        return
    rows = []
    for item in items:
        if isinstance(item, dict):
            rows.append([str(item.get("id", "")), str(item.get("name") or "")])
        else:
            rows.append([str(item), ""])
    table_output(["ID", "Name"], rows, [12, 60])


# =============================================================================
# Input Helpers
# =============================================================================


def load_json_arg(value: str, name: str) -> Any:
    """Parse a JSON argument, reading stdin when the value is '-'."""
    try:
        if value == "-":
            return json.load(sys.stdin)
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {name}: {e}")


def load_json_object(value: str, name: str) -> dict[str, Any]:
    data = load_json_arg(value, name)
    if not isinstance(data, dict):
        raise ValidationError(f"{name} must be a JSON object")
    return data


def parse_params(pairs: list[str] | None) -> dict[str, Any]:
    """Turn repeated key=value flags into query params; repeated keys become lists."""
    params: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValidationError(f"Invalid --param '{pair}', expected key=value")
        if key in params:
            existing = params[key]
            params[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            params[key] = value
    return params


# =============================================================================
# CLI Commands
# =============================================================================


def cmd_account(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Show the logged in user's account."""
    try:
        success_output(client.account())
    except CLIError as e:
        error_output(e)


def cmd_workspace(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Show the current workspace."""
    try:
        success_output(client.workspace())
    except CLIError as e:
        error_output(e)


def cmd_tasks_list(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """List tasks."""
    try:
        list_output(client.tasks.list(parse_params(args.param)), "No tasks found.")
    except CLIError as e:
        error_output(e)


def cmd_tasks_get(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Get a task by ID."""
    try:
        success_output(client.tasks.get(args.task_id, parse_params(args.param)))
    except CLIError as e:
        error_output(e)


def cmd_tasks_create(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Create a task."""
    try:
        data = load_json_object(args.data, "task data")
        success_output(client.tasks.create(data))
    except CLIError as e:
        error_output(e)


def cmd_tasks_update(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Update a task."""
    try:
        data = load_json_object(args.data, "task data")
        success_output(client.tasks.update(args.task_id, data))
    except CLIError as e:
        error_output(e)


def cmd_tasks_delete(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Delete a task."""
    try:
        success_output(client.tasks.delete(args.task_id))
    except CLIError as e:
        error_output(e)


def cmd_tasks_track_time(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Track time on a task."""
    try:
        data = load_json_object(args.data, "track time data")
        success_output(client.tasks.track_time(args.task_id, data))
    except CLIError as e:
        error_output(e)


def cmd_tasks_comment(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Comment on a task."""
    try:
        success_output(client.tasks.create_comment(args.task_id, {"comment": args.comment}))
    except CLIError as e:
        error_output(e)


def cmd_tasks_note(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Set the note on a task."""
    try:
        success_output(client.tasks.create_note(args.task_id, {"description": args.description}))
    except CLIError as e:
        error_output(e)


def cmd_tasks_link(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Attach a link to a task."""
    try:
        data = {"url": args.url}
        if args.description:
            data["description"] = args.description
        success_output(client.tasks.create_link(args.task_id, data))
    except CLIError as e:
        error_output(e)


def cmd_tasks_timesheet_entries(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """List timesheet entries for a task."""
    try:
        success_output(client.tasks.timesheet_entries(args.task_id, parse_params(args.param)))
    except CLIError as e:
        error_output(e)


def cmd_estimate(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Set the remaining estimate of a tree item."""
    try:
        success_output(client.treeitems.estimate(args.item_id, {"low": args.low, "high": args.high}))
    except CLIError as e:
        error_output(e)


def cmd_timesheets_list(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """List timesheets."""
    try:
        success_output(client.timesheets.list(parse_params(args.param)))
    except CLIError as e:
        error_output(e)


def cmd_timesheets_entries(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """List timesheet entries."""
    try:
        success_output(client.timesheets.entries(args.timesheet_id, parse_params(args.param)))
    except CLIError as e:
        error_output(e)


def cmd_clients_list(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """List clients."""
    try:
        list_output(client.clients.list(), "No clients found.")
    except CLIError as e:
        error_output(e)


def cmd_clients_get(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Get a client by ID."""
    try:
        success_output(client.clients.get(args.client_id))
    except CLIError as e:
        error_output(e)


def cmd_clients_create(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Create a client."""
    try:
        success_output(client.clients.create(args.name, args.description, args.external_reference))
    except CLIError as e:
        error_output(e)


def cmd_clients_comments(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """List comments on a client."""
    try:
        success_output(client.clients.comments(args.client_id, args.comment_id))
    except CLIError as e:
        error_output(e)


def cmd_members_list(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """List workspace members."""
    try:
        members = client.members.list()
        if is_tty() and isinstance(members, list):
            if not members:
                print("No members found.")
                return
            rows = []
            for m in members:
                if isinstance(m, dict):
                    rows.append([str(m.get("id", "")), m.get("user_name") or "", m.get("email") or ""])
                else:
                    rows.append([str(m), "", ""])
            table_output(["ID", "User Name", "Email"], rows, [12, 30, 40])
        else:
            success_output(members)
    except CLIError as e:
        error_output(e)


def cmd_members_get(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Get a member by ID."""
    try:
        success_output(client.members.get(args.member_id))
    except CLIError as e:
        error_output(e)


def cmd_projects_list(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """List projects."""
    try:
        list_output(client.projects.list(), "No projects found.")
    except CLIError as e:
        error_output(e)


def cmd_projects_get(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Get a project by ID."""
    try:
        success_output(client.projects.get(args.project_id))
    except CLIError as e:
        error_output(e)


def cmd_projects_create(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Create a project."""
    try:
        result = client.projects.create(
            args.name,
            client_id=args.client_id,
            parent_id=args.parent_id,
            description=args.description,
            is_done=args.done,
            done_on=args.done_on,
            external_reference=args.external_reference,
        )
        success_output(result)
    except CLIError as e:
        error_output(e)


def cmd_activities_list(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """List activities."""
    try:
        list_output(client.activities.list(), "No activities found.")
    except CLIError as e:
        error_output(e)


def cmd_activities_get(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Get an activity by ID."""
    try:
        success_output(client.activities.get(args.activity_id))
    except CLIError as e:
        error_output(e)


def cmd_activities_create(client: LiquidPlannerClient, args: argparse.Namespace) -> None:
    """Create an activity."""
    try:
        data = load_json_object(args.data, "activity data")
        success_output(client.activities.create(data))
    except CLIError as e:
        error_output(e)


# =============================================================================
# Main CLI
# =============================================================================


def _add_param_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--param",
        "-p",
        action="append",
        metavar="KEY=VALUE",
        help="Query parameter, repeat for more (e.g. -p 'filter[]=is_done is false')",
    )


def create_parser() -> argparse.ArgumentParser:  # noqa: PLR0915
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="lp",
        description="LiquidPlanner CLI - Command-line interface for the LiquidPlanner API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Credentials are read from LP_EMAIL and LP_PASSWORD, the workspace from
LP_WORKSPACE_ID (or --workspace).

Examples:
  lp tasks list -p 'filter[]=is_done is false'
  lp tasks create '{"name": "Fix bug", "parent_id": 123}'
  lp tasks track-time 456 '{"work": 1.5, "activity_id": 7}'
  lp timesheets entries -p start_date=2024-01-01 | jq '.[].work'
""",
    )
    parser.add_argument("--workspace", "-w", help="Workspace ID (overrides LP_WORKSPACE_ID)")
    parser.add_argument("--debug", action="store_true", help="Log requests and throttling to stderr")
    parser.add_argument("--insecure", action="store_true", help="Skip TLS certificate verification")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Network timeout in seconds")
    parser.add_argument(
        "--max-retries",
        type=int,
        help="Give up after this many throttled retries (default: keep retrying)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ========== Account / Workspace ==========
    account = subparsers.add_parser("account", help="Show your account")
    account.set_defaults(func=cmd_account)

    workspace = subparsers.add_parser("workspace", help="Show the workspace")
    workspace.set_defaults(func=cmd_workspace)

    # ========== Tasks ==========
    tasks = subparsers.add_parser("tasks", help="List and manage tasks")
    tasks.set_defaults(func=lambda _c, _a: tasks.print_help())
    tasks_sub = tasks.add_subparsers(dest="subcommand")

    t_list = tasks_sub.add_parser("list", help="List tasks")
    _add_param_flag(t_list)
    t_list.set_defaults(func=cmd_tasks_list)

    t_get = tasks_sub.add_parser("get", help="Get task details")
    t_get.add_argument("task_id", help="Task ID")
    _add_param_flag(t_get)
    t_get.set_defaults(func=cmd_tasks_get)

    t_create = tasks_sub.add_parser("create", help="Create a task")
    t_create.add_argument("data", help="JSON object with task attributes (or - for stdin)")
    t_create.set_defaults(func=cmd_tasks_create)

    t_update = tasks_sub.add_parser("update", help="Update a task")
    t_update.add_argument("task_id", help="Task ID")
    t_update.add_argument("data", help="JSON object with task attributes (or - for stdin)")
    t_update.set_defaults(func=cmd_tasks_update)

    t_delete = tasks_sub.add_parser("delete", help="Delete a task")
    t_delete.add_argument("task_id", help="Task ID")
    t_delete.set_defaults(func=cmd_tasks_delete)

    t_track = tasks_sub.add_parser("track-time", help="Log work and update estimates")
    t_track.add_argument("task_id", help="Task ID")
    t_track.add_argument("data", help='JSON object, e.g. {"work": 2, "activity_id": 1} (or - for stdin)')
    t_track.set_defaults(func=cmd_tasks_track_time)

    t_comment = tasks_sub.add_parser("comment", help="Comment on a task")
    t_comment.add_argument("task_id", help="Task ID")
    t_comment.add_argument("comment", help="Comment text")
    t_comment.set_defaults(func=cmd_tasks_comment)

    t_note = tasks_sub.add_parser("note", help="Set the note on a task")
    t_note.add_argument("task_id", help="Task ID")
    t_note.add_argument("description", help="Note text")
    t_note.set_defaults(func=cmd_tasks_note)

    t_link = tasks_sub.add_parser("link", help="Attach a link to a task")
    t_link.add_argument("task_id", help="Task ID")
    t_link.add_argument("url", help="Link URL")
    t_link.add_argument("--description", "-d", help="Link description")
    t_link.set_defaults(func=cmd_tasks_link)

    t_entries = tasks_sub.add_parser("timesheet-entries", help="List time logged on a task")
    t_entries.add_argument("task_id", help="Task ID")
    _add_param_flag(t_entries)
    t_entries.set_defaults(func=cmd_tasks_timesheet_entries)

    # ========== Estimate ==========
    estimate = subparsers.add_parser("estimate", help="Set remaining estimate of a tree item")
    estimate.add_argument("item_id", help="Task or tree item ID")
    estimate.add_argument("low", help="Low estimate, e.g. 4h")
    estimate.add_argument("high", help="High estimate, e.g. 8h")
    estimate.set_defaults(func=cmd_estimate)

    # ========== Timesheets ==========
    timesheets = subparsers.add_parser("timesheets", help="List timesheets and entries")
    timesheets.set_defaults(func=lambda _c, _a: timesheets.print_help())
    timesheets_sub = timesheets.add_subparsers(dest="subcommand")

    ts_list = timesheets_sub.add_parser("list", help="List timesheets")
    _add_param_flag(ts_list)
    ts_list.set_defaults(func=cmd_timesheets_list)

    ts_entries = timesheets_sub.add_parser("entries", help="List timesheet entries")
    ts_entries.add_argument("--timesheet", dest="timesheet_id", help="Restrict to one timesheet")
    _add_param_flag(ts_entries)
    ts_entries.set_defaults(func=cmd_timesheets_entries)

    # ========== Clients ==========
    clients = subparsers.add_parser("clients", help="List and manage clients")
    clients.set_defaults(func=lambda _c, _a: clients.print_help())
    clients_sub = clients.add_subparsers(dest="subcommand")

    c_list = clients_sub.add_parser("list", help="List clients")
    c_list.set_defaults(func=cmd_clients_list)

    c_get = clients_sub.add_parser("get", help="Get client details")
    c_get.add_argument("client_id", help="Client ID")
    c_get.set_defaults(func=cmd_clients_get)

    c_create = clients_sub.add_parser("create", help="Create a client")
    c_create.add_argument("name", help="Client name")
    c_create.add_argument("--description", "-d", default="", help="Plain-text description")
    c_create.add_argument("--external-reference", "-x", default="", help="Reference ID from another system")
    c_create.set_defaults(func=cmd_clients_create)

    c_comments = clients_sub.add_parser("comments", help="List comments on a client")
    c_comments.add_argument("client_id", help="Client ID")
    c_comments.add_argument("comment_id", nargs="?", help="Single comment ID")
    c_comments.set_defaults(func=cmd_clients_comments)

    # ========== Members ==========
    members = subparsers.add_parser("members", help="List workspace members")
    members.set_defaults(func=lambda _c, _a: members.print_help())
    members_sub = members.add_subparsers(dest="subcommand")

    m_list = members_sub.add_parser("list", help="List members")
    m_list.set_defaults(func=cmd_members_list)

    m_get = members_sub.add_parser("get", help="Get member details")
    m_get.add_argument("member_id", help="Member ID")
    m_get.set_defaults(func=cmd_members_get)

    # ========== Projects ==========
    projects = subparsers.add_parser("projects", help="List and manage projects")
    projects.set_defaults(func=lambda _c, _a: projects.print_help())
    projects_sub = projects.add_subparsers(dest="subcommand")

    p_list = projects_sub.add_parser("list", help="List projects")
    p_list.set_defaults(func=cmd_projects_list)

    p_get = projects_sub.add_parser("get", help="Get project details")
    p_get.add_argument("project_id", help="Project ID")
    p_get.set_defaults(func=cmd_projects_get)

    p_create = projects_sub.add_parser("create", help="Create a project")
    p_create.add_argument("name", help="Project name")
    p_create.add_argument("--client", dest="client_id", help="Client ID")
    p_create.add_argument("--parent", dest="parent_id", help="Parent package or folder ID")
    p_create.add_argument("--description", "-d", default="", help="Plain-text description")
    p_create.add_argument("--done", action="store_true", help="Mark the project as done")
    p_create.add_argument("--done-on", default="", help="Date the project was done on")
    p_create.add_argument("--external-reference", "-x", default="", help="Reference ID from another system")
    p_create.set_defaults(func=cmd_projects_create)

    # ========== Activities ==========
    activities = subparsers.add_parser("activities", help="List and manage activities")
    activities.set_defaults(func=lambda _c, _a: activities.print_help())
    activities_sub = activities.add_subparsers(dest="subcommand")

    a_list = activities_sub.add_parser("list", help="List activities")
    a_list.set_defaults(func=cmd_activities_list)

    a_get = activities_sub.add_parser("get", help="Get activity details")
    a_get.add_argument("activity_id", help="Activity ID")
    a_get.set_defaults(func=cmd_activities_get)

    a_create = activities_sub.add_parser("create", help="Create an activity")
    a_create.add_argument("data", help="JSON object with activity attributes (or - for stdin)")
    a_create.set_defaults(func=cmd_activities_create)

    return parser


def create_client(args: argparse.Namespace) -> LiquidPlannerClient:
    """Build the SDK client from global flags."""
    return LiquidPlannerClient(
        workspace_id=args.workspace,
        timeout=args.timeout,
        verify_ssl=False if args.insecure else None,
        max_retries=args.max_retries,
        debug=True if args.debug else None,
    )


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT, stream=sys.stderr)

    client = create_client(args)

    # Run command (all subparsers have default funcs that print help)
    args.func(client, args)


if __name__ == "__main__":
    main()
