"""
LiquidPlanner SDK - Resource-oriented client.

Each method maps one API route to a (method, URL, body) call on the core
APIClient and returns the decoded response unchanged.
"""

from collections.abc import Callable, Mapping
from typing import Any

from lp_cli.core.client import DEFAULT_TIMEOUT, APIClient, ThrottleObserver

Params = Mapping[str, Any] | None


def _item_path(collection: str, item_id: str | int | None = None) -> str:
    return f"/{collection}/{item_id}" if item_id is not None else f"/{collection}"


class LiquidPlannerClient:
    """
    High-level LiquidPlanner API client grouped by resource.

    Example:
        client = LiquidPlannerClient(workspace_id=12345)

        task = client.tasks.create({"name": "Fix bug", "parent_id": 678})
        client.tasks.track_time(task["id"], {"work": 1.5, "activity_id": 9})
        entries = client.timesheets.entries(params={"start_date": "2024-01-01"})

    """

    def __init__(
        self,
        email: str | None = None,
        password: str | None = None,
        workspace_id: str | int | None = None,
        base_url: str | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        verify_ssl: bool | None = None,
        max_retries: int | None = None,
        max_total_wait: float | None = None,
        debug: bool | None = None,
        on_throttle: ThrottleObserver | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        """
        Initialize the LiquidPlanner client.

        Args:
            email: Account email (or LP_EMAIL env var)
            password: Account password (or LP_PASSWORD env var)
            workspace_id: Workspace ID (or LP_WORKSPACE_ID env var)
            base_url: API base URL (or LP_BASE_URL env var)
            timeout: Network timeout in seconds
            verify_ssl: Verify TLS certificates (default on)
            max_retries: Max throttle retries per call (default unbounded)
            max_total_wait: Max seconds spent throttled per call (default unbounded)
            debug: Log throttling notices
            on_throttle: Callback invoked on each throttle
            sleep: Blocking wait override, mostly for tests

        """
        extra = {"sleep": sleep} if sleep is not None else {}
        self._client = APIClient(
            email=email,
            password=password,
            workspace_id=workspace_id,
            base_url=base_url,
            timeout=timeout,
            verify_ssl=verify_ssl,
            max_retries=max_retries,
            max_total_wait=max_total_wait,
            debug=debug,
            on_throttle=on_throttle,
            **extra,
        )

        # Sub-clients for different resources
        self.tasks = TaskOperations(self._client)
        self.treeitems = TreeItemOperations(self._client)
        self.timesheets = TimesheetOperations(self._client)
        self.clients = ClientOperations(self._client)
        self.members = MemberOperations(self._client)
        self.projects = ProjectOperations(self._client)
        self.activities = ActivityOperations(self._client)

    @property
    def debug(self) -> bool:
        return self._client.debug

    @debug.setter
    def debug(self, value: bool) -> None:
        self._client.debug = value

    def account(self) -> Any:
        """Get the logged in user's account information."""
        return self._client.get(self._client.endpoint.account_url)

    def workspace(self) -> Any:
        """Get the current workspace details."""
        return self._client.workspace_get()


# =============================================================================
# Task Operations
# =============================================================================


class TaskOperations:
    """Operations for tasks and what hangs off them."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self, params: Params = None) -> Any:
        """
        List tasks in the workspace.

        Args:
            params: Filters such as {"filter[]": ["is_done is false"], "limit": 50}

        """
        return self._client.workspace_get("/tasks", params)

    def get(self, task_id: str | int, params: Params = None) -> Any:
        """Get a task by ID."""
        return self._client.workspace_get(_item_path("tasks", task_id), params)

    def create(self, data: Mapping[str, Any]) -> Any:
        """
        Create a task.

        Args:
            data: Task attributes, e.g. {"name": ..., "parent_id": ...}

        """
        return self._client.workspace_post("/tasks", {"task": dict(data)})

    def update(self, task_id: str | int, data: Mapping[str, Any]) -> Any:
        """Update a task's attributes."""
        return self._client.workspace_put(f"/tasks/{task_id}", {"task": dict(data)})

    def delete(self, task_id: str | int) -> Any:
        """Delete a task. The API's response is returned so it can be inspected."""
        return self._client.workspace_delete(f"/tasks/{task_id}")

    def track_time(self, task_id: str | int, data: Mapping[str, Any]) -> Any:
        """
        Log work and update remaining estimates on a task.

        Args:
            task_id: The task ID
            data: Values such as {"work": 2, "activity_id": 1, "low": 1, "high": 3}

        """
        return self._client.workspace_post(f"/tasks/{task_id}/track_time", dict(data))

    def create_comment(self, task_id: str | int, data: Mapping[str, Any]) -> Any:
        """Add a comment to a task."""
        return self._client.workspace_post(f"/tasks/{task_id}/comments", {"comment": dict(data)})

    def create_note(self, task_id: str | int, data: Mapping[str, Any]) -> Any:
        """Set the note on a task."""
        return self._client.workspace_post(f"/tasks/{task_id}/note", {"note": dict(data)})

    def create_link(self, task_id: str | int, data: Mapping[str, Any]) -> Any:
        """Attach a link to a task."""
        return self._client.workspace_post(f"/tasks/{task_id}/links", {"link": dict(data)})

    def timesheet_entries(self, task_id: str | int, params: Params = None) -> Any:
        """List timesheet entries logged against a task."""
        return self._client.workspace_get(f"/tasks/{task_id}/timesheet_entries", params)


class TreeItemOperations:
    """Operations that apply to any item in the plan tree."""

    def __init__(self, client: APIClient):
        self._client = client

    def estimate(self, item_id: str | int, data: Mapping[str, Any]) -> Any:
        """
        Set the remaining low/high estimate of a tree item.

        Args:
            item_id: Task or other tree item ID
            data: {"low": "4h", "high": "8h"}

        """
        return self._client.workspace_post(f"/treeitems/{item_id}/estimates", dict(data))


# =============================================================================
# Timesheet Operations
# =============================================================================


class TimesheetOperations:
    """Operations for timesheets and their entries."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self, params: Params = None) -> Any:
        """List timesheets, optionally filtered by date or count."""
        return self._client.workspace_get("/timesheets", params)

    def entries(self, timesheet_id: str | int | None = None, params: Params = None) -> Any:
        """
        List timesheet entries.

        Args:
            timesheet_id: Restrict to one timesheet, or None for the whole workspace
            params: Filters such as {"start_date": "2024-01-01", "member_id": 5}

        """
        prefix = f"/timesheets/{timesheet_id}" if timesheet_id is not None else ""
        return self._client.workspace_get(f"{prefix}/timesheet_entries", params)


# =============================================================================
# Client Operations
# =============================================================================


class ClientOperations:
    """Operations for clients (customers) and their comments."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self) -> Any:
        return self._client.workspace_get("/clients")

    def get(self, client_id: str | int) -> Any:
        return self._client.workspace_get(_item_path("clients", client_id))

    def create(self, name: str, description: str = "", external_reference: str = "") -> Any:
        """
        Create a client.

        Args:
            name: Name of the client
            description: Plain-text description
            external_reference: Arbitrary string, e.g. an ID in another system

        """
        data = {
            "client": {
                "name": name,
                "description": description,
                "external_reference": external_reference,
            }
        }
        return self._client.workspace_post("/clients", data)

    def comments(self, client_id: str | int, comment_id: str | int | None = None) -> Any:
        """List comments on a client, or get one comment."""
        return self._client.workspace_get(f"/clients/{client_id}" + _item_path("comments", comment_id))

    def delete_comment(self, client_id: str | int, comment_id: str | int) -> Any:
        return self._client.workspace_delete(f"/clients/{client_id}/comments/{comment_id}")


# =============================================================================
# Member Operations
# =============================================================================


class MemberOperations:
    """Operations for workspace members."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self) -> Any:
        return self._client.workspace_get("/members")

    def get(self, member_id: str | int) -> Any:
        return self._client.workspace_get(_item_path("members", member_id))


# =============================================================================
# Project Operations
# =============================================================================


class ProjectOperations:
    """Operations for managing projects."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self) -> Any:
        return self._client.workspace_get("/projects")

    def get(self, project_id: str | int) -> Any:
        return self._client.workspace_get(_item_path("projects", project_id))

    def create(
        self,
        name: str,
        client_id: str | int | None,
        parent_id: str | int | None,
        description: str = "",
        is_done: bool = False,
        done_on: str = "",
        external_reference: str = "",
    ) -> Any:
        """
        Create a project.

        Args:
            name: Name of the project
            client_id: Client the project belongs to
            parent_id: Parent package or folder ID
            description: Plain-text description
            is_done: Whether the project is already done
            done_on: Date the project was done on
            external_reference: Arbitrary string, e.g. an ID in another system

        """
        data = {
            "project": {
                "name": name,
                "client_id": client_id,
                "parent_id": parent_id,
                "description": description,
                "is_done": is_done,
                "done_on": done_on,
                "external_reference": external_reference,
            }
        }
        return self._client.workspace_post("/projects", data)


# =============================================================================
# Activity Operations
# =============================================================================


class ActivityOperations:
    """Operations for activities (kinds of work time is tracked against)."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self) -> Any:
        return self._client.workspace_get("/activities")

    def get(self, activity_id: str | int) -> Any:
        return self._client.workspace_get(_item_path("activities", activity_id))

    def create(self, data: Mapping[str, Any]) -> Any:
        """Create an activity."""
        return self._client.workspace_post("/activities", {"activity": dict(data)})
