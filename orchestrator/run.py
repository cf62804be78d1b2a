# -*- coding: utf-8 -*-
"""Terminal client for the productivity agent service.

Sends commands, shows the current state and follows the reminder event stream.
"""
from __future__ import annotations

import json
import typing as t
from datetime import datetime

import click
import httpx
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from productivity_server.config import get_settings

console = Console()

# Timeout for command requests; the LLM round trip can take a while
COMMAND_TIMEOUT = 60.0
STANDARD_TIMEOUT = 10.0


def format_datetime_human(iso_datetime: t.Optional[str]) -> str:
    """Convert an ISO datetime to 'Mon 1/15 2:30 PM'."""
    if not iso_datetime:
        return "-"
    try:
        dt = datetime.fromisoformat(iso_datetime.replace("Z", "+00:00"))
        return dt.strftime("%a %-m/%-d %-I:%M %p")
    except (ValueError, AttributeError):
        # Fallback for malformed dates
        return iso_datetime


def truncate(text: str, max_length: int = 45) -> str:
    """Truncate text to max_length characters, adding an ellipsis if needed."""
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def iter_sse_events(lines: t.Iterable[str]) -> t.Iterator[tuple[str, str]]:
    """Group raw SSE lines into (event, data) pairs.

    ``retry:`` hints and ``:`` comments are skipped; an event without an
    ``event:`` field is reported as "message".
    """
    event_name = ""
    data_lines: list[str] = []
    for line in lines:
        if line == "":
            if data_lines:
                yield event_name or "message", "\n".join(data_lines)
            event_name, data_lines = "", []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        value = value[1:] if value.startswith(" ") else value
        if field == "event":
            event_name = value
        elif field == "data":
            data_lines.append(value)

    if data_lines:
        yield event_name or "message", "\n".join(data_lines)


def create_state_tables(state: dict[str, t.Any]) -> list[Table]:
    """Build one table per non-empty collection of the state snapshot."""
    tables: list[Table] = []

    reminders = state.get("reminders", [])
    if reminders:
        table = Table(title="⏰ Reminders", show_header=True, header_style="bold magenta")
        table.add_column("Message", style="white")
        table.add_column("Due", style="yellow")
        table.add_column("Status", style="cyan")
        table.add_column("Id", style="dim")
        for reminder in reminders:
            status_style = "bold red" if reminder["status"] == "due" else "green"
            table.add_row(
                truncate(reminder["message"]),
                format_datetime_human(reminder["dueTime"]),
                Text(reminder["status"], style=status_style),
                reminder["id"],
            )
        tables.append(table)

    tasks = state.get("tasks", [])
    if tasks:
        table = Table(title="✅ Tasks", show_header=True, header_style="bold magenta")
        table.add_column("Description", style="white")
        table.add_column("Due", style="yellow")
        for task in tasks:
            table.add_row(truncate(task["description"]), format_datetime_human(task.get("dueDate")))
        tables.append(table)

    notes = state.get("notes", [])
    if notes:
        table = Table(title="📝 Notes", show_header=True, header_style="bold magenta")
        table.add_column("Note", style="white")
        table.add_column("Created", style="dim")
        for note in notes:
            table.add_row(truncate(note["body"], 70), format_datetime_human(note["createdAt"]))
        tables.append(table)

    drafts = state.get("emailDrafts", [])
    if drafts:
        table = Table(title="✉️  Email drafts", show_header=True, header_style="bold magenta")
        table.add_column("Subject", style="white")
        table.add_column("Created", style="dim")
        for draft in drafts:
            table.add_row(truncate(draft["subject"], 60), format_datetime_human(draft["createdAt"]))
        tables.append(table)

    return tables


def _describe_item(kind: str, item: dict[str, t.Any]) -> str:
    if kind == "add_task":
        return f"Task: {item['description']}"
    if kind == "add_note":
        return f"Note: {item['body']}"
    if kind in ("schedule_reminder", "update_reminder"):
        return f"Reminder: {item['message']} ({format_datetime_human(item['dueTime'])}, {item['status']})"
    if kind == "cancel_reminder":
        return f"Cancelled reminder: {item['message']}"
    if kind == "draft_email":
        return f"Email draft: {item['subject']}"
    return json.dumps(item)


def _print_error(response: httpx.Response) -> None:
    try:
        body = response.json()
    except ValueError:
        console.print(f"[red]Error:[/red] HTTP {response.status_code} {response.text}")
        return

    message = body.get("error", response.text)
    kind = body.get("errorKind", "")
    failed = body.get("failedAction")
    where = f" (action #{failed['index'] + 1}: {failed['kind']})" if failed else ""
    console.print(f"[red]Error[/red] [dim]{kind}[/dim]{where}: {message}")


def _request(method: str, path: str, *, timeout: float, **kwargs: t.Any) -> t.Optional[httpx.Response]:
    url = f"{get_settings().service_url}{path}"
    try:
        with httpx.Client(timeout=timeout) as client:
            return client.request(method, url, **kwargs)
    except httpx.TimeoutException:
        console.print(f"[red]Error:[/red] {method} {url} timed out after {timeout} seconds")
    except httpx.HTTPError as e:
        console.print(f"[red]Error:[/red] Could not reach {url}: {e}")
    return None


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def main() -> None:
    """Productivity agent: tasks, notes, reminders and email drafts from plain text."""


@main.command()
@click.argument("text", nargs=-1, required=True)
@click.option("--verbose", "-v", is_flag=True, help="Print the raw JSON response.")
def send(text: tuple[str, ...], verbose: bool) -> None:
    """Send a free-text command, e.g. "remind me to stretch in 5 minutes"."""
    with console.status("[bold green]Thinking..."):
        response = _request("POST", "/agent", timeout=COMMAND_TIMEOUT, json={"text": " ".join(text)})
    if response is None:
        raise SystemExit(1)
    if response.status_code != 200:
        _print_error(response)
        raise SystemExit(1)

    body = response.json()
    if verbose:
        console.print(Panel(JSON(json.dumps(body)), title="📄 Response", border_style="blue"))

    for result in body["actions"]:
        console.print(f"   ✓ [cyan]{result['kind']}[/cyan] {_describe_item(result['kind'], result['item'])}")


@main.command()
def state() -> None:
    """Show everything currently in the store."""
    response = _request("GET", "/state", timeout=STANDARD_TIMEOUT)
    if response is None:
        raise SystemExit(1)
    response.raise_for_status()

    tables = create_state_tables(response.json())
    if not tables:
        console.print("[dim]Nothing here yet.[/dim]")
    for table in tables:
        console.print(table)


@main.command()
@click.argument("instructions", nargs=-1, required=True)
def draft(instructions: tuple[str, ...]) -> None:
    """Draft an email without saving it."""
    with console.status("[bold green]Drafting..."):
        response = _request(
            "POST", "/draft-email", timeout=COMMAND_TIMEOUT, json={"instructions": " ".join(instructions)}
        )
    if response is None:
        raise SystemExit(1)
    if response.status_code != 200:
        _print_error(response)
        raise SystemExit(1)

    draft_data = response.json()["draft"]
    console.print(Panel(draft_data["body"], title=f"✉️  {draft_data['subject']}", border_style="green"))


@main.command()
def watch() -> None:
    """Follow reminder events as they happen (Ctrl+C to stop)."""
    url = f"{get_settings().service_url}/events"
    console.print(f"[dim]Listening on {url}[/dim]")
    try:
        with httpx.Client(timeout=httpx.Timeout(STANDARD_TIMEOUT, read=None)) as client:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                for name, data in iter_sse_events(response.iter_lines()):
                    reminder = json.loads(data)
                    style = "bold red" if name == "reminder_due" else "cyan"
                    console.print(
                        f"[{style}]{name}[/{style}] {reminder.get('message', '')} "
                        f"[dim]{format_datetime_human(reminder.get('dueTime'))} {reminder.get('id', '')}[/dim]"
                    )
    except KeyboardInterrupt:
        return
    except httpx.HTTPError as e:
        console.print(f"[red]Error:[/red] Event stream closed: {e}")
        raise SystemExit(1)


@main.command()
def serve() -> None:
    """Run the productivity agent service."""
    from services.productivity_service.app import main as run_service

    run_service()


if __name__ == "__main__":
    main()
