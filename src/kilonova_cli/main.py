"""CLI entry point for the kilonova tool.

This module is the composition root of the application.  It is the only
place that wires concrete implementations (FileTokenStore, Transport,
Dispatcher) together.  All other layers depend on what they are given.
"""

import csv
import io
import json
import logging
import sys
from contextlib import contextmanager
from dataclasses import asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Iterator

# Ensure UTF-8 output on Windows where stdout may default to cp1252.
# reconfigure() is a no-op when encoding is already utf-8.
if hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
if hasattr(sys.stderr, "reconfigure"):
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from kilonova.api.dispatcher import Dispatcher
from kilonova.api.request_builder import validate_id
from kilonova.auth.token_store import FileTokenStore
from kilonova.config import Settings
from kilonova.core.exceptions import ClientError, ErrorKind
from kilonova.core.models import Number, Question, json_default
from kilonova.services.account_service import AccountService
from kilonova.services.contest_service import ContestService

app = typer.Typer(help="Command-line client for the Kilonova contest platform.")
auth_app = typer.Typer(help="Log in and out of Kilonova.")
user_app = typer.Typer(help="Manage your account settings.")
contest_app = typer.Typer(help="Manage and take part in contests.")

app.add_typer(auth_app, name="auth")
app.add_typer(user_app, name="user")
app.add_typer(contest_app, name="contest")

console = Console(legacy_windows=False)
err_console = Console(stderr=True, legacy_windows=False)

# Global option values, filled in by the app callback.
_options: dict[str, Any] = {"base_url": None, "timeout": None}


# ---------------------------------------------------------------------------
# Output format
# ---------------------------------------------------------------------------


class OutputFormat(str, Enum):
    """Supported output formats for listing commands."""

    table = "table"
    json = "json"
    csv = "csv"


class ContestType(str, Enum):
    official = "official"
    virtual = "virtual"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _settings() -> Settings:
    """Resolve settings from the global options and the environment.

    Returns:
        A :class:`~kilonova.config.Settings` where ``--base-url`` and
        ``--timeout`` win over ``KILONOVA_*`` variables.
    """
    return Settings.from_env(
        base_url=_options["base_url"], timeout=_options["timeout"]
    )


def _get_token_store() -> FileTokenStore:
    """Return the file-backed token store at the configured path."""
    return FileTokenStore(_settings().token_file)


def _get_dispatcher() -> Dispatcher:
    """Build the request pipeline from the resolved settings."""
    return Dispatcher.from_settings(_settings(), _get_token_store())


def _get_contest_service() -> ContestService:
    return ContestService(_get_dispatcher())


def _get_account_service() -> AccountService:
    return AccountService(_get_dispatcher())


def _print_error(error: ClientError) -> None:
    """Render a pipeline error as a user-facing message.

    The error text may come from the server and is printed literally.
    """
    text = escape(str(error))
    if error.kind is ErrorKind.application:
        console.print(f"[red]Rejected:[/red] {text}", highlight=False)
    elif error.kind in (ErrorKind.network, ErrorKind.timeout):
        console.print(
            f"[red]Could not reach Kilonova:[/red] {text}", highlight=False
        )
    elif error.kind is ErrorKind.malformed:
        console.print(
            "[red]Unexpected response from Kilonova.[/red] "
            "The server may have changed its API.",
            highlight=False,
        )
        console.print(f"[dim]{text}[/dim]", highlight=False)
    else:
        console.print(f"[red]Error:[/red] {text}", highlight=False)


def _print_result(message: str, fallback: str) -> None:
    """Print the server's confirmation message, or *fallback* when empty.

    Args:
        message: Text returned by the server; printed without markup.
        fallback: Rich-markup text used when the server sent nothing.
    """
    if message:
        console.print(escape(message), highlight=False)
    else:
        console.print(fallback)


@contextmanager
def _reporting_errors() -> Iterator[None]:
    """Turn any :class:`ClientError` into a message and exit status 1."""
    try:
        yield
    except ClientError as e:
        _print_error(e)
        raise typer.Exit(1)


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=json_default)


def _to_csv(rows: list[dict], fieldnames: list[str]) -> str:
    """Serialise a list of dicts to a CSV string.

    Args:
        rows: List of dictionaries to serialise.
        fieldnames: Ordered column names.  Extra keys in ``rows`` are ignored.

    Returns:
        A CSV-formatted string including a header row.
    """
    buf = io.StringIO()
    writer = csv.DictWriter(
        buf, fieldnames=fieldnames, extrasaction="ignore"
    )
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()


def _fmt_time(value: str | None) -> str:
    """Format a server timestamp as ``YYYY-MM-DD HH:MM``.

    Args:
        value: An RFC 3339 timestamp, or ``None``.

    Returns:
        The formatted time, the escaped raw text if it cannot be parsed,
        or ``"—"`` when absent.
    """
    if not value:
        return "—"
    try:
        return datetime.fromisoformat(value).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return escape(value)


def _fmt_num(value: Number | None) -> str:
    """Format an optional number for a table cell.

    Args:
        value: A score, limit or duration, or ``None``.

    Returns:
        The exact number as text, or ``"—"`` when absent.
    """
    return str(value) if value is not None else "—"


def _configure_logging(verbose: bool) -> None:
    """Route library log records to stderr through rich when verbose."""
    logger = logging.getLogger("kilonova")
    if not verbose:
        logger.setLevel(logging.WARNING)
        return
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(
            RichHandler(console=err_console, show_path=False, markup=False)
        )
    logger.setLevel(logging.DEBUG)


def _yes_no(value: bool) -> str:
    """Render a boolean setting as a coloured yes/no cell."""
    return "[green]yes[/green]" if value else "[dim]no[/dim]"


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


@app.callback()
def main(
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        help="Kilonova server root. Overrides KILONOVA_BASE_URL.",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Per-request timeout in seconds. Overrides KILONOVA_TIMEOUT.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log HTTP traffic to stderr."
    ),
):
    """Command-line client for the Kilonova contest platform."""
    _options["base_url"] = base_url
    _options["timeout"] = timeout
    _configure_logging(verbose)


# ---------------------------------------------------------------------------
# auth commands
# ---------------------------------------------------------------------------


@auth_app.command()
def login(
    username: str = typer.Option(..., "--username", "-u", prompt=True),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True
    ),
):
    """Log in and save the session token locally."""
    service = _get_account_service()
    with _reporting_errors():
        service.login(username, password)
    console.print(
        f"[green]✓ Logged in as[/green] [bold]{escape(username)}[/bold]"
    )


@auth_app.command()
def logout():
    """End the session and remove the saved token."""
    service = _get_account_service()
    if not service.is_logged_in():
        console.print("[yellow]You are not logged in.[/yellow]")
        return
    with _reporting_errors():
        service.logout()
    console.print("[green]✓ Logged out.[/green]")


@auth_app.command()
def status():
    """Show whether a session token is saved."""
    store = _get_token_store()
    if not store.is_authenticated():
        console.print("[yellow]Not logged in.[/yellow]")
        console.print("Run [bold]kilonova auth login[/bold].")
        raise typer.Exit(1)
    console.print(f"[green]✓ Logged in[/green]  {escape(str(store.path))}")


# ---------------------------------------------------------------------------
# user commands
# ---------------------------------------------------------------------------


@user_app.command()
def bio(text: str):
    """Set your profile bio."""
    with _reporting_errors():
        _get_account_service().set_bio(text)
    console.print("[green]✓ Bio changed.[/green]")


@user_app.command()
def name(
    new_name: str,
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True
    ),
):
    """Change your username."""
    with _reporting_errors():
        _get_account_service().change_name(new_name, password)
    console.print(
        f"[green]✓ Name changed to[/green] [bold]{escape(new_name)}[/bold]"
    )


@user_app.command()
def password(
    old_password: str = typer.Option(
        ..., "--old", prompt="Current password", hide_input=True
    ),
    new_password: str = typer.Option(
        ...,
        "--new",
        prompt="New password",
        hide_input=True,
        confirmation_prompt=True,
    ),
):
    """Change your password. You will need to log in again afterwards."""
    with _reporting_errors():
        _get_account_service().change_password(old_password, new_password)
    console.print("[green]✓ Password changed.[/green] Log in again.")


@user_app.command()
def email(
    new_email: str,
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True
    ),
):
    """Change your email address."""
    with _reporting_errors():
        _get_account_service().change_email(new_email, password)
    console.print(f"[green]✓ Email changed to[/green] {escape(new_email)}")


@user_app.command("reset-password")
def reset_password(address: str):
    """Send a password-reset email (only while logged out)."""
    with _reporting_errors():
        message = _get_account_service().reset_password(address)
    _print_result(message, "[green]✓ Reset email sent.[/green]")


@user_app.command("resend-email")
def resend_email():
    """Resend the account verification email."""
    with _reporting_errors():
        message = _get_account_service().resend_email()
    _print_result(message, "[green]✓ Verification email sent.[/green]")


# ---------------------------------------------------------------------------
# contest commands: lifecycle
# ---------------------------------------------------------------------------


@contest_app.command()
def create(
    contest_name: str,
    contest_type: ContestType = typer.Option(
        ContestType.virtual, "--type", "-t", help="Contest type."
    ),
):
    """Create a new contest and print its ID."""
    with _reporting_errors():
        contest_id = _get_contest_service().create(
            contest_name, contest_type.value
        )
    console.print(f"[green]✓ Contest created:[/green] #{contest_id}")


@contest_app.command()
def delete(
    contest_id: str,
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Do not ask for confirmation."
    ),
):
    """Delete a contest."""
    if not yes:
        typer.confirm(f"Delete contest #{contest_id}?", abort=True)
    with _reporting_errors():
        message = _get_contest_service().delete(contest_id)
    _print_result(message, f"[green]✓ Contest #{contest_id} deleted.[/green]")


@contest_app.command()
def register(contest_id: str):
    """Register for a contest."""
    with _reporting_errors():
        message = _get_contest_service().register(contest_id)
    _print_result(message, f"[green]✓ Registered for #{contest_id}.[/green]")


@contest_app.command()
def start(contest_id: str):
    """Start your timer in a per-user-time contest."""
    with _reporting_errors():
        message = _get_contest_service().start(contest_id)
    _print_result(message, f"[green]✓ Contest #{contest_id} started.[/green]")


# ---------------------------------------------------------------------------
# contest commands: settings
# ---------------------------------------------------------------------------


@contest_app.command()
def info(
    contest_id: str,
    output: OutputFormat = typer.Option(
        OutputFormat.table, "--output", "-o", help="Output format."
    ),
):
    """Display contest settings."""
    with _reporting_errors():
        contest = _get_contest_service().info(contest_id)

    if output == OutputFormat.json:
        print(_to_json(asdict(contest)))
    elif output == OutputFormat.csv:
        print(
            _to_csv(
                [asdict(contest)],
                [
                    "id", "name", "start_time", "end_time", "max_subs",
                    "visible", "public_leaderboard",
                    "register_during_contest",
                ],
            ),
            end="",
        )
    else:
        table = Table(
            title=f"#{contest.id} {escape(contest.name)}", show_header=False
        )
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        table.add_row("Start time", _fmt_time(contest.start_time))
        table.add_row("End time", _fmt_time(contest.end_time))
        table.add_row(
            "Max submissions per problem",
            str(contest.max_subs) if contest.max_subs > 0 else "unlimited",
        )
        table.add_row("Public leaderboard", _yes_no(contest.public_leaderboard))
        table.add_row("Visible", _yes_no(contest.visible))
        table.add_row(
            "Registering during contest",
            _yes_no(contest.register_during_contest),
        )
        if contest.per_user_time is not None:
            table.add_row("Time per user (s)", str(contest.per_user_time))
        if contest.submission_cooldown is not None:
            table.add_row(
                "Submission cooldown", str(contest.submission_cooldown)
            )
        console.print(table)


@contest_app.command()
def modify(
    contest_id: str,
    start_time: str | None = typer.Option(
        None, "--start", help="New start time (ISO 8601)."
    ),
    end_time: str | None = typer.Option(
        None, "--end", help="New end time (ISO 8601)."
    ),
    max_subs: int | None = typer.Option(
        None, "--max-subs", help="Max submissions per problem (0 = unlimited)."
    ),
    visible: bool | None = typer.Option(
        None, "--visible/--hidden", help="Contest visibility."
    ),
    register_during: bool | None = typer.Option(
        None,
        "--register-during/--no-register-during",
        help="Allow registering after the contest has started.",
    ),
    public_leaderboard: bool | None = typer.Option(
        None,
        "--public-leaderboard/--private-leaderboard",
        help="Leaderboard visibility.",
    ),
):
    """Change contest settings. Only the options given are modified."""
    for label, value in (("--start", start_time), ("--end", end_time)):
        if value is not None:
            try:
                datetime.fromisoformat(value)
            except ValueError:
                console.print(
                    f"[red]Error:[/red] {label} must be an ISO 8601 time, "
                    f"got {escape(repr(value))}.",
                    highlight=False,
                )
                raise typer.Exit(1)

    with _reporting_errors():
        message = _get_contest_service().update(
            contest_id,
            start_time=start_time,
            end_time=end_time,
            max_subs=max_subs,
            visible=visible,
            register_during_contest=register_during,
            public_leaderboard=public_leaderboard,
        )
    _print_result(message, f"[green]✓ Contest #{contest_id} updated.[/green]")


# ---------------------------------------------------------------------------
# contest commands: problems
# ---------------------------------------------------------------------------


@contest_app.command()
def problems(
    contest_id: str,
    output: OutputFormat = typer.Option(
        OutputFormat.table, "--output", "-o", help="Output format."
    ),
):
    """List the problems of a contest."""
    with _reporting_errors():
        data = _get_contest_service().problems(contest_id)

    if output == OutputFormat.json:
        print(_to_json([asdict(p) for p in data]))
    elif output == OutputFormat.csv:
        print(
            _to_csv([asdict(p) for p in data], ["id", "name", "max_score"]),
            end="",
        )
    elif not data:
        console.print("[yellow]No problems have been added.[/yellow]")
    else:
        table = Table(title=f"Problems — #{contest_id}")
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Max score", justify="right")
        for p in data:
            table.add_row(str(p.id), escape(p.name), _fmt_num(p.max_score))
        console.print(table)


@contest_app.command("set-problems")
def set_problems(contest_id: str, problem_ids: list[str]):
    """Replace the contest's problem list with PROBLEM_IDS, in order."""
    with _reporting_errors():
        message = _get_contest_service().update_problems(
            contest_id, problem_ids
        )
    _print_result(message, "[green]✓ Problems updated.[/green]")


# ---------------------------------------------------------------------------
# contest commands: announcements
# ---------------------------------------------------------------------------


@contest_app.command()
def announcements(
    contest_id: str,
    output: OutputFormat = typer.Option(
        OutputFormat.table, "--output", "-o", help="Output format."
    ),
):
    """List contest announcements."""
    with _reporting_errors():
        data = _get_contest_service().announcements(contest_id)

    if output == OutputFormat.json:
        print(_to_json([asdict(a) for a in data]))
    elif output == OutputFormat.csv:
        print(
            _to_csv([asdict(a) for a in data], ["id", "created_at", "text"]),
            end="",
        )
    elif not data:
        console.print("[dim]No announcements.[/dim]")
    else:
        table = Table(title=f"Announcements — #{contest_id}", show_lines=True)
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Posted", justify="right")
        table.add_column("Text")
        for a in data:
            table.add_row(str(a.id), _fmt_time(a.created_at), escape(a.text))
        console.print(table)


@contest_app.command()
def announce(contest_id: str, text: str):
    """Post an announcement."""
    with _reporting_errors():
        message = _get_contest_service().create_announcement(contest_id, text)
    _print_result(message, "[green]✓ Announcement posted.[/green]")


@contest_app.command("edit-announcement")
def edit_announcement(contest_id: str, announcement_id: str, text: str):
    """Replace the text of an announcement."""
    with _reporting_errors():
        message = _get_contest_service().update_announcement(
            contest_id, announcement_id, text
        )
    _print_result(message, "[green]✓ Announcement updated.[/green]")


@contest_app.command("delete-announcement")
def delete_announcement(contest_id: str, announcement_id: str):
    """Delete an announcement."""
    with _reporting_errors():
        message = _get_contest_service().delete_announcement(
            contest_id, announcement_id
        )
    _print_result(message, "[green]✓ Announcement deleted.[/green]")


# ---------------------------------------------------------------------------
# contest commands: questions
# ---------------------------------------------------------------------------


def _question_row(q: Question) -> dict:
    row = asdict(q)
    row["answered"] = q.answered
    return row


@contest_app.command()
def questions(
    contest_id: str,
    all_questions: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Show every contestant's questions (organisers only).",
    ),
    output: OutputFormat = typer.Option(
        OutputFormat.table, "--output", "-o", help="Output format."
    ),
):
    """List questions asked during a contest.

    By default only your own questions are shown; use --all as an
    organiser to see everyone's.
    """
    service = _get_contest_service()
    with _reporting_errors():
        data = (
            service.all_questions(contest_id)
            if all_questions
            else service.my_questions(contest_id)
        )

    if output == OutputFormat.json:
        print(_to_json([_question_row(q) for q in data]))
    elif output == OutputFormat.csv:
        print(
            _to_csv(
                [_question_row(q) for q in data],
                [
                    "id", "author_id", "asked_at", "text",
                    "responded_at", "response",
                ],
            ),
            end="",
        )
    elif not data:
        console.print("[dim]No questions.[/dim]")
    else:
        table = Table(title=f"Questions — #{contest_id}", show_lines=True)
        table.add_column("ID", justify="right", style="dim")
        if all_questions:
            table.add_column("Author", justify="right")
        table.add_column("Asked", justify="right")
        table.add_column("Question", style="cyan")
        table.add_column("Answer")
        for q in data:
            row = [str(q.id)]
            if all_questions:
                row.append(str(q.author_id))
            row += [
                _fmt_time(q.asked_at),
                escape(q.text),
                escape(q.response) if q.answered else "[dim]unanswered[/dim]",
            ]
            table.add_row(*row)
        console.print(table)


@contest_app.command()
def ask(contest_id: str, text: str):
    """Ask the organisers a question."""
    with _reporting_errors():
        message = _get_contest_service().ask_question(contest_id, text)
    _print_result(message, "[green]✓ Question sent.[/green]")


@contest_app.command()
def answer(contest_id: str, question_id: str, text: str):
    """Answer a contestant's question."""
    with _reporting_errors():
        message = _get_contest_service().answer_question(
            contest_id, question_id, text
        )
    _print_result(message, "[green]✓ Answer sent.[/green]")


# ---------------------------------------------------------------------------
# contest commands: leaderboard
# ---------------------------------------------------------------------------


@contest_app.command()
def leaderboard(
    contest_id: str,
    output: OutputFormat = typer.Option(
        OutputFormat.table, "--output", "-o", help="Output format."
    ),
    download: bool = typer.Option(
        False,
        "--download",
        "-d",
        help="Also save the leaderboard as leaderboard_<id>.csv.",
    ),
):
    """Show contest standings."""
    service = _get_contest_service()
    with _reporting_errors():
        board = service.leaderboard(contest_id)

    if output == OutputFormat.json:
        print(_to_json(asdict(board)))
    elif output == OutputFormat.csv:
        ids = board.problem_ids
        rows = []
        for entry in board.entries:
            row: dict[str, Any] = {
                "user_id": entry.user_id,
                "user_name": entry.user_name,
                "total": entry.total,
            }
            for pid in ids:
                row[pid] = entry.scores.get(pid, "")
            rows.append(row)
        print(_to_csv(rows, ["user_id", "user_name", *ids, "total"]), end="")
    else:
        table = Table(title=f"Leaderboard — #{contest_id}")
        table.add_column("#", justify="right", style="dim")
        table.add_column("User", style="cyan")
        for pid, problem_name in board.problem_names.items():
            table.add_column(f"#{pid} {escape(problem_name)}", justify="right")
        table.add_column("Total", justify="right", style="bold")
        for rank, entry in enumerate(board.entries, 1):
            table.add_row(
                str(rank),
                f"{escape(entry.user_name)} [dim]({entry.user_id})[/dim]",
                *(_fmt_num(entry.scores.get(pid)) for pid in board.problem_ids),
                _fmt_num(entry.total),
            )
        console.print(table)

    if download:
        with _reporting_errors():
            with console.status("[dim]Downloading…[/dim]", spinner="dots"):
                content = service.download_leaderboard(contest_id)
            # Name the file after the ID as sent, e.g. " 012" -> 12.
            canonical_id = validate_id("contest_id", contest_id)
        target = Path.cwd() / f"leaderboard_{canonical_id}.csv"
        try:
            target.write_bytes(content)
        except OSError as e:
            console.print(
                f"[red]Failed to write {escape(str(target))}:[/red] "
                f"{escape(str(e))}"
            )
            raise typer.Exit(1)
        console.print(
            f"[green]✓ Leaderboard for #{canonical_id} saved to:[/green] "
            f"{escape(str(target))}"
        )
