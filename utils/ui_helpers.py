import os
import json
from typing import List, Any, Dict
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"
SEPARATOR = "-----------------"
DUE_FORMAT = "%Y-%m-%d %H:%M:%S"

_console = Console()

def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode

def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()

def format_due(book: Any) -> str:
    due_at = getattr(book, "due_at", None)
    if not due_at:
        return "-"
    # Stored in UTC, shown in local time
    if due_at.tzinfo is not None:
        due_at = due_at.astimezone()
    return due_at.strftime(DUE_FORMAT)

def _book_lines(book: Any) -> List[str]:
    lines = [
        f"Title: {book.title}",
        f"Author: {book.author}",
        f"ID: {book.identifier}",
        f"Status: {book.status}",
    ]
    if not book.available:
        lines.append(f"Due: {format_due(book)}")
    return lines

def _books_table(books: List[Any], title: str) -> Table:
    table = Table(title=title, show_lines=True, header_style="bold cyan")
    table.add_column("ID", style="magenta", no_wrap=True)
    table.add_column("Title", style="white")
    table.add_column("Author", style="white")
    table.add_column("Status", style="white")
    table.add_column("Due", style="yellow")
    for b in books:
        table.add_row(escape(b.identifier), escape(b.title), escape(b.author), b.status, format_due(b))
    return table

def print_inventory_result(books: List[Any]) -> None:
    """Print the inventory in the current output mode.
    - plain: one block per book, separated by dashes
    - json: JSON array of books
    - rich: Rich table
    """
    mode = get_output_mode()

    # An empty inventory still prints its header (or an empty table / array)
    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        _console.print(_books_table(books, "📚 Library Inventory"))
    else:
        print("\nLibrary Inventory:")
        for b in books:
            print("\n".join(_book_lines(b)))
            print(SEPARATOR)

def print_user_result(user: Any, books: List[Any]) -> None:
    """Print a user's details and the books they currently hold."""
    mode = get_output_mode()

    if mode == "json":
        payload = user.to_dict()
        payload["borrowed_books"] = [b.to_dict() for b in books]
        print(json.dumps(payload, ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]User:[/] {escape(user.name)}\n"
            f"[bold]ID:[/] {escape(user.identifier)}\n"
            f"[bold]Fines:[/] ${user.fine_balance}\n"
            f"[bold]Borrowed books:[/] {len(books)}"
        )
        _console.print(Panel.fit(content, title="👤 User Info", border_style="blue"))
        if books:
            _console.print(_books_table(books, "Borrowed Books"))
    else:
        print(f"User: {user.name}")
        print(f"ID: {user.identifier}")
        print(f"Fines: ${user.fine_balance}")
        print(f"Borrowed books: {len(books)}")
        print("Borrowed Books:")
        for b in books:
            print("\n".join(_book_lines(b)))
            print(SEPARATOR)

def print_policy_result(policy: Dict[str, Any]) -> None:
    mode = get_output_mode()

    period = policy.get("loan_period", 0)
    unit = policy.get("loan_time_unit", "")
    rate = policy.get("fine_rate", "0")
    librarian = policy.get("librarian", "")

    if mode == "json":
        print(json.dumps(policy, ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]Loan period:[/] {period:g} {unit}\n"
            f"[bold]Fine rate:[/] ${rate} per {unit.rstrip('s')}\n"
            f"[bold]Librarian:[/] {escape(librarian)}"
        )
        _console.print(Panel.fit(content, title="📜 Lending Policy", border_style="blue"))
    else:
        print(f"Loan period: {period:g} {unit}")
        print(f"Fine rate: ${rate} per {unit.rstrip('s')}")
        print(f"Librarian: {librarian}")

def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print statistics in the current output mode."""
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    labels = {
        "total_books": "Total Books",
        "available_books": "Available",
        "checked_out_books": "Checked Out",
        "registered_users": "Registered Users",
        "overdue_loans": "Overdue Loans",
        "outstanding_fines": "Outstanding Fines",
    }

    if mode == "json":
        print(json.dumps({k: str(v) if k == "outstanding_fines" else v for k, v in stats.items()}, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{labels.get(k, k)}:[/] {v}" for k, v in stats.items())
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        for k, v in stats.items():
            print(f"{labels.get(k, k)}: {v}")
