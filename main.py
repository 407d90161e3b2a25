import logging
from dataclasses import replace
from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.markup import escape
from rich import box
import typer

from config import Settings, settings
from library import Clock, LendingError, Library
from utils.ui_helpers import (
    format_due,
    print_inventory_result,
    print_policy_result,
    print_stats_result,
    print_user_result,
    set_output_mode,
)
from utils.validators import AmountValidator

logger = logging.getLogger(__name__)

console = Console()


def log_level_for(cfg: Settings) -> int:
    """DEBUG wins over LOG_LEVEL; unknown level names fall back to WARNING."""
    if cfg.debug:
        return logging.DEBUG
    level = getattr(logging, cfg.log_level.upper(), None)
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(cfg: Settings) -> None:
    logging.basicConfig(level=log_level_for(cfg), format="%(asctime)s %(levelname)s %(name)s: %(message)s")


# Single in-memory Library for the session
class LibraryManager:
    _instance: Optional[Library] = None

    @classmethod
    def get_instance(cls) -> Library:
        """Get or create the session Library."""
        if cls._instance is None:
            cls._instance = Library()
            logger.debug("Library instance created")
        return cls._instance

    @classmethod
    def configure(cls, cfg: Settings, clock: Optional[Clock] = None) -> Library:
        """Start a fresh Library with the given settings."""
        cls._instance = Library(settings=cfg, clock=clock)
        logger.debug(f"Library configured: {cfg.describe_policy()}")
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None


# --- Typer CLI Application ---
app = typer.Typer(help="Library lending desk")

@app.callback(invoke_without_command=True)
def _global_options(
    ctx: typer.Context,
    loan_period: Optional[float] = typer.Option(None, "--loan-period", help="Loan length in time units"),
    time_unit: Optional[str] = typer.Option(None, "--time-unit", help="seconds | minutes | hours | days"),
    fine_rate: Optional[float] = typer.Option(None, "--fine-rate", help="Fine charged per overdue time unit"),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
):
    """Run the interactive lending desk (default) or a subcommand."""
    if output:
        set_output_mode(output)

    overrides = {
        "loan_period": loan_period,
        "loan_time_unit": time_unit,
        "fine_rate": fine_rate,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        try:
            cfg = replace(LibraryManager.get_instance().settings, **overrides)
        except ValueError as e:
            raise typer.BadParameter(str(e))
        LibraryManager.configure(cfg)

    if ctx.invoked_subcommand is None:
        run_menu()

@app.command("policy")
def cli_policy():
    """Show the active lending policy."""
    lib = LibraryManager.get_instance()
    print_policy_result(lib.settings.describe_policy())


# --- Menu actions ---
def _select(label: str, options: List[str]) -> Optional[int]:
    """Show numbered options and read an index. Returns None when out of range."""
    console.print(f"Select {label} (0-{len(options) - 1}):")
    for i, text in enumerate(options):
        console.print(f"{i}. {escape(text)}", highlight=False)
    index = IntPrompt.ask("Enter index")
    if 0 <= index < len(options):
        return index
    return None

def add_book():
    lib = LibraryManager.get_instance()
    title = Prompt.ask("Enter title")
    author = Prompt.ask("Enter author")
    identifier = Prompt.ask("Enter ISBN")
    try:
        lib.add_book(title, author, identifier)
        console.print("[green]Book added to inventory.[/]")
    except ValueError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")

def remove_book():
    lib = LibraryManager.get_instance()
    identifier = Prompt.ask("Enter ISBN of book to remove")
    try:
        if lib.remove_book(identifier):
            console.print("[green]Book removed from inventory.[/]")
        else:
            console.print("[yellow]Book not found in inventory.[/]")
    except LendingError as e:
        console.print(f"[bold red]{escape(str(e))}[/]")

def display_inventory():
    lib = LibraryManager.get_instance()
    print_inventory_result(lib.list_books())
    print_stats_result(lib.get_statistics())

def register_user():
    lib = LibraryManager.get_instance()
    name = Prompt.ask("Enter user name")
    identifier = Prompt.ask("Enter user ID")
    try:
        lib.register_user(name, identifier)
        console.print("[green]User registered successfully.[/]")
    except ValueError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")

def borrow_book():
    lib = LibraryManager.get_instance()
    users = lib.list_users()
    books = lib.list_books()
    if not users or not books:
        console.print("[yellow]No users or books available.[/]")
        return

    user_index = _select("user", [u.name for u in users])
    book_index = _select("book", [b.title for b in books])
    if user_index is None or book_index is None:
        console.print("[red]Invalid selection.[/]")
        return

    try:
        book = lib.borrow_book(users[user_index].identifier, books[book_index].identifier)
    except LendingError as e:
        console.print(f"[yellow]{escape(str(e))}[/]")
        return
    console.print(f"[green]Book borrowed successfully.[/] Due: {format_due(book)}")

def return_book():
    lib = LibraryManager.get_instance()
    users = lib.list_users()
    if not users:
        console.print("[yellow]No users available.[/]")
        return

    user_index = _select("user", [u.name for u in users])
    if user_index is None:
        console.print("[red]Invalid user selection.[/]")
        return

    user = users[user_index]
    borrowed = lib.borrowed_books(user.identifier)
    if not borrowed:
        console.print("[yellow]No books borrowed.[/]")
        return

    book_index = _select("book to return", [b.title for b in borrowed])
    if book_index is None:
        console.print("[red]Invalid book selection.[/]")
        return

    try:
        fine = lib.return_book(user.identifier, borrowed[book_index].identifier)
    except LendingError as e:
        console.print(f"[yellow]{escape(str(e))}[/]")
        return
    if fine > 0:
        console.print(f"[bold yellow]Book returned late. Fine added: ${fine}[/]")
    console.print("[green]Book returned successfully.[/]")

def pay_fines():
    lib = LibraryManager.get_instance()
    users = lib.list_users()
    if not users:
        console.print("[yellow]No users available.[/]")
        return

    user_index = _select("user", [f"{u.name} (Fines: ${u.fine_balance})" for u in users])
    if user_index is None:
        console.print("[red]Invalid selection.[/]")
        return

    user = users[user_index]
    try:
        amount = AmountValidator.parse_amount(Prompt.ask("Enter amount to pay ($)"))
        remaining = lib.pay_fine(user.identifier, amount)
    except (ValueError, LendingError) as e:
        console.print(f"[yellow]{escape(str(e))}[/]")
        return
    console.print(f"Paid ${amount} towards fines. Remaining: ${remaining}")

def display_user_info():
    lib = LibraryManager.get_instance()
    users = lib.list_users()
    if not users:
        console.print("[yellow]No users available.[/]")
        return

    user_index = _select("user", [u.name for u in users])
    if user_index is None:
        console.print("[red]Invalid selection.[/]")
        return

    user = users[user_index]
    print_user_result(user, lib.borrowed_books(user.identifier))


MENU_ACTIONS = {
    1: add_book,
    2: remove_book,
    3: display_inventory,
    4: register_user,
    5: borrow_book,
    6: return_book,
    7: pay_fines,
    8: display_user_info,
}

def run_menu():
    """Interactive menu for the lending desk."""
    lib = LibraryManager.get_instance()

    def render_menu() -> None:
        menu_items = [
            ("1", "Add Book", "➕"),
            ("2", "Remove Book", "🗑️"),
            ("3", "Display Inventory", "📚"),
            ("4", "Register User", "👤"),
            ("5", "Borrow Book", "📖"),
            ("6", "Return Book", "↩️"),
            ("7", "Pay Fines", "💵"),
            ("8", "Display User Info", "🔎"),
            ("0", "Exit", "🚪"),
        ]

        table = Table.grid(padding=(0, 2))
        table.add_column(justify="right", style="bold cyan", width=4)
        table.add_column(justify="left", style="white")
        for key, label, icon in menu_items:
            table.add_row(f"[reverse]{key}[/]", f"{icon} {label}")

        panel = Panel(
            table,
            title=escape(lib.settings.app_name),
            subtitle=f"Librarian: {escape(str(lib.librarian))}",
            border_style="cyan",
            box=box.HEAVY,
            padding=(1, 2),
        )
        console.print(panel)

    while True:
        render_menu()
        choice = IntPrompt.ask("Enter choice")

        if choice == 0:
            console.print("Exiting...")
            break
        action = MENU_ACTIONS.get(choice)
        if action is None:
            console.print("[yellow]Invalid choice. Try again.[/]")
        else:
            action()
        console.print()  # blank line between operations

def main() -> None:
    setup_logging(settings)
    app()

if __name__ == "__main__":
    main()
