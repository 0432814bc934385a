"""Command-line interface for loanledger.

Built with Typer for commands and Rich for output. This is the only place
where error kinds become exit codes.
"""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import get_config
from .db import get_db
from .directory.schemas import BookCreate, BorrowerCreate
from .errors import ErrorKind, LendingError
from .lending.schemas import LoanView
from .logging_setup import configure_logging
from .service import LendingService

# Create the main app
app = typer.Typer(
    name="loanledger",
    help="Track book loans to registered borrowers.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
books_app = typer.Typer(help="Manage the book catalog.")
app.add_typer(books_app, name="books")
borrowers_app = typer.Typer(help="Manage registered borrowers.")
app.add_typer(borrowers_app, name="borrowers")

# Rich console for pretty output
console = Console()

EXIT_CODES = {
    ErrorKind.NOT_FOUND: 3,
    ErrorKind.CONFLICT: 4,
    ErrorKind.INVALID_STATE: 5,
    ErrorKind.FORBIDDEN: 6,
    ErrorKind.STORAGE_FAILURE: 7,
}

# Same code Click uses for bad command-line input
INVALID_INPUT_EXIT = 2

ModelT = TypeVar("ModelT", bound=BaseModel)


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def parse_input(model: type[ModelT], **fields: Any) -> ModelT:
    """Validate command input, exiting with a readable error when it is invalid."""
    try:
        return model(**fields)
    except ValidationError as e:
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            print_error(f"{field}: {error['msg']}")
        raise typer.Exit(INVALID_INPUT_EXIT)


def format_instant(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def run(work: Callable[[LendingService], Awaitable[Any]]) -> Any:
    """Run an async unit of work against the configured database.

    Lending errors are printed and turned into the exit code of their kind.
    """

    async def _runner() -> Any:
        service = LendingService(get_db())
        await service.init()
        try:
            return await work(service)
        finally:
            await service.close()

    try:
        return asyncio.run(_runner())
    except LendingError as e:
        print_error(str(e))
        raise typer.Exit(EXIT_CODES[e.kind])


def format_loan_table(loans: list[LoanView], title: str = "Loans") -> Table:
    """Create a rich table for displaying loans."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", max_width=8)
    table.add_column("Book", style="cyan", max_width=30)
    table.add_column("Borrower", style="green")
    table.add_column("Borrowed")
    table.add_column("Due")
    table.add_column("Status")

    for loan in loans:
        if loan.is_active:
            if loan.is_overdue:
                status_str = f"[bold red]OVERDUE ({loan.days_overdue}d)[/bold red]"
            else:
                status_str = f"[green]active ({loan.days_until_due}d)[/green]"
        else:
            status_str = f"[dim]returned {format_instant(loan.returned_at)}[/dim]"

        table.add_row(
            loan.id[:8],
            loan.book_title,
            loan.borrower_name,
            format_instant(loan.borrowed_at),
            format_instant(loan.due_date),
            status_str,
        )

    return table


# ============================================================================
# Global Options
# ============================================================================


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Track book loans to registered borrowers."""
    configure_logging("DEBUG" if verbose else get_config().log_level)


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"loanledger version {__version__}")


@app.command("init-db")
def init_db() -> None:
    """Create the database tables."""

    async def _work(service: LendingService) -> None:
        return None

    run(_work)
    print_success(f"Database ready at {get_db().url}")


# ============================================================================
# Catalog and Borrower Commands
# ============================================================================


@books_app.command("add")
def books_add(
    title: str = typer.Option(..., "--title", "-t", help="Book title"),
    author: str = typer.Option(..., "--author", "-a", help="Book author"),
    isbn: str = typer.Option(..., "--isbn", "-i", help="ISBN"),
) -> None:
    """Add a book copy to the catalog."""
    data = parse_input(BookCreate, title=title, author=author, isbn=isbn)
    book = run(lambda service: service.catalog.add_book(data))
    print_success(f"Added: {book.title}")
    console.print(f"ID: {book.id}", soft_wrap=True)


@borrowers_app.command("add")
def borrowers_add(
    name: str = typer.Option(..., "--name", "-n", help="Borrower name"),
    email: str = typer.Option(..., "--email", "-e", help="Borrower email"),
) -> None:
    """Register a borrower."""
    data = parse_input(BorrowerCreate, name=name, email=email)
    borrower = run(lambda service: service.borrowers.add_borrower(data))
    print_success(f"Registered: {borrower.name}")
    console.print(f"ID: {borrower.id}", soft_wrap=True)


# ============================================================================
# Lending Commands
# ============================================================================


@app.command()
def borrow(
    borrower_id: str = typer.Argument(..., help="Borrower ID"),
    book_id: str = typer.Argument(..., help="Book ID"),
) -> None:
    """Borrow a book."""
    loan = run(lambda service: service.manager.borrow(borrower_id, book_id))
    print_success(f"{loan.book_title} borrowed by {loan.borrower_name}")
    console.print(f"[dim]Due: {format_instant(loan.due_date)}[/dim]")


@app.command("return")
def return_book(
    borrower_id: str = typer.Argument(..., help="Borrower ID"),
    book_id: str = typer.Argument(..., help="Book ID"),
) -> None:
    """Return a borrowed book."""
    loan = run(lambda service: service.manager.return_book(borrower_id, book_id))
    print_success(f"{loan.book_title} returned by {loan.borrower_name}")


@app.command("list")
def list_loans(
    active: bool = typer.Option(False, "--active", "-a", help="Show only open loans"),
    overdue: bool = typer.Option(False, "--overdue", "-o", help="Show only overdue loans"),
    borrower: Optional[str] = typer.Option(None, "--borrower", "-b", help="Filter by borrower ID"),
    book: Optional[str] = typer.Option(None, "--book", "-k", help="Filter by book ID"),
) -> None:
    """List loan records. Filters combine."""
    loans = run(
        lambda service: service.queries.list_matching(
            borrower_id=borrower,
            book_id=book,
            active_only=active,
            overdue_only=overdue,
        )
    )

    if not loans:
        print_info("No loans found")
        return

    console.print(format_loan_table(loans))


@app.command()
def available(
    book_id: Optional[str] = typer.Argument(
        None, help="Book ID; omit to list every available book"
    ),
) -> None:
    """Check whether a book can be borrowed, or list the books that can."""
    if book_id is None:
        books = run(lambda service: service.queries.list_available_books())
        if not books:
            print_info("No books available")
            return

        table = Table(title="Available Books", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Title", style="cyan")
        table.add_column("Author", style="green")
        table.add_column("ISBN")
        for book in books:
            table.add_row(book.id, book.title, book.author, book.isbn)
        console.print(table)
        return

    is_free = run(lambda service: service.queries.is_available(book_id))
    if is_free:
        console.print("[green]Available[/green]")
    else:
        console.print("[yellow]On loan[/yellow]")


@app.command()
def overdue() -> None:
    """Show overdue loans."""
    report = run(lambda service: service.queries.overdue_report())

    if not report.loans:
        print_success("No overdue loans!")
        return

    console.print(Panel(
        f"[bold red]Overdue Loans: {report.total_overdue}[/bold red]\n"
        f"Oldest: {report.oldest_overdue_days} days overdue",
        style="red",
    ))

    table = Table(show_header=True, header_style="bold red")
    table.add_column("Book", style="cyan")
    table.add_column("Borrower")
    table.add_column("Email")
    table.add_column("Due Date")
    table.add_column("Days Overdue", justify="right")

    for loan in report.loans:
        table.add_row(
            loan.book_title,
            loan.borrower_name,
            loan.borrower_email,
            format_instant(loan.due_date),
            f"[bold red]{loan.days_overdue}[/bold red]",
        )

    console.print(table)


@app.command("due-soon")
def due_soon(
    days: int = typer.Option(7, "--days", "-d", help="Days to look ahead"),
) -> None:
    """Show loans due soon."""
    loans = run(lambda service: service.queries.list_due_soon(days=days))

    if not loans:
        print_info(f"No loans due in the next {days} days")
        return

    console.print(f"[bold]Loans due in the next {days} days:[/bold]")

    for loan in loans:
        days_left = loan.days_until_due
        if days_left <= 2:
            urgency = "[bold red]"
        elif days_left <= 5:
            urgency = "[yellow]"
        else:
            urgency = "[green]"

        console.print(
            f"  {urgency}{format_instant(loan.due_date)}[/]: "
            f"{loan.book_title} (borrowed by {loan.borrower_name})"
        )


@app.command()
def stats() -> None:
    """Show lending statistics."""
    result = run(lambda service: service.queries.get_stats())

    console.print(Panel("[bold]Lending Statistics[/bold]", style="cyan"))
    console.print(f"  Total loans: {result.total_loans}")
    console.print(f"  Currently out: {result.active_loans}")
    console.print(f"  Returned: {result.returned_loans}")
    if result.overdue_loans > 0:
        console.print(f"  [red]Overdue: {result.overdue_loans}[/red]")


# ============================================================================
# Main Entry Point
# ============================================================================


if __name__ == "__main__":
    app()
