"""
Review Engine CLI - operator commands against the configured review store.

Usage:
    review-engine init-db
    review-engine record USER CONTENT_ID --type flashcard --quality 4
    review-engine due USER [--type question] [--limit 20] [--cursor TOKEN]
    review-engine show USER CONTENT_ID --type question
    review-engine suspend | reactivate | delete USER CONTENT_ID --type ...
"""

from __future__ import annotations

import json
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Annotated

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from config import get_settings

from .core.errors import ReviewEngineError
from .core.models import ContentType, Page, ProgrammedReview
from .engine import ReviewEngine

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="review-engine",
    help="Spaced-repetition review engine - SM-2 scheduling of programmed reviews",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

console = Console()

UserArg = Annotated[str, typer.Argument(help="Learner identifier")]
ContentArg = Annotated[str, typer.Argument(help="Content identifier")]
TypeOption = Annotated[
    ContentType,
    typer.Option("--type", "-t", case_sensitive=False, help="Content type"),
]


def get_engine() -> ReviewEngine:
    """Engine over the SQL store from settings."""
    return ReviewEngine.from_settings()


@contextmanager
def handle_errors() -> Iterator[None]:
    """Print engine errors and exit (2 for caller mistakes, 1 otherwise)."""
    try:
        yield
    except ReviewEngineError as e:
        console.print(f"[red]✗ {e.kind.value}: {e.message}[/]")
        raise typer.Exit(2 if e.client_error else 1) from e


def review_table(engine: ReviewEngine, reviews: list[ProgrammedReview] | Page, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Content", style="cyan")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Ease", justify="right")
    table.add_column("Interval", justify="right")
    table.add_column("Reps", justify="right")
    table.add_column("Lapses", justify="right")
    table.add_column("Next Review", style="green")

    for review in reviews:
        lapses = f"[red]{review.lapses}[/]" if engine.is_leech(review) else str(review.lapses)
        table.add_row(
            review.content_id,
            review.content_type.value,
            review.status.value,
            f"{review.ease_factor:.2f}",
            f"{review.interval_days}d",
            str(review.repetitions),
            lapses,
            review.next_review_at.strftime("%Y-%m-%d %H:%M"),
        )
    return table


# =============================================================================
# Commands
# =============================================================================


@app.command("init-db")
def init_db_command() -> None:
    """Create the review tables in the configured database."""
    from .db.database import init_db

    init_db()
    console.print("[green]✓ Review tables ready[/]")


@app.command()
def record(
    user_id: UserArg,
    content_id: ContentArg,
    content_type: TypeOption,
    quality: Annotated[
        int, typer.Option("--quality", "-q", help="Recall quality 0-5")
    ],
    deck: Annotated[
        str | None, typer.Option("--deck", "-d", help="Deck id (flashcards)")
    ] = None,
) -> None:
    """Record one graded attempt."""
    with handle_errors():
        engine = get_engine()
        review = engine.record_review(user_id, content_id, content_type, quality, deck_id=deck)
    console.print(review_table(engine, [review], "Recorded Review"))


@app.command()
def due(
    user_id: UserArg,
    content_type: Annotated[
        ContentType | None,
        typer.Option("--type", "-t", case_sensitive=False, help="Only this content type"),
    ] = None,
    deck: Annotated[str | None, typer.Option("--deck", "-d", help="Only this deck")] = None,
    limit: Annotated[int | None, typer.Option("--limit", "-n", help="Page size")] = None,
    cursor: Annotated[str | None, typer.Option("--cursor", help="Next-page token")] = None,
) -> None:
    """List reviews that are due now, oldest first."""
    with handle_errors():
        engine = get_engine()
        page = engine.due_reviews(user_id, content_type, limit, cursor, deck_id=deck)
        total = engine.count_due(user_id, content_type, deck_id=deck)

    if not page.items:
        console.print("[yellow]No reviews due.[/]")
        return

    console.print(review_table(engine, page, f"Due Reviews ({total} total)"))
    if page.next_cursor:
        console.print(f"[dim]Next page: --cursor {page.next_cursor}[/]")


@app.command()
def show(
    user_id: UserArg,
    content_id: ContentArg,
    content_type: TypeOption,
    as_json: Annotated[bool, typer.Option("--json", help="Print raw JSON")] = False,
) -> None:
    """Show one programmed review."""
    with handle_errors():
        engine = get_engine()
        review = engine.get_review(user_id, content_id, content_type)

    if as_json:
        typer.echo(json.dumps(review.to_dict(engine.settings.srs_leech_threshold), indent=2))
    else:
        console.print(review_table(engine, [review], "Programmed Review"))


@app.command()
def suspend(user_id: UserArg, content_id: ContentArg, content_type: TypeOption) -> None:
    """Stop scheduling an item (mastered or archived)."""
    with handle_errors():
        review = get_engine().suspend(user_id, content_id, content_type)
    console.print(f"[green]✓ {review.key} suspended[/]")


@app.command()
def reactivate(user_id: UserArg, content_id: ContentArg, content_type: TypeOption) -> None:
    """Resume scheduling a suspended item."""
    with handle_errors():
        review = get_engine().reactivate(user_id, content_id, content_type)
    console.print(f"[green]✓ {review.key} is {review.status.value}[/]")


@app.command()
def delete(
    user_id: UserArg,
    content_id: ContentArg,
    content_type: TypeOption,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a programmed review and all its progress."""
    if not yes:
        typer.confirm(f"Delete review {user_id}/{content_id}?", abort=True)
    with handle_errors():
        deleted = get_engine().delete_review(user_id, content_id, content_type)
    if not deleted:
        console.print("[yellow]No such review.[/]")
        raise typer.Exit(1)
    console.print("[green]✓ Deleted[/]")


def main() -> None:
    """CLI entry point."""
    settings = get_settings()

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="10 MB", retention=5)

    app()


if __name__ == "__main__":
    main()
