"""Cadence CLI — review, due-card and catalog commands."""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer

from cadence.application.config import resolve_config
from cadence.domain.errors import CadenceError, PersistenceError
from cadence.domain.models import ClassifiedCard, Reviewer, ReviewRecord, resolve_reviewer
from cadence.infrastructure.logging_config import setup_logging

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="cadence: spaced-repetition scheduling for flashcards.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

deck_app = typer.Typer(help="Manage decks.", no_args_is_help=True)
app.add_typer(deck_app, name="deck")

card_app = typer.Typer(help="Manage cards.", no_args_is_help=True)
app.add_typer(card_app, name="card")

config_app = typer.Typer(help="Manage cadence configuration.", no_args_is_help=True)
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Shared options and helpers
# ---------------------------------------------------------------------------

UserOption = Annotated[
    str | None,
    typer.Option("--user", envvar="CADENCE_USER", help="Authenticated user id."),
]
SessionOption = Annotated[
    str | None,
    typer.Option("--session", envvar="CADENCE_SESSION", help="Guest session id."),
]
BackendOption = Annotated[
    str | None, typer.Option(help="Storage backend: sqlite, memory.")
]
DatabaseOption = Annotated[
    Path | None, typer.Option("--db", help="SQLite database path.")
]


def _service(ctx: typer.Context, backend: str | None, db: Path | None):
    from cadence.application.factory import get_review_service

    config = resolve_config(
        {
            "backend": backend,
            "database_path": db,
            "verbose": ctx.obj.get("verbose") if ctx.obj else None,
        }
    )
    return get_review_service(config)


def _reviewer(user: str | None, session: str | None) -> Reviewer:
    try:
        return resolve_reviewer(user_id=user, session_id=session)
    except CadenceError as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1) from e


def _run(coro: Awaitable[T]) -> T:
    """
    Run a service call, turning domain errors into exit codes.
    1 = rejected input or not found, 2 = storage failure (retryable).
    """
    try:
        return asyncio.run(coro)
    except PersistenceError as e:
        typer.secho(f"Storage error: {e}", fg="red", err=True)
        raise typer.Exit(2) from e
    except CadenceError as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1) from e


def _record_dict(record: ReviewRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "card_id": record.card_id,
        "user_id": record.user_id,
        "session_id": record.session_id,
        "rating": record.rating,
        "ease_factor": record.ease_factor,
        "interval_days": record.interval_days,
        "next_review_at": record.next_review_at.isoformat(),
        "reviewed_at": record.reviewed_at.isoformat(),
    }


def _card_dict(item: ClassifiedCard) -> dict[str, Any]:
    nra = item.next_review_at
    return {
        "id": item.card.id,
        "deck_id": item.card.deck_id,
        "front": item.card.front,
        "status": item.status.value,
        "next_review_at": nra.isoformat() if nra else None,
    }


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for cadence."""
    ctx.ensure_object(dict)
    # -v means debug; without it CADENCE_VERBOSE or the config file decides
    ctx.obj["verbose"] = 1 + verbose if verbose else None

    config = resolve_config({"verbose": ctx.obj["verbose"]})
    log_file = setup_logging(config.log_dir, config.verbose)
    logger.debug(f"Logging to {log_file}")


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def review(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to review.")],
    rating: Annotated[
        int, typer.Argument(help="1=Again, 2=Hard, 3=Good, 4=Easy, 5=Perfect.")
    ],
    user: UserOption = None,
    session: SessionOption = None,
    backend: BackendOption = None,
    db: DatabaseOption = None,
):
    """[bold green]Review[/bold green] a card and schedule its next review."""
    reviewer = _reviewer(user, session)
    service = _service(ctx, backend, db)

    submitted = _run(service.submit_review(card_id, rating, reviewer))
    record = submitted.record

    typer.echo(f"Ease factor: {record.ease_factor:.2f}")
    typer.echo(f"Next review in {submitted.next_review_in} ({record.next_review_at.isoformat()})")


@app.command()
def due(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Limit to one deck id.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
    user: UserOption = None,
    session: SessionOption = None,
    backend: BackendOption = None,
    db: DatabaseOption = None,
):
    """List new, due and upcoming cards."""
    reviewer = _reviewer(user, session)
    service = _service(ctx, backend, db)

    due_set = _run(service.list_due_cards(reviewer, deck_id=deck))

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "cards": due_set.total,
                    "new_cards": [_card_dict(c) for c in due_set.new],
                    "due_cards": [_card_dict(c) for c in due_set.due],
                    "upcoming_cards": [_card_dict(c) for c in due_set.upcoming],
                    "stats": due_set.stats,
                },
                indent=2,
            )
        )
        return

    stats = due_set.stats
    typer.echo(
        f"Total: {stats['total']}  New: {stats['new']}"
        f"  Due: {stats['due']}  Upcoming: {stats['upcoming']}"
    )
    for item in due_set.due:
        typer.secho(f"  [due] {item.card.id}  {item.card.front}", fg="yellow")
    for item in due_set.new:
        typer.echo(f"  [new] {item.card.id}  {item.card.front}")


@app.command()
def history(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card whose reviews to show.")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
    user: UserOption = None,
    session: SessionOption = None,
    backend: BackendOption = None,
    db: DatabaseOption = None,
):
    """Show your reviews of a card, newest first."""
    reviewer = _reviewer(user, session)
    service = _service(ctx, backend, db)

    records = _run(service.review_history(card_id, reviewer))

    if json_output:
        typer.echo(json.dumps({"reviews": [_record_dict(r) for r in records]}, indent=2))
        return

    if not records:
        typer.secho("No reviews yet.", fg="yellow")
        return
    for r in records:
        typer.echo(
            f"{r.reviewed_at.isoformat()}  rating={r.rating}"
            f"  ease={r.ease_factor:.2f}  interval={r.interval_days}d"
        )


@app.command()
def serve(
    port: Annotated[int | None, typer.Option(help="Port to bind the server to.")] = None,
    host: Annotated[str | None, typer.Option(help="Host to bind the server to.")] = None,
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the HTTP server."""
    import uvicorn

    config = resolve_config()
    uvicorn.run(
        "cadence.server:app",
        host=host or config.server_host,
        port=port or config.server_port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# Deck / card subgroups
# ---------------------------------------------------------------------------


@deck_app.command("create")
def deck_create(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Deck name.")],
    description: Annotated[str | None, typer.Option(help="Optional description.")] = None,
    user: UserOption = None,
    session: SessionOption = None,
    backend: BackendOption = None,
    db: DatabaseOption = None,
):
    """Create a deck owned by the given user or session."""
    from cadence.application.factory import get_store

    reviewer = _reviewer(user, session)
    config = resolve_config({"backend": backend, "database_path": db})
    store = get_store(config)

    deck = _run(store.create_deck(name, reviewer, description=description))
    typer.echo(deck.id)


@card_app.command("add")
def card_add(
    deck_id: Annotated[str, typer.Argument(help="Deck to add the card to.")],
    front: Annotated[str, typer.Argument(help="Prompt side.")],
    back: Annotated[str, typer.Argument(help="Answer side.")],
    hint: Annotated[str | None, typer.Option(help="Optional hint.")] = None,
    backend: BackendOption = None,
    db: DatabaseOption = None,
):
    """Add a card to a deck."""
    from cadence.application.factory import get_store

    config = resolve_config({"backend": backend, "database_path": db})
    store = get_store(config)

    card = _run(store.add_card(deck_id, front, back, hint=hint))
    typer.echo(card.id)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
