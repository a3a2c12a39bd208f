"""flashmaster CLI: root callback, deck/card/review/stats and transfer commands."""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, TypeVar

import typer
from pydantic import ValidationError

from flashmaster.application import transfer
from flashmaster.application.cards import edit_card
from flashmaster.application.config import AppConfig, resolve_config
from flashmaster.application.decks import resolve_deck, sorted_decks
from flashmaster.application.factory import get_repository
from flashmaster.application.filters import filter_by_due, filter_by_tag, filter_by_text
from flashmaster.application.queue_builder import QueueOptions
from flashmaster.application.review_service import ReviewService
from flashmaster.application.stats import per_deck_totals
from flashmaster.consts import VERSION
from flashmaster.domain.constants import DEFAULT_REVIEW_MAX
from flashmaster.domain.errors import FlashmasterError, InvalidError
from flashmaster.domain.models import Card, DueStatus, Grade, parse_id
from flashmaster.domain.ports import Repository

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="flashmaster: spaced-repetition flashcards in your terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Subgroups
# ---------------------------------------------------------------------------

deck_app = typer.Typer(help="Create, list and delete decks.", no_args_is_help=True)
card_app = typer.Typer(help="Add, list, edit and delete cards.", no_args_is_help=True)
export_app = typer.Typer(help="Export decks and cards.", no_args_is_help=True)
import_app = typer.Typer(help="Import decks and cards.", no_args_is_help=True)
config_app = typer.Typer(help="Inspect flashmaster configuration.", no_args_is_help=True)

app.add_typer(deck_app, name="deck")
app.add_typer(card_app, name="card")
app.add_typer(export_app, name="export")
app.add_typer(import_app, name="import")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Global callback and helpers
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    backend: Annotated[
        str | None, typer.Option(help="Storage backend: json or memory.")
    ] = None,
    store_path: Annotated[
        Path | None, typer.Option(help="Path of the JSON store file.")
    ] = None,
    max_backups: Annotated[
        int | None, typer.Option(help="Number of snapshot backups to keep.")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for flashmaster."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {
        "backend": backend,
        "store_path": store_path,
        "max_backups": max_backups,
    }
    ctx.obj["verbose_bonus"] = verbose


def _log_level(verbosity: int) -> int:
    """0 = errors only, 1 = warnings (default), 2 = info, 3+ = debug."""
    if verbosity <= 0:
        return logging.ERROR
    if verbosity == 1:
        return logging.WARNING
    if verbosity == 2:
        return logging.INFO
    return logging.DEBUG


def _config(ctx: typer.Context) -> AppConfig:
    obj = ctx.obj or {}
    try:
        config = resolve_config(obj.get("overrides", {}))
    except ValidationError as e:
        typer.secho(f"error: invalid configuration: {e}", err=True, fg="red")
        raise typer.Exit(2) from None

    # -v flags add to the configured base verbosity
    logging.getLogger().setLevel(_log_level(config.verbose + obj.get("verbose_bonus", 0)))
    return config


def _run(ctx: typer.Context, work: Callable[[Repository], Awaitable[T]]) -> T:
    """Open the configured repository, run `work`, and map errors to exit codes."""
    config = _config(ctx)

    async def main() -> T:
        repo = await get_repository(config)
        try:
            return await work(repo)
        finally:
            await repo.close()

    try:
        return asyncio.run(main())
    except FlashmasterError as e:
        typer.secho(f"error: {e}", err=True, fg="red")
        raise typer.Exit(e.exit_code) from None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _format_card(card: Card) -> str:
    tags = ";".join(card.tags) if card.tags else "-"
    return (
        f"{card.id}\t{card.front}\t{card.back}\tdeck={card.deck_id}"
        f"\ttags={tags}\tsuspended={str(card.suspended).lower()}"
    )


@app.command()
def version():
    """Show the flashmaster version."""
    typer.echo(VERSION)


# ---------------------------------------------------------------------------
# Deck subgroup
# ---------------------------------------------------------------------------


@deck_app.command("add")
def deck_add(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Deck name (unique, case-insensitive).")],
):
    """Create a deck and print its id."""
    deck = _run(ctx, lambda repo: repo.create_deck(name))
    typer.echo(str(deck.id))


@deck_app.command("list")
def deck_list(ctx: typer.Context):
    """List decks, oldest first."""
    decks = _run(ctx, lambda repo: repo.list_decks())
    for d in sorted_decks(decks):
        typer.echo(f"{d.id}\t{d.name}")


@deck_app.command("rm")
def deck_rm(
    ctx: typer.Context,
    deck: Annotated[str, typer.Argument(help="Deck id or name.")],
):
    """Delete a deck with all of its cards and reviews."""

    async def work(repo: Repository) -> None:
        target = await resolve_deck(repo, deck)
        await repo.delete_deck(target.id)

    _run(ctx, work)
    typer.echo("ok")


# ---------------------------------------------------------------------------
# Card subgroup
# ---------------------------------------------------------------------------


@card_app.command("add")
def card_add(
    ctx: typer.Context,
    deck: Annotated[str, typer.Option(help="Deck id or name.")],
    front: Annotated[str, typer.Option(help="Question side.")],
    back: Annotated[str, typer.Option(help="Answer side.")],
    hint: Annotated[str | None, typer.Option(help="Optional hint.")] = None,
    tags: Annotated[
        list[str] | None, typer.Option("--tag", help="Tag (repeatable).")
    ] = None,
):
    """Add a card and print its id."""

    async def work(repo: Repository) -> Card:
        target = await resolve_deck(repo, deck)
        return await repo.add_card(target.id, front, back, hint, tags or [])

    card = _run(ctx, work)
    typer.echo(str(card.id))


@card_app.command("list")
def card_list(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Only cards of this deck.")] = None,
):
    """List cards, oldest first."""

    async def work(repo: Repository) -> list[Card]:
        deck_id = (await resolve_deck(repo, deck)).id if deck else None
        return await repo.list_cards(deck_id)

    for card in sorted(_run(ctx, work), key=lambda c: c.created_at):
        typer.echo(_format_card(card))


@card_app.command("search")
def card_search(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Text to look for.")] = "",
    deck: Annotated[str | None, typer.Option(help="Only cards of this deck.")] = None,
    tag: Annotated[str | None, typer.Option(help="Only cards with this tag.")] = None,
    due: Annotated[
        DueStatus | None, typer.Option(help="Only cards with this due status.")
    ] = None,
):
    """Search cards by text, tag and due status."""

    async def work(repo: Repository) -> list[Card]:
        deck_id = (await resolve_deck(repo, deck)).id if deck else None
        return await repo.list_cards(deck_id)

    cards = filter_by_text(_run(ctx, work), query)
    if tag:
        cards = filter_by_tag(cards, tag)
    if due:
        cards = filter_by_due(cards, _now(), due)

    for card in sorted(cards, key=lambda c: c.created_at):
        typer.echo(_format_card(card))


@card_app.command("rm")
def card_rm(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id.")],
):
    """Delete a card and its reviews."""

    async def work(repo: Repository) -> None:
        await repo.delete_card(parse_id(card_id, "card id"))

    _run(ctx, work)
    typer.echo("ok")


@card_app.command("edit")
def card_edit(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id.")],
    front: Annotated[str | None, typer.Option(help="New question side.")] = None,
    back: Annotated[str | None, typer.Option(help="New answer side.")] = None,
    hint: Annotated[str | None, typer.Option(help="New hint.")] = None,
    clear_hint: Annotated[bool, typer.Option("--clear-hint", help="Remove the hint.")] = False,
    add_tags: Annotated[
        list[str] | None, typer.Option("--add-tag", help="Tag to add (repeatable).")
    ] = None,
    rm_tags: Annotated[
        list[str] | None, typer.Option("--rm-tag", help="Tag to remove (repeatable).")
    ] = None,
    suspend: Annotated[bool, typer.Option("--suspend", help="Suspend the card.")] = False,
    unsuspend: Annotated[bool, typer.Option("--unsuspend", help="Unsuspend the card.")] = False,
):
    """Edit a card's content, tags or suspension."""
    if suspend and unsuspend:
        typer.secho("Cannot use --suspend and --unsuspend together.", err=True, fg="red")
        raise typer.Exit(2)

    async def work(repo: Repository) -> None:
        card = await repo.get_card(parse_id(card_id, "card id"))
        edited = edit_card(
            card,
            front=front,
            back=back,
            hint=hint,
            clear_hint=clear_hint,
            add_tags=add_tags or [],
            remove_tags=rm_tags or [],
            suspend=True if suspend else (False if unsuspend else None),
        )
        await repo.update_card(edited)

    _run(ctx, work)
    typer.echo("ok")


# ---------------------------------------------------------------------------
# Review and stats
# ---------------------------------------------------------------------------


def _ask_grade() -> Grade | str:
    """Prompt until the learner enters a grade, 's' (skip) or 'q' (quit)."""
    while True:
        answer = typer.prompt("grade", default="", show_default=False).strip().lower()
        if answer in ("s", "skip"):
            return "skip"
        if answer in ("q", "quit"):
            return "quit"
        try:
            return Grade.parse(answer)
        except InvalidError:
            typer.echo("enter 1/2/3, s, or q")


@app.command()
def review(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Only review this deck.")] = None,
    include_new: Annotated[
        bool, typer.Option("--include-new", help="Include new (unreviewed) cards.")
    ] = False,
    include_lapsed: Annotated[
        bool, typer.Option("--include-lapsed", help="Include cards overdue by a day or more.")
    ] = False,
    max_cards: Annotated[
        int, typer.Option("--max", help="Maximum cards in this session.")
    ] = DEFAULT_REVIEW_MAX,
):
    """[bold green]Review[/bold green] due cards interactively."""

    async def work(repo: Repository) -> int:
        service = ReviewService(repo)
        deck_id = (await resolve_deck(repo, deck)).id if deck else None
        options = QueueOptions(
            include_new=include_new, include_lapsed=include_lapsed, limit=max_cards
        )
        queue = await service.due_queue(deck_id, _now(), options)
        if not queue:
            typer.echo("no cards due")
            return 0

        graded = 0
        for position, card in enumerate(queue, start=1):
            typer.echo(f"\n[{position}/{len(queue)}] {card.id}")
            typer.echo(f"Q: {card.front}")
            typer.prompt("[enter=show]", default="", show_default=False)
            typer.echo(f"A: {card.back}")
            if card.hint:
                typer.echo(f"hint: {card.hint}")
            typer.echo("[1=Hard, 2=Medium, 3=Easy, s=skip, q=quit]")

            choice = _ask_grade()
            if choice == "quit":
                break
            if choice == "skip":
                continue
            outcome = await service.grade(card.id, choice, _now())
            graded += 1
            typer.echo(f"-> next due in {outcome.updated_card.interval_days} day(s)")

        typer.echo(f"\nreviewed {graded}")
        return graded

    _run(ctx, work)


@app.command()
def stats(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show review totals, accuracy, streak and per-deck counts."""

    async def work(repo: Repository):
        summary, streak = await ReviewService(repo).summary(_now().date())
        reviews = await repo.list_reviews()
        cards = await repo.list_cards(None)
        decks = {d.id: d.name for d in await repo.list_decks()}
        by_deck = per_deck_totals(reviews, {c.id: c.deck_id for c in cards})
        return summary, streak, {decks.get(k, str(k)): v for k, v in by_deck.items()}

    summary, streak, by_deck = _run(ctx, work)
    totals = summary.totals

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "total": totals.total,
                    "hard": totals.hard,
                    "medium": totals.medium,
                    "easy": totals.easy,
                    "accuracy": totals.accuracy,
                    "streak": streak,
                    "per_deck": {name: t.total for name, t in sorted(by_deck.items())},
                },
                indent=2,
            )
        )
        return

    typer.echo(
        f"Reviews: {totals.total}  Hard: {totals.hard}  Medium: {totals.medium}"
        f"  Easy: {totals.easy}"
    )
    typer.echo(f"Accuracy: {totals.accuracy:.0%}  Streak: {streak} day(s)")
    for name, t in sorted(by_deck.items()):
        typer.echo(f"  {name}: {t.total} review(s), {t.accuracy:.0%} accuracy")


# ---------------------------------------------------------------------------
# Export / import subgroups
# ---------------------------------------------------------------------------


@export_app.command("json")
def export_json_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Destination file.")],
):
    """Export all decks and cards as a JSON bundle."""
    _run(ctx, lambda repo: transfer.export_json(repo, path))
    typer.echo(f"wrote {path}")


@export_app.command("csv")
def export_csv_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Destination file.")],
    deck: Annotated[str | None, typer.Option(help="Only cards of this deck.")] = None,
):
    """Export cards as CSV."""

    async def work(repo: Repository) -> int:
        target = await resolve_deck(repo, deck) if deck else None
        return await transfer.export_csv(repo, path, target)

    _run(ctx, work)
    typer.echo(f"wrote {path}")


@import_app.command("json")
def import_json_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Bundle produced by 'export json'.")],
):
    """Import a JSON bundle."""
    added = _run(ctx, lambda repo: transfer.import_json(repo, path))
    typer.echo(f"imported {added}")


@import_app.command("csv")
def import_csv_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="CSV with deck,front,back,hint,tags,suspended.")],
    deck: Annotated[
        str | None, typer.Option(help="Put every card into this deck instead.")
    ] = None,
):
    """Import cards from CSV."""

    async def work(repo: Repository) -> int:
        target = await resolve_deck(repo, deck) if deck else None
        return await transfer.import_csv(repo, path, target)

    added = _run(ctx, work)
    typer.echo(f"imported {added}")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
