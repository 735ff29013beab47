"""vocabloop CLI: deck inspection, session planning and interactive study."""

import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Annotated

import typer

from vocabloop.application.config import AppConfig, config_file_path, resolve_config
from vocabloop.application.pools import calculate_mix
from vocabloop.application.review_service import ReviewService, SessionSummary
from vocabloop.application.scheduler import format_interval, get_interval_previews
from vocabloop.application.session import (
    create_session_state,
    select_next_card,
    smart_pools,
)
from vocabloop.application.tag_analyzer import (
    format_time_to_mastery,
    get_all_tag_stats,
    identify_strong_tags,
    identify_weak_tags,
)
from vocabloop.domain.clock import now_ms
from vocabloop.domain.exceptions import InvalidGrade, VocabloopError
from vocabloop.domain.models import Category, Grade, SessionMode
from vocabloop.infrastructure.yaml_store import YamlDeckRepository

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="vocabloop: adaptive spaced-repetition sessions for vocabulary decks.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage vocabloop configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

DeckArgument = Annotated[
    Path | None,
    typer.Argument(help="Path to the YAML deck file. Defaults to 'deck_path' in config."),
]


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
    """Global settings for vocabloop."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _set_level(verbose)


def _set_level(verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.getLogger().setLevel(level)


def _configure_logging(config: AppConfig) -> None:
    """Apply the configured verbosity and mirror vocabloop logs to log_dir."""
    _set_level(config.verbose)

    package_logger = logging.getLogger("vocabloop")
    for handler in list(package_logger.handlers):
        if isinstance(handler, logging.FileHandler):
            package_logger.removeHandler(handler)
            handler.close()

    config.log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(config.log_dir / "vocabloop.log", encoding="utf-8")
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s:%(name)s:%(message)s")
    )
    package_logger.addHandler(file_handler)


def _load_config(ctx: typer.Context, deck: Path | None) -> AppConfig:
    # a -v count of 0 means "not given", so the configured verbosity applies
    verbose = (ctx.obj or {}).get("verbose") or None
    config = resolve_config({"deck_path": deck, "verbose": verbose})
    if config.deck_path is None:
        typer.secho(
            "No deck given. Pass a deck path or set VOCABLOOP_DECK_PATH.",
            fg="red",
            err=True,
        )
        raise typer.Exit(2)
    _configure_logging(config)
    return config


def _fail(error: VocabloopError) -> None:
    typer.secho(f"Error: {error}", fg="red", err=True)
    raise typer.Exit(1)


def _print_summary(summary: SessionSummary) -> None:
    stats = summary.stats
    typer.secho("\nSession summary", bold=True)
    typer.echo(f"Reviewed: {stats.total_reviewed}")
    typer.echo(f"Success rate: {stats.success_rate}%")
    typer.echo(f"Average time: {stats.avg_time_ms / 1000:.1f}s")
    if stats.recovery_cards_used:
        typer.echo(f"Confidence boosters: {stats.recovery_cards_used}")
    for tag in summary.tag_performance:
        typer.echo(f"  {tag.tag}: {tag.success_rate}% over {tag.reviewed}")
    for insight in summary.insights:
        typer.secho(f"* {insight}", fg="cyan")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def preview(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Id of the card to forecast.")],
    deck: DeckArgument = None,
):
    """Show the interval each grade would give a card."""
    config = _load_config(ctx, deck)
    repo = YamlDeckRepository(config.deck_path)

    try:
        card = asyncio.run(repo.get_card(card_id))
    except VocabloopError as e:
        _fail(e)

    typer.echo(f"{card.front} -> {card.back}")
    typer.echo(f"Current interval: {format_interval(card.interval_days)} (ease {card.ease:.2f})")
    for grade, label in get_interval_previews(card).items():
        typer.echo(f"  {grade.value:<6} {label}")


@app.command()
def tags(
    ctx: typer.Context,
    deck: DeckArgument = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List weak and strong tags with their review statistics."""
    config = _load_config(ctx, deck)
    repo = YamlDeckRepository(config.deck_path)

    async def load():
        return await repo.load_cards(), await repo.load_reviews()

    try:
        cards, reviews = asyncio.run(load())
    except VocabloopError as e:
        _fail(e)

    thresholds = config.tag_thresholds()
    weak = identify_weak_tags(cards, reviews, thresholds)
    strong = identify_strong_tags(cards, reviews, thresholds)
    all_stats = get_all_tag_stats(cards, reviews, now_ms())

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "weak": weak,
                    "strong": strong,
                    "tags": [
                        {
                            "tag": s.tag,
                            "cards": s.card_count,
                            "reviews": s.review_count,
                            "success_rate": s.success_rate,
                            "mastered": s.mastered_count,
                            "time_to_mastery_days": s.avg_time_to_mastery,
                        }
                        for s in all_stats
                    ],
                },
                indent=2,
            )
        )
        return

    for s in all_stats:
        if s.tag in weak:
            color = "red"
        elif s.tag in strong:
            color = "green"
        else:
            color = None
        typer.secho(
            f"{s.tag}: {s.card_count} cards, {s.review_count} reviews, "
            f"{s.success_rate}% success, {s.mastered_count} mastered "
            f"(time to mastery {format_time_to_mastery(s.avg_time_to_mastery)})",
            fg=color,
        )
    typer.echo(f"Weak: {', '.join(weak) or '-'}")
    typer.echo(f"Strong: {', '.join(strong) or '-'}")


@app.command()
def plan(
    ctx: typer.Context,
    deck: DeckArgument = None,
    target: Annotated[int | None, typer.Option(help="Cards in the session.")] = None,
):
    """Show candidate pool sizes and the planned smart-session mix."""
    config = _load_config(ctx, deck)
    repo = YamlDeckRepository(config.deck_path)

    async def load():
        return await repo.load_cards(), await repo.load_reviews()

    try:
        cards, reviews = asyncio.run(load())
        session_config = config.session_config(mode="smart", target_cards=target)
    except VocabloopError as e:
        _fail(e)

    now = now_ms()
    state = create_session_state(session_config, cards, reviews, config.tag_thresholds(), now)
    pools = smart_pools(state, now)
    mix = calculate_mix(
        pools[Category.DUE],
        pools[Category.WEAK_TAG],
        pools[Category.NEW],
        session_config.target_cards,
        session_config.weights,
    )

    typer.echo(f"Target: {session_config.target_cards}")
    typer.echo(
        f"Available: due={len(pools[Category.DUE])} "
        f"weak={len(pools[Category.WEAK_TAG])} new={len(pools[Category.NEW])}"
    )
    typer.echo(f"Planned:   due={mix.due} weak={mix.weak_tag} new={mix.new}")
    if state.weak_tags:
        typer.echo(f"Weak tags: {', '.join(state.weak_tags)}")
    if mix.total < session_config.target_cards:
        typer.secho(f"Only {mix.total} cards available.", fg="yellow")


@app.command()
def study(
    ctx: typer.Context,
    deck: DeckArgument = None,
    mode: Annotated[
        SessionMode | None, typer.Option(help="Session mode.", case_sensitive=False)
    ] = None,
    target: Annotated[int | None, typer.Option(help="Cards in the session.")] = None,
    tag: Annotated[str | None, typer.Option(help="Tag for tag-focus mode.")] = None,
    recovery: Annotated[
        bool | None,
        typer.Option("--recovery/--no-recovery", help="Insert easy cards after failure streaks."),
    ] = None,
):
    """Run an interactive study session and save every review."""
    config = _load_config(ctx, deck)
    repo = YamlDeckRepository(config.deck_path)
    service = ReviewService(repo, thresholds=config.tag_thresholds())

    try:
        session_config = config.session_config(
            mode=mode.value if mode else (SessionMode.TAG_FOCUS.value if tag else None),
            target_cards=target,
            tag_focus=tag,
            enable_confidence_recovery=recovery,
        )
    except VocabloopError as e:
        _fail(e)

    async def run() -> SessionSummary:
        state = await service.start_session(session_config)
        while (selected := select_next_card(state, service.now())) is not None:
            card = selected.card
            if selected.is_recovery:
                typer.secho("(confidence booster)", fg="green")
            position = f"[{state.reviewed_count + 1}/{session_config.target_cards}]"
            typer.secho(f"\n{position} {card.front}", bold=True)

            started = time.monotonic()
            typer.prompt("Press Enter to reveal", default="", show_default=False)
            elapsed_ms = int((time.monotonic() - started) * 1000)

            typer.echo(card.back)
            previews = get_interval_previews(card, service.now())
            typer.echo(
                "  ".join(f"{i}={g.value} ({previews[g]})" for i, g in enumerate(previews, 1))
            )
            grade = _prompt_grade()
            state, updated, _ = await service.record_review(state, selected, grade, elapsed_ms)
            typer.echo(f"Next review: {format_interval(updated.interval_days)}")

        return service.summarize(state)

    try:
        summary = asyncio.run(run())
    except VocabloopError as e:
        _fail(e)

    _print_summary(summary)


def _prompt_grade() -> Grade:
    while True:
        answer = typer.prompt("Grade (1-4 or again/hard/good/easy)")
        try:
            return Grade.parse(answer)
        except InvalidGrade as e:
            typer.secho(str(e), fg="yellow")


@app.command()
def serve(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8777,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Start the scheduling HTTP server."""
    import uvicorn

    uvicorn.run("vocabloop.server:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Config commands
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Print the resolved configuration as JSON."""
    config = resolve_config()
    typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))


@config_app.command("path")
def config_path():
    """Print the config file location."""
    typer.echo(str(config_file_path()))


def main():
    app()


if __name__ == "__main__":
    main()
