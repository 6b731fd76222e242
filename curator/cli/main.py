"""CLI commands for the news curator."""

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import NoReturn

import click
import structlog

from curator import __version__
from curator.affinity.learner import AffinityLearner
from curator.affinity.recommendations import recommend_topics
from curator.config.errors import ConfigurationError
from curator.config.loader import load_config
from curator.config.schemas import CuratorConfig
from curator.observability.logging import configure_logging
from curator.pipeline.factory import create_collaborators, create_pipeline
from curator.scheduler.scheduler import InterestScheduler
from curator.settings.app import AppSettings, get_settings
from curator.store.errors import StoreError
from curator.store.store import DiscoveryStore


logger = structlog.get_logger()


def _now() -> datetime:
    return datetime.now(UTC)


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _load(ctx: click.Context) -> tuple[AppSettings, CuratorConfig]:
    settings: AppSettings = ctx.obj["settings"]
    try:
        config = load_config(settings.config_path)
    except ConfigurationError as e:
        _fail(str(e))
    return settings, config


@contextmanager
def _open_store(settings: AppSettings) -> Iterator[DiscoveryStore]:
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with DiscoveryStore(settings.db_path) as store:
            yield store
    except StoreError as e:
        _fail(str(e))


@click.group()
@click.version_option(version=__version__)
@click.option("--db", "db_path", type=click.Path(path_type=Path), default=None,
              help="SQLite database path (overrides CURATOR_DB_PATH).")
@click.option("--config", "config_path", type=click.Path(path_type=Path),
              default=None, help="YAML configuration file.")
@click.option("--json-logs/--console-logs", default=False, help="Log format.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    db_path: Path | None,
    config_path: Path | None,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Personalized news curation."""
    configure_logging(
        level=logging.DEBUG if verbose else logging.INFO, json_format=json_logs
    )
    settings = get_settings()
    updates: dict[str, Path] = {}
    if db_path is not None:
        updates["db_path"] = db_path
    if config_path is not None:
        updates["config_path"] = config_path
    ctx.obj = {"settings": settings.model_copy(update=updates)}


@cli.command()
@click.option(
    "--force", is_flag=True, help="Search every interest, ignoring cool-downs."
)
@click.pass_context
def run(ctx: click.Context, force: bool) -> None:
    """Run the curation pipeline once."""
    settings, config = _load(ctx)
    try:
        collaborators = create_collaborators(settings, config)
    except ConfigurationError as e:
        _fail(str(e))
    with _open_store(settings) as store:
        result = create_pipeline(store, collaborators, config).run(force=force)

    click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    if not result.success:
        sys.exit(1)


@cli.command("reset-cooldowns")
@click.pass_context
def reset_cooldowns(ctx: click.Context) -> None:
    """Make every interest due on the next run."""
    settings, config = _load(ctx)
    with _open_store(settings) as store:
        count = InterestScheduler(store, config.scheduler).reset_cooldowns()
    click.echo(f"Reset cool-downs for {count} interests")


@cli.group()
def interests() -> None:
    """Manage interests."""


@interests.command("add")
@click.argument("name")
@click.option("--category", default=None, help="Category to file the interest under.")
@click.pass_context
def interests_add(ctx: click.Context, name: str, category: str | None) -> None:
    """Add an interest."""
    settings, _ = _load(ctx)
    with _open_store(settings) as store:
        now = _now()
        try:
            interest = store.add_interest(name, now)
            if category:
                store.assign_category(interest.name, category, now)
        except ValueError as e:
            _fail(str(e))
    click.echo(f"Added interest '{interest.name}' (id {interest.id})")


@interests.command("remove")
@click.argument("name")
@click.pass_context
def interests_remove(ctx: click.Context, name: str) -> None:
    """Remove an interest."""
    settings, _ = _load(ctx)
    with _open_store(settings) as store:
        store.remove_interest(name)
    click.echo(f"Removed interest '{name}'")


@interests.command("list")
@click.pass_context
def interests_list(ctx: click.Context) -> None:
    """List interests with their discovery statistics."""
    settings, _ = _load(ctx)
    with _open_store(settings) as store:
        rows = store.list_interests()
        categories = store.list_categories()

    if not rows:
        click.echo("No interests configured")
        return
    for interest in rows:
        last = interest.last_search_attempt_at
        click.echo(
            f"{interest.id:>4}  {interest.name:<30} "
            f"discoveries={interest.discovery_count} "
            f"avg_interval={interest.avg_discovery_interval_seconds:.0f}s "
            f"last_search={last.isoformat() if last else 'never'}"
        )
    for category in categories:
        click.echo(f"[{category.name}] {', '.join(category.interest_names)}")


@cli.command()
@click.argument("article_id", type=int)
@click.argument("interaction_type", type=click.Choice(["click", "like", "dislike"]))
@click.pass_context
def feedback(ctx: click.Context, article_id: int, interaction_type: str) -> None:
    """Record a click, like or dislike on an article."""
    settings, _ = _load(ctx)
    with _open_store(settings) as store:
        learner = AffinityLearner(store, store, store)
        updated = learner.record_interaction(article_id, interaction_type, _now())
    click.echo(f"Recorded {interaction_type}; {updated} topic affinities updated")


@cli.command()
@click.pass_context
def affinities(ctx: click.Context) -> None:
    """Show learned topic affinities."""
    settings, _ = _load(ctx)
    with _open_store(settings) as store:
        rows = AffinityLearner(store, store, store).list_affinities()
    if not rows:
        click.echo("No affinities learned yet")
        return
    for row in rows:
        click.echo(
            f"{row.affinity_score:+.3f}  {row.topic_name} "
            f"({row.interaction_count} interactions)"
        )


@cli.command()
@click.pass_context
def recommendations(ctx: click.Context) -> None:
    """Suggest topics to follow as interests."""
    settings, _ = _load(ctx)
    with _open_store(settings) as store:
        rows = recommend_topics(store)
    if not rows:
        click.echo("No recommendations yet")
        return
    for row in rows:
        click.echo(f"{row.topic_name} (affinity {row.affinity_score:.2f})")


@cli.command()
@click.option("--limit", default=10, show_default=True, help="Briefings to show.")
@click.option("--show", "briefing_id", type=int, default=None,
              help="Print one briefing as JSON.")
@click.pass_context
def briefings(ctx: click.Context, limit: int, briefing_id: int | None) -> None:
    """List saved briefings."""
    settings, _ = _load(ctx)
    with _open_store(settings) as store:
        if briefing_id is not None:
            briefing = store.get_briefing(briefing_id)
            if briefing is None:
                _fail(f"Briefing {briefing_id} not found")
            click.echo(json.dumps(briefing.model_dump(mode="json"), indent=2))
            return
        rows = store.list_briefings(limit=limit)

    for row in rows:
        status = "summarized" if row.summary else "pending"
        click.echo(
            f"{row.id:>4}  {row.created_at:%Y-%m-%d %H:%M}  {row.title} "
            f"({len(row.articles)} articles, {status})"
        )


def main() -> None:
    """Entry point for the curator CLI."""
    cli()


if __name__ == "__main__":
    main()
