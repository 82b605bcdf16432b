"""CLI commands for feed ranking."""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
import structlog

from feedrank.fetch.client import MastodonClient
from feedrank.fetch.models import FetchFailedError
from feedrank.observability.logging import configure_logging
from feedrank.profile.loader import ProfileValidationError, load_weight_profile
from feedrank.ranker.engine import ScoringEngine
from feedrank.ranker.errors import FeedRankError
from feedrank.scorers.feature import (
    FavsFeatureScorer,
    InteractsFeatureScorer,
    ReblogsFeatureScorer,
)
from feedrank.scorers.feed import DiversityFeedScorer, ReblogsFeedScorer
from feedrank.settings.app import AppSettings, get_settings
from feedrank.store.errors import IdentityNotSetError
from feedrank.store.scoped import IdentityStore
from feedrank.store.store import KeyValueStore
from feedrank.store.weights import UserWeightStore, WeightsMap
from feedrank.timeline.models import ScoredStatusView


logger = structlog.get_logger()

REFERENCE_SCORER_NAMES: tuple[str, ...] = (
    FavsFeatureScorer.verbose_name,
    ReblogsFeatureScorer.verbose_name,
    InteractsFeatureScorer.verbose_name,
    ReblogsFeedScorer.verbose_name,
    DiversityFeedScorer.verbose_name,
)


def _load_settings(state_path: Path | None) -> AppSettings:
    settings = get_settings()
    if state_path is not None:
        settings = settings.model_copy(update={"db_path": state_path})
    return settings


def _setup_logging(settings: AppSettings, verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    configure_logging(level=level, json_format=settings.log_json)


def parse_weight_assignments(assignments: tuple[str, ...]) -> WeightsMap:
    """Parse ``NAME=VALUE`` arguments into a weights map.

    Args:
        assignments: Raw command line arguments.

    Returns:
        Scorer name to weight.

    Raises:
        click.BadParameter: If an argument is not ``NAME=NUMBER``.
    """
    weights: WeightsMap = {}
    for assignment in assignments:
        name, sep, raw_value = assignment.partition("=")
        if not sep or not name.strip():
            raise click.BadParameter(f"expected NAME=VALUE, got '{assignment}'")
        try:
            weights[name.strip()] = float(raw_value)
        except ValueError as e:
            raise click.BadParameter(f"weight for '{name}' is not a number") from e
    return weights


async def _rank_feed(settings: AppSettings, limit: int | None) -> list[ScoredStatusView]:
    with KeyValueStore(settings.db_path) as kv:
        async with MastodonClient(settings.instance_url, settings.access_token) as api:
            user = await api.verify_credentials()
            engine = await ScoringEngine.create(api, user, kv, settings=settings)
            feed = await engine.get_feed()

    views = [ScoredStatusView.from_status(status) for status in feed]
    return views[:limit] if limit is not None else views


async def _read_weights(settings: AppSettings, names: tuple[str, ...]) -> WeightsMap:
    with KeyValueStore(settings.db_path) as kv:
        storage = await IdentityStore(kv).scoped()
        return await UserWeightStore(storage).get_weights_multi(names)


async def _write_weights(settings: AppSettings, weights: WeightsMap) -> None:
    with KeyValueStore(settings.db_path) as kv:
        storage = await IdentityStore(kv).scoped()
        await UserWeightStore(storage).set_weights_multi(weights)


@click.group()
@click.version_option(version="0.1.0")
def cli() -> None:
    """Personalized Mastodon feed ranking CLI."""


@cli.command()
@click.option(
    "--state",
    "state_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to SQLite state database (default: FEEDRANK_DB_PATH).",
)
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=None,
    help="Only print the top N statuses.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
def feed(state_path: Path | None, limit: int | None, verbose: bool) -> None:
    """Run a ranking pass and print the feed as JSON lines."""
    settings = _load_settings(state_path)
    _setup_logging(settings, verbose)
    log = logger.bind(component="cli", command="feed")

    try:
        views = asyncio.run(_rank_feed(settings, limit))
    except FetchFailedError as e:
        log.warning("feed_fetch_failed", error=str(e))
        click.echo(f"Error: could not reach {settings.instance_url}: {e}", err=True)
        sys.exit(1)
    except FeedRankError as e:
        log.warning("feed_ranking_failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for view in views:
        click.echo(view.model_dump_json())


@cli.group()
def weights() -> None:
    """Inspect and tune scorer weights."""


@weights.command("show")
@click.option(
    "--state",
    "state_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to SQLite state database (default: FEEDRANK_DB_PATH).",
)
@click.option(
    "--name",
    "names",
    multiple=True,
    help="Scorer name to show (repeatable, default: reference scorers).",
)
def weights_show(state_path: Path | None, names: tuple[str, ...]) -> None:
    """Print the stored weights as JSON."""
    settings = _load_settings(state_path)
    _setup_logging(settings, verbose=False)

    try:
        stored = asyncio.run(_read_weights(settings, names or REFERENCE_SCORER_NAMES))
    except IdentityNotSetError:
        click.echo(
            f"Error: no account recorded in {settings.db_path}. Run 'feedrank feed' first.",
            err=True,
        )
        sys.exit(1)

    click.echo(json.dumps(stored, indent=2, sort_keys=True))


@weights.command("set")
@click.argument("assignments", nargs=-1)
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(path_type=Path),
    default=None,
    help="YAML weight profile to apply before NAME=VALUE arguments.",
)
@click.option(
    "--state",
    "state_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to SQLite state database (default: FEEDRANK_DB_PATH).",
)
def weights_set(
    assignments: tuple[str, ...],
    profile_path: Path | None,
    state_path: Path | None,
) -> None:
    """Store weights given as NAME=VALUE and/or a YAML profile.

    Command line assignments override weights from the profile.
    """
    settings = _load_settings(state_path)
    _setup_logging(settings, verbose=False)

    updates: WeightsMap = {}
    if profile_path is not None:
        try:
            updates.update(load_weight_profile(profile_path).weights)
        except ProfileValidationError as e:
            click.echo(f"Weight profile {e.file_path} is invalid:", err=True)
            for error in e.errors:
                click.echo(f"  - {error['loc']}: {error['msg']}", err=True)
            sys.exit(1)
    updates.update(parse_weight_assignments(assignments))

    if not updates:
        raise click.UsageError("Give NAME=VALUE arguments or --profile.")

    try:
        asyncio.run(_write_weights(settings, updates))
    except IdentityNotSetError:
        click.echo(
            f"Error: no account recorded in {settings.db_path}. Run 'feedrank feed' first.",
            err=True,
        )
        sys.exit(1)

    click.echo(json.dumps(updates, indent=2, sort_keys=True))


if __name__ == "__main__":
    cli()
