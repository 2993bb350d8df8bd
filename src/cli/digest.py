"""CLI commands for the track digest system."""

import json
import logging
import sqlite3
import sys
import uuid
import zoneinfo
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, date, datetime
from pathlib import Path
from typing import NoReturn, TextIO

import click
import structlog
from pydantic import ValidationError

from src.config.constants import COMPONENT_CLI
from src.config.effective import EffectiveConfig
from src.config.error_hints import format_validation_error
from src.config.loader import ConfigLoader, ConfigValidationError
from src.matcher import TrackMatcher
from src.observability.logging import bind_run_context, configure_logging
from src.scoring import JudgmentBatch, ScoreStore
from src.selection import DailySelection, DailySelector, SelectionOptions
from src.settings import get_settings
from src.store import (
    RUN_KIND_DAILY,
    RUN_KIND_INGEST,
    Document,
    RunStateMachine,
    StateStore,
    StateStoreError,
)
from src.weekly import WeeklySelector, iso_week, parse_iso_week, weekly_summary
from src.weekly.summary import DEFAULT_TOP_DOCUMENTS


logger = structlog.get_logger()

TRACK_ORDER_RANKED = "ranked"
TRACK_ORDER_DECLARED = "declared"

# Raw sqlite3 errors (e.g. a locked database) are store failures too.
STORE_ERRORS = (StateStoreError, sqlite3.Error)


@dataclass
class CliOptions:
    """Options shared by every command."""

    config_path: Path
    tracks_path: Path
    db_path: Path | None
    json_logs: bool
    verbose: bool


def _setup_logging_and_context(
    options: CliOptions, command: str
) -> tuple[str, structlog.typing.FilteringBoundLogger]:
    """Set up logging and return the run ID with a bound logger.

    Args:
        options: Shared CLI options.
        command: Name of the command being run.

    Returns:
        Tuple of (run_id, bound logger).
    """
    run_id = str(uuid.uuid4())
    log_level = logging.DEBUG if options.verbose else logging.INFO
    configure_logging(level=log_level, json_format=options.json_logs)
    bind_run_context(run_id, command=command)

    log = logger.bind(run_id=run_id, component=COMPONENT_CLI, command=command)
    return run_id, log  # type: ignore[return-value]


def _load_configuration(
    options: CliOptions, run_id: str, log: structlog.typing.FilteringBoundLogger
) -> EffectiveConfig:
    """Load and validate configuration, exit on failure.

    Args:
        options: Shared CLI options.
        run_id: Run identifier.
        log: Logger instance.

    Returns:
        Validated effective configuration.
    """
    loader = ConfigLoader(run_id=run_id)

    try:
        config = loader.load(options.config_path, options.tracks_path)
    except ConfigValidationError as e:
        log.warning("config_load_failed", file_path=e.file_path, errors=len(e.errors))
        click.echo(f"Configuration validation failed: {e.file_path}", err=True)
        for error in e.errors:
            formatted = format_validation_error(
                location=error["loc"],
                message=error["msg"],
                error_type=error.get("type", "unknown"),
                include_hint=True,
            )
            click.echo(f"  - {formatted}", err=True)
        sys.exit(1)

    log.info(
        "config_validated",
        tracks_count=len(config.tracks.tracks),
        enabled_tracks=len(config.enabled_tracks),
        config_checksum=config.compute_checksum(),
    )
    return config


def _db_path(options: CliOptions, config: EffectiveConfig) -> Path:
    """Resolve the database path: --db, then $DIGEST_DB_PATH, then config.yml."""
    if options.db_path is not None:
        return options.db_path
    return get_settings().resolve_db_path(config.app.storage.db_path)


def _today(config: EffectiveConfig) -> date:
    """Get the current calendar date in the configured timezone."""
    return datetime.now(zoneinfo.ZoneInfo(config.app.timezone)).date()


def _fail(
    log: structlog.typing.FilteringBoundLogger, event: str, error: Exception
) -> NoReturn:
    """Report a failure and exit with status 1."""
    log.error(event, error=str(error), error_type=type(error).__name__)
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _emit(payload: str, out_path: Path | None) -> None:
    """Write a JSON payload to a file or stdout."""
    if out_path is None:
        click.echo(payload)
        return
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(payload + "\n", encoding="utf-8")


@contextmanager
def _tracked_run(store: StateStore, run_id: str, kind: str) -> Generator[dict[str, int]]:
    """Record a run around a block of store work.

    The block fills the yielded stats dict. A store or SQLite error ends
    the run as failed and propagates.

    Args:
        store: Connected digest store.
        run_id: Run identifier.
        kind: Run kind.

    Yields:
        Counters stored with the finished run.
    """
    machine = RunStateMachine(run_id, kind)
    store.begin_run(kind, run_id)
    machine.start()
    stats: dict[str, int] = {}
    try:
        yield stats
    except STORE_ERRORS as e:
        machine.finish(success=False)
        store.end_run(run_id, success=False, error_summary=str(e))
        raise
    machine.finish(success=True)
    store.end_run(run_id, success=True, stats=stats)


def _read_documents(
    lines: list[str], log: structlog.typing.FilteringBoundLogger
) -> tuple[list[Document], int]:
    """Parse JSONL document lines, skipping invalid ones.

    Args:
        lines: Raw input lines.
        log: Logger instance.

    Returns:
        Tuple of (documents, invalid line count).
    """
    documents: list[Document] = []
    invalid = 0
    for line_no, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            documents.append(Document.model_validate_json(line))
        except ValidationError as e:
            invalid += 1
            log.warning("invalid_document_line", line=line_no, errors=e.error_count())
    return documents, invalid


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to config.yml (default: $DIGEST_CONFIG_PATH or ./config.yml).",
)
@click.option(
    "--tracks",
    "tracks_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to tracks.yml (default: $DIGEST_TRACKS_PATH or ./tracks.yml).",
)
@click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to the SQLite database (default: storage root from config.yml).",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=None,
    help="Use JSON format for logs (default: true).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    tracks_path: Path | None,
    db_path: Path | None,
    json_logs: bool | None,
    verbose: bool,
) -> None:
    """Track digest: matching, relevance fusion and digest selection."""
    settings = get_settings()
    ctx.obj = CliOptions(
        config_path=config_path or settings.config_path,
        tracks_path=tracks_path or settings.tracks_path,
        db_path=db_path,
        json_logs=settings.json_logs if json_logs is None else json_logs,
        verbose=verbose,
    )


@cli.command()
@click.pass_obj
def validate(options: CliOptions) -> None:
    """Validate configuration files."""
    run_id, log = _setup_logging_and_context(options, "validate")
    config = _load_configuration(options, run_id, log)

    click.echo("Configuration is valid!")
    click.echo(f"  Tracks: {len(config.tracks.tracks)} ({len(config.enabled_tracks)} enabled)")
    click.echo(f"  Max items per digest: {config.max_items_per_digest}")
    click.echo(f"  Checksum: {config.compute_checksum()}")


@cli.command()
@click.argument("input_file", type=click.File("r", encoding="utf-8"))
@click.pass_obj
def ingest(options: CliOptions, input_file: TextIO) -> None:
    """Store documents from a JSONL file and match them against the tracks.

    Each line is a JSON document object. Use '-' to read stdin.
    """
    run_id, log = _setup_logging_and_context(options, "ingest")
    config = _load_configuration(options, run_id, log)
    documents, invalid = _read_documents(input_file.readlines(), log)

    try:
        with (
            StateStore(_db_path(options, config), run_id=run_id) as store,
            _tracked_run(store, run_id, RUN_KIND_INGEST) as stats,
        ):
            matcher = TrackMatcher(list(config.tracks.tracks), run_id=run_id)
            for document in documents:
                store.upsert_document(document)
            matches = matcher.match_documents(documents)
            store.upsert_track_matches(matches)
            stats.update(documents=len(documents), matches=len(matches), invalid=invalid)
    except STORE_ERRORS as e:
        _fail(log, "ingest_failed", e)

    log.info("ingest_complete", **stats)
    click.echo(json.dumps({"run_id": run_id, **stats}, sort_keys=True))


@cli.command("plan-daily")
@click.option(
    "--date",
    "digest_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Digest date (default: today in the configured timezone).",
)
@click.option(
    "--track-order",
    type=click.Choice([TRACK_ORDER_RANKED, TRACK_ORDER_DECLARED]),
    default=TRACK_ORDER_RANKED,
    show_default=True,
    help="Visit tracks by their best candidate, or in tracks.yml order.",
)
@click.option(
    "--track",
    "track_filter",
    default=None,
    help="Only keep tracks whose name contains this text (case-insensitive).",
)
@click.option(
    "--out",
    "out_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Write the plan to this file instead of stdout.",
)
@click.pass_obj
def plan_daily(
    options: CliOptions,
    digest_date: datetime | None,
    track_order: str,
    track_filter: str | None,
    out_path: Path | None,
) -> None:
    """Select today's digest and print it as JSON.

    Selection never writes the delivery ledger; run mark-sent once the
    digest has been delivered. The track filter applies after the caps,
    so it previews part of the full digest.
    """
    run_id, log = _setup_logging_and_context(options, "plan-daily")
    config = _load_configuration(options, run_id, log)
    today = digest_date.date() if digest_date else _today(config)
    order = (
        [t.name for t in config.enabled_tracks]
        if track_order == TRACK_ORDER_DECLARED
        else None
    )

    try:
        with (
            StateStore(_db_path(options, config), run_id=run_id) as store,
            _tracked_run(store, run_id, RUN_KIND_DAILY) as stats,
        ):
            selector = DailySelector(store, run_id=run_id)
            selection = selector.select(
                SelectionOptions.from_config(config), today, track_order=order
            )
            stats.update(
                candidates=selection.candidate_count,
                items=selection.items,
                tracks=selection.tracks_with_items,
            )
    except STORE_ERRORS as e:
        _fail(log, "plan_daily_failed", e)

    if track_filter:
        selection = selection.filter_tracks(track_filter)

    _emit(selection.model_dump_json(indent=2), out_path)


@cli.command("mark-sent")
@click.argument("plan_file", type=click.Path(exists=True, path_type=Path))
@click.pass_obj
def mark_sent(options: CliOptions, plan_file: Path) -> None:
    """Record a delivered daily plan in the delivery ledger.

    Safe to run twice for the same plan.
    """
    run_id, log = _setup_logging_and_context(options, "mark-sent")
    config = _load_configuration(options, run_id, log)

    try:
        selection = DailySelection.model_validate_json(plan_file.read_text(encoding="utf-8"))
    except ValidationError as e:
        _fail(log, "plan_file_invalid", e)

    try:
        with StateStore(_db_path(options, config), run_id=run_id) as store:
            recorded = store.mark_digest_sent(
                selection.digest_date, selection.delivery_entries()
            )
    except STORE_ERRORS as e:
        _fail(log, "mark_sent_failed", e)

    click.echo(
        json.dumps(
            {
                "digest_date": selection.digest_date.isoformat(),
                "items": selection.items,
                "recorded": recorded,
            },
            sort_keys=True,
        )
    )


@cli.command("list-unscored")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Maximum entries.")
@click.pass_obj
def list_unscored(options: CliOptions, limit: int | None) -> None:
    """Print matched documents still lacking a relevance judgment."""
    run_id, log = _setup_logging_and_context(options, "list-unscored")
    config = _load_configuration(options, run_id, log)

    try:
        with StateStore(_db_path(options, config), run_id=run_id) as store:
            plan = ScoreStore(store).plan(limit)
    except STORE_ERRORS as e:
        _fail(log, "list_unscored_failed", e)

    click.echo(plan.model_dump_json(indent=2))


@cli.command("record-scores")
@click.argument("scores_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--model",
    "default_model",
    default="unknown",
    show_default=True,
    help="Judge label used for entries without one.",
)
@click.pass_obj
def record_scores(options: CliOptions, scores_file: Path, default_model: str) -> None:
    """Record a batch of relevance judgments ({"scores": [...]}) atomically."""
    run_id, log = _setup_logging_and_context(options, "record-scores")
    config = _load_configuration(options, run_id, log)

    try:
        batch = JudgmentBatch.model_validate_json(scores_file.read_text(encoding="utf-8"))
    except ValidationError as e:
        _fail(log, "scores_file_invalid", e)

    judgments = batch.to_judgments(
        scored_at=datetime.now(UTC), default_model=default_model
    )

    try:
        with StateStore(_db_path(options, config), run_id=run_id) as store:
            written = ScoreStore(store).record(judgments)
    except STORE_ERRORS as e:
        _fail(log, "record_scores_failed", e)

    click.echo(
        json.dumps(
            {"count": written, "document_ids": [j.document_id for j in judgments]},
            sort_keys=True,
        )
    )


@cli.command("plan-weekly")
@click.option(
    "--week",
    "week_iso",
    default=None,
    help="ISO week such as 2026-W07 (default: the current week).",
)
@click.option(
    "--pick",
    "pick_path",
    type=click.Path(path_type=Path),
    default=None,
    help='Pick file holding {"document_id": ...}.',
)
@click.pass_obj
def plan_weekly(options: CliOptions, week_iso: str | None, pick_path: Path | None) -> None:
    """Print the weekly shortlist, pick and related documents as JSON."""
    run_id, log = _setup_logging_and_context(options, "plan-weekly")
    config = _load_configuration(options, run_id, log)
    week = week_iso or iso_week(_today(config))

    try:
        parse_iso_week(week)
    except ValueError as e:
        _fail(log, "invalid_week", e)

    try:
        with StateStore(_db_path(options, config), run_id=run_id) as store:
            selector = WeeklySelector(
                store,
                shortlist_size=config.app.weekly.shortlist_size,
                related_max=config.app.weekly.related_max,
            )
            plan = selector.plan(week, pick_path)
    except STORE_ERRORS as e:
        _fail(log, "plan_weekly_failed", e)

    click.echo(plan.model_dump_json(indent=2))


@cli.command("mark-weekly-sent")
@click.option("--week", "week_iso", required=True, help="ISO week such as 2026-W07.")
@click.option("--document-id", required=True, help="Document delivered as the deep dive.")
@click.option(
    "--section",
    "sections",
    multiple=True,
    help="Rendered section name (repeatable).",
)
@click.pass_obj
def mark_weekly_sent(
    options: CliOptions, week_iso: str, document_id: str, sections: tuple[str, ...]
) -> None:
    """Record a delivered weekly deep dive. Safe to run twice."""
    run_id, log = _setup_logging_and_context(options, "mark-weekly-sent")
    config = _load_configuration(options, run_id, log)

    try:
        parse_iso_week(week_iso)
    except ValueError as e:
        _fail(log, "invalid_week", e)

    try:
        with StateStore(_db_path(options, config), run_id=run_id) as store:
            inserted = store.mark_weekly_sent(week_iso, document_id, list(sections))
    except STORE_ERRORS as e:
        _fail(log, "mark_weekly_sent_failed", e)

    click.echo(
        json.dumps(
            {"week_iso": week_iso, "document_id": document_id, "recorded": inserted},
            sort_keys=True,
        )
    )


@cli.command("weekly-summary")
@click.option(
    "--week",
    "week_iso",
    default=None,
    help="ISO week such as 2026-W07 (default: the current week).",
)
@click.option(
    "--top",
    "top_n",
    type=click.IntRange(min=1),
    default=DEFAULT_TOP_DOCUMENTS,
    show_default=True,
    help="Number of top documents to list.",
)
@click.pass_obj
def weekly_summary_command(options: CliOptions, week_iso: str | None, top_n: int) -> None:
    """Print per-track activity, top documents and deep-dive status for a week."""
    run_id, log = _setup_logging_and_context(options, "weekly-summary")
    config = _load_configuration(options, run_id, log)
    week = week_iso or iso_week(_today(config))

    try:
        parse_iso_week(week)
    except ValueError as e:
        _fail(log, "invalid_week", e)

    try:
        with StateStore(_db_path(options, config), run_id=run_id) as store:
            summary = weekly_summary(store, week, top_n=top_n)
    except STORE_ERRORS as e:
        _fail(log, "weekly_summary_failed", e)

    click.echo(summary.model_dump_json(indent=2))


@cli.command("db-stats")
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output as JSON.",
)
@click.pass_obj
def db_stats(options: CliOptions, json_output: bool) -> None:
    """Display database statistics.

    Shows row counts for all tables and the schema version.
    """
    run_id, log = _setup_logging_and_context(options, "db-stats")
    config = _load_configuration(options, run_id, log)

    try:
        with StateStore(_db_path(options, config), run_id=run_id) as store:
            stats = store.get_stats()
            schema_version = store.get_schema_version()
    except STORE_ERRORS as e:
        _fail(log, "db_stats_failed", e)

    if json_output:
        click.echo(json.dumps({"schema_version": schema_version, "tables": stats}, indent=2))
        return

    click.echo("Digest Database Statistics")
    click.echo("=" * 40)
    click.echo(f"  Schema Version: {schema_version}")
    click.echo("")
    click.echo("Table Row Counts:")
    for table, count in sorted(stats.items()):
        click.echo(f"  {table}: {count}")


if __name__ == "__main__":
    cli()
