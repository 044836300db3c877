"""event_roster.cli

Resolve event roster pages to local user ids.

    event-roster --event-url https://connpass.com/event/12345/ --db-dsn "dbname=app"
    event-roster --event-url ... --users-csv ./users.csv --config config/event_roster.yml

Prints one JSON envelope per event URL on stdout and writes a run report to
./artifacts/reports/{run_id}.json.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

import click
import psycopg
import requests

from event_roster.config import Settings, SettingsValidationError, load_settings
from event_roster.directory import CsvUserDirectory, PostgresUserDirectory, UserCsvError
from event_roster.errors import AmbiguousMatchWarning
from event_roster.matcher import ProfileMatcher, UserDirectory
from event_roster.resolver import (
    EventAttendeeResolver,
    ResolutionCounters,
    ResolutionEnvelope,
    ResolutionStatus,
)
from event_roster.scrape import PageScraper


def write_run_report(
    run_id: str,
    started_at: str,
    settings: Settings,
    envelopes: dict[str, ResolutionEnvelope],
    counters: ResolutionCounters,
    reports_dir: Path,
) -> Path:
    report: dict[str, Any] = {
        "run_id": run_id,
        "started_at": started_at,
        "finished_at": datetime.utcnow().isoformat(),
        "settings": dict(settings.__dict__),
        "events": {url: env.to_dict() for url, env in envelopes.items()},
        "counters": counters.to_dict(),
    }
    report_path = reports_dir / f"{run_id}.json"
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json.dumps(report, indent=2, default=str, ensure_ascii=False))
    return report_path


def build_resolver(
    settings: Settings,
    directory: UserDirectory,
    counters: ResolutionCounters,
    session: requests.Session | None = None,
    logger: logging.Logger | None = None,
) -> EventAttendeeResolver:
    """Wire scraper + matcher; ambiguous matches are tallied on counters."""
    if session is None:
        session = requests.Session()
        session.headers.update({"User-Agent": settings.user_agent})

    def _on_ambiguous(warning: AmbiguousMatchWarning) -> None:
        counters.ambiguous_matches += 1
        counters.warnings.append(str(warning))

    scraper = PageScraper(
        session=session,
        base_url=settings.base_url,
        roster_path=settings.roster_path,
        timeout=settings.timeout_seconds,
        logger=logger,
    )
    matcher = ProfileMatcher(directory, logger=logger, on_ambiguous=_on_ambiguous)
    return EventAttendeeResolver(scraper, matcher, logger=logger)


@click.command()
@click.option("--event-url", "event_urls", multiple=True, required=True, help="Event page URL (repeatable)")
@click.option("--db-dsn", default=None, envvar="EVENT_ROSTER_DB_DSN", help="PostgreSQL DSN of the user directory")
@click.option("--users-csv", default=None, type=click.Path(exists=True, dir_okay=False), help="Users CSV export instead of --db-dsn")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False), help="YAML settings file")
@click.option("--base-url", default=None, help="Override base_url from settings")
@click.option(
    "--roster-path",
    default=None,
    type=click.Choice(["participation", "participants"]),
    help="Override roster_path from settings",
)
@click.option("--timeout", "timeout_seconds", default=None, type=float, help="HTTP timeout in seconds")
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    show_default=True,
)
@click.option("--run-id", default=None, help="Override UUID for log correlation")
@click.option("--reports-dir", default="./artifacts/reports", type=click.Path(file_okay=False), show_default=True)
def main(
    event_urls: tuple[str, ...],
    db_dsn: str | None,
    users_csv: str | None,
    config_path: str | None,
    base_url: str | None,
    roster_path: str | None,
    timeout_seconds: float | None,
    log_level: str,
    run_id: str | None,
    reports_dir: str,
) -> None:
    """Resolve event attendees to local user ids."""
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_id = run_id or str(uuid.uuid4())
    started_at = datetime.utcnow().isoformat()

    try:
        settings = load_settings(Path(config_path) if config_path else None).with_overrides(
            base_url=base_url,
            roster_path=roster_path,
            timeout_seconds=timeout_seconds,
        )
    except SettingsValidationError as exc:
        click.echo(f"[{run_id}] FATAL: {exc}", err=True)
        sys.exit(1)

    if bool(db_dsn) == bool(users_csv):
        click.echo(f"[{run_id}] FATAL: provide exactly one of --db-dsn or --users-csv", err=True)
        sys.exit(1)

    counters = ResolutionCounters()
    envelopes: dict[str, ResolutionEnvelope] = {}
    click.echo(f"[{run_id}] Resolving {len(event_urls)} event(s) via {settings.base_url}", err=True)

    if users_csv:
        try:
            directory: UserDirectory = CsvUserDirectory.from_path(Path(users_csv))
        except UserCsvError as exc:
            click.echo(f"[{run_id}] FATAL: {exc}", err=True)
            sys.exit(1)
        _run(settings, directory, counters, event_urls, envelopes)
    else:
        with psycopg.connect(db_dsn, autocommit=True) as conn:  # type: ignore[arg-type]
            _run(settings, PostgresUserDirectory(conn), counters, event_urls, envelopes)

    report_path = write_run_report(
        run_id, started_at, settings, envelopes, counters, Path(reports_dir)
    )
    click.echo(f"[{run_id}] Run report: {report_path}", err=True)

    failed = [url for url, env in envelopes.items() if env.status is ResolutionStatus.ERROR]
    if failed:
        click.echo(f"[{run_id}] {len(failed)} event(s) failed, exiting non-zero", err=True)
        sys.exit(1)


def _run(
    settings: Settings,
    directory: UserDirectory,
    counters: ResolutionCounters,
    event_urls: tuple[str, ...],
    envelopes: dict[str, ResolutionEnvelope],
) -> None:
    resolver = build_resolver(settings, directory, counters)
    for event_url in event_urls:
        envelope = resolver.resolve_event(event_url, counters)
        envelopes[event_url] = envelope
        click.echo(envelope.to_json())


if __name__ == "__main__":
    main()
