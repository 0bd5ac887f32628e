"""Command line interface for the appsys migration toolkit."""

from __future__ import annotations

import json
import secrets
import sys
from contextlib import suppress
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import polars as pl
import typer
from loguru import logger

from .config import AppConfig, DatabaseConfig, load_config
from .config.inspector import check_config
from .errors import ConnectionNotConfiguredError, MigrationAbort
from .migration import BatchDriver, MigrationOptions, MigrationReport
from .store import LegacyStore, TargetStore
from .store.models import User


@dataclass(slots=True)
class CLIState:
    """Holds shared state between Typer commands."""

    config_path: Path
    _config: AppConfig | None = None

    def ensure_config(self) -> AppConfig:
        if self._config is None:
            logger.info("Loading configuration from {}", self.config_path)
            self._config = load_config(AppConfig, self.config_path)
            _configure_logging(self._config)
        return self._config


app = typer.Typer(help="Legacy application migration helpers")
config_app = typer.Typer(help="Validate configuration files")
app.add_typer(config_app, name="config")
migrate_app = typer.Typer(help="Data migration commands")
app.add_typer(migrate_app, name="migrate")
db_app = typer.Typer(help="Target database helpers")
app.add_typer(db_app, name="db")

_managed_sinks: list[int] = []
_default_sink_removed = False


def _default_config_path() -> Path:
    repo_root = Path(__file__).resolve().parents[1]
    return repo_root / "config" / "example.toml"


def _normalize_format(value: str) -> str:
    return value.lower()


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):  # pragma: no cover - defensive guard
        raise RuntimeError("CLI context is not initialised")
    return state


def _exit(code: int) -> None:
    raise typer.Exit(code)


def _configure_logging(config: AppConfig) -> None:
    """Route logs to stderr at the configured level, plus an optional rotating file."""

    global _default_sink_removed

    _release_logging()
    if not _default_sink_removed:
        # handler 0 is loguru's import-time stderr sink
        with suppress(ValueError):
            logger.remove(0)
        _default_sink_removed = True

    level = config.logging_level.upper()
    _managed_sinks.append(logger.add(sys.stderr, level=level))
    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        _managed_sinks.append(
            logger.add(
                config.log_file,
                rotation="5 MB",
                retention=5,
                level=level,
            )
        )


def _release_logging() -> None:
    while _managed_sinks:
        logger.remove(_managed_sinks.pop())


def _database(config: AppConfig, name: str) -> DatabaseConfig:
    try:
        return config.database(name)
    except KeyError as exc:
        raise ConnectionNotConfiguredError(exc.args[0]) from None


def _open_target(config: AppConfig) -> TargetStore:
    database = _database(config, config.target_connection)
    return TargetStore.from_url(
        database.resolved_url, echo=database.echo, pool_pre_ping=database.pool_pre_ping
    )


def _report_path(report: Path | None, config: AppConfig, started_at: datetime) -> Path | None:
    if report is not None:
        return report
    if config.migration.report_dir is None:
        return None
    stamp = started_at.strftime("%Y%m%dT%H%M%SZ")
    return config.migration.report_dir / f"applications-{stamp}.json"


def _write_report(path: Path, report: MigrationReport) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Wrote migration report {}", path)


def _print_metrics(report: MigrationReport) -> None:
    typer.echo(f"Legacy connection: {report.legacy_connection}")
    typer.echo(f"Found {report.dynamic_tables} dynamic service tables.")
    with pl.Config(
        tbl_hide_dataframe_shape=True,
        tbl_hide_column_data_types=True,
        tbl_rows=len(report.stats.as_ordered_dict()),
        fmt_str_lengths=32,
    ):
        typer.echo(str(report.metrics_frame()))
    if report.dry_run:
        typer.echo("Dry-run completed: no records were written.")
    else:
        typer.echo("Migration completed.")


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    config: Path = typer.Option(
        _default_config_path(),
        help="Path to the TOML configuration file",
    ),
) -> None:
    """Initialise CLI state."""

    ctx.obj = CLIState(config_path=config.resolve())

    if ctx.invoked_subcommand is None:
        logger.warning("No command provided. Try 'migrate applications --dry-run'.")
        _exit(0)


@migrate_app.command("applications", help="Migrate legacy tasks into applications")
def migrate_applications(
    ctx: typer.Context,
    legacy_connection: str | None = typer.Option(
        None,
        "--legacy-connection",
        help="Legacy connection name under [databases] (defaults to migration.legacy_connection)",
    ),
    chunk: int | None = typer.Option(
        None,
        "--chunk",
        min=1,
        help="Legacy tasks fetched per chunk (defaults to migration.chunk_size)",
    ),
    limit: int | None = typer.Option(None, "--limit", min=0, help="Maximum number of tasks to process"),
    list_id: str | None = typer.Option(None, "--list-id", help="Only migrate tasks of this legacy list"),
    task_id: int | None = typer.Option(None, "--task-id", help="Only migrate this legacy task"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Resolve everything but write nothing"),
    skip_payments: bool = typer.Option(False, "--skip-payments", help="Do not import finance transactions"),
    report: Path | None = typer.Option(None, "--report", help="Write the JSON run report to this path"),
) -> None:
    state = _get_state(ctx)
    config = state.ensure_config()
    settings = config.migration

    options = MigrationOptions(
        chunk_size=chunk or settings.chunk_size,
        limit=limit or None,
        list_id=list_id,
        task_id=task_id,
        dry_run=dry_run,
        skip_payments=skip_payments or settings.skip_payments,
        legacy_connection=legacy_connection or settings.legacy_connection,
    )

    target: TargetStore | None = None
    try:
        legacy_db = _database(config, options.legacy_connection)
        legacy = LegacyStore.from_url(
            legacy_db.resolved_url, echo=legacy_db.echo, pool_pre_ping=legacy_db.pool_pre_ping
        )
        target = _open_target(config)
        result = BatchDriver(legacy, target, options).run()
    except (MigrationAbort, EnvironmentError) as exc:
        logger.error("Migration aborted: {}", exc)
        _exit(1)
        return
    finally:
        if target is not None:
            target.close()

    _print_metrics(result)

    destination = _report_path(report, config, result.started_at)
    if destination is not None:
        _write_report(destination, result)


@db_app.command("init", help="Create the target tables")
def db_init(
    ctx: typer.Context,
    owner_email: str | None = typer.Option(
        None,
        "--owner-email",
        help="Create this user when the target has none (services need an owner)",
    ),
) -> None:
    state = _get_state(ctx)
    config = state.ensure_config()

    try:
        target = _open_target(config)
    except (MigrationAbort, EnvironmentError) as exc:
        logger.error("Cannot open target database: {}", exc)
        _exit(1)
        return

    try:
        target.create_schema()
        if owner_email and target.lowest_id(User) is None:
            owner = target.first_or_create(
                User,
                {"email": owner_email},
                {"name": "Migration Owner", "password": secrets.token_urlsafe(32), "profile_completed": False},
            )
            logger.info("Created owner user {} (id={})", owner.email, owner.id)
    finally:
        target.close()


@config_app.command(help="Validate the configuration file")
def check(
    ctx: typer.Context,
    format: str = typer.Option(  # noqa: A002 - match CLI option name
        "text",
        "--format",
        case_sensitive=False,
        help="Output format for validation results",
        callback=_normalize_format,
    ),
) -> None:
    state = _get_state(ctx)
    result, exit_code, _ = check_config(state.config_path)

    if format == "json":
        print(json.dumps(result, indent=2, ensure_ascii=False, default=str))
        _exit(exit_code)

    if result["status"] == "ok":
        logger.info("Configuration OK: {}", result["config_path"])
        for warning in result["warnings"]:
            logger.warning(warning)
    else:
        error: dict[str, Any] = result["error"]
        logger.error(
            "Configuration error ({}) for {}: {}",
            error["type"],
            result["config_path"],
            error["message"],
        )
        for detail in error.get("details", []):
            location = detail["loc"] or "<root>"
            logger.error("  - {}: {} ({})", location, detail["message"], detail["type"])

    _exit(exit_code)


def main(argv: list[str] | None = None) -> int:
    """Entry point compatible with setuptools console scripts."""

    try:
        result = app(args=argv, standalone_mode=False)
    except typer.Exit as exc:  # pragma: no cover - Typer translates exit codes
        return exc.exit_code
    finally:
        _release_logging()
    if isinstance(result, int):
        return result
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
