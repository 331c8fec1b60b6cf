"""CLI application entrypoint built with Typer."""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Iterator, List, NoReturn, Optional

import typer

from MasterDataNormalizer.audit.models import AuditContext
from MasterDataNormalizer.audit.storage import DuckDBAuditTrail
from MasterDataNormalizer.commit.store import DuckDBRecordStore
from MasterDataNormalizer.commit.transaction import CommitResult
from MasterDataNormalizer.config import EngineConfig, load_engine_config
from MasterDataNormalizer.exceptions import NormalizationError
from MasterDataNormalizer.matching.matcher import Matcher
from MasterDataNormalizer.telemetry import NormalizationTelemetry
from MasterDataNormalizer.workflow import NormalizationWorkflow

from .logging import configure_logging, progress_spinner

CLI_VERSION = "0.1.0"

app = typer.Typer(help="Master data normalization command line interface")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fail(exc: Exception) -> NoReturn:
    typer.echo(f"[error] {exc}")
    raise typer.Exit(code=1)


def _config(ctx: typer.Context) -> EngineConfig:
    return ctx.obj["config"]


def _audit_context(user: str, email: Optional[str]) -> AuditContext:
    return AuditContext(user_id=user, user_email=email or f"{user}@example.com")


@contextmanager
def _workflow(ctx: typer.Context, category: str) -> Iterator[NormalizationWorkflow]:
    config = _config(ctx)
    database = config.database_path or ":memory:"
    store = DuckDBRecordStore(database)
    cursor = store.connection.cursor()
    try:
        audit_trail = DuckDBAuditTrail(connection=cursor)
        yield NormalizationWorkflow.from_config(
            config,
            category,
            store=store,
            audit_trail=audit_trail,
            telemetry=NormalizationTelemetry(),
        )
    finally:
        cursor.close()
        store.close()


@contextmanager
def _audit_trail(ctx: typer.Context) -> Iterator[DuckDBAuditTrail]:
    config = _config(ctx)
    trail = DuckDBAuditTrail(config.database_path or ":memory:")
    try:
        yield trail
    finally:
        trail.close()


def _echo_commit(result: CommitResult) -> None:
    for outcome in result.per_mapping_results:
        suffix = f" ({outcome.error})" if outcome.error else ""
        typer.echo(
            f"{outcome.status:<8} {outcome.raw_label} -> {outcome.proposed_label} "
            f"[{outcome.updated_count} rows]{suffix}"
        )
    typer.echo(f"Transaction {result.transaction_id}: {result.total_updated} rows updated")
    if result.audit_id:
        typer.echo(f"Audit record {result.audit_id}")
    if result.audit_warning:
        typer.echo(f"[warning] {result.audit_warning}")
    if result.cancelled:
        typer.echo("[warning] commit cancelled before all mappings were applied")


# ---------------------------------------------------------------------------
# Callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", help="Path to engine configuration file (TOML or JSON)."),
    database: Optional[Path] = typer.Option(None, "--database", help="DuckDB database holding records and audit logs."),
    log_format: str = typer.Option("text", "--log-format", help="Log format (text or json)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging."),
) -> None:
    """Top-level callback to resolve configuration and configure logging."""

    try:
        resolved = load_engine_config(config)
    except NormalizationError as exc:
        _fail(exc)
    if database is not None:
        resolved = replace(resolved, database_path=database.expanduser())

    log_path = resolved.database_path.parent / "logs" / "mdn.log" if resolved.database_path else None
    logger = configure_logging(log_path, log_format, verbose, resolved.log_level)
    ctx.obj = {"config": resolved, "logger": logger}


# ---------------------------------------------------------------------------
# Matching commands
# ---------------------------------------------------------------------------


@app.command()
def match(
    ctx: typer.Context,
    category: str = typer.Argument(..., help="Category to match against (e.g. state, city)."),
    labels: List[str] = typer.Argument(..., help="Raw labels to match."),
) -> None:
    """Show the best canonical match for each raw label."""

    config = _config(ctx)
    try:
        category_config = config.category(category)
    except NormalizationError as exc:
        _fail(exc)
    matcher = Matcher(
        canonical_set=category_config.canonical_set(),
        abbreviations=category_config.abbreviation_table(),
        compound_separators=config.compound_separators,
        max_workers=config.match_workers,
    )
    batch = matcher.batch_match(labels, confidence_threshold=config.auto_select_threshold)
    for result in batch.results:
        marker = "*" if result.auto_selected else " "
        typer.echo(
            f"{marker} {result.raw_label} -> {result.canonical_label or '-'} "
            f"({result.confidence}, {result.match_type.value})"
        )
        for alternative in result.alternatives:
            typer.echo(f"      ~ {alternative.label} ({alternative.confidence})")
    typer.echo(
        f"Processed {batch.total_processed}: {len(batch.auto_selected)} auto-selected, "
        f"{len(batch.compound_labels)} compound"
    )


@app.command()
def scan(
    ctx: typer.Context,
    category: str = typer.Argument(..., help="Category whose column is scanned."),
) -> None:
    """List raw labels in the category column that are not yet canonical."""

    try:
        with _workflow(ctx, category) as workflow, progress_spinner(f"Scanning {category} labels"):
            labels = workflow.discover_raw_labels()
    except NormalizationError as exc:
        _fail(exc)
    for label in labels:
        typer.echo(label)
    typer.echo(f"{len(labels)} raw {category} labels")


@app.command("auto-map")
def auto_map(
    ctx: typer.Context,
    category: str = typer.Argument(..., help="Category to normalize."),
    apply: bool = typer.Option(False, "--apply/--dry-run", help="Commit the auto-selected mappings."),
    threshold: Optional[int] = typer.Option(None, "--threshold", min=0, max=100, help="Auto-select threshold."),
    user: str = typer.Option("anonymous", "--user", help="User recorded in the audit trail."),
    email: Optional[str] = typer.Option(None, "--email", help="Email recorded in the audit trail."),
) -> None:
    """Auto-select confident matches for every raw label and optionally commit them."""

    audit_context = _audit_context(user, email)
    try:
        with _workflow(ctx, category) as workflow:
            with progress_spinner(f"Matching {category} labels"):
                workflow.start_session()
                report = workflow.auto_select(
                    audit_context=audit_context if apply else None,
                    threshold=threshold,
                )
            for entry in workflow.session.valid_mappings():
                typer.echo(f"{entry.raw_label} -> {entry.proposed_label} ({entry.confidence})")
            typer.echo(
                f"{report.applied} auto-selected, {report.excluded} compound labels skipped, "
                f"{len(workflow.session) - report.applied - report.excluded} need review"
            )
            if not apply:
                return
            if not report.applied:
                typer.echo("No confident matches to apply")
                return
            result = workflow.save(audit_context)
    except NormalizationError as exc:
        _fail(exc)
    _echo_commit(result)
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def assign(
    ctx: typer.Context,
    category: str = typer.Argument(..., help="Category to normalize."),
    target: str = typer.Argument(..., help="Canonical label to assign."),
    raw_labels: List[str] = typer.Argument(..., help="Raw labels mapped to the target."),
    user: str = typer.Option("anonymous", "--user", help="User recorded in the audit trail."),
    email: Optional[str] = typer.Option(None, "--email", help="Email recorded in the audit trail."),
) -> None:
    """Map several raw labels to one canonical label and commit."""

    try:
        with _workflow(ctx, category) as workflow:
            result = workflow.bulk_assign(raw_labels, target, _audit_context(user, email))
    except NormalizationError as exc:
        _fail(exc)
    _echo_commit(result)
    if not result.success:
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Audit commands
# ---------------------------------------------------------------------------


@app.command()
def history(
    ctx: typer.Context,
    table: str = typer.Argument(..., help="Audited table name."),
    record_id: str = typer.Argument(..., help="Record identifier (raw label for batch updates)."),
    limit: int = typer.Option(50, "--limit", min=1, help="Maximum number of records."),
) -> None:
    """Show audit records touching a record, newest first."""

    with _audit_trail(ctx) as trail:
        records = trail.get_history(table, record_id, limit)
    if not records:
        typer.echo(f"No audit history for {table}/{record_id}")
        return
    for record in records:
        typer.echo(f"{record.timestamp.isoformat()} {record.action_type} by {record.changed_by} ({record.id})")
        for change in record.changes:
            if change.record_identifier == record_id:
                typer.echo(f"    {change.old_value} -> {change.new_value} [{change.status}]")


@app.command("audit-stats")
def audit_stats(
    ctx: typer.Context,
    user: Optional[str] = typer.Option(None, "--user", help="Restrict statistics to one user."),
) -> None:
    """Print aggregate audit statistics as JSON."""

    with _audit_trail(ctx) as trail:
        stats = trail.statistics(user)
    payload = {
        "total_logs": stats.total_logs,
        "counts_by_action_type": dict(stats.counts_by_action_type),
        "counts_by_table_name": dict(stats.counts_by_table_name),
        "earliest": stats.earliest.isoformat() if stats.earliest else None,
        "latest": stats.latest.isoformat() if stats.latest else None,
        "recent_activity": [record.id for record in stats.recent_activity],
    }
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


@app.command()
def version() -> None:
    """Print the CLI version."""

    typer.echo(CLI_VERSION)


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    """Entrypoint for the CLI."""

    app()
