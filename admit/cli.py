from __future__ import annotations

import json
import random
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import typer
from rich import print
from rich.console import Console
from rich.table import Table

from admit.config import get_settings
from admit.db import SQLiteStore
from admit.errors import PersistenceFailure
from admit.ingest.batch import ingest_directory
from admit.ingest.mapping import SchemaMapper, load_header_synonyms
from admit.ingest.pipeline import process_upload
from admit.ingest.schema import ExtractionResult
from admit.ingest.schema import export_json_schema as extraction_schema
from admit.log import configure_logging
from admit.predict.engine import predict_from_store, tier_label
from admit.predict.schema import Prediction
from admit.predict.schema import export_json_schema as prediction_schema

app = typer.Typer(add_completion=False, help="Admissions data ingestion and rank prediction")

KINDS = ("institution", "cutoff")
FORMATS = ("delimited", "text", "pdf")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log rejected rows (DEBUG)"),
):
    cfg = get_settings()
    configure_logging("DEBUG" if verbose else cfg.log_level)


def _check_choice(value: Optional[str], choices, name: str) -> Optional[str]:
    if value is not None and value not in choices:
        raise typer.BadParameter(f"{name} must be one of: {', '.join(choices)}")
    return value


def _store(db: Optional[Path]) -> SQLiteStore:
    cfg = get_settings()
    store = SQLiteStore(db or cfg.db_path)
    try:
        store.init_db()
    except PersistenceFailure as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1)
    return store


def _mapper(synonyms: Optional[Path]) -> SchemaMapper:
    cfg = get_settings()
    path = synonyms or cfg.synonyms_file
    return SchemaMapper(load_header_synonyms(path) if path else None)


def _report(result: ExtractionResult, as_json: bool) -> None:
    if as_json:
        typer.echo(result.model_dump_json(indent=2))
    elif result.success:
        s = result.stats
        print(
            f"[green]✓[/green] {result.message} "
            f"(rows {s.total_rows}, accepted {s.accepted}, rejected {s.rejected})"
        )
    else:
        print(f"[red]✗[/red] {result.message}")
        for err in result.errors:
            print(f"  - {err}")


@app.command("init-db")
def init_db(db: Path = typer.Option(None, "--db", help="SQLite file; defaults to ADMIT_DB_PATH")):
    """Create the SQLite tables if they do not exist."""
    store = _store(db)
    print(f"[green]✓[/green] database ready at {store.db_path}")


@app.command()
def ingest(
    src: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to ingest"),
    kind: str = typer.Option(..., "--kind", "-k", help="institution | cutoff"),
    fmt: str = typer.Option(None, "--format", "-f", help="delimited | text | pdf (sniffed from the suffix if omitted)"),
    db: Path = typer.Option(None, "--db", help="SQLite file; defaults to ADMIT_DB_PATH"),
    synonyms: Path = typer.Option(None, "--synonyms", help="YAML with extra header synonyms"),
    seed: int = typer.Option(None, "--seed", help="Seed for derived ratings"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Extract only, do not store"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
):
    """Extract records from one file and store them."""
    _check_choice(kind, KINDS, "--kind")
    _check_choice(fmt, FORMATS, "--format")
    cfg = get_settings()
    seed = seed if seed is not None else cfg.rating_seed

    result = process_upload(
        src.read_bytes(),
        filename=src.name,
        kind=kind,
        fmt=fmt,
        store=None if dry_run else _store(db),
        config=cfg.scan_config(),
        mapper=_mapper(synonyms),
        rng=random.Random(seed) if seed is not None else None,
    )
    _report(result, as_json)
    if not result.success:
        raise typer.Exit(1)


@app.command("ingest-dir")
def ingest_dir(
    src_dir: Path = typer.Argument(None, help="Directory; defaults to ADMIT_DATA_DIR"),
    kind: str = typer.Option(..., "--kind", "-k", help="institution | cutoff"),
    pattern: str = typer.Option("*", "--pattern", help="Glob inside the directory"),
    workers: int = typer.Option(None, "--workers", help="Parallel extraction threads"),
    limit: int = typer.Option(None, "--limit", help="Only the first N files"),
    db: Path = typer.Option(None, "--db", help="SQLite file; defaults to ADMIT_DB_PATH"),
    synonyms: Path = typer.Option(None, "--synonyms", help="YAML with extra header synonyms"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Extract only, do not store"),
):
    """Ingest every supported file in a directory; one bad file does not stop the rest."""
    _check_choice(kind, KINDS, "--kind")
    cfg = get_settings()
    target = src_dir or cfg.data_dir
    if not target.is_dir():
        typer.secho(f"Not a directory: {target}", fg="red")
        raise typer.Exit(1)

    results = ingest_directory(
        target,
        kind,
        store=None if dry_run else _store(db),
        pattern=pattern,
        workers=workers or cfg.workers,
        limit=limit,
        config=cfg.scan_config(),
        mapper=_mapper(synonyms),
        rng_seed=cfg.rating_seed,
    )
    if not results:
        typer.secho(f"No supported files found in {target}", fg="yellow")
        raise typer.Exit(1)

    failed = [p for p, r in results if not r.success]
    accepted = sum(r.stats.accepted for _, r in results if r.success)
    print(
        f"[bold]{len(results) - len(failed)}[/bold] of {len(results)} files ok, "
        f"{accepted} records accepted"
    )
    if failed:
        raise typer.Exit(1)


def _tier_table(title: str, preds: List[Prediction]) -> Table:
    table = Table(title=title, title_justify="left")
    table.add_column("Institution")
    table.add_column("Course")
    table.add_column("Confidence", justify="right")
    table.add_column("Avg cutoff", justify="right")
    table.add_column("Trend")
    table.add_column("Years")
    for p in preds:
        table.add_row(
            p.institution_name,
            p.course_name,
            f"{p.confidence}%",
            str(p.average_cutoff),
            p.trend,
            ", ".join(str(y) for y in p.years),
        )
    return table


@app.command()
def predict(
    rank: int = typer.Argument(..., min=1, help="Applicant rank"),
    category: str = typer.Option("General", "--category", "-c"),
    db: Path = typer.Option(None, "--db", help="SQLite file; defaults to ADMIT_DB_PATH"),
    lookback: int = typer.Option(None, "--lookback", min=1, help="Only use the last N years"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
):
    """Bucket institution/course options by admission likelihood for a rank."""
    cfg = get_settings()
    config = cfg.prediction_config()
    if lookback is not None:
        config = replace(config, lookback_years=lookback)
    try:
        report = predict_from_store(_store(db), rank, category, config)
    except PersistenceFailure as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1)

    if as_json:
        typer.echo(report.model_dump_json(indent=2))
        return

    console = Console()
    result = report.result
    for tier, preds in (("high", result.high), ("medium", result.medium), ("low", result.low)):
        if preds:
            console.print(_tier_table(tier_label(tier, config), preds))
    print(result.analysis)


@app.command()
def schema(
    which: str = typer.Argument("extraction", help="extraction | prediction"),
    out: Path = typer.Option(None, "--out", help="Write to a file instead of stdout"),
):
    """Export the JSON Schema of the extraction result or prediction report."""
    _check_choice(which, ("extraction", "prediction"), "WHICH")
    data = extraction_schema() if which == "extraction" else prediction_schema()
    text = json.dumps(data, indent=2, ensure_ascii=False)
    if out is None:
        typer.echo(text)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text, encoding="utf-8")
    print(f"[green]✓[/green] wrote {out}")


if __name__ == "__main__":
    app()
