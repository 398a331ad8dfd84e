from __future__ import annotations

import random
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from rich import print
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TextColumn,
    TimeElapsedColumn,
)

from admit.db import RecordStore
from admit.ingest.mapping import SchemaMapper
from admit.ingest.pipeline import extract_upload, persist_result
from admit.ingest.rules import ScanConfig
from admit.ingest.schema import ExtractionResult, RecordKind

SUPPORTED_SUFFIXES = (".csv", ".tsv", ".psv", ".dsv", ".txt", ".pdf")


def iter_sources(root: Path, pattern: str = "*") -> Iterable[Path]:
    return sorted(
        p for p in root.glob(pattern) if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES
    )


def ingest_directory(
    src_dir: Path,
    kind: RecordKind,
    *,
    store: Optional[RecordStore] = None,
    pattern: str = "*",
    workers: int = 4,
    limit: Optional[int] = None,
    config: Optional[ScanConfig] = None,
    mapper: Optional[SchemaMapper] = None,
    rng_seed: Optional[int] = None,
    show_progress: bool = True,
) -> List[Tuple[Path, ExtractionResult]]:
    """
    Extract every supported file under src_dir in parallel, then persist the
    results one file at a time in name order. A failed file never stops the batch.
    """
    files = list(iter_sources(src_dir, pattern))
    if limit is not None and limit >= 0:
        files = files[:limit]
    config = config or ScanConfig()
    mapper = mapper or SchemaMapper()

    def extract(path: Path) -> ExtractionResult:
        # a generator per file keeps seeded runs independent of scheduling
        rng = random.Random(f"{rng_seed}:{path.name}") if rng_seed is not None else None
        try:
            raw = path.read_bytes()
        except OSError as e:
            return ExtractionResult(
                success=False,
                message=f"Could not read {path.name}",
                kind=kind,
                errors=[str(e)],
            )
        return extract_upload(
            raw, filename=path.name, kind=kind, config=config, mapper=mapper, rng=rng
        )

    results: List[Tuple[Path, ExtractionResult]] = []

    def finish(path: Path, result: ExtractionResult) -> None:
        if store is not None:
            result = persist_result(result, store)
        results.append((path, result))
        if result.success:
            print(f"[green]✓[/green] {path.name}: {result.message}")
        else:
            detail = "; ".join(result.errors) or result.message
            print(f"[red]✗[/red] {path.name}: {detail}")

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        extracted = pool.map(extract, files)
        if show_progress:
            with Progress(
                TextColumn("[bold]Ingest[/bold]"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                transient=False,
            ) as progress:
                task = progress.add_task("files", total=len(files))
                for path, result in zip(files, extracted):
                    finish(path, result)
                    progress.update(task, advance=1)
        else:
            for path, result in zip(files, extracted):
                finish(path, result)

    return results
