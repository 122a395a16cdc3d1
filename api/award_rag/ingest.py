import dataclasses
import itertools
import logging
import sys
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple

from .db import AwardStore
from .llm import EmbeddingClient
from .records import AwardRecord, FieldMapping, format_award_sentence, read_award_rows

logger = logging.getLogger(__name__)


@dataclass
class RowFailure:
    line: int
    error: str


@dataclass
class IngestReport:
    read: int = 0
    accepted: int = 0
    skipped: int = 0
    written: int = 0
    failures: List[RowFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


# AwardRecord(..., description=None, embedding=None)
#   -> AwardRecord(..., description="In the 2024 Oscar Awards, ...", embedding=[0.01, ...])
def enrich(record: AwardRecord, embedder: EmbeddingClient) -> AwardRecord:
    description = format_award_sentence(record)
    return dataclasses.replace(record, description=description, embedding=embedder.embed(description))


def _enrich_safely(item: Tuple[int, AwardRecord], embedder: EmbeddingClient):
    line, record = item
    try:
        return line, enrich(record, embedder), None
    except Exception as e:
        return line, record, e


def _enriched(rows: Iterable[Tuple[int, AwardRecord]], embedder: EmbeddingClient, workers: int) -> Iterator:
    if workers <= 1:
        for item in rows:
            yield _enrich_safely(item, embedder)
        return
    # bounded window: at most workers * 2 rows are embedding at any time
    window = workers * 2
    rows = iter(rows)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        while True:
            batch = list(itertools.islice(rows, window))
            if not batch:
                break
            yield from pool.map(lambda item: _enrich_safely(item, embedder), batch)


def ingest_records(
    rows: Iterable[Tuple[int, AwardRecord]],
    embedder: EmbeddingClient,
    store: AwardStore,
    workers: int = 1,
    report: Optional[IngestReport] = None,
) -> IngestReport:
    """
    Describe, embed and store every row; returns once every write has finished.

    A failing row is recorded in the report and the loop moves on. Rows
    already written stay written.
    """
    report = report or IngestReport()
    for line, record, error in _enriched(rows, embedder, workers):
        report.accepted += 1
        if error is None:
            try:
                store.insert_award(record)
                report.written += 1
                continue
            except Exception as e:
                error = e
        logger.warning("Row at line %d (%s / %s) failed: %s", line, record.name, record.film, error)
        report.failures.append(RowFailure(line=line, error=f"{type(error).__name__}: {error}"))
    return report


def ingest_csv(
    path,
    embedder: EmbeddingClient,
    store: AwardStore,
    mapping: Optional[FieldMapping] = None,
    min_year: int = 2023,
    workers: int = 1,
) -> IngestReport:
    stats = Counter()
    rows = read_award_rows(path, mapping=mapping, min_year=min_year, stats=stats)
    report = ingest_records(rows, embedder, store, workers=workers)
    return finish_report(report, stats)


def finish_report(report: IngestReport, stats: Counter) -> IngestReport:
    report.read = stats["read"]
    report.skipped = stats["skipped"]
    logger.info(
        "CSV data processing completed: read=%d accepted=%d skipped=%d written=%d failed=%d",
        report.read, report.accepted, report.skipped, report.written, len(report.failures),
    )
    return report


def resolve_mapping(columns: str) -> Optional[FieldMapping]:
    # "auto" -> detect from the CSV header
    return None if columns == "auto" else FieldMapping.from_name(columns)


if __name__ == "__main__":
    from .cli import main

    raise SystemExit(main(["ingest", *sys.argv[1:]]))
