import csv
import logging
from collections import Counter
import math
import pathlib
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .errors import RecordFormatError

logger = logging.getLogger(__name__)

MIN_CEREMONY_YEAR = 2023

FIELDS = ("year_film", "year_ceremony", "ceremony", "category", "name", "film", "winner")


@dataclass(frozen=True)
class AwardRecord:
    year_film: int
    year_ceremony: int
    ceremony: str
    category: str
    name: str
    film: str
    winner: bool
    description: Optional[str] = None
    embedding: Optional[List[float]] = field(default=None, repr=False)
    id: Optional[int] = None


@dataclass(frozen=True)
class FieldMapping:
    """Canonical field name -> CSV column name."""
    name: str
    columns: Dict[str, str]

    def column(self, field_name: str) -> str:
        return self.columns[field_name]

    def matches(self, header: Sequence[str]) -> bool:
        return set(self.columns.values()).issubset(header)

    @classmethod
    def from_name(cls, name: str) -> "FieldMapping":
        try:
            return MAPPINGS[name]
        except KeyError:
            raise RecordFormatError(f"Unknown column layout {name!r}, expected one of {sorted(MAPPINGS)}") from None


SNAKE_CASE = FieldMapping("snake", {f: f for f in FIELDS})
CAMEL_CASE = FieldMapping("camel", {
    "year_film": "yearFilm",
    "year_ceremony": "yearCeremony",
    "ceremony": "ceremony",
    "category": "category",
    "name": "name",
    "film": "film",
    "winner": "winner",
})
MAPPINGS = {m.name: m for m in (SNAKE_CASE, CAMEL_CASE)}


def detect_mapping(header: Sequence[str]) -> FieldMapping:
    for mapping in MAPPINGS.values():
        if mapping.matches(header):
            return mapping
    raise RecordFormatError(f"CSV header {list(header)} matches no known column layout")


# "2024" -> 2024, "2024.0" -> 2024, "" -> 0, "n/a" -> 0
def _to_int(value) -> int:
    text = (value or "").strip()
    if not text:
        return 0
    try:
        number = float(text)
    except ValueError:
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return int(number)


# "TRUE" / "true" / "True" -> True, "False" / "" / None -> False
def parse_winner(value) -> bool:
    return isinstance(value, str) and value.lower() == "true"


def record_from_row(row: Dict[str, str], mapping: FieldMapping = SNAKE_CASE) -> AwardRecord:
    def get(field_name: str) -> str:
        return row.get(mapping.column(field_name)) or ""

    return AwardRecord(
        year_film=_to_int(get("year_film")),
        year_ceremony=_to_int(get("year_ceremony")),
        ceremony=get("ceremony"),
        category=get("category"),
        name=get("name"),
        film=get("film"),
        winner=parse_winner(row.get(mapping.column("winner"))),
    )


def is_eligible(record: AwardRecord, min_year: int = MIN_CEREMONY_YEAR) -> bool:
    return record.year_ceremony >= min_year and bool(record.name) and bool(record.film)


def format_award_sentence(record: AwardRecord) -> str:
    outcome = "won" if record.winner else "did not win"
    return (
        f"In the {record.year_ceremony} Oscar Awards, the category {record.category} "
        f"was nominated {record.name} and {outcome} the award."
    )


def _eligible_rows(f, reader, layout: FieldMapping, min_year: int, stats: Counter):
    with f:
        for row in reader:
            record = record_from_row(row, layout)
            stats["read"] += 1
            if not is_eligible(record, min_year):
                stats["skipped"] += 1
                logger.debug("Skip line %d: %s / %s (%s)", reader.line_num, record.name, record.film,
                             record.year_ceremony)
                continue
            yield reader.line_num, record


def read_award_rows(
    path,
    mapping: Optional[FieldMapping] = None,
    min_year: int = MIN_CEREMONY_YEAR,
    stats: Optional[Counter] = None,
) -> Iterator[Tuple[int, AwardRecord]]:
    """
    Open the CSV, check its header, and return a lazy iterator of
    (line_number, record) for every eligible row.

    A missing file or an unusable header raises here, before any row is read.
    Rows failing the year/name/film check are skipped without error.
    The column layout is detected from the header when mapping is None.
    When given, stats counts "read" and "skipped" rows.
    """
    stats = stats if stats is not None else Counter()
    path = pathlib.Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Awards CSV not found: {path}")

    # utf-8-sig drops the byte-order mark spreadsheet exports put before the header
    f = path.open(newline="", encoding="utf-8-sig")
    try:
        reader = csv.DictReader(f)
        header = reader.fieldnames or []
        if mapping is None:
            layout = detect_mapping(header)
        elif mapping.matches(header):
            layout = mapping
        else:
            raise RecordFormatError(f"CSV header {list(header)} does not have the {mapping.name} columns")
    except Exception:
        f.close()
        raise
    logger.info("Reading %s with %s column layout", path, layout.name)
    return _eligible_rows(f, reader, layout, min_year, stats)
