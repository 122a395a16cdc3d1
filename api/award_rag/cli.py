import argparse
import logging
import sys
from collections import Counter
from typing import List, Optional

from .context import app_context
from .errors import AwardRagError
from .ingest import finish_report, ingest_records, resolve_mapping
from .records import read_award_rows
from .retrieval import QueryPipeline
from .settings import CSV_COLUMN_LAYOUTS, EMPTY_CONTEXT_POLICIES, settings

logger = logging.getLogger("award_rag")

DEFAULT_QUESTION = "Who won the best supporting role award. Answer only name"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="award-rag", description="Oscar award records: ingest & ask")
    sub = parser.add_subparsers(dest="command", required=True)

    p_ingest = sub.add_parser("ingest", help="Embed award rows from a CSV and store them")
    p_ingest.add_argument("csv", nargs="?", default=settings.awards_csv, help="Path to the awards CSV")
    p_ingest.add_argument("--columns", choices=sorted(CSV_COLUMN_LAYOUTS), default=settings.csv_columns)
    p_ingest.add_argument("--workers", type=int, default=settings.ingest_workers)
    p_ingest.add_argument("--min-year", type=int, default=settings.min_ceremony_year)
    p_ingest.add_argument("--init-db", action="store_true", help="Create table and index first")

    p_ask = sub.add_parser("ask", help="Answer a question from the stored awards")
    p_ask.add_argument("question", nargs="?", default=DEFAULT_QUESTION)
    p_ask.add_argument("--on-empty", choices=sorted(EMPTY_CONTEXT_POLICIES), default=settings.empty_context_policy)

    sub.add_parser("init-db", help="Create the awards table and vector index")
    return parser


def _ingest(ctx, args) -> int:
    # open the CSV and check its header before touching the database
    stats = Counter()
    rows = read_award_rows(args.csv, mapping=resolve_mapping(args.columns), min_year=args.min_year, stats=stats)
    with ctx.store() as store:
        if args.init_db:
            store.ensure_schema()
        report = ingest_records(rows, ctx.embedder, store, workers=args.workers)
    finish_report(report, stats)
    return 0 if report.ok else 1


def _ask(ctx, args) -> int:
    with ctx.store() as store:
        pipeline = QueryPipeline(ctx.embedder, store, ctx.llm, on_empty=args.on_empty)
        result = pipeline.ask(args.question)
    if result.answer is not None:
        print(result.answer)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        with app_context(settings) as ctx:
            if args.command == "init-db":
                with ctx.store() as store:
                    store.ensure_schema()
                return 0
            if args.command == "ingest":
                return _ingest(ctx, args)
            return _ask(ctx, args)
    except (AwardRagError, FileNotFoundError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
