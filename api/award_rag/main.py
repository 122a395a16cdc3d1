import logging
from collections import Counter
from contextlib import asynccontextmanager
from typing import Iterator, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel

from .context import AppContext
from .db import AwardStore
from .errors import AwardRagError
from .ingest import finish_report, ingest_records, resolve_mapping
from .records import read_award_rows
from .retrieval import QueryPipeline
from .settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ctx = AppContext.open(settings)
    app.state.ctx = ctx
    try:
        yield
    finally:
        ctx.close()


app = FastAPI(title="Award RAG", default_response_class=ORJSONResponse, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_context(request: Request) -> AppContext:
    return request.app.state.ctx


# one connection per request; a psycopg connection runs one transaction at a time
def get_store(ctx: AppContext = Depends(get_context)) -> Iterator[AwardStore]:
    with ctx.store() as store:
        yield store


class AskRequest(BaseModel):
    question: str
    on_empty: Optional[str] = None


class Source(BaseModel):
    id: int
    description: str
    score: float


class AskResponse(BaseModel):
    question: str
    answer: Optional[str]
    sources: List[Source]


class IngestRequest(BaseModel):
    path: Optional[str] = None
    columns: Optional[str] = None


class IngestResponse(BaseModel):
    read: int
    accepted: int
    skipped: int
    written: int
    failed: int


# Check health


@app.get("/health")
def health(ctx: AppContext = Depends(get_context)):
    # quick DB ping on a fresh connection
    try:
        with ctx.store() as store:
            store.ping()
    except Exception as e:
        return {"ok": False, "error": str(e)}
    return {"ok": True}


@app.post("/ask", response_model=AskResponse)
def ask(req: AskRequest, ctx: AppContext = Depends(get_context), store: AwardStore = Depends(get_store)):
    try:
        pipeline = QueryPipeline(ctx.embedder, store, ctx.llm, on_empty=ctx.settings.empty_context_policy)
        result = pipeline.ask(req.question, on_empty=req.on_empty)
    except AwardRagError as e:
        raise HTTPException(status_code=400, detail=str(e))
    sources = [Source(id=h.id, description=h.description, score=h.score) for h in result.hits]
    return AskResponse(question=result.question, answer=result.answer, sources=sources)


@app.post("/ingest", response_model=IngestResponse)
def ingest(req: IngestRequest, ctx: AppContext = Depends(get_context)):
    s = ctx.settings
    stats = Counter()
    try:
        rows = read_award_rows(
            req.path or s.awards_csv,
            mapping=resolve_mapping(req.columns or s.csv_columns),
            min_year=s.min_ceremony_year,
            stats=stats,
        )
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AwardRagError as e:
        raise HTTPException(status_code=400, detail=str(e))
    with ctx.store() as store:
        report = ingest_records(rows, ctx.embedder, store, workers=s.ingest_workers)
    finish_report(report, stats)
    return IngestResponse(
        read=report.read,
        accepted=report.accepted,
        skipped=report.skipped,
        written=report.written,
        failed=len(report.failures),
    )
