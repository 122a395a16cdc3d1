import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .db import AwardStore, SearchHit
from .errors import ConfigError
from .llm import AnswerModel, EmbeddingClient, build_prompt
from .settings import EMPTY_CONTEXT_POLICIES

logger = logging.getLogger(__name__)


@dataclass
class Answer:
    question: str
    context: str
    hits: List[SearchHit] = field(default_factory=list)
    answer: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.answer is None


# hits = [SearchHit(id=7, description="In the 2024 Oscar Awards, ...", score=0.91), ...]
# -> "In the 2024 Oscar Awards, ...\nIn the 2023 Oscar Awards, ..."
def build_context(hits: List[SearchHit]) -> str:
    return "\n".join(h.description for h in hits)


class QueryPipeline:
    def __init__(self, embedder: EmbeddingClient, store: AwardStore, llm: AnswerModel, on_empty: str = "skip"):
        if on_empty not in EMPTY_CONTEXT_POLICIES:
            raise ConfigError(f"on_empty must be one of {sorted(EMPTY_CONTEXT_POLICIES)}, got {on_empty!r}")
        self.embedder = embedder
        self.store = store
        self.llm = llm
        self.on_empty = on_empty

    def search(self, question: str) -> List[SearchHit]:
        q_vec = self.embedder.embed(question)
        return self.store.vector_search(q_vec)

    def ask(self, question: str, on_empty: Optional[str] = None) -> Answer:
        policy = on_empty or self.on_empty
        if policy not in EMPTY_CONTEXT_POLICIES:
            raise ConfigError(f"on_empty must be one of {sorted(EMPTY_CONTEXT_POLICIES)}, got {policy!r}")

        hits = self.search(question)
        context = build_context(hits)
        result = Answer(question=question, context=context, hits=hits)
        logger.info("Retrieved %d award records for %r", len(hits), question)

        if not hits and policy == "skip":
            logger.warning("No matching award records; skipping the model call")
            return result

        result.answer = self.llm.generate(build_prompt(context, question))
        return result
