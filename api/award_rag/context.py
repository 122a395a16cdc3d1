import functools
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from .db import AwardStore
from .llm import AnswerModel, EmbeddingClient, answer_model_from_settings
from .settings import Settings

logger = logging.getLogger(__name__)


class AppContext:
    """
    One configured client per external service, shared by ingestion and queries.

    The answer model is built on first use, so ingestion never needs LLM
    credentials. Database connections are not shared: every store() block
    opens its own connection and closes it on exit.
    """

    def __init__(
        self,
        settings: Settings,
        embedder: EmbeddingClient,
        store_factory: Callable[[], AwardStore],
        llm: Optional[AnswerModel] = None,
    ):
        self.settings = settings
        self.embedder = embedder
        self.store_factory = store_factory
        self._llm = llm
        self._llm_lock = threading.Lock()

    @classmethod
    def open(cls, s: Settings) -> "AppContext":
        s.validate()
        embedder = EmbeddingClient.from_settings(s)
        return cls(settings=s, embedder=embedder, store_factory=functools.partial(AwardStore.connect, s))

    @property
    def llm(self) -> AnswerModel:
        with self._llm_lock:
            if self._llm is None:
                self._llm = answer_model_from_settings(self.settings)
            return self._llm

    @contextmanager
    def store(self) -> Iterator[AwardStore]:
        store = self.store_factory()
        try:
            yield store
        finally:
            store.close()

    def close(self):
        self.embedder.close()
        if self._llm is not None:
            self._llm.close()


@contextmanager
def app_context(s: Settings) -> Iterator[AppContext]:
    ctx = AppContext.open(s)
    try:
        yield ctx
    finally:
        ctx.close()
