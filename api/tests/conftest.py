import csv
import hashlib
from typing import List

import pytest

from award_rag.context import AppContext
from award_rag.db import SearchHit
from award_rag.settings import Settings

SNAKE_HEADER = ["year_film", "year_ceremony", "ceremony", "category", "name", "film", "winner"]
CAMEL_HEADER = ["yearFilm", "yearCeremony", "ceremony", "category", "name", "film", "winner"]

SAMPLE_ROWS = [
    ["2023", "2024", "96", "ACTOR IN A SUPPORTING ROLE", "Robert Downey Jr.", "Oppenheimer", "True"],
    ["2023", "2024", "96", "ACTOR IN A SUPPORTING ROLE", "Ryan Gosling", "Barbie", "False"],
    ["2022", "2023", "95", "ACTRESS IN A SUPPORTING ROLE", "Jamie Lee Curtis", "Everything Everywhere All at Once", "TRUE"],
    ["2021", "2022", "94", "ACTOR IN A LEADING ROLE", "Will Smith", "King Richard", "True"],
    ["2023", "2024", "96", "HONORARY AWARD", "Angela Bassett", "", "True"],
    ["2023", "2024", "96", "BEST PICTURE", "", "Oppenheimer", "True"],
]


def write_csv(path, header, rows):
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        writer.writerows(rows)
    return path


class FakeEmbedder:
    def __init__(self, dim: int = 8, fail_on: str = ""):
        self.dim = dim
        self.fail_on = fail_on
        self.calls: List[str] = []

    def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail_on and self.fail_on in text:
            raise RuntimeError("embedding service unavailable")
        digest = hashlib.sha256(text.encode()).digest()
        return [b / 255.0 for b in digest[: self.dim]]

    def close(self):
        pass


class FakeStore:
    def __init__(self, hits=None, fail_on: str = ""):
        self.rows = []
        self.hits = hits or []
        self.fail_on = fail_on
        self.queries = []
        self.pinged = False
        self.schema_created = False
        self.closed = 0

    def insert_award(self, record):
        if self.fail_on and record.name == self.fail_on:
            raise RuntimeError("insert failed")
        self.rows.append(record)
        return len(self.rows)

    def vector_search(self, q_vec):
        self.queries.append(q_vec)
        return list(self.hits)

    def ping(self):
        self.pinged = True

    def ensure_schema(self):
        self.schema_created = True

    def close(self):
        self.closed += 1


class FakeLLM:
    def __init__(self, reply: str = "Robert Downey Jr."):
        self.reply = reply
        self.prompts: List[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply

    def close(self):
        pass


@pytest.fixture
def awards_csv(tmp_path):
    return write_csv(tmp_path / "the_oscar_award.csv", SNAKE_HEADER, SAMPLE_ROWS)


@pytest.fixture
def camel_csv(tmp_path):
    return write_csv(tmp_path / "awards_camel.csv", CAMEL_HEADER, SAMPLE_ROWS)


@pytest.fixture
def hits():
    return [
        SearchHit(id=1, description="In the 2024 Oscar Awards, the category ACTOR IN A SUPPORTING ROLE "
                                    "was nominated Robert Downey Jr. and won the award.", score=0.91),
        SearchHit(id=2, description="In the 2024 Oscar Awards, the category ACTOR IN A SUPPORTING ROLE "
                                    "was nominated Ryan Gosling and did not win the award.", score=0.88),
    ]


@pytest.fixture
def fake_store(hits):
    return FakeStore(hits=hits)


@pytest.fixture
def fake_ctx(fake_store):
    return AppContext(
        settings=Settings(openai_api_key="test-key"),
        embedder=FakeEmbedder(),
        store_factory=lambda: fake_store,
        llm=FakeLLM(),
    )
