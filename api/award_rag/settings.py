import os
from dataclasses import dataclass

from .errors import ConfigError

LLM_PROVIDERS = {"openai", "gemini"}
EMPTY_CONTEXT_POLICIES = {"skip", "call"}
CSV_COLUMN_LAYOUTS = {"auto", "snake", "camel"}


@dataclass
class Settings:
    pg_host: str = os.getenv("PGHOST", "localhost")
    pg_port: int = int(os.getenv("PGPORT", "5432"))
    pg_db: str = os.getenv("PGDATABASE", "awards")
    pg_user: str = os.getenv("PGUSER", "awards")
    pg_password: str = os.getenv("PGPASSWORD", "awardspw")

    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    openai_embed_model: str = os.getenv("OPENAI_EMBED_MODEL", "text-embedding-3-small")
    embed_dimensions: int = int(os.getenv("EMBED_DIMENSIONS", "1536"))

    llm_provider: str = os.getenv("LLM_PROVIDER", "openai")
    openai_chat_model: str = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")
    google_api_key: str = os.getenv("GOOGLE_API_KEY", os.getenv("GEMINI_API_KEY", ""))
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash-lite")
    llm_temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.2"))

    awards_csv: str = os.getenv("AWARDS_CSV", os.path.join("data", "the_oscar_award.csv"))
    csv_columns: str = os.getenv("CSV_COLUMNS", "auto")
    min_ceremony_year: int = int(os.getenv("MIN_CEREMONY_YEAR", "2023"))
    ingest_workers: int = int(os.getenv("INGEST_WORKERS", "1"))

    vector_index: str = os.getenv("VECTOR_INDEX", "award_embeddings_index")
    vector_path: str = os.getenv("VECTOR_PATH", "award_embeddings")
    vector_num_candidates: int = int(os.getenv("VECTOR_NUM_CANDIDATES", "200"))
    vector_limit: int = int(os.getenv("VECTOR_LIMIT", "10"))
    empty_context_policy: str = os.getenv("EMPTY_CONTEXT_POLICY", "skip")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def dsn(self) -> str:
        return (
            f"host={self.pg_host} port={self.pg_port} dbname={self.pg_db} "
            f"user={self.pg_user} password={self.pg_password}"
        )

    def validate(self) -> "Settings":
        if self.llm_provider not in LLM_PROVIDERS:
            raise ConfigError(f"LLM_PROVIDER must be one of {sorted(LLM_PROVIDERS)}, got {self.llm_provider!r}")
        if self.empty_context_policy not in EMPTY_CONTEXT_POLICIES:
            raise ConfigError(
                f"EMPTY_CONTEXT_POLICY must be one of {sorted(EMPTY_CONTEXT_POLICIES)}, "
                f"got {self.empty_context_policy!r}"
            )
        if self.csv_columns not in CSV_COLUMN_LAYOUTS:
            raise ConfigError(f"CSV_COLUMNS must be one of {sorted(CSV_COLUMN_LAYOUTS)}, got {self.csv_columns!r}")
        if self.ingest_workers < 1:
            raise ConfigError("INGEST_WORKERS must be >= 1")
        if self.vector_limit < 1 or self.vector_num_candidates < self.vector_limit:
            raise ConfigError("VECTOR_NUM_CANDIDATES must be >= VECTOR_LIMIT >= 1")
        return self


settings = Settings()
