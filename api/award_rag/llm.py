import logging
from typing import List, Optional

from openai import OpenAI
from google import genai

from .errors import ConfigError
from .settings import Settings

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = (
    "Answer the question based on only the following context:\n"
    "{context}\n"
    "Question: {question}"
)


def build_prompt(context: str, question: str) -> str:
    return PROMPT_TEMPLATE.format(context=context, question=question)


# ==== OpenAI (Embeddings) ====

# embed("In the 2024 Oscar Awards, ...") -> [0.0123, -0.0456, ...]  # 1536 floats
class EmbeddingClient:
    def __init__(self, api_key: str, model: str, client: Optional[OpenAI] = None):
        if not api_key and client is None:
            raise ConfigError("OPENAI_API_KEY not set")
        self.model = model
        self._client = client or OpenAI(api_key=api_key)

    @classmethod
    def from_settings(cls, s: Settings) -> "EmbeddingClient":
        return cls(s.openai_api_key, s.openai_embed_model)

    def embed(self, text: str) -> List[float]:
        # single input per call; errors from the API propagate to the caller
        resp = self._client.embeddings.create(model=self.model, input=[text])
        return list(resp.data[0].embedding)

    def close(self):
        self._client.close()


# ==== Generation (OpenAI chat / Gemini) ====

class AnswerModel:
    """Turns a rendered prompt into answer text."""

    def generate(self, prompt: str) -> str:
        raise NotImplementedError

    def close(self):
        pass


class OpenAIAnswerModel(AnswerModel):
    def __init__(self, api_key: str, model: str, temperature: float = 0.2, client: Optional[OpenAI] = None):
        if not api_key and client is None:
            raise ConfigError("OPENAI_API_KEY not set")
        self.model = model
        self.temperature = temperature
        self._client = client or OpenAI(api_key=api_key)

    def generate(self, prompt: str) -> str:
        resp = self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
        )
        return resp.choices[0].message.content or ""

    def close(self):
        self._client.close()


class GeminiAnswerModel(AnswerModel):
    def __init__(self, api_key: str, model: str, temperature: float = 0.2, client=None):
        if not api_key and client is None:
            raise ConfigError("GOOGLE_API_KEY (or GEMINI_API_KEY) not set")
        self.model = model
        self.temperature = temperature
        self._client = client or genai.Client(api_key=api_key)

    def generate(self, prompt: str) -> str:
        response = self._client.models.generate_content(
            model=self.model,
            contents=prompt,
            config={"temperature": self.temperature},
        )
        # New SDK returns object with .text
        return getattr(response, "text", None) or ""


def answer_model_from_settings(s: Settings) -> AnswerModel:
    if s.llm_provider == "openai":
        return OpenAIAnswerModel(s.openai_api_key, s.openai_chat_model, s.llm_temperature)
    if s.llm_provider == "gemini":
        return GeminiAnswerModel(s.google_api_key, s.gemini_model, s.llm_temperature)
    raise ConfigError(f"Unknown LLM_PROVIDER {s.llm_provider!r}")
