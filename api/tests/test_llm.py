from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from award_rag.errors import ConfigError
from award_rag.llm import (
    EmbeddingClient,
    GeminiAnswerModel,
    OpenAIAnswerModel,
    answer_model_from_settings,
)
from award_rag.settings import Settings


def test_embed_sends_single_input():
    client = MagicMock()
    client.embeddings.create.return_value = SimpleNamespace(data=[SimpleNamespace(embedding=[0.1, 0.2])])

    embedder = EmbeddingClient("key", "text-embedding-3-small", client=client)

    assert embedder.embed("hello") == [0.1, 0.2]
    client.embeddings.create.assert_called_once_with(model="text-embedding-3-small", input=["hello"])


def test_embed_errors_propagate():
    client = MagicMock()
    client.embeddings.create.side_effect = RuntimeError("401 unauthorized")
    with pytest.raises(RuntimeError):
        EmbeddingClient("key", "m", client=client).embed("hello")


def test_missing_openai_key():
    with pytest.raises(ConfigError):
        EmbeddingClient("", "m")
    with pytest.raises(ConfigError):
        OpenAIAnswerModel("", "m")


def test_openai_answer():
    client = MagicMock()
    message = SimpleNamespace(content="Robert Downey Jr.")
    client.chat.completions.create.return_value = SimpleNamespace(choices=[SimpleNamespace(message=message)])

    model = OpenAIAnswerModel("key", "gpt-4o-mini", temperature=0.0, client=client)

    assert model.generate("prompt") == "Robert Downey Jr."
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]
    assert kwargs["model"] == "gpt-4o-mini"


def test_gemini_answer():
    client = MagicMock()
    client.models.generate_content.return_value = SimpleNamespace(text="Robert Downey Jr.")

    model = GeminiAnswerModel("key", "gemini-2.5-flash-lite", client=client)

    assert model.generate("prompt") == "Robert Downey Jr."
    kwargs = client.models.generate_content.call_args.kwargs
    assert kwargs["contents"] == "prompt"


def test_missing_gemini_key():
    with pytest.raises(ConfigError):
        GeminiAnswerModel("", "m")


def test_unknown_provider():
    with pytest.raises(ConfigError):
        answer_model_from_settings(Settings(llm_provider="llama"))
