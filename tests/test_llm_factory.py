# tests/test_llm_factory.py
import pytest

from clients.semantic_oracle import SemanticOracle
from services.llm_factory import LLMFactory, LLMProvider


def test_unknown_provider_is_rejected():
    with pytest.raises(ValueError):
        LLMFactory.build_client("gemini")


def test_missing_openai_key_is_rejected(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ValueError):
        LLMFactory.build_client(LLMProvider.OPENAI)


def test_local_provider_needs_no_key(monkeypatch):
    monkeypatch.setenv("LOCAL_LLM_URL", "http://localhost:11434/v1")
    monkeypatch.setenv("LOCAL_MODEL", "llama3")

    oracle = SemanticOracle.from_provider(LLMProvider.LOCAL)
    try:
        assert oracle.default_model == "llama3"
        assert str(oracle.client.base_url).startswith("http://localhost:11434/v1")
    finally:
        oracle.close()
