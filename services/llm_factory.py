#File: services/llm_factory.py
import os
import logging
from typing import Dict, Optional, Union
from openai import OpenAI, AzureOpenAI

logger = logging.getLogger(__name__)


class LLMProvider:
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    AZURE = "azure"
    LOCAL = "local"

    ALL = (OPENAI, OPENROUTER, AZURE, LOCAL)


# provider -> (model env var, fallback model)
_DEFAULT_MODELS = {
    LLMProvider.OPENAI: ("OPENAI_MODEL", "gpt-4o-mini"),
    LLMProvider.OPENROUTER: ("OPENROUTER_MODEL", "google/gemini-2.0-flash-001"),
    LLMProvider.AZURE: ("AZURE_OPENAI_DEPLOYMENT", "gpt-4o-mini"),
    LLMProvider.LOCAL: ("LOCAL_MODEL", "llama3"),
}


class LLMFactory:
    """
    Builds OpenAI-compatible clients for the oracle.
    The caller owns the returned client and is responsible for closing it;
    the pipeline builds exactly one per run.
    """

    @staticmethod
    def _resolve(provider: str, api_key: Optional[str], base_url: Optional[str],
                 azure_endpoint: Optional[str], api_version: Optional[str]) -> Dict[str, Optional[str]]:
        """Fill connection settings from the environment. Raises ValueError on missing credentials."""
        if provider == LLMProvider.OPENAI:
            api_key = api_key or os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise ValueError("OPENAI_API_KEY not set")
            return {"api_key": api_key, "base_url": base_url}

        if provider == LLMProvider.OPENROUTER:
            api_key = api_key or os.getenv("OPENROUTER_API_KEY")
            if not api_key:
                raise ValueError("OPENROUTER_API_KEY not set")
            return {"api_key": api_key, "base_url": base_url or "https://openrouter.ai/api/v1"}

        if provider == LLMProvider.LOCAL:
            # Ollama ignores the key but the SDK requires one
            return {
                "api_key": "ollama",
                "base_url": base_url or os.getenv("LOCAL_LLM_URL", "http://localhost:11434/v1"),
            }

        if provider == LLMProvider.AZURE:
            api_key = api_key or os.getenv("AZURE_OPENAI_API_KEY")
            azure_endpoint = azure_endpoint or os.getenv("AZURE_OPENAI_ENDPOINT")
            if not api_key or not azure_endpoint:
                raise ValueError("AZURE_OPENAI_API_KEY and AZURE_OPENAI_ENDPOINT must be set")
            return {
                "api_key": api_key,
                "azure_endpoint": azure_endpoint,
                "api_version": api_version or os.getenv("AZURE_OPENAI_API_VERSION", "2024-10-21"),
            }

        raise ValueError(f"Unknown LLM provider: {provider} (expected one of {', '.join(LLMProvider.ALL)})")

    @staticmethod
    def build_client(provider: str = LLMProvider.OPENAI, **kwargs) -> Union[OpenAI, AzureOpenAI]:
        """
        Create a client for the specified provider.
        PDF extraction requests are large, hence the long default timeout.
        """
        config = LLMFactory._resolve(
            provider,
            kwargs.get("api_key"),
            kwargs.get("base_url"),
            kwargs.get("azure_endpoint"),
            kwargs.get("api_version"),
        )
        timeout = kwargs.get("timeout", 120.0)
        max_retries = kwargs.get("max_retries", 2)

        logger.info(f"Initializing LLM Client for provider: {provider}")
        if provider == LLMProvider.AZURE:
            return AzureOpenAI(timeout=timeout, max_retries=max_retries, **config)
        return OpenAI(timeout=timeout, max_retries=max_retries, **config)

    @staticmethod
    def get_default_model(provider: str) -> str:
        env_var, fallback = _DEFAULT_MODELS.get(provider, ("OPENAI_MODEL", "gpt-4o-mini"))
        return os.getenv(env_var, fallback)
