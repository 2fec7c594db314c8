from scribe.services.llm.base import LLMProvider, LLMProviderError
from scribe.services.llm.ollama_provider import OllamaProvider
from scribe.services.llm.openai_provider import OpenAIProvider

__all__ = [
    "LLMProvider",
    "LLMProviderError",
    "OllamaProvider",
    "OpenAIProvider",
]
