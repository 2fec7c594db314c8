import logging
from typing import Optional

from scribe.config import LLMConfig
from scribe.services.llm import LLMProvider, LLMProviderError, OllamaProvider, OpenAIProvider


class OutlineService:
    """Turns transcript text into an outline with the configured model.

    Provider selection follows ``LLMConfig.provider``:
    - ``openai``: hosted API, needs an api key
    - ``lmstudio``: OpenAI-compatible local server
    - ``ollama``: Ollama generate API
    """

    def __init__(self, config: LLMConfig, provider: Optional[LLMProvider] = None) -> None:
        self._config = config
        self._provider = provider
        self._logger = logging.getLogger("scribe.outline")

    @property
    def configured(self) -> bool:
        return self._provider is not None or bool(self._config.provider and self._config.model)

    def _get_provider(self) -> LLMProvider:
        if self._provider is not None:
            return self._provider

        provider_name = self._config.provider
        model_id = self._config.model
        base_url = self._config.base_url
        if not provider_name or not model_id:
            raise LLMProviderError(
                "No AI model configured. Set llm.selected_model in config.json "
                "or SCRIBE_LLM_PROVIDER / SCRIBE_LLM_MODEL."
            )

        if provider_name == "ollama":
            return OllamaProvider(base_url=base_url or "http://127.0.0.1:11434", model=model_id)

        if provider_name == "openai":
            if not self._config.api_key:
                raise LLMProviderError("Missing OpenAI API key (SCRIBE_LLM_API_KEY).")
            return OpenAIProvider(
                api_key=self._config.api_key,
                model=model_id,
                base_url=base_url or "https://api.openai.com",
            )

        if provider_name == "lmstudio":
            return OpenAIProvider(
                api_key="lmstudio",
                model=model_id,
                base_url=base_url or "http://127.0.0.1:1234",
            )

        raise LLMProviderError(f"Unknown provider: {provider_name}")

    def generate(self, text: str) -> str:
        if not text.strip():
            raise LLMProviderError("Transcript is empty")
        provider = self._get_provider()
        self._logger.info(
            "Outline using provider=%s chars=%s", provider.__class__.__name__, len(text)
        )
        return provider.outline(text, self._config.language)
