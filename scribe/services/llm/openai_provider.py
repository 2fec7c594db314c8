from __future__ import annotations

import requests

from scribe.services.llm.base import BaseLLMProvider, LLMProviderError


class OpenAIProvider(BaseLLMProvider):
    """LLM provider for OpenAI and OpenAI-compatible APIs."""

    def __init__(
        self, api_key: str, model: str, base_url: str = "https://api.openai.com"
    ) -> None:
        super().__init__(logger_name="scribe.llm.openai")
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")

    def _call_api(
        self,
        prompt: str,
        temperature: float = 0.2,
        timeout: int = 120,
        system_prompt: str | None = None,
    ) -> str:
        """Make a call to the chat completions endpoint and return the response text."""
        messages = [
            {"role": "system", "content": system_prompt or "You are a helpful assistant."},
            {"role": "user", "content": prompt},
        ]
        try:
            response = requests.post(
                f"{self._base_url}/v1/chat/completions",
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json={"model": self._model, "messages": messages, "temperature": temperature},
                timeout=timeout,
            )
        except requests.RequestException as exc:
            raise LLMProviderError(f"Failed to reach {self._base_url}") from exc

        if response.status_code != 200:
            self._logger.warning("Chat completion failed: status=%s", response.status_code)
            raise LLMProviderError(f"OpenAI error: {response.status_code}")

        data = response.json()
        choices = data.get("choices", [])
        if not choices:
            raise LLMProviderError("OpenAI response missing choices")
        content = choices[0].get("message", {}).get("content", "")
        return str(content or "").strip()
