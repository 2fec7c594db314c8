from __future__ import annotations

import logging
from abc import ABC, abstractmethod


class LLMProviderError(RuntimeError):
    pass


class LLMProvider(ABC):
    @abstractmethod
    def outline(self, transcript: str, language: str) -> str:
        raise NotImplementedError


class BaseLLMProvider(LLMProvider):
    """Base implementation with shared prompts and response handling.

    Subclasses only need to implement _call_api() for their specific API client.
    """

    PROMPTS = {
        "outline_system": (
            "You organize meeting transcripts into concise outlines. "
            "Write in {language}. Group related points under short headings, "
            "list decisions and open questions, and keep speaker names as given."
        ),
        "outline": (
            "Organize the following meeting transcript into a structured outline "
            "of its key points. Return Markdown only.\n\n"
            "Transcript:\n{transcript}"
        ),
    }

    def __init__(self, logger_name: str = "scribe.llm") -> None:
        self._logger = logging.getLogger(logger_name)

    @abstractmethod
    def _call_api(
        self,
        prompt: str,
        temperature: float = 0.2,
        timeout: int = 120,
        system_prompt: str | None = None,
    ) -> str:
        """Make an API call and return the raw response text.

        Args:
            prompt: The user prompt to send
            temperature: Sampling temperature (0.0-1.0)
            timeout: Request timeout in seconds
            system_prompt: Optional system prompt

        Returns:
            The response text content
        """
        raise NotImplementedError

    @staticmethod
    def _strip_markdown_code_blocks(text: str) -> str:
        """Remove a fenced code block wrapper around the whole response."""
        text = text.strip()
        if not text.startswith("```"):
            return text
        lines = [line for line in text.split("\n") if not line.startswith("```")]
        return "\n".join(lines).strip()

    def outline(self, transcript: str, language: str) -> str:
        prompt = self.PROMPTS["outline"].format(transcript=transcript)
        system = self.PROMPTS["outline_system"].format(language=language)
        content = self._call_api(prompt, temperature=0.2, timeout=120, system_prompt=system)
        text = self._strip_markdown_code_blocks(content)
        if not text:
            raise LLMProviderError("Model returned an empty outline")
        return text
