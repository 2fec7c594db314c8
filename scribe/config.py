"""Runtime configuration.

Everything the services need from the outside world is collected here once, at
boot, and handed to ``create_app``. Services never read the environment.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

DEFAULT_ALLOWED_ORIGINS = [
    "https://vtaiwan.pages.dev",
    "http://localhost:3000",
    "http://localhost:3001",
    "http://localhost:8080",
    "https://vtaiwan.tw",
    "https://www.vtaiwan.tw",
    "https://talk.vtaiwan.tw",
]

_logger = logging.getLogger("scribe.config")


@dataclass
class JaasConfig:
    app_id: str = ""
    key_id: str = ""
    private_key: str = ""
    token_ttl_seconds: int = 3600

    def missing_fields(self) -> list[str]:
        names = {"app_id": "JAAS_APP_ID", "key_id": "JAAS_KEY_ID", "private_key": "JAAS_PRIVATE_KEY"}
        return [env for attr, env in names.items() if not getattr(self, attr)]


@dataclass
class LLMConfig:
    # "provider:model" in config.json, e.g. "openai:gpt-4o-mini"
    provider: str = ""
    model: str = ""
    api_key: str = ""
    base_url: str = ""
    language: str = "Traditional Chinese (Taiwan)"


@dataclass
class AppConfig:
    data_dir: str = ""
    allowed_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    jaas: JaasConfig = field(default_factory=JaasConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)


def _split_model(selected: str) -> tuple[str, str]:
    if ":" not in selected:
        return selected.strip().lower(), ""
    provider, model = selected.split(":", 1)
    return provider.strip().lower(), model.strip()


def load_config(config_path: str, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build an ``AppConfig`` from ``config.json`` overlaid with environment variables.

    A missing file yields defaults; an unreadable one is an error.
    """
    environ = os.environ if environ is None else environ
    raw: dict = {}
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as config_file:
            raw = json.load(config_file)
        _logger.info("Config loaded: path=%s keys=%s", config_path, sorted(raw.keys()))
    else:
        _logger.info("Config file missing, using defaults: path=%s", config_path)

    config = AppConfig(data_dir=raw.get("data_dir", ""))
    if raw.get("allowed_origins"):
        config.allowed_origins = list(raw["allowed_origins"])

    jaas = raw.get("jaas", {})
    config.jaas = JaasConfig(
        app_id=jaas.get("app_id", ""),
        key_id=jaas.get("key_id", ""),
        private_key=jaas.get("private_key", ""),
        token_ttl_seconds=int(jaas.get("token_ttl_seconds", 3600)),
    )

    llm = raw.get("llm", {})
    provider, model = _split_model(llm.get("selected_model", ""))
    config.llm = LLMConfig(
        provider=provider,
        model=model,
        api_key=llm.get("api_key", ""),
        base_url=llm.get("base_url", ""),
        language=llm.get("language", LLMConfig.language),
    )

    if environ.get("SCRIBE_DATA_DIR"):
        config.data_dir = environ["SCRIBE_DATA_DIR"]
    if environ.get("SCRIBE_ALLOWED_ORIGINS"):
        config.allowed_origins = [
            origin.strip() for origin in environ["SCRIBE_ALLOWED_ORIGINS"].split(",") if origin.strip()
        ]
    config.jaas.app_id = environ.get("JAAS_APP_ID", config.jaas.app_id)
    config.jaas.key_id = environ.get("JAAS_KEY_ID", config.jaas.key_id)
    config.jaas.private_key = environ.get("JAAS_PRIVATE_KEY", config.jaas.private_key)
    if environ.get("SCRIBE_LLM_PROVIDER"):
        config.llm.provider, model = _split_model(environ["SCRIBE_LLM_PROVIDER"])
        config.llm.model = model or config.llm.model
    config.llm.model = environ.get("SCRIBE_LLM_MODEL", config.llm.model)
    config.llm.api_key = environ.get("SCRIBE_LLM_API_KEY", config.llm.api_key)
    config.llm.base_url = environ.get("SCRIBE_LLM_BASE_URL", config.llm.base_url)
    return config
