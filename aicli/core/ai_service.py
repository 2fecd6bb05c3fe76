# aicli/aicli/core/ai_service.py
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..cache.cache_manager import CacheManager
from ..providers.anthropic_client import generate_with_anthropic
from ..providers.gemini_client import GEMINI_ENDPOINT, generate_with_gemini
from ..providers.local_ollama import generate_with_ollama
from ..providers.openai_client import generate_with_openai
from ..utils.prompt import build_prompt
from ..utils.redact import redact_text
from ..utils.schema import OSInfo, ResolvedCommand
from .parser import AIResponseParser

log = logging.getLogger(__name__)

MULTI_STEP = re.compile(r"\bthen\b|\band\b|\bafter that\b|\bfollowed by\b", re.I)

# auto-selection order when no provider is named
_KEYED_PROVIDERS = (
    ("gemini", "GEMINI_API_KEY"),
    ("openai", "OPENAI_API_KEY"),
    ("anthropic", "ANTHROPIC_API_KEY"),
)
KNOWN_PROVIDERS = ("gemini", "openai", "anthropic", "local")


def wants_multiple_steps(user_input: str) -> bool:
    return bool(MULTI_STEP.search(user_input or ""))


@dataclass(frozen=True)
class ProviderSettings:
    name: str
    model: str
    api_key: str = ""
    endpoint: str = ""
    temperature: float = 0.2
    max_tokens: int = 256
    learning_max_tokens: int = 800
    timeout: float = 30.0
    redact: bool = True

    @property
    def is_cloud(self) -> bool:
        return self.name != "local"


def _api_key(ai_cfg: Dict[str, Any], name: str) -> str:
    env_name = dict(_KEYED_PROVIDERS).get(name, "")
    key = os.environ.get(env_name, "") if env_name else ""
    return (key or str((ai_cfg.get(name) or {}).get("api_key") or "")).strip()


def select_provider(cfg: Dict[str, Any]) -> Optional[ProviderSettings]:
    """
    Pick the AI backend from config + environment.

    An explicit ai.provider / AIC_PROVIDER wins (and still needs a key unless
    it is "local"); otherwise the first keyed provider with a credential.
    Returns None when nothing usable is configured.
    """
    ai_cfg = cfg.get("ai", {}) or {}
    wanted = str(os.environ.get("AIC_PROVIDER") or ai_cfg.get("provider") or "").strip().lower()

    if wanted and wanted not in KNOWN_PROVIDERS:
        log.warning("unknown AI provider %r; expected one of %s", wanted, ", ".join(KNOWN_PROVIDERS))
        return None

    if wanted:
        name = wanted
    else:
        name = next((n for n, _ in _KEYED_PROVIDERS if _api_key(ai_cfg, n)), "")
        if not name:
            return None

    key = "" if name == "local" else _api_key(ai_cfg, name)
    if name != "local" and not key:
        log.info("AI provider %s selected but no API key configured", name)
        return None

    sub = ai_cfg.get(name) or {}
    endpoint = sub.get("host", "") if name == "local" else sub.get("endpoint", "")
    if name == "gemini" and not endpoint:
        endpoint = GEMINI_ENDPOINT
    return ProviderSettings(
        name=name,
        model=str(sub.get("model", "")),
        api_key=key,
        endpoint=str(endpoint or ""),
        temperature=float(ai_cfg.get("temperature", 0.2)),
        max_tokens=int(ai_cfg.get("max_tokens", 256)),
        learning_max_tokens=int(ai_cfg.get("learning_max_tokens", 800)),
        timeout=float(ai_cfg.get("timeout", 30.0)),
        redact=bool(ai_cfg.get("redact", True)),
    )


def call_provider(provider: ProviderSettings, prompt: str, learning_mode: bool = False) -> Optional[str]:
    max_tokens = provider.learning_max_tokens if learning_mode else provider.max_tokens
    common = dict(temperature=provider.temperature, max_tokens=max_tokens, timeout=provider.timeout)
    if provider.name == "gemini":
        return generate_with_gemini(prompt, provider.model, provider.api_key, endpoint=provider.endpoint, **common)
    if provider.name == "openai":
        return generate_with_openai(prompt, provider.model, provider.api_key, **common)
    if provider.name == "anthropic":
        return generate_with_anthropic(prompt, provider.model, provider.api_key, **common)
    if provider.name == "local":
        return generate_with_ollama(prompt, provider.model, host=provider.endpoint, **common)
    return None


class AIService:
    """Terminal tier: cache first, then one provider call, then the parser."""

    def __init__(
        self,
        cache: CacheManager,
        provider: Optional[ProviderSettings],
        parser: Optional[AIResponseParser] = None,
    ):
        self.cache = cache
        self.provider = provider
        self.parser = parser or AIResponseParser()

    def is_configured(self) -> bool:
        return self.provider is not None

    def generate_command(self, user_input: str, os_info: OSInfo, learning_mode: bool = False) -> Optional[ResolvedCommand]:
        try:
            wants_multiple = wants_multiple_steps(user_input)

            cached = self.cache.get(user_input, os_info, learning_mode)
            if cached:
                log.debug("cache hit")
                return self.parser.parse(cached, wants_multiple, learning_mode)

            if self.provider is None:
                log.debug("no AI provider configured")
                return None

            request = user_input
            if self.provider.is_cloud and self.provider.redact:
                request = redact_text(user_input)
            prompt = build_prompt(request, os_info, wants_multiple, learning_mode)

            response = call_provider(self.provider, prompt, learning_mode)
            if not response:
                return None

            parsed = self.parser.parse(response, wants_multiple, learning_mode)
            if parsed is not None:
                self.cache.set(user_input, os_info, learning_mode, response)
            return parsed
        except Exception as e:
            log.error("AI service error: %s", redact_text(str(e)))
            return None
