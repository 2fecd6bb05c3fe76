# aicli/aicli/context.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from .cache.cache_manager import CacheManager
from .core.ai_service import AIService, select_provider
from .core.parser import AIResponseParser
from .core.resolver import Resolver
from .plugins.manager import PluginManager
from .safety.validator import SafetyValidator
from .storage.vault import Vault
from .utils.prompt import PROMPT_VERSION


@dataclass
class AppContext:
    config: Dict[str, Any]
    plugins: PluginManager
    vault: Vault
    cache: CacheManager
    ai: AIService
    resolver: Resolver
    validator: SafetyValidator


def build_context(cfg: Dict[str, Any]) -> AppContext:
    """Wire the service graph once from a merged config dict."""
    provider = select_provider(cfg)
    model_id = f"{provider.name}:{provider.model}" if provider else ""

    cache_cfg = cfg.get("cache", {}) or {}
    cache = CacheManager(
        cache_cfg.get("path", "~/.ai-cli/cache.json"),
        ttl_seconds=int(cache_cfg.get("ttl_seconds", 3600)),
        max_entries=int(cache_cfg.get("max_entries", 500)),
        model_id=model_id,
        prompt_version=PROMPT_VERSION,
    )

    plug_cfg = cfg.get("plugins", {}) or {}
    plugins = PluginManager(
        plug_cfg.get("dir") or None,
        entry_point_group=plug_cfg.get("entry_point_group", "aicli.plugins"),
    )

    vault_cfg = cfg.get("vault", {}) or {}
    vault = Vault(vault_cfg.get("path", "~/.ai-cli/vault.json"))

    ai = AIService(cache, provider, AIResponseParser())
    resolver = Resolver(
        plugins,
        vault,
        ai,
        min_confidence=float(vault_cfg.get("min_confidence", 0.6)),
    )
    return AppContext(
        config=cfg,
        plugins=plugins,
        vault=vault,
        cache=cache,
        ai=ai,
        resolver=resolver,
        validator=SafetyValidator(plugins),
    )
