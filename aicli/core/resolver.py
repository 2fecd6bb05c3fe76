# aicli/aicli/core/resolver.py
from __future__ import annotations

import logging
from typing import Optional

from ..plugins.manager import PluginManager
from ..storage.vault import Vault
from ..utils.schema import OSInfo, ResolvedCommand
from .ai_service import AIService, wants_multiple_steps
from .rules import BuiltinRules

log = logging.getLogger(__name__)

DEFAULT_MIN_VAULT_CONFIDENCE = 0.6


class Resolver:
    """
    Turns a request into a command sequence. Tiers, first hit wins:
    plugin rules, the vault, built-in rules, then the AI gateway.
    """

    def __init__(
        self,
        plugins: PluginManager,
        vault: Vault,
        ai: AIService,
        rules: Optional[BuiltinRules] = None,
        min_confidence: float = DEFAULT_MIN_VAULT_CONFIDENCE,
    ):
        self.plugins = plugins
        self.vault = vault
        self.ai = ai
        self.rules = rules or BuiltinRules()
        self.min_confidence = min_confidence

    def resolve(
        self,
        user_input: str,
        os_info: OSInfo,
        learning_mode: bool = False,
        suggest_mode: bool = False,
    ) -> Optional[ResolvedCommand]:
        normalized = (user_input or "").lower().strip()
        if not normalized:
            return None

        hit = self._from_plugins(user_input, os_info)
        if hit is not None:
            return hit

        if not suggest_mode:
            hit = self._from_vault(normalized)
            if hit is not None:
                return hit

        if not wants_multiple_steps(normalized):
            hit = self._from_rules(normalized, os_info)
            if hit is not None:
                return hit

        try:
            return self.ai.generate_command(user_input, os_info, learning_mode)
        except Exception as e:
            log.error("AI tier failed: %s", e)
            return None

    def _from_plugins(self, user_input: str, os_info: OSInfo) -> Optional[ResolvedCommand]:
        try:
            self.plugins.init()
            hit = self.plugins.get_rules(user_input, os_info)
        except Exception as e:
            log.warning("plugin tier failed: %s", e)
            return None
        if hit is None:
            return None
        log.debug("resolved by plugin rule")
        return hit.model_copy(update={"source": "rule"})

    def _from_vault(self, normalized: str) -> Optional[ResolvedCommand]:
        try:
            matches = self.vault.search(normalized)
        except Exception as e:
            log.warning("vault tier failed: %s", e)
            return None
        if not matches:
            return None
        best = matches[0]
        if best.confidence < self.min_confidence:
            log.debug("vault match %s below confidence threshold (%.2f)", best.id, best.confidence)
            return None
        log.debug("resolved from vault entry %s", best.id)
        return ResolvedCommand(
            commands=best.commands,
            explanation=best.description,
            tags=best.tags,
            confidence=best.confidence,
            source="vault",
            variables=best.variables,
            vault_id=best.id,
        )

    def _from_rules(self, normalized: str, os_info: OSInfo) -> Optional[ResolvedCommand]:
        try:
            hit = self.rules.apply(normalized, os_info)
        except Exception as e:
            log.warning("built-in rule tier failed: %s", e)
            return None
        if hit is not None:
            log.debug("resolved by built-in rule")
        return hit
