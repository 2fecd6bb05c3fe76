# aicli/aicli/doctor.py
from __future__ import annotations

import os
from typing import Any, Dict

from rich.console import Console
from rich.table import Table

from .core.ai_service import select_provider
from .utils.config import config_path
from .utils.os_adapter import detect_os, is_command_available
from .utils.redact import mask


def run_doctor(cfg: Dict[str, Any], console: Console) -> int:
    """Print provider, key and path diagnostics. Keys are always masked."""
    ai_cfg = cfg.get("ai", {}) or {}
    provider = select_provider(cfg)
    os_info = detect_os()

    t = Table(title="aicli doctor", show_header=False)
    t.add_column("key", style="bold")
    t.add_column("value")
    t.add_row("config", str(config_path()))
    t.add_row("platform", f"{os_info.platform} / {os_info.arch} / {os_info.shell or '?'}")
    t.add_row("requested provider", os.getenv("AIC_PROVIDER") or str(ai_cfg.get("provider") or "(auto)"))
    t.add_row("active provider", f"{provider.name} ({provider.model})" if provider else "[red]none[/red]")
    t.add_row("GEMINI_API_KEY", mask(os.getenv("GEMINI_API_KEY", "")))
    t.add_row("OPENAI_API_KEY", mask(os.getenv("OPENAI_API_KEY", "")))
    t.add_row("ANTHROPIC_API_KEY", mask(os.getenv("ANTHROPIC_API_KEY", "")))
    t.add_row("OLLAMA_HOST", str((ai_cfg.get("local") or {}).get("host", "")))
    t.add_row("timeout", f"{ai_cfg.get('timeout', 30)}s")
    t.add_row("redact prompts", "yes" if ai_cfg.get("redact", True) else "no")
    t.add_row("cache", str((cfg.get("cache") or {}).get("path", "")))
    t.add_row("vault", str((cfg.get("vault") or {}).get("path", "")))
    t.add_row("plugins dir", str((cfg.get("plugins") or {}).get("dir", "")))
    t.add_row("git available", "yes" if is_command_available("git") else "no")
    console.print(t)
    return 0 if provider else 1
