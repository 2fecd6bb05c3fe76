# aicli/providers/local_ollama.py
from __future__ import annotations

import logging
from typing import Optional

import requests

log = logging.getLogger(__name__)


def _normalize_base(u: Optional[str]) -> str:
    u = (u or "").strip()
    if not u:
        return "http://127.0.0.1:11434"
    if not (u.startswith("http://") or u.startswith("https://")):
        u = "http://" + u
    return u.rstrip("/")


def _clean_tag(tag: Optional[str]) -> str:
    """Strip whitespace and any accidental shell quotes from a model tag."""
    if not tag:
        return ""
    return tag.strip().strip('"').strip("'")


def generate_with_ollama(
    prompt: str,
    model: str,
    host: str = "",
    temperature: float = 0.2,
    max_tokens: int = 256,
    timeout: float = 30.0,
) -> Optional[str]:
    """Single /api/generate call with stream disabled."""
    model = _clean_tag(model)
    if not model:
        log.warning("ollama: empty model tag")
        return None

    body = {
        "model": model,  # unquoted clean tag
        "prompt": prompt,
        "stream": False,
        "options": {"temperature": temperature, "num_predict": max_tokens},
    }
    try:
        r = requests.post(f"{_normalize_base(host)}/api/generate", json=body, timeout=timeout)
    except requests.RequestException as e:
        log.warning("ollama unreachable: %s", e)
        return None

    if not r.ok:
        # common: 404 model not pulled, 500 OOM
        log.warning("ollama error %s: %s", r.status_code, r.text[:200])
        return None

    try:
        raw = r.json().get("response", "") or ""
    except (ValueError, AttributeError) as e:
        log.warning("ollama bad json: %s", e)
        return None
    return raw.strip() or None
