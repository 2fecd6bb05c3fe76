# aicli/providers/anthropic_client.py
from __future__ import annotations

import logging
import os
from typing import Optional

import requests

from ..utils.redact import redact_text

log = logging.getLogger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
API_VERSION = os.environ.get("ANTHROPIC_VERSION", "2023-06-01")


def generate_with_anthropic(
    prompt: str,
    model: str,
    api_key: str,
    temperature: float = 0.2,
    max_tokens: int = 256,
    timeout: float = 30.0,
) -> Optional[str]:
    if not api_key:
        log.debug("anthropic: missing api key")
        return None

    # strip accidental quotes written by installers
    model = (model or "").strip().strip("'").strip('"')
    if not model:
        log.warning("anthropic: empty model name")
        return None

    headers = {
        "x-api-key": api_key,
        "anthropic-version": API_VERSION,
        "content-type": "application/json",
    }
    body = {
        "model": model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": [{"role": "user", "content": prompt}],
    }

    try:
        r = requests.post(ANTHROPIC_URL, headers=headers, json=body, timeout=timeout)
    except requests.RequestException as e:
        log.warning("anthropic request error: %s", redact_text(str(e)))
        return None

    if r.status_code >= 400:
        log.warning("anthropic error %s: %s", r.status_code, redact_text(r.text[:200]))
        return None

    try:
        data = r.json()
        # content is a list of blocks; concatenate text blocks
        text = "".join(
            block.get("text", "")
            for block in (data.get("content") or [])
            if isinstance(block, dict) and block.get("type") == "text"
        )
    except (ValueError, AttributeError) as e:
        log.warning("anthropic bad json: %s", e)
        return None
    return text.strip() or None
