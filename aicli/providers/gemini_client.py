# aicli/providers/gemini_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from ..utils.redact import redact_text

log = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models"


def _request_body(prompt: str, temperature: float, max_tokens: int) -> Dict[str, Any]:
    return {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
    }


def _first_candidate_text(data: Dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()


def generate_with_gemini(
    prompt: str,
    model: str,
    api_key: str,
    endpoint: str = GEMINI_ENDPOINT,
    temperature: float = 0.2,
    max_tokens: int = 256,
    timeout: float = 30.0,
) -> Optional[str]:
    """One generateContent call. Any transport error or HTTP status >= 400 returns None."""
    if not api_key:
        log.debug("gemini: missing api key")
        return None
    model = (model or "").strip().strip("'").strip('"')
    if not model:
        log.warning("gemini: empty model name")
        return None

    url = f"{endpoint.rstrip('/')}/{model}:generateContent"
    headers = {"content-type": "application/json", "x-goog-api-key": api_key}
    try:
        r = requests.post(url, headers=headers, json=_request_body(prompt, temperature, max_tokens), timeout=timeout)
    except requests.RequestException as e:
        log.warning("gemini request error: %s", redact_text(str(e)))
        return None

    if r.status_code >= 400:
        log.warning("gemini error %s: %s", r.status_code, redact_text(r.text[:200]))
        return None

    try:
        text = _first_candidate_text(r.json())
    except ValueError as e:
        log.warning("gemini bad json: %s", e)
        return None
    return text or None
