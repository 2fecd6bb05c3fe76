# aicli/aicli/providers/openai_client.py
from __future__ import annotations

import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from ..utils.redact import redact_text

log = logging.getLogger(__name__)

_SYSTEM_PROMPT = "You translate requests into shell commands. Follow the user's output rules exactly."


def _want_responses_api(model: str) -> bool:
    m = (model or "").lower()
    return m.startswith("gpt-5") or m.startswith("o5")


def _call_responses(client: OpenAI, model: str, prompt: str, max_tokens: int) -> str:
    r = client.responses.create(
        model=model,
        input=[{"role": "system", "content": _SYSTEM_PROMPT}, {"role": "user", "content": prompt}],
        max_output_tokens=max_tokens,
    )
    return (getattr(r, "output_text", "") or "").strip()


def _call_chat(client: OpenAI, model: str, prompt: str, temperature: float, max_tokens: int) -> str:
    r = client.chat.completions.create(
        model=model,
        messages=[{"role": "system", "content": _SYSTEM_PROMPT}, {"role": "user", "content": prompt}],
        temperature=temperature,
        max_tokens=max_tokens,
    )
    return (r.choices[0].message.content or "").strip()


def generate_with_openai(
    prompt: str,
    model: str,
    api_key: str,
    temperature: float = 0.2,
    max_tokens: int = 256,
    timeout: float = 30.0,
) -> Optional[str]:
    if not api_key:
        log.debug("openai: missing api key")
        return None

    # no SDK-level retries: a failed call is a miss
    client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
    try:
        if _want_responses_api(model):
            text = _call_responses(client, model, prompt, max_tokens)
        else:
            text = _call_chat(client, model, prompt, temperature, max_tokens)
    except (OpenAIError, IndexError, AttributeError) as e:
        log.warning("openai error: %s", redact_text(str(e)))
        return None
    return text or None
