# aicli/aicli/core/parser.py
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..utils.schema import ResolvedCommand

log = logging.getLogger(__name__)

LEARNING_SENTINEL = "_JSON_"
MAX_COMMAND_LENGTH = 180

BASE_CONFIDENCE = 0.7
CHAINED_CONFIDENCE = 0.75

AI_EXPLANATION = "Command suggested by AI"

_FENCE = re.compile(r"```[^\n`]*\n?(.*?)```", re.S)
_PLACEHOLDER_STEPS = ("command1", "command2")
_CONVERSATIONAL = re.compile(r"(?<![-\w])(help|ready)\b", re.I)
_VARIABLE = re.compile(r"\{(\w+)\}")


def clean_response(raw: str) -> str:
    """
    Strip markdown from a model reply and keep the first non-empty line.

    Fenced blocks are removed; if nothing else is left, the inside of the
    first fence is used instead so "```bash\\nls\\n```" still yields "ls".
    """
    text = (raw or "").strip()
    outside = _FENCE.sub("", text)
    if not outside.strip():
        m = _FENCE.search(text)
        outside = m.group(1) if m else ""
    outside = outside.replace("`", "")
    for line in outside.splitlines():
        if line.strip():
            return line.strip()
    return ""


def rejection_reason(cleaned: str) -> Optional[str]:
    if not cleaned:
        return "empty"
    if len(cleaned) > MAX_COMMAND_LENGTH:
        return "too_long"
    if any(p in cleaned.lower() for p in _PLACEHOLDER_STEPS):
        return "placeholder_steps"
    if cleaned.endswith("?"):
        return "question"
    if _CONVERSATIONAL.search(cleaned):
        return "conversational"
    return None


def split_chain(cleaned: str, split_pipes: bool = False) -> Tuple[List[str], bool]:
    """
    Split on top-level `&&` and `;` (and `|` when asked), ignoring separators
    inside quotes. Returns (commands, had_separator).
    """
    parts: List[str] = []
    buf: List[str] = []
    quote = ""
    found = False
    i = 0
    n = len(cleaned)
    while i < n:
        ch = cleaned[i]
        if quote:
            if ch == quote:
                quote = ""
            buf.append(ch)
            i += 1
            continue
        if ch in ("'", '"'):
            quote = ch
            buf.append(ch)
            i += 1
            continue
        if cleaned.startswith("&&", i):
            parts.append("".join(buf))
            buf, found = [], True
            i += 2
            continue
        if ch == ";":
            parts.append("".join(buf))
            buf, found = [], True
            i += 1
            continue
        if cleaned.startswith("||", i):
            buf.append("||")
            i += 2
            continue
        if ch == "|" and split_pipes:
            parts.append("".join(buf))
            buf, found = [], True
            i += 1
            continue
        buf.append(ch)
        i += 1
    parts.append("".join(buf))
    commands = [p.strip() for p in parts if p.strip()]
    return commands, found


def extract_variables(commands: List[str]) -> Dict[str, str]:
    variables: Dict[str, str] = {}
    for cmd in commands:
        for name in _VARIABLE.findall(cmd):
            variables[name] = ""
    return variables


def parse_learning(payload: str) -> Optional[Dict[str, Any]]:
    text = _FENCE.sub(lambda m: m.group(1), payload or "").strip()
    first, last = text.find("{"), text.rfind("}")
    if first == -1 or last <= first:
        return None
    try:
        obj = json.loads(text[first : last + 1])
    except ValueError:
        return None
    return obj if isinstance(obj, dict) else None


class AIResponseParser:
    """Turns free-form model text into a ResolvedCommand, or None if unusable."""

    def __init__(self, split_pipes: bool = False):
        self.split_pipes = split_pipes

    def parse(self, raw_text: str, wants_multiple: bool, learning_mode: bool = False) -> Optional[ResolvedCommand]:
        raw = (raw_text or "").strip()
        learning = None
        if learning_mode and LEARNING_SENTINEL in raw:
            raw, payload = raw.split(LEARNING_SENTINEL, 1)
            learning = parse_learning(payload)

        cleaned = clean_response(raw)
        reason = rejection_reason(cleaned)
        if reason:
            log.debug("model output rejected (%s): %r", reason, cleaned[:80])
            return None

        commands, chained = split_chain(cleaned, split_pipes=self.split_pipes)
        if wants_multiple and (not chained or len(commands) < 2):
            log.debug("model output rejected (unchained multi-step): %r", cleaned[:80])
            return None
        if not commands:
            return None

        variables = extract_variables(commands)
        try:
            return ResolvedCommand(
                commands=commands,
                explanation=AI_EXPLANATION,
                tags=["ai"],
                confidence=CHAINED_CONFIDENCE if wants_multiple else BASE_CONFIDENCE,
                source="ai",
                variables=variables or None,
                learning=learning,
            )
        except ValidationError as e:
            log.debug("model output rejected (invalid): %s", e)
            return None
