import re

# (pattern, replacement); applied in order
_PATTERNS = [
    (re.compile(r'(?i)\bapi[_-]?key\s*[:=]\s*["\']?([A-Za-z0-9._\-]{12,})["\']?'), '<API_KEY>'),
    (re.compile(r'(?i)([?&]key=)[A-Za-z0-9._\-]{12,}'), r'\1<API_KEY>'),
    (re.compile(r'(?i)\bsecret[_-]?key\s*[:=]\s*["\']?([^"\'\s]{8,})["\']?'), '<SECRET>'),
    (re.compile(r'(?i)\bpassword\s*[:=]\s*["\']?([^"\'\s]{4,})["\']?'), '<PASSWORD>'),
    (re.compile(r'(?i)\bBearer\s+[A-Za-z0-9\-_\.=]+'), '<TOKEN>'),
    (re.compile(r'\b(?:sk-|AIza)[A-Za-z0-9_\-]{20,}'), '<API_KEY>'),
    (re.compile(r'\b[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}\b'), '<JWT>'),
]


def redact_text(s: str) -> str:
    """Mask credentials in free text (model prompts, logged error bodies)."""
    if not s:
        return ""
    out = s
    for pat, repl in _PATTERNS:
        out = pat.sub(repl, out)
    return out


def mask(value: str, keep: int = 4) -> str:
    """Show only the first few characters of a secret."""
    if not value:
        return "NOT SET"
    return value[:keep] + "…" if len(value) > keep else "…"
