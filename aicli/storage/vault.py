# aicli/aicli/storage/vault.py
from __future__ import annotations

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from ..utils.atomic import atomic_write_json, read_json
from ..utils.schema import CommandEntry

log = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def relevance_score(entry: CommandEntry, query: str, now: Optional[datetime] = None) -> float:
    """
    Rank a stored command against a lower-cased query:
      +100 command text, +50 description, +25 per matching tag,
      +5 per use (max 50), +10 used this week / +5 this month, +10 * confidence.
    Recency and confidence only count once something textual matched.
    """
    score = 0.0
    if query in " ".join(entry.commands).lower():
        score += 100
    if query in (entry.description or "").lower():
        score += 50
    if entry.name and query in entry.name.lower():
        score += 50
    score += 25 * sum(1 for t in entry.tags if query in t.lower())
    if score <= 0:
        return 0.0

    score += min(entry.usage_count * 5, 50)
    last = entry.last_used if entry.last_used.tzinfo else entry.last_used.replace(tzinfo=timezone.utc)
    days = ((now or _now()) - last).total_seconds() / 86400
    if days < 7:
        score += 10
    elif days < 30:
        score += 5
    score += entry.confidence * 10
    return score


class Vault:
    """JSON-file command store (a list of CommandEntry records)."""

    def __init__(self, path: Union[str, os.PathLike]):
        self.path = Path(os.path.expanduser(str(path)))

    # ---- persistence ----------------------------------------------------

    def _load(self) -> List[CommandEntry]:
        raw = read_json(self.path, [])
        if not isinstance(raw, list):
            raise ValueError(f"vault file is not a JSON list: {self.path}")
        out: List[CommandEntry] = []
        for item in raw:
            try:
                out.append(CommandEntry.model_validate(item))
            except ValidationError as e:
                log.warning("skipping malformed vault entry: %s", e.errors()[0].get("msg", e))
        return out

    def _save(self, entries: List[CommandEntry]) -> None:
        atomic_write_json(self.path, [e.model_dump(mode="json") for e in entries], indent=2)

    # ---- core interface -------------------------------------------------

    def search(self, query: str, limit: int = 10) -> List[CommandEntry]:
        """Entries ordered by relevance, best first. Never raises."""
        q = (query or "").lower().strip()
        if not q:
            return []
        try:
            entries = self._load()
        except Exception as e:
            log.warning("vault read error: %s", e)
            return []
        now = _now()
        scored = [(relevance_score(e, q, now), e) for e in entries]
        scored = [s for s in scored if s[0] > 0]
        scored.sort(key=lambda s: s[0], reverse=True)
        return [e for _, e in scored[:limit]]

    def record_usage(self, entry_id: str) -> None:
        try:
            entries = self._load()
            for e in entries:
                if e.id == entry_id:
                    e.usage_count += 1
                    e.last_used = _now()
                    self._save(entries)
                    return
        except Exception as e:
            log.warning("vault usage update failed: %s", e)

    # ---- management -----------------------------------------------------

    def get_all(self) -> List[CommandEntry]:
        return self._load()

    def add_command(
        self,
        commands: Union[str, Sequence[str]],
        description: str = "",
        tags: Sequence[str] = (),
        source: str = "user",
        confidence: float = 0.7,
        variables: Optional[Dict[str, str]] = None,
        name: Optional[str] = None,
    ) -> CommandEntry:
        """Store a command; an identical command list bumps the existing entry instead."""
        cmd_list = [commands] if isinstance(commands, str) else list(commands)
        cmd_list = [c.strip() for c in cmd_list if c and c.strip()]
        entries = self._load()
        fingerprint = ";".join(cmd_list).lower()

        for existing in entries:
            if ";".join(existing.commands).lower() == fingerprint:
                existing.usage_count += 1
                existing.last_used = _now()
                if description:
                    existing.description = description
                if name:
                    existing.name = name
                if variables:
                    existing.variables = dict(variables)
                self._save(entries)
                return existing

        entry = CommandEntry(
            id=str(uuid.uuid4()),
            name=name,
            commands=cmd_list,
            description=description or f"Command: {'; '.join(cmd_list)}",
            tags=list(tags),
            confidence=confidence,
            source=source,
            variables=dict(variables) if variables else None,
        )
        entries.append(entry)
        self._save(entries)
        return entry

    def delete(self, entry_id: str) -> bool:
        entries = self._load()
        kept = [e for e in entries if e.id != entry_id]
        if len(kept) == len(entries):
            return False
        self._save(kept)
        return True

    def clear(self) -> None:
        self._save([])
