# aicli/cache/cache_manager.py
from __future__ import annotations

import hashlib
import logging
import os
import time
from pathlib import Path
from typing import Callable, Dict, Optional

from ..utils.atomic import atomic_write_json, read_json
from ..utils.schema import CacheEntry, OSInfo

log = logging.getLogger(__name__)

KEY_SEPARATOR = "|"
DEFAULT_TTL_SECONDS = 60 * 60
DEFAULT_MAX_ENTRIES = 500


def _now_ms() -> int:
    return int(time.time() * 1000)


class CacheManager:
    """
    File-backed cache of raw AI responses.

    The store is a single JSON object {sha256-hex: {response, timestamp, expiresAt}}.
    Any I/O or parse problem is logged and reported as a miss; nothing raises.
    """

    def __init__(
        self,
        path: str | os.PathLike,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        model_id: str = "",
        prompt_version: str = "",
        clock: Callable[[], int] = _now_ms,
    ):
        self.path = Path(os.path.expanduser(str(path)))
        self.ttl_ms = int(ttl_seconds * 1000)
        self.max_entries = max(1, int(max_entries))
        self.model_id = model_id
        self.prompt_version = prompt_version
        self._clock = clock

    def cache_key(self, user_input: str, os_info: OSInfo, learning_mode: bool) -> str:
        data = KEY_SEPARATOR.join(
            [
                user_input,
                os_info.platform,
                os_info.arch,
                os_info.shell or "",
                "learn" if learning_mode else "std",
                self.model_id,
                self.prompt_version,
            ]
        )
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    # ---- store ----------------------------------------------------------

    def _load(self) -> Dict[str, dict]:
        data = read_json(self.path, {})
        if not isinstance(data, dict):
            raise ValueError(f"cache file is not a JSON object: {self.path}")
        return data

    def _save(self, data: Dict[str, dict]) -> None:
        atomic_write_json(self.path, data)

    def _evict(self, data: Dict[str, dict]) -> None:
        overflow = len(data) - self.max_entries
        if overflow <= 0:
            return
        oldest = sorted(data, key=lambda k: _timestamp(data[k]))[:overflow]
        for k in oldest:
            del data[k]
        log.debug("cache evicted %d entries", len(oldest))

    # ---- public ---------------------------------------------------------

    def get(self, user_input: str, os_info: OSInfo, learning_mode: bool = False) -> Optional[str]:
        try:
            data = self._load()
            key = self.cache_key(user_input, os_info, learning_mode)
            raw = data.get(key)
            if raw is None:
                return None
            entry = CacheEntry.model_validate(raw)
            if self._clock() > entry.expiresAt:
                del data[key]
                self._save(data)
                return None
            return entry.response
        except Exception as e:
            log.warning("cache read error: %s", e)
            return None

    def set(self, user_input: str, os_info: OSInfo, learning_mode: bool, response: str) -> None:
        try:
            try:
                data = self._load()
            except ValueError as e:
                log.warning("cache reset, unreadable store: %s", e)
                data = {}
            now = self._clock()
            key = self.cache_key(user_input, os_info, learning_mode)
            data[key] = CacheEntry(response=response, timestamp=now, expiresAt=now + self.ttl_ms).model_dump()
            self._evict(data)
            self._save(data)
        except Exception as e:
            log.warning("cache write error: %s", e)

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except Exception as e:
            log.warning("cache clear error: %s", e)

    def __len__(self) -> int:
        try:
            return len(self._load())
        except Exception:
            return 0


def _timestamp(raw: dict) -> int:
    try:
        return int(raw.get("timestamp", 0))
    except (AttributeError, TypeError, ValueError):
        return 0
