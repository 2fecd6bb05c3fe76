from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OSInfo(BaseModel):
    platform: Literal["windows", "linux", "macos"]
    arch: str = ""
    shell: str = ""


class ResolvedCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    commands: List[str] = Field(min_length=1)
    explanation: str = ""
    tags: List[str] = []
    confidence: float = Field(ge=0.0, le=1.0)
    source: Literal["rule", "ai", "vault"] = "rule"
    variables: Optional[Dict[str, str]] = None
    learning: Optional[Dict[str, Any]] = None
    vault_id: Optional[str] = None

    @field_validator("commands")
    @classmethod
    def _no_blank_commands(cls, v: List[str]) -> List[str]:
        cleaned = [c.strip() for c in v if c and c.strip()]
        if not cleaned:
            raise ValueError("commands must contain at least one non-empty command")
        return cleaned

    @field_validator("tags")
    @classmethod
    def _distinct_tags(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(v))


class SafetyResult(BaseModel):
    blocked: bool = False
    warning: Optional[str] = None
    reason: Optional[str] = None
    risk_level: Literal["low", "medium", "high"] = "low"


class CacheEntry(BaseModel):
    response: str
    timestamp: int
    expiresAt: int


class CommandEntry(BaseModel):
    id: str
    name: Optional[str] = None
    commands: List[str] = Field(min_length=1)
    description: str = ""
    tags: List[str] = []
    usage_count: int = 0
    last_used: datetime = Field(default_factory=_utcnow)
    created_at: datetime = Field(default_factory=_utcnow)
    confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    source: Literal["rule", "ai", "user"] = "user"
    variables: Optional[Dict[str, str]] = None
