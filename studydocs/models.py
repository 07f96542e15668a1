from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email: Optional[str] = None


class Session(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_at: Optional[int] = None  # unix seconds
    user: User

    @classmethod
    def from_token_response(cls, data: dict[str, Any]) -> "Session":
        expires_at = data.get("expires_at")
        if expires_at is None and data.get("expires_in") is not None:
            expires_at = int(time.time()) + int(data["expires_in"])
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type") or "bearer",
            expires_at=expires_at,
            user=User.model_validate(data["user"]),
        )

    def is_expired(self, now: Optional[float] = None, leeway: int = 10) -> bool:
        if self.expires_at is None:
            return False
        now = time.time() if now is None else now
        return now >= self.expires_at - leeway


class Document(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    description: Optional[str] = None
    file_path: str
    uploaded_at: datetime
    user_id: str

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _as_str(cls, v: Any) -> str:
        return str(v)

    @property
    def download_name(self) -> str:
        return f"{self.title}.pdf"


class SignedUrl(BaseModel):
    url: str
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at
