from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Optional

from studydocs.errors import ValidationError

PDF_MIME = "application/pdf"

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass
class Credentials:
    email: str
    password: str


@dataclass
class NewDocument:
    title: str
    description: Optional[str]
    filename: str
    content_type: str
    data: bytes


def normalize_description(value: Optional[str]) -> Optional[str]:
    """Blank descriptions are stored as NULL, never as ''."""
    text = (value or "").strip()
    return text or None


def _require_email(email: Optional[str]) -> str:
    e = (email or "").strip()
    if not e:
        raise ValidationError("Email is required.")
    if not _EMAIL_RE.match(e):
        raise ValidationError("Please enter a valid email address.")
    return e


def validate_login(email: Optional[str], password: Optional[str]) -> Credentials:
    e = _require_email(email)
    if not password:
        raise ValidationError("Password is required.")
    return Credentials(email=e, password=password)


def validate_signup(
    email: Optional[str],
    password: Optional[str],
    confirm_password: Optional[str],
    *,
    min_length: int = 6,
) -> Credentials:
    e = _require_email(email)
    if not password:
        raise ValidationError("Password is required.")
    if len(password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters.")
    if password != (confirm_password or ""):
        raise ValidationError("Passwords do not match!")
    return Credentials(email=e, password=password)


def validate_title(title: Optional[str]) -> str:
    t = (title or "").strip()
    if not t:
        raise ValidationError("Title is required")
    return t


def validate_upload(
    title: Optional[str],
    description: Optional[str],
    filename: Optional[str],
    content_type: Optional[str],
    data: Optional[bytes],
) -> NewDocument:
    t = validate_title(title)
    # MIME type as reported by the browser; the backend bucket policy is authoritative
    if not filename or data is None or (content_type or "").lower() != PDF_MIME:
        raise ValidationError("Please select a valid PDF file")
    return NewDocument(
        title=t,
        description=normalize_description(description),
        filename=filename,
        content_type=PDF_MIME,
        data=data,
    )


def build_storage_path(user_id: str, filename: str, now_ms: Optional[int] = None) -> str:
    """``{user_id}/{timestamp_ms}_{filename}``; the timestamp keeps uploads from colliding."""
    ts = int(time.time() * 1000) if now_ms is None else int(now_ms)
    safe_name = filename.replace("/", "_").replace("\\", "_")
    return f"{user_id}/{ts}_{safe_name}"
