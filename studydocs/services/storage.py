from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Sequence
from urllib.parse import quote

from studydocs.models import Session, SignedUrl
from studydocs.services.http import SupabaseHttp, read_json
from studydocs.services.validators import PDF_MIME

logger = logging.getLogger(__name__)


class StorageClient:
    """Object storage for one bucket. Keys look like ``{user_id}/{ts}_{name}``."""

    def __init__(self, http: SupabaseHttp, bucket: str):
        self._http = http
        self.bucket = bucket

    def _key(self, path: str) -> str:
        key = path.lstrip("/")
        return quote(key, safe="/")

    def upload(self, session: Session, path: str, data: bytes, content_type: str = PDF_MIME) -> str:
        # x-upsert false: an existing key is rejected instead of overwritten
        r = self._http.request(
            "POST",
            f"/storage/v1/object/{self.bucket}/{self._key(path)}",
            session=session,
            headers={"content-type": content_type, "x-upsert": "false"},
            content=data,
        )
        logger.info("uploaded %s (%d bytes)", path, len(data))
        key = read_json(r, lambda body: body.get("Key")) if r.content else None
        return str(key or f"{self.bucket}/{path}")

    def download(self, session: Session, path: str) -> bytes:
        r = self._http.request(
            "GET",
            f"/storage/v1/object/authenticated/{self.bucket}/{self._key(path)}",
            session=session,
        )
        return r.content

    def create_signed_url(self, session: Session, path: str, ttl_seconds: int) -> SignedUrl:
        issued = datetime.now(timezone.utc)
        r = self._http.request(
            "POST",
            f"/storage/v1/object/sign/{self.bucket}/{self._key(path)}",
            session=session,
            json={"expiresIn": int(ttl_seconds)},
        )
        signed = read_json(r, lambda body: str(body.get("signedURL") or body["signedUrl"]))
        if not signed.startswith("http"):
            signed = f"{self._http.base_url}/storage/v1/{signed.lstrip('/')}"
        return SignedUrl(url=signed, expires_at=issued + timedelta(seconds=int(ttl_seconds)))

    def remove(self, session: Session, paths: Sequence[str]) -> list[str]:
        r = self._http.request(
            "DELETE",
            f"/storage/v1/object/{self.bucket}",
            session=session,
            json={"prefixes": list(paths)},
        )
        body = read_json(r) if r.content else []
        removed = [str(item.get("name")) for item in body if isinstance(item, dict)]
        missing = [p for p in paths if p not in removed]
        if missing:
            logger.warning("storage reported no object for %s", missing)
        return removed
