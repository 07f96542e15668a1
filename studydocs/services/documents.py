from __future__ import annotations

import logging
from typing import Any, Optional

from studydocs.errors import RemoteRejection
from studydocs.models import Document, Session
from studydocs.services.http import SupabaseHttp, read_json
from studydocs.services.validators import normalize_description, validate_title

logger = logging.getLogger(__name__)

_RETURN_ROWS = {"Prefer": "return=representation"}


def _documents(body: Any) -> list[Document]:
    if not isinstance(body, list):
        raise TypeError(f"expected a list of rows, got {type(body).__name__}")
    return [Document.model_validate(row) for row in body]


def title_pattern(query: str) -> str:
    """``ilike`` operand matching ``query`` as a substring.

    ``%`` and ``_`` are LIKE wildcards and get backslash-escaped. PostgREST
    rewrites every ``*`` to ``%`` before the query runs, so a literal ``*``
    cannot be escaped and becomes ``_`` (any single character) instead.
    """
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return "*" + escaped.replace("*", "_") + "*"


class DocumentRepository:
    """Document metadata rows, always filtered on the session's user id.

    The backend enforces the same ownership through row-level security; the
    explicit ``user_id`` filter keeps a stale UI from ever asking for more.
    """

    def __init__(self, http: SupabaseHttp, table: str = "documents"):
        self._http = http
        self._path = f"/rest/v1/{table}"

    def list(self, session: Session, search_query: Optional[str] = None) -> list[Document]:
        params = [
            ("select", "*"),
            ("user_id", f"eq.{session.user.id}"),
            ("order", "uploaded_at.desc"),
        ]
        q = (search_query or "").strip()
        if q:
            params.append(("title", f"ilike.{title_pattern(q)}"))
        r = self._http.request("GET", self._path, session=session, params=params)
        return read_json(r, _documents)

    def insert(
        self,
        session: Session,
        *,
        title: str,
        description: Optional[str],
        file_path: str,
    ) -> Document:
        row = {
            "title": title,
            "description": normalize_description(description),
            "file_path": file_path,
            "user_id": session.user.id,
        }
        r = self._http.request("POST", self._path, session=session, headers=_RETURN_ROWS, json=[row])
        rows = read_json(r, _documents)
        if not rows:
            raise RemoteRejection("Document was not saved.")
        doc = rows[0]
        logger.info("inserted document %s for user %s", doc.id, doc.user_id)
        return doc

    def update(
        self,
        session: Session,
        document_id: str,
        *,
        title: str,
        description: Optional[str],
    ) -> Document:
        values = {"title": validate_title(title), "description": normalize_description(description)}
        r = self._http.request(
            "PATCH",
            self._path,
            session=session,
            headers=_RETURN_ROWS,
            params=[("id", f"eq.{document_id}"), ("user_id", f"eq.{session.user.id}")],
            json=values,
        )
        rows = read_json(r, _documents)
        if not rows:
            raise RemoteRejection("Document not found.", status_code=404)
        logger.info("updated document %s", document_id)
        return rows[0]

    def delete(self, session: Session, document_id: str) -> None:
        r = self._http.request(
            "DELETE",
            self._path,
            session=session,
            headers=_RETURN_ROWS,
            params=[("id", f"eq.{document_id}"), ("user_id", f"eq.{session.user.id}")],
        )
        if not read_json(r, _documents):
            raise RemoteRejection("Document not found.", status_code=404)
        logger.info("deleted document %s", document_id)
