from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

import httpx

from studydocs.config import Settings
from studydocs.errors import AuthorizationError, PortalError, RemoteRejection, TransportError
from studydocs.models import Session

logger = logging.getLogger(__name__)

_MESSAGE_KEYS = ("error_description", "msg", "message", "error")

T = TypeVar("T")


def _remote_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in _MESSAGE_KEYS:
            val = body.get(key)
            if isinstance(val, str) and val.strip():
                return val.strip()
    text = (response.text or "").strip()
    return text or response.reason_phrase or f"HTTP {response.status_code}"


def error_from_response(response: httpx.Response) -> PortalError:
    message = _remote_message(response)
    if response.status_code == 401:
        return AuthorizationError(message, status_code=401)
    return RemoteRejection(message, status_code=response.status_code)


def _identity(body: Any) -> Any:
    return body


def read_json(response: httpx.Response, parse: Callable[[Any], T] = _identity) -> T:
    """Decode a successful response body and hand it to ``parse``.

    A 2xx whose body is not JSON (a gateway error page, an empty reply) or
    does not have the expected shape surfaces as ``RemoteRejection``.
    """
    try:
        return parse(response.json())
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        # pydantic's ValidationError is a ValueError
        logger.error("unreadable %s response from %s: %s", response.status_code, response.url, e)
        raise RemoteRejection("Unexpected response from server.", status_code=response.status_code) from e


class SupabaseHttp:
    """Thin httpx wrapper shared by the auth, database and storage clients.

    Every request carries the project's anon key; requests made on behalf of a
    signed-in user carry that user's access token as the bearer instead of the
    anon key, which is what the backend's row-level security keys on.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings
        self.base_url = settings.SUPABASE_URL.rstrip("/")
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            headers={"apikey": settings.SUPABASE_ANON_KEY},
            transport=transport,
        )

    def request(
        self,
        method: str,
        url: str,
        *,
        session: Optional[Session] = None,
        headers: Optional[dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        hdrs = dict(headers or {})
        token = session.access_token if session else self.settings.SUPABASE_ANON_KEY
        hdrs["Authorization"] = f"Bearer {token}"
        try:
            r = self.client.request(method, url, headers=hdrs, **kwargs)
        except httpx.TransportError as e:
            logger.error("%s %s transport failure: %s", method, url, e)
            raise TransportError("Network error, please check your connection and try again.") from e
        if r.is_success:
            return r
        raise error_from_response(r)

    def close(self) -> None:
        self.client.close()
