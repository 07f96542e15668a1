from __future__ import annotations

import logging
from typing import Any, MutableMapping, Optional

from studydocs.errors import AuthorizationError, PortalError, RemoteRejection, TransportError
from studydocs.models import Session, User
from studydocs.services.http import SupabaseHttp, read_json

logger = logging.getLogger(__name__)

SESSION_KEY = "auth_session"


def _signup_user(data: Any) -> Optional[User]:
    # autoconfirm projects wrap the user next to a session; others return it bare
    raw = data.get("user") if isinstance(data.get("user"), dict) else data
    if not raw or "id" not in raw:
        return None
    return User.model_validate(raw)


class SessionClient:
    """Auth service wrapper bound to one per-tab session store.

    In the app the store is ``st.session_state``; tests pass a plain dict.
    """

    def __init__(self, http: SupabaseHttp, store: MutableMapping[str, Any]):
        self._http = http
        self._store = store

    def _token(self, grant_type: str, payload: dict[str, Any]) -> Session:
        r = self._http.request("POST", "/auth/v1/token", params={"grant_type": grant_type}, json=payload)
        return read_json(r, Session.from_token_response)

    def get_current_session(self) -> Optional[Session]:
        """Stored session, refreshed once if its access token expired.

        Never raises: a missing, unrefreshable or unreachable session is
        reported as ``None`` and callers treat that as "not authenticated".
        """
        session = self._store.get(SESSION_KEY)
        if session is None:
            return None
        if not session.is_expired():
            return session
        if not session.refresh_token:
            self._store.pop(SESSION_KEY, None)
            return None
        try:
            refreshed = self._token("refresh_token", {"refresh_token": session.refresh_token})
        except TransportError as exc:
            logger.warning("session refresh unreachable: %s", exc)
            return None
        except PortalError as exc:
            logger.warning("session refresh rejected for user %s: %s", session.user.id, exc)
            self._store.pop(SESSION_KEY, None)
            return None
        self._store[SESSION_KEY] = refreshed
        return refreshed

    def sign_in(self, email: str, password: str) -> Session:
        try:
            session = self._token("password", {"email": email, "password": password})
        except RemoteRejection as exc:
            # the token endpoint answers bad credentials with 400
            if exc.status_code in (400, 403):
                raise AuthorizationError(exc.message, status_code=exc.status_code) from exc
            raise
        self._store[SESSION_KEY] = session
        logger.info("signed in user %s", session.user.id)
        return session

    def sign_up(self, email: str, password: str, redirect_to: str) -> Optional[User]:
        """Create a pending account; the session starts only after email confirmation."""
        r = self._http.request(
            "POST",
            "/auth/v1/signup",
            params={"redirect_to": redirect_to},
            json={"email": email, "password": password},
        )
        if not r.content:
            return None
        user = read_json(r, _signup_user)
        if user is None:
            return None
        logger.info("signup requested for user %s", user.id)
        return user

    def sign_out(self) -> None:
        session = self._store.get(SESSION_KEY)
        if session is None:
            return
        try:
            self._http.request("POST", "/auth/v1/logout", session=session)
        except AuthorizationError:
            logger.info("logout with an already invalid token for user %s", session.user.id)
        self._store.pop(SESSION_KEY, None)
        logger.info("signed out user %s", session.user.id)

    def clear(self) -> None:
        self._store.pop(SESSION_KEY, None)
