from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Set

from studydocs.config import Settings
from studydocs.errors import PortalError, ValidationError
from studydocs.services.alerts import AlertCenter
from studydocs.services.session import SessionClient
from studydocs.services.validators import validate_login, validate_signup

logger = logging.getLogger(__name__)


class Page(str, Enum):
    LOGIN = "login"
    DASHBOARD = "dashboard"


@dataclass
class Redirect:
    page: Page
    delay_seconds: float = 0.0


@dataclass
class AuthOutcome:
    ok: bool
    redirect: Optional[Redirect] = None
    clear_form: bool = False


class AuthController:
    """Login and signup forms. Validation happens before any network call."""

    def __init__(
        self,
        *,
        session_client: SessionClient,
        alerts: AlertCenter,
        settings: Settings,
        busy: Optional[Set[str]] = None,
    ):
        self.session_client = session_client
        self.alerts = alerts
        self.settings = settings
        # the page rebuilds this controller every run; the set lives in session state
        self.busy: Set[str] = set() if busy is None else busy

    def arm(self, form: str) -> None:
        """``on_click`` hook: the submit button renders disabled while ``form`` runs."""
        self.busy.add(form)

    def is_busy(self, form: str) -> bool:
        return form in self.busy

    def _run(self, form: str, call: Callable[[], AuthOutcome]) -> AuthOutcome:
        self.busy.add(form)
        try:
            return call()
        finally:
            self.busy.discard(form)

    def initial_redirect(self) -> Optional[Redirect]:
        """Visitors who already hold a session go straight to the dashboard."""
        if self.session_client.get_current_session() is not None:
            return Redirect(Page.DASHBOARD)
        return None

    def login(self, email: Optional[str], password: Optional[str]) -> AuthOutcome:
        return self._run("login", lambda: self._login(email, password))

    def _login(self, email: Optional[str], password: Optional[str]) -> AuthOutcome:
        try:
            creds = validate_login(email, password)
        except ValidationError as exc:
            self.alerts.danger(exc.message)
            return AuthOutcome(ok=False)

        try:
            self.session_client.sign_in(creds.email, creds.password)
        except PortalError as exc:
            logger.error("login failed for %s: %s", creds.email, exc)
            self.alerts.danger(f"Login failed: {exc.message}")
            return AuthOutcome(ok=False)

        self.alerts.success("Login successful! Welcome back")
        return AuthOutcome(ok=True, redirect=Redirect(Page.DASHBOARD, self.settings.LOGIN_REDIRECT_DELAY_SECONDS))

    def signup(
        self,
        email: Optional[str],
        password: Optional[str],
        confirm_password: Optional[str],
    ) -> AuthOutcome:
        return self._run("signup", lambda: self._signup(email, password, confirm_password))

    def _signup(
        self,
        email: Optional[str],
        password: Optional[str],
        confirm_password: Optional[str],
    ) -> AuthOutcome:
        try:
            creds = validate_signup(
                email,
                password,
                confirm_password,
                min_length=self.settings.MIN_PASSWORD_LENGTH,
            )
        except ValidationError as exc:
            self.alerts.danger(exc.message)
            return AuthOutcome(ok=False)

        try:
            self.session_client.sign_up(creds.email, creds.password, self.settings.email_redirect_url)
        except PortalError as exc:
            logger.error("signup failed for %s: %s", creds.email, exc)
            self.alerts.danger(f"Signup failed: {exc.message}")
            return AuthOutcome(ok=False)

        self.alerts.success("Account created! Check your email to confirm, then log in.")
        return AuthOutcome(
            ok=True,
            redirect=Redirect(Page.LOGIN, self.settings.SIGNUP_REDIRECT_DELAY_SECONDS),
            clear_form=True,
        )
