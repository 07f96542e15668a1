"""Dashboard state machine.

States::

    UNAUTHENTICATED -> LOADING -> READY <-> MUTATING -> READY
    READY -> LOGGED_OUT            (logout)
    any   -> SESSION_EXPIRED       (backend answered 401)

The controller holds no Streamlit references; the page renders its fields and
feeds user intents back through ``dispatch``.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Optional

from studydocs.errors import AuthorizationError, PortalError, ValidationError
from studydocs.models import Document, Session, SignedUrl
from studydocs.services.alerts import AlertCenter
from studydocs.services.session import SessionClient
from studydocs.services.validators import validate_title, validate_upload
from studydocs.services.workflow import DocumentService

logger = logging.getLogger(__name__)


class DashboardState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    LOADING = "loading"
    READY = "ready"
    MUTATING = "mutating"
    LOGGED_OUT = "logged_out"
    SESSION_EXPIRED = "session_expired"


EXIT_STATES = frozenset({DashboardState.UNAUTHENTICATED, DashboardState.LOGGED_OUT, DashboardState.SESSION_EXPIRED})


class Action(str, Enum):
    SEARCH = "search"
    REFRESH = "refresh"
    UPLOAD = "upload"
    VIEW = "view"
    DOWNLOAD = "download"
    START_EDIT = "start_edit"
    SAVE_EDIT = "save_edit"
    CANCEL_EDIT = "cancel_edit"
    REQUEST_DELETE = "request_delete"
    CONFIRM_DELETE = "confirm_delete"
    CANCEL_DELETE = "cancel_delete"
    LOGOUT = "logout"


@dataclass
class ViewLink:
    document_id: str
    title: str
    link: SignedUrl


@dataclass
class PendingDownload:
    file_name: str
    data: bytes


class DashboardController:
    def __init__(self, *, session_client: SessionClient, documents: DocumentService, alerts: AlertCenter):
        self.session_client = session_client
        self.service = documents
        self.alerts = alerts

        self.state = DashboardState.UNAUTHENTICATED
        self.session: Optional[Session] = None
        self.documents: list[Document] = []
        self.query = ""
        self.load_error: Optional[str] = None
        self.busy: set[Action] = set()

        self.editing: Optional[Document] = None
        self.pending_delete: Optional[Document] = None
        self.view_link: Optional[ViewLink] = None
        self.pending_download: Optional[PendingDownload] = None

        self._loaded_query: Optional[str] = None
        self._handlers: dict[Action, Callable[..., Any]] = {
            Action.SEARCH: self.search,
            Action.REFRESH: self.refresh,
            Action.UPLOAD: self.upload,
            Action.VIEW: self.view,
            Action.DOWNLOAD: self.download,
            Action.START_EDIT: self.start_edit,
            Action.SAVE_EDIT: self.save_edit,
            Action.CANCEL_EDIT: self.cancel_edit,
            Action.REQUEST_DELETE: self.request_delete,
            Action.CONFIRM_DELETE: self.confirm_delete,
            Action.CANCEL_DELETE: self.cancel_delete,
            Action.LOGOUT: self.logout,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _reset_view(self) -> None:
        self.documents = []
        self.query = ""
        self.load_error = None
        self.editing = None
        self.pending_delete = None
        self.view_link = None
        self.pending_download = None
        self._loaded_query = None

    def start(self) -> DashboardState:
        """Verify the session; runs on every page render.

        The list is fetched the first time a user lands here (or after a
        different user signed in); later renders keep the current list and only
        pick up a refreshed token.
        """
        session = self.session_client.get_current_session()
        if session is None:
            self.session = None
            self._reset_view()
            self.busy.clear()
            self.state = DashboardState.UNAUTHENTICATED
            return self.state

        fresh = (
            self.session is None
            or self.session.user.id != session.user.id
            or self.state in EXIT_STATES
        )
        self.session = session
        if fresh:
            self._reset_view()
            self.reload()
        return self.state

    @property
    def is_exited(self) -> bool:
        return self.state in EXIT_STATES

    def arm(self, action: Action) -> None:
        """Mark ``action`` as in flight before the run that performs it.

        Wired to the triggering widget's ``on_click``, which Streamlit calls
        ahead of the script run, so that run draws the control disabled. The
        flag is dropped once ``dispatch`` returns, after any re-fetch.
        """
        self.busy.add(Action(action))

    def is_busy(self, action: Action) -> bool:
        return action in self.busy

    def dispatch(self, action: Action, *args: Any, **kwargs: Any) -> Any:
        action = Action(action)
        self.busy.add(action)
        try:
            if self.is_exited or self.session is None:
                logger.warning("ignoring %s in state %s", action.value, self.state.value)
                return None
            return self._handlers[action](*args, **kwargs)
        finally:
            self.busy.discard(action)

    def _expire(self, exc: AuthorizationError) -> None:
        logger.warning("session expired for user %s: %s", self.session.user.id if self.session else "-", exc)
        self.session_client.clear()
        self.session = None
        self.state = DashboardState.SESSION_EXPIRED
        self.alerts.warning("Your session has expired. Please log in again.")

    def _fail(self, action: Action, failure: str, exc: PortalError) -> None:
        if isinstance(exc, AuthorizationError):
            self._expire(exc)
            return
        logger.error("%s failed: %s", action.value, exc)
        self.alerts.danger(f"{failure}: {exc.message}")

    @contextmanager
    def _mutating(self) -> Iterator[None]:
        self.state = DashboardState.MUTATING
        try:
            yield
        finally:
            # always re-fetch, success or not
            if self.state is DashboardState.MUTATING:
                self.reload()

    # ------------------------------------------------------------------
    # Loading / search
    # ------------------------------------------------------------------
    def reload(self) -> DashboardState:
        self.state = DashboardState.LOADING
        try:
            self.documents = self.service.list_documents(self.session, self.query)
            self.load_error = None
            self._loaded_query = self.query
        except AuthorizationError as exc:
            self._expire(exc)
            return self.state
        except PortalError as exc:
            logger.error("loading documents failed: %s", exc)
            self.documents = []
            self.load_error = exc.message
            self._loaded_query = None
            self.alerts.danger(f"Failed to load documents: {exc.message}")
        self.state = DashboardState.READY
        return self.state

    def search(self, query: Optional[str]) -> None:
        q = (query or "").strip()
        if q == self._loaded_query:
            return
        self.query = q
        self.reload()

    def refresh(self) -> None:
        self.query = ""
        self.reload()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def upload(
        self,
        *,
        title: Optional[str],
        description: Optional[str],
        filename: Optional[str],
        content_type: Optional[str],
        data: Optional[bytes],
    ) -> bool:
        try:
            new = validate_upload(title, description, filename, content_type, data)
        except ValidationError as exc:
            self.alerts.danger(exc.message)
            return False

        ok = False
        with self._mutating():
            try:
                self.service.upload_document(self.session, new)
                ok = True
                self.alerts.success("Document uploaded successfully!")
            except PortalError as exc:
                self._fail(Action.UPLOAD, "Failed to upload document", exc)
        return ok

    def start_edit(self, document: Document) -> None:
        self.pending_delete = None
        self.editing = document

    def cancel_edit(self) -> None:
        self.editing = None

    def save_edit(self, *, title: Optional[str], description: Optional[str]) -> bool:
        if self.editing is None:
            return False
        try:
            validate_title(title)
        except ValidationError as exc:
            self.alerts.danger(exc.message)
            return False

        ok = False
        with self._mutating():
            try:
                self.service.update_document(self.session, self.editing.id, title=title, description=description)
                ok = True
                self.editing = None
                self.alerts.success("Document updated successfully!")
            except PortalError as exc:
                self._fail(Action.SAVE_EDIT, "Failed to update document", exc)
        return ok

    def request_delete(self, document: Document) -> None:
        self.editing = None
        self.pending_delete = document

    def cancel_delete(self) -> None:
        self.pending_delete = None

    def confirm_delete(self) -> bool:
        doc = self.pending_delete
        if doc is None:
            return False
        self.pending_delete = None

        ok = False
        with self._mutating():
            try:
                self.service.delete_document(self.session, doc)
                ok = True
                if self.view_link is not None and self.view_link.document_id == doc.id:
                    self.view_link = None
                self.alerts.success("Document deleted successfully!")
            except PortalError as exc:
                self._fail(Action.CONFIRM_DELETE, "Failed to delete document", exc)
        return ok

    # ------------------------------------------------------------------
    # Read-only file access
    # ------------------------------------------------------------------
    def view(self, document: Document) -> Optional[SignedUrl]:
        try:
            link = self.service.view_url(self.session, document)
        except PortalError as exc:
            self._fail(Action.VIEW, "Failed to view document", exc)
            return None
        self.view_link = ViewLink(document_id=document.id, title=document.title, link=link)
        return link

    def current_view_link(self) -> Optional[ViewLink]:
        if self.view_link is not None and self.view_link.link.is_expired():
            self.view_link = None
        return self.view_link

    def download(self, document: Document) -> Optional[PendingDownload]:
        try:
            data = self.service.download(self.session, document)
        except PortalError as exc:
            self._fail(Action.DOWNLOAD, "Failed to download document", exc)
            return None
        self.pending_download = PendingDownload(file_name=document.download_name, data=data)
        self.alerts.success("Document ready to download!")
        return self.pending_download

    def clear_download(self) -> None:
        self.pending_download = None

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    def logout(self) -> bool:
        try:
            self.session_client.sign_out()
        except PortalError as exc:
            logger.error("logout failed: %s", exc)
            self.alerts.danger(f"Failed to logout: {exc.message}")
            return False
        self.session = None
        self._reset_view()
        self.state = DashboardState.LOGGED_OUT
        return True
