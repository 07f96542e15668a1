from __future__ import annotations

import streamlit as st

from studydocs.config import get_settings
from studydocs.controllers.auth import AuthController
from studydocs.controllers.dashboard import DashboardController
from studydocs.logging_setup import configure_logging
from studydocs.services.alerts import AlertCenter
from studydocs.services.documents import DocumentRepository
from studydocs.services.http import SupabaseHttp
from studydocs.services.session import SessionClient
from studydocs.services.storage import StorageClient
from studydocs.services.workflow import DocumentService

ALERTS_KEY = "alert_center"
DASHBOARD_KEY = "dashboard_controller"
AUTH_BUSY_KEY = "auth_busy"


def bootstrap() -> None:
    configure_logging(get_settings().LOG_LEVEL)


@st.cache_resource
def shared_http() -> SupabaseHttp:
    # one connection pool per server process; tokens travel per request
    return SupabaseHttp(get_settings())


def session_client() -> SessionClient:
    return SessionClient(shared_http(), st.session_state)


def alert_center() -> AlertCenter:
    if ALERTS_KEY not in st.session_state:
        st.session_state[ALERTS_KEY] = AlertCenter(get_settings().ALERT_TTL_SECONDS)
    return st.session_state[ALERTS_KEY]


def auth_controller() -> AuthController:
    return AuthController(
        session_client=session_client(),
        alerts=alert_center(),
        settings=get_settings(),
        busy=st.session_state.setdefault(AUTH_BUSY_KEY, set()),
    )


def dashboard_controller() -> DashboardController:
    if DASHBOARD_KEY not in st.session_state:
        settings = get_settings()
        http = shared_http()
        service = DocumentService(
            DocumentRepository(http, settings.DOCUMENTS_TABLE),
            StorageClient(http, settings.STORAGE_BUCKET),
            signed_url_ttl=settings.SIGNED_URL_TTL_SECONDS,
        )
        st.session_state[DASHBOARD_KEY] = DashboardController(
            session_client=session_client(),
            documents=service,
            alerts=alert_center(),
        )
    return st.session_state[DASHBOARD_KEY]
