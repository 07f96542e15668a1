from __future__ import annotations

import streamlit as st

from studydocs.controllers.dashboard import DashboardState
from studydocs.ui.components import LOGIN_PAGE
from studydocs.ui.dashboard import dashboard_app
from studydocs.ui.runtime import alert_center, bootstrap, dashboard_controller

st.set_page_config(page_title="My Documents", layout="wide")

bootstrap()

controller = dashboard_controller()
if controller.start() in (DashboardState.UNAUTHENTICATED, DashboardState.SESSION_EXPIRED):
    st.switch_page(LOGIN_PAGE)

dashboard_app(controller, alert_center())
