from __future__ import annotations

import streamlit as st

from studydocs.ui.auth import auth_page
from studydocs.ui.runtime import alert_center, auth_controller, bootstrap

st.set_page_config(page_title="Student Document Portal", layout="centered")

bootstrap()

auth_page(auth_controller(), alert_center())
