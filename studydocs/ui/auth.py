from __future__ import annotations

import time

import streamlit as st

from studydocs.controllers.auth import AuthController, Page, Redirect
from studydocs.services.alerts import AlertCenter
from studydocs.ui.components import DASHBOARD_PAGE, render_alert

MODES = ["Login", "Sign up"]
MODE_KEY = "auth_mode"
SIGNUP_NONCE_KEY = "signup_form_nonce"


def _follow(redirect: Redirect) -> None:
    if redirect.delay_seconds:
        time.sleep(redirect.delay_seconds)
    if redirect.page is Page.DASHBOARD:
        st.switch_page(DASHBOARD_PAGE)
    st.session_state[MODE_KEY] = "Login"
    st.rerun()


def login_view(controller: AuthController, alerts: AlertCenter, slot) -> None:
    with st.form("login_form"):
        email = st.text_input("Email", key="login_email", placeholder="you@university.edu")
        password = st.text_input("Password", type="password", key="login_password")
        st.form_submit_button(
            "Login",
            type="primary",
            disabled=controller.is_busy("login"),
            on_click=controller.arm,
            args=("login",),
        )

    # armed by the click callback, ahead of this run
    if controller.is_busy("login"):
        with st.spinner("Signing in..."):
            outcome = controller.login(email, password)
        render_alert(alerts, slot)
        if outcome.redirect:
            _follow(outcome.redirect)
        st.rerun()


def signup_view(controller: AuthController, alerts: AlertCenter, slot) -> None:
    nonce = st.session_state.setdefault(SIGNUP_NONCE_KEY, 0)
    with st.form(f"signup_form_{nonce}"):
        email = st.text_input("Email", key=f"signup_email_{nonce}")
        password = st.text_input("Password", type="password", key=f"signup_password_{nonce}")
        confirm = st.text_input("Confirm password", type="password", key=f"signup_confirm_{nonce}")
        st.form_submit_button(
            "Create account",
            type="primary",
            disabled=controller.is_busy("signup"),
            on_click=controller.arm,
            args=("signup",),
        )

    if controller.is_busy("signup"):
        with st.spinner("Creating account..."):
            outcome = controller.signup(email, password, confirm)
        render_alert(alerts, slot)
        if outcome.clear_form:
            st.session_state[SIGNUP_NONCE_KEY] = nonce + 1
        if outcome.redirect:
            _follow(outcome.redirect)
        st.rerun()


def auth_page(controller: AuthController, alerts: AlertCenter) -> None:
    redirect = controller.initial_redirect()
    if redirect:
        st.switch_page(DASHBOARD_PAGE)

    st.title("Student Document Portal")
    st.caption("Upload, organise and share your course PDFs.")
    slot = st.empty()
    render_alert(alerts, slot)

    current = st.session_state.get(MODE_KEY, MODES[0])
    mode = st.radio("Mode", MODES, index=MODES.index(current), horizontal=True, label_visibility="collapsed")
    st.session_state[MODE_KEY] = mode

    # a submit armed on the form that is no longer shown is dropped
    controller.busy.discard("signup" if mode == "Login" else "login")
    if mode == "Login":
        login_view(controller, alerts, slot)
    else:
        signup_view(controller, alerts, slot)
