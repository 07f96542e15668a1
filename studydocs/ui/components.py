from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Any, Optional

import streamlit as st

from studydocs.services.alerts import AlertCenter, AlertLevel

LOGIN_PAGE = "app.py"
DASHBOARD_PAGE = "pages/1_Dashboard.py"


def h2(title: str, caption: str | None = None):
    st.subheader(title)
    if caption:
        st.caption(caption)


def format_date(value: datetime, tz: Optional[tzinfo] = None) -> str:
    """``Jan 5, 2025, 3:04 PM``; aware timestamps are shown in local time."""
    dt = value
    if dt.tzinfo is not None:
        dt = dt.astimezone(tz)
    hour = dt.hour % 12 or 12
    return f"{dt:%b} {dt.day}, {dt.year}, {hour}:{dt:%M} {dt:%p}"


def render_alert(alerts: AlertCenter, slot: Any = None) -> None:
    n = alerts.current()
    target = slot if slot is not None else st
    if n is None:
        if slot is not None:
            slot.empty()
        return
    if n.level is AlertLevel.SUCCESS:
        target.success(n.message)
    elif n.level is AlertLevel.WARNING:
        target.warning(n.message)
    elif n.level is AlertLevel.DANGER:
        target.error(n.message)
    else:
        target.info(n.message)
