from __future__ import annotations

import streamlit as st

from studydocs.controllers.dashboard import Action, DashboardController
from studydocs.models import Document
from studydocs.services.alerts import AlertCenter
from studydocs.services.validators import PDF_MIME
from studydocs.ui.components import LOGIN_PAGE, format_date, h2, render_alert

UPLOAD_NONCE_KEY = "upload_form_nonce"
SEARCH_NONCE_KEY = "search_nonce"


def _settle(controller: DashboardController) -> None:
    """Leave the page on exit states, otherwise redraw from controller state."""
    if controller.is_exited:
        st.switch_page(LOGIN_PAGE)
    st.rerun()


def _trigger(controller: DashboardController, action: Action) -> dict:
    """Widget kwargs that draw the control disabled while ``action`` is in flight."""
    return {
        "disabled": controller.is_busy(action),
        "on_click": controller.arm,
        "args": (action,),
    }


def _release_stale(controller: DashboardController) -> None:
    # a flag armed by a click whose control is no longer drawn
    if controller.busy:
        controller.busy.clear()
        st.rerun()


def _header(controller: DashboardController) -> None:
    left, right = st.columns([5, 1])
    with left:
        st.title("My Documents")
        st.text(controller.session.user.email or controller.session.user.id)
    with right:
        st.button("Logout", use_container_width=True, **_trigger(controller, Action.LOGOUT))
        if controller.is_busy(Action.LOGOUT):
            controller.dispatch(Action.LOGOUT)
            _settle(controller)


def _upload_form(controller: DashboardController) -> None:
    nonce = st.session_state.setdefault(UPLOAD_NONCE_KEY, 0)
    with st.expander("Upload document", expanded=not controller.documents):
        with st.form(f"upload_form_{nonce}"):
            title = st.text_input("Title *", key=f"upload_title_{nonce}")
            description = st.text_area("Description", key=f"upload_description_{nonce}")
            up = st.file_uploader("PDF file *", type=["pdf"], key=f"upload_file_{nonce}")
            st.form_submit_button("Upload", type="primary", **_trigger(controller, Action.UPLOAD))

    # armed by the click callback, so the button above was drawn disabled
    if controller.is_busy(Action.UPLOAD):
        with st.spinner("Uploading..."):
            ok = controller.dispatch(
                Action.UPLOAD,
                title=title,
                description=description,
                filename=up.name if up is not None else None,
                content_type=up.type if up is not None else None,
                data=up.getvalue() if up is not None else None,
            )
        if ok:
            st.session_state[UPLOAD_NONCE_KEY] = nonce + 1
        _settle(controller)


def _edit_form(controller: DashboardController, doc: Document) -> None:
    h2("Edit document")
    with st.form(f"edit_form_{doc.id}"):
        title = st.text_input("Title *", value=doc.title, key=f"edit_title_{doc.id}")
        description = st.text_area("Description", value=doc.description or "", key=f"edit_description_{doc.id}")
        c1, c2 = st.columns(2)
        c1.form_submit_button("Save changes", type="primary", **_trigger(controller, Action.SAVE_EDIT))
        cancel = c2.form_submit_button("Cancel")

    if controller.is_busy(Action.SAVE_EDIT):
        with st.spinner("Saving..."):
            controller.dispatch(Action.SAVE_EDIT, title=title, description=description)
        _settle(controller)
    if cancel:
        controller.dispatch(Action.CANCEL_EDIT)
        _settle(controller)


def _delete_confirm(controller: DashboardController, doc: Document) -> None:
    st.warning("Are you sure you want to delete this document? This action cannot be undone.")
    st.text(doc.title)
    c1, c2, _ = st.columns([1, 1, 4])
    c1.button("Delete", type="primary", key="confirm_delete", **_trigger(controller, Action.CONFIRM_DELETE))
    if controller.is_busy(Action.CONFIRM_DELETE):
        with st.spinner("Deleting..."):
            controller.dispatch(Action.CONFIRM_DELETE)
        _settle(controller)
    if c2.button("Cancel", key="cancel_delete"):
        controller.dispatch(Action.CANCEL_DELETE)
        _settle(controller)


def _file_access(controller: DashboardController) -> None:
    link = controller.current_view_link()
    if link is not None:
        st.link_button(f"Open {link.title}", link.link.url)

    pending = controller.pending_download
    if pending is not None:
        if st.download_button(f"Save {pending.file_name}", data=pending.data, file_name=pending.file_name, mime=PDF_MIME):
            controller.clear_download()


def _search_bar(controller: DashboardController) -> None:
    nonce = st.session_state.setdefault(SEARCH_NONCE_KEY, 0)
    c1, c2 = st.columns([5, 1])
    with c1:
        query = st.text_input(
            "Search",
            key=f"search_{nonce}",
            placeholder="Search by title...",
            label_visibility="collapsed",
        )
    with c2:
        st.button("Refresh", use_container_width=True, **_trigger(controller, Action.REFRESH))

    if controller.is_busy(Action.REFRESH):
        st.session_state[SEARCH_NONCE_KEY] = nonce + 1
        controller.dispatch(Action.REFRESH)
        _settle(controller)

    # text inputs commit on Enter or blur; only a changed query is sent
    if (query or "").strip() != controller.query:
        controller.dispatch(Action.SEARCH, query)
    if controller.is_exited:
        _settle(controller)


def _document_table(controller: DashboardController) -> None:
    if controller.load_error is not None:
        st.error("Error loading documents")
        return
    if not controller.documents:
        st.info("No documents found. Upload your first document!")
        return

    head = st.columns([3, 4, 2, 4])
    for col, label in zip(head, ["Title", "Description", "Uploaded", "Actions"]):
        col.caption(label)

    for doc in controller.documents:
        c_title, c_desc, c_date, c_actions = st.columns([3, 4, 2, 4])
        c_title.text(doc.title)
        c_desc.text(doc.description or "N/A")
        c_date.text(format_date(doc.uploaded_at))
        b1, b2, b3, b4 = c_actions.columns(4)
        if b1.button("View", key=f"view_{doc.id}", **_trigger(controller, Action.VIEW)):
            controller.dispatch(Action.VIEW, doc)
            _settle(controller)
        if b2.button("Download", key=f"download_{doc.id}", **_trigger(controller, Action.DOWNLOAD)):
            controller.dispatch(Action.DOWNLOAD, doc)
            _settle(controller)
        if b3.button("Edit", key=f"edit_{doc.id}"):
            controller.dispatch(Action.START_EDIT, doc)
            _settle(controller)
        if b4.button("Delete", key=f"delete_{doc.id}"):
            controller.dispatch(Action.REQUEST_DELETE, doc)
            _settle(controller)


def dashboard_app(controller: DashboardController, alerts: AlertCenter) -> None:
    _header(controller)
    render_alert(alerts)

    _upload_form(controller)

    if controller.editing is not None:
        _edit_form(controller, controller.editing)
    if controller.pending_delete is not None:
        _delete_confirm(controller, controller.pending_delete)

    _file_access(controller)

    h2("Documents")
    _search_bar(controller)
    _document_table(controller)
    _release_stale(controller)
