#ui/certificate_tab/render.py
import asyncio

import streamlit as st

from core.controller import Notification, NotificationKind
from ui.certificate_tab.state import (
    INPUT_KEY,
    PENDING_KEY,
    clear_staged_download,
    get_controller,
    get_settings,
    get_staged_download,
)


def _render_notification(notification: Notification | None):
    if notification is None:
        return
    if notification.kind == NotificationKind.SUCCESS:
        st.success(notification.message, icon="✅")
    elif notification.kind == NotificationKind.ERROR:
        st.error(notification.message, icon="❌")
    else:
        st.warning(notification.message, icon="⚠️")


def _render_download():
    staged = get_staged_download()
    if not staged:
        return
    st.download_button(
        "Download certificate ⬇️",
        data=staged["data"],
        file_name=staged["filename"],
        mime="image/png",
        width="stretch",
    )
    st.image(staged["data"], caption=staged["filename"])


def _run_pending_search(controller, bib: str):
    # Widgets on this run were drawn disabled; the search runs to completion
    # and the next run re-enables them.
    clear_staged_download()
    with st.spinner("Generating your certificate..."):
        try:
            asyncio.run(controller.search(bib))
        finally:
            st.session_state.pop(PENDING_KEY, None)


def render():
    settings = get_settings()
    controller = get_controller()
    pending = st.session_state.get(PENDING_KEY)
    busy = controller.busy or pending is not None

    st.title("🏅 Finisher Certificate")
    st.caption(f"{settings.event_label.replace('-', ' ')}: enter your Bib Number to download your certificate.")

    if not controller.directory.is_ready():
        st.caption("Loading participant data...")

    with st.form("certificate_search", clear_on_submit=False, border=False):
        bib = st.text_input(
            "Bib Number",
            key=INPUT_KEY,
            placeholder="e.g. 001",
            disabled=busy,
        )
        submitted = st.form_submit_button("Search 🔍", type="primary", disabled=busy, width="stretch")

    if submitted and not busy:
        st.session_state[PENDING_KEY] = bib
        st.rerun()

    if pending is not None:
        _run_pending_search(controller, pending)
        st.rerun()

    _render_notification(controller.notification)
    if controller.notification is not None and controller.notification.kind == NotificationKind.SUCCESS:
        _render_download()
