from typing import Any, Dict, Optional

import streamlit as st

from core.certificate import CertificateRenderer
from core.controller import CertificateController
from core.participants import ParticipantDirectory
from core.settings_manager import CertificateSettings, load_settings
from core.surface import PillowSurface

SETTINGS_KEY = "certificate_settings"
CONTROLLER_KEY = "certificate_controller"
DOWNLOAD_KEY = "certificate_download"
PENDING_KEY = "certificate_pending_bib"
INPUT_KEY = "certificate_bib_input"


@st.cache_resource(show_spinner=False)
def get_directory(source: str, request_timeout: float) -> ParticipantDirectory:
    """One read-only directory per server process, loaded in the background."""
    directory = ParticipantDirectory(request_timeout=request_timeout)
    directory.start_background_load(source)
    return directory


def get_settings() -> CertificateSettings:
    if SETTINGS_KEY not in st.session_state:
        st.session_state[SETTINGS_KEY] = load_settings()
    return st.session_state[SETTINGS_KEY]


def _stage_download(data: bytes, filename: str) -> None:
    # The download button picks this up on the next run.
    st.session_state[DOWNLOAD_KEY] = {"filename": filename, "data": data}


def get_controller() -> CertificateController:
    """Per-session controller; the busy flag and notification belong to one browser session."""
    controller = st.session_state.get(CONTROLLER_KEY)
    if isinstance(controller, CertificateController):
        return controller

    settings = get_settings()
    directory = get_directory(settings.participants_source, settings.request_timeout)
    surface = PillowSurface(
        settings.canvas_width,
        settings.canvas_height,
        _stage_download,
        font_path=settings.font_path,
    )
    controller = CertificateController(
        directory,
        CertificateRenderer(surface, settings),
        pacing_delay=settings.pacing_delay,
    )
    st.session_state[CONTROLLER_KEY] = controller
    return controller


def get_staged_download() -> Optional[Dict[str, Any]]:
    staged = st.session_state.get(DOWNLOAD_KEY)
    return staged if isinstance(staged, dict) else None


def clear_staged_download() -> None:
    st.session_state.pop(DOWNLOAD_KEY, None)
