# app.py
import logging
import os

import streamlit as st

from ui.certificate_tab.render import render as certificate_render

logging.basicConfig(
    level=os.environ.get("CERT_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

st.set_page_config(
    page_title="Finisher Certificate",
    page_icon="🏅",
    layout="centered",
    initial_sidebar_state="collapsed",
)

st.markdown("""
    <style>
    .stApp {
        background: linear-gradient(180deg, #f0fdfa 0, #f8fafc 60%);
    }

    html, body, [class*="css"]  {
        font-family: "Inter", "Segoe UI", sans-serif;
    }

    /* Primary action in the brand teal */
    .stButton > button[kind="primary"],
    .stFormSubmitButton > button[kind="primaryFormSubmit"] {
        background-color: #0d9488 !important;
        border-color: #0d9488 !important;
    }

    /* Certificate preview: subtle drop shadow */
    img {
        border-radius: 6px;
        box-shadow: 0 8px 20px rgba(15, 23, 42, 0.15);
    }
    </style>
""", unsafe_allow_html=True)

certificate_render()
