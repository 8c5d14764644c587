from __future__ import annotations
import logging
import streamlit as st

logger = logging.getLogger(__name__)

_TOAST_ICONS = {"success": "✅", "error": "❌", "info": "ℹ️"}


def tagline():
    st.caption("Results integrity · Subject enrollment · Elective limits")


def toast(msg: str, kind: str = "info"):
    """Transient notification, categorized success/error/info."""
    if kind not in _TOAST_ICONS:
        kind = "info"
    if kind == "error":
        logger.warning("User-facing error: %s", msg)
    st.toast(msg, icon=_TOAST_ICONS[kind])
