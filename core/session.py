# core/session.py
from __future__ import annotations
import logging
import streamlit as st
from sqlalchemy.engine import Engine

from core.settings import Settings, load_settings
from core.db import get_engine, init_db
from core.logging_setup import configure_logging
from core.repository import SchoolRepository

logger = logging.getLogger(__name__)


def ensure_settings() -> Settings:
    if "settings" not in st.session_state:
        settings = load_settings()
        configure_logging(settings)
        st.session_state["settings"] = settings
    return st.session_state["settings"]


def ensure_engine() -> Engine:
    """Create the engine once per session and install schemas on first use."""
    if "engine" not in st.session_state:
        settings = ensure_settings()
        engine = get_engine(settings.db.url)
        failed = init_db(engine)
        if failed:
            logger.warning("Schema installers failed: %s", ", ".join(failed))
        st.session_state["engine"] = engine
    return st.session_state["engine"]


def get_repository() -> SchoolRepository:
    settings = ensure_settings()
    return SchoolRepository(ensure_engine(), school_id=settings.app.school_id)


def current_actor() -> str:
    user = st.session_state.get("user") or {}
    return user.get("email") or st.session_state.get("user_email", "system")
