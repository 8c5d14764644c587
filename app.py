# app.py
from __future__ import annotations
import logging
import os
from pathlib import Path
import streamlit as st

from core.session import ensure_engine, ensure_settings

logger = logging.getLogger(__name__)

APP_FILE = Path(__file__).resolve()
APP_DIR  = APP_FILE.parent
SCREENS_DIR = APP_DIR / "screens"

# (route_stem, title)
PAGES = [
    ("result_integrity", "🩺 Result Integrity"),
    ("subject_enrollment", "📚 Subject Enrollment"),
    ("elective_limits", "📏 Elective Limits"),
]


def _add_page(route_stem: str, title: str, pages_out: list, missing_out: list):
    page_path = SCREENS_DIR / route_stem / "page.py"
    if not page_path.exists():
        missing_out.append((route_stem, "Not found"))
        return

    relative_path_str = str(page_path.relative_to(APP_DIR)).replace(os.path.sep, '/')
    pages_out.append(st.Page(
        relative_path_str,
        title=title,
        default=(route_stem == PAGES[0][0]),
        url_path=route_stem,
    ))


def _build_pages():
    pages, missing = [], []
    for route_stem, title in PAGES:
        _add_page(route_stem, title, pages, missing)

    if missing:
        st.sidebar.warning(f"Missing pages: {[m[0] for m in missing]}")

    return pages, missing


def main():
    settings = ensure_settings()
    st.set_page_config(page_title=settings.app.name, layout="wide", initial_sidebar_state="auto")

    # engine + schema install happen once per session
    ensure_engine()

    pages, _ = _build_pages()
    if not pages:
        st.error("No pages available.")
        return

    st.sidebar.caption(f"{settings.app.name} · {settings.app.environment}")
    nav = st.navigation(pages, position="sidebar")
    nav.run()


if __name__ == "__main__":
    main()
