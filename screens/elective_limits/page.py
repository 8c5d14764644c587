# screens/elective_limits/page.py
"""
Elective Limits - capacity per elective subject and choice locking.
"""

import logging
from typing import Dict, Optional

import pandas as pd
import streamlit as st
from sqlalchemy.exc import SQLAlchemyError

from core.db import fetch_all
from core.session import current_actor, ensure_settings, get_repository
from core.forms import toast
from screens.elective_limits import service

logger = logging.getLogger(__name__)

PAGE_TITLE = "Elective Limits"


def render():
    """Main render function."""
    settings = ensure_settings()
    repo = get_repository()
    school_id = settings.app.school_id
    actor = current_actor()

    st.title(PAGE_TITLE)
    st.caption("Optional capacity limits for elective subjects. Blank means unlimited.")

    try:
        classes = fetch_all(repo.engine, "SELECT id, name FROM classes WHERE school_id = :sid ORDER BY name", {"sid": school_id})
        arms = fetch_all(repo.engine, "SELECT id, name FROM arms WHERE school_id = :sid ORDER BY name", {"sid": school_id})
    except SQLAlchemyError as e:
        logger.exception("Failed to load classes/arms")
        st.error(f"Database Error: {e}")
        st.stop()

    if not classes:
        st.info("No classes found.")
        st.stop()

    col_class, col_arm = st.columns(2)
    with col_class:
        class_id = st.selectbox(
            "Class*",
            options=[c["id"] for c in classes],
            format_func=lambda x: next(c["name"] for c in classes if c["id"] == x),
        )
    with col_arm:
        arm_id: Optional[int] = st.selectbox(
            "Arm",
            options=[None] + [a["id"] for a in arms],
            format_func=lambda x: "All arms" if x is None else next(a["name"] for a in arms if a["id"] == x),
        )

    tabs = st.tabs(["📏 Limits", "🔒 Choice Locking"])

    with tabs[0]:
        try:
            info = service.get_elective_capacity_info(repo, school_id, class_id, arm_id)
        except SQLAlchemyError as e:
            logger.exception("Failed to load elective capacity")
            st.error(f"Database Error: {e}")
            st.stop()
        if not info:
            st.info("No elective subjects are mapped to this class.")
        else:
            grid = pd.DataFrame([{
                "Subject ID": i.subject_id,
                "Subject": i.subject_name,
                "Enrolled": i.current_enrollment,
                "Max students": "" if i.max_students is None else str(i.max_students),
                "Full": "🔴" if i.is_at_capacity else "🟢",
            } for i in info])
            edited = st.data_editor(
                grid,
                disabled=["Subject ID", "Subject", "Enrolled", "Full"],
                hide_index=True,
                use_container_width=True,
            )
            if st.button("💾 Save limits", type="primary"):
                current = {i.subject_id: i.max_students for i in info}
                changes: Dict[int, Optional[int]] = {}
                try:
                    for _, row in edited.iterrows():
                        new_limit = service.parse_limit(row["Max students"])
                        if new_limit != current[int(row["Subject ID"])]:
                            changes[int(row["Subject ID"])] = new_limit
                except ValueError as e:
                    toast(f"Invalid limit: {e}", "error")
                    changes = {}
                if not changes:
                    toast("No changes to save", "info")
                else:
                    ok, bad = service.save_limits(repo, school_id, class_id, arm_id, changes)
                    if bad == 0:
                        toast(f"Successfully updated {ok} limit(s)", "success")
                        st.rerun()
                    else:
                        toast(f"Updated {ok} limit(s), {bad} failed", "error")

    with tabs[1]:
        try:
            students = [s for s in repo.fetch_students() if s.class_id == class_id and (arm_id is None or s.arm_id == arm_id)]
        except SQLAlchemyError as e:
            logger.exception("Failed to load students")
            st.error(f"Database Error: {e}")
            st.stop()
        if not students:
            st.info("No students in this class/arm.")
            return
        names = {s.id: s.name for s in students}
        picked = st.multiselect("Students", list(names), format_func=lambda x: names[x])
        c_lock, c_unlock = st.columns(2)
        if c_lock.button("🔒 Lock choices", disabled=not picked):
            result = service.bulk_lock_choices(repo, picked, actor)
            toast(result.message, "success" if result.success else "error")
        if c_unlock.button("🔓 Unlock choices", disabled=not picked):
            result = service.bulk_unlock_choices(repo, picked, actor)
            toast(result.message, "success" if result.success else "error")

        try:
            rows = [{
                "Student": s.name,
                "Locked": "🔒" if service.get_student_choices_lock_status(repo, s.id) else "",
            } for s in students]
        except SQLAlchemyError:
            logger.exception("Failed to load lock status")
            toast("Failed to load lock status", "error")
            return
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


render()
