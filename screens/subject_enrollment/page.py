# screens/subject_enrollment/page.py
"""
Subject Enrollment - the student x subject grid for a class and term.
"""

import logging

import streamlit as st
from sqlalchemy.exc import SQLAlchemyError

from core.session import get_repository
from core.forms import toast
from screens.subject_enrollment.matrix import EnrollmentMatrix
from screens.subject_enrollment import import_export

logger = logging.getLogger(__name__)

PAGE_TITLE = "Subject Enrollment"

HELP_TEXT = """
- Select an academic class and term to view and manage student enrollments
- **Bulk Import:** download the CSV, edit it (1 = enrolled, 0 = not enrolled), then upload it
- Tick or untick cells to change individual enrollments, then save
- Use **All ✓** / **None ✗** to enroll or unenroll the listed students for one subject
- If no enrollment records exist for a subject, teachers see all class students
- Once a student is unticked, teachers only see the students left enrolled
"""


def _render_grid(matrix: EnrollmentMatrix, students):
    grid = matrix.to_dataframe(students)
    edited = st.data_editor(
        grid,
        disabled=import_export.IDENTITY_COLUMNS,
        hide_index=True,
        use_container_width=True,
        key=f"grid_{matrix.academic_class_id}_{matrix.term_id}",
    )

    if st.button("💾 Save changes", type="primary"):
        changed = []
        for idx, row in edited.iterrows():
            student_id = int(grid.at[idx, "Student ID"])
            for subject in matrix.subjects:
                new_value = bool(row[subject.name])
                if new_value != matrix.is_enrolled(student_id, subject.id):
                    changed.append((student_id, subject.id, new_value))
        if not changed:
            toast("No changes to save", "info")
            return
        try:
            matrix.apply(changed)
            toast(f"Saved {len(changed)} enrollment change(s)", "success")
            st.rerun()
        except SQLAlchemyError:
            logger.exception("Error saving enrollment grid")
            toast("Failed to update enrollment", "error")


def _render_bulk(matrix: EnrollmentMatrix, students):
    st.markdown("### ⚡ Bulk actions")
    student_ids = [s.id for s in students]
    for subject in matrix.subjects:
        c_name, c_count, c_all, c_none = st.columns([3, 1, 1, 1])
        c_name.write(subject.name)
        c_count.caption(f"{matrix.enrolled_count(subject.id)} / {len(matrix.students)}")
        for col, enroll, label in ((c_all, True, "All ✓"), (c_none, False, "None ✗")):
            if col.button(label, key=f"bulk_{subject.id}_{enroll}"):
                try:
                    matrix.bulk_toggle_subject(subject.id, enroll, student_ids)
                    toast(f"All students {'enrolled' if enroll else 'unenrolled'} successfully", "success")
                    st.rerun()
                except (SQLAlchemyError, ValueError):
                    logger.exception("Error bulk toggling enrollment")
                    toast("Failed to update enrollments", "error")

    with st.expander("Enroll selected students in selected subjects"):
        names = {s.id: s.name for s in students}
        picked_students = st.multiselect("Students", student_ids, format_func=lambda x: names[x])
        subject_names = {s.id: s.name for s in matrix.subjects}
        picked_subjects = st.multiselect("Subjects", list(subject_names), format_func=lambda x: subject_names[x])
        enroll = st.radio("Action", ["Enroll", "Unenroll"], horizontal=True) == "Enroll"
        if st.button("Apply to selection", disabled=not (picked_students and picked_subjects)):
            try:
                count = matrix.bulk_enroll_selected(picked_students, picked_subjects, enroll)
                toast(f"Updated {count} enrollment(s)", "success")
                st.rerun()
            except (SQLAlchemyError, ValueError):
                logger.exception("Error applying bulk selection")
                toast("Failed to update enrollments", "error")


def _render_csv(matrix: EnrollmentMatrix, students, class_name: str, term_label: str):
    st.markdown("### 📥 CSV Import / Export")
    col_down, col_up = st.columns(2)
    with col_down:
        st.download_button(
            "📄 Download CSV",
            import_export.export_matrix_csv(matrix, students),
            file_name=import_export.csv_file_name(class_name, term_label),
            mime="text/csv",
        )
    with col_up:
        uploaded = st.file_uploader("Upload CSV", type=["csv"], key="enrollment_csv_uploader")
        if uploaded is None:
            return
        try:
            df = import_export.read_matrix_csv(uploaded)
        except ValueError as e:
            st.error(f"Error reading CSV: {e}")
            return
        is_valid, errors = import_export.validate_matrix_csv(df, matrix)
        if not is_valid:
            for err in errors:
                st.error(f"• {err}")
            return
        st.dataframe(df, use_container_width=True, hide_index=True)
        if st.button("✅ Import enrollments"):
            try:
                applied, skipped, messages = import_export.import_matrix_csv(df, matrix)
            except ValueError as e:
                toast(str(e), "error")
                return
            except SQLAlchemyError:
                logger.exception("Error uploading CSV")
                toast("Failed to upload CSV file", "error")
                return
            for msg in messages:
                st.info(msg)
            toast(f"Imported {applied} enrollment(s), skipped {skipped} row(s)", "success")


def render():
    """Main render function."""
    repo = get_repository()

    st.title(PAGE_TITLE)
    st.caption("Choose which class students take which subjects this term")

    try:
        academic_classes = repo.fetch_academic_classes(active_only=True)
        terms = repo.fetch_terms()
    except SQLAlchemyError as e:
        logger.exception("Failed to load classes/terms")
        st.error(f"Database Error: {e}")
        st.stop()

    if not academic_classes or not terms:
        st.info("Please create an academic class and a term first.")
        st.stop()

    col_class, col_term, col_search = st.columns([2, 1, 2])
    with col_class:
        class_id = st.selectbox(
            "Academic Class*",
            options=[c.id for c in academic_classes],
            format_func=lambda x: next(c.name for c in academic_classes if c.id == x),
        )
    with col_term:
        term_id = st.selectbox(
            "Term*",
            options=[t.id for t in terms],
            format_func=lambda x: next(t.label for t in terms if t.id == x),
        )
    with col_search:
        search = st.text_input("Search by name or admission number")

    try:
        matrix = EnrollmentMatrix.load(repo, class_id, term_id)
    except SQLAlchemyError as e:
        logger.exception("Failed to load enrollment grid")
        st.error(f"Database Error: {e}")
        st.stop()

    if not matrix.students:
        st.info("No students are enrolled in this class for the selected term.")
    else:
        students = matrix.filter_students(search)
        _render_grid(matrix, students)
        _render_bulk(matrix, students)
        class_name = next(c.name for c in academic_classes if c.id == class_id)
        term_label = next(t.term_label for t in terms if t.id == term_id)
        _render_csv(matrix, students, class_name, term_label)

    with st.expander("ℹ️ How it works"):
        st.markdown(HELP_TEXT)


render()
