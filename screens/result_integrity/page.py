# screens/result_integrity/page.py
"""
Result Integrity - term statistics, cohort ranking and data integrity checks.
"""

import logging
from typing import Optional

import pandas as pd
import streamlit as st
from sqlalchemy.exc import SQLAlchemyError

from core.session import ensure_settings, get_repository
from core.forms import tagline
from screens.result_integrity.analytics import (
    aggregate_result_statistics,
    build_scope_for_class,
    calculate_campus_percentile,
    find_integrity_issues,
    rank_cohort,
    summarize_issues,
)
from screens.result_integrity.models import ISSUE_TYPE_LABELS, IssueType

logger = logging.getLogger(__name__)

PAGE_TITLE = "Result Integrity"


def render():
    """Main render function."""
    settings = ensure_settings()
    repo = get_repository()
    inactive = set(settings.results.inactive_statuses)

    st.title(PAGE_TITLE)
    tagline()

    try:
        terms = repo.fetch_terms()
        if not terms:
            st.info("No terms found. Create a term first.")
            st.stop()

        col_term, col_class = st.columns([1, 2])
        with col_term:
            term_id = st.selectbox(
                "Term*",
                options=[t.id for t in terms],
                format_func=lambda x: next(t.label for t in terms if t.id == x),
            )
        academic_classes = repo.fetch_academic_classes()
        with col_class:
            class_id: Optional[int] = st.selectbox(
                "Academic Class",
                options=[None] + [c.id for c in academic_classes],
                format_func=lambda x: "All classes" if x is None else next(
                    c.name for c in academic_classes if c.id == x
                ),
            )

        students = repo.fetch_students()
        enrollments = repo.fetch_class_enrollments(term_id)
        reports = repo.fetch_term_reports(term_id)
        score_entries = repo.fetch_score_entries(term_id)
    except SQLAlchemyError as e:
        logger.exception("Failed to load result data")
        st.error(f"Database Error: {e}")
        st.stop()

    scope = build_scope_for_class(
        class_id, term_id, academic_classes, enrollments, reports, score_entries, students
    )

    tabs = st.tabs(["📊 Statistics", "🏆 Rankings", "🩺 Integrity", "📄 Report Details"])

    with tabs[0]:
        stats = aggregate_result_statistics(
            reports, enrollments, students, scope,
            passing_score=settings.results.passing_score,
            classes=academic_classes,
            inactive_statuses=inactive,
        )
        if scope.campus_id is not None:
            st.caption(f"Campus statistics for campus {scope.campus_id}")
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Enrolled", stats.enrolled)
        c2.metric("With results", stats.with_results)
        c3.metric("Average score", f"{stats.average_score:.1f}")
        c4.metric("Pass rate", f"{stats.pass_rate:.0f}%")

    with tabs[1]:
        rankings = rank_cohort(reports, scope, students, academic_classes, inactive_statuses=inactive)
        if not rankings:
            st.info("No ranked results for this selection.")
        else:
            names = {s.id: s.name for s in students}
            rows = []
            for ranking in sorted(rankings, key=lambda r: r.rank):
                report = ranking.report
                rows.append({
                    "Student": names.get(ranking.student_id, ranking.student_id),
                    "Average": report.average_score if report else None,
                    "Rank": f"{ranking.rank} / {ranking.total}",
                    "Campus percentile": calculate_campus_percentile(
                        report, reports, scope, students, academic_classes,
                        inactive_statuses=inactive,
                    ) if report else None,
                })
            st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

    with tabs[2]:
        issues = find_integrity_issues(
            reports, enrollments, students, score_entries, scope, academic_classes,
            inactive_statuses=inactive,
        )
        counts = summarize_issues(issues)
        cols = st.columns(len(IssueType))
        for col, issue_type in zip(cols, IssueType):
            col.metric(ISSUE_TYPE_LABELS[issue_type], counts[issue_type])

        if not issues:
            st.success("No integrity issues found for this selection.")
        else:
            st.dataframe(
                pd.DataFrame([
                    {"Type": ISSUE_TYPE_LABELS[i.type], "Message": i.message}
                    for i in issues
                ]),
                use_container_width=True,
                hide_index=True,
            )

    with tabs[3]:
        reported_ids = sorted({r.student_id for r in reports})
        if not reported_ids:
            st.info("No reports for this term.")
            return
        names = {s.id: s.name for s in students}
        student_id = st.selectbox(
            "Student",
            options=reported_ids,
            format_func=lambda x: names.get(x, f"Student {x}"),
        )
        try:
            details = repo.get_student_term_report_details(student_id, term_id)
        except SQLAlchemyError as e:
            logger.exception("Failed to load report details")
            st.error(f"Failed to load report: {e}")
            return
        if not details:
            st.info("No report found.")
            return
        report = details["report"]
        st.markdown(
            f"**{report['student_name']}** · {report.get('class_name') or 'No class'} · "
            f"{report['session_label']} {report['term_label']}"
        )
        c1, c2, c3 = st.columns(3)
        c1.metric("Average", report.get("average_score"))
        c2.metric("Total", report.get("total_score"))
        c3.metric("Position", f"{report.get('position_in_class') or '-'} / {details['class_size']}")
        if details["subjects"]:
            st.dataframe(pd.DataFrame(details["subjects"]), use_container_width=True, hide_index=True)


render()
