# core/repository.py
"""
SchoolRepository - the single seam between the console and the database.

Pages build one repository from the cached engine and hand it to the
services explicitly; nothing in the services reaches for a global client.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.engine import Engine

from core.db import exec_sql, fetch_all, fetch_one
from core.records import (
    AcademicClass,
    AcademicClassStudent,
    ScoreEntry,
    Student,
    StudentSubjectEnrollment,
    StudentTermReport,
    Subject,
    Term,
)

logger = logging.getLogger(__name__)


UPSERT_SUBJECT_ENROLLMENT_SQL = """
    INSERT INTO student_subject_enrollments (
        school_id, student_id, subject_id, academic_class_id, term_id,
        is_enrolled, created_at, updated_at
    ) VALUES (
        :school_id, :student_id, :subject_id, :academic_class_id, :term_id,
        :is_enrolled, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP
    )
    ON CONFLICT(student_id, subject_id, academic_class_id, term_id)
    DO UPDATE SET
        is_enrolled = excluded.is_enrolled,
        updated_at = CURRENT_TIMESTAMP
"""


class SchoolRepository:
    """Typed reads and batched writes over the school tables."""

    def __init__(self, engine: Engine, school_id: Optional[int] = None):
        self.engine = engine
        self.school_id = school_id

    def _school_clause(self, column: str = "school_id") -> str:
        return f" AND {column} = :school_id" if self.school_id is not None else ""

    # ========================================================================
    # STRUCTURE
    # ========================================================================

    def fetch_students(self) -> List[Student]:
        rows = fetch_all(self.engine, f"""
            SELECT id, name, campus_id, school_id, admission_number,
                   class_id, arm_id, status
            FROM students
            WHERE 1 = 1 {self._school_clause()}
            ORDER BY name, id
        """, {"school_id": self.school_id})
        return [Student.from_row(r) for r in rows]

    def fetch_academic_classes(self, active_only: bool = False) -> List[AcademicClass]:
        sql = f"""
            SELECT id, school_id, name, level, arm, session_label, is_active
            FROM academic_classes
            WHERE 1 = 1 {self._school_clause()}
        """
        if active_only:
            sql += " AND is_active = 1"
        sql += " ORDER BY session_label DESC, name"
        return [AcademicClass.from_row(r) for r in fetch_all(self.engine, sql, {"school_id": self.school_id})]

    def fetch_terms(self) -> List[Term]:
        """Newest first, which is also the default selection in the pages."""
        rows = fetch_all(self.engine, f"""
            SELECT id, school_id, session_label, term_label, is_active, created_at
            FROM terms
            WHERE 1 = 1 {self._school_clause()}
            ORDER BY created_at DESC, id DESC
        """, {"school_id": self.school_id})
        return [Term.from_row(r) for r in rows]

    def fetch_subjects(self) -> List[Subject]:
        rows = fetch_all(self.engine, f"""
            SELECT id, school_id, name FROM subjects
            WHERE 1 = 1 {self._school_clause()}
            ORDER BY name
        """, {"school_id": self.school_id})
        return [Subject.from_row(r) for r in rows]

    def fetch_class_subjects(self, academic_class_id: int) -> List[Subject]:
        """
        Subjects offered to an academic class.

        The academic class's ``level`` names a base class ("JSS1"); its
        class_subjects mapping decides the subjects. With no base class or no
        mapping every school subject is offered.
        """
        academic_class = fetch_one(self.engine, """
            SELECT id, school_id, level FROM academic_classes WHERE id = :id
        """, {"id": academic_class_id})
        if not academic_class:
            return []

        base_class = fetch_one(self.engine, """
            SELECT id FROM classes
            WHERE school_id = :school_id AND name = :level
        """, {"school_id": academic_class["school_id"], "level": academic_class["level"]})
        if not base_class:
            return self.fetch_subjects()

        rows = fetch_all(self.engine, """
            SELECT s.id, s.school_id, s.name, cs.is_compulsory
            FROM class_subjects cs
            JOIN subjects s ON s.id = cs.subject_id
            WHERE cs.class_id = :class_id
            ORDER BY s.name
        """, {"class_id": base_class["id"]})
        if not rows:
            return self.fetch_subjects()
        return [Subject.from_row(r) for r in rows]

    # ========================================================================
    # ENROLLMENT & RESULTS
    # ========================================================================

    def fetch_class_enrollments(self, term_id: Optional[int] = None) -> List[AcademicClassStudent]:
        sql = """
            SELECT id, academic_class_id, student_id, enrolled_term_id, manually_enrolled
            FROM academic_class_students
        """
        params: Dict[str, Any] = {}
        if term_id is not None:
            sql += " WHERE enrolled_term_id = :term_id"
            params["term_id"] = term_id
        sql += " ORDER BY id"
        return [AcademicClassStudent.from_row(r) for r in fetch_all(self.engine, sql, params)]

    def fetch_class_roster(self, academic_class_id: int, term_id: int) -> List[Student]:
        """Students placed in the class for the term, sorted by name."""
        rows = fetch_all(self.engine, """
            SELECT DISTINCT s.id, s.name, s.campus_id, s.school_id, s.admission_number,
                   s.class_id, s.arm_id, s.status
            FROM academic_class_students acs
            JOIN students s ON s.id = acs.student_id
            WHERE acs.academic_class_id = :class_id
              AND acs.enrolled_term_id = :term_id
            ORDER BY s.name, s.id
        """, {"class_id": academic_class_id, "term_id": term_id})
        return [Student.from_row(r) for r in rows]

    def fetch_term_reports(self, term_id: Optional[int] = None) -> List[StudentTermReport]:
        sql = """
            SELECT id, student_id, term_id, academic_class_id, average_score,
                   total_score, position_in_class, is_published
            FROM student_term_reports
        """
        params: Dict[str, Any] = {}
        if term_id is not None:
            sql += " WHERE term_id = :term_id"
            params["term_id"] = term_id
        sql += " ORDER BY id"
        return [StudentTermReport.from_row(r) for r in fetch_all(self.engine, sql, params)]

    def fetch_score_entries(self, term_id: Optional[int] = None) -> List[ScoreEntry]:
        sql = """
            SELECT id, student_id, term_id, academic_class_id, subject_name,
                   total_score, grade_label
            FROM score_entries
        """
        params: Dict[str, Any] = {}
        if term_id is not None:
            sql += " WHERE term_id = :term_id"
            params["term_id"] = term_id
        sql += " ORDER BY id"
        return [ScoreEntry.from_row(r) for r in fetch_all(self.engine, sql, params)]

    def get_student_term_report_details(self, student_id: int, term_id: int) -> Optional[Dict[str, Any]]:
        """
        Structured summary of one student's term report: the report row,
        student/class/term labels, subject lines and the class size.
        """
        report = fetch_one(self.engine, """
            SELECT r.id, r.student_id, r.term_id, r.academic_class_id,
                   r.average_score, r.total_score, r.position_in_class,
                   r.position_in_grade, r.teacher_comment, r.principal_comment,
                   r.is_published,
                   s.name AS student_name, s.admission_number, s.campus_id,
                   ac.name AS class_name,
                   t.session_label, t.term_label
            FROM student_term_reports r
            JOIN students s ON s.id = r.student_id
            JOIN terms t ON t.id = r.term_id
            LEFT JOIN academic_classes ac ON ac.id = r.academic_class_id
            WHERE r.student_id = :sid AND r.term_id = :tid
            ORDER BY r.id DESC
            LIMIT 1
        """, {"sid": student_id, "tid": term_id})
        if not report:
            return None

        subjects = fetch_all(self.engine, """
            SELECT subject_name, total_score, grade_label, remark, subject_position
            FROM student_term_report_subjects
            WHERE report_id = :rid
            ORDER BY subject_name
        """, {"rid": report["id"]})

        class_size = 0
        if report.get("academic_class_id") is not None:
            size_row = fetch_one(self.engine, """
                SELECT COUNT(DISTINCT student_id) AS cnt
                FROM academic_class_students
                WHERE academic_class_id = :cid AND enrolled_term_id = :tid
            """, {"cid": report["academic_class_id"], "tid": term_id})
            class_size = int(size_row["cnt"]) if size_row else 0

        return {
            "report": report,
            "subjects": subjects,
            "class_size": class_size,
        }

    # ========================================================================
    # SUBJECT ENROLLMENT MATRIX
    # ========================================================================

    def fetch_subject_enrollments(
        self,
        academic_class_id: Optional[int] = None,
        term_id: Optional[int] = None,
    ) -> List[StudentSubjectEnrollment]:
        sql = """
            SELECT id, school_id, student_id, subject_id, academic_class_id,
                   term_id, is_enrolled
            FROM student_subject_enrollments
            WHERE 1 = 1
        """
        params: Dict[str, Any] = {}
        if academic_class_id is not None:
            sql += " AND academic_class_id = :class_id"
            params["class_id"] = academic_class_id
        if term_id is not None:
            sql += " AND term_id = :term_id"
            params["term_id"] = term_id
        sql += " ORDER BY id"
        return [StudentSubjectEnrollment.from_row(r) for r in fetch_all(self.engine, sql, params)]

    def upsert_subject_enrollments(self, rows: Iterable[StudentSubjectEnrollment]) -> int:
        """
        Write all rows in one transaction keyed on
        (student_id, subject_id, academic_class_id, term_id).

        Either the whole batch lands or none of it does; the caller sees the
        database error.
        """
        params: Sequence[dict] = [r.to_params() for r in rows]
        if not params:
            return 0
        with self.engine.begin() as conn:
            exec_sql(conn, UPSERT_SUBJECT_ENROLLMENT_SQL, params)
        logger.info("Upserted %d subject enrollment row(s)", len(params))
        return len(params)
