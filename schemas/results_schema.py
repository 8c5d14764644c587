# schemas/results_schema.py
"""
Results schema
- student_term_reports: one computed report per student/term/class
- student_term_report_subjects: per-subject lines of a report
- score_entries: raw per-subject scores entered by teachers

No UNIQUE on (student_id, term_id, academic_class_id); duplicate reports are
flagged by the integrity checker instead.
"""
from __future__ import annotations
import logging
from sqlalchemy.engine import Engine
from sqlalchemy import text as sa_text
from core.schema_registry import register

logger = logging.getLogger(__name__)


@register("results")
def install_schema(engine: Engine) -> None:
    with engine.begin() as conn:
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS student_term_reports (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                student_id INTEGER NOT NULL,
                term_id INTEGER NOT NULL,
                academic_class_id INTEGER,
                average_score NUMERIC,
                total_score NUMERIC,
                position_in_class INTEGER,
                position_in_grade INTEGER,
                teacher_comment TEXT,
                principal_comment TEXT,
                is_published INTEGER DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (student_id) REFERENCES students(id) ON DELETE CASCADE,
                FOREIGN KEY (term_id) REFERENCES terms(id) ON DELETE CASCADE
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_str_term ON student_term_reports(term_id, academic_class_id)"))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_str_student ON student_term_reports(student_id)"))

        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS student_term_report_subjects (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                report_id INTEGER NOT NULL,
                subject_name TEXT,
                total_score NUMERIC,
                grade_label TEXT,
                remark TEXT,
                subject_position INTEGER,
                FOREIGN KEY (report_id) REFERENCES student_term_reports(id) ON DELETE CASCADE
            )
        """))

        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS score_entries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                school_id INTEGER,
                student_id INTEGER NOT NULL,
                term_id INTEGER NOT NULL,
                academic_class_id INTEGER,
                subject_name TEXT,
                total_score NUMERIC,
                grade_label TEXT,
                FOREIGN KEY (student_id) REFERENCES students(id) ON DELETE CASCADE,
                FOREIGN KEY (term_id) REFERENCES terms(id) ON DELETE CASCADE
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_score_entries_term ON score_entries(term_id, academic_class_id)"))

    logger.info("✅ Installed results tables")
