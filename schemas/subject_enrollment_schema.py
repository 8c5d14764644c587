# schemas/subject_enrollment_schema.py
"""
Subject enrollment & elective schema
- student_subject_enrollments: the enrollment matrix (one row per explicit cell)
- student_subject_choices: subjects a student picked, lockable by admins
- elective_subject_limits: optional capacity per class/arm/elective (NULL = unlimited)
"""
from __future__ import annotations
import logging
from sqlalchemy.engine import Engine
from sqlalchemy import text as sa_text
from core.schema_registry import register

logger = logging.getLogger(__name__)


@register("subject_enrollment")
def install_schema(engine: Engine) -> None:
    with engine.begin() as conn:
        # conflict target for every matrix write is the 4-tuple below
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS student_subject_enrollments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                school_id INTEGER,
                student_id INTEGER NOT NULL,
                subject_id INTEGER NOT NULL,
                academic_class_id INTEGER NOT NULL,
                term_id INTEGER NOT NULL,
                is_enrolled INTEGER DEFAULT 1,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (student_id) REFERENCES students(id) ON DELETE CASCADE,
                FOREIGN KEY (subject_id) REFERENCES subjects(id) ON DELETE CASCADE,
                FOREIGN KEY (academic_class_id) REFERENCES academic_classes(id) ON DELETE CASCADE,
                FOREIGN KEY (term_id) REFERENCES terms(id) ON DELETE CASCADE,
                UNIQUE(student_id, subject_id, academic_class_id, term_id)
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_sse_class_term ON student_subject_enrollments(academic_class_id, term_id)"))

        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS student_subject_choices (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                student_id INTEGER NOT NULL,
                subject_id INTEGER NOT NULL,
                locked INTEGER DEFAULT 0,
                locked_at TIMESTAMP,
                locked_by TEXT,
                FOREIGN KEY (student_id) REFERENCES students(id) ON DELETE CASCADE,
                FOREIGN KEY (subject_id) REFERENCES subjects(id) ON DELETE CASCADE,
                UNIQUE(student_id, subject_id)
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_ssc_locked ON student_subject_choices(student_id, locked)"))

        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS elective_subject_limits (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                school_id INTEGER NOT NULL,
                class_id INTEGER NOT NULL,
                arm_id INTEGER,
                subject_id INTEGER NOT NULL,
                max_students INTEGER DEFAULT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (class_id) REFERENCES classes(id) ON DELETE CASCADE,
                FOREIGN KEY (subject_id) REFERENCES subjects(id) ON DELETE CASCADE,
                UNIQUE(school_id, class_id, arm_id, subject_id)
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_esl_lookup ON elective_subject_limits(school_id, class_id, arm_id, subject_id)"))

    logger.info("✅ Installed subject enrollment tables")
