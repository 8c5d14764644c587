# schemas/school_structure_schema.py
"""
School structure schema
- campuses, base classes (levels) and arms
- subjects and the class -> subject mapping (compulsory vs elective)
- terms and academic classes (level + arm + session)
- students and their per-term class enrollment (academic_class_students)
"""
from __future__ import annotations
import logging
from sqlalchemy.engine import Engine
from sqlalchemy import text as sa_text
from core.schema_registry import register

logger = logging.getLogger(__name__)


@register("school_structure")
def install_schema(engine: Engine) -> None:
    """
    Installs the structural tables every other module joins against.
    """
    with engine.begin() as conn:
        # 1. campuses
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS campuses (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                school_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """))

        # 2. classes (base levels such as "JSS1") and arms ("Gold")
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS classes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                school_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                UNIQUE(school_id, name)
            )
        """))
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS arms (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                school_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                UNIQUE(school_id, name)
            )
        """))

        # 3. subjects + class_subjects
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS subjects (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                school_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                UNIQUE(school_id, name)
            )
        """))
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS class_subjects (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                class_id INTEGER NOT NULL,
                subject_id INTEGER NOT NULL,
                is_compulsory INTEGER DEFAULT 1,
                FOREIGN KEY (class_id) REFERENCES classes(id) ON DELETE CASCADE,
                FOREIGN KEY (subject_id) REFERENCES subjects(id) ON DELETE CASCADE,
                UNIQUE(class_id, subject_id)
            )
        """))

        # 4. terms
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS terms (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                school_id INTEGER NOT NULL,
                session_label TEXT NOT NULL,
                term_label TEXT NOT NULL,
                start_date TEXT,
                end_date TEXT,
                is_active INTEGER DEFAULT 1,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """))

        # 5. academic_classes
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS academic_classes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                school_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                level TEXT,
                arm TEXT,
                session_label TEXT,
                is_active INTEGER DEFAULT 1
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_academic_classes_level ON academic_classes(school_id, level, arm)"))

        # 6. students
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS students (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                school_id INTEGER NOT NULL,
                campus_id INTEGER,
                name TEXT NOT NULL,
                admission_number TEXT,
                class_id INTEGER,
                arm_id INTEGER,
                status TEXT DEFAULT 'Active',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (campus_id) REFERENCES campuses(id) ON DELETE SET NULL
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_students_campus ON students(campus_id)"))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_students_class_arm ON students(class_id, arm_id)"))

        # 7. academic_class_students (membership is campus independent)
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS academic_class_students (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                academic_class_id INTEGER NOT NULL,
                student_id INTEGER NOT NULL,
                enrolled_term_id INTEGER NOT NULL,
                manually_enrolled INTEGER DEFAULT 0,
                FOREIGN KEY (academic_class_id) REFERENCES academic_classes(id) ON DELETE CASCADE,
                FOREIGN KEY (student_id) REFERENCES students(id) ON DELETE CASCADE,
                FOREIGN KEY (enrolled_term_id) REFERENCES terms(id) ON DELETE CASCADE,
                UNIQUE(academic_class_id, student_id, enrolled_term_id)
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_acs_term ON academic_class_students(enrolled_term_id)"))

    logger.info("✅ Installed school structure tables")
