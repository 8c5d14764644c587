import pytest
from sqlalchemy import text as sa_text

from core.db import get_engine, init_db
from core.repository import SchoolRepository

# subject ids, see _seed_school below
MATHS, ENGLISH, FRENCH, MUSIC = 1, 2, 3, 4
CLASS_JSS1_GOLD, CLASS_JSS2_GOLD, CLASS_OLD = 101, 102, 103
TERM_1 = 1


def _seed_school(engine):
    with engine.begin() as conn:
        conn.execute(sa_text("""
            INSERT INTO campuses (id, school_id, name) VALUES
                (1, 1, 'Main Campus'), (2, 1, 'Annex'), (3, 1, 'Lekki')
        """))
        conn.execute(sa_text("INSERT INTO classes (id, school_id, name) VALUES (1, 1, 'JSS1')"))
        conn.execute(sa_text("INSERT INTO arms (id, school_id, name) VALUES (1, 1, 'Gold'), (2, 1, 'Blue')"))
        conn.execute(sa_text("""
            INSERT INTO subjects (id, school_id, name) VALUES
                (1, 1, 'Mathematics'), (2, 1, 'English Language'),
                (3, 1, 'French'), (4, 1, 'Music')
        """))
        conn.execute(sa_text("""
            INSERT INTO class_subjects (class_id, subject_id, is_compulsory) VALUES
                (1, 1, 1), (1, 2, 1), (1, 3, 0), (1, 4, 0)
        """))
        conn.execute(sa_text("""
            INSERT INTO terms (id, school_id, session_label, term_label, created_at)
            VALUES (1, 1, '2024/2025', 'First Term', '2024-09-01 00:00:00')
        """))
        conn.execute(sa_text("""
            INSERT INTO academic_classes (id, school_id, name, level, arm, session_label, is_active) VALUES
                (101, 1, 'JSS1 Gold', 'JSS1', 'Gold', '2024/2025', 1),
                (102, 1, 'JSS2 Gold', 'JSS2', 'Gold', '2024/2025', 1),
                (103, 1, 'JSS1 Gold (old)', 'JSS1', 'Gold', '2023/2024', 0)
        """))
        conn.execute(sa_text("""
            INSERT INTO students (id, school_id, campus_id, name, admission_number, class_id, arm_id, status) VALUES
                (1, 1, 1, 'Ada Obi', 'A001', 1, 1, 'Active'),
                (2, 1, 1, 'Bayo Ade', 'A002', 1, 1, 'Active'),
                (5, 1, 2, 'Chidi Eze', 'A005', 1, 2, 'Active'),
                (6, 1, 2, 'Dayo Kalu', 'A006', 1, 1, 'Withdrawn'),
                (7, 1, 3, 'Efe Uche', 'A007', 1, 2, 'Active')
        """))
        conn.execute(sa_text("""
            INSERT INTO academic_class_students (academic_class_id, student_id, enrolled_term_id) VALUES
                (101, 1, 1), (101, 2, 1), (101, 5, 1), (101, 6, 1)
        """))


@pytest.fixture
def engine():
    eng = get_engine("sqlite://")
    assert init_db(eng) == []
    yield eng
    eng.dispose()


@pytest.fixture
def seeded_engine(engine):
    _seed_school(engine)
    return engine


@pytest.fixture
def repo(seeded_engine):
    return SchoolRepository(seeded_engine, school_id=1)
