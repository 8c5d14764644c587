# screens/elective_limits/service.py
"""
Elective subject capacity limits and subject-choice locking.

Limits live per (school, base class, arm, elective subject); a missing limit
or a NULL max_students means unlimited. Current enrollment counts distinct
active students of the class (and arm) who picked the subject.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from core.db import exec_sql, fetch_all, fetch_one
from core.records import ElectiveSubjectLimit, StudentSubjectChoice, Subject
from core.repository import SchoolRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElectiveCapacityInfo:
    subject_id: int
    subject_name: str
    current_enrollment: int
    max_students: Optional[int]
    limit_id: Optional[int] = None

    @property
    def is_at_capacity(self) -> bool:
        return self.max_students is not None and self.current_enrollment >= self.max_students

    @property
    def remaining(self) -> Optional[int]:
        if self.max_students is None:
            return None
        return max(self.max_students - self.current_enrollment, 0)


@dataclass(frozen=True)
class LockResult:
    success: bool
    message: str
    affected_count: int = 0


def _arm_clause(column: str, arm_id: Optional[int]) -> str:
    return f"{column} IS NULL" if arm_id is None else f"{column} = :arm_id"


# ===========================================================================
# CAPACITY
# ===========================================================================


def get_elective_subjects(repo: SchoolRepository, class_id: int) -> List[Subject]:
    """Non-compulsory subjects mapped to a base class."""
    rows = fetch_all(repo.engine, """
        SELECT s.id, s.school_id, s.name, cs.is_compulsory
        FROM class_subjects cs
        JOIN subjects s ON s.id = cs.subject_id
        WHERE cs.class_id = :class_id
          AND cs.is_compulsory = 0
        ORDER BY s.name
    """, {"class_id": class_id})
    return [Subject.from_row(r) for r in rows]


def get_elective_limit(
    repo: SchoolRepository,
    class_id: int,
    arm_id: Optional[int],
    subject_id: int,
    school_id: Optional[int] = None,
) -> Optional[ElectiveSubjectLimit]:
    sql = f"""
        SELECT id, school_id, class_id, arm_id, subject_id, max_students
        FROM elective_subject_limits
        WHERE class_id = :class_id
          AND subject_id = :subject_id
          AND {_arm_clause("arm_id", arm_id)}
    """
    params = {"class_id": class_id, "subject_id": subject_id, "arm_id": arm_id}
    if school_id is not None:
        sql += " AND school_id = :school_id"
        params["school_id"] = school_id
    sql += " ORDER BY id LIMIT 1"
    row = fetch_one(repo.engine, sql, params)
    return ElectiveSubjectLimit.from_row(row) if row else None


def get_elective_enrollment_count(
    repo: SchoolRepository,
    subject_id: int,
    class_id: int,
    arm_id: Optional[int] = None,
) -> int:
    """Distinct active students of the class (arm when given) who chose the subject."""
    sql = """
        SELECT COUNT(DISTINCT ssc.student_id) AS cnt
        FROM student_subject_choices ssc
        JOIN students s ON s.id = ssc.student_id
        WHERE ssc.subject_id = :subject_id
          AND s.class_id = :class_id
          AND COALESCE(s.status, 'Active') = 'Active'
    """
    params = {"subject_id": subject_id, "class_id": class_id}
    if arm_id is not None:
        sql += " AND s.arm_id = :arm_id"
        params["arm_id"] = arm_id
    row = fetch_one(repo.engine, sql, params)
    return int(row["cnt"]) if row and row["cnt"] is not None else 0


def is_elective_at_capacity(
    repo: SchoolRepository,
    subject_id: int,
    class_id: int,
    arm_id: Optional[int] = None,
) -> bool:
    limit = get_elective_limit(repo, class_id, arm_id, subject_id, repo.school_id)
    if limit is None or limit.max_students is None:
        return False
    return get_elective_enrollment_count(repo, subject_id, class_id, arm_id) >= limit.max_students


def get_elective_capacity_info(
    repo: SchoolRepository,
    school_id: int,
    class_id: int,
    arm_id: Optional[int] = None,
) -> List[ElectiveCapacityInfo]:
    info: List[ElectiveCapacityInfo] = []
    for subject in get_elective_subjects(repo, class_id):
        limit = get_elective_limit(repo, class_id, arm_id, subject.id, school_id)
        info.append(ElectiveCapacityInfo(
            subject_id=subject.id,
            subject_name=subject.name,
            current_enrollment=get_elective_enrollment_count(repo, subject.id, class_id, arm_id),
            max_students=limit.max_students if limit else None,
            limit_id=limit.id if limit else None,
        ))
    return info


def can_select_elective(
    repo: SchoolRepository,
    student_id: int,
    subject_id: int,
    class_id: int,
    arm_id: Optional[int] = None,
) -> Tuple[bool, Optional[str]]:
    """
    Returns: (allowed, reason)

    A subject the student already holds stays allowed even when full.
    """
    try:
        existing = fetch_one(repo.engine, """
            SELECT id FROM student_subject_choices
            WHERE student_id = :sid AND subject_id = :subj
        """, {"sid": student_id, "subj": subject_id})
        if existing:
            return True, "Already selected"

        if is_elective_at_capacity(repo, subject_id, class_id, arm_id):
            return False, "Subject is at full capacity"
        return True, None
    except SQLAlchemyError:
        logger.exception("Capacity check failed for student %s subject %s", student_id, subject_id)
        return True, "Error checking capacity, allowing selection"


def save_limits(
    repo: SchoolRepository,
    school_id: int,
    class_id: int,
    arm_id: Optional[int],
    limits: Dict[int, Optional[int]],
) -> Tuple[int, int]:
    """
    Create or update limits for the given subjects (None = unlimited).

    Each subject is written on its own; returns (success_count, error_count).
    """
    success_count = 0
    error_count = 0

    for subject_id, max_students in limits.items():
        try:
            if max_students is not None:
                max_students = int(max_students)
                if max_students < 0:
                    raise ValueError("negative limit")
        except (TypeError, ValueError):
            logger.warning("Rejected limit %r for subject %s", max_students, subject_id)
            error_count += 1
            continue
        try:
            existing = get_elective_limit(repo, class_id, arm_id, subject_id, school_id)
            with repo.engine.begin() as conn:
                if existing:
                    exec_sql(conn, """
                        UPDATE elective_subject_limits
                        SET max_students = :max_students,
                            updated_at = CURRENT_TIMESTAMP
                        WHERE id = :id
                    """, {"max_students": max_students, "id": existing.id})
                else:
                    exec_sql(conn, """
                        INSERT INTO elective_subject_limits
                            (school_id, class_id, arm_id, subject_id, max_students)
                        VALUES (:school_id, :class_id, :arm_id, :subject_id, :max_students)
                    """, {
                        "school_id": school_id,
                        "class_id": class_id,
                        "arm_id": arm_id,
                        "subject_id": subject_id,
                        "max_students": max_students,
                    })
            success_count += 1
        except SQLAlchemyError:
            logger.exception("Error saving limit for subject %s", subject_id)
            error_count += 1

    return success_count, error_count


def parse_limit(value) -> Optional[int]:
    """'' / 'unlimited' / None -> None; otherwise a non-negative int."""
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in ("", "unlimited", "none"):
        return None
    number = int(float(text))
    if number < 0:
        raise ValueError("Limit must be zero or more")
    return number


# ===========================================================================
# CHOICE LOCKING
# ===========================================================================


def _set_locked(
    repo: SchoolRepository,
    student_ids: List[int],
    locked: bool,
    admin_id: Optional[str],
) -> int:
    params = {
        "locked": 1 if locked else 0,
        "locked_at": datetime.now().isoformat(sep=" ", timespec="seconds") if locked else None,
        "locked_by": admin_id,
    }
    placeholders = []
    for idx, sid in enumerate(student_ids):
        params[f"s{idx}"] = sid
        placeholders.append(f":s{idx}")
    with repo.engine.begin() as conn:
        result = exec_sql(conn, f"""
            UPDATE student_subject_choices
            SET locked = :locked,
                locked_at = :locked_at,
                locked_by = :locked_by
            WHERE student_id IN ({", ".join(placeholders)})
        """, params)
        return result.rowcount or 0


def lock_student_choices(repo: SchoolRepository, student_id: int, admin_id: Optional[str] = None) -> LockResult:
    """Lock every choice of one student; no admin id means the student locked them."""
    try:
        count = _set_locked(repo, [student_id], True, admin_id)
    except SQLAlchemyError as e:
        logger.exception("Error locking student choices")
        return LockResult(False, f"Failed to lock choices: {e}")
    return LockResult(True, f"Successfully locked {count} subject choice(s)", count)


def unlock_student_choices(repo: SchoolRepository, student_id: int, admin_id: str) -> LockResult:
    try:
        count = _set_locked(repo, [student_id], False, admin_id)
    except SQLAlchemyError as e:
        logger.exception("Error unlocking student choices")
        return LockResult(False, f"Failed to unlock choices: {e}")
    return LockResult(True, f"Successfully unlocked {count} subject choice(s)", count)


def bulk_lock_choices(repo: SchoolRepository, student_ids: Iterable[int], admin_id: Optional[str] = None) -> LockResult:
    ids = list(dict.fromkeys(student_ids))
    if not ids:
        return LockResult(False, "No students selected")
    try:
        count = _set_locked(repo, ids, True, admin_id)
    except SQLAlchemyError as e:
        logger.exception("Error bulk locking choices")
        return LockResult(False, f"Failed to lock choices: {e}")
    return LockResult(
        True,
        f"Successfully locked choices for {len(ids)} student(s) ({count} total choice records)",
        count,
    )


def bulk_unlock_choices(repo: SchoolRepository, student_ids: Iterable[int], admin_id: str) -> LockResult:
    ids = list(dict.fromkeys(student_ids))
    if not ids:
        return LockResult(False, "No students selected")
    try:
        count = _set_locked(repo, ids, False, admin_id)
    except SQLAlchemyError as e:
        logger.exception("Error bulk unlocking choices")
        return LockResult(False, f"Failed to unlock choices: {e}")
    return LockResult(
        True,
        f"Successfully unlocked choices for {len(ids)} student(s) ({count} total choice records)",
        count,
    )


def get_student_choices_lock_status(repo: SchoolRepository, student_id: int) -> bool:
    """True when the student has at least one locked choice."""
    row = fetch_one(repo.engine, """
        SELECT MAX(locked) AS locked FROM student_subject_choices WHERE student_id = :sid
    """, {"sid": student_id})
    return bool(row and row["locked"])


def fetch_student_choices(repo: SchoolRepository, student_id: int) -> List[StudentSubjectChoice]:
    rows = fetch_all(repo.engine, """
        SELECT id, student_id, subject_id, locked, locked_at, locked_by
        FROM student_subject_choices
        WHERE student_id = :sid
        ORDER BY subject_id
    """, {"sid": student_id})
    return [StudentSubjectChoice.from_row(r) for r in rows]
