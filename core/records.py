# core/records.py
"""
Typed records for the rows this console reads and writes.

Every row coming out of the database goes through ``from_row`` so the
analytics and the enrollment matrix never see raw mappings.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, FrozenSet, Mapping, Optional


class StudentStatus(str, Enum):
    ACTIVE = "Active"
    WITHDRAWN = "Withdrawn"
    GRADUATED = "Graduated"
    EXPELLED = "Expelled"
    INACTIVE = "Inactive"


INACTIVE_STATUSES: FrozenSet[str] = frozenset({
    StudentStatus.WITHDRAWN.value,
    StudentStatus.GRADUATED.value,
    StudentStatus.EXPELLED.value,
    StudentStatus.INACTIVE.value,
})


def _opt_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _opt_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


# ============================================================================
# STRUCTURE
# ============================================================================

@dataclass(frozen=True)
class Student:
    id: int
    name: str = ""
    campus_id: Optional[int] = None
    school_id: Optional[int] = None
    admission_number: Optional[str] = None
    class_id: Optional[int] = None
    arm_id: Optional[int] = None
    status: Optional[str] = StudentStatus.ACTIVE.value

    @property
    def is_active(self) -> bool:
        return (self.status or StudentStatus.ACTIVE.value) not in INACTIVE_STATUSES

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Student":
        return cls(
            id=int(row["id"]),
            name=row.get("name") or "",
            campus_id=_opt_int(row.get("campus_id")),
            school_id=_opt_int(row.get("school_id")),
            admission_number=row.get("admission_number"),
            class_id=_opt_int(row.get("class_id")),
            arm_id=_opt_int(row.get("arm_id")),
            status=row.get("status") or StudentStatus.ACTIVE.value,
        )


@dataclass(frozen=True)
class AcademicClass:
    id: int
    name: str
    school_id: Optional[int] = None
    level: Optional[str] = None
    arm: Optional[str] = None
    session_label: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AcademicClass":
        return cls(
            id=int(row["id"]),
            name=row["name"],
            school_id=_opt_int(row.get("school_id")),
            level=row.get("level"),
            arm=row.get("arm"),
            session_label=row.get("session_label"),
            is_active=bool(row.get("is_active", 1)),
        )


@dataclass(frozen=True)
class Term:
    id: int
    session_label: str
    term_label: str
    school_id: Optional[int] = None
    is_active: bool = True
    created_at: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.session_label} {self.term_label}"

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Term":
        created = row.get("created_at")
        return cls(
            id=int(row["id"]),
            session_label=row["session_label"],
            term_label=row["term_label"],
            school_id=_opt_int(row.get("school_id")),
            is_active=bool(row.get("is_active", 1)),
            created_at=str(created) if created is not None else None,
        )


@dataclass(frozen=True)
class Subject:
    id: int
    name: str
    school_id: Optional[int] = None
    is_compulsory: bool = True

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Subject":
        return cls(
            id=int(row["id"]),
            name=row["name"],
            school_id=_opt_int(row.get("school_id")),
            is_compulsory=bool(row.get("is_compulsory", 1)),
        )


# ============================================================================
# ENROLLMENT & RESULTS
# ============================================================================

@dataclass(frozen=True)
class AcademicClassStudent:
    """A student placed in an academic class for a term. Campus is not part of it."""
    academic_class_id: int
    student_id: int
    enrolled_term_id: int
    id: Optional[int] = None
    manually_enrolled: bool = False

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AcademicClassStudent":
        return cls(
            id=_opt_int(row.get("id")),
            academic_class_id=int(row["academic_class_id"]),
            student_id=int(row["student_id"]),
            enrolled_term_id=int(row["enrolled_term_id"]),
            manually_enrolled=bool(row.get("manually_enrolled") or 0),
        )


@dataclass(frozen=True)
class StudentTermReport:
    student_id: int
    term_id: int
    academic_class_id: Optional[int] = None
    average_score: float = 0.0
    total_score: float = 0.0
    position_in_class: Optional[int] = None
    is_published: bool = False
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StudentTermReport":
        return cls(
            id=_opt_int(row.get("id")),
            student_id=int(row["student_id"]),
            term_id=int(row["term_id"]),
            academic_class_id=_opt_int(row.get("academic_class_id")),
            average_score=_opt_float(row.get("average_score")) or 0.0,
            total_score=_opt_float(row.get("total_score")) or 0.0,
            position_in_class=_opt_int(row.get("position_in_class")),
            is_published=bool(row.get("is_published") or 0),
        )


@dataclass(frozen=True)
class ScoreEntry:
    student_id: int
    term_id: int
    academic_class_id: Optional[int] = None
    subject_name: str = ""
    total_score: Optional[float] = None
    grade_label: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ScoreEntry":
        return cls(
            id=_opt_int(row.get("id")),
            student_id=int(row["student_id"]),
            term_id=int(row["term_id"]),
            academic_class_id=_opt_int(row.get("academic_class_id")),
            subject_name=row.get("subject_name") or "",
            total_score=_opt_float(row.get("total_score")),
            grade_label=row.get("grade_label"),
        )


@dataclass(frozen=True)
class StudentSubjectEnrollment:
    student_id: int
    subject_id: int
    academic_class_id: int
    term_id: int
    is_enrolled: bool = True
    school_id: Optional[int] = None
    id: Optional[int] = None

    @property
    def conflict_key(self) -> tuple:
        return (self.student_id, self.subject_id, self.academic_class_id, self.term_id)

    def to_params(self) -> dict:
        params = asdict(self)
        params.pop("id")
        params["is_enrolled"] = 1 if self.is_enrolled else 0
        return params

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StudentSubjectEnrollment":
        return cls(
            id=_opt_int(row.get("id")),
            school_id=_opt_int(row.get("school_id")),
            student_id=int(row["student_id"]),
            subject_id=int(row["subject_id"]),
            academic_class_id=int(row["academic_class_id"]),
            term_id=int(row["term_id"]),
            is_enrolled=bool(row["is_enrolled"]) if row.get("is_enrolled") is not None else True,
        )


# ============================================================================
# ELECTIVES
# ============================================================================

@dataclass(frozen=True)
class ElectiveSubjectLimit:
    """``max_students`` of None means unlimited."""
    school_id: int
    class_id: int
    subject_id: int
    arm_id: Optional[int] = None
    max_students: Optional[int] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ElectiveSubjectLimit":
        return cls(
            id=_opt_int(row.get("id")),
            school_id=int(row["school_id"]),
            class_id=int(row["class_id"]),
            arm_id=_opt_int(row.get("arm_id")),
            subject_id=int(row["subject_id"]),
            max_students=_opt_int(row.get("max_students")),
        )


@dataclass(frozen=True)
class StudentSubjectChoice:
    student_id: int
    subject_id: int
    locked: bool = False
    locked_at: Optional[str] = None
    locked_by: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StudentSubjectChoice":
        locked_at = row.get("locked_at")
        return cls(
            id=_opt_int(row.get("id")),
            student_id=int(row["student_id"]),
            subject_id=int(row["subject_id"]),
            locked=bool(row.get("locked") or 0),
            locked_at=str(locked_at) if locked_at is not None else None,
            locked_by=row.get("locked_by"),
        )
