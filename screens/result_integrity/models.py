# screens/result_integrity/models.py
"""
Data models for result analytics and integrity checking.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.records import StudentTermReport


class IssueType(str, Enum):
    """Kinds of integrity problems the checker reports."""
    MISSING_ASSIGNMENT = "missing-assignment"
    ORPHAN_RESULT = "orphan-result"
    DUPLICATE_RESULT = "duplicate-result"


ISSUE_TYPE_LABELS = {
    IssueType.MISSING_ASSIGNMENT: "Missing class assignment",
    IssueType.ORPHAN_RESULT: "Orphan result",
    IssueType.DUPLICATE_RESULT: "Duplicate result",
}


@dataclass(frozen=True)
class ResultScope:
    """
    What a statistics or integrity run looks at.

    ``campus_id`` is advisory: a class can hold students from several
    campuses, so it narrows campus-level statistics but never the
    enrollment matching of the integrity checker.
    """
    term_id: int
    campus_id: Optional[int] = None
    session_label: Optional[str] = None
    academic_class_id: Optional[int] = None
    arm_name: Optional[str] = None


@dataclass(frozen=True)
class IntegrityIssue:
    type: IssueType
    message: str
    student_id: Optional[int] = None
    academic_class_id: Optional[int] = None


@dataclass(frozen=True)
class CohortRanking:
    student_id: int
    rank: int
    total: int
    report: Optional[StudentTermReport] = None


@dataclass(frozen=True)
class ResultStatistics:
    enrolled: int
    with_results: int
    average_score: float
    pass_count: int
    pass_rate: float
