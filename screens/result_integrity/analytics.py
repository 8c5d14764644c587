# screens/result_integrity/analytics.py
"""
Result analytics over rows that are already in memory.

Nothing here touches the database: the page loads students, enrollments,
reports and score entries once through the repository and every function
below is a pure transformation of those lists.
"""

from __future__ import annotations

import math
from collections import OrderedDict
from typing import Callable, Collection, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from core.records import (
    INACTIVE_STATUSES,
    AcademicClass,
    AcademicClassStudent,
    ScoreEntry,
    Student,
    StudentTermReport,
)
from .models import (
    CohortRanking,
    IntegrityIssue,
    IssueType,
    ResultScope,
    ResultStatistics,
)

T = TypeVar("T")


# ===========================================================================
# HELPERS
# ===========================================================================


def _is_active(student: Optional[Student], inactive_statuses: Collection[str]) -> bool:
    if student is None:
        return False
    return (student.status or "Active") not in inactive_statuses


def _class_index(classes: Iterable[AcademicClass]) -> Dict[int, AcademicClass]:
    return {c.id: c for c in classes}


def _matches_class_scope(
    scope: ResultScope,
    class_by_id: Dict[int, AcademicClass],
    academic_class_id: Optional[int],
    *,
    strict_class: bool = False,
) -> bool:
    """
    Session/arm only reject a row when both sides are known; an unknown
    class id falls back to the plain id comparison.
    """
    if scope.academic_class_id is not None:
        if academic_class_id is None:
            if strict_class:
                return False
        elif academic_class_id != scope.academic_class_id:
            return False

    class_info = class_by_id.get(academic_class_id) if academic_class_id is not None else None
    if scope.session_label and class_info and class_info.session_label:
        if class_info.session_label != scope.session_label:
            return False
    if scope.arm_name and class_info and class_info.arm:
        if class_info.arm != scope.arm_name:
            return False
    return True


def _class_label(class_by_id: Dict[int, AcademicClass], academic_class_id: Optional[int]) -> str:
    if academic_class_id is None:
        return "an unspecified class"
    info = class_by_id.get(academic_class_id)
    return info.name if info else f"class {academic_class_id}"


def _student_label(student_by_id: Dict[int, Student], student_id: int) -> str:
    student = student_by_id.get(student_id)
    if student and student.name:
        return f"{student.name} (student {student_id})"
    return f"student {student_id}"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ===========================================================================
# RANKING
# ===========================================================================


def dense_rank(items: Sequence[T], get_score: Callable[[T], float]) -> List[int]:
    """
    Dense ranks (1, 1, 2, ...) highest score first, returned in input order.
    """
    distinct = sorted({get_score(item) for item in items}, reverse=True)
    rank_of = {score: idx + 1 for idx, score in enumerate(distinct)}
    return [rank_of[get_score(item)] for item in items]


def rank_cohort(
    reports: Sequence[StudentTermReport],
    scope: ResultScope,
    students: Sequence[Student],
    classes: Sequence[AcademicClass] = (),
    *,
    inactive_statuses: Collection[str] = INACTIVE_STATUSES,
) -> List[CohortRanking]:
    """Rank active students' reports in the scope; campus narrows the cohort here."""
    student_by_id = {s.id: s for s in students}
    class_by_id = _class_index(classes)

    cohort: List[StudentTermReport] = []
    for report in reports:
        if report.term_id != scope.term_id:
            continue
        if scope.academic_class_id is not None and report.academic_class_id != scope.academic_class_id:
            continue
        student = student_by_id.get(report.student_id)
        if not _is_active(student, inactive_statuses):
            continue
        if scope.campus_id is not None and student.campus_id is not None and student.campus_id != scope.campus_id:
            continue
        if not _matches_class_scope(scope, class_by_id, report.academic_class_id):
            continue
        cohort.append(report)

    if not cohort:
        return []

    ranks = dense_rank(cohort, lambda r: r.average_score)
    return [
        CohortRanking(student_id=report.student_id, rank=rank, total=len(cohort), report=report)
        for report, rank in zip(cohort, ranks)
    ]


def calculate_campus_percentile(
    report: StudentTermReport,
    all_reports: Sequence[StudentTermReport],
    scope: ResultScope,
    students: Sequence[Student],
    classes: Sequence[AcademicClass] = (),
    *,
    inactive_statuses: Collection[str] = INACTIVE_STATUSES,
) -> Optional[int]:
    """
    Share of campus peers (same term/session) this report outscores, 0-100.
    None when the student isn't part of the campus cohort.
    """
    student_by_id = {s.id: s for s in students}
    class_by_id = _class_index(classes)

    campus_reports: List[StudentTermReport] = []
    for r in all_reports:
        if r.term_id != scope.term_id:
            continue
        student = student_by_id.get(r.student_id)
        if not _is_active(student, inactive_statuses):
            continue
        if scope.campus_id is not None and student.campus_id is not None and student.campus_id != scope.campus_id:
            continue
        class_info = class_by_id.get(r.academic_class_id) if r.academic_class_id is not None else None
        if scope.session_label and class_info and class_info.session_label and class_info.session_label != scope.session_label:
            continue
        campus_reports.append(r)

    if not campus_reports:
        return None

    ordered = sorted(campus_reports, key=lambda r: r.average_score, reverse=True)
    # the exact report first; a student with several reports otherwise gets their first
    rank = next((idx + 1 for idx, r in enumerate(ordered) if r == report), 0)
    if rank == 0:
        rank = next((idx + 1 for idx, r in enumerate(ordered) if r.student_id == report.student_id), 0)
    if rank == 0:
        return None

    total = len(campus_reports)
    return _round_half_up((total - rank) / total * 100)


# ===========================================================================
# STATISTICS
# ===========================================================================


def aggregate_result_statistics(
    reports: Sequence[StudentTermReport],
    enrollments: Sequence[AcademicClassStudent],
    students: Sequence[Student],
    scope: ResultScope,
    passing_score: float = 50,
    classes: Sequence[AcademicClass] = (),
    *,
    inactive_statuses: Collection[str] = INACTIVE_STATUSES,
) -> ResultStatistics:
    class_by_id = _class_index(classes)
    active_ids = {
        s.id for s in students
        if _is_active(s, inactive_statuses)
        and (scope.campus_id is None or s.campus_id == scope.campus_id)
    }

    scoped_enrollments = [
        e for e in enrollments
        if e.enrolled_term_id == scope.term_id
        and _matches_class_scope(scope, class_by_id, e.academic_class_id, strict_class=True)
        and e.student_id in active_ids
    ]
    enrolled = len({e.student_id for e in scoped_enrollments})

    scoped_reports = [
        r for r in reports
        if r.term_id == scope.term_id
        and _matches_class_scope(scope, class_by_id, r.academic_class_id, strict_class=True)
        and r.student_id in active_ids
    ]
    with_results = len({r.student_id for r in scoped_reports})

    if scoped_reports:
        average_score = sum(r.average_score or 0 for r in scoped_reports) / len(scoped_reports)
        pass_count = sum(1 for r in scoped_reports if (r.average_score or 0) >= passing_score)
        pass_rate = pass_count / len(scoped_reports) * 100
    else:
        average_score, pass_count, pass_rate = 0.0, 0, 0.0

    return ResultStatistics(
        enrolled=enrolled,
        with_results=with_results,
        average_score=average_score,
        pass_count=pass_count,
        pass_rate=pass_rate,
    )


def build_scope_for_class(
    class_id: Optional[int],
    term_id: int,
    academic_classes: Sequence[AcademicClass],
    enrollments: Sequence[AcademicClassStudent],
    reports: Sequence[StudentTermReport],
    score_entries: Sequence[ScoreEntry],
    students: Sequence[Student],
) -> ResultScope:
    """
    Scope for one class (or the whole term when ``class_id`` is None).

    The campus is taken from the first candidate student that has one. A class
    may mix campuses, so this is only a label for campus statistics.
    """
    academic_class = next((c for c in academic_classes if c.id == class_id), None)

    candidate_ids = set()
    candidate_ids.update(
        e.student_id for e in enrollments
        if e.enrolled_term_id == term_id and (not class_id or e.academic_class_id == class_id)
    )
    candidate_ids.update(
        r.student_id for r in reports
        if r.term_id == term_id and (not class_id or r.academic_class_id == class_id)
    )
    candidate_ids.update(
        se.student_id for se in score_entries
        if se.term_id == term_id and (not class_id or se.academic_class_id == class_id)
    )

    campus_id = next(
        (s.campus_id for s in students if s.id in candidate_ids and s.campus_id is not None),
        None,
    )

    return ResultScope(
        term_id=term_id,
        campus_id=campus_id,
        session_label=academic_class.session_label if academic_class else None,
        academic_class_id=class_id,
        arm_name=academic_class.arm if academic_class else None,
    )


# ===========================================================================
# INTEGRITY CHECKER
# ===========================================================================


def find_integrity_issues(
    reports: Sequence[StudentTermReport],
    enrollments: Sequence[AcademicClassStudent],
    students: Sequence[Student],
    score_entries: Sequence[ScoreEntry],
    scope: ResultScope,
    academic_classes: Sequence[AcademicClass] = (),
    *,
    inactive_statuses: Collection[str] = INACTIVE_STATUSES,
) -> List[IntegrityIssue]:
    """
    Flag results that don't line up with class enrollment.

    A result is valid iff an enrollment row exists for the same
    (student_id, academic_class_id, term_id). ``scope.campus_id`` plays no
    part in that join: classes are shared across campuses.

    Issues come back grouped: orphan results, missing class assignments,
    duplicate reports, duplicate score rows; each group in input order.
    """
    class_by_id = _class_index(academic_classes)
    student_by_id = {s.id: s for s in students}

    def _checked(student_id: int) -> bool:
        # unknown students are still checked on identity alone
        if student_id not in student_by_id:
            return True
        return _is_active(student_by_id[student_id], inactive_statuses)

    scoped_enrollments = [
        e for e in enrollments
        if e.enrolled_term_id == scope.term_id
        and _matches_class_scope(scope, class_by_id, e.academic_class_id)
    ]
    enrollment_keys = {
        (e.student_id, e.academic_class_id, e.enrolled_term_id) for e in scoped_enrollments
    }
    enrolled_ids = {e.student_id for e in scoped_enrollments}

    scoped_reports = [
        r for r in reports
        if r.term_id == scope.term_id and _matches_class_scope(scope, class_by_id, r.academic_class_id)
    ]
    scoped_scores = [
        se for se in score_entries
        if se.term_id == scope.term_id and _matches_class_scope(scope, class_by_id, se.academic_class_id)
    ]

    orphans: List[IntegrityIssue] = []
    for r in scoped_reports:
        if not _checked(r.student_id):
            continue
        if r.academic_class_id is None:
            has_enrollment = r.student_id in enrolled_ids
        else:
            has_enrollment = (r.student_id, r.academic_class_id, r.term_id) in enrollment_keys
        if not has_enrollment:
            orphans.append(IntegrityIssue(
                type=IssueType.ORPHAN_RESULT,
                message=(
                    f"Result exists for {_student_label(student_by_id, r.student_id)} in "
                    f"{_class_label(class_by_id, r.academic_class_id)} without a matching class enrollment"
                ),
                student_id=r.student_id,
                academic_class_id=r.academic_class_id,
            ))

    # active students who show up through results/scores but were never placed
    appearing: "OrderedDict[int, Optional[int]]" = OrderedDict()
    for r in scoped_reports:
        appearing.setdefault(r.student_id, r.academic_class_id)
    for se in scoped_scores:
        appearing.setdefault(se.student_id, se.academic_class_id)

    missing: List[IntegrityIssue] = []
    for student in students:
        if student.id not in appearing or not _is_active(student, inactive_statuses):
            continue
        if student.id in enrolled_ids:
            continue
        missing.append(IntegrityIssue(
            type=IssueType.MISSING_ASSIGNMENT,
            message=f"{student.name or 'Student'} is active but not enrolled for the selected term/scope",
            student_id=student.id,
            academic_class_id=appearing[student.id],
        ))

    duplicates: List[IntegrityIssue] = []
    report_counts: "OrderedDict[Tuple[int, int, Optional[int]], int]" = OrderedDict()
    for r in scoped_reports:
        key = (r.student_id, r.term_id, r.academic_class_id)
        report_counts[key] = report_counts.get(key, 0) + 1
    for (student_id, _term_id, class_id), count in report_counts.items():
        if count > 1:
            duplicates.append(IntegrityIssue(
                type=IssueType.DUPLICATE_RESULT,
                message=(
                    f"Duplicate results detected for {_student_label(student_by_id, student_id)} "
                    f"in the same term ({count} reports)"
                ),
                student_id=student_id,
                academic_class_id=class_id,
            ))

    score_counts: "OrderedDict[Tuple[int, Optional[int], str, int], int]" = OrderedDict()
    for se in scoped_scores:
        key = (se.student_id, se.academic_class_id, se.subject_name, se.term_id)
        score_counts[key] = score_counts.get(key, 0) + 1
    for (student_id, class_id, subject_name, _term_id), count in score_counts.items():
        if count > 1:
            duplicates.append(IntegrityIssue(
                type=IssueType.DUPLICATE_RESULT,
                message=(
                    f"Duplicate score rows detected for {_student_label(student_by_id, student_id)}, "
                    f"{subject_name} ({count} rows)"
                ),
                student_id=student_id,
                academic_class_id=class_id,
            ))

    return orphans + missing + duplicates


def summarize_issues(issues: Iterable[IntegrityIssue]) -> Dict[IssueType, int]:
    counts: Dict[IssueType, int] = {t: 0 for t in IssueType}
    for issue in issues:
        counts[issue.type] += 1
    return counts
