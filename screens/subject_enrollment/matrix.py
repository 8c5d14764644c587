# screens/subject_enrollment/matrix.py
"""
Student x subject enrollment grid for one (academic class, term).

The grid keeps a lookup of explicit rows keyed by (student_id, subject_id).
A cell with no row counts as enrolled: until an admin records a choice,
every student in the class takes every class subject and teachers see the
whole class. A row with is_enrolled = 0 is an explicit exclusion.

All writes go through ``SchoolRepository.upsert_subject_enrollments`` (one
batch, one transaction) and the lookup is only updated after the batch
succeeds, so a failed write leaves the grid exactly as it was.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from core.records import Student, StudentSubjectEnrollment, Subject
from core.repository import SchoolRepository

logger = logging.getLogger(__name__)

# cells without a stored row
UNSET_MEANS_ENROLLED = True

Cell = Tuple[int, int, bool]


class EnrollmentMatrix:
    """Enrollment lookup plus the write operations the grid offers."""

    def __init__(
        self,
        repository: SchoolRepository,
        academic_class_id: int,
        term_id: int,
        students: Sequence[Student],
        subjects: Sequence[Subject],
        school_id: Optional[int] = None,
        enrollments: Optional[Iterable[StudentSubjectEnrollment]] = None,
    ):
        self.repository = repository
        self.academic_class_id = academic_class_id
        self.term_id = term_id
        self.school_id = school_id
        self.students: List[Student] = list(students)
        self.subjects: List[Subject] = list(subjects)
        self._student_ids = {s.id for s in self.students}
        self._subject_ids = {s.id for s in self.subjects}
        self._cells: Dict[Tuple[int, int], bool] = {}
        self.reload(enrollments)

    @classmethod
    def load(
        cls,
        repository: SchoolRepository,
        academic_class_id: int,
        term_id: int,
        school_id: Optional[int] = None,
    ) -> "EnrollmentMatrix":
        """Roster, class subjects and stored rows for the selection."""
        return cls(
            repository=repository,
            academic_class_id=academic_class_id,
            term_id=term_id,
            students=repository.fetch_class_roster(academic_class_id, term_id),
            subjects=repository.fetch_class_subjects(academic_class_id),
            school_id=school_id if school_id is not None else repository.school_id,
        )

    # ========================================================================
    # LOOKUP
    # ========================================================================

    def reload(self, enrollments: Optional[Iterable[StudentSubjectEnrollment]] = None) -> None:
        """Rebuild the lookup from stored rows; a passed-in collection is narrowed to this class/term."""
        if enrollments is None:
            enrollments = self.repository.fetch_subject_enrollments(self.academic_class_id, self.term_id)
        cells: Dict[Tuple[int, int], bool] = {}
        for row in enrollments:
            if row.academic_class_id != self.academic_class_id or row.term_id != self.term_id:
                continue
            cells[(row.student_id, row.subject_id)] = bool(row.is_enrolled)
        self._cells = cells

    def is_enrolled(self, student_id: int, subject_id: int) -> bool:
        return self._cells.get((student_id, subject_id), UNSET_MEANS_ENROLLED)

    def has_record(self, student_id: int, subject_id: int) -> bool:
        return (student_id, subject_id) in self._cells

    def subject_has_records(self, subject_id: int) -> bool:
        return any(subj == subject_id for (_, subj) in self._cells)

    def enrolled_count(self, subject_id: int) -> int:
        return sum(1 for s in self.students if self.is_enrolled(s.id, subject_id))

    def filter_students(self, search: Optional[str] = None) -> List[Student]:
        """Case-insensitive match on name or admission number."""
        if not search or not search.strip():
            return list(self.students)
        needle = search.strip().lower()
        return [
            s for s in self.students
            if needle in (s.name or "").lower()
            or needle in (s.admission_number or "").lower()
        ]

    def visible_students_for_subject(self, subject_id: int) -> List[Student]:
        """The roster a subject teacher works with."""
        return [s for s in self.students if self.is_enrolled(s.id, subject_id)]

    def to_dataframe(self, students: Optional[Sequence[Student]] = None) -> pd.DataFrame:
        """Boolean grid (one row per student, one column per subject name)."""
        students = self.students if students is None else students
        data = {
            "Student ID": [s.id for s in students],
            "Student Name": [s.name for s in students],
            "Admission Number": [s.admission_number or "" for s in students],
        }
        for subject in self.subjects:
            data[subject.name] = [self.is_enrolled(s.id, subject.id) for s in students]
        return pd.DataFrame(data)

    # ========================================================================
    # WRITES
    # ========================================================================

    def _check_cell(self, student_id: int, subject_id: int) -> None:
        if student_id not in self._student_ids:
            raise ValueError(f"Student {student_id} is not in this class for the selected term")
        if subject_id not in self._subject_ids:
            raise ValueError(f"Subject {subject_id} is not offered to this class")

    def apply(self, cells: Iterable[Cell]) -> int:
        """
        Persist (student_id, subject_id, is_enrolled) cells as one batch.
        Returns the number of rows written.
        """
        rows = [
            StudentSubjectEnrollment(
                school_id=self.school_id,
                student_id=student_id,
                subject_id=subject_id,
                academic_class_id=self.academic_class_id,
                term_id=self.term_id,
                is_enrolled=bool(enrolled),
            )
            for student_id, subject_id, enrolled in cells
        ]
        if not rows:
            return 0

        written = self.repository.upsert_subject_enrollments(rows)
        for row in rows:
            self._cells[(row.student_id, row.subject_id)] = row.is_enrolled
        return written

    def toggle_enrollment(self, student_id: int, subject_id: int) -> bool:
        """Flip one cell; returns the new value."""
        self._check_cell(student_id, subject_id)
        new_value = not self.is_enrolled(student_id, subject_id)
        self.apply([(student_id, subject_id, new_value)])
        logger.info(
            "Enrollment %s for student %s / subject %s (class %s, term %s)",
            "enabled" if new_value else "disabled",
            student_id, subject_id, self.academic_class_id, self.term_id,
        )
        return new_value

    def bulk_toggle_subject(
        self,
        subject_id: int,
        enroll: bool,
        student_ids: Optional[Iterable[int]] = None,
    ) -> int:
        """
        Set one subject for the currently filtered students (the whole roster
        when ``student_ids`` is None). Other subjects are not touched.
        """
        if subject_id not in self._subject_ids:
            raise ValueError(f"Subject {subject_id} is not offered to this class")
        targets = [s.id for s in self.students] if student_ids is None else list(dict.fromkeys(student_ids))
        for student_id in targets:
            self._check_cell(student_id, subject_id)
        return self.apply((sid, subject_id, enroll) for sid in targets)

    def bulk_enroll_selected(
        self,
        student_ids: Iterable[int],
        subject_ids: Iterable[int],
        enroll: bool = True,
    ) -> int:
        """Set every (selected student, selected subject) cell in one batch."""
        students = list(dict.fromkeys(student_ids))
        subjects = list(dict.fromkeys(subject_ids))
        if not students or not subjects:
            return 0
        for student_id in students:
            for subject_id in subjects:
                self._check_cell(student_id, subject_id)
        return self.apply(
            (student_id, subject_id, enroll)
            for student_id in students
            for subject_id in subjects
        )
