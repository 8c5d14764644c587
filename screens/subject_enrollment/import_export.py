# screens/subject_enrollment/import_export.py
"""
CSV import/export for the subject enrollment grid.

File layout: ``Student ID, Student Name, Admission Number`` followed by one
column per class subject (the subject name), cells ``1`` / ``0``.
"""

from __future__ import annotations

import io
import logging
import re
from typing import IO, List, Optional, Sequence, Tuple, Union

import pandas as pd

from core.records import Student
from .matrix import Cell, EnrollmentMatrix

logger = logging.getLogger(__name__)

IDENTITY_COLUMNS = ["Student ID", "Student Name", "Admission Number"]
TRUTHY_VALUES = {"1", "true", "yes"}


# ===========================================================================
# EXPORT
# ===========================================================================


def export_matrix_dataframe(
    matrix: EnrollmentMatrix,
    students: Optional[Sequence[Student]] = None,
) -> pd.DataFrame:
    """Current grid as a DataFrame with 1/0 cells."""
    df = matrix.to_dataframe(students)
    for subject in matrix.subjects:
        df[subject.name] = df[subject.name].map(lambda enrolled: 1 if enrolled else 0)
    return df


def export_matrix_csv(
    matrix: EnrollmentMatrix,
    students: Optional[Sequence[Student]] = None,
) -> str:
    return export_matrix_dataframe(matrix, students).to_csv(index=False)


def csv_file_name(class_name: Optional[str], term_label: Optional[str]) -> str:
    def _clean(value: Optional[str]) -> str:
        return re.sub(r"[^\w\-]+", "_", (value or "").strip()).strip("_") or "unknown"
    return f"subject_enrollment_{_clean(class_name)}_{_clean(term_label)}.csv"


# ===========================================================================
# IMPORT
# ===========================================================================


def read_matrix_csv(source: Union[str, bytes, IO]) -> pd.DataFrame:
    """
    Load an uploaded grid with every cell as text. ``source`` may be CSV
    text, bytes, or a file-like object (Streamlit's UploadedFile works).
    """
    if isinstance(source, bytes):
        source = io.StringIO(source.decode("utf-8-sig"))
    elif isinstance(source, str):
        source = io.StringIO(source)
    df = pd.read_csv(source, dtype=str, keep_default_na=False, skipinitialspace=True)
    df.columns = [str(c).strip() for c in df.columns]
    return df


def validate_matrix_csv(df: pd.DataFrame, matrix: EnrollmentMatrix) -> Tuple[bool, List[str]]:
    """
    Returns:
        (is_valid, list_of_errors)
    """
    errors: List[str] = []

    if df.empty or len(df.columns) <= len(IDENTITY_COLUMNS):
        errors.append("CSV file is empty or invalid")
        return False, errors

    if df.columns[0] != IDENTITY_COLUMNS[0]:
        errors.append(f"First column must be '{IDENTITY_COLUMNS[0]}'")

    subject_names = {s.name.strip() for s in matrix.subjects}
    if not any(h in subject_names for h in df.columns[len(IDENTITY_COLUMNS):]):
        errors.append("No matching subjects found in CSV")

    return len(errors) == 0, errors


def _is_truthy(value) -> bool:
    return str(value).strip().lower() in TRUTHY_VALUES


def plan_matrix_import(df: pd.DataFrame, matrix: EnrollmentMatrix) -> Tuple[List[Cell], int, List[str]]:
    """
    Turn an uploaded grid into cells to write.

    Subject columns are matched to class subjects by exact name; other
    columns are ignored. Rows whose Student ID isn't on the class roster
    are skipped.

    Returns:
        (cells, skipped_row_count, ignored_column_names)
    """
    # headers are stripped on read, so match on stripped names
    subject_id_by_name = {s.name.strip(): s.id for s in matrix.subjects}
    subject_columns = [
        (column, subject_id_by_name[column])
        for column in df.columns[len(IDENTITY_COLUMNS):]
        if column in subject_id_by_name
    ]
    ignored = [
        column for column in df.columns[len(IDENTITY_COLUMNS):]
        if column not in subject_id_by_name
    ]
    roster_ids = {s.id for s in matrix.students}
    id_column = df.columns[0]

    cells: List[Cell] = []
    skipped = 0
    for _, row in df.iterrows():
        try:
            student_id = int(str(row[id_column]).strip())
        except (TypeError, ValueError):
            skipped += 1
            continue
        if student_id not in roster_ids:
            skipped += 1
            continue
        for column, subject_id in subject_columns:
            cells.append((student_id, subject_id, _is_truthy(row[column])))

    return cells, skipped, ignored


def import_matrix_csv(df: pd.DataFrame, matrix: EnrollmentMatrix) -> Tuple[int, int, List[str]]:
    """
    Apply an uploaded grid as one batched upsert.

    Returns:
        (applied_cell_count, skipped_row_count, messages)

    Raises ValueError for an unusable file; database errors propagate and
    nothing from the file is applied.
    """
    is_valid, errors = validate_matrix_csv(df, matrix)
    if not is_valid:
        raise ValueError("; ".join(errors))

    cells, skipped, ignored = plan_matrix_import(df, matrix)
    messages: List[str] = []
    if ignored:
        messages.append(f"Ignored unknown subject column(s): {', '.join(ignored)}")
    if skipped:
        messages.append(f"Skipped {skipped} row(s) for students not in this class")
    if not cells:
        raise ValueError("No valid enrollment data found in CSV")

    applied = matrix.apply(cells)
    logger.info(
        "Imported %d enrollment cell(s) for class %s term %s (%d row(s) skipped)",
        applied, matrix.academic_class_id, matrix.term_id, skipped,
    )
    return applied, skipped, messages
