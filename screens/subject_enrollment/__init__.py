# screens/subject_enrollment/__init__.py
"""
Subject Enrollment Module

Student x subject grid per academic class and term, with bulk actions and
CSV import/export.

Main components:
- matrix: EnrollmentMatrix (lookup + batched writes)
- import_export: CSV download/upload
- page: Streamlit UI (main entry point)
"""

from .matrix import EnrollmentMatrix, UNSET_MEANS_ENROLLED

from .import_export import (
    export_matrix_csv,
    read_matrix_csv,
    validate_matrix_csv,
    import_matrix_csv,
)

__all__ = [
    'EnrollmentMatrix',
    'UNSET_MEANS_ENROLLED',
    'export_matrix_csv',
    'read_matrix_csv',
    'validate_matrix_csv',
    'import_matrix_csv',
]
