# screens/result_integrity/__init__.py
"""
Result Integrity Module

Term statistics, cohort ranking and the enrollment/result integrity checker.

Main components:
- models: scope, issue and ranking records
- analytics: pure functions over rows loaded through the repository
- page: Streamlit UI (main entry point)

Usage:
    From Streamlit navigation:
        st.Page("screens/result_integrity/page.py", title="Result Integrity")

    Programmatic access:
        from screens.result_integrity.analytics import find_integrity_issues
        from screens.result_integrity.models import ResultScope
"""

from .models import (
    IssueType,
    ISSUE_TYPE_LABELS,
    ResultScope,
    IntegrityIssue,
    CohortRanking,
    ResultStatistics,
)

from .analytics import (
    dense_rank,
    rank_cohort,
    calculate_campus_percentile,
    aggregate_result_statistics,
    build_scope_for_class,
    find_integrity_issues,
    summarize_issues,
)

__all__ = [
    # Data models
    'ResultScope',
    'IntegrityIssue',
    'CohortRanking',
    'ResultStatistics',

    # Enums / constants
    'IssueType',
    'ISSUE_TYPE_LABELS',

    # Analytics
    'dense_rank',
    'rank_cohort',
    'calculate_campus_percentile',
    'aggregate_result_statistics',
    'build_scope_for_class',
    'find_integrity_issues',
    'summarize_issues',
]
