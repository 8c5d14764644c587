# screens/elective_limits/__init__.py
"""
Elective Limits Module

Optional capacity per elective subject and admin locking of subject choices.
"""

from .service import (
    ElectiveCapacityInfo,
    LockResult,
    can_select_elective,
    get_elective_capacity_info,
    save_limits,
    bulk_lock_choices,
    bulk_unlock_choices,
)

__all__ = [
    'ElectiveCapacityInfo',
    'LockResult',
    'can_select_elective',
    'get_elective_capacity_info',
    'save_limits',
    'bulk_lock_choices',
    'bulk_unlock_choices',
]
