"""
Package-wide constants.

Centralize magic strings used by the query builder and the repository here.
"""

from enum import Enum


# ========================================
# Lifecycle Events
# ========================================

class LifecycleEvent(str, Enum):
    """
    Hook points around repository mutations.

    Inherits from str so handlers can be registered either with the enum
    member or with its plain name:

        events = {LifecycleEvent.CREATING: CheckQuota}
        events = {"creating": CheckQuota}
    """

    CREATING = "creating"
    """Before a row is inserted. Returning False vetoes."""

    CREATED = "created"
    UPDATING = "updating"
    UPDATED = "updated"
    DELETING = "deleting"
    DELETED = "deleted"


# ========================================
# Sorting
# ========================================

class SortDirection(str, Enum):
    """Sort direction accepted by ``order_by``."""

    ASC = "asc"
    DESC = "desc"


DEFAULT_SORT = SortDirection.DESC.value


# ========================================
# Query Builder
# ========================================

ALL_COLUMNS = "*"

BOOLEAN_AND = "and"
BOOLEAN_OR = "or"
