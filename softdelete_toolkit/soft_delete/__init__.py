"""
Soft Delete Module - timestamp-based logical deletion.

Provides the ``DeletedAt`` column type and the statement modifiers that turn
deletes into timestamped updates and hide deleted rows from reads.
"""

from .clauses import (
    DELETED_BY,
    SoftDeleteDeleteClause,
    SoftDeleteQueryClause,
    SoftDeleteUpdateClause,
    bind_actor,
    exclude_deleted,
    rewrite_delete,
)
from .exceptions import HardDeleteError, ParseError, ScanError, SoftDeleteError
from .fields import SoftDeleteField, parse_zero_value, resolve_field
from .mixins import (
    ActorSoftDeleteMixin,
    SoftDeleteMixin,
    prevent_hard_delete,
    register_soft_delete_listeners,
)
from .types import DeletedAt, DeletedAtType

__all__ = [
    # Types
    "DeletedAt",
    "DeletedAtType",
    # Configuration
    "SoftDeleteField",
    "parse_zero_value",
    "resolve_field",
    # Statement modifiers
    "DELETED_BY",
    "SoftDeleteQueryClause",
    "SoftDeleteUpdateClause",
    "SoftDeleteDeleteClause",
    "exclude_deleted",
    "bind_actor",
    "rewrite_delete",
    # Mixins
    "SoftDeleteMixin",
    "ActorSoftDeleteMixin",
    "prevent_hard_delete",
    "register_soft_delete_listeners",
    # Exceptions
    "SoftDeleteError",
    "ScanError",
    "ParseError",
    "HardDeleteError",
]
