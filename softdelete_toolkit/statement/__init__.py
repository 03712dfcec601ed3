"""
Statement Module - clause model and execution pipeline.

Statements are built from clauses, rewritten by the modifiers that column
types register on a model's schema, then rendered and executed with
SQLAlchemy.
"""

from .clause import (
    CURRENT_TABLE,
    IN,
    AndConditions,
    Assignment,
    Column,
    Eq,
    OrConditions,
    Set,
    Where,
    and_,
    or_,
)
from .exceptions import MissingWhereClauseError, StatementError, UnsupportedValueError
from .pipeline import Pipeline
from .schema import Field, Schema
from .statement import Statement

__all__ = [
    # Pipeline
    "Pipeline",
    "Statement",
    # Schema
    "Schema",
    "Field",
    # Clauses
    "CURRENT_TABLE",
    "Column",
    "Eq",
    "IN",
    "OrConditions",
    "AndConditions",
    "Where",
    "Assignment",
    "Set",
    "or_",
    "and_",
    # Exceptions
    "StatementError",
    "MissingWhereClauseError",
    "UnsupportedValueError",
]
