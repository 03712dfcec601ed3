"""
Statement modifiers implementing soft delete.

``DeletedAtType`` registers one modifier per operation kind on the schema of
every model that maps it:

* queries get a ``deleted_at IS NULL`` (or ``= zero value``) predicate
* updates get the same predicate unless the statement is already rendered
* deletes are rewritten into an UPDATE that stamps the deletion time and,
  when configured, the deleting actor
"""

import logging
from typing import Optional

from ..statement.clause import (
    AndConditions,
    Assignment,
    Column,
    CURRENT_TABLE,
    Eq,
    OrConditions,
    Set,
    Update,
    Where,
)
from ..statement.schema import primary_key_condition
from ..statement.statement import SOFT_DELETE_MARKER, UPDATE_CLAUSES, Statement
from .fields import SoftDeleteField
from .types import DeletedAt

logger = logging.getLogger(__name__)

# Ambient context key holding the identity of whoever deletes.
DELETED_BY = "deleted_by"


def exclude_deleted(stmt: Statement, field: SoftDeleteField) -> None:
    """
    Restrict a statement to rows that are not soft deleted.

    Does nothing for unscoped statements or when the predicate was already
    added to this statement.
    """
    if stmt.unscoped or stmt.has_marker(SOFT_DELETE_MARKER):
        return

    where = stmt.clauses.get(Where.name)
    if where is not None and where.exprs:
        for expr in where.exprs:
            if isinstance(expr, OrConditions) and len(expr.exprs) == 1:
                # Appending with AND would bind to the last OR branch only.
                stmt.clauses[Where.name] = Where([AndConditions(tuple(where.exprs))])
                break

    stmt.add_clause(
        Where([Eq(Column(field.db_name, CURRENT_TABLE), field.zero_value)])
    )
    stmt.mark(SOFT_DELETE_MARKER)


def bind_actor(stmt: Statement, field: SoftDeleteField) -> Optional[Assignment]:
    """
    Build the assignment recording who deleted the row.

    Returns:
        The assignment, or None when no actor field is configured or the
        statement's context carries no actor
    """
    if field.actor_field is None:
        return None

    actor = stmt.context.get(DELETED_BY)
    if actor is None:
        return None

    actor_column = field.actor_field.db_name
    stmt.set_column(actor_column, actor)
    return Assignment(Column(actor_column), actor)


def rewrite_delete(stmt: Statement, field: SoftDeleteField) -> None:
    """
    Turn a delete into an UPDATE that marks the rows as deleted.

    The rendered UPDATE is left in ``stmt.sql`` for the pipeline to execute
    in place of the DELETE.
    """
    if stmt.unscoped or stmt.sql is not None:
        return

    now = stmt.now_func()

    assignments = Set([Assignment(Column(field.db_name), now)])
    actor = bind_actor(stmt, field)
    if actor is not None:
        assignments.append(actor)

    stmt.add_clause(assignments)
    stmt.set_column(field.db_name, DeletedAt(now))

    if stmt.schema is not None:
        condition = primary_key_condition(stmt.schema, stmt.dest, stmt.table)
        if condition is not None:
            stmt.add_clause(Where([condition]))

        if stmt.model is not None and stmt.model is not stmt.dest:
            condition = primary_key_condition(stmt.schema, stmt.model, stmt.table)
            if condition is not None:
                stmt.add_clause(Where([condition]))

    exclude_deleted(stmt, field)

    stmt.add_clause_if_not_exists(Update())
    stmt.build(*UPDATE_CLAUSES)
    logger.debug(
        f"Rewrote delete on {stmt.table} into soft delete "
        f"(actor={'yes' if actor is not None else 'no'})"
    )


class _SoftDeleteClause:
    def __init__(self, field: SoftDeleteField):
        self.field = field

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.field.db_name!r})"


class SoftDeleteQueryClause(_SoftDeleteClause):
    def modify_statement(self, stmt: Statement) -> None:
        exclude_deleted(stmt, self.field)


class SoftDeleteUpdateClause(_SoftDeleteClause):
    def modify_statement(self, stmt: Statement) -> None:
        if stmt.sql is None and not stmt.unscoped:
            exclude_deleted(stmt, self.field)


class SoftDeleteDeleteClause(_SoftDeleteClause):
    def modify_statement(self, stmt: Statement) -> None:
        rewrite_delete(stmt, self.field)
