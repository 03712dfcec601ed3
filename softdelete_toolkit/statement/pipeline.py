"""
Statement pipeline over a SQLAlchemy session.

The pipeline builds a ``Statement`` per operation, lets the modifiers that
column types registered on the schema rewrite it, renders it with SQLAlchemy
Core and executes it on the session.
"""

import copy
import logging
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from ..config import SoftDeleteConfig, get_config
from .clause import (
    Assignment,
    Column,
    Delete,
    Limit,
    OrConditions,
    OrderBy,
    Select,
    Set,
    Update,
    Where,
    and_,
)
from .exceptions import MissingWhereClauseError, UnsupportedValueError
from .schema import Schema, instances_of, model_class_of, primary_key_condition
from .statement import (
    DELETE_CLAUSES,
    QUERY_CLAUSES,
    SOFT_DELETE_MARKER,
    UPDATE_CLAUSES,
    Statement,
)

logger = logging.getLogger(__name__)


class Pipeline:
    """
    Runs queries, updates and deletes for mapped classes on a session.

    Usage:
        pipeline = Pipeline(session)
        users = pipeline.query(User, User.name == "alice")
        pipeline.with_context(deleted_by="admin").delete(users)
        everything = pipeline.unscoped().query(User)
    """

    def __init__(
        self,
        session: Session,
        now_func: Optional[Callable[[], datetime]] = None,
        context: Optional[Mapping[str, Any]] = None,
        config: Optional[SoftDeleteConfig] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            session: SQLAlchemy session statements are executed on
            now_func: Clock for deletion timestamps; defaults to config.now
            context: Ambient values visible to statement modifiers
            config: Toolkit configuration; defaults to the global one
        """
        self.session = session
        self.config = config or get_config()
        self.now_func = now_func or self.config.now
        self.context = dict(context or {})
        self.is_unscoped = False

    def with_context(self, **values: Any) -> "Pipeline":
        """Return a pipeline whose ambient context also holds ``values``."""
        derived = copy.copy(self)
        derived.context = {**self.context, **values}
        return derived

    def unscoped(self) -> "Pipeline":
        """Return a pipeline that bypasses soft-delete rewriting."""
        derived = copy.copy(self)
        derived.is_unscoped = True
        return derived

    def statement(
        self, schema: Schema, dest: Any = None, model: Any = None
    ) -> Statement:
        return Statement(
            schema,
            dest=dest,
            model=model,
            context=self.context,
            unscoped=self.is_unscoped,
            now_func=self.now_func,
        )

    def query(
        self,
        model: type,
        *criteria: Any,
        order_by: Any = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Any]:
        """
        Load instances of ``model`` matching ``criteria``.

        Args:
            model: Mapped class to load
            *criteria: SQLAlchemy expressions or clause expressions; wrap one
                in ``clause.or_()`` to join it with OR
            order_by: Column or list of columns to order by
            limit: Maximum rows to return
            offset: Rows to skip

        Returns:
            List of loaded instances
        """
        schema = Schema.parse(model)
        stmt = self.statement(schema)

        if criteria:
            stmt.add_clause(Where(list(criteria)))
        if order_by is not None:
            columns = order_by if isinstance(order_by, (list, tuple)) else [order_by]
            stmt.add_clause(OrderBy(list(columns)))
        if limit is not None or offset is not None:
            stmt.add_clause(Limit(limit, offset))

        for modifier in schema.query_clauses:
            stmt.add_clause(modifier)

        stmt.add_clause_if_not_exists(Select())
        stmt.build(*QUERY_CLAUSES)
        self._log(stmt)
        return list(self.session.scalars(stmt.sql).all())

    def update(self, value: Any, values: Mapping[str, Any], *criteria: Any) -> int:
        """
        Update rows of a mapped class.

        Args:
            value: Mapped class, or instance(s) whose primary keys scope the update
            values: Attribute or column names mapped to new values
            *criteria: Additional conditions

        Returns:
            Number of rows matched
        """
        if not values:
            raise ValueError("update requires at least one value")

        schema = Schema.parse(model_class_of(value))
        stmt = self.statement(schema, dest=value)

        assignments = Set()
        for name, new_value in values.items():
            schema_field = schema.look_up_field(name)
            if schema_field is None:
                raise UnsupportedValueError(f"{schema.name} has no field {name!r}")
            assignments.append(Assignment(Column(schema_field.db_name), new_value))

        if criteria:
            stmt.add_clause(self._scoped_criteria(criteria))
        condition = primary_key_condition(schema, value, stmt.table)
        if condition is not None:
            stmt.add_clause(Where([condition]))

        for modifier in schema.update_clauses:
            stmt.add_clause(modifier)

        if stmt.sql is None:
            stmt.add_clause_if_not_exists(Update())
            stmt.add_clause(assignments)
            self._check_missing_where(stmt, "UPDATE")
            stmt.build(*UPDATE_CLAUSES)
            for assignment in assignments:
                stmt.set_column(assignment.column.name, assignment.value)

        return self._execute(stmt)

    def delete(self, value: Any, *criteria: Any, model: Any = None) -> int:
        """
        Delete rows of a mapped class.

        Soft-delete models are rewritten into an UPDATE by their column type;
        other models, and any model on an unscoped pipeline, are physically
        deleted.

        Args:
            value: Mapped class, instance or list of instances to delete
            *criteria: Additional conditions
            model: Instance(s) carrying the authoritative primary keys when
                they differ from ``value``

        Returns:
            Number of rows affected
        """
        if not isinstance(value, type) and not instances_of(value) and model is None:
            raise UnsupportedValueError("nothing to delete")

        schema = Schema.parse(model_class_of(model if model is not None else value))
        stmt = self.statement(schema, dest=value, model=model)

        if criteria:
            stmt.add_clause(self._scoped_criteria(criteria))

        for modifier in schema.delete_clauses:
            stmt.add_clause(modifier)

        if stmt.sql is None:
            for source in self._key_sources(stmt):
                condition = primary_key_condition(schema, source, stmt.table)
                if condition is not None:
                    stmt.add_clause(Where([condition]))
            stmt.add_clause_if_not_exists(Delete())
            self._check_missing_where(stmt, "DELETE")
            stmt.build(*DELETE_CLAUSES)
        else:
            self._check_missing_where(stmt, "DELETE")

        return self._execute(stmt)

    @staticmethod
    def _scoped_criteria(criteria: Sequence[Any]) -> Where:
        """
        Wrap criteria for statements that are narrowed further by key.

        Criteria joined with ``or_()`` are grouped so that conditions added
        afterwards apply to every OR branch.
        """
        if any(isinstance(c, OrConditions) and len(c.exprs) == 1 for c in criteria):
            return Where([and_(*criteria)])
        return Where(list(criteria))

    @staticmethod
    def _key_sources(stmt: Statement) -> List[Any]:
        sources = [stmt.dest]
        if stmt.model is not None and stmt.model is not stmt.dest:
            sources.append(stmt.model)
        return sources

    def _check_missing_where(self, stmt: Statement, operation: str) -> None:
        if self.config.allow_global_update:
            return

        where = stmt.clauses.get(Where.name)
        conditions = len(where.exprs) if where is not None else 0
        if stmt.has_marker(SOFT_DELETE_MARKER):
            # The exclusion predicate alone does not narrow the statement.
            conditions -= 1
        if conditions <= 0:
            raise MissingWhereClauseError(stmt.table, operation)

    def _execute(self, stmt: Statement) -> int:
        self._log(stmt)
        result = self.session.execute(stmt.sql)
        stmt.apply_columns()
        return int(result.rowcount)

    def _log(self, stmt: Statement) -> None:
        if self.config.log_statements:
            logger.debug(f"{stmt.table}: {stmt.sql}")
