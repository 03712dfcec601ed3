"""
Mutable statement builder owned by a single pipeline operation.

A ``Statement`` collects clauses keyed by name while the operation's
callbacks run, then renders them into a SQLAlchemy Core statement with
``build``. Clauses that implement ``modify_statement`` are not stored; they
rewrite the statement when added.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

import sqlalchemy as sa
from sqlalchemy.orm.attributes import set_committed_value

from .schema import Schema, StatementModifier, instances_of

QUERY_CLAUSES = ("SELECT", "WHERE", "ORDER BY", "LIMIT")
UPDATE_CLAUSES = ("UPDATE", "SET", "WHERE")
DELETE_CLAUSES = ("DELETE", "WHERE")

# Set by the soft-delete exclusion once it has scoped a statement.
SOFT_DELETE_MARKER = "soft_delete_enabled"


class Statement:
    """
    State of one query, update or delete while it is being built.

    Attributes:
        schema: Reflected schema of the model, or None for raw tables
        dest: Value the operation writes results to (instance or list)
        model: Value the operation was scoped with; defaults to ``dest``
        context: Ambient key-value context of the operation
        unscoped: Bypass soft-delete rewriting entirely
        clauses: Clauses collected so far, keyed by clause name
        markers: Idempotency flags set by statement modifiers
        column_values: Attribute values queued for the instances of ``dest``
        sql: Rendered SQLAlchemy statement, None until built
        now_func: Clock used for timestamps
    """

    def __init__(
        self,
        schema: Optional[Schema],
        dest: Any = None,
        model: Any = None,
        context: Optional[Mapping[str, Any]] = None,
        unscoped: bool = False,
        now_func: Optional[Callable[[], datetime]] = None,
    ):
        if model is None:
            model = dest
        elif dest is None:
            dest = model

        self.schema = schema
        self.dest = dest
        self.model = model
        self.context: Mapping[str, Any] = context or {}
        self.unscoped = unscoped
        self.clauses: Dict[str, Any] = {}
        self.markers: Set[str] = set()
        self.column_values: Dict[str, Any] = {}
        self.sql: Any = None
        self.now_func: Callable[[], datetime] = now_func or datetime.now

    @property
    def table(self) -> str:
        return self.schema.table.name if self.schema is not None else ""

    @property
    def reflect_value(self) -> List[Any]:
        """Instances held by ``dest``."""
        return instances_of(self.dest)

    def add_clause(self, clause: Any) -> None:
        if isinstance(clause, StatementModifier):
            clause.modify_statement(self)
            return
        self.clauses[clause.name] = clause.merge(self.clauses.get(clause.name))

    def add_clause_if_not_exists(self, clause: Any) -> None:
        if clause.name not in self.clauses:
            self.add_clause(clause)

    def mark(self, marker: str) -> None:
        self.markers.add(marker)

    def has_marker(self, marker: str) -> bool:
        return marker in self.markers

    def set_column(self, name: str, value: Any) -> None:
        """
        Queue a column value for the in-memory instances of ``dest``.

        Queued values are written by ``apply_columns`` once the statement
        has been executed; a later value for the same column replaces an
        earlier one.
        """
        if self.schema is None:
            return
        schema_field = self.schema.look_up_field(name)
        if schema_field is None:
            return
        self.column_values[schema_field.name] = value

    def apply_columns(self) -> None:
        """
        Write queued column values to the instances of ``dest``.

        Values are recorded as already persisted, so flushing the session
        afterwards does not issue a second UPDATE for them.
        """
        for instance in self.reflect_value:
            mapped = sa.inspect(instance, raiseerr=False) is not None
            for attr, value in self.column_values.items():
                if mapped:
                    set_committed_value(instance, attr, value)
                else:
                    setattr(instance, attr, value)
        self.column_values.clear()

    def build(self, *clause_names: str) -> Any:
        """Render the named clauses, in order, into ``self.sql``."""
        if self.schema is None:
            raise ValueError("cannot build a statement without a schema")

        sql = None
        for name in clause_names:
            clause = self.clauses.get(name)
            if clause is not None:
                sql = clause.build(sql, self.schema.table, self)
        self.sql = sql
        return sql
