"""
Clause model for the statement pipeline.

Clauses are small value objects collected on a ``Statement`` under their
``name`` and rendered into SQLAlchemy Core constructs when the statement is
built. Expressions inside a ``Where`` may be clause expressions from this
module or plain SQLAlchemy column expressions.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import sqlalchemy as sa
from sqlalchemy.sql.elements import ColumnElement

# Resolved to the statement's own table at render time.
CURRENT_TABLE = "@@current_table"


@dataclass(frozen=True)
class Column:
    """Reference to a column by name, optionally qualified by table name."""

    name: str
    table: str = CURRENT_TABLE

    def resolve(self, table: sa.Table) -> ColumnElement[Any]:
        """Return the SQLAlchemy column this reference points at."""
        if self.table in (CURRENT_TABLE, "", table.name):
            return table.c[self.name]
        return table.metadata.tables[self.table].c[self.name]


def render_expression(expr: Any, table: sa.Table) -> ColumnElement[Any]:
    """Render a clause expression or pass a SQLAlchemy expression through."""
    if hasattr(expr, "to_sql"):
        return expr.to_sql(table)
    return expr


def _render_flat(exprs: Sequence[Any], table: sa.Table) -> ColumnElement[Any]:
    # A single-expression OrConditions joins with OR, everything else with
    # AND, and AND binds tighter: [a, Or(b), c] is "a OR (b AND c)".
    groups: List[List[ColumnElement[Any]]] = [[]]
    for expr in exprs:
        if isinstance(expr, OrConditions) and len(expr.exprs) == 1:
            rendered = render_expression(expr.exprs[0], table)
            if groups[-1]:
                groups.append([rendered])
            else:
                groups[-1].append(rendered)
        else:
            groups[-1].append(render_expression(expr, table))

    conjunctions = [g[0] if len(g) == 1 else sa.and_(*g) for g in groups if g]
    if len(conjunctions) == 1:
        return conjunctions[0]
    return sa.or_(*conjunctions)


@dataclass(frozen=True)
class Eq:
    """``column = value``; a ``None`` value renders ``column IS NULL``."""

    column: Union[Column, str]
    value: Any = None

    def to_sql(self, table: sa.Table) -> ColumnElement[Any]:
        column = _as_column(self.column).resolve(table)
        if self.value is None:
            return column.is_(None)
        if isinstance(self.value, ColumnElement):
            return column == self.value
        # Literal keeps the value's own type instead of the column's, so
        # sentinel strings reach the database verbatim.
        return column == sa.literal(self.value)


@dataclass(frozen=True)
class IN:
    """``column IN (values)``; a tuple of columns renders a tuple IN."""

    column: Union[Column, Tuple[Column, ...]]
    values: Tuple[Any, ...] = ()

    def to_sql(self, table: sa.Table) -> ColumnElement[Any]:
        if isinstance(self.column, tuple):
            columns = [c.resolve(table) for c in self.column]
            return sa.tuple_(*columns).in_(list(self.values))
        return self.column.resolve(table).in_(list(self.values))


@dataclass(frozen=True)
class OrConditions:
    """Disjunction; with one expression it marks an OR join in a ``Where``."""

    exprs: Tuple[Any, ...]

    def to_sql(self, table: sa.Table) -> ColumnElement[Any]:
        rendered = [render_expression(e, table) for e in self.exprs]
        if len(rendered) == 1:
            return rendered[0]
        return sa.or_(*rendered).self_group()


@dataclass(frozen=True)
class AndConditions:
    """Parenthesized group of expressions rendered with ``Where`` precedence."""

    exprs: Tuple[Any, ...]

    def to_sql(self, table: sa.Table) -> ColumnElement[Any]:
        if len(self.exprs) == 1:
            return render_expression(self.exprs[0], table)
        return _render_flat(self.exprs, table).self_group()


def or_(*exprs: Any) -> OrConditions:
    return OrConditions(tuple(exprs))


def and_(*exprs: Any) -> AndConditions:
    return AndConditions(tuple(exprs))


@dataclass
class Where:
    """WHERE clause holding a flat list of expressions."""

    exprs: List[Any] = field(default_factory=list)

    name = "WHERE"

    def merge(self, existing: Optional["Where"]) -> "Where":
        if existing is None:
            return Where(list(self.exprs))
        return Where(list(existing.exprs) + list(self.exprs))

    def to_sql(self, table: sa.Table) -> Optional[ColumnElement[Any]]:
        if not self.exprs:
            return None
        return _render_flat(self.exprs, table)

    def build(self, sql: Any, table: sa.Table, statement: Any) -> Any:
        condition = self.to_sql(table)
        if condition is None:
            return sql
        return sql.where(condition)


@dataclass(frozen=True)
class Assignment:
    column: Union[Column, str]
    value: Any


@dataclass
class Set:
    """SET clause; adding a second one replaces the first."""

    assignments: List[Assignment] = field(default_factory=list)

    name = "SET"

    def merge(self, existing: Optional["Set"]) -> "Set":
        return Set(list(self.assignments))

    def append(self, assignment: Assignment) -> None:
        self.assignments.append(assignment)

    def __iter__(self) -> Iterator[Assignment]:
        return iter(self.assignments)

    def __len__(self) -> int:
        return len(self.assignments)

    def build(self, sql: Any, table: sa.Table, statement: Any) -> Any:
        values = {
            _as_column(a.column).resolve(table).key: a.value for a in self.assignments
        }
        return sql.values(values)


@dataclass
class Update:
    name = "UPDATE"

    def merge(self, existing: Optional["Update"]) -> "Update":
        return self

    def build(self, sql: Any, table: sa.Table, statement: Any) -> Any:
        return sa.update(table)


@dataclass
class Delete:
    name = "DELETE"

    def merge(self, existing: Optional["Delete"]) -> "Delete":
        return self

    def build(self, sql: Any, table: sa.Table, statement: Any) -> Any:
        return sa.delete(table)


@dataclass
class Select:
    """SELECT of the statement's mapped class."""

    name = "SELECT"

    def merge(self, existing: Optional["Select"]) -> "Select":
        return self

    def build(self, sql: Any, table: sa.Table, statement: Any) -> Any:
        return sa.select(statement.schema.model)


@dataclass
class OrderBy:
    columns: List[Any] = field(default_factory=list)

    name = "ORDER BY"

    def merge(self, existing: Optional["OrderBy"]) -> "OrderBy":
        if existing is None:
            return OrderBy(list(self.columns))
        return OrderBy(list(existing.columns) + list(self.columns))

    def build(self, sql: Any, table: sa.Table, statement: Any) -> Any:
        if not self.columns:
            return sql
        return sql.order_by(
            *[c.resolve(table) if isinstance(c, Column) else c for c in self.columns]
        )


@dataclass
class Limit:
    limit: Optional[int] = None
    offset: Optional[int] = None

    name = "LIMIT"

    def merge(self, existing: Optional["Limit"]) -> "Limit":
        return self

    def build(self, sql: Any, table: sa.Table, statement: Any) -> Any:
        if self.limit is not None:
            sql = sql.limit(self.limit)
        if self.offset is not None:
            sql = sql.offset(self.offset)
        return sql


def _as_column(column: Union[Column, str]) -> Column:
    if isinstance(column, Column):
        return column
    return Column(column)


def columns(names: Iterable[str], table: str = CURRENT_TABLE) -> Tuple[Column, ...]:
    return tuple(Column(name, table) for name in names)
