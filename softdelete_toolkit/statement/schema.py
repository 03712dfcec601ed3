"""
Schema reflection for mapped classes.

A ``Schema`` describes one SQLAlchemy-mapped class the way the statement
pipeline needs it: its table, its fields with their column names and tag
settings, its primary key, and the statement modifiers contributed by the
column types of its fields.
"""

from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Type,
    Union,
    runtime_checkable,
)

import sqlalchemy as sa
from sqlalchemy.exc import NoInspectionAvailable

from .clause import IN, Column, columns
from .exceptions import UnsupportedValueError


@runtime_checkable
class StatementModifier(Protocol):
    """Clause that rewrites the statement it is added to."""

    def modify_statement(self, statement: Any) -> None:
        ...


@runtime_checkable
class QueryClausesInterface(Protocol):
    def query_clauses(self, field: "Field") -> List[StatementModifier]:
        ...


@runtime_checkable
class UpdateClausesInterface(Protocol):
    def update_clauses(self, field: "Field") -> List[StatementModifier]:
        ...


@runtime_checkable
class DeleteClausesInterface(Protocol):
    def delete_clauses(self, field: "Field") -> List[StatementModifier]:
        ...


@dataclass(eq=False)
class Field:
    """One mapped column attribute."""

    name: str
    db_name: str
    column: sa.Column  # type: ignore[type-arg]
    primary_key: bool
    tag_settings: Mapping[str, Any]
    schema: "Schema" = field(repr=False)

    @property
    def type(self) -> Any:
        return self.column.type


@dataclass(eq=False)
class Schema:
    model: type
    table: sa.Table
    fields: List[Field] = field(default_factory=list)
    primary_fields: List[Field] = field(default_factory=list)
    query_clauses: List[StatementModifier] = field(default_factory=list)
    update_clauses: List[StatementModifier] = field(default_factory=list)
    delete_clauses: List[StatementModifier] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.model.__name__

    @property
    def primary_field_db_names(self) -> List[str]:
        return [f.db_name for f in self.primary_fields]

    def look_up_field(self, name: str) -> Optional[Field]:
        """Find a field by attribute name, falling back to column name."""
        for candidate in self.fields:
            if candidate.name == name:
                return candidate
        for candidate in self.fields:
            if candidate.db_name == name:
                return candidate
        return None

    @classmethod
    def parse(cls, model: type) -> "Schema":
        """Reflect a mapped class, caching the result per class."""
        cached = _schema_cache.get(model)
        if cached is not None:
            return cached

        try:
            mapper = sa.inspect(model)
        except NoInspectionAvailable as e:
            raise UnsupportedValueError(f"{model!r} is not a mapped class") from e

        table = mapper.local_table
        schema = cls(model=model, table=table)
        primary_columns = list(mapper.primary_key)

        for prop in mapper.column_attrs:
            column = prop.columns[0]
            if not isinstance(column, sa.Column) or column.table is not table:
                continue
            schema.fields.append(
                Field(
                    name=prop.key,
                    db_name=column.name,
                    column=column,
                    primary_key=any(column is pk for pk in primary_columns),
                    tag_settings=dict(column.info),
                    schema=schema,
                )
            )

        schema.primary_fields = [f for f in schema.fields if f.primary_key]

        # Modifiers are collected after all fields exist so that a type can
        # look up sibling fields (e.g. the actor field).
        for schema_field in schema.fields:
            column_type = schema_field.type
            if isinstance(column_type, QueryClausesInterface):
                schema.query_clauses.extend(column_type.query_clauses(schema_field))
            if isinstance(column_type, UpdateClausesInterface):
                schema.update_clauses.extend(column_type.update_clauses(schema_field))
            if isinstance(column_type, DeleteClausesInterface):
                schema.delete_clauses.extend(column_type.delete_clauses(schema_field))

        _schema_cache[model] = schema
        return schema


_schema_cache: Dict[type, Schema] = {}


def model_class_of(value: Any) -> Type[Any]:
    """Return the mapped class behind a class, an instance or a list of them."""
    if isinstance(value, type):
        return value
    if isinstance(value, (list, tuple)):
        if not value:
            raise UnsupportedValueError("cannot derive a model from an empty sequence")
        return type(value[0])
    return type(value)


def instances_of(value: Any) -> List[Any]:
    if value is None or isinstance(value, type):
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def identity_values(schema: Schema, value: Any) -> List[Tuple[Any, ...]]:
    """
    Collect primary-key tuples from an instance or a sequence of instances.

    Rows with any unset primary-key attribute are skipped and duplicates are
    collapsed, keeping first-seen order.
    """
    results: List[Tuple[Any, ...]] = []
    seen = set()
    for instance in instances_of(value):
        key = tuple(getattr(instance, f.name, None) for f in schema.primary_fields)
        if not key or any(part is None for part in key):
            continue
        if key in seen:
            continue
        seen.add(key)
        results.append(key)
    return results


def to_query_values(
    table: str, db_names: Sequence[str], values: Iterable[Tuple[Any, ...]]
) -> Tuple[Union[Column, Tuple[Column, ...]], Tuple[Any, ...]]:
    """Build the IN column(s) and values for a set of primary-key tuples."""
    values = list(values)
    if len(db_names) == 1:
        return Column(db_names[0], table), tuple(v[0] for v in values)
    return columns(db_names, table), tuple(values)


def primary_key_condition(schema: Schema, value: Any, table: str) -> Optional[IN]:
    """Return an ``IN`` over the primary key of ``value``, or None if it has none."""
    keys = identity_values(schema, value)
    if not keys:
        return None
    column, values = to_query_values(table, schema.primary_field_db_names, keys)
    return IN(column, values)
