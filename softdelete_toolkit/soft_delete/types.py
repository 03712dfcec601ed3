"""
Deletion timestamp value and its SQLAlchemy column type.

``DeletedAt`` is an immutable nullable timestamp: ``DeletedAt()`` means the
row is not deleted, ``DeletedAt(t)`` means it was deleted at ``t``. Mapping a
column with ``DeletedAtType`` stores it as a nullable DATETIME and enables
the soft-delete rewrites for the column's model.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import ConfigDict, TypeAdapter, ValidationError
from pydantic_core import core_schema
from sqlalchemy.types import DateTime, TypeDecorator

from .exceptions import ParseError, ScanError

_DATETIME = TypeAdapter(datetime)
# JSON text only accepts quoted timestamps, not Unix numbers.
_DATETIME_JSON = TypeAdapter(datetime, config=ConfigDict(strict=True))


@dataclass(frozen=True)
class DeletedAt:
    """Nullable deletion timestamp."""

    time: Optional[datetime] = None

    @property
    def valid(self) -> bool:
        return self.time is not None

    def __bool__(self) -> bool:
        return self.valid

    @classmethod
    def scan(cls, value: Any) -> "DeletedAt":
        """
        Read a value coming from storage.

        Args:
            value: None, a datetime, or an ISO-8601 string or bytes

        Returns:
            DeletedAt for the value

        Raises:
            ScanError: If the value is not a nullable timestamp
        """
        if value is None:
            return cls()
        if isinstance(value, DeletedAt):
            return value
        if isinstance(value, datetime):
            return cls(value)
        if isinstance(value, (str, bytes)):
            try:
                text = value.decode() if isinstance(value, bytes) else value
                return cls(datetime.fromisoformat(text))
            except ValueError as e:
                raise ScanError(value) from e
        raise ScanError(value)

    def encode(self) -> Optional[datetime]:
        """Value written to storage: None when not deleted."""
        return self.time

    def to_json(self) -> str:
        """JSON text: ``null`` when not deleted, else the timestamp."""
        if self.time is None:
            return "null"
        return _DATETIME.dump_json(self.time).decode()

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "DeletedAt":
        """
        Parse JSON text produced by ``to_json``.

        Raises:
            ParseError: If the text is neither ``null`` nor a timestamp
        """
        raw = data.encode() if isinstance(data, str) else data
        if raw == b"null":
            return cls()
        try:
            return cls(_DATETIME_JSON.validate_json(raw))
        except ValidationError as e:
            raise ParseError(data) from e

    @classmethod
    def _validate(cls, value: Any) -> "DeletedAt":
        if value is None:
            return cls()
        if isinstance(value, DeletedAt):
            return value
        return cls(_DATETIME.validate_python(value))

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: Any
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda value: value.time,
                return_schema=core_schema.nullable_schema(
                    core_schema.datetime_schema()
                ),
            ),
        )


class DeletedAtType(TypeDecorator):  # type: ignore[type-arg]
    """
    Nullable DATETIME column holding a ``DeletedAt``.

    Tag settings are read from the column's ``info``:

    * ``zero_value`` - literal that means "not deleted" instead of NULL
    * ``actor_field`` - sibling field that records who deleted the row

    Usage:
        class Document(Base):
            __tablename__ = "documents"
            id = mapped_column(Integer, primary_key=True)
            deleted_at = mapped_column(
                DeletedAtType(), info={"actor_field": "deleted_by"}
            )
            deleted_by = mapped_column(String(100))
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> Optional[datetime]:
        if isinstance(value, DeletedAt):
            return value.encode()
        return value

    def process_result_value(self, value: Any, dialect: Any) -> DeletedAt:
        return DeletedAt.scan(value)

    def query_clauses(self, field: Any) -> List[Any]:
        from .clauses import SoftDeleteQueryClause
        from .fields import resolve_field

        return [SoftDeleteQueryClause(resolve_field(field))]

    def update_clauses(self, field: Any) -> List[Any]:
        from .clauses import SoftDeleteUpdateClause
        from .fields import resolve_field

        return [SoftDeleteUpdateClause(resolve_field(field))]

    def delete_clauses(self, field: Any) -> List[Any]:
        from .clauses import SoftDeleteDeleteClause
        from .fields import resolve_field

        return [SoftDeleteDeleteClause(resolve_field(field))]
