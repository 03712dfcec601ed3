"""Exceptions raised by the statement pipeline."""


class StatementError(Exception):
    """Base exception for statement construction and execution."""


class MissingWhereClauseError(StatementError):
    """Raised when an update or delete would touch every row of a table."""

    def __init__(self, table: str, operation: str):
        self.table = table
        self.operation = operation
        super().__init__(
            f"Refusing {operation} on {table} without a WHERE clause; "
            "enable allow_global_update to permit it"
        )


class UnsupportedValueError(StatementError):
    """Raised when a value cannot be mapped to a schema."""
