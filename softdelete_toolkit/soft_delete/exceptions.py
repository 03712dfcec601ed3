"""Exceptions for soft delete operations."""

from typing import Any, Optional


class SoftDeleteError(Exception):
    """Base exception for soft delete operations."""

    def __init__(self, message: str, entity: Optional[str] = None):
        self.entity = entity
        super().__init__(message)


class ScanError(SoftDeleteError):
    """Raised when a stored value cannot be read as a deletion timestamp."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(
            f"Cannot scan {type(value).__name__} value {value!r} into DeletedAt"
        )


class ParseError(SoftDeleteError):
    """Raised when text is neither null nor a parseable timestamp."""

    def __init__(self, payload: Any):
        self.payload = payload
        super().__init__(f"Cannot parse {payload!r} as DeletedAt")


class HardDeleteError(SoftDeleteError):
    """Raised when Session.delete() is used on a soft-delete model."""

    def __init__(self, entity: str):
        super().__init__(
            f"Hard delete attempted on {entity}. "
            "Use Pipeline.delete() to soft delete it instead.",
            entity=entity,
        )
