"""
SQLAlchemy mixins for soft delete functionality.

These mixins map a ``deleted_at`` column with ``DeletedAtType`` so that the
pipeline rewrites queries, updates and deletes of the model.
"""

from typing import Any, Optional, Type

from sqlalchemy import String, event
from sqlalchemy.orm import Mapped, mapped_column

from .exceptions import HardDeleteError
from .types import DeletedAt, DeletedAtType


class SoftDeleteMixin:
    """
    Mixin adding a ``deleted_at`` column.

    Usage:
        class MyModel(Base, SoftDeleteMixin):
            __tablename__ = 'my_table'
            id = mapped_column(Integer, primary_key=True)
            name = mapped_column(String)
    """

    deleted_at: Mapped[Optional[DeletedAt]] = mapped_column(
        DeletedAtType(), nullable=True, index=True
    )

    @property
    def is_deleted(self) -> bool:
        return bool(self.deleted_at)


class ActorSoftDeleteMixin:
    """
    Mixin adding ``deleted_at`` and a ``deleted_by`` actor column.

    The actor is taken from the ``deleted_by`` value of the pipeline context:

        pipeline.with_context(deleted_by=current_user.id).delete(record)
    """

    deleted_at: Mapped[Optional[DeletedAt]] = mapped_column(
        DeletedAtType(), nullable=True, index=True, info={"actor_field": "deleted_by"}
    )
    deleted_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    @property
    def is_deleted(self) -> bool:
        return bool(self.deleted_at)


def _maps_deleted_at(cls: Type[Any]) -> bool:
    table = getattr(cls, "__table__", None)
    if table is None:
        return False
    return any(isinstance(column.type, DeletedAtType) for column in table.columns)


def prevent_hard_delete(mapper: Any, connection: Any, target: Any) -> None:
    """
    Prevent Session.delete() on models with a soft-delete column.

    This function should be connected to SQLAlchemy's before_delete event.
    """
    raise HardDeleteError(target.__class__.__name__)


def register_soft_delete_listeners(base_class: Type[Any]) -> int:
    """
    Register SQLAlchemy event listeners for soft delete functionality.

    Args:
        base_class: The declarative base class

    Returns:
        Number of mapped classes the guard was attached to
    """
    registered = 0
    for mapper in base_class.registry.mappers:
        if _maps_deleted_at(mapper.class_) and not event.contains(
            mapper.class_, "before_delete", prevent_hard_delete
        ):
            event.listen(mapper.class_, "before_delete", prevent_hard_delete)
            registered += 1
    return registered
