"""
Soft Delete Toolkit - timestamp-based soft delete for SQLAlchemy models.

Instead of physically removing rows, deletes are rewritten into updates that
stamp a ``deleted_at`` column, and reads and updates skip rows that carry a
deletion timestamp unless they are explicitly unscoped.

Key Features
------------
* **DeletedAt column type**: nullable timestamp with JSON and pydantic support
* **Query scoping**: deleted rows are excluded from queries and updates
* **Delete rewriting**: deletes become ``UPDATE ... SET deleted_at = now``
* **Actor tracking**: optionally records who deleted a row
* **Zero values**: a configurable literal can mean "not deleted" instead of NULL

Quick Start
-----------
>>> from softdelete_toolkit import DeletedAtType, Pipeline
>>>
>>> class Document(Base):
...     __tablename__ = "documents"
...     id = mapped_column(Integer, primary_key=True)
...     deleted_at = mapped_column(DeletedAtType(), info={"actor_field": "deleted_by"})
...     deleted_by = mapped_column(String(100))
>>>
>>> pipeline = Pipeline(session)
>>> pipeline.with_context(deleted_by="alice").delete(document)
>>> pipeline.query(Document)              # skips the deleted document
>>> pipeline.unscoped().query(Document)   # includes it

License
-------
MIT License
"""

__version__ = "1.0.0"

from .config import SoftDeleteConfig, configure, get_config, set_config
from .soft_delete import (
    DELETED_BY,
    ActorSoftDeleteMixin,
    DeletedAt,
    DeletedAtType,
    ParseError,
    ScanError,
    SoftDeleteError,
    SoftDeleteMixin,
)
from .statement import MissingWhereClauseError, Pipeline

__all__ = [
    # Soft Delete
    "DeletedAt",
    "DeletedAtType",
    "DELETED_BY",
    "SoftDeleteMixin",
    "ActorSoftDeleteMixin",
    # Pipeline
    "Pipeline",
    # Configuration
    "SoftDeleteConfig",
    "get_config",
    "set_config",
    "configure",
    # Exceptions
    "SoftDeleteError",
    "ScanError",
    "ParseError",
    "MissingWhereClauseError",
]
