"""
Soft-delete field configuration.

Resolves, once per schema field, what "not deleted" means for the column and
which sibling field records the deleting actor.
"""

import logging
import weakref
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from dateutil import parser as date_parser

from ..statement.schema import Field

logger = logging.getLogger(__name__)

ZERO_VALUE_TAG = "zero_value"
ACTOR_FIELD_TAG = "actor_field"


def parse_zero_value(tag_settings: Mapping[str, Any]) -> Optional[str]:
    """
    Resolve the explicit "not deleted" sentinel of a field.

    Args:
        tag_settings: Tag settings of the field (its column ``info``)

    Returns:
        The tag value unchanged if it parses as a date/time, otherwise None
        so that comparisons fall back to NULL
    """
    value = tag_settings.get(ZERO_VALUE_TAG)
    if value is None:
        return None

    literal = str(value)
    try:
        date_parser.parse(literal)
    except (ValueError, OverflowError) as e:
        logger.warning(f"Ignoring zero value {literal!r}, falling back to NULL: {e}")
        return None
    return literal


@dataclass(frozen=True)
class SoftDeleteField:
    """
    Soft-delete settings bound to one field.

    Attributes:
        field: Field holding the deletion timestamp
        zero_value: Literal meaning "not deleted", or None for NULL
        actor_field: Field recording who deleted the row, if any
    """

    field: Field
    zero_value: Optional[str] = None
    actor_field: Optional[Field] = None

    @property
    def db_name(self) -> str:
        return self.field.db_name

    @classmethod
    def from_field(cls, field: Field) -> "SoftDeleteField":
        actor_field = None
        actor_name = field.tag_settings.get(ACTOR_FIELD_TAG)
        if actor_name:
            actor_field = field.schema.look_up_field(str(actor_name))
            if actor_field is None:
                logger.warning(
                    f"{field.schema.name}.{field.name}: actor field "
                    f"{actor_name!r} not found, deletions will not record an actor"
                )

        return cls(
            field=field,
            zero_value=parse_zero_value(field.tag_settings),
            actor_field=actor_field,
        )


_resolved: "weakref.WeakKeyDictionary[Field, SoftDeleteField]" = (
    weakref.WeakKeyDictionary()
)


def resolve_field(field: Field) -> SoftDeleteField:
    """Return the settings of ``field``, resolving them on first use only."""
    settings = _resolved.get(field)
    if settings is None:
        settings = _resolved[field] = SoftDeleteField.from_field(field)
    return settings
