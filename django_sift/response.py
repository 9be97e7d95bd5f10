"""
Django-Sift Response Utilities

The paged result envelope and its serialization.

Features:
- PagedResult with page arithmetic helpers
- Automatic serialization of common types
- Error payloads for the HTTP layer
"""

import math
from dataclasses import dataclass
from typing import Any, Tuple

from django_sift.exceptions import FieldNotFound, InvalidFilterArgument, MalformedParameter
from django_sift.fields import get_entity_fields
from django_sift.params import SortSpec


def serialize_value(value):
    """
    Serialize a value for JSON response.

    Handles common Django types:
    - DateField, DateTimeField -> ISO format string
    - UUID -> string
    - Decimal -> string
    - Related object -> primary key string

    Args:
        value: Value to serialize

    Returns:
        JSON-serializable value
    """
    if value is None:
        return None

    # DateTime/Date
    if hasattr(value, "isoformat"):
        return value.isoformat()

    # UUID
    if hasattr(value, "hex") and not isinstance(value, (int, float)):
        return str(value)

    # Decimal
    if hasattr(value, "as_tuple"):
        return str(value)

    if hasattr(value, "pk"):
        return str(value.pk)

    return value


def serialize_instance(obj, fields=None):
    """
    Build a flat dict of a model instance's concrete field values.

    Args:
        obj: Model instance
        fields: Optional list of field names (defaults to every concrete field)

    Example:
        >>> serialize_instance(person, ["id", "name"])
        {"id": 1, "name": "Ada"}
    """
    entity = get_entity_fields(type(obj))
    descriptors = [entity.require(name) for name in fields] if fields else list(entity)
    return {d.name: serialize_value(d.get_value(obj)) for d in descriptors}


@dataclass(frozen=True)
class PagedResult:
    """
    One page of matches plus the total match count.

    ``total_count`` covers every row matching the predicate, independent
    of the page window.
    """

    items: Tuple[Any, ...]
    total_count: int
    page_number: int
    page_size: int
    sort: SortSpec

    @property
    def page_count(self):
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0

    @property
    def has_next(self):
        return self.page_number < self.page_count

    @property
    def has_previous(self):
        return self.page_number > 1

    def to_dict(self, fields=None):
        """
        Convert to a dictionary for JSON serialization.

        Args:
            fields: Optional list of field names to include per item
        """
        return {
            "items": [serialize_instance(item, fields) for item in self.items],
            "total_count": self.total_count,
            "page_number": self.page_number,
            "page_size": self.page_size,
            "sort_by": self.sort.field,
            "sort_direction": self.sort.direction.value,
        }


def build_error_payload(exc):
    """
    Describe a django-sift error for a client-facing rejection.

    Returns:
        Tuple of (http_status, payload dict)

    Example:
        >>> build_error_payload(MalformedParameter("pageSize", "0"))
        (400, {"error": "Invalid value for query parameter 'pageSize': '0'",
               "code": "MALFORMED_PARAMETER", "parameter": "pageSize", "value": "0"})
    """
    payload = {"error": str(exc), "code": exc.code}
    if isinstance(exc, FieldNotFound):
        payload["parameter"] = exc.parameter
        payload["field"] = exc.field_name
    elif isinstance(exc, MalformedParameter):
        payload["parameter"] = exc.parameter
        payload["value"] = exc.value
    elif isinstance(exc, InvalidFilterArgument):
        payload["field"] = exc.field_name
        payload["value"] = exc.value
    return exc.http_status, payload
