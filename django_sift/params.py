"""
Django-Sift Reserved Parameters

Decodes the query string and reads the reserved keys that drive
pagination and ordering.

Reserved keys:
- pageNumber: 1-based page index (default 1)
- pageSize: rows per page (default 25)
- sortBy: field to order by (default supplied by the caller)
- sortDirection: "asc" or "desc" (default "asc")
- query: quick search, handled in django_sift.filters
"""

import enum
import logging
import re
from dataclasses import dataclass

from django.http import QueryDict

from django_sift.conf import sift_settings
from django_sift.exceptions import MalformedParameter

logger = logging.getLogger("django_sift")

PAGE_NUMBER = "pageNumber"
PAGE_SIZE = "pageSize"
SORT_BY = "sortBy"
SORT_DIRECTION = "sortDirection"
QUERY = "query"

RESERVED_KEYS = frozenset({PAGE_NUMBER, PAGE_SIZE, SORT_BY, SORT_DIRECTION, QUERY})

DEFAULT_PAGE_NUMBER = 1

# Largest row offset a database will accept (signed 64-bit)
MAX_ROW_INDEX = 2**63 - 1

ASCENDING = "asc"
DESCENDING = "desc"

_KEY_PATTERN = re.compile(r"^\w+$")


def parse_query_string(raw):
    """
    Decode a query string into a dict of key -> first value.

    Args:
        raw: None, a query string (with or without leading "?"), a
            QueryDict such as ``request.GET``, or any mapping

    Returns:
        Dict of parameter name to its first value. Keys that are not plain
        word characters are dropped.

    Examples:
        >>> parse_query_string("?pageSize=10&Status=Active||equal")
        {'pageSize': '10', 'Status': 'Active||equal'}
        >>> parse_query_string("a=1&a=2")
        {'a': '1'}
        >>> parse_query_string(None)
        {}
    """
    if not raw:
        return {}

    if isinstance(raw, str):
        raw = QueryDict(raw.lstrip("?"))

    params = {}
    for key in raw:
        if isinstance(raw, QueryDict):
            values = raw.getlist(key)
        else:
            values = raw[key]
            if not isinstance(values, (list, tuple)):
                values = [values]
        if not values:
            continue
        if not _KEY_PATTERN.match(key):
            logger.debug(f"Ignoring query parameter with invalid name: {key!r}")
            continue
        params.setdefault(key, str(values[0]))
    return params


def as_params(params):
    # Decoding is idempotent, so already-decoded dicts pass through unchanged.
    return parse_query_string(params)


@dataclass(frozen=True)
class PageRequest:
    """A 1-based page number and a page size."""

    page_number: int = DEFAULT_PAGE_NUMBER
    page_size: int = 25

    @property
    def offset(self):
        return (self.page_number - 1) * self.page_size

    @property
    def limit(self):
        return self.page_size


def _parse_int(params, key, minimum):
    raw = params[key]
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise MalformedParameter(key, raw)
    if value < minimum or value > MAX_ROW_INDEX:
        raise MalformedParameter(key, raw)
    return value


def parse_page_request(params):
    """
    Read pageNumber and pageSize.

    Absent keys fall back to their defaults. A key that is present must
    hold a valid integer: pageNumber >= 1, pageSize >= 1. Invalid input is
    never replaced by a default.

    Raises:
        MalformedParameter: naming the offending key
    """
    params = as_params(params)

    page_number = DEFAULT_PAGE_NUMBER
    if PAGE_NUMBER in params:
        page_number = _parse_int(params, PAGE_NUMBER, minimum=1)

    page_size = sift_settings.DEFAULT_PAGE_SIZE
    if PAGE_SIZE in params:
        page_size = _parse_int(params, PAGE_SIZE, minimum=1)

    max_page_size = sift_settings.MAX_PAGE_SIZE
    if max_page_size and page_size > max_page_size:
        logger.warning(f"Page size {page_size} clamped to {max_page_size}")
        page_size = max_page_size

    page = PageRequest(page_number=page_number, page_size=page_size)
    if page.offset + page.limit > MAX_ROW_INDEX:
        raise MalformedParameter(
            PAGE_NUMBER,
            params.get(PAGE_NUMBER),
            "Requested page lies beyond the largest row offset",
        )
    return page


class SortDirection(enum.Enum):
    ASCENDING = ASCENDING
    DESCENDING = DESCENDING


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: SortDirection = SortDirection.ASCENDING

    @property
    def descending(self):
        return self.direction is SortDirection.DESCENDING

    def order_by(self, tie_breaker=None):
        """
        Build ``QuerySet.order_by`` arguments.

        Args:
            tie_breaker: Optional second field (usually "pk") ordered in the
                same direction, so rows sharing a sort key keep a stable order

        Examples:
            >>> SortSpec("name", SortDirection.DESCENDING).order_by("pk")
            ['-name', '-pk']
        """
        prefix = "-" if self.descending else ""
        ordering = [f"{prefix}{self.field}"]
        if tie_breaker and tie_breaker != self.field:
            ordering.append(f"{prefix}{tie_breaker}")
        return ordering


def resolve_sort(params, entity_fields, default_field):
    """
    Read sortBy and sortDirection against a model's fields.

    Args:
        params: Decoded query parameters (or a raw query string)
        entity_fields: EntityFields registry of the target model
        default_field: Field used when sortBy is absent

    Returns:
        SortSpec with the canonical field spelling

    Raises:
        FieldNotFound: sortBy (or the default) names no field on the model
        MalformedParameter: sortDirection is neither "asc" nor "desc"

    Examples:
        >>> resolve_sort({"sortBy": "NAME", "sortDirection": "desc"}, person_fields, "id")
        SortSpec(field='name', direction=<SortDirection.DESCENDING: 'desc'>)
    """
    params = as_params(params)

    if SORT_BY in params:
        field = entity_fields.require(params[SORT_BY], parameter=SORT_BY).name
    else:
        field = entity_fields.require(default_field, parameter=SORT_BY).name

    direction = SortDirection.ASCENDING
    if SORT_DIRECTION in params:
        raw = params[SORT_DIRECTION]
        try:
            direction = SortDirection(raw)
        except ValueError:
            raise MalformedParameter(SORT_DIRECTION, raw)

    return SortSpec(field=field, direction=direction)
