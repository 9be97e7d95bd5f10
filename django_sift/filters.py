"""
Django-Sift Filter Parsing

Turns the non-reserved query-string keys into filter clauses and the
``query`` key into a quick search.

Filter shape:
    ?Field=value1|value2||operator

Quick search shape:
    ?query=term
    ?query=term||field1|field2

Supports:
- equal (default), not_equal
- contains, starts_with, ends_with
- between, greater_than, greater_or_equal_than, less_than, less_or_equal_than
"""

import enum
from dataclasses import dataclass
from typing import Optional, Tuple

from django.http import QueryDict

from django_sift.exceptions import InvalidFilterArgument, MalformedParameter
from django_sift.params import QUERY, RESERVED_KEYS, as_params

OPERATOR_SEPARATOR = "||"
VALUE_SEPARATOR = "|"


class FilterOperator(enum.Enum):
    EQUAL = "equal"
    NOT_EQUAL = "not_equal"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    BETWEEN = "between"
    GREATER_THAN = "greater_than"
    GREATER_OR_EQUAL = "greater_or_equal_than"
    LESS_THAN = "less_than"
    LESS_OR_EQUAL = "less_or_equal_than"

    @classmethod
    def from_token(cls, token, field_name=None):
        """
        Decode an operator token from the wire.

        Matching is case-insensitive and accepts the short aliases in
        ``OPERATOR_ALIASES``. A blank token means EQUAL.

        Raises:
            InvalidFilterArgument: the token names no operator
        """
        if isinstance(token, cls):
            return token
        normalized = (token or "").strip().lower()
        if not normalized:
            return cls.EQUAL
        if normalized in OPERATOR_ALIASES:
            return OPERATOR_ALIASES[normalized]
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidFilterArgument(field_name, token, "unknown operator")


OPERATOR_ALIASES = {
    "eq": FilterOperator.EQUAL,
    "neq": FilterOperator.NOT_EQUAL,
    "gt": FilterOperator.GREATER_THAN,
    "gte": FilterOperator.GREATER_OR_EQUAL,
    "lt": FilterOperator.LESS_THAN,
    "lte": FilterOperator.LESS_OR_EQUAL,
}


@dataclass(frozen=True)
class FilterClause:
    field_name: str
    operator: FilterOperator
    values: Tuple[str, ...]

    @property
    def non_blank_values(self):
        return tuple(value for value in self.values if value)


@dataclass(frozen=True)
class QuickSearchSpec:
    term: str
    field_names: Tuple[str, ...]


def parse_filter_value(field_name, raw):
    """
    Split one filter value into (values, operator).

    Examples:
        >>> parse_filter_value("Age", "18|65||between")
        (('18', '65'), <FilterOperator.BETWEEN: 'between'>)
        >>> parse_filter_value("Status", "Active")
        (('Active',), <FilterOperator.EQUAL: 'equal'>)
    """
    left, _, right = raw.partition(OPERATOR_SEPARATOR)
    token = right.split(OPERATOR_SEPARATOR)[0]
    values = tuple(value.strip() for value in left.split(VALUE_SEPARATOR))
    return values, FilterOperator.from_token(token, field_name)


def parse_filter_clauses(params, entity_fields=None):
    """
    Parse every non-reserved key into a FilterClause.

    Field names are normalised to the model's spelling when they resolve
    and kept as given otherwise; whether the field exists is checked by
    the predicate compiler.

    Args:
        params: Decoded query parameters (or a raw query string)
        entity_fields: Optional EntityFields used for name normalisation

    Returns:
        List of FilterClause in query-string order

    Example:
        >>> parse_filter_clauses("?pageSize=5&Status=Active|Held||equal", person_fields)
        [FilterClause(field_name='status', operator=<FilterOperator.EQUAL: 'equal'>, values=('Active', 'Held'))]
    """
    params = as_params(params)

    clauses = []
    for key, raw in params.items():
        if key in RESERVED_KEYS:
            continue
        field_name = key
        if entity_fields is not None:
            field_name = entity_fields.resolve(key) or key
        values, operator = parse_filter_value(field_name, raw)
        clauses.append(FilterClause(field_name=field_name, operator=operator, values=values))
    return clauses


def parse_quick_search(params, entity_fields) -> Optional[QuickSearchSpec]:
    """
    Parse the ``query`` key into a QuickSearchSpec.

    Without an explicit field list the search covers every textual or
    integral field except the identifier.

    Returns:
        QuickSearchSpec, or None when ``query`` is absent

    Raises:
        MalformedParameter: empty term, or "||" followed by no fields
        FieldNotFound: a listed field does not exist on the model
    """
    params = as_params(params)
    if QUERY not in params:
        return None

    parts = params[QUERY].split(OPERATOR_SEPARATOR)
    term = parts[0].strip()
    if not term:
        raise MalformedParameter(QUERY, params[QUERY])

    if len(parts) == 1:
        names = tuple(d.name for d in entity_fields.default_search_fields())
        return QuickSearchSpec(term=term, field_names=names)

    requested = [name.strip() for name in parts[1].split(VALUE_SEPARATOR) if name.strip()]
    if not requested:
        raise MalformedParameter(QUERY, params[QUERY], message="Quick search field list is empty")

    names = []
    for name in requested:
        canonical = entity_fields.require(name, parameter=QUERY).name
        if canonical not in names:
            names.append(canonical)
    return QuickSearchSpec(term=term, field_names=tuple(names))


def _same_field(left, right):
    return left.replace("_", "").casefold() == right.replace("_", "").casefold()


def scope_query_string(query, field, value, operator=FilterOperator.EQUAL):
    """
    Force a filter into a query string, replacing any client value.

    Used to pin rows to a tenant or owner before the query string is
    handed to SiftQuery, so the client cannot widen the scope by sending
    its own filter for the same field.

    Args:
        query: Raw query string (may be None or empty)
        field: Filter key to force
        value: Filter value, or a list of values
        operator: FilterOperator or wire token

    Returns:
        URL-encoded query string

    Example:
        >>> scope_query_string("pageSize=5&organizationId=9||equal", "organization_id", 3)
        'pageSize=5&organization_id=3||equal'
    """
    operator = FilterOperator.from_token(operator, field)
    if isinstance(value, (list, tuple)):
        value = VALUE_SEPARATOR.join(str(v) for v in value)

    scoped = QueryDict((query or "").lstrip("?"), mutable=True)
    for key in list(scoped.keys()):
        if key not in RESERVED_KEYS and _same_field(key, field):
            del scoped[key]
    scoped[field] = f"{value}{OPERATOR_SEPARATOR}{operator.value}"
    return scoped.urlencode(safe=VALUE_SEPARATOR)
