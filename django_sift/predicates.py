"""
Django-Sift Predicate Compiler

Compiles parsed filter clauses and an optional quick search into one
Django Q object, coercing string literals to each field's type.

Composition:
- filter clauses are ANDed together
- quick-search fields are ORed together
- the quick-search group is ANDed with the filter clauses

Example:
    >>> entity = get_entity_fields(Person)
    >>> clauses = parse_filter_clauses("Age=18|65||between", entity)
    >>> compile_predicate(entity, clauses)
    <Q: (AND: ('age__gte', 18), ('age__lte', 65))>
"""

import logging
import re
from datetime import datetime, timezone as dt_timezone

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db.models import CharField, Q
from django.db.models.functions import Cast
from django.utils import timezone

from django_sift.conf import sift_settings
from django_sift.exceptions import InvalidFilterArgument
from django_sift.fields import FieldKind
from django_sift.filters import FilterOperator
from django_sift.params import QUERY

logger = logging.getLogger("django_sift")

DATE_FORMAT = "%Y-%m-%d"
DATE_LITERAL = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")

TRUE_LITERALS = frozenset({"true", "1"})
FALSE_LITERALS = frozenset({"false", "0"})

# Kinds whose equality compares coerced values instead of the column cast to text
COERCED_EQUALITY_KINDS = frozenset(
    {
        FieldKind.BOOLEAN,
        FieldKind.DECIMAL,
        FieldKind.FLOAT,
        FieldKind.UUID,
        FieldKind.DATE,
        FieldKind.DATETIME,
    }
)

COMPARISON_LOOKUPS = {
    FilterOperator.GREATER_THAN: "gt",
    FilterOperator.GREATER_OR_EQUAL: "gte",
    FilterOperator.LESS_THAN: "lt",
    FilterOperator.LESS_OR_EQUAL: "lte",
}

# (case-sensitive, case-insensitive)
TEXT_LOOKUPS = {
    FilterOperator.CONTAINS: ("contains", "icontains"),
    FilterOperator.STARTS_WITH: ("startswith", "istartswith"),
    FilterOperator.ENDS_WITH: ("endswith", "iendswith"),
}


def _coerce_date(descriptor, literal):
    if not DATE_LITERAL.match(literal):
        raise InvalidFilterArgument(descriptor.name, literal, "expected yyyy-MM-dd")
    try:
        parsed = datetime.strptime(literal, DATE_FORMAT)
    except ValueError:
        raise InvalidFilterArgument(descriptor.name, literal, "expected yyyy-MM-dd")

    if descriptor.kind is FieldKind.DATE:
        return parsed.date()
    parsed = parsed.replace(tzinfo=dt_timezone.utc)
    if not settings.USE_TZ:
        return timezone.make_naive(parsed, dt_timezone.utc)
    return parsed


def _to_python(descriptor, literal):
    try:
        return descriptor.field.to_python(literal)
    except ValidationError:
        raise InvalidFilterArgument(descriptor.name, literal, f"not a valid {descriptor.kind.value} value")


def _coerce_boolean(descriptor, literal):
    folded = literal.casefold()
    if folded in TRUE_LITERALS:
        return True
    if folded in FALSE_LITERALS:
        return False
    return _to_python(descriptor, literal)


def _coerce_enum(descriptor, literal):
    folded = literal.casefold()
    if descriptor.enum is not None:
        for member in descriptor.enum:
            if member.name.casefold() == folded:
                return member.value
    for value, _ in descriptor.field.flatchoices:
        if str(value).casefold() == folded:
            return value
    raise InvalidFilterArgument(descriptor.name, literal, "not a valid choice")


def coerce_literal(descriptor, literal):
    """
    Convert a filter literal to the Python value of a field.

    Rules:
    - text fields keep the literal
    - date and datetime fields accept only yyyy-MM-dd, read as UTC midnight
    - booleans accept true/false/1/0 in any case
    - enumerations match member names, then stored values (case-insensitive)
    - everything else goes through the field's own ``to_python``

    Raises:
        InvalidFilterArgument: naming the field and the literal
    """
    kind = descriptor.kind
    if kind is FieldKind.TEXT:
        return literal
    if kind in (FieldKind.DATE, FieldKind.DATETIME):
        return _coerce_date(descriptor, literal)
    if kind is FieldKind.ENUM:
        return _coerce_enum(descriptor, literal)
    if kind is FieldKind.BOOLEAN:
        return _coerce_boolean(descriptor, literal)
    return _to_python(descriptor, literal)


def text_lookup(descriptor, lookup_name, value):
    """
    Build a lookup against the field's value cast to text.

    Text fields are queried directly; every other kind is wrapped in
    ``Cast(..., CharField())`` first.
    """
    if descriptor.kind is FieldKind.TEXT:
        return Q(**{f"{descriptor.name}__{lookup_name}": value})
    lhs = Cast(descriptor.name, output_field=CharField())
    lookup_class = lhs.output_field.get_lookup(lookup_name)
    return Q(lookup_class(lhs, value))


def _text_lookup_name(operator):
    sensitive, insensitive = TEXT_LOOKUPS[operator]
    return sensitive if sift_settings.CASE_SENSITIVE_TEXT else insensitive


def _enum_text(descriptor, literal):
    # Member names compare as their stored value; unknown literals match nothing.
    try:
        return str(_coerce_enum(descriptor, literal))
    except InvalidFilterArgument:
        return literal


def _equality_casts_column(descriptor):
    return descriptor.kind is not FieldKind.TEXT and descriptor.kind not in COERCED_EQUALITY_KINDS


def _build_equal(descriptor, clause, values):
    if descriptor.kind in COERCED_EQUALITY_KINDS:
        return Q(**{f"{descriptor.name}__in": [coerce_literal(descriptor, value) for value in values]})
    if descriptor.kind is FieldKind.ENUM:
        values = [_enum_text(descriptor, value) for value in values]
    return text_lookup(descriptor, "in", list(values))


def _build_not_equal(descriptor, clause, values):
    predicate = ~_build_equal(descriptor, clause, values)
    if descriptor.nullable and _equality_casts_column(descriptor):
        # NOT over a cast column drops NULL rows; plain lookups keep them
        predicate |= Q(**{f"{descriptor.name}__isnull": True})
    return predicate


def _build_text(descriptor, clause, values):
    return text_lookup(descriptor, _text_lookup_name(clause.operator), values[0])


def _build_comparison(descriptor, clause, values):
    lookup = COMPARISON_LOOKUPS[clause.operator]
    return Q(**{f"{descriptor.name}__{lookup}": coerce_literal(descriptor, values[0])})


def _build_between(descriptor, clause, values):
    if len(values) != 2:
        raise InvalidFilterArgument(
            descriptor.name,
            "|".join(clause.values),
            "between requires exactly two values",
        )
    lower = coerce_literal(descriptor, values[0])
    upper = coerce_literal(descriptor, values[1])
    return Q(**{f"{descriptor.name}__gte": lower}) & Q(**{f"{descriptor.name}__lte": upper})


_BUILDERS = {
    FilterOperator.EQUAL: _build_equal,
    FilterOperator.NOT_EQUAL: _build_not_equal,
    FilterOperator.CONTAINS: _build_text,
    FilterOperator.STARTS_WITH: _build_text,
    FilterOperator.ENDS_WITH: _build_text,
    FilterOperator.BETWEEN: _build_between,
    FilterOperator.GREATER_THAN: _build_comparison,
    FilterOperator.GREATER_OR_EQUAL: _build_comparison,
    FilterOperator.LESS_THAN: _build_comparison,
    FilterOperator.LESS_OR_EQUAL: _build_comparison,
}


def compile_clause(entity_fields, clause):
    """
    Compile a single FilterClause into a Q object.

    Raises:
        FieldNotFound: the clause names no field on the model
        InvalidFilterArgument: missing values, wrong arity, bad literal
    """
    descriptor = entity_fields.require(clause.field_name, parameter=clause.field_name)
    values = clause.non_blank_values
    if not values:
        raise InvalidFilterArgument(descriptor.name, None, "no filter value given")

    predicate = _BUILDERS[clause.operator](descriptor, clause, values)
    logger.debug(f"Compiled filter {descriptor.name} {clause.operator.value} {list(values)}")
    return predicate


def compile_quick_search(entity_fields, quick_search):
    """
    OR together a text ``contains`` test of the term on every search field.

    A quick search over no fields matches nothing.
    """
    lookup = "contains" if sift_settings.CASE_SENSITIVE_TEXT else "icontains"
    if not quick_search.field_names:
        return Q(pk__in=[])

    predicate = Q()
    for name in quick_search.field_names:
        descriptor = entity_fields.require(name, parameter=QUERY)
        predicate |= text_lookup(descriptor, lookup, quick_search.term)
    return predicate


def compile_predicate(entity_fields, clauses, quick_search=None):
    """
    Compile filter clauses and a quick search into one Q object.

    Args:
        entity_fields: EntityFields registry of the target model
        clauses: Iterable of FilterClause
        quick_search: Optional QuickSearchSpec

    Returns:
        Q object; an empty Q() (match everything) when there is nothing
        to filter on
    """
    predicate = Q()
    for clause in clauses:
        predicate &= compile_clause(entity_fields, clause)

    if quick_search is not None:
        predicate &= compile_quick_search(entity_fields, quick_search)

    return predicate
