"""
Django-Sift: Query-String Filtering for Django

Translates an arbitrary HTTP query string into a typed filter predicate,
a validated sort and a page window, then fetches one page of a model
together with the total match count. No per-model filtering code is
needed.

Example:
    from django_sift import SiftQuery

    result = SiftQuery(Person).execute(
        "?pageNumber=2&pageSize=10&age=18|65||between&query=smith",
        default_sort="name",
    )
    result.items, result.total_count
"""

__version__ = "26.10.0"

# Core query execution
from django_sift.query import SiftQuery, PreparedQuery, get_many_and_count, aget_many_and_count

# Field registry
from django_sift.fields import FieldDescriptor, FieldKind, EntityFields, get_entity_fields

# Reserved parameters
from django_sift.params import (
    PageRequest,
    SortDirection,
    SortSpec,
    parse_query_string,
    parse_page_request,
    resolve_sort,
)

# Filter parsing
from django_sift.filters import (
    FilterClause,
    FilterOperator,
    QuickSearchSpec,
    parse_filter_clauses,
    parse_quick_search,
    scope_query_string,
)

# Predicate compiling
from django_sift.predicates import coerce_literal, compile_clause, compile_predicate

# Exceptions
from django_sift.exceptions import SiftError, MalformedParameter, FieldNotFound, InvalidFilterArgument

# Response utilities
from django_sift.response import PagedResult, serialize_value, build_error_payload

# Configuration
from django_sift.conf import sift_settings

__all__ = [
    # Version
    "__version__",
    # Query
    "SiftQuery",
    "PreparedQuery",
    "get_many_and_count",
    "aget_many_and_count",
    # Fields
    "FieldDescriptor",
    "FieldKind",
    "EntityFields",
    "get_entity_fields",
    # Parameters
    "PageRequest",
    "SortDirection",
    "SortSpec",
    "parse_query_string",
    "parse_page_request",
    "resolve_sort",
    # Filters
    "FilterClause",
    "FilterOperator",
    "QuickSearchSpec",
    "parse_filter_clauses",
    "parse_quick_search",
    "scope_query_string",
    # Predicates
    "coerce_literal",
    "compile_clause",
    "compile_predicate",
    # Exceptions
    "SiftError",
    "MalformedParameter",
    "FieldNotFound",
    "InvalidFilterArgument",
    # Response
    "PagedResult",
    "serialize_value",
    "build_error_payload",
    # Settings
    "sift_settings",
]
