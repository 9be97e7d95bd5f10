"""
Django-Sift Core Query Engine

Ties together parameter parsing, filter parsing and predicate compiling,
then runs the two evaluations behind every paged list: a count of all
matches and a fetch of one ordered page.

Provides:
- SiftQuery class for OOP-style queries
- get_many_and_count / aget_many_and_count for procedural usage
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from django.apps import apps
from django.db.models import Q, QuerySet

from django_sift.conf import sift_settings
from django_sift.fields import get_entity_fields
from django_sift.filters import FilterClause, QuickSearchSpec, parse_filter_clauses, parse_quick_search
from django_sift.params import PageRequest, SortSpec, parse_page_request, parse_query_string, resolve_sort
from django_sift.predicates import compile_predicate
from django_sift.response import PagedResult

logger = logging.getLogger("django_sift")


def get_model_by_name(model_name):
    """
    Get Django model class by name (case-insensitive).

    Searches all installed apps for a matching model.

    Args:
        model_name: Model name to find (case-insensitive, singular)

    Returns:
        Model class or None if not found
    """
    for app_config in apps.get_app_configs():
        for model in app_config.get_models():
            if model.__name__.lower() == model_name.lower():
                return model
    return None


@dataclass(frozen=True)
class PreparedQuery:
    """Everything read from a query string, before any database access."""

    predicate: Q
    sort: SortSpec
    page: PageRequest
    clauses: List[FilterClause]
    quick_search: Optional[QuickSearchSpec] = None


class SiftQuery:
    """
    Paged, filtered and sorted listing for a Django model.

    Example:
        # Direct usage
        result = SiftQuery(Person).execute(request.GET, default_sort="name")

        # Pre-scoped rows
        result = SiftQuery(Person.objects.filter(owner=request.user)).execute(
            "?pageNumber=2&pageSize=10&status=active||equal"
        )

        # With model name
        result = SiftQuery("person").execute("query=smith")

        result.items, result.total_count
    """

    def __init__(self, model):
        """
        Initialize a SiftQuery.

        Args:
            model: Django model class, model name string, or a QuerySet
                whose rows bound every evaluation

        Raises:
            LookupError: no installed model has the given name
        """
        self.queryset = None
        if isinstance(model, QuerySet):
            self.queryset = model
            model = model.model
        elif isinstance(model, str):
            found = get_model_by_name(model)
            if found is None:
                raise LookupError(f"Model '{model}' not found")
            model = found

        self.model = model
        self.model_name = model.__name__.lower()
        self.entity_fields = get_entity_fields(model)

    def get_queryset(self):
        if self.queryset is not None:
            return self.queryset.all()
        return self.model._default_manager.all()

    def prepare(self, query, default_sort=None) -> PreparedQuery:
        """
        Parse and compile a query string without touching the database.

        Args:
            query: Raw query string, QueryDict or mapping
            default_sort: Field to sort by when sortBy is absent
                (defaults to the primary key)

        Raises:
            MalformedParameter, FieldNotFound, InvalidFilterArgument
        """
        params = parse_query_string(query)
        if default_sort is None:
            default_sort = self.entity_fields.identifier.name

        page = parse_page_request(params)
        sort = resolve_sort(params, self.entity_fields, default_sort)
        clauses = parse_filter_clauses(params, self.entity_fields)
        quick_search = parse_quick_search(params, self.entity_fields)
        predicate = compile_predicate(self.entity_fields, clauses, quick_search)

        return PreparedQuery(
            predicate=predicate,
            sort=sort,
            page=page,
            clauses=clauses,
            quick_search=quick_search,
        )

    def _ordering(self, sort):
        tie_breaker = None
        if sift_settings.TIE_BREAK_ON_PK:
            tie_breaker = self.entity_fields.identifier.name
        return sort.order_by(tie_breaker)

    def _windows(self, prepared):
        """Return (matching, page) querysets sharing one predicate."""
        matching = self.get_queryset().filter(prepared.predicate)
        page = prepared.page
        window = matching.order_by(*self._ordering(prepared.sort))[page.offset : page.offset + page.limit]
        return matching, window

    def _audit(self, prepared, total):
        if sift_settings.AUDIT_QUERIES:
            logger.info(
                "sift_query",
                extra={
                    "model": self.model_name,
                    "filters": [(c.field_name, c.operator.value, c.values) for c in prepared.clauses],
                    "quick_search": prepared.quick_search.term if prepared.quick_search else None,
                    "sort": prepared.sort.order_by(),
                    "page": (prepared.page.page_number, prepared.page.page_size),
                    "total": total,
                },
            )

    def _result(self, prepared, items, total):
        self._audit(prepared, total)
        return PagedResult(
            items=tuple(items),
            total_count=total,
            page_number=prepared.page.page_number,
            page_size=prepared.page.page_size,
            sort=prepared.sort,
        )

    def execute(self, query=None, default_sort=None) -> PagedResult:
        """
        Run a paged query.

        Args:
            query: Raw query string, QueryDict or mapping
            default_sort: Field to sort by when sortBy is absent

        Returns:
            PagedResult with one page of model instances and the total count
        """
        prepared = self.prepare(query, default_sort)
        matching, window = self._windows(prepared)
        total = matching.count()
        items = list(window)
        return self._result(prepared, items, total)

    async def aexecute(self, query=None, default_sort=None) -> PagedResult:
        """Async variant of execute(). The count runs before the fetch."""
        prepared = self.prepare(query, default_sort)
        matching, window = self._windows(prepared)
        total = await matching.acount()
        items = [obj async for obj in window]
        return self._result(prepared, items, total)

    def count(self, query=None):
        """Count matching rows, ignoring sort and page parameters."""
        prepared = self.prepare(query)
        return self.get_queryset().filter(prepared.predicate).count()


def get_many_and_count(model, query=None, default_sort=None):
    """
    Fetch one page of matches and the total match count.

    Convenience function that wraps SiftQuery.

    Args:
        model: Django model class, model name string, or QuerySet
        query: Raw query string, QueryDict or mapping
        default_sort: Field to sort by when sortBy is absent

    Returns:
        PagedResult

    Example:
        result = get_many_and_count(Person, "?pageNumber=2&pageSize=2&status=active||equal")
    """
    return SiftQuery(model).execute(query, default_sort)


async def aget_many_and_count(model, query=None, default_sort=None):
    """Async variant of get_many_and_count()."""
    return await SiftQuery(model).aexecute(query, default_sort)
