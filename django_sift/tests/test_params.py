"""
Tests for django_sift.params module.
"""

import pytest
from django.http import QueryDict
from django.test import override_settings

from django_sift.conf import sift_settings
from django_sift.exceptions import FieldNotFound, MalformedParameter
from django_sift.fields import get_entity_fields
from django_sift.params import (
    PageRequest,
    SortDirection,
    SortSpec,
    parse_page_request,
    parse_query_string,
    resolve_sort,
)
from django_sift.tests.testapp.models import Person


class TestParseQueryString:
    """Tests for parse_query_string function."""

    def test_empty_inputs(self):
        assert parse_query_string(None) == {}
        assert parse_query_string("") == {}
        assert parse_query_string("?") == {}

    def test_leading_question_mark(self):
        params = parse_query_string("?pageSize=10&Status=Active||equal")
        assert params == {"pageSize": "10", "Status": "Active||equal"}

    def test_url_encoded_values_are_decoded(self):
        params = parse_query_string("name=Ada%20Lovelace%7C%7Ccontains")
        assert params == {"name": "Ada Lovelace||contains"}

    def test_first_value_wins(self):
        assert parse_query_string("a=1&a=2") == {"a": "1"}

    def test_keys_with_non_word_characters_are_dropped(self):
        params = parse_query_string("customer.name=x&age=3")
        assert params == {"age": "3"}

    def test_blank_values_are_kept(self):
        assert parse_query_string("pageSize=") == {"pageSize": ""}

    def test_query_dict(self):
        params = parse_query_string(QueryDict("pageNumber=2&pageNumber=3"))
        assert params == {"pageNumber": "2"}

    def test_plain_mapping(self):
        params = parse_query_string({"pageNumber": 2, "sortBy": ["name", "age"]})
        assert params == {"pageNumber": "2", "sortBy": "name"}


class TestPageRequest:
    """Tests for PageRequest offsets."""

    @pytest.mark.parametrize(
        "page_number,page_size,offset",
        [(1, 25, 0), (2, 2, 2), (3, 10, 20), (7, 1, 6)],
    )
    def test_offset(self, page_number, page_size, offset):
        page = PageRequest(page_number=page_number, page_size=page_size)
        assert page.offset == offset
        assert page.limit == page_size


class TestParsePageRequest:
    """Tests for parse_page_request function."""

    def test_defaults_when_absent(self):
        page = parse_page_request("")
        assert page == PageRequest(page_number=1, page_size=25)

    def test_explicit_values(self):
        page = parse_page_request("pageNumber=3&pageSize=10")
        assert page.page_number == 3
        assert page.page_size == 10

    @pytest.mark.parametrize("value", ["abc", "", "1.5", "0", "-1"])
    def test_invalid_page_number(self, value):
        with pytest.raises(MalformedParameter) as exc_info:
            parse_page_request(f"pageNumber={value}")
        assert exc_info.value.parameter == "pageNumber"

    @pytest.mark.parametrize("value", ["abc", "", "0", "-5"])
    def test_invalid_page_size(self, value):
        with pytest.raises(MalformedParameter) as exc_info:
            parse_page_request(f"pageSize={value}")
        assert exc_info.value.parameter == "pageSize"

    @pytest.mark.parametrize("query", ["pageNumber=99999999999999999999", "pageSize=99999999999999999999"])
    def test_values_beyond_64_bit_range(self, query):
        with pytest.raises(MalformedParameter):
            parse_page_request(query)

    def test_offset_beyond_64_bit_range(self):
        with pytest.raises(MalformedParameter) as exc_info:
            parse_page_request(f"pageNumber={2**62}&pageSize=4")
        assert exc_info.value.parameter == "pageNumber"

    def test_largest_valid_page(self):
        page = parse_page_request(f"pageNumber={2**62}&pageSize=1")
        assert page.offset == 2**62 - 1

    def test_plain_dict_values_are_normalised(self):
        assert parse_page_request({"pageNumber": 3, "pageSize": 10}) == PageRequest(page_number=3, page_size=10)

    def test_invalid_input_is_not_defaulted(self):
        with pytest.raises(MalformedParameter):
            parse_page_request("pageNumber=2&pageSize=ten")

    def test_default_page_size_from_settings(self):
        with override_settings(DJANGO_SIFT={"DEFAULT_PAGE_SIZE": 50}):
            sift_settings.reload()
            try:
                assert parse_page_request("").page_size == 50
            finally:
                sift_settings.reload()

    def test_max_page_size_clamps(self, caplog):
        with override_settings(DJANGO_SIFT={"MAX_PAGE_SIZE": 100}):
            sift_settings.reload()
            try:
                with caplog.at_level("WARNING", logger="django_sift"):
                    page = parse_page_request("pageSize=500")
            finally:
                sift_settings.reload()
        assert page.page_size == 100
        assert "clamped" in caplog.text


class TestResolveSort:
    """Tests for resolve_sort function."""

    def test_defaults(self):
        sort = resolve_sort("", get_entity_fields(Person), "name")
        assert sort == SortSpec(field="name", direction=SortDirection.ASCENDING)

    def test_lowercase_sort_by_resolves_canonical_name(self):
        sort = resolve_sort("sortBy=NAME&sortDirection=desc", get_entity_fields(Person), "id")
        assert sort.field == "name"
        assert sort.direction is SortDirection.DESCENDING

    def test_camel_case_sort_by(self):
        sort = resolve_sort("sortBy=joinedOn", get_entity_fields(Person), "id")
        assert sort.field == "joined_on"

    @pytest.mark.parametrize("value", ["salary", "Salary", "SALARY"])
    def test_unknown_sort_by_raises_field_not_found(self, value):
        with pytest.raises(FieldNotFound) as exc_info:
            resolve_sort(f"sortBy={value}", get_entity_fields(Person), "id")
        assert exc_info.value.parameter == "sortBy"

    def test_field_not_found_is_a_malformed_parameter(self):
        with pytest.raises(MalformedParameter):
            resolve_sort("sortBy=salary", get_entity_fields(Person), "id")

    @pytest.mark.parametrize("value", ["descending", "DESC", "up", ""])
    def test_invalid_direction(self, value):
        with pytest.raises(MalformedParameter) as exc_info:
            resolve_sort(f"sortDirection={value}", get_entity_fields(Person), "id")
        assert exc_info.value.parameter == "sortDirection"

    def test_unknown_default_field(self):
        with pytest.raises(FieldNotFound):
            resolve_sort("", get_entity_fields(Person), "created")


class TestSortSpecOrderBy:
    """Tests for SortSpec.order_by."""

    def test_ascending(self):
        assert SortSpec("name").order_by() == ["name"]

    def test_descending_with_tie_breaker(self):
        sort = SortSpec("name", SortDirection.DESCENDING)
        assert sort.order_by("id") == ["-name", "-id"]

    def test_tie_breaker_skipped_for_same_field(self):
        assert SortSpec("id").order_by("id") == ["id"]
