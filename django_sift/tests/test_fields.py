"""
Tests for django_sift.fields module.
"""

import pytest
from django.db import models

from django_sift.exceptions import FieldNotFound
from django_sift.fields import FieldKind, get_entity_fields, get_field_kind
from django_sift.tests.testapp.models import Contact, Invoice, Person


class TestGetFieldKind:
    """Tests for get_field_kind function."""

    def test_text_fields(self):
        assert get_field_kind(models.CharField(max_length=10)) is FieldKind.TEXT
        assert get_field_kind(models.TextField()) is FieldKind.TEXT
        assert get_field_kind(models.EmailField()) is FieldKind.TEXT

    def test_integer_fields(self):
        assert get_field_kind(models.IntegerField()) is FieldKind.INTEGER
        assert get_field_kind(models.BigIntegerField()) is FieldKind.INTEGER
        assert get_field_kind(models.PositiveSmallIntegerField()) is FieldKind.INTEGER
        assert get_field_kind(models.BigAutoField(primary_key=True)) is FieldKind.INTEGER

    def test_datetime_is_not_date(self):
        assert get_field_kind(models.DateTimeField()) is FieldKind.DATETIME
        assert get_field_kind(models.DateField()) is FieldKind.DATE

    def test_nullable_field_keeps_kind(self):
        assert get_field_kind(models.DateField(null=True)) is FieldKind.DATE

    def test_choices_make_an_enum(self):
        field = models.CharField(max_length=5, choices=[("a", "A"), ("b", "B")])
        assert get_field_kind(field) is FieldKind.ENUM

    def test_other_numeric_kinds(self):
        assert get_field_kind(models.DecimalField(max_digits=5, decimal_places=2)) is FieldKind.DECIMAL
        assert get_field_kind(models.FloatField()) is FieldKind.FLOAT
        assert get_field_kind(models.BooleanField()) is FieldKind.BOOLEAN
        assert get_field_kind(models.UUIDField()) is FieldKind.UUID

    def test_unknown_field_is_other(self):
        assert get_field_kind(models.BinaryField()) is FieldKind.OTHER


class TestEntityFields:
    """Tests for the per-model field registry."""

    def test_registry_is_cached(self):
        assert get_entity_fields(Person) is get_entity_fields(Person)

    def test_lists_concrete_fields_in_order(self):
        entity = get_entity_fields(Person)
        assert entity.names == [
            "id",
            "name",
            "email",
            "age",
            "status",
            "nickname",
            "joined_on",
            "balance",
            "is_verified",
        ]

    def test_excludes_reverse_relations(self):
        entity = get_entity_fields(Person)
        assert "invoices" not in entity

    def test_foreign_key_is_included(self):
        entity = get_entity_fields(Invoice)
        assert "person" in entity

    def test_identifier(self):
        entity = get_entity_fields(Person)
        assert entity.identifier.name == "id"
        assert entity.identifier.is_identifier is True
        assert entity.get("name").is_identifier is False

    def test_nullable_flag(self):
        entity = get_entity_fields(Person)
        assert entity.get("nickname").nullable is True
        assert entity.get("name").nullable is False

    def test_choices_enum_detected(self):
        entity = get_entity_fields(Person)
        descriptor = entity.get("status")
        assert descriptor.kind is FieldKind.ENUM
        assert descriptor.enum is Person.Status


class TestResolve:
    """Tests for field name resolution."""

    @pytest.mark.parametrize("name", ["name", "Name", "NAME"])
    def test_case_insensitive(self, name):
        assert get_entity_fields(Person).resolve(name) == "name"

    @pytest.mark.parametrize("name", ["IssueDate", "issueDate", "issue_date", "ISSUE_DATE"])
    def test_pascal_and_camel_case(self, name):
        assert get_entity_fields(Invoice).resolve(name) == "issue_date"

    def test_pk_alias(self):
        assert get_entity_fields(Person).resolve("pk") == "id"

    def test_unknown_returns_none(self):
        assert get_entity_fields(Person).resolve("salary") is None
        assert get_entity_fields(Person).resolve("") is None

    def test_require_raises_field_not_found(self):
        with pytest.raises(FieldNotFound) as exc_info:
            get_entity_fields(Person).require("salary", parameter="sortBy")
        assert exc_info.value.field_name == "salary"
        assert exc_info.value.parameter == "sortBy"


class TestDefaultSearchFields:
    """Tests for the default quick-search field set."""

    def test_textual_and_integral_fields_without_identifier(self):
        names = [d.name for d in get_entity_fields(Contact).default_search_fields()]
        assert names == ["name", "email", "age"]

    def test_enum_date_and_decimal_fields_are_excluded(self):
        names = [d.name for d in get_entity_fields(Person).default_search_fields()]
        assert names == ["name", "email", "age", "nickname"]


@pytest.mark.django_db
class TestGetValue:
    """Tests for FieldDescriptor.get_value accessor."""

    def test_reads_attribute(self):
        person = Person(name="Ada", age=36)
        assert get_entity_fields(Person).get("name").get_value(person) == "Ada"

    def test_foreign_key_returns_raw_id(self):
        from django.utils import timezone

        person = Person.objects.create(name="Ada")
        invoice = Invoice.objects.create(person=person, number="A-1", issue_date=timezone.now())
        assert get_entity_fields(Invoice).get("person").get_value(invoice) == person.pk
