"""
Django-Sift Field Registry

Model introspection for query-string translation. Each model's concrete
fields are read once from ``Model._meta`` and kept as an ordered set of
``FieldDescriptor`` objects that the parsers and the predicate compiler
share.

Features:
- Field kind detection (text, integer, date, enum, ...)
- Case- and underscore-insensitive name resolution
- Default quick-search field selection
"""

import enum
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

from django.db import models

from django_sift.exceptions import FieldNotFound


class FieldKind(enum.Enum):
    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    UUID = "uuid"
    ENUM = "enum"
    OTHER = "other"


# Checked in order: DateTimeField subclasses DateField, so it comes first.
_KIND_BY_FIELD_CLASS = (
    (models.BooleanField, FieldKind.BOOLEAN),
    (models.DecimalField, FieldKind.DECIMAL),
    (models.FloatField, FieldKind.FLOAT),
    # Auto, big, small and positive integer fields all subclass IntegerField.
    (models.IntegerField, FieldKind.INTEGER),
    (models.DateTimeField, FieldKind.DATETIME),
    (models.DateField, FieldKind.DATE),
    (models.UUIDField, FieldKind.UUID),
    (models.CharField, FieldKind.TEXT),
    (models.TextField, FieldKind.TEXT),
)

SEARCHABLE_KINDS = frozenset({FieldKind.TEXT, FieldKind.INTEGER})


@dataclass(frozen=True)
class FieldDescriptor:
    """Runtime metadata for one concrete model field."""

    name: str
    kind: FieldKind
    nullable: bool
    is_identifier: bool
    field: Any
    enum: Optional[type] = None

    @property
    def is_searchable(self):
        """Whether the field joins the default quick-search field set."""
        return self.kind in SEARCHABLE_KINDS and not self.is_identifier

    def get_value(self, instance):
        """Read this field from a model instance (FKs return the raw id)."""
        return getattr(instance, self.field.attname, None)


def get_field_kind(field):
    """
    Classify a Django model field.

    Fields declaring ``choices`` are enumerations regardless of their
    storage type. Nullability does not affect the kind.

    Examples:
        >>> get_field_kind(models.CharField(max_length=10))
        <FieldKind.TEXT: 'text'>
        >>> get_field_kind(models.DateTimeField(null=True))
        <FieldKind.DATETIME: 'datetime'>
    """
    if getattr(field, "choices", None):
        return FieldKind.ENUM
    for field_class, kind in _KIND_BY_FIELD_CLASS:
        if isinstance(field, field_class):
            return kind
    return FieldKind.OTHER


def find_choices_enum(model, field):
    """
    Find the ``models.Choices`` class backing a field's choices.

    Django keeps only the (value, label) pairs on the field, so the
    enumeration is looked up among the model's attributes, where nested
    ``TextChoices``/``IntegerChoices`` classes conventionally live.

    Returns:
        The Choices subclass, or None if the model does not expose one
    """
    values = {value for value, _ in field.flatchoices}
    for klass in model.__mro__:
        for candidate in vars(klass).values():
            if isinstance(candidate, type) and issubclass(candidate, models.Choices):
                if {member.value for member in candidate} == values:
                    return candidate
    return None


def _squash(name):
    return name.replace("_", "").casefold()


def get_model_fields(model):
    """
    Get list of concrete fields for a model.

    Only returns fields with database columns (excludes reverse relations,
    many-to-many through tables, etc.).
    """
    return [field for field in model._meta.get_fields() if getattr(field, "column", None)]


class EntityFields:
    """
    Ordered registry of a model's field descriptors.

    Use ``get_entity_fields(model)`` rather than constructing this
    directly; the registry is built once per model and reused.

    Example:
        >>> entity = get_entity_fields(Person)
        >>> entity.resolve("IssueDate")
        'issue_date'
        >>> [d.name for d in entity.default_search_fields()]
        ['name', 'email', 'age']
    """

    def __init__(self, model):
        self.model = model
        pk_name = model._meta.pk.name
        descriptors = []
        for field in get_model_fields(model):
            kind = get_field_kind(field)
            descriptors.append(
                FieldDescriptor(
                    name=field.name,
                    kind=kind,
                    nullable=field.null,
                    is_identifier=field.name == pk_name,
                    field=field,
                    enum=find_choices_enum(model, field) if kind is FieldKind.ENUM else None,
                )
            )
        self._descriptors = {d.name: d for d in descriptors}
        self._folded = {}
        self._squashed = {}
        for name in self._descriptors:
            self._folded.setdefault(name.casefold(), name)
            self._squashed.setdefault(_squash(name), name)

    def __iter__(self):
        return iter(self._descriptors.values())

    def __len__(self):
        return len(self._descriptors)

    def __contains__(self, name):
        return name in self._descriptors

    @property
    def names(self):
        return list(self._descriptors)

    @property
    def identifier(self):
        """The descriptor of the primary key field."""
        return self._descriptors[self.model._meta.pk.name]

    def get(self, name):
        """Exact lookup by canonical name."""
        return self._descriptors.get(name)

    def resolve(self, name: str) -> Optional[str]:
        """
        Resolve a client-supplied field name to its canonical spelling.

        Tries an exact match, then a case-insensitive match, then one that
        also ignores underscores (so ``IssueDate`` finds ``issue_date``).

        Returns:
            Canonical field name, or None if nothing matches
        """
        if not name:
            return None
        if name == "pk":
            return self.identifier.name
        if name in self._descriptors:
            return name
        folded = self._folded.get(name.casefold())
        if folded is not None:
            return folded
        return self._squashed.get(_squash(name))

    def require(self, name, parameter=None) -> FieldDescriptor:
        """Resolve a name or raise ``FieldNotFound``."""
        canonical = self.resolve(name)
        if canonical is None:
            raise FieldNotFound(name, parameter=parameter)
        return self._descriptors[canonical]

    def default_search_fields(self):
        """Every textual or integral field except the identifier."""
        return [d for d in self if d.is_searchable]


@lru_cache(maxsize=None)
def get_entity_fields(model) -> EntityFields:
    """Get the cached field registry for a model class."""
    return EntityFields(model)
