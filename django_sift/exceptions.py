"""
Django-Sift Exceptions

Every error raised while reading a query string. All of them are raised
while parsing or compiling, before any query touches the database, and
carry the offending key or literal for diagnostics.

Hierarchy:
    SiftError
    ├── MalformedParameter
    │   └── FieldNotFound
    └── InvalidFilterArgument
"""


class SiftError(ValueError):
    """Base class for query-string translation errors."""

    code = "BAD_REQUEST"
    http_status = 400


class MalformedParameter(SiftError):
    """
    A reserved parameter (page, size, sort, quick search) carries a value
    that cannot be used.

    Args:
        parameter: Name of the offending query-string key
        value: The raw value, when one was supplied
    """

    code = "MALFORMED_PARAMETER"

    def __init__(self, parameter, value=None, message=None):
        self.parameter = parameter
        self.value = value
        if message is None:
            message = f"Invalid value for query parameter '{parameter}'"
            if value is not None:
                message += f": '{value}'"
        super().__init__(message)


class FieldNotFound(MalformedParameter):
    """
    A field name given in a filter, sort or quick search does not exist
    on the target model.
    """

    code = "FIELD_NOT_FOUND"

    def __init__(self, field_name, parameter=None):
        self.field_name = field_name
        super().__init__(
            parameter or field_name,
            value=field_name,
            message=f"Field '{field_name}' does not exist",
        )


class InvalidFilterArgument(SiftError):
    """
    A filter literal cannot be applied to its field: wrong arity for
    ``between``, an unknown operator, or a literal that does not coerce to
    the field type.
    """

    code = "INVALID_FILTER_ARGUMENT"

    def __init__(self, field_name, value=None, reason=None):
        self.field_name = field_name
        self.value = value
        self.reason = reason
        message = f"Invalid filter argument for field '{field_name}'"
        if value is not None:
            message += f": '{value}'"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
