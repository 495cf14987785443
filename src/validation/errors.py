"""
Row-level validation errors.

**Conceptual**: These exceptions are raised by the field validators and caught
by the codecs at the row boundary, where each one becomes a line-numbered
RowError on the ImportResult. They never escape a decode call: one bad row
removes that row from the accepted set and nothing else.

Each class carries a stable `kind` string so callers (and tests) can tell
failures apart without parsing messages.
"""


class RowValidationError(Exception):
    """
    Base class for failures that reject a single row.

    Attributes:
        kind: Stable identifier of the failure category.
        field_name: Source field the failure refers to, if any.
    """
    kind = "row_validation_error"

    def __init__(self, message: str, field_name: str | None = None):
        super().__init__(message)
        self.field_name = field_name


class MissingRequiredField(RowValidationError):
    """Timestamp, latitude or longitude is absent."""
    kind = "missing_required_field"


class OutOfRangeValue(RowValidationError):
    """A required field is present but outside its domain."""
    kind = "out_of_range_value"


class MalformedNumber(RowValidationError):
    """A required numeric field is present but is not a number."""
    kind = "malformed_number"


class MalformedTimestamp(RowValidationError):
    """A timestamp (or date/time pair) could not be parsed."""
    kind = "malformed_timestamp"


class MalformedMetadataPreamble(RowValidationError):
    """
    An ASPeCt preamble line looks like metadata but does not parse.

    Non-fatal to the rest of the file: the metadata is simply left unset.
    """
    kind = "malformed_metadata_preamble"
