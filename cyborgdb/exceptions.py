"""Client exception hierarchy.

All custom exceptions inherit from CyborgDBError.
Each exception has an error code for structured error handling.

Local validation errors (ValidationError and subclasses) are raised
before any network call. Service errors carry the Service's status
and body unchanged.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "CDB-1000"
    CONFIGURATION_ERROR = "CDB-1001"
    VALIDATION_ERROR = "CDB-1002"

    # Encryption key errors (2xxx)
    INVALID_KEY_LENGTH = "CDB-2000"
    INVALID_KEY_FORMAT = "CDB-2001"

    # Index configuration errors (3xxx)
    MISSING_REQUIRED_FIELD = "CDB-3000"
    UNKNOWN_FIELD = "CDB-3001"
    INVALID_DISCRIMINANT = "CDB-3002"
    INVALID_FIELD_VALUE = "CDB-3003"

    # Metadata filter errors (4xxx)
    EMPTY_COMPOSITE = "CDB-4000"
    UNKNOWN_OPERATOR = "CDB-4001"
    INVALID_FILTER_VALUE = "CDB-4002"

    # Vector item errors (5xxx)
    INVALID_VECTOR_ITEM = "CDB-5000"
    UNSUPPORTED_CONTENTS = "CDB-5001"
    DIMENSION_MISMATCH = "CDB-5002"

    # Query errors (6xxx)
    AMBIGUOUS_QUERY_INPUT = "CDB-6000"
    CONFLICTING_QUERY_INPUT = "CDB-6001"
    INVALID_QUERY_PARAMETER = "CDB-6002"
    RESULT_COUNT_MISMATCH = "CDB-6003"

    # Service errors (7xxx)
    SERVICE_ERROR = "CDB-7000"
    SERVICE_CONNECTION_ERROR = "CDB-7001"
    MALFORMED_RESPONSE = "CDB-7002"
    DEADLINE_EXCEEDED = "CDB-7003"


class CyborgDBError(Exception):
    """Base exception for all client errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a plain dictionary."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(CyborgDBError):
    """Configuration or environment error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ValidationError(CyborgDBError):
    """Local input validation error, raised before any network call."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


# Encryption keys


class InvalidKeyLengthError(ValidationError):
    """Encryption key is not exactly 32 bytes."""

    def __init__(self, length: int, expected: int = 32) -> None:
        super().__init__(
            f"Index key must be exactly {expected} bytes, got {length}",
            ErrorCode.INVALID_KEY_LENGTH,
            {"length": length, "expected": expected},
        )


class InvalidKeyFormatError(ValidationError):
    """Encryption key wire form is not a hex string."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            f"Index key is not valid hex: {reason}",
            ErrorCode.INVALID_KEY_FORMAT,
            {"reason": reason},
        )


# Index configuration


class IndexConfigError(ValidationError):
    """Index configuration error."""


class MissingRequiredFieldError(IndexConfigError):
    """A field required by the declared index type is absent."""

    def __init__(self, field: str, index_type: str) -> None:
        self.field = field
        super().__init__(
            f"Required field '{field}' is missing for index type '{index_type}'",
            ErrorCode.MISSING_REQUIRED_FIELD,
            {"field": field, "index_type": index_type},
        )


class UnknownFieldError(IndexConfigError):
    """A field not declared for the index type is present."""

    def __init__(self, field: str, index_type: str) -> None:
        self.field = field
        super().__init__(
            f"Unknown field '{field}' for index type '{index_type}'",
            ErrorCode.UNKNOWN_FIELD,
            {"field": field, "index_type": index_type},
        )


class InvalidDiscriminantError(IndexConfigError):
    """The index type tag is not one of the known variants."""

    def __init__(self, tag: Any) -> None:
        self.tag = tag
        super().__init__(
            f"Unknown index type: {tag!r}",
            ErrorCode.INVALID_DISCRIMINANT,
            {"tag": str(tag)},
        )


class InvalidFieldValueError(IndexConfigError):
    """A config field is present but its value is not acceptable."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.INVALID_FIELD_VALUE, details)


# Metadata filters


class FilterError(ValidationError):
    """Metadata filter expression error."""


class EmptyCompositeError(FilterError):
    """An $and/$or node has no children."""

    def __init__(self, op: str) -> None:
        super().__init__(
            f"Filter operator '{op}' requires at least one child expression",
            ErrorCode.EMPTY_COMPOSITE,
            {"operator": op},
        )


class UnknownOperatorError(FilterError):
    """A filter operator outside the supported set."""

    def __init__(self, op: str) -> None:
        self.op = op
        super().__init__(
            f"Unsupported filter operator: {op!r}",
            ErrorCode.UNKNOWN_OPERATOR,
            {"operator": op},
        )


class InvalidFilterValueError(FilterError):
    """A filter operand has the wrong shape for its operator."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.INVALID_FILTER_VALUE, details)


# Vector items


class VectorItemError(ValidationError):
    """Vector item error."""


class InvalidVectorItemError(VectorItemError):
    """Vector item is missing an id or carries an empty vector."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.INVALID_VECTOR_ITEM, details)


class UnsupportedContentsError(VectorItemError):
    """Item contents are neither text nor bytes."""

    def __init__(self, type_name: str) -> None:
        super().__init__(
            f"Contents must be str or bytes, got {type_name}",
            ErrorCode.UNSUPPORTED_CONTENTS,
            {"type": type_name},
        )


class DimensionMismatchError(VectorItemError):
    """Vector length differs from the index dimension."""

    def __init__(self, expected: int, actual: int, item_id: str | None = None) -> None:
        details: dict[str, Any] = {"expected": expected, "actual": actual}
        if item_id is not None:
            details["id"] = item_id
        super().__init__(
            f"Vector has {actual} dimensions, index expects {expected}",
            ErrorCode.DIMENSION_MISMATCH,
            details,
        )


# Queries


class QueryError(ValidationError):
    """Query request or response shape error."""


class AmbiguousQueryInputError(QueryError):
    """None of query_vector, query_vectors, query_contents was supplied."""

    def __init__(self) -> None:
        super().__init__(
            "One of query_vector, query_vectors or query_contents must be provided",
            ErrorCode.AMBIGUOUS_QUERY_INPUT,
        )


class ConflictingQueryInputError(QueryError):
    """More than one query input was supplied."""

    def __init__(self, supplied: list[str]) -> None:
        super().__init__(
            f"Only one query input may be provided, got: {', '.join(supplied)}",
            ErrorCode.CONFLICTING_QUERY_INPUT,
            {"supplied": supplied},
        )


class InvalidQueryParameterError(QueryError):
    """A query parameter is out of range or not recognized."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.INVALID_QUERY_PARAMETER, details)


class ResultCountMismatchError(QueryError):
    """Number of result sets differs from the number of query vectors."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Expected {expected} result sets, got {actual}",
            ErrorCode.RESULT_COUNT_MISMATCH,
            {"expected": expected, "actual": actual},
        )


# Service


class ServiceError(CyborgDBError):
    """The Service answered with a non-success status or unusable body.

    Attributes:
        status_code: HTTP status, or None when no response was received.
        body: Raw response body as returned by the Service.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SERVICE_ERROR,
        status_code: int | None = None,
        body: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        merged = dict(details or {})
        if status_code is not None:
            merged.setdefault("status_code", status_code)
        super().__init__(message, code, merged)


class ServiceConnectionError(ServiceError):
    """The Service could not be reached."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.SERVICE_CONNECTION_ERROR, details=details)


class MalformedResponseError(ServiceError):
    """The Service response body could not be decoded."""

    def __init__(
        self,
        message: str,
        body: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.MALFORMED_RESPONSE,
            body=body,
            details=details,
        )


class DeadlineExceededError(CyborgDBError):
    """The request did not complete before its timeout."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.DEADLINE_EXCEEDED, details)
