"""
Typed exception hierarchy for the closing review kernel.

Every error the review layer can surface has its own class, a ``code``
class attribute (machine-readable, API-safe) and structured attributes
instead of a bare message.

    ClosingReviewError                      CLOSING_REVIEW_ERROR
    |
    +-- ValidationError                     VALIDATION_ERROR
    |   +-- InvalidIdentifierError          INVALID_IDENTIFIER
    |   +-- InvalidRangeError               INVALID_RANGE
    |   +-- RecordInvariantError            RECORD_INVARIANT
    |
    +-- NotFoundError                       NOT_FOUND
    |   +-- SessionNotFoundError            SESSION_NOT_FOUND
    |
    +-- UpstreamFailure                     UPSTREAM_FAILURE

Handling patterns:

    try:
        comparison = service.compare_sessions(first_id, second_id)
    except SessionNotFoundError as e:
        return {"error": e.code, "missing": e.session_ids}

    try:
        reconciled = service.list_reconciled(window)
    except UpstreamFailure as e:
        # The only user-visible failure: "could not load sessions".
        # Retries belong to the data source, never to the engines.
        return {"error": e.code, "operation": e.operation}

Reconciliation arithmetic never raises.  Incomplete sessions (no cash
count, no fiscal report) degrade to zeroed values, never to errors.
"""


class ClosingReviewError(Exception):
    """
    Base exception for all closing review errors.

    All subclasses carry a ``code`` class attribute.
    """

    code: str = "CLOSING_REVIEW_ERROR"


# Validation


class ValidationError(ClosingReviewError):
    """Input rejected before any query is issued."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str):
        super().__init__(message)


class InvalidIdentifierError(ValidationError):
    """An identifier used as a filter is empty or blank."""

    code: str = "INVALID_IDENTIFIER"

    def __init__(self, field_name: str, value: object):
        self.field_name = field_name
        self.value = value
        super().__init__(f"Invalid identifier for {field_name}: {value!r}")


class InvalidRangeError(ValidationError):
    """A lower bound is greater than its upper bound."""

    code: str = "INVALID_RANGE"

    def __init__(self, field_name: str, lower: object, upper: object):
        self.field_name = field_name
        self.lower = lower
        self.upper = upper
        super().__init__(
            f"Invalid range for {field_name}: {lower} is after {upper}"
        )


class RecordInvariantError(ValidationError):
    """A session, count detail or settlement record breaks its invariants."""

    code: str = "RECORD_INVARIANT"

    def __init__(self, record_type: str, record_id: str, reason: str):
        self.record_type = record_type
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Invalid {record_type} {record_id}: {reason}")


# Lookup


class NotFoundError(ClosingReviewError):
    """A referenced entity does not resolve."""

    code: str = "NOT_FOUND"


class SessionNotFoundError(NotFoundError):
    """One or more cash-session ids do not resolve."""

    code: str = "SESSION_NOT_FOUND"

    def __init__(self, session_ids: list[str]):
        self.session_ids = session_ids
        super().__init__(
            f"Cash session(s) not found: {', '.join(session_ids)}"
        )


# Data source


class UpstreamFailure(ClosingReviewError):
    """
    The data-retrieval collaborator failed.

    Raised by the selector with the original exception chained as
    ``__cause__``.  Never retried here.
    """

    code: str = "UPSTREAM_FAILURE"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Could not load sessions ({operation}): {reason}")
