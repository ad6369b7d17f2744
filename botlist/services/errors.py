from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_PAYLOAD = "InvalidPayload"
    MISSING_FIELDS = "MissingFields"
    INVALID_IDENTIFIER = "InvalidIdentifier"
    PREFIX_TOO_SHORT = "PrefixTooShort"
    DESCRIPTION_TOO_LONG = "DescriptionTooLong"
    UNAUTHENTICATED = "Unauthenticated"
    UNKNOWN_ACCOUNT = "UnknownAccount"
    ALREADY_LISTED = "AlreadyListed"
    NOT_A_SERVICE_ACCOUNT = "NotAServiceAccount"
    NOT_A_COMMUNITY_MEMBER = "NotACommunityMember"
    NOT_FOUND = "NotFound"
    NOT_OWNER = "NotOwner"
    FORBIDDEN = "Forbidden"
    DUPLICATE_KEY = "DuplicateKey"
    UPSTREAM_UNAVAILABLE = "UpstreamUnavailable"


# "fix your input and resubmit" vs "this action cannot succeed"
RETRYABLE_KINDS = frozenset({
    ErrorKind.INVALID_PAYLOAD,
    ErrorKind.MISSING_FIELDS,
    ErrorKind.INVALID_IDENTIFIER,
    ErrorKind.PREFIX_TOO_SHORT,
    ErrorKind.DESCRIPTION_TOO_LONG,
    ErrorKind.UNAUTHENTICATED,
    ErrorKind.UNKNOWN_ACCOUNT,
    ErrorKind.NOT_A_SERVICE_ACCOUNT,
    ErrorKind.UPSTREAM_UNAVAILABLE,
})

STATUS_CODES = {
    ErrorKind.INVALID_PAYLOAD: 400,
    ErrorKind.MISSING_FIELDS: 422,
    ErrorKind.INVALID_IDENTIFIER: 422,
    ErrorKind.PREFIX_TOO_SHORT: 422,
    ErrorKind.DESCRIPTION_TOO_LONG: 422,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.UNKNOWN_ACCOUNT: 422,
    ErrorKind.ALREADY_LISTED: 409,
    ErrorKind.NOT_A_SERVICE_ACCOUNT: 422,
    ErrorKind.NOT_A_COMMUNITY_MEMBER: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.NOT_OWNER: 403,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.DUPLICATE_KEY: 409,
    ErrorKind.UPSTREAM_UNAVAILABLE: 503,
}


class WorkflowError(Exception):
    """
    Structured outcome of a rejected workflow operation.
    Raised before any store mutation; the API layer renders it as an ErrorResponse.
    """

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @property
    def status_code(self) -> int:
        return STATUS_CODES.get(self.kind, 400)

    def __repr__(self) -> str:
        return f"WorkflowError({self.kind.value}, {self.message!r})"


class DuplicateKey(Exception):
    """Store rejected an insert because the primary key already exists."""

    def __init__(self, key: str):
        super().__init__(f"duplicate key: {key}")
        self.key = key


class UpstreamError(Exception):
    """A collaborator (Discord API) failed in a way that is neither success nor a clean 'not found'."""

    def __init__(self, message: str, *, status_code: int | None = None, retryable: bool = True):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable
