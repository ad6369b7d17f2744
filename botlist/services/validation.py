from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from botlist.services.errors import ErrorKind, WorkflowError


CONTENT_FIELDS = ("clientId", "prefix", "shortDesc", "longDesc")
SUBMISSION_FIELDS = CONTENT_FIELDS + ("inviteUrl", "owners")

# not anchored, so "<@id>" passes; a digit run longer than 21 does not
CLIENT_ID_RE = re.compile(r"(?<![0-9])[0-9]{17,21}(?![0-9])")

MIN_PREFIX_LENGTH = 1
MAX_SHORT_DESC_LENGTH = 150


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    error_kind: ErrorKind | None = None
    message: str | None = None
    missing: list[str] = field(default_factory=list)

    def raise_for_error(self) -> None:
        if self.ok:
            return
        if self.error_kind is None:
            raise ValueError("failed ValidationResult has no error_kind")
        raise WorkflowError(self.error_kind, self.message or self.error_kind.value)


def _fail(kind: ErrorKind, message: str, *, missing: list[str] | None = None) -> ValidationResult:
    return ValidationResult(ok=False, error_kind=kind, message=message, missing=missing or [])


def required_fields(*, is_new_submission: bool) -> tuple[str, ...]:
    return SUBMISSION_FIELDS if is_new_submission else CONTENT_FIELDS


def validate(payload: Any, *, is_new_submission: bool = True) -> ValidationResult:
    """
    Check a submitted listing form.
    Rules are applied in order and the first violation is returned; no side effects.
    """
    if not isinstance(payload, Mapping):
        return _fail(ErrorKind.INVALID_PAYLOAD, "Invalid payload")

    missing = [f for f in required_fields(is_new_submission=is_new_submission) if f not in payload]
    if missing:
        return _fail(ErrorKind.MISSING_FIELDS, f"Missing fields {', '.join(missing)}", missing=missing)

    client_id = str(payload["clientId"])
    prefix = str(payload["prefix"])
    short_desc = str(payload["shortDesc"])

    if not CLIENT_ID_RE.search(client_id):
        return _fail(
            ErrorKind.INVALID_IDENTIFIER,
            "Client ID must only consist of numbers and be 17-21 characters in length",
        )

    if len(prefix) < MIN_PREFIX_LENGTH:
        return _fail(ErrorKind.PREFIX_TOO_SHORT, "Prefix may not be shorter than 1 character")

    if len(short_desc) > MAX_SHORT_DESC_LENGTH:
        return _fail(
            ErrorKind.DESCRIPTION_TOO_LONG,
            f"Short description must not be longer than {MAX_SHORT_DESC_LENGTH} characters",
        )

    return ValidationResult(ok=True)


def parse_owner_ids(raw: str | None) -> list[str]:
    # whitespace separated, empty tokens dropped, first occurrence wins
    seen: dict[str, None] = {}
    for token in str(raw or "").split():
        seen.setdefault(token, None)
    return list(seen)
