import pytest

from botlist.services.errors import ErrorKind, WorkflowError
from botlist.services.validation import ValidationResult, parse_owner_ids, validate

from fakes import submission


def test_valid_submission_passes():
    res = validate(submission())
    assert res.ok
    assert res.error_kind is None


def test_non_mapping_payload_is_invalid():
    res = validate(["clientId"])
    assert not res.ok
    assert res.error_kind is ErrorKind.INVALID_PAYLOAD


@pytest.mark.parametrize(
    "dropped, expected",
    [
        (["prefix"], ["prefix"]),
        (["longDesc", "clientId"], ["clientId", "longDesc"]),
        (["owners", "shortDesc", "inviteUrl"], ["shortDesc", "inviteUrl", "owners"]),
    ],
)
def test_missing_fields_are_named_in_order(dropped, expected):
    payload = submission()
    for field in dropped:
        payload.pop(field)

    res = validate(payload)

    assert res.error_kind is ErrorKind.MISSING_FIELDS
    assert res.missing == expected
    assert res.message == f"Missing fields {', '.join(expected)}"


def test_edit_mode_does_not_require_invite_or_owners():
    payload = submission()
    payload.pop("inviteUrl")
    payload.pop("owners")

    assert validate(payload, is_new_submission=False).ok
    assert validate(payload, is_new_submission=True).missing == ["inviteUrl", "owners"]


def test_empty_values_count_as_present():
    res = validate(submission(owners="", inviteUrl=""))
    assert res.ok


@pytest.mark.parametrize(
    "client_id",
    ["123", "1234567890123456", "abcdefghijklmnopqrs", "", "1234567890123456789012"],
)
def test_out_of_range_or_non_numeric_identifier_rejected(client_id):
    res = validate(submission(clientId=client_id))
    assert res.error_kind is ErrorKind.INVALID_IDENTIFIER


@pytest.mark.parametrize("client_id", ["12345678901234567", "123456789012345678", "123456789012345678901"])
def test_identifier_of_17_to_21_digits_accepted(client_id):
    assert validate(submission(clientId=client_id)).ok


def test_identifier_embedded_in_longer_string_accepted():
    # the digit run is searched, not anchored
    assert validate(submission(clientId="<@123456789012345678>")).ok


def test_empty_prefix_rejected():
    res = validate(submission(prefix=""))
    assert res.error_kind is ErrorKind.PREFIX_TOO_SHORT


def test_short_description_boundary():
    assert validate(submission(shortDesc="x" * 150)).ok

    res = validate(submission(shortDesc="x" * 151))
    assert res.error_kind is ErrorKind.DESCRIPTION_TOO_LONG


def test_first_violation_wins():
    res = validate(submission(clientId="1", prefix="", shortDesc="x" * 200))
    assert res.error_kind is ErrorKind.INVALID_IDENTIFIER


def test_raise_for_error_carries_kind_and_retry_hint():
    with pytest.raises(WorkflowError) as exc:
        validate(submission(prefix="")).raise_for_error()
    assert exc.value.kind is ErrorKind.PREFIX_TOO_SHORT
    assert exc.value.retryable is True
    assert exc.value.status_code == 422


def test_raise_for_error_is_noop_when_ok_and_rejects_kindless_failure():
    ValidationResult(ok=True).raise_for_error()

    with pytest.raises(ValueError):
        ValidationResult(ok=False, message="broken").raise_for_error()


def test_parse_owner_ids_drops_empty_tokens_and_duplicates():
    assert parse_owner_ids("  111  222\n\t333 222 ") == ["111", "222", "333"]
    assert parse_owner_ids("") == []
    assert parse_owner_ids(None) == []
