from bw_vault.exceptions import (
    APIError,
    MissingKeyError,
    NotFoundError,
    RateLimitError,
    RecordNotFoundError,
    ServerError,
    VaultError,
)


def test_vault_error_str_without_context() -> None:
    error = VaultError("Something failed")

    assert str(error) == "Something failed"


def test_vault_error_str_with_context() -> None:
    error = VaultError("Failed", record_id="123", attempt=3)

    assert "Failed" in str(error)
    assert "record_id='123'" in str(error)
    assert "attempt=3" in str(error)


def test_not_found_error_has_status_404() -> None:
    error = NotFoundError("Resource not found")

    assert error.status == 404
    assert isinstance(error, APIError)


def test_rate_limit_error_has_status_429() -> None:
    error = RateLimitError(retry_after=5)

    assert error.status == 429
    assert error.retry_after == 5


def test_server_error_defaults_to_500() -> None:
    assert ServerError("boom").status == 500


def test_api_error_json_parses_body() -> None:
    error = APIError("Bad request", status=400, body='{"error": "invalid_grant"}')

    assert error.json() == {"error": "invalid_grant"}


def test_api_error_json_returns_none_for_non_json_body() -> None:
    error = APIError("Bad gateway", status=502, body="<html>")

    assert error.json() is None


def test_missing_key_error_keeps_key_type() -> None:
    error = MissingKeyError("User key not decoded", key_type="user")

    assert error.key_type == "user"
    assert "key_type='user'" in str(error)


def test_record_not_found_error_keeps_record_id() -> None:
    error = RecordNotFoundError("Not found", record_id="rec-9")

    assert error.record_id == "rec-9"
