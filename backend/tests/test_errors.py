import pytest

from caresync.core.errors import (
    RESPONSE_BODY_LOG_LIMIT,
    AppointmentFindTimeoutError,
    EhrError,
    ProviderNotFoundError,
    sync_error_to_http,
)


class TestSyncErrorToHttp:
    @pytest.mark.parametrize(
        "exc, status_code",
        [
            (ProviderNotFoundError("No provider found with ID x"), 404),
            (EhrError("Bad HTTP response from EHR endpoint", status_code=500), 502),
            (ValueError("Start date is after end date"), 400),
            (AppointmentFindTimeoutError("timed out"), 500),
            (RuntimeError("unexpected"), 500),
        ],
    )
    def test_status_codes(self, exc, status_code):
        http_exc = sync_error_to_http(exc)

        assert http_exc.status_code == status_code
        assert http_exc.detail == str(exc)


class TestEhrError:
    def test_renders_call_context(self):
        err = EhrError(
            "Bad HTTP response from EHR endpoint",
            method="POST",
            url="https://ehr.example.org/schedule",
            params={"ProviderID": "E100"},
            status_code=500,
            response_body="oops",
        )

        text = str(err)
        assert text.startswith("Bad HTTP response from EHR endpoint - endpoint POST https://ehr.example.org/schedule")
        assert "params {'ProviderID': 'E100'}" in text
        assert "status 500" in text
        assert text.endswith("response body was\noops")

    def test_response_body_is_truncated(self):
        err = EhrError("Bad HTTP response from EHR endpoint", response_body="x" * (RESPONSE_BODY_LOG_LIMIT + 500))

        assert len(err.response_body) == RESPONSE_BODY_LOG_LIMIT

    def test_message_only(self):
        assert str(EhrError("EHR credentials not configured")) == "EHR credentials not configured"
