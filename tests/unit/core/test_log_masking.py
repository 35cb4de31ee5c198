import pytest

from config.settings import mask_sensitive_data

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_password_masked(self):
        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    def test_authorization_header_masked(self):
        event_dict = {"event": "test", "header": "Authorization: eyJhbGciOi"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "eyJhbGciOi" not in result["header"]

    def test_batch_label_unchanged(self):
        event_dict = {"event": "order.batch_submitted", "batch_number": "Jane - 03/01/2024 #0042"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["batch_number"] == "Jane - 03/01/2024 #0042"

    def test_non_string_values_unchanged(self):
        event_dict = {"event": "order.batch_submitted", "line_count": 3}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["line_count"] == 3
