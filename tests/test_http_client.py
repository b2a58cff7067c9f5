"""Tests for the shared HTTP helper."""

from unittest.mock import patch, MagicMock

import pytest
import requests

from common.http_client import safe_get
from common.logging_utils import safe_url
from errors import RegistryUnavailable


def _response(status):
    res = MagicMock()
    res.status_code = status
    return res


@patch("common.http_client.time.sleep")
class TestSafeGet:
    """Test retries and error mapping."""

    @patch("common.http_client.requests.get")
    def test_returns_first_success(self, mock_get, _sleep):
        mock_get.return_value = _response(200)
        res = safe_get("https://example.org/feed", context="Az", timeout=7)
        assert res.status_code == 200
        assert mock_get.call_args[1]["timeout"] == 7

    @patch("common.http_client.requests.get")
    def test_client_errors_not_retried(self, mock_get, _sleep):
        mock_get.return_value = _response(404)
        assert safe_get("https://example.org/feed", context="Az").status_code == 404
        assert mock_get.call_count == 1

    @patch("common.http_client.requests.get")
    def test_server_error_retried_then_success(self, mock_get, sleep):
        mock_get.side_effect = [_response(503), _response(200)]
        assert safe_get("https://example.org/feed", context="Az", retries=3).status_code == 200
        assert mock_get.call_count == 2
        sleep.assert_called_once()

    @patch("common.http_client.requests.get", side_effect=requests.ConnectionError("refused"))
    def test_connection_errors_exhaust_retries(self, mock_get, _sleep):
        with pytest.raises(RegistryUnavailable, match="refused"):
            safe_get("https://example.org/feed", context="Az", retries=2)
        assert mock_get.call_count == 2

    @patch("common.http_client.requests.get", side_effect=requests.Timeout())
    def test_timeout(self, _mock_get, _sleep):
        with pytest.raises(RegistryUnavailable, match="timed out"):
            safe_get("https://example.org/feed", context="Az", timeout=1, retries=1)

    @patch("common.http_client.requests.get")
    def test_persistent_server_error(self, mock_get, _sleep):
        mock_get.return_value = _response(500)
        with pytest.raises(RegistryUnavailable, match="HTTP 500"):
            safe_get("https://example.org/feed", context="Az", retries=3)
        assert mock_get.call_count == 3


class TestSafeUrl:
    """Test URL redaction for logs."""

    def test_strips_credentials(self):
        assert safe_url("https://user:pw@feed.example.org/api/v2") == "https://feed.example.org/api/v2"

    def test_masks_sensitive_query(self):
        assert safe_url("https://feed.example.org/api?id=Az&apikey=abc") == "https://feed.example.org/api?id=Az&apikey=***"
