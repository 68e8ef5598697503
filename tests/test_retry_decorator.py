"""
Unit tests for retry_with_backoff decorator.
"""
from unittest.mock import Mock, patch

import ccxt
import pytest

from futures_adapter.core.retry import retry_with_backoff


@pytest.fixture(autouse=True)
def mock_sleep():
    with patch("futures_adapter.core.retry.time.sleep") as sleep:
        yield sleep


class TestRetryDecorator:
    """Test cases for @retry_with_backoff decorator."""

    def test_retry_on_request_timeout(self):
        """Test retry behavior on transient ccxt timeouts."""
        mock_func = Mock()
        mock_func.side_effect = [
            ccxt.RequestTimeout("timed out"),
            ccxt.RequestTimeout("timed out"),
            [{"name": "BTC_USDT"}]  # Success on 3rd attempt
        ]

        @retry_with_backoff(max_retries=2, initial_delay=0.1)
        def api_call():
            return mock_func()

        assert api_call() == [{"name": "BTC_USDT"}]
        assert mock_func.call_count == 3

    def test_retry_on_rate_limit(self):
        """RateLimitExceeded is a NetworkError and is retried."""
        mock_func = Mock(side_effect=[ccxt.RateLimitExceeded("slow down"), {"total": "1"}])

        @retry_with_backoff(max_retries=2, initial_delay=0.1)
        def api_call():
            return mock_func()

        assert api_call() == {"total": "1"}

    def test_no_retry_on_authentication_error(self):
        """Test no retry on credential errors."""
        mock_func = Mock(side_effect=ccxt.AuthenticationError("Invalid key"))

        @retry_with_backoff(max_retries=3, initial_delay=0.1)
        def api_call():
            return mock_func()

        with pytest.raises(ccxt.AuthenticationError):
            api_call()

        assert mock_func.call_count == 1

    def test_no_retry_on_exchange_rejection(self):
        mock_func = Mock(side_effect=ccxt.InvalidOrder("bad size"))

        @retry_with_backoff(max_retries=3, initial_delay=0.1)
        def api_call():
            return mock_func()

        with pytest.raises(ccxt.InvalidOrder):
            api_call()

        assert mock_func.call_count == 1

    def test_exponential_backoff_delays(self, mock_sleep):
        """Delays double after each attempt."""
        mock_func = Mock(side_effect=ccxt.NetworkError("down"))

        @retry_with_backoff(max_retries=3, initial_delay=0.5, backoff_factor=2.0)
        def api_call():
            return mock_func()

        with pytest.raises(ccxt.NetworkError):
            api_call()

        assert mock_func.call_count == 4
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0, 2.0]

    def test_logs_retry_attempts(self, caplog):
        mock_func = Mock(side_effect=[ccxt.ExchangeNotAvailable("503"), "ok"])

        @retry_with_backoff(max_retries=1, initial_delay=0.1)
        def api_call():
            return mock_func()

        with caplog.at_level("WARNING"):
            api_call()

        assert "attempt 1/1 failed" in caplog.text
        assert "ExchangeNotAvailable" in caplog.text

    def test_preserves_function_metadata(self):
        @retry_with_backoff()
        def list_contracts():
            """Docstring"""

        assert list_contracts.__name__ == "list_contracts"
        assert list_contracts.__doc__ == "Docstring"
