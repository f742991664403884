"""Tests for the exchange rate cache refresh and fallback policy."""

import logging
import threading

import httpx
import pytest

from app.services.exchange_rate_service import ExchangeRateCache, DEFAULT_RATES
from conftest import FakeClock, make_rate_cache, RATE_PAYLOAD, PRIMARY_URL, FALLBACK_URL


def ok_handler(calls):
    def handler(request):
        calls.append(str(request.url))
        return httpx.Response(200, json=RATE_PAYLOAD)
    return handler


class TestInitialState:
    """Test fallback table before any refresh."""

    def test_starts_with_fallback_rates(self):
        """Should serve the hardcoded table before the first refresh."""
        cache = make_rate_cache(lambda r: httpx.Response(500))
        cache.refresh()
        assert cache.get_rates() == DEFAULT_RATES

    def test_base_currency_pinned_to_one(self):
        """Base currency should map to 1 even if initial rates say otherwise."""
        cache = make_rate_cache(lambda r: httpx.Response(500), initial_rates={"VND": 3.0, "USD": 24000})
        assert cache.get_rates()["VND"] == 1.0
        assert cache.is_stale() is True


class TestRefresh:
    """Test successful refresh behaviour."""

    def test_inverts_quoted_rates(self):
        """1 VND = 0.00004 USD should become 1 USD = 25000 VND."""
        calls = []
        cache = make_rate_cache(ok_handler(calls))

        rates = cache.get_rates()

        assert rates["VND"] == 1.0
        assert rates["USD"] == pytest.approx(25000.0)
        assert rates["EUR"] == pytest.approx(27000.0)
        assert calls == [PRIMARY_URL]

    def test_only_supported_currencies_kept(self):
        """Currencies outside the configured list should be ignored."""
        cache = make_rate_cache(ok_handler([]))
        assert "JPY" not in cache.get_rates()

    def test_replaces_table_wholesale(self):
        """A currency missing from the new payload should disappear from the table."""
        cache = make_rate_cache(lambda r: httpx.Response(200, json={"vnd": {"usd": 0.00005}}))
        assert cache.refresh() is True
        rates = cache.get_rates()
        assert rates == {"VND": 1.0, "USD": pytest.approx(20000.0)}

    def test_sets_last_updated(self):
        cache = make_rate_cache(ok_handler([]))
        assert cache.last_updated is None
        cache.refresh()
        assert cache.last_updated is not None

    def test_returns_copy(self):
        """Mutating the returned dict should not affect the cache."""
        cache = make_rate_cache(ok_handler([]))
        rates = cache.get_rates()
        rates["USD"] = 1.0
        assert cache.get_rates()["USD"] == pytest.approx(25000.0)


class TestTTL:
    """Test time-based staleness."""

    def test_fresh_cache_does_not_refetch(self):
        calls = []
        clock = FakeClock()
        cache = make_rate_cache(ok_handler(calls), clock=clock)

        cache.get_rates()
        clock.advance(60)
        cache.get_rates()

        assert len(calls) == 1

    def test_expired_cache_refetches(self):
        calls = []
        clock = FakeClock()
        cache = make_rate_cache(ok_handler(calls), clock=clock)

        cache.get_rates()
        clock.advance(6 * 60 * 60 + 1)
        assert cache.is_stale() is True
        cache.get_rates()

        assert len(calls) == 2

    def test_failed_refresh_keeps_cache_stale(self):
        """A failure should not reset the TTL, so the next read retries."""
        calls = []

        def handler(request):
            calls.append(str(request.url))
            return httpx.Response(503)

        cache = make_rate_cache(handler)
        cache.get_rates()
        cache.get_rates()
        assert cache.is_stale() is True
        assert calls == [PRIMARY_URL, FALLBACK_URL, PRIMARY_URL, FALLBACK_URL]


class TestFailures:
    """Test fallback endpoint and stale-serving semantics."""

    def test_non_2xx_primary_uses_fallback(self):
        calls = []

        def handler(request):
            calls.append(str(request.url))
            if str(request.url) == PRIMARY_URL:
                return httpx.Response(404)
            return httpx.Response(200, json={"vnd": {"usd": 0.00005, "eur": 0.00004}})

        cache = make_rate_cache(handler)
        rates = cache.get_rates()

        assert calls == [PRIMARY_URL, FALLBACK_URL]
        assert rates["USD"] == pytest.approx(20000.0)
        assert rates["EUR"] == pytest.approx(25000.0)

    def test_transport_error_uses_fallback(self):
        def handler(request):
            if str(request.url) == PRIMARY_URL:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=RATE_PAYLOAD)

        cache = make_rate_cache(handler)
        assert cache.refresh() is True
        assert cache.get_rates()["USD"] == pytest.approx(25000.0)

    def test_timeout_treated_as_network_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        cache = make_rate_cache(handler)
        assert cache.refresh() is False
        assert cache.get_rates() == DEFAULT_RATES

    def test_both_sources_fail_serves_last_good_table(self, caplog):
        """After a good refresh, total failure should keep the good table and log."""
        state = {"fail": False}

        def handler(request):
            if state["fail"]:
                raise httpx.ConnectError("down", request=request)
            return httpx.Response(200, json={"vnd": {"usd": 0.00005, "eur": 0.00004}})

        clock = FakeClock()
        cache = make_rate_cache(handler, clock=clock)
        cache.get_rates()

        state["fail"] = True
        clock.advance(7 * 60 * 60)
        with caplog.at_level(logging.WARNING):
            rates = cache.get_rates()

        assert rates["USD"] == pytest.approx(20000.0)
        assert "serving stale rates" in caplog.text

    def test_malformed_payload_ignored(self):
        cache = make_rate_cache(lambda r: httpx.Response(200, json={"usd": {"vnd": 25000}}))
        assert cache.refresh() is False
        assert cache.get_rates() == DEFAULT_RATES

    def test_invalid_json_ignored(self):
        cache = make_rate_cache(lambda r: httpx.Response(200, content=b"<html>oops</html>"))
        assert cache.refresh() is False
        assert cache.get_rates() == DEFAULT_RATES

    def test_non_positive_rates_skipped(self):
        cache = make_rate_cache(lambda r: httpx.Response(200, json={"vnd": {"usd": 0, "eur": 0.00004}}))
        cache.refresh()
        rates = cache.get_rates()
        assert "USD" not in rates
        assert rates["EUR"] == pytest.approx(25000.0)


class TestConcurrency:
    """Test that concurrent refreshes share one fetch."""

    def test_refresh_in_flight_is_not_duplicated(self):
        started = threading.Event()
        release = threading.Event()
        calls = []

        def handler(request):
            calls.append(str(request.url))
            started.set()
            release.wait(timeout=5)
            return httpx.Response(200, json=RATE_PAYLOAD)

        cache = make_rate_cache(handler)
        worker = threading.Thread(target=cache.refresh)
        worker.start()
        assert started.wait(timeout=5)

        # Second caller sees a refresh in progress and is served the current table
        assert cache.refresh() is False
        assert cache.get_rates()["USD"] == 25000.0

        release.set()
        worker.join(timeout=5)
        assert len(calls) == 1
        assert cache.is_stale() is False


class TestFromSettings:
    def test_builds_from_settings(self):
        from app.config import settings

        cache = ExchangeRateCache.from_settings(settings, client=httpx.Client())
        assert cache.base_currency == settings.base_currency
        assert cache.ttl_seconds == settings.exchange_rate_ttl_seconds
        cache.close()


class TestClosedClient:
    def test_closed_client_serves_stale_table(self):
        calls = []
        cache = make_rate_cache(ok_handler(calls))
        cache.close()

        assert cache.get_rates() == DEFAULT_RATES
        assert cache.refresh() is False
        assert calls == []
        assert cache.is_stale() is True
