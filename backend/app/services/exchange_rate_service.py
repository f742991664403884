"""
Exchange rate cache.

Holds "units of base currency per 1 unit of X" rates (1 USD = 25000 VND is
stored as {"USD": 25000}). The table is refreshed from a remote JSON source
once the TTL has passed; any failure keeps serving the previous table.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Mapping, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_RATES: Dict[str, float] = {
    "VND": 1.0,
    "USD": 25000.0,
    "EUR": 27000.0,
}


class ExchangeRateCache:
    """
    Thread-safe, TTL-refreshed rate table shared by every request.

    Only the swap of the table happens under the lock; the HTTP call runs
    outside it. A refresh that starts while another one is in flight returns
    immediately and the caller is served the current table.
    """

    def __init__(
        self,
        primary_url: str,
        fallback_url: Optional[str] = None,
        base_currency: str = "VND",
        currencies: Iterable[str] = ("VND", "USD", "EUR"),
        initial_rates: Optional[Mapping[str, float]] = None,
        ttl_seconds: float = 6 * 60 * 60,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.primary_url = primary_url
        self.fallback_url = fallback_url
        self.base_currency = base_currency.upper()
        self.currencies = [c.upper() for c in currencies]
        self.ttl_seconds = ttl_seconds
        self._client = client or httpx.Client(timeout=timeout)
        self._clock = clock

        rates = {k.upper(): float(v) for k, v in (initial_rates or DEFAULT_RATES).items()}
        rates[self.base_currency] = 1.0
        self._rates: Dict[str, float] = rates
        self._last_refresh: Optional[float] = None
        self._last_updated: Optional[datetime] = None
        self._refreshing = False
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings, client: Optional[httpx.Client] = None) -> "ExchangeRateCache":
        return cls(
            primary_url=settings.exchange_rate_primary_url,
            fallback_url=settings.exchange_rate_fallback_url,
            base_currency=settings.base_currency,
            currencies=settings.supported_currencies,
            initial_rates=settings.fallback_rates,
            ttl_seconds=settings.exchange_rate_ttl_seconds,
            timeout=settings.exchange_rate_timeout_seconds,
            client=client,
        )

    @property
    def last_updated(self) -> Optional[datetime]:
        """Wall-clock time of the last successful refresh, None while on fallback rates."""
        with self._lock:
            return self._last_updated

    def is_stale(self) -> bool:
        with self._lock:
            last = self._last_refresh
        return last is None or self._clock() - last > self.ttl_seconds

    def get_rates(self) -> Dict[str, float]:
        """Return a copy of the current table, refreshing first if the TTL has passed."""
        if self.is_stale():
            self.refresh()
        with self._lock:
            return dict(self._rates)

    def refresh(self) -> bool:
        """
        Fetch and swap in a new table.

        Returns True when the table was replaced. Network, status and parse
        errors are logged and leave the current table untouched.
        """
        with self._lock:
            if self._refreshing:
                return False
            self._refreshing = True

        try:
            new_rates = self._fetch_rates()
            if new_rates is None:
                logger.warning("All exchange rate sources failed, serving stale rates")
                return False

            with self._lock:
                self._rates = new_rates
                self._last_refresh = self._clock()
                self._last_updated = datetime.now(timezone.utc)

            logger.info(
                "Exchange rates updated: %s",
                ", ".join(f"{code}={rate:.2f} {self.base_currency}" for code, rate in sorted(new_rates.items())),
            )
            return True
        finally:
            with self._lock:
                self._refreshing = False

    def close(self) -> None:
        self._client.close()

    def _fetch_rates(self) -> Optional[Dict[str, float]]:
        if self._client.is_closed:
            logger.warning("Exchange rate client is closed")
            return None
        for url in (self.primary_url, self.fallback_url):
            if not url:
                continue
            try:
                response = self._client.get(url)
                response.raise_for_status()
                return self._parse(response.json())
            except httpx.HTTPStatusError as e:
                logger.warning(f"Exchange rate source {url} returned status {e.response.status_code}")
            except httpx.HTTPError as e:
                logger.warning(f"Failed to fetch exchange rates from {url}: {e}")
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Invalid exchange rate payload from {url}: {e}")
        return None

    def _parse(self, payload) -> Dict[str, float]:
        """
        Invert a "1 base = X target" payload into "1 target = Y base".

        Payload shape: {"<base>": {"<currency-lowercase>": rate, ...}, ...}
        """
        quoted = payload.get(self.base_currency.lower())
        if not isinstance(quoted, dict):
            raise ValueError(f"missing '{self.base_currency.lower()}' rates")

        rates = {self.base_currency: 1.0}
        for code in self.currencies:
            if code == self.base_currency:
                continue
            value = quoted.get(code.lower())
            if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
                rates[code] = 1 / float(value)
        return rates
