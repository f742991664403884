"""
Currency API endpoints.
"""

from fastapi import APIRouter, Depends

from app.config import settings
from app.dependencies import get_rate_cache
from app.schemas.currency import ExchangeRatesResponse, CurrencyList
from app.services.exchange_rate_service import ExchangeRateCache

router = APIRouter(prefix="/currency", tags=["currency"])


@router.get("/exchange-rates", response_model=ExchangeRatesResponse)
def get_exchange_rates(rates: ExchangeRateCache = Depends(get_rate_cache)):
    """Current rates expressed in the base currency."""
    return ExchangeRatesResponse(
        base_currency=rates.base_currency,
        rates=rates.get_rates(),
        last_updated=rates.last_updated,
    )


@router.post("/exchange-rates/refresh", response_model=ExchangeRatesResponse)
def refresh_exchange_rates(rates: ExchangeRateCache = Depends(get_rate_cache)):
    """Force a refresh; on failure the previous rates are returned."""
    rates.refresh()
    return ExchangeRatesResponse(
        base_currency=rates.base_currency,
        rates=rates.get_rates(),
        last_updated=rates.last_updated,
    )


@router.get("/currencies", response_model=CurrencyList)
def get_currencies():
    """Supported currency codes."""
    return CurrencyList(currencies=settings.supported_currencies)
