"""
Currency schemas.
"""

from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import datetime


class ExchangeRatesResponse(BaseModel):
    base_currency: str
    rates: Dict[str, float]
    last_updated: Optional[datetime] = None


class CurrencyList(BaseModel):
    currencies: List[str]
