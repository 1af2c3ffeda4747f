"""
Exchange-rate lookup.

Fetches the USD to target-currency rate from a public rates API.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_type
from typing import Optional

import requests

from usage_dashboard.core.currency import is_valid_rate

logger = logging.getLogger(__name__)


class ExchangeRateError(Exception):
    """Raised when a rate cannot be fetched or parsed."""


@dataclass(frozen=True)
class ExchangeRate:
    date: str
    rate: float


class ExchangeRateClient:
    """Client for ``exchangerate-api.com`` style ``latest/USD`` endpoints.

    The endpoint only serves the latest rates, so the requested date is
    echoed back rather than used to pick a historical rate.
    """

    def __init__(self, url: str, currency_code: str = "INR", timeout: float = 10.0):
        self.url = url
        self.currency_code = currency_code
        self.timeout = timeout

    def get_rate(self, date: Optional[str] = None) -> ExchangeRate:
        """Fetch the USD rate for ``currency_code``.

        Args:
            date: ISO date the rate is requested for (defaults to today)

        Returns:
            ExchangeRate for the date

        Raises:
            ExchangeRateError: On any network, HTTP or payload problem
        """
        date = date or date_type.today().isoformat()
        try:
            response = requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise ExchangeRateError(f"Failed to fetch exchange rate: {e}") from e
        except ValueError as e:
            raise ExchangeRateError(f"Exchange rate response is not JSON: {e}") from e

        rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(rates, dict) or self.currency_code not in rates:
            raise ExchangeRateError(f"No {self.currency_code} rate in exchange rate response")

        try:
            rate = float(rates[self.currency_code])
        except (TypeError, ValueError) as e:
            raise ExchangeRateError(f"Invalid {self.currency_code} rate: {e}") from e
        if not is_valid_rate(rate):
            raise ExchangeRateError(f"Invalid {self.currency_code} rate: {rate}")

        logger.debug("USD/%s rate for %s: %s", self.currency_code, date, rate)
        return ExchangeRate(date=date, rate=rate)
