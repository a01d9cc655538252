from datetime import date
from decimal import Decimal

from fund_nav_engine.domain.exchange_rates import ExchangeRate
from fund_nav_engine.domain.value_objects import normalize_currency
from fund_nav_engine.logging_config import get_logger
from fund_nav_engine.repositories.interfaces import ExchangeRateRepository
from fund_nav_engine.services.interfaces import CurrencyService

logger = get_logger(__name__)


class CurrencyServiceImpl(CurrencyService):
    def __init__(self, exchange_rate_repo: ExchangeRateRepository) -> None:
        self._repo = exchange_rate_repo

    def add_rate(self, rate: ExchangeRate) -> None:
        self._repo.add(rate)
        logger.info(
            "exchange_rate_added",
            pair=f"{rate.from_currency}/{rate.to_currency}",
            rate=str(rate.rate),
            rate_date=rate.rate_date.isoformat(),
        )

    def get_rate(
        self, from_currency: str, to_currency: str, as_of: date
    ) -> Decimal | None:
        from_currency = normalize_currency(from_currency)
        to_currency = normalize_currency(to_currency)
        if from_currency == to_currency:
            return Decimal("1")

        rate = self._repo.get_latest_rate(from_currency, to_currency, as_of)
        if rate is not None:
            return rate.rate

        inverse = self._repo.get_latest_rate(to_currency, from_currency, as_of)
        if inverse is not None:
            return inverse.inverse_rate

        return None
