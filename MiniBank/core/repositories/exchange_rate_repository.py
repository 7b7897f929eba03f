"""
Exchange Rate Repository
Display-only conversion rates (exchange_rates.txt: USD, EUR, SAR, one per line)
"""

from decimal import Decimal, InvalidOperation
from typing import List
import logging

from core.repositories.base_repository import BaseRepository
from core.models.entities import ExchangeRates
from db.database import FileManager
from utils.helpers import NumberUtils
from utils.exceptions import ValidationException

logger = logging.getLogger(__name__)

EXCHANGE_RATES_FILE = 'exchange_rates.txt'

class ExchangeRateRepository(BaseRepository):
    """Holds the current OMR conversion rates; missing or bad lines keep defaults"""

    def __init__(self, storage: FileManager):
        super().__init__(storage, EXCHANGE_RATES_FILE)
        self.rates = ExchangeRates()

    def _serialize(self) -> List[str]:
        return [NumberUtils.format_amount(r) for r in (self.rates.usd, self.rates.eur, self.rates.sar)]

    def _deserialize(self, lines: List[str]) -> None:
        rates = ExchangeRates()
        if len(lines) >= 3:
            for name, text in zip(('usd', 'eur', 'sar'), lines):
                try:
                    value = Decimal(text.strip())
                except InvalidOperation:
                    logger.warning(f"Keeping default {name.upper()} rate, cannot read {text!r}")
                    continue
                if value.is_finite() and value > 0:
                    setattr(rates, name, value)
        self.rates = rates

    def update(self, usd: Decimal, eur: Decimal, sar: Decimal) -> ExchangeRates:
        """Replace all three rates; each must be a positive number"""
        for value in (usd, eur, sar):
            if not isinstance(value, Decimal) or not value.is_finite() or value <= 0:
                raise ValidationException("Exchange rates must be positive numbers")
        with self._lock:
            self.rates = ExchangeRates(usd=usd, eur=eur, sar=sar)
            self.save()
        return self.rates

    def convert(self, amount: Decimal) -> dict:
        """An OMR amount in each supported currency"""
        return {
            'OMR': NumberUtils.round_currency(amount),
            'USD': NumberUtils.round_currency(amount * self.rates.usd),
            'EUR': NumberUtils.round_currency(amount * self.rates.eur),
            'SAR': NumberUtils.round_currency(amount * self.rates.sar)
        }

    def clear(self):
        with self._lock:
            self.rates = ExchangeRates()
