"""Currency normalization with a static rate table and one live EUR/USD rate."""

from dataclasses import dataclass
from typing import Optional

from patrimony.lib.config import (
    BASE_CURRENCY,
    CURRENCY_SYMBOLS,
    EURUSD_FX_TICKER,
    MINOR_CURRENCY_UNITS,
    STATIC_EXCHANGE_RATES,
)
from patrimony.lib.errors import InvalidCurrencyError
from patrimony.lib.logging_config import get_logger
from patrimony.models.quote import Quote
from patrimony.services.price_resolver import PriceResolver

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConvertedAmount:
    """
    Result of a conversion.

    Attributes:
        value: Converted amount (or the input, when no rate was known)
        currency: Currency ``value`` is expressed in
        stale: True when the amount was passed through without a known rate
    """

    value: float
    currency: str
    stale: bool = False


def split_minor_unit(currency: str) -> tuple[str, float]:
    """
    Resolve minor currency units (e.g. London quotes in pence).

    Args:
        currency: Currency code as quoted (GBp, GBX, USD...)

    Returns:
        (major currency code, divisor)
    """
    if currency in MINOR_CURRENCY_UNITS:
        return MINOR_CURRENCY_UNITS[currency]
    return currency.upper(), 1


class ExchangeRateTable:
    """EUR value of one unit of each known currency.

    Starts from a static snapshot; live rates overwrite individual entries.
    Currencies absent from the table have no factor.
    """

    def __init__(self, rates: Optional[dict[str, float]] = None):
        """
        Initialize rate table.

        Args:
            rates: Currency → EUR factor (default: static bootstrap snapshot)
        """
        self._rates = dict(STATIC_EXCHANGE_RATES if rates is None else rates)
        self._rates[BASE_CURRENCY] = 1.0
        self._live: set[str] = set()

    def factor(self, currency: str) -> Optional[float]:
        return self._rates.get(currency.upper())

    def update(self, currency: str, factor: float, live: bool = True) -> None:
        """
        Set the EUR factor of a currency.

        Raises:
            InvalidCurrencyError: Code is not 3 letters or factor is not positive
        """
        code = currency.upper()
        if len(code) != 3 or not code.isalpha():
            raise InvalidCurrencyError(currency)
        if factor <= 0:
            raise InvalidCurrencyError(currency, f"Exchange rate must be positive, got {factor}")

        self._rates[code] = factor
        if live:
            self._live.add(code)

    def is_live(self, currency: str) -> bool:
        return currency.upper() in self._live

    def currencies(self) -> list[str]:
        return sorted(self._rates)


class CurrencyConverter:
    """Converts quote currencies to EUR and EUR to the reporting currency.

    Conversion is best effort: an unknown currency passes through
    unconverted with ``stale=True`` instead of failing the computation.
    The live EUR/USD rate is fetched once per converter; every other
    currency stays on the static table.
    """

    def __init__(
        self,
        resolver: Optional[PriceResolver] = None,
        rate_table: Optional[ExchangeRateTable] = None,
        reporting_currency: str = BASE_CURRENCY,
    ):
        """
        Initialize currency converter.

        Args:
            resolver: Price resolver used for the live FX quote
            rate_table: Rate table (default: static snapshot)
            reporting_currency: Display currency
        """
        self.resolver = resolver
        self.rates = rate_table or ExchangeRateTable()
        self.reporting_currency = reporting_currency.upper()
        self._live_attempted = False

    async def refresh_live_rates(self) -> bool:
        """
        Fetch the live EUR/USD rate and store the USD factor.

        Returns:
            True if the live rate was applied, False if the static rate stays
        """
        self._live_attempted = True
        if self.resolver is None:
            return False

        result = await self.resolver.get_fx_quote(EURUSD_FX_TICKER)
        usd_per_eur = result.price
        if not usd_per_eur:
            logger.warning(
                f"Live EUR/USD unavailable ({result.error_message}), "
                f"keeping static USD rate {self.rates.factor('USD')}"
            )
            return False

        self.rates.update("USD", 1 / usd_per_eur)
        logger.info(f"Live EUR/USD = {usd_per_eur:.4f} (1 USD = {1 / usd_per_eur:.4f} EUR)")
        return True

    async def ensure_live_rates(self) -> bool:
        """Fetch the live rate on first call only; later calls report the outcome."""
        if self._live_attempted:
            return self.rates.is_live("USD")
        return await self.refresh_live_rates()

    def to_eur(self, amount: float, currency: Optional[str]) -> ConvertedAmount:
        """
        Convert an amount to EUR.

        Args:
            amount: Amount in ``currency``
            currency: Quote currency (None means already in EUR)

        Returns:
            ConvertedAmount, stale when no factor is known
        """
        if currency is None or currency.upper() == BASE_CURRENCY:
            return ConvertedAmount(amount, BASE_CURRENCY)

        code, divisor = split_minor_unit(currency)
        amount = amount / divisor

        factor = self.rates.factor(code)
        if factor is None:
            logger.debug(f"No rate for {code}, passing {amount} through unconverted")
            return ConvertedAmount(amount, code, stale=True)

        return ConvertedAmount(amount * factor, BASE_CURRENCY)

    def eur_factor(self, currency: Optional[str]) -> tuple[float, bool]:
        """
        Multiplier turning one unit of ``currency`` into EUR.

        Returns:
            (factor, stale); factor is 1 when the rate is unknown
        """
        converted = self.to_eur(1.0, currency)
        return converted.value, converted.stale

    def normalize_quote(self, quote: Quote) -> Optional[ConvertedAmount]:
        """EUR value of a quote's unit price, None when the quote has no price."""
        if quote.price is None:
            return None
        return self.to_eur(quote.price, quote.currency)

    def to_reporting(self, value_in_eur: float) -> ConvertedAmount:
        """
        Convert a EUR amount to the reporting currency.

        Returns:
            ConvertedAmount, the EUR value unconverted and stale when unknown
        """
        if self.reporting_currency == BASE_CURRENCY:
            return ConvertedAmount(value_in_eur, BASE_CURRENCY)

        factor = self.rates.factor(self.reporting_currency)
        if factor is None:
            return ConvertedAmount(value_in_eur, BASE_CURRENCY, stale=True)

        return ConvertedAmount(value_in_eur / factor, self.reporting_currency)

    def format_value(self, value_in_eur: float) -> str:
        """
        Format a EUR amount in the reporting currency, French style.

        Example:
            1234.5 EUR → "1 234,50 €"
        """
        converted = self.to_reporting(value_in_eur)
        decimals = 0 if converted.currency == "JPY" else 2
        number = f"{converted.value:,.{decimals}f}".replace(",", " ").replace(".", ",")
        symbol = CURRENCY_SYMBOLS.get(converted.currency, converted.currency)
        return f"{number} {symbol}"
