"""Unit tests for CurrencyConverter."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from patrimony.lib.errors import InvalidCurrencyError, QuoteFailure
from patrimony.models.quote import Quote, QuoteResult
from patrimony.services.currency_converter import (
    CurrencyConverter,
    ExchangeRateTable,
    split_minor_unit,
)


@pytest.fixture
def converter():
    return CurrencyConverter(rate_table=ExchangeRateTable({"USD": 0.92, "GBP": 1.17}))


@pytest.mark.unit
class TestExchangeRateTable:
    """Test suite for ExchangeRateTable."""

    def test_eur_is_always_one(self):
        table = ExchangeRateTable({"EUR": 3.0})
        assert table.factor("eur") == 1.0

    def test_static_snapshot_by_default(self):
        table = ExchangeRateTable()
        assert table.factor("USD") == pytest.approx(0.918)
        assert not table.is_live("USD")

    def test_update_marks_live(self):
        table = ExchangeRateTable()
        table.update("usd", 0.9)

        assert table.factor("USD") == 0.9
        assert table.is_live("USD")

    @pytest.mark.parametrize(
        ("currency", "factor"), [("US", 1.0), ("U$D", 1.0), ("USD", 0), ("USD", -1)]
    )
    def test_update_rejects_bad_input(self, currency, factor):
        with pytest.raises(InvalidCurrencyError):
            ExchangeRateTable().update(currency, factor)

    def test_minor_units(self):
        assert split_minor_unit("GBp") == ("GBP", 100)
        assert split_minor_unit("GBX") == ("GBP", 100)
        assert split_minor_unit("usd") == ("USD", 1)


@pytest.mark.unit
class TestConversion:
    """Test suite for EUR normalization."""

    def test_usd_to_eur(self, converter):
        """100 USD at 0.92 is 92 EUR."""
        converted = converter.to_eur(100, "USD")

        assert converted.value == pytest.approx(92.0)
        assert converted.currency == "EUR"
        assert not converted.stale

    def test_unknown_currency_passes_through_stale(self, converter):
        converted = converter.to_eur(100, "XYZ")

        assert converted.value == 100
        assert converted.stale

    def test_missing_currency_means_eur(self, converter):
        converted = converter.to_eur(100, None)

        assert converted.value == 100
        assert not converted.stale

    def test_pence_are_scaled(self, converter):
        converted = converter.to_eur(250, "GBp")
        assert converted.value == pytest.approx(2.5 * 1.17)

    def test_eur_factor(self, converter):
        assert converter.eur_factor("USD") == (pytest.approx(0.92), False)
        assert converter.eur_factor("XYZ") == (1.0, True)

    def test_normalize_quote(self, converter):
        quote = Quote(symbol="AAPL", price=200, currency="USD")
        assert converter.normalize_quote(quote).value == pytest.approx(184.0)
        assert converter.normalize_quote(Quote(symbol="X")) is None

    def test_reporting_currency(self):
        converter = CurrencyConverter(
            rate_table=ExchangeRateTable({"USD": 0.8}), reporting_currency="usd"
        )
        converted = converter.to_reporting(80)

        assert converted.value == pytest.approx(100)
        assert converted.currency == "USD"

    def test_unknown_reporting_currency_stays_eur(self):
        converter = CurrencyConverter(reporting_currency="XYZ")
        converted = converter.to_reporting(50)

        assert converted.value == 50
        assert converted.currency == "EUR"
        assert converted.stale

    def test_format_value_french_style(self, converter):
        assert converter.format_value(1234.5) == "1 234,50 €"

    def test_format_value_jpy_without_decimals(self):
        converter = CurrencyConverter(
            rate_table=ExchangeRateTable({"JPY": 0.005}), reporting_currency="JPY"
        )
        assert converter.format_value(10) == "2 000 ¥"


@pytest.mark.unit
@pytest.mark.asyncio
class TestLiveRates:
    """Test suite for the live EUR/USD refresh."""

    async def test_live_rate_replaces_static_usd(self):
        resolver = MagicMock()
        resolver.get_fx_quote = AsyncMock(
            return_value=QuoteResult.success(Quote(symbol="EURUSD=X", price=1.25, currency="USD"))
        )
        converter = CurrencyConverter(resolver)

        assert await converter.refresh_live_rates()
        assert converter.to_eur(100, "USD").value == pytest.approx(80.0)
        assert converter.rates.is_live("USD")

    async def test_failed_live_rate_keeps_static(self):
        resolver = MagicMock()
        resolver.get_fx_quote = AsyncMock(
            return_value=QuoteResult.failure(QuoteFailure.NETWORK_ERROR, "relays down")
        )
        converter = CurrencyConverter(resolver)

        assert not await converter.refresh_live_rates()
        assert converter.to_eur(100, "USD").value == pytest.approx(91.8)

    async def test_ensure_live_rates_fetches_once(self):
        resolver = MagicMock()
        resolver.get_fx_quote = AsyncMock(
            return_value=QuoteResult.success(Quote(symbol="EURUSD=X", price=1.1, currency="USD"))
        )
        converter = CurrencyConverter(resolver)

        await converter.ensure_live_rates()
        assert await converter.ensure_live_rates()
        resolver.get_fx_quote.assert_awaited_once()

    async def test_no_resolver_keeps_static(self):
        assert not await CurrencyConverter().refresh_live_rates()
