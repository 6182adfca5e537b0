"""Unit tests for quote source adapters and symbol search."""

from unittest.mock import AsyncMock, patch

import pytest

from patrimony.lib.api_client import RELAYS_ONLY, APIClient
from patrimony.lib.errors import (
    QuoteForbiddenError,
    QuoteNotFoundError,
    QuoteRateLimitError,
)
from patrimony.services.quote_sources import (
    CoinbaseSource,
    CoinGeckoSource,
    CryptoCompareSource,
    FinnhubSource,
    SymbolSearch,
    YahooSource,
)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def yahoo_chart():
    return {
        "chart": {
            "result": [
                {
                    "meta": {
                        "symbol": "MC.PA",
                        "regularMarketPrice": 712.4,
                        "currency": "EUR",
                        "exchangeTimezoneName": "Europe/Paris",
                        "exchangeName": "PAR",
                        "instrumentType": "EQUITY",
                    }
                }
            ],
            "error": None,
        }
    }


@pytest.fixture
def yahoo_search():
    return {
        "quotes": [{"symbol": "MC.PA", "longname": "LVMH Moët Hennessy", "quoteType": "EQUITY"}]
    }


@pytest.mark.unit
@pytest.mark.asyncio
class TestCryptoSources:
    """Test suite for crypto adapters."""

    async def test_cryptocompare_eur_price(self, api_client):
        source = CryptoCompareSource(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"EUR": 58_000.5}
            quote = await source.fetch_quote("BTC")

        assert quote.price == 58_000.5
        assert quote.currency == "EUR"
        assert quote.source == "cryptocompare"
        assert mock_get.call_args.kwargs["params"] == {"fsym": "BTC", "tsyms": "EUR"}

    async def test_cryptocompare_rate_limit_message(self, api_client):
        source = CryptoCompareSource(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"Response": "Error", "Message": "You are over your rate limit"}
            with pytest.raises(QuoteRateLimitError):
                await source.fetch_quote("BTC")

    async def test_cryptocompare_unknown_symbol(self, api_client):
        source = CryptoCompareSource(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"Response": "Error", "Message": "fsym is not a valid coin"}
            with pytest.raises(QuoteNotFoundError):
                await source.fetch_quote("NOPE")

    async def test_cryptocompare_error_without_message(self, api_client):
        source = CryptoCompareSource(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"Response": "Error", "EUR": 1.0}
            with pytest.raises(QuoteNotFoundError):
                await source.fetch_quote("BTC")

    async def test_coinbase_usd_price(self, api_client):
        source = CoinbaseSource(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {
                "data": {"amount": "64000.12", "currency": "USD", "base": "BTC"}
            }
            quote = await source.fetch_quote("BTC")

        assert quote.price == pytest.approx(64_000.12)
        assert quote.currency == "USD"
        assert "BTC-USD" in mock_get.call_args.args[0]

    async def test_coinbase_missing_amount(self, api_client):
        source = CoinbaseSource(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"errors": [{"id": "not_found"}]}
            with pytest.raises(QuoteNotFoundError):
                await source.fetch_quote("NOPE")

    async def test_coingecko_known_id_skips_search(self, api_client):
        source = CoinGeckoSource(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"bitcoin": {"eur": 57_500}}
            quote = await source.fetch_quote("BTC")

        assert quote.price == 57_500
        assert quote.currency == "EUR"
        mock_get.assert_called_once()

    async def test_coingecko_search_then_price(self, api_client):
        source = CoinGeckoSource(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = [
                {"coins": [{"id": "pepe", "symbol": "PEPE", "name": "Pepe"}]},
                {"pepe": {"eur": 0.00001}},
            ]
            quote = await source.fetch_quote("PEPE")

        assert quote.price == 0.00001
        assert mock_get.call_args_list[1].kwargs["params"]["ids"] == "pepe"

    async def test_coingecko_null_price_is_not_found(self, api_client):
        source = CoinGeckoSource(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"bitcoin": None}
            with pytest.raises(QuoteNotFoundError):
                await source.fetch_quote("BTC")

    async def test_coingecko_no_search_hit(self, api_client):
        source = CoinGeckoSource(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"coins": []}
            with pytest.raises(QuoteNotFoundError):
                await source.fetch_quote("ZZZZ")


@pytest.mark.unit
@pytest.mark.asyncio
class TestEquitySources:
    """Test suite for equity adapters."""

    async def test_finnhub_without_key_is_forbidden(self, api_client):
        source = FinnhubSource(api_client, api_key="")
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            with pytest.raises(QuoteForbiddenError):
                await source.fetch_quote("AAPL")
            mock_get.assert_not_called()

    async def test_finnhub_price(self, api_client):
        source = FinnhubSource(api_client, api_key="secret")
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"c": 189.5, "pc": 188.0}
            quote = await source.fetch_quote("AAPL")

        assert quote.price == 189.5
        assert quote.currency == "USD"
        assert mock_get.call_args.kwargs["params"]["token"] == "secret"

    async def test_finnhub_zero_price_is_not_found(self, api_client):
        source = FinnhubSource(api_client, api_key="secret")
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"c": 0, "pc": 0}
            with pytest.raises(QuoteNotFoundError):
                await source.fetch_quote("MC.PA")

    async def test_yahoo_quote_with_metadata(self, api_client, yahoo_chart, yahoo_search):
        source = YahooSource(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = [yahoo_chart, yahoo_search]
            quote = await source.fetch_quote("MC.PA")

        assert quote.price == 712.4
        assert quote.currency == "EUR"
        assert quote.exchange_timezone == "Europe/Paris"
        assert quote.long_name == "LVMH Moët Hennessy"
        assert quote.instrument_type == "EQUITY"
        assert mock_get.call_args_list[0].kwargs["relays"] == RELAYS_ONLY

    async def test_yahoo_search_failure_keeps_price(self, api_client, yahoo_chart):
        """A failed metadata lookup falls back to the ticker as name."""
        source = YahooSource(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = [yahoo_chart, QuoteNotFoundError("yahoo", "blocked")]
            quote = await source.fetch_quote("MC.PA")

        assert quote.price == 712.4
        assert quote.long_name == "MC.PA"

    async def test_yahoo_without_metadata_makes_one_call(self, api_client, yahoo_chart):
        source = YahooSource(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = yahoo_chart
            await source.fetch_quote("EURUSD=X", with_metadata=False)

        mock_get.assert_called_once()

    async def test_yahoo_empty_chart(self, api_client):
        source = YahooSource(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"chart": {"result": [], "error": None}}
            with pytest.raises(QuoteNotFoundError):
                await source.fetch_quote("NOPE")


@pytest.mark.unit
@pytest.mark.asyncio
class TestSymbolSearch:
    """Test suite for SymbolSearch."""

    async def test_short_query_returns_nothing(self, api_client):
        search = SymbolSearch(api_client, "secret")
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            assert await search.search_crypto("b") == []
            assert await search.search_stocks("a") == []
            mock_get.assert_not_called()

    async def test_stock_search_requires_key(self, api_client):
        search = SymbolSearch(api_client, "")
        assert await search.search_stocks("apple") == []

    async def test_crypto_search_capped_at_ten(self, api_client):
        search = SymbolSearch(api_client)
        coins = [{"id": f"c{i}", "symbol": f"C{i}", "name": f"Coin {i}"} for i in range(15)]
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"coins": coins}
            results = await search.search_crypto("coin")

        assert len(results) == 10
        assert results[0].symbol == "C0"
        assert results[0].type == "crypto"

    async def test_search_failure_is_empty(self, api_client):
        search = SymbolSearch(api_client, "secret")
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = QuoteRateLimitError("finnhub", "HTTP 429")
            assert await search.search_stocks("apple") == []

    async def test_stock_name_prefers_exact_match(self, api_client):
        search = SymbolSearch(api_client, "secret")
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {
                "count": 2,
                "result": [
                    {"symbol": "AAPL.MX", "description": "APPLE INC (MX)"},
                    {"symbol": "AAPL", "description": "APPLE INC"},
                ],
            }
            assert await search.get_stock_name("aapl") == "APPLE INC"

    async def test_stock_name_falls_back_to_yahoo(self, api_client, yahoo_chart, yahoo_search):
        search = SymbolSearch(api_client)
        with patch.object(api_client, "get_json", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = [yahoo_chart, yahoo_search]
            assert await search.get_stock_name("MC.PA") == "LVMH Moët Hennessy"
