"""Quote source adapters: one class per external price provider."""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import ValidationError

from patrimony.lib.api_client import (
    DIRECT_ONLY,
    DIRECT_THEN_RELAYS,
    RELAYS_ONLY,
    SEARCH_RELAYS,
    APIClient,
)
from patrimony.lib.api_models import (
    CoinbaseSpotResponse,
    CoinGeckoPriceResponse,
    CoinGeckoSearchResponse,
    CryptoComparePrice,
    FinnhubQuoteResponse,
    FinnhubSearchResponse,
    YahooChartResponse,
    YahooSearchResponse,
    has_yahoo_chart_price,
    has_yahoo_search_quote,
)
from patrimony.lib.config import (
    COINBASE_SPOT_URL,
    COINGECKO_IDS,
    COINGECKO_PRICE_URL,
    COINGECKO_SEARCH_URL,
    CRYPTOCOMPARE_PRICE_URL,
    FINNHUB_QUOTE_URL,
    FINNHUB_SEARCH_URL,
    SEARCH_MAX_RESULTS,
    SEARCH_MIN_QUERY_LENGTH,
    YAHOO_CHART_URL,
    YAHOO_SEARCH_URL,
)
from patrimony.lib.errors import (
    QuoteForbiddenError,
    QuoteNotFoundError,
    QuoteRateLimitError,
    QuoteSourceError,
)
from patrimony.lib.logging_config import get_logger
from patrimony.models.quote import Quote, SearchResult

logger = get_logger(__name__)

CRYPTO_INSTRUMENT_TYPE = "CRYPTOCURRENCY"


class QuoteSource(ABC):
    """A single price provider.

    ``fetch_quote`` returns a quote with a price or raises a
    ``QuoteSourceError`` subclass naming the failure. Adapters make one pass
    (over their relay chain, if any) and never retry.
    """

    name: str = ""

    def __init__(self, api_client: APIClient):
        self.api_client = api_client

    @abstractmethod
    async def fetch_quote(self, symbol: str) -> Quote:
        """Fetch the current quote for a normalized symbol."""


class CryptoCompareSource(QuoteSource):
    """CryptoCompare spot price, EUR denominated."""

    name = "cryptocompare"

    async def fetch_quote(self, symbol: str) -> Quote:
        data = await self.api_client.get_json(
            CRYPTOCOMPARE_PRICE_URL,
            params={"fsym": symbol, "tsyms": "EUR"},
            source=self.name,
        )
        try:
            response = CryptoComparePrice.model_validate(data)
        except ValidationError as e:
            raise QuoteNotFoundError(
                self.name, f"unexpected response: {e.error_count()} errors"
            ) from e

        if response.is_error or response.eur is None:
            message = response.message or "no EUR price"
            if "rate limit" in message.lower():
                raise QuoteRateLimitError(self.name, message)
            raise QuoteNotFoundError(self.name, message)

        return Quote(
            symbol=symbol,
            price=response.eur,
            currency="EUR",
            instrument_type=CRYPTO_INSTRUMENT_TYPE,
            source=self.name,
        )


class CoinbaseSource(QuoteSource):
    """Coinbase spot price against USD."""

    name = "coinbase"

    async def fetch_quote(self, symbol: str) -> Quote:
        data = await self.api_client.get_json(
            COINBASE_SPOT_URL.format(symbol=symbol), source=self.name
        )
        try:
            response = CoinbaseSpotResponse.model_validate(data)
        except ValidationError as e:
            raise QuoteNotFoundError(self.name, "unexpected response") from e

        if response.data is None or response.data.amount is None:
            raise QuoteNotFoundError(self.name, "no spot amount")

        return Quote(
            symbol=symbol,
            price=response.data.amount,
            currency=response.data.currency or "USD",
            instrument_type=CRYPTO_INSTRUMENT_TYPE,
            source=self.name,
        )


class CoinGeckoSource(QuoteSource):
    """CoinGecko simple price in EUR, after a symbol to coin-id lookup.

    Rate limited and frequently blocked, hence reached through relays.
    """

    name = "coingecko"

    async def resolve_coin_id(self, symbol: str) -> Optional[str]:
        """
        Map a ticker symbol to a CoinGecko coin id.

        Args:
            symbol: Uppercased crypto symbol

        Returns:
            Coin id or None if the search has no hit
        """
        if symbol in COINGECKO_IDS:
            return COINGECKO_IDS[symbol]

        data = await self.api_client.get_json(
            COINGECKO_SEARCH_URL,
            params={"query": symbol},
            relays=DIRECT_THEN_RELAYS,
            source=self.name,
        )
        try:
            coins = CoinGeckoSearchResponse.model_validate(data).coins
        except ValidationError as e:
            raise QuoteNotFoundError(self.name, "unexpected search response") from e
        return coins[0].id if coins else None

    async def fetch_quote(self, symbol: str) -> Quote:
        coin_id = await self.resolve_coin_id(symbol)
        if not coin_id:
            raise QuoteNotFoundError(self.name, f"symbol {symbol} not found")

        data = await self.api_client.get_json(
            COINGECKO_PRICE_URL,
            params={"ids": coin_id, "vs_currencies": "eur"},
            relays=DIRECT_THEN_RELAYS,
            source=self.name,
        )
        try:
            price = CoinGeckoPriceResponse.model_validate(data).price(coin_id)
        except ValidationError as e:
            raise QuoteNotFoundError(self.name, f"unexpected price response for {coin_id}") from e
        if price is None:
            raise QuoteNotFoundError(self.name, f"no EUR price for {coin_id}")

        return Quote(
            symbol=symbol,
            price=price,
            currency="EUR",
            instrument_type=CRYPTO_INSTRUMENT_TYPE,
            source=self.name,
        )


class FinnhubSource(QuoteSource):
    """Finnhub quote, token authenticated.

    The free tier mostly covers US primary listings; prices carry no
    currency and are taken as USD.
    """

    name = "finnhub"

    def __init__(self, api_client: APIClient, api_key: str = ""):
        super().__init__(api_client)
        self.api_key = api_key.strip()

    async def fetch_quote(self, symbol: str) -> Quote:
        if not self.api_key:
            raise QuoteForbiddenError(self.name, "no API key configured")

        data = await self.api_client.get_json(
            FINNHUB_QUOTE_URL,
            params={"symbol": symbol, "token": self.api_key},
            source=self.name,
        )
        try:
            response = FinnhubQuoteResponse.model_validate(data)
        except ValidationError as e:
            raise QuoteNotFoundError(self.name, "unexpected response") from e

        if not response.has_price:
            raise QuoteNotFoundError(self.name, f"no price for {symbol}")

        return Quote(symbol=symbol, price=response.current, currency="USD", source=self.name)


class YahooSource(QuoteSource):
    """Yahoo Finance chart and search endpoints, credential free, via relays.

    The chart gives the price in the native listing currency with exchange
    details; the search adds the long name and quote type. Also serves FX
    pairs such as ``EURUSD=X``.
    """

    name = "yahoo"

    async def fetch_quote(self, symbol: str, with_metadata: bool = True) -> Quote:
        """
        Fetch a quote from the chart endpoint, enriched by the search endpoint.

        Args:
            symbol: Normalized ticker or FX pair
            with_metadata: Also look up long name and quote type

        Returns:
            Quote in the listing currency
        """
        data = await self.api_client.get_json(
            YAHOO_CHART_URL.format(ticker=symbol),
            params={"interval": "1d", "range": "1d"},
            relays=RELAYS_ONLY,
            source=self.name,
            is_valid=has_yahoo_chart_price,
        )
        try:
            meta = YahooChartResponse.model_validate(data).meta
        except ValidationError as e:
            raise QuoteNotFoundError(self.name, "unexpected chart response") from e
        if meta is None or meta.regular_market_price is None:
            raise QuoteNotFoundError(self.name, f"no chart price for {symbol}")

        long_name = symbol
        instrument_type = meta.instrument_type
        if with_metadata:
            try:
                search = await self.fetch_search_metadata(symbol)
                if search is not None:
                    long_name, instrument_type = search[0], search[1] or instrument_type
            except QuoteSourceError as e:
                logger.warning(f"Yahoo metadata lookup failed for {symbol}, using ticker: {e}")

        return Quote(
            symbol=symbol,
            price=meta.regular_market_price,
            currency=meta.currency,
            instrument_type=instrument_type,
            exchange_timezone=meta.exchange_timezone_name,
            exchange_name=meta.exchange_name,
            long_name=long_name,
            source=self.name,
        )

    async def fetch_search_metadata(self, symbol: str) -> Optional[tuple[str, Optional[str]]]:
        """
        Look up a ticker's display name and quote type.

        Returns:
            (long name, quote type) of the first search hit, or None
        """
        data = await self.api_client.get_json(
            YAHOO_SEARCH_URL,
            params={"q": symbol, "quotesCount": 1, "newsCount": 0},
            relays=SEARCH_RELAYS,
            source=self.name,
            is_valid=has_yahoo_search_quote,
        )
        try:
            quotes = YahooSearchResponse.model_validate(data).quotes
        except ValidationError as e:
            raise QuoteNotFoundError(self.name, "unexpected search response") from e
        if not quotes:
            return None
        return quotes[0].display_name, quotes[0].quote_type


class SymbolSearch:
    """Autocomplete search over crypto and equity symbols.

    Independent of price resolution; failures yield empty results.
    """

    def __init__(self, api_client: APIClient, finnhub_api_key: str = ""):
        self.api_client = api_client
        self.finnhub_api_key = finnhub_api_key.strip()
        self.yahoo = YahooSource(api_client)

    async def search_crypto(self, query: str) -> list[SearchResult]:
        """
        Search crypto currencies on CoinGecko.

        Args:
            query: Free text (at least 2 characters)

        Returns:
            Up to 10 ranked matches
        """
        if len(query) < SEARCH_MIN_QUERY_LENGTH:
            return []
        try:
            async with self.api_client:
                data = await self.api_client.get_json(
                    COINGECKO_SEARCH_URL,
                    params={"query": query},
                    relays=DIRECT_THEN_RELAYS,
                    source=CoinGeckoSource.name,
                )
            coins = CoinGeckoSearchResponse.model_validate(data).coins
        except (QuoteSourceError, ValidationError) as e:
            logger.error(f"Error searching crypto '{query}': {e}")
            return []

        return [
            SearchResult(symbol=coin.symbol, name=coin.name, type="crypto")
            for coin in coins[:SEARCH_MAX_RESULTS]
        ]

    async def search_stocks(self, query: str) -> list[SearchResult]:
        """
        Search stocks and ETFs on Finnhub (requires an API key).

        Args:
            query: Free text (at least 2 characters)

        Returns:
            Up to 10 ranked matches, empty without API key
        """
        if not self.finnhub_api_key or len(query) < SEARCH_MIN_QUERY_LENGTH:
            return []
        try:
            async with self.api_client:
                data = await self.api_client.get_json(
                    FINNHUB_SEARCH_URL,
                    params={"q": query, "token": self.finnhub_api_key},
                    relays=DIRECT_ONLY,
                    source=FinnhubSource.name,
                )
            items = FinnhubSearchResponse.model_validate(data).result
        except (QuoteSourceError, ValidationError) as e:
            logger.error(f"Error searching stocks '{query}': {e}")
            return []

        return [
            SearchResult(symbol=item.symbol, name=item.description, type="stock")
            for item in items[:SEARCH_MAX_RESULTS]
        ]

    async def get_stock_name(self, ticker: str) -> Optional[str]:
        """
        Find a display name for a ticker.

        Tries the Finnhub search (exact symbol match, else first hit) when an
        API key is configured, then the Yahoo long name.

        Args:
            ticker: Stock ticker

        Returns:
            Display name or None
        """
        clean_ticker = ticker.strip().upper()

        if self.finnhub_api_key:
            results = await self.search_stocks(clean_ticker)
            match = next((r for r in results if r.symbol == clean_ticker), None)
            if match:
                return match.name
            if results:
                return results[0].name

        try:
            async with self.api_client:
                quote = await self.yahoo.fetch_quote(clean_ticker)
        except QuoteSourceError as e:
            logger.warning(f"Yahoo name lookup failed for {clean_ticker}: {e}")
            return None

        return quote.long_name
