"""Price resolution engine: adapter ordering, caching and per-holding results."""

import asyncio
from typing import Iterable, Optional, Sequence, assert_never

from patrimony.lib.api_client import APIClient
from patrimony.lib.cache import QuoteCache
from patrimony.lib.errors import QuoteFailure, QuoteNotFoundError, QuoteSourceError
from patrimony.lib.logging_config import get_logger
from patrimony.models.holding import (
    CryptoHolding,
    CurrentAccountHolding,
    Holding,
    RealEstateHolding,
    SavingsHolding,
    StockHolding,
)
from patrimony.models.quote import Quote, QuoteResult
from patrimony.services.quote_sources import (
    CoinbaseSource,
    CoinGeckoSource,
    CryptoCompareSource,
    FinnhubSource,
    QuoteSource,
    YahooSource,
)

logger = get_logger(__name__)

CRYPTO_KIND = "crypto"
STOCK_KIND = "stock"
FX_KIND = "fx"


def price_key(holding: Holding) -> Optional[tuple[str, str]]:
    """
    Identify what a holding needs priced.

    Args:
        holding: Any holding

    Returns:
        (kind, normalized symbol) for crypto and listed stocks, None for
        holdings valued from their stored snapshot
    """
    match holding:
        case CryptoHolding():
            return CRYPTO_KIND, holding.normalized_symbol
        case StockHolding():
            if not holding.is_priced:
                return None
            return STOCK_KIND, holding.normalized_ticker
        case SavingsHolding() | CurrentAccountHolding() | RealEstateHolding():
            return None
        case _:
            assert_never(holding)


def price_identity(holdings: Iterable[Holding]) -> tuple[tuple[str, str], ...]:
    """
    Identity of a holdings set for refresh purposes.

    Two sets with the same priced symbols share an identity, so edits that
    do not touch a ticker or symbol do not force a refetch.
    """
    keys = {key for key in (price_key(h) for h in holdings) if key is not None}
    return tuple(sorted(keys))


class PriceResolver:
    """Resolves live prices for holdings through ordered quote sources.

    Strategy:
    - Crypto: CryptoCompare → Coinbase → CoinGecko, first success wins
    - Stocks with an exchange suffix, or without a Finnhub key: Yahoo first,
      Finnhub only as a keyed backup
    - Other stocks: Finnhub first, then Yahoo

    Quotes are cached per (kind, symbol) for a few seconds. Batch lookups run
    concurrently and merge into ``results`` keyed by holding id; a failing
    lookup only marks its own holding.
    """

    def __init__(
        self,
        api_client: Optional[APIClient] = None,
        finnhub_api_key: str = "",
        cache: Optional[QuoteCache[Quote]] = None,
        crypto_sources: Optional[Sequence[QuoteSource]] = None,
        finnhub: Optional[QuoteSource] = None,
        yahoo: Optional[YahooSource] = None,
    ):
        """
        Initialize price resolver.

        Args:
            api_client: Shared HTTP client (one is created if omitted)
            finnhub_api_key: Optional Finnhub credential
            cache: Quote cache (default: 10 second TTL, monotonic clock)
            crypto_sources: Ordered crypto sources (default: CryptoCompare, Coinbase, CoinGecko)
            finnhub: Credentialed equity source
            yahoo: Credential-free equity and FX source
        """
        self.api_client = api_client or APIClient()
        self.finnhub_api_key = finnhub_api_key.strip()
        self.cache: QuoteCache[Quote] = cache if cache is not None else QuoteCache()

        if crypto_sources is None:
            crypto_sources = [
                CryptoCompareSource(self.api_client),
                CoinbaseSource(self.api_client),
                CoinGeckoSource(self.api_client),
            ]
        self.crypto_sources: list[QuoteSource] = list(crypto_sources)
        self.finnhub: QuoteSource = finnhub or FinnhubSource(self.api_client, self.finnhub_api_key)
        self.yahoo: YahooSource = yahoo or YahooSource(self.api_client)

        # Latest outcome per holding id, overwritten by each completed lookup
        self.results: dict[str, QuoteResult] = {}
        self._in_flight: dict[tuple[str, str], asyncio.Task[QuoteResult]] = {}

    def stock_source_order(self, ticker: str) -> list[QuoteSource]:
        """
        Order equity sources by ticker shape.

        Finnhub's free tier reliably covers only primary US listings, Yahoo
        covers international tickers better.

        Args:
            ticker: Normalized ticker

        Returns:
            Sources to try, in order
        """
        if "." in ticker or not self.finnhub_api_key:
            order: list[QuoteSource] = [self.yahoo]
            if self.finnhub_api_key:
                order.append(self.finnhub)
            return order
        return [self.finnhub, self.yahoo]

    async def _first_success(self, sources: Sequence[QuoteSource], symbol: str) -> Quote:
        """Walk sources in order; return the first quote, else raise the last failure."""
        last_error: Optional[QuoteSourceError] = None

        for source in sources:
            try:
                quote = await source.fetch_quote(symbol)
            except QuoteSourceError as e:
                logger.warning(f"{source.name} failed for {symbol}: {e.message}")
                last_error = e
                continue

            logger.debug(f"Resolved {symbol} from {source.name}: {quote.price} {quote.currency}")
            return quote

        if last_error is None:
            last_error = QuoteNotFoundError("resolver", f"no source configured for {symbol}")
        raise last_error

    async def _resolve_cached(
        self, kind: str, symbol: str, sources: Sequence[QuoteSource]
    ) -> QuoteResult:
        cached = self.cache.get(kind, symbol)
        if cached is not None:
            return QuoteResult.success(cached)

        # Concurrent lookups of one symbol share a single source walk
        key = (kind, symbol)
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_cache(kind, symbol, sources))
            self._in_flight[key] = task
            task.add_done_callback(lambda _: self._in_flight.pop(key, None))
        return await task

    async def _fetch_and_cache(
        self, kind: str, symbol: str, sources: Sequence[QuoteSource]
    ) -> QuoteResult:
        try:
            async with self.api_client:
                quote = await self._first_success(sources, symbol)
        except QuoteSourceError as e:
            return QuoteResult.failure(e.reason, e.message)

        self.cache.set(kind, symbol, quote)
        return QuoteResult.success(quote)

    async def get_crypto_price(self, symbol: str) -> QuoteResult:
        """
        Resolve a crypto spot price.

        Args:
            symbol: Crypto symbol, any case

        Returns:
            QuoteResult with the quote or the last source's failure
        """
        clean_symbol = symbol.strip().upper()
        if not clean_symbol:
            return QuoteResult.failure(QuoteFailure.NOT_FOUND, "empty symbol")
        return await self._resolve_cached(CRYPTO_KIND, clean_symbol, self.crypto_sources)

    async def get_stock_price(self, ticker: str) -> QuoteResult:
        """
        Resolve an equity or ETF quote.

        Args:
            ticker: Ticker, optionally with an exchange suffix (e.g. MC.PA)

        Returns:
            QuoteResult with the quote or the last source's failure
        """
        clean_ticker = ticker.strip().upper()
        if not clean_ticker:
            return QuoteResult.failure(QuoteFailure.NOT_FOUND, "empty ticker")
        return await self._resolve_cached(
            STOCK_KIND, clean_ticker, self.stock_source_order(clean_ticker)
        )

    async def get_fx_quote(self, pair: str) -> QuoteResult:
        """
        Resolve an FX pair through Yahoo (e.g. EURUSD=X: USD per EUR).

        Args:
            pair: Yahoo FX ticker

        Returns:
            QuoteResult with the rate as price
        """
        clean_pair = pair.strip().upper()
        cached = self.cache.get(FX_KIND, clean_pair)
        if cached is not None:
            return QuoteResult.success(cached)

        try:
            async with self.api_client:
                quote = await self.yahoo.fetch_quote(clean_pair, with_metadata=False)
        except QuoteSourceError as e:
            logger.warning(f"FX quote {clean_pair} unavailable: {e.message}")
            return QuoteResult.failure(e.reason, e.message)

        self.cache.set(FX_KIND, clean_pair, quote)
        return QuoteResult.success(quote)

    async def resolve_holding(self, holding: Holding) -> Optional[QuoteResult]:
        """
        Resolve one holding's live price.

        Returns:
            QuoteResult, or None for holdings valued from their stored snapshot
        """
        match holding:
            case CryptoHolding():
                return await self.get_crypto_price(holding.symbol)
            case StockHolding():
                if not holding.is_priced:
                    return None
                return await self.get_stock_price(holding.ticker)
            case SavingsHolding() | CurrentAccountHolding() | RealEstateHolding():
                return None
            case _:
                assert_never(holding)

    async def _resolve_into_results(self, holding: Holding) -> Optional[QuoteResult]:
        try:
            result = await self.resolve_holding(holding)
        except Exception as e:
            # One broken lookup must not sink the batch
            logger.error(
                f"Unexpected error resolving {holding.name} ({holding.id}): {e}", exc_info=True
            )
            result = QuoteResult.failure(QuoteFailure.NETWORK_ERROR, str(e))

        if result is not None:
            self.results[holding.id] = result
        return result

    async def resolve_batch(self, holdings: Sequence[Holding]) -> dict[str, QuoteResult]:
        """
        Resolve all priced holdings concurrently.

        Each completed lookup overwrites the holding's entry in ``results``
        (last write wins by completion order). Entries of holdings missing from
        the snapshot or no longer priced are dropped first.

        Args:
            holdings: Holdings snapshot

        Returns:
            Outcomes of this pass keyed by holding id
        """
        priced = [h for h in holdings if price_key(h) is not None]
        self.prune_results(h.id for h in priced)
        if not priced:
            return {}

        logger.info(f"Resolving prices for {len(priced)} of {len(holdings)} holdings")

        async with self.api_client:
            outcomes = await asyncio.gather(*(self._resolve_into_results(h) for h in priced))

        pass_results = {
            holding.id: outcome
            for holding, outcome in zip(priced, outcomes)
            if outcome is not None
        }
        failed = sum(1 for r in pass_results.values() if not r.ok)
        if failed:
            logger.warning(f"{failed}/{len(pass_results)} price lookups failed")

        return pass_results

    def prune_results(self, keep_ids: Iterable[str]) -> None:
        """Forget outcomes of holdings that are gone or no longer priced."""
        keep = set(keep_ids)
        for holding_id in [i for i in self.results if i not in keep]:
            del self.results[holding_id]

    def result_for(self, holding_id: str) -> Optional[QuoteResult]:
        """Latest known outcome for a holding, if any pass resolved it."""
        return self.results.get(holding_id)
