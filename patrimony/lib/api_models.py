"""Pydantic models for quote provider responses."""

from typing import Any, Optional

from pydantic import BaseModel, Field, RootModel, field_validator


class CryptoComparePrice(BaseModel):
    """CryptoCompare /data/price?tsyms=EUR response."""

    eur: Optional[float] = Field(None, alias="EUR")
    response: Optional[str] = Field(None, alias="Response")
    message: Optional[str] = Field(None, alias="Message")

    model_config = {"populate_by_name": True}

    @property
    def is_error(self) -> bool:
        return self.response == "Error"


class CoinbaseSpotData(BaseModel):
    """Coinbase spot price payload (amount is a decimal string)."""

    amount: Optional[float] = None
    currency: Optional[str] = None
    base: Optional[str] = None


class CoinbaseSpotResponse(BaseModel):
    """Coinbase /v2/prices/{pair}/spot response."""

    data: Optional[CoinbaseSpotData] = None


class CoinGeckoCoin(BaseModel):
    """CoinGecko search hit."""

    id: str
    symbol: str
    name: str


class CoinGeckoSearchResponse(BaseModel):
    """CoinGecko /search response (only the coins section is used)."""

    coins: list[CoinGeckoCoin] = Field(default_factory=list)


class CoinGeckoPriceResponse(RootModel[dict[str, dict[str, float]]]):
    """CoinGecko /simple/price response: coin id to {currency: price}."""

    def price(self, coin_id: str, currency: str = "eur") -> Optional[float]:
        return self.root.get(coin_id, {}).get(currency)


class FinnhubQuoteResponse(BaseModel):
    """Finnhub /quote response. 'c' is the current price, 0 for unknown symbols."""

    current: Optional[float] = Field(None, alias="c")

    model_config = {"populate_by_name": True}

    @property
    def has_price(self) -> bool:
        return self.current is not None and self.current != 0


class FinnhubSearchItem(BaseModel):
    """Finnhub symbol search hit."""

    symbol: str
    description: str = ""
    type: Optional[str] = None


class FinnhubSearchResponse(BaseModel):
    """Finnhub /search response."""

    count: int = 0
    result: list[FinnhubSearchItem] = Field(default_factory=list)


class YahooChartMeta(BaseModel):
    """Yahoo chart meta block: listing currency and exchange details."""

    symbol: Optional[str] = None
    regular_market_price: Optional[float] = Field(None, alias="regularMarketPrice")
    currency: Optional[str] = None
    exchange_timezone_name: Optional[str] = Field(None, alias="exchangeTimezoneName")
    exchange_name: Optional[str] = Field(None, alias="exchangeName")
    instrument_type: Optional[str] = Field(None, alias="instrumentType")

    model_config = {"populate_by_name": True}

    @field_validator("regular_market_price")
    @classmethod
    def validate_price_positive(cls, v: Optional[float]) -> Optional[float]:
        """Ensure prices are positive."""
        if v is not None and v <= 0:
            raise ValueError(f"Price must be positive, got {v}")
        return v


class YahooChartResult(BaseModel):
    meta: Optional[YahooChartMeta] = None


class YahooChartBody(BaseModel):
    result: Optional[list[YahooChartResult]] = None
    error: Optional[dict[str, Any]] = None


class YahooChartResponse(BaseModel):
    """Yahoo /v8/finance/chart response."""

    chart: YahooChartBody

    @property
    def meta(self) -> Optional[YahooChartMeta]:
        if not self.chart.result:
            return None
        return self.chart.result[0].meta


class YahooSearchQuote(BaseModel):
    """Yahoo search quote hit."""

    symbol: str
    long_name: Optional[str] = Field(None, alias="longname")
    short_name: Optional[str] = Field(None, alias="shortname")
    quote_type: Optional[str] = Field(None, alias="quoteType")

    model_config = {"populate_by_name": True}

    @property
    def display_name(self) -> str:
        return self.long_name or self.short_name or self.symbol


class YahooSearchResponse(BaseModel):
    """Yahoo /v1/finance/search response."""

    quotes: list[YahooSearchQuote] = Field(default_factory=list)


def has_yahoo_chart_price(data: Any) -> bool:
    """
    Check that a decoded chart payload carries a usable market price.

    Used as the relay-chain validity predicate: a relay that answers with
    an error page or an empty chart does not count as a success.

    Args:
        data: Decoded JSON payload

    Returns:
        True if the payload validates and has a positive price
    """
    if not isinstance(data, dict):
        return False
    try:
        response = YahooChartResponse.model_validate(data)
    except ValueError:
        return False
    meta = response.meta
    return meta is not None and meta.regular_market_price is not None


def has_yahoo_search_quote(data: Any) -> bool:
    """Check that a decoded search payload has at least one quote."""
    if not isinstance(data, dict):
        return False
    try:
        return bool(YahooSearchResponse.model_validate(data).quotes)
    except ValueError:
        return False
