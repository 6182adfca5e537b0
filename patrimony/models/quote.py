"""Quote models: ephemeral prices fetched from market-data providers."""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from patrimony.lib.errors import QuoteFailure


class Quote(BaseModel):
    """
    A price plus the currency metadata the provider returned with it.

    Attributes:
        symbol: Normalized symbol the quote was requested for
        price: Last price in ``currency`` (absent when the provider had none)
        currency: ISO code (or minor unit such as GBp) of the price
        instrument_type: Provider instrument type (EQUITY, ETF, CRYPTOCURRENCY...)
        exchange_timezone: Listing exchange timezone name
        exchange_name: Listing exchange name
        long_name: Provider display name
        source: Provider that produced the quote
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    price: Optional[float] = None
    currency: Optional[str] = None
    instrument_type: Optional[str] = None
    exchange_timezone: Optional[str] = None
    exchange_name: Optional[str] = None
    long_name: Optional[str] = None
    source: str = ""


class QuoteResult(BaseModel):
    """Outcome of resolving one holding's price: a quote or a typed error."""

    model_config = ConfigDict(frozen=True)

    quote: Optional[Quote] = None
    error: Optional[QuoteFailure] = None
    error_message: Optional[str] = None

    @property
    def price(self) -> Optional[float]:
        return self.quote.price if self.quote is not None else None

    @property
    def ok(self) -> bool:
        return self.quote is not None and self.quote.price is not None

    @classmethod
    def success(cls, quote: Quote) -> "QuoteResult":
        return cls(quote=quote)

    @classmethod
    def failure(cls, error: QuoteFailure, message: str = "") -> "QuoteResult":
        return cls(error=error, error_message=message or error.value)


class SearchResult(BaseModel):
    """Autocomplete match from a symbol search endpoint."""

    symbol: str
    name: str
    type: Optional[str] = None
