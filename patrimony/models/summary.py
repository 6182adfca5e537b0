"""Derived read models: per-holding valuation, category and portfolio summaries,
allocation distributions. Never stored; recomputed from holdings, quote results
and rates on every query."""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from patrimony.lib.errors import QuoteFailure
from patrimony.models.holding import AssetCategory, Holding


class AssetClassBucket(str, enum.Enum):
    CASH = "Cash"
    STOCKS_ETF = "Actions/ETF"
    REAL_ESTATE = "Immobilier"
    CRYPTO = "Crypto"


class InstrumentBucket(str, enum.Enum):
    BOND = "Obligation"
    EQUITY = "Action"
    COMMODITY = "Matière Première"
    CASH = "Cash"
    CRYPTO = "Crypto"


class GeographyBucket(str, enum.Enum):
    WORLD = "Monde"
    UNITED_STATES = "Etats Unis"
    EUROPE = "Europe"
    ASIA = "Asie"
    EMERGING = "Emergents"
    OTHER = "Autre"
    UNKNOWN = "Inconnue"


@dataclass(frozen=True)
class ValuedHolding:
    """
    A holding with its current valuation in EUR.

    Attributes:
        holding: The holding snapshot
        current_value: Current value in EUR (live price, else stored snapshot)
        invested_value: Amount invested in EUR
        current_price: Live unit price in the quote currency, if resolved
        currency: Currency the live price is expressed in
        error: Price failure for this holding, if any
        error_message: Human-readable failure detail
        stale: True when a value was passed through without a known FX factor
    """

    holding: Holding
    current_value: float
    invested_value: float
    current_price: Optional[float] = None
    currency: Optional[str] = None
    error: Optional[QuoteFailure] = None
    error_message: Optional[str] = None
    stale: bool = False

    @property
    def performance(self) -> float:
        return self.current_value - self.invested_value

    @property
    def performance_percent(self) -> float:
        return percent_of(self.performance, self.invested_value)

    @property
    def category(self) -> AssetCategory:
        return AssetCategory(self.holding.category)

    @property
    def status(self) -> Optional[QuoteFailure]:
        """Price failure if any, else stale_fallback for unconverted amounts."""
        if self.error is not None:
            return self.error
        if self.stale:
            return QuoteFailure.STALE_FALLBACK
        return None


@dataclass(frozen=True)
class CategorySummary:
    category: AssetCategory
    total_value: float
    asset_count: int
    percentage_of_total: float
    invested_value: float

    @property
    def performance(self) -> float:
        return self.total_value - self.invested_value

    @property
    def performance_percent(self) -> float:
        return percent_of(self.performance, self.invested_value)


@dataclass(frozen=True)
class PortfolioSummary:
    total_value: float
    invested_value: float
    categories: list[CategorySummary]
    last_updated: datetime

    @property
    def performance(self) -> float:
        return self.total_value - self.invested_value

    @property
    def performance_percent(self) -> float:
        return percent_of(self.performance, self.invested_value)

    def for_category(self, category: AssetCategory) -> CategorySummary:
        return next(c for c in self.categories if c.category == category)


@dataclass(frozen=True)
class AllocationBucket:
    """One named slice of an allocation distribution."""

    name: str
    value: float
    assets: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class HistoryPoint:
    """One day of the interpolated patrimony curve."""

    date: datetime
    value: float


def percent_of(part: float, whole: float) -> float:
    """part / whole as a percentage, 0 when whole is 0."""
    if whole == 0:
        return 0.0
    return part / whole * 100
