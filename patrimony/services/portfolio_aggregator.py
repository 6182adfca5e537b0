"""Portfolio aggregation: per-holding valuation, summaries and allocations."""

import enum
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Optional, TypeVar, assert_never

from patrimony.lib.config import BOND_KEYWORDS, COMMODITY_KEYWORDS
from patrimony.lib.logging_config import get_logger
from patrimony.models.holding import (
    AssetCategory,
    CryptoHolding,
    CurrentAccountHolding,
    Holding,
    RealEstateHolding,
    SavingsHolding,
    StockHolding,
)
from patrimony.models.quote import QuoteResult
from patrimony.models.summary import (
    AllocationBucket,
    AssetClassBucket,
    CategorySummary,
    GeographyBucket,
    InstrumentBucket,
    PortfolioSummary,
    ValuedHolding,
    percent_of,
)
from patrimony.services.currency_converter import CurrencyConverter
from patrimony.services.price_resolver import price_key

logger = get_logger(__name__)

B = TypeVar("B", bound=enum.Enum)


def asset_class_bucket(holding: Holding) -> AssetClassBucket:
    """Direct category → asset class mapping."""
    match holding:
        case SavingsHolding() | CurrentAccountHolding():
            return AssetClassBucket.CASH
        case StockHolding():
            return AssetClassBucket.STOCKS_ETF
        case CryptoHolding():
            return AssetClassBucket.CRYPTO
        case RealEstateHolding():
            return AssetClassBucket.REAL_ESTATE
        case _:
            assert_never(holding)


def instrument_bucket(holding: Holding) -> Optional[InstrumentBucket]:
    """
    Classify a holding by instrument nature.

    Savings with a positive rate count as bond-like; stock names are matched
    against commodity then bond keywords. Real estate has no instrument
    bucket.
    """
    match holding:
        case SavingsHolding():
            return InstrumentBucket.BOND if holding.interest_rate > 0 else InstrumentBucket.CASH
        case CurrentAccountHolding():
            return InstrumentBucket.CASH
        case CryptoHolding():
            return InstrumentBucket.CRYPTO
        case StockHolding():
            name = holding.name.lower()
            if any(keyword in name for keyword in COMMODITY_KEYWORDS):
                return InstrumentBucket.COMMODITY
            if any(keyword in name for keyword in BOND_KEYWORDS):
                return InstrumentBucket.BOND
            return InstrumentBucket.EQUITY
        case RealEstateHolding():
            return None
        case _:
            assert_never(holding)


def geography_bucket(holding: Holding) -> Optional[GeographyBucket]:
    """
    Classify a stock by its manual geography tag.

    Only stocks are classified. Untagged or unrecognized tags land in
    Inconnue; no inference from exchange metadata is attempted.
    """
    match holding:
        case StockHolding():
            tag = (holding.geography or "").strip().lower()
            for bucket in GeographyBucket:
                if bucket.value.lower() == tag:
                    return bucket
            return GeographyBucket.UNKNOWN
        case SavingsHolding() | CurrentAccountHolding() | CryptoHolding() | RealEstateHolding():
            return None
        case _:
            assert_never(holding)


def distribute(
    valued: Sequence[ValuedHolding],
    classify: Callable[[Holding], Optional[B]],
    buckets: type[B],
) -> list[AllocationBucket]:
    """
    Group holding values into named buckets.

    Args:
        valued: Valued holdings
        classify: Bucket of a holding, None to leave it out
        buckets: Bucket enumeration; its order is the output order

    Returns:
        Buckets with a positive value, in enumeration order
    """
    totals: dict[B, float] = {bucket: 0.0 for bucket in buckets}
    names: dict[B, list[str]] = {bucket: [] for bucket in buckets}

    for item in valued:
        bucket = classify(item.holding)
        if bucket is None:
            continue
        totals[bucket] += item.current_value
        names[bucket].append(item.holding.name)

    return [
        AllocationBucket(name=bucket.value, value=totals[bucket], assets=names[bucket])
        for bucket in buckets
        if totals[bucket] > 0
    ]


class PortfolioAggregator:
    """Combines holdings and resolved quotes into derived read models.

    Valuation rules:
    - Crypto and listed stocks with a live price: quantity × price × EUR factor.
      The purchase price uses the same current factor (historical FX rates are
      not tracked, so currency-adjusted performance is approximate).
    - Current accounts: original amount converted from the native currency.
    - Everything else, and any price failure: the stored ``value_in_eur``.
    """

    def __init__(self, converter: Optional[CurrencyConverter] = None):
        self.converter = converter or CurrencyConverter()

    def value_holding(
        self, holding: Holding, result: Optional[QuoteResult] = None
    ) -> ValuedHolding:
        """
        Value one holding in EUR.

        Args:
            holding: Holding snapshot
            result: Latest price outcome for the holding, if any

        Returns:
            ValuedHolding carrying the price error, if any
        """
        match holding:
            case CryptoHolding() | StockHolding():
                return self._value_priced(holding, result)
            case CurrentAccountHolding():
                return self._value_current_account(holding)
            case SavingsHolding():
                # Cash-like: zero performance by definition
                return ValuedHolding(
                    holding=holding,
                    current_value=holding.value_in_eur,
                    invested_value=holding.value_in_eur,
                )
            case RealEstateHolding():
                return ValuedHolding(
                    holding=holding,
                    current_value=holding.value_in_eur,
                    invested_value=holding.purchase_price,
                )
            case _:
                assert_never(holding)

    def _value_priced(
        self, holding: CryptoHolding | StockHolding, result: Optional[QuoteResult]
    ) -> ValuedHolding:
        if price_key(holding) is None:
            # Unlisted stocks are manually priced; ignore any leftover quote
            result = None
        if result is None or not result.ok or result.quote is None:
            return ValuedHolding(
                holding=holding,
                current_value=holding.value_in_eur,
                invested_value=holding.quantity * holding.purchase_price,
                error=result.error if result is not None else None,
                error_message=result.error_message if result is not None else None,
            )

        quote = result.quote
        price = quote.price or 0.0
        factor, stale = self.converter.eur_factor(quote.currency)

        return ValuedHolding(
            holding=holding,
            current_value=holding.quantity * price * factor,
            invested_value=holding.quantity * holding.purchase_price * factor,
            current_price=price,
            currency=quote.currency,
            stale=stale,
        )

    def _value_current_account(self, holding: CurrentAccountHolding) -> ValuedHolding:
        if not holding.original_value:
            value = holding.value_in_eur
            return ValuedHolding(holding=holding, current_value=value, invested_value=value)

        converted = self.converter.to_eur(holding.original_value, holding.currency)
        return ValuedHolding(
            holding=holding,
            current_value=converted.value,
            invested_value=converted.value,
            currency=holding.currency.upper(),
            stale=converted.stale,
        )

    def value_all(
        self, holdings: Sequence[Holding], results: Mapping[str, QuoteResult]
    ) -> list[ValuedHolding]:
        """Value every holding, looking its price outcome up by holding id."""
        return [self.value_holding(h, results.get(h.id)) for h in holdings]

    def summarize(
        self, valued: Sequence[ValuedHolding], now: Optional[datetime] = None
    ) -> PortfolioSummary:
        """
        Build per-category and whole-portfolio totals.

        Every category appears, in enumeration order, even when empty.

        Args:
            valued: Valued holdings
            now: Summary timestamp (default: current UTC time)

        Returns:
            PortfolioSummary
        """
        total_value = sum(v.current_value for v in valued)
        total_invested = sum(v.invested_value for v in valued)

        fallbacks = sum(1 for v in valued if v.status is not None)
        if fallbacks:
            logger.debug(f"{fallbacks}/{len(valued)} holdings valued from fallback data")

        categories = []
        for category in AssetCategory:
            members = [v for v in valued if v.category == category]
            category_total = sum(v.current_value for v in members)
            categories.append(
                CategorySummary(
                    category=category,
                    total_value=category_total,
                    asset_count=len(members),
                    percentage_of_total=percent_of(category_total, total_value),
                    invested_value=sum(v.invested_value for v in members),
                )
            )

        return PortfolioSummary(
            total_value=total_value,
            invested_value=total_invested,
            categories=categories,
            last_updated=now or datetime.now(timezone.utc),
        )

    def summarize_holdings(
        self, holdings: Sequence[Holding], results: Mapping[str, QuoteResult]
    ) -> PortfolioSummary:
        """Value holdings and summarize them in one step."""
        return self.summarize(self.value_all(holdings, results))

    def allocation_by_asset_class(self, valued: Sequence[ValuedHolding]) -> list[AllocationBucket]:
        return distribute(valued, asset_class_bucket, AssetClassBucket)

    def allocation_by_instrument(self, valued: Sequence[ValuedHolding]) -> list[AllocationBucket]:
        return distribute(valued, instrument_bucket, InstrumentBucket)

    def allocation_by_geography(self, valued: Sequence[ValuedHolding]) -> list[AllocationBucket]:
        return distribute(valued, geography_bucket, GeographyBucket)
