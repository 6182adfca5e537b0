"""
Domain models for patrimony.

Holdings are pydantic snapshots supplied by the holdings store; quotes are
ephemeral provider answers; summaries are derived read models.
"""

from patrimony.models.holding import (
    CATEGORY_LABELS,
    AssetCategory,
    CryptoHolding,
    CurrentAccountHolding,
    Holding,
    RealEstateHolding,
    SavingsHolding,
    StockHolding,
    category_of,
    parse_holdings,
)
from patrimony.models.quote import Quote, QuoteResult, SearchResult
from patrimony.models.summary import (
    AllocationBucket,
    AssetClassBucket,
    CategorySummary,
    GeographyBucket,
    HistoryPoint,
    InstrumentBucket,
    PortfolioSummary,
    ValuedHolding,
)

__all__ = [
    # Holdings
    "AssetCategory",
    "CATEGORY_LABELS",
    "Holding",
    "SavingsHolding",
    "CurrentAccountHolding",
    "StockHolding",
    "CryptoHolding",
    "RealEstateHolding",
    "category_of",
    "parse_holdings",
    # Quotes
    "Quote",
    "QuoteResult",
    "SearchResult",
    # Read models
    "ValuedHolding",
    "CategorySummary",
    "PortfolioSummary",
    "AllocationBucket",
    "AssetClassBucket",
    "InstrumentBucket",
    "GeographyBucket",
    "HistoryPoint",
]
