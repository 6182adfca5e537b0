"""
Holding models: one recorded financial position per asset category.

Holdings are a closed tagged union discriminated by ``category``. The
holdings store owns their lifecycle; this package only reads immutable
snapshots of them. Field names are snake_case but the store's camelCase
keys (``valueInEur``, ``subGroup``, ``isListed``...) are accepted as input.
"""

import enum
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class AssetCategory(str, enum.Enum):
    """Asset categories, in display order."""

    SAVINGS = "savings"
    CURRENT_ACCOUNT = "current_account"
    STOCKS = "stocks"
    CRYPTO = "crypto"
    REAL_ESTATE = "real_estate"


CATEGORY_LABELS = {
    AssetCategory.SAVINGS: "Livrets Épargne",
    AssetCategory.CURRENT_ACCOUNT: "Comptes Courants",
    AssetCategory.STOCKS: "Bourse (Actions / ETF)",
    AssetCategory.CRYPTO: "Crypto",
    AssetCategory.REAL_ESTATE: "Immobilier",
}


class BaseHolding(BaseModel):
    """
    Fields shared by every holding variant.

    Attributes:
        id: Stable identifier assigned by the holdings store
        name: Display name
        value_in_eur: Last persisted value snapshot; fallback when no live price
        last_updated: When the snapshot was taken
        sub_group: Grouping label (broker, bank...)
        institution: Legacy grouping label, used when sub_group is absent
        purchase_date: When the position was opened
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    id: str
    name: str
    value_in_eur: float = 0.0
    last_updated: Optional[datetime] = None
    sub_group: Optional[str] = None
    institution: Optional[str] = None
    purchase_date: Optional[datetime] = None

    @property
    def group_label(self) -> str:
        return self.sub_group or self.institution or ""


class SavingsHolding(BaseHolding):
    """Savings account (livret)."""

    category: Literal["savings"] = "savings"
    interest_rate: float = 0.0


class CurrentAccountHolding(BaseHolding):
    """Current account held in a native currency."""

    category: Literal["current_account"] = "current_account"
    currency: str = "EUR"
    original_value: float = 0.0


class StockHolding(BaseHolding):
    """Listed or unlisted equity/ETF position.

    Unlisted positions are priced manually through ``value_in_eur``;
    ``geography`` is the user's manual region tag.
    """

    category: Literal["stocks"] = "stocks"
    ticker: str = ""
    quantity: float = 0.0
    purchase_price: float = 0.0
    current_price: float = 0.0
    security_type: Literal["stock", "etf"] = Field("stock", alias="type")
    is_listed: bool = True
    geography: Optional[str] = None

    @property
    def normalized_ticker(self) -> str:
        return self.ticker.strip().upper()

    @property
    def is_priced(self) -> bool:
        return self.is_listed and bool(self.normalized_ticker)


class CryptoHolding(BaseHolding):
    """Crypto-currency position."""

    category: Literal["crypto"] = "crypto"
    symbol: str = ""
    quantity: float = 0.0
    purchase_price: float = 0.0
    current_price: float = 0.0

    @property
    def normalized_symbol(self) -> str:
        return self.symbol.strip().upper()


class RealEstateHolding(BaseHolding):
    """Property, valued manually."""

    category: Literal["real_estate"] = "real_estate"
    address: str = ""
    property_type: Literal["apartment", "house", "commercial", "land"] = "apartment"
    purchase_price: float = 0.0
    current_value: float = 0.0


Holding = Annotated[
    Union[
        SavingsHolding,
        CurrentAccountHolding,
        StockHolding,
        CryptoHolding,
        RealEstateHolding,
    ],
    Field(discriminator="category"),
]

HoldingList = TypeAdapter(list[Holding])


def parse_holdings(records: list[dict]) -> list[Holding]:
    """
    Validate raw holding records into typed holdings.

    Args:
        records: Records as stored by the holdings store

    Returns:
        Typed holdings in input order

    Raises:
        pydantic.ValidationError: A record has an unknown category or bad fields
    """
    return HoldingList.validate_python(records)


def category_of(holding: Holding) -> AssetCategory:
    """Category of a holding as an enum member."""
    return AssetCategory(holding.category)
