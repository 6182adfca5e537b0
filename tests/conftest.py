"""Pytest configuration and fixtures for all tests."""

from datetime import datetime

import pytest

from patrimony.models.holding import (
    CryptoHolding,
    CurrentAccountHolding,
    RealEstateHolding,
    SavingsHolding,
    StockHolding,
)
from patrimony.models.quote import Quote, QuoteResult


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Keep tests independent from the developer's credentials and log file."""
    monkeypatch.delenv("FINNHUB_API_KEY", raising=False)
    monkeypatch.delenv("PATRIMONY_CURRENCY", raising=False)
    monkeypatch.setenv("LOG_FILE", "")


@pytest.fixture
def fake_clock():
    """Provide a controllable clock for cache expiry."""
    return FakeClock()


@pytest.fixture
def savings():
    return SavingsHolding(id="sav-1", name="Livret A", value_in_eur=10_000, interest_rate=3.0)


@pytest.fixture
def current_account():
    return CurrentAccountHolding(
        id="cc-1", name="Compte Chèques", value_in_eur=2_000, currency="EUR", original_value=2_000
    )


@pytest.fixture
def listed_stock():
    return StockHolding(
        id="stk-1",
        name="LVMH",
        ticker="MC.PA",
        quantity=10,
        purchase_price=600,
        value_in_eur=7_000,
        geography="Europe",
        purchase_date=datetime(2024, 1, 1),
    )


@pytest.fixture
def us_stock():
    return StockHolding(
        id="stk-2",
        name="Apple",
        ticker="AAPL",
        quantity=5,
        purchase_price=150,
        value_in_eur=800,
        geography="Etats Unis",
    )


@pytest.fixture
def unlisted_stock():
    return StockHolding(
        id="stk-3", name="Startup SAS", ticker="", is_listed=False, value_in_eur=5_000
    )


@pytest.fixture
def bitcoin():
    return CryptoHolding(
        id="btc-1",
        name="Bitcoin",
        symbol="btc",
        quantity=0.5,
        purchase_price=30_000,
        value_in_eur=20_000,
        purchase_date=datetime(2024, 6, 1),
    )


@pytest.fixture
def apartment():
    return RealEstateHolding(
        id="re-1",
        name="Appartement Lyon",
        address="1 rue de la République",
        purchase_price=200_000,
        current_value=250_000,
        value_in_eur=250_000,
    )


@pytest.fixture
def holdings(savings, current_account, listed_stock, bitcoin, apartment):
    return [savings, current_account, listed_stock, bitcoin, apartment]


def make_quote(symbol: str, price: float, currency: str = "EUR", source: str = "test") -> Quote:
    return Quote(symbol=symbol, price=price, currency=currency, source=source)


def ok_result(symbol: str, price: float, currency: str = "EUR") -> QuoteResult:
    return QuoteResult.success(make_quote(symbol, price, currency))


@pytest.fixture
def quote_result():
    """Provide a factory for successful quote results."""
    return ok_result
