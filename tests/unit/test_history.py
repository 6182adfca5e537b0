"""Unit tests for the patrimony history curve."""

from datetime import date, datetime

import pytest
from freezegun import freeze_time

from patrimony.models.holding import SavingsHolding, StockHolding
from patrimony.models.summary import ValuedHolding
from patrimony.services.history import build_history, history_start, value_on

TODAY = date(2025, 3, 11)


def valued(holding, current, invested):
    return ValuedHolding(holding=holding, current_value=current, invested_value=invested)


@pytest.fixture
def stock_bought_ten_days_ago():
    holding = StockHolding(
        id="s", name="ETF World", ticker="CW8.PA", purchase_date=datetime(2025, 3, 1, 9, 30)
    )
    return valued(holding, current=2_000, invested=1_000)


@pytest.fixture
def undated_savings():
    holding = SavingsHolding(id="l", name="LDDS", value_in_eur=500)
    return valued(holding, current=500, invested=500)


@pytest.mark.unit
class TestHistory:
    """Test suite for build_history."""

    def test_starts_at_earliest_purchase(self, stock_bought_ten_days_ago):
        points = build_history([stock_bought_ten_days_ago], today=TODAY)

        assert len(points) == 11
        assert points[0].date == datetime(2025, 3, 1, 12, 0)
        assert points[-1].date == datetime(2025, 3, 11, 12, 0)

    def test_linear_interpolation(self, stock_bought_ten_days_ago):
        points = build_history([stock_bought_ten_days_ago], today=TODAY)

        assert points[0].value == pytest.approx(1_000)
        assert points[5].value == pytest.approx(1_500)
        assert points[-1].value == pytest.approx(2_000)

    def test_default_lookback_without_purchase_dates(self, undated_savings):
        points = build_history([undated_savings], today=TODAY)

        assert len(points) == 31
        assert points[0].date.date() == date(2025, 2, 9)

    def test_undated_holding_only_counts_today(self, stock_bought_ten_days_ago, undated_savings):
        points = build_history([stock_bought_ten_days_ago, undated_savings], today=TODAY)

        assert points[-2].value == pytest.approx(1_900)
        assert points[-1].value == pytest.approx(2_500)

    def test_future_purchase_date_is_clamped(self):
        holding = StockHolding(
            id="f", name="Future", ticker="X", purchase_date=datetime(2026, 1, 1)
        )
        item = valued(holding, current=300, invested=100)

        assert history_start([item], TODAY) == date(2025, 2, 9)
        assert value_on(item, TODAY, TODAY) == 300

    def test_zero_before_purchase(self, stock_bought_ten_days_ago):
        assert value_on(stock_bought_ten_days_ago, date(2025, 2, 28), TODAY) == 0

    def test_empty_portfolio(self):
        points = build_history([], today=TODAY)

        assert len(points) == 31
        assert all(p.value == 0 for p in points)

    @freeze_time("2025-03-11 08:00:00")
    def test_defaults_to_today(self, stock_bought_ten_days_ago):
        points = build_history([stock_bought_ten_days_ago])
        assert points[-1].date == datetime(2025, 3, 11, 12, 0)
