"""Synthetic patrimony history curve.

No price history is stored: each holding's value is linearly interpolated from
its invested value on its purchase date to its current value today. The curve
is a visualization aid, not a record.
"""

from collections.abc import Sequence
from datetime import date, datetime, time, timedelta
from typing import Optional

from patrimony.lib.config import HISTORY_DEFAULT_LOOKBACK_DAYS
from patrimony.lib.logging_config import get_logger
from patrimony.models.summary import HistoryPoint, ValuedHolding

logger = get_logger(__name__)

NOON = time(12, 0)


def _purchase_day(item: ValuedHolding, today: date) -> date:
    purchase_date = item.holding.purchase_date
    if purchase_date is None:
        return today
    return min(purchase_date.date(), today)


def history_start(valued: Sequence[ValuedHolding], today: date) -> date:
    """
    First day of the curve.

    Earliest purchase date in the past, else a fixed lookback window.
    """
    past_purchases = [
        item.holding.purchase_date.date()
        for item in valued
        if item.holding.purchase_date is not None and item.holding.purchase_date.date() < today
    ]
    if past_purchases:
        return min(past_purchases)
    return today - timedelta(days=HISTORY_DEFAULT_LOOKBACK_DAYS)


def value_on(item: ValuedHolding, day: date, today: date) -> float:
    """
    Interpolated value of one holding on a given day.

    Args:
        item: Valued holding
        day: Day to evaluate
        today: Last day of the curve

    Returns:
        0 before the purchase day, invested → current value afterwards
    """
    purchased = _purchase_day(item, today)
    if day < purchased:
        return 0.0

    span = (today - purchased).days
    ratio = 1.0 if span <= 0 else min(1.0, max(0.0, (day - purchased).days / span))
    return item.invested_value + (item.current_value - item.invested_value) * ratio


def build_history(
    valued: Sequence[ValuedHolding], today: Optional[date] = None
) -> list[HistoryPoint]:
    """
    Build one point per day, at noon, from the history start to today.

    Args:
        valued: Valued holdings
        today: Last day of the curve (default: today)

    Returns:
        Chronological history points; the last one equals the current total
    """
    today = today or date.today()
    start = history_start(valued, today)

    points = []
    day = start
    while day <= today:
        total = sum(value_on(item, day, today) for item in valued)
        points.append(HistoryPoint(date=datetime.combine(day, NOON), value=total))
        day += timedelta(days=1)

    logger.debug(f"Built {len(points)} history points from {start.isoformat()}")
    return points
