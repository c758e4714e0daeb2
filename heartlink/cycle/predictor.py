"""Calendar-only cycle prediction.

Given the first day of the last period and the user's configured average
cycle length, predict the next period start and the ovulation date::

    next_period_date = last_period_date + cycle_length
    ovulation_date   = next_period_date - 14 days

The luteal phase (ovulation to next period) is treated as a fixed 14 days.
Cycle and period lengths are not range-checked: a zero or negative length
yields a degenerate date, never an exception.  Dates that would fall
outside the calendar saturate at ``date.min`` / ``date.max``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

DEFAULT_CYCLE_LENGTH = 28
DEFAULT_PERIOD_LENGTH = 5
LUTEAL_PHASE_DAYS = 14


@dataclass(frozen=True)
class CyclePrediction:
    """Prediction for one profile's next cycle.

    Attributes:
        last_period_date: First day of the most recent period (input).
        cycle_length:     Cycle length in days used for the prediction.
        next_period_date: Predicted first day of the next period.
        period_end_date:  Predicted last day of the next period.
        ovulation_date:   Estimated ovulation date.
        current_cycle_day: Day within the current cycle on ``as_of``
                          (1 = first day of the last period), if requested.
    """

    last_period_date: date
    cycle_length: int
    next_period_date: date
    period_end_date: date
    ovulation_date: date
    current_cycle_day: int | None = None


def predict_cycle(
    last_period_date: date | None,
    cycle_length: int | None = DEFAULT_CYCLE_LENGTH,
    period_length: int | None = DEFAULT_PERIOD_LENGTH,
    as_of: date | None = None,
) -> CyclePrediction | None:
    """Predict the next period and ovulation date.

    Args:
        last_period_date: First day of the last period; ``None`` means the
                          user never entered one and nothing is predicted.
        cycle_length:     Average cycle length in days (``None`` → 28).
        period_length:    Average bleed length in days (``None`` → 5).
        as_of:            Optional reference date for ``current_cycle_day``.

    Returns:
        CyclePrediction, or ``None`` when ``last_period_date`` is absent.
    """
    if last_period_date is None:
        return None

    length = DEFAULT_CYCLE_LENGTH if cycle_length is None else cycle_length
    bleed = DEFAULT_PERIOD_LENGTH if period_length is None else period_length

    next_period = _shift(last_period_date, length)
    return CyclePrediction(
        last_period_date=last_period_date,
        cycle_length=length,
        next_period_date=next_period,
        period_end_date=_shift(next_period, bleed - 1),
        ovulation_date=_shift(next_period, -LUTEAL_PHASE_DAYS),
        current_cycle_day=(
            cycle_day_from_start(last_period_date, as_of) if as_of else None
        ),
    )


def _shift(start: date, days: int) -> date:
    try:
        return start + timedelta(days=days)
    except OverflowError:
        return date.max if days > 0 else date.min


def cycle_day_from_start(period_start: date, query_date: date) -> int:
    """Return the cycle day number for a given date.

    Day 1 = first day of period.  Dates before the period start give zero
    or negative numbers.
    """
    return (query_date - period_start).days + 1
