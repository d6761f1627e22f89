"""
Covenant threshold evaluation.

Pure functions only: a covenant's status is always a function of
(operator, threshold, current value, warning band).
"""

from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass

from dateutil.relativedelta import relativedelta

from app.domain.facilities.enums import CheckFrequency, CovenantStatus, ThresholdOperator

DEFAULT_WARNING_BAND_PCT = 10.0


@dataclass(frozen=True)
class Evaluation:
    status: CovenantStatus
    breached: bool


def is_satisfied(operator: ThresholdOperator, threshold: float, current_value: float) -> bool:
    if operator is ThresholdOperator.LESS_THAN:
        return current_value < threshold
    if operator is ThresholdOperator.LESS_THAN_EQUAL:
        return current_value <= threshold
    if operator is ThresholdOperator.GREATER_THAN:
        return current_value > threshold
    if operator is ThresholdOperator.GREATER_THAN_EQUAL:
        return current_value >= threshold
    raise ValueError(f"Unknown threshold operator: {operator!r}")


def is_near_breach(
    operator: ThresholdOperator,
    threshold: float,
    current_value: float,
    warning_band_pct: float,
) -> bool:
    # Band is measured on |threshold| so negative thresholds keep the right direction.
    band = abs(threshold) * warning_band_pct / 100.0
    if operator.is_upper_bound:
        return current_value >= threshold - band
    return current_value <= threshold + band


def evaluate(
    operator: ThresholdOperator | str,
    threshold: float,
    current_value: float | None,
    warning_band_pct: float = DEFAULT_WARNING_BAND_PCT,
) -> Evaluation | None:
    """
    Classify ``current_value`` against a covenant threshold.

    Returns ``None`` when there is no current value: the caller keeps the
    previous status and emits no transition. Unknown operators and
    non-finite values raise ``ValueError`` instead of producing a status.
    """
    if current_value is None:
        return None
    if not math.isfinite(current_value) or not math.isfinite(threshold):
        raise ValueError(f"Non-finite covenant input: value={current_value!r} threshold={threshold!r}")
    op = ThresholdOperator(operator)
    if not is_satisfied(op, threshold, current_value):
        return Evaluation(status=CovenantStatus.BREACH, breached=True)
    if is_near_breach(op, threshold, current_value, warning_band_pct):
        return Evaluation(status=CovenantStatus.WARNING, breached=False)
    return Evaluation(status=CovenantStatus.COMPLIANT, breached=False)


def next_check_date(frequency: CheckFrequency | str, now: dt.datetime) -> dt.datetime:
    freq = CheckFrequency(frequency)
    if freq is CheckFrequency.MONTHLY:
        return now + relativedelta(months=1)
    if freq is CheckFrequency.QUARTERLY:
        return now + relativedelta(months=3)
    return now + relativedelta(years=1)
