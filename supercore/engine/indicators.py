"""Numeric primitives over outcome sequences.

All inputs are ordered newest-first, matching the history layout. Every
function returns ``None`` instead of raising when the period is invalid or
the data is too short.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from pydantic import BaseModel

from supercore.models.outcome import Outcome


class StochasticResult(BaseModel):
    k: float
    prev_k: float
    d: float
    prev_d: float

    model_config = {"frozen": True}


class MacdResult(BaseModel):
    macd: float
    signal: float
    histogram: float
    prev_macd: float
    prev_signal: float

    model_config = {"frozen": True}


def sma(data: Sequence[float], period: int) -> float | None:
    """Mean of the newest ``period`` values."""
    if period <= 0 or len(data) < period:
        return None
    return sum(data[:period]) / period


def ema(data: Sequence[float], period: int) -> float | None:
    """Exponential moving average seeded with the SMA of the oldest ``period`` values."""
    if period <= 0 or len(data) < period:
        return None
    chronological = list(reversed(data))
    value = sum(chronological[:period]) / period
    k = 2.0 / (period + 1)
    for x in chronological[period:]:
        value = x * k + value * (1 - k)
    return value


def std_dev(data: Sequence[float], period: int) -> float | None:
    """Population standard deviation of the newest ``period`` values."""
    if period < 2 or len(data) < period:
        return None
    window = data[:period]
    mean = sum(window) / period
    return math.sqrt(sum((x - mean) ** 2 for x in window) / period)


def rsi(data: Sequence[float], period: int) -> float | None:
    """Wilder RSI over the chronological series."""
    if period <= 0 or len(data) < period + 1:
        return None
    chronological = list(reversed(data))
    gains = 0.0
    losses = 0.0
    for i in range(1, period + 1):
        change = chronological[i] - chronological[i - 1]
        if change > 0:
            gains += change
        else:
            losses -= change
    avg_gain = gains / period
    avg_loss = losses / period
    for i in range(period + 1, len(chronological)):
        change = chronological[i] - chronological[i - 1]
        avg_gain = (avg_gain * (period - 1) + max(change, 0.0)) / period
        avg_loss = (avg_loss * (period - 1) + max(-change, 0.0)) / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def stochastic(
    data: Sequence[float],
    k_period: int,
    d_period: int,
    smooth_k: int,
) -> StochasticResult | None:
    """Slow stochastic: raw %K smoothed by SMA(smooth_k), %D = SMA(d_period) of it.

    A flat window repeats the previous raw %K (50 when there is none).
    """
    if k_period <= 0 or d_period <= 0 or smooth_k <= 0:
        return None
    if len(data) < k_period + smooth_k - 1 + d_period - 1:
        return None

    chronological = list(reversed(data))
    raw_k: list[float] = []
    for i in range(k_period - 1, len(chronological)):
        window = chronological[i - k_period + 1 : i + 1]
        low, high = min(window), max(window)
        if high == low:
            raw_k.append(raw_k[-1] if raw_k else 50.0)
        else:
            raw_k.append(100.0 * (window[-1] - low) / (high - low))

    smoothed = [
        sum(raw_k[i : i + smooth_k]) / smooth_k for i in range(len(raw_k) - smooth_k + 1)
    ]
    d_values = [
        sum(smoothed[i : i + d_period]) / d_period for i in range(len(smoothed) - d_period + 1)
    ]
    if len(smoothed) < 2 or len(d_values) < 2:
        return None
    return StochasticResult(k=smoothed[-1], prev_k=smoothed[-2], d=d_values[-1], prev_d=d_values[-2])


def macd(
    data: Sequence[float],
    short_period: int,
    long_period: int,
    signal_period: int,
) -> MacdResult | None:
    """MACD line, signal line and histogram for the newest bar and the one before."""
    if short_period <= 0 or long_period <= 0 or signal_period <= 0:
        return None
    if short_period >= long_period or len(data) < long_period + signal_period:
        return None

    # Newest-first MACD line values, one per bar offset, enough for two signal readings.
    line: list[float] = []
    for offset in range(signal_period + 1):
        window = data[offset:]
        fast = ema(window, short_period)
        slow = ema(window, long_period)
        if fast is None or slow is None:
            return None
        line.append(fast - slow)

    signal_now = ema(line, signal_period)
    signal_prev = ema(line[1:], signal_period)
    if signal_now is None or signal_prev is None:
        return None
    return MacdResult(
        macd=line[0],
        signal=signal_now,
        histogram=line[0] - signal_now,
        prev_macd=line[1],
        prev_signal=signal_prev,
    )


def binary_entropy(outcomes: Sequence[Outcome | None], window: int) -> float | None:
    """Base-2 Shannon entropy of BIG/SMALL frequencies in the newest ``window`` items.

    A window with no classifiable outcome counts as maximally uncertain.
    """
    if window <= 0 or len(outcomes) < window:
        return None
    big = sum(1 for o in outcomes[:window] if o == Outcome.BIG)
    small = sum(1 for o in outcomes[:window] if o == Outcome.SMALL)
    total = big + small
    if total == 0:
        return 1.0
    entropy = 0.0
    for count in (big, small):
        if count > 0:
            p = count / total
            entropy -= p * math.log2(p)
    return entropy
