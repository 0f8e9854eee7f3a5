"""Indicator signals — RSI, MACD, Bollinger, Ichimoku, Stochastic, volatility squeeze.

Oscillator bands widen with volatility. Each signal's weight is
``base_weight`` scaled by a strength factor clamped to [0, 1] before use.
"""

from __future__ import annotations

from supercore.engine.indicators import macd, rsi, sma, std_dev, stochastic
from supercore.models.context import VolatilityLevel
from supercore.models.outcome import Outcome
from supercore.models.signal import Signal, SignalCategory
from supercore.signals.base import GeneratorContext
from supercore.signals.registry import register

_RSI_BANDS: dict[VolatilityLevel, tuple[float, float]] = {
    VolatilityLevel.HIGH: (80.0, 20.0),
    VolatilityLevel.MEDIUM: (75.0, 25.0),
    VolatilityLevel.LOW: (68.0, 32.0),
    VolatilityLevel.VERY_LOW: (65.0, 35.0),
}
_STOCH_BANDS: dict[VolatilityLevel, tuple[float, float]] = {
    VolatilityLevel.HIGH: (88.0, 12.0),
    VolatilityLevel.MEDIUM: (82.0, 18.0),
    VolatilityLevel.LOW: (75.0, 25.0),
    VolatilityLevel.VERY_LOW: (70.0, 30.0),
}


@register("rsi", base_weight=0.08)
def rsi_signal(ctx: GeneratorContext, base_weight: float, period: int = 14) -> Signal | None:
    """Overbought predicts SMALL, oversold predicts BIG."""
    value = rsi(ctx.numbers, period)
    if value is None:
        return None
    overbought, oversold = _RSI_BANDS.get(ctx.trend.volatility, (70.0, 30.0))
    if value < oversold:
        prediction, strength = Outcome.BIG, (oversold - value) / oversold
    elif value > overbought:
        prediction, strength = Outcome.SMALL, (value - overbought) / (100 - overbought)
    else:
        return None
    return Signal(
        source="RSI",
        prediction=prediction,
        weight=base_weight * (0.60 + min(strength, 1.0) * 0.40),
        category=SignalCategory.MOMENTUM,
    )


@register("macd", base_weight=0.09)
def macd_signal(
    ctx: GeneratorContext,
    base_weight: float,
    short_period: int = 12,
    long_period: int = 26,
    signal_period: int = 9,
) -> Signal | None:
    """Signal-line crossover, else a histogram beyond +/-0.25."""
    result = macd(ctx.numbers, short_period, long_period, signal_period)
    if result is None:
        return None

    prediction: Outcome | None = None
    if result.prev_macd <= result.prev_signal and result.macd > result.signal:
        prediction = Outcome.BIG
    elif result.prev_macd >= result.prev_signal and result.macd < result.signal:
        prediction = Outcome.SMALL
    elif result.histogram > 0.25:
        prediction = Outcome.BIG
    elif result.histogram < -0.25:
        prediction = Outcome.SMALL
    if prediction is None:
        return None

    strength = min(abs(result.histogram) / 0.6, 1.0)
    return Signal(
        source="MACD_CrossB" if prediction == Outcome.BIG else "MACD_CrossS",
        prediction=prediction,
        weight=base_weight * (0.55 + strength * 0.45),
        category=SignalCategory.TREND,
    )


@register("bollinger", base_weight=0.07)
def bollinger_signal(
    ctx: GeneratorContext,
    base_weight: float,
    period: int = 20,
    multiplier: float = 2.1,
) -> Signal | None:
    """Mean reversion on a clear band breach."""
    mid = sma(ctx.numbers, period)
    spread = std_dev(ctx.numbers, period)
    if mid is None or spread is None or spread < 0.05:
        return None

    upper = mid + spread * multiplier
    lower = mid - spread * multiplier
    last = ctx.numbers[0]
    if last > upper * 1.01:
        prediction = Outcome.SMALL
    elif last < lower * 0.99:
        prediction = Outcome.BIG
    else:
        return None

    breach = abs(last - mid) / (spread * multiplier + 0.001)
    return Signal(
        source="Bollinger",
        prediction=prediction,
        weight=base_weight * (0.65 + min(breach, 0.9) * 0.35),
        category=SignalCategory.MEAN_REVERSION,
    )


def _midpoints(series: list[float], period: int) -> list[float | None]:
    out: list[float | None] = []
    for i in range(len(series)):
        if i < period - 1:
            out.append(None)
            continue
        window = series[i - period + 1 : i + 1]
        out.append((max(window) + min(window)) / 2)
    return out


def _side(value: float, reference: float) -> Outcome | None:
    if value > reference:
        return Outcome.BIG
    if value < reference:
        return Outcome.SMALL
    return None


@register("ichimoku", base_weight=0.14)
def ichimoku_signal(
    ctx: GeneratorContext,
    base_weight: float,
    tenkan_period: int = 9,
    kijun_period: int = 26,
    senkou_b_period: int = 52,
) -> Signal | None:
    """Confluence of the Tenkan/Kijun cross, price vs cloud and the Chikou span."""
    if tenkan_period <= 0 or kijun_period <= 0 or senkou_b_period <= 0:
        return None
    series = list(reversed(ctx.numbers))
    n = len(series)
    if n < max(senkou_b_period, kijun_period) + kijun_period - 1:
        return None

    tenkan = _midpoints(series, tenkan_period)
    kijun = _midpoints(series, kijun_period)
    senkou_b = _midpoints(series, senkou_b_period)
    shifted = n - 1 - kijun_period
    tenkan_then, kijun_then = tenkan[shifted], kijun[shifted]
    senkou_a_now = None if tenkan_then is None or kijun_then is None else (tenkan_then + kijun_then) / 2
    senkou_b_now = senkou_b[shifted]

    last = series[-1]
    cur_tenkan, prev_tenkan = tenkan[-1], tenkan[-2]
    cur_kijun, prev_kijun = kijun[-1], kijun[-2]
    if cur_tenkan is None or cur_kijun is None or senkou_a_now is None or senkou_b_now is None:
        return None

    tk_cross: Outcome | None = None
    if prev_tenkan is not None and prev_kijun is not None:
        if prev_tenkan <= prev_kijun and cur_tenkan > cur_kijun:
            tk_cross = Outcome.BIG
        elif prev_tenkan >= prev_kijun and cur_tenkan < cur_kijun:
            tk_cross = Outcome.SMALL

    cloud_top = max(senkou_a_now, senkou_b_now)
    cloud_bottom = min(senkou_a_now, senkou_b_now)
    vs_cloud: Outcome | None = None
    if last > cloud_top:
        vs_cloud = Outcome.BIG
    elif last < cloud_bottom:
        vs_cloud = Outcome.SMALL

    chikou = _side(last, series[shifted])

    prediction: Outcome | None = None
    strength = 0.0
    if tk_cross is not None and tk_cross == vs_cloud == chikou:
        prediction, strength = tk_cross, 0.95
    elif vs_cloud is not None and vs_cloud == tk_cross:
        prediction, strength = vs_cloud, 0.7
    elif vs_cloud is not None and vs_cloud == chikou:
        prediction, strength = vs_cloud, 0.65
    elif tk_cross is not None and vs_cloud is not None:
        prediction, strength = tk_cross, 0.55
    elif vs_cloud is not None:
        prediction, strength = vs_cloud, 0.5
    if prediction is None:
        return None

    # Price crossing the Kijun on this bar in the direction of the cloud breakout.
    if prev_kijun is not None and vs_cloud == prediction:
        prev_price = series[-2]
        if prediction == Outcome.BIG and last > cur_kijun and prev_price <= prev_kijun:
            strength = min(1.0, strength + 0.15)
        elif prediction == Outcome.SMALL and last < cur_kijun and prev_price >= prev_kijun:
            strength = min(1.0, strength + 0.15)

    return Signal(
        source="Ichimoku",
        prediction=prediction,
        weight=base_weight * strength,
        category=SignalCategory.TREND,
    )


@register("stochastic", base_weight=0.08)
def stochastic_signal(
    ctx: GeneratorContext,
    base_weight: float,
    k_period: int = 14,
    d_period: int = 3,
    smooth_k: int = 3,
) -> Signal | None:
    """%K/%D crossovers away from the extremes, else exits from overbought/oversold."""
    result = stochastic(ctx.numbers, k_period, d_period, smooth_k)
    if result is None:
        return None
    overbought, oversold = _STOCH_BANDS.get(ctx.trend.volatility, (80.0, 20.0))
    k, prev_k, d, prev_d = result.k, result.prev_k, result.d, result.prev_d

    prediction: Outcome | None = None
    strength = 0.0
    if prev_k <= prev_d and k > d and k < overbought - 5:
        prediction = Outcome.BIG
        floor = oversold + 5
        strength = max(0.35, (floor - min(k, d, floor)) / floor)
    elif prev_k >= prev_d and k < d and k > oversold + 5:
        prediction = Outcome.SMALL
        ceiling = overbought - 5
        strength = max(0.35, (max(k, d, ceiling) - ceiling) / (100 - ceiling))

    if prediction is None:
        half_band = (overbought - oversold) / 2
        if prev_k < oversold <= k < oversold + half_band:
            prediction = Outcome.BIG
            strength = max(0.25, (k - oversold) / half_band)
        elif prev_k > overbought >= k > oversold + half_band:
            prediction = Outcome.SMALL
            strength = max(0.25, (overbought - k) / half_band)
    if prediction is None:
        return None

    return Signal(
        source="Stochastic",
        prediction=prediction,
        weight=base_weight * (0.5 + min(strength, 1.0) * 0.5),
        category=SignalCategory.MOMENTUM,
    )


@register("volatility_squeeze", base_weight=0.07)
def volatility_squeeze(ctx: GeneratorContext, base_weight: float) -> Signal | None:
    """In a very-low-volatility squeeze, follow the newest outcome."""
    if ctx.trend.volatility != VolatilityLevel.VERY_LOW or len(ctx.outcomes) < 3:
        return None
    last, previous = ctx.outcomes[0], ctx.outcomes[1]
    if last is None or previous is None:
        return None
    if last == previous:
        source, factor = "VolSqueezeBreakoutCont", 0.8
    else:
        source, factor = "VolSqueezeBreakoutInitial", 0.6
    return Signal(
        source=source,
        prediction=last,
        weight=base_weight * factor,
        category=SignalCategory.VOLATILITY,
    )
