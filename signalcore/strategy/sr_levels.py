"""Support/Resistance levels from swing highs and lows — pure functions."""


def find_swing_highs(highs: list[float], window: int = 2) -> list[tuple[int, float]]:
    """Identify swing highs as ``(index, price)`` pairs.

    A swing high is strictly higher than the *window* highs on each side.
    """
    swings: list[tuple[int, float]] = []
    for i in range(window, len(highs) - window):
        high = highs[i]
        is_swing = True
        for j in range(1, window + 1):
            if highs[i - j] >= high or highs[i + j] >= high:
                is_swing = False
                break
        if is_swing:
            swings.append((i, high))
    return swings


def find_swing_lows(lows: list[float], window: int = 2) -> list[tuple[int, float]]:
    """Identify swing lows as ``(index, price)`` pairs.

    A swing low is strictly lower than the *window* lows on each side.
    """
    swings: list[tuple[int, float]] = []
    for i in range(window, len(lows) - window):
        low = lows[i]
        is_swing = True
        for j in range(1, window + 1):
            if lows[i - j] <= low or lows[i + j] <= low:
                is_swing = False
                break
        if is_swing:
            swings.append((i, low))
    return swings


def find_sr_levels(
    highs: list[float],
    lows: list[float],
    price: float,
    lookback: int = 100,
    swing_window: int = 2,
    max_levels: int = 3,
) -> tuple[list[float], list[float]]:
    """Support and resistance levels around *price*.

    Scans the trailing *lookback* candles for swing lows (support) and
    swing highs (resistance) and keeps the *max_levels* of each that are
    closest to *price*.

    Returns:
        ``(support, resistance)`` — support sorted descending, resistance
        sorted ascending.
    """
    recent_highs = highs[-lookback:]
    recent_lows = lows[-lookback:]

    swing_lows = [p for _, p in find_swing_lows(recent_lows, swing_window)]
    swing_highs = [p for _, p in find_swing_highs(recent_highs, swing_window)]

    support = sorted(swing_lows, key=lambda p: (abs(p - price), p))[:max_levels]
    resistance = sorted(swing_highs, key=lambda p: (abs(p - price), p))[:max_levels]

    support.sort(reverse=True)
    resistance.sort()
    return support, resistance
