from typing import List, Sequence, Tuple

import numpy as np

from candle_mirror.models import Candle, Feature, Field

# --- HELPER FUNCTIONS ---

def shift_candle(candle: Candle, shift: float) -> Candle:
    """Moves the four prices by a constant. Volumes and times are untouched."""
    return candle._replace(
        open=candle.open + shift,
        high=candle.high + shift,
        low=candle.low + shift,
        close=candle.close + shift,
    )


def feature_values(features) -> np.array:
    """Plain float array from a Feature sequence (or anything already numeric)."""
    return np.array([f.value if isinstance(f, Feature) else f for f in features], dtype=float)

# --- WINDOWING ---

def normalize_windows(historical: Sequence[Candle], query_length: int, query_first_low: float) -> List[List[Candle]]:
    """
    Slides a window of `query_length` candles over `historical` (step 1) and
    shifts each window so its first low lands on `query_first_low`.

    Returns len(historical) - query_length + 1 windows, or [] when the
    query is longer than the history.
    """
    if query_length < 1:
        raise ValueError(f"Window length must be >= 1, got {query_length}")
    n_windows = len(historical) - query_length + 1
    if n_windows <= 0:
        return []

    # One offset per window, computed from that window's own first low
    lows = np.array([c.low for c in historical[:n_windows]], dtype=float)
    shifts = query_first_low - lows

    windows = []
    for i in range(n_windows):
        shift = float(shifts[i])
        windows.append([shift_candle(c, shift) for c in historical[i : i + query_length]])
    return windows


def extract_features(candles: Sequence[Candle], field) -> List[Feature]:
    field = Field.parse(field)
    attr = field.value
    return [Feature(c.open_time, getattr(c, attr)) for c in candles]


def slice_match_window(historical: Sequence[Candle], start_time: int, length: int, future_length: int = None) -> Tuple[List[Candle], List[Candle]]:
    """
    Finds the window that starts at `start_time` and what came after it.

    Returns (current, future): `length` candles from the matching open time and
    the following `future_length` candles (2 * length by default). Both are cut
    short at the end of the series; an unknown start time gives ([], []).
    """
    if future_length is None:
        future_length = length * 2

    start = next((i for i, c in enumerate(historical) if c.open_time == start_time), None)
    if start is None:
        return [], []

    end = start + length
    current = list(historical[start : end])
    future = list(historical[end : end + future_length])
    return current, future
