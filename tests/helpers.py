from candle_mirror.models import Candle

HOUR_MS = 60 * 60 * 1000


def make_candle(open_time, low, high=None, open_=None, close=None, volume=1.0):
    """Candle with sensible defaults: open=low, close=high, high=low+1."""
    high = low + 1.0 if high is None else high
    open_ = low if open_ is None else open_
    close = high if close is None else close
    return Candle(open_time, open_, high, low, close, volume, open_time + HOUR_MS - 1)


def make_series(lows, start=0, step=HOUR_MS, spread=1.0):
    return [make_candle(start + i * step, low, high=low + spread) for i, low in enumerate(lows)]
