import logging
import math
from pathlib import Path
from typing import Iterable, List, Sequence

import pandas as pd
import yfinance as yf

from candle_mirror.models import Candle

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000
CANDLE_FIELDS = list(Candle._fields)
OHLCV_AGG = {'Open': 'first', 'High': 'max', 'Low': 'min', 'Close': 'last', 'Volume': 'sum'}
# yfinance serves hourly bars for the last 730 days only
MAX_HOURLY_DAYS = 729

# --- NETWORK SOURCE ---

def fetch_stock_data(symbol: str, period: str = "60d", interval: int = 1) -> pd.DataFrame:
    """
    Fetches hourly Open, High, Low, Close, Volume bars for `symbol` and
    resamples them to `interval` hours.
    """
    ticker_obj = yf.Ticker(symbol)
    df = ticker_obj.history(period=period, interval="1h")

    # Ensure Open/High/Low/Close/Volume columns exist
    required_cols = ['Open', 'High', 'Low', 'Close', 'Volume']
    for col in required_cols:
        if col not in df.columns:
            raise ValueError(f"Missing required column: {col}")

    df = df[required_cols].dropna()

    if interval > 1:
        df = df.resample(f"{interval}h").agg(OHLCV_AGG).dropna()

    logger.info(f"Fetched {len(df)} {interval}h candles for {symbol}")
    return df


def fetch_candles(symbol: str, interval: int = 1, period: str = "60d") -> List[Candle]:
    df = fetch_stock_data(symbol, period=period, interval=interval)
    return candles_from_frame(df, interval_ms=interval * HOUR_MS)


def recent_period(interval: int, length: int) -> str:
    """yfinance period long enough to hold `length` candles of `interval` hours."""
    days = math.ceil(length * interval / 24)
    # Twice the span plus slack for market closures and the partial first bin
    return f"{min(max(days * 2 + 2, 7), MAX_HOURLY_DAYS)}d"


def fetch_recent_candles(symbol: str, interval: int, length: int) -> List[Candle]:
    """The last `length` candles, used as the query window."""
    if length < 1 or interval < 1:
        raise ValueError(f"Window length and interval must be >= 1, got length={length} interval={interval}")

    candles = fetch_candles(symbol, interval, period=recent_period(interval, length))
    if len(candles) < length:
        raise ValueError(f"Only {len(candles)} {interval}h candles available for {symbol}, window needs {length}")
    return candles[-length:]

# --- DATAFRAME CONVERSION ---

def candles_from_frame(df: pd.DataFrame, interval_ms: int = HOUR_MS) -> List[Candle]:
    """
    Converts a yfinance-style frame (DatetimeIndex + Open/High/Low/Close/Volume)
    into Candles. Klines-only fields that yfinance does not provide are zero.
    """
    index = pd.DatetimeIndex(df.index)
    if index.tz is None:
        index = index.tz_localize("UTC")
    open_times = [int(ts.timestamp() * 1000) for ts in index]

    candles = []
    for open_time, row in zip(open_times, df.itertuples(index=False)):
        candles.append(Candle(
            open_time=open_time,
            open=float(row.Open),
            high=float(row.High),
            low=float(row.Low),
            close=float(row.Close),
            volume=float(row.Volume),
            close_time=open_time + interval_ms - 1,
        ))
    return candles


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """All 12 candle fields as columns, indexed by UTC open time."""
    df = pd.DataFrame(list(candles), columns=CANDLE_FIELDS)
    df.index = pd.to_datetime(df['open_time'], unit='ms', utc=True)
    df.index.name = 'time'
    return df

# --- FLAT FILE SOURCE ---

def parse_candle_line(line: str) -> Candle:
    """
    Parses one klines record: 12 comma-separated decimals, usually wrapped
    in brackets, e.g. [1502942400000,4261.48,4328.69,...,0].
    """
    text = line.strip()
    if text.startswith('[') and text.endswith(']'):
        text = text[1:-1]

    parts = [p.strip().strip('"') for p in text.split(',')]
    if len(parts) != len(CANDLE_FIELDS):
        raise ValueError(f"Expected {len(CANDLE_FIELDS)} fields, got {len(parts)}: {line!r}")

    try:
        values = [float(p) for p in parts]
    except ValueError:
        raise ValueError(f"Non-numeric value in candle record: {line!r}") from None

    # Times are written as decimals in some dumps (1.5029424E12)
    values[0] = int(values[0])
    values[6] = int(values[6])
    return Candle(*values)


def read_candle_lines(lines: Iterable[str]) -> List[Candle]:
    return [parse_candle_line(line) for line in lines if line.strip()]


def read_candle_file(path) -> List[Candle]:
    path = Path(path)
    with path.open(encoding="utf-8") as f:
        candles = read_candle_lines(f)
    logger.info(f"Loaded {len(candles)} candles from {path}")
    return candles
