import os
from pathlib import Path

from candle_mirror.models import CalculatorSetting, CompressSetting, Field

# Configuration
DEFAULT_SYMBOL = "BTC-USD"
DEFAULT_INTERVAL = 1   # hours per candle
DEFAULT_LENGTH = 12    # candles in the query window
DEFAULT_FIELD = Field.HIGH

TOP_K = 100

# How far past a match we show on the chart, in multiples of the window length
FUTURE_MULTIPLE = 2

DEFAULT_SETTING = CompressSetting(symbol=DEFAULT_SYMBOL, interval=DEFAULT_INTERVAL, length=DEFAULT_LENGTH)
DEFAULT_CALC_SETTING = CalculatorSetting(field=DEFAULT_FIELD)


def home_dir() -> Path:
    return Path(os.environ.get("CANDLE_MIRROR_HOME", Path.home() / ".candle_mirror"))


def settings_path() -> Path:
    return home_dir() / "settings.json"


def data_dir() -> Path:
    return Path(os.environ.get("CANDLE_MIRROR_DATA", "data"))


def sample_data_path(symbol: str, interval: int) -> Path:
    """Bundled klines file for a symbol/interval, e.g. data/BTC-USD_1h.txt"""
    return data_dir() / f"{symbol}_{interval}h.txt"
