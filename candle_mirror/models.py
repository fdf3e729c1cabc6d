from enum import Enum
from typing import NamedTuple

import pydantic
from pydantic import BaseModel, ConfigDict, field_validator


class Candle(NamedTuple):
    """One OHLCV bar. Field order matches the klines records in the bundled data files."""
    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    close_time: int
    quote_asset_volume: float = 0.0
    number_of_trades: float = 0.0
    taker_buy_base_volume: float = 0.0
    taker_buy_quote_volume: float = 0.0
    ignore: float = 0.0


class Field(str, Enum):
    OPEN = "open"
    HIGH = "high"
    LOW = "low"
    CLOSE = "close"

    @classmethod
    def parse(cls, value) -> "Field":
        """Accepts a Field or its name/value in any case ("close", "CLOSE")."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown price field: {value!r} (expected one of open/high/low/close)") from None


class Feature(NamedTuple):
    timestamp: int
    value: float


class SimilarityResult(NamedTuple):
    distance: float
    cosine: float
    window_id: int


class CompressSetting(BaseModel):
    """What to search for: symbol, candle size in hours and query window length."""
    model_config = ConfigDict(frozen=True)

    symbol: str = pydantic.Field(min_length=1)
    interval: int = pydantic.Field(ge=1)
    length: int = pydantic.Field(ge=1)

    @field_validator("symbol", mode="before")
    @classmethod
    def normalize_symbol(cls, v) -> str:
        return str(v).strip().upper()


class CalculatorSetting(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: Field

    @field_validator("field", mode="before")
    @classmethod
    def parse_field(cls, v):
        return Field.parse(v)


class LengthMismatchError(ValueError):
    """Two feature sequences that must be compared point-by-point differ in length."""

    def __init__(self, expected: int, actual: int, window_id=None):
        self.expected = expected
        self.actual = actual
        self.window_id = window_id
        where = f" (window {window_id})" if window_id is not None else ""
        super().__init__(f"Both sequences must have the same length: expected {expected}, got {actual}{where}")
