import pytest

from candle_mirror.models import Candle
from helpers import make_series


@pytest.fixture
def flat_candles():
    # open=close=high=low=10 at times 0, 1, 2
    return [Candle(t, 10.0, 10.0, 10.0, 10.0, 5.0, t) for t in range(3)]


@pytest.fixture
def ascending_series():
    return make_series([100.0, 101.0, 102.0, 103.0, 104.0, 105.0, 106.0, 107.0])


@pytest.fixture
def kline_line():
    return "[1502942400000,4261.48,4328.69,4261.32,4315.32,70.415925,1502945999999,302284.46,123,35.8,153866.22,0]"
