import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402

from candle_mirror.engine import compress  # noqa: E402
from candle_mirror.models import Field  # noqa: E402
from candle_mirror.visualizer import candlestick_figure, format_time, plot_matches  # noqa: E402
from helpers import make_series  # noqa: E402


def test_format_time():
    assert format_time(0) == "00-01/01/1970"
    assert format_time(1502942400000) == "04-17/08/2017"


def test_plot_matches_draws_query_and_matches():
    historical = make_series([float(v) for v in (1, 3, 2, 4, 6, 5, 7, 9, 8, 10)])
    query = make_series([20.0, 22.0, 21.0], start=10**12)
    results = compress(historical, query, Field.HIGH)

    fig = plot_matches(query, historical, results, field=Field.HIGH, top_n=2, show=False)
    try:
        ax = fig.axes[0]
        # query + (history, future) per match + projection divider
        assert len(ax.get_lines()) == 1 + 2 * 2 + 1
        assert list(ax.get_lines()[0].get_ydata()) == [21.0, 23.0, 22.0]
    finally:
        plt.close(fig)


def test_candlestick_figure_traces():
    series = make_series([1.0, 2.0, 3.0, 4.0, 5.0])

    fig = candlestick_figure(series[:3], series[3:])
    assert [t.name for t in fig.data] == ["Match", "After"]
    assert list(fig.data[0].low) == [1.0, 2.0, 3.0]

    assert len(candlestick_figure(series).data) == 1
