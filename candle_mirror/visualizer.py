from datetime import datetime, timezone

import matplotlib.pyplot as plt
import plotly.graph_objects as go

from candle_mirror.models import Field
from candle_mirror.processor import extract_features, shift_candle, slice_match_window


def format_time(open_time: int) -> str:
    """Candle open time (ms) as 'HH-DD/MM/YYYY' in UTC, the label used across the UI."""
    return datetime.fromtimestamp(open_time / 1000, tz=timezone.utc).strftime("%H-%d/%m/%Y")


def plot_matches(query, historical, results, field=Field.HIGH, top_n=5, future_length=None, show=True):
    """
    Overlays the query window with the best matches and what followed them.

    Each match is shifted the same way the ranking shifted it (first low onto
    the query's first low), so the lines are directly comparable.
    """
    field = Field.parse(field)
    length = len(query)
    if future_length is None:
        future_length = length * 2

    fig = plt.figure(figsize=(14, 7))

    # 1. Plot Query Pattern - Thick black line
    query_values = [f.value for f in extract_features(query, field)]
    plt.plot(range(length), query_values, label='Query Pattern', color='black', linewidth=3, zorder=10)

    # 2. Plot Historical Matches + what came next
    for i, result in enumerate(results[:top_n]):
        current, future = slice_match_window(historical, result.window_id, length, future_length)
        if not current:
            continue
        shift = query[0].low - current[0].low
        shifted = [shift_candle(c, shift) for c in current + future]
        values = [f.value for f in extract_features(shifted, field)]

        color = plt.cm.tab10(i)
        x_history = range(len(current))
        # Start future plot from the last history point to ensure lines connect
        x_future = range(len(current) - 1, len(values))

        plt.plot(x_history, values[:len(current)], linestyle='--', alpha=0.5, color=color, linewidth=1.5)
        plt.plot(x_future, values[len(current) - 1:], linestyle='-', marker='o', markersize=4, alpha=0.8,
                 color=color, label=f"Match {i+1}: {format_time(result.window_id)} (d={result.distance:.2f})")

    # Draw a vertical line separating History and Projection
    plt.axvline(x=length - 1, color='gray', linestyle=':', alpha=0.5)

    plt.title(f"Shape Matches on {field.value.title()} Price (Next {future_length} Candles)")
    plt.legend(loc='upper left')
    plt.grid(True, alpha=0.3)
    plt.xlabel("Candles")
    plt.ylabel(f"Shifted {field.value} price")
    if show:
        plt.show()
    return fig


def candlestick_figure(current, future=(), title="Matched Window"):
    """Candlestick chart of a matched window (solid) followed by its aftermath (faded)."""
    fig = go.Figure()

    def add_trace(candles, name, opacity):
        if not candles:
            return
        fig.add_trace(go.Candlestick(
            x=[datetime.fromtimestamp(c.open_time / 1000, tz=timezone.utc) for c in candles],
            open=[c.open for c in candles],
            high=[c.high for c in candles],
            low=[c.low for c in candles],
            close=[c.close for c in candles],
            name=name,
            opacity=opacity,
        ))

    add_trace(list(current), "Match", 1.0)
    add_trace(list(future), "After", 0.5)

    if current:
        fig.add_vline(x=datetime.fromtimestamp(list(current)[-1].open_time / 1000, tz=timezone.utc), line_dash="dash")
    fig.update_layout(title=title, xaxis_title="Time (UTC)", yaxis_title="Price",
                      xaxis_rangeslider_visible=False, height=500)
    return fig
