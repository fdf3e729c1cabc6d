import logging
import sys

from tqdm import tqdm

from candle_mirror import config
from candle_mirror.data_loader import fetch_candles, parse_candle_line
from candle_mirror.settings import SettingsStore
from candle_mirror.store import CompressStore, ReloadSampleDataEffect
from candle_mirror.visualizer import format_time, plot_matches

SHOW_ROWS = 20
HISTORY_PERIOD = "720d"


def load_history(symbol, interval):
    """Bundled klines file when one exists, otherwise the longest hourly history yfinance serves."""
    path = config.sample_data_path(symbol, interval)
    if path.exists():
        print(f"Reading bundled history from {path}...")
        with path.open(encoding="utf-8") as f:
            lines = [line for line in f if line.strip()]
        return [parse_candle_line(line) for line in tqdm(lines, desc="Parsing candles")]

    print(f"No bundled file at {path}, downloading {HISTORY_PERIOD} of {interval}h candles...")
    return fetch_candles(symbol, interval, period=HISTORY_PERIOD)


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    # 1. Settings
    settings = SettingsStore()
    setting = settings.load_setting()
    calc_setting = settings.load_calc_setting()
    print(f"\nSymbol: {setting.symbol} | Interval: {setting.interval}h | Window: {setting.length} | "
          f"Field: {calc_setting.field.value}")

    store = CompressStore()

    def on_effect(effect):
        # History follows the candle interval of the query
        if isinstance(effect, ReloadSampleDataEffect):
            store.load_history(load_history(setting.symbol, effect.interval))

    store.on_effect(on_effect)

    # 2. Ingest Data + Search
    try:
        store.change_field(calc_setting)
        store.refresh(setting).result()
    except (OSError, ValueError) as e:
        print(f"Failed to load candles: {e}")
        sys.exit(1)
    finally:
        store.shutdown()

    # 3. Output
    query, results = store.query, store.state.results
    print(f"\nTop {min(len(results), SHOW_ROWS)} of {len(results)} Matches (query starts {format_time(query[0].open_time)}):")
    print("-" * 55)
    print(f"{'#':<4} | {'Start':<16} | {'Distance':<12} | {'Cosine':<8}")
    print("-" * 55)
    for i, r in enumerate(results[:SHOW_ROWS], start=1):
        print(f"{i:<4} | {format_time(r.window_id):<16} | {r.distance:<12.4f} | {r.cosine:.6f}")

    if results:
        plot_matches(query, store.historical, results, field=calc_setting.field,
                     future_length=setting.length * config.FUTURE_MULTIPLE)


if __name__ == "__main__":
    main()
