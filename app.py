import pandas as pd
import streamlit as st

from candle_mirror import config
from candle_mirror.data_loader import fetch_candles, read_candle_lines
from candle_mirror.models import CalculatorSetting, CompressSetting, Field
from candle_mirror.settings import SettingsStore
from candle_mirror.store import CompressStore
from candle_mirror.visualizer import candlestick_figure, format_time

INTERVALS = [1, 2, 4, 6, 12, 24]

# --- Page Configuration ---
st.set_page_config(page_title="Candle Mirror", layout="wide", page_icon="🔮")


@st.cache_resource
def get_settings_store():
    return SettingsStore()


@st.cache_resource
def get_compress_store():
    return CompressStore()


@st.cache_data(ttl=3600)
def load_history(symbol, interval, uploaded_text=None):
    if uploaded_text:
        return read_candle_lines(uploaded_text.splitlines())
    path = config.sample_data_path(symbol, interval)
    if path.exists():
        return read_candle_lines(path.read_text(encoding="utf-8").splitlines())
    return fetch_candles(symbol, interval, period="720d")


settings = get_settings_store()
store = get_compress_store()
saved = settings.load_setting()
saved_field = settings.load_calc_setting().field

# --- Sidebar Settings ---
st.sidebar.header("Compress Settings")
symbol = st.sidebar.text_input("Symbol", value=saved.symbol).upper()
interval = st.sidebar.selectbox("Interval (hours)", INTERVALS,
                                index=INTERVALS.index(saved.interval) if saved.interval in INTERVALS else 0)
length = st.sidebar.slider("Window Length", 3, 96, min(max(saved.length, 3), 96))
fields = list(Field)
field = st.sidebar.radio("Compare Field", fields, index=fields.index(saved_field), format_func=lambda f: f.value.title())
uploaded = st.sidebar.file_uploader("Klines history file (optional)", type=["txt", "csv"])

st.title("Candle Mirror")

if st.button("Find Similar Windows", type="primary"):
    setting = CompressSetting(symbol=symbol or config.DEFAULT_SYMBOL, interval=interval, length=length)
    calc_setting = CalculatorSetting(field=field)
    settings.save_setting(setting)
    settings.save_calc_setting(calc_setting)

    uploaded_text = uploaded.getvalue().decode("utf-8") if uploaded is not None else None
    try:
        with st.spinner("Searching history..."):
            store.load_history(load_history(setting.symbol, interval, uploaded_text))
            store.change_field(calc_setting)
            store.refresh(setting).result()
    except (OSError, ValueError) as e:
        st.error(f"Error loading {setting.symbol}: {e}")
        st.stop()
    st.session_state.searched = True

state = store.state
if st.session_state.get("searched") and store.query:
    query = store.query
    results = state.results
    st.info(f"Query: {len(query)} candles from {format_time(state.last_time)} | "
            f"{state.calc_setting.field.value} | {len(results)} matches")

    if not results:
        st.warning("No windows to compare. Load a longer history or shorten the window.")
    else:
        table = pd.DataFrame({
            "Start": [format_time(r.window_id) for r in results],
            "Distance": [r.distance for r in results],
            "Cosine": [r.cosine for r in results],
        })
        st.dataframe(table, width='stretch')

        choice = st.selectbox("Chart match", range(len(results)),
                              format_func=lambda i: f"#{i+1} {format_time(results[i].window_id)} (d={results[i].distance:.2f})")
        chart = store.history_chart(results[choice].window_id)
        c1, c2 = st.columns(2)
        c1.plotly_chart(candlestick_figure(query, title="Query Window"), width='stretch')
        c2.plotly_chart(candlestick_figure(chart.current, chart.future, title=f"Match #{choice+1} and What Followed"),
                        width='stretch')
