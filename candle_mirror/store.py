import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from candle_mirror import config
from candle_mirror.data_loader import fetch_recent_candles, read_candle_lines
from candle_mirror.engine import compress
from candle_mirror.models import CalculatorSetting, Candle, CompressSetting, Field, SimilarityResult
from candle_mirror.processor import slice_match_window

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompressState:
    progress: bool = False
    results: Tuple[SimilarityResult, ...] = ()
    last_time: int = 0
    setting: CompressSetting = config.DEFAULT_SETTING
    calc_setting: CalculatorSetting = config.DEFAULT_CALC_SETTING


@dataclass(frozen=True)
class ChartState:
    current: Tuple[Candle, ...] = ()
    future: Tuple[Candle, ...] = ()


@dataclass(frozen=True)
class ErrorEffect:
    error: BaseException


@dataclass(frozen=True)
class ReloadSampleDataEffect:
    """The candle interval changed; the bundled history for it must be reloaded."""
    interval: int


@dataclass
class _Inputs:
    historical: Optional[Tuple[Candle, ...]] = None
    query: Optional[Tuple[Candle, ...]] = None


class CompressStore:
    """
    Runs load -> normalize -> compress -> publish off the caller's thread.

    Three inputs drive a compression: the historical series (load_history /
    load_sample_data), the query window (refresh) and the similarity field
    (change_field). Once all are known, any change to one of them recomputes
    the results.

    Only one job of each kind per (setting, field) is in flight; asking again
    returns the running future. Each submission replaces the ones before it:
    a job that finishes after a newer one was requested publishes nothing.
    """

    def __init__(self, loader: Callable = fetch_recent_candles, executor: ThreadPoolExecutor = None,
                 initial_state: CompressState = None):
        self.loader = loader
        self.executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="compress")
        self._state = initial_state or CompressState()
        self._chart_state = ChartState()
        self._inputs = _Inputs()
        self._listeners = []
        self._effect_listeners = []
        self._lock = threading.RLock()
        self._in_flight = {}
        self._generation = 0
        self._latest = 0
        self._last_interval = None

    # --- observation ---

    @property
    def state(self) -> CompressState:
        return self._state

    @property
    def chart_state(self) -> ChartState:
        return self._chart_state

    @property
    def historical(self) -> Tuple[Candle, ...]:
        return self._inputs.historical or ()

    @property
    def query(self) -> Tuple[Candle, ...]:
        return self._inputs.query or ()

    def subscribe(self, listener: Callable[[CompressState], None]):
        self._listeners.append(listener)

    def on_effect(self, listener: Callable[[object], None]):
        self._effect_listeners.append(listener)

    def _set_state(self, **changes) -> bool:
        # Listeners are not called here; see _notify
        with self._lock:
            new_state = replace(self._state, **changes)
            if new_state == self._state:
                return False
            self._state = new_state
            return True

    def _notify(self):
        # Always outside the lock, with whatever state is current by now
        state = self._state
        logger.debug(f"New state: {state.calc_setting.field.value} progress={state.progress}")
        for listener in list(self._listeners):
            listener(state)

    def _process_state(self, **changes):
        if self._set_state(**changes):
            self._notify()

    def _emit_effect(self, effect):
        if isinstance(effect, ErrorEffect):
            self._process_state(progress=False)
        for listener in list(self._effect_listeners):
            listener(effect)

    # --- actions ---

    def load_history(self, candles) -> Optional[Future]:
        """Replaces the historical series searched by every compression."""
        candles = tuple(candles)
        if not candles:
            logger.warning("No historical candles given; keeping previous history")
            return None
        with self._lock:
            if candles == self._inputs.historical:
                return None
            self._inputs.historical = candles
        logger.info(f"Historical series set: {len(candles)} candles")
        return self._recompute()

    def load_sample_data(self, lines) -> Optional[Future]:
        """Parses bundled klines records into the historical series."""
        return self.load_history(read_candle_lines(lines))

    def change_field(self, calc_setting: CalculatorSetting) -> Optional[Future]:
        if calc_setting == self._state.calc_setting:
            return None
        self._process_state(calc_setting=calc_setting)
        return self._recompute()

    def refresh(self, setting: CompressSetting) -> Future:
        """Loads a fresh query window for `setting` and recompresses against it."""
        if setting.interval != self._last_interval:
            self._last_interval = setting.interval
            self._emit_effect(ReloadSampleDataEffect(setting.interval))
        self._process_state(setting=setting)
        return self._submit(setting, self._state.calc_setting.field, load_query=True)

    def history_chart(self, start_time: int) -> ChartState:
        """Matched window plus the candles that followed it, for the chart view."""
        length = self._state.setting.length
        current, future = slice_match_window(self.historical, start_time, length, length * config.FUTURE_MULTIPLE)
        self._chart_state = ChartState(tuple(current), tuple(future))
        return self._chart_state

    def shutdown(self, wait: bool = True):
        self.executor.shutdown(wait=wait)

    # --- pipeline ---

    def _recompute(self) -> Optional[Future]:
        with self._lock:
            ready = self._inputs.historical is not None and self._inputs.query is not None
        if not ready:
            return None
        return self._submit(self._state.setting, self._state.calc_setting.field, load_query=False)

    def _submit(self, setting: CompressSetting, field: Field, load_query: bool) -> Future:
        key = (setting, field, load_query)
        with self._lock:
            running = self._in_flight.get(key)
            if running is not None and not running[0].done():
                logger.debug(f"Compression already running for {key}")
                future, self._latest = running
                return future
            self._generation += 1
            generation = self._latest = self._generation
            changed = self._set_state(progress=True)
            future = self.executor.submit(self._run, setting, field, load_query, generation)
            self._in_flight[key] = (future, generation)
        if changed:
            self._notify()
        future.add_done_callback(lambda f: self._forget(key, f))
        return future

    def _forget(self, key, future: Future):
        with self._lock:
            running = self._in_flight.get(key)
            if running is not None and running[0] is future:
                del self._in_flight[key]

    def _publish(self, generation: int, **changes) -> bool:
        """Applies `changes` only if no newer job was submitted since `generation`."""
        with self._lock:
            if generation != self._latest:
                return False
            changed = self._set_state(**changes)
        if changed:
            self._notify()
        return True

    def _run(self, setting: CompressSetting, field: Field, load_query: bool, generation: int) -> List[SimilarityResult]:
        try:
            if load_query:
                query = tuple(self.loader(setting.symbol, setting.interval, setting.length))
                if not query:
                    raise ValueError(f"No recent candles for {setting.symbol} at {setting.interval}h")
                with self._lock:
                    if generation != self._latest:
                        logger.debug(f"Dropping query for {setting.symbol}: superseded")
                        return []
                    self._inputs.query = query
                self._publish(generation, last_time=query[0].open_time)

            with self._lock:
                historical = self._inputs.historical
                query = self._inputs.query
            if historical is None or query is None:
                # History not loaded yet; results follow once it arrives
                self._publish(generation, progress=False)
                return []

            results = compress(historical, query, field, top_k=config.TOP_K)
            if self._publish(generation, progress=False, results=tuple(results)):
                logger.info(f"Compressed {setting.symbol} ({len(query)} candles, {field.value}): {len(results)} matches")
            else:
                logger.debug(f"Discarding {field.value} results for {setting.symbol}: superseded")
            return results
        except Exception as e:
            logger.error(f"Compression failed for {setting}: {e}")
            if generation == self._latest:
                self._emit_effect(ErrorEffect(e))
            raise
