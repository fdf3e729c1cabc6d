import json
import logging
from pathlib import Path

from pydantic import ValidationError

from candle_mirror import config
from candle_mirror.models import CalculatorSetting, CompressSetting

logger = logging.getLogger(__name__)

KEY_SYMBOL = "symbol"
KEY_INTERVAL = "interval"
KEY_LENGTH = "length"
KEY_FIELD = "compress_type"


class SettingsStore:
    """
    Small key-value store persisted as a JSON object.

    Every put() rewrites the file. A missing or unreadable file behaves like
    an empty store, so callers always get the defaults back.
    """

    def __init__(self, path=None):
        self.path = Path(path) if path is not None else config.settings_path()
        self._values = self._read()

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable settings file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring settings file {self.path}: expected a JSON object")
            return {}
        return data

    def _write(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._values, indent=2, sort_keys=True), encoding="utf-8")

    def get(self, key, default=None):
        return self._values.get(key, default)

    def put(self, key, value):
        self._values[key] = value
        self._write()

    def load_setting(self) -> CompressSetting:
        default = config.DEFAULT_SETTING
        try:
            return CompressSetting.model_validate({
                "symbol": self.get(KEY_SYMBOL, default.symbol),
                "interval": self.get(KEY_INTERVAL, default.interval),
                "length": self.get(KEY_LENGTH, default.length),
            })
        except ValidationError as e:
            logger.warning(f"Bad compress setting in {self.path}, using defaults: {e}")
            return default

    def save_setting(self, setting: CompressSetting):
        self._values.update({
            KEY_SYMBOL: setting.symbol,
            KEY_INTERVAL: setting.interval,
            KEY_LENGTH: setting.length,
        })
        self._write()

    def load_calc_setting(self) -> CalculatorSetting:
        try:
            return CalculatorSetting.model_validate({"field": self.get(KEY_FIELD, config.DEFAULT_FIELD)})
        except ValidationError as e:
            logger.warning(f"Bad similarity field in {self.path}, using default: {e}")
            return config.DEFAULT_CALC_SETTING

    def save_calc_setting(self, calc_setting: CalculatorSetting):
        self.put(KEY_FIELD, calc_setting.field.value)
