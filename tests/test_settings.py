import json
import logging

import pytest
from pydantic import ValidationError

from candle_mirror import config
from candle_mirror.models import CalculatorSetting, CompressSetting, Field
from candle_mirror.settings import SettingsStore


def test_defaults_when_file_missing(tmp_path):
    store = SettingsStore(tmp_path / "settings.json")

    assert store.load_setting() == CompressSetting(symbol="BTC-USD", interval=1, length=12)
    assert store.load_calc_setting() == CalculatorSetting(field=Field.HIGH)


def test_settings_persist_across_instances(tmp_path):
    path = tmp_path / "nested" / "settings.json"
    SettingsStore(path).save_setting(CompressSetting(symbol="ETH-USD", interval=4, length=24))
    SettingsStore(path).save_calc_setting(CalculatorSetting(field=Field.CLOSE))

    reloaded = SettingsStore(path)
    assert reloaded.load_setting() == CompressSetting(symbol="ETH-USD", interval=4, length=24)
    assert reloaded.load_calc_setting().field is Field.CLOSE
    assert json.loads(path.read_text())["compress_type"] == "close"


def test_get_put(tmp_path):
    store = SettingsStore(tmp_path / "settings.json")
    store.put("theme", "dark")

    assert SettingsStore(tmp_path / "settings.json").get("theme") == "dark"
    assert store.get("missing", 3) == 3


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json")

    assert SettingsStore(path).load_setting() == config.DEFAULT_SETTING


def test_non_object_json_is_ignored(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]")

    assert SettingsStore(path).get("symbol") is None


def test_bad_values_fall_back(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"interval": "hourly", "compress_type": "volume"}))
    store = SettingsStore(path)

    assert store.load_setting() == config.DEFAULT_SETTING
    assert store.load_calc_setting() == config.DEFAULT_CALC_SETTING


def test_default_path_follows_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("CANDLE_MIRROR_HOME", str(tmp_path))
    assert SettingsStore().path == tmp_path / "settings.json"


@pytest.mark.parametrize("values", [
    {"length": 0},
    {"length": -5},
    {"interval": -1},
    {"symbol": "   "},
])
def test_out_of_range_values_fall_back(tmp_path, caplog, values):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(values))

    with caplog.at_level(logging.WARNING, logger="candle_mirror.settings"):
        assert SettingsStore(path).load_setting() == config.DEFAULT_SETTING
    assert "using defaults" in caplog.text


@pytest.mark.parametrize("kwargs", [
    {"symbol": "BTC-USD", "interval": 1, "length": 0},
    {"symbol": "BTC-USD", "interval": 0, "length": 12},
    {"symbol": "", "interval": 1, "length": 12},
])
def test_compress_setting_rejects_invalid_values(kwargs):
    with pytest.raises(ValidationError):
        CompressSetting(**kwargs)


def test_setting_values_are_normalized(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"symbol": " eth-usd ", "interval": "4", "compress_type": "CLOSE"}))
    store = SettingsStore(path)

    assert store.load_setting() == CompressSetting(symbol="ETH-USD", interval=4, length=12)
    assert store.load_calc_setting().field is Field.CLOSE


def test_unknown_field_is_rejected():
    with pytest.raises(ValidationError):
        CalculatorSetting(field="volume")
