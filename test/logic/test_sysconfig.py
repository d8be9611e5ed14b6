"""Tests for monitor configuration handling."""

from configparser import ConfigParser

import pytest

from loadscope.system import (
    MonitorConfig,
    create_default_config_file,
    list_available_configs,
    load_monitor_config,
    validate_monitor_config,
)


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create temporary .loadscope directory."""
    config_dir = tmp_path / ".loadscope"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def monitors_file(temp_config_dir):
    """Create a monitors.ini file with two monitors."""
    path = temp_config_dir / "monitors.ini"
    config = ConfigParser()
    config["Bench"] = {
        "address": "COM4",
        "baudrate": "19200",
        "timeout_s": "0.5",
        "default_location": "Test bay 2",
    }
    config["yard"] = {
        "address": "10.0.0.12:502",
        "poll_interval_s": "2.0",
        "change_threshold_t": "0.1",
    }
    with path.open("w") as f:
        config.write(f)
    return path


def _parser(**values):
    parser = ConfigParser()
    parser["m"] = values
    return parser


class TestMonitorConfig:
    def test_load(self, monitors_file):
        config = load_monitor_config("bench", monitors_file)
        assert config.name == "Bench"
        assert config.address == "COM4"
        assert config.baudrate == 19200
        assert config.timeout_s == 0.5
        assert config.default_location == "Test bay 2"
        assert config.poll_interval_s == 1.0

    def test_load_keeps_defaults(self, monitors_file):
        config = load_monitor_config("yard", monitors_file)
        assert config.poll_interval_s == 2.0
        assert config.change_threshold_t == 0.1
        assert config.reconnect_delay_s == 3.0
        assert config.device_kwargs() == {"unit_id": 0, "baudrate": 9600, "timeout_s": 1.0}

    def test_default_fallback(self, temp_config_dir):
        assert load_monitor_config("default", temp_config_dir / "missing.ini") == MonitorConfig()

    def test_unknown_name(self, monitors_file):
        with pytest.raises(ValueError):
            load_monitor_config("crane-9", monitors_file)

    def test_invalid_section_raises(self, temp_config_dir):
        path = temp_config_dir / "monitors.ini"
        path.write_text("[default]\npoll_interval_s = soon\n")
        with pytest.raises(ValueError):
            load_monitor_config("default", path)

    @pytest.mark.parametrize(
        "values, message",
        [
            ({"adress": "COM4"}, "Unknown key"),
            ({"timeout_s": "fast"}, "Invalid value"),
            ({"poll_interval_s": "0"}, "must be positive"),
            ({"change_threshold_t": "-0.1"}, "must not be negative"),
            ({"unit_id": "300"}, "out of range"),
            ({"address": " "}, "must not be empty"),
        ],
    )
    def test_validate_rejects(self, values, message):
        valid, error = validate_monitor_config(_parser(**values), "m")
        assert not valid
        assert message in error

    def test_validate_accepts(self):
        assert validate_monitor_config(_parser(address="mock", unit_id="1"), "m") == (True, "")
        assert not validate_monitor_config(_parser(), "other")[0]

    def test_create_default_file(self, temp_config_dir):
        path = create_default_config_file(temp_config_dir / "sub" / "monitors.ini")
        assert path.exists()
        assert list_available_configs(path) == ["default", "mock"]
        assert load_monitor_config("default", path) == MonitorConfig()
        assert load_monitor_config("mock", path).address == "mock"

    def test_list_missing_file(self, temp_config_dir):
        assert list_available_configs(temp_config_dir / "nope.ini") == []
