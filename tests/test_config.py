"""
Tests for rig configuration loading.
"""

import json

import pytest

from imu_mocap_sdk.config import (
    DEFAULT_SENSOR_PORT,
    ReconnectPolicy,
    SensorEndpoint,
    load_rig_config,
    rig_config_from_dict,
)


class TestShippedConfig:
    def test_mixamo_ybot(self):
        config = load_rig_config("mixamo_ybot")
        assert len(config.label_to_joint_name) == 12
        assert config.label_to_joint_name["RA"] == "mixamorigRightArm"
        assert config.sensors == [
            SensorEndpoint("RFA", "10.148.16.90", 81),
            SensorEndpoint("RA", "10.148.16.85", 81),
        ]
        assert config.calibration_window == 30.0
        assert config.reconnect == ReconnectPolicy()
        assert not config.require_calibration

    def test_sensor_override(self):
        config = load_rig_config("mixamo_ybot", sensors={"H": "192.168.1.5"})
        assert config.sensors == [SensorEndpoint("H", "192.168.1.5", DEFAULT_SENSOR_PORT)]

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            load_rig_config("no_such_rig")


class TestConfigFromDict:
    def test_sensor_entry_forms(self):
        config = rig_config_from_dict({
            "label_to_joint_name": {"A": "jointA", "B": "jointB"},
            "default_port": 8080,
            "sensors": {"A": "10.0.0.1", "B": {"address": "10.0.0.2", "port": 9000}},
        })
        assert config.sensors == [SensorEndpoint("A", "10.0.0.1", 8080), SensorEndpoint("B", "10.0.0.2", 9000)]
        assert config.sensors[1].url == "ws://10.0.0.2:9000"

    def test_reconnect_and_window(self):
        config = rig_config_from_dict({
            "label_to_joint_name": {"A": "jointA"},
            "calibration_window": 5,
            "require_calibration": True,
            "reconnect": {"max_retries": 4, "base_delay": 0.5},
        })
        assert config.calibration_window == 5.0
        assert config.require_calibration
        assert config.reconnect == ReconnectPolicy(max_retries=4, base_delay=0.5, max_delay=30.0)

    @pytest.mark.parametrize("data", [
        {},
        {"label_to_joint_name": {}},
        {"label_to_joint_name": {"A": "jointA"}, "sensors": {"A": 42}},
        {"label_to_joint_name": {"A": "jointA"}, "calibration_window": 0},
        {"label_to_joint_name": {"A": "jointA"}, "reconnect": {"max_retries": -1}},
    ])
    def test_invalid(self, data):
        with pytest.raises(ValueError):
            rig_config_from_dict(data)

    def test_load_from_path(self, tmp_path):
        path = tmp_path / "rig.json"
        path.write_text(json.dumps({"label_to_joint_name": {"A": "jointA"}, "sensors": {"A": "10.0.0.1"}}))
        config = load_rig_config(str(path))
        assert config.labels == ["A"]
        assert config.sensors[0].url == "ws://10.0.0.1:81"
