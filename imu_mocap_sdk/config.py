"""
Rig configuration: which sensor drives which skeletal joint, and where to
reach each sensor.

Configurations are JSON files. The ones shipped with the package live in
``configs/`` and are addressed by rig name; any other file can be loaded by
path.
"""

import json
import logging
import pathlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional


logger = logging.getLogger(__name__)

# Package paths
HERE = pathlib.Path(__file__).parent
CONFIG_ROOT = HERE / "configs"

# Rig config paths
RIG_CONFIG_DICT = {
    "mixamo_ybot": CONFIG_ROOT / "mixamo_ybot.json",
}

DEFAULT_SENSOR_PORT = 81
DEFAULT_CALIBRATION_WINDOW = 30.0


@dataclass(frozen=True)
class SensorEndpoint:
    """Network location of the sensor worn on one body segment."""
    label: str
    address: str
    port: int = DEFAULT_SENSOR_PORT

    @property
    def url(self) -> str:
        return f"ws://{self.address}:{self.port}"


@dataclass(frozen=True)
class ReconnectPolicy:
    """
    Exponential backoff reconnect policy.

    ``max_retries=0`` disables automatic reconnection: a dropped sensor stays
    down until the user issues a fresh connect command.
    """
    max_retries: int = 0
    base_delay: float = 1.0
    max_delay: float = 30.0

    def delay(self, attempt: int) -> float:
        """Delay in seconds before retry number ``attempt`` (0-based)."""
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    def allows(self, attempt: int) -> bool:
        return attempt < self.max_retries


@dataclass
class RigConfig:
    """Static configuration of one capture run."""
    label_to_joint_name: Dict[str, str]
    sensors: List[SensorEndpoint] = field(default_factory=list)
    calibration_window: float = DEFAULT_CALIBRATION_WINDOW
    reconnect: ReconnectPolicy = field(default_factory=ReconnectPolicy)
    require_calibration: bool = False

    @property
    def labels(self) -> List[str]:
        return list(self.label_to_joint_name.keys())


def _parse_sensors(raw_sensors, default_port: int) -> List[SensorEndpoint]:
    sensors = []
    for label, entry in raw_sensors.items():
        if isinstance(entry, str):
            sensors.append(SensorEndpoint(label, entry, default_port))
        elif isinstance(entry, dict) and "address" in entry:
            sensors.append(SensorEndpoint(label, entry["address"], int(entry.get("port", default_port))))
        else:
            raise ValueError(f"Invalid sensor entry for {label}: {entry!r}")
    return sensors


def rig_config_from_dict(data: dict) -> RigConfig:
    """
    Build a RigConfig from an already-parsed JSON document.

    Args:
        data: Dict with at least a ``label_to_joint_name`` table

    Returns:
        RigConfig

    Raises:
        ValueError: If a required table is missing or malformed
    """
    table = data.get("label_to_joint_name")
    if not isinstance(table, dict) or not table:
        raise ValueError("Rig config needs a non-empty 'label_to_joint_name' table")

    default_port = int(data.get("default_port", DEFAULT_SENSOR_PORT))
    sensors = _parse_sensors(data.get("sensors", {}), default_port)

    unknown = sorted(s.label for s in sensors if s.label not in table)
    if unknown:
        logger.warning(f"Sensors configured for labels with no target joint: {unknown}")

    reconnect = ReconnectPolicy(**data.get("reconnect", {}))
    if reconnect.max_retries < 0:
        raise ValueError(f"reconnect.max_retries must be >= 0, got {reconnect.max_retries}")

    window = float(data.get("calibration_window", DEFAULT_CALIBRATION_WINDOW))
    if window <= 0:
        raise ValueError(f"calibration_window must be positive, got {window}")

    return RigConfig(
        label_to_joint_name=dict(table),
        sensors=sensors,
        calibration_window=window,
        reconnect=reconnect,
        require_calibration=bool(data.get("require_calibration", False)),
    )


def load_rig_config(name_or_path="mixamo_ybot", sensors: Optional[Dict[str, str]] = None) -> RigConfig:
    """
    Load a rig configuration by shipped rig name or by file path.

    Args:
        name_or_path: Key of RIG_CONFIG_DICT or path to a JSON file
        sensors: Optional {label: address} table overriding the file's sensors

    Returns:
        RigConfig
    """
    if name_or_path in RIG_CONFIG_DICT:
        path = RIG_CONFIG_DICT[name_or_path]
    else:
        path = pathlib.Path(name_or_path)
        if path.suffix != ".json":
            raise ValueError(f"Unknown rig config: {name_or_path}. "
                             f"Supported: {list(RIG_CONFIG_DICT.keys())}")

    logger.info(f"Loading rig config: {path}")
    with open(path) as f:
        data = json.load(f)

    if sensors is not None:
        data["sensors"] = dict(sensors)
    return rig_config_from_dict(data)
