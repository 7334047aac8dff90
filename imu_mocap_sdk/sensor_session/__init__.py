"""
Sensor sessions - live connections to the wearable orientation sensors.

Each sensor serves a WebSocket on its own address. Once connected, it streams
JSON text frames and accepts plain text commands.

Inbound frames:
    {"msg": "Still" | "T-Pose"}                       # calibration status
    {"label": "RA", "quaternion": [w, x, y, z]}        # orientation sample

Outbound commands:
    "start"        # begin streaming samples
    "calibrate"    # run the sensor-side calibration routine
"""

from .message_decoder import (
    STATUS_STILL,
    STATUS_TPOSE,
    FrameSyntaxError,
    MalformedFrameError,
    SampleEvent,
    StatusEvent,
    decode_frame,
    parse_frame,
)
from .session_manager import (
    COMMAND_CALIBRATE,
    COMMAND_START,
    SensorSession,
    SessionEvent,
    SessionEventKind,
    SessionManager,
    websocket_connector,
)

__all__ = [
    "STATUS_STILL",
    "STATUS_TPOSE",
    "FrameSyntaxError",
    "MalformedFrameError",
    "SampleEvent",
    "StatusEvent",
    "decode_frame",
    "parse_frame",
    "COMMAND_CALIBRATE",
    "COMMAND_START",
    "SensorSession",
    "SessionEvent",
    "SessionEventKind",
    "SessionManager",
    "websocket_connector",
]
