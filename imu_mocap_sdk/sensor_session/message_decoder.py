"""
Decoder for the JSON text frames sent by the wearable sensors.

Two frame shapes are understood:

    {"msg": "Still"}                                   -> StatusEvent
    {"label": "RA", "quaternion": [w, x, y, z]}         -> SampleEvent

Everything else is malformed and dropped at this boundary.
"""

import json
import logging
import math
from dataclasses import dataclass
from numbers import Real
from typing import Optional, Union

import numpy as np


logger = logging.getLogger(__name__)

STATUS_STILL = "Still"
STATUS_TPOSE = "T-Pose"


class MalformedFrameError(ValueError):
    """Raised by parse_frame when a frame has neither known shape."""


class FrameSyntaxError(MalformedFrameError):
    """The frame is not a UTF-8 JSON document at all."""


@dataclass(frozen=True)
class StatusEvent:
    """Calibration status notice reported by the sensor on ``label``."""
    label: str
    token: str


@dataclass(frozen=True)
class SampleEvent:
    """
    One orientation sample.

    ``label`` is the body segment named inside the frame, ``source`` the
    session it arrived on. ``quaternion`` keeps the wire order (w, x, y, z)
    and is not normalized.
    """
    label: str
    quaternion: np.ndarray
    source: str = ""


SensorEvent = Union[StatusEvent, SampleEvent]


def _is_number(value) -> bool:
    if not isinstance(value, Real) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # JSON integers beyond float range
        return False


def parse_frame(label: str, frame) -> SensorEvent:
    """
    Parse one frame received on the session for ``label``.

    Args:
        label: Label of the session the frame arrived on
        frame: Text frame (str, or UTF-8 bytes)

    Returns:
        StatusEvent or SampleEvent

    Raises:
        MalformedFrameError: If the frame is not JSON or has an unknown shape
    """
    if isinstance(frame, (bytes, bytearray)):
        try:
            frame = frame.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FrameSyntaxError(f"frame is not UTF-8: {e}") from e

    try:
        data = json.loads(frame)
    except (TypeError, ValueError) as e:
        raise FrameSyntaxError(f"frame is not JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedFrameError(f"expected a JSON object, got {type(data).__name__}")

    # Status notices take precedence over anything else in the frame
    if "msg" in data:
        token = data["msg"]
        if not isinstance(token, str) or not token:
            raise MalformedFrameError(f"status token must be a non-empty string, got {token!r}")
        return StatusEvent(label=label, token=token)

    sample_label = data.get("label")
    if not isinstance(sample_label, str) or not sample_label:
        raise MalformedFrameError(f"sample label must be a non-empty string, got {sample_label!r}")

    quat = data.get("quaternion")
    if not isinstance(quat, list) or len(quat) != 4:
        raise MalformedFrameError(f"quaternion must be a 4-element array, got {quat!r}")
    if not all(_is_number(c) for c in quat):
        raise MalformedFrameError(f"quaternion components must be finite numbers, got {quat!r}")

    w, x, y, z = quat
    return SampleEvent(
        label=sample_label,
        quaternion=np.array([w, x, y, z], dtype=float),
        source=label,
    )


def decode_frame(label: str, frame) -> Optional[SensorEvent]:
    """
    Decode a frame, dropping it if malformed.

    Never raises: malformed frames are logged and None is returned, so a bad
    frame can never take down its session.
    """
    try:
        return parse_frame(label, frame)
    except FrameSyntaxError as e:
        logger.warning(f"Failed to parse message for {label}: {e}")
    except MalformedFrameError as e:
        logger.debug(f"Dropped frame from {label}: {e}")
    return None
