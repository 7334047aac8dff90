"""
CalibrationEngine - T-pose reference capture for every connected sensor.

While the wearer holds the T-pose the engine buffers the raw orientation
samples of every label for a fixed window. When the window elapses it
reduces each buffer to a reference orientation:

    raw_mean  = componentwise mean of (w, x, y, z) over the buffered samples
    reference = raw_mean / |raw_mean|

The window is time based only. A label that sends nothing keeps no
reference, and the engine becomes CALIBRATED regardless.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

import numpy as np

from ..sensor_session.message_decoder import SampleEvent, StatusEvent
from ..utils.quat_utils import quat_mean, quat_norm, quat_to_euler


logger = logging.getLogger(__name__)

DEGENERATE_NORM = 1e-8


class CalibrationState(Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    CALIBRATED = "calibrated"


@dataclass
class CalibrationResult:
    """Outcome of one calibration window."""
    references: Dict[str, np.ndarray]      # label -> unit (w, x, y, z)
    raw_means: Dict[str, np.ndarray]       # label -> mean before normalization
    sample_counts: Dict[str, int]
    uncalibrated: List[str]                # labels left without a reference

    def summary(self) -> str:
        lines = [f"Calibration ({len(self.references)} reference(s))"]
        for label, ref in self.references.items():
            euler = quat_to_euler(ref)
            lines.append(
                f"  {label:5s}: n={self.sample_counts[label]:4d}  "
                f"q=[{ref[0]:+.4f}, {ref[1]:+.4f}, {ref[2]:+.4f}, {ref[3]:+.4f}]  "
                f"euler=X{euler[0]:+.1f}° Y{euler[1]:+.1f}° Z{euler[2]:+.1f}°"
            )
        if self.uncalibrated:
            lines.append(f"  uncalibrated: {self.uncalibrated}")
        return "\n".join(lines)


@dataclass
class StatusTally:
    """
    Which labels of one calibration run reported each status token.

    A token is complete once every label of the run reported it; completion
    is reported only once per token.
    """
    labels: FrozenSet[str]
    reported: Dict[str, Set[str]] = field(default_factory=dict)
    completed: Set[str] = field(default_factory=set)

    def record(self, label: str, token: str) -> bool:
        """Record a report. Returns True if it completes ``token`` for the run."""
        if label not in self.labels or token in self.completed:
            return False
        seen = self.reported.setdefault(token, set())
        seen.add(label)
        if seen >= self.labels:
            self.completed.add(token)
            return True
        return False


def compute_reference(samples) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """
    Reduce buffered raw samples to a reference orientation.

    Args:
        samples: Sequence of raw (w, x, y, z) quaternions, at least one

    Returns:
        Tuple of (raw_mean, reference). reference is None when the mean has
        zero length (e.g. samples that cancel out).
    """
    raw_mean = quat_mean(samples)
    norm = quat_norm(raw_mean)
    if norm < DEGENERATE_NORM:
        return raw_mean, None
    return raw_mean, raw_mean / norm


class CalibrationEngine:
    """
    Idle -> Collecting -> Calibrated state machine.

    A calibrate command while already Collecting is ignored; a calibrate
    command while Calibrated starts a new run whose results overwrite the
    previous references.

    Example usage:
        engine = CalibrationEngine(window=30.0)
        engine.begin(["RA", "RFA"])
        for event in samples:
            engine.add_sample(event)
            engine.tick()
        ref = engine.reference("RA")
    """

    def __init__(self, window: float = 30.0, clock: Callable[[], float] = time.monotonic):
        if window <= 0:
            raise ValueError(f"Calibration window must be positive, got {window}")
        self.window = window
        self.clock = clock
        self.lock = threading.Lock()
        self._state = CalibrationState.IDLE
        self._start_time = None
        self._buffers: Dict[str, List[np.ndarray]] = {}
        self._references: Dict[str, np.ndarray] = {}
        self._tally = StatusTally(labels=frozenset())
        self.last_result: Optional[CalibrationResult] = None

    @property
    def state(self) -> CalibrationState:
        return self._state

    @property
    def is_collecting(self) -> bool:
        return self._state is CalibrationState.COLLECTING

    @property
    def references(self) -> Dict[str, np.ndarray]:
        with self.lock:
            return {label: ref.copy() for label, ref in self._references.items()}

    def reference(self, label: str) -> Optional[np.ndarray]:
        with self.lock:
            return self._references.get(label)

    def remaining(self, now: Optional[float] = None) -> float:
        """Seconds left in the current window, 0 when not collecting."""
        with self.lock:
            if self._state is not CalibrationState.COLLECTING:
                return 0.0
            now = self.clock() if now is None else now
            return max(0.0, self.window - (now - self._start_time))

    def begin(self, labels: Iterable[str]) -> bool:
        """
        Start a calibration window for ``labels``.

        Returns:
            True if a new window started, False if one is already running
        """
        with self.lock:
            if self._state is CalibrationState.COLLECTING:
                logger.info("Calibration already in progress, ignoring calibrate command")
                return False
            labels = list(dict.fromkeys(labels))
            self._state = CalibrationState.COLLECTING
            self._start_time = self.clock()
            self._buffers = {label: [] for label in labels}
            self._tally = StatusTally(labels=frozenset(labels))
        logger.info(f"Calibration started for {labels}, collecting for {self.window:.1f}s")
        return True

    def add_sample(self, event: SampleEvent) -> bool:
        """Buffer a raw sample. Returns whether it was buffered."""
        with self.lock:
            if self._state is not CalibrationState.COLLECTING:
                return False
            buf = self._buffers.get(event.label)
            if buf is None:
                return False
            buf.append(np.asarray(event.quaternion, dtype=float).copy())
            return True

    def record_status(self, event: StatusEvent) -> bool:
        """
        Tally a sensor status notice for the current run.

        Returns:
            True if every label of the run has now reported this token
        """
        with self.lock:
            complete = self._tally.record(event.label, event.token)
        logger.info(f"Sensor {event.label} reported '{event.token}'")
        if complete:
            logger.info(f"{event.token} calibration completed on all sensors")
        return complete

    def tick(self, now: Optional[float] = None) -> Optional[CalibrationResult]:
        """
        Close the window if it has elapsed.

        Returns:
            The CalibrationResult if this call finished the window, else None
        """
        with self.lock:
            if self._state is not CalibrationState.COLLECTING:
                return None
            now = self.clock() if now is None else now
            if now - self._start_time < self.window:
                return None
        return self.finish()

    def finish(self) -> Optional[CalibrationResult]:
        """Reduce the buffers to references and enter CALIBRATED."""
        with self.lock:
            if self._state is not CalibrationState.COLLECTING:
                return None
            buffers, self._buffers = self._buffers, {}

            references, raw_means, counts, uncalibrated = {}, {}, {}, []
            for label, samples in buffers.items():
                counts[label] = len(samples)
                if not samples:
                    logger.warning(f"No samples received from {label} during calibration, "
                                   f"leaving it uncalibrated")
                    uncalibrated.append(label)
                    continue
                raw_mean, ref = compute_reference(samples)
                raw_means[label] = raw_mean
                if ref is None:
                    logger.warning(f"Mean orientation of {label} has zero length, "
                                   f"leaving it uncalibrated")
                    uncalibrated.append(label)
                    continue
                references[label] = ref

            self._references = references
            self._state = CalibrationState.CALIBRATED
            self._start_time = None

        result = CalibrationResult(
            references=references,
            raw_means=raw_means,
            sample_counts=counts,
            uncalibrated=uncalibrated,
        )
        self.last_result = result
        logger.info(result.summary())
        return result
