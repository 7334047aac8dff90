"""
MotionCaptureService - wires sensor sessions, calibration and retargeting
into one running capture.

The data flow:
1. Sensor reader threads put SessionEvents on the context queue
2. A single dispatch thread drains the queue in order
3. Each frame is decoded into a StatusEvent or SampleEvent
4. Samples are buffered (calibration window running) or retargeted and
   applied to the skeleton consumer
5. The calibration window is checked on every loop iteration, so it closes
   on time even when no frames arrive
"""

import logging
import queue
import threading
import time
from typing import Callable, List, Optional

from .calibration.calibration_engine import CalibrationEngine, CalibrationState
from .config import RigConfig
from .context import CaptureContext
from .retargeter.joint_binding import JointBindingTable
from .retargeter.retargeter import PoseRetargeter
from .sensor_session.message_decoder import SampleEvent, StatusEvent, decode_frame
from .sensor_session.session_manager import (
    COMMAND_CALIBRATE,
    COMMAND_START,
    SessionEvent,
    SessionEventKind,
    SessionManager,
)
from .skeleton.pose_buffer import SkeletonConsumer


logger = logging.getLogger(__name__)


class MotionCaptureService:
    """
    Owns every piece of runtime state of one capture run.

    Example usage:
        config = load_rig_config("mixamo_ybot")
        pose = PoseBuffer(skeleton_joint_names)
        service = MotionCaptureService(config, pose)
        service.start()

        service.connect_all()
        service.broadcast_start()
        service.begin_calibration()    # hold the T-pose for the window

        while running:
            render(pose.get_latest_pose())

        service.stop()
    """

    def __init__(
        self,
        config: RigConfig,
        consumer: SkeletonConsumer,
        connector: Optional[Callable] = None,
        clock: Callable[[], float] = time.monotonic,
        on_status_complete: Optional[Callable[[str], None]] = None,
        poll_interval: float = 0.05,
    ):
        """
        Initialize the service and bind the configured labels to the skeleton.

        Args:
            config: Rig configuration
            consumer: Skeleton consumer receiving joint orientations
            connector: Transport factory, URL -> connection (default: WebSocket)
            clock: Monotonic time source in seconds
            on_status_complete: Called with a status token ("Still",
                "T-Pose") once every sensor of the calibration run reported it
            poll_interval: Queue wait timeout of the dispatch loop (s)
        """
        self.config = config
        self.consumer = consumer
        self.on_status_complete = on_status_complete
        self.poll_interval = poll_interval

        self.context = CaptureContext(clock=clock)
        self.bindings = JointBindingTable(config.label_to_joint_name)
        self.bindings.bind(consumer.list_joint_names(), consumer.resolve_joint)

        self.sessions = SessionManager(self.context, connector=connector, reconnect=config.reconnect)
        self.engine = CalibrationEngine(window=config.calibration_window, clock=self.context.clock)
        self.retargeter = PoseRetargeter(
            self.bindings,
            self.engine,
            consumer,
            require_calibration=config.require_calibration,
        )

        self.running = False
        self.thread = None

    # Control surface

    def connect_all(self) -> List[str]:
        """Open a connection to every configured sensor. Returns immediately."""
        return self.sessions.connect_all(self.config.sensors)

    def broadcast_start(self) -> List[str]:
        """Ask every connected sensor to start streaming."""
        return self.sessions.broadcast(COMMAND_START)

    def begin_calibration(self) -> bool:
        """
        Start a T-pose calibration window for the connected sensors.

        Returns:
            False if a window is already running (the command is ignored)
        """
        if not self.engine.begin(self.sessions.connected_labels()):
            return False
        self.sessions.broadcast(COMMAND_CALIBRATE)
        return True

    @property
    def calibration_state(self) -> CalibrationState:
        return self.engine.state

    # Dispatch

    def start(self):
        """Start the dispatch thread."""
        if self.running:
            return
        self.running = True
        self.thread = threading.Thread(target=self._dispatch_loop, name="mocap-dispatch", daemon=True)
        self.thread.start()
        logger.info("Dispatch loop started")

    def stop(self):
        """Close all sensor sessions and stop the dispatch thread."""
        self.running = False
        self.sessions.close_all()
        if self.thread is not None and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        self.thread = None
        logger.info("Stopped")

    def tick(self):
        """Close the calibration window if it has elapsed."""
        return self.engine.tick()

    def process_pending(self) -> int:
        """
        Synchronously dispatch every queued event.

        Useful when the host drives the loop itself instead of calling
        start(). Returns the number of events dispatched.
        """
        count = 0
        while True:
            try:
                event = self.context.events.get_nowait()
            except queue.Empty:
                break
            self.tick()
            self._safe_dispatch(event)
            count += 1
        self.tick()
        return count

    def dispatch(self, event: SessionEvent):
        """
        Route one session event downstream.

        Returns:
            The decoded StatusEvent / SampleEvent for MESSAGE events, else None
        """
        if event.kind is not SessionEventKind.MESSAGE:
            logger.debug(f"Session {event.label}: {event.kind.value}")
            return None

        decoded = decode_frame(event.label, event.payload)
        if decoded is None:
            return None

        if isinstance(decoded, StatusEvent):
            if self.engine.record_status(decoded) and self.on_status_complete is not None:
                self.on_status_complete(decoded.token)
        elif isinstance(decoded, SampleEvent):
            if self.engine.is_collecting:
                self.engine.add_sample(decoded)
            else:
                self.retargeter.retarget(decoded)
        return decoded

    def _safe_dispatch(self, event: SessionEvent):
        try:
            self.dispatch(event)
        except Exception as e:
            logger.exception(f"Error dispatching {event.kind.value} event from {event.label}: {e}")

    def _dispatch_loop(self):
        """Background thread draining the session event queue."""
        while self.running:
            try:
                event = self.context.events.get(timeout=self.poll_interval)
            except queue.Empty:
                event = None
            self.tick()
            if event is not None:
                self._safe_dispatch(event)
