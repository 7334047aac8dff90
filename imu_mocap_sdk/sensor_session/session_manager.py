"""
SessionManager - one live connection per wearable sensor.

Each sensor gets its own daemon reader thread. Reader threads never touch
calibration or pose state: they only translate transport activity into
SessionEvents on the context's ordered queue, which the service drains in a
single dispatch loop. Frames from one sensor therefore keep their arrival
order, while frames from different sensors interleave freely.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from websockets.sync.client import connect as websocket_connect

from ..config import ReconnectPolicy, SensorEndpoint
from ..context import CaptureContext


logger = logging.getLogger(__name__)

COMMAND_START = "start"
COMMAND_CALIBRATE = "calibrate"
COMMANDS = (COMMAND_START, COMMAND_CALIBRATE)


class SessionEventKind(Enum):
    OPEN = "open"
    MESSAGE = "message"
    CLOSE = "close"
    ERROR = "error"


@dataclass(frozen=True)
class SessionEvent:
    """Transport activity on one sensor session, in arrival order."""
    kind: SessionEventKind
    label: str
    payload: Any = None


@dataclass
class SensorSession:
    """Runtime state of the connection to one sensor."""
    endpoint: SensorEndpoint
    connection: Any = None
    is_open: bool = False
    attempt: int = 0
    thread: Optional[threading.Thread] = None
    stop_event: threading.Event = field(default_factory=threading.Event)

    @property
    def label(self) -> str:
        return self.endpoint.label

    def send(self, text: str) -> bool:
        """Send a text frame if the session is open. Returns whether it was sent."""
        connection = self.connection
        if not self.is_open or connection is None:
            return False
        connection.send(text)
        return True


def websocket_connector(url: str, open_timeout: float = 5.0):
    """Default transport: a synchronous WebSocket client connection."""
    return websocket_connect(url, open_timeout=open_timeout)


class SessionManager:
    """
    Owns the connections to all configured sensors.

    A connector is any callable taking a URL and returning a connection
    object that supports ``send(text)``, ``close()`` and iteration over
    incoming frames; iteration ends on a clean close and raises on a
    transport error. The default is a websockets client.

    Example usage:
        manager = SessionManager(context)
        manager.connect_all(config.sensors)
        ...
        manager.broadcast("start")
        ...
        manager.close_all()
    """

    def __init__(
        self,
        context: CaptureContext,
        connector: Optional[Callable[[str], Any]] = None,
        reconnect: Optional[ReconnectPolicy] = None,
    ):
        self.context = context
        self.connector = connector or websocket_connector
        self.reconnect = reconnect or ReconnectPolicy()
        self.lock = threading.Lock()
        self.sessions: Dict[str, SensorSession] = {}
        self.connected: List[str] = []

    def connect_all(self, endpoints: Iterable[SensorEndpoint]) -> List[str]:
        """
        Open one connection per endpoint without waiting for any of them.

        Returns:
            Labels for which a new connection attempt was started
        """
        started = []
        for endpoint in endpoints:
            if self.connect(endpoint):
                started.append(endpoint.label)
        return started

    def connect(self, endpoint: SensorEndpoint) -> bool:
        """Start the reader thread for one endpoint. No-op if it is already running."""
        with self.lock:
            existing = self.sessions.get(endpoint.label)
            if existing is not None and existing.thread is not None and existing.thread.is_alive():
                logger.info(f"Sensor {endpoint.label} already has a live session")
                return False
            session = SensorSession(endpoint=endpoint)
            session.thread = threading.Thread(
                target=self._session_loop,
                args=(session,),
                name=f"sensor-{endpoint.label}",
                daemon=True,
            )
            self.sessions[endpoint.label] = session
        logger.info(f"Connecting to sensor {endpoint.label} at {endpoint.url}")
        session.thread.start()
        return True

    def connected_labels(self) -> List[str]:
        with self.lock:
            return list(self.connected)

    def is_connected(self, label: str) -> bool:
        with self.lock:
            return label in self.connected

    def broadcast(self, command: str) -> List[str]:
        """
        Send a command token to every connected sensor.

        Closed sessions are skipped; a failed send is logged and does not
        stop the broadcast. No acknowledgement is awaited.

        Returns:
            Labels the command was sent to
        """
        if command not in COMMANDS:
            raise ValueError(f"Unknown sensor command: {command}. Supported: {list(COMMANDS)}")

        with self.lock:
            targets = [self.sessions.get(label) for label in self.connected]

        sent = []
        for session in targets:
            if session is None:
                continue
            try:
                if session.send(command):
                    sent.append(session.label)
            except Exception as e:
                logger.error(f"Failed to send '{command}' to {session.label}: {e}")
        logger.info(f"Sent '{command}' to {len(sent)} sensor(s): {sent}")
        return sent

    def close_all(self, timeout: float = 1.0):
        """Close every connection and wait briefly for the reader threads."""
        with self.lock:
            sessions = list(self.sessions.values())
            for session in sessions:
                session.stop_event.set()

        for session in sessions:
            connection = session.connection
            if connection is not None:
                try:
                    connection.close()
                except Exception as e:
                    logger.debug(f"Error closing {session.label}: {e}")

        for session in sessions:
            thread = session.thread
            if thread is not None and thread.is_alive() and thread is not threading.current_thread():
                thread.join(timeout=timeout)

        with self.lock:
            self.sessions.clear()
            self.connected.clear()

    # Transport callbacks. Called from the reader threads with the session
    # they belong to; a session replaced by a later connect() is superseded
    # and its callbacks are no-ops.

    def _is_current(self, session: SensorSession) -> bool:
        return self.sessions.get(session.label) is session

    def on_open(self, session: SensorSession, connection) -> bool:
        """Register an opened connection. Returns False if the session was closed or superseded meanwhile."""
        label = session.label
        with self.lock:
            if session.stop_event.is_set() or not self._is_current(session):
                return False
            session.connection = connection
            session.is_open = True
            session.attempt = 0
            if label not in self.connected:
                self.connected.append(label)
        logger.info(f"Connected to sensor: {label}")
        self.context.events.put(SessionEvent(SessionEventKind.OPEN, label))
        return True

    def on_message(self, session: SensorSession, frame) -> bool:
        """Queue one received frame. Returns False if the session is superseded."""
        if not self._is_current(session):
            return False
        self.context.events.put(SessionEvent(SessionEventKind.MESSAGE, session.label, frame))
        return True

    def on_error(self, session: SensorSession, err: Exception):
        if not self._mark_closed(session):
            logger.debug(f"Ignoring error on superseded session {session.label}: {err}")
            return
        logger.error(f"WebSocket error ({session.label}): {err}")
        self.context.events.put(SessionEvent(SessionEventKind.ERROR, session.label, err))

    def on_close(self, session: SensorSession):
        if not self._mark_closed(session):
            return
        logger.warning(f"Sensor {session.label} disconnected")
        self.context.events.put(SessionEvent(SessionEventKind.CLOSE, session.label))

    def _mark_closed(self, session: SensorSession) -> bool:
        """Mark ``session`` closed. Returns whether it is still the current session for its label."""
        with self.lock:
            session.is_open = False
            session.connection = None
            if not self._is_current(session):
                return False
            if session.label in self.connected:
                self.connected.remove(session.label)
            return True

    def _session_loop(self, session: SensorSession):
        """Reader thread: connect, pump frames, and retry per the reconnect policy."""
        label = session.label
        try:
            while not session.stop_event.is_set():
                try:
                    connection = self.connector(session.endpoint.url)
                except Exception as e:
                    self.on_error(session, e)
                else:
                    if not self.on_open(session, connection):
                        connection.close()
                        break
                    try:
                        for frame in connection:
                            if not self.on_message(session, frame):
                                break
                    except Exception as e:
                        if session.stop_event.is_set():
                            self._mark_closed(session)
                        else:
                            self.on_error(session, e)
                    else:
                        if session.stop_event.is_set():
                            self._mark_closed(session)
                        else:
                            self.on_close(session)
                    finally:
                        try:
                            connection.close()
                        except Exception as e:
                            logger.debug(f"Error closing {label}: {e}")

                if session.stop_event.is_set() or not self._is_current(session):
                    break
                if not self.reconnect.allows(session.attempt):
                    break
                delay = self.reconnect.delay(session.attempt)
                session.attempt += 1
                logger.info(f"Reconnecting to {label} in {delay:.1f}s "
                            f"(attempt {session.attempt}/{self.reconnect.max_retries})")
                if session.stop_event.wait(delay):
                    break
        finally:
            with self.lock:
                session.is_open = False
                if self._is_current(session):
                    del self.sessions[label]
                    if label in self.connected:
                        self.connected.remove(label)
