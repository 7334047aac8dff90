"""
Shared fixtures: an in-memory duplex transport and a manual clock, so that
no test touches the network or waits on real time.
"""

import json
import queue
import threading
import time

import pytest

from imu_mocap_sdk.config import RigConfig, SensorEndpoint


_CLOSED = object()


class FakeConnection:
    """Stands in for a websockets client connection."""

    def __init__(self, url):
        self.url = url
        self.sent = []
        self.closed = False
        self._frames = queue.Queue()

    def push(self, frame):
        """Deliver a frame from the sensor side."""
        self._frames.put(frame)

    def push_sample(self, label, quaternion):
        self.push(json.dumps({"label": label, "quaternion": list(quaternion)}))

    def fail(self, err):
        """Make the transport raise ``err`` on the reader side."""
        self._frames.put(err)

    def send(self, text):
        if self.closed:
            raise ConnectionError("connection closed")
        self.sent.append(text)

    def close(self):
        if not self.closed:
            self.closed = True
            self._frames.put(_CLOSED)

    def __iter__(self):
        while True:
            item = self._frames.get(timeout=5.0)
            if item is _CLOSED:
                return
            if isinstance(item, Exception):
                raise item
            yield item


class FakeConnector:
    """
    Connector returning FakeConnections.

    ``fail_times[url]`` connection attempts to ``url`` are refused before
    one succeeds; ``refuse`` urls are always refused.
    """

    def __init__(self, refuse=(), fail_times=None):
        self.refuse = set(refuse)
        self.fail_times = dict(fail_times or {})
        self.attempts = {}
        self.connections = {}
        self.lock = threading.Lock()

    def __call__(self, url):
        with self.lock:
            self.attempts[url] = self.attempts.get(url, 0) + 1
            if url in self.refuse:
                raise ConnectionRefusedError(f"refused: {url}")
            if self.fail_times.get(url, 0) > 0:
                self.fail_times[url] -= 1
                raise ConnectionRefusedError(f"refused: {url}")
            conn = FakeConnection(url)
            self.connections[url] = conn
            return conn

    def get(self, url, timeout=2.0):
        assert wait_for(lambda: url in self.connections, timeout), f"no connection to {url}"
        return self.connections[url]


class ManualClock:
    def __init__(self, t=0.0):
        self.t = t

    def __call__(self):
        return self.t

    def advance(self, dt):
        self.t += dt


def wait_for(predicate, timeout=2.0, interval=0.005):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def pump(service, n, timeout=2.0):
    """Dispatch queued events until ``n`` have been processed."""
    total = 0
    deadline = time.monotonic() + timeout
    while total < n and time.monotonic() < deadline:
        total += service.process_pending()
        if total < n:
            time.sleep(0.005)
    return total


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def two_label_config():
    return RigConfig(
        label_to_joint_name={"A": "jointA", "B": "jointB"},
        sensors=[SensorEndpoint("A", "10.0.0.1"), SensorEndpoint("B", "10.0.0.2")],
        calibration_window=30.0,
    )
