"""
End-to-end tests of the capture service: sessions -> decoder -> calibration
-> retargeting -> skeleton, with a fake transport and a manual clock.
"""

import json

import numpy as np
import pytest

from imu_mocap_sdk.calibration.calibration_engine import CalibrationState
from imu_mocap_sdk.sensor_session.message_decoder import STATUS_STILL, STATUS_TPOSE, SampleEvent, StatusEvent
from imu_mocap_sdk.sensor_session.session_manager import SessionEvent, SessionEventKind
from imu_mocap_sdk.service import MotionCaptureService
from imu_mocap_sdk.skeleton.pose_buffer import PoseBuffer
from imu_mocap_sdk.utils.quat_utils import IDENTITY_QUAT

from conftest import pump, wait_for


RAW_A = [0.9, 0.1, -0.2, 0.3]
RAW_B = [0.2, 0.8, 0.4, -0.1]


def _message(label, payload):
    if not isinstance(payload, str):
        payload = json.dumps(payload)
    return SessionEvent(SessionEventKind.MESSAGE, label, payload)


@pytest.fixture
def pose():
    return PoseBuffer(["jointA", "jointB", "jointOther"])


@pytest.fixture
def service(two_label_config, pose, connector, clock):
    service = MotionCaptureService(two_label_config, pose, connector=connector, clock=clock)
    yield service
    service.stop()


def _connect(service, connector):
    service.connect_all()
    assert wait_for(lambda: len(service.sessions.connected_labels()) == 2)
    assert pump(service, 2) == 2
    return connector.get("ws://10.0.0.1:81"), connector.get("ws://10.0.0.2:81")


class TestEndToEnd:
    def test_calibrate_then_stream_gives_identity(self, service, connector, clock, pose):
        conn_a, conn_b = _connect(service, connector)

        assert service.begin_calibration()
        assert service.calibration_state is CalibrationState.COLLECTING
        assert conn_a.sent == ["calibrate"]
        assert conn_b.sent == ["calibrate"]

        for _ in range(3):
            conn_a.push_sample("A", RAW_A)
            conn_b.push_sample("B", RAW_B)
        assert pump(service, 6) == 6
        assert pose.get_latest_pose() == {}

        clock.advance(30.0)
        service.tick()
        assert service.calibration_state is CalibrationState.CALIBRATED

        conn_a.push_sample("A", RAW_A)
        conn_b.push_sample("B", RAW_B)
        assert pump(service, 2) == 2

        np.testing.assert_allclose(pose.get_orientation("jointA"), IDENTITY_QUAT, atol=1e-12)
        np.testing.assert_allclose(pose.get_orientation("jointB"), IDENTITY_QUAT, atol=1e-12)

    def test_window_closes_with_no_samples(self, service, connector, clock):
        _connect(service, connector)
        service.begin_calibration()
        clock.advance(30.0)
        service.process_pending()
        assert service.calibration_state is CalibrationState.CALIBRATED
        assert service.engine.references == {}

    def test_broadcast_start(self, service, connector):
        conn_a, conn_b = _connect(service, connector)
        assert sorted(service.broadcast_start()) == ["A", "B"]
        assert conn_a.sent == ["start"] and conn_b.sent == ["start"]

    def test_second_calibrate_ignored_while_collecting(self, service, connector):
        conn_a, _ = _connect(service, connector)
        assert service.begin_calibration()
        assert not service.begin_calibration()
        assert conn_a.sent == ["calibrate"]

    def test_malformed_frames_do_not_stop_session(self, service, connector, pose):
        conn_a, _ = _connect(service, connector)
        conn_a.push("garbage")
        conn_a.push('{"label": "A", "quaternion": [1, 0, 0]}')
        conn_a.push_sample("A", RAW_A)
        assert pump(service, 3) == 3
        np.testing.assert_allclose(pose.get_orientation("jointA"), RAW_A)
        assert service.sessions.is_connected("A")


class TestDispatch:
    def test_idle_sample_passes_through(self, service, pose):
        decoded = service.dispatch(_message("A", {"label": "A", "quaternion": RAW_A}))
        assert isinstance(decoded, SampleEvent)
        np.testing.assert_allclose(pose.get_orientation("jointA"), RAW_A)

    def test_status_tally_fires_callback_once(self, two_label_config, pose, connector, clock):
        completed = []
        service = MotionCaptureService(
            two_label_config, pose, connector=connector, clock=clock,
            on_status_complete=completed.append,
        )
        _connect(service, connector)
        service.begin_calibration()

        assert isinstance(service.dispatch(_message("A", {"msg": STATUS_STILL})), StatusEvent)
        assert completed == []
        service.dispatch(_message("B", {"msg": STATUS_STILL}))
        service.dispatch(_message("B", {"msg": STATUS_STILL}))
        assert completed == [STATUS_STILL]
        service.dispatch(_message("A", {"msg": STATUS_TPOSE}))
        service.dispatch(_message("B", {"msg": STATUS_TPOSE}))
        assert completed == [STATUS_STILL, STATUS_TPOSE]
        service.stop()

    def test_lifecycle_events_are_not_decoded(self, service):
        assert service.dispatch(SessionEvent(SessionEventKind.OPEN, "A")) is None
        assert service.dispatch(SessionEvent(SessionEventKind.ERROR, "A", OSError("x"))) is None

    def test_sample_for_unconfigured_label(self, service, pose):
        service.dispatch(_message("A", {"label": "Z", "quaternion": RAW_A}))
        assert pose.get_latest_pose() == {}

    def test_unbound_label_after_partial_bind(self, two_label_config, connector, clock):
        pose = PoseBuffer(["jointA"])
        service = MotionCaptureService(two_label_config, pose, connector=connector, clock=clock)
        assert service.bindings.unbound_labels == ["B"]
        service.dispatch(_message("B", {"label": "B", "quaternion": RAW_B}))
        service.dispatch(_message("A", {"label": "A", "quaternion": RAW_A}))
        assert list(pose.get_latest_pose().keys()) == ["jointA"]


class TestDispatchThread:
    def test_background_loop_applies_samples(self, service, connector, pose):
        service.start()
        service.connect_all()
        conn_a = connector.get("ws://10.0.0.1:81")
        conn_a.push_sample("A", RAW_A)
        assert wait_for(lambda: pose.get_orientation("jointA") is not None)
        np.testing.assert_allclose(pose.get_orientation("jointA"), RAW_A)

    def test_background_loop_closes_window(self, service, clock):
        service.start()
        service.engine.begin(["A"])
        clock.advance(30.0)
        assert wait_for(lambda: service.calibration_state is CalibrationState.CALIBRATED)

    def test_stop_is_idempotent(self, service):
        service.start()
        service.stop()
        service.stop()
        assert service.thread is None
