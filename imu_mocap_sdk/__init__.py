"""
IMU Mocap SDK - Wearable orientation sensors to a calibrated humanoid pose.

This package connects to a set of wearable inertial sensors, each streaming
the orientation of one body segment over a WebSocket, calibrates them
against a T-pose, and keeps an up-to-date skeletal pose for a humanoid rig.

Main classes:
    - MotionCaptureService: Sessions, calibration and retargeting in one run
    - SessionManager: One connection per sensor, command broadcast
    - CalibrationEngine: T-pose reference capture
    - PoseRetargeter: Reference-relative joint orientations
    - PoseBuffer: Latest pose per joint, for a render loop to poll

Example usage:
    from imu_mocap_sdk import MotionCaptureService, PoseBuffer, load_rig_config

    # Initialize
    config = load_rig_config("mixamo_ybot")
    pose = PoseBuffer(skeleton_joint_names)
    service = MotionCaptureService(config, pose)
    service.start()

    # User commands
    service.connect_all()
    service.broadcast_start()
    service.begin_calibration()

    # Main loop
    while running:
        for joint, q in pose.get_latest_pose().items():
            # q = (w, x, y, z), relative to the T-pose once calibrated
            set_bone_quaternion(joint, q)

    # Cleanup
    service.stop()
"""

from .calibration import CalibrationEngine, CalibrationResult, CalibrationState
from .config import ReconnectPolicy, RigConfig, SensorEndpoint, load_rig_config
from .context import CaptureContext
from .retargeter import JointBindingTable, PoseRetargeter
from .sensor_session import SampleEvent, SessionManager, StatusEvent, decode_frame
from .service import MotionCaptureService
from .skeleton import PoseBuffer, SkeletonConsumer

__version__ = "0.1.0"
__all__ = [
    "CalibrationEngine",
    "CalibrationResult",
    "CalibrationState",
    "CaptureContext",
    "JointBindingTable",
    "MotionCaptureService",
    "PoseBuffer",
    "PoseRetargeter",
    "ReconnectPolicy",
    "RigConfig",
    "SampleEvent",
    "SensorEndpoint",
    "SessionManager",
    "SkeletonConsumer",
    "StatusEvent",
    "decode_frame",
    "load_rig_config",
]
