"""
Retargeter - raw sensor orientations to skeleton joint orientations.

Example usage:
    from imu_mocap_sdk.retargeter import JointBindingTable, PoseRetargeter

    bindings = JointBindingTable({"RA": "mixamorigRightArm"})
    bindings.bind(skeleton.list_joint_names())
    retargeter = PoseRetargeter(bindings, engine, skeleton)
    retargeter.retarget(sample_event)
"""

from .joint_binding import JointBindingTable
from .retargeter import PoseRetargeter, relative_orientation

__all__ = [
    "JointBindingTable",
    "PoseRetargeter",
    "relative_orientation",
]
