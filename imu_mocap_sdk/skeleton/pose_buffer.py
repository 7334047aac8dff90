"""
Skeleton consumers - whatever finally receives the retargeted joint
orientations (a renderer, a rig exporter, a network publisher, ...).
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

import numpy as np


class SkeletonConsumer(ABC):
    """Interface the retargeter drives."""

    @abstractmethod
    def list_joint_names(self) -> List[str]:
        """Names of every joint of the loaded skeleton."""

    @abstractmethod
    def apply_orientation(self, joint, quaternion):
        """Set the orientation (w, x, y, z) of ``joint``."""

    def resolve_joint(self, name: str):
        """Joint handle for ``name``. By default the name is the handle."""
        return name


class PoseBuffer(SkeletonConsumer):
    """
    Thread-safe latest-pose store.

    Keeps the most recent orientation applied to each joint (last write
    wins) so a render loop can poll the pose at its own rate.

    Example usage:
        pose = PoseBuffer(["mixamorigRightArm", "mixamorigRightForeArm"])
        ...
        while running:
            for joint, q in pose.get_latest_pose().items():
                bones[joint].quaternion = q
    """

    def __init__(self, joint_names: Iterable[str]):
        self.joint_names = list(joint_names)
        self.lock = threading.Lock()
        self.pose: Dict[str, np.ndarray] = {}
        self.update_count = 0

    def list_joint_names(self) -> List[str]:
        return list(self.joint_names)

    def apply_orientation(self, joint, quaternion):
        q = np.array(quaternion, dtype=float)
        with self.lock:
            self.pose[joint] = q
            self.update_count += 1

    def get_orientation(self, joint) -> Optional[np.ndarray]:
        with self.lock:
            q = self.pose.get(joint)
            return None if q is None else q.copy()

    def get_latest_pose(self) -> Dict[str, np.ndarray]:
        """Copy of the latest orientation of every joint that has one."""
        with self.lock:
            return {joint: q.copy() for joint, q in self.pose.items()}

    def reset(self):
        with self.lock:
            self.pose.clear()
            self.update_count = 0
