"""
Skeleton module for imu_mocap_sdk.

Provides the SkeletonConsumer interface and PoseBuffer, an in-memory
consumer holding the latest orientation of every joint.
"""

from .pose_buffer import PoseBuffer, SkeletonConsumer

__all__ = ["PoseBuffer", "SkeletonConsumer"]
