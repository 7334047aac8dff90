"""
PoseRetargeter - turns raw sensor orientations into rig-relative joint
orientations and hands them to the skeleton consumer.
"""

import logging
from typing import Optional, Set

import numpy as np

from ..calibration.calibration_engine import CalibrationEngine, CalibrationState
from ..sensor_session.message_decoder import SampleEvent
from ..skeleton.pose_buffer import SkeletonConsumer
from ..utils.quat_utils import quat_relative
from .joint_binding import JointBindingTable


logger = logging.getLogger(__name__)


def relative_orientation(reference, q):
    """
    Orientation of the sensor relative to its calibration reference.

    Qrel = normalize(conj(reference) * q). With the sensor back in the
    reference pose this is the identity.
    """
    return quat_relative(reference, q)


class PoseRetargeter:
    """
    Per-sample retargeting against the calibration references.

    Policy per sample, after the label is found bound:
        - calibration window running: nothing is applied
        - reference exists: conj(R) * Q, normalized, is applied
        - no reference: raw Q is applied, unless ``require_calibration``
          is set, in which case nothing is applied

    Example usage:
        retargeter = PoseRetargeter(bindings, engine, pose_buffer)
        for event in samples:
            retargeter.retarget(event)
    """

    def __init__(
        self,
        bindings: JointBindingTable,
        engine: CalibrationEngine,
        consumer: SkeletonConsumer,
        require_calibration: bool = False,
    ):
        self.bindings = bindings
        self.engine = engine
        self.consumer = consumer
        self.require_calibration = require_calibration
        self._warned_unbound: Set[str] = set()

    def get_required_joints(self):
        """Joint handles this retargeter can drive."""
        return {self.bindings.resolve(label) for label in self.bindings.bound_labels}

    def compute(self, event: SampleEvent) -> Optional[np.ndarray]:
        """Orientation to apply for ``event``, or None if nothing should be applied."""
        state = self.engine.state
        if state is CalibrationState.COLLECTING:
            return None

        reference = self.engine.reference(event.label)
        if reference is not None:
            return relative_orientation(reference, event.quaternion)
        if self.require_calibration:
            return None
        return np.asarray(event.quaternion, dtype=float)

    def retarget(self, event: SampleEvent) -> Optional[np.ndarray]:
        """
        Retarget one sample and apply it to the bound joint.

        Returns:
            The applied orientation (w, x, y, z), or None if nothing was applied
        """
        joint = self.bindings.resolve(event.label)
        if joint is None:
            if event.label not in self._warned_unbound:
                self._warned_unbound.add(event.label)
                logger.warning(f"Joint not found for label: {event.label}")
            return None

        q = self.compute(event)
        if q is None:
            return None
        self.consumer.apply_orientation(joint, q)
        return q
