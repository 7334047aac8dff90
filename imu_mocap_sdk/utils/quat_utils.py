"""
Quaternion utility functions for sensor calibration and retargeting.

All quaternions are in (w, x, y, z) format unless otherwise specified.
"""

import numpy as np
from scipy.spatial.transform import Rotation as R


IDENTITY_QUAT = np.array([1.0, 0.0, 0.0, 0.0])


def quat_mul(q1, q2):
    """
    Multiply two quaternions (w, x, y, z format).

    Args:
        q1: First quaternion (w, x, y, z)
        q2: Second quaternion (w, x, y, z)

    Returns:
        Product quaternion (w, x, y, z)
    """
    w1, x1, y1, z1 = q1[0], q1[1], q1[2], q1[3]
    w2, x2, y2, z2 = q2[0], q2[1], q2[2], q2[3]
    return np.array([
        w1*w2 - x1*x2 - y1*y2 - z1*z2,
        w1*x2 + x1*w2 + y1*z2 - z1*y2,
        w1*y2 - x1*z2 + y1*w2 + z1*x2,
        w1*z2 + x1*y2 - y1*x2 + z1*w2
    ])


def quat_conj(q):
    """
    Quaternion conjugate (w, x, y, z format).

    Args:
        q: Quaternion (w, x, y, z)

    Returns:
        Conjugate quaternion (w, -x, -y, -z)
    """
    return np.array([q[0], -q[1], -q[2], -q[3]])


def quat_norm(q):
    """Euclidean magnitude of a quaternion."""
    return float(np.sqrt(q[0]*q[0] + q[1]*q[1] + q[2]*q[2] + q[3]*q[3]))


def quat_normalize(q):
    """
    Normalize quaternion (w, x, y, z format).

    Args:
        q: Quaternion (w, x, y, z)

    Returns:
        Normalized quaternion, identity if q has (near) zero length
    """
    norm = quat_norm(q)
    if norm < 1e-8:
        return IDENTITY_QUAT.copy()
    return np.asarray(q, dtype=float) / norm


def quat_mean(quats):
    """
    Componentwise arithmetic mean of a sequence of quaternions.

    No normalization and no hemisphere alignment is applied; callers that
    need a unit quaternion normalize the result themselves.

    Args:
        quats: Sequence of quaternions (w, x, y, z), at least one

    Returns:
        Mean quaternion (w, x, y, z)
    """
    arr = np.asarray(quats, dtype=float).reshape(-1, 4)
    if arr.shape[0] == 0:
        raise ValueError("quat_mean needs at least one quaternion")
    return arr.mean(axis=0)


def quat_relative(reference, q):
    """
    Orientation of q expressed relative to reference.

    Computes normalize(conj(reference) * q). The order matters: swapping the
    operands yields the relative frame seen from the other side.

    Args:
        reference: Reference quaternion (w, x, y, z), unit length
        q: Current quaternion (w, x, y, z), any length

    Returns:
        Relative unit quaternion (w, x, y, z)
    """
    return quat_normalize(quat_mul(quat_conj(reference), q))


def quat_to_euler(q, order="xyz", degrees=True):
    """
    Convert a (w, x, y, z) quaternion to Euler angles with scipy.

    Args:
        q: Quaternion (w, x, y, z)
        order: Euler axis sequence understood by scipy
        degrees: Return degrees instead of radians

    Returns:
        numpy array of 3 angles
    """
    return R.from_quat(quat_normalize(q), scalar_first=True).as_euler(order, degrees=degrees)

