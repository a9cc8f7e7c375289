"""
Geometric utility functions for restraint evaluation and atom placement.

All functions take and return numpy arrays of shape (3,) and keep no state.
"""

import math
from typing import Tuple

import numpy as np

from chemtopo.core.constants import RADDEG, DEGRAD


def calc_distance(p1: np.ndarray, p2: np.ndarray) -> float:
    """
    Calculate Euclidean distance between two points.

    Args:
        p1: First point [x, y, z]
        p2: Second point [x, y, z]

    Returns:
        Distance between points
    """
    diff = p1 - p2
    dist_sq = np.dot(diff, diff)
    if dist_sq > 0:
        return float(np.sqrt(dist_sq))
    return 0.0


def calc_distance_sq(p1: np.ndarray, p2: np.ndarray) -> float:
    diff = p1 - p2
    return float(np.dot(diff, diff))


def normalize(v: np.ndarray) -> np.ndarray:
    """
    Normalize a vector to unit length.

    Args:
        v: Input vector

    Returns:
        Normalized vector (unit length)
    """
    d = np.linalg.norm(v)
    if d > 0:
        return v / d
    return v.copy()


def calc_angle(p1: np.ndarray, p2: np.ndarray, p3: np.ndarray) -> float:
    """
    Calculate angle at p2 formed by p1-p2-p3.

    Args:
        p1, p2, p3: Three points

    Returns:
        Angle in radians
    """
    return calc_angle_v(p1 - p2, p3 - p2)


def calc_angle_v(v1: np.ndarray, v2: np.ndarray) -> float:
    """Angle between two vectors, in radians."""
    v1_norm = np.linalg.norm(v1)
    v2_norm = np.linalg.norm(v2)

    if v1_norm < 1e-10 or v2_norm < 1e-10:
        return 0.0

    cos_angle = np.dot(v1, v2) / (v1_norm * v2_norm)
    cos_angle = np.clip(cos_angle, -1.0, 1.0)

    return float(np.arccos(cos_angle))


def calc_torsion(
    a1: np.ndarray, a2: np.ndarray, a3: np.ndarray, a4: np.ndarray
) -> float:
    """
    Calculate dihedral/torsion angle for four points.

    Args:
        a1, a2, a3, a4: Four atom positions defining the torsion angle

    Returns:
        Torsion angle in degrees (-180 to 180), 360 if undefined
    """
    v12 = a1 - a2
    v43 = a4 - a3
    z = a2 - a3

    p = np.cross(z, v12)
    x = np.cross(z, v43)
    y = np.cross(z, x)

    u = np.dot(x, x)
    v = np.dot(y, y)

    if u < 0 or v < 0:
        return 360.0

    u_norm = np.sqrt(u)
    v_norm = np.sqrt(v)

    if u_norm < 1e-10 or v_norm < 1e-10:
        return 360.0

    u_val = np.dot(p, x) / u_norm
    v_val = np.dot(p, y) / v_norm

    if u_val != 0.0 or v_val != 0.0:
        angle = float(np.arctan2(v_val, u_val) * RADDEG)
    else:
        angle = 360.0

    return angle


def calc_chiral_volume(
    ctr: np.ndarray, a1: np.ndarray, a2: np.ndarray, a3: np.ndarray
) -> float:
    """
    Signed volume (a1-c) . ((a2-c) x (a3-c)) around a chiral centre c.

    The sign corresponds to the volume_sign of monomer dictionaries.
    """
    return float(np.dot(a1 - ctr, np.cross(a2 - ctr, a3 - ctr)))


def chiral_abs_volume(
    bond1: float,
    bond2: float,
    bond3: float,
    angle1: float,
    angle2: float,
    angle3: float,
) -> float:
    """
    Absolute chiral volume from ideal bond lengths and angles (degrees).

    angle1 is 1-c-2, angle2 is 2-c-3 and angle3 is 3-c-1.
    """
    mult = bond1 * bond2 * bond3
    x = 1.0
    y = 2.0
    for a in (angle1, angle2, angle3):
        cosine = 0.0 if a == 90.0 else math.cos(a * DEGRAD)
        x -= cosine * cosine
        y *= cosine
    return mult * math.sqrt(max(0.0, x + y))


def rotate_by_axis(v: np.ndarray, axis: np.ndarray, theta: float) -> np.ndarray:
    """
    Rotate vector v around a unit axis (Rodrigues' rotation formula).

    Args:
        v: Vector to rotate
        axis: Rotation axis, must be a unit vector
        theta: Rotation angle in radians

    Returns:
        Rotated vector
    """
    cos_t = math.cos(theta)
    sin_t = math.sin(theta)
    return v * cos_t + np.cross(axis, v) * sin_t + axis * (np.dot(axis, v) * (1 - cos_t))


def position_from_angle_and_torsion(
    x1: np.ndarray,
    x2: np.ndarray,
    x3: np.ndarray,
    dist: float,
    theta: float,
    tau: float,
) -> np.ndarray:
    """
    Place x4 in the chain x1-x2-x3-x4 from internal coordinates.

    Uses an orthonormal frame built from the x1->x2 and x2->x3
    directions (Paciorek et al., Acta Cryst. A52, 349 (1996), sec. 3.3).

    Args:
        x1, x2, x3: Reference points
        dist: Distance |x3-x4|
        theta: Angle x2-x3-x4 in radians
        tau: Dihedral angle x1-x2-x3-x4 in radians

    Returns:
        Position of x4
    """
    u = x2 - x1
    v = x3 - x2
    e1 = normalize(v)
    delta = np.dot(u, e1)
    e2 = -normalize(u - delta * e1)
    e3 = np.cross(e1, e2)
    return x3 + dist * (
        -math.cos(theta) * e1
        + math.sin(theta) * (math.cos(tau) * e2 + math.sin(tau) * e3)
    )


def trilaterate(
    p1: np.ndarray,
    r1sq: float,
    p2: np.ndarray,
    r2sq: float,
    p3: np.ndarray,
    r3sq: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Find the points at given squared distances from three anchors.

    Solved in an orthonormal basis aligned with the anchor triangle.
    When the spheres do not intersect both returned points are NaN,
    so callers have to check the result.

    Args:
        p1, p2, p3: Anchor points
        r1sq, r2sq, r3sq: Squared distances to the anchors

    Returns:
        Tuple of the two mirror-image solutions
    """
    ex = normalize(p2 - p1)
    i = np.dot(ex, p3 - p1)
    ey = normalize(p3 - p1 - i * ex)
    ez = np.cross(ex, ey)
    d = np.linalg.norm(p2 - p1)
    j = np.dot(ey, p3 - p1)
    x = (r1sq - r2sq + d * d) / (2 * d)
    y = (r1sq - r3sq + i * i + j * j) / (2 * j) - x * i / j
    z2 = r1sq - x * x - y * y
    z = math.sqrt(z2) if z2 >= 0 else math.nan
    return (p1 + (x * ex + y * ey + z * ez),
            p1 + (x * ex + y * ey - z * ez))


def position_from_two_angles(
    p1: np.ndarray,
    p2: np.ndarray,
    p3: np.ndarray,
    dist14: float,
    theta214: float,
    theta314: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Place p4, bonded to p1 which is also bonded to p2 and p3.

    The law of cosines turns both angles into distances p2-p4 and
    p3-p4, and the two candidates come from trilateration.

    Args:
        p1: Central atom
        p2, p3: Other atoms bonded to p1
        dist14: Distance |p4-p1|
        theta214: Angle p2-p1-p4 in radians
        theta314: Angle p3-p1-p4 in radians

    Returns:
        Tuple of two candidate positions (NaN if there is no solution)
    """
    d12sq = calc_distance_sq(p1, p2)
    d13sq = calc_distance_sq(p1, p3)
    d14sq = dist14 * dist14
    d24sq = d14sq + d12sq - 2 * math.sqrt(d14sq * d12sq) * math.cos(theta214)
    d34sq = d14sq + d13sq - 2 * math.sqrt(d14sq * d13sq) * math.cos(theta314)
    return trilaterate(p1, d14sq, p2, d24sq, p3, d34sq)


def has_nan(v: np.ndarray) -> bool:
    return bool(np.isnan(v).any())
