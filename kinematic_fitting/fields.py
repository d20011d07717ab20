"""
Kinematic field models.

Each model is a velocity field that is linear in its parameters:

    v(p) = B(p) @ params

where B(p) is a 3 x num_params basis matrix. Parameter order per model:

    translation  (tx, ty, tz)                    v = t
    scaling      (cx, cy, cz, s)                 v = c + s p
    helical      (rx, ry, rz, cx, cy, cz)        v = r x p + c
    spiral       (rx, ry, rz, cx, cy, cz, s)     v = r x p + c + s p

All functions accept a single point of shape (3,) or a batch of shape (K, 3).
"""

from dataclasses import dataclass
from typing import Dict, Optional, Union

import numpy as np


# Below this norm the rotational (or scaling) part of a field is treated as absent
_DEGENERATE_EPS = 1e-12


def _as_points(points) -> np.ndarray:
    pts = np.asarray(points, dtype=np.float64)
    if pts.ndim == 1:
        pts = pts.reshape(1, 3)
    if pts.ndim != 2 or pts.shape[1] != 3:
        raise ValueError(f"points must have shape (3,) or (K, 3), got {pts.shape}")
    return pts


def _cross_basis(pts: np.ndarray) -> np.ndarray:
    """Return (K, 3, 3) matrices C with C @ r == r x p for each point p."""
    K = len(pts)
    C = np.zeros((K, 3, 3))
    x, y, z = pts[:, 0], pts[:, 1], pts[:, 2]
    # r x p = -[p]x r
    C[:, 0, 1], C[:, 0, 2] = z, -y
    C[:, 1, 0], C[:, 1, 2] = -z, x
    C[:, 2, 0], C[:, 2, 1] = y, -x
    return C


def _skew(r: np.ndarray) -> np.ndarray:
    """Cross-product matrix [r]x such that [r]x @ p == r x p."""
    return np.array([
        [0.0, -r[2], r[1]],
        [r[2], 0.0, -r[0]],
        [-r[1], r[0], 0.0],
    ])


def _unit(v: np.ndarray) -> Optional[np.ndarray]:
    norm = np.linalg.norm(v)
    if norm < _DEGENERATE_EPS:
        return None
    return v / norm


def _velocity(field, params, points) -> np.ndarray:
    params = np.asarray(params, dtype=np.float64)
    single = np.ndim(points) == 1
    vel = np.einsum('kij,j->ki', field.basis(points), params)
    return vel[0] if single else vel


def canonicalize(params) -> np.ndarray:
    """
    Fix the arbitrary scale and sign of an eigenvector.

    The result has unit Euclidean norm and its largest-magnitude component
    is positive. A zero vector is returned unchanged.
    """
    x = np.asarray(params, dtype=np.float64)
    norm = np.linalg.norm(x)
    if norm == 0:
        return x.copy()
    x = x / norm
    if x[np.argmax(np.abs(x))] < 0:
        x = -x
    return x


# ---------------------------------------------------------------------------
# Interpreted motions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TranslationMotion:
    direction: Optional[np.ndarray]
    speed: float


@dataclass(frozen=True)
class ScalingMotion:
    center: Optional[np.ndarray]    # None when the field is a pure translation
    rate: float
    translation: np.ndarray


@dataclass(frozen=True)
class HelicalMotion:
    axis_direction: Optional[np.ndarray]  # None when there is no rotation
    axis_point: Optional[np.ndarray]
    angular_speed: float
    pitch: float                          # translation along the axis per radian


@dataclass(frozen=True)
class SpiralMotion:
    axis_direction: Optional[np.ndarray]
    center: Optional[np.ndarray]
    angular_speed: float
    scale_rate: float


Motion = Union[TranslationMotion, ScalingMotion, HelicalMotion, SpiralMotion]


# ---------------------------------------------------------------------------
# Field models
# ---------------------------------------------------------------------------

class TranslationField:
    """Constant velocity, independent of position."""

    name = "translation"
    num_params = 3

    @staticmethod
    def basis(points) -> np.ndarray:
        pts = _as_points(points)
        return np.broadcast_to(np.eye(3), (len(pts), 3, 3)).copy()

    @staticmethod
    def velocity(params, points) -> np.ndarray:
        return _velocity(TranslationField, params, points)

    @staticmethod
    def velocity_jacobian(params) -> np.ndarray:
        return np.zeros((3, 3))

    @staticmethod
    def describe(params) -> TranslationMotion:
        t = np.asarray(params, dtype=np.float64)
        return TranslationMotion(direction=_unit(t), speed=float(np.linalg.norm(t)))


class ScalingField:
    """Uniform expansion about a center: v = s (p - center) = c + s p."""

    name = "scaling"
    num_params = 4

    @staticmethod
    def basis(points) -> np.ndarray:
        pts = _as_points(points)
        B = np.zeros((len(pts), 3, 4))
        B[:, :, :3] = np.eye(3)
        B[:, :, 3] = pts
        return B

    @staticmethod
    def velocity(params, points) -> np.ndarray:
        return _velocity(ScalingField, params, points)

    @staticmethod
    def velocity_jacobian(params) -> np.ndarray:
        return params[3] * np.eye(3)

    @staticmethod
    def describe(params) -> ScalingMotion:
        x = np.asarray(params, dtype=np.float64)
        c, s = x[:3], float(x[3])
        center = None if abs(s) < _DEGENERATE_EPS else -c / s
        return ScalingMotion(center=center, rate=s, translation=c.copy())


class HelicalField:
    """Rigid screw motion: rotation about an axis plus translation along it."""

    name = "helical"
    num_params = 6

    @staticmethod
    def basis(points) -> np.ndarray:
        pts = _as_points(points)
        B = np.zeros((len(pts), 3, 6))
        B[:, :, :3] = _cross_basis(pts)
        B[:, :, 3:] = np.eye(3)
        return B

    @staticmethod
    def velocity(params, points) -> np.ndarray:
        return _velocity(HelicalField, params, points)

    @staticmethod
    def velocity_jacobian(params) -> np.ndarray:
        return _skew(np.asarray(params[:3], dtype=np.float64))

    @staticmethod
    def describe(params) -> HelicalMotion:
        x = np.asarray(params, dtype=np.float64)
        r, c = x[:3], x[3:6]
        rr = float(r @ r)
        if rr < _DEGENERATE_EPS ** 2:
            return HelicalMotion(axis_direction=None, axis_point=None,
                                 angular_speed=0.0, pitch=float('inf'))
        return HelicalMotion(
            axis_direction=r / np.sqrt(rr),
            axis_point=np.cross(r, c) / rr,
            angular_speed=float(np.sqrt(rr)),
            pitch=float(r @ c / rr),
        )


class SpiralField:
    """Helical motion combined with uniform scaling."""

    name = "spiral"
    num_params = 7

    @staticmethod
    def basis(points) -> np.ndarray:
        pts = _as_points(points)
        B = np.zeros((len(pts), 3, 7))
        B[:, :, :3] = _cross_basis(pts)
        B[:, :, 3:6] = np.eye(3)
        B[:, :, 6] = pts
        return B

    @staticmethod
    def velocity(params, points) -> np.ndarray:
        return _velocity(SpiralField, params, points)

    @staticmethod
    def velocity_jacobian(params) -> np.ndarray:
        x = np.asarray(params, dtype=np.float64)
        return _skew(x[:3]) + x[6] * np.eye(3)

    @staticmethod
    def describe(params) -> SpiralMotion:
        x = np.asarray(params, dtype=np.float64)
        r, c, s = x[:3], x[3:6], float(x[6])
        J = _skew(r) + s * np.eye(3)
        # Fixed point of the field: J q + c = 0
        if abs(s) < _DEGENERATE_EPS and np.linalg.norm(r) < _DEGENERATE_EPS:
            center = None
        else:
            center = np.linalg.lstsq(J, -c, rcond=None)[0]
        return SpiralMotion(
            axis_direction=_unit(r),
            center=center,
            angular_speed=float(np.linalg.norm(r)),
            scale_rate=s,
        )


FIELD_TYPES: Dict[str, type] = {
    TranslationField.name: TranslationField,
    ScalingField.name: ScalingField,
    HelicalField.name: HelicalField,
    SpiralField.name: SpiralField,
}


def get_field(name: str):
    """Look up a field model by name."""
    try:
        return FIELD_TYPES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown field type '{name}'. Expected one of: {', '.join(FIELD_TYPES)}"
        ) from None
