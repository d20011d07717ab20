"""
Streamline tracing through a fitted kinematic field, for display.
"""

from typing import List, Optional

import numpy as np


def trace_streamline(
    field,
    params,
    start,
    step_size: float = 1e-4,
    steps_per_point: int = 200,
    steps: int = 30000,
) -> np.ndarray:
    """
    Follow the field from a start point with fixed-length Euler steps.

    Each step moves |step_size| along the normalized velocity; a negative
    step_size traces backwards.

    Args:
        field: field model
        params: field parameters
        start: (3,) start point
        step_size: signed step length
        steps_per_point: record one point every this many steps
        steps: total number of steps

    Returns:
        (K, 3) polyline starting at start
    """
    if steps_per_point < 1:
        raise ValueError(f"steps_per_point must be >= 1, got {steps_per_point}")

    params = np.asarray(params, dtype=np.float64)
    p = np.asarray(start, dtype=np.float64).copy()
    line = [p.copy()]

    for i in range(steps):
        v = field.velocity(params, p)
        speed = np.linalg.norm(v)
        if speed < 1e-300:
            break  # stagnation point
        p = p + v * (step_size / speed)
        if i % steps_per_point == 0:
            line.append(p.copy())

    return np.array(line)


def trace_streamlines(
    field,
    params,
    seeds,
    step_size: float = 1e-4,
    steps_per_point: int = 200,
    steps: int = 30000,
) -> List[np.ndarray]:
    """Trace backwards and forwards from every seed (2 lines per seed)."""
    lines = []
    for seed in np.asarray(seeds, dtype=np.float64).reshape(-1, 3):
        for direction in (-1.0, 1.0):
            lines.append(trace_streamline(
                field, params, seed, direction * step_size, steps_per_point, steps
            ))
    return lines


def pick_seeds(vertices, count: int = 5, seed: Optional[int] = 95) -> np.ndarray:
    """Pick random mesh vertices as streamline seeds (origin if no vertices)."""
    vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
    if len(vertices) == 0:
        return np.zeros((1, 3))
    rng = np.random.default_rng(seed)
    return vertices[rng.integers(0, len(vertices), size=count)]
