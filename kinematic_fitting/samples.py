"""
Surface samples: per-vertex positions, unit normals and confidence weights.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .mesh_loader import MeshLoader


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, init=False, eq=False)
class SurfaceSamples:
    """Immutable set of oriented surface samples.

    Attributes:
        positions: (N, 3) sample positions.
        normals: (N, 3) unit normals (zero rows for samples without a normal).
        weights: (N,) non-negative confidence weights.
    """
    positions: np.ndarray
    normals: np.ndarray
    weights: np.ndarray

    def __init__(self, positions, normals, weights=None):
        positions = np.array(positions, dtype=np.float64)
        normals = np.array(normals, dtype=np.float64)
        if positions.size == 0:
            positions = positions.reshape(0, 3)
        if normals.size == 0:
            normals = normals.reshape(0, 3)

        if positions.ndim != 2 or positions.shape[1] != 3:
            raise ValueError(f"positions must have shape (N, 3), got {positions.shape}")
        if normals.shape != positions.shape:
            raise ValueError(
                f"normals shape {normals.shape} does not match positions {positions.shape}"
            )

        if weights is None:
            weights = np.ones(len(positions))
        else:
            weights = np.array(weights, dtype=np.float64).reshape(-1)
            if len(weights) != len(positions):
                raise ValueError(
                    f"expected {len(positions)} weights, got {len(weights)}"
                )
            if np.any(weights < 0):
                raise ValueError("weights must be non-negative")

        # Normalize, leaving degenerate normals at zero
        lengths = np.linalg.norm(normals, axis=1)
        nonzero = lengths > 1e-15
        normals[nonzero] /= lengths[nonzero, None]
        normals[~nonzero] = 0.0

        object.__setattr__(self, 'positions', _readonly(positions))
        object.__setattr__(self, 'normals', _readonly(normals))
        object.__setattr__(self, 'weights', _readonly(weights))

    def __len__(self) -> int:
        return len(self.positions)

    @classmethod
    def from_mesh(cls, vertices, faces) -> "SurfaceSamples":
        """
        Derive one sample per vertex from a triangle mesh.

        Normals are the area-weighted average of incident face normals and
        weights are one third of the incident triangle area.

        Args:
            vertices: (V, 3) vertex positions
            faces: (F, 3) vertex indices

        Returns:
            SurfaceSamples with V samples
        """
        vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
        faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)

        normals = np.zeros_like(vertices)
        areas = np.zeros(len(vertices))
        if len(faces):
            v0, v1, v2 = (vertices[faces[:, i]] for i in range(3))
            # Length of the cross product is twice the triangle area
            face_cross = np.cross(v1 - v0, v2 - v0)
            face_area = 0.5 * np.linalg.norm(face_cross, axis=1)
            for i in range(3):
                np.add.at(normals, faces[:, i], face_cross)
                np.add.at(areas, faces[:, i], face_area / 3.0)

        return cls(vertices, normals, areas)

    @classmethod
    def from_file(cls, path: str, scale: Optional[float] = 1.0) -> "SurfaceSamples":
        """Load a mesh, recenter/rescale it, and derive its samples.

        Pass scale=None to keep the original coordinates.
        """
        vertices, faces = MeshLoader.load_mesh(path)
        if scale is not None:
            vertices = MeshLoader.center_and_scale(vertices, scale)
        return cls.from_mesh(vertices, faces)

    def scaled(self, factor: float) -> "SurfaceSamples":
        """Return a copy with positions multiplied by factor."""
        return SurfaceSamples(self.positions * factor, self.normals, self.weights)
