"""
MeshLoader component for loading triangle meshes to fit.
"""

import os
import numpy as np
import trimesh


class MeshLoader:
    """Handles loading and normalizing triangle mesh files."""

    @staticmethod
    def validate_path(path: str) -> None:
        """Raise FileNotFoundError with descriptive message if invalid.

        Args:
            path: Path to validate.

        Raises:
            FileNotFoundError: If the path does not exist.
        """
        if not os.path.exists(path):
            raise FileNotFoundError(f"Mesh file not found: {path}")

    @staticmethod
    def load_mesh(path: str, file_type: str = None) -> tuple[np.ndarray, np.ndarray]:
        """Load a mesh file (OBJ, STL, PLY, ...), return (vertices, faces).

        Vertex order is preserved; polygonal faces are triangulated.

        Args:
            path: Path to the mesh file.
            file_type: Optional format override, otherwise inferred from
                the file extension.

        Returns:
            Tuple of (vertices, faces) as numpy arrays.
            vertices: float64 array of shape (N, 3)
            faces: int64 array of shape (M, 3)

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file cannot be parsed as a mesh.
        """
        MeshLoader.validate_path(path)

        try:
            mesh = trimesh.load(path, file_type=file_type, process=False, force='mesh')
            vertices = np.asarray(mesh.vertices, dtype=np.float64).reshape(-1, 3)
            faces = np.asarray(mesh.faces, dtype=np.int64).reshape(-1, 3)
        except Exception as e:
            raise ValueError(f"Invalid mesh format in file: {path}") from e

        return vertices, faces

    @staticmethod
    def center_and_scale(vertices: np.ndarray, scale: float = 1.0) -> np.ndarray:
        """Recenter vertices on their bounding box and rescale uniformly.

        The fit assumes a bounded, origin-centred coordinate system, so
        meshes should always pass through here before fitting.

        Args:
            vertices: Vertex array of shape (N, 3).
            scale: Largest bounding-box half-extent after scaling.

        Returns:
            New vertex array of shape (N, 3).
        """
        vertices = np.asarray(vertices, dtype=np.float64)
        if len(vertices) == 0:
            return vertices.copy()

        lo, hi = vertices.min(axis=0), vertices.max(axis=0)
        center = (lo + hi) / 2
        half_extent = np.max(hi - lo) / 2
        if half_extent <= 0:
            return vertices - center

        return (vertices - center) * (scale / half_extent)
