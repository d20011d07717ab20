"""
Visualizer component for displaying fitted fields as streamlines on a mesh.
"""

from typing import Sequence

import numpy as np
import matplotlib.pyplot as plt


class Visualizer:
    """Handles 3D rendering of fitting results."""

    @staticmethod
    def plot_field(
        vertices: np.ndarray,
        faces: np.ndarray,
        streamlines: Sequence[np.ndarray] = (),
        title: str = "",
    ):
        """Draw the mesh and streamlines on a 3D axis.

        Args:
            vertices: Mesh vertices of shape (N, 3).
            faces: Triangle indices of shape (M, 3).
            streamlines: Polylines of shape (K, 3) each.
            title: Figure title.

        Returns:
            The matplotlib Figure.
        """
        vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
        faces = np.asarray(faces).reshape(-1, 3)

        fig = plt.figure(figsize=(8, 5))
        ax = fig.add_subplot(projection='3d')

        if len(faces):
            ax.plot_trisurf(
                vertices[:, 0], vertices[:, 1], vertices[:, 2],
                triangles=faces, color=(0.9, 0.9, 0.9), alpha=0.6, linewidth=0,
            )

        for line in streamlines:
            line = np.asarray(line)
            ax.plot(line[:, 0], line[:, 1], line[:, 2], color=(0.8, 0.3, 0.2), linewidth=2)

        if len(vertices):
            lo, hi = vertices.min(axis=0), vertices.max(axis=0)
            center, half = (lo + hi) / 2, max(np.max(hi - lo) / 2, 1e-9)
            ax.set_xlim(center[0] - half, center[0] + half)
            ax.set_ylim(center[1] - half, center[1] + half)
            ax.set_zlim(center[2] - half, center[2] + half)

        ax.set_xlabel('X')
        ax.set_ylabel('Y')
        ax.set_zlabel('Z')
        if title:
            ax.set_title(title)
        return fig

    @staticmethod
    def save_figure(
        vertices: np.ndarray,
        faces: np.ndarray,
        streamlines: Sequence[np.ndarray],
        output_path: str,
        title: str = "",
    ) -> None:
        """Render the mesh and streamlines to an image file.

        Args:
            vertices: Mesh vertices of shape (N, 3).
            faces: Triangle indices of shape (M, 3).
            streamlines: Polylines of shape (K, 3) each.
            output_path: Path to save the image.
            title: Figure title.
        """
        fig = Visualizer.plot_field(vertices, faces, streamlines, title)
        fig.savefig(output_path, dpi=100)
        plt.close(fig)

    @staticmethod
    def show(vertices, faces, streamlines=(), title: str = "") -> None:
        """Display an interactive window."""
        Visualizer.plot_field(vertices, faces, streamlines, title)
        plt.show()
