"""
Normal-equation matrices for the flow-tangency fit.

For a sample (p, n, w) and field basis B(p), the normal component of the
predicted velocity is a . x with a = B(p)^T n. The fit minimizes

    x^T M x / x^T N x,    M = sum w^2 a a^T,    N = sum w^2 B^T B

so N measures the mean squared speed of the candidate field over the
samples. Both matrices are symmetric and N is positive semidefinite.
"""

from typing import Optional, Tuple

import numpy as np

from .errors import InsufficientDataError
from .samples import SurfaceSamples


class LinearSystemBuilder:
    """Builds (M, N) for one field model over a set of samples."""

    @staticmethod
    def build(
        field,
        samples: SurfaceSamples,
        weights: Optional[np.ndarray] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Accumulate the constraint and normalization matrices.

        Args:
            field: field model (see fields.py)
            samples: surface samples to fit
            weights: optional (N,) per-sample weights overriding
                samples.weights

        Returns:
            (M, N), each of shape (num_params, num_params)

        Raises:
            InsufficientDataError: no samples, fewer usable samples than
                parameters, or all weights zero
        """
        n_samples = len(samples)
        if n_samples == 0:
            raise InsufficientDataError(f"cannot fit {field.name} field: no samples")

        w = samples.weights if weights is None else np.asarray(weights, dtype=np.float64)
        if w.shape != (n_samples,):
            raise ValueError(f"expected weights of shape ({n_samples},), got {w.shape}")
        w2 = w ** 2
        if not np.any(w2 > 0):
            raise InsufficientDataError(f"cannot fit {field.name} field: all weights are zero")

        # Samples with zero weight or no normal add nothing to M
        usable = int(np.count_nonzero((w2 > 0) & np.any(samples.normals != 0, axis=1)))
        if usable < field.num_params:
            raise InsufficientDataError(
                f"cannot fit {field.name} field: {usable} usable samples for "
                f"{field.num_params} parameters"
            )

        B = field.basis(samples.positions)                     # (K, 3, P)
        A = np.einsum('kip,ki->kp', B, samples.normals)        # (K, P)

        M = np.einsum('k,kp,kq->pq', w2, A, A)
        N = np.einsum('k,kip,kiq->pq', w2, B, B)

        # Remove round-off asymmetry
        M = 0.5 * (M + M.T)
        N = 0.5 * (N + N.T)
        return M, N

    @staticmethod
    def rayleigh_quotient(M: np.ndarray, N: np.ndarray, x: np.ndarray) -> float:
        """|x^T M x / x^T N x|, or inf when the denominator vanishes."""
        x = np.asarray(x, dtype=np.float64)
        num = float(x @ M @ x)
        den = float(x @ N @ x)
        if den == 0:
            return float('inf')
        return abs(num / den)


def rayleigh_residual(field, samples: SurfaceSamples, params, weights=None) -> float:
    """Evaluate the fit residual of params on the given samples."""
    M, N = LinearSystemBuilder.build(field, samples, weights)
    return LinearSystemBuilder.rayleigh_quotient(M, N, params)
