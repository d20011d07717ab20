"""
Generalized eigensolver adapter for M x = lambda N x.

The LAPACK call lives in solve_generalized_eigenproblem(); everything else
only depends on the GeneralizedEigenpairs it returns, so the backend can be
swapped without touching the selection logic.
"""

import logging
from typing import NamedTuple

import numpy as np
from scipy.linalg import get_lapack_funcs

from .errors import EigensolveFailedError, NoValidSolutionError

logger = logging.getLogger(__name__)


class GeneralizedEigenpairs(NamedTuple):
    """Eigenpairs in LAPACK's homogeneous form, lambda_i = alpha_i / beta_i."""
    alpha: np.ndarray    # (n,) complex numerators
    beta: np.ndarray     # (n,) real denominators
    vectors: np.ndarray  # (n, n) right eigenvectors, one per column


def solve_generalized_eigenproblem(M: np.ndarray, N: np.ndarray) -> GeneralizedEigenpairs:
    """
    Compute all generalized eigenpairs of (M, N) with LAPACK ?ggev.

    Neither input is modified.

    Raises:
        EigensolveFailedError: LAPACK returned a non-zero info code
    """
    a = np.array(M, dtype=np.float64, order='F')
    b = np.array(N, dtype=np.float64, order='F')
    ggev, = get_lapack_funcs(('ggev',), (a, b))

    # Workspace query, then the actual solve
    query = ggev(a, b, lwork=-1)
    lwork = max(int(query[-2][0].real), 1)
    alphar, alphai, beta, _, vr, _, info = ggev(a, b, 0, 1, lwork, 0, 0)

    if info != 0:
        logger.debug("ggev failed with info=%d for a %dx%d system", info, *a.shape)
        raise EigensolveFailedError(info)

    return GeneralizedEigenpairs(
        alpha=np.asarray(alphar) + 1j * np.asarray(alphai),
        beta=np.asarray(beta, dtype=np.float64),
        vectors=np.asarray(vr, dtype=np.float64),
    )


def select_min_eigenvalue(pairs: GeneralizedEigenpairs, imag_tolerance: float = 1e-5) -> int:
    """
    Mode A: index of the admissible eigenpair with the smallest |lambda|.

    An eigenpair is admissible when its imaginary part is negligible and its
    denominator is strictly positive.

    Raises:
        NoValidSolutionError: no admissible eigenpair
    """
    admissible = (np.abs(pairs.alpha.imag) < imag_tolerance) & (pairs.beta > 0)
    if not np.any(admissible):
        raise NoValidSolutionError("no real eigenpair with a positive denominator")

    magnitude = np.full(len(pairs.beta), np.inf)
    magnitude[admissible] = np.abs(pairs.alpha.real[admissible]) / pairs.beta[admissible]
    return int(np.argmin(magnitude))


def rayleigh_errors(M: np.ndarray, N: np.ndarray, vectors: np.ndarray) -> np.ndarray:
    """|x^T M x / x^T N x| for every column x; inf where undefined."""
    num = np.einsum('ic,ij,jc->c', vectors, M, vectors)
    den = np.einsum('ic,ij,jc->c', vectors, N, vectors)
    with np.errstate(divide='ignore', invalid='ignore'):
        err = np.abs(num / den)
    err[~np.isfinite(err)] = np.inf
    return err


def select_min_rayleigh(M: np.ndarray, N: np.ndarray, pairs: GeneralizedEigenpairs) -> int:
    """
    Mode B: index of the eigenvector with the smallest recomputed residual.

    The reported eigenvalues are ignored; every column is re-scored against
    the original M and N.
    """
    return int(np.argmin(rayleigh_errors(M, N, pairs.vectors)))


def solve_best_fit(
    M: np.ndarray,
    N: np.ndarray,
    recompute_errors: bool = False,
    imag_tolerance: float = 1e-5,
) -> np.ndarray:
    """
    Solve M x = lambda N x and return the best-fit parameter vector.

    Args:
        M: (n, n) constraint matrix
        N: (n, n) normalization matrix
        recompute_errors: select by recomputed Rayleigh quotient (mode B)
            instead of by reported eigenvalue (mode A)
        imag_tolerance: largest imaginary part treated as real in mode A

    Returns:
        (n,) eigenvector, scaled as returned by LAPACK

    Raises:
        NoValidSolutionError: empty system or no admissible eigenpair
        EigensolveFailedError: LAPACK failure
    """
    M = np.asarray(M, dtype=np.float64)
    N = np.asarray(N, dtype=np.float64)
    if M.size == 0:
        raise NoValidSolutionError("cannot solve a system with zero parameters")
    if M.shape != N.shape or M.shape[0] != M.shape[1]:
        raise ValueError(f"M and N must be square and equal in shape, got {M.shape} and {N.shape}")

    pairs = solve_generalized_eigenproblem(M, N)
    if recompute_errors:
        col = select_min_rayleigh(M, N, pairs)
    else:
        col = select_min_eigenvalue(pairs, imag_tolerance)
    return pairs.vectors[:, col].copy()
