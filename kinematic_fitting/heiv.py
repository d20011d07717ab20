"""
Heteroscedastic errors-in-variables (HEIV) refinement.

The plain fit treats every sample residual n . v(p) as equally noisy. In
practice the residual variance depends on the field itself: a perturbation
dn of the normal changes the residual by dn . v, and a perturbation dp of
the position changes it by (J^T n) . dp. HEIV alternates between estimating
these per-sample variances from the current parameters and re-solving the
reweighted problem.
"""

import logging
from typing import List, NamedTuple, Optional

import numpy as np

from .config import FitConfig
from .eigensolver import solve_best_fit
from .errors import EigensolveFailedError
from .fields import canonicalize
from .linear_system import LinearSystemBuilder
from .samples import SurfaceSamples

logger = logging.getLogger(__name__)

# Absolute lower bound on a residual variance
_MIN_VARIANCE = 1e-30


class HEIVOutcome(NamedTuple):
    params: np.ndarray
    residual: float
    iterations: int
    converged: bool
    residual_history: List[float]


def residual_variance(field, samples: SurfaceSamples, params, config: FitConfig) -> np.ndarray:
    """
    First-order variance of each sample's residual n . v(p).

    Args:
        field: field model
        samples: surface samples
        params: current parameter estimate
        config: noise model (normal_noise, position_noise)

    Returns:
        (N,) variances
    """
    x = np.asarray(params, dtype=np.float64)
    vel = field.velocity(x, samples.positions)
    normals = samples.normals

    normal_part = np.sum(vel * normals, axis=1)
    tangential = vel - normal_part[:, None] * normals
    var = config.normal_noise ** 2 * np.sum(tangential ** 2, axis=1)

    if config.position_noise > 0:
        # d(n . v)/dp = J^T n
        grad = normals @ field.velocity_jacobian(x)
        var = var + config.position_noise ** 2 * np.sum(grad ** 2, axis=1)

    return var


def compute_heiv_weights(field, samples: SurfaceSamples, params, config: FitConfig) -> np.ndarray:
    """
    Per-sample weights w = confidence / sqrt(variance), rescaled to mean 1.

    The builder squares w, so each sample enters as confidence^2 / variance:
    the plain fit's confidence weighting divided by the residual variance.

    Variances are floored relative to their mean so that samples where the
    field vanishes do not dominate the fit.
    """
    var = residual_variance(field, samples, params, config)
    confidence = samples.weights
    active = confidence > 0

    mean_var = float(var[active].mean()) if np.any(active) else 0.0
    floor = max(config.variance_floor * mean_var, _MIN_VARIANCE)
    var = np.maximum(var, floor)

    weights = confidence / np.sqrt(var)
    if np.any(active):
        weights /= weights[active].mean()
    return weights


def refine_heiv(field, samples: SurfaceSamples, config: Optional[FitConfig] = None) -> HEIVOutcome:
    """
    Fit a field with HEIV reweighting.

    Starts from the plain fit (sample weights, smallest-eigenvalue
    selection), then repeatedly reweights and re-solves with
    Rayleigh-quotient selection. Stops when the canonical parameters change
    by less than config.tolerance, when the residual stops decreasing, or
    after config.max_iterations iterations.

    Raises:
        InsufficientDataError: not enough usable samples
        NoValidSolutionError: the initial fit has no admissible eigenpair
        EigensolveFailedError: LAPACK failure, annotated with the iteration
    """
    config = (config or FitConfig()).validate()

    M, N = LinearSystemBuilder.build(field, samples)
    try:
        params = solve_best_fit(M, N, imag_tolerance=config.imag_tolerance)
    except EigensolveFailedError as e:
        raise e.at_iteration(0) from e
    residual = LinearSystemBuilder.rayleigh_quotient(M, N, params)
    logger.debug("%s HEIV init: residual=%.3e", field.name, residual)

    history: List[float] = []
    converged = False
    iterations = 0

    for k in range(1, config.max_iterations + 1):
        iterations = k
        weights = compute_heiv_weights(field, samples, params, config)
        M, N = LinearSystemBuilder.build(field, samples, weights)
        try:
            candidate = solve_best_fit(M, N, recompute_errors=True)
        except EigensolveFailedError as e:
            raise e.at_iteration(k) from e
        candidate_residual = LinearSystemBuilder.rayleigh_quotient(M, N, candidate)

        if history and candidate_residual > history[-1] + config.residual_tolerance:
            logger.debug(
                "%s HEIV iter %d: residual rose to %.3e, keeping previous estimate",
                field.name, k, candidate_residual,
            )
            converged = True
            break

        change = float(np.linalg.norm(canonicalize(candidate) - canonicalize(params)))
        stalled = bool(history) and candidate_residual >= history[-1] - config.residual_tolerance
        params, residual = candidate, candidate_residual
        history.append(candidate_residual)
        logger.debug(
            "%s HEIV iter %d: residual=%.3e change=%.3e", field.name, k, residual, change
        )

        if change < config.tolerance or stalled:
            converged = True
            break

    if not converged and config.max_iterations > 0:
        logger.warning(
            "%s HEIV fit did not converge in %d iterations (residual=%.3e)",
            field.name, config.max_iterations, residual,
        )

    return HEIVOutcome(
        params=params,
        residual=residual,
        iterations=iterations,
        converged=converged,
        residual_history=history,
    )
