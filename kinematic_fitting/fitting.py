"""
Kinematic field fitting: total least squares with optional HEIV refinement.
"""

import json
import logging
from dataclasses import dataclass, field as dc_field
from typing import Dict, Iterable, List, Optional

import numpy as np

from .config import FitConfig
from .eigensolver import solve_best_fit
from .fields import FIELD_TYPES, Motion, get_field
from .heiv import refine_heiv
from .linear_system import LinearSystemBuilder
from .samples import SurfaceSamples

logger = logging.getLogger(__name__)


@dataclass
class FittingResult:
    """Result of fitting one field model to a surface."""
    field_name: str
    params: np.ndarray
    residual: float                 # |x^T M x / x^T N x|
    iterations: int
    converged: bool
    method: str = "tls"             # "tls" or "heiv"
    residual_history: List[float] = dc_field(default_factory=list)

    @property
    def field(self):
        return get_field(self.field_name)

    def velocity(self, points) -> np.ndarray:
        """Evaluate the fitted field at one point (3,) or many (K, 3)."""
        return self.field.velocity(self.params, points)

    def describe(self) -> Motion:
        """Interpret the parameters geometrically (axis, center, ...)."""
        return self.field.describe(self.params)

    def to_json(self) -> str:
        """Serialize to a JSON string."""
        return json.dumps({
            "field": self.field_name,
            "params": [float(v) for v in self.params],
            "residual": float(self.residual),
            "iterations": int(self.iterations),
            "converged": bool(self.converged),
            "method": self.method,
            "residual_history": [float(v) for v in self.residual_history],
        })

    @staticmethod
    def from_json(json_str: str) -> "FittingResult":
        """Deserialize a result produced by to_json()."""
        data = json.loads(json_str)
        field = get_field(data["field"])
        params = np.asarray(data["params"], dtype=np.float64)
        if params.shape != (field.num_params,):
            raise ValueError(
                f"{field.name} field expects {field.num_params} params, got {params.shape}"
            )
        return FittingResult(
            field_name=field.name,
            params=params,
            residual=float(data["residual"]),
            iterations=int(data.get("iterations", 0)),
            converged=bool(data.get("converged", True)),
            method=data.get("method", "tls"),
            residual_history=[float(v) for v in data.get("residual_history", [])],
        )


def _resolve(field):
    return get_field(field) if isinstance(field, str) else field


def fit_kinematic_field(
    field,
    samples: SurfaceSamples,
    config: Optional[FitConfig] = None,
) -> FittingResult:
    """
    Fit one field model to all samples by total least squares.

    Args:
        field: field model or its name ("translation", "scaling", ...)
        samples: surface samples (positions should already be centred
            and scaled)
        config: fitting configuration

    Returns:
        FittingResult with method "tls"

    Raises:
        InsufficientDataError, NoValidSolutionError, EigensolveFailedError
    """
    field = _resolve(field)
    config = (config or FitConfig()).validate()

    M, N = LinearSystemBuilder.build(field, samples)
    params = solve_best_fit(M, N, imag_tolerance=config.imag_tolerance)
    residual = LinearSystemBuilder.rayleigh_quotient(M, N, params)
    logger.debug("%s fit: residual=%.3e", field.name, residual)

    return FittingResult(
        field_name=field.name,
        params=params,
        residual=residual,
        iterations=1,
        converged=True,
    )


def fit_kinematic_field_heiv(
    field,
    samples: SurfaceSamples,
    config: Optional[FitConfig] = None,
) -> FittingResult:
    """
    Fit one field model with HEIV reweighting.

    See heiv.refine_heiv() for the iteration. A result with
    converged=False is the best estimate found within the iteration budget.
    """
    field = _resolve(field)
    outcome = refine_heiv(field, samples, config)
    return FittingResult(
        field_name=field.name,
        params=outcome.params,
        residual=outcome.residual,
        iterations=outcome.iterations,
        converged=outcome.converged,
        method="heiv",
        residual_history=list(outcome.residual_history),
    )


def fit_all_fields(
    samples: SurfaceSamples,
    fields: Optional[Iterable[str]] = None,
    heiv: bool = False,
    config: Optional[FitConfig] = None,
) -> Dict[str, FittingResult]:
    """
    Fit each field model independently to the whole surface.

    Args:
        samples: surface samples
        fields: names of the models to fit (default: all four)
        heiv: use HEIV refinement instead of the plain fit
        config: fitting configuration

    Returns:
        dict mapping field name to its FittingResult
    """
    names = list(fields) if fields is not None else list(FIELD_TYPES)
    fit = fit_kinematic_field_heiv if heiv else fit_kinematic_field
    results = {}
    for name in names:
        field = get_field(name)
        results[field.name] = fit(field, samples, config)
    return results
