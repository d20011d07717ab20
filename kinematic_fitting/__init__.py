"""
Kinematic Field Fitting Module

Fits translation, scaling, helical and spiral velocity fields to a static
triangle mesh from its vertex positions and normals, using a generalized
eigenvalue total-least-squares fit with optional HEIV refinement.
"""

from .config import FitConfig
from .errors import (
    KinematicFitError,
    InsufficientDataError,
    NoValidSolutionError,
    EigensolveFailedError,
)
from .fields import (
    TranslationField,
    ScalingField,
    HelicalField,
    SpiralField,
    FIELD_TYPES,
    get_field,
)
from .samples import SurfaceSamples
from .mesh_loader import MeshLoader
from .linear_system import LinearSystemBuilder, rayleigh_residual
from .eigensolver import solve_generalized_eigenproblem, solve_best_fit
from .fitting import (
    FittingResult,
    fit_kinematic_field,
    fit_kinematic_field_heiv,
    fit_all_fields,
)
from .streamlines import trace_streamline, trace_streamlines
from .logging_config import setup_logging

__all__ = [
    "FitConfig",
    "KinematicFitError",
    "InsufficientDataError",
    "NoValidSolutionError",
    "EigensolveFailedError",
    "TranslationField",
    "ScalingField",
    "HelicalField",
    "SpiralField",
    "FIELD_TYPES",
    "get_field",
    "SurfaceSamples",
    "MeshLoader",
    "LinearSystemBuilder",
    "rayleigh_residual",
    "solve_generalized_eigenproblem",
    "solve_best_fit",
    "FittingResult",
    "fit_kinematic_field",
    "fit_kinematic_field_heiv",
    "fit_all_fields",
    "trace_streamline",
    "trace_streamlines",
    "setup_logging",
]
