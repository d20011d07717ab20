"""
Exceptions raised while building or solving a kinematic field fit.
"""

from typing import Optional


class KinematicFitError(Exception):
    """Base class for all fitting failures."""


class InsufficientDataError(KinematicFitError, ValueError):
    """Too few usable samples to build a well-posed system."""


class NoValidSolutionError(KinematicFitError):
    """The eigensolver returned no admissible eigenpair."""


class EigensolveFailedError(KinematicFitError):
    """The LAPACK generalized eigensolver reported a failure.

    Attributes:
        info: Diagnostic code returned by LAPACK (``info`` argument).
        iteration: HEIV iteration at which the failure happened, 0 for the
            initial fit, or None outside of HEIV refinement.
    """

    def __init__(self, info: int, iteration: Optional[int] = None):
        self.info = int(info)
        self.iteration = iteration
        message = f"generalized eigensolve failed (LAPACK info={self.info})"
        if iteration is not None:
            message += f" at HEIV iteration {iteration}"
        super().__init__(message)

    def at_iteration(self, iteration: int) -> "EigensolveFailedError":
        """Return a copy of this error annotated with an iteration index."""
        return EigensolveFailedError(self.info, iteration=iteration)
