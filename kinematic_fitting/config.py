"""
Fitting configuration.
"""

from dataclasses import dataclass, fields, asdict
from typing import Any, Dict


@dataclass
class FitConfig:
    """Tunable constants for the TLS fit and HEIV refinement."""
    # HEIV loop
    max_iterations: int = 20
    tolerance: float = 1e-8          # change in canonical params
    residual_tolerance: float = 1e-15

    # Eigenpair admissibility (mode A)
    imag_tolerance: float = 1e-5

    # Noise model for HEIV weights
    normal_noise: float = 1.0        # std. dev. of normal perturbations
    position_noise: float = 0.0      # std. dev. of position perturbations
    variance_floor: float = 1e-6     # relative to the mean variance

    def validate(self) -> "FitConfig":
        """Raise ValueError if any setting is out of range."""
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be >= 0, got {self.max_iterations}")
        for name in ("tolerance", "residual_tolerance", "imag_tolerance",
                     "normal_noise", "position_noise", "variance_floor"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if self.normal_noise == 0 and self.position_noise == 0:
            raise ValueError("normal_noise and position_noise cannot both be zero")
        return self

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "FitConfig":
        """Build a config from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known}).validate()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
