"""Configuration management for the equation analysis engine."""

import os
from dataclasses import dataclass, field
from typing import Dict


NUM_POINTS = 600
DEFAULT_BOUND_VALUE = 10.0

# Names the host application may bind to a value; anything else is a variable
DEFAULT_PARAMETERS = {
    "a": 1.0,
    "b": 1.0,
    "c": 1.0,
    "d": 1.0,
    "e": 2.718281828459045,
    "f": 1.0,
    "g": 1.0,
    "h": 0.0,
    "k": 0.0,
    "m": 1.0,
}

RESERVED_VARIABLES = ("x", "y", "r", "theta")


def _parse_parameters(text: str) -> Dict[str, float]:
    params = {}
    for item in text.split(","):
        if not item.strip():
            continue
        name, _, value = item.partition("=")
        params[name.strip().lower()] = float(value)
    return params


@dataclass
class EngineConfig:
    """Central configuration for parsing, sampling and classification."""

    # Sampling
    default_bound: float = DEFAULT_BOUND_VALUE
    num_points: int = NUM_POINTS

    # Solver fixed-point loop
    max_solve_iterations: int = 10

    # Supported parameter table (environment may override)
    parameters: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_PARAMETERS))

    # Model ranking limits (log10 of singular value ratio)
    worst_polynomial_fit: float = -12.0
    worst_polar_fit: float = -10.0

    # Largest numerator/denominator offered as an exact form
    rational_search_limit: int = 100

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create config from environment variables."""
        parameters = dict(DEFAULT_PARAMETERS)
        parameters.update(_parse_parameters(os.getenv("MDE_PARAMETERS", "")))
        return cls(
            default_bound=float(os.getenv("MDE_DEFAULT_BOUND", DEFAULT_BOUND_VALUE)),
            num_points=int(os.getenv("MDE_NUM_POINTS", NUM_POINTS)),
            max_solve_iterations=int(os.getenv("MDE_MAX_SOLVE_ITERATIONS", 10)),
            parameters=parameters,
        )

    def default_bounds(self):
        from .geometry import Bounds
        b = self.default_bound
        return Bounds(-b, b, b, -b)

    def validate(self) -> list:
        """Validate configuration, return list of warnings."""
        warnings = []

        if self.default_bound <= 0:
            warnings.append(f"default_bound must be positive, got {self.default_bound}")
        if self.num_points < 2:
            warnings.append(f"num_points must be at least 2, got {self.num_points}")
        if self.max_solve_iterations < 1:
            warnings.append("max_solve_iterations < 1 - bounds will never be recomputed")
        for name in self.parameters:
            if name in RESERVED_VARIABLES:
                warnings.append(f"parameter '{name}' shadows a reserved variable name")

        return warnings
