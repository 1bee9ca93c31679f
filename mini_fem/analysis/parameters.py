# mini_fem/analysis/parameters.py
"""
Analysis configuration: enums and the AnalysisParameters record.

Parameters are fixed for one analysis run and validated when created, so a
bad configuration fails before any load step is attempted.
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping


class AnalysisType(Enum):
    Linear = "linear"
    Nonlinear = "nonlinear"


class NonlinearSolver(Enum):
    NewtonRaphson = "newton_raphson"
    ModifiedNewtonRaphson = "modified_newton_raphson"
    Secant = "secant"


class AnalysisControl(Enum):
    Force = "force"
    Displacement = "displacement"
    ArcLength = "arc_length"


# camelCase names accepted by from_dict
_ALIASES = {
    'forceTolerance': 'force_tolerance',
    'displacementTolerance': 'displacement_tolerance',
    'minIterations': 'min_iterations',
    'maxIterations': 'max_iterations',
    'numberOfSteps': 'number_of_steps',
}


@dataclass(frozen=True)
class AnalysisParameters:
    """
    Nonlinear analysis parameters.

    Attributes:
    -----------
    solver : NonlinearSolver
        Stiffness update strategy (default: Newton-Raphson)
    control : AnalysisControl
        Force, displacement or arc-length control (default: force)
    number_of_steps : int
        Number of load steps the full load is divided into (default: 50)
    max_iterations : int
        Iteration budget per load step (default: 1000)
    min_iterations : int
        Iterations required before convergence is accepted (default: 2)
    force_tolerance : float
        Residual force convergence tolerance (default: 1E-3)
    displacement_tolerance : float
        Displacement increment convergence tolerance (default: 1E-8)

    Raises:
    -------
    ValueError
        On non-positive tolerances, min_iterations > max_iterations, or
        non-positive step/iteration counts
    """
    solver: NonlinearSolver = NonlinearSolver.NewtonRaphson
    control: AnalysisControl = AnalysisControl.Force
    number_of_steps: int = 50
    max_iterations: int = 1000
    min_iterations: int = 2
    force_tolerance: float = 1e-3
    displacement_tolerance: float = 1e-8

    def __post_init__(self):
        # Accept the enum values as strings, e.g. from a config file
        object.__setattr__(self, 'solver', NonlinearSolver(self.solver))
        object.__setattr__(self, 'control', AnalysisControl(self.control))

        if not self.force_tolerance > 0:
            raise ValueError(f"force_tolerance must be positive, got {self.force_tolerance}")
        if not self.displacement_tolerance > 0:
            raise ValueError(f"displacement_tolerance must be positive, got {self.displacement_tolerance}")
        if self.min_iterations < 0:
            raise ValueError(f"min_iterations must be >= 0, got {self.min_iterations}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.min_iterations > self.max_iterations:
            raise ValueError(
                f"min_iterations ({self.min_iterations}) > max_iterations ({self.max_iterations})"
            )
        if self.number_of_steps < 1:
            raise ValueError(f"number_of_steps must be >= 1, got {self.number_of_steps}")

    @property
    def step_increment(self) -> float:
        """Load factor increment of one step."""
        return 1.0 / self.number_of_steps

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "AnalysisParameters":
        """
        Build parameters from a mapping.

        Keys may be snake_case or camelCase (forceTolerance, maxIterations...).
        Solver and control may be given as enum members, enum names
        ("NewtonRaphson") or values ("newton_raphson").

        Raises:
        -------
        ValueError
            On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}

        for key, value in config.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown analysis option '{key}'")
            kwargs[name] = value

        if 'solver' in kwargs:
            kwargs['solver'] = _parse_enum(NonlinearSolver, kwargs['solver'])
        if 'control' in kwargs:
            kwargs['control'] = _parse_enum(AnalysisControl, kwargs['control'])

        return cls(**kwargs)

    def with_changes(self, **changes) -> "AnalysisParameters":
        """Copy with some fields replaced (validated again)."""
        return replace(self, **changes)


DEFAULT_PARAMETERS = AnalysisParameters()


def _parse_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        if value in enum_cls.__members__:
            return enum_cls[value]
        try:
            return enum_cls(value.lower())
        except ValueError:
            pass
    raise ValueError(
        f"Invalid {enum_cls.__name__}: {value!r}. Options: {list(enum_cls.__members__)}"
    )
