# mini_fem/analysis/iteration.py
"""
ITERATION: One Newton-Raphson-Family Iteration
==============================================

An IterationResult holds the state of one iteration inside a load step:

    displacements            running displacement estimate u_k
    displacement_increment   Δu_k added in this iteration
    internal_forces          assembled element forces at u_k
    residual_forces          r_k = applied - internal
    stiffness                stiffness used to compute Δu_k
    force_convergence        |r_k| / |applied|
    displacement_convergence |Δu_k| / |Δu_1|
    load_factor_increment    δλ_k (displacement and arc-length control)

Life cycle inside a step:

    created (seeded from the previous step)
        -> increment_displacements(Δu)
        -> update_forces(applied, internal)
        -> calculate_convergence(applied, Δu_1)
        -> check_convergence / check_stop_condition

Iteration 0 is the seed of the step; real iterations are numbered from 1.
A positive residual means the structure resists less than is applied and
needs more displacement.
"""

import numpy as np
from typing import Optional

from .parameters import AnalysisParameters


def calculate_convergence(numerator: np.ndarray, denominator: np.ndarray) -> float:
    """
    Ratio of Euclidean norms |numerator| / |denominator|.

    Returns 0 when the denominator is a zero vector.
    """
    den = float(np.linalg.norm(denominator))
    if den == 0.0:
        return 0.0
    return float(np.linalg.norm(numerator)) / den


class IterationResult:
    """
    State of one nonlinear iteration.

    Parameters:
    -----------
    displacements : np.ndarray, shape (ndof,)
    residual_forces : np.ndarray, shape (ndof,)
    stiffness : np.ndarray, shape (ndof, ndof)
    number : int
        Iteration number within the step (0 = seed)
    """

    def __init__(
        self,
        displacements: np.ndarray,
        residual_forces: np.ndarray,
        stiffness: np.ndarray,
        number: int = 0
    ):
        self.number = number
        self.displacements = np.asarray(displacements, dtype=float)
        self.residual_forces = np.asarray(residual_forces, dtype=float)
        self.stiffness = np.asarray(stiffness, dtype=float)
        self.internal_forces = np.zeros_like(self.displacements)
        self.displacement_increment = np.zeros_like(self.displacements)
        self.force_convergence = np.inf
        self.displacement_convergence = np.inf
        # load factor change of this iteration (displacement and arc-length control)
        self.load_factor_increment = 0.0

    @classmethod
    def zeros(cls, number_of_dofs: int) -> "IterationResult":
        return cls(
            np.zeros(number_of_dofs),
            np.zeros(number_of_dofs),
            np.zeros((number_of_dofs, number_of_dofs)),
        )

    def calculate_convergence(self, applied_forces: np.ndarray, initial_increment: np.ndarray) -> None:
        """
        Compute the force and displacement convergence metrics.

        Parameters:
        -----------
        applied_forces : np.ndarray
            Simplified applied forces of the current step
        initial_increment : np.ndarray
            Displacement increment of the first iteration of the step
        """
        self.force_convergence = calculate_convergence(self.residual_forces, applied_forces)
        self.displacement_convergence = calculate_convergence(self.displacement_increment, initial_increment)

    @property
    def is_finite(self) -> bool:
        """False if the state holds NaN/inf values or a NaN stiffness."""
        return bool(
            np.all(np.isfinite(self.residual_forces)) and
            np.all(np.isfinite(self.displacements)) and
            not np.isnan(self.stiffness).any()
        )

    def check_convergence(self, parameters: AnalysisParameters) -> bool:
        """
        True if the iteration number reached min_iterations, the state is
        finite and either the force or the displacement metric is within its
        tolerance.

        A NaN state never converges, even when a zero denominator makes a
        metric 0.
        """
        return (
            self.number >= parameters.min_iterations and
            self.is_finite and
            (self.force_convergence <= parameters.force_tolerance or
             self.displacement_convergence <= parameters.displacement_tolerance)
        )

    def check_stop_condition(self, parameters: AnalysisParameters) -> bool:
        """
        True if the iteration budget is spent or the state holds NaN/inf
        values (divergence).
        """
        return self.number >= parameters.max_iterations or not self.is_finite

    def increment_displacements(self, displacement_increment: np.ndarray) -> None:
        self.displacement_increment = np.asarray(displacement_increment, dtype=float)
        self.displacements = self.displacements + self.displacement_increment

    def update_forces(self, applied_forces: np.ndarray, internal_forces: np.ndarray) -> None:
        self.internal_forces = np.asarray(internal_forces, dtype=float)
        self.residual_forces = applied_forces - self.internal_forces

    def clone(self, number: Optional[int] = None) -> "IterationResult":
        """Deep copy. Pass number to renumber the copy."""
        copy = IterationResult(
            self.displacements.copy(),
            self.residual_forces.copy(),
            self.stiffness.copy(),
            self.number if number is None else number,
        )
        copy.internal_forces = self.internal_forces.copy()
        copy.displacement_increment = self.displacement_increment.copy()
        copy.force_convergence = self.force_convergence
        copy.displacement_convergence = self.displacement_convergence
        copy.load_factor_increment = self.load_factor_increment
        return copy

    def __repr__(self) -> str:
        return f"Iteration {self.number}"
