# mini_fem/analysis/stiffness.py
"""
STIFFNESS UPDATE STRATEGIES
===========================

Each nonlinear solver differs only in which stiffness matrix an iteration
uses to compute its displacement increment:

    NewtonRaphson           tangent reassembled from the elements every
                            iteration
    ModifiedNewtonRaphson   tangent assembled at iteration 1 of the step,
                            the same matrix reused for the rest of the step
    Secant                  rank-one (Broyden) secant update from the last
                            two iterations; the tangent is only assembled
                            when there's no previous stiffness to update

A strategy is called at the start of iteration k, after the new iteration
has been appended to the step and before its increment is solved. The
elements are still in the state of iteration k - 1.

Returning the SAME array object as the previous call tells the load step
that the stiffness didn't change, so its LU factorization can be reused.
"""

import numpy as np

from .parameters import NonlinearSolver


class NewtonRaphsonUpdate:
    """Full Newton-Raphson: fresh tangent each iteration."""

    def __call__(self, step, fem_input) -> np.ndarray:
        fem_input.update_stiffness()
        return fem_input.assemble_stiffness()


class ModifiedNewtonRaphsonUpdate:
    """Tangent of the step's first iteration, kept for the whole step."""

    def __call__(self, step, fem_input) -> np.ndarray:
        if step.tangent_stiffness is None:
            fem_input.update_stiffness()
            step.tangent_stiffness = fem_input.assemble_stiffness()
        return step.tangent_stiffness


class SecantUpdate:
    """
    Broyden secant update:

        K_k = K_(k-1) + ((ΔF - K_(k-1)·ΔU) ⊗ ΔU) / (ΔU·ΔU)

    with ΔU, ΔF the change in displacements and internal forces between
    iterations k-1 and k-2. Under a fixed load ΔF equals minus the change
    in residual.
    """

    def __call__(self, step, fem_input) -> np.ndarray:
        iterations = step.iterations
        current = iterations[-1]

        if current.number == 1:
            seed = iterations[0].stiffness
            if step.number == 1 or not seed.any():
                fem_input.update_stiffness()
                return fem_input.assemble_stiffness()
            return seed.copy()

        last, penultimate = iterations[-2], iterations[-3]
        K = last.stiffness
        dU = last.displacements - penultimate.displacements
        dF = last.internal_forces - penultimate.internal_forces

        dU2 = float(dU @ dU)
        if dU2 == 0.0:
            return K.copy()

        return K + np.outer(dF - K @ dU, dU) / dU2


_STRATEGIES = {
    NonlinearSolver.NewtonRaphson: NewtonRaphsonUpdate,
    NonlinearSolver.ModifiedNewtonRaphson: ModifiedNewtonRaphsonUpdate,
    NonlinearSolver.Secant: SecantUpdate,
}


def stiffness_update(solver: NonlinearSolver):
    """Strategy object for a solver kind."""
    return _STRATEGIES[NonlinearSolver(solver)]()
