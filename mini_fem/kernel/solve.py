# mini_fem/kernel/solve.py
"""Linear system solves on the simplified system, mechanism detection and reactions."""

import warnings

import numpy as np
import scipy.linalg
from typing import Sequence, Tuple

from .assemble import simplified_forces, simplified_stiffness


class MechanismError(RuntimeError):
    """Raised when structure is unstable or ill-conditioned."""
    pass


class ConvergenceError(RuntimeError):
    """Raised when iterative solution does not converge."""
    pass


def solve_linear(
    K: np.ndarray,
    F: np.ndarray,
    constraint_index: Sequence[int],
    cond_limit: float = 1e12
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Solve K·u = F with constrained DOFs pinned by simplification.

    Args:
        K: Global stiffness matrix (ndof x ndof), unsimplified
        F: Global force vector (ndof,), unsimplified
        constraint_index: Constrained DOF indices (displacement = 0)
        cond_limit: Max condition number before raising MechanismError

    Returns:
        u: Displacement vector (ndof,)
        R: Reaction vector (ndof,), R = K·u - F. Meaningful at
           constrained DOFs only.

    Raises:
        MechanismError: If structure is unstable (cond > cond_limit)
    """
    Ks = simplified_stiffness(K, constraint_index)
    Fs = simplified_forces(F, constraint_index)

    cond = np.linalg.cond(Ks)
    if not np.isfinite(cond) or cond > cond_limit:
        raise MechanismError(
            f"Unstable system (cond={cond:.2e}). Check supports. Need cond < {cond_limit:.0e}."
        )

    u = np.linalg.solve(Ks, Fs)
    R = reactions(K, u, F)

    return u, R


def reactions(K: np.ndarray, u: np.ndarray, F: np.ndarray) -> np.ndarray:
    """Linear reaction vector R = K·u - F."""
    return K @ u - F


def factorize(Ks: np.ndarray):
    """
    LU factorization of a simplified stiffness matrix.

    Raises:
        ValueError: If Ks contains inf or NaN
        LinAlgError: If the factorization has a zero pivot (singular Ks)
    """
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", scipy.linalg.LinAlgWarning)
        lu, piv = scipy.linalg.lu_factor(Ks)

    if not np.all(np.diag(lu)):
        raise np.linalg.LinAlgError("singular stiffness matrix (zero pivot)")

    return lu, piv


def solve_increment(lu, r: np.ndarray) -> np.ndarray:
    """
    Solve one iteration increment from a factorized stiffness.

    Args:
        lu: Result of factorize()
        r: Right-hand side (residual or reference load), already simplified

    Returns:
        Displacement increment (ndof,)
    """
    return scipy.linalg.lu_solve(lu, r)
