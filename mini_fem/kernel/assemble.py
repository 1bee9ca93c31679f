# mini_fem/kernel/assemble.py
"""
ASSEMBLY: Global Matrix Assembly and Constraint Simplification
==============================================================

PURPOSE:
--------
This module handles the assembly of element contributions into global
matrices. This is the scatter-add operation that builds K and the internal
force vector from element-level data.

Assembly doesn't care about element TYPE. It just needs:
- Total number of DOFs
- For each element: its DOF map, its stiffness matrix, its force vector

Overlapping contributions from elements sharing a grip are summed
(superposition). Every call builds the arrays from zero; nothing is
accumulated between iterations.

CONSTRAINT SIMPLIFICATION:
--------------------------
Supported DOFs are not removed from the system. Their rows and columns are
cleared and the diagonal set to 1, and the matching force entries zeroed:

    K = [ k00  k01  k02 ]             [ 1    0    0  ]
        [ k10  k11  k12 ]   fix 0 ->  [ 0   k11  k12 ]
        [ k20  k21  k22 ]             [ 0   k21  k22 ]

The matrix keeps its size, so grip -> DOF indices stay valid for
reaction recovery.

USAGE:
------
    K = assemble_stiffness(fem_input.elements, fem_input.number_of_dofs)
    Ks = simplified_stiffness(K, fem_input.constraint_index)
    Fs = simplified_forces(F, fem_input.constraint_index)
"""

import numpy as np
from typing import Iterable, List, Sequence, Tuple


def assemble_global_K(
    ndof: int,
    contributions: Iterable[Tuple[Sequence[int], np.ndarray]]
) -> np.ndarray:
    """
    Assemble global stiffness matrix from element contributions.

    ALGORITHM:
    ----------
    K = zeros(ndof × ndof)
    for each element:
        for each (local_i, local_j) in element ke:
            K[dof_map[local_i], dof_map[local_j]] += ke[local_i, local_j]

    Parameters:
    -----------
    ndof : int
        Total number of DOFs in the system (2 × number of grips)

    contributions : iterable of (dof_map, ke)
        - dof_map: global DOF indices of the element
        - ke: element stiffness in global orientation,
          shape (len(dof_map), len(dof_map))

    Returns:
    --------
    np.ndarray
        Global stiffness matrix K, shape (ndof, ndof)
    """
    K = np.zeros((ndof, ndof), dtype=float)

    for dof_map, ke in contributions:
        n_element_dofs = len(dof_map)

        assert ke.shape == (n_element_dofs, n_element_dofs), \
            f"Element ke shape {ke.shape} doesn't match dof_map length {n_element_dofs}"

        for a in range(n_element_dofs):
            ia = dof_map[a]
            for b in range(n_element_dofs):
                ib = dof_map[b]
                K[ia, ib] += ke[a, b]

    return K


def assemble_global_F(
    ndof: int,
    contributions: Iterable[Tuple[Sequence[int], np.ndarray]]
) -> np.ndarray:
    """
    Assemble a global force vector from element contributions.

    Same scatter-add logic as assemble_global_K, but for vectors.

    Parameters:
    -----------
    ndof : int
        Total number of DOFs in the system

    contributions : iterable of (dof_map, fe)
        - dof_map: global DOF indices
        - fe: element force vector in global orientation, shape (len(dof_map),)

    Returns:
    --------
    np.ndarray
        Global force vector F, shape (ndof,)
    """
    F = np.zeros(ndof, dtype=float)

    for dof_map, fe in contributions:
        n_element_dofs = len(dof_map)

        assert fe.shape == (n_element_dofs,), \
            f"Element fe shape {fe.shape} doesn't match dof_map length {n_element_dofs}"

        for a in range(n_element_dofs):
            F[dof_map[a]] += fe[a]

    return F


def assemble_stiffness(elements, ndof: int) -> np.ndarray:
    """Global stiffness from the current element stiffness matrices."""
    return assemble_global_K(ndof, ((e.dof_index, e.stiffness) for e in elements))


def assemble_internal_forces(
    elements,
    ndof: int,
    constraint_index: Sequence[int] = (),
    simplify: bool = True
) -> np.ndarray:
    """
    Global internal force vector from the current element force vectors.

    Parameters:
    -----------
    elements : iterable of FiniteElement
        Elements whose forces are already calculated for the current state
    ndof : int
        Total number of DOFs
    constraint_index : sequence of int
        Constrained DOFs, zeroed when simplify is True
    simplify : bool
        Set False to keep the support entries (used for reactions)
    """
    F = assemble_global_F(ndof, ((e.dof_index, e.forces) for e in elements))

    if simplify:
        F[list(constraint_index)] = 0.0

    return F


def simplified_stiffness(
    K: np.ndarray,
    constraint_index: Sequence[int],
    simplify_zero_rows: bool = True,
    zero_tol: float = 1e-12
) -> np.ndarray:
    """
    Pin the constrained DOFs of a stiffness matrix.

    Returns a copy of K where every constrained row and column is cleared
    and its diagonal set to 1.

    Parameters:
    -----------
    K : np.ndarray
        Assembled stiffness matrix, shape (ndof, ndof). Not modified.
    constraint_index : sequence of int
        Constrained DOFs
    simplify_zero_rows : bool
        Also pin DOFs whose row or column is entirely zero (DOFs that no
        element touches). Without this, an unconnected grip makes the
        system singular.
    zero_tol : float
        Absolute tolerance for "zero" entries

    Returns:
    --------
    np.ndarray
        Simplified stiffness matrix, same shape as K
    """
    Ks = np.array(K, dtype=float, copy=True)
    index: List[int] = list(constraint_index)

    Ks[index, :] = 0.0
    Ks[:, index] = 0.0
    Ks[index, index] = 1.0

    if not simplify_zero_rows:
        return Ks

    for i in range(Ks.shape[0]):
        row_zero = np.all(np.abs(Ks[i, :]) <= zero_tol)
        col_zero = np.all(np.abs(Ks[:, i]) <= zero_tol)
        if row_zero or col_zero:
            Ks[i, :] = 0.0
            Ks[:, i] = 0.0
            Ks[i, i] = 1.0

    return Ks


def simplified_forces(F: np.ndarray, constraint_index: Sequence[int]) -> np.ndarray:
    """Copy of F with the constrained entries zeroed."""
    Fs = np.array(F, dtype=float, copy=True)
    Fs[list(constraint_index)] = 0.0
    return Fs
