# mini_fem/kernel/dof.py
"""
DOF MANAGER: Grip Numbering and Constraint Map
==============================================

PURPOSE:
--------
This module handles the mapping from (grip_number, local_dof) to global DOF
indices, and derives the two grip-level inputs of every analysis:

    - the applied force vector (each grip's force scattered into its slots)
    - the constraint index (ordered global DOFs that are supported)

Grips are numbered from 1. Each grip has 2 DOFs (ux, uy), so grip n owns
global DOFs [2n - 2, 2n - 1]:

    Grip 1  ->  [0, 1]
    Grip 2  ->  [2, 3]
    Grip n  ->  [2n - 2, 2n - 1]

USAGE:
------
    dof = DOFManager()
    dof.node_dofs(3)              # [4, 5]
    dof.element_dof_map([1, 3])   # [0, 1, 4, 5]

    F = force_vector(grips)       # shape (2 * len(grips),)
    fixed = constraint_index(grips)
"""

from dataclasses import dataclass
from typing import Iterable, List

import numpy as np


@dataclass
class DOFManager:
    """
    Manages degree-of-freedom indexing for plane analysis.

    Attributes:
    -----------
    dof_per_node : int
        Number of DOFs per grip. Plane grips carry 2 (ux, uy).

    Examples:
    ---------
    >>> dof = DOFManager()
    >>> dof.idx(1, 0)  # Grip 1, ux
    0
    >>> dof.idx(2, 1)  # Grip 2, uy
    3
    >>> dof.ndof(4)
    8
    """
    dof_per_node: int = 2

    def idx(self, grip_number: int, local_dof: int) -> int:
        """
        Get the global DOF index for a grip's local DOF.

        Parameters:
        -----------
        grip_number : int
            The grip number (1-based)
        local_dof : int
            0 = ux, 1 = uy

        Returns:
        --------
        int
            Global DOF index in the system matrices
        """
        return self.dof_per_node * (grip_number - 1) + local_dof

    def ndof(self, n_grips: int) -> int:
        """Total DOFs for a model with n_grips."""
        return self.dof_per_node * n_grips

    def node_dofs(self, grip_number: int) -> List[int]:
        """
        Get all global DOF indices for a single grip.

        Examples:
        ---------
        >>> DOFManager().node_dofs(2)
        [2, 3]
        """
        base = self.dof_per_node * (grip_number - 1)
        return list(range(base, base + self.dof_per_node))

    def element_dof_map(self, grip_numbers: Iterable[int]) -> List[int]:
        """
        Get the DOF map for an element connecting several grips.

        This returns the indices needed to scatter/gather element
        matrices into/from the global matrices.

        Examples:
        ---------
        >>> DOFManager().element_dof_map([1, 3])
        [0, 1, 4, 5]
        """
        result = []
        for number in grip_numbers:
            result.extend(self.node_dofs(number))
        return result


PLANE_DOF = DOFManager(dof_per_node=2)   # ux, uy


def force_vector(grips) -> np.ndarray:
    """
    Assemble the applied force vector from the grip collection.

    Each grip's (Fx, Fy) is written into its two DOF slots. Grips must have
    distinct DOF pairs; that is a model contract, not checked here.

    Parameters:
    -----------
    grips : sequence of Grip
        Grips ordered by number

    Returns:
    --------
    np.ndarray
        Force vector, shape (2 * len(grips),), in N
    """
    grips = list(grips)
    F = np.zeros(PLANE_DOF.ndof(len(grips)), dtype=float)

    for grip in grips:
        i, j = grip.dof_index
        F[i] = grip.force[0]
        F[j] = grip.force[1]

    return F


def constraint_index(grips) -> List[int]:
    """
    Get the ordered list of constrained global DOFs.

    Grips are scanned in order; for each grip the X index comes before the
    Y index.
    """
    index = []
    for grip in grips:
        i, j = grip.dof_index
        if grip.constraint.x:
            index.append(i)
        if grip.constraint.y:
            index.append(j)
    return index
