# mini_fem/model.py
"""
MODEL DEFINITIONS: Grip, Constraint, FiniteElement, FEMInput
============================================================

PURPOSE:
--------
This module defines the data the analysis works on:
- Constraint: which axes of a grip are supported
- Grip: a node where elements connect and loads/supports are applied
- FiniteElement: the behavioral contract every element type implements
- FEMInput: the model, owning the grips and referencing the elements

OWNERSHIP:
----------
Grips are owned by the FEMInput. Elements hold references to the SAME grip
objects (a grip shared by three bars is one object, not three copies), so
when the analysis writes displacements into a grip, every element sees it.

Each grip contributes exactly 2 global DOFs (ux, uy). With N grips the
global vectors have length 2N and the stiffness matrix is 2N × 2N for the
whole life of the model.

UNITS:
------
Lengths and displacements in mm, forces in N, stiffness in N/mm.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Protocol, Sequence

import numpy as np

from .kernel.dof import PLANE_DOF, constraint_index, force_vector
from .kernel.assemble import assemble_internal_forces, assemble_stiffness


class ModelError(ValueError):
    """Raised when grips and elements don't form a consistent model."""
    pass


@dataclass(frozen=True)
class Constraint:
    """
    Support condition of a grip.

    Parameters:
    -----------
    x : bool
        True if displacement along X is prevented
    y : bool
        True if displacement along Y is prevented
    """
    x: bool = False
    y: bool = False

    @classmethod
    def free(cls) -> "Constraint":
        return cls(False, False)

    @classmethod
    def full(cls) -> "Constraint":
        return cls(True, True)

    @classmethod
    def x_only(cls) -> "Constraint":
        return cls(True, False)

    @classmethod
    def y_only(cls) -> "Constraint":
        return cls(False, True)

    @property
    def is_free(self) -> bool:
        return not (self.x or self.y)


@dataclass(eq=False)
class Grip:
    """
    A grip (node) in the plane.

    Parameters:
    -----------
    number : int
        Unique identifier, starting at 1. Grip n owns DOFs [2n - 2, 2n - 1].
    x, y : float
        Coordinates (mm)
    constraint : Constraint
        Supported axes
    force : array-like, shape (2,)
        Applied force (Fx, Fy) in N

    Attributes set during analysis:
    -------------------------------
    displacement : np.ndarray, shape (2,)
        Current displacement (mm)
    reaction : np.ndarray, shape (2,)
        Support reaction (N), nonzero only on constrained axes

    Examples:
    ---------
    >>> g1 = Grip(1, 0.0, 0.0, Constraint.full())
    >>> g2 = Grip(2, 1000.0, 0.0, Constraint.y_only(), force=(100.0, 0.0))
    >>> g2.dof_index
    [2, 3]
    """
    number: int
    x: float = 0.0
    y: float = 0.0
    constraint: Constraint = field(default_factory=Constraint)
    force: np.ndarray = field(default_factory=lambda: np.zeros(2))
    displacement: np.ndarray = field(default_factory=lambda: np.zeros(2))
    reaction: np.ndarray = field(default_factory=lambda: np.zeros(2))

    def __post_init__(self):
        self.force = np.asarray(self.force, dtype=float).reshape(2)
        self.displacement = np.asarray(self.displacement, dtype=float).reshape(2)
        self.reaction = np.asarray(self.reaction, dtype=float).reshape(2)

    @property
    def dof_index(self) -> List[int]:
        return PLANE_DOF.node_dofs(self.number)

    def set_displacements(self, global_displacements: np.ndarray) -> None:
        """Read this grip's displacement from the global displacement vector."""
        self.displacement = np.array(global_displacements[self.dof_index], dtype=float)

    def set_reactions(self, global_reactions: np.ndarray) -> None:
        """Read this grip's reaction from the global vector (supported axes only)."""
        if self.constraint.is_free:
            return

        i, j = self.dof_index
        self.reaction = np.array([
            global_reactions[i] if self.constraint.x else 0.0,
            global_reactions[j] if self.constraint.y else 0.0,
        ])

    def __repr__(self) -> str:
        return f"Grip({self.number})"


class FiniteElement(Protocol):
    """
    Contract for elements the analysis can assemble.

    An element references its grips (shared, not copied) and keeps its own
    stiffness, forces and displacements in GLOBAL orientation, ordered as
    [ux_1, uy_1, ux_2, uy_2, ...] following `grips`.

    The analysis calls the hooks in this order each iteration:
        update_displacements()  read the grips' displacements
        update_stiffness()      recompute stiffness for the current state
        calculate_forces()      recompute internal forces
    """
    number: int
    grips: Sequence[Grip]
    stiffness: np.ndarray
    forces: np.ndarray
    displacements: np.ndarray

    @property
    def dof_index(self) -> List[int]: ...

    def update_stiffness(self) -> None: ...

    def update_displacements(self) -> None: ...

    def calculate_forces(self) -> None: ...


def element_dof_index(grips: Iterable[Grip]) -> List[int]:
    """DOF map of an element from its grips."""
    return PLANE_DOF.element_dof_map(g.number for g in grips)


def displacements_from_grips(grips: Iterable[Grip]) -> np.ndarray:
    """Element displacement vector gathered from its grips."""
    return np.concatenate([g.displacement for g in grips])


class FEMInput:
    """
    The finite element model: grips (owned) and elements.

    The DOF count, force vector and constraint index are derived once here;
    grips and elements don't change during an analysis.

    Parameters:
    -----------
    grips : iterable of Grip
        Numbered 1..N (any order; stored sorted by number)
    elements : iterable of FiniteElement
        Elements referencing grips of this model

    Raises:
    -------
    ModelError
        If grip numbers aren't exactly 1..N, or an element references a grip
        object that isn't in this model
    """

    def __init__(self, grips: Iterable[Grip], elements: Iterable[FiniteElement]):
        self.grips: List[Grip] = sorted(grips, key=lambda g: g.number)
        self.elements: List[FiniteElement] = list(elements)

        numbers = [g.number for g in self.grips]
        if numbers != list(range(1, len(numbers) + 1)):
            raise ModelError(
                f"Grip numbers must be 1..{len(numbers)} without gaps or duplicates, got {numbers}"
            )

        owned = {id(g) for g in self.grips}
        for element in self.elements:
            for grip in element.grips:
                if id(grip) not in owned:
                    raise ModelError(
                        f"Element {element.number} references grip {grip.number}, "
                        f"which is not in the model's grip collection"
                    )

        self.number_of_dofs: int = PLANE_DOF.ndof(len(self.grips))
        self.force_vector: np.ndarray = force_vector(self.grips)
        self.constraint_index: List[int] = constraint_index(self.grips)

    def grip_by_number(self, number: int) -> Grip:
        return self.grips[number - 1]

    def element_by_number(self, number: int) -> FiniteElement:
        for element in self.elements:
            if element.number == number:
                return element
        raise ModelError(f"No element {number} in the model")

    # Element hooks

    def update_stiffness(self) -> None:
        for element in self.elements:
            element.update_stiffness()

    def update_displacements(self) -> None:
        for element in self.elements:
            element.update_displacements()

    def calculate_forces(self) -> None:
        for element in self.elements:
            element.calculate_forces()

    # Grip state

    def set_displacements(self, displacements: np.ndarray) -> None:
        """Write the global displacement vector into the grips and elements."""
        for grip in self.grips:
            grip.set_displacements(displacements)
        self.update_displacements()

    def set_reactions(self, reactions: np.ndarray) -> None:
        for grip in self.grips:
            grip.set_reactions(reactions)

    # Assembly

    def assemble_stiffness(self) -> np.ndarray:
        return assemble_stiffness(self.elements, self.number_of_dofs)

    def assemble_internal_forces(self, simplify: bool = True) -> np.ndarray:
        return assemble_internal_forces(
            self.elements, self.number_of_dofs, self.constraint_index, simplify
        )

    def __repr__(self) -> str:
        return f"FEMInput({len(self.grips)} grips, {len(self.elements)} elements)"
