# Plane elements implementing the FiniteElement contract

import numpy as np
from dataclasses import dataclass, field
from typing import Callable, Sequence, Tuple

from .model import Grip, displacements_from_grips, element_dof_index


def element_geometry(grips: Sequence[Grip], number: int = 0) -> Tuple[float, float, float]:
    """Length and direction cosines (L, c, s) of a 2-grip element."""
    gi, gj = grips
    dx = gj.x - gi.x
    dy = gj.y - gi.y
    L = float(np.hypot(dx, dy))
    if L <= 0.0:
        raise ValueError(f"Element {number} has zero length.")
    c = dx / L
    s = dy / L
    return L, c, s


def bar_direction(c: float, s: float) -> np.ndarray:
    """
    Axial direction vector of a bar in global DOFs.

    Elongation = b · [uix, uiy, ujx, ujy]
    """
    return np.array([-c, -s, c, s], dtype=float)


def truss2d_global_stiffness(EA: float, L: float, c: float, s: float) -> np.ndarray:
    """
    4x4 bar stiffness in global coords.
    DOF order: [uix, uiy, ujx, ujy]
    """
    b = bar_direction(c, s)
    return EA / L * np.outer(b, b)


@dataclass(eq=False)
class LinearElement:
    """
    Element with a constant, user-given stiffness matrix in global
    orientation. Internal forces are K · u.
    """
    number: int
    grips: Tuple[Grip, ...]
    matrix: np.ndarray
    stiffness: np.ndarray = field(init=False)
    forces: np.ndarray = field(init=False)
    displacements: np.ndarray = field(init=False)

    def __post_init__(self):
        self.grips = tuple(self.grips)
        self.matrix = np.asarray(self.matrix, dtype=float)
        n = 2 * len(self.grips)
        if self.matrix.shape != (n, n):
            raise ValueError(
                f"Element {self.number}: stiffness shape {self.matrix.shape} doesn't match {len(self.grips)} grips"
            )
        self.stiffness = self.matrix.copy()
        self.forces = np.zeros(n)
        self.displacements = np.zeros(n)

    @property
    def dof_index(self):
        return element_dof_index(self.grips)

    def update_stiffness(self) -> None:
        self.stiffness = self.matrix.copy()

    def update_displacements(self) -> None:
        self.displacements = displacements_from_grips(self.grips)

    def calculate_forces(self) -> None:
        self.forces = self.stiffness @ self.displacements


@dataclass(eq=False)
class Truss2D:
    """
    Linear elastic plane bar: 2 grips, 2 DOF per grip (ux, uy).

    E in MPa (N/mm²), A in mm².
    """
    number: int
    grips: Tuple[Grip, Grip]
    E: float
    A: float
    stiffness: np.ndarray = field(init=False)
    forces: np.ndarray = field(init=False)
    displacements: np.ndarray = field(init=False)

    def __post_init__(self):
        self.grips = tuple(self.grips)
        self.length, self._c, self._s = element_geometry(self.grips, self.number)
        self.stiffness = truss2d_global_stiffness(self.E * self.A, self.length, self._c, self._s)
        self.forces = np.zeros(4)
        self.displacements = np.zeros(4)

    @property
    def dof_index(self):
        return element_dof_index(self.grips)

    @property
    def strain(self) -> float:
        b = bar_direction(self._c, self._s)
        return float(b @ self.displacements) / self.length

    @property
    def axial_force(self) -> float:
        """Axial force (N), positive in tension."""
        return self.E * self.A * self.strain

    def update_stiffness(self) -> None:
        # constant for a linear bar
        pass

    def update_displacements(self) -> None:
        self.displacements = displacements_from_grips(self.grips)

    def calculate_forces(self) -> None:
        self.forces = self.stiffness @ self.displacements


@dataclass(eq=False)
class NonlinearTruss2D:
    """
    Plane bar with a nonlinear uniaxial stress-strain law (small strains).

    Parameters:
    -----------
    number : int
        Element identifier
    grips : (Grip, Grip)
        End grips
    A : float
        Cross-section area (mm²)
    stress : Callable[[float], float]
        Stress (MPa) as a function of axial strain
    modulus : Callable[[float], float]
        Tangent modulus dσ/dε (MPa) as a function of axial strain

    Examples:
    ---------
    >>> E, beta = 200000.0, 1e9
    >>> bar = NonlinearTruss2D(
    ...     1, (g1, g2), A=100.0,
    ...     stress=lambda e: E * e + beta * e**3,
    ...     modulus=lambda e: E + 3 * beta * e**2,
    ... )
    """
    number: int
    grips: Tuple[Grip, Grip]
    A: float
    stress: Callable[[float], float]
    modulus: Callable[[float], float]
    stiffness: np.ndarray = field(init=False)
    forces: np.ndarray = field(init=False)
    displacements: np.ndarray = field(init=False)

    def __post_init__(self):
        self.grips = tuple(self.grips)
        self.length, self._c, self._s = element_geometry(self.grips, self.number)
        self._b = bar_direction(self._c, self._s)
        self.forces = np.zeros(4)
        self.displacements = np.zeros(4)
        self.update_stiffness()

    @property
    def dof_index(self):
        return element_dof_index(self.grips)

    @property
    def strain(self) -> float:
        return float(self._b @ self.displacements) / self.length

    @property
    def axial_force(self) -> float:
        """Axial force (N), positive in tension."""
        return self.A * self.stress(self.strain)

    def update_stiffness(self) -> None:
        Et = self.modulus(self.strain)
        self.stiffness = truss2d_global_stiffness(Et * self.A, self.length, self._c, self._s)

    def update_displacements(self) -> None:
        self.displacements = displacements_from_grips(self.grips)

    def calculate_forces(self) -> None:
        self.forces = self.axial_force * self._b
