# mini_fem/kernel - Grip indexing, assembly and linear solves
"""
KERNEL: THE NUMERICAL FOUNDATION
================================

This package contains the plumbing every analysis goes through, linear or
nonlinear:
- A way to map (grip_number, local_dof) -> global_dof_index
- Scatter-add assembly of element stiffness and force contributions
- Constraint simplification (pin supported DOFs, keep matrix size)
- Linear solves on the simplified system

The ELEMENT implementations (Truss2D, NonlinearTruss2D, ...) live outside
the kernel; the kernel only needs their DOF maps, stiffness and forces.
"""

from .dof import DOFManager, PLANE_DOF, force_vector, constraint_index
from .assemble import (
    assemble_global_K,
    assemble_global_F,
    assemble_stiffness,
    assemble_internal_forces,
    simplified_stiffness,
    simplified_forces,
)
from .solve import (
    solve_linear,
    reactions,
    factorize,
    solve_increment,
    MechanismError,
    ConvergenceError,
)

__all__ = [
    'DOFManager', 'PLANE_DOF', 'force_vector', 'constraint_index',
    'assemble_global_K', 'assemble_global_F', 'assemble_stiffness',
    'assemble_internal_forces', 'simplified_stiffness', 'simplified_forces',
    'solve_linear', 'reactions', 'factorize', 'solve_increment',
    'MechanismError', 'ConvergenceError',
]
