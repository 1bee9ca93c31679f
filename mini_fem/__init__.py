# mini_fem - Nonlinear static finite element analysis of plane structures
"""
MINI_FEM: NONLINEAR STATIC FEM ENGINE
=====================================

ARCHITECTURE:
-------------
    model       Grip, Constraint, FiniteElement contract, FEMInput
    elements    LinearElement, Truss2D, NonlinearTruss2D
    kernel/     DOF indexing, assembly, constraint simplification, solves
    analysis/   parameters, iterations, load steps, drivers, monitors
    output      FEMOutput: load-displacement table and CSV export
    viz         load-displacement plot

UNITS:
------
Internally mm and N. Output can be converted to cm, m, in or ft.

USAGE:
------
    from mini_fem import Grip, Constraint, Truss2D, FEMInput, run_analysis

    g1 = Grip(1, 0.0, 0.0, Constraint.full())
    g2 = Grip(2, 1000.0, 0.0, Constraint.y_only(), force=(10000.0, 0.0))
    model = FEMInput([g1, g2], [Truss2D(1, (g1, g2), E=200000.0, A=100.0)])

    analysis = run_analysis(model, "linear")
    print(g2.displacement, g1.reaction)
"""

from .model import ModelError, Constraint, Grip, FiniteElement, FEMInput
from .elements import LinearElement, Truss2D, NonlinearTruss2D
from .kernel import MechanismError, ConvergenceError
from .analysis import (
    AnalysisType,
    NonlinearSolver,
    AnalysisControl,
    AnalysisParameters,
    LoadStepResult,
    MonitoredDisplacement,
    GripMonitor,
    ElementMonitor,
    TrussMonitor,
    LinearAnalysis,
    NonlinearAnalysis,
    run_analysis,
)
from .output import FEMOutput

__version__ = "0.1.0"

__all__ = [
    'ModelError', 'Constraint', 'Grip', 'FiniteElement', 'FEMInput',
    'LinearElement', 'Truss2D', 'NonlinearTruss2D',
    'MechanismError', 'ConvergenceError',
    'AnalysisType', 'NonlinearSolver', 'AnalysisControl', 'AnalysisParameters',
    'LoadStepResult', 'MonitoredDisplacement', 'GripMonitor', 'ElementMonitor', 'TrussMonitor',
    'LinearAnalysis', 'NonlinearAnalysis', 'run_analysis', 'FEMOutput',
]
