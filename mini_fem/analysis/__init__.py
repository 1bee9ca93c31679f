# mini_fem/analysis - Linear and incremental-iterative nonlinear analysis
"""
ANALYSIS
========

    parameters  AnalysisParameters, solver/control enums
    iteration   IterationResult: state and convergence of one iteration
    stiffness   stiffness update strategies (NR, modified NR, secant)
    load_step   LoadStep controller and archived LoadStepResult
    monitors    MonitoredDisplacement, GripMonitor, ElementMonitor, TrussMonitor
    driver      LinearAnalysis, NonlinearAnalysis, run_analysis
"""

from .parameters import (
    AnalysisType,
    NonlinearSolver,
    AnalysisControl,
    AnalysisParameters,
    DEFAULT_PARAMETERS,
)
from .iteration import IterationResult, calculate_convergence
from .stiffness import stiffness_update
from .load_step import LoadStep, LoadStepResult
from .monitors import MonitoredDisplacement, GripMonitor, ElementMonitor, TrussMonitor
from .driver import LinearAnalysis, NonlinearAnalysis, run_analysis

__all__ = [
    'AnalysisType', 'NonlinearSolver', 'AnalysisControl', 'AnalysisParameters',
    'DEFAULT_PARAMETERS', 'IterationResult', 'calculate_convergence',
    'stiffness_update', 'LoadStep', 'LoadStepResult', 'MonitoredDisplacement',
    'GripMonitor', 'ElementMonitor', 'TrussMonitor', 'LinearAnalysis', 'NonlinearAnalysis', 'run_analysis',
]
