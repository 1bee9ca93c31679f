# File: tests/test_parameters.py
"""
Tests for AnalysisParameters defaults, validation and from_dict.
"""

import pytest

from mini_fem.analysis.parameters import (
    AnalysisParameters,
    AnalysisControl,
    NonlinearSolver,
    DEFAULT_PARAMETERS,
)


def test_defaults():
    p = DEFAULT_PARAMETERS

    assert p.solver is NonlinearSolver.NewtonRaphson
    assert p.control is AnalysisControl.Force
    assert p.number_of_steps == 50
    assert p.max_iterations == 1000
    assert p.min_iterations == 2
    assert p.force_tolerance == 1e-3
    assert p.displacement_tolerance == 1e-8
    assert p.step_increment == pytest.approx(0.02)


def test_parameters_are_frozen():
    with pytest.raises(Exception):  # dataclasses.FrozenInstanceError
        DEFAULT_PARAMETERS.max_iterations = 5


@pytest.mark.parametrize("kwargs, message", [
    ({'force_tolerance': 0.0}, "force_tolerance"),
    ({'displacement_tolerance': -1.0}, "displacement_tolerance"),
    ({'min_iterations': 5, 'max_iterations': 3}, "min_iterations"),
    ({'number_of_steps': 0}, "number_of_steps"),
    ({'max_iterations': 0, 'min_iterations': 0}, "max_iterations"),
])
def test_invalid_parameters(kwargs, message):
    with pytest.raises(ValueError, match=message):
        AnalysisParameters(**kwargs)


def test_enum_values_as_strings():
    p = AnalysisParameters(solver="secant", control="displacement")

    assert p.solver is NonlinearSolver.Secant
    assert p.control is AnalysisControl.Displacement

    assert AnalysisParameters.from_dict({"control": "ArcLength"}).control is AnalysisControl.ArcLength
    assert AnalysisParameters(control="arc_length").control is AnalysisControl.ArcLength


def test_from_dict_camel_case():
    p = AnalysisParameters.from_dict({
        'solver': 'ModifiedNewtonRaphson',
        'numberOfSteps': 10,
        'maxIterations': 200,
        'forceTolerance': 1e-5,
    })

    assert p.solver is NonlinearSolver.ModifiedNewtonRaphson
    assert p.number_of_steps == 10
    assert p.max_iterations == 200
    assert p.force_tolerance == 1e-5
    assert p.min_iterations == 2


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ValueError, match="Unknown analysis option"):
        AnalysisParameters.from_dict({'tolerance': 1e-3})


def test_from_dict_rejects_unknown_solver():
    with pytest.raises(ValueError, match="Invalid NonlinearSolver"):
        AnalysisParameters.from_dict({'solver': 'bfgs'})


def test_with_changes_validates():
    p = DEFAULT_PARAMETERS.with_changes(number_of_steps=4)
    assert p.number_of_steps == 4
    assert p.step_increment == 0.25

    with pytest.raises(ValueError):
        DEFAULT_PARAMETERS.with_changes(min_iterations=2000)
