# File: tests/test_output.py
"""
Tests for FEMOutput tables, CSV export, unit conversion and the
load-displacement plot.
"""

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from mini_fem import (
    Grip,
    Constraint,
    FEMInput,
    Truss2D,
    NonlinearAnalysis,
    AnalysisParameters,
    FEMOutput,
    GripMonitor,
    LoadStepResult,
    MonitoredDisplacement,
    run_analysis,
)
from mini_fem.units import length_factor
from mini_fem.viz import plot_load_displacement


def _linear_bar_analysis(steps=4):
    g1 = Grip(1, 0.0, 0.0, Constraint.full())
    g2 = Grip(2, 1000.0, 0.0, Constraint.y_only(), force=(10000.0, 0.0))
    model = FEMInput([g1, g2], [Truss2D(1, (g1, g2), E=200000.0, A=100.0)])
    analysis = NonlinearAnalysis(model, AnalysisParameters(number_of_steps=steps), monitored_index=2)
    analysis.execute()
    return analysis


def test_output_table():
    """
    Linear bar in 4 steps: δ = P·L/(E·A) = 0.5 mm at full load.
    """
    output = _linear_bar_analysis().generate_output()
    df = output.to_dataframe()

    assert list(df.columns) == ['Load Factor', 'Displacement (mm)']
    np.testing.assert_allclose(df['Load Factor'], [0.25, 0.5, 0.75, 1.0])
    np.testing.assert_allclose(df['Displacement (mm)'], [0.125, 0.25, 0.375, 0.5], rtol=1e-9)


def test_output_unit_conversion():
    output = _linear_bar_analysis().generate_output()

    df = output.to_dataframe(unit='m')

    assert 'Displacement (m)' in df.columns
    assert df['Displacement (m)'].iloc[-1] == pytest.approx(0.0005)


def test_export_csv(tmp_path):
    output = _linear_bar_analysis().generate_output()

    path = output.export(tmp_path / "results")

    assert path == tmp_path / "results" / "FEM_Output.csv"
    df = pd.read_csv(path, sep=';')
    assert list(df.columns) == ['Load Factor', 'Displacement (mm)']
    assert len(df) == 4

    text = path.read_text()
    assert text.splitlines()[0] == "Load Factor;Displacement (mm)"


def test_export_custom_name_and_delimiter(tmp_path):
    output = _linear_bar_analysis(steps=2).generate_output()

    path = output.export(tmp_path, file_name="bar", unit="cm", delimiter=",")

    assert path.name == "bar.csv"
    df = pd.read_csv(path)
    assert df['Displacement (cm)'].iloc[-1] == pytest.approx(0.05)


def test_unknown_unit():
    output = _linear_bar_analysis(steps=1).generate_output()

    with pytest.raises(ValueError, match="Unknown length unit"):
        output.export("unused", unit="furlong")

    with pytest.raises(ValueError):
        length_factor("yd")


def test_diverged_steps_are_skipped():
    ok = LoadStepResult(1, 0.5, np.zeros(2), np.zeros(2), np.zeros((2, 2)), True,
                        monitored_displacement=MonitoredDisplacement(0.5, 1.0))
    failed = LoadStepResult(2, 1.0, np.zeros(2), np.zeros(2), np.zeros((2, 2)), False,
                            monitored_displacement=MonitoredDisplacement(1.0, 9.0))

    output = FEMOutput([ok, failed])

    assert len(output) == 1
    assert output.load_factors == [0.5]


def test_linear_analysis_output():
    g1 = Grip(1, 0.0, 0.0, Constraint.full())
    g2 = Grip(2, 1000.0, 0.0, Constraint.y_only(), force=(10000.0, 0.0))
    model = FEMInput([g1, g2], [Truss2D(1, (g1, g2), E=200000.0, A=100.0)])

    output = run_analysis(model, "linear", monitored_index=2).generate_output()

    assert output.load_factors == [1.0]
    assert output.displacements() == pytest.approx([0.5])


def test_grip_monitor_export(tmp_path):
    monitor = GripMonitor(2, unit='mm')
    g1 = Grip(1, 0.0, 0.0, Constraint.full())
    g2 = Grip(2, 1000.0, 0.0, Constraint.y_only(), force=(10000.0, 0.0))
    model = FEMInput([g1, g2], [Truss2D(1, (g1, g2), E=200000.0, A=100.0)])

    NonlinearAnalysis(model, AnalysisParameters(number_of_steps=2), monitors=[monitor]).execute()
    path = monitor.export(tmp_path)

    assert path.name == "Grip2_Monitor.csv"
    df = pd.read_csv(path, sep=';')
    assert list(df.columns) == ['Load Factor', 'Ux (mm)', 'Uy (mm)']
    np.testing.assert_allclose(df['Ux (mm)'], [0.25, 0.5], rtol=1e-9)


def test_plot_load_displacement(tmp_path):
    output = _linear_bar_analysis().generate_output()
    outpath = tmp_path / "curve.png"

    plot_load_displacement(output, outpath=str(outpath))

    assert outpath.exists()
    assert outpath.stat().st_size > 0
