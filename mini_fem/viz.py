"""
VISUALIZATION: LOAD-DISPLACEMENT CURVES
=======================================

PURPOSE:
--------
Plot the load factor against the monitored displacement of an analysis.
The curve is the quickest check of a nonlinear run:

- hardening material: curve bends upward
- softening material: curve reaches a peak; only displacement control
  follows the descending branch past it
- a curve ending early means a step diverged (see stop_message)
"""

import os
from typing import Optional

import matplotlib.pyplot as plt

from .output import FEMOutput


def plot_load_displacement(
    output: FEMOutput,
    outpath: Optional[str] = None,
    unit: str = 'mm',
    title: str = "Load-Displacement Curve",
    ax=None
):
    """
    Plot load factor vs monitored displacement.

    Parameters:
    -----------
    output : FEMOutput
        Result of analysis.generate_output()
    outpath : str, optional
        If given, the figure is saved there (PNG) and closed
    unit : str
        Length unit of the displacement axis
    title : str
        Plot title
    ax : matplotlib Axes, optional
        Axes to draw on (a new figure is created otherwise)

    Returns:
    --------
    matplotlib Axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 6))
    else:
        fig = ax.figure

    ax.plot(
        output.displacements(unit), output.load_factors,
        'o-', color='#2C3E50', markersize=4, linewidth=1.5,
    )
    ax.set_xlabel(f'Displacement ({unit})', fontsize=12, fontweight='bold')
    ax.set_ylabel('Load Factor', fontsize=12, fontweight='bold')
    ax.set_title(title, fontsize=14, fontweight='bold', pad=20)
    ax.grid(True, alpha=0.3, linestyle='--')

    if outpath:
        os.makedirs(os.path.dirname(outpath) if os.path.dirname(outpath) else '.', exist_ok=True)
        fig.tight_layout()
        fig.savefig(outpath, dpi=150, bbox_inches='tight')
        plt.close(fig)

    return ax
