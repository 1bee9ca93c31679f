import logging
import os

import numpy as np

from mini_fem import (
    Grip,
    Constraint,
    FEMInput,
    NonlinearTruss2D,
    NonlinearAnalysis,
    AnalysisParameters,
    AnalysisControl,
    GripMonitor,
)
from mini_fem.viz import plot_load_displacement


def main():
    """
    SOFTENING BAR UNDER DISPLACEMENT CONTROL
    ========================================
    A bar whose material loses strength after ε0 = 0.002. Force control
    would stop at the peak load; displacement control pulls the tip to
    4.5 mm and traces the whole curve, peak and descending branch.
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # ========================================================================
    # MODEL
    # ========================================================================
    L = 1000.0       # mm
    A = 100.0        # mm²
    E = 200000.0     # MPa (steel-like initial modulus)
    eps0 = 0.002
    P = 10000.0      # N, reference load

    g1 = Grip(1, 0.0, 0.0, Constraint.full())
    g2 = Grip(2, L, 0.0, Constraint.y_only(), force=(P, 0.0))
    bar = NonlinearTruss2D(
        1, (g1, g2), A=A,
        stress=lambda e: E * e * np.exp(-e / eps0),
        modulus=lambda e: E * np.exp(-e / eps0) * (1.0 - e / eps0),
    )
    model = FEMInput([g1, g2], [bar])

    # ========================================================================
    # ANALYSIS
    # ========================================================================
    params = AnalysisParameters(control=AnalysisControl.Displacement, number_of_steps=20)
    monitor = GripMonitor(2)
    analysis = NonlinearAnalysis(
        model, params,
        monitored_index=g2.dof_index[0],
        target_displacement=4.5,
        monitors=[monitor],
    )
    analysis.execute(show_progress=True)

    # ========================================================================
    # RESULTS
    # ========================================================================
    output = analysis.generate_output()
    df = output.to_dataframe()

    print()
    print("Softening Bar - Displacement Control")
    print("=" * 50)
    print(df.to_string(index=False))
    print()
    print(f"Peak load factor:     {df['Load Factor'].max():.4f}")
    print(f"Expected (4/e):       {4.0 / np.e:.4f}")
    print(f"Final support force:  {g1.reaction[0]:.1f} N")

    os.makedirs("artifacts", exist_ok=True)
    output.export("artifacts", file_name="softening_bar")
    monitor.export("artifacts")
    plot_load_displacement(output, outpath="artifacts/softening_bar.png",
                           title="Softening Bar - Displacement Control")
    print("Saved artifacts/softening_bar.csv, artifacts/Grip2_Monitor.csv, artifacts/softening_bar.png")


if __name__ == "__main__":
    main()
