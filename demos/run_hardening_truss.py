import logging

import numpy as np

from mini_fem import (
    Grip,
    Constraint,
    FEMInput,
    Truss2D,
    NonlinearTruss2D,
    NonlinearAnalysis,
    LinearAnalysis,
    AnalysisParameters,
    NonlinearSolver,
)


def build_truss(nonlinear=True):
    """
    Symmetric triangle truss, 4 m span, 1.5 m rise, 50 kN at the apex.
    The rafters harden (σ = Eε + βε³); the tie is linear.
    """
    E, A = 200000.0, 500.0
    beta = 5e10

    g1 = Grip(1, 0.0, 0.0, Constraint.full())
    g2 = Grip(2, 4000.0, 0.0, Constraint.y_only())
    g3 = Grip(3, 2000.0, 1500.0, force=(0.0, -50000.0))

    def rafter(number, gi, gj):
        if not nonlinear:
            return Truss2D(number, (gi, gj), E=E, A=A)
        return NonlinearTruss2D(
            number, (gi, gj), A=A,
            stress=lambda e: E * e + beta * e ** 3,
            modulus=lambda e: E + 3 * beta * e ** 2,
        )

    elements = [
        Truss2D(1, (g1, g2), E=E, A=A),
        rafter(2, g1, g3),
        rafter(3, g2, g3),
    ]
    return FEMInput([g1, g2, g3], elements)


def main():
    """
    SOLVER COMPARISON ON A HARDENING TRUSS
    ======================================
    Same model, same load, three stiffness strategies. All reach the same
    equilibrium; they differ in how many iterations it takes.
    """
    logging.basicConfig(level=logging.WARNING)

    linear = build_truss(nonlinear=False)
    LinearAnalysis(linear).execute()
    print("Triangle Truss - Apex Load")
    print("=" * 50)
    print(f"Linear apex deflection:   {linear.grip_by_number(3).displacement[1]:.5f} mm")

    for solver in NonlinearSolver:
        model = build_truss()
        params = AnalysisParameters(solver=solver, number_of_steps=10)
        analysis = NonlinearAnalysis(model, params, monitored_index=5)
        analysis.execute()

        iterations = sum(s.iterations for s in analysis.steps)
        uy = model.grip_by_number(3).displacement[1]
        Ry = model.grip_by_number(1).reaction[1] + model.grip_by_number(2).reaction[1]
        print(f"{solver.name:<22} apex uy = {uy:.5f} mm, "
              f"ΣRy = {Ry:.1f} N, iterations = {iterations}")

    print()
    print("Expected: ΣRy = 50000 N for every solver (equilibrium)")


if __name__ == "__main__":
    main()
