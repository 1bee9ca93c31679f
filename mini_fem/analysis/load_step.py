# mini_fem/analysis/load_step.py
"""
LOAD STEP: One Load Increment Driven to Convergence
===================================================

PURPOSE:
--------
A LoadStep takes the structure from the converged state of the previous
step to equilibrium under the next load level, iterating:

    for k = 1, 2, ...
        K_k   = stiffness strategy (NR / modified NR / secant)
        Δu_k  = K_k⁻¹ · r_(k-1)             (simplified system)
        u_k   = u_(k-1) + Δu_k
        push u_k to grips/elements, recompute element forces
        r_k   = applied - internal(u_k)
        stop if converged, diverged (NaN/inf, failed solve) or out of
        iterations

CONTROL:
--------
- Force control: the applied load λ·F of the step is fixed. Can't pass a
  limit point: past the peak there is no equilibrium at a higher load.

- Displacement control: one monitored DOF c is driven by a prescribed
  increment per step and the load factor is solved for. Each iteration
  solves two systems with the same stiffness,

      δu_f = K⁻¹ · F        (reference load)
      δu_r = K⁻¹ · r        (residual)

  and picks δλ so that the monitored DOF moves exactly as prescribed
  (the step increment at iteration 1, zero afterwards):

      δλ = (δc - δu_r[c]) / δu_f[c]
      Δu = δu_r + δλ · δu_f

  This follows descending branches of the load-displacement curve.

- Arc-length control: the load factor is solved for as above, but the
  constraint is on the whole displacement increment of the step instead
  of one DOF:

      |ΔU + δu_r + δλ·δu_f| = Δs

  Δs is the norm of the first increment of step 1 (load increment
  step_increment · load_factor) and stays fixed for the analysis. At
  iteration 1 of later steps δλ = ±Δs / |δu_f|, with the sign of the
  stiffness parameter F·δu_f (negative past a limit point). Later
  iterations take the root of the quadratic that keeps the step moving
  forward.

HISTORY:
--------
Results are archived as LoadStepResult copies, never as references to the
live arrays. Only the seed and the three most recent iterations of a step
are kept in memory.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

import numpy as np

from ..kernel.assemble import simplified_forces, simplified_stiffness
from ..kernel.solve import factorize, solve_increment
from .iteration import IterationResult
from .monitors import MonitoredDisplacement
from .parameters import AnalysisControl, AnalysisParameters
from .stiffness import stiffness_update

logger = logging.getLogger(__name__)

_KEPT_ITERATIONS = 3


@dataclass
class LoadStepResult:
    """
    Archived result of one load step.

    Attributes:
    -----------
    number : int
        Step number (from 1)
    load_factor : float
        Load factor reached at the end of the step
    forces : np.ndarray
        Applied force vector (unsimplified), N
    displacements : np.ndarray
        Final displacement vector, mm
    stiffness : np.ndarray
        Final stiffness matrix (unsimplified), N/mm
    converged : bool
        False if the step diverged
    iterations : int
        Iterations performed
    monitored_displacement : MonitoredDisplacement or None
        Sample at the monitored DOF, for converged steps
    """
    number: int
    load_factor: float
    forces: np.ndarray
    displacements: np.ndarray
    stiffness: np.ndarray
    converged: bool
    iterations: int = 0
    force_convergence: float = float('nan')
    displacement_convergence: float = float('nan')
    monitored_displacement: Optional[MonitoredDisplacement] = None
    message: str = field(default='', repr=False)

    @property
    def is_calculated(self) -> bool:
        return self.converged

    def clone(self) -> "LoadStepResult":
        return LoadStepResult(
            number=self.number,
            load_factor=self.load_factor,
            forces=self.forces.copy(),
            displacements=self.displacements.copy(),
            stiffness=self.stiffness.copy(),
            converged=self.converged,
            iterations=self.iterations,
            force_convergence=self.force_convergence,
            displacement_convergence=self.displacement_convergence,
            monitored_displacement=self.monitored_displacement,
            message=self.message,
        )


def update_reactions(fem_input, applied_forces: np.ndarray) -> np.ndarray:
    """
    Write support reactions into the grips.

    Reactions are the unsimplified internal forces minus the applied forces,
    taken at the constrained DOFs.
    """
    R = fem_input.assemble_internal_forces(simplify=False) - applied_forces
    fem_input.set_reactions(R)
    return R


class LoadStep:
    """
    Controller of one load increment.

    Parameters:
    -----------
    number : int
        Step number (from 1)
    fem_input : FEMInput
        The model; its grips and elements are updated in place
    parameters : AnalysisParameters
        Tolerances, iteration limits, solver and control
    reference_forces : np.ndarray
        Full (unsimplified) force vector for load factor 1
    load_factor : float
        Force control: load factor of this step.
        Displacement and arc-length control: load factor at the start of
        the step.
    initial_displacements : np.ndarray, optional
        Converged displacements of the previous step (zero if omitted)
    initial_stiffness : np.ndarray, optional
        Final stiffness of the previous step (zero if omitted)
    control_index : int, optional
        Monitored DOF (displacement control only)
    control_increment : float
        Displacement control: prescribed increment of the monitored DOF in
        this step (mm). Arc-length control: load factor increment of the
        first step, which sets the arc length.
    arc_length : float, optional
        Arc-length control: radius Δs of the step (computed by the first
        step when omitted)
    """

    def __init__(
        self,
        number: int,
        fem_input,
        parameters: AnalysisParameters,
        reference_forces: np.ndarray,
        load_factor: float,
        initial_displacements: Optional[np.ndarray] = None,
        initial_stiffness: Optional[np.ndarray] = None,
        control_index: Optional[int] = None,
        control_increment: float = 0.0,
        arc_length: Optional[float] = None
    ):
        ndof = fem_input.number_of_dofs

        self.number = number
        self.fem_input = fem_input
        self.parameters = parameters
        self.load_factor = float(load_factor)
        self.full_reference_forces = np.asarray(reference_forces, dtype=float)
        self.reference_forces = simplified_forces(self.full_reference_forces, fem_input.constraint_index)
        self.initial_displacements = (
            np.zeros(ndof) if initial_displacements is None else np.array(initial_displacements, dtype=float)
        )
        self.initial_stiffness = (
            np.zeros((ndof, ndof)) if initial_stiffness is None else np.array(initial_stiffness, dtype=float)
        )
        self.control_index = control_index
        self.control_increment = float(control_increment)
        self.arc_length = arc_length

        if parameters.control is AnalysisControl.Displacement and control_index is None:
            raise ValueError("Displacement control needs a control DOF index")

        self.iterations: List[IterationResult] = []
        self.converged = False
        self.stop = False
        self.stop_message = ''

        # set by the modified Newton-Raphson strategy
        self.tangent_stiffness: Optional[np.ndarray] = None

        self._stiffness_update = stiffness_update(parameters.solver)
        self._first_increment: Optional[np.ndarray] = None
        self._factored: Optional[np.ndarray] = None
        self._lu = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def forces(self) -> np.ndarray:
        """Simplified applied forces at the current load factor."""
        return self.load_factor * self.reference_forces

    @property
    def full_forces(self) -> np.ndarray:
        """Unsimplified applied forces at the current load factor."""
        return self.load_factor * self.full_reference_forces

    @property
    def ongoing_iteration(self) -> IterationResult:
        return self.iterations[-1]

    @property
    def first_increment(self) -> np.ndarray:
        """Displacement increment of iteration 1, the reference scale of the step."""
        if self._first_increment is None:
            return np.zeros(self.fem_input.number_of_dofs)
        return self._first_increment

    @property
    def final_displacements(self) -> np.ndarray:
        return self.ongoing_iteration.displacements

    @property
    def stiffness(self) -> np.ndarray:
        return self.ongoing_iteration.stiffness

    @property
    def force_convergence(self) -> float:
        return self.ongoing_iteration.force_convergence

    @property
    def displacement_convergence(self) -> float:
        return self.ongoing_iteration.displacement_convergence

    @property
    def is_displacement_controlled(self) -> bool:
        return self.parameters.control is AnalysisControl.Displacement

    @property
    def is_arc_length_controlled(self) -> bool:
        return self.parameters.control is AnalysisControl.ArcLength

    def __iter__(self) -> Iterator[IterationResult]:
        return iter(self.iterations)

    def __len__(self) -> int:
        return len(self.iterations)

    def __repr__(self) -> str:
        return f"Load step {self.number}"

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    def iterate(self) -> bool:
        """
        Iterate until convergence or divergence.

        Returns:
        --------
        bool
            True if the step converged. On divergence `stop` is set and
            `stop_message` explains why.
        """
        self._seed()
        fem = self.fem_input

        while True:
            previous = self.ongoing_iteration
            iteration = previous.clone(number=previous.number + 1)
            self.iterations.append(iteration)

            try:
                iteration.stiffness = self._stiffness_update(self, fem)
                increment = self._solve_increment(iteration, previous.residual_forces)
            except (np.linalg.LinAlgError, ValueError) as exc:
                self.stop = True
                self.stop_message = f"Convergence not reached at load step {self.number}: {exc}"
                logger.warning(self.stop_message)
                break

            iteration.increment_displacements(increment)
            if iteration.number == 1:
                self._first_increment = iteration.displacement_increment.copy()
                if self.is_arc_length_controlled and self.arc_length is None:
                    self.arc_length = float(np.linalg.norm(self._first_increment))

            fem.set_displacements(iteration.displacements)
            fem.calculate_forces()

            forces = self.forces
            iteration.update_forces(forces, fem.assemble_internal_forces())
            iteration.calculate_convergence(forces, self.first_increment)

            logger.debug(
                "Step %d, iteration %d: force conv. %.3e, displacement conv. %.3e",
                self.number, iteration.number,
                iteration.force_convergence, iteration.displacement_convergence,
            )

            self._trim_history()

            if self._iterative_stop():
                break

        return self.converged

    def _seed(self) -> None:
        """Iteration 0: the previous converged state under this step's load."""
        fem = self.fem_input
        fem.set_displacements(self.initial_displacements)
        fem.calculate_forces()

        seed = IterationResult(
            self.initial_displacements.copy(),
            np.zeros(fem.number_of_dofs),
            self.initial_stiffness.copy(),
        )
        seed.update_forces(self.forces, fem.assemble_internal_forces())

        self.iterations = [seed]
        self.converged = False
        self.stop = False
        self.stop_message = ''
        self.tangent_stiffness = None
        self._first_increment = None
        self._factored = None
        self._lu = None

    def _solve_increment(self, iteration: IterationResult, residual: np.ndarray) -> np.ndarray:
        # Same stiffness object as last time: keep the factorization
        if iteration.stiffness is not self._factored:
            Ks = simplified_stiffness(iteration.stiffness, self.fem_input.constraint_index)
            self._lu = factorize(Ks)
            self._factored = iteration.stiffness

        if self.parameters.control is AnalysisControl.Force:
            return solve_increment(self._lu, residual)

        du_f = solve_increment(self._lu, self.reference_forces)
        du_r = solve_increment(self._lu, residual)

        if self.is_displacement_controlled:
            d_lambda = self._displacement_control_increment(iteration, du_f, du_r)
        else:
            d_lambda = self._arc_length_increment(iteration, du_f, du_r)

        iteration.load_factor_increment = d_lambda
        self.load_factor += d_lambda

        return du_r + d_lambda * du_f

    def _displacement_control_increment(self, iteration, du_f, du_r) -> float:
        c = self.control_index
        if du_f[c] == 0.0:
            raise ValueError(f"reference load doesn't move the controlled DOF {c}")

        target = self.control_increment if iteration.number == 1 else 0.0
        return (target - du_r[c]) / du_f[c]

    def _arc_length_increment(self, iteration, du_f, du_r) -> float:
        """
        Load factor increment keeping the step on the cylinder

            |ΔU + δu_r + δλ·δu_f| = Δs

        where ΔU is the displacement accumulated in the step so far.
        """
        if iteration.number == 1:
            if self.arc_length is None:
                # first step: the prescribed load increment sets Δs
                return self.control_increment

            norm_f = float(np.linalg.norm(du_f))
            if norm_f == 0.0:
                raise ValueError("reference load produces no displacement")

            # stiffness parameter sign: negative past a limit point
            sign = 1.0 if float(self.reference_forces @ du_f) >= 0.0 else -1.0
            return sign * self.arc_length / norm_f

        dU = iteration.displacements - self.initial_displacements
        base = dU + du_r

        a1 = float(du_f @ du_f)
        a2 = float(base @ du_f)
        a3 = float(base @ base) - self.arc_length ** 2
        discriminant = a2 * a2 - a1 * a3

        if a1 == 0.0 or discriminant < 0.0:
            raise ValueError("arc-length equation has no real root")

        root = np.sqrt(discriminant)
        candidates = ((-a2 + root) / a1, (-a2 - root) / a1)

        # keep going the way the step started
        return max(candidates, key=lambda d: float(dU @ (base + d * du_f)))

    def _trim_history(self) -> None:
        if len(self.iterations) > _KEPT_ITERATIONS + 1:
            del self.iterations[1:-_KEPT_ITERATIONS]

    def _iterative_stop(self) -> bool:
        iteration = self.ongoing_iteration

        self.converged = iteration.check_convergence(self.parameters)
        if self.converged:
            return True

        self.stop = iteration.check_stop_condition(self.parameters)
        if self.stop:
            reason = (
                "non-finite values in the solution"
                if not iteration.is_finite
                else "maximum number of iterations reached"
            )
            self.stop_message = f"Convergence not reached at load step {self.number}: {reason}"
            logger.warning(self.stop_message)

        return self.stop

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def result(self, monitored_index: Optional[int] = None) -> LoadStepResult:
        """Snapshot of the step (deep copies)."""
        iteration = self.ongoing_iteration

        monitored = None
        if monitored_index is not None and self.converged:
            monitored = MonitoredDisplacement(self.load_factor, float(iteration.displacements[monitored_index]))

        return LoadStepResult(
            number=self.number,
            load_factor=self.load_factor,
            forces=self.full_forces.copy(),
            displacements=iteration.displacements.copy(),
            stiffness=iteration.stiffness.copy(),
            converged=self.converged,
            iterations=iteration.number,
            force_convergence=iteration.force_convergence,
            displacement_convergence=iteration.displacement_convergence,
            monitored_displacement=monitored,
            message=self.stop_message,
        )

    def set_reactions(self) -> np.ndarray:
        """Write the reactions of the current state into the grips."""
        return update_reactions(self.fem_input, self.full_forces)
