# mini_fem/analysis/driver.py
"""
ANALYSIS DRIVERS: Linear and Nonlinear
======================================

PURPOSE:
--------
Run a full analysis over an FEMInput:

- LinearAnalysis: one solve of K·u = F on the simplified system, then
  grips receive displacements and reactions.

- NonlinearAnalysis: the load is applied in `number_of_steps` increments.
  Each LoadStep is warm-started from the previous step's converged
  displacements and stiffness. When a step diverges the analysis stops,
  the model is restored to the last converged step and the stop reason is
  recorded (the analysis returns normally unless raise_on_stop=True).
  Under arc-length control every step covers the same distance along the
  equilibrium path, so the load factor may fall past a limit point.

USAGE:
------
    params = AnalysisParameters(number_of_steps=20)
    analysis = NonlinearAnalysis(fem_input, params, monitored_index=2)
    analysis.execute()
    output = analysis.generate_output()
    output.export("results/")
"""

import logging
from typing import Callable, Iterable, List, Optional, Union

import numpy as np
from tqdm import tqdm

from ..kernel.solve import ConvergenceError, solve_linear
from ..output import FEMOutput
from .load_step import LoadStep, LoadStepResult, update_reactions
from .monitors import ElementMonitor, GripMonitor, MonitoredDisplacement
from .parameters import DEFAULT_PARAMETERS, AnalysisControl, AnalysisParameters, AnalysisType

logger = logging.getLogger(__name__)

Monitor = Union[GripMonitor, ElementMonitor]


def _check_monitored_index(fem_input, monitored_index: Optional[int]) -> None:
    if monitored_index is None:
        return
    if not 0 <= monitored_index < fem_input.number_of_dofs:
        raise ValueError(
            f"Monitored DOF index {monitored_index} out of range for "
            f"{fem_input.number_of_dofs} DOFs"
        )


class LinearAnalysis:
    """
    Linear static analysis.

    Parameters:
    -----------
    fem_input : FEMInput
    monitored_index : int, optional
        Global DOF sampled into the result
    cond_limit : float
        Condition number above which the structure is a mechanism
    """

    def __init__(self, fem_input, monitored_index: Optional[int] = None, cond_limit: float = 1e12):
        _check_monitored_index(fem_input, monitored_index)
        self.fem_input = fem_input
        self.monitored_index = monitored_index
        self.cond_limit = cond_limit
        self.result: Optional[LoadStepResult] = None

    @property
    def displacements(self) -> np.ndarray:
        return self.result.displacements if self.result is not None else np.zeros(self.fem_input.number_of_dofs)

    @property
    def stiffness(self) -> np.ndarray:
        n = self.fem_input.number_of_dofs
        return self.result.stiffness if self.result is not None else np.zeros((n, n))

    @property
    def steps(self) -> List[LoadStepResult]:
        return [self.result] if self.result is not None else []

    def execute(self, load_factor: float = 1.0) -> LoadStepResult:
        """
        Solve the structure under load_factor · F.

        Raises:
        -------
        MechanismError
            If the simplified stiffness is singular or ill-conditioned
        """
        fem = self.fem_input
        fem.update_stiffness()
        K = fem.assemble_stiffness()
        F = load_factor * fem.force_vector

        u, R = solve_linear(K, F, fem.constraint_index, self.cond_limit)

        fem.set_displacements(u)
        fem.calculate_forces()
        fem.set_reactions(R)

        monitored = None
        if self.monitored_index is not None:
            monitored = MonitoredDisplacement(load_factor, float(u[self.monitored_index]))

        self.result = LoadStepResult(
            number=1,
            load_factor=load_factor,
            forces=F.copy(),
            displacements=u.copy(),
            stiffness=K.copy(),
            converged=True,
            iterations=1,
            force_convergence=0.0,
            displacement_convergence=0.0,
            monitored_displacement=monitored,
        )
        logger.info("Linear analysis done: max |u| = %.4e mm", float(np.max(np.abs(u), initial=0.0)))
        return self.result

    def generate_output(self) -> FEMOutput:
        return FEMOutput(self.steps)


class NonlinearAnalysis:
    """
    Incremental-iterative nonlinear static analysis.

    Parameters:
    -----------
    fem_input : FEMInput
        The model (modified in place: grips receive displacements/reactions)
    parameters : AnalysisParameters
        Solver, control, steps, tolerances
    monitored_index : int, optional
        Global DOF recorded after each converged step. Required for
        displacement control, where it is the controlled DOF.
    target_displacement : float, optional
        Displacement control: final displacement of the monitored DOF (mm),
        reached in `number_of_steps` equal increments
    monitors : iterable of GripMonitor or ElementMonitor
        Extra per-grip or per-element samplers

    Raises:
    -------
    ValueError
        If the monitored index is out of range, or displacement control is
        requested without a free monitored DOF and a target displacement,
        or arc-length control without a reference load
    """

    def __init__(
        self,
        fem_input,
        parameters: AnalysisParameters = DEFAULT_PARAMETERS,
        monitored_index: Optional[int] = None,
        target_displacement: Optional[float] = None,
        monitors: Iterable[Monitor] = ()
    ):
        _check_monitored_index(fem_input, monitored_index)

        if parameters.control is AnalysisControl.Displacement:
            if monitored_index is None:
                raise ValueError("Displacement control needs a monitored DOF index")
            if monitored_index in fem_input.constraint_index:
                raise ValueError(f"Monitored DOF {monitored_index} is constrained and can't be controlled")
            if target_displacement is None or target_displacement == 0:
                raise ValueError("Displacement control needs a nonzero target displacement")

        if parameters.control is AnalysisControl.ArcLength and not fem_input.force_vector.any():
            raise ValueError("Arc-length control needs a nonzero reference load")

        self.fem_input = fem_input
        self.parameters = parameters
        self.monitored_index = monitored_index
        self.target_displacement = target_displacement
        self.monitors: List[Monitor] = list(monitors)

        n = fem_input.number_of_dofs
        self.steps: List[LoadStepResult] = []
        self.stop = False
        self.stop_message = ''
        self.cancelled = False
        self.displacements = np.zeros(n)
        self.stiffness = np.zeros((n, n))
        self.load_factor = 0.0

    @property
    def converged_steps(self) -> List[LoadStepResult]:
        return [s for s in self.steps if s.converged]

    @property
    def monitored_displacements(self) -> List[MonitoredDisplacement]:
        return [s.monitored_displacement for s in self.converged_steps if s.monitored_displacement is not None]

    def __iter__(self):
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __getitem__(self, index: int) -> LoadStepResult:
        return self.steps[index]

    def execute(
        self,
        load_factor: float = 1.0,
        show_progress: bool = False,
        stop_when: Optional[Callable[[LoadStepResult], bool]] = None,
        raise_on_stop: bool = False
    ) -> List[LoadStepResult]:
        """
        Run all load steps.

        Parameters:
        -----------
        load_factor : float
            Force control: load factor reached at the last step. The grips'
            applied forces are the reference load (factor 1). Arc-length
            control: the first step's load increment is
            load_factor / number_of_steps, which sets the arc length.
            Ignored under displacement control, where the load factor is
            solved for.
        show_progress : bool
            Show a tqdm progress bar over load steps
        stop_when : callable, optional
            Called with each converged LoadStepResult; returning True ends
            the analysis after that step
        raise_on_stop : bool
            Raise ConvergenceError on divergence instead of returning

        Returns:
        --------
        list of LoadStepResult
            One per executed step; a diverged step is the last entry
        """
        fem = self.fem_input
        p = self.parameters
        n = fem.number_of_dofs

        reference_forces = fem.force_vector.copy()
        force_control = p.control is AnalysisControl.Force
        if p.control is AnalysisControl.Displacement:
            control_increment = self.target_displacement / p.number_of_steps
        elif p.control is AnalysisControl.ArcLength:
            control_increment = p.step_increment * load_factor
        else:
            control_increment = 0.0

        self.steps = []
        self.stop = False
        self.stop_message = ''
        self.cancelled = False
        for monitor in self.monitors:
            monitor.clear()

        last_converged: Optional[LoadStepResult] = None
        arc_length: Optional[float] = None

        logger.info(
            "Nonlinear analysis: %s, %s control, %d steps",
            p.solver.name, p.control.name, p.number_of_steps,
        )

        numbers = range(1, p.number_of_steps + 1)
        iterator = tqdm(numbers, desc="Load steps") if show_progress else numbers

        for number in iterator:
            if force_control:
                step_load_factor = number * p.step_increment * load_factor
            else:
                step_load_factor = last_converged.load_factor if last_converged is not None else 0.0

            step = LoadStep(
                number,
                fem,
                p,
                reference_forces,
                load_factor=step_load_factor,
                initial_displacements=last_converged.displacements if last_converged is not None else None,
                initial_stiffness=last_converged.stiffness if last_converged is not None else None,
                control_index=self.monitored_index if p.control is AnalysisControl.Displacement else None,
                control_increment=control_increment,
                arc_length=arc_length,
            )
            step.iterate()
            result = step.result(self.monitored_index)
            self.steps.append(result)

            if not step.converged:
                self._correct_results(last_converged, reference_forces, step.stop_message)
                break

            step.set_reactions()
            for monitor in self.monitors:
                monitor.add_monitored_value(step.load_factor, fem)

            # warm start of the next step, independent of the archived result
            last_converged = result.clone()
            arc_length = step.arc_length

            logger.info(
                "Load step %d converged in %d iterations (load factor %.4f)",
                number, result.iterations, step.load_factor,
            )

            if stop_when is not None and stop_when(result):
                self.cancelled = True
                self.stop_message = f"Analysis stopped by caller after load step {number}"
                logger.info(self.stop_message)
                break

        if last_converged is not None:
            self.displacements = last_converged.displacements
            self.stiffness = last_converged.stiffness
            self.load_factor = last_converged.load_factor
        else:
            self.displacements = np.zeros(n)
            self.stiffness = np.zeros((n, n))
            self.load_factor = 0.0

        if self.stop and raise_on_stop:
            raise ConvergenceError(self.stop_message)

        return self.steps

    def _correct_results(
        self,
        last_converged: Optional[LoadStepResult],
        reference_forces: np.ndarray,
        message: str
    ) -> None:
        """Return the model to the last converged step and record the stop."""
        fem = self.fem_input
        if last_converged is None:
            displacements = np.zeros(fem.number_of_dofs)
            load_factor = 0.0
        else:
            displacements = last_converged.displacements
            load_factor = last_converged.load_factor

        fem.set_displacements(displacements)
        fem.update_stiffness()
        fem.calculate_forces()
        update_reactions(fem, load_factor * reference_forces)

        self.stop = True
        self.stop_message = message
        logger.warning("Analysis stopped: %s", message)

    def generate_output(self) -> FEMOutput:
        return FEMOutput(self.steps)


def run_analysis(
    fem_input,
    analysis_type: AnalysisType = AnalysisType.Nonlinear,
    parameters: Optional[AnalysisParameters] = None,
    load_factor: float = 1.0,
    monitored_index: Optional[int] = None,
    target_displacement: Optional[float] = None,
    monitors: Iterable[Monitor] = (),
    show_progress: bool = False
):
    """
    Build and execute the analysis of the requested type.

    Returns the analysis object (LinearAnalysis or NonlinearAnalysis) after
    execution.

    Example:
    --------
    >>> analysis = run_analysis(fem_input, "linear")
    >>> analysis.displacements
    """
    analysis_type = AnalysisType(analysis_type)

    if analysis_type is AnalysisType.Linear:
        analysis = LinearAnalysis(fem_input, monitored_index)
        analysis.execute(load_factor)
        return analysis

    analysis = NonlinearAnalysis(
        fem_input,
        parameters or DEFAULT_PARAMETERS,
        monitored_index,
        target_displacement,
        monitors,
    )
    analysis.execute(load_factor, show_progress=show_progress)
    return analysis
