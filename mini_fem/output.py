# mini_fem/output.py
"""
OUTPUT: Load-Displacement Results
=================================

FEMOutput collects the monitored samples of the converged load steps of an
analysis and turns them into a table:

    Load Factor | Displacement (mm)
    ------------|------------------
    0.05        | 0.0998
    0.10        | 0.1993
    ...

USAGE:
------
    output = analysis.generate_output()
    df = output.to_dataframe(unit='mm')
    path = output.export("results/", file_name="bar", unit="mm")
"""

from pathlib import Path
from typing import List, Sequence

import pandas as pd

from .units import length_factor


class FEMOutput:
    """
    Result table of an analysis.

    Parameters:
    -----------
    step_results : sequence of LoadStepResult
        All executed steps; diverged steps and steps without a monitored
        sample are skipped
    """

    def __init__(self, step_results: Sequence):
        self.step_results = list(step_results)
        self.monitored_displacements = [
            s.monitored_displacement for s in self.step_results
            if s.converged and s.monitored_displacement is not None
        ]

    @property
    def load_factors(self) -> List[float]:
        return [m.load_factor for m in self.monitored_displacements]

    def displacements(self, unit: str = 'mm') -> List[float]:
        return [m.displacement_in(unit) for m in self.monitored_displacements]

    def to_dataframe(self, unit: str = 'mm') -> pd.DataFrame:
        """Columns 'Load Factor' and 'Displacement (<unit>)'."""
        return pd.DataFrame({
            'Load Factor': self.load_factors,
            f'Displacement ({unit})': self.displacements(unit),
        })

    def export(
        self,
        output_path,
        file_name: str = "FEM_Output",
        unit: str = 'mm',
        delimiter: str = ';'
    ) -> Path:
        """
        Write the table to <output_path>/<file_name>.csv.

        The directory is created if missing. Returns the written path.

        Raises:
        -------
        ValueError
            If unit is not a known length unit
        """
        length_factor(unit)
        directory = Path(output_path)
        directory.mkdir(parents=True, exist_ok=True)

        path = directory / f"{file_name}.csv"
        self.to_dataframe(unit).to_csv(path, sep=delimiter, index=False)
        return path

    def __len__(self) -> int:
        return len(self.monitored_displacements)

    def __repr__(self) -> str:
        return f"FEMOutput({len(self)} samples)"
