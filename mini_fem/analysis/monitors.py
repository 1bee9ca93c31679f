# mini_fem/analysis/monitors.py
"""
Monitors: samples of the solution taken after every converged load step.

- MonitoredDisplacement: the displacement of one global DOF and the load
  factor it was reached at (the classic load-displacement curve point)
- GripMonitor: both displacement components of one grip per step
- ElementMonitor: named per-element values per step; TrussMonitor samples
  the strain and axial force of a bar
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from ..units import length_factor


@dataclass(frozen=True)
class MonitoredDisplacement:
    """
    One load-displacement sample.

    Attributes:
    -----------
    load_factor : float
        Load factor of the step
    displacement : float
        Displacement of the monitored DOF (mm)
    """
    load_factor: float
    displacement: float

    def displacement_in(self, unit: str = 'mm') -> float:
        return self.displacement * length_factor(unit)


class GripMonitor:
    """
    Records (load factor, Ux, Uy) of one grip after each converged step.

    Parameters:
    -----------
    grip_number : int
        Number of the monitored grip
    unit : str
        Length unit of the exported table (default: mm)
    """

    def __init__(self, grip_number: int, unit: str = 'mm'):
        length_factor(unit)
        self.grip_number = grip_number
        self.unit = unit
        self.values: List[Tuple[float, float, float]] = []

    @property
    def columns(self) -> List[str]:
        return ['Load Factor', f'Ux ({self.unit})', f'Uy ({self.unit})']

    def add_monitored_value(self, load_factor: float, fem_input) -> None:
        """Sample the grip's current displacement."""
        grip = fem_input.grip_by_number(self.grip_number)
        f = length_factor(self.unit)
        self.values.append((float(load_factor), float(grip.displacement[0]) * f, float(grip.displacement[1]) * f))

    def clear(self) -> None:
        self.values.clear()

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.values, columns=self.columns)

    def export(self, output_path, file_name: Optional[str] = None, delimiter: str = ";") -> Path:
        """
        Write the samples to <output_path>/<file_name>.csv.

        Returns the written path.
        """
        file_name = file_name or f"Grip{self.grip_number}_Monitor"
        directory = Path(output_path)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{file_name}.csv"
        self.to_dataframe().to_csv(path, sep=delimiter, index=False)
        return path

    def __len__(self) -> int:
        return len(self.values)

    def __repr__(self) -> str:
        return f"GripMonitor(grip={self.grip_number}, samples={len(self.values)})"


class ElementMonitor:
    """
    Records named per-element values after each converged step.

    Subclasses choose the labels and implement `sample(element)`, returning
    one value per label.

    Parameters:
    -----------
    element_number : int
        Number of the monitored element
    name : str
        Monitor name, used in the exported file name
    labels : sequence of str
        Column labels of the sampled values (without 'Load Factor')
    """

    def __init__(self, element_number: int, name: str, labels: Sequence[str]):
        self.element_number = element_number
        self.name = name
        self.labels = list(labels)
        self.values: List[Tuple[float, ...]] = []

    @property
    def columns(self) -> List[str]:
        return ['Load Factor'] + self.labels

    def sample(self, element) -> Sequence[float]:
        raise NotImplementedError

    def add_monitored_value(self, load_factor: float, fem_input) -> None:
        element = fem_input.element_by_number(self.element_number)
        self.values.append((float(load_factor), *(float(v) for v in self.sample(element))))

    def clear(self) -> None:
        self.values.clear()

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.values, columns=self.columns)

    def export(self, output_path, file_name: str = "FEM_Output", delimiter: str = ";") -> Path:
        """
        Write the samples to <output_path>/<file_name>_<name>.csv.

        Returns the written path.
        """
        directory = Path(output_path)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{file_name}_{self.name}.csv"
        self.to_dataframe().to_csv(path, sep=delimiter, index=False)
        return path

    def __len__(self) -> int:
        return len(self.values)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(element={self.element_number}, samples={len(self.values)})"


class TrussMonitor(ElementMonitor):
    """Axial strain and axial force (N) of a bar element."""

    def __init__(self, element_number: int, name: Optional[str] = None):
        super().__init__(element_number, name or f"Element{element_number}", ['Strain', 'Axial Force (N)'])

    def sample(self, element) -> Sequence[float]:
        return element.strain, element.axial_force
