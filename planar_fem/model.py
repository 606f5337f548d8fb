# Node, ConstraintKind, MaterialProfile, SectionProfile, Element (dataclasses)

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Optional, Tuple

import numpy as np


class ConstraintKind(IntEnum):
    """
    Support condition of a node. Integer values are the on-disk enum.
    """
    FREE = 0
    FIXED = 1
    FIXED_PIN = 2
    SLIDER = 3


# Which of (ux, uy, rz) are solved for, per constraint kind.
# A slider keeps both translations free (the oblique constraint is added as a
# multiplier row) and the member can still rotate about the slider pin.
DOF_FREEDOM: Dict[ConstraintKind, Tuple[bool, bool, bool]] = {
    ConstraintKind.FREE: (True, True, True),
    ConstraintKind.SLIDER: (True, True, True),
    ConstraintKind.FIXED_PIN: (False, False, True),
    ConstraintKind.FIXED: (False, False, False),
}


@dataclass
class Node:
    """
    2D node with 3 DOF: (ux, uy, rz).

    `angle` is the slider travel direction in degrees, measured from +x.
    It is ignored unless `constraint` is SLIDER.
    """
    x: float
    y: float
    constraint: ConstraintKind = ConstraintKind.FREE
    angle: float = 0.0


@dataclass
class MaterialProfile:
    name: str
    E: float  # Young's modulus (Pa)


@dataclass
class SectionProfile:
    """
    Cross-section properties. A truss section carries I = S = 0.
    """
    name: str
    A: float        # m^2
    I: float = 0.0  # m^4
    S: float = 0.0  # section modulus, m^3

    @property
    def is_truss_section(self) -> bool:
        return self.I == 0.0 and self.S == 0.0


@dataclass
class Element:
    """
    2-node member referencing nodes, material and section by index.

    When `is_truss` is set the effective moment of inertia is zero whatever
    the section says, so the member carries axial force only.

    The remaining fields are solver outputs, overwritten on every solve.
    """
    ni: int
    nj: int
    material: int
    section: int
    is_truss: bool = True

    k_global: Optional[np.ndarray] = field(default=None, repr=False, compare=False)
    axial_force: float = field(default=0.0, compare=False)
    moment_i: float = field(default=0.0, compare=False)
    moment_j: float = field(default=0.0, compare=False)
    max_moment: float = field(default=0.0, compare=False)
    stress: float = field(default=0.0, compare=False)
