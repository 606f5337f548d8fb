# planar_fem/units.py
"""
UNITS: CANONICAL <-> DISPLAY CONVERSION
=======================================

The solver works exclusively in SI:

    length   m
    force    N
    moment   N·m
    stress   Pa
    angle    rad

Editors and reports show values in the user's chosen system. Every function
here is a pure scale factor, so `x_from_display(x_to_display(v)) == v` up to
float rounding.

    System     length   force   moment    stress   modulus
    ------     ------   -----   ------    ------   -------
    FEET       ft       lbf     lbf·ft    psi      psi
    METERS     m        N       N·m       MPa      Pa
    INCHES     in       lbf     lbf·in    psi      psi

The integer values of UnitSystem are the selector byte used by the file format.
"""

import math
from enum import IntEnum
from typing import Dict


class UnitSystem(IntEnum):
    FEET = 0
    METERS = 1
    INCHES = 2


# Exact definitions
METERS_PER_FOOT = 0.3048
METERS_PER_INCH = 0.0254
NEWTONS_PER_LBF = 4.4482216152605
PASCALS_PER_PSI = NEWTONS_PER_LBF / METERS_PER_INCH ** 2  # ~6894.757
PASCALS_PER_MPA = 1e6


def _meters_per_length_unit(system: UnitSystem) -> float:
    if system == UnitSystem.FEET:
        return METERS_PER_FOOT
    if system == UnitSystem.INCHES:
        return METERS_PER_INCH
    return 1.0


def _newtons_per_force_unit(system: UnitSystem) -> float:
    if system == UnitSystem.METERS:
        return 1.0
    return NEWTONS_PER_LBF


def _pascals_per_stress_unit(system: UnitSystem) -> float:
    if system == UnitSystem.METERS:
        return PASCALS_PER_MPA
    return PASCALS_PER_PSI


def _pascals_per_modulus_unit(system: UnitSystem) -> float:
    if system == UnitSystem.METERS:
        return 1.0
    return PASCALS_PER_PSI


def length_to_display(value_m: float, system: UnitSystem) -> float:
    return value_m / _meters_per_length_unit(system)


def length_from_display(value: float, system: UnitSystem) -> float:
    return value * _meters_per_length_unit(system)


def force_to_display(value_n: float, system: UnitSystem) -> float:
    return value_n / _newtons_per_force_unit(system)


def force_from_display(value: float, system: UnitSystem) -> float:
    return value * _newtons_per_force_unit(system)


def moment_to_display(value_nm: float, system: UnitSystem) -> float:
    return value_nm / (_newtons_per_force_unit(system) * _meters_per_length_unit(system))


def moment_from_display(value: float, system: UnitSystem) -> float:
    return value * _newtons_per_force_unit(system) * _meters_per_length_unit(system)


def stress_to_display(value_pa: float, system: UnitSystem) -> float:
    """Pa -> MPa (metric) or psi (imperial)."""
    return value_pa / _pascals_per_stress_unit(system)


def stress_from_display(value: float, system: UnitSystem) -> float:
    return value * _pascals_per_stress_unit(system)


def modulus_to_display(value_pa: float, system: UnitSystem) -> float:
    """Young's modulus: Pa stays Pa for metric, psi for imperial."""
    return value_pa / _pascals_per_modulus_unit(system)


def modulus_from_display(value: float, system: UnitSystem) -> float:
    return value * _pascals_per_modulus_unit(system)


def area_to_display(value_m2: float, system: UnitSystem) -> float:
    return value_m2 / _meters_per_length_unit(system) ** 2


def area_from_display(value: float, system: UnitSystem) -> float:
    return value * _meters_per_length_unit(system) ** 2


def section_modulus_to_display(value_m3: float, system: UnitSystem) -> float:
    return value_m3 / _meters_per_length_unit(system) ** 3


def section_modulus_from_display(value: float, system: UnitSystem) -> float:
    return value * _meters_per_length_unit(system) ** 3


def inertia_to_display(value_m4: float, system: UnitSystem) -> float:
    return value_m4 / _meters_per_length_unit(system) ** 4


def inertia_from_display(value: float, system: UnitSystem) -> float:
    return value * _meters_per_length_unit(system) ** 4


def degrees(value_rad: float) -> float:
    return math.degrees(value_rad)


def radians(value_deg: float) -> float:
    return math.radians(value_deg)


def unit_labels(system: UnitSystem) -> Dict[str, str]:
    """Short unit labels for each quantity, e.g. for table headers."""
    length = {UnitSystem.FEET: "ft", UnitSystem.METERS: "m", UnitSystem.INCHES: "in"}[system]
    force = "N" if system == UnitSystem.METERS else "lbf"
    return {
        'length': length,
        'force': force,
        'moment': f"{force}·{length}",
        'stress': "MPa" if system == UnitSystem.METERS else "psi",
        'modulus': "Pa" if system == UnitSystem.METERS else "psi",
        'area': f"{length}²",
        'inertia': f"{length}⁴",
        'section_modulus': f"{length}³",
        'angle': "deg",
    }
