# planar_fem/config.py
"""
Solver configuration and numerical tolerances.
"""

from dataclasses import dataclass


@dataclass
class SolverConfig:
    """Tolerances shared by the element, solve and post-processing stages."""

    # Reduced / saddle matrices above this condition number are treated as singular
    cond_limit: float = 1e12

    # Members shorter than this (m) contribute a zero stiffness matrix
    zero_length_tol: float = 1e-9

    # Section modulus below this (m^3) means pure axial stress (truss section)
    zero_modulus_tol: float = 1e-12

    # A free DOF whose reduced row is this small relative to max|K_r| has no stiffness
    zero_stiffness_tol: float = 1e-14

    # Relative tolerance used by the equilibrium diagnostic
    equilibrium_rtol: float = 1e-6


# Global config instance
CONFIG = SolverConfig()
