# Frame2D / Truss2D element stiffness + transformation

import logging
from typing import Tuple

import numpy as np

from .config import CONFIG, SolverConfig
from .model import Node, MaterialProfile, SectionProfile

logger = logging.getLogger(__name__)


def element_geometry(node_i: Node, node_j: Node) -> Tuple[float, float, float]:
    """
    Length and direction cosines (L, c, s) of the member i -> j.

    A zero-length member has no direction; (1, 0) is returned so the
    transform stays well defined.
    """
    dx = node_j.x - node_i.x
    dy = node_j.y - node_i.y
    L = float(np.hypot(dx, dy))
    if L == 0.0:
        return 0.0, 1.0, 0.0
    return L, dx / L, dy / L


def frame2d_local_stiffness(E: float, A: float, I: float, L: float) -> np.ndarray:
    """
    Local stiffness matrix in element local coords (x along member).
    DOF order: [uix, uiy, rzi, ujx, ujy, rzj]

    With I = 0 every bending term vanishes and only the axial corners remain.
    """
    EA_L = E * A / L
    EI = E * I
    L2 = L * L
    L3 = L2 * L

    k = np.array([
        [ EA_L,      0.0,        0.0,    -EA_L,      0.0,        0.0],
        [  0.0,  12*EI/L3,   6*EI/L2,      0.0, -12*EI/L3,   6*EI/L2],
        [  0.0,   6*EI/L2,    4*EI/L,      0.0,  -6*EI/L2,    2*EI/L],
        [-EA_L,      0.0,        0.0,     EA_L,      0.0,        0.0],
        [  0.0, -12*EI/L3,  -6*EI/L2,      0.0,  12*EI/L3,  -6*EI/L2],
        [  0.0,   6*EI/L2,    2*EI/L,      0.0,  -6*EI/L2,    4*EI/L],
    ], dtype=float)
    return k


def frame2d_transform(c: float, s: float) -> np.ndarray:
    """
    6x6 transform from global DOFs to local DOFs.
    Rotations are the same in both frames.
    """
    T = np.array([
        [ c,  s, 0,  0, 0, 0],
        [-s,  c, 0,  0, 0, 0],
        [ 0,  0, 1,  0, 0, 0],
        [ 0,  0, 0,  c, s, 0],
        [ 0,  0, 0, -s, c, 0],
        [ 0,  0, 0,  0, 0, 1],
    ], dtype=float)
    return T


def frame2d_global_stiffness(
    node_i: Node,
    node_j: Node,
    material: MaterialProfile,
    section: SectionProfile,
    is_truss: bool,
    config: SolverConfig = CONFIG,
) -> np.ndarray:
    """
    6x6 element stiffness in global coordinates: K = T^T k_local T.

    Parameters:
    -----------
    node_i, node_j : Node
        Member end nodes
    material : MaterialProfile
        Supplies E
    section : SectionProfile
        Supplies A and I
    is_truss : bool
        Force I = 0 (axial-only member) regardless of the section
    config : SolverConfig
        Supplies zero_length_tol

    Returns:
    --------
    np.ndarray
        Shape (6, 6). All zeros for a member shorter than zero_length_tol,
        which then contributes nothing to the assembly.
    """
    L, c, s = element_geometry(node_i, node_j)
    if L < config.zero_length_tol:
        logger.warning(
            "Zero-length element between (%g, %g) and (%g, %g); stiffness set to zero",
            node_i.x, node_i.y, node_j.x, node_j.y,
        )
        return np.zeros((6, 6), dtype=float)

    I = 0.0 if is_truss else section.I
    k_local = frame2d_local_stiffness(material.E, section.A, I, L)
    T = frame2d_transform(c, s)
    return T.T @ k_local @ T


def truss2d_global_stiffness(
    node_i: Node,
    node_j: Node,
    E: float,
    A: float,
    config: SolverConfig = CONFIG,
) -> np.ndarray:
    """
    4x4 global stiffness of an axial-only bar with 2 DOF per node.
    DOF order: [uix, uiy, ujx, ujy]

        ke = (EA/L) × [  c²   cs  -c²  -cs ]
                      [  cs   s²  -cs  -s² ]
                      [ -c²  -cs   c²   cs ]
                      [ -cs  -s²   cs   s² ]
    """
    L, c, s = element_geometry(node_i, node_j)
    if L < config.zero_length_tol:
        logger.warning(
            "Zero-length bar between (%g, %g) and (%g, %g); stiffness set to zero",
            node_i.x, node_i.y, node_j.x, node_j.y,
        )
        return np.zeros((4, 4), dtype=float)

    c2 = c * c
    s2 = s * s
    cs = c * s
    ke = np.array([
        [ c2,  cs, -c2, -cs],
        [ cs,  s2, -cs, -s2],
        [-c2, -cs,  c2,  cs],
        [-cs, -s2,  cs,  s2],
    ], dtype=float)
    return (E * A / L) * ke


def truss2d_axial_force(
    node_i: Node,
    node_j: Node,
    E: float,
    A: float,
    d_elem: np.ndarray,
    config: SolverConfig = CONFIG,
) -> float:
    """
    Axial force (tension positive) of a 2-DOF bar from its global
    displacements [uix, uiy, ujx, ujy]: N = EA/L · (c·Δu + s·Δv).
    """
    L, c, s = element_geometry(node_i, node_j)
    if L < config.zero_length_tol:
        return 0.0
    du = d_elem[2] - d_elem[0]
    dv = d_elem[3] - d_elem[1]
    return E * A / L * (c * du + s * dv)
