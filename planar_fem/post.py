# reactions, equilibrium, element end forces, combined stress

from typing import Dict, List, Sequence, Tuple

import numpy as np

from .config import CONFIG, SolverConfig
from .model import ConstraintKind, Element, Node, SectionProfile
from .elements import element_geometry, frame2d_transform
from .kernel.dof import DOF_2D_FRAME, UX, UY, RZ


def compute_reactions_vector(K: np.ndarray, d: np.ndarray, F: np.ndarray) -> np.ndarray:
    """
    Full reaction vector R = K·d − F (unreduced).

    Only entries at constrained nodes are physically meaningful; at free
    DOFs R is the solve residual (≈0).
    """
    return K @ d - F


def compute_reactions(
    R: np.ndarray,
    nodes: Sequence[Node],
) -> Dict[int, Dict[str, float]]:
    """
    Reaction components at every non-FREE node.

    Parameters:
    -----------
    R : np.ndarray
        Reaction vector from compute_reactions_vector
    nodes : Sequence[Node]
        Node list, indexed by node id

    Returns:
    --------
    Dict[int, Dict[str, float]]
        node_id -> {'Rx', 'Ry', 'Mz'}. A slider reports the force its
        track exerts, a pin reports Mz ≈ 0.
    """
    result = {}
    for node_id, node in enumerate(nodes):
        if node.constraint == ConstraintKind.FREE:
            continue
        result[node_id] = {
            'Rx': float(R[DOF_2D_FRAME.idx(node_id, UX)]),
            'Ry': float(R[DOF_2D_FRAME.idx(node_id, UY)]),
            'Mz': float(R[DOF_2D_FRAME.idx(node_id, RZ)]),
        }
    return result


def equilibrium_check(
    nodes: Sequence[Node],
    F: np.ndarray,
    R: np.ndarray,
    rtol: float = CONFIG.equilibrium_rtol,
) -> Dict[str, float]:
    """
    Global equilibrium diagnostic: applied loads + reactions ≈ 0.

    Forces are summed per direction. The moment balance is taken about the
    origin, so it includes the couples of the nodal forces (x·Fy − y·Fx) as
    well as nodal moments Mz.

    Never raises; floating-point residue is expected. `balanced` compares
    each balance against rtol times the largest applied or reaction term.

    Returns:
    --------
    Dict with keys:
        applied_fx, applied_fy, applied_mz,
        reaction_fx, reaction_fy, reaction_mz,
        balance_fx, balance_fy, balance_mz, balanced
    """
    n = len(nodes)
    F3 = np.asarray(F, dtype=float).reshape(n, 3)
    R3 = np.asarray(R, dtype=float).reshape(n, 3)
    x = np.array([node.x for node in nodes], dtype=float)
    y = np.array([node.y for node in nodes], dtype=float)

    def _moment(V):
        return x * V[:, 1] - y * V[:, 0] + V[:, 2]

    applied_m = _moment(F3)
    reaction_m = _moment(R3)

    result = {
        'applied_fx': float(F3[:, 0].sum()),
        'applied_fy': float(F3[:, 1].sum()),
        'applied_mz': float(applied_m.sum()),
        'reaction_fx': float(R3[:, 0].sum()),
        'reaction_fy': float(R3[:, 1].sum()),
        'reaction_mz': float(reaction_m.sum()),
    }
    result['balance_fx'] = result['applied_fx'] + result['reaction_fx']
    result['balance_fy'] = result['applied_fy'] + result['reaction_fy']
    result['balance_mz'] = result['applied_mz'] + result['reaction_mz']

    force_scale = max(np.abs(F3[:, :2]).max(initial=0.0), np.abs(R3[:, :2]).max(initial=0.0), 1e-300)
    moment_scale = max(np.abs(applied_m).max(initial=0.0), np.abs(reaction_m).max(initial=0.0), 1e-300)
    result['balanced'] = bool(
        abs(result['balance_fx']) <= rtol * force_scale
        and abs(result['balance_fy']) <= rtol * force_scale
        and abs(result['balance_mz']) <= rtol * moment_scale
    )
    return result


def element_end_forces_local(
    node_i: Node,
    node_j: Node,
    k_global: np.ndarray,
    d_elem: np.ndarray,
) -> np.ndarray:
    """
    Element end forces in LOCAL coordinates from global displacements.

    The process:
    1. Global end forces f = k_global × d_elem
    2. Rotate into the member axis with the same T used for assembly

    Parameters:
    -----------
    node_i, node_j : Node
        Member end nodes
    k_global : np.ndarray
        Element stiffness in global coordinates (6, 6)
    d_elem : np.ndarray
        Element displacements [u1, v1, θ1, u2, v2, θ2]

    Returns:
    --------
    np.ndarray
        Shape (6,): [P1, V1, M1, P2, V2, M2]
        - P2 is the member axial force, positive = tension (P1 = −P2)
        - V1, V2: shear in local +y
        - M1, M2: end moments, positive counterclockwise
    """
    _, c, s = element_geometry(node_i, node_j)
    T = frame2d_transform(c, s)
    return T @ (k_global @ d_elem)


def combined_stress(
    P: float,
    M1: float,
    M2: float,
    section: SectionProfile,
    zero_modulus_tol: float = CONFIG.zero_modulus_tol,
) -> float:
    """
    Extreme-fibre stress, signed (tension positive, compression negative).

    For a truss section (S ≈ 0) this is P/A. Otherwise the two candidates

        σ_t = P/A + max(|M1|, |M2|)/S     (tension side)
        σ_c = P/A − max(|M1|, |M2|)/S     (compression side)

    are compared and the one with the larger magnitude is returned.
    """
    axial_stress = P / section.A if section.A > 0.0 else 0.0
    if abs(section.S) < zero_modulus_tol:
        return axial_stress

    bending_stress = max(abs(M1), abs(M2)) / section.S
    stress_tension = axial_stress + bending_stress
    stress_compression = axial_stress - bending_stress
    if abs(stress_tension) > abs(stress_compression):
        return stress_tension
    return stress_compression


def update_element_results(
    nodes: Sequence[Node],
    elements: Sequence[Element],
    sections: Sequence[SectionProfile],
    d: np.ndarray,
    config: SolverConfig = CONFIG,
) -> Tuple[float, float]:
    """
    Fill axial force, end moments and combined stress on every element.

    Elements must already carry k_global from the current solve.

    Returns:
    --------
    (min_stress, max_stress) across all elements, used for colour mapping;
    (0.0, 0.0) when there are no elements.
    """
    if not elements:
        return 0.0, 0.0

    stresses = []
    for e in elements:
        dof_map = DOF_2D_FRAME.element_dof_map([e.ni, e.nj])
        f_local = element_end_forces_local(nodes[e.ni], nodes[e.nj], e.k_global, d[dof_map])

        e.axial_force = float(f_local[3])
        e.moment_i = float(f_local[2])
        e.moment_j = float(f_local[5])
        e.max_moment = max(abs(e.moment_i), abs(e.moment_j))
        e.stress = float(combined_stress(
            e.axial_force, e.moment_i, e.moment_j,
            sections[e.section], config.zero_modulus_tol,
        ))
        stresses.append(e.stress)

    return float(min(stresses)), float(max(stresses))


def compute_nodal_displacements(
    d: np.ndarray,
    n_nodes: int,
) -> Dict[int, Dict[str, float]]:
    """
    node_id -> {'ux', 'uy', 'rz', 'magnitude'} from the global vector.
    """
    result = {}
    for node_id in range(n_nodes):
        ux = d[DOF_2D_FRAME.idx(node_id, UX)]
        uy = d[DOF_2D_FRAME.idx(node_id, UY)]
        rz = d[DOF_2D_FRAME.idx(node_id, RZ)]
        result[node_id] = {
            'ux': float(ux),
            'uy': float(uy),
            'rz': float(rz),
            'magnitude': float(np.hypot(ux, uy)),
        }
    return result


def slider_displacement_components(node: Node, node_id: int, d: np.ndarray) -> Tuple[float, float]:
    """
    Split a node's translation into (along, perpendicular) to its slider track.

        along         =  u·cosθ + v·sinθ
        perpendicular = −u·sinθ + v·cosθ    (≈0 when the constraint holds)
    """
    u = d[DOF_2D_FRAME.idx(node_id, UX)]
    v = d[DOF_2D_FRAME.idx(node_id, UY)]
    theta = np.radians(node.angle)
    along = u * np.cos(theta) + v * np.sin(theta)
    perpendicular = -u * np.sin(theta) + v * np.cos(theta)
    return float(along), float(perpendicular)


def slider_report(nodes: Sequence[Node], d: np.ndarray) -> List[Dict[str, float]]:
    """
    Along/perpendicular movement for every SLIDER node.
    """
    rows = []
    for node_id, node in enumerate(nodes):
        if node.constraint != ConstraintKind.SLIDER:
            continue
        along, perpendicular = slider_displacement_components(node, node_id, d)
        rows.append({
            'node': node_id,
            'angle': float(node.angle),
            'along': along,
            'perpendicular': perpendicular,
        })
    return rows
