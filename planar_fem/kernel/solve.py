# planar_fem/kernel/solve.py
"""
CONSTRAINED SOLVE: Partition, Reduce, Saddle-Point
==================================================

One static solve pass over an assembled system K·d = F:

1. PARTITION
   Each node's constraint kind selects which of its DOFs are solved for
   (see model.DOF_FREEDOM). Fixed DOFs are excluded and stay at zero.

2. REDUCE
   K_r = K[free, free], F_r = F[free]. No free DOFs -> NoFreeDOFError.
   A free DOF with an identically zero row in K_r (e.g. the rotation of a
   node reached only by truss members) and no slider row tying it to a
   stiff DOF is dead. It is held at zero; loading it is a mechanism.

3. SOLVE
   No sliders:   K_r · u_r = F_r

   Sliders:      one row a_x·u + a_y·v = 0 per slider node, a = unit normal
                 to the travel direction (angle + 90°). Scaled by ‖K_r‖ and
                 solved together with the stiffness equations:

                     [ K_r   Cᵀ ] [ u_r ]   [ F_r ]
                     [ C     0  ] [  λ  ] = [  0  ]

   The multiplier form works for any slider angle, where simply dropping
   a DOF only works for axis-aligned rollers.

4. FAIL LOUDLY
   Condition number (of the row-equilibrated matrix) above the limit,
   non-finite output or a wrong-sized solution raise instead of returning
   garbage displacements.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import scipy.linalg

from ..config import CONFIG, SolverConfig
from ..model import ConstraintKind, DOF_FREEDOM, Node
from .dof import DOFManager, DOF_2D_FRAME, UX, UY

logger = logging.getLogger(__name__)

# Slider normal components below this are exact zeros (axis-aligned tracks)
_AXIS_SNAP = 1e-12


class MechanismError(RuntimeError):
    """Raised when structure is unstable or ill-conditioned."""
    pass


class NoFreeDOFError(MechanismError):
    """Raised when every DOF is fixed, leaving nothing to solve."""
    pass


class SolverError(RuntimeError):
    """Raised when the linear solve returns an unusable result."""
    pass


@dataclass
class ConstrainedSolution:
    """
    Output of solve_constrained.

    d             : full displacement vector (ndof,), fixed DOFs zero
    free          : free DOF indices from the partition
    active        : free DOFs that carry stiffness (subset of free)
    n_constraints : slider rows actually used (0 -> direct path)
    multipliers   : slider reaction magnitudes (λ unscaled), one per used row
    condition     : condition number of the (row-equilibrated) matrix that was factorized
    residual      : relative residual ‖A·x − b‖ / ‖b‖ of that solve
    """
    d: np.ndarray
    free: np.ndarray
    active: np.ndarray
    n_constraints: int
    multipliers: np.ndarray
    condition: float
    residual: float


def free_dofs(kinds: Sequence[ConstraintKind], dof: DOFManager = DOF_2D_FRAME) -> np.ndarray:
    """
    Free DOF indices in node order.

    Parameters:
    -----------
    kinds : Sequence[ConstraintKind]
        Constraint kind of every node, indexed by node id
    dof : DOFManager
        Layout; with 2 DOF/node only the translational entries of the
        freedom table are used

    Returns:
    --------
    np.ndarray
        Sorted global indices of the DOFs to solve for

    Examples:
    ---------
    >>> free_dofs([ConstraintKind.FIXED, ConstraintKind.FIXED_PIN, ConstraintKind.FREE])
    array([5, 6, 7, 8])
    """
    free: List[int] = []
    for node_id, kind in enumerate(kinds):
        freedom = DOF_FREEDOM[ConstraintKind(kind)][:dof.dof_per_node]
        for local_dof, is_free in enumerate(freedom):
            if is_free:
                free.append(dof.idx(node_id, local_dof))
    return np.array(free, dtype=int)


def reduce_system(K: np.ndarray, F: np.ndarray, free: np.ndarray):
    """
    Gather K_r = K[free, free] and F_r = F[free].

    Raises:
    -------
    NoFreeDOFError
        If there are no free DOFs (fully over-constrained system)
    """
    if len(free) == 0:
        raise NoFreeDOFError("No free DOFs to solve.")
    return K[np.ix_(free, free)], F[free]


def slider_constraint_rows(
    nodes: Sequence[Node],
    free: np.ndarray,
    dof: DOFManager = DOF_2D_FRAME,
) -> np.ndarray:
    """
    Multi-point constraint matrix C_r in reduced (free-DOF) columns.

    One row per SLIDER node, in node order. The slider's `angle` is the
    allowed travel direction; the row holds the unit normal

        a = (cos(angle + 90°), sin(angle + 90°))

    at that node's ux / uy columns, so C_r · u_r = 0 means no movement
    perpendicular to the track. The rotation column is untouched.

    Returns:
    --------
    np.ndarray
        Shape (n_sliders, len(free))
    """
    sliders = [i for i, n in enumerate(nodes) if n.constraint == ConstraintKind.SLIDER]
    column = {int(g): j for j, g in enumerate(free)}

    C = np.zeros((len(sliders), len(free)), dtype=float)
    for row, node_id in enumerate(sliders):
        normal = np.radians(nodes[node_id].angle) + np.pi / 2.0
        a_x = np.cos(normal)
        a_y = np.sin(normal)
        # cos(90°) evaluates to 6e-17, not 0
        if abs(a_x) < _AXIS_SNAP:
            a_x = 0.0
        if abs(a_y) < _AXIS_SNAP:
            a_y = 0.0

        j = column.get(dof.idx(node_id, UX))
        if j is not None:
            C[row, j] = a_x
        j = column.get(dof.idx(node_id, UY))
        if j is not None:
            C[row, j] = a_y
    return C


def _active_dofs(K_r: np.ndarray, F_r: np.ndarray, C_r: np.ndarray, tol: float) -> np.ndarray:
    """
    Mask of free DOFs that take part in the solve.

    A DOF is active if its stiffness row is nonzero, or if a constraint row
    ties it to an active DOF (e.g. the uy of a 45° slider reached only by a
    horizontal bar: the track links it to the stiff ux). The rest are dead
    and held at zero.

    Raises MechanismError if a load sits on a dead DOF.
    """
    scale = float(np.max(np.abs(K_r))) if K_r.size else 0.0
    if scale == 0.0:
        active = np.zeros(K_r.shape[0], dtype=bool)
    else:
        active = np.max(np.abs(K_r), axis=1) > tol * scale

    coupled = np.abs(C_r) > 0.0
    while coupled.size:
        rows = np.any(coupled[:, active], axis=1)
        newly = np.any(coupled[rows], axis=0) & ~active
        if not np.any(newly):
            break
        active |= newly

    load_scale = max(float(np.max(np.abs(F_r))) if F_r.size else 0.0, 1.0)
    loaded_dead = (~active) & (np.abs(F_r) > 1e-12 * load_scale)
    if np.any(loaded_dead):
        raise MechanismError(
            f"Load applied to {int(np.sum(loaded_dead))} DOF(s) with no stiffness. "
            "Check supports and truss/frame flags."
        )
    return active


def _scaled_condition(A: np.ndarray) -> float:
    """
    2-norm condition number of D·A·D with D = diag(1/sqrt(max_j |A_ij|)).

    Translations (N/m) and rotations (N·m/rad) differ by many orders of
    magnitude; the raw condition number measures that unit mismatch, the
    equilibrated one measures how close A is to singular. Row maxima are
    used instead of the diagonal because saddle matrices have zeros there.
    """
    row_max = np.max(np.abs(A), axis=1)
    if np.any(row_max == 0.0):
        return np.inf
    D = 1.0 / np.sqrt(row_max)
    return float(np.linalg.cond(A * D[:, None] * D[None, :]))


def _lu_solve(A: np.ndarray, b: np.ndarray, cond_limit: float, label: str):
    """
    Condition-checked LU solve. Returns (x, cond).

    The singularity decision comes from the SVD-based condition number of
    the equilibrated matrix; LU (partial pivoting) only computes x.
    """
    cond = _scaled_condition(A)
    if not np.isfinite(cond) or cond > cond_limit:
        raise MechanismError(
            f"Unstable {label} (cond={cond:.2e}). Check supports. Need cond < {cond_limit:.0e}."
        )

    lu, piv = scipy.linalg.lu_factor(A)
    x = scipy.linalg.lu_solve((lu, piv), b)
    if not np.all(np.isfinite(x)):
        raise MechanismError(f"Non-finite solution for {label}.")
    return x, float(cond)


def _relative_residual(A: np.ndarray, x: np.ndarray, b: np.ndarray) -> float:
    b_norm = float(np.linalg.norm(b))
    r_norm = float(np.linalg.norm(A @ x - b))
    return r_norm / b_norm if b_norm > 0.0 else r_norm


def solve_constrained(
    K: np.ndarray,
    F: np.ndarray,
    free: np.ndarray,
    C_r: Optional[np.ndarray] = None,
    config: SolverConfig = CONFIG,
) -> ConstrainedSolution:
    """
    Solve K·d = F over the free DOFs, optionally subject to C_r·u_r = 0.

    Parameters:
    -----------
    K : np.ndarray
        Global stiffness (ndof, ndof)
    F : np.ndarray
        Global load vector (ndof,)
    free : np.ndarray
        Free DOF indices (from free_dofs)
    C_r : np.ndarray, optional
        Constraint rows in reduced columns, shape (m, len(free));
        None or m == 0 takes the direct path
    config : SolverConfig
        cond_limit and zero_stiffness_tol

    Returns:
    --------
    ConstrainedSolution
        d is a fresh vector: fixed DOFs are zero, never carried over

    Raises:
    -------
    NoFreeDOFError
        No free DOFs
    MechanismError
        Singular / ill-conditioned system or load on a stiffness-free DOF
    SolverError
        Solution vector of the wrong size
    """
    ndof = K.shape[0]
    free = np.asarray(free, dtype=int)
    K_r, F_r = reduce_system(K, F, free)

    if C_r is None:
        C_r = np.zeros((0, len(free)), dtype=float)
    C_r = np.asarray(C_r, dtype=float)

    mask = _active_dofs(K_r, F_r, C_r, config.zero_stiffness_tol)
    active = free[mask]
    K_a = K_r[np.ix_(mask, mask)]
    F_a = F_r[mask]
    n = len(active)

    C_a = C_r[:, mask]
    # Rows that only touched dead DOFs are already satisfied
    C_a = C_a[np.linalg.norm(C_a, axis=1) > 1e-9]
    m = C_a.shape[0]

    if n < len(free):
        logger.debug("Holding %d stiffness-free DOF(s) at zero", len(free) - n)

    multipliers = np.zeros(m, dtype=float)
    condition = 1.0
    residual = 0.0

    if n == 0:
        u_a = np.zeros(0, dtype=float)
    elif m == 0:
        u_a, condition = _lu_solve(K_a, F_a, config.cond_limit, "reduced system")
        if u_a.shape != (n,):
            raise SolverError(f"Direct solve returned {u_a.shape[0]} values, expected {n}.")
        residual = _relative_residual(K_a, u_a, F_a)
    else:
        k_scale = float(np.linalg.norm(K_a))
        constraint_scale = k_scale if k_scale > 0.0 else 1.0
        C_scaled = C_a * constraint_scale

        n_aug = n + m
        saddle = np.zeros((n_aug, n_aug), dtype=float)
        saddle[:n, :n] = K_a
        saddle[:n, n:] = C_scaled.T
        saddle[n:, :n] = C_scaled
        rhs = np.zeros(n_aug, dtype=float)
        rhs[:n] = F_a

        solution, condition = _lu_solve(saddle, rhs, config.cond_limit, "saddle-point system")
        if solution.shape != (n_aug,):
            raise SolverError(
                f"Saddle point solver returned {solution.shape[0]} values, expected {n_aug}."
            )
        residual = _relative_residual(saddle, solution, rhs)

        u_a = solution[:n]
        multipliers = solution[n:] * constraint_scale
        logger.debug(
            "Saddle system %dx%d: %d constraint(s), cond=%.3e, residual=%.3e",
            n_aug, n_aug, m, condition, residual,
        )

    d = np.zeros(ndof, dtype=float)
    d[active] = u_a

    return ConstrainedSolution(
        d=d,
        free=free,
        active=active,
        n_constraints=m,
        multipliers=multipliers,
        condition=condition,
        residual=residual,
    )


def solve_linear(
    K: np.ndarray,
    F: np.ndarray,
    fixed_dofs: list[int],
    config: SolverConfig = CONFIG,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Solve K·d = F with a plain list of fixed DOFs (no sliders).

    Convenience for hand-built systems such as the 2-DOF truss layout.

    Returns:
        d: Displacement vector (ndof,)
        R: Reaction vector K·d − F (ndof,)
        free: Array of free DOF indices
    """
    ndof = K.shape[0]
    fixed = set(int(i) for i in fixed_dofs)
    free = np.array([i for i in range(ndof) if i not in fixed], dtype=int)

    solution = solve_constrained(K, F, free, None, config)
    R = K @ solution.d - F
    return solution.d, R, free
