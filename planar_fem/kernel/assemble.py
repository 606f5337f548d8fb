# planar_fem/kernel/assemble.py
"""
ASSEMBLY: Global Matrix Assembly
================================

Scatter-add of element contributions into the global stiffness matrix and
load vector. Assembly does not care about element type; it only needs each
element's DOF map and its matrix in global coordinates:

    K = zeros(ndof × ndof)
    for each element:
        for each (a, b) in ke:
            K[dof_map[a], dof_map[b]] += ke[a, b]

Elements sharing a DOF accumulate additively. There is no averaging and no
deduplication: two identical members on the same nodes give twice the stiffness.
"""

import numpy as np
from typing import List, Tuple


def assemble_global_K(
    ndof: int,
    contributions: List[Tuple[List[int], np.ndarray]]
) -> np.ndarray:
    """
    Assemble global stiffness matrix from element contributions.

    Parameters:
    -----------
    ndof : int
        Total number of DOFs in the system (3N for frames, 2N for trusses)

    contributions : List[Tuple[List[int], np.ndarray]]
        (dof_map, ke) per element; ke has shape (len(dof_map), len(dof_map))
        and is already in global coordinates

    Returns:
    --------
    np.ndarray
        Global stiffness matrix K, shape (ndof, ndof)

    Example:
    --------
    >>> dof = DOFManager(dof_per_node=3)
    >>> contributions = [
    ...     (dof.element_dof_map([e.ni, e.nj]), e.k_global) for e in elements
    ... ]
    >>> K = assemble_global_K(dof.ndof(len(nodes)), contributions)
    """
    K = np.zeros((ndof, ndof), dtype=float)

    for dof_map, ke in contributions:
        n_element_dofs = len(dof_map)

        assert ke.shape == (n_element_dofs, n_element_dofs), \
            f"Element ke shape {ke.shape} doesn't match dof_map length {n_element_dofs}"

        idx = np.asarray(dof_map, dtype=int)
        # np.add.at accumulates correctly even if a DOF repeats within one map
        np.add.at(K, (idx[:, None], idx[None, :]), ke)

    return K


def assemble_global_F(
    ndof: int,
    contributions: List[Tuple[List[int], np.ndarray]]
) -> np.ndarray:
    """
    Assemble a global load vector from (dof_map, fe) contributions.
    """
    F = np.zeros(ndof, dtype=float)

    for dof_map, fe in contributions:
        n_element_dofs = len(dof_map)

        assert fe.shape == (n_element_dofs,), \
            f"Element fe shape {fe.shape} doesn't match dof_map length {n_element_dofs}"

        np.add.at(F, np.asarray(dof_map, dtype=int), fe)

    return F


def add_nodal_load(
    F: np.ndarray,
    node_id: int,
    load_vector: np.ndarray,
    dof_per_node: int
) -> None:
    """
    Add a point load at a node to F (in-place).

    load_vector is [Fx, Fy, Mz] for frames or [Fx, Fy] for trusses.

    >>> F = np.zeros(6)
    >>> add_nodal_load(F, node_id=1, load_vector=np.array([0.0, -10.0, 0.0]), dof_per_node=3)
    >>> # Now F[4] = -10 (downward force at node 1)
    """
    base_dof = dof_per_node * node_id
    for i, val in enumerate(load_vector):
        F[base_dof + i] += val
