# planar_fem/kernel/dof.py
"""
DOF MANAGER: Degree of Freedom Indexing
=======================================

PURPOSE:
--------
Maps (node_id, local_dof) to a row/column of the global matrices.
Two layouts are used in the plane:

    Frame:       3 DOF/node (ux, uy, rz)  -> 6x6 element matrices
    Truss-only:  2 DOF/node (ux, uy)      -> 4x4 element matrices

Global index = dof_per_node * node_id + local_dof, so node order is DOF order.

USAGE:
------
    dof = DOFManager(dof_per_node=3)
    dof.idx(node_id=2, local_dof=1)   # -> 7
    dof.element_dof_map([0, 2])       # -> [0, 1, 2, 6, 7, 8]
"""

from dataclasses import dataclass
from typing import List

# Local DOF slots
UX = 0
UY = 1
RZ = 2


@dataclass
class DOFManager:
    """
    Manages degree-of-freedom indexing for the plane layouts.

    Attributes:
    -----------
    dof_per_node : int
        3 for frames (ux, uy, rz), 2 for truss-only models (ux, uy)

    Examples:
    ---------
    >>> dof = DOFManager(dof_per_node=3)
    >>> dof.idx(1, 0)
    3
    >>> dof.ndof(4)
    12
    >>> DOFManager(dof_per_node=2).node_dofs(2)
    [4, 5]
    """
    dof_per_node: int

    def idx(self, node_id: int, local_dof: int) -> int:
        """Global DOF index of a node's local DOF."""
        return self.dof_per_node * node_id + local_dof

    def ndof(self, n_nodes: int) -> int:
        """Total DOFs (size of K) for n_nodes."""
        return self.dof_per_node * n_nodes

    def node_dofs(self, node_id: int) -> List[int]:
        """All global DOF indices of one node."""
        base = self.dof_per_node * node_id
        return list(range(base, base + self.dof_per_node))

    def element_dof_map(self, node_ids: List[int]) -> List[int]:
        """
        Flattened DOF map used to scatter/gather an element matrix.

        >>> DOFManager(dof_per_node=3).element_dof_map([2, 5])
        [6, 7, 8, 15, 16, 17]
        """
        result = []
        for node_id in node_ids:
            result.extend(self.node_dofs(node_id))
        return result


DOF_2D_FRAME = DOFManager(dof_per_node=3)   # ux, uy, rz
DOF_2D_TRUSS = DOFManager(dof_per_node=2)   # ux, uy
