# planar_fem/kernel - Layout-agnostic assembly and constrained solve
"""
KERNEL: THE SOLVE FOUNDATION
============================

Assembly and solving don't care which element produced a matrix.
They need:
- A way to map (node_id, local_dof) -> global_dof_index
- Element stiffness matrices in global coordinates (4x4 or 6x6)
- The free DOF list and any slider constraint rows
- A load vector

Element formulations live in planar_fem.elements; this package is the plumbing.
"""

from .dof import DOFManager, DOF_2D_FRAME, DOF_2D_TRUSS
from .assemble import assemble_global_K, assemble_global_F, add_nodal_load
from .solve import (
    ConstrainedSolution,
    MechanismError,
    NoFreeDOFError,
    SolverError,
    free_dofs,
    reduce_system,
    slider_constraint_rows,
    solve_constrained,
    solve_linear,
)

__all__ = [
    'DOFManager', 'DOF_2D_FRAME', 'DOF_2D_TRUSS',
    'assemble_global_K', 'assemble_global_F', 'add_nodal_load',
    'ConstrainedSolution', 'MechanismError', 'NoFreeDOFError', 'SolverError',
    'free_dofs', 'reduce_system', 'slider_constraint_rows',
    'solve_constrained', 'solve_linear',
]
