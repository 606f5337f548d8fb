# planar_fem/structure.py
"""
STRUCTURE: MODEL REGISTRY + SOLVE PIPELINE
==========================================

A Structure owns four index-based arenas (nodes, materials, sections,
elements) plus the global vectors:

    F  applied loads      [Fx0, Fy0, Mz0, Fx1, ...]   3 × n_nodes
    d  displacements      [u0, v0, θ0, u1, ...]       3 × n_nodes
    R  reactions          K·d − F                     3 × n_nodes

Elements reference nodes/materials/sections by integer index. Deleting any
referenced record CASCADES: dependent elements are removed and higher
indices are shifted down, so every surviving reference stays valid.

solve() rebuilds everything from scratch on each call:

    resize vectors -> validate elements -> element stiffness -> assemble K
    -> partition DOFs -> direct or saddle-point solve -> reactions
    -> element forces & stresses

Failures come back as a SolveResult status; d, R and the stresses then keep
their previous values.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional

import numpy as np

from .config import SolverConfig
from .elements import frame2d_global_stiffness
from .kernel.assemble import assemble_global_K
from .kernel.dof import DOF_2D_FRAME
from .kernel.solve import (
    ConstrainedSolution,
    MechanismError,
    NoFreeDOFError,
    SolverError,
    free_dofs,
    slider_constraint_rows,
    solve_constrained,
)
from .model import ConstraintKind, Element, MaterialProfile, Node, SectionProfile
from .post import (
    compute_nodal_displacements,
    compute_reactions,
    compute_reactions_vector,
    equilibrium_check,
    update_element_results,
)
from .units import UnitSystem

logger = logging.getLogger(__name__)

DOF_PER_NODE = DOF_2D_FRAME.dof_per_node


class SolveStatus(IntEnum):
    OK = 0
    NO_FREE_DOFS = -1
    SOLVER_FAILURE = -2
    SINGULAR = -3


@dataclass
class SolveResult:
    status: SolveStatus
    message: str = ""
    solution: Optional[ConstrainedSolution] = None

    @property
    def ok(self) -> bool:
        return self.status == SolveStatus.OK


def _resized(vec: np.ndarray, size: int) -> np.ndarray:
    """Copy of vec at the new size: existing entries kept by index, new ones zero."""
    out = np.zeros(size, dtype=float)
    keep = min(size, len(vec))
    out[:keep] = vec[:keep]
    return out


class Structure:
    """
    2D frame/truss model and its last solved state.

    Parameters:
    -----------
    nodes, elements, materials, sections : list, optional
        Initial arenas (taken as-is; validated on solve)
    unit_system : UnitSystem
        Display unit system for editors and reports; the model itself is SI
    config : SolverConfig
        Numerical tolerances; each structure gets its own copy by default

    Attributes:
    -----------
    K : np.ndarray
        Global stiffness from the last solve (3N × 3N)
    F, d, R : np.ndarray
        Loads, displacements, reactions (3N each)
    min_stress, max_stress : float
        Stress range across elements, for colour mapping
    force_scale, reaction_scale : float
        Renderer arrow scales, persisted with the model
    """

    def __init__(
        self,
        nodes: Optional[List[Node]] = None,
        elements: Optional[List[Element]] = None,
        materials: Optional[List[MaterialProfile]] = None,
        sections: Optional[List[SectionProfile]] = None,
        unit_system: UnitSystem = UnitSystem.METERS,
        config: Optional[SolverConfig] = None,
    ):
        self.nodes: List[Node] = list(nodes) if nodes else []
        self.elements: List[Element] = list(elements) if elements else []
        self.materials: List[MaterialProfile] = list(materials) if materials else []
        self.sections: List[SectionProfile] = list(sections) if sections else []
        self.unit_system = UnitSystem(unit_system)
        self.config = config if config is not None else SolverConfig()

        ndof = self.ndof
        self.K = np.zeros((ndof, ndof), dtype=float)
        self.F = np.zeros(ndof, dtype=float)
        self.d = np.zeros(ndof, dtype=float)
        self.R = np.zeros(ndof, dtype=float)
        self.min_stress = 0.0
        self.max_stress = 0.0
        self.force_scale = 500.0
        self.reaction_scale = 500.0
        self.last_result: Optional[SolveResult] = None

    # ------------------------------------------------------------------
    # Sizes
    # ------------------------------------------------------------------

    @property
    def n_nodes(self) -> int:
        return len(self.nodes)

    @property
    def ndof(self) -> int:
        return DOF_2D_FRAME.ndof(len(self.nodes))

    def sync_vectors(self) -> None:
        """
        Resize F, d and R to 3 × n_nodes, zero-padding new entries.

        Needed after nodes are appended to `nodes` directly; the add/remove
        methods keep the vectors in step themselves.
        """
        ndof = self.ndof
        if len(self.F) != ndof:
            self.F = _resized(self.F, ndof)
        if len(self.d) != ndof:
            self.d = _resized(self.d, ndof)
        if len(self.R) != ndof:
            self.R = _resized(self.R, ndof)

    # ------------------------------------------------------------------
    # Registry: add
    # ------------------------------------------------------------------

    def add_node(
        self,
        x: float,
        y: float,
        constraint: ConstraintKind = ConstraintKind.FREE,
        angle: float = 0.0,
    ) -> int:
        self.nodes.append(Node(float(x), float(y), ConstraintKind(constraint), float(angle)))
        self.sync_vectors()
        return len(self.nodes) - 1

    def add_material(self, name: str, E: float) -> int:
        if E <= 0.0:
            raise ValueError(f"Young's modulus must be positive, got {E}")
        self.materials.append(MaterialProfile(name, float(E)))
        return len(self.materials) - 1

    def add_section(self, name: str, A: float, I: float = 0.0, S: float = 0.0) -> int:
        if A <= 0.0:
            raise ValueError(f"Section area must be positive, got {A}")
        if I < 0.0 or S < 0.0:
            raise ValueError(f"Section I and S must be non-negative, got I={I}, S={S}")
        self.sections.append(SectionProfile(name, float(A), float(I), float(S)))
        return len(self.sections) - 1

    def add_element(self, ni: int, nj: int, material: int, section: int, is_truss: bool = True) -> int:
        element = Element(int(ni), int(nj), int(material), int(section), bool(is_truss))
        problem = self.element_problem(element)
        if problem:
            raise ValueError(f"Invalid element: {problem}")
        self.elements.append(element)
        return len(self.elements) - 1

    # ------------------------------------------------------------------
    # Registry: remove (cascade)
    # ------------------------------------------------------------------

    def remove_node(self, index: int) -> None:
        """
        Remove a node, every element touching it, and its 3 vector entries.
        Higher node indices in surviving elements shift down by one.
        """
        self._check_index(index, len(self.nodes), "node")
        self.elements = [e for e in self.elements if e.ni != index and e.nj != index]
        for e in self.elements:
            if e.ni > index:
                e.ni -= 1
            if e.nj > index:
                e.nj -= 1

        dofs = DOF_2D_FRAME.node_dofs(index)
        self.F = np.delete(self._sized(self.F), dofs)
        self.d = np.delete(self._sized(self.d), dofs)
        self.R = np.delete(self._sized(self.R), dofs)
        del self.nodes[index]

    def remove_material(self, index: int) -> None:
        """Remove a material and every element using it."""
        self._check_index(index, len(self.materials), "material")
        self.elements = [e for e in self.elements if e.material != index]
        for e in self.elements:
            if e.material > index:
                e.material -= 1
        del self.materials[index]

    def remove_section(self, index: int) -> None:
        """Remove a section profile and every element using it."""
        self._check_index(index, len(self.sections), "section")
        self.elements = [e for e in self.elements if e.section != index]
        for e in self.elements:
            if e.section > index:
                e.section -= 1
        del self.sections[index]

    def remove_element(self, index: int) -> None:
        self._check_index(index, len(self.elements), "element")
        del self.elements[index]

    @staticmethod
    def _check_index(index: int, size: int, what: str) -> None:
        if not 0 <= index < size:
            raise IndexError(f"{what} index {index} out of range (0..{size - 1})")

    def _sized(self, vec: np.ndarray) -> np.ndarray:
        # Vectors sized for the node list *before* a removal
        ndof = self.ndof
        return vec if len(vec) == ndof else _resized(vec, ndof)

    # ------------------------------------------------------------------
    # Loads and results access
    # ------------------------------------------------------------------

    def set_force(self, node: int, fx: float = 0.0, fy: float = 0.0, mz: float = 0.0) -> None:
        self._check_index(node, len(self.nodes), "node")
        self.sync_vectors()
        self.F[DOF_2D_FRAME.node_dofs(node)] = [fx, fy, mz]

    def add_force(self, node: int, fx: float = 0.0, fy: float = 0.0, mz: float = 0.0) -> None:
        self._check_index(node, len(self.nodes), "node")
        self.sync_vectors()
        self.F[DOF_2D_FRAME.node_dofs(node)] += [fx, fy, mz]

    def node_force(self, node: int) -> np.ndarray:
        return self.F[DOF_2D_FRAME.node_dofs(node)].copy()

    def node_displacement(self, node: int) -> np.ndarray:
        return self.d[DOF_2D_FRAME.node_dofs(node)].copy()

    def node_reaction(self, node: int) -> np.ndarray:
        return self.R[DOF_2D_FRAME.node_dofs(node)].copy()

    def reactions(self) -> Dict[int, Dict[str, float]]:
        return compute_reactions(self.R, self.nodes)

    def nodal_displacements(self) -> Dict[int, Dict[str, float]]:
        return compute_nodal_displacements(self.d, self.n_nodes)

    def equilibrium(self) -> Dict[str, float]:
        return equilibrium_check(self.nodes, self.F, self.R, self.config.equilibrium_rtol)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def element_problem(self, e: Element) -> Optional[str]:
        """Description of what is wrong with an element, or None if valid."""
        n = len(self.nodes)
        if not (0 <= e.ni < n and 0 <= e.nj < n):
            return f"node index out of range ({e.ni}, {e.nj}) with {n} nodes"
        if e.ni == e.nj:
            return f"both ends on node {e.ni}"
        if not 0 <= e.material < len(self.materials):
            return f"material index {e.material} out of range"
        if not 0 <= e.section < len(self.sections):
            return f"section index {e.section} out of range"
        return None

    def validate_elements(self) -> List[int]:
        """
        Drop invalid elements before assembly.

        Returns:
        --------
        List[int]
            Indices (in the pre-validation list) of the dropped elements
        """
        dropped = []
        kept = []
        for i, e in enumerate(self.elements):
            problem = self.element_problem(e)
            if problem:
                logger.warning("Dropping element %d: %s", i, problem)
                dropped.append(i)
            else:
                kept.append(e)
        if dropped:
            self.elements = kept
        return dropped

    # ------------------------------------------------------------------
    # Solve
    # ------------------------------------------------------------------

    def assemble(self) -> np.ndarray:
        """Recompute every element's k_global and the global K."""
        contributions = []
        for e in self.elements:
            e.k_global = frame2d_global_stiffness(
                self.nodes[e.ni], self.nodes[e.nj],
                self.materials[e.material], self.sections[e.section],
                e.is_truss, self.config,
            )
            contributions.append((DOF_2D_FRAME.element_dof_map([e.ni, e.nj]), e.k_global))
        self.K = assemble_global_K(self.ndof, contributions)
        return self.K

    def solve(self) -> SolveResult:
        """
        Full static solve: assemble -> reduce -> solve -> post-process.

        Returns:
        --------
        SolveResult
            status OK on success; NO_FREE_DOFS, SINGULAR or SOLVER_FAILURE
            otherwise, with a message. Nothing is raised.
        """
        self.sync_vectors()
        self.validate_elements()
        K = self.assemble()

        kinds = [n.constraint for n in self.nodes]
        free = free_dofs(kinds, DOF_2D_FRAME)
        C_r = slider_constraint_rows(self.nodes, free, DOF_2D_FRAME)

        try:
            solution = solve_constrained(K, self.F, free, C_r, self.config)
        except NoFreeDOFError as exc:
            result = SolveResult(SolveStatus.NO_FREE_DOFS, str(exc))
        except MechanismError as exc:
            result = SolveResult(SolveStatus.SINGULAR, str(exc))
        except SolverError as exc:
            result = SolveResult(SolveStatus.SOLVER_FAILURE, str(exc))
        else:
            result = SolveResult(SolveStatus.OK, "", solution)

        self.last_result = result
        if not result.ok:
            logger.error("Solve failed (%s): %s", result.status.name, result.message)
            return result

        self.d = solution.d
        self.R = compute_reactions_vector(K, self.d, self.F)
        self.min_stress, self.max_stress = update_element_results(
            self.nodes, self.elements, self.sections, self.d, self.config
        )
        logger.info(
            "Solved %d nodes / %d elements: %d free DOFs, %d slider constraint(s), "
            "stress range %.6g to %.6g Pa",
            self.n_nodes, len(self.elements), len(free), solution.n_constraints,
            self.min_stress, self.max_stress,
        )
        return result
