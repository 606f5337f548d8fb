# planar_fem - 2D truss/frame finite-element solver
"""
PLANAR_FEM: A 2D Structural Finite-Element Solver
=================================================

Nodes joined by truss (axial) or frame (axial + bending) members, supports
of kind FREE / FIXED / FIXED_PIN / SLIDER, point loads, one static solve.

ARCHITECTURE:
-------------
    config.py         Numerical tolerances (SolverConfig, CONFIG)
    units.py          SI <-> display unit conversion
    model.py          Node, MaterialProfile, SectionProfile, Element
    elements.py       Frame (6x6) and truss (4x4) element stiffness
    kernel/           DOF indexing, assembly, constrained / saddle-point solve
    structure.py      Structure registry + solve() pipeline
    post.py           Reactions, equilibrium, end forces, combined stress
    serialization.py  Binary .ffem model files
    report.py         Text summary and CSV export
    cli.py            python -m planar_fem MODEL.ffem

USAGE:
------
    from planar_fem import Structure, ConstraintKind

    s = Structure()
    steel = s.add_material("Steel", 200e9)
    beam = s.add_section("W-shape", A=0.01, I=8e-6, S=1e-4)
    a = s.add_node(0.0, 0.0, ConstraintKind.FIXED)
    b = s.add_node(3.0, 0.0)
    s.add_element(a, b, steel, beam, is_truss=False)
    s.set_force(b, fy=-1000.0)
    result = s.solve()
"""

from .config import CONFIG, SolverConfig
from .kernel import MechanismError, NoFreeDOFError, SolverError
from .model import ConstraintKind, Element, MaterialProfile, Node, SectionProfile
from .structure import SolveResult, SolveStatus, Structure
from .units import UnitSystem

__version__ = "0.1.0"

__all__ = [
    'CONFIG', 'SolverConfig',
    'MechanismError', 'NoFreeDOFError', 'SolverError',
    'ConstraintKind', 'Element', 'MaterialProfile', 'Node', 'SectionProfile',
    'SolveResult', 'SolveStatus', 'Structure',
    'UnitSystem',
]
