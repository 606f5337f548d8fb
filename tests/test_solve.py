"""
TEST: Partition, Reduce, Solve
==============================

DOF partitioning per constraint kind, slider constraint rows, and every
way a solve can fail:
- no free DOFs            -> NO_FREE_DOFS
- mechanism / singular    -> SINGULAR
- load on a DOF with no stiffness -> SINGULAR
- wrong-sized solution    -> SOLVER_FAILURE
Failures leave the previous displacements untouched.
"""

import logging

import numpy as np
import pytest
import scipy.linalg

from planar_fem import ConstraintKind, SolveStatus, Structure
from planar_fem.model import Node
from planar_fem.kernel import (
    DOF_2D_FRAME,
    DOF_2D_TRUSS,
    MechanismError,
    NoFreeDOFError,
    free_dofs,
    reduce_system,
    slider_constraint_rows,
    solve_constrained,
)


def test_free_dofs_per_constraint_kind():
    kinds = [ConstraintKind.FIXED, ConstraintKind.FIXED_PIN, ConstraintKind.FREE, ConstraintKind.SLIDER]
    free = free_dofs(kinds)
    # FIXED: none, FIXED_PIN: rotation only, FREE and SLIDER: all three
    assert free.tolist() == [5, 6, 7, 8, 9, 10, 11]


def test_free_dofs_truss_layout():
    kinds = [ConstraintKind.FIXED_PIN, ConstraintKind.FREE, ConstraintKind.SLIDER]
    free = free_dofs(kinds, DOF_2D_TRUSS)
    assert free.tolist() == [2, 3, 4, 5]


def test_reduce_system_with_no_free_dofs():
    with pytest.raises(NoFreeDOFError):
        reduce_system(np.eye(6), np.zeros(6), np.array([], dtype=int))


def test_slider_constraint_rows():
    nodes = [
        Node(0.0, 0.0, ConstraintKind.FIXED),
        Node(1.0, 0.0, ConstraintKind.SLIDER, angle=0.0),
        Node(2.0, 0.0, ConstraintKind.SLIDER, angle=30.0),
    ]
    free = free_dofs([n.constraint for n in nodes])
    C = slider_constraint_rows(nodes, free)

    assert C.shape == (2, len(free))
    # horizontal track: the normal is +y
    row0 = dict(zip(free.tolist(), C[0]))
    assert np.isclose(row0[3], 0.0, atol=1e-15)
    assert np.isclose(row0[4], 1.0)
    assert row0[5] == 0.0   # rotation untouched

    row1 = dict(zip(free.tolist(), C[1]))
    assert np.isclose(row1[6], -np.sin(np.radians(30.0)))
    assert np.isclose(row1[7], np.cos(np.radians(30.0)))
    assert np.isclose(np.hypot(row1[6], row1[7]), 1.0)


def test_no_sliders_gives_empty_constraint_matrix():
    nodes = [Node(0.0, 0.0, ConstraintKind.FIXED), Node(1.0, 0.0)]
    free = free_dofs([n.constraint for n in nodes])
    C = slider_constraint_rows(nodes, free)
    assert C.shape == (0, 3)


def test_load_on_stiffness_free_dof_raises():
    K = np.zeros((3, 3))
    K[0, 0] = 1.0
    F = np.array([0.0, 1.0, 0.0])
    with pytest.raises(MechanismError):
        solve_constrained(K, F, np.arange(3))


def test_unloaded_stiffness_free_dofs_are_held_at_zero():
    K = np.zeros((3, 3))
    K[0, 0] = 2.0
    F = np.array([4.0, 0.0, 0.0])
    sol = solve_constrained(K, F, np.arange(3))
    np.testing.assert_allclose(sol.d, [2.0, 0.0, 0.0])
    assert sol.active.tolist() == [0]


def test_all_fixed_structure_reports_no_free_dofs():
    s = Structure()
    mat = s.add_material("Steel", 200e9)
    sec = s.add_section("Bar", A=0.01)
    a = s.add_node(0.0, 0.0, ConstraintKind.FIXED)
    b = s.add_node(2.0, 0.0, ConstraintKind.FIXED)
    s.add_element(a, b, mat, sec)
    s.set_force(b, fy=-100.0)

    result = s.solve()
    assert result.status == SolveStatus.NO_FREE_DOFS
    assert int(result.status) == -1
    assert s.last_result is result


def test_empty_structure_reports_no_free_dofs():
    assert Structure().solve().status == SolveStatus.NO_FREE_DOFS


def test_unsupported_frame_is_singular(caplog):
    """
    Two free nodes and one frame member: rigid-body motion is unrestrained,
    so K_r is singular. The solve must say so and never produce NaN.
    """
    s = Structure()
    mat = s.add_material("Steel", 200e9)
    sec = s.add_section("W", A=0.01, I=8e-6, S=1e-4)
    a = s.add_node(0.0, 0.0)
    b = s.add_node(3.0, 0.0)
    s.add_element(a, b, mat, sec, is_truss=False)
    s.set_force(b, fx=10.0, fy=-100.0)

    with caplog.at_level(logging.ERROR):
        result = s.solve()

    assert result.status == SolveStatus.SINGULAR
    assert int(result.status) == -3
    assert "SINGULAR" in caplog.text
    assert np.all(np.isfinite(s.d))


def test_failed_solve_keeps_previous_results():
    s = Structure()
    mat = s.add_material("Steel", 200e9)
    sec = s.add_section("W", A=0.01, I=8e-6, S=1e-4)
    a = s.add_node(0.0, 0.0, ConstraintKind.FIXED)
    b = s.add_node(3.0, 0.0)
    s.add_element(a, b, mat, sec, is_truss=False)
    s.set_force(b, fy=-1000.0)
    assert s.solve().ok

    d_before = s.d.copy()
    R_before = s.R.copy()
    stress_before = s.elements[0].stress
    range_before = (s.min_stress, s.max_stress)

    # Same load on a bar that cannot bend
    s.elements[0].is_truss = True
    result = s.solve()

    assert result.status == SolveStatus.SINGULAR
    np.testing.assert_array_equal(s.d, d_before)
    np.testing.assert_array_equal(s.R, R_before)
    assert s.elements[0].stress == stress_before
    assert (s.min_stress, s.max_stress) == range_before


def test_truss_joint_rotation_is_held_at_zero():
    """
    Rotations at nodes reached only by bars have no stiffness. They are
    left at zero rather than making the system singular.
    """
    s = Structure()
    mat = s.add_material("Steel", 200e9)
    sec = s.add_section("Bar", A=1e-3)
    a = s.add_node(0.0, 0.0, ConstraintKind.FIXED_PIN)
    b = s.add_node(4.0, 0.0, ConstraintKind.FIXED_PIN)
    c = s.add_node(2.0, 3.0)
    s.add_element(a, c, mat, sec)
    s.add_element(b, c, mat, sec)
    s.set_force(c, fy=-5000.0)

    result = s.solve()
    assert result.ok
    assert s.node_displacement(c)[2] == 0.0
    assert s.node_displacement(a)[2] == 0.0
    assert len(result.solution.active) == 2
    assert s.node_displacement(c)[1] < 0.0


def test_moment_on_truss_joint_is_singular():
    s = Structure()
    mat = s.add_material("Steel", 200e9)
    sec = s.add_section("Bar", A=1e-3)
    a = s.add_node(0.0, 0.0, ConstraintKind.FIXED_PIN)
    b = s.add_node(4.0, 0.0, ConstraintKind.FIXED_PIN)
    c = s.add_node(2.0, 3.0)
    s.add_element(a, c, mat, sec)
    s.add_element(b, c, mat, sec)
    s.set_force(c, mz=10.0)

    assert s.solve().status == SolveStatus.SINGULAR


def test_solution_diagnostics():
    s = Structure()
    mat = s.add_material("Steel", 200e9)
    sec = s.add_section("W", A=0.01, I=8e-6, S=1e-4)
    a = s.add_node(0.0, 0.0, ConstraintKind.FIXED)
    b = s.add_node(3.0, 0.0)
    s.add_element(a, b, mat, sec, is_truss=False)
    s.set_force(b, fy=-1000.0)

    sol = s.solve().solution
    assert sol.d.shape == (6,)
    assert sol.free.tolist() == [3, 4, 5]
    assert 1.0 <= sol.condition < 1e12
    assert sol.residual < 1e-10
    assert sol.multipliers.shape == (0,)
    assert DOF_2D_FRAME.ndof(2) == len(sol.d)


def _short_lu_solve(lu_and_piv, b):
    return np.zeros(len(b) + 1)


def test_wrong_sized_direct_solution_is_solver_failure(monkeypatch):
    s = Structure()
    mat = s.add_material("Steel", 200e9)
    sec = s.add_section("W", A=0.01, I=8e-6, S=1e-4)
    a = s.add_node(0.0, 0.0, ConstraintKind.FIXED)
    b = s.add_node(3.0, 0.0)
    s.add_element(a, b, mat, sec, is_truss=False)
    s.set_force(b, fy=-1000.0)

    monkeypatch.setattr(scipy.linalg, "lu_solve", _short_lu_solve)
    result = s.solve()
    assert result.status == SolveStatus.SOLVER_FAILURE
    assert int(result.status) == -2
    assert np.all(s.d == 0.0)


def test_wrong_sized_saddle_solution_is_solver_failure(monkeypatch):
    s = Structure()
    mat = s.add_material("Steel", 200e9)
    sec = s.add_section("Bar", A=1e-3)
    a = s.add_node(0.0, 0.0, ConstraintKind.FIXED)
    b = s.add_node(1.0, 0.0, ConstraintKind.SLIDER, angle=45.0)
    s.add_element(a, b, mat, sec)
    s.set_force(b, fx=1000.0)

    monkeypatch.setattr(scipy.linalg, "lu_solve", _short_lu_solve)
    result = s.solve()
    assert result.status == SolveStatus.SOLVER_FAILURE
    assert "Saddle point" in result.message
