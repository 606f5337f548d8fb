"""
TEST: Structure Registry
========================

Add / remove bookkeeping: cascading deletes, index shifting, vector
resizing and element validation.
"""

import logging

import numpy as np
import pytest

from planar_fem import ConstraintKind, Element, Node, SolverConfig, Structure, UnitSystem


def build_chain() -> Structure:
    """Four nodes in a row, three members, two materials, two sections."""
    s = Structure()
    s.add_material("Steel", 200e9)
    s.add_material("Aluminium", 70e9)
    s.add_section("Bar", A=1e-3)
    s.add_section("W", A=0.01, I=8e-6, S=1e-4)
    for x in range(4):
        s.add_node(float(x), 0.0)
    s.add_element(0, 1, 0, 0)
    s.add_element(1, 2, 1, 1, is_truss=False)
    s.add_element(2, 3, 0, 1, is_truss=False)
    for node_id in range(4):
        s.set_force(node_id, fx=10.0 * node_id, fy=-1.0 * node_id, mz=0.5 * node_id)
    return s


def test_new_structure_defaults():
    s = Structure()
    assert s.n_nodes == 0
    assert s.ndof == 0
    assert s.unit_system == UnitSystem.METERS
    assert s.force_scale == 500.0
    assert s.reaction_scale == 500.0


def test_structures_do_not_share_config():
    s1 = Structure()
    s2 = Structure()
    assert s1.config is not s2.config

    s1.config.cond_limit = 1.0
    assert s2.config.cond_limit == 1e12
    assert Structure().config.cond_limit == 1e12


def test_explicit_config_is_used():
    config = SolverConfig(cond_limit=1e8)
    s = Structure(config=config)
    assert s.config is config


def test_vectors_follow_node_count():
    s = build_chain()
    assert s.ndof == 12
    assert len(s.F) == len(s.d) == len(s.R) == 12
    np.testing.assert_array_equal(s.node_force(3), [30.0, -3.0, 1.5])


def test_directly_appended_node_gets_zero_load():
    s = build_chain()
    s.nodes.append(Node(5.0, 0.0))
    s.sync_vectors()
    assert len(s.F) == 15
    np.testing.assert_array_equal(s.F[12:], np.zeros(3))
    np.testing.assert_array_equal(s.node_force(3), [30.0, -3.0, 1.5])


def test_add_force_accumulates():
    s = build_chain()
    s.add_force(1, fy=-5.0)
    np.testing.assert_array_equal(s.node_force(1), [10.0, -6.0, 0.5])


def test_remove_node_cascades_and_reindexes():
    s = build_chain()
    s.remove_node(1)

    assert s.n_nodes == 3
    # Members 0-1 and 1-2 are gone, 2-3 becomes 1-2
    assert len(s.elements) == 1
    e = s.elements[0]
    assert (e.ni, e.nj) == (1, 2)
    assert (e.material, e.section) == (0, 1)

    assert len(s.F) == 9
    np.testing.assert_array_equal(s.node_force(0), [0.0, 0.0, 0.0])
    np.testing.assert_array_equal(s.node_force(1), [20.0, -2.0, 1.0])
    np.testing.assert_array_equal(s.node_force(2), [30.0, -3.0, 1.5])


def test_remove_material_cascades_and_reindexes():
    s = build_chain()
    s.remove_material(0)

    assert [m.name for m in s.materials] == ["Aluminium"]
    assert len(s.elements) == 1
    assert s.elements[0].material == 0
    assert (s.elements[0].ni, s.elements[0].nj) == (1, 2)


def test_remove_section_cascades_and_reindexes():
    s = build_chain()
    s.remove_section(0)

    assert [sec.name for sec in s.sections] == ["W"]
    assert len(s.elements) == 2
    assert all(e.section == 0 for e in s.elements)


def test_every_surviving_reference_is_valid():
    s = build_chain()
    s.remove_node(0)
    s.remove_material(1)
    s.remove_section(1)
    for e in s.elements:
        assert s.element_problem(e) is None


def test_remove_element():
    s = build_chain()
    s.remove_element(1)
    assert [(e.ni, e.nj) for e in s.elements] == [(0, 1), (2, 3)]
    assert s.n_nodes == 4


def test_remove_out_of_range_raises():
    s = build_chain()
    with pytest.raises(IndexError):
        s.remove_node(4)
    with pytest.raises(IndexError):
        s.remove_material(-1)
    with pytest.raises(IndexError):
        s.set_force(10, fx=1.0)


def test_add_rejects_bad_records():
    s = build_chain()
    with pytest.raises(ValueError):
        s.add_material("Foam", 0.0)
    with pytest.raises(ValueError):
        s.add_section("Nothing", A=0.0)
    with pytest.raises(ValueError):
        s.add_section("Negative", A=1.0, I=-1.0)
    with pytest.raises(ValueError):
        s.add_element(0, 0, 0, 0)           # both ends on one node
    with pytest.raises(ValueError):
        s.add_element(0, 7, 0, 0)           # missing node
    with pytest.raises(ValueError):
        s.add_element(0, 1, 5, 0)           # missing material
    with pytest.raises(ValueError):
        s.add_element(0, 1, 0, 5)           # missing section
    assert len(s.elements) == 3


def test_solve_drops_invalid_elements(caplog):
    s = build_chain()
    # Cantilevered chain of frame members
    s.nodes[0].constraint = ConstraintKind.FIXED
    s.elements[0] = Element(0, 1, 0, 1, is_truss=False)
    s.elements.append(Element(0, 9, 0, 0))
    s.elements.append(Element(2, 2, 0, 0))

    with caplog.at_level(logging.WARNING):
        result = s.solve()

    assert result.ok
    assert len(s.elements) == 3
    assert "Dropping element 3" in caplog.text
    assert "Dropping element 4" in caplog.text


def test_validate_elements_returns_dropped_indices():
    s = build_chain()
    s.elements.insert(1, Element(0, 1, 3, 0))
    assert s.validate_elements() == [1]
    assert s.validate_elements() == []
