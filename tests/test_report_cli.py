"""
TEST: Reports, CSV Export and the Command Line
==============================================
"""

import csv
import io

from planar_fem import ConstraintKind, Structure, UnitSystem
from planar_fem.cli import EXIT_LOAD_ERROR, EXIT_OK, EXIT_SOLVE_ERROR, main
from planar_fem.report import export_csv, format_summary
from planar_fem.serialization import save


def build_frame() -> Structure:
    s = Structure()
    mat = s.add_material("Steel", 200e9)
    sec = s.add_section("W", A=0.01, I=8e-6, S=1e-4)
    a = s.add_node(0.0, 0.0, ConstraintKind.FIXED)
    b = s.add_node(3.0, 0.0)
    c = s.add_node(6.0, 0.0, ConstraintKind.SLIDER, angle=0.0)
    s.add_element(a, b, mat, sec, is_truss=False)
    s.add_element(b, c, mat, sec, is_truss=False)
    s.set_force(b, fy=-1000.0)
    return s


def build_mechanism() -> Structure:
    s = Structure()
    mat = s.add_material("Steel", 200e9)
    sec = s.add_section("Bar", A=1e-3)
    a = s.add_node(0.0, 0.0, ConstraintKind.FIXED)
    b = s.add_node(3.0, 0.0)
    s.add_element(a, b, mat, sec, is_truss=True)
    s.set_force(b, fy=-1000.0)
    return s


def test_summary_sections():
    s = build_frame()
    result = s.solve()
    text = format_summary(s, result)

    assert text.startswith("=== SOLUTION ===")
    assert "Node 1:" in text
    assert "Slider node 2" in text
    assert "Reaction Forces & Moments (N, N·m)" in text
    assert "Node 0 (Fixed)" in text
    assert "Balanced: yes" in text
    assert "Stress Range:" in text and "MPa" in text


def test_summary_in_imperial_units():
    s = build_frame()
    s.unit_system = UnitSystem.FEET
    text = format_summary(s, s.solve())
    assert "lbf" in text
    assert "psi" in text


def test_summary_of_failed_solve():
    s = build_mechanism()
    result = s.solve()
    text = format_summary(s, result)
    assert text.startswith("SOLVE FAILED (SINGULAR)")


def test_csv_export(tmp_path):
    s = build_frame()
    assert s.solve().ok

    text = export_csv(s, tmp_path / "results")
    assert (tmp_path / "results.csv").read_text(encoding="utf-8") == text

    rows = list(csv.reader(io.StringIO(text)))
    assert rows[0] == ["Nodes"]
    assert rows[1] == ["Index", "u", "v", "theta_deg", "Constraint"]
    assert rows[2][0] == "1" and rows[2][4] == "Fixed"
    assert rows[4][4] == "Slider"

    beams = rows.index(["Beams"])
    assert rows[beams + 1] == ["Index", "NodeA", "NodeB", "Stress", "Material", "Profile"]
    assert rows[beams + 2][:3] == ["1", "1", "2"]
    assert rows[beams + 2][4:] == ["Steel", "W"]

    reactions = rows.index(["Reactions"])
    assert rows[reactions + 1] == ["Node", "Rx", "Ry", "Rtheta"]
    assert len(rows) == reactions + 2 + 3


def test_csv_export_without_path():
    s = build_frame()
    assert s.solve().ok
    assert export_csv(s).startswith("Nodes")


def test_cli_solves_a_model_file(tmp_path, capsys):
    path = save(build_frame(), tmp_path / "frame")
    csv_path = tmp_path / "frame.csv"

    code = main([str(path), "--units", "inches", "--csv", str(csv_path)])

    assert code == EXIT_OK
    out = capsys.readouterr().out
    assert "=== SOLUTION ===" in out
    assert "in" in out
    assert "CSV saved to:" in out
    assert csv_path.exists()


def test_cli_reports_load_errors(tmp_path, capsys):
    bad = tmp_path / "broken.ffem"
    bad.write_bytes(b"not a model")

    assert main([str(bad)]) == EXIT_LOAD_ERROR
    assert "Failed to load file" in capsys.readouterr().err
    assert main([str(tmp_path / "missing")]) == EXIT_LOAD_ERROR


def test_cli_reports_solve_errors(tmp_path, capsys):
    path = save(build_mechanism(), tmp_path / "mechanism")
    assert main([str(path)]) == EXIT_SOLVE_ERROR
    assert "SOLVE FAILED" in capsys.readouterr().out
