# planar_fem/report.py
"""
Text summary and CSV export of a solved Structure, in display units.
"""

import csv
import io
from pathlib import Path
from typing import Optional, TextIO, Union

from .model import ConstraintKind
from .post import slider_report
from .structure import SolveResult, Structure
from .units import (
    degrees,
    force_to_display,
    length_to_display,
    moment_to_display,
    stress_to_display,
    unit_labels,
)

CONSTRAINT_NAMES = {
    ConstraintKind.FREE: "Free",
    ConstraintKind.FIXED: "Fixed",
    ConstraintKind.FIXED_PIN: "FixedPin",
    ConstraintKind.SLIDER: "Slider",
}


def format_summary(structure: Structure, result: Optional[SolveResult] = None) -> str:
    """
    Human-readable solution summary: displacements, slider movement,
    reactions, equilibrium balance, element forces and the stress range.
    """
    system = structure.unit_system
    u = unit_labels(system)
    lines = []

    if result is not None and not result.ok:
        lines.append(f"SOLVE FAILED ({result.status.name}): {result.message}")
        return "\n".join(lines)

    lines.append("=== SOLUTION ===")
    for node_id, disp in structure.nodal_displacements().items():
        lines.append(
            f"  Node {node_id}: u={length_to_display(disp['ux'], system):.6g} {u['length']}, "
            f"v={length_to_display(disp['uy'], system):.6g} {u['length']}, "
            f"theta={degrees(disp['rz']):.6g} deg "
            f"(total disp={length_to_display(disp['magnitude'], system):.6g} {u['length']})"
        )

    for row in slider_report(structure.nodes, structure.d):
        lines.append(
            f"  Slider node {row['node']} ({row['angle']:g} deg): "
            f"along track {length_to_display(row['along'], system):.6g} {u['length']}, "
            f"perpendicular {length_to_display(row['perpendicular'], system):.3g} {u['length']}"
        )

    lines.append("")
    lines.append(f"Reaction Forces & Moments ({u['force']}, {u['moment']}):")
    for node_id, r in structure.reactions().items():
        kind = CONSTRAINT_NAMES[structure.nodes[node_id].constraint]
        lines.append(
            f"  Node {node_id} ({kind}): Fx={force_to_display(r['Rx'], system):.6g}, "
            f"Fy={force_to_display(r['Ry'], system):.6g}, "
            f"Mz={moment_to_display(r['Mz'], system):.6g}"
        )

    eq = structure.equilibrium()
    lines.append("")
    lines.append("Equilibrium Check:")
    lines.append(f"  Balance (Fx): {force_to_display(eq['balance_fx'], system):.3g} {u['force']}")
    lines.append(f"  Balance (Fy): {force_to_display(eq['balance_fy'], system):.3g} {u['force']}")
    lines.append(f"  Balance (Mz): {moment_to_display(eq['balance_mz'], system):.3g} {u['moment']}")
    lines.append(f"  Balanced: {'yes' if eq['balanced'] else 'NO'}")

    lines.append("")
    lines.append(f"Element Forces ({u['force']}, {u['moment']}) and Stress ({u['stress']}):")
    for i, e in enumerate(structure.elements):
        kind = "truss" if e.is_truss else "frame"
        lines.append(
            f"  Element {i} (nodes {e.ni}-{e.nj}, {kind}): "
            f"P={force_to_display(e.axial_force, system):.6g}, "
            f"M1={moment_to_display(e.moment_i, system):.6g}, "
            f"M2={moment_to_display(e.moment_j, system):.6g}, "
            f"stress={stress_to_display(e.stress, system):.6g}"
        )

    lines.append("")
    lines.append(
        f"Stress Range: {stress_to_display(structure.min_stress, system):.6g} to "
        f"{stress_to_display(structure.max_stress, system):.6g} {u['stress']}"
    )
    return "\n".join(lines)


def write_csv(structure: Structure, stream: TextIO) -> None:
    """
    Write the Nodes / Beams / Reactions tables to an open text stream.
    Indices are 1-based, values in the structure's display units.
    """
    system = structure.unit_system
    writer = csv.writer(stream, lineterminator="\n")

    writer.writerow(["Nodes"])
    writer.writerow(["Index", "u", "v", "theta_deg", "Constraint"])
    for i, node in enumerate(structure.nodes):
        ux, uy, rz = structure.node_displacement(i)
        writer.writerow([
            i + 1,
            length_to_display(ux, system),
            length_to_display(uy, system),
            degrees(rz),
            CONSTRAINT_NAMES[node.constraint],
        ])

    writer.writerow([])
    writer.writerow(["Beams"])
    writer.writerow(["Index", "NodeA", "NodeB", "Stress", "Material", "Profile"])
    for i, e in enumerate(structure.elements):
        material = structure.materials[e.material].name if 0 <= e.material < len(structure.materials) else ""
        profile = structure.sections[e.section].name if 0 <= e.section < len(structure.sections) else ""
        writer.writerow([
            i + 1, e.ni + 1, e.nj + 1,
            stress_to_display(e.stress, system),
            material, profile,
        ])

    writer.writerow([])
    writer.writerow(["Reactions"])
    writer.writerow(["Node", "Rx", "Ry", "Rtheta"])
    for i in range(structure.n_nodes):
        rx, ry, rm = structure.node_reaction(i)
        writer.writerow([
            i + 1,
            force_to_display(rx, system),
            force_to_display(ry, system),
            moment_to_display(rm, system),
        ])


def export_csv(structure: Structure, path: Union[str, Path, None] = None) -> str:
    """
    CSV export. Writes to `path` (".csv" appended when missing) if given and
    always returns the CSV text.
    """
    output = io.StringIO()
    write_csv(structure, output)
    text = output.getvalue()

    if path is not None:
        path = Path(path)
        if path.suffix != ".csv":
            path = path.with_name(path.name + ".csv")
        path.write_text(text, encoding="utf-8")
    return text
