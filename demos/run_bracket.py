import argparse

import numpy as np
import matplotlib.pyplot as plt

from planar_fem import ConstraintKind, Structure, UnitSystem
from planar_fem.report import format_summary
from planar_fem.serialization import save


def build_bracket() -> Structure:
    """
    Wall bracket: a pin-jointed truss hung off a short cantilever stub.

    - Node 4 is built into the wall; member 3-4 is the only frame member
    - Node 2 rides on a vertical slider against the wall
    - 2 kip (8896 N) pulls node 0 down and back at 60°

    Round bars: 1/2" steel and 0.4" aluminium.
    """
    d_steel = 0.0127
    d_alu = 0.01016

    s = Structure(unit_system=UnitSystem.INCHES)
    steel = s.add_material("Steel", 2.068427e11)
    alu = s.add_material("Aluminum", 7.584233e10)
    steel_bar = s.add_section(
        "Steel Beam",
        A=np.pi * (d_steel / 2.0)**2,
        I=np.pi / 64.0 * d_steel**4,
        S=np.pi / 64.0 * d_steel**4 / (d_steel / 2.0),
    )
    alu_bar = s.add_section(
        "Aluminum Beam",
        A=np.pi * (d_alu / 2.0)**2,
        I=np.pi / 64.0 * d_alu**4,
        S=np.pi / 64.0 * d_alu**4 / (d_alu / 2.0),
    )

    s.add_node(0.3048, 0.0)
    s.add_node(0.3048, 0.1524)
    s.add_node(0.0, 0.0, ConstraintKind.SLIDER, angle=90.0)
    s.add_node(0.0, 0.254)
    s.add_node(-0.254, 0.254, ConstraintKind.FIXED)

    s.add_element(0, 1, steel, steel_bar, is_truss=True)
    s.add_element(0, 2, alu, alu_bar, is_truss=True)
    s.add_element(1, 2, steel, steel_bar, is_truss=True)
    s.add_element(1, 3, alu, alu_bar, is_truss=True)
    s.add_element(2, 3, steel, steel_bar, is_truss=True)
    s.add_element(3, 4, alu, alu_bar, is_truss=False)

    P = 8896.4432305
    s.set_force(0, fx=-P * np.cos(np.radians(60.0)), fy=-P * np.sin(np.radians(60.0)))
    return s


def main():
    """
    Solve the bracket, print the report and draw the deformed shape.
    """
    parser = argparse.ArgumentParser(description="Wall bracket demo")
    parser.add_argument('--save', default=None, help='Write the model to this .ffem file')
    parser.add_argument('--no-plot', action='store_true', help='Skip the matplotlib window')
    args = parser.parse_args()

    s = build_bracket()
    result = s.solve()
    print(format_summary(s, result))
    if not result.ok:
        return

    if args.save:
        print(f"\nModel saved to: {save(s, args.save)}")

    if args.no_plot:
        return

    xs = np.array([n.x for n in s.nodes])
    ys = np.array([n.y for n in s.nodes])
    disp = s.d.reshape(-1, 3)
    # Deflections are tiny next to the bracket size
    scale = 0.1 * max(np.ptp(xs), np.ptp(ys)) / max(np.max(np.abs(disp[:, :2])), 1e-12)

    vmax = max(abs(s.min_stress), abs(s.max_stress), 1e-12)
    cmap = plt.get_cmap('coolwarm')

    plt.figure(figsize=(8, 6))
    for e in s.elements:
        i, j = e.ni, e.nj
        style = '--' if e.is_truss else '-'
        plt.plot([xs[i], xs[j]], [ys[i], ys[j]], 'k' + style, alpha=0.3, linewidth=1)
        plt.plot(
            [xs[i] + scale * disp[i, 0], xs[j] + scale * disp[j, 0]],
            [ys[i] + scale * disp[i, 1], ys[j] + scale * disp[j, 1]],
            style,
            color=cmap(0.5 + 0.5 * e.stress / vmax),
            linewidth=3,
        )

    plt.plot(xs, ys, 'ko', markersize=5)
    plt.title(f"Wall bracket (deformation ×{scale:.0f}, colour = stress)")
    plt.xlabel("x (m)")
    plt.ylabel("y (m)")
    plt.axis('equal')
    plt.grid(True, alpha=0.3)
    plt.show()


if __name__ == "__main__":
    main()
