# planar_fem/cli.py
"""
Command-line entry point: load a .ffem model, solve it, print the summary.

    python -m planar_fem bridge.ffem
    python -m planar_fem bridge.ffem --units inches --csv results.csv
"""

import argparse
import logging
import sys
from typing import List, Optional

from .report import export_csv, format_summary
from .serialization import PersistenceError, load
from .units import UnitSystem

EXIT_OK = 0
EXIT_LOAD_ERROR = 1
EXIT_SOLVE_ERROR = 2

UNIT_CHOICES = {
    'feet': UnitSystem.FEET,
    'meters': UnitSystem.METERS,
    'inches': UnitSystem.INCHES,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='planar_fem',
        description='Solve a 2D truss/frame model file and report displacements, reactions and stresses',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m planar_fem bridge.ffem
  python -m planar_fem bridge.ffem --units meters --csv bridge_results.csv
        """
    )
    parser.add_argument('model', help='Model file (.ffem appended when missing)')
    parser.add_argument(
        '--units',
        choices=sorted(UNIT_CHOICES),
        default=None,
        help='Display units for the report (default: the unit system stored in the file)'
    )
    parser.add_argument('--csv', default=None, help='Also export Nodes/Beams/Reactions to this CSV file')
    parser.add_argument('-v', '--verbose', action='count', default=0, help='-v for info, -vv for debug logging')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')

    try:
        structure = load(args.model)
    except PersistenceError as exc:
        print(f"Failed to load file: {exc}", file=sys.stderr)
        return EXIT_LOAD_ERROR

    if args.units is not None:
        structure.unit_system = UNIT_CHOICES[args.units]

    result = structure.solve()
    print(format_summary(structure, result))
    if not result.ok:
        return EXIT_SOLVE_ERROR

    if args.csv:
        export_csv(structure, args.csv)
        print(f"\nCSV saved to: {args.csv}")
    return EXIT_OK
