# planar_fem/serialization.py
"""
PERSISTENCE: BINARY MODEL FILES (.ffem)
=======================================

Little-endian layout, version 2:

    u32   magic 0x53595356
    u32   format version (2)
    u8    unit system (0 = feet, 1 = meters, 2 = inches)
    f64×4 length display factor per m, force display factor per N,
          renderer force scale, renderer reaction scale

    u32   material count
          per material:  str name, f64 E
    u32   section count
          per section:   str name, f64 A, f64 I, f64 S
    u32   node count
          per node:      f32 x, f32 y, i32 constraint kind, f32 angle
    u32   element count
          per element:   i32 ni, i32 nj, f32 stress, i32 material,
                         i32 section, u8 truss flag
    u32   force count
          f64 × count    [Fx0, Fy0, Mz0, Fx1, ...]

    str = u32 byte length + UTF-8 bytes

Version 1 files have no version/unit block (the u32 after the magic is the
material count) and no truss flag; their elements load as trusses.

Loading never touches an existing model: loads() builds a new Structure or
raises a PersistenceError subclass.
"""

import logging
import struct
from pathlib import Path
from typing import Union

import numpy as np

from .model import ConstraintKind, Element, MaterialProfile, Node, SectionProfile
from .structure import Structure
from .units import UnitSystem, force_to_display, length_to_display

logger = logging.getLogger(__name__)

FILE_MAGIC = 0x53595356  # "VSYS" in little-endian byte order
FORMAT_VERSION = 2
FILE_EXTENSION = ".ffem"


class PersistenceError(ValueError):
    """Base class for model file errors."""
    pass


class BadMagicError(PersistenceError):
    pass


class UnsupportedVersionError(PersistenceError):
    pass


class TruncatedFileError(PersistenceError):
    pass


class InvalidReferenceError(PersistenceError):
    pass


class _Reader:
    """Sequential little-endian reader over a bytes buffer."""

    def __init__(self, data: bytes):
        self.data = memoryview(data)
        self.pos = 0

    def read(self, fmt: str, what: str) -> tuple:
        size = struct.calcsize(fmt)
        if self.pos + size > len(self.data):
            raise TruncatedFileError(f"Unexpected end of file reading {what} at byte {self.pos}.")
        values = struct.unpack_from(fmt, self.data, self.pos)
        self.pos += size
        return values

    def u32(self, what: str) -> int:
        return self.read("<I", what)[0]

    def string(self, what: str) -> str:
        length = self.u32(f"{what} length")
        if self.pos + length > len(self.data):
            raise TruncatedFileError(f"Unexpected end of file reading {what}.")
        raw = bytes(self.data[self.pos:self.pos + length])
        self.pos += length
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PersistenceError(f"{what} is not valid UTF-8.") from exc

    def doubles(self, count: int, what: str) -> np.ndarray:
        size = 8 * count
        if count == 0:
            return np.zeros(0, dtype=float)
        if self.pos + size > len(self.data):
            raise TruncatedFileError(f"Unexpected end of file reading {what}.")
        values = np.frombuffer(self.data, dtype="<f8", count=count, offset=self.pos).astype(float)
        self.pos += size
        return values

    def skip(self, size: int) -> None:
        self.pos = min(self.pos + size, len(self.data))


def _pack_string(text: str) -> bytes:
    raw = text.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def dumps(structure: Structure, version: int = FORMAT_VERSION) -> bytes:
    """
    Serialize a Structure to bytes.

    Parameters:
    -----------
    structure : Structure
        Model to write; its force vector is written at 3 × n_nodes
    version : int
        2 (current) or 1 (legacy layout without unit block and truss flag)
    """
    if version not in (1, FORMAT_VERSION):
        raise UnsupportedVersionError(f"Cannot write format version {version}.")

    parts = [struct.pack("<I", FILE_MAGIC)]
    if version >= 2:
        system = structure.unit_system
        parts.append(struct.pack("<I", version))
        parts.append(struct.pack("<B", int(system)))
        parts.append(struct.pack(
            "<4d",
            length_to_display(1.0, system),
            force_to_display(1.0, system),
            structure.force_scale,
            structure.reaction_scale,
        ))

    parts.append(struct.pack("<I", len(structure.materials)))
    for m in structure.materials:
        parts.append(_pack_string(m.name))
        parts.append(struct.pack("<d", m.E))

    parts.append(struct.pack("<I", len(structure.sections)))
    for s in structure.sections:
        parts.append(_pack_string(s.name))
        parts.append(struct.pack("<3d", s.A, s.I, s.S))

    parts.append(struct.pack("<I", len(structure.nodes)))
    for n in structure.nodes:
        parts.append(struct.pack("<2fif", n.x, n.y, int(n.constraint), n.angle))

    parts.append(struct.pack("<I", len(structure.elements)))
    for e in structure.elements:
        parts.append(struct.pack("<2if2i", e.ni, e.nj, e.stress, e.material, e.section))
        if version >= 2:
            parts.append(struct.pack("<B", 1 if e.is_truss else 0))

    forces = np.zeros(structure.ndof, dtype="<f8")
    keep = min(len(structure.F), structure.ndof)
    forces[:keep] = structure.F[:keep]
    parts.append(struct.pack("<I", len(forces)))
    parts.append(forces.tobytes())

    return b"".join(parts)


def loads(data: bytes) -> Structure:
    """
    Deserialize bytes into a new Structure.

    Raises:
    -------
    BadMagicError
        Not a model file
    TruncatedFileError
        Stream ends before the layout does
    InvalidReferenceError
        An element references a node/material/section that does not exist
    """
    r = _Reader(data)

    magic = r.u32("file magic")
    if magic != FILE_MAGIC:
        raise BadMagicError(f"File magic mismatch (got 0x{magic:08X}, expected 0x{FILE_MAGIC:08X}).")

    unit_system = UnitSystem.METERS
    force_scale = 500.0
    reaction_scale = 500.0

    header = r.u32("format version")
    if header == FORMAT_VERSION:
        version = header
        unit_byte = r.read("<B", "unit metadata")[0]
        try:
            unit_system = UnitSystem(unit_byte)
        except ValueError:
            logger.warning("Unknown unit selector %d in file; using meters", unit_byte)
        _length_factor, _force_factor, force_scale, reaction_scale = r.read("<4d", "unit scaling metadata")
        material_count = r.u32("material count")
    else:
        # Legacy layout: the word after the magic is the material count
        version = 1
        material_count = header

    materials = []
    for i in range(material_count):
        name = r.string(f"material {i} name")
        (E,) = r.read("<d", f"material {i}")
        materials.append(MaterialProfile(name, E))

    section_count = r.u32("section count")
    sections = []
    for i in range(section_count):
        name = r.string(f"section {i} name")
        A, I, S = r.read("<3d", f"section {i}")
        sections.append(SectionProfile(name, A, I, S))

    node_count = r.u32("node count")
    nodes = []
    for i in range(node_count):
        x, y, kind, angle = r.read("<2fif", f"node {i}")
        try:
            constraint = ConstraintKind(kind)
        except ValueError:
            logger.warning("Node %d has unknown constraint kind %d; treating as FREE", i, kind)
            constraint = ConstraintKind.FREE
        nodes.append(Node(x, y, constraint, angle))

    element_count = r.u32("element count")
    elements = []
    for i in range(element_count):
        ni, nj, stress, mat_idx, sec_idx = r.read("<2if2i", f"element {i}")
        is_truss = True
        if version >= 2:
            is_truss = r.read("<B", f"element {i} truss flag")[0] != 0

        if not (0 <= mat_idx < len(materials) and 0 <= sec_idx < len(sections)):
            raise InvalidReferenceError(
                f"Invalid material/section index in element {i} "
                f"(material {mat_idx} of {len(materials)}, section {sec_idx} of {len(sections)})."
            )
        if not (0 <= ni < len(nodes) and 0 <= nj < len(nodes)):
            raise InvalidReferenceError(
                f"Invalid node index in element {i} ({ni}, {nj}) with {len(nodes)} nodes."
            )
        element = Element(ni, nj, mat_idx, sec_idx, is_truss)
        element.stress = stress
        elements.append(element)

    structure = Structure(nodes, elements, materials, sections, unit_system)
    structure.force_scale = force_scale
    structure.reaction_scale = reaction_scale

    force_count = r.u32("forces count")
    expected = structure.ndof
    if force_count == expected:
        structure.F = r.doubles(force_count, "forces data")
    else:
        logger.warning(
            "Forces count in file (%d) does not match expected (%d); zeroing forces",
            force_count, expected,
        )
        r.skip(8 * force_count)

    if elements:
        structure.min_stress = float(min(e.stress for e in elements))
        structure.max_stress = float(max(e.stress for e in elements))
    return structure


def _with_extension(path: Union[str, Path]) -> Path:
    path = Path(path)
    if path.suffix != FILE_EXTENSION:
        path = path.with_name(path.name + FILE_EXTENSION)
    return path


def save(structure: Structure, path: Union[str, Path]) -> Path:
    """Write a model file, appending .ffem when missing. Returns the path written."""
    path = _with_extension(path)
    path.write_bytes(dumps(structure))
    return path


def load(path: Union[str, Path]) -> Structure:
    """Read a model file (.ffem appended when missing)."""
    path = _with_extension(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise PersistenceError(f"Could not open {path} for reading: {exc}") from exc
    return loads(data)
