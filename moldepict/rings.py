"""Coordinates for single rings.

Rings below eight atoms become regular polygons. Larger rings are first
matched against a curated table of bond turn patterns that keeps E/Z double
bond parities intact; without a matching pattern they fall back to a regular
polygon as well.
"""

# External imports
import logging
import math
import numpy as np
from typing import Dict, Optional, Sequence, Tuple

# Internal imports
from moldepict.fragment import Fragment
from moldepict.molecule import BondParity, MolGraph


logger = logging.getLogger(__name__)

LARGE_RING_MIN_SIZE = 8
PRIORITY_RING = 128
ASYMMETRIC_PATTERN = 0x80000000

# Turn patterns per ring size, one bit per ring bond (E = 0, Z = 1). Values
# with ASYMMETRIC_PATTERN set differ from their own bit reversal. Zero values
# are unused slots.
BOND_Z_PATTERNS: Dict[int, Tuple[int, ...]] = {
    10: (
        0x00000273,  # 1001110011 sym
    ),
    12: (
        0x00000999,  # 100110011001 sym
    ),
    14: (
        0x00000993,  # 00100110010011 sym
        0x000021C3,  # 10000111000011 sym
        0x000009D7,  # 00100111010111 sym
    ),
    16: (
        0x00008649,  # 1000011001001001 sym
        0x80008759,  # 1000011101011001 asy
    ),
    18: (
        0x00009249,  # 001001001001001001 sym
        0x00021861,  # 100001100001100001 sym
        0x000175D7,  # 010111010111010111 sym
        0x00008643,  # 001000011001000011 sym
        0x000093B7,  # 001001001110110111 sym
        0x0000D66B,  # 001101011001101011 sym
        0x00020703,  # 100000011100000011 sym
        0x8002A753,  # 101010011101010011 asy
        0x0000D649,  # 001101011001001001 sym
        0x0000D759,  # 001101011101011001 sym
        0x80008753,  # 001000011101010011 asy
        0x80008717,  # 001000011100010111 asy
    ),
    20: (
        0x00081909,  # 10000001100100001001 sym
        0x00081D6B,  # 10000001110101101011 sym
        0x000DB861,  # 11011011100001100001 sym
        0x00021849,  # 00100001100001001001 sym
        0x000A9959,  # 10101001100101011001 sym
        0x80081D49,  # 10000001110101001001 asy
        0x800819A3,  # 10000001100110100011 asy
        0x80084ED9,  # 10000100111011011001 asy
        0x80087475,  # 10000111010001110101 asy
        0x80087464,  # 10000111010001100100 asy
        0x800D19A9,  # 11010001100110101001 asy
        0x80086BA9,  # 10000110101110101001 asy
        0x800849A9,  # 10000100100110101001 asy
        0x80086B21,  # 10000110101100100001 asy
    ),
    22: (
        0x00084909,  # 0010000100100100001001 sym
        0x00021843,  # 0000100001100001000011 sym
        0x00206121,  # 1000000110000100100001 sym
        0x00081903,  # 0010000001100100000011 sym
        0x0021AC35,  # 1000011010110000110101 sym
        0x802A4D49,  # 1010100100110101001001 asy
        0x00035849,  # 0000110101100001001001 sym
        0x002B5909,  # 1010110101100100001001 sym
        0x00021953,  # 0000100001100101010011 sym
        0x80095909,  # 0010010101100100001001 asy
        0x80035959,  # 0000110101100101011001 asy
        0x00095D49,  # 0010010101110101001001 sym
        0x80206561,  # 1000000110010101100001 asy
        0x800D1909,  # 0011010001100100001001 asy
        0x000A9953,  # 0010101001100101010011 sym
        0x00257535,  # 1001010111010100110101 sym
        0x80207461,  # 1000000111010001100001 asy
        0x80021D13,  # 0000100001110100010011 asy
        0x800876C9,  # 0010000111011011001001 asy
        0x80086BA3,  # 0010000110101110100011 asy
        0x802B5D49,  # 1010110101110101001001 asy
        0x80081D43,  # 0010000001110101000011 asy
        0x800D192B,  # 0011010001100100101011 asy
        0x800D1D49,  # 0011010001110101001001 asy
        0x002B5D6B,  # 1010110101110101101011 sym
        0x002066D9,  # 1000000110011011011001 sym
        0x800D19A3,  # 0011010001100110100011 asy
        0x002AB953,  # 1010101011100101010011 sym
        0x802A1D43,  # 1010100001110101000011 asy
        0x00021D57,  # 0000100001110101010111 sym
        0x000D1C59,  # 0011010001110001011001 sym
        0x8021DB35,  # 1000011101101100110101 asy
        0x80229903,  # 1000101001100100000011 asy
        0x800D1D6B,  # 0011010001110101101011 asy
        0x802A76C9,  # 1010100111011011001001 asy
        0x800876EB,  # 0010000111011011101011 asy
        0x80369909,  # 1101101001100100001001 asy
        0x80347535,  # 1101000111010100110101 asy
        0x800A9917,  # 0010101001100100010111 asy
        0x0022EBA3,  # 1000101110101110100011 sym
        0x00084E97,  # 0010000100111010010111 sym
        0x00201C03,  # 1000000001110000000011 sym
        0x8008B917,  # 0010001011100100010111 asy
        0x802DD753,  # 1011011101011101010011 asy
        0x00377249,  # 1101110111001001001001 sym
        0x80095CB7,  # 0010010101110010110111 asy
        0x80081C17,  # 0010000001110000010111 asy
    ),
    24: (
        0x00818181,  # 100000011000000110000001 sym
        0x002126D9,  # 001000010010011011011001 sym
        0x00204C03,  # 001000000100110000000011 sym
        0x00000000,
        0x00000000,
        0x00000000,
        0x00000000,
        0x00000000,
        0x00000000,
        0x00000000,
        0x00000000,
        0x00000000,
        0x00000000,
        0x00000000,
        0x00000000,
        0x00000000,
        0x00000000,
        0x00000000,
        0x0086BB75,  # 100001101011101101110101 sym
    ),
}


def regular_ring_coords(size: int) -> np.ndarray:
    """Regular polygon with unit edges, first atom at the origin."""
    angle_change = math.pi - (math.pi * (size - 2)) / size
    coords = np.zeros((size, 2))
    for i in range(1, size):
        coords[i, 0] = coords[i - 1, 0] + math.sin(angle_change * (i - 1))
        coords[i, 1] = coords[i - 1, 1] + math.cos(angle_change * (i - 1))
    return coords


def ring_stereo_constraints(graph: MolGraph, ring_bonds: Sequence[int]) -> Tuple[int, int]:
    """Bit masks of ring bonds that must be E and must be Z."""
    e_constraint = 0
    z_constraint = 0
    for i, bond in enumerate(ring_bonds):
        if graph.bond_order(bond) == 2:
            parity = graph.bond_parity(bond)
            if parity == BondParity.E:
                e_constraint |= 1 << i
            elif parity == BondParity.Z:
                z_constraint |= 1 << i
    return e_constraint, z_constraint


def reverse_bits(pattern: int, size: int) -> int:
    reversed_pattern = 0
    for bit in range(size):
        reversed_pattern = (reversed_pattern << 1) | ((pattern >> bit) & 1)
    return reversed_pattern


def find_ring_pattern(size: int, e_constraint: int, z_constraint: int) -> Optional[int]:
    """First rotation or reversal of a tabulated pattern meeting the constraints.

    Patterns whose walk does not close are skipped, as are their rotations.
    """
    for entry in BOND_Z_PATTERNS.get(size, ()):
        base = entry & ~ASYMMETRIC_PATTERN
        if base == 0:
            continue
        if not ring_closes(base, size):
            logger.debug("Skipping turn pattern %#x: %d-membered ring does not close", base, size)
            continue

        candidates = [base]
        if entry & ASYMMETRIC_PATTERN:
            candidates.append(reverse_bits(base, size))

        for pattern in candidates:
            for _ in range(size):
                if pattern & e_constraint == 0 and ~pattern & z_constraint == 0:
                    return pattern
                pattern = ((pattern & 1) << (size - 1)) | (pattern >> 1)
    return None


def pattern_ring_coords(pattern: int, size: int) -> np.ndarray:
    """Walk the ring with 60 degree turns; every E bit reverses the turn."""
    coords = np.zeros((size, 2))
    bond_angle = 0.0
    right_turn = True   # ring closes with right turns
    for i in range(1, size):
        coords[i, 0] = coords[i - 1, 0] + math.sin(bond_angle)
        coords[i, 1] = coords[i - 1, 1] + math.cos(bond_angle)
        if pattern & 1 == 0:
            right_turn = not right_turn
        bond_angle += math.pi / 3 if right_turn else -math.pi / 3
        pattern >>= 1
    return coords


def ring_closes(pattern: int, size: int) -> bool:
    """True if the walk of ``pattern`` ends one bond length from its start."""
    coords = pattern_ring_coords(pattern, size)
    return abs(math.hypot(*(coords[-1] - coords[0])) - 1.0) < 1e-6


def ring_coords(graph: MolGraph, ring_bonds: Sequence[int]) -> np.ndarray:
    size = len(ring_bonds)
    if size < LARGE_RING_MIN_SIZE:
        return regular_ring_coords(size)

    pattern = find_ring_pattern(size, *ring_stereo_constraints(graph, ring_bonds))
    if pattern is None:
        logger.debug("No turn pattern for %d-membered ring, using regular polygon", size)
        return regular_ring_coords(size)

    logger.debug("Using turn pattern %#x for %d-membered ring", pattern, size)
    return pattern_ring_coords(pattern, size)


def create_ring_fragment(
    graph: MolGraph,
    ring_atoms: Sequence[int],
    ring_bonds: Sequence[int],
) -> Fragment:
    """Fragment holding one ring; smaller rings get higher priority."""
    size = len(ring_atoms)
    return Fragment(graph, ring_atoms, ring_coords(graph, ring_bonds),
                    PRIORITY_RING - size)
