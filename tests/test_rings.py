import pytest
import math
import numpy as np
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from moldepict.molecule import BondParity, MolGraph
from moldepict.rings import (
    ASYMMETRIC_PATTERN,
    BOND_Z_PATTERNS,
    create_ring_fragment,
    find_ring_pattern,
    pattern_ring_coords,
    regular_ring_coords,
    reverse_bits,
    ring_closes,
    ring_coords,
    ring_stereo_constraints,
)


def _ring_graph(size, double_bonds=()):
    graph = MolGraph()
    for _ in range(size):
        graph.add_atom()
    for i in range(size):
        parity = double_bonds[i] if i in double_bonds else None
        if parity is None:
            graph.add_bond(i, (i + 1) % size)
        else:
            graph.add_bond(i, (i + 1) % size, order=2, parity=parity)
    return graph


def _edge_lengths(coords):
    closed = np.vstack([coords, coords[:1]])
    return list(np.hypot(*np.diff(closed, axis=0).T))


def test_regular_hexagon():
    coords = regular_ring_coords(6)
    assert _edge_lengths(coords) == pytest.approx([1.0] * 6)

    for i in range(6):
        v1 = coords[i - 1] - coords[i]
        v2 = coords[(i + 1) % 6] - coords[i]
        cos = float(np.dot(v1, v2))
        assert math.degrees(math.acos(cos)) == pytest.approx(120.0)


def test_reverse_bits():
    assert reverse_bits(0b0011, 4) == 0b1100
    assert reverse_bits(0b1011, 5) == 0b11010


def test_unconstrained_pattern_is_first_table_entry():
    assert find_ring_pattern(10, 0, 0) == 0x273
    assert find_ring_pattern(12, 0, 0) == 0x999


@pytest.mark.parametrize("size", [10, 12, 14, 18])
def test_pattern_rings_close(size):
    pattern = find_ring_pattern(size, 0, 0)
    coords = pattern_ring_coords(pattern, size)
    assert _edge_lengths(coords) == pytest.approx([1.0] * size)


def test_pattern_respects_constraints():
    pattern = find_ring_pattern(10, 0b1, 0b100)
    assert pattern is not None
    assert pattern & 0b1 == 0
    assert pattern & 0b100


def test_unsatisfiable_or_missing_patterns():
    assert find_ring_pattern(10, 0, (1 << 10) - 1) is None
    assert find_ring_pattern(9, 0, 0) is None
    assert find_ring_pattern(30, 0, 0) is None


def test_stereo_constraints_follow_ring_bond_order():
    graph = _ring_graph(12, {2: BondParity.E, 5: BondParity.Z, 8: BondParity.UNKNOWN})
    e, z = ring_stereo_constraints(graph, list(range(12)))
    assert e == 1 << 2
    assert z == 1 << 5


def _same_side(coords, bond, size):
    """True if the ring neighbours of ``bond`` lie on the same side of it."""
    (x1, y1), (x2, y2) = coords[bond], coords[(bond + 1) % size]
    sides = []
    for atom in ((bond - 1) % size, (bond + 2) % size):
        x, y = coords[atom]
        sides.append((x2 - x1) * (y - y1) - (y2 - y1) * (x - x1) > 0)
    return sides[0] == sides[1]


@pytest.mark.parametrize("parity", [BondParity.Z, BondParity.E])
def test_large_ring_keeps_double_bond_parity(parity):
    graph = _ring_graph(12, {0: parity})
    # Z matches the table entry as it is, E only a rotation of it
    e, z = ring_stereo_constraints(graph, list(range(12)))
    expected = 0x999 if parity == BondParity.Z else 0x999 >> 1 | 1 << 11
    assert find_ring_pattern(12, e, z) == expected

    coords = ring_coords(graph, list(range(12)))
    assert _edge_lengths(coords) == pytest.approx([1.0] * 12)
    assert _same_side(coords, 0, 12) == (parity == BondParity.Z)


def test_reversed_pattern_keeps_every_parity():
    size = 16
    pattern = reverse_bits(0x8759, size)
    graph = MolGraph()
    for _ in range(size):
        graph.add_atom()
    for i in range(size):
        parity = BondParity.Z if pattern >> i & 1 else BondParity.E
        graph.add_bond(i, (i + 1) % size, order=2, parity=parity)

    coords = ring_coords(graph, list(range(size)))
    assert _edge_lengths(coords) == pytest.approx([1.0] * size)
    for bond in range(size):
        assert _same_side(coords, bond, size) == bool(pattern >> bond & 1)


def test_table_patterns_close():
    for size, entries in BOND_Z_PATTERNS.items():
        for entry in entries:
            base = entry & ~ASYMMETRIC_PATTERN
            if base:
                assert ring_closes(base, size), hex(entry)


def test_open_patterns_are_skipped(monkeypatch):
    assert not ring_closes(0x001066D9, 22)
    monkeypatch.setitem(BOND_Z_PATTERNS, 22, (0x001066D9, 0x00084909))
    assert find_ring_pattern(22, 0, 0) == 0x00084909


def test_ring_without_template_falls_back_to_polygon():
    graph = _ring_graph(9)
    coords = ring_coords(graph, list(range(9)))
    assert coords == pytest.approx(regular_ring_coords(9))


def test_ring_fragment_priority():
    graph = _ring_graph(5)
    ring = graph.ring_set[0]
    f = create_ring_fragment(graph, ring.atoms, ring.bonds)
    assert len(f) == 5
    assert set(f.priority) == {123}
