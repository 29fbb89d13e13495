import pytest
import math
import random
import numpy as np
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from moldepict.builder import FragmentBuilder
from moldepict.context import LayoutContext, LayoutMode
from moldepict.fragment import Fragment
from moldepict.fusion import (
    fuse_at_atom,
    join_key,
    join_overlapping_fragments,
    shared_atoms,
    suggest_new_bond_angle,
)
from moldepict.molecule import MolGraph


def _graph(atom_count, bonds):
    graph = MolGraph()
    for _ in range(atom_count):
        graph.add_atom()
    for bond in bonds:
        graph.add_bond(*bond)
    return graph


def _context(graph):
    return LayoutContext.create(graph, LayoutMode.NONE, random.Random(0))


def _angle_at(f, center, atom1, atom2):
    p = f.coords[f.index(center)]
    v1 = f.coords[f.index(atom1)] - p
    v2 = f.coords[f.index(atom2)] - p
    cos = float(np.dot(v1, v2) / (np.linalg.norm(v1) * np.linalg.norm(v2)))
    return math.degrees(math.acos(max(-1.0, min(1.0, cos))))


def test_terminal_join_is_bent():
    graph = _graph(3, [(0, 1), (1, 2)])
    ctx = _context(graph)
    f1 = Fragment(graph, [0, 1], [[0.0, 0.0], [1.0, 0.0]], 130)
    f2 = Fragment(graph, [1, 2], [[0.0, 0.0], [1.0, 0.0]], 130)
    assert join_key(f1, f2, shared_atoms(f1, f2)) == (1, 130, 130, 1)

    fused = fuse_at_atom(ctx, f1, f2, 1)
    assert fused.atoms == [0, 1, 2]
    assert _angle_at(fused, 1, 0, 2) == pytest.approx(120.0)
    assert list(fused.coords[0]) == pytest.approx([0.0, 0.0])


def test_suggested_angle_points_into_largest_gap():
    graph = _graph(3, [(0, 1), (0, 2)])
    ctx = _context(graph)
    f = Fragment(graph, [0, 1, 2], [[0.0, 0.0], [0.0, 1.0], [1.0, 0.0]])
    # neighbours at 0 and 90 degrees leave the gap around 225 degrees
    angle = suggest_new_bond_angle(ctx, f, 0)
    assert math.sin(angle) == pytest.approx(math.sin(math.radians(225.0)))
    assert math.cos(angle) == pytest.approx(math.cos(math.radians(225.0)))

    f = Fragment(graph, [0, 1], [[0.0, 0.0], [0.0, 1.0]])
    assert suggest_new_bond_angle(ctx, f, 0) == pytest.approx(math.pi)


def test_contained_fragment_is_dropped():
    graph = _graph(3, [(0, 1), (1, 2)])
    ctx = _context(graph)
    big = Fragment(graph, [0, 1, 2], [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]], 10)
    small = Fragment(graph, [1, 2], [[5.0, 5.0], [6.0, 5.0]], 20)
    ctx.fragments.extend([big, small])
    join_overlapping_fragments(ctx)
    assert ctx.fragments == [big]
    assert list(big.coords[2]) == pytest.approx([2.0, 0.0])


def test_naphthalene_rings_fuse_side_by_side():
    graph = _graph(10, [(0, 1), (1, 2), (2, 3), (3, 4), (4, 5), (5, 0),
                        (4, 6), (6, 7), (7, 8), (8, 9), (9, 5)])
    ctx = _context(graph)
    FragmentBuilder(ctx).locate_initial_fragments()
    join_overlapping_fragments(ctx)
    assert len(ctx.fragments) == 1
    f = ctx.fragments[0]
    assert sorted(f.atoms) == list(range(10))

    delta = f.coords[:, None, :] - f.coords[None, :, :]
    dist = np.hypot(delta[..., 0], delta[..., 1])
    assert dist[np.triu_indices(10, k=1)].min() == pytest.approx(1.0)
    for bond in range(graph.bond_count):
        a1, a2 = graph.bond_atoms(bond)
        assert dist[f.index(a1), f.index(a2)] == pytest.approx(1.0)


def test_fusion_leaves_disjoint_fragments():
    # spiro[3.4]octane with a propyl side chain
    graph = _graph(11, [(0, 1), (1, 2), (2, 3), (3, 0),
                        (0, 4), (4, 5), (5, 6), (6, 7), (7, 0),
                        (2, 8), (8, 9), (9, 10)])
    ctx = _context(graph)
    builder = FragmentBuilder(ctx)
    builder.locate_initial_fragments()
    join_overlapping_fragments(ctx)
    builder.locate_chain_fragments()
    join_overlapping_fragments(ctx)
    assert len(ctx.fragments) == 1
    assert sorted(ctx.fragments[0].atoms) == list(range(11))
