import pytest
import numpy as np
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from moldepict.arranger import arrange_all_fragments
from moldepict.fragment import Fragment
from moldepict.molecule import MolGraph


def _graph(atom_count):
    graph = MolGraph()
    for _ in range(atom_count):
        graph.add_atom()
    return graph


def _min_distance(coords):
    delta = coords[:, None, :] - coords[None, :, :]
    dist = np.hypot(delta[..., 0], delta[..., 1])
    return dist[np.triu_indices(len(coords), k=1)].min()


def test_single_atoms_do_not_overlap():
    graph = _graph(3)
    fragments = [Fragment(graph, [atom], [[0.0, 0.0]]) for atom in range(3)]
    arrange_all_fragments(fragments)

    assert len(fragments) == 1
    assert sorted(fragments[0].atoms) == [0, 1, 2]
    assert _min_distance(fragments[0].coords) >= 1.0 - 1e-9


def test_larger_fragment_keeps_its_place():
    graph = _graph(4)
    chain = Fragment(graph, [0, 1, 2], [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]])
    single = Fragment(graph, [3], [[1.0, 0.0]])
    fragments = [single, chain]
    arrange_all_fragments(fragments)

    assert len(fragments) == 1
    f = fragments[0]
    assert f.atoms[:3] == [0, 1, 2]
    assert list(f.coords[0]) == pytest.approx([0.0, 0.0])
    assert _min_distance(f.coords) >= 1.0 - 1e-9


def test_nothing_to_arrange():
    fragments = [Fragment(_graph(1), [0], [[2.0, 3.0]])]
    arrange_all_fragments(fragments)
    assert list(fragments[0].coords[0]) == [2.0, 3.0]
    fragments = []
    arrange_all_fragments(fragments)
    assert fragments == []
