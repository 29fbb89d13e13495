import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from moldepict.molecule import BondParity, MolGraph
from moldepict.symmetry import atom_symmetry_ranks, symmetry_classes


def _graph(atom_count, bonds):
    graph = MolGraph()
    for _ in range(atom_count):
        graph.add_atom()
    for bond in bonds:
        graph.add_bond(*bond)
    return graph


def test_propane_ends_are_equivalent():
    ranks = atom_symmetry_ranks(_graph(3, [(0, 1), (1, 2)]))
    assert ranks[0] == ranks[2]
    assert ranks[1] != ranks[0]
    assert symmetry_classes(ranks) == [set({0, 2}), set({1})]


def test_butane_splits_into_two_classes():
    ranks = atom_symmetry_ranks(_graph(4, [(0, 1), (1, 2), (2, 3)]))
    classes = symmetry_classes(ranks)
    assert set({0, 3}) in classes
    assert set({1, 2}) in classes


def test_refinement_separates_by_distance():
    # 2-methylpentane: the three terminal carbons are not all equivalent
    ranks = atom_symmetry_ranks(_graph(6, [(0, 1), (1, 2), (1, 3), (3, 4), (4, 5)]))
    assert ranks[0] == ranks[2]
    assert ranks[5] != ranks[0]
    assert ranks[3] != ranks[4]


def test_benzene_is_one_class():
    ranks = atom_symmetry_ranks(_graph(6, [(i, (i + 1) % 6) for i in range(6)]))
    assert len(symmetry_classes(ranks)) == 1


def test_atom_types_are_ignored():
    graph = MolGraph()
    graph.add_atom(6)
    graph.add_atom(6)
    graph.add_atom(8)
    graph.add_bond(0, 1)
    graph.add_bond(1, 2)
    ranks = atom_symmetry_ranks(graph)
    assert ranks[0] == ranks[2]


def test_double_bond_parity_breaks_symmetry():
    # 2,4-hexadiene with one stereo double bond and one plain one
    graph = _graph(6, [(0, 1), (1, 2), (2, 3), (3, 4), (4, 5)])
    plain = atom_symmetry_ranks(graph)
    assert plain[0] == plain[5]

    graph = MolGraph()
    for _ in range(6):
        graph.add_atom()
    graph.add_bond(0, 1)
    graph.add_bond(1, 2, order=2, parity=BondParity.E)
    graph.add_bond(2, 3)
    graph.add_bond(3, 4, order=2)
    graph.add_bond(4, 5)
    ranks = atom_symmetry_ranks(graph)
    assert ranks[0] != ranks[5]


def test_ranks_start_at_one_and_are_dense():
    ranks = atom_symmetry_ranks(_graph(4, [(0, 1), (1, 2), (1, 3)]))
    assert sorted(set(ranks)) == list(range(1, len(set(ranks)) + 1))
    assert atom_symmetry_ranks(MolGraph()) == []
