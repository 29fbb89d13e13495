import pytest
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from moldepict.context import LayoutMode
from moldepict.inventor import CoordinateInventor
from moldepict.molecule import BondParity, MolGraph


def _side(coords, atom1, atom2, atom):
    """Sign of the cross product telling on which side of atom1->atom2 an atom lies."""
    (x1, y1), (x2, y2), (x, y) = coords[atom1], coords[atom2], coords[atom]
    return (x2 - x1) * (y - y1) - (y2 - y1) * (x - x1) > 0


def _butene(parity):
    graph = MolGraph()
    for _ in range(4):
        graph.add_atom()
    graph.add_bond(0, 1)
    graph.add_bond(1, 2, order=2, parity=parity)
    graph.add_bond(2, 3)
    return graph


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_butene_geometry_matches_parity(seed):
    inventor = CoordinateInventor(LayoutMode.NONE, seed=seed)

    coords = inventor(_butene(BondParity.E))
    assert _side(coords, 1, 2, 0) != _side(coords, 1, 2, 3)

    coords = inventor(_butene(BondParity.Z))
    assert _side(coords, 1, 2, 0) == _side(coords, 1, 2, 3)


def test_parity_refers_to_lowest_index_substituents():
    # 2-methyl-2-butene like skeleton with distinct substituents on atom 1
    for parity in (BondParity.E, BondParity.Z):
        graph = MolGraph()
        for _ in range(5):
            graph.add_atom()
        graph.add_bond(0, 1)
        graph.add_bond(1, 2, order=2, parity=parity)
        graph.add_bond(2, 3)
        graph.add_bond(1, 4)

        coords = CoordinateInventor(LayoutMode.NONE, seed=0)(graph)
        same_side = _side(coords, 1, 2, 0) == _side(coords, 1, 2, 3)
        assert same_side == (parity == BondParity.Z)
        assert _side(coords, 1, 2, 0) != _side(coords, 1, 2, 4)


def test_unspecified_chain_double_bond_becomes_unknown():
    graph = _butene(BondParity.NONE)
    CoordinateInventor(LayoutMode.NONE)(graph)
    assert graph.bond_parity(1) == BondParity.UNKNOWN


def test_small_ring_double_bond_keeps_parity():
    # cyclohexene
    graph = MolGraph()
    for _ in range(6):
        graph.add_atom()
    graph.add_bond(0, 1, order=2)
    for i in range(1, 6):
        graph.add_bond(i, (i + 1) % 6)
    CoordinateInventor(LayoutMode.NONE)(graph)
    assert graph.bond_parity(0) == BondParity.NONE
