import pytest
import numpy as np
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Skip this test module entirely if RDKit is not available
pytest.importorskip("rdkit", reason="requires RDKit")
from rdkit import Chem
from rdkit.Chem.rdchem import Conformer

from moldepict.context import LayoutMode
from moldepict.molecule import BondParity, MolGraph
from moldepict.utils import compute_2d_coords, mol_to_graph, set_2d_coords


def test_mol_to_graph_kekulizes_aromatic_rings():
    mol = Chem.MolFromSmiles("c1ccccc1")
    graph = mol_to_graph(mol)
    assert graph.atom_count == 6
    assert graph.bond_count == 6
    assert sum(graph.bond_order(b) for b in range(6)) == 9
    # the input molecule is left aromatic
    assert mol.GetBondWithIdx(0).GetIsAromatic()


def test_mol_to_graph_reads_double_bond_stereo():
    graph = mol_to_graph(Chem.MolFromSmiles("C/C=C/C"))
    assert graph.bond_parity(1) == BondParity.E

    graph = mol_to_graph(Chem.MolFromSmiles("C/C=C\\C"))
    assert graph.bond_parity(1) == BondParity.Z

    graph = mol_to_graph(Chem.MolFromSmiles("CC=CC"))
    assert graph.bond_parity(1) == BondParity.NONE


def test_mol_to_graph_marks_atoms_with_conformer_positions():
    mol = Chem.MolFromSmiles("CCO")
    conf = Conformer(3)
    for atom in range(3):
        conf.SetAtomPosition(atom, (1.5 * atom, 0.0, 0.0))
    mol.AddConformer(conf)

    graph = mol_to_graph(mol, marked_atoms=[0, 1])
    assert [graph.is_marked(a) for a in range(3)] == [True, True, False]
    assert graph.position(1) == pytest.approx((1.5, 0.0))
    assert graph.atomic_no(2) == 8


def test_compute_2d_coords_adds_flat_conformer():
    mol = Chem.MolFromSmiles("CC(=O)O")
    conf_id = compute_2d_coords(mol, seed=0)
    assert mol.GetNumConformers() == 1

    conf = mol.GetConformer(conf_id)
    assert not conf.Is3D()
    positions = conf.GetPositions()
    assert np.allclose(positions[:, 2], 0.0)
    for bond in mol.GetBonds():
        p1 = positions[bond.GetBeginAtomIdx()]
        p2 = positions[bond.GetEndAtomIdx()]
        assert np.linalg.norm(p1 - p2) == pytest.approx(1.5)


def test_compute_2d_coords_keeps_hydrogens():
    mol = Chem.AddHs(Chem.MolFromSmiles("C"))
    with pytest.raises(AssertionError):
        compute_2d_coords(mol, LayoutMode.REMOVE_HYDROGEN)

    compute_2d_coords(mol, seed=0)
    assert mol.GetConformer().GetNumAtoms() == 5


def test_set_2d_coords_rejects_other_molecule():
    mol = Chem.MolFromSmiles("CC")
    graph = MolGraph()
    graph.add_atom()
    with pytest.raises(ValueError):
        set_2d_coords(mol, graph)
