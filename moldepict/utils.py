# External imports
from rdkit import Chem
from rdkit.Chem.rdchem import BondStereo, BondType, Conformer, Mol
from typing import Iterable, Optional

# Internal imports
from moldepict.context import LayoutMode
from moldepict.inventor import CoordinateInventor
from moldepict.molecule import BondParity, MolGraph


BOND_ORDERS = {
    BondType.SINGLE: 1,
    BondType.DOUBLE: 2,
    BondType.TRIPLE: 3,
}

OPPOSITE_STEREO = set({BondStereo.STEREOE, BondStereo.STEREOTRANS})
SAME_SIDE_STEREO = set({BondStereo.STEREOZ, BondStereo.STEREOCIS})


def _bond_parity(mol: Mol, bond) -> BondParity:
    """Translate RDKit double bond stereo into lowest-neighbour E/Z parity."""
    stereo = bond.GetStereo()
    if stereo not in OPPOSITE_STEREO and stereo not in SAME_SIDE_STEREO:
        return BondParity.NONE

    stereo_atoms = list(bond.GetStereoAtoms())
    if len(stereo_atoms) != 2:
        return BondParity.NONE

    begin, end = bond.GetBeginAtomIdx(), bond.GetEndAtomIdx()
    opposite = stereo in OPPOSITE_STEREO
    for atom, partner, stereo_atom in ((begin, end, stereo_atoms[0]),
                                       (end, begin, stereo_atoms[1])):
        reference = min(n.GetIdx() for n in mol.GetAtomWithIdx(atom).GetNeighbors()
                        if n.GetIdx() != partner)
        # the other substituent on this side sits opposite to the stereo atom
        if reference != stereo_atom:
            opposite = not opposite
    return BondParity.E if opposite else BondParity.Z


def mol_to_graph(mol: Mol, marked_atoms: Iterable[int] = ()) -> MolGraph:
    """Convert an RDKit molecule into a ``MolGraph``.

    Parameters
    ----------
    mol : Mol
        Input RDKit molecule. Aromatic bonds are kekulized on a copy.
    marked_atoms : Iterable[int]
        Atom indices whose relative layout should be kept; they take their
        coordinates from the current conformer of ``mol``.

    Returns
    -------
    MolGraph
        Graph with the same atom and bond indexing as ``mol``.
    """
    mol = Chem.Mol(mol)
    Chem.Kekulize(mol, clearAromaticFlags=True)
    marked = set(marked_atoms)
    conf = mol.GetConformer() if mol.GetNumConformers() > 0 else None

    graph = MolGraph()
    for atom in mol.GetAtoms():
        idx = atom.GetIdx()
        x = y = 0.0
        if conf is not None:
            pos = conf.GetAtomPosition(idx)
            x, y = pos.x, pos.y
        graph.add_atom(atom.GetAtomicNum(), x, y,
                       marked=idx in marked, query=atom.HasQuery())

    for bond in mol.GetBonds():
        graph.add_bond(bond.GetBeginAtomIdx(), bond.GetEndAtomIdx(),
                       BOND_ORDERS.get(bond.GetBondType(), 1),
                       _bond_parity(mol, bond))
    return graph


def set_2d_coords(mol: Mol, graph: MolGraph, bond_length: float = 1.5) -> int:
    """Store the coordinates of ``graph`` as a new 2D conformer of ``mol``.

    Returns
    -------
    int
        Id of the added conformer.
    """
    if graph.atom_count != mol.GetNumAtoms():
        raise ValueError(f"Graph has {graph.atom_count} atoms, "
                         f"molecule has {mol.GetNumAtoms()}.")

    conf = Conformer(mol.GetNumAtoms())
    for atom in range(graph.atom_count):
        x, y = graph.position(atom)
        conf.SetAtomPosition(atom, (x * bond_length, y * bond_length, 0.0))
    conf.Set3D(False)
    return mol.AddConformer(conf, assignId=True)


def compute_2d_coords(
    mol: Mol,
    mode: LayoutMode = LayoutMode.NONE,
    seed: Optional[int] = None,
    marked_atoms: Iterable[int] = (),
    bond_length: float = 1.5,
) -> int:
    """Lay out ``mol`` and add the result as a 2D conformer.

    Hydrogens present in ``mol`` are laid out as well, so atom indices of
    the conformer match the molecule.

    Returns
    -------
    int
        Id of the added conformer.
    """
    assert not mode & LayoutMode.REMOVE_HYDROGEN, \
           f"Bad value '{mode}' for parameter mode."
    graph = mol_to_graph(mol, marked_atoms)
    inventor = CoordinateInventor(mode, seed=seed)
    inventor(graph)
    return set_2d_coords(mol, graph, bond_length)
