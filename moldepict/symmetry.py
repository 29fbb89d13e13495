# External imports
from typing import Dict, Hashable, List, Optional, Sequence, Set

# Internal imports
from moldepict.molecule import BondParity, MolGraph


MAX_RANKED_NEIGHBOURS = 6


def _consolidate(signatures: Sequence[Hashable]) -> List[int]:
    """Dense ranks starting at 1, ordered by signature."""
    rank_of = {s: r for r, s in enumerate(sorted(set(signatures)), start=1)}
    return [rank_of[s] for s in signatures]


def atom_symmetry_ranks(graph: MolGraph, conn_atoms: Optional[Sequence[int]] = None) -> List[int]:
    """Rank atoms so that topologically equivalent atoms share a rank.

    All atoms count as equal apart from their connectivity and the E/Z
    parities of the double bonds they take part in. Ranks are refined from
    neighbour ranks until the number of classes stops changing.

    Parameters
    ----------
    graph : MolGraph
        Molecule to rank.
    conn_atoms : Optional[Sequence[int]]
        Neighbour counts to use per atom, defaults to the graph degree.

    Returns
    -------
    List[int]
        Rank per atom, starting at 1.
    """
    n = graph.atom_count
    if conn_atoms is None:
        conn_atoms = [graph.degree(atom) for atom in range(n)]

    parities: List[List[int]] = [[] for _ in range(n)]
    for bond in range(graph.bond_count):
        parity = graph.bond_parity(bond)
        if parity in (BondParity.E, BondParity.Z):
            for atom in graph.bond_atoms(bond):
                parities[atom].append(int(parity))

    ranks = _consolidate([(min(conn_atoms[atom], MAX_RANKED_NEIGHBOURS), tuple(sorted(parities[atom])))
                          for atom in range(n)])
    rank_count = len(set(ranks))
    while True:
        signatures = []
        for atom in range(n):
            k = min(MAX_RANKED_NEIGHBOURS, conn_atoms[atom])
            conn_ranks = sorted(ranks[a] for a in graph.conn_atoms(atom))[:k]
            signatures.append((ranks[atom],) + (0,) * (MAX_RANKED_NEIGHBOURS - k) + tuple(conn_ranks))
        ranks = _consolidate(signatures)

        new_rank_count = len(set(ranks))
        if new_rank_count == rank_count:
            return ranks
        rank_count = new_rank_count


def symmetry_classes(ranks: Sequence[int]) -> List[Set[int]]:
    """Return symmetry classes (sets of atom indices) in increasing rank order."""
    cls: Dict[int, Set[int]] = {}
    for i, r in enumerate(ranks):
        cls.setdefault(int(r), set()).add(i)
    return [cls[k] for k in sorted(cls.keys())]
