# External imports
import random
from dataclasses import dataclass, field
from enum import IntFlag
from typing import List, NamedTuple, Optional, Tuple

# Internal imports
from moldepict.fragment import Fragment
from moldepict.molecule import MolGraph


class LayoutMode(IntFlag):
    """Options of one coordinate invention run."""
    NONE = 0
    REMOVE_HYDROGEN = 1
    KEEP_MARKED_ATOM_COORDS = 2
    PREFER_MARKED_ATOM_COORDS = 4


CONSIDER_MARKED_ATOMS = LayoutMode.KEEP_MARKED_ATOM_COORDS | LayoutMode.PREFER_MARKED_ATOM_COORDS


class Chain(NamedTuple):
    """Simple walk: ``bonds[i]`` joins ``atoms[i]`` and ``atoms[i+1]``.

    For rings the last bond closes the ring; for open chains it is -1.
    """
    atoms: Tuple[int, ...]
    bonds: Tuple[int, ...]


@dataclass
class LayoutContext:
    """All mutable state of a single coordinate invention run."""
    graph: MolGraph
    mode: LayoutMode
    rng: random.Random
    conn_atoms: List[int] = field(default_factory=list)
    atom_handled: List[bool] = field(default_factory=list)
    bond_handled: List[bool] = field(default_factory=list)
    fragments: List[Fragment] = field(default_factory=list)

    @classmethod
    def create(cls, graph: MolGraph, mode: LayoutMode, rng: random.Random) -> "LayoutContext":
        return cls(
            graph=graph,
            mode=LayoutMode(mode),
            rng=rng,
            conn_atoms=[graph.degree(atom) for atom in range(graph.atom_count)],
            atom_handled=[False] * graph.atom_count,
            bond_handled=[False] * graph.bond_count,
        )

    @property
    def consider_marked(self) -> bool:
        return bool(self.mode & CONSIDER_MARKED_ATOMS)

    # --- Breadth-first walks ------------------------------------------------
    # Each walk keeps its frontier in ``graph_atom`` and reconstructs paths
    # through ``graph_parent`` indices into that same list.

    def _trace_back(self, graph_atom, graph_bond, graph_parent, index, length) -> Chain:
        atoms, bonds = [], []
        for _ in range(length):
            atoms.append(graph_atom[index])
            bonds.append(graph_bond[index])
            index = graph_parent[index]
        return Chain(tuple(atoms), tuple(bonds))

    def smallest_ring_from_bond(self, bond: int) -> Optional[Chain]:
        """Smallest ring containing ``bond``, walking ring atoms only."""
        atom1, atom2 = self.graph.bond_atoms(bond)
        graph_atom = [atom1, atom2]
        graph_bond = [-1, bond]
        graph_parent = [-1, 0]
        graph_level = [0] * self.graph.atom_count
        graph_level[atom1] = 1
        graph_level[atom2] = 2

        current = 1
        while current < len(graph_atom):
            here = graph_atom[current]
            for candidate, conn_bond in self.graph.connections(here):
                if current > 1 and candidate == atom1:
                    graph_bond[0] = conn_bond
                    return self._trace_back(graph_atom, graph_bond, graph_parent,
                                            current, graph_level[here])
                if graph_level[candidate] == 0 and self.graph.is_ring_atom(candidate):
                    graph_atom.append(candidate)
                    graph_bond.append(conn_bond)
                    graph_parent.append(current)
                    graph_level[candidate] = graph_level[here] + 1
            current += 1
        return None

    def smallest_ring_size(self, atom1: int, atom2: int, atom3: int) -> int:
        """Size of the smallest ring passing ``atom1``, ``atom2``, ``atom3`` in
        this order, 0 if there is none."""
        graph_atom = [atom2, atom1]
        graph_level = [0] * self.graph.atom_count
        graph_level[atom2] = 1
        graph_level[atom1] = 2

        current = 1
        while current < len(graph_atom):
            here = graph_atom[current]
            for candidate in self.graph.conn_atoms(here):
                if candidate == atom3:
                    return 1 + graph_level[here]
                if graph_level[candidate] == 0 and self.graph.is_ring_atom(candidate):
                    graph_atom.append(candidate)
                    graph_level[candidate] = graph_level[here] + 1
            current += 1
        return 0

    def longest_unhandled_chain(self, atom: int) -> Chain:
        """Deepest walk from ``atom`` along unhandled bonds.

        The walk passes through handled atoms only at its start. The returned
        chain begins at the deepest atom and ends at ``atom``.
        """
        graph_atom = [atom]
        graph_bond = [-1]
        graph_parent = [-1]
        graph_level = [0] * self.graph.atom_count
        graph_level[atom] = 1

        current = 0
        while True:
            here = graph_atom[current]
            if current == 0 or not self.atom_handled[here]:
                for candidate, conn_bond in self.graph.connections(here):
                    if graph_level[candidate] == 0 and not self.bond_handled[conn_bond]:
                        graph_atom.append(candidate)
                        graph_bond.append(conn_bond)
                        graph_parent.append(current)
                        graph_level[candidate] = graph_level[here] + 1
            if current == len(graph_atom) - 1:
                return self._trace_back(graph_atom, graph_bond, graph_parent,
                                        current, graph_level[here])
            current += 1

    def shortest_connection(self, atom1: int, atom2: int) -> Optional[List[int]]:
        """Bonds along a shortest path from ``atom1`` to ``atom2``."""
        graph_atom = [atom2]
        graph_bond = [-1]
        graph_parent = [-1]
        graph_level = [0] * self.graph.atom_count
        graph_level[atom2] = 1

        current = 0
        while current < len(graph_atom):
            here = graph_atom[current]
            for candidate, conn_bond in self.graph.connections(here):
                if candidate == atom1:
                    bonds = [conn_bond]
                    index = current
                    for _ in range(1, graph_level[here]):
                        bonds.append(graph_bond[index])
                        index = graph_parent[index]
                    return bonds
                if graph_level[candidate] == 0:
                    graph_atom.append(candidate)
                    graph_bond.append(conn_bond)
                    graph_parent.append(current)
                    graph_level[candidate] = graph_level[here] + 1
            current += 1
        return None
