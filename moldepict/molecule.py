# External imports
import math
import networkx as nx
from enum import IntEnum
from typing import Dict, Iterable, List, NamedTuple, Optional, Set, Tuple


# Rings up to this size form the "small ring" set and keep their regular shape.
SMALL_RING_SIZE = 7


class BondParity(IntEnum):
    """E/Z parity of a double bond.

    The parity is stated relative to the lowest-index neighbour on each side
    of the bond (the partner atom excluded): ``E`` puts both reference atoms
    on opposite sides of the bond axis, ``Z`` on the same side.
    """
    NONE = 0
    E = 1
    Z = 2
    UNKNOWN = 3


class Ring(NamedTuple):
    """Ring as a closed walk: ``bonds[i]`` joins ``atoms[i]`` and ``atoms[i+1]``."""
    atoms: Tuple[int, ...]
    bonds: Tuple[int, ...]


class _RingInfo(NamedTuple):
    bond_ring_size: Tuple[int, ...]
    atom_ring_size: Tuple[int, ...]
    rings: Tuple[Ring, ...]


class MolGraph(object):
    """Molecular graph with 2D coordinates backed by a ``networkx.Graph``.

    Atoms are the integer nodes ``0..atom_count-1``; bonds are numbered in the
    order they were added. Neighbour enumeration follows bond insertion order,
    which keeps every traversal built on top of it deterministic.
    """

    def __init__(self):
        self._graph = nx.Graph()
        self._bonds: List[Tuple[int, int]] = []
        self._ring_info: Optional[_RingInfo] = None

    # --- Construction -----------------------------------------------------

    def add_atom(
        self,
        atomic_no: int = 6,
        x: float = 0.0,
        y: float = 0.0,
        marked: bool = False,
        query: bool = False,
    ) -> int:
        """Append an atom and return its index."""
        atom = self._graph.number_of_nodes()
        self._graph.add_node(atom, atomic_no=int(atomic_no), x=float(x),
                             y=float(y), z=0.0, marked=bool(marked),
                             query=bool(query))
        self._ring_info = None
        return atom

    def add_bond(
        self,
        atom1: int,
        atom2: int,
        order: int = 1,
        parity: BondParity = BondParity.NONE,
    ) -> int:
        """Append a bond between two existing atoms and return its index."""
        for atom in (atom1, atom2):
            if atom not in self._graph:
                raise ValueError(f"Unknown atom {atom}.")
        if atom1 == atom2:
            raise ValueError(f"Atom {atom1} cannot be bonded to itself.")
        if self._graph.has_edge(atom1, atom2):
            raise ValueError(f"Atoms {atom1} and {atom2} are already bonded.")
        if order not in (1, 2, 3):
            raise ValueError(f"Bad bond order '{order}'.")

        bond = len(self._bonds)
        self._bonds.append((atom1, atom2))
        self._graph.add_edge(atom1, atom2, bond=bond, order=order,
                             parity=BondParity(parity))
        self._ring_info = None
        return bond

    @classmethod
    def from_networkx(cls, graph: nx.Graph) -> "MolGraph":
        """Build a ``MolGraph`` from any undirected networkx graph.

        Nodes are renumbered in iteration order. Recognised node attributes
        are ``atomic_no`` (default 6), ``x``, ``y``, ``marked`` and ``query``;
        recognised edge attributes are ``order`` (default 1) and ``parity``.
        """
        mol = cls()
        atom_of = {}
        for node, data in graph.nodes(data=True):
            atom_of[node] = mol.add_atom(
                atomic_no=data.get("atomic_no", 6),
                x=data.get("x", 0.0),
                y=data.get("y", 0.0),
                marked=data.get("marked", False),
                query=data.get("query", False),
            )
        for u, v, data in graph.edges(data=True):
            mol.add_bond(atom_of[u], atom_of[v],
                         order=data.get("order", 1),
                         parity=data.get("parity", BondParity.NONE))
        return mol

    def to_networkx(self) -> nx.Graph:
        """Return an independent copy of the underlying networkx graph."""
        return self._graph.copy()

    def remove_atoms(self, atoms: Iterable[int]) -> Dict[int, int]:
        """Remove atoms with their bonds and renumber what is left.

        Returns
        -------
        Dict[int, int]
            Mapping old atom index -> new atom index for the kept atoms.
        """
        removed = set(atoms)
        old_graph, old_bonds = self._graph, self._bonds
        self._graph = nx.Graph()
        self._bonds = []
        self._ring_info = None

        atom_map: Dict[int, int] = {}
        for atom, data in old_graph.nodes(data=True):
            if atom not in removed:
                atom_map[atom] = len(atom_map)
                self._graph.add_node(atom_map[atom], **data)
        for atom1, atom2 in old_bonds:
            if atom1 in atom_map and atom2 in atom_map:
                data = dict(old_graph.edges[atom1, atom2])
                data["bond"] = len(self._bonds)
                self._bonds.append((atom_map[atom1], atom_map[atom2]))
                self._graph.add_edge(atom_map[atom1], atom_map[atom2], **data)
        return atom_map

    def simple_hydrogens(self) -> List[int]:
        """Hydrogen atoms that carry no layout information.

        A simple hydrogen is an unmarked, non-query hydrogen whose only
        neighbour (if any) is not a hydrogen, so H2 is never simple.
        """
        hydrogens = []
        for atom, data in self._graph.nodes(data=True):
            if data["atomic_no"] != 1 or data["marked"] or data["query"]:
                continue
            neighbours = list(self._graph.adj[atom])
            if len(neighbours) <= 1 and all(
                    self._graph.nodes[n]["atomic_no"] != 1 for n in neighbours):
                hydrogens.append(atom)
        return hydrogens

    # --- Atoms and bonds ----------------------------------------------------

    @property
    def atom_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def bond_count(self) -> int:
        return len(self._bonds)

    def connections(self, atom: int) -> List[Tuple[int, int]]:
        """(neighbour atom, connecting bond) pairs of ``atom``."""
        return [(nbr, data["bond"]) for nbr, data in self._graph.adj[atom].items()]

    def conn_atoms(self, atom: int) -> List[int]:
        return list(self._graph.adj[atom])

    def conn_bonds(self, atom: int) -> List[int]:
        return [data["bond"] for data in self._graph.adj[atom].values()]

    def degree(self, atom: int) -> int:
        return len(self._graph.adj[atom])

    def bond_atoms(self, bond: int) -> Tuple[int, int]:
        return self._bonds[bond]

    def bond_between(self, atom1: int, atom2: int) -> Optional[int]:
        data = self._graph.get_edge_data(atom1, atom2)
        return None if data is None else data["bond"]

    def _bond_data(self, bond: int) -> dict:
        return self._graph.edges[self._bonds[bond]]

    def bond_order(self, bond: int) -> int:
        return self._bond_data(bond)["order"]

    def bond_parity(self, bond: int) -> BondParity:
        return self._bond_data(bond)["parity"]

    def set_bond_parity(self, bond: int, parity: BondParity) -> None:
        self._bond_data(bond)["parity"] = BondParity(parity)

    def atom_pi(self, atom: int) -> int:
        """Number of pi bonds at ``atom`` (sum of ``order - 1``)."""
        return sum(data["order"] - 1 for data in self._graph.adj[atom].values())

    def atomic_no(self, atom: int) -> int:
        return self._graph.nodes[atom]["atomic_no"]

    def is_query(self, atom: int) -> bool:
        return self._graph.nodes[atom]["query"]

    def is_marked(self, atom: int) -> bool:
        return self._graph.nodes[atom]["marked"]

    def set_marked(self, atom: int, marked: bool = True) -> None:
        self._graph.nodes[atom]["marked"] = bool(marked)

    def position(self, atom: int) -> Tuple[float, float]:
        data = self._graph.nodes[atom]
        return data["x"], data["y"]

    def set_position(self, atom: int, x: float, y: float, z: float = 0.0) -> None:
        data = self._graph.nodes[atom]
        data["x"], data["y"], data["z"] = float(x), float(y), float(z)

    def bond_length(self, bond: int) -> float:
        (x1, y1), (x2, y2) = (self.position(a) for a in self._bonds[bond])
        return math.hypot(x2 - x1, y2 - y1)

    def average_bond_length(self, bonds: Optional[Iterable[int]] = None) -> float:
        """Mean length of ``bonds`` (all bonds by default); 0.0 without bonds."""
        bonds = range(self.bond_count) if bonds is None else list(bonds)
        lengths = [self.bond_length(b) for b in bonds]
        return sum(lengths) / len(lengths) if lengths else 0.0

    def marked_components(self) -> List[List[int]]:
        """Connected groups of marked atoms joined by marked-marked bonds.

        Marked atoms without any neighbour are left out. Groups are sorted by
        their lowest atom index, atoms within a group ascending.
        """
        marked = [a for a in self._graph
                  if self.is_marked(a) and self.degree(a) != 0]
        sub = self._graph.subgraph(marked)
        components = [sorted(c) for c in nx.connected_components(sub)]
        return sorted(components, key=lambda c: c[0])

    # --- Rings --------------------------------------------------------------

    def _perceive_rings(self) -> _RingInfo:
        if self._ring_info is not None:
            return self._ring_info

        bridges: Set[frozenset] = {frozenset(e) for e in nx.bridges(self._graph)}
        ring_edges = [e for e in self._bonds if frozenset(e) not in bridges]
        ring_graph = self._graph.edge_subgraph(ring_edges)

        # Smallest ring through each ring bond: shortest detour around it
        bond_ring_size = [0] * self.bond_count
        for atom1, atom2 in ring_edges:
            detour = nx.restricted_view(ring_graph, [], [(atom1, atom2)])
            size = nx.shortest_path_length(detour, atom1, atom2) + 1
            bond_ring_size[self._graph.edges[atom1, atom2]["bond"]] = size

        atom_ring_size = [0] * self.atom_count
        for bond, size in enumerate(bond_ring_size):
            if size:
                for atom in self._bonds[bond]:
                    if atom_ring_size[atom] == 0 or size < atom_ring_size[atom]:
                        atom_ring_size[atom] = size

        rings: Dict[Tuple[int, ...], Ring] = {}
        for cycle in nx.simple_cycles(ring_graph, length_bound=SMALL_RING_SIZE):
            ring = self._make_ring(cycle)
            rings[ring.atoms] = ring
        for cycle in nx.minimum_cycle_basis(ring_graph):
            if len(cycle) > SMALL_RING_SIZE:
                ring = self._make_ring(self._walk_cycle(cycle))
                if ring is not None:
                    rings[ring.atoms] = ring

        ordered = sorted(rings.values(), key=lambda r: (len(r.atoms), r.atoms))
        self._ring_info = _RingInfo(tuple(bond_ring_size), tuple(atom_ring_size),
                                    tuple(ordered))
        return self._ring_info

    def _walk_cycle(self, nodes: Iterable[int]) -> Optional[List[int]]:
        """Order the atoms of a chordless cycle along its bonds."""
        members = set(nodes)
        walk = [min(members)]
        while len(walk) < len(members):
            step = [n for n in self._graph.adj[walk[-1]]
                    if n in members and n not in walk]
            if not step:
                return None
            walk.append(min(step))
        if not self._graph.has_edge(walk[-1], walk[0]):
            return None
        return walk

    def _make_ring(self, cycle: Optional[List[int]]) -> Optional[Ring]:
        if cycle is None:
            return None
        start = cycle.index(min(cycle))
        atoms = cycle[start:] + cycle[:start]
        if atoms[-1] < atoms[1]:
            atoms = atoms[:1] + atoms[:0:-1]
        bonds = [self._graph.edges[atoms[i], atoms[(i + 1) % len(atoms)]]["bond"]
                 for i in range(len(atoms))]
        return Ring(tuple(atoms), tuple(bonds))

    @property
    def ring_set(self) -> List[Ring]:
        """All rings up to ``SMALL_RING_SIZE`` atoms plus the larger rings of a
        minimum cycle basis, sorted by size then atoms."""
        return list(self._perceive_rings().rings)

    def is_ring_bond(self, bond: int) -> bool:
        return self._perceive_rings().bond_ring_size[bond] != 0

    def is_ring_atom(self, atom: int) -> bool:
        return self._perceive_rings().atom_ring_size[atom] != 0

    def bond_ring_size(self, bond: int) -> int:
        """Size of the smallest ring containing ``bond``, 0 for chain bonds."""
        return self._perceive_rings().bond_ring_size[bond]

    def atom_ring_size(self, atom: int) -> int:
        """Size of the smallest ring containing ``atom``, 0 for chain atoms."""
        return self._perceive_rings().atom_ring_size[atom]

    def is_small_ring_bond(self, bond: int) -> bool:
        return 0 < self.bond_ring_size(bond) <= SMALL_RING_SIZE
