# External imports
import logging
import math
from typing import List, Optional

# Internal imports
from moldepict.context import Chain, LayoutContext
from moldepict.fragment import Fragment
from moldepict.rings import create_ring_fragment


logger = logging.getLogger(__name__)

PRIORITY_CORE = 256
PRIORITY_CHAIN = 128
PRIORITY_CUMULATED = 64
PRIORITY_STAR = 32
PRIORITY_TRIPLE = 1
PRIORITY_SINGLE_ATOM = 0

SIN_60 = math.sin(math.pi / 3)
COS_30 = math.cos(math.pi / 6)


class FragmentBuilder(object):
    """Decomposes a molecule into small fragments with local coordinates.

    Every step only claims atoms and bonds that no earlier step has handled,
    so the order of the ``locate_*`` calls defines whose geometry counts.
    """

    def __init__(self, ctx: LayoutContext):
        self.ctx = ctx
        self.graph = ctx.graph

    def _add(self, fragment: Fragment) -> None:
        self.ctx.fragments.append(fragment)

    # --- Pinned core ----------------------------------------------------

    def locate_core_fragments(self) -> None:
        """Keep the relative layout of marked atoms as prioritized fragments."""
        ctx, graph = self.ctx, self.graph

        marked_bonds = [b for b in range(graph.bond_count)
                        if all(graph.is_marked(a) for a in graph.bond_atoms(b))]
        avbl = graph.average_bond_length(marked_bonds)
        if not marked_bonds or avbl == 0.0:
            return

        for bond in marked_bonds:
            ctx.bond_handled[bond] = True

        components = graph.marked_components()
        for component in components:
            for atom in component:
                ctx.atom_handled[atom] = True

        fragments = [
            Fragment(graph, component,
                     [[x / avbl, y / avbl] for x, y in map(graph.position, component)],
                     PRIORITY_CORE)
            for component in components
        ]

        # the largest core goes first so that its orientation is retained
        largest = max(range(len(fragments)), key=lambda i: (len(fragments[i]), -i))
        self._add(fragments[largest])
        for i, fragment in enumerate(fragments):
            if i != largest:
                self._add(fragment)

    # --- Initial fragments ----------------------------------------------

    def locate_initial_fragments(self) -> None:
        self._locate_high_valence_centers()
        self._locate_ring_fragments()
        self._locate_large_rings()
        self._locate_triple_bonds()
        self._locate_cumulated_double_bonds()
        self._locate_quaternary_centers()
        logger.debug("%d initial fragments", len(self.ctx.fragments))

    def _locate_high_valence_centers(self) -> None:
        ctx, graph = self.ctx, self.graph
        for atom in range(graph.atom_count):
            if ctx.conn_atoms[atom] <= 4:
                continue

            atoms, coords = [], []
            for i, (conn_atom, conn_bond) in enumerate(graph.connections(atom)):
                angle = math.pi / 3 * i - math.pi / 3 * 2
                atoms.append(conn_atom)
                coords.append([math.sin(angle), math.cos(angle)])
                ctx.atom_handled[conn_atom] = True
                ctx.bond_handled[conn_bond] = True
            atoms.append(atom)
            coords.append([0.0, 0.0])
            ctx.atom_handled[atom] = True

            self._add(Fragment(graph, atoms, coords, PRIORITY_STAR))

    def _locate_ring_fragments(self) -> None:
        """Place every ring that defines the smallest ring of at least one atom."""
        ctx, graph = self.ctx, self.graph
        for ring in graph.ring_set:
            size = len(ring.atoms)

            if ctx.consider_marked and all(graph.is_marked(a) for a in ring.atoms):
                continue

            if not any(graph.atom_ring_size(a) == size for a in ring.atoms):
                continue

            self._add(create_ring_fragment(graph, ring.atoms, ring.bonds))
            for atom, bond in zip(ring.atoms, ring.bonds):
                ctx.atom_handled[atom] = True
                ctx.bond_handled[bond] = True

    def _locate_large_rings(self) -> None:
        ctx, graph = self.ctx, self.graph
        for bond in range(graph.bond_count):
            if not graph.is_ring_bond(bond) or ctx.bond_handled[bond]:
                continue

            ring = ctx.smallest_ring_from_bond(bond)
            assert ring is not None, f"Ring bond {bond} without ring."
            self._add(create_ring_fragment(graph, ring.atoms, ring.bonds))
            for atom, ring_bond in zip(ring.atoms, ring.bonds):
                ctx.atom_handled[atom] = True
                ctx.bond_handled[ring_bond] = True

    def _locate_triple_bonds(self) -> None:
        """Triple bonds with their first substituents on one straight line."""
        ctx, graph = self.ctx, self.graph
        for bond in range(graph.bond_count):
            if ctx.bond_handled[bond] or graph.bond_order(bond) != 3:
                continue

            atom1, atom2 = graph.bond_atoms(bond)
            if ctx.conn_atoms[atom1] + ctx.conn_atoms[atom2] <= 2:
                continue

            atoms = []
            for center, other in ((atom1, atom2), (atom2, atom1)):
                substituents = []
                for conn_atom, conn_bond in graph.connections(center):
                    if conn_atom != other:
                        substituents.append(conn_atom)
                        ctx.atom_handled[conn_atom] = True
                        ctx.bond_handled[conn_bond] = True
                if center == atom1:
                    atoms.extend(substituents + [atom1, atom2])
                else:
                    atoms.extend(substituents)

            ctx.atom_handled[atom1] = True
            ctx.atom_handled[atom2] = True
            ctx.bond_handled[bond] = True
            self._add(Fragment(graph, atoms, [[float(i), 0.0] for i in range(len(atoms))],
                               PRIORITY_TRIPLE))

    def _locate_cumulated_double_bonds(self) -> None:
        """Allene-like runs on a straight line, end substituents at 60 degrees."""
        ctx, graph = self.ctx, self.graph
        for bond in range(graph.bond_count):
            if ctx.bond_handled[bond] or graph.bond_order(bond) != 2:
                continue

            for first, second in (graph.bond_atoms(bond), graph.bond_atoms(bond)[::-1]):
                if (graph.atom_pi(first) != 1
                        or graph.atom_pi(second) != 2
                        or ctx.conn_atoms[second] != 2):
                    continue

                run = self._walk_cumulated_run(bond, first, second)
                last = len(run) - 1

                atoms = list(run)
                coords = [[float(j), 0.0] for j in range(len(run))]
                for end, inner, x, sign in ((run[0], run[1], -0.5, -1.0),
                                            (run[last], run[last - 1], last + 0.5, 1.0)):
                    found = False
                    for conn_atom in graph.conn_atoms(end):
                        if conn_atom != inner:
                            atoms.append(conn_atom)
                            coords.append([x, -sign * SIN_60 if found else sign * SIN_60])
                            found = True

                self._add(Fragment(graph, atoms, coords, PRIORITY_CUMULATED))

    def _walk_cumulated_run(self, bond: int, first: int, second: int) -> List[int]:
        ctx, graph = self.ctx, self.graph
        ctx.atom_handled[first] = True
        ctx.atom_handled[second] = True
        ctx.bond_handled[bond] = True

        run = [first, second]
        while True:
            last = run[-1]
            next_atom, next_bond = next((a, b) for a, b in graph.connections(last)
                                        if a != run[-2])
            # a centre like C=Cr(Rn)=N ends the run
            if graph.atom_pi(next_atom) == 2 and ctx.conn_atoms[next_atom] > 2:
                break

            ctx.atom_handled[next_atom] = True
            ctx.bond_handled[next_bond] = True
            run.append(next_atom)
            if graph.atom_pi(next_atom) != 2 or ctx.conn_atoms[next_atom] != 2:
                break
        return run

    def _locate_quaternary_centers(self) -> None:
        """Fix the star of a four-valent atom carrying two or three terminal atoms."""
        ctx, graph = self.ctx, self.graph
        for atom in range(graph.atom_count):
            if ctx.conn_atoms[atom] != 4:
                continue

            primary = [(a, b) for a, b in graph.connections(atom)
                       if ctx.conn_atoms[a] == 1 and not ctx.bond_handled[b]]

            if len(primary) == 2:
                coords = [[-0.5, 0.866], [0.5, 0.866], [0.0, 0.0]]
            elif len(primary) == 3:
                # a single bonded substituent, if any, points away from the centre
                if graph.bond_order(primary[2][1]) != 1:
                    for i in range(2):
                        if graph.bond_order(primary[i][1]) == 1:
                            primary[i], primary[2] = primary[2], primary[i]
                            break
                coords = [[-1.0, 0.0], [1.0, 0.0], [0.0, 1.0], [0.0, 0.0]]
            else:
                continue

            # the centre itself stays unhandled to keep chains through it zig-zagged
            for conn_atom, conn_bond in primary:
                ctx.atom_handled[conn_atom] = True
                ctx.bond_handled[conn_bond] = True
            self._add(Fragment(graph, [a for a, _ in primary] + [atom], coords,
                               PRIORITY_STAR))

    # --- Chains and single atoms ----------------------------------------

    def locate_chain_fragments(self) -> None:
        """Lay out the remaining unhandled bonds as zig-zag chains, longest first."""
        ctx, graph = self.ctx, self.graph
        while True:
            longest: Optional[Chain] = None
            for atom in range(graph.atom_count):
                unhandled = sum(1 for b in graph.conn_bonds(atom) if not ctx.bond_handled[b])
                if unhandled == 1:
                    chain = ctx.longest_unhandled_chain(atom)
                    if longest is None or len(chain.atoms) > len(longest.atoms):
                        longest = chain

            if longest is None:
                break

            length = len(longest.atoms)
            for i, atom in enumerate(longest.atoms):
                ctx.atom_handled[atom] = True
                if i < length - 1:
                    ctx.bond_handled[longest.bonds[i]] = True

            coords = [[COS_30 * i, 0.0 if i & 1 else 0.5] for i in range(length)]
            self._add(Fragment(graph, longest.atoms, coords, PRIORITY_CHAIN + length))

    def locate_single_atoms(self) -> None:
        ctx, graph = self.ctx, self.graph
        for atom in range(graph.atom_count):
            if ctx.conn_atoms[atom] == 0:
                ctx.atom_handled[atom] = True
                self._add(Fragment(graph, [atom], [[0.0, 0.0]], PRIORITY_SINGLE_ATOM))
