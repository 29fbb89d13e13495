"""Collision removal inside fused fragments.

A bounded random search mirrors branches across rotatable single bonds
lying between colliding atoms and keeps the least crowded layout seen.
Afterwards single atoms are pushed away from nearby bonds and atoms.
"""

# External imports
import logging
from enum import IntEnum
from typing import List, NamedTuple, Sequence

# Internal imports
from moldepict.context import LayoutContext, LayoutMode
from moldepict.fragment import Fragment
from moldepict.symmetry import symmetry_classes


logger = logging.getLogger(__name__)


class FlipPriority(IntEnum):
    NONE = 0
    LAST_RESORT = 1
    POSSIBLE = 2
    PREFERRED = 3


PREFERRED_FLIPS = 32
POSSIBLE_FLIPS = 64
LAST_RESORT_FLIPS = 128
TOTAL_FLIPS = PREFERRED_FLIPS + POSSIBLE_FLIPS + LAST_RESORT_FLIPS


class ResolvedFragment(NamedTuple):
    """Outcome of collision resolution for one fragment."""
    fragment: Fragment
    initial_penalty: float
    flip_penalty: float
    flips: int


def _has_symmetric_end(ctx: LayoutContext, bond: int, ranks: Sequence[int]) -> bool:
    """True if one end of ``bond`` carries only equivalent other substituents."""
    graph = ctx.graph
    atom1, atom2 = graph.bond_atoms(bond)
    for atom, partner in ((atom1, atom2), (atom2, atom1)):
        if ctx.conn_atoms[atom] > 2:
            if len({ranks[a] for a in graph.conn_atoms(atom) if a != partner}) == 1:
                return True
    return False


def locate_flip_bonds(ctx: LayoutContext, ranks: Sequence[int]) -> List[FlipPriority]:
    """Flip priority per bond of the molecule.

    Parameters
    ----------
    ctx : LayoutContext
        Current layout run; its mode decides how bonds between marked atoms
        are treated.
    ranks : Sequence[int]
        Atom symmetry ranks, used to skip flips that only swap equivalent
        substituents.

    Returns
    -------
    List[FlipPriority]
        One entry per bond.
    """
    graph = ctx.graph
    priorities = [FlipPriority.NONE] * graph.bond_count
    for bond in range(graph.bond_count):
        atom1, atom2 = graph.bond_atoms(bond)
        if (graph.is_ring_bond(bond)
                or graph.bond_order(bond) != 1
                or ctx.conn_atoms[atom1] == 1
                or ctx.conn_atoms[atom2] == 1):
            continue

        both_marked = graph.is_marked(atom1) and graph.is_marked(atom2)
        if ctx.mode & LayoutMode.KEEP_MARKED_ATOM_COORDS and both_marked:
            continue

        if _has_symmetric_end(ctx, bond, ranks):
            continue

        if ctx.mode & LayoutMode.PREFER_MARKED_ATOM_COORDS and both_marked:
            priorities[bond] = FlipPriority.LAST_RESORT
        elif graph.is_ring_atom(atom1) or graph.is_ring_atom(atom2):
            priorities[bond] = FlipPriority.PREFERRED
        else:
            priorities[bond] = FlipPriority.POSSIBLE
    return priorities


class CollisionResolver(object):
    """Random bond flip search followed by a nudge pass over single atoms."""

    def __init__(self, ctx: LayoutContext, ranks: Sequence[int]):
        self.ctx = ctx
        self.ranks = list(ranks)
        self.flip_priority = locate_flip_bonds(ctx, ranks)

    def _tier(self, trial: int) -> FlipPriority:
        if trial < PREFERRED_FLIPS:
            return FlipPriority.PREFERRED
        if trial < PREFERRED_FLIPS + POSSIBLE_FLIPS:
            return FlipPriority.POSSIBLE
        return FlipPriority.LAST_RESORT

    def _flip_search(self, f: Fragment) -> ResolvedFragment:
        ctx = self.ctx
        collisions = f.collision_list()
        initial_penalty = min_penalty = f.collision_penalty
        best = f.copy()

        flips = 0
        last_bond = -1
        trial = 0
        while trial < TOTAL_FLIPS and collisions:
            atom1, atom2 = collisions[ctx.rng.randrange(len(collisions))]
            path = ctx.shortest_connection(atom1, atom2)
            tier = self._tier(trial)
            trial += 1

            # the end bonds of the path would only move one colliding atom
            available = [b for b in path[1:-1] if self.flip_priority[b] >= tier]
            if not available:
                continue

            bond = available[0]
            if len(available) > 1:
                # never mirror twice in a row across the same bond
                bond = available[ctx.rng.randrange(len(available))]
                while bond == last_bond:
                    bond = available[ctx.rng.randrange(len(available))]
            if bond == last_bond:
                continue

            last_bond = bond
            f.flip_one_side(bond, ctx.consider_marked)
            flips += 1

            collisions = f.collision_list()
            if min_penalty > f.collision_penalty:
                min_penalty = f.collision_penalty
                best = f.copy()

        return ResolvedFragment(best, initial_penalty, min_penalty, flips)

    def _nudge_atoms(self, f: Fragment) -> None:
        # one symmetry class after the other, lowest rank first
        for cls in symmetry_classes([self.ranks[atom] for atom in f.atoms]):
            for index in sorted(cls):
                f.optimize_atom_coordinates(index)

    def optimize_fragment(self, f: Fragment) -> ResolvedFragment:
        """Reduce atom collisions in ``f``.

        Parameters
        ----------
        f : Fragment
            Fused fragment with located bonds. It is modified by the search.

        Returns
        -------
        ResolvedFragment
            The least crowded layout found, after nudging, with the penalties
            before and after the flip search.
        """
        result = self._flip_search(f)
        self._nudge_atoms(result.fragment)
        if logger.isEnabledFor(logging.DEBUG):
            result.fragment.collision_list()
            logger.debug("%r: penalty %.4f -> %.4f after %d flips, %.4f after nudging",
                         result.fragment, result.initial_penalty, result.flip_penalty,
                         result.flips, result.fragment.collision_penalty)
        return result


def optimize_fragments(ctx: LayoutContext, ranks: Sequence[int]) -> List[ResolvedFragment]:
    """Resolve collisions in every fragment of ``ctx`` in place."""
    resolver = CollisionResolver(ctx, ranks)
    results = []
    for i, f in enumerate(ctx.fragments):
        result = resolver.optimize_fragment(f)
        ctx.fragments[i] = result.fragment
        results.append(result)
    return results
