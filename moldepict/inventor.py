# External imports
import logging
import random
import numpy as np
from typing import List, Optional

# Internal imports
from moldepict.arranger import arrange_all_fragments
from moldepict.builder import FragmentBuilder
from moldepict.context import LayoutContext, LayoutMode
from moldepict.fusion import join_overlapping_fragments
from moldepict.molecule import MolGraph
from moldepict.optimizer import ResolvedFragment, optimize_fragments
from moldepict.stereo import correct_chain_ez_parities, locate_fragment_bonds
from moldepict.symmetry import atom_symmetry_ranks


logger = logging.getLogger(__name__)

LAYOUT_MODES = LayoutMode.REMOVE_HYDROGEN \
             | LayoutMode.KEEP_MARKED_ATOM_COORDS \
             | LayoutMode.PREFER_MARKED_ATOM_COORDS


class CoordinateInventor(object):
    """Invents 2D depiction coordinates for molecular graphs."""

    def __init__(
        self,
        mode: LayoutMode = LayoutMode.REMOVE_HYDROGEN,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the coordinate inventor.

        Parameters
        ----------
        mode : LayoutMode
            Combination of layout flags:
            - REMOVE_HYDROGEN: drop simple hydrogens before the layout.
            - KEEP_MARKED_ATOM_COORDS: keep the relative layout of marked
              atoms and never flip bonds between them.
            - PREFER_MARKED_ATOM_COORDS: keep the relative layout of marked
              atoms, but flip bonds between them as a last resort.
        seed : Optional[int]
            Seed for a fresh random generator per call; equal seeds give
            identical coordinates.
        rng : Optional[random.Random]
            Generator to draw from instead, shared by all calls.
        """

        assert int(mode) & ~int(LAYOUT_MODES) == 0, \
               f"Bad value '{mode}' for parameter mode."
        self.mode = LayoutMode(mode)
        assert seed is None or rng is None, \
               "Parameters seed and rng are mutually exclusive."
        self.seed = seed
        self.rng = rng

    def set_random_seed(self, seed: int) -> None:
        """Make all following calls reproducible with ``seed``."""
        self.seed = seed
        self.rng = None

    def _random(self) -> random.Random:
        if self.rng is not None:
            return self.rng
        return random.Random(self.seed)

    def _remove_hydrogens(self, graph: MolGraph) -> None:
        hydrogens = graph.simple_hydrogens()
        # a molecule made of hydrogens only is kept as it is
        if hydrogens and len(hydrogens) < graph.atom_count:
            graph.remove_atoms(hydrogens)
            logger.debug("Removed %d simple hydrogens", len(hydrogens))

    def _create_context(self, graph: MolGraph) -> LayoutContext:
        if self.mode & LayoutMode.REMOVE_HYDROGEN:
            self._remove_hydrogens(graph)
        return LayoutContext.create(graph, self.mode, self._random())

    def _build_fragments(self, ctx: LayoutContext) -> None:
        """Decompose the molecule and fuse the pieces into connected fragments."""
        builder = FragmentBuilder(ctx)
        if ctx.consider_marked:
            builder.locate_core_fragments()

        builder.locate_initial_fragments()
        join_overlapping_fragments(ctx)

        builder.locate_chain_fragments()
        join_overlapping_fragments(ctx)

        locate_fragment_bonds(ctx)
        correct_chain_ez_parities(ctx)

    def _optimize_fragments(self, ctx: LayoutContext) -> List[ResolvedFragment]:
        ranks = atom_symmetry_ranks(ctx.graph, ctx.conn_atoms)
        return optimize_fragments(ctx, ranks)

    def __call__(self, graph: MolGraph) -> np.ndarray:
        """
        Compute and store 2D coordinates for all atoms of a molecule.

        Parameters
        ----------
        graph : MolGraph
            Molecule to lay out. Atom positions are overwritten (z is set to
            0), simple hydrogens are removed in REMOVE_HYDROGEN mode and
            double bonds outside small rings without a parity get
            ``BondParity.UNKNOWN``.

        Returns
        -------
        np.ndarray
            Array of shape (atom_count, 2) with the new coordinates in bond
            length units.
        """

        ctx = self._create_context(graph)
        self._build_fragments(ctx)
        self._optimize_fragments(ctx)

        builder = FragmentBuilder(ctx)
        builder.locate_single_atoms()
        arrange_all_fragments(ctx.fragments)

        coords = np.zeros((graph.atom_count, 2))
        placed = 0
        for f in ctx.fragments:
            for atom, (x, y) in zip(f.atoms, f.coords):
                graph.set_position(atom, x, y, 0.0)
                coords[atom] = x, y
                placed += 1
        assert placed == graph.atom_count, "Fragments do not cover every atom once."

        return coords


def invent_coordinates(
    graph: MolGraph,
    mode: LayoutMode = LayoutMode.REMOVE_HYDROGEN,
    seed: Optional[int] = None,
) -> np.ndarray:
    """Lay out ``graph`` in place; see ``CoordinateInventor``."""
    return CoordinateInventor(mode, seed=seed)(graph)
