# External imports
import logging

# Internal imports
from moldepict.context import LayoutContext
from moldepict.geometry import angle_dif, get_angle
from moldepict.molecule import BondParity


logger = logging.getLogger(__name__)


def locate_fragment_bonds(ctx: LayoutContext) -> None:
    for f in ctx.fragments:
        f.locate_bonds()


def _lowest_substituent(ctx: LayoutContext, atom: int, partner: int) -> int:
    return min(a for a in ctx.graph.conn_atoms(atom) if a != partner)


def correct_chain_ez_parities(ctx: LayoutContext) -> None:
    """Mirror one side of acyclic double bonds laid out with wrong E/Z geometry.

    Double bonds outside small rings without a parity are set to
    ``BondParity.UNKNOWN``. Fragment bonds must be located beforehand.
    """
    graph = ctx.graph
    for f in ctx.fragments:
        for bond in f.bonds:
            if graph.bond_order(bond) != 2:
                continue

            if not graph.is_small_ring_bond(bond) and graph.bond_parity(bond) == BondParity.NONE:
                graph.set_bond_parity(bond, BondParity.UNKNOWN)

            parity = graph.bond_parity(bond)
            atom1, atom2 = graph.bond_atoms(bond)
            if (graph.is_ring_bond(bond)
                    or graph.degree(atom1) < 2
                    or graph.degree(atom2) < 2
                    or parity not in (BondParity.E, BondParity.Z)):
                continue

            min_conn1 = _lowest_substituent(ctx, atom1, atom2)
            min_conn2 = _lowest_substituent(ctx, atom2, atom1)
            x1, y1 = f.coords[f.index(atom1)]
            x2, y2 = f.coords[f.index(atom2)]

            db_angle = get_angle(x1, y1, x2, y2)
            angle1 = get_angle(*f.coords[f.index(min_conn1)], x1, y1)
            angle2 = get_angle(x2, y2, *f.coords[f.index(min_conn2)])

            # substituents turning the same way sit on opposite sides
            if ((angle_dif(db_angle, angle1) < 0)
                    ^ (angle_dif(db_angle, angle2) < 0)
                    ^ (parity == BondParity.Z)):
                logger.debug("Flipping one side of double bond %d to match %s", bond, parity.name)
                f.flip_one_side(bond, ctx.consider_marked)
