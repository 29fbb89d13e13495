# External imports
import logging
import math
from typing import List, Optional, Tuple

# Internal imports
from moldepict.context import LayoutContext
from moldepict.fragment import Fragment, merge_fragments
from moldepict.geometry import DirectedAngle, angle_dif, get_angle, mean_angle


logger = logging.getLogger(__name__)


def shared_atoms(f1: Fragment, f2: Fragment) -> List[int]:
    """Atoms of ``f1`` that are also members of ``f2``, in ``f1`` order."""
    return [atom for atom in f1.atoms if atom in f2]


def join_key(f1: Fragment, f2: Fragment, common: List[int]) -> Tuple[int, int, int, int]:
    """Ranking of a join between two overlapping fragments.

    Returns
    -------
    Tuple[int, int, int, int]
        ``(junction, max_shared_priority, min_shared_priority, shared_count)``
        where ``junction`` is 1 for a single shared atom that is terminal in
        both fragments.
    """
    p1 = max(int(f1.priority[f1.index(atom)]) for atom in common)
    p2 = max(int(f2.priority[f2.index(atom)]) for atom in common)
    junction = int(len(common) == 1
                   and f1.conn_count(common[0]) == 1
                   and f2.conn_count(common[0]) == 1)
    return junction, max(p1, p2), min(p1, p2), len(common)


def _best_join(fragments: List[Fragment]) -> Optional[Tuple[Fragment, Fragment, List[int]]]:
    best_key = None
    best = None
    for i in range(1, len(fragments)):
        fi = fragments[i]
        for j in range(i):
            fj = fragments[j]
            common = shared_atoms(fi, fj)
            if not common:
                continue

            key = join_key(fi, fj, common)
            if best_key is None or best_key < key:
                best_key = key
                # coordinates of the fragment holding the top priority atom are kept
                if fi.priority.max() > fj.priority.max():
                    best = (fi, fj, common)
                else:
                    best = (fj, fi, shared_atoms(fj, fi))
    return best


def join_overlapping_fragments(ctx: LayoutContext) -> None:
    """Fuse fragments sharing atoms until all fragments are disjoint."""
    fragments = ctx.fragments
    while True:
        best = _best_join(fragments)
        if best is None:
            break

        f1, f2, common = best
        if len(common) == len(f1):
            fragments.remove(f1)
        elif len(common) == len(f2):
            fragments.remove(f2)
        else:
            logger.debug("Fusing %r and %r at %s", f1, f2, common)
            if len(common) == 1:
                fused = fuse_at_atom(ctx, f1, f2, common[0])
            else:
                fused = fuse_at_atoms(ctx, f1, f2, common)
            fragments.append(fused)
            fragments.remove(f1)
            fragments.remove(f2)

    logger.debug("%d fragments after fusion", len(fragments))


def suggest_new_bond_angle(ctx: LayoutContext, f: Fragment, atom: int) -> float:
    """Direction at ``atom`` where a new bond disturbs ``f`` the least.

    With one in-fragment neighbour this is the opposite direction; otherwise
    the middle of the largest gap between neighbour directions. Gaps between
    two ring bonds that close a ring through ``atom`` are heavily penalized
    so that substituents point away from ring interiors.
    """
    graph = ctx.graph
    root = f.index(atom)
    x, y = f.coords[root]

    conns = []
    for conn_atom, conn_bond in graph.connections(atom):
        index = f.index(conn_atom)
        if index is not None:
            conns.append((get_angle(x, y, *f.coords[index]), conn_atom, conn_bond))

    if len(conns) == 1:
        return conns[0][0] + math.pi

    conns.sort(key=lambda conn: conn[0])
    first_angle, first_atom, first_bond = conns[0]
    conns.append((first_angle + 2 * math.pi, first_atom, first_bond))

    max_angle_dif = -100.0
    max_index = 0
    for i in range(len(conns) - 1):
        angle1, atom1, bond1 = conns[i]
        angle2, atom2, bond2 = conns[i + 1]
        dif = angle2 - angle1
        if len(conns) > 3 and graph.is_ring_bond(bond1) and graph.is_ring_bond(bond2):
            ring_size = ctx.smallest_ring_size(atom1, atom, atom2)
            if ring_size != 0:
                dif -= 100.0 - ring_size

        if max_angle_dif < dif:
            max_angle_dif = dif
            max_index = i

    return (conns[max_index][0] + conns[max_index + 1][0]) / 2


def fuse_at_atom(ctx: LayoutContext, f1: Fragment, f2: Fragment, atom: int) -> Fragment:
    """Join two fragments sharing exactly one atom.

    ``f2`` is moved onto the shared atom and rotated so that its bonds point
    into the free space of ``f1``. Two terminal bonds get a 60 degree bias,
    turning a straight junction into a zig-zag.
    """
    index1, index2 = f1.index(atom), f2.index(atom)
    f2.translate(*(f1.coords[index1] - f2.coords[index2]))

    angle1 = suggest_new_bond_angle(ctx, f1, atom)
    angle2 = suggest_new_bond_angle(ctx, f2, atom)

    angle_inc = 0.0
    if f1.conn_count(atom) == 1 and f2.conn_count(atom) == 1:
        angle_inc = math.pi / 3

    x, y = f2.coords[index2]
    f2.rotate(x, y, angle1 - angle2 + angle_inc + math.pi)
    return merge_fragments(f1, f2)


def fuse_at_atoms(ctx: LayoutContext, f1: Fragment, f2: Fragment, common: List[int]) -> Fragment:
    """Join two fragments sharing several atoms.

    The shared atoms of ``f2`` are superimposed on those of ``f1`` by their
    centroid and the mean angular offset. Whether ``f2`` is mirrored first is
    decided by comparing the directions of each fragment's own neighbours at
    the shared atoms: they should point away from each other.
    """
    graph = ctx.graph
    index1 = [f1.index(atom) for atom in common]
    index2 = [f2.index(atom) for atom in common]

    mean_x1, mean_y1 = f1.coords[index1].mean(axis=0)
    mean_x2, mean_y2 = f2.coords[index2].mean(axis=0)
    f2.translate(mean_x1 - mean_x2, mean_y1 - mean_y2)

    angle_difs, angle_difs_flip = [], []
    for i1, i2 in zip(index1, index2):
        a1 = DirectedAngle.between(mean_x1, mean_y1, *f1.coords[i1])
        a2 = DirectedAngle.between(mean_x1, mean_y1, *f2.coords[i2])
        angle_difs.append(DirectedAngle(a1.angle - a2.angle, a1.length * a2.length))
        angle_difs_flip.append(DirectedAngle(a1.angle + a2.angle, a1.length * a2.length))
    mean_dif = mean_angle(angle_difs)
    mean_dif_flip = mean_angle(angle_difs_flip)

    f1_angles, f2_angles, f2_angles_flip = [], [], []
    for atom, i1, i2 in zip(common, index1, index2):
        for conn_atom in graph.conn_atoms(atom):
            in_f1, in_f2 = conn_atom in f1, conn_atom in f2
            if in_f1 and not in_f2:
                f1_angles.append(DirectedAngle.between(*f1.coords[i1],
                                                       *f1.coords[f1.index(conn_atom)]))
            elif in_f2 and not in_f1:
                a = DirectedAngle.between(*f2.coords[i2], *f2.coords[f2.index(conn_atom)])
                f2_angles.append(DirectedAngle(mean_dif.angle + a.angle, a.length))
                f2_angles_flip.append(DirectedAngle(mean_dif_flip.angle - a.angle, a.length))

    f1_mean = mean_angle(f1_angles).angle
    if (abs(angle_dif(f1_mean, mean_angle(f2_angles).angle))
            > abs(angle_dif(f1_mean, mean_angle(f2_angles_flip).angle))):
        f2.rotate(mean_x1, mean_y1, mean_dif.angle)
    else:
        f2.flip(mean_x1, mean_y1, 0.0)
        f2.rotate(mean_x1, mean_y1, mean_dif_flip.angle)

    return merge_fragments(f1, f2)
