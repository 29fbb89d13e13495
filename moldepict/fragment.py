# External imports
import math
import numpy as np
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

# Internal imports
from moldepict.geometry import DirectedAngle, get_angle, mean_angle
from moldepict.molecule import MolGraph


COLLISION_LIMIT_BOND_ROTATION = 0.8
COLLISION_LIMIT_ATOM_MOVEMENT = 0.5


def atom_surplus(graph: MolGraph, atom: int) -> float:
    """Extra radius an atom label needs beyond a bare carbon vertex."""
    if graph.is_query(atom):
        return 0.6
    if graph.atomic_no(atom) != 6:
        return 0.25
    return 0.0


class _FlipList(NamedTuple):
    anchor: int          # bond atom index on the side that stays
    pivot: int           # bond atom index on the side that gets mirrored
    moving: np.ndarray   # all other indices on the mirrored side


class Fragment(object):
    """Group of atoms with local coordinates in bond-length units.

    ``atoms`` keeps discovery order; ``coords`` is an ``(n, 2)`` array aligned
    with it and ``priority`` tells whose coordinates win when fragments merge.
    """

    def __init__(
        self,
        graph: MolGraph,
        atoms: Iterable[int],
        coords=None,
        priority=0,
    ):
        self.graph = graph
        self.atoms: List[int] = list(atoms)
        size = len(self.atoms)
        if coords is None:
            self.coords = np.zeros((size, 2))
        else:
            self.coords = np.array(coords, dtype=float).reshape(size, 2)
        self.priority = np.zeros(size, dtype=np.int64) + np.asarray(priority, dtype=np.int64)
        self._index: Dict[int, int] = {atom: i for i, atom in enumerate(self.atoms)}
        assert len(self._index) == size, "Atom listed twice in one fragment."

        self.bonds: Optional[List[int]] = None
        self.collision_penalty = 0.0
        self._surplus: Optional[np.ndarray] = None
        self._adjacency: Optional[np.ndarray] = None
        self._flip_lists: Dict[int, _FlipList] = {}

    def __len__(self) -> int:
        return len(self.atoms)

    def __contains__(self, atom: int) -> bool:
        return atom in self._index

    def __repr__(self) -> str:
        return f"Fragment(atoms={self.atoms})"

    def index(self, atom: int) -> Optional[int]:
        """Local index of ``atom`` or ``None`` if it is not a member."""
        return self._index.get(atom)

    def copy(self) -> "Fragment":
        f = Fragment(self.graph, self.atoms, self.coords.copy(), self.priority.copy())
        f.bonds = None if self.bonds is None else list(self.bonds)
        f.collision_penalty = self.collision_penalty
        f._surplus = self._surplus
        f._adjacency = self._adjacency
        f._flip_lists = dict(self._flip_lists)
        return f

    def conn_count(self, atom: int) -> int:
        """Number of neighbours of ``atom`` that are members of this fragment."""
        return sum(1 for nbr in self.graph.conn_atoms(atom) if nbr in self._index)

    @property
    def surplus(self) -> np.ndarray:
        if self._surplus is None:
            self._surplus = np.array([atom_surplus(self.graph, a) for a in self.atoms])
        return self._surplus

    # --- Rigid transformations ------------------------------------------

    def translate(self, dx: float, dy: float) -> None:
        self.coords += (dx, dy)

    def rotate(self, x: float, y: float, angle: float) -> None:
        """Rotate all atoms around ``(x, y)`` by ``angle`` (clockwise)."""
        dx = self.coords[:, 0] - x
        dy = self.coords[:, 1] - y
        sin, cos = math.sin(angle), math.cos(angle)
        self.coords[:, 0] = x + dx * cos + dy * sin
        self.coords[:, 1] = y + dy * cos - dx * sin

    def flip(self, x: float, y: float, mirror_angle: float) -> None:
        """Mirror all atoms at the line through ``(x, y)`` with ``mirror_angle``."""
        self._mirror(np.arange(len(self)), x, y, mirror_angle)

    def _mirror(self, indices: np.ndarray, x: float, y: float, mirror_angle: float) -> None:
        dx = self.coords[indices, 0] - x
        dy = self.coords[indices, 1] - y
        sin, cos = math.sin(2 * mirror_angle), math.cos(2 * mirror_angle)
        self.coords[indices, 0] = x + dy * sin - dx * cos
        self.coords[indices, 1] = y + dy * cos + dx * sin

    def flip_one_side(self, bond: int, consider_marked: bool = False) -> None:
        """Mirror the atoms on one side of ``bond`` at the line of that bond.

        The smaller side moves. With ``consider_marked`` the side without
        marked atoms moves instead, if exactly one side contains marked atoms.
        """
        flip_list = self._flip_lists.get(bond)
        if flip_list is None:
            flip_list = self._create_flip_list(bond, consider_marked)
            self._flip_lists[bond] = flip_list

        x, y = self.coords[flip_list.anchor]
        mirror_angle = get_angle(x, y, *self.coords[flip_list.pivot])
        self._mirror(flip_list.moving, x, y, mirror_angle)

    def _create_flip_list(self, bond: int, consider_marked: bool) -> _FlipList:
        atom1, atom2 = self.graph.bond_atoms(bond)
        on_side = [atom1]
        seen = {atom1}
        current = 0
        while current < len(on_side):
            for candidate in self.graph.conn_atoms(on_side[current]):
                if candidate not in seen and candidate != atom2 and candidate in self._index:
                    seen.add(candidate)
                    on_side.append(candidate)
            current += 1

        flip_other_side = len(on_side) > len(self) // 2

        if consider_marked:
            marked_on = any(self.graph.is_marked(a) for a in self.atoms if a in seen)
            marked_off = any(self.graph.is_marked(a) for a in self.atoms if a not in seen)
            if marked_on != marked_off:
                flip_other_side = marked_on

        moving = [i for i, atom in enumerate(self.atoms)
                  if atom not in (atom1, atom2) and flip_other_side != (atom in seen)]
        if flip_other_side:
            anchor, pivot = self._index[atom1], self._index[atom2]
        else:
            anchor, pivot = self._index[atom2], self._index[atom1]
        return _FlipList(anchor, pivot, np.array(moving, dtype=np.int64))

    # --- Bonds and collisions -------------------------------------------

    def locate_bonds(self) -> None:
        """Collect the bonds between member atoms, ordered by first atom."""
        self.bonds = []
        for atom in self.atoms:
            for nbr, bond in self.graph.connections(atom):
                if nbr > atom and nbr in self._index:
                    self.bonds.append(bond)
        self._adjacency = None

    def _bonded(self) -> np.ndarray:
        if self._adjacency is None:
            adjacency = np.zeros((len(self), len(self)), dtype=bool)
            for atom in self.atoms:
                i = self._index[atom]
                for nbr in self.graph.conn_atoms(atom):
                    j = self._index.get(nbr)
                    if j is not None:
                        adjacency[i, j] = True
            self._adjacency = adjacency
        return self._adjacency

    def collision_list(self) -> List[Tuple[int, int]]:
        """Pairs of non-bonded atoms that sit too close to each other.

        Also refreshes ``collision_penalty``, the sum of ``(1 - min(d, 1))**2``
        over all atom pairs.
        """
        delta = self.coords[:, None, :] - self.coords[None, :, :]
        dist = np.hypot(delta[..., 0], delta[..., 1])
        lower = np.tril(np.ones(dist.shape, dtype=bool), k=-1)

        penalty = 1.0 - np.minimum(dist, 1.0)
        self.collision_penalty = float(np.sum(penalty[lower] ** 2))

        limit = COLLISION_LIMIT_BOND_ROTATION + self.surplus[:, None] + self.surplus[None, :]
        rows, cols = np.nonzero(lower & (dist < limit) & ~self._bonded())
        return [(self.atoms[i], self.atoms[j]) for i, j in zip(rows, cols)]

    def optimize_atom_coordinates(self, index: int) -> None:
        """Push one atom away from nearby bonds and atoms it is not part of."""
        assert self.bonds is not None, "Bonds must be located before optimizing."
        x, y = (float(v) for v in self.coords[index])
        limit = COLLISION_LIMIT_ATOM_MOVEMENT

        forces: List[DirectedAngle] = []
        for bond in self.bonds:
            if len(forces) >= 4:
                break

            index1, index2 = (self._index[a] for a in self.graph.bond_atoms(bond))
            if index in (index1, index2):
                continue

            x1, y1 = (float(v) for v in self.coords[index1])
            x2, y2 = (float(v) for v in self.coords[index2])
            d1 = math.hypot(x1 - x, y1 - y)
            d2 = math.hypot(x2 - x, y2 - y)
            bond_length = math.hypot(x2 - x1, y2 - y1)

            if d1 < bond_length and d2 < bond_length:
                # foot of the perpendicular from the atom onto the bond
                t = ((x - x1) * (x2 - x1) + (y - y1) * (y2 - y1)) / (bond_length * bond_length)
                xs = x1 + t * (x2 - x1)
                ys = y1 + t * (y2 - y1)
                d = math.hypot(xs - x, ys - y)
                if d < limit:
                    forces.append(DirectedAngle(get_angle(xs, ys, x, y), (limit - d) / 2))
                continue

            if d1 < limit:
                forces.append(DirectedAngle(get_angle(x1, y1, x, y), (limit - d1) / 2))
                continue

            if d2 < limit:
                forces.append(DirectedAngle(get_angle(x2, y2, x, y), (limit - d2) / 2))

        if forces:
            force = mean_angle(forces)
            self.coords[index, 0] += force.length * math.sin(force.angle)
            self.coords[index, 1] += force.length * math.cos(force.angle)

    # --- Extent and arrangement -----------------------------------------

    def bounds(self) -> Tuple[float, float, float, float]:
        """``(min_x, min_y, max_x, max_y)`` widened by each atom's surplus."""
        low = self.coords - self.surplus[:, None]
        high = self.coords + self.surplus[:, None]
        return (float(low[:, 0].min()), float(low[:, 1].min()),
                float(high[:, 0].max()), float(high[:, 1].max()))

    def width(self) -> float:
        min_x, _, max_x, _ = self.bounds()
        return max_x - min_x + 1.0    # half a bond length on every side

    def height(self) -> float:
        _, min_y, _, max_y = self.bounds()
        return max_y - min_y + 1.0

    def _corner_distance(self, corner: int, bounds: Tuple[float, float, float, float]) -> float:
        """Free diagonal space between a bounding box corner and the atoms.

        Corners: 0 = (max_x, min_y), 1 = (max_x, max_y), 2 = (min_x, max_y),
        3 = (min_x, min_y).
        """
        min_x, min_y, max_x, max_y = bounds
        x, y = self.coords[:, 0], self.coords[:, 1]
        if corner == 0:
            d = max_x - 0.5 * (max_x + min_y + x - y)
        elif corner == 1:
            d = max_x - 0.5 * (max_x - max_y + x + y)
        elif corner == 2:
            d = 0.5 * (min_x + max_y + x - y) - min_x
        else:
            d = 0.5 * (min_x - min_y + x + y) - min_x
        return float(np.min(d - self.surplus))

    def arrange_with(self, f: "Fragment") -> None:
        """Translate ``f`` next to this fragment so that both stay compact."""
        bounds, f_bounds = self.bounds(), f.bounds()
        min_x, min_y, max_x, max_y = bounds
        f_min_x, f_min_y, f_max_x, f_max_y = f_bounds

        max_gain = 0.0
        max_corner = 0
        for corner in range(4):
            gain = (self._corner_distance(corner, bounds)
                    + f._corner_distance((corner + 2) % 4, f_bounds))
            if max_gain < gain:
                max_gain = gain
                max_corner = corner

        width, height = max_x - min_x + 1.0, max_y - min_y + 1.0
        f_width, f_height = f_max_x - f_min_x + 1.0, f_max_y - f_min_y + 1.0
        sum_height = height + f_height
        sum_width = 0.75 * (width + f_width)
        max_height = max(height, f_height)
        max_width = 0.75 * max(width, f_width)

        best_corner_size = math.hypot(sum_height - max_gain, sum_width - 0.75 * max_gain)
        topped_size = max(max_width, sum_height)
        beside_size = max(max_height, sum_width)

        if best_corner_size < topped_size and best_corner_size < beside_size:
            if max_corner == 0:
                f.translate(max_x - f_min_x - max_gain + 1.0, min_y - f_max_y + max_gain - 1.0)
            elif max_corner == 1:
                f.translate(max_x - f_min_x - max_gain + 1.0, max_y - f_min_y - max_gain + 1.0)
            elif max_corner == 2:
                f.translate(min_x - f_max_x + max_gain - 1.0, max_y - f_min_y - max_gain + 1.0)
            else:
                f.translate(min_x - f_max_x + max_gain - 1.0, min_y - f_max_y + max_gain - 1.0)
        elif beside_size < topped_size:
            f.translate(max_x - f_min_x + 1.0, (max_y + min_y - f_max_y - f_min_y) / 2)
        else:
            f.translate((max_x + min_x - f_max_x - f_min_x) / 2, max_y - f_min_y + 1.0)


def merge_fragments(f1: Fragment, f2: Fragment) -> Fragment:
    """Union of two fragments; shared atoms keep the coordinates of ``f1``
    and the higher of both priorities."""
    new_atoms = [i for i, atom in enumerate(f2.atoms) if atom not in f1]
    merged = Fragment(
        f1.graph,
        f1.atoms + [f2.atoms[i] for i in new_atoms],
        np.concatenate([f1.coords, f2.coords[new_atoms]]),
        np.concatenate([f1.priority, f2.priority[new_atoms]]),
    )
    for i, atom in enumerate(f2.atoms):
        index = f1.index(atom)
        if index is not None and merged.priority[index] < f2.priority[i]:
            merged.priority[index] = f2.priority[i]
    return merged
