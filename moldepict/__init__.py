"""Moldepict package init.

Keep imports lightweight: RDKit is optional and only needed by
``moldepict.utils``. Import it directly from there when needed.
"""

from moldepict.context import LayoutMode
from moldepict.inventor import CoordinateInventor, invent_coordinates
from moldepict.molecule import BondParity, MolGraph

__all__ = [
    "BondParity",
    "CoordinateInventor",
    "LayoutMode",
    "MolGraph",
    "invent_coordinates",
    "__version__",
]

# Single source of truth for the package version
__version__ = "0.1.0"
