"""Band-structure paths and Brillouin-zone geometry.

Extended Summary
----------------
Maps a structure to its Bravais lattice variant, returns the standard
high-symmetry points and path, and builds a wireframe of the first
Brillouin zone for display.

Routine Listings
----------------
generate_kpath : function
    High-symmetry path and wireframe for a structure
primitive_and_conventional : function
    Primitive and conventional lattices implied by a symmetry result
select_variant : function
    Lattice variant from Bravais symbol and cell parameters
catalogue_entry : function
    Points and path branches of a lattice variant
wigner_seitz_wireframe : function
    Vertices and edges of the first Brillouin zone
placeholder_wireframe : function
    Parallelepiped spanning ±½ of the reciprocal basis
reciprocal_points : function
    Reciprocal lattice points of an integer cube
GAMMA : str
    Label of the zone center
LATTICE_TYPES : tuple
    Every lattice variant label
"""

from .brillouin import (
    placeholder_wireframe,
    reciprocal_points,
    wigner_seitz_wireframe,
)
from .catalogue import (
    GAMMA,
    LATTICE_TYPES,
    PRIMITIVE_TRANSFORMS,
    catalogue_entry,
    select_variant,
)
from .path import generate_kpath, primitive_and_conventional

__all__ = [
    "generate_kpath",
    "primitive_and_conventional",
    "select_variant",
    "catalogue_entry",
    "wigner_seitz_wireframe",
    "placeholder_wireframe",
    "reciprocal_points",
    "GAMMA",
    "LATTICE_TYPES",
    "PRIMITIVE_TRANSFORMS",
]
