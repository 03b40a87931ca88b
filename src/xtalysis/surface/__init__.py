"""Surface slab construction.

Extended Summary
----------------
Builds slabs along arbitrary Miller planes: integer basis search for the
plane, unimodular re-expression of the structure, layer stacking, vacuum
insertion and periodic duplicate removal. Also re-expresses whole
structures as supercells or as their primitive and conventional cells.

Routine Listings
----------------
build_slab : function
    Complete slab model from a structure and a Miller plane
transform_structure : function
    Express a structure in a new unimodular basis
remove_duplicate_atoms : function
    Mask of atoms surviving periodic de-duplication
reduce_miller : function
    Divide Miller indices by their common divisor
find_surface_basis : function
    Primitive in-plane basis of a Miller plane
find_stacking_vector : function
    Shortest lattice vector stepping between planes
surface_transform : function
    Unimodular matrix [u v w] giving a right-handed cell
integer_vectors : function
    Non-zero integer vectors inside a cube
make_supercell : function
    Repeat a structure along its lattice vectors
convert_structure : function
    Primitive or conventional cell of a structure
fill_cell : function
    Express a structure in any commensurate lattice
CELL_KINDS : tuple
    Accepted targets of convert_structure
"""

from .cells import CELL_KINDS, convert_structure, fill_cell, make_supercell
from .miller import (
    find_stacking_vector,
    find_surface_basis,
    integer_vectors,
    reduce_miller,
    surface_transform,
)
from .slab import build_slab, remove_duplicate_atoms, transform_structure

__all__ = [
    "build_slab",
    "transform_structure",
    "remove_duplicate_atoms",
    "reduce_miller",
    "find_surface_basis",
    "find_stacking_vector",
    "surface_transform",
    "integer_vectors",
    "make_supercell",
    "convert_structure",
    "fill_cell",
    "CELL_KINDS",
]
