"""Lattice geometry kernel.

Extended Summary
----------------
Coordinate conversions, reciprocal lattice, metric tensor, periodic
wrapping and minimum-image distances used by every analysis.

Routine Listings
----------------
cell_volume : function
    Absolute volume spanned by the lattice vectors
check_lattice : function
    Raise DegenerateLattice for a singular lattice
fractional_to_cartesian : function
    Convert fractional coordinates to Cartesian coordinates
cartesian_to_fractional : function
    Convert Cartesian coordinates to fractional coordinates
reciprocal_lattice : function
    Reciprocal basis with the 2π convention
metric_tensor : function
    Gram matrix of the lattice vectors
wrap_fractional : function
    Wrap fractional coordinates into [0, 1)
image_offsets : function
    Integer translations of a neighbour shell
neighbour_shell : function
    Shell width needed for exact minimum images
minimum_image_distance : function
    Shortest periodic distance between fractional points
build_cell_vectors : function
    Convert lattice parameters to Cartesian cell vectors
compute_lengths_angles : function
    Extract lattice parameters from cell vectors
"""

from .unitcell import (
    build_cell_vectors,
    cartesian_to_fractional,
    cell_volume,
    check_lattice,
    compute_lengths_angles,
    fractional_to_cartesian,
    image_offsets,
    metric_tensor,
    minimum_image_distance,
    neighbour_shell,
    reciprocal_lattice,
    wrap_fractional,
)

__all__ = [
    "cell_volume",
    "check_lattice",
    "fractional_to_cartesian",
    "cartesian_to_fractional",
    "reciprocal_lattice",
    "metric_tensor",
    "wrap_fractional",
    "image_offsets",
    "neighbour_shell",
    "minimum_image_distance",
    "build_cell_vectors",
    "compute_lengths_angles",
]
