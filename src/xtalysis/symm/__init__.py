"""Space-group detection.

Extended Summary
----------------
Finds the symmetry operations of a crystal structure within a Cartesian
tolerance and assigns its space group, crystal system and Bravais lattice.

Routine Listings
----------------
find_symmetry : function
    Full space-group assignment of a structure
find_symmetry_operations : function
    All operations mapping the structure onto itself
lattice_point_group : function
    Integer matrices preserving the lattice metric
match_within_tolerance : function
    Bijective atom matching with every pair within a tolerance
get_symmetry : function
    Memoized find_symmetry keyed by structure identity and tolerance
clear_symmetry_cache : function
    Invalidate memoized results
symmetry_cache_size : function
    Number of memoized results
classify_crystal_system : function
    Crystal system from a rotation census
crystal_system_from_number : function
    Crystal system containing a space-group number
bravais_symbol : function
    Pearson-style Bravais symbol
rotation_order : function
    Signed order of a rotation matrix
"""

from .cache import clear_symmetry_cache, get_symmetry, symmetry_cache_size
from .spacegroup import (
    bravais_symbol,
    classify_crystal_system,
    crystal_system_from_number,
    rotation_order,
)
from .symmetry import (
    find_symmetry,
    find_symmetry_operations,
    lattice_point_group,
    match_within_tolerance,
)

__all__ = [
    "find_symmetry",
    "find_symmetry_operations",
    "lattice_point_group",
    "match_within_tolerance",
    "get_symmetry",
    "clear_symmetry_cache",
    "symmetry_cache_size",
    "classify_crystal_system",
    "crystal_system_from_number",
    "bravais_symbol",
    "rotation_order",
]
