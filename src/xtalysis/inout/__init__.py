"""Static element data used by the analyses.

Extended Summary
----------------
Loader for the bundled element table: atomic numbers, Cromer-Mann X-ray
scattering coefficients and covalent, ionic and van der Waals radii.

Routine Listings
----------------
load_element_table : function
    Load and cache the element table from JSON
element_symbol : function
    Normalise a species label to an element symbol
atomic_number : function
    Atomic number for a species label
cromer_mann_coefficients : function
    Stacked Cromer-Mann coefficients for a list of species
atomic_radius : function
    Radius of one element from a radius set
atomic_radii : function
    Radii for a list of species with overrides and scaling

Notes
-----
Unknown labels resolve to ``UNKNOWN_ELEMENT`` instead of raising.
"""

from .atomic_data import (
    DEFAULT_ELEMENTS_PATH,
    RADIUS_SETS,
    UNKNOWN_ELEMENT,
    atomic_number,
    atomic_radii,
    atomic_radius,
    cromer_mann_coefficients,
    element_symbol,
    load_element_table,
)

__all__ = [
    "DEFAULT_ELEMENTS_PATH",
    "RADIUS_SETS",
    "UNKNOWN_ELEMENT",
    "load_element_table",
    "element_symbol",
    "atomic_number",
    "cromer_mann_coefficients",
    "atomic_radius",
    "atomic_radii",
]
