"""X-ray powder diffraction simulation.

Extended Summary
----------------
Kinematic powder patterns from Cromer-Mann structure factors with the
Lorentz-polarization correction and 2θ peak merging.

Routine Listings
----------------
simulate_powder_pattern : function
    Complete powder pattern of a structure
hkl_bounds : function
    Largest Miller indices reaching a minimum d-spacing
generate_hkl_grid : function
    Non-zero Miller indices inside bounds
atomic_form_factors : function
    Cromer-Mann atomic form factors
structure_factor_intensity : function
    Squared structure-factor magnitudes
lorentz_polarization : function
    Powder Lorentz-polarization factor
merge_reflections : function
    Merge reflections overlapping in 2θ
"""

from .powder import (
    atomic_form_factors,
    generate_hkl_grid,
    hkl_bounds,
    lorentz_polarization,
    merge_reflections,
    simulate_powder_pattern,
    structure_factor_intensity,
)

__all__ = [
    "simulate_powder_pattern",
    "hkl_bounds",
    "generate_hkl_grid",
    "atomic_form_factors",
    "structure_factor_intensity",
    "lorentz_polarization",
    "merge_reflections",
]
