"""Void, porosity and intercalation-site analysis.

Extended Summary
----------------
Grid-based clearance analysis: void fraction for a probe sphere, periodic
void clusters with their largest inscribed spheres, and candidate ion
fitting.

Routine Listings
----------------
analyze_voids : function
    Full void analysis of a structure
surface_distance : function
    Clearance from points to the nearest atomic surface
grid_shape : function
    Grid points per axis for a requested spacing
fractional_grid : function
    Fractional coordinates of every grid point
resolve_probe_radius : function
    Probe radius from a preset name or a number
fitting_ions : function
    Candidate ions that fit into the largest cavity
ion_intercalation : function
    Which candidate ions fit anywhere in a structure
label_clusters : function
    Periodic union-find labelling of a boolean grid
neighbour_offsets : function
    Half stencil of the 6- or 26-neighbour adjacency
PROBE_RADII : dict
    Probe molecule presets
ION_RADII : dict
    Candidate intercalation ions
"""

from .clusters import label_clusters, neighbour_offsets
from .probe import (
    ION_RADII,
    PROBE_RADII,
    analyze_voids,
    fitting_ions,
    fractional_grid,
    grid_shape,
    ion_intercalation,
    resolve_probe_radius,
    surface_distance,
)

__all__ = [
    "analyze_voids",
    "surface_distance",
    "grid_shape",
    "fractional_grid",
    "resolve_probe_radius",
    "fitting_ions",
    "ion_intercalation",
    "label_clusters",
    "neighbour_offsets",
    "PROBE_RADII",
    "ION_RADII",
]
