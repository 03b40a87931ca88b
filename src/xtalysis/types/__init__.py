"""Custom types, result containers and errors for crystal analysis.

Extended Summary
----------------
This module defines the JAX-compatible data structures shared by every
analysis: the input crystal structure, the result records returned by the
symmetry, diffraction, void, slab and k-path analyses, scalar aliases and
the exception/warning taxonomy.

Routine Listings
----------------
CrystalStructure : class
    Lattice, fractional positions and element labels
SymmetryOperation : class
    Rotation and translation acting on fractional coordinates
SymmetryInfo : class
    Space-group assignment with its operations
DiffractionPattern : class
    Merged powder diffraction peaks
VoidCluster : class
    Connected void region
VoidField : class
    Probe-grid clearance field and its clusters
SlabModel : class
    Surface slab and construction parameters
KPoint : class
    Labelled reciprocal-space point
KPath : class
    Band-structure path and Brillouin-zone wireframe
create_crystal_structure : function
    Factory function to create CrystalStructure instances
create_symmetry_info : function
    Factory function to create SymmetryInfo instances
create_diffraction_pattern : function
    Factory function to create DiffractionPattern instances
create_kpath : function
    Factory function to create KPath instances
CRYSTAL_SYSTEMS : tuple
    Names of the seven crystal systems
CancelToken : class
    Thread-safe cooperative cancellation flag
check_cancelled : function
    Raise Cancelled when an optional token is set
XtalysisError, InvalidStructure, DegenerateLattice, NoValidBasis,
ComputeTimeout, Cancelled : exceptions
    Fatal error taxonomy
NumericToleranceWarning, UnsupportedLatticeVisualization : warnings
    Non-fatal conditions recorded on results

Type Aliases
------------
- `scalar_float`:
    Union type for scalar float values (float, int or JAX scalar array)
- `scalar_int`:
    Union type for scalar integer values (int or JAX scalar array)
"""

from .analysis_types import (
    CRYSTAL_SYSTEMS,
    DiffractionPattern,
    KPath,
    KPoint,
    SlabModel,
    SymmetryInfo,
    SymmetryOperation,
    VoidCluster,
    VoidField,
    create_diffraction_pattern,
    create_kpath,
    create_symmetry_info,
)
from .cancel import CancelToken, check_cancelled
from .crystal_types import CrystalStructure, create_crystal_structure
from .custom_types import scalar_float, scalar_int
from .errors import (
    Cancelled,
    ComputeTimeout,
    DegenerateLattice,
    InvalidStructure,
    NoValidBasis,
    NumericToleranceWarning,
    UnsupportedLatticeVisualization,
    XtalysisError,
)

__all__ = [
    "CrystalStructure",
    "create_crystal_structure",
    "SymmetryOperation",
    "SymmetryInfo",
    "create_symmetry_info",
    "DiffractionPattern",
    "create_diffraction_pattern",
    "VoidCluster",
    "VoidField",
    "SlabModel",
    "KPoint",
    "KPath",
    "create_kpath",
    "CRYSTAL_SYSTEMS",
    "CancelToken",
    "check_cancelled",
    "scalar_float",
    "scalar_int",
    "XtalysisError",
    "InvalidStructure",
    "DegenerateLattice",
    "NoValidBasis",
    "ComputeTimeout",
    "Cancelled",
    "NumericToleranceWarning",
    "UnsupportedLatticeVisualization",
]
