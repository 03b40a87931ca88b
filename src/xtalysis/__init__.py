"""
=========================================================

XTALYSIS Package (:mod:`xtalysis`)

=========================================================

This is the root of the xtalysis package, containing submodules for:
- Custom types and errors (`types`)
- Lattice geometry (`ucell`)
- Element data (`inout`)
- Space-group detection (`symm`)
- Powder diffraction (`simul`)
- Void analysis (`voids`)
- Surface slabs (`surface`)
- Band-structure paths (`kpath`)
- Background execution (`runner`)

Each submodule can be directly accessed after importing xtalysis.
"""

import logging

from . import inout, kpath, runner, simul, surface, symm, types, ucell, voids
from .config import setup_logger

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "inout",
    "kpath",
    "runner",
    "simul",
    "surface",
    "symm",
    "types",
    "ucell",
    "voids",
    "setup_logger",
]
