"""Memoized symmetry results keyed by structure identity and tolerance.

Routine Listings
----------------
get_symmetry : function
    Cached wrapper around find_symmetry
clear_symmetry_cache : function
    Drop cached results for one structure or for all of them
symmetry_cache_size : function
    Number of cached results

Notes
-----
Structures are immutable, so a cached result stays valid for as long as
the same structure object is alive. Entries keep a reference to their
structure and compare it by identity; a recycled ``id`` can therefore
never return a stale result.
"""

import logging
import threading
from collections import OrderedDict

from beartype import beartype
from beartype.typing import Optional, Tuple

from xtalysis.config import DEFAULT_SYMPREC, SYMMETRY_CACHE_SIZE
from xtalysis.types import CancelToken, CrystalStructure, SymmetryInfo, scalar_float

from .symmetry import find_symmetry

logger = logging.getLogger(__name__)

_CACHE: "OrderedDict[Tuple[int, float], Tuple[CrystalStructure, SymmetryInfo]]" = (
    OrderedDict()
)
_LOCK = threading.Lock()


@beartype
def get_symmetry(
    structure: CrystalStructure,
    tolerance: scalar_float = DEFAULT_SYMPREC,
    cancel: Optional[CancelToken] = None,
) -> SymmetryInfo:
    """Memoized :func:`xtalysis.symm.find_symmetry`.

    Parameters
    ----------
    structure : CrystalStructure
        Structure to analyse.
    tolerance : scalar_float, optional
        Cartesian tolerance in angstroms.
    cancel : CancelToken, optional
        Passed to the search on a cache miss.

    Returns
    -------
    SymmetryInfo
        Cached or freshly computed assignment. Cancelled or failed
        searches are not cached.
    """
    key = (id(structure), float(tolerance))
    with _LOCK:
        entry = _CACHE.get(key)
        if entry is not None and entry[0] is structure:
            _CACHE.move_to_end(key)
            logger.debug("Symmetry cache hit for %s", key)
            return entry[1]
    info = find_symmetry(structure, tolerance=tolerance, cancel=cancel)
    with _LOCK:
        _CACHE[key] = (structure, info)
        _CACHE.move_to_end(key)
        while len(_CACHE) > SYMMETRY_CACHE_SIZE:
            _CACHE.popitem(last=False)
    return info


@beartype
def clear_symmetry_cache(structure: Optional[CrystalStructure] = None) -> int:
    """Drop cached results.

    Parameters
    ----------
    structure : CrystalStructure, optional
        Only drop the entries of this structure. Default drops everything.

    Returns
    -------
    int
        Number of entries removed.
    """
    with _LOCK:
        if structure is None:
            removed = len(_CACHE)
            _CACHE.clear()
            return removed
        stale = [key for key, (owner, _) in _CACHE.items() if owner is structure]
        for key in stale:
            del _CACHE[key]
        return len(stale)


def symmetry_cache_size() -> int:
    """Number of cached symmetry results."""
    with _LOCK:
        return len(_CACHE)
