"""Classification of a symmetry operation set.

Extended Summary
----------------
Turns a list of (rotation, translation) pairs into a crystal system, a
Bravais symbol and a space-group number with its Hermann-Mauguin symbol.
The crystal system comes from counting the rotation types present; the
number and symbol come from the reference table of the 230 space groups
shipped with ``spglib``.

Routine Listings
----------------
rotation_order : function
    Signed order of a rotation matrix (negative for improper rotations)
classify_crystal_system : function
    Crystal system from the rotation-type census
bravais_symbol : function
    Pearson-style Bravais symbol from system and centering letter
crystal_system_from_number : function
    Crystal system that contains a space-group number
closed_subset : function
    Largest subset of operations closed under composition
lookup_space_group : function
    Match an operation set against the space-group reference table
"""

import logging

import numpy as np
import spglib
from beartype import beartype
from beartype.typing import List, Optional, Tuple
from jaxtyping import Float, Int, jaxtyped

logger = logging.getLogger(__name__)

_TRACE_TO_ORDER = {3: 1, -1: 2, 0: 3, 1: 4, 2: 6}
_SYSTEM_LETTERS = {
    "triclinic": "a",
    "monoclinic": "m",
    "orthorhombic": "o",
    "tetragonal": "t",
    "trigonal": "h",
    "hexagonal": "h",
    "cubic": "c",
}
_NUMBER_RANGES = (
    (2, "triclinic"),
    (15, "monoclinic"),
    (74, "orthorhombic"),
    (142, "tetragonal"),
    (167, "trigonal"),
    (194, "hexagonal"),
    (230, "cubic"),
)


@jaxtyped(typechecker=beartype)
def rotation_order(rotation: Int[np.ndarray, "3 3"]) -> int:
    """Signed order of a crystallographic rotation.

    Parameters
    ----------
    rotation : Int[np.ndarray, "3 3"]
        Integer rotation in any lattice basis.

    Returns
    -------
    int
        Order of the proper part ``det(W) W``: 1, 2, 3, 4 or 6. The sign
        is negative for improper operations, so a mirror is -2 and the
        inversion is -1.

    Raises
    ------
    ValueError
        If the matrix is not a crystallographic rotation.
    """
    det = int(round(np.linalg.det(rotation)))
    if det not in (1, -1):
        raise ValueError(f"Rotation has determinant {det}")
    trace = det * int(np.trace(rotation))
    if trace not in _TRACE_TO_ORDER:
        raise ValueError(f"Trace {trace} is not crystallographic")
    return det * _TRACE_TO_ORDER[trace]


@jaxtyped(typechecker=beartype)
def classify_crystal_system(rotations: Int[np.ndarray, "M 3 3"]) -> str:
    """Crystal system from the census of rotation types.

    Notes
    -----
    Counts operations by the order of their proper part:

    - eight or more threefold parts: cubic
    - any sixfold part: hexagonal
    - any threefold part: trigonal
    - any fourfold part: tetragonal
    - three or more twofold parts: orthorhombic
    - any twofold part: monoclinic
    - otherwise triclinic
    """
    distinct = np.unique(rotations.reshape(-1, 9), axis=0).reshape(-1, 3, 3)
    orders = [abs(rotation_order(rot)) for rot in distinct]
    count = {n: orders.count(n) for n in (2, 3, 4, 6)}
    if count[3] >= 8:
        return "cubic"
    if count[6] > 0:
        return "hexagonal"
    if count[3] > 0:
        return "trigonal"
    if count[4] > 0:
        return "tetragonal"
    if count[2] >= 3:
        return "orthorhombic"
    if count[2] > 0:
        return "monoclinic"
    return "triclinic"


@beartype
def crystal_system_from_number(number: int) -> str:
    """Crystal system containing an international space-group number."""
    if not 1 <= number <= 230:
        raise ValueError(f"Space-group number {number} outside 1-230")
    return next(system for upper, system in _NUMBER_RANGES if number <= upper)


@beartype
def bravais_symbol(crystal_system: str, symbol: str) -> str:
    """Pearson-style Bravais symbol such as ``cF`` or ``hR``.

    Parameters
    ----------
    crystal_system : str
        One of the seven crystal systems.
    symbol : str
        Hermann-Mauguin symbol; its first letter is the centering.

    Notes
    -----
    A, B and C centerings are all reported as ``C``. Trigonal groups with
    a primitive hexagonal lattice are ``hP``.
    """
    letter = _SYSTEM_LETTERS[crystal_system]
    centering = symbol[:1].upper() if symbol else "P"
    if crystal_system == "triclinic":
        centering = "P"
    elif centering in ("A", "B"):
        centering = "C"
    elif centering == "R" and crystal_system != "trigonal":
        centering = "P"
    return letter + centering


def _compose(
    first: Tuple[np.ndarray, np.ndarray],
    second: Tuple[np.ndarray, np.ndarray],
) -> Tuple[np.ndarray, np.ndarray]:
    rot_a, trans_a = first
    rot_b, trans_b = second
    return rot_a @ rot_b, rot_a @ trans_b + trans_a


def _contains(
    rotations: np.ndarray,
    translations: np.ndarray,
    op: Tuple[np.ndarray, np.ndarray],
    frac_tolerance: float,
) -> bool:
    rot, trans = op
    same_rot = np.all(rotations == rot, axis=(1, 2))
    delta = translations[same_rot] - trans
    delta -= np.round(delta)
    return bool(np.any(np.all(np.abs(delta) < frac_tolerance, axis=1)))


@jaxtyped(typechecker=beartype)
def closed_subset(
    rotations: Int[np.ndarray, "M 3 3"],
    translations: Float[np.ndarray, "M 3"],
    frac_tolerance: float,
) -> List[int]:
    """Indices of the largest closed subset found by greedy removal.

    Products are formed for every ordered pair; while some product is
    missing from the set, the operation involved in the most failures is
    dropped. The identity (index 0) is never dropped.
    """
    keep = list(range(rotations.shape[0]))
    while True:
        failures = {idx: 0 for idx in keep}
        sub_rot = rotations[keep]
        sub_trans = translations[keep]
        for i in keep:
            for j in keep:
                product = _compose(
                    (rotations[i], translations[i]),
                    (rotations[j], translations[j]),
                )
                if not _contains(sub_rot, sub_trans, product, frac_tolerance):
                    failures[i] += 1
                    failures[j] += 1
        worst = max(
            (idx for idx in keep if idx != 0),
            key=lambda idx: (failures[idx], idx),
            default=None,
        )
        if worst is None or failures[worst] == 0:
            return keep
        keep.remove(worst)


@jaxtyped(typechecker=beartype)
def lookup_space_group(
    lattice: Float[np.ndarray, "3 3"],
    rotations: Int[np.ndarray, "M 3 3"],
    translations: Float[np.ndarray, "M 3"],
    tolerance: float,
) -> Optional[Tuple[int, str, str]]:
    """Match an operation set against the space-group reference table.

    Parameters
    ----------
    lattice : Float[np.ndarray, "3 3"]
        Lattice vectors as rows.
    rotations : Int[np.ndarray, "M 3 3"]
        Rotation parts in the lattice basis.
    translations : Float[np.ndarray, "M 3"]
        Fractional translation parts.
    tolerance : float
        Cartesian tolerance in angstroms.

    Returns
    -------
    Tuple[int, str, str] or None
        ``(number, short Hermann-Mauguin symbol, point-group symbol)``,
        or None when the set does not correspond to any space group.
    """
    try:
        sg_type = spglib.get_spacegroup_type_from_symmetry(
            np.ascontiguousarray(rotations, dtype="intc"),
            np.ascontiguousarray(translations, dtype="double"),
            lattice=np.ascontiguousarray(lattice, dtype="double"),
            symprec=tolerance,
        )
    except Exception as exc:  # error type differs between spglib releases
        logger.debug("Space-group lookup failed: %s", exc)
        return None
    if sg_type is None:
        return None
    return (
        int(sg_type.number),
        str(sg_type.international_short),
        str(sg_type.pointgroup_international),
    )
