"""Integer basis search for Miller planes.

Extended Summary
----------------
A Miller plane (h, k, l) of a lattice is spanned by the integer vectors u
with ``h·u = 0``. The slab builder needs a primitive basis (u, v) of that
2D lattice and a third lattice vector w that steps from one plane to the
next, such that ``M = [u v w]`` is unimodular.

Routine Listings
----------------
reduce_miller : function
    Divide Miller indices by their greatest common divisor
integer_vectors : function
    Non-zero integer vectors inside a cube
find_surface_basis : function
    Primitive in-plane basis of shortest total length
find_stacking_vector : function
    Shortest lattice vector with h·w = 1
surface_transform : function
    Unimodular matrix [u v w] for a Miller plane
"""

import logging
import math

import numpy as np
from beartype import beartype
from beartype.typing import Optional, Sequence, Tuple
from jaxtyping import Float, Int, jaxtyped

from xtalysis.config import INITIAL_SEARCH_RANGE, MAX_SEARCH_RANGE
from xtalysis.types import CancelToken, NoValidBasis, check_cancelled

logger = logging.getLogger(__name__)

CANDIDATES_PER_RANGE: int = 48


@beartype
def reduce_miller(miller: Sequence[int]) -> Tuple[int, int, int]:
    """Divide Miller indices by their greatest common divisor.

    Raises
    ------
    ValueError
        If there are not exactly three indices or all are zero.
    """
    if len(miller) != 3:
        raise ValueError(f"Expected three Miller indices, got {tuple(miller)}")
    h, k, l = (int(i) for i in miller)
    divisor = math.gcd(math.gcd(abs(h), abs(k)), abs(l))
    if divisor == 0:
        raise ValueError("Miller indices (0, 0, 0) do not define a plane")
    return h // divisor, k // divisor, l // divisor


@jaxtyped(typechecker=beartype)
def integer_vectors(search_range: int) -> Int[np.ndarray, "K 3"]:
    """All non-zero integer vectors with entries in [-r, r]."""
    axis = np.arange(-search_range, search_range + 1)
    grid = np.stack(np.meshgrid(axis, axis, axis, indexing="ij"), axis=-1)
    grid = grid.reshape(-1, 3)
    return grid[np.any(grid != 0, axis=1)]


def _shortest_first(
    vectors: np.ndarray, lattice: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    lengths = np.linalg.norm(vectors @ lattice, axis=1)
    # shortest first, lexicographically largest among equal lengths
    order = np.lexsort(
        (-vectors[:, 2], -vectors[:, 1], -vectors[:, 0], np.round(lengths, 8))
    )
    return vectors[order], lengths[order]


@jaxtyped(typechecker=beartype)
def find_surface_basis(
    lattice: Float[np.ndarray, "3 3"],
    miller: Tuple[int, int, int],
    initial_range: int = INITIAL_SEARCH_RANGE,
    max_range: int = MAX_SEARCH_RANGE,
    cancel: Optional[CancelToken] = None,
) -> Tuple[Int[np.ndarray, "3"], Int[np.ndarray, "3"]]:
    """Primitive integer basis (u, v) of a Miller plane.

    Parameters
    ----------
    lattice : Float[np.ndarray, "3 3"]
        Lattice vectors as rows.
    miller : Tuple[int, int, int]
        Reduced Miller indices.
    initial_range, max_range : int, optional
        The search cube half-width starts at ``initial_range`` and doubles
        until a basis is found or it exceeds ``max_range``.
    cancel : CancelToken, optional
        Checked once per search range.

    Returns
    -------
    Tuple[Int[np.ndarray, "3"], Int[np.ndarray, "3"]]
        In-plane vectors u and v in the old basis.

    Raises
    ------
    NoValidBasis
        If no primitive pair exists inside ``max_range``.

    Notes
    -----
    A pair spans the whole plane lattice, and so has the minimal area,
    exactly when its integer cross product is ±(h, k, l). Among such pairs
    the smallest ``|u| + |v|`` in Cartesian length wins; remaining ties go
    to the lexicographically largest (u, v).
    """
    normal = np.array(miller, dtype=np.int64)
    search_range = initial_range
    while search_range <= max_range:
        check_cancelled(cancel)
        vectors = integer_vectors(search_range)
        in_plane = vectors[vectors @ normal == 0]
        # multiples of a shorter vector can never be part of a primitive pair
        in_plane = in_plane[np.gcd.reduce(np.abs(in_plane), axis=1) == 1]
        in_plane, lengths = _shortest_first(in_plane, lattice)
        in_plane = in_plane[:CANDIDATES_PER_RANGE]
        lengths = lengths[:CANDIDATES_PER_RANGE]
        best = None
        for i, u in enumerate(in_plane):
            for j, v in enumerate(in_plane):
                cross = np.cross(u, v)
                if not (np.array_equal(cross, normal) or np.array_equal(cross, -normal)):
                    continue
                key = (
                    round(float(lengths[i] + lengths[j]), 8),
                    tuple(-u),
                    tuple(-v),
                )
                if best is None or key < best[0]:
                    best = (key, u, v)
        if best is not None:
            logger.debug(
                "Surface basis for %s: u=%s v=%s (range %d)",
                miller,
                best[1],
                best[2],
                search_range,
            )
            return best[1].astype(np.int64), best[2].astype(np.int64)
        search_range *= 2
    raise NoValidBasis(
        f"No in-plane basis for {miller} within search range {max_range}"
    )


@jaxtyped(typechecker=beartype)
def find_stacking_vector(
    lattice: Float[np.ndarray, "3 3"],
    miller: Tuple[int, int, int],
    initial_range: int = INITIAL_SEARCH_RANGE,
    max_range: int = MAX_SEARCH_RANGE,
) -> Int[np.ndarray, "3"]:
    """Shortest lattice vector w with ``h·w = 1``.

    Such a w connects neighbouring planes of the family, so together with
    a primitive in-plane basis it forms a unimodular cell.

    Raises
    ------
    NoValidBasis
        If no such vector exists inside ``max_range``.
    """
    normal = np.array(miller, dtype=np.int64)
    search_range = initial_range
    while search_range <= max_range:
        vectors = integer_vectors(search_range)
        stepping = vectors[vectors @ normal == 1]
        if stepping.shape[0]:
            ordered, _ = _shortest_first(stepping, lattice)
            return ordered[0].astype(np.int64)
        search_range *= 2
    raise NoValidBasis(
        f"No stacking vector for {miller} within search range {max_range}"
    )


@jaxtyped(typechecker=beartype)
def surface_transform(
    lattice: Float[np.ndarray, "3 3"],
    miller: Tuple[int, int, int],
    initial_range: int = INITIAL_SEARCH_RANGE,
    max_range: int = MAX_SEARCH_RANGE,
    cancel: Optional[CancelToken] = None,
) -> Int[np.ndarray, "3 3"]:
    """Unimodular matrix whose columns are u, v and w.

    The in-plane pair is swapped when needed so that ``det(M)`` has the
    sign of the lattice determinant. The new cell is then right-handed
    in Cartesian space, with w on the positive side of ``u × v``, even
    for a left-handed input lattice.
    """
    u, v = find_surface_basis(
        lattice, miller, initial_range, max_range, cancel=cancel
    )
    w = find_stacking_vector(lattice, miller, initial_range, max_range)
    transform = np.stack([u, v, w], axis=1)
    handedness = np.sign(np.linalg.det(lattice))
    if round(np.linalg.det(transform)) * handedness < 0:
        transform = np.stack([v, u, w], axis=1)
    return transform.astype(np.int64)
