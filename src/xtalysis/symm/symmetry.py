"""Space-group detection from a crystal structure.

Extended Summary
----------------
Finds every operation ``x' = W x + t`` that maps the structure onto
itself within a Cartesian tolerance and classifies the resulting group.
Rotations are drawn from the automorphisms of the lattice metric, and
translations from the differences between equivalent atoms, so the
search never samples a continuous space.

Routine Listings
----------------
lattice_point_group : function
    Integer matrices that preserve the lattice metric
find_symmetry_operations : function
    All (rotation, translation) pairs that map the structure onto itself
find_symmetry : function
    Full space-group assignment of a structure

Notes
-----
The operation set only grows with the tolerance: the lattice filters and
the atom matching both use thresholds proportional to it, while the
candidate translations and the assignment itself do not depend on it.
"""

import functools
import itertools
import logging
import warnings

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import List, Optional, Tuple
from jaxtyping import Array, Float, Int, jaxtyped
from scipy.optimize import linear_sum_assignment

from xtalysis.config import BOUNDARY_FRACTION, DEFAULT_SYMPREC
from xtalysis.types import (
    CancelToken,
    CrystalStructure,
    InvalidStructure,
    NumericToleranceWarning,
    SymmetryInfo,
    check_cancelled,
    create_symmetry_info,
    scalar_float,
)
from xtalysis.ucell import (
    check_lattice,
    metric_tensor,
    neighbour_shell,
    wrap_fractional,
)
from xtalysis.ucell.unitcell import _minimum_image_distance

from .spacegroup import (
    bravais_symbol,
    classify_crystal_system,
    closed_subset,
    lookup_space_group,
)

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)

LATTICE_SEARCH_RANGE: int = 2
TRANSLATION_RESOLUTION: float = 1e-6


@functools.partial(jax.jit, static_argnames=("shell",))
def _pair_distances(
    lattice: Float[Array, "3 3"],
    moved: Float[Array, "N 3"],
    reference: Float[Array, "N 3"],
    shell: int,
) -> Float[Array, "N N"]:
    return _minimum_image_distance(
        lattice, moved[:, None, :], reference[None, :, :], shell=shell
    )


@jaxtyped(typechecker=beartype)
def lattice_point_group(
    lattice: Float[Array, "3 3"],
    tolerance: scalar_float = DEFAULT_SYMPREC,
) -> Int[Array, "R 3 3"]:
    """Integer matrices that map the lattice onto itself.

    Parameters
    ----------
    lattice : Float[Array, "3 3"]
        Lattice vectors as rows.
    tolerance : scalar_float, optional
        Length tolerance in angstroms. Default is ``DEFAULT_SYMPREC``.

    Returns
    -------
    Int[Array, "R 3 3"]
        Unimodular matrices W with ``Wᵀ G W ≈ G``, identity first, the rest
        in lexicographic order of their entries.

    Notes
    -----
    Algorithm:

    - Enumerate integer vectors with entries in [-2, 2]
    - For each basis vector a_j keep the vectors of the same length; these
      are the candidate columns j of W
    - Combine candidate columns, keep det(W) = ±1 and a preserved metric
      tensor, with the tolerance on ``a_i · a_j`` scaled by
      ``|a_i| + |a_j|``
    """
    tolerance = float(tolerance)
    metric: np.ndarray = np.asarray(metric_tensor(lattice))
    lengths: np.ndarray = np.sqrt(np.diag(metric))
    span = range(-LATTICE_SEARCH_RANGE, LATTICE_SEARCH_RANGE + 1)
    vectors = np.array(
        [v for v in itertools.product(span, span, span) if any(v)],
        dtype=np.int64,
    )
    vector_lengths = np.sqrt(np.einsum("ki,ij,kj->k", vectors, metric, vectors))
    columns = [
        vectors[np.abs(vector_lengths - lengths[j]) <= tolerance]
        for j in range(3)
    ]
    metric_tol = tolerance * (lengths[:, None] + lengths[None, :]) + 1e-12
    found: List[np.ndarray] = []
    for col_a, col_b, col_c in itertools.product(*columns):
        rotation = np.stack([col_a, col_b, col_c], axis=1)
        if abs(round(np.linalg.det(rotation))) != 1:
            continue
        if np.all(np.abs(rotation.T @ metric @ rotation - metric) <= metric_tol):
            found.append(rotation)
    identity = np.eye(3, dtype=np.int64)
    others = sorted(
        (rot for rot in found if not np.array_equal(rot, identity)),
        key=lambda rot: tuple(rot.ravel()),
    )
    return jnp.asarray(np.stack([identity] + others), dtype=jnp.int64)


def _candidate_translations(
    rotated_anchor: np.ndarray, partners: np.ndarray
) -> np.ndarray:
    candidates = partners - rotated_anchor
    candidates = candidates - np.floor(candidates)
    keys = np.round(candidates / TRANSLATION_RESOLUTION).astype(np.int64)
    keys = np.mod(keys, int(round(1.0 / TRANSLATION_RESOLUTION)))
    _, first = np.unique(keys, axis=0, return_index=True)
    return candidates[np.sort(first)]


@jaxtyped(typechecker=beartype)
def match_within_tolerance(
    distances: Float[np.ndarray, "N N"], tolerance: scalar_float
) -> Optional[float]:
    """Worst pair distance of a bijection with every pair within tolerance.

    Parameters
    ----------
    distances : Float[np.ndarray, "N N"]
        Distance from each transformed atom (rows) to each original atom
        (columns).
    tolerance : scalar_float
        Largest distance a matched pair may have.

    Returns
    -------
    Optional[float]
        Largest distance among the matched pairs, or ``None`` when no
        bijection keeps every pair within ``tolerance``.

    Notes
    -----
    Pairs beyond the tolerance are priced above the cost of any
    admissible bijection, so the minimum-cost assignment uses one of them
    only when no admissible bijection exists.
    """
    tolerance = float(tolerance)
    allowed = distances <= tolerance
    if not np.all(allowed.any(axis=1)) or not np.all(allowed.any(axis=0)):
        return None
    forbidden = distances.shape[0] * tolerance + 1.0
    costs = np.where(allowed, distances, forbidden)
    rows, cols = linear_sum_assignment(costs)
    if not np.all(allowed[rows, cols]):
        return None
    return float(distances[rows, cols].max())


def _match_atoms(
    lattice: Float[Array, "3 3"],
    moved: np.ndarray,
    reference: np.ndarray,
    groups: List[np.ndarray],
    tolerance: float,
    shell: int,
) -> Optional[float]:
    """Worst distance of a bijective same-species matching, or None."""
    worst = 0.0
    for indices in groups:
        dists = np.asarray(
            _pair_distances(
                lattice,
                jnp.asarray(moved[indices]),
                jnp.asarray(reference[indices]),
                shell,
            )
        )
        group_worst = match_within_tolerance(dists, tolerance)
        if group_worst is None:
            return None
        worst = max(worst, group_worst)
    return worst


@jaxtyped(typechecker=beartype)
def find_symmetry_operations(
    structure: CrystalStructure,
    tolerance: scalar_float = DEFAULT_SYMPREC,
    cancel: Optional[CancelToken] = None,
) -> Tuple[Int[Array, "M 3 3"], Float[Array, "M 3"], Float[Array, "M"]]:
    """All operations that map the structure onto itself.

    Parameters
    ----------
    structure : CrystalStructure
        Structure with at least one atom.
    tolerance : scalar_float, optional
        Cartesian matching tolerance ε in angstroms.
    cancel : CancelToken, optional
        Checked once per candidate rotation.

    Returns
    -------
    Tuple[Int[Array, "M 3 3"], Float[Array, "M 3"], Float[Array, "M"]]
        Rotations, translations wrapped into [0, 1), and the worst matched
        atom distance of every operation. The identity comes first.

    Raises
    ------
    InvalidStructure
        If the structure has no atoms or a degenerate lattice.
    Cancelled
        If ``cancel`` is set during the search.

    Notes
    -----
    Algorithm:

    - Pick the anchor atom: the first atom of the rarest species
    - For each lattice automorphism W, every same-species atom x_j gives
      the candidate translation ``t = x_j - W x_anchor``
    - Accept (W, t) when a bijective assignment within each species maps
      every transformed atom to within ε of an original atom
    """
    tolerance = float(tolerance)
    if structure.n_atoms == 0:
        raise InvalidStructure("Symmetry analysis needs at least one atom")
    check_lattice(structure.lattice)
    if tolerance <= 0.0:
        raise ValueError(f"Tolerance must be positive, got {tolerance}")
    lattice = structure.lattice
    frac = np.asarray(wrap_fractional(structure.frac_positions))
    species = np.array(structure.species)
    labels, counts = np.unique(species, return_counts=True)
    anchor_label = labels[np.argmin(counts)]
    anchor = int(np.flatnonzero(species == anchor_label)[0])
    partners = frac[species == anchor_label]
    groups = [np.flatnonzero(species == label) for label in labels]
    shell = neighbour_shell(lattice)

    rotations: List[np.ndarray] = []
    translations: List[np.ndarray] = []
    worst: List[float] = []
    for rotation in np.asarray(lattice_point_group(lattice, tolerance)):
        check_cancelled(cancel)
        rotated = frac @ rotation.T
        for translation in _candidate_translations(rotated[anchor], partners):
            distance = _match_atoms(
                lattice, rotated + translation, frac, groups, tolerance, shell
            )
            if distance is not None:
                rotations.append(rotation)
                translations.append(translation)
                worst.append(distance)
    logger.debug(
        "Found %d symmetry operations for %d atoms at tolerance %.2e",
        len(rotations),
        structure.n_atoms,
        tolerance,
    )
    order = sorted(
        range(len(rotations)),
        key=lambda i: (
            not (
                np.array_equal(rotations[i], np.eye(3))
                and np.allclose(translations[i], 0.0)
            ),
            tuple(rotations[i].ravel()),
            tuple(np.round(translations[i], 8)),
        ),
    )
    return (
        jnp.asarray(np.stack([rotations[i] for i in order]), dtype=jnp.int64),
        jnp.asarray(np.stack([translations[i] for i in order])),
        jnp.asarray([worst[i] for i in order], dtype=jnp.float64),
    )


@jaxtyped(typechecker=beartype)
def find_symmetry(
    structure: CrystalStructure,
    tolerance: scalar_float = DEFAULT_SYMPREC,
    cancel: Optional[CancelToken] = None,
) -> SymmetryInfo:
    """Space group, crystal system and operations of a structure.

    Parameters
    ----------
    structure : CrystalStructure
        Structure with at least one atom.
    tolerance : scalar_float, optional
        Cartesian matching tolerance ε in angstroms. Default 1e-3.
    cancel : CancelToken, optional
        Cooperative cancellation token.

    Returns
    -------
    SymmetryInfo
        Assignment with the identity as its first operation.

    Raises
    ------
    InvalidStructure
        If the structure has no atoms or a degenerate lattice.

    Warns
    -----
    NumericToleranceWarning
        When operations match only near ε, or when the accepted set is
        not a group and the largest closed subset is reported instead.

    Notes
    -----
    The result is independent of atom order, and a uniform translation
    of every atom changes only the translation parts of the operations.
    Use :func:`xtalysis.symm.get_symmetry` for the memoized variant.

    Examples
    --------
    >>> import jax.numpy as jnp
    >>> from xtalysis.types import create_crystal_structure
    >>> from xtalysis.symm import find_symmetry
    >>> cubic = create_crystal_structure(
    ...     4.0 * jnp.eye(3), jnp.zeros((1, 3)), ["X"]
    ... )
    >>> info = find_symmetry(cubic)
    >>> info.number, info.symbol
    (221, 'Pm-3m')
    """
    tolerance = float(tolerance)
    rotations, translations, worst = find_symmetry_operations(
        structure, tolerance=tolerance, cancel=cancel
    )
    messages: List[str] = []
    marginal = int(jnp.sum(worst > BOUNDARY_FRACTION * tolerance))
    if marginal:
        messages.append(
            f"{marginal} operation(s) matched within "
            f"{100 * (1 - BOUNDARY_FRACTION):.0f}% of the tolerance limit"
        )

    lattice_np = np.asarray(structure.lattice)
    rot_np = np.asarray(rotations)
    trans_np = np.asarray(translations)
    match = lookup_space_group(lattice_np, rot_np, trans_np, tolerance)
    if match is None:
        frac_tolerance = tolerance / float(np.min(np.linalg.norm(lattice_np, axis=1)))
        keep = closed_subset(rot_np, trans_np, frac_tolerance)
        rot_np, trans_np = rot_np[keep], trans_np[keep]
        match = lookup_space_group(lattice_np, rot_np, trans_np, tolerance)
        if match is None:
            rot_np, trans_np = rot_np[:1], trans_np[:1]
            match = (1, "P1", "1")
        messages.append(
            f"Operation set is ambiguous at tolerance {tolerance:g}; "
            f"kept {rot_np.shape[0]} of {rotations.shape[0]} operations"
        )
    for message in messages:
        warnings.warn(message, NumericToleranceWarning, stacklevel=2)
        logger.info(message)

    number, symbol, point_group = match
    crystal_system = classify_crystal_system(rot_np)
    return create_symmetry_info(
        rotations=jnp.asarray(rot_np, dtype=jnp.int64),
        translations=jnp.asarray(trans_np, dtype=jnp.float64),
        number=number,
        symbol=symbol,
        crystal_system=crystal_system,
        point_group=point_group,
        bravais=bravais_symbol(crystal_system, symbol),
        tolerance=float(tolerance),
        warnings=messages,
    )
