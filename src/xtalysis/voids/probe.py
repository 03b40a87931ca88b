"""Probe-grid void analysis.

Extended Summary
----------------
Samples the unit cell on a regular fractional grid, computes the distance
from every grid point to the nearest atomic surface, and reports the
volume fraction and connected regions where a spherical probe fits. This
answers porosity questions (which gas molecules fit) as well as
intercalation questions (which ions fit in the largest cavity).

Routine Listings
----------------
PROBE_RADII : dict
    Kinetic radii of common probe molecules in angstroms
ION_RADII : dict
    Ionic radii of candidate intercalation ions in angstroms
resolve_probe_radius : function
    Probe radius from a preset name or a number
grid_shape : function
    Grid points per axis for a requested spacing
fractional_grid : function
    Fractional coordinates of every grid point
surface_distance : function
    Clearance from points to the nearest atomic surface
analyze_voids : function
    Full void analysis of a structure
fitting_ions : function
    Candidate ions that fit into the largest cavity
ion_intercalation : function
    Which candidate ions fit anywhere in a structure
"""

import functools
import logging
import math

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import Dict, Mapping, Optional, Tuple, Union
from jaxtyping import Array, Float, jaxtyped

from xtalysis.config import (
    DEFAULT_CONNECTIVITY,
    DEFAULT_GRID_SPACING,
    DEFAULT_PROBE,
    DEFAULT_RADIUS_SET,
    MAX_GRID_POINTS,
)
from xtalysis.inout import atomic_radii
from xtalysis.types import (
    CancelToken,
    ComputeTimeout,
    CrystalStructure,
    VoidCluster,
    VoidField,
    check_cancelled,
    scalar_float,
)
from xtalysis.ucell import check_lattice, neighbour_shell
from xtalysis.ucell.unitcell import _minimum_image_distance

from .clusters import label_clusters

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)

PROBE_RADII: Dict[str, float] = {
    "He": 1.20,
    "H2": 1.45,
    "H2O": 1.32,
    "CO2": 1.65,
    "N2": 1.82,
    "O2": 1.73,
    "Ar": 1.70,
    "Kr": 1.80,
    "CH4": 1.90,
    "C2H6": 2.20,
    "Geometric": 0.0,
}

ION_RADII: Dict[str, float] = {
    "Li+": 0.76,
    "Mg2+": 0.72,
    "Zn2+": 0.74,
    "Al3+": 0.54,
    "Na+": 1.02,
    "Ca2+": 1.00,
    "Fe2+": 0.78,
    "Co2+": 0.75,
    "Ni2+": 0.69,
    "K+": 1.38,
    "Rb+": 1.52,
    "Cs+": 1.67,
    "F-": 1.33,
    "Cl-": 1.81,
    "O2-": 1.40,
    "S2-": 1.84,
}

WORK_PER_BLOCK: int = 2_000_000


@beartype
def resolve_probe_radius(probe: Union[str, float, int]) -> float:
    """Probe radius in angstroms.

    Parameters
    ----------
    probe : Union[str, float, int]
        Preset name from :data:`PROBE_RADII` or :data:`ION_RADII`, or a
        radius in angstroms.

    Raises
    ------
    ValueError
        If the name is unknown or the radius is negative.
    """
    if isinstance(probe, str):
        if probe in PROBE_RADII:
            return PROBE_RADII[probe]
        if probe in ION_RADII:
            return ION_RADII[probe]
        raise ValueError(f"Unknown probe preset '{probe}'")
    radius = float(probe)
    if radius < 0.0 or not math.isfinite(radius):
        raise ValueError(f"Probe radius must be non-negative, got {radius}")
    return radius


@jaxtyped(typechecker=beartype)
def grid_shape(
    lattice: Float[Array, "3 3"], spacing: scalar_float
) -> Tuple[int, int, int]:
    """Points per axis so that the actual spacing never exceeds ``spacing``."""
    if float(spacing) <= 0.0:
        raise ValueError(f"Grid spacing must be positive, got {spacing}")
    lengths = np.linalg.norm(np.asarray(lattice), axis=1)
    return tuple(max(1, int(math.ceil(length / float(spacing)))) for length in lengths)


@jaxtyped(typechecker=beartype)
def fractional_grid(shape: Tuple[int, int, int]) -> Float[Array, "P 3"]:
    """Fractional coordinates ``(i/nu, j/nv, k/nw)`` in C order."""
    axes = [jnp.arange(n, dtype=jnp.float64) / n for n in shape]
    mesh = jnp.meshgrid(*axes, indexing="ij")
    return jnp.stack(mesh, axis=-1).reshape(-1, 3)


@functools.partial(jax.jit, static_argnames=("shell",))
def _surface_distance_block(
    lattice: Float[Array, "3 3"],
    points: Float[Array, "P 3"],
    atoms: Float[Array, "N 3"],
    radii: Float[Array, "N"],
    shell: int,
) -> Float[Array, "P"]:
    distances = _minimum_image_distance(
        lattice, points[:, None, :], atoms[None, :, :], shell=shell
    )
    return jnp.min(distances - radii[None, :], axis=1)


@jaxtyped(typechecker=beartype)
def surface_distance(
    lattice: Float[Array, "3 3"],
    points: Float[Array, "P 3"],
    atoms: Float[Array, "N 3"],
    radii: Float[Array, "N"],
    cancel: Optional[CancelToken] = None,
) -> Float[Array, "P"]:
    """Distance from each point to the nearest atomic surface.

    Parameters
    ----------
    lattice : Float[Array, "3 3"]
        Lattice vectors as rows.
    points : Float[Array, "P 3"]
        Fractional coordinates of the probe points.
    atoms : Float[Array, "N 3"]
        Fractional coordinates of the atoms.
    radii : Float[Array, "N"]
        Atomic radii in angstroms.
    cancel : CancelToken, optional
        Checked before each block of points.

    Returns
    -------
    Float[Array, "P"]
        ``min_j (|r - r_j| - R_j)`` over atoms j and their periodic
        images; ``+inf`` when there are no atoms.

    Raises
    ------
    DegenerateLattice
        If the lattice vectors are coplanar.

    Notes
    -----
    Points are processed in equally sized, padded blocks so that the
    compiled kernel is reused and memory stays bounded.
    """
    check_lattice(lattice)
    n_points = points.shape[0]
    if atoms.shape[0] == 0:
        return jnp.full(n_points, jnp.inf)
    shell = neighbour_shell(lattice)
    n_images = (2 * shell + 1) ** 3
    block = max(1, WORK_PER_BLOCK // (atoms.shape[0] * n_images))
    block = min(block, n_points)
    padded = jnp.concatenate(
        [points, jnp.zeros(((-n_points) % block, 3), dtype=points.dtype)]
    )
    pieces = []
    for start in range(0, padded.shape[0], block):
        check_cancelled(cancel)
        pieces.append(
            _surface_distance_block(
                lattice, padded[start : start + block], atoms, radii, shell
            )
        )
    return jnp.concatenate(pieces)[:n_points]


def _cluster_records(
    clearance: np.ndarray,
    labels: np.ndarray,
    n_clusters: int,
    lattice: Float[Array, "3 3"],
) -> Tuple[VoidCluster, ...]:
    shape = clearance.shape
    flat_clearance = clearance.reshape(-1)
    flat_labels = labels.reshape(-1)
    members = np.flatnonzero(flat_labels >= 0)
    if members.size == 0:
        return ()
    order = members[np.lexsort((members, -flat_clearance[members]))]
    _, first = np.unique(flat_labels[order], return_index=True)
    centers = order[first]
    sizes = np.bincount(flat_labels[members], minlength=n_clusters)
    ranking = sorted(
        range(n_clusters),
        key=lambda c: (-flat_clearance[centers[c]], -sizes[c], centers[c]),
    )
    records = []
    for cluster in ranking:
        index = np.array(np.unravel_index(centers[cluster], shape))
        frac = jnp.asarray(index / np.array(shape), dtype=jnp.float64)
        records.append(
            VoidCluster(
                grid_index=jnp.asarray(index, dtype=jnp.int64),
                center=frac @ lattice,
                radius=jnp.asarray(flat_clearance[centers[cluster]]),
                n_points=int(sizes[cluster]),
            )
        )
    return tuple(records)


@jaxtyped(typechecker=beartype)
def analyze_voids(
    structure: CrystalStructure,
    probe: Union[str, float, int] = DEFAULT_PROBE,
    grid_spacing: scalar_float = DEFAULT_GRID_SPACING,
    radius_set: str = DEFAULT_RADIUS_SET,
    radii_scale: scalar_float = 1.0,
    radii_overrides: Optional[Mapping[str, float]] = None,
    connectivity: int = DEFAULT_CONNECTIVITY,
    max_grid_points: int = MAX_GRID_POINTS,
    cancel: Optional[CancelToken] = None,
) -> VoidField:
    """Void fraction and void clusters of a structure.

    Parameters
    ----------
    structure : CrystalStructure
        Structure to analyse. An empty cell is entirely void.
    probe : Union[str, float, int], optional
        Probe preset name or radius in angstroms. Default ``"He"``.
    grid_spacing : scalar_float, optional
        Largest allowed grid spacing in angstroms. Default 0.2.
    radius_set : str, optional
        ``"vdw"``, ``"covalent"`` or ``"ionic"``. Default ``"vdw"``.
    radii_scale : scalar_float, optional
        Factor applied to every atomic radius. Default 1.0.
    radii_overrides : Mapping[str, float], optional
        Radius per species label or element symbol.
    connectivity : int, optional
        6 or 26 neighbour adjacency for clustering. Default 6.
    max_grid_points : int, optional
        Upper bound on grid points.
    cancel : CancelToken, optional
        Checked between blocks of grid points.

    Returns
    -------
    VoidField
        Clearance grid, void fraction in percent, clusters sorted by
        descending radius and the largest inscribed sphere.

    Raises
    ------
    ValueError
        For a negative probe radius, a non-positive spacing or an unknown
        radius set.
    ComputeTimeout
        If the grid would exceed ``max_grid_points``.
    Cancelled
        If ``cancel`` is set during the computation.

    Notes
    -----
    Algorithm:

    - Grid over fractional [0, 1)³ with ceil(|a_i| / spacing) points
    - D_surf = min over atoms and images of (distance - radius)
    - A point is void iff D_surf > probe radius
    - Union-find over void points with periodic adjacency
    - Cluster center = point of largest D_surf, lowest flat index on ties

    Examples
    --------
    >>> import jax.numpy as jnp
    >>> from xtalysis.types import create_crystal_structure
    >>> from xtalysis.voids import analyze_voids
    >>> cubic = create_crystal_structure(
    ...     4.0 * jnp.eye(3), jnp.zeros((1, 3)), ["X"]
    ... )
    >>> field = analyze_voids(cubic, probe=1.2, radii_overrides={"X": 1.5})
    >>> field.grid_shape
    (20, 20, 20)
    """
    probe_radius = resolve_probe_radius(probe)
    if float(radii_scale) <= 0.0:
        raise ValueError(f"Radius scale must be positive, got {radii_scale}")
    check_lattice(structure.lattice)
    shape = grid_shape(structure.lattice, grid_spacing)
    total = int(np.prod(shape))
    if total > max_grid_points:
        raise ComputeTimeout(
            f"Grid {shape} has {total} points, above the limit {max_grid_points}"
        )
    radii = atomic_radii(
        structure.species,
        radius_set=radius_set,
        overrides=radii_overrides,
        scale=float(radii_scale),
    )
    logger.debug(
        "Void grid %s, probe %.3f Å, %d atoms", shape, probe_radius, structure.n_atoms
    )
    points = fractional_grid(shape)
    clearance = surface_distance(
        structure.lattice, points, structure.frac_positions, radii, cancel=cancel
    ).reshape(shape)
    check_cancelled(cancel)

    clearance_np = np.asarray(clearance)
    void_mask = clearance_np > probe_radius
    labels, n_clusters = label_clusters(void_mask, connectivity=connectivity)
    clusters = _cluster_records(clearance_np, labels, n_clusters, structure.lattice)

    best = int(np.argmax(clearance_np.reshape(-1)))
    best_frac = np.array(np.unravel_index(best, shape)) / np.array(shape)
    lengths = np.linalg.norm(np.asarray(structure.lattice), axis=1)
    return VoidField(
        clearance=clearance,
        void_fraction=jnp.asarray(100.0 * void_mask.sum() / total),
        probe_radius=jnp.asarray(probe_radius),
        max_sphere_radius=jnp.asarray(clearance_np.reshape(-1)[best]),
        max_sphere_center=jnp.asarray(best_frac, dtype=jnp.float64)
        @ structure.lattice,
        clusters=clusters,
        grid_spacing=tuple(float(length / n) for length, n in zip(lengths, shape)),
        radius_set=radius_set,
    )


@beartype
def fitting_ions(
    field: VoidField, ions: Optional[Mapping[str, float]] = None
) -> Tuple[Tuple[str, float], ...]:
    """Ions whose radius fits into the largest cavity of a void field.

    Parameters
    ----------
    field : VoidField
        Result of :func:`analyze_voids`.
    ions : Mapping[str, float], optional
        Candidate ions and radii. Default :data:`ION_RADII`.

    Returns
    -------
    Tuple[Tuple[str, float], ...]
        ``(name, radius)`` pairs that fit, smallest radius first.
    """
    candidates = ION_RADII if ions is None else ions
    limit = float(field.max_sphere_radius)
    fits = [(name, float(r)) for name, r in candidates.items() if r <= limit]
    return tuple(sorted(fits, key=lambda item: (item[1], item[0])))


@beartype
def ion_intercalation(
    structure: CrystalStructure,
    ions: Optional[Mapping[str, float]] = None,
    grid_spacing: scalar_float = DEFAULT_GRID_SPACING,
    radius_set: str = "ionic",
    cancel: Optional[CancelToken] = None,
) -> Dict[str, bool]:
    """Which candidate ions fit anywhere in the structure.

    Runs a geometric (zero-radius probe) analysis with ionic radii by
    default and compares each ion against the largest inscribed sphere.
    """
    field = analyze_voids(
        structure,
        probe="Geometric",
        grid_spacing=grid_spacing,
        radius_set=radius_set,
        cancel=cancel,
    )
    fitting = {name for name, _ in fitting_ions(field, ions)}
    candidates = ION_RADII if ions is None else ions
    return {name: name in fitting for name in candidates}
