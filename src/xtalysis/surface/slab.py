"""Surface slab construction along a Miller plane.

Extended Summary
----------------
Re-expresses a structure in a cell whose a and b vectors span the chosen
Miller plane, stacks the requested number of layers along c and opens a
vacuum gap along the surface normal.

Routine Listings
----------------
transform_structure : function
    Express a structure in a new unimodular basis
remove_duplicate_atoms : function
    Drop atoms that coincide under periodic boundary conditions
build_slab : function
    Complete slab model from a structure and a Miller plane
"""

import logging

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import Optional, Sequence, Tuple
from jaxtyping import Array, Bool, Float, Int, jaxtyped

from xtalysis.config import (
    DEFAULT_DUPLICATE_TOLERANCE,
    INITIAL_SEARCH_RANGE,
    MAX_SEARCH_RANGE,
)
from xtalysis.types import (
    CancelToken,
    CrystalStructure,
    InvalidStructure,
    SlabModel,
    check_cancelled,
    create_crystal_structure,
    scalar_float,
)
from xtalysis.ucell import (
    cartesian_to_fractional,
    check_lattice,
    minimum_image_distance,
    neighbour_shell,
    wrap_fractional,
)

from .miller import reduce_miller, surface_transform

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)

DUPLICATE_BLOCK: int = 64


@jaxtyped(typechecker=beartype)
def transform_structure(
    structure: CrystalStructure,
    transform: Int[Array, "3 3"],
) -> CrystalStructure:
    """Express a structure in the basis given by the columns of ``transform``.

    Parameters
    ----------
    structure : CrystalStructure
        Input structure; not modified.
    transform : Int[Array, "3 3"]
        Unimodular matrix M whose columns are the new basis vectors in the
        old basis.

    Returns
    -------
    CrystalStructure
        Same crystal with lattice ``Mᵀ A`` and fractional coordinates
        ``M⁻¹ x`` wrapped into [0, 1).

    Raises
    ------
    ValueError
        If ``|det M| != 1``.
    """
    det = int(round(float(jnp.linalg.det(transform.astype(jnp.float64)))))
    if abs(det) != 1:
        raise ValueError(f"Transform must be unimodular, det = {det}")
    matrix = transform.astype(jnp.float64)
    inverse = jnp.round(jnp.linalg.inv(matrix))
    return create_crystal_structure(
        lattice=matrix.T @ structure.lattice,
        frac_positions=wrap_fractional(structure.frac_positions @ inverse.T),
        species=structure.species,
    )


@jaxtyped(typechecker=beartype)
def remove_duplicate_atoms(
    lattice: Float[Array, "3 3"],
    frac_positions: Float[Array, "N 3"],
    tolerance: scalar_float = DEFAULT_DUPLICATE_TOLERANCE,
    keep: str = "first",
) -> Bool[Array, "N"]:
    """Mask of atoms to keep after removing periodic duplicates.

    Parameters
    ----------
    lattice : Float[Array, "3 3"]
        Lattice vectors as rows.
    frac_positions : Float[Array, "N 3"]
        Fractional coordinates.
    tolerance : scalar_float, optional
        Minimum-image distance below which two atoms coincide.
    keep : str, optional
        ``"first"`` keeps the earliest atom of a coincident group,
        ``"last"`` the latest. Species are not compared.

    Returns
    -------
    Bool[Array, "N"]
        True for atoms that survive.
    """
    if keep not in ("first", "last"):
        raise ValueError(f"keep must be 'first' or 'last', got '{keep}'")
    n_atoms = frac_positions.shape[0]
    shell = neighbour_shell(lattice)
    close = np.zeros((n_atoms, n_atoms), dtype=bool)
    for start in range(0, n_atoms, DUPLICATE_BLOCK):
        rows = frac_positions[start : start + DUPLICATE_BLOCK]
        distances = minimum_image_distance(
            lattice, rows[:, None, :], frac_positions[None, :, :], shell=shell
        )
        close[start : start + rows.shape[0]] = np.asarray(distances) < float(tolerance)
    order = range(n_atoms) if keep == "first" else range(n_atoms - 1, -1, -1)
    survivors = np.zeros(n_atoms, dtype=bool)
    for idx in order:
        if not np.any(close[idx] & survivors):
            survivors[idx] = True
    return jnp.asarray(survivors)


@jaxtyped(typechecker=beartype)
def build_slab(
    structure: CrystalStructure,
    miller: Sequence[int],
    thickness: int = 1,
    vacuum: scalar_float = 0.0,
    duplicate_tolerance: scalar_float = DEFAULT_DUPLICATE_TOLERANCE,
    keep: str = "first",
    max_search_range: int = MAX_SEARCH_RANGE,
    cancel: Optional[CancelToken] = None,
) -> SlabModel:
    """Build a surface slab along a Miller plane.

    Parameters
    ----------
    structure : CrystalStructure
        Bulk structure with at least one atom; not modified.
    miller : Sequence[int]
        Miller indices (h, k, l), not all zero. Common factors are
        removed, so (2, 0, 0) builds the same slab as (1, 0, 0).
    thickness : int, optional
        Number of layers, at least 1. Default 1.
    vacuum : scalar_float, optional
        Vacuum gap along the surface normal in angstroms. Default 0.
    duplicate_tolerance : scalar_float, optional
        Atoms closer than this are merged. Default 1e-5 Å.
    keep : str, optional
        Which atom of a coincident group survives: ``"first"`` or
        ``"last"``. Default ``"first"``.
    max_search_range : int, optional
        Largest integer range searched for the surface basis.
    cancel : CancelToken, optional
        Checked during the basis search and between layers.

    Returns
    -------
    SlabModel
        Slab whose out-of-plane length equals
        ``thickness × layer height + vacuum``.

    Raises
    ------
    ValueError
        If the Miller indices are all zero, the thickness is below 1 or
        the vacuum is negative.
    InvalidStructure
        If the structure has no atoms or a degenerate lattice.
    NoValidBasis
        If the basis search exhausts ``max_search_range``.

    Notes
    -----
    Algorithm:

    - Find u, v with h·u = h·v = 0 spanning the plane lattice and the
      shortest w with h·w = 1
    - Remap fractional coordinates x' = M⁻¹ x with M = [u v w]
    - Replicate the layer ``thickness`` times along w
    - Set c = thickness · w + vacuum · n̂ with n̂ the unit normal of a × b
    - Remove periodic duplicates

    Examples
    --------
    >>> import jax.numpy as jnp
    >>> from xtalysis.types import create_crystal_structure
    >>> from xtalysis.surface import build_slab
    >>> cubic = create_crystal_structure(
    ...     4.0 * jnp.eye(3), jnp.zeros((1, 3)), ["X"]
    ... )
    >>> slab = build_slab(cubic, (1, 0, 0), thickness=3, vacuum=10.0)
    >>> round(float(slab.out_of_plane_length), 6)
    22.0
    """
    reduced = reduce_miller(miller)
    if thickness < 1:
        raise ValueError(f"Thickness must be at least 1, got {thickness}")
    if float(vacuum) < 0.0:
        raise ValueError(f"Vacuum must be non-negative, got {vacuum}")
    if structure.n_atoms == 0:
        raise InvalidStructure("Cannot build a slab from a structure without atoms")
    check_lattice(structure.lattice)

    transform = surface_transform(
        np.asarray(structure.lattice),
        reduced,
        INITIAL_SEARCH_RANGE,
        max_search_range,
        cancel=cancel,
    )
    layer = transform_structure(structure, jnp.asarray(transform))
    u_vec, v_vec, w_vec = layer.lattice[0], layer.lattice[1], layer.lattice[2]
    normal: Float[Array, "3"] = jnp.cross(u_vec, v_vec)
    normal = normal / jnp.linalg.norm(normal)
    layer_height: Float[Array, " "] = jnp.dot(w_vec, normal)

    stacked_lattice = jnp.stack([u_vec, v_vec, thickness * w_vec])
    blocks = []
    for index in range(thickness):
        check_cancelled(cancel)
        shifted = layer.frac_positions.at[:, 2].set(
            (layer.frac_positions[:, 2] + index) / thickness
        )
        blocks.append(shifted)
    stacked_frac = jnp.concatenate(blocks)
    cart = stacked_frac @ stacked_lattice

    slab_lattice = jnp.stack(
        [u_vec, v_vec, thickness * w_vec + float(vacuum) * normal]
    )
    slab_frac = wrap_fractional(cartesian_to_fractional(slab_lattice, cart))
    species: Tuple[str, ...] = layer.species * thickness

    check_cancelled(cancel)
    survivors = np.asarray(
        remove_duplicate_atoms(slab_lattice, slab_frac, duplicate_tolerance, keep)
    )
    n_removed = int(survivors.size - survivors.sum())
    if n_removed:
        logger.info("Removed %d duplicate atoms from %s slab", n_removed, reduced)
    slab = create_crystal_structure(
        lattice=slab_lattice,
        frac_positions=slab_frac[jnp.asarray(survivors)],
        species=[label for label, alive in zip(species, survivors) if alive],
    )
    return SlabModel(
        structure=slab,
        transform=jnp.asarray(transform, dtype=jnp.int64),
        layer_height=layer_height,
        miller=reduced,
        thickness=int(thickness),
        vacuum=float(vacuum),
        n_duplicates_removed=n_removed,
    )
