"""Band-structure k-path generation.

Extended Summary
----------------
Determines the Bravais lattice of a structure from its space group, picks
the matching catalogue variant, converts the catalogue coordinates to
Cartesian reciprocal space and attaches a Brillouin-zone wireframe.

Routine Listings
----------------
primitive_and_conventional : function
    Primitive and conventional lattices of a structure
generate_kpath : function
    High-symmetry path and wireframe for a structure

Notes
-----
Catalogue coordinates refer to the standard primitive cell. For a
conventional input cell (centering translations present) the primitive
cell is derived with the standard transformation; a primitive input cell
is used as given, so the path is exact when it is in the standard
setting.
"""

import logging
import warnings

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import Optional, Tuple
from jaxtyping import Array, Float, jaxtyped

from xtalysis.config import DEFAULT_SYMPREC
from xtalysis.symm import get_symmetry
from xtalysis.types import (
    CancelToken,
    CrystalStructure,
    KPath,
    SymmetryInfo,
    UnsupportedLatticeVisualization,
    check_cancelled,
    create_kpath,
    scalar_float,
)
from xtalysis.ucell import compute_lengths_angles, reciprocal_lattice

from .brillouin import placeholder_wireframe, wigner_seitz_wireframe
from .catalogue import PRIMITIVE_TRANSFORMS, catalogue_entry, select_variant

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)

EXACT_WIREFRAME_SYSTEMS: Tuple[str, ...] = ("cubic",)


def _centering_key(symmetry: SymmetryInfo) -> str:
    bravais = symmetry.bravais
    if bravais == "mC":
        return "mC"
    if bravais == "hR":
        return "R"
    centering = bravais[1]
    centerings = np.asarray(symmetry.pure_translations)
    if centering == "C" and centerings.shape[0] > 0:
        # A-centred settings translate by (0, ½, ½)
        shift = float(np.abs(centerings[0, 0]))
        if min(shift, 1.0 - shift) < 0.25:
            return "A"
    return centering


@jaxtyped(typechecker=beartype)
def primitive_and_conventional(
    lattice: Float[Array, "3 3"], symmetry: SymmetryInfo
) -> Tuple[Float[Array, "3 3"], Float[Array, "3 3"]]:
    """Primitive and conventional lattices implied by a symmetry result.

    Parameters
    ----------
    lattice : Float[Array, "3 3"]
        Input lattice vectors as rows.
    symmetry : SymmetryInfo
        Symmetry of the structure.

    Returns
    -------
    Tuple[Float[Array, "3 3"], Float[Array, "3 3"]]
        ``(primitive, conventional)``. When the input has centering
        translations it is taken as the conventional cell; otherwise it
        is taken as the primitive cell.
    """
    key = _centering_key(symmetry)
    transform = jnp.asarray(PRIMITIVE_TRANSFORMS.get(key, np.eye(3)))
    if key == "P":
        return lattice, lattice
    if symmetry.pure_translations.shape[0] > 0:
        return transform @ lattice, lattice
    return lattice, jnp.linalg.inv(transform) @ lattice


@jaxtyped(typechecker=beartype)
def generate_kpath(
    structure: CrystalStructure,
    tolerance: scalar_float = DEFAULT_SYMPREC,
    symmetry: Optional[SymmetryInfo] = None,
    cancel: Optional[CancelToken] = None,
) -> KPath:
    """High-symmetry band-structure path of a structure.

    Parameters
    ----------
    structure : CrystalStructure
        Structure with at least one atom.
    tolerance : scalar_float, optional
        Symmetry tolerance in angstroms. Default 1e-3.
    symmetry : SymmetryInfo, optional
        Precomputed symmetry; by default the memoized result of
        :func:`xtalysis.symm.get_symmetry` is used.
    cancel : CancelToken, optional
        Passed to the symmetry search and checked before the wireframe.

    Returns
    -------
    KPath
        Points, segments, branches, lattice variant and wireframe.

    Raises
    ------
    InvalidStructure
        If the structure has no atoms or a degenerate lattice.

    Warns
    -----
    UnsupportedLatticeVisualization
        For non-cubic lattices, whose wireframe is a placeholder box.

    Notes
    -----
    Algorithm:

    - Symmetry gives crystal system and centering, hence the Bravais
      lattice
    - Cell parameters select the catalogue variant
    - Points are converted with the primitive reciprocal basis
    - The wireframe is the Wigner-Seitz cell for cubic lattices and an
      approximate box otherwise; path data is returned in both cases

    Examples
    --------
    >>> import jax.numpy as jnp
    >>> from xtalysis.types import create_crystal_structure
    >>> from xtalysis.kpath import generate_kpath
    >>> cubic = create_crystal_structure(
    ...     4.0 * jnp.eye(3), jnp.zeros((1, 3)), ["X"]
    ... )
    >>> generate_kpath(cubic).branches[0]
    ('Γ', 'X', 'M', 'Γ', 'R', 'X')
    """
    if symmetry is None:
        symmetry = get_symmetry(structure, tolerance=tolerance, cancel=cancel)
    primitive, conventional = primitive_and_conventional(
        structure.lattice, symmetry
    )
    conv_lengths, conv_angles = compute_lengths_angles(conventional)
    _, prim_angles = compute_lengths_angles(primitive)
    recip = reciprocal_lattice(primitive)
    _, recip_angles = compute_lengths_angles(recip)
    params = {
        "a": float(conv_lengths[0]),
        "b": float(conv_lengths[1]),
        "c": float(conv_lengths[2]),
        "alpha": float(conv_angles[0]),
    }
    lattice_type = select_variant(
        symmetry.bravais,
        params,
        float(prim_angles[0]),
        tuple(float(angle) for angle in recip_angles),
    )
    frac_points, branches = catalogue_entry(
        lattice_type, params, float(prim_angles[0])
    )
    logger.debug(
        "Lattice %s (%s): %d points", lattice_type, symmetry.bravais, len(frac_points)
    )
    points = {}
    for label, coords in frac_points.items():
        frac = jnp.asarray(coords, dtype=jnp.float64)
        points[label] = (frac, frac @ recip)

    check_cancelled(cancel)
    recip_np = np.asarray(recip)
    approximate = symmetry.crystal_system not in EXACT_WIREFRAME_SYSTEMS
    if approximate:
        vertices, edges = placeholder_wireframe(recip_np)
        warnings.warn(
            f"Brillouin-zone wireframe for the {symmetry.crystal_system} "
            "system is an approximate box",
            UnsupportedLatticeVisualization,
            stacklevel=2,
        )
    else:
        vertices, edges = wigner_seitz_wireframe(recip_np)
    return create_kpath(
        points=points,
        branches=branches,
        lattice_type=lattice_type,
        bravais=symmetry.bravais,
        reciprocal_lattice=recip,
        wireframe_vertices=jnp.asarray(vertices, dtype=jnp.float64),
        wireframe_edges=jnp.asarray(edges, dtype=jnp.int64),
        wireframe_approximate=approximate,
    )
