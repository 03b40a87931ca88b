"""Whole-cell re-expressions of a structure.

Extended Summary
----------------
Replicates a structure into an nx × ny × nz supercell and converts
between the primitive and conventional cells implied by its symmetry.
Both keep the crystal unchanged and only change the cell that
describes it.

Routine Listings
----------------
make_supercell : function
    Repeat a structure along its lattice vectors
fill_cell : function
    Express a structure in any commensurate lattice
convert_structure : function
    Primitive or conventional cell of a structure
CELL_KINDS : tuple
    Accepted targets of :func:`convert_structure`
"""

import itertools
import logging
import warnings

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import Optional, Sequence, Tuple
from jaxtyping import Array, Float, jaxtyped

from xtalysis.config import DEFAULT_DUPLICATE_TOLERANCE, DEFAULT_SYMPREC
from xtalysis.kpath import primitive_and_conventional
from xtalysis.symm import get_symmetry
from xtalysis.types import (
    CancelToken,
    CrystalStructure,
    InvalidStructure,
    NumericToleranceWarning,
    SymmetryInfo,
    check_cancelled,
    create_crystal_structure,
    scalar_float,
)
from xtalysis.ucell import cartesian_to_fractional, check_lattice, wrap_fractional

from .slab import remove_duplicate_atoms

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)

CELL_KINDS: Tuple[str, ...] = ("primitive", "conventional")
EDGE_EPSILON: float = 1e-8


@beartype
def make_supercell(
    structure: CrystalStructure, repeats: Sequence[int]
) -> CrystalStructure:
    """Repeat a structure ``nx × ny × nz`` times.

    Parameters
    ----------
    structure : CrystalStructure
        Input structure; not modified.
    repeats : Sequence[int]
        Positive repeat counts (nx, ny, nz) along a, b and c.

    Returns
    -------
    CrystalStructure
        Structure with lattice rows scaled by the repeats. Atoms are
        ordered by translation, x slowest, and by input order within
        each translation.

    Raises
    ------
    ValueError
        If ``repeats`` does not hold three positive integers.

    Examples
    --------
    >>> import jax.numpy as jnp
    >>> from xtalysis.types import create_crystal_structure
    >>> from xtalysis.surface import make_supercell
    >>> cubic = create_crystal_structure(
    ...     4.0 * jnp.eye(3), jnp.zeros((1, 3)), ["X"]
    ... )
    >>> make_supercell(cubic, (2, 2, 1)).n_atoms
    4
    """
    counts = tuple(int(n) for n in repeats)
    if len(counts) != 3 or min(counts) < 1:
        raise ValueError(
            f"Supercell repeats must be three positive integers, got {repeats}"
        )
    scale = jnp.asarray(counts, dtype=jnp.float64)
    translations = jnp.asarray(
        list(itertools.product(*(range(n) for n in counts))), dtype=jnp.float64
    )
    shifted: Float[Array, "T N 3"] = (
        structure.frac_positions[None, :, :] + translations[:, None, :]
    )
    return create_crystal_structure(
        lattice=structure.lattice * scale[:, None],
        frac_positions=shifted.reshape(-1, 3) / scale,
        species=structure.species * translations.shape[0],
    )


@jaxtyped(typechecker=beartype)
def fill_cell(
    structure: CrystalStructure,
    lattice: Float[Array, "3 3"],
    duplicate_tolerance: scalar_float = DEFAULT_DUPLICATE_TOLERANCE,
) -> CrystalStructure:
    """Express a structure in a commensurate lattice.

    Parameters
    ----------
    structure : CrystalStructure
        Input structure; not modified.
    lattice : Float[Array, "3 3"]
        Target lattice vectors as rows. Every target vector must be a
        lattice translation of the crystal, or the target must be spanned
        by such translations, as for primitive and conventional cells.
    duplicate_tolerance : scalar_float, optional
        Images closer than this are merged. Default 1e-5 Å.

    Returns
    -------
    CrystalStructure
        Atoms of the crystal inside the target cell, fractional
        coordinates wrapped into [0, 1).

    Warns
    -----
    NumericToleranceWarning
        If the atom count differs from the one implied by the volumes.

    Notes
    -----
    Algorithm:

    - Write the target vectors in the old basis, P = A' A⁻¹
    - Collect the images of every atom over the integer box that covers
      the corners of the target cell
    - Keep images with target coordinates in [0, 1) and merge
      coincident ones

    The atom count should equal ``N |det P|``; a mismatch means the
    target is not commensurate.
    """
    check_lattice(lattice)
    check_lattice(structure.lattice)
    change: Float[Array, "3 3"] = cartesian_to_fractional(structure.lattice, lattice)
    unit_cube = np.array(list(itertools.product((0.0, 1.0), repeat=3)))
    corners = unit_cube @ np.asarray(change)
    low = np.floor(corners.min(axis=0) - EDGE_EPSILON).astype(int)
    high = np.ceil(corners.max(axis=0) + EDGE_EPSILON).astype(int)
    spans = (range(lo, hi + 1) for lo, hi in zip(low, high))
    translations = np.array(list(itertools.product(*spans)), dtype=np.float64)
    images = np.asarray(structure.frac_positions)[None] + translations[:, None]
    labels = np.array(structure.species, dtype=object)
    species = np.tile(labels, translations.shape[0])
    cart = images.reshape(-1, 3) @ np.asarray(structure.lattice)
    frac = np.asarray(cartesian_to_fractional(lattice, jnp.asarray(cart)))
    inside = np.all((frac >= -EDGE_EPSILON) & (frac < 1.0 - EDGE_EPSILON), axis=1)
    frac = np.asarray(wrap_fractional(jnp.asarray(frac[inside])))
    species = species[inside]

    survivors = np.asarray(
        remove_duplicate_atoms(lattice, jnp.asarray(frac), duplicate_tolerance)
    )
    expected = structure.n_atoms * abs(float(np.linalg.det(np.asarray(change))))
    n_kept = int(survivors.sum())
    if n_kept != int(round(expected)):
        message = (
            f"Cell holds {n_kept} atoms, expected {expected:.2f}; "
            "the target lattice may be incommensurate"
        )
        warnings.warn(message, NumericToleranceWarning, stacklevel=2)
        logger.info(message)
    return create_crystal_structure(
        lattice=lattice,
        frac_positions=jnp.asarray(frac[survivors]),
        species=[str(label) for label in species[survivors]],
    )


@jaxtyped(typechecker=beartype)
def convert_structure(
    structure: CrystalStructure,
    cell: str = "primitive",
    tolerance: scalar_float = DEFAULT_SYMPREC,
    symmetry: Optional[SymmetryInfo] = None,
    cancel: Optional[CancelToken] = None,
) -> CrystalStructure:
    """Primitive or conventional cell of a structure.

    Parameters
    ----------
    structure : CrystalStructure
        Structure with at least one atom; not modified.
    cell : str, optional
        ``"primitive"`` or ``"conventional"``. Default ``"primitive"``.
    tolerance : scalar_float, optional
        Symmetry tolerance in angstroms. Default 1e-3.
    symmetry : SymmetryInfo, optional
        Precomputed symmetry; by default the memoized result of
        :func:`xtalysis.symm.get_symmetry` is used.
    cancel : CancelToken, optional
        Passed to the symmetry search.

    Returns
    -------
    CrystalStructure
        The same crystal in the requested cell. The input is returned
        unchanged when it already is that cell.

    Raises
    ------
    ValueError
        If ``cell`` is not one of :data:`CELL_KINDS`.
    InvalidStructure
        If the structure has no atoms or a degenerate lattice.

    Notes
    -----
    The cells keep the orientation of the input. A conventional face
    centred input gives the primitive rows (0, ½, ½), (½, 0, ½) and
    (½, ½, 0) of the cubic axes, and a primitive input is expanded back
    with the inverse transform.
    """
    if cell not in CELL_KINDS:
        raise ValueError(f"cell must be one of {CELL_KINDS}, got '{cell}'")
    if structure.n_atoms == 0:
        raise InvalidStructure("Cannot convert a structure without atoms")
    if symmetry is None:
        symmetry = get_symmetry(structure, tolerance, cancel=cancel)
    check_cancelled(cancel)
    primitive, conventional = primitive_and_conventional(structure.lattice, symmetry)
    target = primitive if cell == "primitive" else conventional
    if bool(jnp.allclose(target, structure.lattice)):
        return structure
    logger.info(
        "Converting %d-atom %s structure to its %s cell",
        structure.n_atoms,
        symmetry.bravais,
        cell,
    )
    return fill_cell(structure, target)
