"""Functions for unit cell geometry shared by every analysis.

Extended Summary
----------------
This module is the lattice geometry kernel: coordinate conversions,
reciprocal lattice, metric tensor, periodic wrapping and minimum-image
distances. All functions are pure and JAX-compatible.

Routine Listings
----------------
cell_volume : function
    Absolute volume spanned by the lattice vectors
check_lattice : function
    Raise DegenerateLattice for a singular lattice
fractional_to_cartesian : function
    Convert fractional coordinates to Cartesian coordinates
cartesian_to_fractional : function
    Convert Cartesian coordinates to fractional coordinates
reciprocal_lattice : function
    Reciprocal basis b_i = 2π (a_j × a_k) / V
metric_tensor : function
    Gram matrix of the lattice vectors
wrap_fractional : function
    Wrap fractional coordinates into [0, 1)
image_offsets : function
    Integer lattice translations of a neighbour shell
minimum_image_distance : function
    Shortest periodic distance between fractional points
build_cell_vectors : function
    Construct lattice vectors from lengths and angles
compute_lengths_angles : function
    Compute lattice lengths and angles from lattice vectors

Notes
-----
Lattice vectors are rows of a 3x3 matrix throughout the package.
"""

import itertools

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Tuple
from jaxtyping import Array, Float, Int, jaxtyped

from xtalysis.types import DegenerateLattice, scalar_float, scalar_int

jax.config.update("jax_enable_x64", True)

VOLUME_EPSILON: float = 1e-10
SKEW_COSINE: float = 0.5


@jaxtyped(typechecker=beartype)
def cell_volume(lattice: Float[Array, "3 3"]) -> Float[Array, " "]:
    """Absolute volume of the cell in cubic angstroms."""
    return jnp.abs(jnp.linalg.det(lattice))


@jaxtyped(typechecker=beartype)
def check_lattice(lattice: Float[Array, "3 3"]) -> None:
    """Raise if the lattice vectors are coplanar.

    Raises
    ------
    DegenerateLattice
        If the absolute determinant is below ``VOLUME_EPSILON``.
    """
    volume = float(cell_volume(lattice))
    if volume < VOLUME_EPSILON:
        raise DegenerateLattice(
            f"Lattice is degenerate (volume {volume:.3e} Å^3)"
        )


@jaxtyped(typechecker=beartype)
def fractional_to_cartesian(
    lattice: Float[Array, "3 3"],
    frac: Float[Array, "... 3"],
) -> Float[Array, "... 3"]:
    """Convert fractional coordinates to Cartesian coordinates.

    Parameters
    ----------
    lattice : Float[Array, "3 3"]
        Lattice vectors as rows.
    frac : Float[Array, "... 3"]
        Fractional coordinates; any leading batch shape.

    Returns
    -------
    Float[Array, "... 3"]
        Cartesian coordinates in angstroms, ``frac @ lattice``.
    """
    return frac @ lattice


@jaxtyped(typechecker=beartype)
def cartesian_to_fractional(
    lattice: Float[Array, "3 3"],
    cart: Float[Array, "... 3"],
) -> Float[Array, "... 3"]:
    """Convert Cartesian coordinates to fractional coordinates.

    Parameters
    ----------
    lattice : Float[Array, "3 3"]
        Lattice vectors as rows.
    cart : Float[Array, "... 3"]
        Cartesian coordinates in angstroms.

    Returns
    -------
    Float[Array, "... 3"]
        Fractional coordinates, ``cart @ inv(lattice)``.

    Raises
    ------
    DegenerateLattice
        If the lattice vectors are coplanar.
    """
    check_lattice(lattice)
    return _cartesian_to_fractional(lattice, cart)


@jaxtyped(typechecker=beartype)
def _cartesian_to_fractional(
    lattice: Float[Array, "3 3"],
    cart: Float[Array, "... 3"],
) -> Float[Array, "... 3"]:
    return cart @ jnp.linalg.inv(lattice)


@jaxtyped(typechecker=beartype)
def reciprocal_lattice(
    lattice: Float[Array, "3 3"],
) -> Float[Array, "3 3"]:
    """Reciprocal lattice vectors with the 2π convention.

    Parameters
    ----------
    lattice : Float[Array, "3 3"]
        Direct lattice vectors a1, a2, a3 as rows.

    Returns
    -------
    Float[Array, "3 3"]
        Reciprocal vectors b1, b2, b3 as rows, in inverse angstroms.

    Raises
    ------
    DegenerateLattice
        If the lattice vectors are coplanar.

    Notes
    -----
    Algorithm:

    - V = a1 · (a2 × a3)
    - b_i = 2π (a_j × a_k) / V for cyclic (i, j, k)

    The result satisfies ``a_i · b_j = 2π δ_ij``. A left-handed lattice
    gives a negative V, which keeps that identity intact.

    Examples
    --------
    >>> import jax.numpy as jnp
    >>> from xtalysis.ucell import reciprocal_lattice
    >>> recip = reciprocal_lattice(4.0 * jnp.eye(3))
    >>> float(recip[0, 0])  # 2π / 4
    1.5707963267948966
    """
    check_lattice(lattice)
    return _reciprocal_lattice(lattice)


@jaxtyped(typechecker=beartype)
def _reciprocal_lattice(lattice: Float[Array, "3 3"]) -> Float[Array, "3 3"]:
    a1, a2, a3 = lattice[0], lattice[1], lattice[2]
    volume: Float[Array, " "] = jnp.dot(a1, jnp.cross(a2, a3))
    b1: Float[Array, "3"] = jnp.cross(a2, a3)
    b2: Float[Array, "3"] = jnp.cross(a3, a1)
    b3: Float[Array, "3"] = jnp.cross(a1, a2)
    return 2.0 * jnp.pi * jnp.stack([b1, b2, b3], axis=0) / volume


@jaxtyped(typechecker=beartype)
def metric_tensor(lattice: Float[Array, "3 3"]) -> Float[Array, "3 3"]:
    """Gram matrix ``G_ij = a_i · a_j`` of the lattice vectors."""
    return lattice @ lattice.T


@jaxtyped(typechecker=beartype)
def wrap_fractional(frac: Float[Array, "... 3"]) -> Float[Array, "... 3"]:
    """Wrap fractional coordinates into [0, 1).

    Values that land on 1.0 through rounding are mapped back to 0.0.
    """
    wrapped = frac - jnp.floor(frac)
    return jnp.where(wrapped >= 1.0, wrapped - 1.0, wrapped)


@jaxtyped(typechecker=beartype)
def image_offsets(shell: scalar_int = 1) -> Int[Array, "K 3"]:
    """Integer lattice translations of a cubic neighbour shell.

    Parameters
    ----------
    shell : scalar_int, optional
        Half-width of the shell. 1 gives the 27 translations of the
        3×3×3 block, 2 gives 125. Default is 1.

    Returns
    -------
    Int[Array, "K 3"]
        All translations ``(i, j, k)`` with ``|i|, |j|, |k| <= shell``,
        the zero translation included.
    """
    span = range(-int(shell), int(shell) + 1)
    return jnp.array(list(itertools.product(span, span, span)), dtype=jnp.int64)


@jaxtyped(typechecker=beartype)
def neighbour_shell(lattice: Float[Array, "3 3"]) -> int:
    """Shell half-width that makes minimum-image searches exact.

    A 3×3×3 block is enough unless the cell is strongly sheared, in which
    case the 5×5×5 block is searched.
    """
    lengths, angles = compute_lengths_angles(lattice)
    cosines = jnp.abs(jnp.cos(jnp.radians(angles)))
    return 2 if bool(jnp.any(cosines > SKEW_COSINE)) else 1


@jaxtyped(typechecker=beartype)
def minimum_image_distance(
    lattice: Float[Array, "3 3"],
    p: Float[Array, "... 3"],
    q: Float[Array, "... 3"],
    shell: scalar_int = 1,
) -> Float[Array, "..."]:
    """Shortest Cartesian distance between periodic images of two points.

    Parameters
    ----------
    lattice : Float[Array, "3 3"]
        Lattice vectors as rows.
    p, q : Float[Array, "... 3"]
        Fractional coordinates; the batch shapes must broadcast.
    shell : scalar_int, optional
        Neighbour shell searched around the rounded difference. Use
        :func:`neighbour_shell` to pick it for skewed cells. Default is 1.

    Returns
    -------
    Float[Array, "..."]
        Minimum distance over all lattice translations in the shell.

    Raises
    ------
    DegenerateLattice
        If the lattice vectors are coplanar.

    Notes
    -----
    Algorithm:

    - Reduce the fractional difference into [-0.5, 0.5)
    - Add every translation of the neighbour shell
    - Convert to Cartesian and take the smallest norm

    The lattice check needs concrete values. Jitted callers use the
    unchecked ``_minimum_image_distance`` after checking once eagerly.
    """
    check_lattice(lattice)
    return _minimum_image_distance(lattice, p, q, shell)


@jaxtyped(typechecker=beartype)
def _minimum_image_distance(
    lattice: Float[Array, "3 3"],
    p: Float[Array, "... 3"],
    q: Float[Array, "... 3"],
    shell: scalar_int = 1,
) -> Float[Array, "..."]:
    delta: Float[Array, "... 3"] = p - q
    delta = delta - jnp.round(delta)
    offsets: Float[Array, "K 3"] = image_offsets(shell).astype(jnp.float64)
    shifted: Float[Array, "... K 3"] = delta[..., None, :] + offsets
    cart: Float[Array, "... K 3"] = shifted @ lattice
    return jnp.min(jnp.linalg.norm(cart, axis=-1), axis=-1)


@jaxtyped(typechecker=beartype)
def build_cell_vectors(
    a: scalar_float,
    b: scalar_float,
    c: scalar_float,
    alpha: scalar_float,
    beta: scalar_float,
    gamma: scalar_float,
) -> Float[Array, "3 3"]:
    r"""Construct lattice vectors from lengths and angles.

    Parameters
    ----------
    a, b, c : scalar_float
        Cell lengths in angstroms.
    alpha, beta, gamma : scalar_float
        Cell angles in degrees.

    Returns
    -------
    Float[Array, "3 3"]
        Lattice vectors as rows, a along x and b in the x-y plane.

    Algorithm
    ---------
    - Convert angles to radians
    - Build first vector along x-axis
    - Build second vector in x-y plane
    - Build third vector using all angles

    Examples
    --------
    >>> from xtalysis.ucell import build_cell_vectors
    >>> hexagonal = build_cell_vectors(3.0, 3.0, 5.0, 90.0, 90.0, 120.0)
    """
    alpha_rad: Float[Array, " "] = jnp.radians(alpha)
    beta_rad: Float[Array, " "] = jnp.radians(beta)
    gamma_rad: Float[Array, " "] = jnp.radians(gamma)
    a_vec: Float[Array, "3"] = jnp.array([a, 0.0, 0.0], dtype=jnp.float64)
    b_vec: Float[Array, "3"] = jnp.array(
        [b * jnp.cos(gamma_rad), b * jnp.sin(gamma_rad), 0.0],
        dtype=jnp.float64,
    )
    c_x: Float[Array, " "] = c * jnp.cos(beta_rad)
    c_y: Float[Array, " "] = c * (
        (jnp.cos(alpha_rad) - jnp.cos(beta_rad) * jnp.cos(gamma_rad))
        / jnp.sin(gamma_rad)
    )
    c_z: Float[Array, " "] = jnp.sqrt(
        jnp.clip(c**2 - c_x**2 - c_y**2, min=0.0)
    )
    c_vec: Float[Array, "3"] = jnp.array([c_x, c_y, c_z], dtype=jnp.float64)
    return jnp.stack([a_vec, b_vec, c_vec], axis=0)


@jaxtyped(typechecker=beartype)
def compute_lengths_angles(
    vectors: Float[Array, "3 3"],
) -> Tuple[Float[Array, "3"], Float[Array, "3"]]:
    """Compute lattice lengths and angles from lattice vectors.

    Parameters
    ----------
    vectors : Float[Array, "3 3"]
        Lattice vectors as rows.

    Returns
    -------
    Tuple[Float[Array, "3"], Float[Array, "3"]]
        Lengths [a, b, c] in angstroms and angles [α, β, γ] in degrees,
        where α is between b and c, β between a and c and γ between a
        and b.
    """
    lengths: Float[Array, "3"] = jnp.linalg.norm(vectors, axis=1)
    pairs = ((1, 2), (0, 2), (0, 1))
    cosines: Float[Array, "3"] = jnp.array(
        [
            jnp.dot(vectors[i], vectors[j]) / (lengths[i] * lengths[j])
            for i, j in pairs
        ]
    )
    angles: Float[Array, "3"] = jnp.degrees(
        jnp.arccos(jnp.clip(cosines, -1.0, 1.0))
    )
    return lengths, angles
