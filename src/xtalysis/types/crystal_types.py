"""Data structures and factory functions for crystal structure representation.

Extended Summary
----------------
A crystal structure is the single input shared by every analysis. It is an
immutable PyTree: the lattice and fractional positions are JAX arrays and
the element labels travel as auxiliary data, so a structure can be passed
through ``jax.jit`` and ``jax.tree_util`` utilities unchanged.

Routine Listings
----------------
CrystalStructure : class
    Lattice vectors, fractional atom positions and element labels
create_crystal_structure : function
    Factory function to create CrystalStructure instances with validation

Notes
-----
Lattice vectors are stored as rows, so Cartesian positions are
``frac_positions @ lattice``.
"""

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import NamedTuple, Sequence, Tuple, Union
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Float, Num, jaxtyped

from .errors import DegenerateLattice, InvalidStructure

jax.config.update("jax_enable_x64", True)

VOLUME_EPSILON: float = 1e-10


@register_pytree_node_class
class CrystalStructure(NamedTuple):
    """Periodic crystal structure: lattice plus atom list.

    Attributes
    ----------
    lattice : Float[Array, "3 3"]
        Lattice vectors a, b, c as rows, in angstroms.
    frac_positions : Float[Array, "N 3"]
        Fractional coordinates of the N atoms. Values are kept exactly as
        given and are not wrapped into [0, 1).
    species : Tuple[str, ...]
        Element label of every atom, in the same order as the positions.

    Notes
    -----
    Registered as a PyTree node. The element labels are auxiliary data,
    so two structures with different labels never share a compiled
    function trace.
    """

    lattice: Float[Array, "3 3"]
    frac_positions: Float[Array, "N 3"]
    species: Tuple[str, ...]

    @property
    def n_atoms(self) -> int:
        """Number of atoms in the cell."""
        return len(self.species)

    @property
    def cart_positions(self) -> Float[Array, "N 3"]:
        """Cartesian coordinates of every atom in angstroms."""
        return self.frac_positions @ self.lattice

    @property
    def volume(self) -> Float[Array, " "]:
        """Signed-magnitude cell volume in cubic angstroms."""
        return jnp.abs(jnp.linalg.det(self.lattice))

    def tree_flatten(self):
        return (self.lattice, self.frac_positions), self.species

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        lattice, frac_positions = children
        return cls(
            lattice=lattice, frac_positions=frac_positions, species=aux_data
        )


@jaxtyped(typechecker=beartype)
def create_crystal_structure(
    lattice: Union[Num[Array, "3 3"], Num[np.ndarray, "3 3"]],
    frac_positions: Union[Num[Array, "N 3"], Num[np.ndarray, "N 3"]],
    species: Sequence[str],
) -> CrystalStructure:
    """Factory function to create a CrystalStructure with validation.

    Parameters
    ----------
    lattice : Num[Array, "3 3"]
        Lattice vectors as rows, in angstroms.
    frac_positions : Num[Array, "N 3"]
        Fractional coordinates of the atoms. An empty ``(0, 3)`` array is a
        valid structure for analyses that accept an empty cell.
    species : Sequence[str]
        Element label of each atom.

    Returns
    -------
    CrystalStructure
        Validated, immutable crystal structure.

    Raises
    ------
    InvalidStructure
        If the label count does not match the positions, a coordinate is
        not finite or a label is empty.
    DegenerateLattice
        If the absolute cell volume is below ``VOLUME_EPSILON``.

    Notes
    -----
    Flow:

    - Convert the arrays to float64 JAX arrays
    - Check the lattice and coordinates are finite
    - Check the determinant is non-zero
    - Check one label per position
    - Build the PyTree

    Examples
    --------
    >>> import jax.numpy as jnp
    >>> from xtalysis.types import create_crystal_structure
    >>> nacl = create_crystal_structure(
    ...     lattice=5.64 * jnp.eye(3),
    ...     frac_positions=jnp.array([[0.0, 0.0, 0.0], [0.5, 0.5, 0.5]]),
    ...     species=["Na", "Cl"],
    ... )
    >>> nacl.n_atoms
    2
    """
    lattice_arr: Float[Array, "3 3"] = jnp.asarray(lattice, dtype=jnp.float64)
    positions: Float[Array, "N 3"] = jnp.asarray(
        frac_positions, dtype=jnp.float64
    ).reshape(-1, 3)
    labels: Tuple[str, ...] = tuple(str(label).strip() for label in species)
    if not bool(jnp.all(jnp.isfinite(lattice_arr))):
        raise InvalidStructure("Lattice vectors contain non-finite values")
    if not bool(jnp.all(jnp.isfinite(positions))):
        raise InvalidStructure("Fractional positions contain non-finite values")
    volume: float = float(jnp.abs(jnp.linalg.det(lattice_arr)))
    if volume < VOLUME_EPSILON:
        raise DegenerateLattice(
            f"Lattice vectors are coplanar (|det| = {volume:.3e})"
        )
    if len(labels) != positions.shape[0]:
        raise InvalidStructure(
            f"Got {len(labels)} species labels for "
            f"{positions.shape[0]} positions"
        )
    if any(label == "" for label in labels):
        raise InvalidStructure("Species labels must be non-empty strings")
    return CrystalStructure(
        lattice=lattice_arr, frac_positions=positions, species=labels
    )
