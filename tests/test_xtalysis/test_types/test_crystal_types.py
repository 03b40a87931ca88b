import chex
import jax
import jax.numpy as jnp
import numpy as np
from absl.testing import parameterized
from jax import tree_util

from xtalysis.types import (
    CancelToken,
    Cancelled,
    CrystalStructure,
    DegenerateLattice,
    InvalidStructure,
    XtalysisError,
    check_cancelled,
    create_crystal_structure,
)


class TestCrystalStructure(chex.TestCase):
    """Test suite for the CrystalStructure PyTree and its factory."""

    def setUp(self) -> None:
        super().setUp()
        self.lattice = jnp.array(
            [[5.64, 0.0, 0.0], [0.0, 5.64, 0.0], [0.0, 0.0, 5.64]]
        )
        self.frac = jnp.array([[0.0, 0.0, 0.0], [0.5, 0.5, 0.5]])
        self.species = ["Na", "Cl"]

    def test_create_valid(self) -> None:
        """Valid inputs produce a float64 structure with matching labels."""
        crystal = create_crystal_structure(self.lattice, self.frac, self.species)
        chex.assert_shape(crystal.lattice, (3, 3))
        chex.assert_shape(crystal.frac_positions, (2, 3))
        self.assertEqual(crystal.frac_positions.dtype, jnp.float64)
        self.assertEqual(crystal.species, ("Na", "Cl"))
        self.assertEqual(crystal.n_atoms, 2)

    def test_accepts_numpy_inputs(self) -> None:
        """NumPy arrays are converted to JAX arrays."""
        crystal = create_crystal_structure(
            np.eye(3) * 4.0, np.zeros((1, 3)), ["X"]
        )
        self.assertIsInstance(crystal.lattice, jax.Array)
        chex.assert_trees_all_close(crystal.volume, 64.0)

    def test_cart_positions(self) -> None:
        """Cartesian positions are fractional positions times the lattice."""
        crystal = create_crystal_structure(self.lattice, self.frac, self.species)
        chex.assert_trees_all_close(
            crystal.cart_positions,
            jnp.array([[0.0, 0.0, 0.0], [2.82, 2.82, 2.82]]),
        )

    def test_empty_structure_is_valid(self) -> None:
        """A cell without atoms is allowed."""
        crystal = create_crystal_structure(self.lattice, jnp.zeros((0, 3)), [])
        self.assertEqual(crystal.n_atoms, 0)

    def test_pytree_roundtrip(self) -> None:
        """Flattening keeps species as static data."""
        crystal = create_crystal_structure(self.lattice, self.frac, self.species)
        leaves, treedef = tree_util.tree_flatten(crystal)
        self.assertLen(leaves, 2)
        rebuilt = tree_util.tree_unflatten(treedef, leaves)
        self.assertIsInstance(rebuilt, CrystalStructure)
        self.assertEqual(rebuilt.species, crystal.species)
        chex.assert_trees_all_close(rebuilt.lattice, crystal.lattice)

    def test_jit_through_structure(self) -> None:
        """Structures can be passed through jitted functions."""
        crystal = create_crystal_structure(self.lattice, self.frac, self.species)

        @jax.jit
        def centroid(structure: CrystalStructure) -> jax.Array:
            return jnp.mean(structure.cart_positions, axis=0)

        chex.assert_trees_all_close(
            centroid(crystal), jnp.array([1.41, 1.41, 1.41])
        )

    @parameterized.named_parameters(
        ("coplanar", [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [1.0, 1.0, 0.0]]),
        ("zero_vector", [[1.0, 0.0, 0.0], [0.0, 0.0, 0.0], [0.0, 0.0, 1.0]]),
    )
    def test_degenerate_lattice(self, lattice) -> None:
        """Coplanar lattice vectors are rejected."""
        with self.assertRaises(DegenerateLattice):
            create_crystal_structure(
                jnp.array(lattice), jnp.zeros((1, 3)), ["X"]
            )

    def test_degenerate_is_invalid_structure(self) -> None:
        """DegenerateLattice is catchable as InvalidStructure and ValueError."""
        self.assertTrue(issubclass(DegenerateLattice, InvalidStructure))
        self.assertTrue(issubclass(InvalidStructure, ValueError))
        self.assertTrue(issubclass(InvalidStructure, XtalysisError))

    def test_species_count_mismatch(self) -> None:
        """One label is required per atom."""
        with self.assertRaises(InvalidStructure):
            create_crystal_structure(self.lattice, self.frac, ["Na"])

    def test_empty_label(self) -> None:
        """Blank species labels are rejected."""
        with self.assertRaises(InvalidStructure):
            create_crystal_structure(self.lattice, self.frac, ["Na", " "])

    def test_non_finite_positions(self) -> None:
        """NaN coordinates are rejected."""
        frac = self.frac.at[1, 0].set(jnp.nan)
        with self.assertRaises(InvalidStructure):
            create_crystal_structure(self.lattice, frac, self.species)


class TestCancelToken(chex.TestCase):
    """Test suite for cooperative cancellation."""

    def test_initial_state(self) -> None:
        token = CancelToken()
        self.assertFalse(token.cancelled)
        token.raise_if_cancelled()

    def test_cancel_raises_with_reason(self) -> None:
        token = CancelToken()
        token.cancel("user abort")
        self.assertTrue(token.cancelled)
        with self.assertRaisesRegex(Cancelled, "user abort"):
            token.raise_if_cancelled()

    def test_first_reason_is_kept(self) -> None:
        token = CancelToken()
        token.cancel("first")
        token.cancel("second")
        self.assertEqual(token.reason, "first")

    def test_check_cancelled_none(self) -> None:
        """A missing token never cancels."""
        check_cancelled(None)
