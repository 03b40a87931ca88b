"""Tests for ucell.unitcell module.

Covers fractional/Cartesian conversion, the reciprocal lattice, periodic
wrapping and the minimum-image distance.
"""

import chex
import jax.numpy as jnp
from absl.testing import parameterized
from jaxtyping import Array, Float

from xtalysis.types import DegenerateLattice
from xtalysis.ucell import (
    build_cell_vectors,
    cartesian_to_fractional,
    cell_volume,
    check_lattice,
    compute_lengths_angles,
    fractional_to_cartesian,
    image_offsets,
    metric_tensor,
    minimum_image_distance,
    neighbour_shell,
    reciprocal_lattice,
    wrap_fractional,
)


def _triclinic() -> Float[Array, "3 3"]:
    return build_cell_vectors(4.0, 5.0, 6.0, 80.0, 95.0, 105.0)


class TestConversions(chex.TestCase, parameterized.TestCase):
    """Test fractional and Cartesian conversions."""

    @chex.variants(with_jit=True, without_jit=True)
    def test_fractional_to_cartesian_cubic(self) -> None:
        var_fn = self.variant(fractional_to_cartesian)
        cart = var_fn(4.0 * jnp.eye(3), jnp.array([[0.5, 0.25, 0.0]]))
        chex.assert_trees_all_close(cart, jnp.array([[2.0, 1.0, 0.0]]))

    @chex.variants(without_jit=True)
    def test_roundtrip_triclinic(self) -> None:
        """Converting there and back recovers the input."""
        lattice = _triclinic()
        frac = jnp.array([[0.1, 0.2, 0.3], [0.9, 0.5, 0.05]])
        to_cart = self.variant(fractional_to_cartesian)
        to_frac = self.variant(cartesian_to_fractional)
        chex.assert_trees_all_close(
            to_frac(lattice, to_cart(lattice, frac)), frac, atol=1e-12
        )

    @chex.variants(with_jit=True, without_jit=True)
    @parameterized.named_parameters(
        ("negative", [-0.25, 0.0, 0.5], [0.75, 0.0, 0.5]),
        ("above_one", [1.5, 2.0, 0.999], [0.5, 0.0, 0.999]),
        ("tiny_negative", [-1e-17, 0.0, 0.0], [0.0, 0.0, 0.0]),
    )
    def test_wrap_fractional(self, frac, expected) -> None:
        var_fn = self.variant(wrap_fractional)
        wrapped = var_fn(jnp.array(frac))
        chex.assert_trees_all_close(wrapped, jnp.array(expected), atol=1e-12)
        self.assertTrue(bool(jnp.all((wrapped >= 0.0) & (wrapped < 1.0))))


class TestReciprocalLattice(chex.TestCase, parameterized.TestCase):
    """Test reciprocal lattice and cell metrics."""

    @chex.variants(without_jit=True)
    @parameterized.named_parameters(
        ("cubic", (4.0, 4.0, 4.0, 90.0, 90.0, 90.0)),
        ("hexagonal", (3.0, 3.0, 5.0, 90.0, 90.0, 120.0)),
        ("triclinic", (4.0, 5.0, 6.0, 80.0, 95.0, 105.0)),
    )
    def test_duality(self, params) -> None:
        """a_i · b_j = 2π δ_ij."""
        lattice = build_cell_vectors(*params)
        var_fn = self.variant(reciprocal_lattice)
        recip = var_fn(lattice)
        chex.assert_trees_all_close(
            lattice @ recip.T, 2.0 * jnp.pi * jnp.eye(3), atol=1e-10
        )

    @chex.variants(with_jit=True, without_jit=True)
    def test_cell_volume(self) -> None:
        var_fn = self.variant(cell_volume)
        chex.assert_trees_all_close(var_fn(jnp.diag(jnp.array([2.0, 3.0, 4.0]))), 24.0)

    def test_metric_tensor(self) -> None:
        lattice = _triclinic()
        metric = metric_tensor(lattice)
        chex.assert_trees_all_close(metric, metric.T)
        lengths, _ = compute_lengths_angles(lattice)
        chex.assert_trees_all_close(jnp.diag(metric), lengths**2)

    def test_check_lattice(self) -> None:
        check_lattice(jnp.eye(3))
        with self.assertRaises(DegenerateLattice):
            check_lattice(jnp.array([[1.0, 0.0, 0.0], [2.0, 0.0, 0.0], [0.0, 0.0, 1.0]]))

    @parameterized.named_parameters(
        ("to_fractional", lambda lat: cartesian_to_fractional(lat, jnp.ones((2, 3)))),
        ("reciprocal", reciprocal_lattice),
        (
            "minimum_image",
            lambda lat: minimum_image_distance(lat, jnp.zeros(3), jnp.ones(3) * 0.5),
        ),
    )
    def test_coplanar_lattice_rejected(self, fn) -> None:
        """Coplanar vectors raise instead of returning NaN."""
        coplanar = jnp.array([[4.0, 0.0, 0.0], [0.0, 4.0, 0.0], [4.0, 4.0, 0.0]])
        with self.assertRaises(DegenerateLattice):
            fn(coplanar)


class TestCellVectors(chex.TestCase, parameterized.TestCase):
    """Test lattice construction from cell parameters and back."""

    @parameterized.named_parameters(
        ("cubic", (5.0, 5.0, 5.0, 90.0, 90.0, 90.0)),
        ("monoclinic", (5.0, 6.0, 7.0, 90.0, 110.0, 90.0)),
        ("triclinic", (4.0, 5.0, 6.0, 80.0, 95.0, 105.0)),
    )
    def test_lengths_angles_roundtrip(self, params) -> None:
        lattice = build_cell_vectors(*params)
        lengths, angles = compute_lengths_angles(lattice)
        chex.assert_trees_all_close(lengths, jnp.array(params[:3]), atol=1e-10)
        chex.assert_trees_all_close(angles, jnp.array(params[3:]), atol=1e-8)

    def test_a_along_x(self) -> None:
        lattice = build_cell_vectors(3.0, 4.0, 5.0, 90.0, 90.0, 120.0)
        chex.assert_trees_all_close(lattice[0], jnp.array([3.0, 0.0, 0.0]))


class TestMinimumImage(chex.TestCase, parameterized.TestCase):
    """Test periodic distances."""

    def test_image_offsets_count(self) -> None:
        chex.assert_shape(image_offsets(1), (27, 3))
        chex.assert_shape(image_offsets(2), (125, 3))

    @chex.variants(without_jit=True)
    def test_distance_across_boundary(self) -> None:
        """Atoms near opposite faces are close through the boundary."""
        var_fn = self.variant(lambda lat, p, q: minimum_image_distance(lat, p, q))
        distance = var_fn(
            4.0 * jnp.eye(3), jnp.array([0.05, 0.0, 0.0]), jnp.array([0.95, 0.0, 0.0])
        )
        chex.assert_trees_all_close(distance, 0.4, atol=1e-12)

    def test_broadcast_shapes(self) -> None:
        lattice = 4.0 * jnp.eye(3)
        p = jnp.zeros((2, 1, 3))
        q = jnp.array([[0.5, 0.0, 0.0], [0.0, 0.5, 0.5], [0.25, 0.25, 0.25]])
        distances = minimum_image_distance(lattice, p, q[None, :, :])
        chex.assert_shape(distances, (2, 3))
        chex.assert_trees_all_close(
            distances[0], jnp.array([2.0, jnp.sqrt(8.0), jnp.sqrt(3.0)])
        )

    def test_skewed_cell_shell(self) -> None:
        """Strongly sheared cells search the wider shell."""
        self.assertEqual(neighbour_shell(4.0 * jnp.eye(3)), 1)
        skewed = build_cell_vectors(4.0, 4.0, 4.0, 90.0, 90.0, 150.0)
        self.assertEqual(neighbour_shell(skewed), 2)

    def test_skewed_minimum_image_is_shortest(self) -> None:
        """The wide shell finds the image the rounded difference misses."""
        lattice = build_cell_vectors(4.0, 4.0, 4.0, 90.0, 90.0, 150.0)
        p = jnp.array([0.0, 0.0, 0.0])
        q = jnp.array([0.45, 0.45, 0.0])
        shell = neighbour_shell(lattice)
        distance = minimum_image_distance(lattice, p, q, shell=shell)
        brute = jnp.min(
            jnp.linalg.norm(
                (q - p + image_offsets(3).astype(jnp.float64)) @ lattice, axis=-1
            )
        )
        chex.assert_trees_all_close(distance, brute, atol=1e-12)
