"""Tests for voids module.

Covers the probe grid, void fraction, periodic clustering and the ion
fitting helpers.
"""

import chex
import jax.numpy as jnp
import numpy as np
from absl.testing import parameterized

from xtalysis.types import (
    CancelToken,
    Cancelled,
    ComputeTimeout,
    CrystalStructure,
    VoidField,
    create_crystal_structure,
)
from xtalysis.voids import (
    PROBE_RADII,
    analyze_voids,
    fitting_ions,
    fractional_grid,
    grid_shape,
    ion_intercalation,
    label_clusters,
    neighbour_offsets,
    resolve_probe_radius,
    surface_distance,
)

BODY_CENTRE_CLEARANCE = 2.0 * np.sqrt(3.0) - 1.5


def _cubic_x(a: float = 4.0) -> CrystalStructure:
    return create_crystal_structure(a * jnp.eye(3), jnp.zeros((1, 3)), ["X"])


class TestAnalyzeVoids(chex.TestCase, parameterized.TestCase):
    """Test the full void analysis on a primitive cubic cell."""

    def setUp(self) -> None:
        super().setUp()
        self.options = {"probe": 1.2, "radii_overrides": {"X": 1.5}}

    def test_reproducible(self) -> None:
        """Identical inputs give identical fractions and clusters."""
        first = analyze_voids(_cubic_x(), **self.options)
        second = analyze_voids(_cubic_x(), **self.options)
        self.assertIsInstance(first, VoidField)
        self.assertEqual(float(first.void_fraction), float(second.void_fraction))
        self.assertLen(first.clusters, len(second.clusters))
        self.assertGreater(float(first.void_fraction), 0.0)
        self.assertLess(float(first.void_fraction), 100.0)

    def test_grid(self) -> None:
        field = analyze_voids(_cubic_x(), **self.options)
        self.assertEqual(field.grid_shape, (20, 20, 20))
        for spacing in field.grid_spacing:
            self.assertLessEqual(spacing, 0.2 + 1e-12)

    def test_largest_sphere_at_body_centre(self) -> None:
        field = analyze_voids(_cubic_x(), **self.options)
        chex.assert_trees_all_close(
            field.max_sphere_radius, BODY_CENTRE_CLEARANCE, atol=1e-9
        )
        chex.assert_trees_all_close(
            field.max_sphere_center, jnp.array([2.0, 2.0, 2.0]), atol=1e-9
        )

    def test_network_is_one_cluster(self) -> None:
        """Cavities join through the face centres into one periodic network."""
        field = analyze_voids(_cubic_x(), **self.options)
        self.assertLen(field.clusters, 1)
        cluster = field.clusters[0]
        chex.assert_trees_all_close(cluster.radius, BODY_CENTRE_CLEARANCE, atol=1e-9)
        self.assertEqual(cluster.n_points, int(field.void_mask.sum()))
        chex.assert_trees_all_equal(cluster.grid_index, jnp.array([10, 10, 10]))

    def test_void_fraction_matches_mask(self) -> None:
        field = analyze_voids(_cubic_x(), **self.options)
        mask = np.asarray(field.void_mask, dtype=np.float64)
        expected = 100.0 * float(np.mean(mask))
        self.assertAlmostEqual(float(field.void_fraction), expected)

    def test_larger_probe_shrinks_void(self) -> None:
        small = analyze_voids(_cubic_x(), probe=1.0, radii_overrides={"X": 1.5})
        large = analyze_voids(_cubic_x(), probe=1.6, radii_overrides={"X": 1.5})
        self.assertLess(float(large.void_fraction), float(small.void_fraction))

    def test_probe_too_large(self) -> None:
        field = analyze_voids(_cubic_x(), probe=2.0, radii_overrides={"X": 1.5})
        self.assertEqual(float(field.void_fraction), 0.0)
        self.assertEmpty(field.clusters)

    def test_cluster_bookkeeping(self) -> None:
        """Cluster sizes add up to the void count, largest radius first."""
        structure = create_crystal_structure(
            4.0 * jnp.eye(3),
            jnp.array([[0.0, 0.0, 0.0], [0.5, 0.5, 0.0]]),
            ["X", "X"],
        )
        field = analyze_voids(structure, probe=0.3, radii_overrides={"X": 1.5})
        self.assertGreater(len(field.clusters), 0)
        radii = [float(c.radius) for c in field.clusters]
        self.assertEqual(radii, sorted(radii, reverse=True))
        self.assertEqual(
            sum(c.n_points for c in field.clusters), int(field.void_mask.sum())
        )

    def test_isolated_cavities_radius_is_cluster_maximum(self) -> None:
        """Each separate cavity reports the largest clearance it contains."""
        fcc = create_crystal_structure(
            4.0 * jnp.eye(3),
            jnp.array(
                [[0.0, 0.0, 0.0], [0.0, 0.5, 0.5], [0.5, 0.0, 0.5], [0.5, 0.5, 0.0]]
            ),
            ["X"] * 4,
        )
        field = analyze_voids(fcc, probe=0.4, radii_overrides={"X": 1.4})
        self.assertGreater(len(field.clusters), 1)
        clearance = np.asarray(field.clearance)
        labels, n_clusters = label_clusters(np.asarray(field.void_mask))
        self.assertEqual(n_clusters, len(field.clusters))
        for cluster in field.clusters:
            label = labels[tuple(np.asarray(cluster.grid_index))]
            self.assertGreaterEqual(label, 0)
            self.assertAlmostEqual(
                float(cluster.radius), float(clearance[labels == label].max())
            )
            self.assertEqual(cluster.n_points, int(np.sum(labels == label)))
        chex.assert_trees_all_close(field.clusters[0].radius, 0.6, atol=1e-9)

    def test_radii_scale(self) -> None:
        base = analyze_voids(_cubic_x(), **self.options)
        scaled = analyze_voids(_cubic_x(), radii_scale=0.5, **self.options)
        chex.assert_trees_all_close(
            scaled.max_sphere_radius, 2.0 * np.sqrt(3.0) - 0.75, atol=1e-9
        )
        self.assertGreater(float(scaled.void_fraction), float(base.void_fraction))

    def test_empty_cell_is_all_void(self) -> None:
        empty = create_crystal_structure(4.0 * jnp.eye(3), jnp.zeros((0, 3)), [])
        field = analyze_voids(empty, grid_spacing=1.0)
        self.assertEqual(float(field.void_fraction), 100.0)
        self.assertLen(field.clusters, 1)

    @parameterized.named_parameters(
        ("negative_probe", {"probe": -0.5}),
        ("unknown_probe", {"probe": "Unobtainium"}),
        ("zero_spacing", {"grid_spacing": 0.0}),
        ("unknown_radius_set", {"radius_set": "metallic"}),
        ("bad_connectivity", {"connectivity": 8}),
        ("zero_scale", {"radii_scale": 0.0}),
    )
    def test_invalid_options(self, options) -> None:
        with self.assertRaises(ValueError):
            analyze_voids(_cubic_x(), **options)

    def test_grid_budget(self) -> None:
        with self.assertRaises(ComputeTimeout):
            analyze_voids(_cubic_x(), max_grid_points=100)

    def test_cancelled(self) -> None:
        token = CancelToken()
        token.cancel("stop")
        with self.assertRaises(Cancelled):
            analyze_voids(_cubic_x(), cancel=token)


class TestVoidHelpers(chex.TestCase, parameterized.TestCase):
    """Test grid, probe and clustering helpers."""

    @parameterized.named_parameters(
        ("helium", "He", 1.20),
        ("geometric", "Geometric", 0.0),
        ("number", 1.7, 1.7),
        ("integer", 2, 2.0),
    )
    def test_resolve_probe_radius(self, probe, expected: float) -> None:
        self.assertAlmostEqual(resolve_probe_radius(probe), expected)

    def test_probe_presets_non_negative(self) -> None:
        self.assertTrue(all(r >= 0.0 for r in PROBE_RADII.values()))

    def test_grid_shape(self) -> None:
        lattice = jnp.diag(jnp.array([4.0, 3.1, 0.05]))
        self.assertEqual(grid_shape(lattice, 0.2), (20, 16, 1))

    def test_fractional_grid(self) -> None:
        grid = fractional_grid((2, 3, 4))
        chex.assert_shape(grid, (24, 3))
        chex.assert_trees_all_close(grid[1], jnp.array([0.0, 0.0, 0.25]))

    def test_surface_distance_periodic(self) -> None:
        """A point near the face sees the atom through the boundary."""
        lattice = 4.0 * jnp.eye(3)
        points = jnp.array([[0.9, 0.0, 0.0], [0.5, 0.5, 0.5]])
        atoms = jnp.zeros((1, 3))
        distance = surface_distance(lattice, points, atoms, jnp.array([1.0]))
        chex.assert_trees_all_close(
            distance, jnp.array([-0.6, 2.0 * jnp.sqrt(3.0) - 1.0]), atol=1e-12
        )

    def test_surface_distance_no_atoms(self) -> None:
        distance = surface_distance(
            jnp.eye(3), jnp.zeros((3, 3)), jnp.zeros((0, 3)), jnp.zeros(0)
        )
        self.assertTrue(bool(jnp.all(jnp.isinf(distance))))

    def test_label_clusters_periodic_wrap(self) -> None:
        """Cells touching opposite faces belong to one cluster."""
        mask = np.zeros((6, 6, 6), dtype=bool)
        mask[0, 2, 2] = True
        mask[5, 2, 2] = True
        mask[3, 4, 4] = True
        labels, n_clusters = label_clusters(mask)
        self.assertEqual(n_clusters, 2)
        self.assertEqual(labels[0, 2, 2], labels[5, 2, 2])
        self.assertEqual(labels[0, 2, 2], 0)
        self.assertEqual(labels[3, 4, 4], 1)
        self.assertEqual(labels[1, 1, 1], -1)

    def test_label_clusters_connectivity(self) -> None:
        """Diagonal neighbours join only with 26-connectivity."""
        mask = np.zeros((5, 5, 5), dtype=bool)
        mask[1, 1, 1] = True
        mask[2, 2, 2] = True
        self.assertEqual(label_clusters(mask, connectivity=6)[1], 2)
        self.assertEqual(label_clusters(mask, connectivity=26)[1], 1)

    def test_neighbour_offsets(self) -> None:
        self.assertLen(neighbour_offsets(6), 3)
        self.assertLen(neighbour_offsets(26), 13)
        with self.assertRaises(ValueError):
            neighbour_offsets(18)


class TestIonFitting(chex.TestCase):
    """Test ion intercalation helpers."""

    def test_fitting_ions_sorted(self) -> None:
        field = analyze_voids(_cubic_x(), **{"probe": 1.2, "radii_overrides": {"X": 1.5}})
        fits = fitting_ions(field, {"big": 1.9, "small": 0.5, "huge": 2.5})
        self.assertEqual(fits, (("small", 0.5), ("big", 1.9)))

    def test_ion_intercalation(self) -> None:
        sodium = create_crystal_structure(4.0 * jnp.eye(3), jnp.zeros((1, 3)), ["Na"])
        result = ion_intercalation(
            sodium, ions={"small": 0.5, "huge": 3.0}, grid_spacing=0.5
        )
        self.assertEqual(result, {"small": True, "huge": False})
