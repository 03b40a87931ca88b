"""Tests for kpath module.

Covers variant selection, the point catalogue, Brillouin-zone wireframes
and complete paths for reference structures.
"""

import warnings

import chex
import jax.numpy as jnp
import numpy as np
from absl.testing import parameterized

from xtalysis.kpath import (
    GAMMA,
    LATTICE_TYPES,
    catalogue_entry,
    generate_kpath,
    placeholder_wireframe,
    primitive_and_conventional,
    select_variant,
    wigner_seitz_wireframe,
)
from xtalysis.symm import clear_symmetry_cache, get_symmetry
from xtalysis.types import (
    InvalidStructure,
    KPath,
    UnsupportedLatticeVisualization,
    create_crystal_structure,
)
from xtalysis.ucell import reciprocal_lattice

CUBIC_PARAMS = {"a": 4.0, "b": 4.0, "c": 4.0, "alpha": 90.0}


def _rock_salt(a: float = 5.64):
    fcc = jnp.array(
        [[0.0, 0.0, 0.0], [0.0, 0.5, 0.5], [0.5, 0.0, 0.5], [0.5, 0.5, 0.0]]
    )
    chloride = (fcc + jnp.array([0.5, 0.0, 0.0])) % 1.0
    return create_crystal_structure(
        a * jnp.eye(3), jnp.concatenate([fcc, chloride]), ["Na"] * 4 + ["Cl"] * 4
    )


class TestVariantSelection(chex.TestCase, parameterized.TestCase):
    """Test the Bravais lattice to variant mapping."""

    @parameterized.named_parameters(
        ("simple_cubic", "cP", "CUB"),
        ("face_centred", "cF", "FCC"),
        ("body_centred", "cI", "BCC"),
        ("hexagonal", "hP", "HEX"),
        ("monoclinic", "mP", "MCL"),
    )
    def test_fixed_variants(self, bravais: str, expected: str) -> None:
        self.assertEqual(
            select_variant(bravais, CUBIC_PARAMS, 90.0, (90.0, 90.0, 90.0)),
            expected,
        )

    @parameterized.named_parameters(
        ("squat", 3.0, "BCT1"),
        ("tall", 6.0, "BCT2"),
    )
    def test_body_centred_tetragonal(self, c: float, expected: str) -> None:
        params = {"a": 4.0, "b": 4.0, "c": c, "alpha": 90.0}
        self.assertEqual(
            select_variant("tI", params, 90.0, (90.0, 90.0, 90.0)), expected
        )

    @parameterized.named_parameters(
        ("acute", 60.0, "RHL1"),
        ("obtuse", 100.0, "RHL2"),
    )
    def test_rhombohedral(self, alpha: float, expected: str) -> None:
        self.assertEqual(
            select_variant("hR", CUBIC_PARAMS, alpha, (90.0, 90.0, 90.0)), expected
        )

    @parameterized.named_parameters(
        ("all_obtuse", (100.0, 105.0, 110.0), "TRI1a"),
        ("all_acute", (70.0, 75.0, 80.0), "TRI1b"),
    )
    def test_triclinic(self, angles, expected: str) -> None:
        self.assertEqual(select_variant("aP", CUBIC_PARAMS, 90.0, angles), expected)

    def test_unknown_bravais(self) -> None:
        with self.assertRaises(ValueError):
            select_variant("zZ", CUBIC_PARAMS, 90.0, (90.0, 90.0, 90.0))


class TestCatalogue(chex.TestCase, parameterized.TestCase):
    """Test the point catalogue."""

    @parameterized.parameters(*LATTICE_TYPES)
    def test_branches_use_known_points(self, lattice_type: str) -> None:
        params = {"a": 3.0, "b": 4.0, "c": 5.0, "alpha": 70.0}
        points, branches = catalogue_entry(lattice_type, params, 60.0)
        self.assertIn(GAMMA, points)
        np.testing.assert_allclose(points[GAMMA], (0.0, 0.0, 0.0))
        self.assertNotEmpty(branches)
        for branch in branches:
            self.assertGreaterEqual(len(branch), 2)
            for label in branch:
                self.assertIn(label, points)

    def test_cubic_path(self) -> None:
        _, branches = catalogue_entry("CUB", CUBIC_PARAMS)
        self.assertEqual(
            ["-".join(branch) for branch in branches], ["Γ-X-M-Γ-R-X", "M-R"]
        )

    def test_unknown_lattice_type(self) -> None:
        with self.assertRaises(ValueError):
            catalogue_entry("CUBIC", CUBIC_PARAMS)


class TestWireframes(chex.TestCase, parameterized.TestCase):
    """Test Brillouin-zone geometry."""

    def test_simple_cubic_zone_is_a_cube(self) -> None:
        recip = np.asarray(reciprocal_lattice(4.0 * jnp.eye(3)))
        vertices, edges = wigner_seitz_wireframe(recip)
        chex.assert_shape(vertices, (8, 3))
        chex.assert_shape(edges, (12, 2))
        np.testing.assert_allclose(np.abs(vertices), np.pi / 4.0, atol=1e-8)

    def test_fcc_zone_is_truncated_octahedron(self) -> None:
        primitive = 5.64 * jnp.array(
            [[0.0, 0.5, 0.5], [0.5, 0.0, 0.5], [0.5, 0.5, 0.0]]
        )
        vertices, edges = wigner_seitz_wireframe(
            np.asarray(reciprocal_lattice(primitive))
        )
        chex.assert_shape(vertices, (24, 3))
        chex.assert_shape(edges, (36, 2))

    def test_edges_index_vertices(self) -> None:
        recip = np.asarray(reciprocal_lattice(4.0 * jnp.eye(3)))
        vertices, edges = wigner_seitz_wireframe(recip)
        self.assertTrue(np.all(edges[:, 0] < edges[:, 1]))
        self.assertLess(int(edges.max()), vertices.shape[0])

    def test_placeholder_box(self) -> None:
        vertices, edges = placeholder_wireframe(np.eye(3))
        chex.assert_shape(vertices, (8, 3))
        chex.assert_shape(edges, (12, 2))
        np.testing.assert_allclose(np.abs(vertices), 0.5)


class TestGenerateKPath(chex.TestCase):
    """Test complete paths."""

    def setUp(self) -> None:
        super().setUp()
        clear_symmetry_cache()

    def test_simple_cubic(self) -> None:
        cubic = create_crystal_structure(4.0 * jnp.eye(3), jnp.zeros((1, 3)), ["X"])
        with warnings.catch_warnings():
            warnings.simplefilter("error", UnsupportedLatticeVisualization)
            path = generate_kpath(cubic)
        self.assertIsInstance(path, KPath)
        self.assertEqual(path.lattice_type, "CUB")
        self.assertEqual(path.bravais, "cP")
        self.assertEqual(path.branches, (("Γ", "X", "M", "Γ", "R", "X"), ("M", "R")))
        self.assertLen(path.segments, 6)
        self.assertEqual(path.segments[0], ("Γ", "X"))
        self.assertFalse(path.wireframe_approximate)
        chex.assert_shape(path.wireframe_vertices, (8, 3))
        chex.assert_shape(path.wireframe_edges, (12, 2))
        chex.assert_trees_all_close(
            path.point("X").cart, jnp.array([0.0, jnp.pi / 4.0, 0.0]), atol=1e-12
        )

    def test_cartesian_from_fractional(self) -> None:
        path = generate_kpath(_rock_salt())
        for point in path.points:
            chex.assert_trees_all_close(
                point.cart, point.frac @ path.reciprocal_lattice, atol=1e-12
            )

    def test_rock_salt_conventional_cell(self) -> None:
        """A conventional face-centred cell maps to the FCC path."""
        path = generate_kpath(_rock_salt())
        self.assertEqual(path.lattice_type, "FCC")
        self.assertEqual(path.bravais, "cF")
        self.assertIn("K", path.labels)
        chex.assert_shape(path.wireframe_vertices, (24, 3))
        chex.assert_shape(path.wireframe_edges, (36, 2))

    def test_primitive_cell_of_conventional_input(self) -> None:
        structure = _rock_salt()
        primitive, conventional = primitive_and_conventional(
            structure.lattice, get_symmetry(structure)
        )
        chex.assert_trees_all_close(conventional, structure.lattice)
        chex.assert_trees_all_close(
            jnp.abs(jnp.linalg.det(primitive)),
            jnp.abs(jnp.linalg.det(conventional)) / 4.0,
        )

    def test_tetragonal_placeholder(self) -> None:
        """Non-cubic lattices keep the path but flag the wireframe."""
        tetragonal = create_crystal_structure(
            jnp.diag(jnp.array([4.0, 4.0, 6.0])), jnp.zeros((1, 3)), ["X"]
        )
        with self.assertWarns(UnsupportedLatticeVisualization):
            path = generate_kpath(tetragonal)
        self.assertEqual(path.lattice_type, "TET")
        self.assertTrue(path.wireframe_approximate)
        chex.assert_shape(path.wireframe_vertices, (8, 3))
        self.assertIn("A", path.labels)

    def test_precomputed_symmetry(self) -> None:
        cubic = create_crystal_structure(4.0 * jnp.eye(3), jnp.zeros((1, 3)), ["X"])
        symmetry = get_symmetry(cubic)
        path = generate_kpath(cubic, symmetry=symmetry)
        self.assertEqual(path.lattice_type, "CUB")

    def test_empty_structure(self) -> None:
        empty = create_crystal_structure(4.0 * jnp.eye(3), jnp.zeros((0, 3)), [])
        with self.assertRaises(InvalidStructure):
            generate_kpath(empty)
