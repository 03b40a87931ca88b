import chex
import jax.numpy as jnp
from absl.testing import parameterized

from xtalysis.inout import (
    RADIUS_SETS,
    atomic_number,
    atomic_radii,
    atomic_radius,
    cromer_mann_coefficients,
    element_symbol,
    load_element_table,
)


class TestElementTable(chex.TestCase, parameterized.TestCase):
    """Test the bundled element table."""

    def test_table_loads(self) -> None:
        table = load_element_table()
        self.assertGreaterEqual(len(table), 100)
        for record in table.values():
            self.assertLen(record["cromer_mann"], 9)
            for radius_set in RADIUS_SETS:
                self.assertGreaterEqual(record[radius_set], 0.0)

    @parameterized.named_parameters(
        ("oxygen", "O", 8),
        ("sodium", "Na", 11),
        ("chlorine", "Cl", 17),
        ("iron", "Fe", 26),
    )
    def test_forward_scattering_equals_electron_count(
        self, symbol: str, z: int
    ) -> None:
        """f(0) = Σ a_i + c is close to the atomic number."""
        coeffs = cromer_mann_coefficients([symbol])[0]
        f_zero = jnp.sum(coeffs[0:8:2]) + coeffs[8]
        chex.assert_trees_all_close(f_zero, float(z), atol=0.1)
        self.assertEqual(atomic_number(symbol), z)


class TestSpeciesLabels(chex.TestCase, parameterized.TestCase):
    """Test label normalisation and radius lookup."""

    @parameterized.named_parameters(
        ("oxidation_state", "fe3+", "Fe"),
        ("site_label", "O2", "O"),
        ("two_letter_site", "Ca1", "Ca"),
        ("carbon_site", "C12", "C"),
        ("unknown", "X", "X"),
        ("padded", "  Na ", "Na"),
    )
    def test_element_symbol(self, label: str, expected: str) -> None:
        self.assertEqual(element_symbol(label), expected)

    def test_unknown_element_defaults(self) -> None:
        self.assertEqual(atomic_number("X"), 0)
        self.assertAlmostEqual(atomic_radius("X", "vdw"), 2.0)
        chex.assert_shape(cromer_mann_coefficients(["X", "Na"]), (2, 9))

    def test_unknown_radius_set(self) -> None:
        with self.assertRaises(ValueError):
            atomic_radius("Na", "metallic")

    def test_overrides_take_precedence(self) -> None:
        """Exact labels win over element symbols, which win over the table."""
        radii = atomic_radii(
            ["Na1", "Na2", "Cl"],
            radius_set="vdw",
            overrides={"Na1": 1.0, "Na": 1.5},
        )
        chex.assert_trees_all_close(radii, jnp.array([1.0, 1.5, 1.75]))

    def test_scale_applies_to_overrides(self) -> None:
        radii = atomic_radii(["X"], overrides={"X": 1.5}, scale=2.0)
        chex.assert_trees_all_close(radii, jnp.array([3.0]))

    def test_empty_species(self) -> None:
        chex.assert_shape(atomic_radii([]), (0,))
        chex.assert_shape(cromer_mann_coefficients([]), (0, 9))
