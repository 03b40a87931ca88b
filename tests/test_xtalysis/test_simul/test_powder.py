"""Tests for simul.powder module.

Covers peak positions, systematic absences, normalisation, merging and
the failure modes of the powder pattern simulator.
"""

import chex
import jax.numpy as jnp
import numpy as np
from absl.testing import parameterized

from xtalysis.inout import cromer_mann_coefficients
from xtalysis.simul import (
    atomic_form_factors,
    generate_hkl_grid,
    hkl_bounds,
    lorentz_polarization,
    merge_reflections,
    simulate_powder_pattern,
    structure_factor_intensity,
)
from xtalysis.types import (
    CancelToken,
    Cancelled,
    ComputeTimeout,
    CrystalStructure,
    create_crystal_structure,
)

CU_KALPHA = 1.5406


def _simple_cubic(a: float = 4.0) -> CrystalStructure:
    return create_crystal_structure(a * jnp.eye(3), jnp.zeros((1, 3)), ["X"])


def _fcc_copper(a: float = 3.615) -> CrystalStructure:
    frac = jnp.array(
        [[0.0, 0.0, 0.0], [0.0, 0.5, 0.5], [0.5, 0.0, 0.5], [0.5, 0.5, 0.0]]
    )
    return create_crystal_structure(a * jnp.eye(3), frac, ["Cu"] * 4)


def _bcc_iron(a: float = 2.866) -> CrystalStructure:
    frac = jnp.array([[0.0, 0.0, 0.0], [0.5, 0.5, 0.5]])
    return create_crystal_structure(a * jnp.eye(3), frac, ["Fe", "Fe"])


class TestPowderPattern(chex.TestCase, parameterized.TestCase):
    """Test the full powder simulation."""

    def test_simple_cubic_first_peak(self) -> None:
        """The (100) peak of a 4 Å cube sits near 22.2° with Cu Kα."""
        pattern = simulate_powder_pattern(_simple_cubic(), wavelength=CU_KALPHA)
        self.assertAlmostEqual(float(pattern.two_theta[0]), 22.24, delta=0.05)
        self.assertAlmostEqual(float(pattern.d_spacings[0]), 4.0, delta=1e-6)
        self.assertEqual(int(pattern.multiplicities[0]), 6)
        self.assertIn((1, 0, 0), pattern.hkls[0])

    def test_peaks_ascending_and_normalised(self) -> None:
        pattern = simulate_powder_pattern(_fcc_copper())
        self.assertGreater(pattern.n_peaks, 3)
        self.assertTrue(bool(jnp.all(jnp.diff(pattern.two_theta) > 0)))
        self.assertAlmostEqual(float(jnp.max(pattern.intensities)), 100.0)
        self.assertTrue(bool(jnp.all(pattern.intensities > 0.0)))
        self.assertTrue(bool(jnp.all(pattern.two_theta >= 10.0)))
        self.assertTrue(bool(jnp.all(pattern.two_theta <= 90.0)))

    def test_fcc_absences(self) -> None:
        """Face-centred peaks have unmixed indices only."""
        pattern = simulate_powder_pattern(_fcc_copper())
        self.assertAlmostEqual(float(pattern.two_theta[0]), 43.32, delta=0.05)
        for peak in pattern.hkls:
            for h, k, l in peak:
                parities = {h % 2, k % 2, l % 2}
                self.assertLen(parities, 1)

    def test_bcc_absences(self) -> None:
        """Body-centred peaks have h + k + l even."""
        pattern = simulate_powder_pattern(_bcc_iron())
        for peak in pattern.hkls:
            for h, k, l in peak:
                self.assertEqual((h + k + l) % 2, 0)

    def test_bragg_law(self) -> None:
        pattern = simulate_powder_pattern(_fcc_copper())
        theta = jnp.radians(pattern.two_theta / 2.0)
        chex.assert_trees_all_close(
            2.0 * pattern.d_spacings * jnp.sin(theta),
            jnp.full(pattern.n_peaks, CU_KALPHA),
        )

    def test_peaks_separated_by_merge_tolerance(self) -> None:
        pattern = simulate_powder_pattern(_fcc_copper(), merge_tolerance=0.1)
        gaps = jnp.diff(pattern.two_theta)
        self.assertTrue(bool(jnp.all(gaps >= 0.1)))

    def test_atom_order_invariance(self) -> None:
        reference = _bcc_iron()
        swapped = create_crystal_structure(
            reference.lattice, reference.frac_positions[::-1], reference.species
        )
        first = simulate_powder_pattern(reference)
        second = simulate_powder_pattern(swapped)
        chex.assert_trees_all_close(first.two_theta, second.two_theta)
        chex.assert_trees_all_close(first.intensities, second.intensities)

    def test_debye_waller_damps_high_angles(self) -> None:
        cold = simulate_powder_pattern(_simple_cubic())
        warm = simulate_powder_pattern(_simple_cubic(), debye_waller_b=1.0)
        self.assertEqual(cold.n_peaks, warm.n_peaks)
        cold_ratio = float(cold.intensities[-1] / cold.intensities[0])
        warm_ratio = float(warm.intensities[-1] / warm.intensities[0])
        self.assertLess(warm_ratio, cold_ratio)

    def test_empty_structure(self) -> None:
        empty = create_crystal_structure(4.0 * jnp.eye(3), jnp.zeros((0, 3)), [])
        pattern = simulate_powder_pattern(empty)
        self.assertEqual(pattern.n_peaks, 0)
        self.assertEqual(pattern.hkls, ())

    def test_many_blocks_with_integer_window(self) -> None:
        """Reflection blocks of different sizes and an integer window."""
        large = _simple_cubic(12.0)
        pattern = simulate_powder_pattern(
            large, wavelength=CU_KALPHA, two_theta_range=(10, 90)
        )
        self.assertGreater(pattern.n_peaks, 10)
        self.assertGreaterEqual(float(pattern.two_theta[0]), 10.0)
        self.assertLessEqual(float(pattern.two_theta[-1]), 90.0)
        self.assertTrue(bool(jnp.all(jnp.diff(pattern.two_theta) > 0.0)))
        self.assertAlmostEqual(
            float(pattern.d_spacings[0]), 12.0 / np.sqrt(2.0), delta=1e-6
        )

    def test_window_without_reflections(self) -> None:
        pattern = simulate_powder_pattern(_simple_cubic(), two_theta_range=(1.0, 5.0))
        self.assertEqual(pattern.n_peaks, 0)

    @parameterized.named_parameters(
        ("zero_wavelength", {"wavelength": 0.0}),
        ("reversed_range", {"two_theta_range": (90.0, 10.0)}),
        ("range_above_180", {"two_theta_range": (10.0, 200.0)}),
        ("zero_merge", {"merge_tolerance": 0.0}),
        ("cutoff_one", {"intensity_cutoff": 1.0}),
    )
    def test_invalid_options(self, options) -> None:
        with self.assertRaises(ValueError):
            simulate_powder_pattern(_simple_cubic(), **options)

    def test_reflection_budget(self) -> None:
        with self.assertRaises(ComputeTimeout):
            simulate_powder_pattern(_simple_cubic(), max_reflections=10)

    def test_cancelled(self) -> None:
        token = CancelToken()
        token.cancel("stop")
        with self.assertRaises(Cancelled):
            simulate_powder_pattern(_fcc_copper(), cancel=token)


class TestPowderHelpers(chex.TestCase, parameterized.TestCase):
    """Test the building blocks of the simulator."""

    def test_hkl_bounds(self) -> None:
        self.assertEqual(hkl_bounds(4.0 * jnp.eye(3), 1.0), (4, 4, 4))

    def test_hkl_grid_excludes_origin(self) -> None:
        grid = generate_hkl_grid((1, 1, 1))
        chex.assert_shape(grid, (26, 3))
        self.assertFalse(bool(jnp.any(jnp.all(grid == 0, axis=1))))

    def test_form_factor_at_zero(self) -> None:
        coeffs = cromer_mann_coefficients(["Na", "Cl"])
        f_zero = atomic_form_factors(coeffs, jnp.zeros(1))
        chex.assert_shape(f_zero, (1, 2))
        chex.assert_trees_all_close(f_zero[0], jnp.array([11.0, 17.0]), atol=0.1)

    def test_form_factor_decreases(self) -> None:
        coeffs = cromer_mann_coefficients(["Fe"])
        factors = atomic_form_factors(coeffs, jnp.array([0.0, 0.3, 0.6]))[:, 0]
        self.assertTrue(bool(jnp.all(jnp.diff(factors) < 0)))

    def test_structure_factor_body_centre_extinction(self) -> None:
        """Two equal atoms at 0 and ½ cancel for odd h + k + l."""
        frac = jnp.array([[0.0, 0.0, 0.0], [0.5, 0.5, 0.5]])
        hkl = jnp.array([[1.0, 0.0, 0.0], [1.0, 1.0, 0.0]])
        intensity = structure_factor_intensity(hkl, frac, jnp.ones((2, 2)))
        chex.assert_trees_all_close(intensity, jnp.array([0.0, 4.0]), atol=1e-12)

    def test_lorentz_polarization_guards(self) -> None:
        theta = jnp.array([0.0, jnp.pi / 4.0, jnp.pi / 2.0])
        lp = lorentz_polarization(theta)
        self.assertEqual(float(lp[0]), 0.0)
        self.assertEqual(float(lp[2]), 0.0)
        chex.assert_trees_all_close(lp[1], 1.0 / (0.5 * jnp.cos(jnp.pi / 4.0)))

    def test_merge_reflections(self) -> None:
        two_theta = np.array([30.0, 20.02, 20.0, 40.0])
        intensities = np.array([1.0, 3.0, 1.0, 2.0])
        hkl = np.array([[1, 1, 0], [0, 1, 0], [1, 0, 0], [1, 1, 1]])
        peaks = merge_reflections(two_theta, intensities, hkl, 0.05)
        self.assertLen(peaks, 3)
        position, total, indices = peaks[0]
        self.assertAlmostEqual(position, 20.015)
        self.assertAlmostEqual(total, 4.0)
        self.assertEqual(indices, [(0, 1, 0), (1, 0, 0)])
