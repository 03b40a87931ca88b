"""Kinematic X-ray powder diffraction.

Extended Summary
----------------
Simulates a powder pattern from a crystal structure: enumerate the
reciprocal lattice points inside the limiting sphere, compute structure
factors with Cromer-Mann atomic form factors, apply the Lorentz-
polarization factor and merge reflections that overlap in 2θ.

Routine Listings
----------------
hkl_bounds : function
    Largest |h|, |k|, |l| reaching a minimum d-spacing
generate_hkl_grid : function
    All non-zero Miller indices inside the hkl bounds
atomic_form_factors : function
    Cromer-Mann form factors of every atom at given s = sin θ / λ
structure_factor_intensity : function
    |F(hkl)|² for a block of reflections
lorentz_polarization : function
    Powder Lorentz-polarization factor
merge_reflections : function
    Sort by 2θ and merge reflections closer than a tolerance
simulate_powder_pattern : function
    Complete powder pattern of a structure

Notes
-----
Reciprocal vectors carry the 2π factor, so ``d = 2π / |G|`` and
``sin θ = λ |G| / 4π``.
"""

import logging
import math

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import List, Optional, Tuple
from jaxtyping import Array, Bool, Complex, Float, Int, jaxtyped

from xtalysis.config import (
    DEFAULT_DEBYE_WALLER_B,
    DEFAULT_INTENSITY_CUTOFF,
    DEFAULT_MERGE_TOLERANCE,
    DEFAULT_TWO_THETA_RANGE,
    DEFAULT_WAVELENGTH,
    MAX_REFLECTIONS,
)
from xtalysis.inout import cromer_mann_coefficients
from xtalysis.types import (
    CancelToken,
    ComputeTimeout,
    CrystalStructure,
    DiffractionPattern,
    check_cancelled,
    create_diffraction_pattern,
    scalar_float,
)
from xtalysis.ucell import check_lattice, reciprocal_lattice

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)

LP_EPSILON: float = 1e-6
BLOCK_SIZE: int = 4096


@jaxtyped(typechecker=beartype)
def hkl_bounds(
    lattice: Float[Array, "3 3"], d_min: scalar_float
) -> Tuple[int, int, int]:
    """Largest Miller index along each axis for planes with d ≥ d_min.

    Since ``h = G · a_1 / 2π`` and ``|G| ≤ 2π / d_min``, every reflection
    with d ≥ d_min has ``|h| ≤ |a_1| / d_min``.
    """
    lengths = np.linalg.norm(np.asarray(lattice), axis=1)
    return tuple(int(math.ceil(length / float(d_min))) for length in lengths)


@jaxtyped(typechecker=beartype)
def generate_hkl_grid(bounds: Tuple[int, int, int]) -> Int[Array, "K 3"]:
    """All non-zero (h, k, l) with ``|h| ≤ bounds[0]`` and so on."""
    axes = [np.arange(-n, n + 1) for n in bounds]
    grid = np.stack(np.meshgrid(*axes, indexing="ij"), axis=-1).reshape(-1, 3)
    grid = grid[np.any(grid != 0, axis=1)]
    return jnp.asarray(grid, dtype=jnp.int64)


@jaxtyped(typechecker=beartype)
def atomic_form_factors(
    coefficients: Float[Array, "N 9"],
    s: Float[Array, "K"],
) -> Float[Array, "K N"]:
    """Cromer-Mann form factors ``f(s) = Σ a_i exp(-b_i s²) + c``.

    Parameters
    ----------
    coefficients : Float[Array, "N 9"]
        Rows ``a1 b1 a2 b2 a3 b3 a4 b4 c`` for N atoms.
    s : Float[Array, "K"]
        ``sin θ / λ`` in inverse angstroms for K reflections.

    Returns
    -------
    Float[Array, "K N"]
        Form factor of each atom at each reflection.
    """
    a_coeffs: Float[Array, "N 4"] = coefficients[:, 0:8:2]
    b_coeffs: Float[Array, "N 4"] = coefficients[:, 1:8:2]
    s_sq: Float[Array, "K 1 1"] = (s**2)[:, None, None]
    gaussian: Float[Array, "K N 4"] = a_coeffs * jnp.exp(-b_coeffs * s_sq)
    return jnp.sum(gaussian, axis=-1) + coefficients[:, 8]


@jaxtyped(typechecker=beartype)
def structure_factor_intensity(
    hkl: Float[Array, "K 3"],
    frac_positions: Float[Array, "N 3"],
    form_factors: Float[Array, "K N"],
) -> Float[Array, "K"]:
    """Squared structure-factor magnitude ``|Σ_j f_j exp(2πi h·x_j)|²``."""
    phases: Float[Array, "K N"] = 2.0 * jnp.pi * (hkl @ frac_positions.T)
    structure_factor: Complex[Array, "K"] = jnp.sum(
        form_factors * jnp.exp(1j * phases), axis=1
    )
    return jnp.abs(structure_factor) ** 2


@jaxtyped(typechecker=beartype)
def lorentz_polarization(theta: Float[Array, "K"]) -> Float[Array, "K"]:
    """Powder Lorentz-polarization factor.

    ``LP = (1 + cos² 2θ) / (sin² θ cos θ)``, returned as 0 wherever
    ``sin² θ`` or ``cos θ`` falls below ``LP_EPSILON``.
    """
    sin_sq: Float[Array, "K"] = jnp.sin(theta) ** 2
    cos_theta: Float[Array, "K"] = jnp.cos(theta)
    valid: Bool[Array, "K"] = (sin_sq >= LP_EPSILON) & (cos_theta >= LP_EPSILON)
    safe = jnp.where(valid, sin_sq * cos_theta, 1.0)
    return jnp.where(valid, (1.0 + jnp.cos(2.0 * theta) ** 2) / safe, 0.0)


@jaxtyped(typechecker=beartype)
def merge_reflections(
    two_theta: Float[np.ndarray, "K"],
    intensities: Float[np.ndarray, "K"],
    hkl: Int[np.ndarray, "K 3"],
    tolerance: float,
) -> List[Tuple[float, float, List[Tuple[int, int, int]]]]:
    """Merge reflections that overlap in 2θ.

    Parameters
    ----------
    two_theta, intensities : Float[np.ndarray, "K"]
        Reflection positions in degrees and raw intensities.
    hkl : Int[np.ndarray, "K 3"]
        Miller indices of each reflection.
    tolerance : float
        Merge distance in degrees.

    Returns
    -------
    List[Tuple[float, float, List[Tuple[int, int, int]]]]
        Per peak: intensity-weighted 2θ, summed intensity and the sorted
        contributing indices, ordered by 2θ.

    Notes
    -----
    Single linkage: a sorted reflection joins the current peak when it is
    within ``tolerance`` of the previous reflection. Peak positions stay
    inside the span of their members, so neighbouring peaks are always at
    least ``tolerance`` apart.
    """
    order = np.lexsort((hkl[:, 2], hkl[:, 1], hkl[:, 0], two_theta))
    peaks = []
    members: List[int] = []
    for idx in order:
        if members and two_theta[idx] - two_theta[members[-1]] >= tolerance:
            peaks.append(members)
            members = []
        members.append(int(idx))
    if members:
        peaks.append(members)
    merged = []
    for group in peaks:
        weights = intensities[group]
        total = float(np.sum(weights))
        position = float(np.sum(weights * two_theta[group]) / total)
        indices = sorted(tuple(int(i) for i in hkl[j]) for j in group)
        merged.append((position, total, indices))
    return merged


@jaxtyped(typechecker=beartype)
def simulate_powder_pattern(
    structure: CrystalStructure,
    wavelength: scalar_float = DEFAULT_WAVELENGTH,
    two_theta_range: Tuple[scalar_float, scalar_float] = DEFAULT_TWO_THETA_RANGE,
    merge_tolerance: scalar_float = DEFAULT_MERGE_TOLERANCE,
    intensity_cutoff: scalar_float = DEFAULT_INTENSITY_CUTOFF,
    debye_waller_b: scalar_float = DEFAULT_DEBYE_WALLER_B,
    max_reflections: int = MAX_REFLECTIONS,
    cancel: Optional[CancelToken] = None,
) -> DiffractionPattern:
    """Simulate the X-ray powder pattern of a structure.

    Parameters
    ----------
    structure : CrystalStructure
        Structure to simulate. An empty structure gives an empty pattern.
    wavelength : scalar_float, optional
        X-ray wavelength in angstroms. Default 1.5406 (Cu Kα1).
    two_theta_range : Tuple[scalar_float, scalar_float], optional
        Inclusive 2θ window in degrees. Default (10, 90).
    merge_tolerance : scalar_float, optional
        Reflections closer than this in 2θ are one peak. Default 0.05°.
    intensity_cutoff : scalar_float, optional
        Peaks weaker than this fraction of the strongest are dropped.
        Default 1e-4.
    debye_waller_b : scalar_float, optional
        Isotropic B factor in Å²; scales F by ``exp(-B s²)``. Default 0.
    max_reflections : int, optional
        Upper bound on enumerated (h, k, l).
    cancel : CancelToken, optional
        Checked once per block of reflections.

    Returns
    -------
    DiffractionPattern
        Peaks in ascending 2θ with intensities scaled to 0-100.

    Raises
    ------
    ValueError
        If the wavelength, range or tolerances are not positive.
    ComputeTimeout
        If the reflection count exceeds ``max_reflections``.
    Cancelled
        If ``cancel`` is set during the computation.

    Notes
    -----
    Algorithm:

    - d_min = λ / (2 sin θ_max) bounds |h|, |k|, |l|
    - For each (h, k, l): G = h·B, d = 2π/|G|, sin θ = λ / 2d; reflections
      with sin θ > 1 or 2θ outside the window are dropped
    - I = |F|² · LP with ``s = sin θ / λ`` in the form factors
    - Reflections below the cutoff are dropped before merging so that
      extinct indices are not listed on real peaks
    - Merge, normalise to 100 and drop peaks below the cutoff

    Examples
    --------
    >>> import jax.numpy as jnp
    >>> from xtalysis.types import create_crystal_structure
    >>> from xtalysis.simul import simulate_powder_pattern
    >>> cubic = create_crystal_structure(
    ...     4.0 * jnp.eye(3), jnp.zeros((1, 3)), ["X"]
    ... )
    >>> pattern = simulate_powder_pattern(cubic)
    >>> round(float(pattern.two_theta[0]), 2)
    22.21
    """
    wavelength = float(wavelength)
    tt_min, tt_max = (float(v) for v in two_theta_range)
    if wavelength <= 0.0:
        raise ValueError(f"Wavelength must be positive, got {wavelength}")
    if not 0.0 <= tt_min < tt_max <= 180.0:
        raise ValueError(f"Invalid 2θ range {two_theta_range}")
    if float(merge_tolerance) <= 0.0:
        raise ValueError("Merge tolerance must be positive")
    if not 0.0 <= float(intensity_cutoff) < 1.0:
        raise ValueError("Intensity cutoff must lie in [0, 1)")
    check_lattice(structure.lattice)
    empty = create_diffraction_pattern(
        two_theta=jnp.zeros(0),
        intensities=jnp.zeros(0),
        d_spacings=jnp.zeros(0),
        multiplicities=jnp.zeros(0, dtype=jnp.int64),
        hkls=(),
        wavelength=wavelength,
    )
    if structure.n_atoms == 0:
        return empty

    d_min = wavelength / (2.0 * math.sin(math.radians(tt_max / 2.0)))
    bounds = hkl_bounds(structure.lattice, d_min)
    n_candidates = int(np.prod([2 * n + 1 for n in bounds])) - 1
    if n_candidates > max_reflections:
        raise ComputeTimeout(
            f"{n_candidates} reflections exceed the budget of {max_reflections}"
        )
    logger.debug("Enumerating %d reflections, bounds %s", n_candidates, bounds)

    recip = reciprocal_lattice(structure.lattice)
    coefficients = cromer_mann_coefficients(structure.species)
    hkl_all = generate_hkl_grid(bounds)
    kept_hkl, kept_tt, kept_intensity = [], [], []
    for start in range(0, hkl_all.shape[0], BLOCK_SIZE):
        check_cancelled(cancel)
        hkl = hkl_all[start : start + BLOCK_SIZE]
        g_norm = jnp.linalg.norm(hkl.astype(jnp.float64) @ recip, axis=1)
        sin_theta = wavelength * g_norm / (4.0 * jnp.pi)
        in_sphere = sin_theta <= 1.0
        theta = jnp.arcsin(jnp.clip(sin_theta, 0.0, 1.0))
        two_theta = jnp.degrees(2.0 * theta)
        window = in_sphere & (two_theta >= tt_min) & (two_theta <= tt_max)
        s = sin_theta / wavelength
        form_factors = atomic_form_factors(coefficients, s)
        intensity = structure_factor_intensity(
            hkl.astype(jnp.float64), structure.frac_positions, form_factors
        )
        intensity = intensity * jnp.exp(-2.0 * float(debye_waller_b) * s**2)
        intensity = intensity * lorentz_polarization(theta)
        keep = np.asarray(window & (intensity > 0.0))
        kept_hkl.append(np.asarray(hkl)[keep])
        kept_tt.append(np.asarray(two_theta)[keep])
        kept_intensity.append(np.asarray(intensity)[keep])

    hkl_np = np.concatenate(kept_hkl)
    tt_np = np.concatenate(kept_tt)
    intensity_np = np.concatenate(kept_intensity)
    if intensity_np.size == 0:
        return empty
    strong = intensity_np > float(intensity_cutoff) * intensity_np.max()
    peaks = merge_reflections(
        tt_np[strong], intensity_np[strong], hkl_np[strong], float(merge_tolerance)
    )
    top = max(total for _, total, _ in peaks)
    peaks = [
        (position, 100.0 * total / top, indices)
        for position, total, indices in peaks
        if total / top >= float(intensity_cutoff)
    ]
    positions = np.array([p[0] for p in peaks])
    d_spacings = wavelength / (2.0 * np.sin(np.radians(positions / 2.0)))
    logger.debug("Merged %d reflections into %d peaks", int(strong.sum()), len(peaks))
    return create_diffraction_pattern(
        two_theta=jnp.asarray(positions, dtype=jnp.float64),
        intensities=jnp.asarray([p[1] for p in peaks], dtype=jnp.float64),
        d_spacings=jnp.asarray(d_spacings, dtype=jnp.float64),
        multiplicities=jnp.asarray([len(p[2]) for p in peaks], dtype=jnp.int64),
        hkls=[p[2] for p in peaks],
        wavelength=wavelength,
    )
