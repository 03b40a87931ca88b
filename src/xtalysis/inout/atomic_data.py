"""Static per-element data: atomic numbers, scattering factors and radii.

Extended Summary
----------------
The element table ships as ``xtalysis/data/elements.json`` and covers
hydrogen through lawrencium. Each entry holds the atomic number, the nine
Cromer-Mann X-ray scattering coefficients ``a1 b1 a2 b2 a3 b3 a4 b4 c``
and covalent, ionic and van der Waals radii in angstroms. The file is read
once and cached.

Routine Listings
----------------
load_element_table : function
    Load and cache the element table from JSON
element_symbol : function
    Normalise a species label such as "fe2+" or "O1" to an element symbol
atomic_number : function
    Atomic number of an element, 0 when unknown
cromer_mann_coefficients : function
    Stacked Cromer-Mann coefficients for a list of species
atomic_radius : function
    Radius of one element from the chosen radius set
atomic_radii : function
    Radii for a list of species with optional overrides

Notes
-----
Labels that do not resolve to a known element fall back to
``UNKNOWN_ELEMENT``: carbon-like scattering, covalent radius 1.5 Å,
van der Waals radius 2.0 Å.
"""

import functools
import json
import logging
import re
from pathlib import Path

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Any, Dict, Mapping, Optional, Sequence
from jaxtyping import Array, Float, jaxtyped

from xtalysis.types import scalar_float

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)

DEFAULT_ELEMENTS_PATH: Path = (
    Path(__file__).resolve().parents[1] / "data" / "elements.json"
)
RADIUS_SETS: tuple = ("covalent", "ionic", "vdw")
UNKNOWN_ELEMENT: Dict[str, Any] = {
    "Z": 0,
    "cromer_mann": [
        2.31, 20.8439, 1.02, 10.2075, 1.5886, 0.5687, 0.865, 51.6512, 0.2156
    ],
    "covalent": 1.50,
    "ionic": 0.00,
    "vdw": 2.00,
}

_LABEL_PATTERN = re.compile(r"^([A-Za-z]{1,2})")


@functools.lru_cache(maxsize=None)
def load_element_table(path: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
    """Load the element table from a JSON file.

    Parameters
    ----------
    path : str, optional
        Path to the element JSON file. Defaults to the bundled
        ``data/elements.json``.

    Returns
    -------
    Dict[str, Dict[str, Any]]
        Element symbol to record mapping.
    """
    table_path = Path(path) if path is not None else DEFAULT_ELEMENTS_PATH
    with open(table_path, "r", encoding="utf-8") as f:
        table = json.load(f)
    logger.debug("Loaded %d elements from %s", len(table), table_path)
    return table


@beartype
def element_symbol(label: str) -> str:
    """Normalise a species label to an element symbol.

    Site labels such as ``"O1"``, oxidation states such as ``"Fe2+"`` and
    lower-case input are reduced to the capitalised symbol. Two-letter
    prefixes are preferred when they name a real element, so ``"Ca1"`` is
    calcium rather than carbon.

    Examples
    --------
    >>> element_symbol("fe3+")
    'Fe'
    >>> element_symbol("O2")
    'O'
    """
    match = _LABEL_PATTERN.match(label.strip())
    if match is None:
        return label.strip()
    letters = match.group(1)
    table = load_element_table()
    two = letters[0].upper() + letters[1:].lower()
    if len(two) == 2 and two in table:
        return two
    return letters[0].upper()


def _record(label: str) -> Dict[str, Any]:
    symbol = element_symbol(label)
    record = load_element_table().get(symbol)
    if record is None:
        logger.debug("Unknown element '%s', using default parameters", label)
        return UNKNOWN_ELEMENT
    return record


@beartype
def atomic_number(label: str) -> int:
    """Atomic number of a species label, 0 for an unknown element."""
    return int(_record(label)["Z"])


@jaxtyped(typechecker=beartype)
def cromer_mann_coefficients(species: Sequence[str]) -> Float[Array, "N 9"]:
    """Cromer-Mann coefficients for every species.

    Parameters
    ----------
    species : Sequence[str]
        Species labels.

    Returns
    -------
    Float[Array, "N 9"]
        Rows ``a1 b1 a2 b2 a3 b3 a4 b4 c`` such that
        ``f(s) = Σ a_i exp(-b_i s²) + c`` with ``s = sin θ / λ``.
    """
    rows = [_record(label)["cromer_mann"] for label in species]
    return jnp.asarray(rows, dtype=jnp.float64).reshape(-1, 9)


@beartype
def atomic_radius(label: str, radius_set: str = "vdw") -> float:
    """Radius of an element in angstroms.

    Parameters
    ----------
    label : str
        Species label.
    radius_set : str, optional
        ``"vdw"``, ``"covalent"`` or ``"ionic"``. Default is ``"vdw"``.

    Raises
    ------
    ValueError
        If the radius set is unknown.
    """
    if radius_set not in RADIUS_SETS:
        raise ValueError(
            f"Unknown radius set '{radius_set}', expected one of {RADIUS_SETS}"
        )
    return float(_record(label)[radius_set])


@jaxtyped(typechecker=beartype)
def atomic_radii(
    species: Sequence[str],
    radius_set: str = "vdw",
    overrides: Optional[Mapping[str, float]] = None,
    scale: scalar_float = 1.0,
) -> Float[Array, "N"]:
    """Radii for a list of species.

    Parameters
    ----------
    species : Sequence[str]
        Species labels.
    radius_set : str, optional
        Radius table to read. Default is ``"vdw"``.
    overrides : Mapping[str, float], optional
        Radius per label or element symbol, taking precedence over the
        table. The exact label is tried before its element symbol.
    scale : scalar_float, optional
        Factor applied to every radius, overrides included. Default 1.0.

    Returns
    -------
    Float[Array, "N"]
        Scaled radii in angstroms.
    """
    overrides = dict(overrides or {})
    radii = []
    for label in species:
        if label in overrides:
            radius = float(overrides[label])
        elif element_symbol(label) in overrides:
            radius = float(overrides[element_symbol(label)])
        else:
            radius = atomic_radius(label, radius_set)
        radii.append(radius * float(scale))
    return jnp.asarray(radii, dtype=jnp.float64).reshape(-1)
