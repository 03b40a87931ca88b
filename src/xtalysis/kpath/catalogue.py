"""High-symmetry points and paths for the 14 Bravais lattices.

Extended Summary
----------------
Coordinates follow the Setyawan-Curtarolo convention: fractional
coordinates in the basis of the primitive reciprocal lattice, for the
standard primitive cell of each lattice. Several lattices split into
variants whose points depend on the cell parameters.

Routine Listings
----------------
LATTICE_TYPES : tuple
    Every variant label known to the catalogue
PRIMITIVE_TRANSFORMS : dict
    Conventional-to-primitive matrices per centering
select_variant : function
    Choose the lattice variant from Bravais symbol and cell parameters
catalogue_entry : function
    Points and path branches of a lattice variant

References
----------
.. [1] W. Setyawan and S. Curtarolo, "High-throughput electronic band
   structure calculations: Challenges and tools", Comput. Mater. Sci. 49,
   299 (2010).
"""

import math

import numpy as np
from beartype import beartype
from beartype.typing import Dict, List, Mapping, Tuple

GAMMA: str = "Γ"
ANGLE_TOLERANCE: float = 1e-3
LENGTH_TOLERANCE: float = 1e-6

Point = Tuple[float, float, float]
Entry = Tuple[Dict[str, Point], List[List[str]]]

LATTICE_TYPES: Tuple[str, ...] = (
    "CUB", "FCC", "BCC", "TET", "BCT1", "BCT2", "ORC", "ORCF1", "ORCF2",
    "ORCF3", "ORCI", "ORCC", "HEX", "RHL1", "RHL2", "MCL", "MCLC1", "MCLC2",
    "MCLC3", "MCLC4", "MCLC5", "TRI1a", "TRI1b", "TRI2a", "TRI2b",
)

_THIRD = 1.0 / 3.0
PRIMITIVE_TRANSFORMS: Dict[str, np.ndarray] = {
    "P": np.eye(3),
    "F": np.array([[0.0, 0.5, 0.5], [0.5, 0.0, 0.5], [0.5, 0.5, 0.0]]),
    "I": np.array([[-0.5, 0.5, 0.5], [0.5, -0.5, 0.5], [0.5, 0.5, -0.5]]),
    "C": np.array([[0.5, -0.5, 0.0], [0.5, 0.5, 0.0], [0.0, 0.0, 1.0]]),
    "mC": np.array([[0.5, 0.5, 0.0], [-0.5, 0.5, 0.0], [0.0, 0.0, 1.0]]),
    "A": np.array([[1.0, 0.0, 0.0], [0.0, 0.5, -0.5], [0.0, 0.5, 0.5]]),
    "R": np.array(
        [
            [2 * _THIRD, _THIRD, _THIRD],
            [-_THIRD, _THIRD, _THIRD],
            [-_THIRD, -2 * _THIRD, _THIRD],
        ]
    ),
}


def _branches(path: str) -> List[List[str]]:
    return [segment.split("-") for segment in path.split("|")]


def _cubic() -> Entry:
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "M": (0.5, 0.5, 0.0),
        "R": (0.5, 0.5, 0.5),
        "X": (0.0, 0.5, 0.0),
    }
    return points, _branches("Γ-X-M-Γ-R-X|M-R")


def _fcc() -> Entry:
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "K": (3 / 8, 3 / 8, 3 / 4),
        "L": (0.5, 0.5, 0.5),
        "U": (5 / 8, 1 / 4, 5 / 8),
        "W": (0.5, 0.25, 0.75),
        "X": (0.5, 0.0, 0.5),
    }
    return points, _branches("Γ-X-W-K-Γ-L-U-W-L-K|U-X")


def _bcc() -> Entry:
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "H": (0.5, -0.5, 0.5),
        "P": (0.25, 0.25, 0.25),
        "N": (0.0, 0.0, 0.5),
    }
    return points, _branches("Γ-H-N-Γ-P-H|P-N")


def _tet() -> Entry:
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "A": (0.5, 0.5, 0.5),
        "M": (0.5, 0.5, 0.0),
        "R": (0.0, 0.5, 0.5),
        "X": (0.0, 0.5, 0.0),
        "Z": (0.0, 0.0, 0.5),
    }
    return points, _branches("Γ-X-M-Γ-Z-R-A-Z|X-R|M-A")


def _bct1(a: float, c: float) -> Entry:
    eta = (1 + c**2 / a**2) / 4
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "M": (-0.5, 0.5, 0.5),
        "N": (0.0, 0.5, 0.0),
        "P": (0.25, 0.25, 0.25),
        "X": (0.0, 0.0, 0.5),
        "Z": (eta, eta, -eta),
        "Z1": (-eta, 1 - eta, eta),
    }
    return points, _branches("Γ-X-M-Γ-Z-P-N-Z1-M|X-P")


def _bct2(a: float, c: float) -> Entry:
    eta = (1 + a**2 / c**2) / 4
    zeta = a**2 / (2 * c**2)
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "N": (0.0, 0.5, 0.0),
        "P": (0.25, 0.25, 0.25),
        "Σ": (-eta, eta, eta),
        "Σ1": (eta, 1 - eta, -eta),
        "X": (0.0, 0.0, 0.5),
        "Y": (-zeta, zeta, 0.5),
        "Y1": (0.5, 0.5, -zeta),
        "Z": (0.5, 0.5, -0.5),
    }
    return points, _branches("Γ-X-Y-Σ-Γ-Z-Σ1-N-P-Y1-Z|X-P")


def _orc() -> Entry:
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "R": (0.5, 0.5, 0.5),
        "S": (0.5, 0.5, 0.0),
        "T": (0.0, 0.5, 0.5),
        "U": (0.5, 0.0, 0.5),
        "X": (0.5, 0.0, 0.0),
        "Y": (0.0, 0.5, 0.0),
        "Z": (0.0, 0.0, 0.5),
    }
    return points, _branches("Γ-X-S-Y-Γ-Z-U-R-T-Z|Y-T|U-X|S-R")


def _orcf13(a: float, b: float, c: float, path: str) -> Entry:
    zeta = (1 + a**2 / b**2 - a**2 / c**2) / 4
    eta = (1 + a**2 / b**2 + a**2 / c**2) / 4
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "A": (0.5, 0.5 + zeta, zeta),
        "A1": (0.5, 0.5 - zeta, 1 - zeta),
        "L": (0.5, 0.5, 0.5),
        "T": (1.0, 0.5, 0.5),
        "X": (0.0, eta, eta),
        "X1": (1.0, 1 - eta, 1 - eta),
        "Y": (0.5, 0.0, 0.5),
        "Z": (0.5, 0.5, 0.0),
    }
    return points, _branches(path)


def _orcf2(a: float, b: float, c: float) -> Entry:
    eta = (1 + a**2 / b**2 - a**2 / c**2) / 4
    phi = (1 + c**2 / b**2 - c**2 / a**2) / 4
    delta = (1 + b**2 / a**2 - b**2 / c**2) / 4
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "C": (0.5, 0.5 - eta, 1 - eta),
        "C1": (0.5, 0.5 + eta, eta),
        "D": (0.5 - delta, 0.5, 1 - delta),
        "D1": (0.5 + delta, 0.5, delta),
        "L": (0.5, 0.5, 0.5),
        "H": (1 - phi, 0.5 - phi, 0.5),
        "H1": (phi, 0.5 + phi, 0.5),
        "X": (0.0, 0.5, 0.5),
        "Y": (0.5, 0.0, 0.5),
        "Z": (0.5, 0.5, 0.0),
    }
    return points, _branches("Γ-Y-C-D-X-Γ-Z-D1-H-C|C1-Z|X-H1|H-Y|L-Γ")


def _orci(a: float, b: float, c: float) -> Entry:
    zeta = (1 + a**2 / c**2) / 4
    eta = (1 + b**2 / c**2) / 4
    delta = (b**2 - a**2) / (4 * c**2)
    mu = (a**2 + b**2) / (4 * c**2)
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "L": (-mu, mu, 0.5 - delta),
        "L1": (mu, -mu, 0.5 + delta),
        "L2": (0.5 - delta, 0.5 + delta, -mu),
        "R": (0.0, 0.5, 0.0),
        "S": (0.5, 0.0, 0.0),
        "T": (0.0, 0.0, 0.5),
        "W": (0.25, 0.25, 0.25),
        "X": (-zeta, zeta, zeta),
        "X1": (zeta, 1 - zeta, -zeta),
        "Y": (eta, -eta, eta),
        "Y1": (1 - eta, eta, -eta),
        "Z": (0.5, 0.5, -0.5),
    }
    return points, _branches("Γ-X-L-T-W-R-X1-Z-Γ-Y-S-W|L1-Y|Y1-Z")


def _orcc(a: float, b: float) -> Entry:
    zeta = (1 + a**2 / b**2) / 4
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "A": (zeta, zeta, 0.5),
        "A1": (-zeta, 1 - zeta, 0.5),
        "R": (0.0, 0.5, 0.5),
        "S": (0.0, 0.5, 0.0),
        "T": (-0.5, 0.5, 0.5),
        "X": (zeta, zeta, 0.0),
        "X1": (-zeta, 1 - zeta, 0.0),
        "Y": (-0.5, 0.5, 0.0),
        "Z": (0.0, 0.0, 0.5),
    }
    return points, _branches("Γ-X-S-R-A-Z-Γ-Y-X1-A1-T-Y|Z-T")


def _hex() -> Entry:
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "A": (0.0, 0.0, 0.5),
        "H": (_THIRD, _THIRD, 0.5),
        "K": (_THIRD, _THIRD, 0.0),
        "L": (0.5, 0.0, 0.5),
        "M": (0.5, 0.0, 0.0),
    }
    return points, _branches("Γ-M-K-Γ-A-L-H-A|L-M|K-H")


def _rhl1(alpha: float) -> Entry:
    cos_a = math.cos(alpha)
    eta = (1 + 4 * cos_a) / (2 + 4 * cos_a)
    nu = 0.75 - eta / 2
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "B": (eta, 0.5, 1 - eta),
        "B1": (0.5, 1 - eta, eta - 1),
        "F": (0.5, 0.5, 0.0),
        "L": (0.5, 0.0, 0.0),
        "L1": (0.0, 0.0, -0.5),
        "P": (eta, nu, nu),
        "P1": (1 - nu, 1 - nu, 1 - eta),
        "P2": (nu, nu, eta - 1),
        "Q": (1 - nu, nu, 0.0),
        "X": (nu, 0.0, -nu),
        "Z": (0.5, 0.5, 0.5),
    }
    return points, _branches("Γ-L-B1|B-Z-Γ-X|Q-F-P1-Z|L-P")


def _rhl2(alpha: float) -> Entry:
    eta = 1 / (2 * math.tan(alpha / 2) ** 2)
    nu = 0.75 - eta / 2
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "F": (0.5, -0.5, 0.0),
        "L": (0.5, 0.0, 0.0),
        "P": (1 - nu, -nu, 1 - nu),
        "P1": (nu, nu - 1, nu - 1),
        "Q": (eta, eta, eta),
        "Q1": (1 - eta, -eta, -eta),
        "Z": (0.5, -0.5, 0.5),
    }
    return points, _branches("Γ-P-Z-Q-Γ-F-P1-Q1-L-Z")


def _mcl(b: float, c: float, alpha: float) -> Entry:
    eta = (1 - b * math.cos(alpha) / c) / (2 * math.sin(alpha) ** 2)
    nu = 0.5 - eta * c * math.cos(alpha) / b
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "A": (0.5, 0.5, 0.0),
        "C": (0.0, 0.5, 0.5),
        "D": (0.5, 0.0, 0.5),
        "D1": (0.5, 0.0, -0.5),
        "E": (0.5, 0.5, 0.5),
        "H": (0.0, eta, 1 - nu),
        "H1": (0.0, 1 - eta, nu),
        "H2": (0.0, eta, -nu),
        "M": (0.5, eta, 1 - nu),
        "M1": (0.5, 1 - eta, nu),
        "M2": (0.5, eta, -nu),
        "X": (0.0, 0.5, 0.0),
        "Y": (0.0, 0.0, 0.5),
        "Y1": (0.0, 0.0, -0.5),
        "Z": (0.5, 0.0, 0.0),
    }
    return points, _branches("Γ-Y-H-C-E-M1-A-X-H1|M-D-Z|Y-D")


def _mclc12(a: float, b: float, c: float, alpha: float, variant: int) -> Entry:
    sin_sq = math.sin(alpha) ** 2
    cos_a = math.cos(alpha)
    zeta = (2 - b * cos_a / c) / (4 * sin_sq)
    eta = 0.5 + 2 * zeta * c * cos_a / b
    psi = 0.75 - a**2 / (4 * b**2 * sin_sq)
    phi = psi + (0.75 - psi) * b * cos_a / c
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "N": (0.5, 0.0, 0.0),
        "N1": (0.0, -0.5, 0.0),
        "F": (1 - zeta, 1 - zeta, 1 - eta),
        "F1": (zeta, zeta, eta),
        "F2": (-zeta, -zeta, 1 - eta),
        "I": (phi, 1 - phi, 0.5),
        "I1": (1 - phi, phi - 1, 0.5),
        "L": (0.5, 0.5, 0.5),
        "M": (0.5, 0.0, 0.5),
        "X": (1 - psi, psi - 1, 0.0),
        "X1": (psi, 1 - psi, 0.0),
        "X2": (psi - 1, -psi, 0.0),
        "Y": (0.5, 0.5, 0.0),
        "Y1": (-0.5, -0.5, 0.0),
        "Z": (0.0, 0.0, 0.5),
    }
    if variant == 1:
        return points, _branches("Γ-Y-F-L-I|I1-Z-F1|Y-X1|X-Γ-N|M-Γ")
    del points["X1"], points["X2"]
    return points, _branches("Γ-Y-F-L-I|I1-Z-F1|N-Γ-M")


def _mclc34(a: float, b: float, c: float, alpha: float, variant: int) -> Entry:
    sin_sq = math.sin(alpha) ** 2
    cos_a = math.cos(alpha)
    mu = (1 + b**2 / a**2) / 4
    delta = b * c * cos_a / (2 * a**2)
    zeta = mu - 0.25 + (1 - b * cos_a / c) / (4 * sin_sq)
    eta = 0.5 + 2 * zeta * c * cos_a / b
    phi = 1 + zeta - 2 * mu
    psi = eta - 2 * delta
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "F": (1 - phi, 1 - phi, 1 - psi),
        "F1": (phi, phi - 1, psi),
        "F2": (1 - phi, -phi, 1 - psi),
        "H": (zeta, zeta, eta),
        "H1": (1 - zeta, -zeta, 1 - eta),
        "H2": (-zeta, -zeta, 1 - eta),
        "I": (0.5, -0.5, 0.5),
        "M": (0.5, 0.0, 0.5),
        "N": (0.5, 0.0, 0.0),
        "N1": (0.0, -0.5, 0.0),
        "X": (0.5, -0.5, 0.0),
        "Y": (mu, mu, delta),
        "Y1": (1 - mu, -mu, -delta),
        "Y2": (-mu, -mu, -delta),
        "Y3": (mu, mu - 1, delta),
        "Z": (0.0, 0.0, 0.5),
    }
    if variant == 3:
        return points, _branches("Γ-Y-F-H-Z-I-F1|H1-Y1-X-Γ-N|M-Γ")
    return points, _branches("Γ-Y-F-H-Z-I|H1-Y1-X-Γ-N|M-Γ")


def _mclc5(a: float, b: float, c: float, alpha: float) -> Entry:
    sin_sq = math.sin(alpha) ** 2
    cos_a = math.cos(alpha)
    zeta = (b**2 / a**2 + (1 - b * cos_a / c) / sin_sq) / 4
    eta = 0.5 + 2 * zeta * c * cos_a / b
    mu = eta / 2 + b**2 / (4 * a**2) - b * c * cos_a / (2 * a**2)
    nu = 2 * mu - zeta
    rho = 1 - zeta * a**2 / b**2
    omega = (4 * nu - 1 - b**2 * sin_sq / a**2) * c / (2 * b * cos_a)
    delta = zeta * c * cos_a / b + omega / 2 - 0.25
    points = {
        GAMMA: (0.0, 0.0, 0.0),
        "F": (nu, nu, omega),
        "F1": (1 - nu, 1 - nu, 1 - omega),
        "F2": (nu, nu - 1, omega),
        "H": (zeta, zeta, eta),
        "H1": (1 - zeta, -zeta, 1 - eta),
        "H2": (-zeta, -zeta, 1 - eta),
        "I": (rho, 1 - rho, 0.5),
        "I1": (1 - rho, rho - 1, 0.5),
        "L": (0.5, 0.5, 0.5),
        "M": (0.5, 0.0, 0.5),
        "N": (0.5, 0.0, 0.0),
        "N1": (0.0, -0.5, 0.0),
        "X": (0.5, -0.5, 0.0),
        "Y": (mu, mu, delta),
        "Y1": (1 - mu, -mu, -delta),
        "Y2": (-mu, -mu, -delta),
        "Y3": (mu, mu - 1, delta),
        "Z": (0.0, 0.0, 0.5),
    }
    return points, _branches("Γ-Y-F-L-I|I1-Z-H-F1|H1-Y1-X-Γ-N|M-Γ")


def _tri(obtuse: bool) -> Entry:
    if obtuse:
        points = {
            GAMMA: (0.0, 0.0, 0.0),
            "L": (0.5, 0.5, 0.0),
            "M": (0.0, 0.5, 0.5),
            "N": (0.5, 0.0, 0.5),
            "R": (0.5, 0.5, 0.5),
            "X": (0.5, 0.0, 0.0),
            "Y": (0.0, 0.5, 0.0),
            "Z": (0.0, 0.0, 0.5),
        }
    else:
        points = {
            GAMMA: (0.0, 0.0, 0.0),
            "L": (0.5, -0.5, 0.0),
            "M": (0.0, 0.0, 0.5),
            "N": (-0.5, -0.5, 0.5),
            "R": (0.0, -0.5, 0.5),
            "X": (0.0, -0.5, 0.0),
            "Y": (0.5, 0.0, 0.0),
            "Z": (-0.5, 0.0, 0.5),
        }
    return points, _branches("X-Γ-Y|L-Γ-Z|N-Γ-M|R-Γ")


@beartype
def select_variant(
    bravais: str,
    conventional: Mapping[str, float],
    primitive_alpha: float,
    reciprocal_angles: Tuple[float, float, float],
) -> str:
    """Lattice variant label for a Bravais lattice.

    Parameters
    ----------
    bravais : str
        Pearson-style symbol such as ``"tI"`` or ``"mC"``.
    conventional : Mapping[str, float]
        Conventional cell lengths ``a``, ``b``, ``c`` (Å) and angle
        ``alpha`` (degrees).
    primitive_alpha : float
        Angle α of the primitive cell in degrees; used for ``hR``.
    reciprocal_angles : Tuple[float, float, float]
        Angles of the primitive reciprocal lattice in degrees; used for
        ``mC`` and ``aP``.

    Returns
    -------
    str
        One of :data:`LATTICE_TYPES`.

    Raises
    ------
    ValueError
        If the Bravais symbol is unknown.
    """
    a, b, c = conventional["a"], conventional["b"], conventional["c"]
    k_alpha, k_beta, k_gamma = reciprocal_angles
    simple = {"cP": "CUB", "cF": "FCC", "cI": "BCC", "tP": "TET", "oP": "ORC",
              "oI": "ORCI", "oC": "ORCC", "hP": "HEX", "mP": "MCL"}
    if bravais in simple:
        return simple[bravais]
    if bravais == "tI":
        return "BCT1" if c < a else "BCT2"
    if bravais == "oF":
        lhs, rhs = 1 / a**2, 1 / b**2 + 1 / c**2
        if abs(lhs - rhs) < LENGTH_TOLERANCE * lhs:
            return "ORCF3"
        return "ORCF1" if lhs > rhs else "ORCF2"
    if bravais == "hR":
        return "RHL1" if primitive_alpha < 90.0 else "RHL2"
    if bravais == "mC":
        if abs(k_gamma - 90.0) < ANGLE_TOLERANCE:
            return "MCLC2"
        if k_gamma > 90.0:
            return "MCLC1"
        alpha = math.radians(conventional["alpha"])
        ratio = b * math.cos(alpha) / c + b**2 * math.sin(alpha) ** 2 / a**2
        if abs(ratio - 1.0) < LENGTH_TOLERANCE:
            return "MCLC4"
        return "MCLC3" if ratio < 1.0 else "MCLC5"
    if bravais == "aP":
        if all(angle > 90.0 for angle in reciprocal_angles):
            return "TRI1a"
        if all(angle < 90.0 for angle in reciprocal_angles):
            return "TRI1b"
        if abs(k_gamma - 90.0) < ANGLE_TOLERANCE:
            return "TRI2a" if k_alpha > 90.0 else "TRI2b"
        return "TRI1a" if k_gamma > 90.0 else "TRI1b"
    raise ValueError(f"Unknown Bravais lattice '{bravais}'")


@beartype
def catalogue_entry(
    lattice_type: str,
    conventional: Mapping[str, float],
    primitive_alpha: float = 90.0,
) -> Tuple[Dict[str, Point], List[List[str]]]:
    """High-symmetry points and path branches of a lattice variant.

    Parameters
    ----------
    lattice_type : str
        One of :data:`LATTICE_TYPES`.
    conventional : Mapping[str, float]
        Conventional lengths ``a``, ``b``, ``c`` and angle ``alpha`` in
        degrees.
    primitive_alpha : float, optional
        Primitive rhombohedral angle in degrees, for RHL1 and RHL2.

    Returns
    -------
    Tuple[Dict[str, Point], List[List[str]]]
        Label to fractional reciprocal coordinates, and the continuous
        runs of the path.
    """
    a, b, c = conventional["a"], conventional["b"], conventional["c"]
    alpha = math.radians(conventional.get("alpha", 90.0))
    builders = {
        "CUB": _cubic,
        "FCC": _fcc,
        "BCC": _bcc,
        "TET": _tet,
        "BCT1": lambda: _bct1(a, c),
        "BCT2": lambda: _bct2(a, c),
        "ORC": _orc,
        "ORCF1": lambda: _orcf13(a, b, c, "Γ-Y-T-Z-Γ-X-A1-Y|T-X1|X-A-Z|L-Γ"),
        "ORCF2": lambda: _orcf2(a, b, c),
        "ORCF3": lambda: _orcf13(a, b, c, "Γ-Y-T-Z-Γ-X-A1-Y|X-A-Z|L-Γ"),
        "ORCI": lambda: _orci(a, b, c),
        "ORCC": lambda: _orcc(a, b),
        "HEX": _hex,
        "RHL1": lambda: _rhl1(math.radians(primitive_alpha)),
        "RHL2": lambda: _rhl2(math.radians(primitive_alpha)),
        "MCL": lambda: _mcl(b, c, alpha),
        "MCLC1": lambda: _mclc12(a, b, c, alpha, 1),
        "MCLC2": lambda: _mclc12(a, b, c, alpha, 2),
        "MCLC3": lambda: _mclc34(a, b, c, alpha, 3),
        "MCLC4": lambda: _mclc34(a, b, c, alpha, 4),
        "MCLC5": lambda: _mclc5(a, b, c, alpha),
        "TRI1a": lambda: _tri(obtuse=True),
        "TRI2a": lambda: _tri(obtuse=True),
        "TRI1b": lambda: _tri(obtuse=False),
        "TRI2b": lambda: _tri(obtuse=False),
    }
    if lattice_type not in builders:
        raise ValueError(f"Unknown lattice type '{lattice_type}'")
    return builders[lattice_type]()
