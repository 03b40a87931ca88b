"""Brillouin-zone wireframes.

Extended Summary
----------------
The first Brillouin zone is the Wigner-Seitz cell of the reciprocal
lattice: the Voronoi region of the origin among all reciprocal lattice
points. Its faces are the Voronoi ridges shared between the origin and a
neighbouring point; the wireframe is the set of edges of those faces.

Routine Listings
----------------
reciprocal_points : function
    Reciprocal lattice points of an integer cube
wigner_seitz_wireframe : function
    Vertices and edges of the first Brillouin zone
placeholder_wireframe : function
    Parallelepiped spanning ±½ of the reciprocal basis
"""

import itertools

import numpy as np
from beartype import beartype
from beartype.typing import Dict, List, Set, Tuple
from jaxtyping import Float, Int, jaxtyped
from scipy.spatial import Voronoi

VERTEX_DECIMALS: int = 8


@jaxtyped(typechecker=beartype)
def reciprocal_points(
    basis: Float[np.ndarray, "3 3"], nrange: int = 2
) -> Float[np.ndarray, "P 3"]:
    """Reciprocal lattice points ``i b1 + j b2 + k b3`` for |i|, |j|, |k| ≤ nrange."""
    span = range(-nrange, nrange + 1)
    indices = np.array(list(itertools.product(span, span, span)), dtype=float)
    return indices @ basis


def _ordered_face(vertices: np.ndarray, normal: np.ndarray) -> np.ndarray:
    center = vertices.mean(axis=0)
    axis_u = vertices[0] - center
    axis_u /= np.linalg.norm(axis_u)
    axis_v = np.cross(normal / np.linalg.norm(normal), axis_u)
    rel = vertices - center
    return np.argsort(np.arctan2(rel @ axis_v, rel @ axis_u))


@jaxtyped(typechecker=beartype)
def wigner_seitz_wireframe(
    basis: Float[np.ndarray, "3 3"], nrange: int = 2
) -> Tuple[Float[np.ndarray, "V 3"], Int[np.ndarray, "E 2"]]:
    """Vertices and edges of the first Brillouin zone.

    Parameters
    ----------
    basis : Float[np.ndarray, "3 3"]
        Reciprocal lattice vectors as rows.
    nrange : int, optional
        Half-width of the point cloud fed to the Voronoi construction.

    Returns
    -------
    Tuple[Float[np.ndarray, "V 3"], Int[np.ndarray, "E 2"]]
        Corner positions and unique edges as index pairs (smaller first).

    Raises
    ------
    RuntimeError
        If the origin's Voronoi region is unbounded, which means the point
        cloud is too small for the lattice.
    """
    points = reciprocal_points(basis, nrange)
    origin = int(np.argmin(np.linalg.norm(points, axis=1)))
    voronoi = Voronoi(points)
    # degenerate (cospherical) lattices can yield coincident Voronoi vertices
    vertex_ids: Dict[Tuple[float, float, float], int] = {}
    positions: List[np.ndarray] = []
    edges: Set[Tuple[int, int]] = set()
    for pair, ridge in zip(voronoi.ridge_points, voronoi.ridge_vertices):
        if origin not in pair:
            continue
        if -1 in ridge:
            raise RuntimeError(
                "Brillouin zone is unbounded; increase the point cloud range"
            )
        neighbour = pair[1] if pair[0] == origin else pair[0]
        corners = np.round(voronoi.vertices[np.asarray(ridge)], VERTEX_DECIMALS)
        corners = np.unique(corners, axis=0)
        if corners.shape[0] < 3:
            continue
        corners = corners[_ordered_face(corners, points[neighbour])]
        face = []
        for corner in corners:
            key = tuple(float(x) for x in corner)
            if key not in vertex_ids:
                vertex_ids[key] = len(positions)
                positions.append(corner)
            face.append(vertex_ids[key])
        for start, end in zip(face, face[1:] + face[:1]):
            edges.add((min(start, end), max(start, end)))
    vertices = np.array(positions, dtype=float).reshape(-1, 3)
    return vertices, np.array(sorted(edges), dtype=np.int64).reshape(-1, 2)


@jaxtyped(typechecker=beartype)
def placeholder_wireframe(
    basis: Float[np.ndarray, "3 3"],
) -> Tuple[Float[np.ndarray, "8 3"], Int[np.ndarray, "12 2"]]:
    """Parallelepiped with corners at ``(±½, ±½, ±½)`` of the reciprocal basis."""
    corners = np.array(list(itertools.product((-0.5, 0.5), repeat=3)))
    edges = [
        (i, j)
        for i, j in itertools.combinations(range(8), 2)
        if np.count_nonzero(corners[i] != corners[j]) == 1
    ]
    return corners @ basis, np.array(edges, dtype=np.int64)
