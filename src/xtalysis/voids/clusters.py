"""Connected-component labelling of a periodic grid.

Routine Listings
----------------
neighbour_offsets : function
    Half of the 6- or 26-neighbour stencil
label_clusters : function
    Union-find labelling of True cells with periodic wraparound
"""

import itertools

import numpy as np
from beartype import beartype
from beartype.typing import List, Tuple
from jaxtyping import Bool, Int, jaxtyped


@beartype
def neighbour_offsets(connectivity: int = 6) -> List[Tuple[int, int, int]]:
    """Offsets that reach each neighbour pair exactly once.

    Parameters
    ----------
    connectivity : int, optional
        6 for face neighbours, 26 for face, edge and corner neighbours.

    Returns
    -------
    List[Tuple[int, int, int]]
        The lexicographically positive half of the stencil (3 or 13
        offsets); the other half is covered by symmetry of the relation.
    """
    if connectivity == 6:
        return [(1, 0, 0), (0, 1, 0), (0, 0, 1)]
    if connectivity == 26:
        return [
            offset
            for offset in itertools.product((-1, 0, 1), repeat=3)
            if offset > (0, 0, 0)
        ]
    raise ValueError(f"Connectivity must be 6 or 26, got {connectivity}")


class _UnionFind:
    def __init__(self, size: int) -> None:
        self.parent = np.arange(size, dtype=np.int64)

    def find(self, node: int) -> int:
        parent = self.parent
        while parent[node] != node:
            parent[node] = parent[parent[node]]
            node = parent[node]
        return node

    def union(self, first: int, second: int) -> None:
        root_a, root_b = self.find(first), self.find(second)
        if root_a == root_b:
            return
        if root_a < root_b:
            self.parent[root_b] = root_a
        else:
            self.parent[root_a] = root_b


@jaxtyped(typechecker=beartype)
def label_clusters(
    mask: Bool[np.ndarray, "U V W"], connectivity: int = 6
) -> Tuple[Int[np.ndarray, "U V W"], int]:
    """Label connected True cells, joining across the periodic boundary.

    Parameters
    ----------
    mask : Bool[np.ndarray, "U V W"]
        Cells to cluster.
    connectivity : int, optional
        6 or 26 neighbour adjacency. Default is 6.

    Returns
    -------
    Tuple[Int[np.ndarray, "U V W"], int]
        Label grid (-1 outside the mask, 0..n-1 inside) and the number of
        clusters n. Labels are numbered in order of each cluster's lowest
        flat index, so the labelling is deterministic.

    Notes
    -----
    Union-find over flat grid indices with path halving; the smaller root
    always becomes the parent, so every root is its cluster's lowest
    flat index.
    """
    shape = mask.shape
    size = int(np.prod(shape))
    flat_index = np.arange(size, dtype=np.int64).reshape(shape)
    forest = _UnionFind(size)
    for offset in neighbour_offsets(connectivity):
        shifted_mask = np.roll(mask, shift=[-o for o in offset], axis=(0, 1, 2))
        shifted_index = np.roll(flat_index, shift=[-o for o in offset], axis=(0, 1, 2))
        both = mask & shifted_mask
        for first, second in zip(flat_index[both], shifted_index[both]):
            forest.union(int(first), int(second))
    labels = np.full(size, -1, dtype=np.int64)
    members = flat_index[mask]
    roots = np.array([forest.find(int(node)) for node in members], dtype=np.int64)
    unique_roots, compact = np.unique(roots, return_inverse=True)
    labels[members] = compact.reshape(-1)
    return labels.reshape(shape), int(unique_roots.shape[0])
