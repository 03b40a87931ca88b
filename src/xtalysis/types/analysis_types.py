"""Result containers returned by the analyses.

Extended Summary
----------------
Every analysis returns an immutable PyTree. Numeric payload is stored in
JAX arrays (the PyTree children) while labels, symbols, Miller indices and
flags are auxiliary data. Factories validate the invariants that the
corresponding analysis guarantees so that hand-built results cannot break
them silently.

Routine Listings
----------------
SymmetryOperation : PyTree
    One (rotation, translation) pair acting on fractional coordinates
SymmetryInfo : PyTree
    Space group, crystal system and the full operation list
DiffractionPattern : PyTree
    Merged, normalised powder diffraction peaks
VoidCluster : PyTree
    One connected void region and its largest inscribed sphere
VoidField : PyTree
    Clearance grid, void fraction and clusters
SlabModel : PyTree
    Surface slab structure plus the parameters that built it
KPoint : PyTree
    A labelled high-symmetry point of the Brillouin zone
KPath : PyTree
    Band-structure path and Brillouin-zone wireframe
create_symmetry_info : function
    Factory function to create SymmetryInfo instances with validation
create_diffraction_pattern : function
    Factory function to create DiffractionPattern instances with validation
create_kpath : function
    Factory function to create KPath instances with validation
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Dict, NamedTuple, Sequence, Tuple
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Bool, Float, Int, jaxtyped

from .crystal_types import CrystalStructure

jax.config.update("jax_enable_x64", True)

CRYSTAL_SYSTEMS: Tuple[str, ...] = (
    "triclinic",
    "monoclinic",
    "orthorhombic",
    "tetragonal",
    "trigonal",
    "hexagonal",
    "cubic",
)


@register_pytree_node_class
class SymmetryOperation(NamedTuple):
    """Affine operation ``x' = rotation @ x + translation``.

    Attributes
    ----------
    rotation : Int[Array, "3 3"]
        Integer matrix acting on fractional coordinates.
    translation : Float[Array, "3"]
        Fractional translation wrapped into [0, 1).
    """

    rotation: Int[Array, "3 3"]
    translation: Float[Array, "3"]

    def apply(self, frac_positions: Float[Array, "N 3"]) -> Float[Array, "N 3"]:
        """Map fractional positions through the operation."""
        return frac_positions @ self.rotation.T + self.translation

    def tree_flatten(self):
        return (self.rotation, self.translation), None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)


@register_pytree_node_class
class SymmetryInfo(NamedTuple):
    """Space-group assignment of a crystal structure.

    Attributes
    ----------
    rotations : Int[Array, "M 3 3"]
        Rotation parts of the M operations; index 0 is the identity.
    translations : Float[Array, "M 3"]
        Translation parts, wrapped into [0, 1).
    number : int
        International space-group number, 1 to 230.
    symbol : str
        Short Hermann-Mauguin symbol, e.g. ``"Pm-3m"``.
    crystal_system : str
        One of :data:`CRYSTAL_SYSTEMS`.
    point_group : str
        Hermann-Mauguin point-group symbol.
    bravais : str
        Pearson-style Bravais symbol such as ``"cF"`` or ``"hR"``.
    tolerance : float
        Cartesian matching tolerance in angstroms.
    warnings : Tuple[str, ...]
        Messages for operations accepted at the tolerance boundary.
    """

    rotations: Int[Array, "M 3 3"]
    translations: Float[Array, "M 3"]
    number: int
    symbol: str
    crystal_system: str
    point_group: str
    bravais: str
    tolerance: float
    warnings: Tuple[str, ...]

    @property
    def n_operations(self) -> int:
        """Number of symmetry operations in the cell."""
        return int(self.rotations.shape[0])

    @property
    def operations(self) -> Tuple[SymmetryOperation, ...]:
        """The operations as individual records, identity first."""
        return tuple(
            SymmetryOperation(rotation=rot, translation=trans)
            for rot, trans in zip(self.rotations, self.translations)
        )

    @property
    def pure_translations(self) -> Float[Array, "K 3"]:
        """Non-zero translations paired with the identity rotation."""
        identity: Bool[Array, "M"] = jnp.all(
            self.rotations == jnp.eye(3, dtype=self.rotations.dtype),
            axis=(1, 2),
        )
        nonzero: Bool[Array, "M"] = jnp.any(
            jnp.abs(self.translations) > 0.0, axis=1
        )
        return self.translations[identity & nonzero]

    def tree_flatten(self):
        return (
            (self.rotations, self.translations),
            (
                self.number,
                self.symbol,
                self.crystal_system,
                self.point_group,
                self.bravais,
                self.tolerance,
                self.warnings,
            ),
        )

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children, *aux_data)


@jaxtyped(typechecker=beartype)
def create_symmetry_info(
    rotations: Int[Array, "M 3 3"],
    translations: Float[Array, "M 3"],
    number: int,
    symbol: str,
    crystal_system: str,
    point_group: str,
    bravais: str,
    tolerance: float,
    warnings: Sequence[str] = (),
) -> SymmetryInfo:
    """Factory function to create a SymmetryInfo instance.

    Raises
    ------
    ValueError
        If the number is outside 1-230, the crystal system is unknown or
        the first operation is not the identity.
    """
    if not 1 <= number <= 230:
        raise ValueError(f"Space-group number {number} outside 1-230")
    if crystal_system not in CRYSTAL_SYSTEMS:
        raise ValueError(f"Unknown crystal system '{crystal_system}'")
    if rotations.shape[0] == 0 or not bool(
        jnp.all(rotations[0] == jnp.eye(3, dtype=rotations.dtype))
        and jnp.allclose(translations[0], 0.0)
    ):
        raise ValueError("The first symmetry operation must be the identity")
    return SymmetryInfo(
        rotations=rotations,
        translations=translations,
        number=number,
        symbol=symbol,
        crystal_system=crystal_system,
        point_group=point_group,
        bravais=bravais,
        tolerance=float(tolerance),
        warnings=tuple(warnings),
    )


@register_pytree_node_class
class DiffractionPattern(NamedTuple):
    """Simulated powder diffraction pattern.

    Attributes
    ----------
    two_theta : Float[Array, "P"]
        Peak positions in degrees, strictly ascending.
    intensities : Float[Array, "P"]
        Relative intensities scaled so that the strongest peak is 100.
    d_spacings : Float[Array, "P"]
        Interplanar spacing of each peak in angstroms.
    multiplicities : Int[Array, "P"]
        Number of (h, k, l) reflections merged into each peak.
    hkls : Tuple[Tuple[Tuple[int, int, int], ...], ...]
        Contributing Miller indices of every peak.
    wavelength : float
        X-ray wavelength in angstroms.
    """

    two_theta: Float[Array, "P"]
    intensities: Float[Array, "P"]
    d_spacings: Float[Array, "P"]
    multiplicities: Int[Array, "P"]
    hkls: Tuple[Tuple[Tuple[int, int, int], ...], ...]
    wavelength: float

    @property
    def n_peaks(self) -> int:
        """Number of merged peaks."""
        return int(self.two_theta.shape[0])

    def tree_flatten(self):
        return (
            (
                self.two_theta,
                self.intensities,
                self.d_spacings,
                self.multiplicities,
            ),
            (self.hkls, self.wavelength),
        )

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children, *aux_data)


@jaxtyped(typechecker=beartype)
def create_diffraction_pattern(
    two_theta: Float[Array, "P"],
    intensities: Float[Array, "P"],
    d_spacings: Float[Array, "P"],
    multiplicities: Int[Array, "P"],
    hkls: Sequence[Sequence[Tuple[int, int, int]]],
    wavelength: float,
) -> DiffractionPattern:
    """Factory function to create a DiffractionPattern instance.

    Raises
    ------
    ValueError
        If the peaks are not strictly ascending in 2θ, an intensity lies
        outside [0, 100] or the hkl lists do not match the peak count.
    """
    if two_theta.shape[0] > 1 and not bool(jnp.all(jnp.diff(two_theta) > 0)):
        raise ValueError("Peak positions must be strictly ascending")
    if not bool(jnp.all((intensities >= 0.0) & (intensities <= 100.0 + 1e-9))):
        raise ValueError("Relative intensities must lie in [0, 100]")
    if len(hkls) != two_theta.shape[0]:
        raise ValueError("One hkl list is required per peak")
    return DiffractionPattern(
        two_theta=two_theta,
        intensities=intensities,
        d_spacings=d_spacings,
        multiplicities=multiplicities,
        hkls=tuple(tuple(tuple(int(i) for i in hkl) for hkl in peak) for peak in hkls),
        wavelength=float(wavelength),
    )


@register_pytree_node_class
class VoidCluster(NamedTuple):
    """A connected region of void grid points.

    Attributes
    ----------
    grid_index : Int[Array, "3"]
        Grid coordinates (u, v, w) of the point with the largest clearance.
    center : Float[Array, "3"]
        Cartesian position of that point in angstroms.
    radius : Float[Array, " "]
        Clearance at the center, i.e. the largest sphere that fits there.
    n_points : int
        Number of grid points in the cluster.
    """

    grid_index: Int[Array, "3"]
    center: Float[Array, "3"]
    radius: Float[Array, " "]
    n_points: int

    def tree_flatten(self):
        return (self.grid_index, self.center, self.radius), self.n_points

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children, n_points=aux_data)


@register_pytree_node_class
class VoidField(NamedTuple):
    """Result of a probe-grid void analysis.

    Attributes
    ----------
    clearance : Float[Array, "U V W"]
        Distance from each grid point to the nearest atomic surface.
    void_fraction : Float[Array, " "]
        Percentage of grid points whose clearance exceeds the probe.
    probe_radius : Float[Array, " "]
        Probe radius in angstroms.
    max_sphere_radius : Float[Array, " "]
        Largest clearance found anywhere on the grid.
    max_sphere_center : Float[Array, "3"]
        Cartesian position of that largest clearance.
    clusters : Tuple[VoidCluster, ...]
        Connected void regions, largest radius first.
    grid_spacing : Tuple[float, float, float]
        Actual spacing along a, b and c in angstroms.
    radius_set : str
        Atomic radius table used for the surfaces.
    """

    clearance: Float[Array, "U V W"]
    void_fraction: Float[Array, " "]
    probe_radius: Float[Array, " "]
    max_sphere_radius: Float[Array, " "]
    max_sphere_center: Float[Array, "3"]
    clusters: Tuple[VoidCluster, ...]
    grid_spacing: Tuple[float, float, float]
    radius_set: str

    @property
    def void_mask(self) -> Bool[Array, "U V W"]:
        """Grid points that belong to the void space."""
        return self.clearance > self.probe_radius

    @property
    def grid_shape(self) -> Tuple[int, int, int]:
        """Number of grid points along a, b and c."""
        return tuple(int(n) for n in self.clearance.shape)

    def tree_flatten(self):
        return (
            (
                self.clearance,
                self.void_fraction,
                self.probe_radius,
                self.max_sphere_radius,
                self.max_sphere_center,
                self.clusters,
            ),
            (self.grid_spacing, self.radius_set),
        )

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children, *aux_data)


@register_pytree_node_class
class SlabModel(NamedTuple):
    """A surface slab together with the parameters that produced it.

    Attributes
    ----------
    structure : CrystalStructure
        Slab cell: a and b span the surface, c carries the layers plus
        the vacuum gap.
    miller : Tuple[int, int, int]
        Miller indices after reduction by their common divisor.
    thickness : int
        Number of repeated layers.
    vacuum : float
        Vacuum gap in angstroms.
    transform : Int[Array, "3 3"]
        Unimodular matrix whose columns express the new single-layer
        basis in the old basis.
    layer_height : Float[Array, " "]
        Height of a single layer along the surface normal.
    n_duplicates_removed : int
        Atoms discarded as duplicates during assembly.
    """

    structure: CrystalStructure
    transform: Int[Array, "3 3"]
    layer_height: Float[Array, " "]
    miller: Tuple[int, int, int]
    thickness: int
    vacuum: float
    n_duplicates_removed: int

    @property
    def surface_normal(self) -> Float[Array, "3"]:
        """Unit normal of the a-b plane of the slab."""
        normal: Float[Array, "3"] = jnp.cross(
            self.structure.lattice[0], self.structure.lattice[1]
        )
        return normal / jnp.linalg.norm(normal)

    @property
    def out_of_plane_length(self) -> Float[Array, " "]:
        """Projection of the slab c vector on the surface normal."""
        return jnp.dot(self.structure.lattice[2], self.surface_normal)

    def tree_flatten(self):
        return (
            (self.structure, self.transform, self.layer_height),
            (self.miller, self.thickness, self.vacuum, self.n_duplicates_removed),
        )

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children, *aux_data)


@register_pytree_node_class
class KPoint(NamedTuple):
    """A labelled point in reciprocal space.

    Attributes
    ----------
    label : str
        Point name, ``"Γ"`` for the zone center.
    frac : Float[Array, "3"]
        Coordinates in the primitive reciprocal basis.
    cart : Float[Array, "3"]
        Cartesian coordinates in inverse angstroms (2π convention).
    """

    label: str
    frac: Float[Array, "3"]
    cart: Float[Array, "3"]

    def tree_flatten(self):
        return (self.frac, self.cart), self.label

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(aux_data, *children)


@register_pytree_node_class
class KPath(NamedTuple):
    """Band-structure path through the Brillouin zone.

    Attributes
    ----------
    points : Tuple[KPoint, ...]
        Every high-symmetry point of the lattice variant.
    segments : Tuple[Tuple[str, str], ...]
        Consecutive point pairs forming the path, in traversal order.
    branches : Tuple[Tuple[str, ...], ...]
        Continuous runs of the path; a jump separates two branches.
    lattice_type : str
        Lattice variant, e.g. ``"CUB"``, ``"FCC"`` or ``"MCLC3"``.
    bravais : str
        Pearson-style Bravais symbol the variant was chosen from.
    reciprocal_lattice : Float[Array, "3 3"]
        Primitive reciprocal basis vectors as rows.
    wireframe_vertices : Float[Array, "V 3"]
        Brillouin-zone corner positions in inverse angstroms.
    wireframe_edges : Int[Array, "E 2"]
        Index pairs into ``wireframe_vertices``.
    wireframe_approximate : bool
        True when the wireframe is a placeholder box rather than the
        Wigner-Seitz cell.
    """

    points: Tuple[KPoint, ...]
    reciprocal_lattice: Float[Array, "3 3"]
    wireframe_vertices: Float[Array, "V 3"]
    wireframe_edges: Int[Array, "E 2"]
    segments: Tuple[Tuple[str, str], ...]
    branches: Tuple[Tuple[str, ...], ...]
    lattice_type: str
    bravais: str
    wireframe_approximate: bool

    @property
    def labels(self) -> Tuple[str, ...]:
        """Labels of every point in the catalogue entry."""
        return tuple(point.label for point in self.points)

    def point(self, label: str) -> KPoint:
        """Look up a point by its label."""
        for candidate in self.points:
            if candidate.label == label:
                return candidate
        raise KeyError(label)

    def tree_flatten(self):
        return (
            (
                self.points,
                self.reciprocal_lattice,
                self.wireframe_vertices,
                self.wireframe_edges,
            ),
            (
                self.segments,
                self.branches,
                self.lattice_type,
                self.bravais,
                self.wireframe_approximate,
            ),
        )

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children, *aux_data)


@jaxtyped(typechecker=beartype)
def create_kpath(
    points: Dict[str, Tuple[Float[Array, "3"], Float[Array, "3"]]],
    branches: Sequence[Sequence[str]],
    lattice_type: str,
    bravais: str,
    reciprocal_lattice: Float[Array, "3 3"],
    wireframe_vertices: Float[Array, "V 3"],
    wireframe_edges: Int[Array, "E 2"],
    wireframe_approximate: bool,
) -> KPath:
    """Factory function to create a KPath instance.

    Parameters
    ----------
    points : Dict[str, Tuple[Float[Array, "3"], Float[Array, "3"]]]
        Label to (fractional, cartesian) coordinates.
    branches : Sequence[Sequence[str]]
        Continuous runs of labels; segments are derived from them.

    Raises
    ------
    ValueError
        If a branch references a label that is not in ``points`` or has
        fewer than two points.
    """
    segments = []
    for branch in branches:
        if len(branch) < 2:
            raise ValueError(f"Path branch {tuple(branch)} is too short")
        for label in branch:
            if label not in points:
                raise ValueError(f"Path label '{label}' is not a known point")
        segments.extend(zip(branch[:-1], branch[1:]))
    return KPath(
        points=tuple(
            KPoint(label=label, frac=frac, cart=cart)
            for label, (frac, cart) in points.items()
        ),
        reciprocal_lattice=reciprocal_lattice,
        wireframe_vertices=wireframe_vertices,
        wireframe_edges=wireframe_edges,
        segments=tuple((str(start), str(end)) for start, end in segments),
        branches=tuple(tuple(str(label) for label in branch) for branch in branches),
        lattice_type=lattice_type,
        bravais=bravais,
        wireframe_approximate=bool(wireframe_approximate),
    )
