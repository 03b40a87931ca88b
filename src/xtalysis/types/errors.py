"""Exception and warning taxonomy shared by every analysis.

Extended Summary
----------------
Fatal conditions are raised as exceptions deriving from the builtin
``ValueError`` or ``RuntimeError`` so callers can catch them either by
their specific class or by the broad builtin. Non-fatal conditions are
``Warning`` subclasses emitted through :func:`warnings.warn`; the analysis
still returns a result and records the condition on it.

Routine Listings
----------------
XtalysisError : class
    Common base of every exception raised by the package
InvalidStructure : class
    Structure is unusable (no atoms, degenerate lattice, bad shapes)
DegenerateLattice : class
    Lattice vectors are (nearly) coplanar
NoValidBasis : class
    No in-plane basis could be found for a Miller plane
ComputeTimeout : class
    Work bound exceeded or background job did not finish in time
Cancelled : class
    Work abandoned through a cancellation token
NumericToleranceWarning : class
    Symmetry match ambiguous at the tolerance boundary
UnsupportedLatticeVisualization : class
    Brillouin-zone wireframe replaced by an approximate placeholder
"""


class XtalysisError(Exception):
    """Base class for all errors raised by xtalysis."""


class InvalidStructure(XtalysisError, ValueError):
    """Structure cannot be analysed (zero atoms, bad shapes, zero volume)."""


class DegenerateLattice(InvalidStructure):
    """Lattice determinant is zero within numerical precision."""


class NoValidBasis(XtalysisError, ValueError):
    """Miller-plane basis search exhausted its range without a solution."""


class ComputeTimeout(XtalysisError, RuntimeError):
    """Computation exceeded its work bound or wall-clock limit."""


class Cancelled(XtalysisError, RuntimeError):
    """Computation was cancelled before it completed."""


class NumericToleranceWarning(UserWarning):
    """Symmetry operations matched only at the edge of the tolerance."""


class UnsupportedLatticeVisualization(UserWarning):
    """Brillouin-zone geometry is a placeholder for this lattice family."""
