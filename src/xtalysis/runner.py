"""Background execution of analyses against a loaded structure.

Extended Summary
----------------
An :class:`AnalysisSession` holds the structure currently under study and
a single worker thread. Analyses are submitted by name and run in the
background; each job carries its own :class:`~xtalysis.types.CancelToken`.
Loading a new structure cancels every job still in flight and advances a
generation counter, so results computed for an earlier structure are
never handed back.

Routine Listings
----------------
ANALYSES : dict
    Analysis name to the function that runs it
AnalysisJob : class
    Handle to a submitted analysis
AnalysisSession : class
    Active structure plus the worker that analyses it
"""

import concurrent.futures
import logging
import threading

from beartype.typing import Any, Callable, Dict, List, Optional, Union

from xtalysis.kpath import generate_kpath
from xtalysis.simul import simulate_powder_pattern
from xtalysis.surface import build_slab
from xtalysis.symm import clear_symmetry_cache, get_symmetry
from xtalysis.types import (
    CancelToken,
    Cancelled,
    ComputeTimeout,
    CrystalStructure,
    InvalidStructure,
    check_cancelled,
)
from xtalysis.voids import analyze_voids

logger = logging.getLogger(__name__)

Analysis = Callable[..., Any]

ANALYSES: Dict[str, Analysis] = {
    "symmetry": get_symmetry,
    "diffraction": simulate_powder_pattern,
    "voids": analyze_voids,
    "slab": build_slab,
    "kpath": generate_kpath,
}


class AnalysisJob:
    """Handle to an analysis running on a session's worker.

    Attributes
    ----------
    name : str
        Analysis name, or the callable's ``__name__``.
    generation : int
        Session generation the job was submitted under.
    token : CancelToken
        Cancellation flag passed to the analysis.
    """

    def __init__(
        self,
        name: str,
        future: "concurrent.futures.Future[Any]",
        token: CancelToken,
        generation: int,
        session: "AnalysisSession",
    ) -> None:
        self.name = name
        self.generation = generation
        self.token = token
        self._future = future
        self._session = session

    @property
    def done(self) -> bool:
        """Whether the job finished, failed or was cancelled."""
        return self._future.done()

    @property
    def stale(self) -> bool:
        """Whether the session has loaded another structure since submission."""
        return self.generation != self._session.generation

    def cancel(self, reason: str = "cancelled by caller") -> None:
        """Request cancellation; the analysis stops at its next check."""
        self.token.cancel(reason)
        self._future.cancel()

    def result(self, timeout: Optional[float] = None) -> Any:
        """Wait for the analysis result.

        Parameters
        ----------
        timeout : float, optional
            Seconds to wait. ``None`` waits indefinitely.

        Returns
        -------
        Any
            The analysis output.

        Raises
        ------
        ComputeTimeout
            If the job does not finish within ``timeout``. The job is
            cancelled so the worker is released.
        Cancelled
            If the job was cancelled or its structure has been replaced.
        """
        try:
            value = self._future.result(timeout=timeout)
        except concurrent.futures.TimeoutError as err:
            self.cancel(f"{self.name} exceeded {timeout} s")
            raise ComputeTimeout(
                f"Analysis '{self.name}' did not finish within {timeout} s"
            ) from err
        except concurrent.futures.CancelledError as err:
            raise Cancelled(self.token.reason or "cancelled") from err
        if self.stale:
            raise Cancelled(
                f"Result of '{self.name}' discarded: structure was replaced"
            )
        check_cancelled(self.token)
        return value

    def __repr__(self) -> str:
        state = "done" if self.done else "pending"
        return f"AnalysisJob({self.name!r}, generation={self.generation}, {state})"


class AnalysisSession:
    """Active structure plus a single background worker.

    Parameters
    ----------
    structure : CrystalStructure, optional
        Structure to load immediately.

    Examples
    --------
    >>> import jax.numpy as jnp
    >>> from xtalysis.runner import AnalysisSession
    >>> from xtalysis.types import create_crystal_structure
    >>> cubic = create_crystal_structure(
    ...     4.0 * jnp.eye(3), jnp.zeros((1, 3)), ["X"]
    ... )
    >>> with AnalysisSession(cubic) as session:
    ...     session.run("symmetry", timeout=60).number
    221
    """

    def __init__(self, structure: Optional[CrystalStructure] = None) -> None:
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="xtalysis"
        )
        self._lock = threading.Lock()
        self._structure: Optional[CrystalStructure] = None
        self._generation = 0
        self._jobs: List[AnalysisJob] = []
        if structure is not None:
            self.load_structure(structure)

    @property
    def structure(self) -> Optional[CrystalStructure]:
        return self._structure

    @property
    def generation(self) -> int:
        return self._generation

    def load_structure(self, structure: CrystalStructure) -> None:
        """Make ``structure`` the active one, cancelling in-flight jobs."""
        with self._lock:
            self._cancel_jobs("structure replaced")
            previous = self._structure
            self._structure = structure
            self._generation += 1
            generation = self._generation
        if previous is not None:
            clear_symmetry_cache(previous)
        logger.info(
            "Loaded structure with %d atoms (generation %d)",
            structure.n_atoms,
            generation,
        )

    def submit(self, analysis: Union[str, Analysis], **options: Any) -> AnalysisJob:
        """Queue an analysis of the active structure.

        Parameters
        ----------
        analysis : str or callable
            A key of :data:`ANALYSES`, or a callable taking the structure
            positionally and a ``cancel`` keyword.
        **options
            Keyword arguments forwarded to the analysis.

        Returns
        -------
        AnalysisJob
            Handle to the queued job.

        Raises
        ------
        ValueError
            If the analysis name is unknown.
        InvalidStructure
            If no structure has been loaded.
        """
        if isinstance(analysis, str):
            if analysis not in ANALYSES:
                raise ValueError(
                    f"Unknown analysis '{analysis}'; expected one of {sorted(ANALYSES)}"
                )
            name, func = analysis, ANALYSES[analysis]
        else:
            name, func = getattr(analysis, "__name__", repr(analysis)), analysis
        with self._lock:
            if self._structure is None:
                raise InvalidStructure("No structure loaded")
            token = CancelToken()
            future = self._executor.submit(
                self._execute, func, self._structure, token, options
            )
            job = AnalysisJob(name, future, token, self._generation, self)
            self._jobs = [pending for pending in self._jobs if not pending.done]
            self._jobs.append(job)
        logger.debug("Submitted %s (generation %d)", name, job.generation)
        return job

    def run(
        self,
        analysis: Union[str, Analysis],
        timeout: Optional[float] = None,
        **options: Any,
    ) -> Any:
        """Submit an analysis and wait for its result."""
        return self.submit(analysis, **options).result(timeout=timeout)

    def cancel_all(self, reason: str = "cancelled by caller") -> None:
        """Cancel every job that has not finished."""
        with self._lock:
            self._cancel_jobs(reason)

    def shutdown(self, wait: bool = True) -> None:
        """Cancel outstanding jobs and stop the worker."""
        self.cancel_all("session shut down")
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "AnalysisSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    def _cancel_jobs(self, reason: str) -> None:
        for job in self._jobs:
            if not job.done:
                job.cancel(reason)
        self._jobs = []

    @staticmethod
    def _execute(
        func: Analysis,
        structure: CrystalStructure,
        token: CancelToken,
        options: Dict[str, Any],
    ) -> Any:
        check_cancelled(token)
        return func(structure, cancel=token, **options)
