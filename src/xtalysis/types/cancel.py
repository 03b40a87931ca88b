"""Cooperative cancellation for long-running analyses.

Routine Listings
----------------
CancelToken : class
    Thread-safe flag checked by analyses at each outer iteration
check_cancelled : function
    Raise Cancelled if an optional token has been set
"""

import threading

from beartype.typing import Optional

from .errors import Cancelled


class CancelToken:
    """Thread-safe cancellation flag.

    The interactive thread calls :meth:`cancel`; the worker running an
    analysis calls :meth:`raise_if_cancelled` between units of work.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str = ""

    def cancel(self, reason: str = "cancelled") -> None:
        """Request cancellation. Idempotent."""
        if not self._event.is_set():
            self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise Cancelled if cancellation has been requested."""
        if self._event.is_set():
            raise Cancelled(self.reason)

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self.cancelled})"


def check_cancelled(token: Optional[CancelToken]) -> None:
    """Raise Cancelled when ``token`` is set; no-op for ``None``."""
    if token is not None:
        token.raise_if_cancelled()
