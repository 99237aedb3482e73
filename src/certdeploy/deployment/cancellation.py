"""
Cooperative cancellation for deploy calls.

The token is checked between inventory pages and between per-domain updates,
never in the middle of a vendor call.
"""

import threading

from certdeploy.models.deployment import DeploymentStage
from certdeploy.models.errors import CancellationError


class CancellationToken:
    """
    Cancellation signal shared between a caller and a running deployment.

    ``cancel()`` may be called from any thread or task.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = ""

    def cancel(self, reason: str = "") -> None:
        """
        Request cancellation.

        Args:
            reason: Optional text included in the raised CancellationError
        """
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._event.is_set()

    def raise_if_cancelled(self, stage: DeploymentStage | None = None) -> None:
        """
        Raise CancellationError if cancellation has been requested.

        Args:
            stage: Stage reported on the error

        Raises:
            CancellationError: If the token was cancelled
        """
        if self._event.is_set():
            message = "deployment cancelled"
            if self._reason:
                message = f"{message}: {self._reason}"
            raise CancellationError(message, stage=stage)
