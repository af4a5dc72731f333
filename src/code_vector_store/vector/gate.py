"""One-shot deferred backend setup with a readiness barrier."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from code_vector_store.vector.errors import NotInitializedError

logger = logging.getLogger(__name__)


class ConnectionGate[T]:
    """Runs an async setup coroutine once and hands out its result.

    Construction schedules setup on the running event loop without awaiting
    it. When there is no running loop (the owner was built from synchronous
    code), setup is scheduled by the first ``wait()``. Setup never runs twice,
    not even after it fails; every later ``wait()`` observes the same outcome.

    Example:
        gate = ConnectionGate(open_client, name="Qdrant")
        client = await gate.wait()
    """

    def __init__(
        self,
        setup: Callable[[], Awaitable[T | None]],
        name: str = "backend",
    ) -> None:
        """Initialize the gate and start setup if an event loop is running.

        Args:
            setup: Coroutine function producing the client handle.
            name: Backend name used in error messages.
        """
        self._setup = setup
        self._name = name
        self._handle: T | None = None
        self._error: BaseException | None = None
        self._task: asyncio.Task[None] | None = None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._task = loop.create_task(self._run_setup())

    async def wait(self) -> T:
        """Wait for setup to finish and return the handle.

        Raises:
            NotInitializedError: If setup failed or produced no handle.
        """
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run_setup())
        # Cancelling one waiter must not cancel the shared setup.
        await asyncio.shield(self._task)

        if self._handle is None:
            raise NotInitializedError(
                f"{self._name} client not initialized"
            ) from self._error
        return self._handle

    async def close(self, closer: Callable[[T], Awaitable[object]]) -> None:
        """Release the handle with ``closer`` if setup succeeded."""
        if self._task is None:
            return
        await asyncio.shield(self._task)
        if self._handle is not None:
            await closer(self._handle)

    async def _run_setup(self) -> None:
        try:
            self._handle = await self._setup()
        except Exception as exc:
            # Surfaced to every caller as NotInitializedError.
            logger.error("%s client setup failed: %s", self._name, exc)
            self._error = exc
            return
        if self._handle is None:
            logger.error("%s client setup produced no handle", self._name)
