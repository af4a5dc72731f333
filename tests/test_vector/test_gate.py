"""Unit tests for the one-shot connection gate."""

import asyncio
from unittest.mock import AsyncMock

import anyio
import pytest

from code_vector_store.vector.errors import NotInitializedError
from code_vector_store.vector.gate import ConnectionGate


@pytest.mark.anyio
async def test_gate_starts_setup_at_construction() -> None:
    """Setup is scheduled without being awaited by the constructor."""
    started = asyncio.Event()

    async def setup() -> str:
        started.set()
        return "client"

    gate = ConnectionGate(setup)

    with anyio.fail_after(1):
        await started.wait()
    assert await gate.wait() == "client"


@pytest.mark.anyio
async def test_gate_runs_setup_once_for_concurrent_waiters() -> None:
    """Concurrent waiters share one setup run and receive the same handle."""
    release = asyncio.Event()
    calls = 0

    async def setup() -> object:
        nonlocal calls
        calls += 1
        await release.wait()
        return object()

    gate = ConnectionGate(setup)
    waiters = [asyncio.create_task(gate.wait()) for _ in range(5)]
    await asyncio.sleep(0)
    release.set()
    handles = await asyncio.gather(*waiters)

    assert calls == 1
    assert all(handle is handles[0] for handle in handles)


@pytest.mark.anyio
async def test_gate_failure_raises_not_initialized_every_time() -> None:
    """A failed setup is never retried and every wait reports it."""
    setup = AsyncMock(side_effect=ConnectionError("refused"))
    gate = ConnectionGate(setup, name="Qdrant")

    for _ in range(2):
        with pytest.raises(NotInitializedError, match="Qdrant client not initialized") as exc_info:
            await gate.wait()
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    setup.assert_awaited_once()


@pytest.mark.anyio
async def test_gate_none_handle_raises_not_initialized() -> None:
    gate = ConnectionGate(AsyncMock(return_value=None))

    with pytest.raises(NotInitializedError):
        await gate.wait()


def test_gate_constructed_without_loop_defers_setup() -> None:
    """Built from synchronous code, setup starts on the first wait."""
    setup = AsyncMock(return_value="client")
    gate = ConnectionGate(setup)

    setup.assert_not_called()
    assert asyncio.run(gate.wait()) == "client"
    setup.assert_awaited_once()


@pytest.mark.anyio
async def test_gate_cancelled_waiter_does_not_cancel_setup() -> None:
    release = asyncio.Event()

    async def setup() -> str:
        await release.wait()
        return "client"

    gate = ConnectionGate(setup)
    waiter = asyncio.create_task(gate.wait())
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    release.set()
    assert await gate.wait() == "client"


@pytest.mark.anyio
async def test_gate_close_calls_closer_after_setup() -> None:
    gate = ConnectionGate(AsyncMock(return_value="client"))
    closer = AsyncMock()

    await gate.close(closer)

    closer.assert_awaited_once_with("client")


@pytest.mark.anyio
async def test_gate_close_skips_closer_after_failed_setup() -> None:
    gate = ConnectionGate(AsyncMock(side_effect=RuntimeError("boom")))
    closer = AsyncMock()

    await gate.close(closer)

    closer.assert_not_awaited()
