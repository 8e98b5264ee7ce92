import asyncio

import pytest

from lanbeacon.threading.aio import aio_utils


def test_is_running_on_event_loop_outside_loop() -> None:
    loop = asyncio.new_event_loop()
    try:
        assert not aio_utils.is_running_on_event_loop()
        assert not aio_utils.is_running_on_event_loop(loop)
    finally:
        loop.close()


@pytest.mark.asyncio
async def test_is_running_on_event_loop_inside_loop_no_specific() -> None:
    assert aio_utils.is_running_on_event_loop(None)


@pytest.mark.asyncio
async def test_is_running_on_event_loop_inside_loop_specific_match() -> None:
    current_loop = asyncio.get_running_loop()
    assert aio_utils.is_running_on_event_loop(current_loop)


@pytest.mark.asyncio
async def test_is_running_on_event_loop_inside_loop_specific_mismatch() -> None:
    other_loop = asyncio.new_event_loop()
    try:
        assert not aio_utils.is_running_on_event_loop(other_loop)
    finally:
        other_loop.close()


@pytest.mark.asyncio
async def test_run_on_closed_loop_closes_coroutine() -> None:
    closed_loop = asyncio.new_event_loop()
    closed_loop.close()
    started = []

    async def work() -> None:
        started.append(True)

    with pytest.raises(RuntimeError):
        aio_utils.run_on_event_loop(work, closed_loop)
    assert started == []
