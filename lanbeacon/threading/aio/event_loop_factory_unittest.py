import asyncio
import threading

import pytest

from lanbeacon.threading.aio.aio_utils import (
    is_running_on_event_loop,
    run_on_event_loop,
)
from lanbeacon.threading.aio.event_loop_factory import EventLoopFactory
from lanbeacon.threading.thread_watcher import ThreadWatcher


class TestEventLoopFactory:
    def setup_method(self) -> None:
        self.watcher = ThreadWatcher()
        self.factory = EventLoopFactory(self.watcher, name="test-loop")

    def teardown_method(self) -> None:
        self.factory.stop_asyncio_loop(2.0)

    def test_rejects_missing_or_wrong_watcher(self) -> None:
        with pytest.raises(ValueError):
            EventLoopFactory(None)  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            EventLoopFactory(object())  # type: ignore[arg-type]

    @pytest.mark.timeout(5)
    def test_loop_runs_on_its_own_thread(self) -> None:
        loop = self.factory.start_asyncio_loop()
        assert loop.is_running()
        assert self.factory.thread is not threading.current_thread()
        assert self.factory.thread.name == "test-loop"  # type: ignore[union-attr]

        async def where() -> bool:
            return is_running_on_event_loop(loop)

        assert run_on_event_loop(where, loop).result(1.0) is True
        assert not is_running_on_event_loop(loop)

    @pytest.mark.timeout(5)
    def test_only_one_loop_per_factory(self) -> None:
        self.factory.start_asyncio_loop()
        with pytest.raises(RuntimeError):
            self.factory.start_asyncio_loop()

    @pytest.mark.timeout(5)
    def test_stop_joins_thread_and_closes_loop(self) -> None:
        loop = self.factory.start_asyncio_loop()
        self.factory.stop_asyncio_loop(2.0)

        assert not self.factory.thread.is_alive()  # type: ignore[union-attr]
        assert loop.is_closed()
        # Second stop is harmless.
        self.factory.stop_asyncio_loop(2.0)

    def test_stop_before_start_is_noop(self) -> None:
        self.factory.stop_asyncio_loop(0.1)

    @pytest.mark.timeout(5)
    def test_run_on_closed_loop_raises(self) -> None:
        loop = self.factory.start_asyncio_loop()
        self.factory.stop_asyncio_loop(2.0)

        async def nothing() -> None:
            pass

        with pytest.raises(RuntimeError):
            run_on_event_loop(nothing, loop)

    @pytest.mark.timeout(5)
    def test_unhandled_loop_exception_reaches_watcher(self) -> None:
        loop = self.factory.start_asyncio_loop()
        seen = threading.Event()
        original = self.watcher.on_exception_seen

        def record(e: Exception) -> None:
            original(e)
            seen.set()

        self.watcher.on_exception_seen = record  # type: ignore[method-assign]

        def explode() -> None:
            raise KeyError("from callback")

        loop.call_soon_threadsafe(explode)
        assert seen.wait(2.0)
        with pytest.raises(KeyError):
            self.watcher.check_for_exception()

    @pytest.mark.timeout(5)
    def test_coroutine_result_is_returned(self) -> None:
        loop = self.factory.start_asyncio_loop()

        async def add(a: int, b: int) -> int:
            await asyncio.sleep(0)
            return a + b

        assert run_on_event_loop(add, loop, 2, 3).result(1.0) == 5
