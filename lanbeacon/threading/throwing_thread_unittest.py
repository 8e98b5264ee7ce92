import threading
from typing import Any, List

import pytest

from lanbeacon.threading.throwing_thread import ThrowingThread


class TestThrowingThread:
    def setup_method(self) -> None:
        self.error_info: List[Exception] = []
        self.callback_called_event = threading.Event()

    def on_error_callback(self, e: Exception) -> None:
        self.error_info.append(e)
        self.callback_called_event.set()

    @pytest.mark.timeout(5)
    def test_target_receives_args_and_kwargs(self) -> None:
        shared_list: List[str] = []

        def target(values: List[str], an_arg: str, a_kwarg: str = "default") -> None:
            values.append(f"{an_arg}/{a_kwarg}")

        thread = ThrowingThread(
            target=target,
            on_error_cb=self.on_error_callback,
            args=(shared_list, "arg"),
            kwargs={"a_kwarg": "kwarg"},
        )
        thread.start()
        thread.join(timeout=1.0)

        assert shared_list == ["arg/kwarg"]
        assert not self.error_info

    @pytest.mark.timeout(5)
    def test_exception_in_target_reaches_callback(self) -> None:
        def target(*_args: Any) -> None:
            raise ValueError("Test ValueError from target")

        thread = ThrowingThread(target=target, on_error_cb=self.on_error_callback)
        thread.start()

        assert self.callback_called_event.wait(timeout=1.0)
        assert len(self.error_info) == 1
        assert isinstance(self.error_info[0], ValueError)

    def test_start_failure_is_reported_and_reraised(self) -> None:
        thread = ThrowingThread(target=lambda: None, on_error_cb=self.on_error_callback)
        thread.start()
        thread.join(1.0)

        # A thread can only be started once.
        with pytest.raises(RuntimeError):
            thread.start()
        assert len(self.error_info) == 1
        assert isinstance(self.error_info[0], RuntimeError)

    def test_is_daemon_by_default(self) -> None:
        thread = ThrowingThread(target=lambda: None, on_error_cb=self.on_error_callback)
        assert thread.daemon
