import pytest

from lanbeacon.util.disposable import Disposable


class CountingDisposable(Disposable):
    def __init__(self) -> None:
        self.dispose_count = 0

    def dispose(self) -> None:
        self.dispose_count += 1


def test_cannot_instantiate_abstract_base() -> None:
    with pytest.raises(TypeError):
        Disposable()  # type: ignore[abstract]


def test_with_block_disposes_on_exit() -> None:
    with CountingDisposable() as resource:
        assert resource.dispose_count == 0
    assert resource.dispose_count == 1


def test_with_block_disposes_on_error_and_propagates() -> None:
    resource = CountingDisposable()
    with pytest.raises(KeyError):
        with resource:
            raise KeyError("inside")
    assert resource.dispose_count == 1
