import threading

from lanbeacon.threading.atomic import Atomic


def test_atomic_set_get_basic() -> None:
    atomic_int = Atomic[int](10)
    assert atomic_int.get() == 10

    atomic_int.set(20)
    assert atomic_int.get() == 20


def test_exchange_returns_previous_value() -> None:
    flag = Atomic[bool](False)
    assert flag.exchange(True) is False
    assert flag.exchange(True) is True
    assert flag.get() is True


def test_get_returns_reference_not_copy() -> None:
    atomic_list = Atomic[list[int]]([1, 2])
    assert atomic_list.get() is atomic_list.get()


def test_exactly_one_thread_wins_exchange() -> None:
    """Idempotent start() relies on a single winner."""
    flag = Atomic[bool](False)
    winners: list[int] = []
    winners_lock = threading.Lock()
    barrier = threading.Barrier(8)

    def worker(thread_id: int) -> None:
        barrier.wait()
        if not flag.exchange(True):
            with winners_lock:
                winners.append(thread_id)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(winners) == 1
