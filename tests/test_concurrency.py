import queue
import random
import threading

from one_shot.completer import Completer
from one_shot.continuation import Continuation
from one_shot.typedefs import Ready

TASKS = 64


def _drive_all(continuations: list[Continuation]) -> dict[int, object]:
    """Polls every continuation, then re-polls whichever one is woken."""
    woken: queue.Queue[int] = queue.Queue()
    results: dict[int, object] = {}

    def waker_for(index: int):
        return lambda: woken.put(index)

    for index, continuation in enumerate(continuations):
        polled = continuation.poll(waker_for(index))
        if isinstance(polled, Ready):
            results[index] = polled.unwrap()

    while len(results) < len(continuations):
        index = woken.get(timeout=5)
        if index in results:
            continue
        polled = continuations[index].poll(waker_for(index))
        if isinstance(polled, Ready):
            results[index] = polled.unwrap()

    return results


class TestRacingProducers:
    def test_each_result_reaches_its_own_continuation(self) -> None:
        pairs = [Continuation[int, None].direct() for _ in range(TASKS)]
        start = threading.Barrier(TASKS)

        def produce(completer: Completer[int], value: int) -> None:
            start.wait()
            completer.complete(value)

        threads = [
            threading.Thread(target=produce, args=(completer, index * 10))
            for index, (_continuation, completer) in enumerate(pairs)
        ]
        for thread in threads:
            thread.start()

        results = _drive_all([continuation for continuation, _ in pairs])

        for thread in threads:
            thread.join()
        assert results == {index: index * 10 for index in range(TASKS)}

    def test_deferred_begins_with_random_delays(self) -> None:
        rng = random.Random(1234)
        delays = [rng.uniform(0, 0.02) for _ in range(TASKS)]

        def begin_for(index: int):
            def begin(completer: Completer[str]) -> threading.Timer:
                timer = threading.Timer(
                    delays[index], completer.complete, args=(f"task-{index}",)
                )
                timer.start()
                return timer

            return begin

        continuations = [Continuation(begin_for(index)) for index in range(TASKS)]

        results = _drive_all(continuations)

        assert results == {index: f"task-{index}" for index in range(TASKS)}

    def test_repeated_races_never_lose_a_wakeup(self, make_waker) -> None:
        for _ in range(200):
            continuation, completer = Continuation[int, None].direct()
            waker = make_waker()
            thread = threading.Thread(target=completer.complete, args=(5,))
            thread.start()

            polled = continuation.poll(waker)
            thread.join()
            if not isinstance(polled, Ready):
                assert waker.wait()
                assert waker.calls == 1
                polled = continuation.poll(waker)

            assert polled == Ready(value=5)
