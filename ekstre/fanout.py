"""Bounded concurrent map whose failures are reported per item.

``p_map_settled`` keeps a window of at most ``concurrency`` calls running on
a ``ThreadPoolExecutor`` and returns one :class:`Settled` per input, in input
order. A failing call never cancels the others; its exception is returned in
place of a value so callers can decide per item (the processor logs a failed
bank and carries on with the rest).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Settled[InT, OutT]:
    item: InT
    value: OutT | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def p_map_settled[InT, OutT](
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
) -> list[Settled[InT, OutT]]:
    """Run ``mapper`` over ``iterable`` with at most ``concurrency`` in flight.

    Every call runs to completion; the function returns only after all of them
    have finished.
    """

    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    items = enumerate(iterable)
    inputs: dict[int, InT] = {}
    settled: dict[int, Settled[InT, OutT]] = {}
    future_to_idx: dict[Future[OutT], int] = {}

    def _submit(pool: ThreadPoolExecutor) -> Future[OutT] | None:
        try:
            idx, item = next(items)
        except StopIteration:
            return None
        inputs[idx] = item
        fut = pool.submit(mapper, item)
        future_to_idx[fut] = idx
        return fut

    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        active: set[Future[OutT]] = set()
        for _ in range(concurrency):
            fut = _submit(pool)
            if fut is None:
                break
            active.add(fut)

        while active:
            done, active = wait(active, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = future_to_idx.pop(fut)
                try:
                    settled[idx] = Settled(inputs[idx], value=fut.result())
                except Exception as e:  # noqa: BLE001
                    settled[idx] = Settled(inputs[idx], error=e)
            # Refill the window: one new submission per completion.
            for _ in range(len(done)):
                fut = _submit(pool)
                if fut is None:
                    break
                active.add(fut)

    return [settled[i] for i in sorted(settled)]


__all__ = ["Settled", "p_map_settled"]
