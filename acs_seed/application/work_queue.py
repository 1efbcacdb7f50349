"""Bounded concurrency for a fixed list of async tasks."""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Iterator, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

TaskFactory = Callable[[], Awaitable[T]]


@dataclass
class TaskOutcome(Generic[T]):
    """Settled result of one queued task."""
    index: int
    result: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BoundedWorkQueue:
    """
    Runs task factories with at most ``concurrency`` in flight.

    Tasks are admitted in submission order by a fixed pool of workers pulling
    from one shared iterator; completion order is not guaranteed. A failing
    task never cancels its siblings.
    """

    def __init__(self, concurrency: int):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.concurrency = concurrency
        self.in_flight = 0
        self.peak_in_flight = 0

    async def run_settled(self, factories: Sequence[TaskFactory[T]]) -> List[TaskOutcome[T]]:
        """Run every task to completion and return outcomes in submission order."""
        outcomes: List[Optional[TaskOutcome[T]]] = [None] * len(factories)
        pending: Iterator[Tuple[int, TaskFactory[T]]] = iter(enumerate(factories))

        async def worker() -> None:
            for index, factory in pending:
                self.in_flight += 1
                self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
                try:
                    outcomes[index] = TaskOutcome(index=index, result=await factory())
                except Exception as e:
                    outcomes[index] = TaskOutcome(index=index, error=e)
                finally:
                    self.in_flight -= 1

        workers = min(self.concurrency, len(factories))
        await asyncio.gather(*(worker() for _ in range(workers)))
        return [outcome for outcome in outcomes if outcome is not None]

    async def run(self, factories: Sequence[TaskFactory[T]]) -> List[T]:
        """
        Run every task and return results in submission order.

        If any task failed, the first failure in submission order is raised
        once all tasks have settled. Side effects of the successful tasks stay.
        """
        outcomes = await self.run_settled(factories)
        for outcome in outcomes:
            if outcome.error is not None:
                raise outcome.error
        return [outcome.result for outcome in outcomes]  # type: ignore[misc]


async def run_bounded(factories: Sequence[TaskFactory[Any]], concurrency: int) -> List[Any]:
    """Convenience wrapper around ``BoundedWorkQueue.run``."""
    return await BoundedWorkQueue(concurrency).run(factories)
