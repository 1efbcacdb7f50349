"""
User-ID allocation in batches.

The server only reports a high-water mark for user ids; it does not reserve
them. The allocator fetches the mark once per batch and hands out ids
locally until the batch is used up.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from ..exceptions import AllocationError
from ..logger import StructuredLogger, get_logger


class UserIdAllocator:
    """
    Serves strictly increasing user ids shared by all provisioning tasks.

    ``next()`` is the only entry point. Its read-refetch-increment sequence is
    a critical section guarded by an ``asyncio.Lock``: the refetch is a
    suspension point, so without the lock two tasks could both see an empty
    batch, or both read the same counter, and hand out the same id.

    Each refetch serves exactly ``batch_limit`` ids. A refetched mark lower
    than the local counter is ignored, so ids handed out from an earlier batch
    are never served again.
    """

    def __init__(self, fetch_high_water_mark: Callable[[], Awaitable[int]],
                 logger: Optional[StructuredLogger] = None):
        self._fetch = fetch_high_water_mark
        self._lock = asyncio.Lock()
        self._next_available_id = 0
        self._remaining_in_batch = 0
        self.refetch_count = 0
        self.logger = logger or get_logger()

    async def next(self, batch_limit: int) -> int:
        """Allocate one id, refetching the high-water mark when the batch is empty."""
        if batch_limit < 1:
            raise ValueError("batch_limit must be >= 1")

        async with self._lock:
            if self._remaining_in_batch == 0:
                user_id = await self._refetch(batch_limit)
            else:
                user_id = self._next_available_id

            self._next_available_id = user_id + 1
            self._remaining_in_batch -= 1
            return user_id

    async def _refetch(self, batch_limit: int) -> int:
        """Fetch the high-water mark and return the next id to hand out."""
        try:
            mark = await self._fetch()
        except AllocationError:
            raise
        except Exception as e:
            raise AllocationError(f"Could not fetch next user id: {e}") from e

        if not isinstance(mark, int) or isinstance(mark, bool):
            raise AllocationError(f"No usable user id returned: {mark!r}")

        if self.refetch_count == 0 or mark > self._next_available_id:
            self._next_available_id = mark
        self._remaining_in_batch = batch_limit
        self.refetch_count += 1
        self.logger.info("user_id_batch_fetched", {
            "high_water_mark": mark,
            "next_id": self._next_available_id,
            "batch_limit": batch_limit
        })
        return self._next_available_id
