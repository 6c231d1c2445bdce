# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Debounce timer and bounded task pool for provider calls.

Both must be used from the event loop thread.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Debouncer:
    """Runs a callback once edits have paused for a fixed delay.

    Every schedule() call cancels the pending timer and starts a new one, so
    only the last call of a burst fires.
    """

    def __init__(self, delay_ms: int, callback: Callable[..., Any]):
        self._delay_ms = delay_ms
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    @delay_ms.setter
    def delay_ms(self, value: int) -> None:
        self._delay_ms = max(0, int(value))

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, *args: Any) -> None:
        """(Re)start the timer; the callback receives the latest args."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay_ms / 1000.0, self._fire, args)

    def cancel(self) -> bool:
        """Drop the pending call, if any."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _fire(self, args: tuple) -> None:
        self._handle = None
        try:
            self._callback(*args)
        except Exception as e:
            logger.error(f"Debounced callback failed: {e}")


class TaskScheduler:
    """Bounded pool for network-bound coroutines.

    At most max_concurrent submitted coroutines run at once; the rest wait
    on a semaphore. References to running tasks are kept until they finish.
    """

    def __init__(self, max_concurrent: int = 4):
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be positive, got {max_concurrent}")
        self._max_concurrent = max_concurrent
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def active(self) -> int:
        """Number of submitted tasks that have not finished yet."""
        return len(self._tasks)

    def submit(self, coro: Awaitable[T], name: Optional[str] = None) -> "asyncio.Task[T]":
        """Schedule a coroutine on the pool."""
        if self._semaphore is None:
            # Created lazily so the semaphore binds to the running loop
            self._semaphore = asyncio.Semaphore(self._max_concurrent)
        task = asyncio.get_running_loop().create_task(self._run(coro), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Awaitable[T]) -> T:
        assert self._semaphore is not None
        async with self._semaphore:
            return await coro

    async def drain(self) -> None:
        """Wait for every submitted task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel outstanding tasks and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug(f"Task scheduler shut down ({len(tasks)} tasks cancelled)")
