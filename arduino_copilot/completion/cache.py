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

"""Bounded, time-expiring store of completion responses.

Entries are kept in access order: a hit moves the entry to the most recent
end and an insert beyond capacity drops the least recently accessed entry.
Expiry is checked lazily on get(). Each public call holds the lock for its
whole duration, so concurrent calls are linearizable.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from arduino_copilot.completion.protocol import CompletionResponse

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100
DEFAULT_TTL_SECONDS = 5 * 60


@dataclass(frozen=True)
class CacheEntry:
    response: CompletionResponse
    timestamp: float


class CompletionCache:
    """LRU cache with per-entry time-to-live."""

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            capacity: Maximum number of resident entries
            ttl_seconds: Entry lifetime measured from insertion
            clock: Time source in seconds (injectable for tests)
        """
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self._capacity = capacity
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: str) -> Optional[CompletionResponse]:
        """Look up a response.

        Returns:
            The cached response, or None on a miss or an expired entry
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if self._clock() - entry.timestamp >= self._ttl:
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                logger.debug(f"Cache entry expired: {key!r}")
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return entry.response

    def put(self, key: str, response: CompletionResponse) -> None:
        """Store a response, evicting the least recently accessed entries."""
        with self._lock:
            self._entries[key] = CacheEntry(response=response, timestamp=self._clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self._capacity:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug(f"Cache evicted: {evicted!r}")

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, int]:
        """Snapshot of the cache counters."""
        with self._lock:
            return {
                "size": len(self._entries),
                "capacity": self._capacity,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "expirations": self._expirations,
            }
