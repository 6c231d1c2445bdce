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

"""Publish/subscribe channel used for settings and session notifications.

Subscribers are called in subscription order. A subscriber that raises is
logged and skipped; delivery to the remaining subscribers continues.
"""

import logging
import threading
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventChannel(Generic[T]):
    """Ordered fan-out of events to the current subscribers."""

    def __init__(self, name: str = "events"):
        self._name = name
        self._subscribers: List[Callable[[T], None]] = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register a subscriber.

        Args:
            callback: Called with every published event

        Returns:
            A function that removes the subscription when called
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: Callable[[T], None]) -> bool:
        """Remove a subscriber.

        Returns:
            True if the callback was subscribed
        """
        with self._lock:
            try:
                self._subscribers.remove(callback)
                return True
            except ValueError:
                return False

    def publish(self, event: T) -> int:
        """Deliver an event to a snapshot of the current subscribers.

        Returns:
            Number of subscribers that handled the event without raising
        """
        with self._lock:
            subscribers = list(self._subscribers)

        delivered = 0
        for callback in subscribers:
            try:
                callback(event)
                delivered += 1
            except Exception as e:
                logger.error(f"Subscriber {callback!r} on channel '{self._name}' failed: {e}")
        return delivered

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)
