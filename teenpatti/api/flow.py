"""
Event-driven flow control for the ledger API.

This module lets callers await ledger events, for example the end of a round
or a pending show, instead of polling the snapshot.
"""

import asyncio
import uuid
from typing import Any, Callable, Dict, Optional, Tuple, Union

from teenpatti.events import EngineEventType, EventBus

# Type for event data
EventData = Dict[str, Any]
# Type for event predicate functions
EventPredicate = Callable[[Union[str, EngineEventType], EventData], bool]


class EventWaiter:
    """
    Utility for waiting for specific events or conditions.

    Example:
        ```python
        waiter = EventWaiter()
        event, data = await waiter.wait_for(
            EngineEventType.ROUND_ENDED,
            lambda evt, data: data.get("automatic"),
            timeout=5.0,
        )
        ```
    """

    def __init__(self, event_bus=None):
        """
        Initialize a new event waiter.

        Args:
            event_bus: Event bus to use. If None, the global instance will be used.
        """
        self.event_bus = event_bus or EventBus.get_instance()
        self._waiters: Dict[str, asyncio.Future] = {}

    @property
    def pending(self) -> int:
        """Number of waits still outstanding."""
        return len(self._waiters)

    async def wait_for(
        self,
        event_type: Union[str, EngineEventType],
        condition: Optional[EventPredicate] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[Union[str, EngineEventType], EventData]:
        """
        Wait for a specific event with an optional condition.

        Events may be emitted from another thread (the toast timer does), so
        the future is resolved through the loop that is waiting on it.

        Args:
            event_type: The event type to wait for
            condition: Optional predicate function to check event data
            timeout: Optional timeout in seconds

        Returns:
            Tuple of (event_type, event_data)

        Raises:
            asyncio.TimeoutError: If the timeout is reached
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        waiter_id = str(uuid.uuid4())
        self._waiters[waiter_id] = future

        def resolve(data):
            if not future.done():
                future.set_result((event_type, data))

        def event_handler(data):
            if future.done():
                return
            if condition is not None and not condition(event_type, data):
                return
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is loop:
                resolve(data)
            else:
                loop.call_soon_threadsafe(resolve, data)

        unsubscribe = self.event_bus.on(event_type, event_handler)

        try:
            if timeout is not None:
                return await asyncio.wait_for(future, timeout)
            return await future
        finally:
            unsubscribe()
            self._waiters.pop(waiter_id, None)

    def cancel_all(self) -> None:
        """Cancel every outstanding wait."""
        for future in list(self._waiters.values()):
            if not future.done():
                future.cancel()
        self._waiters.clear()
