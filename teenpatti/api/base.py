"""
Base API module for the ledger.

This module provides the abstract base class for platform-agnostic ledger
APIs that wrap the engine components.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import (
    Dict,
    Any,
    Optional,
    Union,
    Tuple,
    Callable,
    TypeVar,
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from teenpatti.engine.base import LedgerEngine
import threading
import time

from teenpatti.adapters import PlatformAdapter, CLIAdapter
from teenpatti.events import EventBus, EngineEventType, EventPriority
from teenpatti.api.flow import EventWaiter

# Type variable for ledger-specific state types
T = TypeVar("T")


class LedgerGame(ABC):
    """
    Abstract base class for platform-agnostic ledger APIs.

    It holds the adapter and the event bus, tracks the handlers registered
    through it so they can be released on shutdown, and converts between
    synchronous and asynchronous use.

    Attributes:
        adapter: The platform adapter used for UI interaction
        engine: The underlying ledger engine
        config: Configuration options
        event_bus: The event bus for event-based communication
        event_handlers: Unsubscribe functions of registered handlers, by event type
        event_waiter: EventWaiter for waiting for specific events
    """

    def __init__(
        self,
        adapter: Optional[PlatformAdapter] = None,
        config: Optional[Dict[str, Any]] = None,
        use_async: bool = True,
    ):
        """
        Initialize a new ledger API.

        Args:
            adapter: Platform adapter to use for rendering and input.
                    If None, a CLI adapter will be used.
            config: Configuration options
            use_async: Whether to use async mode
        """
        self.adapter = adapter or CLIAdapter()
        self.config = config or {}
        self.event_bus = EventBus.get_instance()
        self.event_handlers = {}
        self._is_async_mode = use_async
        self._loop = None
        self._async_lock = threading.Lock()

        self.event_waiter = EventWaiter(self.event_bus)

        # Engine will be initialized by concrete subclasses
        self.engine: Optional["LedgerEngine"] = None

    @abstractmethod
    async def initialize(self) -> None:
        """
        Initialize the ledger and prepare for a session.
        """
        await self.adapter.initialize()

    @abstractmethod
    async def shutdown(self) -> None:
        """
        Shut down the ledger and clean up resources.
        """
        await self.adapter.shutdown()

    @abstractmethod
    async def start_game(self) -> T:
        """
        Start a round.
        """
        pass

    @abstractmethod
    async def add_player(self, name: str) -> str:
        """
        Add a player to the session.

        Args:
            name: Player's display name

        Returns:
            Player ID that can be used for future operations
        """
        pass

    @abstractmethod
    async def remove_player(self, player_id: str) -> bool:
        """
        Remove a player from the session.

        Args:
            player_id: ID of the player to remove

        Returns:
            True if the player was removed
        """
        pass

    @abstractmethod
    async def get_state(self) -> T:
        """
        Get the current snapshot.
        """
        pass

    def on(
        self,
        event_type: Union[str, EngineEventType],
        handler: Callable,
        priority: EventPriority = EventPriority.NORMAL,
    ) -> Callable:
        """
        Register an event handler.

        Args:
            event_type: Type of event to listen for
            handler: Event handler function
            priority: Priority level for the handler

        Returns:
            Function to call to unsubscribe the handler
        """
        event_type = _normalize_event_type(event_type)
        unsubscribe_func = self.event_bus.on(event_type, handler, priority)
        self.event_handlers.setdefault(event_type, []).append(unsubscribe_func)
        return unsubscribe_func

    def once(
        self,
        event_type: Union[str, EngineEventType],
        handler: Callable,
        priority: EventPriority = EventPriority.NORMAL,
    ) -> Callable:
        """
        Register an event handler that will be called only once.

        Args:
            event_type: Type of event to listen for
            handler: Event handler function
            priority: Priority level for the handler

        Returns:
            Function to call to unsubscribe the handler
        """
        event_type = _normalize_event_type(event_type)
        unsubscribe_func = self.event_bus.once(event_type, handler, priority)
        self.event_handlers.setdefault(event_type, []).append(unsubscribe_func)
        return unsubscribe_func

    def emit(
        self, event_type: Union[str, EngineEventType], data: Dict[str, Any]
    ) -> None:
        """
        Emit an event to the event bus.

        Args:
            event_type: Type of event to emit
            data: Event data
        """
        if self.engine is not None:
            data.setdefault("engine_id", self.engine.engine_id)
            data.setdefault("session_id", self.engine.state.id)
        if "timestamp" not in data:
            data["timestamp"] = time.time()

        self.event_bus.emit(_normalize_event_type(event_type), data)

    def is_own_event(self, data: Dict[str, Any]) -> bool:
        """
        Whether an event came from this game's engine.

        The event bus is shared by every engine in the process, so handlers
        that keep per-game counts check this first.
        """
        if self.engine is None:
            return False
        return data.get("engine_id") == self.engine.engine_id

    def _release_handlers(self) -> None:
        for handlers in self.event_handlers.values():
            for unsubscribe in handlers:
                unsubscribe()
        self.event_handlers = {}

    async def wait_for_event(
        self,
        event_type: Union[str, EngineEventType],
        condition: Optional[Callable[[str, Dict[str, Any]], bool]] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[Union[str, EngineEventType], Dict[str, Any]]:
        """
        Wait for a specific event from this game's engine to occur.

        Raises:
            asyncio.TimeoutError: If the timeout is reached
        """

        def own_event(name: str, data: Dict[str, Any]) -> bool:
            if not self.is_own_event(data):
                return False
            return condition is None or condition(name, data)

        return await self.event_waiter.wait_for(
            _normalize_event_type(event_type), own_event, timeout
        )

    # Synchronous API wrappers

    def initialize_sync(self) -> None:
        """
        Synchronous wrapper for initialize method.
        """
        return self._run_async(self.initialize())

    def shutdown_sync(self) -> None:
        """
        Synchronous wrapper for shutdown method.
        """
        return self._run_async(self.shutdown())

    def start_game_sync(self) -> T:
        """
        Synchronous wrapper for start_game method.
        """
        return self._run_async(self.start_game())

    def add_player_sync(self, name: str) -> str:
        """
        Synchronous wrapper for add_player method.
        """
        return self._run_async(self.add_player(name))

    def remove_player_sync(self, player_id: str) -> bool:
        """
        Synchronous wrapper for remove_player method.
        """
        return self._run_async(self.remove_player(player_id))

    def get_state_sync(self) -> T:
        """
        Synchronous wrapper for get_state method.
        """
        return self._run_async(self.get_state())

    def _run_async(self, coro):
        """
        Run an async coroutine from a synchronous context.

        Args:
            coro: Coroutine to run

        Returns:
            Result of the coroutine
        """
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not None:
            coro.close()
            raise RuntimeError(
                "Attempting to use synchronous method inside a running event loop. "
                "Use the async version of this method instead."
            )

        with self._async_lock:
            if self._loop is None or self._loop.is_closed():
                self._loop = asyncio.new_event_loop()
                asyncio.set_event_loop(self._loop)

            return self._loop.run_until_complete(coro)


def _normalize_event_type(event_type: Union[str, EngineEventType]):
    # Convert string event types to enum if possible
    if isinstance(event_type, str):
        try:
            return EngineEventType[event_type.upper()]
        except KeyError:
            return event_type
    return event_type
