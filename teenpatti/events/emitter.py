"""
Event system for the Teen Patti ledger.

The engine publishes what each transition did on an event bus so that
presentation and notification collaborators can react without reaching into
the state machine. Handlers subscribe per event type or to every event, with
priorities.
"""

from collections import defaultdict
from typing import Any, Dict, Callable, Union
import threading
import logging
from enum import Enum

logger = logging.getLogger("teenpatti.events")


class EventPriority(Enum):
    """Priority levels for event handlers."""

    LOW = 0
    NORMAL = 1
    HIGH = 2
    CRITICAL = 3


class EventEmitter:
    """
    Event emitter for the ledger engine.

    Features:
    - Supports event subscription with priorities
    - Allows once-only subscriptions
    - Supports subscribing to all events with event type filtering in handler
    - Thread-safe event emission
    """

    def __init__(self):
        """Initialize the event emitter."""
        self._listeners = defaultdict(list)
        self._global_listeners = []
        self._listener_lock = threading.RLock()

    def on(
        self,
        event_type: Union[str, Enum],
        callback: Callable,
        priority: EventPriority = EventPriority.NORMAL,
    ) -> Callable:
        """
        Subscribe to an event type.

        Args:
            event_type: The event type to subscribe to (string or enum)
            callback: Function to call when event occurs, signature: fn(event_data)
            priority: Priority level for this handler

        Returns:
            Unsubscribe function that can be called to remove this subscription
        """
        if isinstance(event_type, Enum):
            event_type = event_type.name

        handler = {"callback": callback, "priority": priority.value}

        with self._listener_lock:
            _insert_by_priority(self._listeners[event_type], handler)

        def unsubscribe():
            with self._listener_lock:
                _remove_callback(self._listeners[event_type], callback)

        return unsubscribe

    def once(
        self,
        event_type: Union[str, Enum],
        callback: Callable,
        priority: EventPriority = EventPriority.NORMAL,
    ) -> Callable:
        """
        Subscribe to an event type for a single occurrence.

        Args:
            event_type: The event type to subscribe to (string or enum)
            callback: Function to call when event occurs
            priority: Priority level for this handler

        Returns:
            Unsubscribe function that can be called to remove this subscription
        """
        unsubscribe_ref = []

        def one_time_handler(event_data):
            try:
                callback(event_data)
            finally:
                # Unsubscribe even if the callback raised
                if unsubscribe_ref:
                    unsubscribe_ref[0]()

        unsubscribe_ref.append(self.on(event_type, one_time_handler, priority))
        return unsubscribe_ref[0]

    def on_any(
        self, callback: Callable, priority: EventPriority = EventPriority.NORMAL
    ) -> Callable:
        """
        Subscribe to all events.

        Args:
            callback: Function to call for any event, signature: fn((event_type, event_data))
            priority: Priority level for this handler

        Returns:
            Unsubscribe function that can be called to remove this subscription
        """
        handler = {"callback": callback, "priority": priority.value}

        with self._listener_lock:
            _insert_by_priority(self._global_listeners, handler)

        def unsubscribe():
            with self._listener_lock:
                _remove_callback(self._global_listeners, callback)

        return unsubscribe

    def emit(self, event_type: Union[str, Enum], data: Dict[str, Any]) -> None:
        """
        Emit an event to all registered listeners.

        Args:
            event_type: The type of event to emit
            data: The data to include with the event
        """
        if isinstance(event_type, Enum):
            event_type = event_type.name

        handlers_to_call = []

        with self._listener_lock:
            for handler in self._listeners.get(event_type, []):
                handlers_to_call.append((handler["callback"], data))

            for handler in self._global_listeners:
                handlers_to_call.append((handler["callback"], (event_type, data)))

        # Call handlers outside of the lock to avoid deadlocks
        for callback, args in handlers_to_call:
            try:
                callback(args)
            except Exception as e:
                logger.error(
                    f"Error in event handler for {event_type}: {e}", exc_info=True
                )

    def listener_count(self, event_type: Union[str, Enum]) -> int:
        """Number of handlers subscribed to one event type."""
        if isinstance(event_type, Enum):
            event_type = event_type.name
        with self._listener_lock:
            return len(self._listeners.get(event_type, []))

    def remove_all_listeners(self, event_type: Union[str, Enum, None] = None) -> None:
        """
        Remove all listeners for a specific event type or all events.

        Args:
            event_type: Optional event type. If None, removes all listeners for all events.
        """
        with self._listener_lock:
            if event_type is None:
                self._listeners.clear()
                self._global_listeners.clear()
            else:
                if isinstance(event_type, Enum):
                    event_type = event_type.name
                self._listeners[event_type].clear()


def _insert_by_priority(handlers, handler) -> None:
    # Higher priorities run first; equal priorities keep subscription order
    for i, existing in enumerate(handlers):
        if existing["priority"] < handler["priority"]:
            handlers.insert(i, handler)
            return
    handlers.append(handler)


def _remove_callback(handlers, callback) -> None:
    for i, existing in enumerate(handlers):
        if existing["callback"] == callback:
            handlers.pop(i)
            return


class EventBus:
    """
    Global event bus for the application.

    This singleton class provides a centralized event bus that can be accessed
    from anywhere in the application.
    """

    _instance = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> EventEmitter:
        """
        Get the singleton instance of the EventBus.

        Returns:
            EventEmitter instance
        """
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = EventEmitter()
        return cls._instance


class EngineEventType(Enum):
    """
    Event types published by the ledger engine.

    These cover the session lifecycle, every kind of ledger movement and the
    notifications the presentation layer shows.
    """

    # Engine lifecycle
    ENGINE_INIT = "engine_init"
    ENGINE_SHUTDOWN = "engine_shutdown"

    # Session and round lifecycle
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"
    ROUND_STARTED = "round_started"
    ROUND_ENDED = "round_ended"
    ROUND_DISMISSED = "round_dismissed"

    # Player events
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    PLAYER_WITHDRAWN = "player_withdrawn"
    PLAYER_ACTION = "player_action"
    TURN_CHANGED = "turn_changed"

    # Showdowns
    SHOW_REQUESTED = "show_requested"
    SHOW_RESOLVED = "show_resolved"

    # Money events
    MONEY_ADDED = "money_added"
    POT_UPDATED = "pot_updated"
    POT_LIMIT_REACHED = "pot_limit_reached"

    # Configuration
    SETTINGS_CHANGED = "settings_changed"

    # Every applied transition, with both snapshots
    STATE_CHANGED = "state_changed"

    # Notifications
    TOAST = "toast"
    TOAST_CLEARED = "toast_cleared"

    # Rejected actions and errors
    ACTION_IGNORED = "action_ignored"
    ERROR = "error"
