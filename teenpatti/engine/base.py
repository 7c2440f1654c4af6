"""
Base engine class for the ledger.

This module provides the abstract base class for ledger engines. An engine
owns the authoritative session snapshot and is the single writer that feeds
actions through the transition function.
"""

from abc import ABC, abstractmethod
import uuid
from typing import Dict, Any, Optional

from teenpatti.adapters import PlatformAdapter
from teenpatti.events import EventBus
from teenpatti.ledger.actions import Action
from teenpatti.ledger.state import GameState


class LedgerEngine(ABC):
    """
    Abstract base class for ledger engines.

    This class defines the common interface that engines implement: lifecycle
    management, applying actions and rendering the current snapshot.
    """

    def __init__(
        self, adapter: PlatformAdapter, config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize the engine.

        Args:
            adapter: Platform adapter to use for rendering and input
            config: Configuration options for the engine
        """
        self.adapter = adapter
        self.config = config or {}
        self.event_bus = EventBus.get_instance()
        # Tags every event this engine publishes on the shared bus
        self.engine_id = str(uuid.uuid4())
        self.state: Optional[GameState] = None

    @abstractmethod
    async def initialize(self) -> None:
        """
        Initialize the engine and prepare for a session.
        """
        await self.adapter.initialize()

    @abstractmethod
    async def shutdown(self) -> None:
        """
        Shut down the engine and clean up resources.
        """
        await self.adapter.shutdown()

    @abstractmethod
    def dispatch(self, action: Action) -> GameState:
        """
        Apply an action to the current snapshot and install the result.

        Args:
            action: Action to apply

        Returns:
            The new current snapshot
        """
        pass

    @abstractmethod
    async def render_state(self) -> None:
        """
        Render the current snapshot.
        """
        pass
