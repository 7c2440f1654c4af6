"""
Event system for the Teen Patti ledger.

This package provides the event bus the engine publishes ledger movements on.
"""

from teenpatti.events.emitter import (
    EventEmitter,
    EventBus,
    EventPriority,
    EngineEventType,
)

__all__ = ["EventEmitter", "EventBus", "EventPriority", "EngineEventType"]
