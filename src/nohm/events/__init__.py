"""Model events: payloads, channel publishing and in-process observers."""

from .dispatcher import CallbackObserver, EventDispatcher, compose_payload, compose_target
from .observer import ObserverManager
from .protocols import ModelEvent, ModelObserver

__all__ = [
    "CallbackObserver",
    "EventDispatcher",
    "ModelEvent",
    "ModelObserver",
    "ObserverManager",
    "compose_payload",
    "compose_target",
]
