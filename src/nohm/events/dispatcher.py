"""Event payloads and delivery.

Payloads follow one contract for published messages and in-process
observers:

```
create/update/save  {"target": {"id", "modelName", "properties", "diff"?}}
remove              {"target": {"id": <old id>, "modelName", "properties"}}
link/unlink         {"child": <target>, "parent": <target>, "relation": <name>}
```
"""

import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from redis.asyncio import Redis

from nohm.events.observer import ObserverManager
from nohm.events.protocols import ModelEvent, ModelObserver
from nohm.properties.store import PropertyDiff
from nohm.storage.keys import KeySpace

if TYPE_CHECKING:
    from nohm.model import NohmModel

logger = logging.getLogger(__name__)

EventCallback = Callable[[dict[str, Any]], None]


def compose_target(model: "NohmModel") -> dict[str, Any]:
    return {
        "id": model.id,
        "modelName": model.model_name,
        "properties": model.all_properties(),
    }


def compose_payload(
    event: ModelEvent,
    model: "NohmModel",
    *,
    diff: list[PropertyDiff] | None = None,
    old_id: str | None = None,
    other: "NohmModel | None" = None,
    relation: str | None = None,
) -> dict[str, Any]:
    """
    Build the payload of an event.

    Args:
        event: The event being fired
        model: The instance firing it
        diff: Changed properties (update/save)
        old_id: Id before removal (remove)
        other: The linked instance (link/unlink)
        relation: Relation name (link/unlink)

    Returns:
        JSON-serializable payload
    """
    if event in (ModelEvent.LINK, ModelEvent.UNLINK):
        return {
            "child": compose_target(model),
            "parent": compose_target(other),
            "relation": relation,
        }
    target = compose_target(model)
    if event is ModelEvent.REMOVE:
        target["id"] = old_id
    if event in (ModelEvent.UPDATE, ModelEvent.SAVE) and diff is not None:
        target["diff"] = [change.as_dict() for change in diff]
    return {"target": target}


class CallbackObserver:
    """Adapts a plain callable to ModelObserver for one action."""

    def __init__(self, event: ModelEvent, callback: EventCallback,
                 manager: ObserverManager[ModelObserver], once: bool = False):
        self.event = event
        self.callback = callback
        self.once = once
        self._manager = manager

    def on_model_event(self, event: ModelEvent, **kwargs: Any) -> None:
        if event is not self.event:
            return
        if self.once:
            self._manager.unregister(self)
        self.callback(kwargs["payload"])

    def __repr__(self) -> str:
        name = getattr(self.callback, "__name__", repr(self.callback))
        return f"CallbackObserver({self.event.value}, {name}, once={self.once})"


class EventDispatcher:
    """
    Delivers model events to observers and, when enabled, to the event channel.

    Published messages go to ``P:channel:<model>:<action>`` as JSON.
    """

    def __init__(self, client: Redis, keys: KeySpace):
        self.client = client
        self.keys = keys
        self.observers = ObserverManager[ModelObserver](observer_type_name="model")

    def subscribe(self, event: ModelEvent, callback: EventCallback, once: bool = False) -> CallbackObserver:
        observer = CallbackObserver(event, callback, self.observers, once=once)
        self.observers.register(observer)
        return observer

    def unsubscribe(self, event: ModelEvent, callback: EventCallback | None = None) -> int:
        """
        Remove callback subscriptions of an event.

        Args:
            event: The event
            callback: Only remove this callback (default: all of the event)

        Returns:
            Number of removed subscriptions
        """
        removed = 0
        for observer in self.observers.snapshot():
            if not isinstance(observer, CallbackObserver) or observer.event is not event:
                continue
            if callback is None or observer.callback is callback:
                self.observers.unregister(observer)
                removed += 1
        return removed

    async def fire(self, event: ModelEvent, model: "NohmModel", publish: bool, **details: Any) -> None:
        """
        Fire an event for an instance.

        Args:
            event: The event
            model: Instance firing the event
            publish: Also publish on the event channel
            **details: Passed to compose_payload()
        """
        if not publish and not self.observers:
            return
        payload = compose_payload(event, model, **details)
        if publish:
            channel = self.keys.channel(model.model_name, event.value)
            await self.client.publish(channel, json.dumps(payload, default=str))
            logger.debug(f"Published {event.value} on {channel}")
        self.observers.notify("on_model_event", event, model_name=model.model_name, payload=payload)
