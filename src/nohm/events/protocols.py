"""Protocol definitions for model events.

- ModelEvent: Actions that fire events (create, update, save, remove, link, unlink)
- ModelObserver: Observer protocol for in-process event delivery
"""

from enum import Enum
from typing import Any, Protocol, runtime_checkable


class ModelEvent(Enum):
    """Events fired by model instances."""

    CREATE = "create"  # New instance was saved for the first time
    UPDATE = "update"  # Existing instance was saved
    SAVE = "save"  # Fired after CREATE or UPDATE
    REMOVE = "remove"  # Instance was removed
    LINK = "link"  # Relation was committed
    UNLINK = "unlink"  # Relation was removed


@runtime_checkable
class ModelObserver(Protocol):
    """
    Observer that receives model events of a Registry.

    This protocol allows loose coupling between the persistence layer and
    components that need to react to changes (caches, audit logs, ...).
    """

    def on_model_event(self, event: "ModelEvent", **kwargs: Any) -> None:
        """
        Handle a model event.

        Args:
            event: The type of model event
            **kwargs: Event data:
                - 'model_name': name of the model that fired the event
                - 'payload': the event payload, identical to what is
                  published on the event channel

        Threading:
            Called from the task that saved/removed the instance, after the
            store write completed. Implementations should not block.

        Error Handling:
            Exceptions raised by observers are caught and logged by the
            ObserverManager. They never fail the save/remove that fired them.
        """
        ...
