"""Exceptions for records missing from the store."""

from .base import NohmError


class NotFoundError(NohmError):
    """The requested record does not exist."""

    def __init__(self, model_name: str, record_id: str | None = None,
                 user_message: str = "not found"):
        """
        Initialize not-found error.

        Args:
            model_name: Model that was queried
            record_id: The id that was looked up (None if the instance had no id)
            user_message: Message to show (defaults to "not found")
        """
        super().__init__(
            user_message=user_message,
            technical_message=f"{model_name} with id {record_id!r}: {user_message}",
            recoverable=True,
        )
        self.model_name = model_name
        self.record_id = record_id
