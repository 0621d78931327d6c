"""
Centralized error handling utilities.

This module provides a layered approach to error handling:

1. **Custom Exceptions** - Typed error classes (see base, config, validation, store modules)
2. **Error Context** - Preserve technical details for logging, show friendly messages to users
3. **Recovery Hints** - Tell users what to do when things fail
4. **Error Isolation** - One failure shouldn't cascade to others

## Quick Reference

| Scenario | Use This | Example |
|----------|----------|---------|
| Invalid property values | `ValidationError` | raised by `save()` |
| Relation commit failed | `LinkError` | raised by `save()` |
| Record missing | `NotFoundError` | raised by `load()` / `remove()` |
| Bad model or settings | `ConfigurationError` | raised at registration / find / sort |

### Handling Patterns

| Pattern | Code |
|---------|------|
| Show error to user, continue | `@handle_errors(operation_name="purge", user_notification=click.echo, re_raise=False)` |
| Try multiple ops, collect errors | `collector = collect_errors("load users"); with collector.try_operation(...): ...` |
| Critical section with auto-logging | `with ErrorContext("purge database"): ...` |

## Example: Batch Loading

```python
from nohm.exceptions import collect_errors

collector = collect_errors("load users")
for user_id in ids:
    with collector.try_operation(f"load {user_id}"):
        users.append(await User.load(user_id))

if collector.has_errors:
    logger.warning(collector.get_summary())
```
"""

import logging
from collections.abc import Callable
from functools import wraps
from typing import TypeVar

from .base import NohmError
from .config import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def handle_errors(
    *,
    operation_name: str,
    user_notification: Callable[[str], None] | None = None,
    fallback_value: T | None = None,
    re_raise: bool = True,
    log_level: int = logging.ERROR,
) -> Callable:
    """
    Decorator for consistent error handling.

    Args:
        operation_name: Name of the operation for logging (e.g., "purge database")
        user_notification: Optional callback to notify user (e.g., click.echo)
        fallback_value: Value to return if error occurs and re_raise=False
        re_raise: Whether to re-raise the exception after handling
        log_level: Logging level for the error (default: ERROR)

    Example:
        ```python
        @handle_errors(operation_name="list keys", user_notification=click.echo, re_raise=False)
        def keys_command(...):
            ...
        ```

    Returns:
        Decorated function
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)

            except NohmError as e:
                logger.log(log_level, f"Failed to {operation_name}: {e.technical_message}")

                if user_notification:
                    user_notification(e.get_full_message())

                if re_raise:
                    raise
                return fallback_value

            except Exception as e:
                logger.log(
                    log_level,
                    f"Unexpected error during {operation_name}: {e}",
                    exc_info=True,
                )

                if user_notification:
                    user_notification(f"Error: {e}")

                if re_raise:
                    raise
                return fallback_value

        return wrapper
    return decorator


class ErrorContext:
    """
    Context manager for error handling with automatic logging.

    Example:
        ```python
        with ErrorContext("purge database") as ctx:
            await registry.purge_db()
        ```
    """

    def __init__(
        self,
        operation: str,
        logger_instance: logging.Logger | None = None,
        re_raise: bool = True,
    ):
        """
        Initialize error context.

        Args:
            operation: Description of the operation
            logger_instance: Logger to use (defaults to module logger)
            re_raise: Whether to re-raise exceptions
        """
        self.operation = operation
        self.logger = logger_instance or logger
        self.re_raise = re_raise
        self.error: Exception | None = None

    def __enter__(self):
        """Enter the context."""
        self.logger.debug(f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """
        Exit the context and handle any exceptions.

        Returns:
            True if exception should be suppressed, False otherwise
        """
        if exc_type is None:
            self.logger.debug(f"Completed: {self.operation}")
            return False

        self.error = exc_val

        if isinstance(exc_val, NohmError):
            self.logger.error(f"Failed to {self.operation}: {exc_val.technical_message}")
        else:
            self.logger.error(f"Failed to {self.operation}: {exc_val}", exc_info=True)

        return not self.re_raise


def wrap_pydantic_error(error: Exception, source: str) -> ConfigurationError:
    """
    Convert Pydantic validation errors to a ConfigurationError.

    Args:
        error: The Pydantic ValidationError
        source: What was being validated (file path, model name, ...)

    Returns:
        A ConfigurationError listing every failing field
    """
    from pydantic import ValidationError

    if isinstance(error, ValidationError):
        errors = error.errors()
        lines = []
        for err in errors:
            field = ".".join(str(loc) for loc in err.get("loc", ("unknown",)))
            lines.append(f"{field}: {err.get('msg', 'validation failed')}")
        if len(lines) == 1:
            user_msg = f"Invalid configuration in {source}: {lines[0]}"
        else:
            user_msg = f"{len(lines)} validation errors in {source}:\n" + "\n".join(
                f"  - {line}" for line in lines
            )
        return ConfigurationError(
            user_message=user_msg,
            technical_message=f"Pydantic validation failed for {source}: {error}",
            recovery_hint=f"Fix the listed values in {source}",
        )

    return ConfigurationError(
        user_message=f"Invalid configuration in {source}: {error}",
        technical_message=f"Could not parse {source}: {error!r}",
    )


def format_error_for_display(error: Exception) -> tuple[str, str | None]:
    """
    Format an exception for user display.

    Args:
        error: The exception to format

    Returns:
        Tuple of (user_message, recovery_hint or None)
    """
    if isinstance(error, NohmError):
        return error.user_message, error.recovery_hint

    error_type = type(error).__name__
    return f"{error_type}: {error}", None


def collect_errors(operation: str) -> "ErrorCollector":
    """
    Create an error collector for batch operations.

    Args:
        operation: Description of the overall operation

    Returns:
        ErrorCollector instance
    """
    return ErrorCollector(operation)


class ErrorCollector:
    """
    Collects multiple errors during batch operations.

    Allows operations to continue even if some fail, then
    report all failures at once.
    """

    def __init__(self, operation: str):
        self.operation = operation
        self.errors: list[tuple[str, Exception]] = []
        self.success_count = 0

    @property
    def has_errors(self) -> bool:
        """Check if any errors were collected."""
        return len(self.errors) > 0

    @property
    def error_count(self) -> int:
        """Get the number of errors collected."""
        return len(self.errors)

    def try_operation(self, sub_operation: str, *expected: type[Exception]):
        """
        Context manager for a single operation within the batch.

        Args:
            sub_operation: Description of this specific operation
            *expected: Exception types to collect (default: every Exception).
                Anything else propagates.

        Returns:
            Context manager that catches and stores errors
        """
        return self._OperationContext(self, sub_operation, expected or (Exception,))

    def get_summary(self) -> str:
        """
        Get a summary of collected errors.

        Returns:
            Multi-line summary string
        """
        if not self.has_errors:
            return f"All operations completed successfully ({self.success_count} total)"

        summary = f"Failed {self.error_count} of {self.error_count + self.success_count} operations:\n"
        for sub_op, error in self.errors:
            if isinstance(error, NohmError):
                summary += f"  - {sub_op}: {error.user_message}\n"
            else:
                summary += f"  - {sub_op}: {error}\n"

        return summary.rstrip()

    class _OperationContext:
        """Internal context manager for individual operations."""

        def __init__(self, collector: "ErrorCollector", sub_operation: str,
                     expected: tuple[type[Exception], ...]):
            self.collector = collector
            self.sub_operation = sub_operation
            self.expected = expected

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_type is None:
                self.collector.success_count += 1
                return False

            if not issubclass(exc_type, self.expected):
                return False

            self.collector.errors.append((self.sub_operation, exc_val))
            return True
