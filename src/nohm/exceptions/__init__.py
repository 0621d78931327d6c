"""
Custom exception hierarchy for nohm.

This module defines library exceptions that provide:
- Clear error categories (validation, relations, lookups, configuration)
- User-friendly messages
- Context preservation
- Recovery hints

## Exception Hierarchy

```
NohmError (base)
├── ValidationError
├── LinkError
├── NotFoundError
└── ConfigurationError
    ├── ModelDefinitionError
    └── InvalidSearchError
```

Errors raised by the redis client (`redis.exceptions.RedisError`) are not
wrapped and propagate unchanged.

## Usage

### Example: Validation Failure

```python
from nohm.exceptions import ValidationError

try:
    await user.save()
except ValidationError as e:
    print(e.errors)  # {"email": ["notUnique"]}
```

### Example: Relation Failure

```python
from nohm.exceptions import LinkError

try:
    await user.save()
except LinkError as e:
    for failure in e.errors:
        print(failure.child.model_name, failure.error)
```

See `nohm.exceptions.handlers` for utilities to handle these exceptions systematically.
"""

from .base import NohmError
from .config import ConfigurationError, InvalidSearchError, ModelDefinitionError
from .handlers import (
    ErrorCollector,
    ErrorContext,
    collect_errors,
    format_error_for_display,
    handle_errors,
    wrap_pydantic_error,
)
from .store import NotFoundError
from .validation import LinkError, LinkFailure, ValidationError

__all__ = [
    # Config
    "ConfigurationError",
    "ErrorCollector",
    "ErrorContext",
    "InvalidSearchError",
    # Relations
    "LinkError",
    "LinkFailure",
    "ModelDefinitionError",
    # Base
    "NohmError",
    # Store
    "NotFoundError",
    # Validation
    "ValidationError",
    "collect_errors",
    "format_error_for_display",
    # Handlers
    "handle_errors",
    "wrap_pydantic_error",
]
