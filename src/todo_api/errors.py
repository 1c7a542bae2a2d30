"""Store rejections surfaced to the application's error handler."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Tuple

from .models import MODEL_NAME


class StoreError(Exception):
    """Base class for every failure raised by a todo store."""


# PUBLIC_INTERFACE
class TodoValidationError(StoreError):
    """
    Raised when a payload does not satisfy the Todo schema.

    `errors` holds (field, reason) pairs in schema order; the message reads
    like "Todo validation failed: done: Path `done` is required."
    """

    def __init__(self, errors: List[Tuple[str, str]], model: str = MODEL_NAME) -> None:
        self.errors = errors
        self.model = model
        reasons = ", ".join(f"{field}: {reason}" for field, reason in errors)
        super().__init__(f"{model} validation failed: {reasons}")

    @property
    def fields(self) -> Dict[str, str]:
        return dict(self.errors)


# PUBLIC_INTERFACE
class TodoCastError(StoreError):
    """Raised when an identifier is not a valid ObjectId."""

    def __init__(self, value: Any, path: str = "_id", model: str = MODEL_NAME) -> None:
        self.value = value
        self.path = path
        super().__init__(
            f'Cast to ObjectId failed for value "{value}" (type {type_name(value)}) '
            f'at path "{path}" for model "{model}"'
        )


def required_message(field: str) -> str:
    return f"Path `{field}` is required."


def cast_message(kind: str, field: str, value: Any) -> str:
    return f'Cast to {kind} failed for value "{_display(value)}" (type {type_name(value)}) at path "{field}"'


def _display(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def type_name(value: Any) -> str:
    """Name a JSON value's type the way the store reports it."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "Array"
    if value is None:
        return "null"
    return "Object"
