from __future__ import annotations

from typing import Any, Dict, List, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import TodoValidationError, cast_message, required_message

# Type names used in cast failures, keyed by schema field.
_CAST_KINDS = {"title": "String", "done": "Boolean"}


# PUBLIC_INTERFACE
class TodoDocument(BaseModel):
    """
    Schema every stored Todo must satisfy.

    Both fields are required. Validation is strict and does not coerce: `done`
    has to be a JSON boolean and `title` a non-empty string, so values such as
    "true", 1 or 5 are rejected. Unknown keys are dropped.
    """

    model_config = ConfigDict(strict=True, extra="ignore")

    title: str = Field(..., min_length=1, description="Short title for the todo item")
    done: bool = Field(..., description="Completion status flag")


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "_id": "683c4feb83b48baa4c6b5361",
                "title": "Make first unit test",
                "done": False,
            }
        },
    )

    id: str = Field(..., alias="_id", description="ObjectId of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    done: bool = Field(..., description="Completion status flag")


# PUBLIC_INTERFACE
class DeleteMessage(BaseModel):
    """Body returned after a todo is deleted."""

    message: str = Field(..., description="Fixed confirmation message", examples=["Deleted todo"])


def _field_errors(exc: ValidationError, payload: Mapping[str, Any]) -> List[Tuple[str, str]]:
    errors: List[Tuple[str, str]] = []
    seen = set()
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else ""
        if field in seen:
            continue
        seen.add(field)
        value = payload.get(field)
        if err["type"] == "missing" or value is None or value == "":
            reason = required_message(field)
        else:
            reason = cast_message(_CAST_KINDS.get(field, "String"), field, value)
        errors.append((field, reason))
    return errors


# PUBLIC_INTERFACE
def validate_todo(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validate a raw payload against TodoDocument and return the clean fields.

    Raises:
        TodoValidationError: listing every failing field in schema order.
    """
    try:
        document = TodoDocument.model_validate(dict(payload))
    except ValidationError as exc:
        raise TodoValidationError(_field_errors(exc, payload)) from exc
    return document.model_dump()
