from __future__ import annotations

from typing import TypedDict

MODEL_NAME = "Todo"


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A Todo document as returned by the store.

    Fields:
    - _id: ObjectId hex string assigned by the store on creation; never changes
    - title: Non-empty title
    - done: Completion flag
    """

    _id: str
    title: str
    done: bool
