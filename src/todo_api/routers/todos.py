from __future__ import annotations

import logging
from typing import Any, Dict, List, Union

from fastapi import APIRouter, Body, Depends, Response, status

from ..models import TodoEntity
from ..repositories import Repository, get_repository
from ..schemas import DeleteMessage, TodoOut

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/todos",
    tags=["todos"],
)

DELETED_MESSAGE = "Deleted todo"

# Store failures are not caught here: they propagate to the app-level
# exception handlers, which answer 500.


def _todo_body() -> Any:
    return Body(
        ...,
        description="Todo fields; both `title` and `done` are required and checked by the store",
        examples=[{"title": "Make first unit test", "done": False}],
    )


def _not_found() -> Response:
    return Response(status_code=status.HTTP_404_NOT_FOUND)


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TodoOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item and return the stored document with its assigned `_id`.",
    responses={
        201: {"description": "Todo created successfully"},
        500: {"description": "Store rejected the payload"},
    },
)
async def create_todo(
    payload: Dict[str, Any] = _todo_body(), repo: Repository = Depends(get_repository)
) -> TodoEntity:
    """
    Create a new Todo. The payload is handed to the store unmodified.
    """
    created = await repo.create(payload)
    logger.info("Created todo %s", created["_id"])
    return created


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=List[TodoOut],
    summary="List Todos",
    description="Return every Todo in the store's natural order.",
    responses={200: {"description": "List retrieved successfully"}},
)
async def get_todos(repo: Repository = Depends(get_repository)) -> List[TodoEntity]:
    return await repo.find({})


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses={
        200: {"description": "Todo found"},
        404: {"description": "Todo not found (empty body)"},
    },
)
async def get_todo_by_id(todo_id: str, repo: Repository = Depends(get_repository)) -> Union[TodoEntity, Response]:
    """
    Retrieve a single Todo item by its ID.
    """
    todo = await repo.find_by_id(todo_id)
    if todo is None:
        return _not_found()
    return todo


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Replace Todo",
    description="Replace `title` and `done` of an existing Todo and return the updated document.",
    responses={
        200: {"description": "Todo updated"},
        404: {"description": "Todo not found (empty body)"},
    },
)
async def update_todo(
    todo_id: str,
    payload: Dict[str, Any] = _todo_body(),
    repo: Repository = Depends(get_repository),
) -> Union[TodoEntity, Response]:
    """
    Full update; the store returns the post-update document.
    """
    updated = await repo.find_by_id_and_update(todo_id, payload, new=True)
    if updated is None:
        return _not_found()
    logger.info("Updated todo %s", todo_id)
    return updated


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=DeleteMessage,
    summary="Delete Todo",
    description=(
        "Delete a Todo item by ID. Not idempotent: deleting the same ID twice "
        "answers 404 the second time."
    ),
    responses={
        200: {"description": "Todo deleted"},
        404: {"description": "Todo not found (empty body)"},
    },
)
async def delete_todo(todo_id: str, repo: Repository = Depends(get_repository)) -> Union[Dict[str, str], Response]:
    deleted = await repo.find_by_id_and_delete(todo_id)
    if deleted is None:
        return _not_found()
    logger.info("Deleted todo %s", todo_id)
    return {"message": DELETED_MESSAGE}
