from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from ..auth import require_caller
from ..models import Caller
from ..schemas import ErrorOut, MessageOut, TodoCreate, TodoOut, TodoPatch
from ..service import TodoService, get_todo_service

# Gate first: every route below runs only once require_caller has resolved
# the caller. The dependency result is cached per request, so handlers that
# also declare it get the same Caller.
router = APIRouter(
    prefix="/api/todos",
    tags=["todos"],
    dependencies=[Depends(require_caller)],
    responses={401: {"model": ErrorOut, "description": "Authentication required"}},
)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TodoOut],
    summary="List Todos",
    description="List the caller's todos, newest first.",
    responses={500: {"model": ErrorOut, "description": "Failed to fetch todos"}},
)
def list_todos(
    caller: Caller = Depends(require_caller),
    service: TodoService = Depends(get_todo_service),
) -> List[TodoOut]:
    """
    List todos owned by the caller.
    """
    return [TodoOut(**it) for it in service.list_todos(caller.user_id)]  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TodoOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo owned by the caller and return it.",
    responses={
        201: {"description": "Todo created successfully"},
        400: {"description": "Validation error"},
        500: {"model": ErrorOut, "description": "Failed to create todo"},
    },
)
def create_todo(
    payload: TodoCreate,
    caller: Caller = Depends(require_caller),
    service: TodoService = Depends(get_todo_service),
) -> TodoOut:
    created = service.create_todo(caller.user_id, payload)
    return TodoOut(**created)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Get Todo",
    description="Get a single Todo by ID. Todos owned by other users are reported as not found.",
    responses={
        200: {"description": "Todo found"},
        404: {"model": ErrorOut, "description": "Todo not found"},
    },
)
def get_todo(
    todo_id: int,
    caller: Caller = Depends(require_caller),
    service: TodoService = Depends(get_todo_service),
) -> TodoOut:
    """
    Retrieve a single Todo item by its ID.
    """
    return TodoOut(**service.get_todo(caller.user_id, todo_id))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Update Todo",
    description=(
        "Partially update a Todo. Only supplied fields change; an empty body "
        "just refreshes updatedAt."
    ),
    responses={
        200: {"description": "Todo updated"},
        404: {"model": ErrorOut, "description": "Todo not found"},
    },
)
def update_todo(
    todo_id: int,
    payload: TodoPatch,
    caller: Caller = Depends(require_caller),
    service: TodoService = Depends(get_todo_service),
) -> TodoOut:
    updated = service.update_todo(caller.user_id, todo_id, payload)
    return TodoOut(**updated)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=MessageOut,
    summary="Delete Todo",
    description="Delete a Todo by ID.",
    responses={
        200: {"description": "Todo deleted"},
        404: {"model": ErrorOut, "description": "Todo not found"},
    },
)
def delete_todo(
    todo_id: int,
    caller: Caller = Depends(require_caller),
    service: TodoService = Depends(get_todo_service),
) -> MessageOut:
    """
    Delete a Todo. Returns 200 with a confirmation message, 404 if not found.
    """
    service.delete_todo(caller.user_id, todo_id)
    return MessageOut(message="Todo deleted successfully")
