from __future__ import annotations

import sqlite3
from typing import List

from fastapi import Depends

from .db import get_connection
from .errors import InternalFailure, NotFound, StoreError
from .logging_config import get_logger
from .models import TodoEntity
from .repositories import Repository, SQLiteRepository
from .schemas import TodoCreate, TodoPatch

logger = get_logger(__name__)


# PUBLIC_INTERFACE
class TodoService:
    """
    Owner-scoped todo operations.

    Store failures never escape: reads and creates turn them into
    InternalFailure (500); updates and deletes report them as NotFound (404)
    so a failing write does not reveal whether the record exists. That
    second mapping also hides genuine storage faults, hence the warning log.
    """

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def list_todos(self, owner_id: str) -> List[TodoEntity]:
        try:
            return self._repo.list_for_owner(owner_id)
        except StoreError:
            logger.exception("Listing todos failed for owner %s", owner_id)
            raise InternalFailure("Failed to fetch todos")

    def create_todo(self, owner_id: str, data: TodoCreate) -> TodoEntity:
        try:
            created = self._repo.create(owner_id, data)
        except StoreError:
            logger.exception("Creating todo failed for owner %s", owner_id)
            raise InternalFailure("Failed to create todo")
        logger.info("Created todo %s for owner %s", created["id"], owner_id)
        return created

    def get_todo(self, owner_id: str, todo_id: int) -> TodoEntity:
        try:
            item = self._repo.get(owner_id, todo_id)
        except StoreError:
            logger.exception("Fetching todo %s failed for owner %s", todo_id, owner_id)
            raise InternalFailure("Failed to fetch todo")
        if item is None:
            raise NotFound()
        return item

    def update_todo(self, owner_id: str, todo_id: int, patch: TodoPatch) -> TodoEntity:
        try:
            updated = self._repo.update(owner_id, todo_id, patch)
        except StoreError as e:
            logger.warning("Update of todo %s reported as not found after store error: %s", todo_id, e)
            raise NotFound()
        if updated is None:
            raise NotFound()
        return updated

    def delete_todo(self, owner_id: str, todo_id: int) -> None:
        try:
            deleted = self._repo.delete(owner_id, todo_id)
        except StoreError as e:
            logger.warning("Delete of todo %s reported as not found after store error: %s", todo_id, e)
            raise NotFound()
        if not deleted:
            raise NotFound()
        logger.info("Deleted todo %s for owner %s", todo_id, owner_id)


# PUBLIC_INTERFACE
def get_todo_service(conn: sqlite3.Connection = Depends(get_connection)) -> TodoService:
    """Build the service on the request's own connection."""
    return TodoService(SQLiteRepository(conn))
