"""Task persistence and the task lifecycle.

Statuses move TO-DO -> IN-PROGRESS -> DONE through ``update_status``.
DELETED is terminal and only reachable through ``mark_deleted``; once a task
is deleted every further mutation is rejected.
"""
import logging
from typing import List, Optional, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from ..catalogs import CatalogEntry, StatusCatalog
from ..errors import InvalidArgumentError, StatusNotFoundError, TaskNotFoundError
from ..models import Status, Task, User, utcnow

logger = logging.getLogger(__name__)

StatusRef = Union[str, int]


def _require_description(description: Optional[str]) -> str:
    if description is None or not description.strip():
        raise InvalidArgumentError("Description cannot be empty")
    return description


def _require_not_deleted(task: Task) -> None:
    if task.is_deleted:
        raise InvalidArgumentError(f"Task with ID {task.id} has been deleted and cannot be modified")


def _require_valid_status_name(statuses: StatusCatalog, name: str) -> CatalogEntry:
    if not statuses.is_valid(name):
        raise InvalidArgumentError(f"Status \"{name}\" is not valid")
    return statuses.find_by_name(name)


def _resolve_status(statuses: StatusCatalog, target: StatusRef) -> CatalogEntry:
    """Resolve a status name or id, reporting unknown targets as InvalidArgument"""
    if isinstance(target, bool):
        raise InvalidArgumentError(f"Status \"{target}\" is not valid")
    if isinstance(target, int):
        try:
            return statuses.find_by_id(target)
        except StatusNotFoundError as e:
            raise InvalidArgumentError(e.message) from None
    return _require_valid_status_name(statuses, target)


def _newest_first(query, skip: int, limit: int):
    return query.order_by(Task.created_at.desc(), Task.id.desc()).offset(skip).limit(limit)


async def _set_status(db: AsyncSession, task: Task, entry: CatalogEntry) -> None:
    task.status = await db.get(Status, entry.id)
    task.status_id = entry.id


async def create_task(
    db: AsyncSession, statuses: StatusCatalog, description: Optional[str], owner: User
) -> Task:
    """Create a new task in the initial status"""
    description = _require_description(description)
    now = utcnow()
    db_task = Task(
        description=description,
        owner=owner,
        owner_id=owner.id,
        is_deleted=False,
        created_at=now,
        updated_at=now,
    )
    await _set_status(db, db_task, statuses.initial)
    db.add(db_task)
    await db.commit()
    logger.info("User %s created task %s", owner.username, db_task.id)
    return db_task


async def get_task(db: AsyncSession, task_id: int) -> Task:
    """Get a task by ID"""
    result = await db.execute(select(Task).filter(Task.id == task_id))
    task = result.scalar_one_or_none()
    if task is None:
        raise TaskNotFoundError(f"Task with ID {task_id} does not exist")
    return task


async def list_active_tasks(
    db: AsyncSession, owner_id: Optional[int] = None, skip: int = 0, limit: int = 100
) -> List[Task]:
    """Tasks that have not been soft-deleted, optionally for a single owner"""
    query = select(Task).filter(Task.is_deleted.is_(False))
    if owner_id is not None:
        query = query.filter(Task.owner_id == owner_id)
    result = await db.execute(_newest_first(query, skip, limit))
    return result.scalars().all()


async def list_tasks_by_owner(
    db: AsyncSession, owner_id: int, skip: int = 0, limit: int = 100
) -> List[Task]:
    query = select(Task).filter(Task.owner_id == owner_id)
    result = await db.execute(_newest_first(query, skip, limit))
    return result.scalars().all()


async def list_tasks_by_status_name(
    db: AsyncSession, statuses: StatusCatalog, name: str, skip: int = 0, limit: int = 100
) -> List[Task]:
    entry = _require_valid_status_name(statuses, name)
    query = select(Task).filter(Task.status_id == entry.id)
    result = await db.execute(_newest_first(query, skip, limit))
    return result.scalars().all()


async def list_tasks_by_owner_and_status_name(
    db: AsyncSession,
    statuses: StatusCatalog,
    owner_id: int,
    name: str,
    skip: int = 0,
    limit: int = 100,
) -> List[Task]:
    entry = _require_valid_status_name(statuses, name)
    query = select(Task).filter(Task.owner_id == owner_id, Task.status_id == entry.id)
    result = await db.execute(_newest_first(query, skip, limit))
    return result.scalars().all()


def _check_status_target(statuses: StatusCatalog, task: Task, target: StatusRef) -> CatalogEntry:
    _require_not_deleted(task)
    entry = _resolve_status(statuses, target)
    if entry.id == statuses.deleted.id:
        raise InvalidArgumentError(
            "Status cannot be set to DELETED. Use the delete operation instead"
        )
    return entry


async def _apply_status(db: AsyncSession, statuses: StatusCatalog, task: Task, entry: CatalogEntry) -> None:
    await _set_status(db, task, entry)
    if entry.id == statuses.done.id:
        task.completed_at = utcnow()


async def update_status(
    db: AsyncSession, statuses: StatusCatalog, task: Task, target: StatusRef
) -> Task:
    """Move a task to another (non-deleted) status, given by name or id"""
    entry = _check_status_target(statuses, task, target)
    await _apply_status(db, statuses, task, entry)
    task.updated_at = utcnow()
    await db.commit()
    logger.info("Task %s moved to %s", task.id, entry.name)
    return task


async def update_description(db: AsyncSession, task: Task, description: Optional[str]) -> Task:
    _require_not_deleted(task)
    task.description = _require_description(description)
    task.updated_at = utcnow()
    await db.commit()
    logger.info("Task %s description updated", task.id)
    return task


async def update_task(
    db: AsyncSession,
    statuses: StatusCatalog,
    task: Task,
    status: Optional[StatusRef] = None,
    description: Optional[str] = None,
) -> Task:
    """Apply a partial update; every field is validated before anything changes"""
    _require_not_deleted(task)
    entry = _check_status_target(statuses, task, status) if status is not None else None
    if description is not None:
        description = _require_description(description)
    if entry is None and description is None:
        raise InvalidArgumentError("Nothing to update. Provide a status or a description")

    if entry is not None:
        await _apply_status(db, statuses, task, entry)
    if description is not None:
        task.description = description
    task.updated_at = utcnow()
    await db.commit()
    logger.info("Task %s updated", task.id)
    return task


async def mark_deleted(db: AsyncSession, statuses: StatusCatalog, task: Task) -> Task:
    """Soft-delete a task; deleting twice is rejected"""
    _require_not_deleted(task)
    now = utcnow()
    await _set_status(db, task, statuses.deleted)
    task.deleted_at = now
    task.is_deleted = True
    task.updated_at = now
    await db.commit()
    logger.info("Task %s has been marked as \"DELETED\"", task.id)
    return task


def is_owner(task: Task, user: User) -> bool:
    return task.owner_id == user.id
