import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from ..auth import get_current_user, get_policy, get_statuses
from ..catalogs import StatusCatalog
from ..crud import tasks as crud
from ..db import get_db
from ..models import User
from ..policy import AccessPolicy, Action
from ..schemas import TaskCreate, TaskResponse, TaskUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=List[TaskResponse])
async def get_tasks(
    status: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    statuses: StatusCatalog = Depends(get_statuses),
    policy: AccessPolicy = Depends(get_policy),
    current_user: User = Depends(get_current_user),
):
    """List the current user's active tasks, or their tasks in a given status"""
    policy.enforce(current_user, Action.LIST_TASKS)
    if status:
        tasks = await crud.list_tasks_by_owner_and_status_name(
            db, statuses, current_user.id, status, skip=skip, limit=limit
        )
    else:
        tasks = await crud.list_active_tasks(db, owner_id=current_user.id, skip=skip, limit=limit)

    if not tasks:
        return Response(status_code=204)
    return [TaskResponse.model_validate(task) for task in tasks]


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    policy: AccessPolicy = Depends(get_policy),
    current_user: User = Depends(get_current_user),
):
    """Get a specific task by ID"""
    task = await crud.get_task(db, task_id)
    policy.enforce(current_user, Action.READ_TASK, task)
    return TaskResponse.model_validate(task)


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task(
    task: TaskCreate,
    db: AsyncSession = Depends(get_db),
    statuses: StatusCatalog = Depends(get_statuses),
    policy: AccessPolicy = Depends(get_policy),
    current_user: User = Depends(get_current_user),
):
    """Create a new task owned by the current user"""
    policy.enforce(current_user, Action.CREATE_TASK)
    db_task = await crud.create_task(db, statuses, task.description, current_user)
    return TaskResponse.model_validate(db_task)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    task_update: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    statuses: StatusCatalog = Depends(get_statuses),
    policy: AccessPolicy = Depends(get_policy),
    current_user: User = Depends(get_current_user),
):
    """Update the status and/or description of a task"""
    task = await crud.get_task(db, task_id)
    policy.enforce(current_user, Action.UPDATE_TASK, task)
    task = await crud.update_task(
        db,
        statuses,
        task,
        status=task_update.status,
        description=task_update.description,
    )
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}", response_model=TaskResponse)
async def delete_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    statuses: StatusCatalog = Depends(get_statuses),
    policy: AccessPolicy = Depends(get_policy),
    current_user: User = Depends(get_current_user),
):
    """Soft-delete a task"""
    task = await crud.get_task(db, task_id)
    policy.enforce(current_user, Action.DELETE_TASK, task)
    task = await crud.mark_deleted(db, statuses, task)
    return TaskResponse.model_validate(task)
