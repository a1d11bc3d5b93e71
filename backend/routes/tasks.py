import logging

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

import schemas
from auth.dependencies import get_current_principal
from database import get_db
from services import tags as tag_service
from services import tasks as task_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def _task_body(task) -> schemas.TaskWithSubtasks:
    return schemas.TaskWithSubtasks.model_validate(task)


# Static paths are declared before /{task_id} so they are matched first

@router.get("/tags/all", response_model=schemas.TagsResponse)
def get_all_tags(
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Every tag in use across all lists."""
    logger.debug(f"User {principal.id} listing tags")
    return {"tags": tag_service.list_tags(db)}


@router.get("/list/{list_id}", response_model=schemas.TasksResponse)
def get_tasks_for_list(
    list_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    tasks = task_service.list_tasks(db, principal, list_id)
    return {"tasks": [schemas.Task.model_validate(task) for task in tasks]}


@router.put("/subtasks/{subtask_id}", response_model=schemas.SubtaskMutationResponse)
def update_subtask(
    payload: schemas.SubtaskUpdate,
    subtask_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    subtask = task_service.update_subtask(db, principal, subtask_id, payload)
    return {"message": "Subtask updated successfully", "subtask": subtask}


@router.patch("/subtasks/{subtask_id}/toggle", response_model=schemas.SubtaskMutationResponse)
def toggle_subtask(
    subtask_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    subtask = task_service.toggle_subtask(db, principal, subtask_id)
    return {"message": "Subtask completion toggled successfully", "subtask": subtask}


@router.delete("/subtasks/{subtask_id}", response_model=schemas.MessageResponse)
def delete_subtask(
    subtask_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    task_service.delete_subtask(db, principal, subtask_id)
    return {"message": "Subtask deleted successfully"}


@router.post("", response_model=schemas.TaskMutationResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: schemas.TaskCreate,
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Create a task, with its tags, in a list the user can edit."""
    task = task_service.create_task(db, principal, payload)
    return {"message": "Task created successfully", "task": _task_body(task)}


@router.get("/{task_id}", response_model=schemas.TaskResponse)
def get_task(
    task_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return {"task": _task_body(task_service.get_task(db, principal, task_id))}


@router.put("/{task_id}", response_model=schemas.TaskMutationResponse)
def update_task(
    payload: schemas.TaskUpdate,
    task_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Update only the supplied fields; a tags list replaces the task's tags."""
    task = task_service.update_task(db, principal, task_id, payload)
    return {"message": "Task updated successfully", "task": _task_body(task)}


@router.patch("/{task_id}/toggle", response_model=schemas.TaskMutationResponse)
def toggle_task(
    task_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    task = task_service.toggle_task(db, principal, task_id)
    return {"message": "Task completion toggled successfully", "task": _task_body(task)}


@router.delete("/{task_id}", response_model=schemas.MessageResponse)
def delete_task(
    task_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    task_service.delete_task(db, principal, task_id)
    return {"message": "Task deleted successfully"}


@router.post(
    "/{task_id}/subtasks",
    response_model=schemas.SubtaskMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_subtask(
    payload: schemas.SubtaskCreate,
    task_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    subtask = task_service.create_subtask(db, principal, task_id, payload)
    return {"message": "Subtask created successfully", "subtask": subtask}
