import logging

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

import schemas
from auth.dependencies import get_current_principal
from database import get_db
from services import lists as list_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/lists", tags=["lists"])


@router.get("", response_model=schemas.ListsResponse)
def get_lists(
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Lists the current user owns or is a member of."""
    lists = list_service.list_accessible_lists(db, principal)
    logger.info(f"User {principal.id} retrieved {len(lists)} lists")
    return {"lists": lists}


@router.post("", response_model=schemas.ListMutationResponse, status_code=status.HTTP_201_CREATED)
def create_list(
    payload: schemas.TodoListCreate,
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Create a list owned by the current user."""
    todo_list = list_service.create_list(db, principal, payload.name)
    return {"message": "List created successfully", "list": todo_list}


@router.get("/{list_id}", response_model=schemas.ListResponse)
def get_list(
    list_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Get a list with its tasks, subtasks and tags."""
    return {"list": list_service.get_list_with_contents(db, principal, list_id)}


@router.put("/{list_id}", response_model=schemas.ListMutationResponse)
def update_list(
    payload: schemas.TodoListUpdate,
    list_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Rename a list (owner or admin)."""
    todo_list = list_service.rename_list(db, principal, list_id, payload.name)
    return {"message": "List updated successfully", "list": todo_list}


@router.delete("/{list_id}", response_model=schemas.MessageResponse)
def delete_list(
    list_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Delete a list and everything in it (owner only)."""
    list_service.delete_list(db, principal, list_id)
    return {"message": "List deleted successfully"}
