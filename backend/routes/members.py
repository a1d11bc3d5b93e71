import logging

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

import schemas
from auth.dependencies import get_current_principal
from database import get_db
from services import members as member_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/lists", tags=["members"])


@router.get("/{list_id}/members", response_model=schemas.MembersResponse)
def get_members(
    list_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Owner and members of a list."""
    return {"members": member_service.list_members(db, principal, list_id)}


@router.post(
    "/{list_id}/members",
    response_model=schemas.MemberMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_member(
    payload: schemas.ListMemberCreate,
    list_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Share a list with a registered user by email."""
    member = member_service.add_member(db, principal, list_id, payload.email, payload.role)
    return {"message": "Member added successfully", "member": member}


@router.put("/{list_id}/members/{user_id}", response_model=schemas.MemberMutationResponse)
def update_member_role(
    payload: schemas.ListMemberUpdate,
    list_id: int = Path(..., ge=1),
    user_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    member = member_service.update_member_role(db, principal, list_id, user_id, payload.role)
    return {"message": "Member role updated successfully", "member": member}


@router.delete("/{list_id}/members/{user_id}", response_model=schemas.MessageResponse)
def remove_member(
    list_id: int = Path(..., ge=1),
    user_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    member_service.remove_member(db, principal, list_id, user_id)
    return {"message": "Member removed successfully"}


@router.delete("/{list_id}/leave", response_model=schemas.MessageResponse)
def leave_list(
    list_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Leave a shared list (not available to the owner)."""
    member_service.leave_list(db, principal, list_id)
    return {"message": "Successfully left the list"}


@router.put("/{list_id}/transfer-ownership", response_model=schemas.OwnershipTransferResponse)
def transfer_ownership(
    payload: schemas.OwnershipTransfer,
    list_id: int = Path(..., ge=1),
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Hand the list to another user; the previous owner stays on as admin."""
    new_owner, todo_list = member_service.transfer_ownership(db, principal, list_id, payload.email)
    return {
        "message": "Ownership transferred successfully",
        "new_owner": schemas.UserSummary.model_validate(new_owner),
        "list": todo_list,
    }
