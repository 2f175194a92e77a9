from typing import Literal, Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from bloghub.api.auth import clear_session_cookie
from bloghub.config import Settings
from bloghub.database import get_db
from bloghub.dependencies import Claims, get_current_claims, get_hasher, get_settings
from bloghub.services.policy import Action, authorize
from bloghub.services.security import PasswordHasher
from bloghub.services.users import (
    create_user,
    delete_user,
    get_user,
    list_users,
    serialize_user,
    update_user,
)

router = APIRouter(prefix="/user", tags=["users"])


class CreateUserRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    username: str = Field(min_length=1, max_length=100)
    name: Optional[str] = None
    bio: Optional[str] = None
    role: Literal["user", "admin"] = "user"


class UpdateUserRequest(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8)
    username: Optional[str] = Field(default=None, min_length=1, max_length=100)
    name: Optional[str] = None
    bio: Optional[str] = None


@router.post("", status_code=status.HTTP_201_CREATED)
def create(
    data: CreateUserRequest,
    claims: Claims = Depends(get_current_claims),
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
):
    """Create an account of any role - admin only"""
    authorize(Action.CREATE_USER, None, claims.id, claims.role, "Only admin can create new users with this route")
    return serialize_user(create_user(db, hasher, **data.model_dump()))


@router.get("")
def find_all(claims: Claims = Depends(get_current_claims), db: Session = Depends(get_db)):
    authorize(Action.LIST_USERS, None, claims.id, claims.role, "Only admin can access all users")
    return [serialize_user(u) for u in list_users(db)]


@router.get("/{user_id}")
def find_one(user_id: int, claims: Claims = Depends(get_current_claims), db: Session = Depends(get_db)):
    return serialize_user(get_user(db, user_id))


@router.patch("/{user_id}")
def update(
    user_id: int,
    data: UpdateUserRequest,
    claims: Claims = Depends(get_current_claims),
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
):
    authorize(Action.UPDATE_PROFILE, user_id, claims.id, claims.role, "You can only update your own profile")
    return serialize_user(update_user(db, hasher, user_id, data.model_dump(exclude_unset=True)))


@router.delete("/{user_id}")
def remove(
    user_id: int,
    response: Response,
    claims: Claims = Depends(get_current_claims),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Delete an account. Non-admins can only delete themselves. Deleting your own account ends the session."""
    authorize(Action.DELETE_PROFILE, user_id, claims.id, claims.role, "You can only delete your own profile")
    deleted = delete_user(db, user_id)
    if claims.id == user_id:
        clear_session_cookie(response, settings)
    return deleted
