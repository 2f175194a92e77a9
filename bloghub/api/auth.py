from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from bloghub.config import Settings
from bloghub.database import get_db
from bloghub.dependencies import (
    ACCESS_TOKEN_COOKIE,
    Claims,
    get_current_claims,
    get_hasher,
    get_settings,
    get_tokens,
)
from bloghub.errors import BadRequest
from bloghub.services.auth import login_user, register_user
from bloghub.services.security import PasswordHasher, TokenIssuer

router = APIRouter(prefix="/auth", tags=["auth"])

SESSION_MAX_AGE = 24 * 60 * 60  # seconds


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    username: str = Field(min_length=1, max_length=100)
    name: Optional[str] = None
    bio: Optional[str] = None


class LoginRequest(BaseModel):
    username: str
    password: str


def set_session_cookie(response: Response, token: str, settings: Settings):
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        token,
        max_age=SESSION_MAX_AGE,
        httponly=True,
        secure=settings.is_production,
        samesite="none" if settings.is_production else "lax",
    )


def clear_session_cookie(response: Response, settings: Settings):
    response.delete_cookie(
        ACCESS_TOKEN_COOKIE,
        httponly=True,
        secure=settings.is_production,
        samesite="none" if settings.is_production else "lax",
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
):
    return register_user(db, hasher, data.model_dump())


@router.post("/login")
def login(
    data: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
    tokens: TokenIssuer = Depends(get_tokens),
    settings: Settings = Depends(get_settings),
):
    """Verify credentials and hand the session token back as an HTTP-only cookie."""
    result = login_user(db, hasher, tokens, data.username, data.password)
    if not result.get("access_token"):
        raise BadRequest("Failed to issue token")

    set_session_cookie(response, result["access_token"], settings)
    return {"role": result["role"], "name": result["name"]}


@router.get("/protected")
def get_me(claims: Claims = Depends(get_current_claims)):
    return claims.model_dump()


@router.post("/logout")
def logout(
    response: Response,
    claims: Claims = Depends(get_current_claims),
    settings: Settings = Depends(get_settings),
):
    clear_session_cookie(response, settings)
    return {"message": "Logged out successfully"}
