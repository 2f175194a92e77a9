# bloghub/dependencies.py
import logging
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from bloghub.config import Settings
from bloghub.errors import Unauthorized
from bloghub.models.user import ROLE_USER
from bloghub.services.security import PasswordHasher, TokenIssuer

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "access_token"

# Security scheme; a missing header falls back to the session cookie
bearer = HTTPBearer(auto_error=False, description="Session token (JWT)")


class Claims(BaseModel):
    """The caller, as decoded from a verified session token."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    # older tokens carry ``userId``; prefer it when both are present
    id: int = Field(validation_alias=AliasChoices("userId", "id"))
    email: str
    name: Optional[str] = None
    role: str = ROLE_USER


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_tokens(request: Request) -> TokenIssuer:
    return request.app.state.tokens


def get_current_claims(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    tokens: TokenIssuer = Depends(get_tokens),
) -> Claims:
    token = credentials.credentials if credentials else request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token:
        raise Unauthorized("Not authenticated")

    try:
        payload = tokens.verify(token)
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except jwt.InvalidTokenError as e:
        logger.info("Token validation failed: %s", e)
        raise Unauthorized("Invalid token")

    try:
        return Claims.model_validate(payload)
    except ValidationError as e:
        logger.info("Token carried malformed claims: %s", e)
        raise Unauthorized("Invalid token")
