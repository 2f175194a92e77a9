import logging
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bloghub.errors import Conflict, NotFound, raise_store_error
from bloghub.models.user import User, ROLE_USER
from bloghub.services.security import PasswordHasher

logger = logging.getLogger(__name__)

USER_CONFLICT = "Email or username already registered"


def serialize_user(user: User) -> dict:
    """Public view of a user; the password digest never leaves the service."""
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "name": user.name,
        "bio": user.bio,
        "role": user.role,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def find_conflicting_user(
    db: Session,
    email: Optional[str] = None,
    username: Optional[str] = None,
    exclude_id: Optional[int] = None,
) -> Optional[User]:
    filters = []
    if email:
        filters.append(User.email == email)
    if username:
        filters.append(User.username == username)
    if not filters:
        return None

    query = db.query(User).filter(or_(*filters))
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first()


def create_user(
    db: Session,
    hasher: PasswordHasher,
    email: str,
    username: str,
    password: str,
    name: Optional[str] = None,
    bio: Optional[str] = None,
    role: str = ROLE_USER,
) -> User:
    if find_conflicting_user(db, email=email, username=username):
        raise Conflict(USER_CONFLICT)

    user = User(
        email=email,
        username=username,
        password=hasher.hash(password),
        name=name,
        bio=bio or "",
        role=role,
    )
    db.add(user)
    try:
        db.commit()
    except SQLAlchemyError as e:
        raise_store_error(db, e, USER_CONFLICT)
    db.refresh(user)

    logger.info("Created user %s (%s) with role %s", user.id, user.username, user.role)
    return user


def list_users(db: Session):
    return db.query(User).order_by(User.id).all()


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound(f"User with id {user_id} not found")
    return user


def update_user(db: Session, hasher: PasswordHasher, user_id: int, changes: dict) -> User:
    """Apply a partial profile update. The role is not part of a profile."""
    user = get_user(db, user_id)

    email = changes.get("email")
    username = changes.get("username")
    if (email or username) and find_conflicting_user(db, email, username, exclude_id=user_id):
        raise Conflict(USER_CONFLICT)

    if email:
        user.email = email
    if username:
        user.username = username
    if changes.get("password"):
        user.password = hasher.hash(changes["password"])
    if "name" in changes:
        user.name = changes["name"]
    if "bio" in changes:
        user.bio = changes["bio"] or ""

    try:
        db.commit()
    except SQLAlchemyError as e:
        raise_store_error(db, e, USER_CONFLICT)
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: int) -> dict:
    user = get_user(db, user_id)
    deleted = serialize_user(user)

    db.delete(user)
    try:
        db.commit()
    except SQLAlchemyError as e:
        raise_store_error(db, e)

    logger.info("Deleted user %s", user_id)
    return deleted
