import logging

from sqlalchemy.orm import Session

from bloghub.errors import BadRequest
from bloghub.models.user import User, ROLE_USER
from bloghub.services.security import PasswordHasher, TokenIssuer
from bloghub.services.users import create_user

logger = logging.getLogger(__name__)


def sanitize_user(user: User) -> dict:
    return {"id": user.id, "email": user.email, "name": user.name, "role": user.role}


def register_user(db: Session, hasher: PasswordHasher, data: dict) -> dict:
    """Self-service signup. Always creates a plain ``user``."""
    data = {k: v for k, v in data.items() if k != "role"}
    user = create_user(db, hasher, role=ROLE_USER, **data)
    return sanitize_user(user)


def login_user(
    db: Session,
    hasher: PasswordHasher,
    tokens: TokenIssuer,
    username: str,
    password: str,
) -> dict:
    user = db.query(User).filter(User.username == username).first()
    # same answer for unknown user and wrong password
    if not user or not hasher.verify(password, user.password):
        logger.info("Failed login for %s", username)
        raise BadRequest("Invalid credentials")

    access_token = tokens.sign(sanitize_user(user))
    logger.info("User %s logged in", user.id)
    return {"access_token": access_token, "role": user.role, "name": user.name}
