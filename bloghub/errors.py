import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class BadRequest(HTTPException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class Unauthorized(HTTPException):
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(HTTPException):
    def __init__(self, detail: str = "Access denied"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class Conflict(HTTPException):
    def __init__(self, detail: str = "Duplicate record"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when the driver reports a unique constraint, not NOT NULL/FK/CHECK."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return code == UNIQUE_VIOLATION_SQLSTATE
    return "UNIQUE constraint failed" in str(orig)


def raise_store_error(db: Session, exc: SQLAlchemyError, conflict_detail: str = "Duplicate record"):
    """Roll back and re-raise a store failure as a client-facing error.

    Uniqueness violations become ``Conflict``; anything else the store
    rejects (missing columns, dangling foreign keys) becomes ``BadRequest``.
    """
    db.rollback()
    if isinstance(exc, IntegrityError) and is_unique_violation(exc):
        logger.warning("Uniqueness violation: %s", exc.orig)
        raise Conflict(conflict_detail) from exc
    logger.warning("Store error: %s", exc)
    raise BadRequest(str(getattr(exc, "orig", None) or exc)) from exc
