"""
Access control for posts, comments and user accounts.

``decide`` is a pure function: given what the caller wants to do, who owns
the target and who the caller is, it answers ALLOW or DENY. ``authorize``
turns a DENY into a ``Forbidden`` error. A missing caller id is not a
policy question; ``require_identity`` reports it as ``BadRequest``.
"""

import enum
import logging
from typing import Optional

from bloghub.errors import BadRequest, Forbidden
from bloghub.models.user import ROLE_ADMIN

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    READ_OWN_LIST = "read-own-list"
    UPDATE = "update"
    DELETE = "delete"
    LIKE = "like"
    COMMENT = "comment"
    RATE = "rate"
    EDIT_COMMENT = "edit-comment"
    DELETE_COMMENT = "delete-comment"
    CREATE_USER = "create-user"
    LIST_USERS = "list-users"
    UPDATE_PROFILE = "update-profile"
    DELETE_PROFILE = "delete-profile"


class Decision(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"


# Admin wins regardless of who owns the record
ADMIN_OVERRIDE = {
    Action.UPDATE,
    Action.DELETE,
    Action.EDIT_COMMENT,
    Action.DELETE_COMMENT,
    Action.CREATE_USER,
    Action.LIST_USERS,
}
OWNER_ONLY = {Action.UPDATE, Action.DELETE, Action.EDIT_COMMENT, Action.DELETE_COMMENT}
NOT_ON_OWN_POST = {Action.LIKE, Action.COMMENT, Action.RATE}
PROFILE = {Action.UPDATE_PROFILE, Action.DELETE_PROFILE}
ADMIN_ONLY = {Action.CREATE_USER, Action.LIST_USERS}


def decide(
    action: Action,
    resource_owner_id: Optional[int],
    caller_id: Optional[int],
    caller_role: Optional[str],
) -> Decision:
    is_admin = caller_role == ROLE_ADMIN

    if is_admin and action in ADMIN_OVERRIDE:
        return Decision.ALLOW

    if action in OWNER_ONLY:
        if resource_owner_id is not None and caller_id == resource_owner_id:
            return Decision.ALLOW
        return Decision.DENY

    if action in NOT_ON_OWN_POST:
        return Decision.DENY if caller_id == resource_owner_id else Decision.ALLOW

    if action in PROFILE:
        if is_admin or (caller_id is not None and caller_id == resource_owner_id):
            return Decision.ALLOW
        return Decision.DENY

    if action in ADMIN_ONLY:
        return Decision.DENY

    if action == Action.READ_OWN_LIST:
        return Decision.ALLOW

    return Decision.DENY


def require_identity(caller_id: Optional[int]) -> int:
    if caller_id is None:
        raise BadRequest("userId is required")
    return caller_id


def authorize(
    action: Action,
    resource_owner_id: Optional[int],
    caller_id: Optional[int],
    caller_role: Optional[str],
    detail: str = "Access denied",
):
    if decide(action, resource_owner_id, caller_id, caller_role) is Decision.DENY:
        logger.warning(
            "Denied %s for user %s (role=%s, owner=%s)",
            action.value, caller_id, caller_role, resource_owner_id,
        )
        raise Forbidden(detail)
