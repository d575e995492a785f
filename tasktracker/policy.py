"""Authorization decisions for every API operation.

All ownership and role checks go through ``AccessPolicy``; handlers never
compare ids or role names themselves.
"""
import logging
from enum import Enum
from typing import Optional, Union
from .crud.users import is_admin
from .errors import UnauthorizedError
from .models import Task, User

logger = logging.getLogger(__name__)


class Action(str, Enum):
    REGISTER = "register"
    LIST_USERS = "list_users"
    VIEW_USER = "view_user"
    UPDATE_SELF = "update_self"
    DELETE_USER = "delete_user"
    MANAGE_ROLES = "manage_roles"
    CREATE_TASK = "create_task"
    LIST_TASKS = "list_tasks"
    READ_TASK = "read_task"
    UPDATE_TASK = "update_task"
    DELETE_TASK = "delete_task"


ADMIN_ONLY = {Action.LIST_USERS, Action.DELETE_USER, Action.MANAGE_ROLES}
SELF_OR_ADMIN = {Action.VIEW_USER}
OWNER_ONLY = {Action.READ_TASK, Action.UPDATE_TASK, Action.DELETE_TASK}
AUTHENTICATED = {Action.UPDATE_SELF, Action.CREATE_TASK, Action.LIST_TASKS}

# A user may also be described by its id alone
Resource = Union[User, Task, int, None]


class AccessPolicy:
    def is_allowed(self, principal: Optional[User], action: Action, resource: Resource = None) -> bool:
        if action == Action.REGISTER:
            return True
        if principal is None:
            return False
        if action in AUTHENTICATED:
            return True
        if action in ADMIN_ONLY:
            return is_admin(principal)
        if action in SELF_OR_ADMIN:
            target_id = resource.id if isinstance(resource, User) else resource
            return target_id == principal.id or is_admin(principal)
        if action in OWNER_ONLY:
            # Tasks have no admin override
            return isinstance(resource, Task) and resource.owner_id == principal.id
        return False

    def enforce(self, principal: Optional[User], action: Action, resource: Resource = None) -> None:
        """Raise UnauthorizedError unless the principal may perform the action"""
        if self.is_allowed(principal, action, resource):
            return
        who = principal.username if principal is not None else "anonymous"
        logger.warning("%s is not authorized to %s", who, action.value.replace("_", " "))
        raise UnauthorizedError(f"Current user is not authorized to {action.value.replace('_', ' ')}")
