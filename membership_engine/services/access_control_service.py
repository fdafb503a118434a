"""Pure role-hierarchy checks.

``authorize`` never touches the database: it only looks at the actor, the
action and whatever the caller already loaded into ``AccessTarget``. Any
combination it does not explicitly allow is denied.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from membership_engine.core.class_names import is_member_of_class
from membership_engine.core.errors import AccessDeniedError
from membership_engine.core.roles import (
    CenterAdmin,
    ClassAdmin,
    GlobalAdmin,
    Role,
    Student,
    parse_role,
    role_rank,
)
from membership_engine.models import User


class Action(str, Enum):
    CREATE_CENTER = 'create_center'
    EDIT_CENTER = 'edit_center'
    PIN_CENTER = 'pin_center'
    ROTATE_ACCESS_CODE = 'rotate_access_code'
    DELETE_CENTER = 'delete_center'
    ADD_CLASS = 'add_class'
    EDIT_CLASS = 'edit_class'
    DELETE_CLASS = 'delete_class'
    MOVE_USER_TO_CLASS = 'move_user_to_class'
    MOVE_USER_TO_CENTER = 'move_user_to_center'
    CHANGE_ROLE = 'change_role'
    KICK_USER = 'kick_user'
    BAN_USER = 'ban_user'
    VIEW_MEMBERS = 'view_members'
    AUDIT_CENTER = 'audit_center'
    RESUME_CASCADE = 'resume_cascade'
    JOIN_CENTER = 'join_center'
    LEAVE_CENTER = 'leave_center'


SELF_SERVICE_ACTIONS = frozenset({Action.JOIN_CENTER, Action.LEAVE_CENTER})

CENTER_ADMIN_ACTIONS = frozenset(
    {
        Action.EDIT_CENTER,
        Action.ROTATE_ACCESS_CODE,
        Action.ADD_CLASS,
        Action.EDIT_CLASS,
        Action.DELETE_CLASS,
        Action.MOVE_USER_TO_CLASS,
        Action.MOVE_USER_TO_CENTER,
        Action.CHANGE_ROLE,
        Action.KICK_USER,
        Action.BAN_USER,
        Action.VIEW_MEMBERS,
        Action.AUDIT_CENTER,
        Action.RESUME_CASCADE,
    }
)

CLASS_ADMIN_CLASS_ACTIONS = frozenset({Action.EDIT_CLASS, Action.VIEW_MEMBERS})
CLASS_ADMIN_USER_ACTIONS = frozenset(
    {
        Action.MOVE_USER_TO_CLASS,
        Action.KICK_USER,
        Action.BAN_USER,
        Action.CHANGE_ROLE,
    }
)


@dataclass(frozen=True)
class AccessTarget:
    center_id: str = ''
    class_name: str = ''
    user: User | None = None
    # Requested role for CHANGE_ROLE.
    role: Role | None = None

    def resolved_center_id(self) -> str:
        if self.center_id:
            return self.center_id
        if self.user is not None:
            return str(self.user.organization_id or '')
        return ''


def _same_center(actor: User, target: AccessTarget) -> bool:
    actor_center = str(actor.organization_id or '')
    target_center = target.resolved_center_id()
    return bool(actor_center) and actor_center == target_center


def _target_user_in_center(actor: User, target: AccessTarget) -> bool:
    if target.user is None:
        return True
    return str(target.user.organization_id or '') == str(actor.organization_id or '')


def _grant_allowed(actor_role: Role, target: AccessTarget) -> bool:
    if target.role is None:
        return False
    return role_rank(target.role) < role_rank(actor_role)


def _center_admin_allows(actor: User, action: Action, target: AccessTarget) -> bool:
    if action not in CENTER_ADMIN_ACTIONS:
        return False
    if not _same_center(actor, target) or not _target_user_in_center(actor, target):
        return False
    if target.user is not None and isinstance(parse_role(target.user.role), GlobalAdmin):
        return False
    if action == Action.CHANGE_ROLE:
        return _grant_allowed(parse_role(actor.role), target)
    return True


def _class_admin_allows(actor: User, role: ClassAdmin, action: Action, target: AccessTarget) -> bool:
    if not _same_center(actor, target) or not _target_user_in_center(actor, target):
        return False
    if action in CLASS_ADMIN_CLASS_ACTIONS and target.user is None:
        return role.administers(target.class_name)
    if action not in CLASS_ADMIN_USER_ACTIONS or target.user is None:
        return False
    if not isinstance(parse_role(target.user.role), Student):
        return False
    if not is_member_of_class(target.user.course, target.user.class_name, role.class_name):
        return False
    if action == Action.CHANGE_ROLE:
        return _grant_allowed(role, target)
    return True


def authorize(actor: User | None, action: Action, target: AccessTarget | None = None) -> bool:
    target = target or AccessTarget()
    if actor is None or actor.is_banned:
        return False
    if action in SELF_SERVICE_ACTIONS:
        return target.user is not None and target.user.id == actor.id
    role = parse_role(actor.role)
    if isinstance(role, GlobalAdmin):
        return True
    if isinstance(role, CenterAdmin):
        return _center_admin_allows(actor, action, target)
    if isinstance(role, ClassAdmin):
        return _class_admin_allows(actor, role, action, target)
    if isinstance(role, Student):
        return False
    return False


def require_authorized(actor: User | None, action: Action, target: AccessTarget | None = None) -> None:
    """Raise ``AccessDeniedError`` unless ``actor`` may run ``action``.

    ``actor=None`` means trusted system code (scripts, resume jobs) and is
    let through; HTTP callers always pass the resolved actor.
    """
    if actor is None:
        return
    if not authorize(actor, action, target):
        raise AccessDeniedError(action.value, actor_id=str(actor.id))
