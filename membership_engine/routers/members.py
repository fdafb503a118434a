from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from membership_engine.core.errors import MembershipError
from membership_engine.core.roles import format_role, parse_role
from membership_engine.core.router_guard import http_error_for, require_actor
from membership_engine.db import get_db
from membership_engine.models import User
from membership_engine.route_logging import EndpointNameRoute
from membership_engine.schemas import (
    JoinCenterRequest,
    MoveToCenterRequest,
    MoveToClassRequest,
    RoleChangeRequest,
    UserRegisterRequest,
)
from membership_engine.services.access_control_service import AccessTarget, Action, require_authorized
from membership_engine.services.consistency_coordinator import (
    ban_user,
    change_role,
    join_center,
    kick_from_center,
    leave_center,
    move_user_to_center,
    move_user_to_class,
    unban_user,
)
from membership_engine.services.membership_directory_service import get_user, register_user, serialize_user

router = APIRouter(prefix='/api/users', tags=['Members'], route_class=EndpointNameRoute)


@router.post('')
def register_user_api(payload: UserRegisterRequest, db: Session = Depends(get_db)):
    try:
        return serialize_user(register_user(db, name=payload.name, email=payload.email))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.get('/me')
def read_me_api(actor: User = Depends(require_actor)):
    return serialize_user(actor)


@router.get('/{user_id}')
def read_user_api(user_id: str, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        target = get_user(db, user_id)
        if target.id != actor.id:
            require_authorized(actor, Action.VIEW_MEMBERS, AccessTarget(user=target))
    except MembershipError as exc:
        raise http_error_for(exc) from exc
    return serialize_user(target)


@router.post('/{user_id}/move-class')
def move_user_to_class_api(
    user_id: str,
    payload: MoveToClassRequest,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        return serialize_user(move_user_to_class(db, user_id, payload.center_id, payload.class_name, actor=actor))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.post('/{user_id}/move-center')
def move_user_to_center_api(
    user_id: str,
    payload: MoveToCenterRequest,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        return serialize_user(move_user_to_center(db, user_id, payload.access_code, actor=actor))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.post('/{user_id}/join')
def join_center_api(
    user_id: str,
    payload: JoinCenterRequest,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        return serialize_user(
            join_center(db, user_id, payload.access_code, class_name=payload.class_name, actor=actor)
        )
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.post('/{user_id}/leave')
def leave_center_api(user_id: str, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        return serialize_user(leave_center(db, user_id, actor=actor))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.post('/{user_id}/kick')
def kick_user_api(user_id: str, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        return serialize_user(kick_from_center(db, user_id, actor=actor))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.put('/{user_id}/role')
def change_role_api(
    user_id: str,
    payload: RoleChangeRequest,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    requested = parse_role(payload.role)
    # Unknown strings parse as Student; reject them instead of silently demoting.
    if format_role(requested).lower() != payload.role.strip().lower():
        raise HTTPException(status_code=400, detail=f'Unknown role: {payload.role}')
    try:
        return serialize_user(change_role(db, actor, user_id, requested))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.post('/{user_id}/ban')
def ban_user_api(user_id: str, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        return serialize_user(ban_user(db, user_id, actor=actor))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.post('/{user_id}/unban')
def unban_user_api(user_id: str, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        return serialize_user(unban_user(db, user_id, actor=actor))
    except MembershipError as exc:
        raise http_error_for(exc) from exc
