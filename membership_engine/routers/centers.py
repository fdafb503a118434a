from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from membership_engine.core.errors import MembershipError
from membership_engine.core.router_guard import http_error_for, require_actor
from membership_engine.db import get_db
from membership_engine.models import User
from membership_engine.route_logging import EndpointNameRoute
from membership_engine.schemas import (
    CenterCreateRequest,
    CenterRenameRequest,
    CodePropagateRequest,
    ImageUrlRequest,
    OwnCenterCreateRequest,
)
from membership_engine.services.access_control_service import AccessTarget, Action, require_authorized
from membership_engine.services.center_registry_service import (
    create_center,
    delete_center,
    get_center,
    list_centers,
    rename_center,
    rotate_access_code,
    serialize_center,
    set_image_url,
    toggle_pinned,
)
from membership_engine.services.consistency_coordinator import (
    audit_center,
    create_center_for_user,
    propagate_code_change,
    repair_center,
)
from membership_engine.services.membership_directory_service import find_by_organization, serialize_user

router = APIRouter(prefix='/api/centers', tags=['Centers'], route_class=EndpointNameRoute)


@router.get('')
def list_centers_api(actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    return [serialize_center(row) for row in list_centers(db)]


@router.post('')
def create_center_api(payload: CenterCreateRequest, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        return serialize_center(create_center(db, payload.name, actor=actor))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.post('/own')
def create_own_center_api(
    payload: OwnCenterCreateRequest,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        center = create_center_for_user(
            db,
            actor.id,
            payload.center_name,
            payload.course,
            payload.letter,
            actor=actor,
        )
        return serialize_center(center)
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.get('/{center_id}')
def get_center_api(center_id: str, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        return serialize_center(get_center(db, center_id))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.patch('/{center_id}/name')
def rename_center_api(
    center_id: str,
    payload: CenterRenameRequest,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        return serialize_center(rename_center(db, center_id, payload.name, actor=actor))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.put('/{center_id}/image')
def set_center_image_api(
    center_id: str,
    payload: ImageUrlRequest,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        return serialize_center(set_image_url(db, center_id, payload.image_url, actor=actor))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.post('/{center_id}/pin')
def toggle_center_pin_api(center_id: str, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        return {'ok': True, 'isPinned': toggle_pinned(db, center_id, actor=actor)}
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.post('/{center_id}/access-code/rotate')
def rotate_access_code_api(center_id: str, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        return {'ok': True, 'code': rotate_access_code(db, center_id, actor=actor)}
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.post('/{center_id}/access-code/propagate')
def propagate_access_code_api(
    center_id: str,
    payload: CodePropagateRequest,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        return propagate_code_change(db, center_id, payload.new_code, actor=actor).as_dict()
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.delete('/{center_id}')
def delete_center_api(
    center_id: str,
    detach_members: bool | None = None,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        delete_center(db, center_id, detach_members=detach_members, actor=actor)
    except MembershipError as exc:
        raise http_error_for(exc) from exc
    return {'ok': True}


@router.get('/{center_id}/members')
def list_center_members_api(center_id: str, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        require_authorized(actor, Action.VIEW_MEMBERS, AccessTarget(center_id=center_id))
        get_center(db, center_id)
    except MembershipError as exc:
        raise http_error_for(exc) from exc
    return [serialize_user(row) for row in find_by_organization(db, center_id)]


@router.get('/{center_id}/audit')
def audit_center_api(center_id: str, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        violations = audit_center(db, center_id, actor=actor)
    except MembershipError as exc:
        raise http_error_for(exc) from exc
    return {'centerId': center_id, 'consistent': not violations, 'violations': violations}


@router.post('/{center_id}/repair')
def repair_center_api(center_id: str, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        return repair_center(db, center_id, actor=actor).as_dict()
    except MembershipError as exc:
        raise http_error_for(exc) from exc
