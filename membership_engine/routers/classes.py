from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from membership_engine.core.errors import MembershipError
from membership_engine.core.router_guard import http_error_for, require_actor
from membership_engine.db import get_db
from membership_engine.models import User
from membership_engine.route_logging import EndpointNameRoute
from membership_engine.schemas import (
    ClassCreateRequest,
    ClassDescriptionRequest,
    ClassRenameRequest,
    ImageUrlRequest,
    StandardClassCreateRequest,
)
from membership_engine.services.access_control_service import AccessTarget, Action, require_authorized
from membership_engine.services.center_registry_service import get_center
from membership_engine.services.class_catalog_service import (
    add_class,
    add_standard_class,
    get_class,
    list_classes,
    remove_class,
    serialize_class,
    set_class_description,
    set_class_image,
    toggle_chat_enabled,
    toggle_class_pinned,
)
from membership_engine.services.consistency_coordinator import rename_class_cascade
from membership_engine.services.membership_directory_service import find_class_members, serialize_user

router = APIRouter(prefix='/api/centers/{center_id}/classes', tags=['Classes'], route_class=EndpointNameRoute)


@router.get('')
def list_classes_api(center_id: str, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        get_center(db, center_id)
    except MembershipError as exc:
        raise http_error_for(exc) from exc
    return [serialize_class(row) for row in list_classes(db, center_id)]


@router.post('')
def add_class_api(
    center_id: str,
    payload: ClassCreateRequest,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        return serialize_class(add_class(db, center_id, payload.name, kind=payload.kind, actor=actor))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.post('/standard')
def add_standard_class_api(
    center_id: str,
    payload: StandardClassCreateRequest,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        return serialize_class(add_standard_class(db, center_id, payload.course, payload.letter, actor=actor))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.patch('/{class_name}/name')
def rename_class_api(
    center_id: str,
    class_name: str,
    payload: ClassRenameRequest,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        return rename_class_cascade(db, center_id, class_name, payload.new_name, actor=actor).as_dict()
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.put('/{class_name}/image')
def set_class_image_api(
    center_id: str,
    class_name: str,
    payload: ImageUrlRequest,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        return serialize_class(set_class_image(db, center_id, class_name, payload.image_url, actor=actor))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.put('/{class_name}/description')
def set_class_description_api(
    center_id: str,
    class_name: str,
    payload: ClassDescriptionRequest,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        return serialize_class(set_class_description(db, center_id, class_name, payload.description, actor=actor))
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.post('/{class_name}/pin')
def toggle_class_pin_api(
    center_id: str,
    class_name: str,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        return {'ok': True, 'isPinned': toggle_class_pinned(db, center_id, class_name, actor=actor)}
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.post('/{class_name}/chat')
def toggle_class_chat_api(
    center_id: str,
    class_name: str,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        return {'ok': True, 'isChatEnabled': toggle_chat_enabled(db, center_id, class_name, actor=actor)}
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.delete('/{class_name}')
def remove_class_api(
    center_id: str,
    class_name: str,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        return remove_class(db, center_id, class_name, actor=actor).as_dict()
    except MembershipError as exc:
        raise http_error_for(exc) from exc


@router.get('/{class_name}/members')
def list_class_members_api(
    center_id: str,
    class_name: str,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        require_authorized(actor, Action.VIEW_MEMBERS, AccessTarget(center_id=center_id, class_name=class_name))
        class_row = get_class(db, center_id, class_name)
    except MembershipError as exc:
        raise http_error_for(exc) from exc
    return [serialize_user(row) for row in find_class_members(db, center_id, class_row.name)]
