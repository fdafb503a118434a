from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from membership_engine.core.class_names import class_key, format_standard_name, is_standard_name
from membership_engine.core.errors import NotFoundError, ValidationError
from membership_engine.models import ClassDefinition, User
from membership_engine.services.access_control_service import AccessTarget, Action, require_authorized
from membership_engine.services.center_registry_service import get_center


logger = logging.getLogger(__name__)

KIND_STANDARD = 'standard'
KIND_CUSTOM = 'custom'


def find_class(db: Session, center_id: str, name: str) -> ClassDefinition | None:
    key = class_key(name)
    if not center_id or not key:
        return None
    return (
        db.query(ClassDefinition)
        .filter(ClassDefinition.center_id == str(center_id), ClassDefinition.name_key == key)
        .first()
    )


def get_class(db: Session, center_id: str, name: str) -> ClassDefinition:
    row = find_class(db, center_id, name)
    if not row:
        raise NotFoundError('Class', f'{center_id}/{name}')
    return row


def list_classes(db: Session, center_id: str) -> list[ClassDefinition]:
    return (
        db.query(ClassDefinition)
        .filter(ClassDefinition.center_id == str(center_id))
        .order_by(ClassDefinition.position.asc(), ClassDefinition.created_at.asc())
        .all()
    )


def _next_position(db: Session, center_id: str) -> int:
    current = db.query(func.max(ClassDefinition.position)).filter(ClassDefinition.center_id == str(center_id)).scalar()
    return int(current if current is not None else -1) + 1


def add_class(
    db: Session,
    center_id: str,
    name: str,
    *,
    kind: str = KIND_CUSTOM,
    actor: User | None = None,
) -> ClassDefinition:
    require_authorized(actor, Action.ADD_CLASS, AccessTarget(center_id=str(center_id)))
    clean_name = (name or '').strip()
    if not clean_name:
        raise ValidationError('Class name is required')
    if kind not in (KIND_STANDARD, KIND_CUSTOM):
        raise ValidationError(f'Unknown class kind: {kind}')
    if kind == KIND_STANDARD and not is_standard_name(clean_name):
        raise ValidationError(f'Not a standard class name: {clean_name}')
    get_center(db, center_id)
    if find_class(db, center_id, clean_name):
        raise ValidationError('duplicate')

    row = ClassDefinition(
        center_id=str(center_id),
        position=_next_position(db, center_id),
        name=clean_name,
        name_key=class_key(clean_name),
        description='',
        image_url='',
        chat_enabled=True,
        is_pinned=False,
        schedule_ref='',
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError as exc:
        # Lost a race against another insert of the same name.
        db.rollback()
        raise ValidationError('duplicate') from exc
    db.refresh(row)
    logger.info('class_added center_id=%s class=%s kind=%s', center_id, clean_name, kind)
    return row


def add_standard_class(
    db: Session,
    center_id: str,
    course: str,
    letter: str,
    *,
    actor: User | None = None,
) -> ClassDefinition:
    try:
        name = format_standard_name(course, letter)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    return add_class(db, center_id, name, kind=KIND_STANDARD, actor=actor)


def add_custom_class(db: Session, center_id: str, name: str, *, actor: User | None = None) -> ClassDefinition:
    return add_class(db, center_id, name, kind=KIND_CUSTOM, actor=actor)


def _editable_class(db: Session, center_id: str, name: str, actor: User | None) -> ClassDefinition:
    require_authorized(actor, Action.EDIT_CLASS, AccessTarget(center_id=str(center_id), class_name=name))
    return get_class(db, center_id, name)


def set_class_image(
    db: Session,
    center_id: str,
    name: str,
    image_url: str,
    *,
    actor: User | None = None,
) -> ClassDefinition:
    row = _editable_class(db, center_id, name, actor)
    row.image_url = (image_url or '').strip()
    db.commit()
    db.refresh(row)
    return row


def set_class_description(
    db: Session,
    center_id: str,
    name: str,
    description: str,
    *,
    actor: User | None = None,
) -> ClassDefinition:
    row = _editable_class(db, center_id, name, actor)
    row.description = (description or '').strip()
    db.commit()
    db.refresh(row)
    return row


def toggle_class_pinned(db: Session, center_id: str, name: str, *, actor: User | None = None) -> bool:
    row = _editable_class(db, center_id, name, actor)
    row.is_pinned = not bool(row.is_pinned)
    db.commit()
    return bool(row.is_pinned)


def toggle_chat_enabled(db: Session, center_id: str, name: str, *, actor: User | None = None) -> bool:
    row = _editable_class(db, center_id, name, actor)
    row.chat_enabled = not bool(row.chat_enabled)
    db.commit()
    return bool(row.chat_enabled)


def remove_class(db: Session, center_id: str, name: str, *, actor: User | None = None):
    """Classes are only ever removed through the member sweep."""
    from membership_engine.services.consistency_coordinator import delete_class_cascade

    require_authorized(actor, Action.DELETE_CLASS, AccessTarget(center_id=str(center_id), class_name=name))
    return delete_class_cascade(db, center_id, name)


def serialize_class(row: ClassDefinition) -> dict:
    return {
        'id': row.id,
        'name': row.name,
        'description': row.description or '',
        'imageUrl': row.image_url or '',
        'isChatEnabled': bool(row.chat_enabled),
        'isPinned': bool(row.is_pinned),
        'scheduleRef': row.schedule_ref or '',
        'kind': KIND_STANDARD if is_standard_name(row.name) else KIND_CUSTOM,
    }
