from __future__ import annotations

import logging
import re
import secrets

from sqlalchemy.orm import Session

from membership_engine.config import settings
from membership_engine.core.errors import NotFoundError, ValidationError
from membership_engine.models import Center, User
from membership_engine.services.access_control_service import AccessTarget, Action, require_authorized


logger = logging.getLogger(__name__)

ACCESS_CODE_PATTERN = re.compile(r'^\d{3}-\d{3}$')
_SCHOOL_PREFIX_PATTERN = re.compile(r'^(ies|ins|institut|colegio|escuela|centro)\s+', re.IGNORECASE)


def generate_code() -> str:
    part1 = 100 + secrets.randbelow(900)
    part2 = 100 + secrets.randbelow(900)
    return f'{part1}-{part2}'


def is_valid_access_code(code: str | None) -> bool:
    return bool(ACCESS_CODE_PATTERN.match(str(code or '').strip()))


def generate_unique_code(db: Session, *, max_attempts: int | None = None) -> str:
    attempts = max(1, int(max_attempts or settings.access_code_max_attempts))
    for attempt in range(1, attempts + 1):
        code = generate_code()
        if not db.query(Center.id).filter(Center.code == code).first():
            return code
        logger.info('access_code_collision attempt=%s code=%s', attempt, code)
    raise ValidationError(f'Could not generate an unused access code after {attempts} attempts')


def _normalized_center_name(name: str) -> str:
    return _SCHOOL_PREFIX_PATTERN.sub('', (name or '').strip().lower()).strip()


def is_center_name_taken(db: Session, name: str) -> bool:
    wanted = _normalized_center_name(name)
    if not wanted:
        return False
    return any(_normalized_center_name(existing) == wanted for (existing,) in db.query(Center.name).all())


def get_center(db: Session, center_id: str) -> Center:
    row = db.query(Center).filter(Center.id == str(center_id or '')).first()
    if not row:
        raise NotFoundError('Center', str(center_id))
    return row


def find_centers_by_code(db: Session, code: str) -> list[Center]:
    clean = (code or '').strip()
    if not is_valid_access_code(clean):
        return []
    return db.query(Center).filter(Center.code == clean).order_by(Center.created_at.asc(), Center.id.asc()).all()


def find_center_by_code(db: Session, code: str) -> Center | None:
    """Resolve an access code to its center; ambiguous legacy codes resolve to nothing."""
    rows = find_centers_by_code(db, code)
    if len(rows) > 1:
        logger.warning('access_code_ambiguous code=%s centers=%s', code, [row.id for row in rows])
        return None
    return rows[0] if rows else None


def list_centers(db: Session) -> list[Center]:
    rows = db.query(Center).order_by(Center.created_at.asc(), Center.id.asc()).all()
    return sorted(rows, key=lambda row: 0 if row.is_pinned else 1)


def create_center(db: Session, name: str, *, actor: User | None = None) -> Center:
    require_authorized(actor, Action.CREATE_CENTER)
    clean_name = (name or '').strip()
    if not clean_name:
        raise ValidationError('Center name is required')
    row = Center(
        name=clean_name,
        code=generate_unique_code(db),
        is_pinned=False,
        image_url='',
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info('center_created center_id=%s code=%s', row.id, row.code)
    return row


def rename_center(db: Session, center_id: str, name: str, *, actor: User | None = None) -> Center:
    require_authorized(actor, Action.EDIT_CENTER, AccessTarget(center_id=str(center_id)))
    clean_name = (name or '').strip()
    if not clean_name:
        raise ValidationError('Center name is required')
    row = get_center(db, center_id)
    row.name = clean_name
    db.commit()
    db.refresh(row)
    return row


def set_image_url(db: Session, center_id: str, image_url: str, *, actor: User | None = None) -> Center:
    require_authorized(actor, Action.EDIT_CENTER, AccessTarget(center_id=str(center_id)))
    row = get_center(db, center_id)
    row.image_url = (image_url or '').strip()
    db.commit()
    db.refresh(row)
    return row


def toggle_pinned(db: Session, center_id: str, *, actor: User | None = None) -> bool:
    require_authorized(actor, Action.PIN_CENTER, AccessTarget(center_id=str(center_id)))
    row = get_center(db, center_id)
    row.is_pinned = not bool(row.is_pinned)
    db.commit()
    return bool(row.is_pinned)


def rotate_access_code(db: Session, center_id: str, *, actor: User | None = None) -> str:
    """Generate a new code and fan it out to every member before returning it."""
    from membership_engine.services.consistency_coordinator import propagate_code_change

    require_authorized(actor, Action.ROTATE_ACCESS_CODE, AccessTarget(center_id=str(center_id)))
    get_center(db, center_id)
    new_code = generate_unique_code(db)
    propagate_code_change(db, center_id, new_code)
    return new_code


def delete_center(
    db: Session,
    center_id: str,
    *,
    detach_members: bool | None = None,
    actor: User | None = None,
) -> None:
    from membership_engine.services.consistency_coordinator import delete_center_cascade

    require_authorized(actor, Action.DELETE_CENTER, AccessTarget(center_id=str(center_id)))
    detach = settings.detach_members_on_center_delete if detach_members is None else bool(detach_members)
    if detach:
        delete_center_cascade(db, center_id)
        return
    row = get_center(db, center_id)
    db.delete(row)
    db.commit()
    logger.info('center_deleted center_id=%s members_detached=false', center_id)


def serialize_center(center: Center, *, include_classes: bool = True) -> dict:
    from membership_engine.services.class_catalog_service import serialize_class

    payload = {
        'id': center.id,
        'name': center.name,
        'code': center.code,
        'isPinned': bool(center.is_pinned),
        'imageUrl': center.image_url or '',
        'createdAt': center.created_at.isoformat() if center.created_at else None,
    }
    if include_classes:
        payload['classes'] = [serialize_class(row) for row in center.classes]
    return payload
