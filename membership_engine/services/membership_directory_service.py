from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from membership_engine.core.class_names import (
    PERSONAL_SENTINEL,
    class_key,
    membership_for_class,
)
from membership_engine.core.errors import NotFoundError, ValidationError
from membership_engine.core.roles import (
    CLASS_ADMIN_PREFIX,
    STUDENT,
    ClassAdmin,
    Role,
    format_role,
    parse_role,
)
from membership_engine.models import User


def get_user(db: Session, user_id: str) -> User:
    row = db.query(User).filter(User.id == str(user_id or '')).first()
    if not row:
        raise NotFoundError('User', str(user_id))
    return row


def register_user(db: Session, *, name: str, email: str = '') -> User:
    clean_name = (name or '').strip()
    if not clean_name:
        raise ValidationError('User name is required')
    row = User(
        name=clean_name,
        email=(email or '').strip().lower(),
        role=format_role(STUDENT),
        organization_id='',
        center=PERSONAL_SENTINEL,
        course=PERSONAL_SENTINEL,
        class_name=PERSONAL_SENTINEL,
        is_banned=False,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def find_by_organization(db: Session, center_id: str) -> list[User]:
    if not center_id:
        return []
    return (
        db.query(User)
        .filter(User.organization_id == str(center_id))
        .order_by(User.name.asc(), User.id.asc())
        .all()
    )


def find_by_class(db: Session, center_id: str, course: str, class_name: str) -> list[User]:
    """Members of ``center_id`` carrying ``(course, class_name)``, matched with ``class_key``.

    SQL ``lower()`` only folds ASCII on SQLite, so the pair is compared in Python.
    """
    course_key, class_name_key = class_key(course), class_key(class_name)
    return [
        user
        for user in find_by_organization(db, center_id)
        if class_key(user.course) == course_key and class_key(user.class_name) == class_name_key
    ]


def find_class_members(db: Session, center_id: str, class_definition_name: str) -> list[User]:
    course, class_name = membership_for_class(class_definition_name)
    return find_by_class(db, center_id, course, class_name)


def find_by_access_code(db: Session, code: str) -> list[User]:
    clean = (code or '').strip()
    if not clean:
        return []
    return db.query(User).filter(User.center == clean).order_by(User.id.asc()).all()


def find_by_role(db: Session, role: Role, *, center_id: str | None = None) -> list[User]:
    wanted = class_key(format_role(role))
    query = db.query(User)
    if center_id:
        query = query.filter(User.organization_id == str(center_id))
    return [user for user in query.order_by(User.id.asc()).all() if class_key(user.role) == wanted]


def find_class_admins(db: Session, center_id: str, class_definition_name: str) -> list[User]:
    """Class admins of ``class_definition_name`` inside ``center_id``, any casing."""
    if not center_id:
        return []
    candidates = (
        db.query(User)
        .filter(
            User.organization_id == str(center_id),
            func.lower(User.role).like(f'{CLASS_ADMIN_PREFIX}%'),
        )
        .all()
    )
    admins = []
    for user in candidates:
        role = parse_role(user.role)
        if isinstance(role, ClassAdmin) and role.administers(class_definition_name):
            admins.append(user)
    return admins


def set_role(db: Session, user_id: str, role: Role) -> User:
    row = get_user(db, user_id)
    row.role = format_role(role)
    db.commit()
    db.refresh(row)
    return row


def set_membership(
    db: Session,
    user_id: str,
    *,
    organization_id: str,
    course: str,
    class_name: str,
    center: str,
) -> User:
    row = get_user(db, user_id)
    row.organization_id = organization_id or ''
    row.course = course
    row.class_name = class_name
    row.center = center
    db.commit()
    db.refresh(row)
    return row


def set_banned(db: Session, user_id: str, banned: bool) -> User:
    row = get_user(db, user_id)
    row.is_banned = bool(banned)
    db.commit()
    db.refresh(row)
    return row


def serialize_user(user: User) -> dict:
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'role': user.role,
        'organizationId': user.organization_id or '',
        'center': user.center,
        'course': user.course,
        'className': user.class_name,
        'isBanned': bool(user.is_banned),
        'trophies': int(user.trophies or 0),
        'streak': int(user.streak or 0),
    }
