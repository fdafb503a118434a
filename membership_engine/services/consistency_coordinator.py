"""Cascading operations over centers, classes and their denormalized members.

Every operation follows the same shape: read the affected rows once, compute
the target field values into a ``WriteBatch`` and commit it in chunks of at
most ``settings.batch_write_limit`` writes. Member writes are committed before
the write on the owning center/class, so an interrupted cascade never leaves
members pointing at something that already changed shape.

Multi-chunk cascades are tracked by a ``CascadeRun`` row persisted with the
first chunk. A failure after that leaves the run ``partial`` and raises
``PartialCascadeError``; ``resume_cascade`` recomputes the plan from the
stored params and finishes it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from membership_engine.config import settings
from membership_engine.core.class_names import (
    DEFAULT_SENTINEL,
    PERSONAL_SENTINEL,
    class_key,
    format_standard_name,
    is_unassigned,
    membership_for_class,
)
from membership_engine.core.errors import (
    ConcurrentModificationError,
    NotFoundError,
    PartialCascadeError,
    ValidationError,
)
from membership_engine.core.roles import (
    CENTER_ADMIN,
    STUDENT,
    CenterAdmin,
    ClassAdmin,
    GlobalAdmin,
    Role,
    format_role,
    parse_role,
)
from membership_engine.metrics import timed_service
from membership_engine.models import CascadeRun, CascadeStatus, Center, ClassDefinition, User
from membership_engine.services.access_control_service import AccessTarget, Action, require_authorized
from membership_engine.services.cascade_run_service import (
    OPERATION_DELETE_CENTER,
    OPERATION_DELETE_CLASS,
    OPERATION_PROPAGATE_CODE,
    OPERATION_RENAME_CLASS,
    OPERATION_REPAIR_CENTER,
    cascade_params,
    get_cascade_run,
    mark_cascade_completed,
    mark_cascade_partial,
    new_cascade_run,
    restart_cascade_run,
)
from membership_engine.services.center_registry_service import (
    create_center,
    find_centers_by_code,
    get_center,
    is_center_name_taken,
    is_valid_access_code,
)
from membership_engine.services.class_catalog_service import add_standard_class, find_class, get_class, list_classes
from membership_engine.services.membership_directory_service import (
    find_by_access_code,
    find_by_organization,
    find_class_admins,
    find_class_members,
    get_user,
)
from membership_engine.services.observability_counters import (
    CASCADE_COMPLETED,
    CASCADE_CONFLICT,
    CASCADE_PARTIAL,
    CASCADE_RESUMED,
    record_observability_event,
)
from membership_engine.services.write_batch_service import PendingWrite, WriteBatch, chunk_writes, commit_batch


logger = logging.getLogger(__name__)

VIOLATION_STALE_CODE = 'stale_code'
VIOLATION_ORPHAN_CLASS_ADMIN = 'orphan_class_admin'
VIOLATION_ORPHAN_MEMBERSHIP = 'orphan_membership'
VIOLATION_DETACHED_MEMBER = 'detached_member'


@dataclass
class CascadeResult:
    operation: str
    center_id: str
    status: str
    run_id: str | None = None
    batches_committed: int = 0
    writes_committed: int = 0

    def as_dict(self) -> dict:
        return {
            'operation': self.operation,
            'centerId': self.center_id,
            'status': self.status,
            'runId': self.run_id,
            'batchesCommitted': self.batches_committed,
            'writesCommitted': self.writes_committed,
        }


@dataclass
class CascadePlan:
    operation: str
    center_id: str
    params: dict[str, Any]
    dependents: WriteBatch
    owner: WriteBatch


class _UserPlan:
    """Merges every field change for one user into a single write."""

    def __init__(self) -> None:
        self._rows: dict[str, User] = {}
        self._fields: dict[str, dict[str, Any]] = {}

    def set(self, user: User, **fields: Any) -> None:
        self._rows[user.id] = user
        self._fields.setdefault(user.id, {}).update(fields)

    def to_batch(self) -> WriteBatch:
        batch = WriteBatch()
        for user_id in sorted(self._rows):
            batch.update(self._rows[user_id], **self._fields[user_id])
        return batch


def _personal_fields(role: Role) -> dict[str, Any]:
    return {
        'organization_id': '',
        'center': PERSONAL_SENTINEL,
        'course': PERSONAL_SENTINEL,
        'class_name': PERSONAL_SENTINEL,
        'role': format_role(role),
    }


def _split_chunks(plan: CascadePlan) -> list[list[PendingWrite]]:
    limit = max(1, int(settings.batch_write_limit or 1))
    chunks = chunk_writes(plan.dependents.writes, limit)
    owner_writes = list(plan.owner.writes)
    if not owner_writes:
        return chunks
    if chunks and len(chunks[-1]) + len(owner_writes) <= limit:
        chunks[-1].extend(owner_writes)
    else:
        chunks.extend(chunk_writes(owner_writes, limit))
    return chunks


def _run_cascade(db: Session, plan: CascadePlan, *, run: CascadeRun | None = None) -> CascadeResult:
    chunks = _split_chunks(plan)
    if not chunks:
        if run is not None:
            mark_cascade_completed(db, run)
        logger.info('cascade_noop operation=%s center_id=%s', plan.operation, plan.center_id)
        return CascadeResult(
            operation=plan.operation,
            center_id=plan.center_id,
            status=CascadeStatus.COMPLETED.value,
            run_id=run.id if run is not None else None,
            batches_committed=int(run.batches_committed or 0) if run is not None else 0,
            writes_committed=int(run.writes_committed or 0) if run is not None else 0,
        )

    if run is None:
        run = new_cascade_run(
            operation=plan.operation,
            center_id=plan.center_id,
            params=plan.params,
            batches_total=len(chunks),
        )
    else:
        restart_cascade_run(db, run, batches_remaining=len(chunks))
    run_id = run.id

    committed_now = 0
    for index, chunk in enumerate(chunks):
        final = index == len(chunks) - 1
        try:
            commit_batch(db, chunk, run=run, final=final)
        except (ConcurrentModificationError, SQLAlchemyError) as exc:
            if committed_now == 0:
                raise
            mark_cascade_partial(db, run, str(exc))
            record_observability_event(CASCADE_PARTIAL)
            raise PartialCascadeError(
                run_id=run_id,
                operation=plan.operation,
                batches_committed=int(run.batches_committed or 0),
                batches_total=int(run.batches_total or 0),
                reason=str(exc),
            ) from exc
        committed_now += 1
        logger.info(
            'cascade_committed run_id=%s operation=%s batch=%s/%s writes=%s',
            run_id,
            plan.operation,
            index + 1,
            len(chunks),
            len(chunk),
        )

    record_observability_event(CASCADE_COMPLETED)
    return CascadeResult(
        operation=plan.operation,
        center_id=plan.center_id,
        status=CascadeStatus.COMPLETED.value,
        run_id=run_id,
        batches_committed=int(run.batches_committed or 0),
        writes_committed=int(run.writes_committed or 0),
    )


def _with_conflict_retry(db: Session, label: str, attempt: Callable[[], Any]) -> Any:
    retries = max(0, int(settings.cascade_conflict_retries or 0))
    for attempt_no in range(retries + 1):
        try:
            return attempt()
        except ConcurrentModificationError:
            record_observability_event(CASCADE_CONFLICT)
            db.expire_all()
            if attempt_no >= retries:
                logger.error('cascade_conflict_exhausted operation=%s attempts=%s', label, attempt_no + 1)
                raise
            logger.warning('cascade_conflict_retry operation=%s attempt=%s', label, attempt_no + 1)
    raise ConcurrentModificationError(label)


def _commit_user_batch(db: Session, batch: WriteBatch) -> None:
    if batch:
        commit_batch(db, batch.writes)


# Plans


def _plan_code_change(db: Session, center_id: str, new_code: str) -> CascadePlan:
    center = get_center(db, center_id)
    old_code = center.code
    users = _UserPlan()
    for user in find_by_organization(db, center.id):
        users.set(user, center=new_code)
    # Members written before organizationId existed only carry the code.
    if old_code and old_code != new_code and len(find_centers_by_code(db, old_code)) == 1:
        for user in find_by_access_code(db, old_code):
            if not user.organization_id:
                users.set(user, center=new_code, organization_id=center.id)
    owner = WriteBatch()
    owner.update(center, code=new_code)
    return CascadePlan(
        operation=OPERATION_PROPAGATE_CODE,
        center_id=center.id,
        params={'new_code': new_code},
        dependents=users.to_batch(),
        owner=owner,
    )


def _plan_delete_class(db: Session, center_id: str, class_name: str) -> CascadePlan:
    center = get_center(db, center_id)
    class_row = get_class(db, center.id, class_name)
    users = _UserPlan()
    for user in find_class_members(db, center.id, class_row.name):
        fields = {'course': DEFAULT_SENTINEL, 'class_name': DEFAULT_SENTINEL}
        role = parse_role(user.role)
        if isinstance(role, ClassAdmin) and role.administers(class_row.name):
            fields['role'] = format_role(STUDENT)
        users.set(user, **fields)
    for user in find_class_admins(db, center.id, class_row.name):
        users.set(user, role=format_role(STUDENT))
    owner = WriteBatch()
    owner.delete(class_row)
    return CascadePlan(
        operation=OPERATION_DELETE_CLASS,
        center_id=center.id,
        params={'class_name': class_row.name},
        dependents=users.to_batch(),
        owner=owner,
    )


def _plan_rename_class(db: Session, center_id: str, class_name: str, new_name: str) -> CascadePlan:
    center = get_center(db, center_id)
    class_row = get_class(db, center.id, class_name)
    clean_name = (new_name or '').strip()
    if not clean_name:
        raise ValidationError('Class name is required')
    clash = find_class(db, center.id, clean_name)
    if clash is not None and clash.id != class_row.id:
        raise ValidationError('duplicate')
    course, member_class = membership_for_class(clean_name)
    users = _UserPlan()
    for user in find_class_members(db, center.id, class_row.name):
        users.set(user, course=course, class_name=member_class)
    for user in find_class_admins(db, center.id, class_row.name):
        users.set(user, role=format_role(ClassAdmin(clean_name)))
    owner = WriteBatch()
    owner.update(class_row, name=clean_name, name_key=class_key(clean_name))
    return CascadePlan(
        operation=OPERATION_RENAME_CLASS,
        center_id=center.id,
        params={'class_name': class_row.name, 'new_name': clean_name},
        dependents=users.to_batch(),
        owner=owner,
    )


def _plan_delete_center(db: Session, center_id: str) -> CascadePlan:
    center = get_center(db, center_id)
    users = _UserPlan()
    for user in find_by_organization(db, center.id):
        role = parse_role(user.role)
        kept = role if isinstance(role, GlobalAdmin) else STUDENT
        users.set(user, **_personal_fields(kept))
    owner = WriteBatch()
    owner.delete(center)
    return CascadePlan(
        operation=OPERATION_DELETE_CENTER,
        center_id=center.id,
        params={},
        dependents=users.to_batch(),
        owner=owner,
    )


def _inspect_center(db: Session, center: Center) -> tuple[_UserPlan, list[dict]]:
    classes = list_classes(db, center.id)
    memberships = {
        (class_key(course), class_key(class_name))
        for course, class_name in (membership_for_class(row.name) for row in classes)
    }
    class_names = {row.name_key for row in classes}
    users = _UserPlan()
    violations: list[dict] = []

    def flag(user: User, kind: str, detail: str, **fields: Any) -> None:
        violations.append({'userId': user.id, 'kind': kind, 'detail': detail})
        users.set(user, **fields)

    for user in find_by_organization(db, center.id):
        if user.center != center.code:
            flag(user, VIOLATION_STALE_CODE, f'{user.center} != {center.code}', center=center.code)
        role = parse_role(user.role)
        if isinstance(role, ClassAdmin) and class_key(role.class_name) not in class_names:
            flag(user, VIOLATION_ORPHAN_CLASS_ADMIN, role.class_name, role=format_role(STUDENT))
        if not is_unassigned(user.course, user.class_name):
            if (class_key(user.course), class_key(user.class_name)) not in memberships:
                flag(
                    user,
                    VIOLATION_ORPHAN_MEMBERSHIP,
                    f'{user.course}/{user.class_name}',
                    course=DEFAULT_SENTINEL,
                    class_name=DEFAULT_SENTINEL,
                )
    if center.code and len(find_centers_by_code(db, center.code)) == 1:
        for user in find_by_access_code(db, center.code):
            if not user.organization_id:
                flag(user, VIOLATION_DETACHED_MEMBER, center.code, organization_id=center.id)
    return users, violations


def _plan_repair(db: Session, center_id: str) -> CascadePlan:
    center = get_center(db, center_id)
    users, _ = _inspect_center(db, center)
    return CascadePlan(
        operation=OPERATION_REPAIR_CENTER,
        center_id=center.id,
        params={},
        dependents=users.to_batch(),
        owner=WriteBatch(),
    )


def _cascade(db: Session, label: str, build_plan: Callable[[], CascadePlan], *, run: CascadeRun | None = None) -> CascadeResult:
    def attempt() -> CascadeResult:
        return _run_cascade(db, build_plan(), run=run)

    return _with_conflict_retry(db, label, attempt)


# Cascades


@timed_service('coordinator.propagate_code_change')
def propagate_code_change(db: Session, center_id: str, new_code: str, *, actor: User | None = None) -> CascadeResult:
    require_authorized(actor, Action.ROTATE_ACCESS_CODE, AccessTarget(center_id=str(center_id)))
    clean_code = (new_code or '').strip()
    if not is_valid_access_code(clean_code):
        raise ValidationError(f'Malformed access code: {new_code}')
    return _cascade(db, OPERATION_PROPAGATE_CODE, lambda: _plan_code_change(db, center_id, clean_code))


@timed_service('coordinator.delete_class_cascade')
def delete_class_cascade(db: Session, center_id: str, class_name: str, *, actor: User | None = None) -> CascadeResult:
    require_authorized(actor, Action.DELETE_CLASS, AccessTarget(center_id=str(center_id), class_name=class_name))
    return _cascade(db, OPERATION_DELETE_CLASS, lambda: _plan_delete_class(db, center_id, class_name))


@timed_service('coordinator.rename_class_cascade')
def rename_class_cascade(
    db: Session,
    center_id: str,
    class_name: str,
    new_name: str,
    *,
    actor: User | None = None,
) -> CascadeResult:
    require_authorized(actor, Action.EDIT_CLASS, AccessTarget(center_id=str(center_id), class_name=class_name))
    return _cascade(db, OPERATION_RENAME_CLASS, lambda: _plan_rename_class(db, center_id, class_name, new_name))


@timed_service('coordinator.delete_center_cascade')
def delete_center_cascade(db: Session, center_id: str, *, actor: User | None = None) -> CascadeResult:
    require_authorized(actor, Action.DELETE_CENTER, AccessTarget(center_id=str(center_id)))
    return _cascade(db, OPERATION_DELETE_CENTER, lambda: _plan_delete_center(db, center_id))


@timed_service('coordinator.repair_center')
def repair_center(db: Session, center_id: str, *, actor: User | None = None) -> CascadeResult:
    require_authorized(actor, Action.AUDIT_CENTER, AccessTarget(center_id=str(center_id)))
    return _cascade(db, OPERATION_REPAIR_CENTER, lambda: _plan_repair(db, center_id))


def audit_center(db: Session, center_id: str, *, actor: User | None = None) -> list[dict]:
    """List members that break code consistency or point at missing classes."""
    require_authorized(actor, Action.AUDIT_CENTER, AccessTarget(center_id=str(center_id)))
    center = get_center(db, center_id)
    _, violations = _inspect_center(db, center)
    if violations:
        logger.warning('center_audit_violations center_id=%s count=%s', center.id, len(violations))
    return violations


@timed_service('coordinator.resume_cascade')
def resume_cascade(db: Session, run_id: str, *, actor: User | None = None) -> CascadeResult:
    run = get_cascade_run(db, run_id)
    require_authorized(actor, Action.RESUME_CASCADE, AccessTarget(center_id=run.center_id))
    if run.status == CascadeStatus.COMPLETED.value:
        return CascadeResult(
            operation=run.operation,
            center_id=run.center_id,
            status=run.status,
            run_id=run.id,
            batches_committed=int(run.batches_committed or 0),
            writes_committed=int(run.writes_committed or 0),
        )

    params = cascade_params(run)
    center_id = run.center_id
    builders: dict[str, Callable[[], CascadePlan]] = {
        OPERATION_PROPAGATE_CODE: lambda: _plan_code_change(db, center_id, str(params.get('new_code') or '')),
        OPERATION_DELETE_CLASS: lambda: _plan_delete_class(db, center_id, str(params.get('class_name') or '')),
        OPERATION_RENAME_CLASS: lambda: _plan_rename_class(
            db,
            center_id,
            str(params.get('class_name') or ''),
            str(params.get('new_name') or ''),
        ),
        OPERATION_DELETE_CENTER: lambda: _plan_delete_center(db, center_id),
        OPERATION_REPAIR_CENTER: lambda: _plan_repair(db, center_id),
    }
    build_plan = builders.get(run.operation)
    if build_plan is None:
        raise ValidationError(f'Unknown cascade operation: {run.operation}')

    record_observability_event(CASCADE_RESUMED)
    logger.info(
        'cascade_resume run_id=%s operation=%s committed=%s total=%s',
        run.id,
        run.operation,
        run.batches_committed,
        run.batches_total,
    )
    try:
        return _cascade(db, run.operation, build_plan, run=run)
    except NotFoundError:
        if run.operation not in (OPERATION_DELETE_CLASS, OPERATION_DELETE_CENTER):
            raise
        # The thing being deleted is already gone.
        mark_cascade_completed(db, run)
        return CascadeResult(
            operation=run.operation,
            center_id=run.center_id,
            status=CascadeStatus.COMPLETED.value,
            run_id=run.id,
            batches_committed=int(run.batches_committed or 0),
            writes_committed=int(run.writes_committed or 0),
        )


# Single-user operations


def _user_update(db: Session, label: str, user_id: str, compute: Callable[[User], dict[str, Any]]) -> User:
    def attempt() -> User:
        user = get_user(db, user_id)
        batch = WriteBatch()
        batch.update(user, **compute(user))
        _commit_user_batch(db, batch)
        return user

    user = _with_conflict_retry(db, label, attempt)
    db.refresh(user)
    return user


def _center_for_code(db: Session, code: str) -> Center:
    clean = (code or '').strip()
    centers = find_centers_by_code(db, clean)
    if not centers:
        raise NotFoundError('Center', clean)
    if len(centers) > 1:
        raise ValidationError(f'Access code {clean} is shared by several centers')
    return centers[0]


def _class_membership(db: Session, center_id: str, class_name: str) -> tuple[ClassDefinition, str, str]:
    class_row = find_class(db, center_id, class_name)
    if class_row is None:
        raise ValidationError(f'Class {class_name} does not exist in center {center_id}')
    course, member_class = membership_for_class(class_row.name)
    return class_row, course, member_class


@timed_service('coordinator.move_user_to_class')
def move_user_to_class(
    db: Session,
    user_id: str,
    center_id: str,
    class_name: str,
    *,
    actor: User | None = None,
) -> User:
    target = get_user(db, user_id)
    require_authorized(actor, Action.MOVE_USER_TO_CLASS, AccessTarget(center_id=str(center_id), user=target))

    def compute(user: User) -> dict[str, Any]:
        if str(user.organization_id or '') != str(center_id):
            raise ValidationError(f'User {user.id} is not a member of center {center_id}')
        class_row, course, member_class = _class_membership(db, center_id, class_name)
        fields: dict[str, Any] = {'course': course, 'class_name': member_class}
        role = parse_role(user.role)
        if isinstance(role, ClassAdmin) and not role.administers(class_row.name):
            fields['role'] = format_role(STUDENT)
        return fields

    return _user_update(db, 'move_user_to_class', user_id, compute)


def _center_move_fields(db: Session, center: Center, class_name: str | None) -> dict[str, Any]:
    fields: dict[str, Any] = {
        'organization_id': center.id,
        'center': center.code,
        'course': DEFAULT_SENTINEL,
        'class_name': DEFAULT_SENTINEL,
        'role': format_role(STUDENT),
    }
    if class_name:
        _, course, member_class = _class_membership(db, center.id, class_name)
        fields.update(course=course, class_name=member_class)
    return fields


@timed_service('coordinator.move_user_to_center')
def move_user_to_center(db: Session, user_id: str, access_code: str, *, actor: User | None = None) -> User:
    """Move a member to the center behind ``access_code``; the role always resets to Student."""
    target = get_user(db, user_id)
    require_authorized(actor, Action.MOVE_USER_TO_CENTER, AccessTarget(user=target))
    return _user_update(
        db,
        'move_user_to_center',
        user_id,
        lambda user: _center_move_fields(db, _center_for_code(db, access_code), None),
    )


@timed_service('coordinator.join_center')
def join_center(
    db: Session,
    user_id: str,
    access_code: str,
    *,
    class_name: str | None = None,
    actor: User | None = None,
) -> User:
    target = get_user(db, user_id)
    require_authorized(actor, Action.JOIN_CENTER, AccessTarget(user=target))
    return _user_update(
        db,
        'join_center',
        user_id,
        lambda user: _center_move_fields(db, _center_for_code(db, access_code), class_name),
    )


@timed_service('coordinator.leave_center')
def leave_center(db: Session, user_id: str, *, actor: User | None = None) -> User:
    target = get_user(db, user_id)
    require_authorized(actor, Action.LEAVE_CENTER, AccessTarget(user=target))

    def compute(user: User) -> dict[str, Any]:
        role = parse_role(user.role)
        return _personal_fields(role if isinstance(role, GlobalAdmin) else STUDENT)

    return _user_update(db, 'leave_center', user_id, compute)


@timed_service('coordinator.kick_from_center')
def kick_from_center(db: Session, user_id: str, *, actor: User | None = None) -> User:
    target = get_user(db, user_id)
    require_authorized(actor, Action.KICK_USER, AccessTarget(user=target))
    return _user_update(db, 'kick_from_center', user_id, lambda user: _personal_fields(STUDENT))


@timed_service('coordinator.change_role')
def change_role(db: Session, actor: User | None, user_id: str, new_role: Role) -> User:
    target = get_user(db, user_id)
    require_authorized(actor, Action.CHANGE_ROLE, AccessTarget(user=target, role=new_role))

    def compute(user: User) -> dict[str, Any]:
        role = new_role
        if isinstance(role, (CenterAdmin, ClassAdmin)) and not user.organization_id:
            raise ValidationError(f'User {user.id} does not belong to a center')
        if isinstance(role, ClassAdmin):
            class_row = find_class(db, user.organization_id, role.class_name)
            if class_row is None:
                raise ValidationError(f'Class {role.class_name} does not exist in center {user.organization_id}')
            role = ClassAdmin(class_row.name)
        return {'role': format_role(role)}

    user = _user_update(db, 'change_role', user_id, compute)
    logger.info('role_changed user_id=%s role=%s actor_id=%s', user.id, user.role, actor.id if actor else 'system')
    return user


def _set_banned(db: Session, user_id: str, banned: bool, actor: User | None) -> User:
    target = get_user(db, user_id)
    require_authorized(actor, Action.BAN_USER, AccessTarget(user=target))
    return _user_update(db, 'ban_user', user_id, lambda user: {'is_banned': banned})


def ban_user(db: Session, user_id: str, *, actor: User | None = None) -> User:
    return _set_banned(db, user_id, True, actor)


def unban_user(db: Session, user_id: str, *, actor: User | None = None) -> User:
    return _set_banned(db, user_id, False, actor)


@timed_service('coordinator.create_center_for_user')
def create_center_for_user(
    db: Session,
    user_id: str,
    center_name: str,
    course: str,
    letter: str,
    *,
    actor: User | None = None,
) -> Center:
    """Create a center with one standard class and make ``user_id`` its admin.

    Inputs are validated before anything is written. The center, its class and
    the user update are separate commits; if the class or user step fails the
    new center is deleted again before the error propagates.
    """
    require_authorized(actor, Action.CREATE_CENTER)
    try:
        format_standard_name(course, letter)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    get_user(db, user_id)
    if is_center_name_taken(db, center_name):
        raise ValidationError(f'Center name already taken: {center_name}')
    center = create_center(db, center_name)
    center_id = center.id
    try:
        class_row = add_standard_class(db, center_id, course, letter)

        def compute(user: User) -> dict[str, Any]:
            fields = _center_move_fields(db, center, class_row.name)
            role = parse_role(user.role)
            fields['role'] = format_role(role if isinstance(role, GlobalAdmin) else CENTER_ADMIN)
            return fields

        _user_update(db, 'create_center_for_user', user_id, compute)
    except Exception:
        db.rollback()
        _discard_center(db, center_id)
        raise
    db.refresh(center)
    return center


def _discard_center(db: Session, center_id: str) -> None:
    row = db.query(Center).filter(Center.id == center_id).first()
    if row is not None:
        db.delete(row)
        db.commit()
    logger.warning('center_creation_rolled_back center_id=%s', center_id)
