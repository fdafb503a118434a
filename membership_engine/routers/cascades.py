from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from membership_engine.core.errors import MembershipError
from membership_engine.core.router_guard import http_error_for, require_actor
from membership_engine.db import get_db
from membership_engine.models import User
from membership_engine.route_logging import EndpointNameRoute
from membership_engine.services.access_control_service import AccessTarget, Action, require_authorized
from membership_engine.services.cascade_run_service import (
    get_cascade_run,
    list_incomplete_cascade_runs,
    serialize_cascade_run,
)
from membership_engine.services.consistency_coordinator import resume_cascade

router = APIRouter(prefix='/api/cascades', tags=['Cascades'], route_class=EndpointNameRoute)


@router.get('/incomplete')
def list_incomplete_api(
    center_id: str | None = None,
    actor: User = Depends(require_actor),
    db: Session = Depends(get_db),
):
    try:
        require_authorized(actor, Action.AUDIT_CENTER, AccessTarget(center_id=center_id or ''))
    except MembershipError as exc:
        raise http_error_for(exc) from exc
    return [serialize_cascade_run(row) for row in list_incomplete_cascade_runs(db, center_id=center_id)]


@router.get('/{run_id}')
def read_cascade_api(run_id: str, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        run = get_cascade_run(db, run_id)
        require_authorized(actor, Action.AUDIT_CENTER, AccessTarget(center_id=run.center_id))
    except MembershipError as exc:
        raise http_error_for(exc) from exc
    return serialize_cascade_run(run)


@router.post('/{run_id}/resume')
def resume_cascade_api(run_id: str, actor: User = Depends(require_actor), db: Session = Depends(get_db)):
    try:
        return resume_cascade(db, run_id, actor=actor).as_dict()
    except MembershipError as exc:
        raise http_error_for(exc) from exc
