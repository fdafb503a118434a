from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from membership_engine.core.errors import NotFoundError
from membership_engine.core.time_provider import default_time_provider
from membership_engine.models import CascadeRun, CascadeStatus, new_document_id


logger = logging.getLogger(__name__)

OPERATION_PROPAGATE_CODE = 'propagate_code_change'
OPERATION_DELETE_CLASS = 'delete_class_cascade'
OPERATION_RENAME_CLASS = 'rename_class_cascade'
OPERATION_DELETE_CENTER = 'delete_center_cascade'
OPERATION_REPAIR_CENTER = 'repair_center'

KNOWN_OPERATIONS = (
    OPERATION_PROPAGATE_CODE,
    OPERATION_DELETE_CLASS,
    OPERATION_RENAME_CLASS,
    OPERATION_DELETE_CENTER,
    OPERATION_REPAIR_CENTER,
)


def new_cascade_run(*, operation: str, center_id: str, params: dict[str, Any], batches_total: int) -> CascadeRun:
    """Build a run that is persisted together with the first batch it covers."""
    if operation not in KNOWN_OPERATIONS:
        raise ValueError(f'Unknown cascade operation: {operation}')
    now = default_time_provider.utc_naive()
    return CascadeRun(
        id=new_document_id(),
        operation=operation,
        center_id=str(center_id),
        params_json=json.dumps(params or {}, sort_keys=True),
        status=CascadeStatus.RUNNING.value,
        batches_total=int(batches_total),
        batches_committed=0,
        writes_committed=0,
        last_error='',
        created_at=now,
        updated_at=now,
    )


def cascade_params(run: CascadeRun) -> dict[str, Any]:
    try:
        parsed = json.loads(run.params_json or '{}')
    except json.JSONDecodeError:
        logger.warning('cascade_run_params_unreadable run_id=%s', run.id)
        return {}
    return parsed if isinstance(parsed, dict) else {}


def get_cascade_run(db: Session, run_id: str) -> CascadeRun:
    row = db.query(CascadeRun).filter(CascadeRun.id == str(run_id)).first()
    if not row:
        raise NotFoundError('CascadeRun', str(run_id))
    return row


def list_incomplete_cascade_runs(db: Session, *, center_id: str | None = None) -> list[CascadeRun]:
    query = db.query(CascadeRun).filter(CascadeRun.status != CascadeStatus.COMPLETED.value)
    if center_id:
        query = query.filter(CascadeRun.center_id == str(center_id))
    return query.order_by(CascadeRun.created_at.asc(), CascadeRun.id.asc()).all()


def mark_cascade_partial(db: Session, run: CascadeRun, reason: str) -> None:
    run.status = CascadeStatus.PARTIAL.value
    run.last_error = (reason or '')[:2000]
    run.updated_at = default_time_provider.utc_naive()
    db.commit()
    logger.error(
        'cascade_partial run_id=%s operation=%s committed=%s total=%s reason=%s',
        run.id,
        run.operation,
        run.batches_committed,
        run.batches_total,
        reason,
    )


def mark_cascade_completed(db: Session, run: CascadeRun) -> None:
    if run.status == CascadeStatus.COMPLETED.value:
        return
    run.status = CascadeStatus.COMPLETED.value
    run.last_error = ''
    run.updated_at = default_time_provider.utc_naive()
    db.commit()


def restart_cascade_run(db: Session, run: CascadeRun, *, batches_remaining: int) -> None:
    run.status = CascadeStatus.RUNNING.value
    run.batches_total = int(run.batches_committed or 0) + int(batches_remaining)
    run.updated_at = default_time_provider.utc_naive()


def serialize_cascade_run(run: CascadeRun) -> dict:
    return {
        'id': run.id,
        'operation': run.operation,
        'centerId': run.center_id,
        'params': cascade_params(run),
        'status': run.status,
        'batchesTotal': int(run.batches_total or 0),
        'batchesCommitted': int(run.batches_committed or 0),
        'writesCommitted': int(run.writes_committed or 0),
        'lastError': run.last_error or '',
        'createdAt': run.created_at.isoformat() if run.created_at else None,
        'updatedAt': run.updated_at.isoformat() if run.updated_at else None,
    }
