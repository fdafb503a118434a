from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import ObjectDeletedError, StaleDataError

from membership_engine.core.errors import ConcurrentModificationError
from membership_engine.core.time_provider import default_time_provider
from membership_engine.models import CascadeRun, CascadeStatus


logger = logging.getLogger(__name__)

WRITE_UPDATE = 'update'
WRITE_DELETE = 'delete'


@dataclass
class PendingWrite:
    kind: str
    row: Any
    fields: dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        return f'{self.kind}:{type(self.row).__name__}:{getattr(self.row, "id", "?")}'


class WriteBatch:
    """Ordered list of writes computed from one snapshot read.

    Updates only keep the fields whose value actually changes, so a batch
    built against documents that already hold the target state is empty.
    """

    def __init__(self) -> None:
        self.writes: list[PendingWrite] = []

    def update(self, row: Any, **fields: Any) -> bool:
        changed = {name: value for name, value in fields.items() if getattr(row, name) != value}
        if not changed:
            return False
        self.writes.append(PendingWrite(kind=WRITE_UPDATE, row=row, fields=changed))
        return True

    def delete(self, row: Any) -> None:
        self.writes.append(PendingWrite(kind=WRITE_DELETE, row=row))

    def extend(self, other: 'WriteBatch') -> None:
        self.writes.extend(other.writes)

    def __len__(self) -> int:
        return len(self.writes)

    def __bool__(self) -> bool:
        return bool(self.writes)


def chunk_writes(writes: list[PendingWrite], limit: int) -> list[list[PendingWrite]]:
    size = max(1, int(limit or 1))
    return [writes[index:index + size] for index in range(0, len(writes), size)]


def _row_vanished(row: Any) -> bool:
    # Touching the version reloads an expired row and fails if it was deleted.
    try:
        row.version
    except ObjectDeletedError:
        return True
    return False


def _apply(db: Session, write: PendingWrite) -> bool:
    if _row_vanished(write.row):
        logger.warning('batch_write_skipped reason=vanished write=%s', write.describe())
        return False
    if write.kind == WRITE_DELETE:
        db.delete(write.row)
        return True
    for name, value in write.fields.items():
        setattr(write.row, name, value)
    return True


def commit_batch(
    db: Session,
    writes: list[PendingWrite],
    *,
    run: CascadeRun | None = None,
    final: bool = False,
) -> int:
    """Commit ``writes`` atomically and advance ``run`` in the same transaction.

    Returns the number of writes applied. Rolls back and raises
    ``ConcurrentModificationError`` when a row changed after it was read.
    """
    try:
        applied = sum(1 for write in writes if _apply(db, write))
        if run is not None:
            if run not in db:
                db.add(run)
            run.batches_committed = int(run.batches_committed or 0) + 1
            run.writes_committed = int(run.writes_committed or 0) + applied
            run.updated_at = default_time_provider.utc_naive()
            if final:
                run.status = CascadeStatus.COMPLETED.value
                run.last_error = ''
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        raise ConcurrentModificationError(str(exc)) from exc
    except SQLAlchemyError:
        db.rollback()
        raise
    return applied
