from __future__ import annotations


class MembershipError(Exception):
    """Base class for every failure raised by the membership services."""


class NotFoundError(MembershipError):
    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} '{key}' not found")


class ValidationError(MembershipError):
    pass


class AccessDeniedError(MembershipError, PermissionError):
    def __init__(self, action: str, actor_id: str | None = None):
        self.action = action
        self.actor_id = actor_id
        super().__init__(f'Actor {actor_id or "?"} may not perform {action}')


class ConcurrentModificationError(MembershipError):
    """A document changed between the snapshot read and the batch commit."""


class PartialCascadeError(MembershipError):
    """A multi-batch cascade stopped after committing some of its batches.

    The committed batches stay committed. ``run_id`` identifies the persisted
    cascade run, which can be handed to ``resume_cascade`` once the cause is
    fixed; every cascade write is idempotent so replaying is safe.
    """

    def __init__(
        self,
        *,
        run_id: str,
        operation: str,
        batches_committed: int,
        batches_total: int,
        reason: str = '',
    ):
        self.run_id = run_id
        self.operation = operation
        self.batches_committed = batches_committed
        self.batches_total = batches_total
        self.reason = reason
        super().__init__(
            f'{operation} stopped after {batches_committed}/{batches_total} batches (run {run_id}): {reason}'
        )

    def as_dict(self) -> dict:
        return {
            'run_id': self.run_id,
            'operation': self.operation,
            'batches_committed': self.batches_committed,
            'batches_total': self.batches_total,
            'reason': self.reason,
        }
