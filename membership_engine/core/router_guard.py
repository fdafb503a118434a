from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from membership_engine.config import settings
from membership_engine.core.errors import (
    AccessDeniedError,
    ConcurrentModificationError,
    MembershipError,
    NotFoundError,
    PartialCascadeError,
    ValidationError,
)
from membership_engine.db import get_db
from membership_engine.models import User


logger = logging.getLogger(__name__)


def require_actor(request: Request, db: Session = Depends(get_db)) -> User:
    """Load the acting user named by the gateway header."""
    actor_id = (request.headers.get(settings.actor_header) or '').strip()
    if not actor_id:
        raise HTTPException(status_code=401, detail='Unauthorized')
    actor = db.query(User).filter(User.id == actor_id).first()
    if not actor:
        raise HTTPException(status_code=401, detail='Unauthorized')
    if actor.is_banned:
        raise HTTPException(status_code=403, detail='Forbidden')
    return actor


def http_error_for(exc: MembershipError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, AccessDeniedError):
        return HTTPException(status_code=403, detail='Forbidden')
    if isinstance(exc, PartialCascadeError):
        logger.warning('partial_cascade_response run_id=%s', exc.run_id)
        return HTTPException(status_code=409, detail=exc.as_dict())
    if isinstance(exc, ConcurrentModificationError):
        return HTTPException(status_code=409, detail='Concurrent modification, retry the request')
    return HTTPException(status_code=500, detail='Membership error')
