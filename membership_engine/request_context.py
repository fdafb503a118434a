from __future__ import annotations

from contextvars import ContextVar


# Label of the HTTP route (or job) currently talking to the database.
current_endpoint: ContextVar[str] = ContextVar('current_endpoint', default='background')
# Raw actor header of the request being served; 'system' for scripts and jobs.
current_actor_id: ContextVar[str] = ContextVar('current_actor_id', default='system')


def request_labels() -> str:
    return f'endpoint={current_endpoint.get()} actor_id={current_actor_id.get()}'
