from __future__ import annotations

from fastapi.routing import APIRoute
from starlette.requests import Request

from membership_engine.config import settings
from membership_engine.request_context import current_actor_id, current_endpoint


class EndpointNameRoute(APIRoute):
    """Route class that tags DB statements and service timers with the endpoint and actor."""

    def get_route_handler(self):
        original_handler = super().get_route_handler()
        route_path = self.path

        async def labelled_handler(request: Request):
            endpoint_token = current_endpoint.set(f"{request.method} {route_path}")
            actor = (request.headers.get(settings.actor_header) or '').strip() or 'anonymous'
            actor_token = current_actor_id.set(actor)
            try:
                return await original_handler(request)
            finally:
                current_actor_id.reset(actor_token)
                current_endpoint.reset(endpoint_token)

        return labelled_handler
