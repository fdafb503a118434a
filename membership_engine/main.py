from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request

from membership_engine.config import settings
from membership_engine.db import Base, SessionLocal, engine
from membership_engine.route_logging import EndpointNameRoute
from membership_engine.routers import cascades, centers, classes, members
from membership_engine.services.cascade_run_service import list_incomplete_cascade_runs
from membership_engine.services.observability_counters import cascade_counter_snapshot

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        pending = list_incomplete_cascade_runs(db)
        if pending:
            logging.getLogger(__name__).warning(
                'cascade_backlog count=%s run_ids=%s',
                len(pending),
                [run.id for run in pending],
            )
    finally:
        db.close()
    yield


app = FastAPI(title=settings.app_name, version='0.1.0', lifespan=lifespan)
app.router.route_class = EndpointNameRoute


@app.middleware('http')
async def slow_request_logger(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000.0
    if duration_ms >= settings.metrics_slow_ms:
        logging.getLogger('membership_engine.request').info(
            'request_slow path=%s method=%s status_code=%s duration_ms=%.2f',
            request.url.path,
            request.method,
            response.status_code,
            duration_ms,
        )
    return response

app.include_router(centers.router)
app.include_router(classes.router)
app.include_router(members.router)
app.include_router(cascades.router)


@app.get('/')
def root():
    return {'app': settings.app_name, 'status': 'ok'}


@app.get('/health')
def healthcheck():
    counters = cascade_counter_snapshot()
    status = 'degraded' if counters['cascade_partial'] else 'ok'
    return {'status': status, 'cascades': counters}
