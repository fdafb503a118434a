import sys

from alembic.config import Config
from alembic.script import ScriptDirectory
from alembic.runtime.migration import MigrationContext
from sqlalchemy import inspect, text

from membership_engine.config import settings
from membership_engine.db import Base, SessionLocal, engine
from membership_engine import models  # noqa: F401  registers tables on Base
from membership_engine.services.cascade_run_service import list_incomplete_cascade_runs
from membership_engine.services.consistency_coordinator import audit_center
from membership_engine.services.center_registry_service import list_centers


GREEN = '\033[32m'
RED = '\033[31m'
RESET = '\033[0m'


def run_check(name, fn):
    try:
        message = fn() or ''
        suffix = f' - {message}' if message else ''
        print(f'{GREEN}PASS{RESET} {name}{suffix}')
        return True
    except Exception as exc:
        print(f'{RED}FAIL{RESET} {name} - {exc}')
        return False


def check_schema_and_write_access():
    expected = {table.name for table in Base.metadata.sorted_tables}
    inspector = inspect(engine)
    missing = sorted(expected - set(inspector.get_table_names()))
    if missing:
        raise RuntimeError(f'Missing tables: {missing}')
    for name in ('centers', 'class_definitions', 'users'):
        columns = {column['name'] for column in inspector.get_columns(name)}
        if 'version' not in columns:
            raise RuntimeError(f'{name} has no version column, optimistic concurrency is off')
    with engine.connect() as conn:
        # Probe write inside a transaction that is never committed.
        trans = conn.begin()
        conn.execute(
            text("UPDATE cascade_runs SET last_error = last_error WHERE id = :id"),
            {'id': '__healthcheck__'},
        )
        trans.rollback()
    return f'{len(expected)} tables, write ok'


def check_alembic_head():
    cfg = Config('alembic.ini')
    script = ScriptDirectory.from_config(cfg)
    heads = set(script.get_heads())
    if not heads:
        raise RuntimeError('No alembic heads found in repository')

    with engine.connect() as conn:
        current = MigrationContext.configure(conn).get_current_revision()

    if current is None:
        raise RuntimeError('No migration version in DB (run alembic upgrade head)')
    if current not in heads:
        raise RuntimeError(f'DB revision {current} is not at head {sorted(heads)}')
    return f'current={current}'


def check_settings_sane():
    if settings.batch_write_limit < 2:
        raise RuntimeError(f'BATCH_WRITE_LIMIT={settings.batch_write_limit} leaves no room for member writes')
    if settings.access_code_max_attempts < 1:
        raise RuntimeError('ACCESS_CODE_MAX_ATTEMPTS must be at least 1')
    return f'batch_write_limit={settings.batch_write_limit} conflict_retries={settings.cascade_conflict_retries}'


def check_no_incomplete_cascades():
    db = SessionLocal()
    try:
        pending = list_incomplete_cascade_runs(db)
        if pending:
            ids = ', '.join(run.id for run in pending[:5])
            raise RuntimeError(f'{len(pending)} incomplete cascade run(s): {ids} (run scripts/resume_cascades.py)')
        return 'backlog empty'
    finally:
        db.close()


def check_centers_consistent():
    db = SessionLocal()
    try:
        broken = {}
        for center in list_centers(db):
            violations = audit_center(db, center.id)
            if violations:
                broken[center.id] = len(violations)
        if broken:
            raise RuntimeError(f'Inconsistent centers: {broken}')
        return 'all centers consistent'
    finally:
        db.close()


def main():
    checks = [
        ('Schema present and writable', check_schema_and_write_access),
        ('Alembic migration status at head', check_alembic_head),
        ('Settings within bounds', check_settings_sane),
        ('No incomplete cascade runs', check_no_incomplete_cascades),
        ('Center membership consistency', check_centers_consistent),
    ]

    all_ok = True
    for name, fn in checks:
        all_ok = run_check(name, fn) and all_ok

    if not all_ok:
        sys.exit(1)
    sys.exit(0)


if __name__ == '__main__':
    main()
