from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path


ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from membership_engine.core.errors import MembershipError
from membership_engine.db import SessionLocal
from membership_engine.metrics import run_timed_job
from membership_engine.services.cascade_run_service import list_incomplete_cascade_runs
from membership_engine.services.consistency_coordinator import resume_cascade


logger = logging.getLogger('membership_engine.resume_cascades')


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Finish cascades that stopped part-way.')
    parser.add_argument('--center-id', default=None, help='Only resume runs of this center.')
    parser.add_argument('--dry-run', action='store_true', help='List incomplete runs without resuming them.')
    return parser.parse_args()


def resume_all(center_id: str | None = None, dry_run: bool = False) -> dict[str, int]:
    db = SessionLocal()
    counts = {'found': 0, 'resumed': 0, 'failed': 0}
    try:
        runs = list_incomplete_cascade_runs(db, center_id=center_id)
        counts['found'] = len(runs)
        run_ids = [run.id for run in runs]
        for run_id in run_ids:
            if dry_run:
                print(f'pending run_id={run_id}')
                continue
            try:
                result = resume_cascade(db, run_id)
            except MembershipError as exc:
                counts['failed'] += 1
                logger.error('cascade_resume_failed run_id=%s error=%s', run_id, exc)
                continue
            counts['resumed'] += 1
            print(f'resumed run_id={run_id} status={result.status} writes={result.writes_committed}')
    finally:
        db.close()
    return counts


def main() -> int:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s %(message)s')
    args = parse_args()
    counts = run_timed_job('resume_cascades', lambda: resume_all(args.center_id, args.dry_run))
    print(f"found={counts['found']} resumed={counts['resumed']} failed={counts['failed']}")
    return 1 if counts['failed'] else 0


if __name__ == '__main__':
    sys.exit(main())
