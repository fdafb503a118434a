from __future__ import annotations

import argparse
import random
import sys
import time
from pathlib import Path


ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from membership_engine.config import settings
from membership_engine.core.class_names import CLASS_LETTERS, STANDARD_COURSES, membership_for_class
from membership_engine.core.roles import CENTER_ADMIN, STUDENT_TOKEN, ClassAdmin, format_role
from membership_engine.db import Base, SessionLocal, engine
from membership_engine.models import CascadeRun, Center, User
from membership_engine.services.center_registry_service import create_center, rotate_access_code
from membership_engine.services.class_catalog_service import add_custom_class, add_standard_class, list_classes


RNG = random.Random(20261019)

CENTER_NAMES = ['IES Montsant', 'Institut Miramar', 'Colegio San Jorge', 'IES Ribera', 'Escuela Nova']
CUSTOM_GROUPS = ['Robotics', 'Choir', 'Debate Club', 'Chess']
FIRST_NAMES = ['Aina', 'Marc', 'Laia', 'Pau', 'Nil', 'Julia', 'Hugo', 'Carla', 'Martina', 'Leo', 'Iker', 'Noa']


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Populate centers with realistic membership data.')
    parser.add_argument('--reset-db', action='store_true', help='Wipe and recreate all tables before simulation.')
    parser.add_argument('--centers', type=int, default=3, help='Number of centers to create.')
    parser.add_argument('--members', type=int, default=120, help='Members per center.')
    parser.add_argument(
        '--rotate',
        action='store_true',
        help='Rotate every access code afterwards to exercise multi-batch cascades.',
    )
    return parser.parse_args()


def ensure_schema(reset_db: bool) -> None:
    if reset_db:
        print('Resetting database tables...')
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def seed_center(db, name: str) -> Center:
    center = create_center(db, name)
    courses = RNG.sample(STANDARD_COURSES, k=3)
    for course in courses:
        for letter in CLASS_LETTERS[:RNG.randint(1, 3)]:
            add_standard_class(db, center.id, course, letter)
    for group in RNG.sample(CUSTOM_GROUPS, k=2):
        add_custom_class(db, center.id, group)
    return center


def seed_members(db, center: Center, total: int) -> int:
    classes = list_classes(db, center.id)
    users = []
    for index in range(total):
        class_row = RNG.choice(classes)
        course, class_name = membership_for_class(class_row.name)
        role = STUDENT_TOKEN
        if index == 0:
            role = format_role(CENTER_ADMIN)
        elif RNG.random() < 0.05:
            role = format_role(ClassAdmin(class_row.name))
        users.append(
            User(
                name=f'{RNG.choice(FIRST_NAMES)} {index:04d}',
                email=f'member{index:04d}.{center.id[:6]}@example.org',
                role=role,
                organization_id=center.id,
                center=center.code,
                course=course,
                class_name=class_name,
                is_banned=False,
                trophies=RNG.randint(0, 40),
                streak=RNG.randint(0, 12),
            )
        )
    db.add_all(users)
    db.commit()
    return len(users)


def summarize(db, created_counts: dict[str, int]) -> None:
    print('\nSimulation Summary')
    print('------------------')
    print(f"Centers created: {created_counts['centers_created']} (total: {db.query(Center).count()})")
    print(f"Members created: {created_counts['members_created']} (total: {db.query(User).count()})")
    print(f"Cascade runs recorded: {db.query(CascadeRun).count()}")
    print(f'Batch write limit: {settings.batch_write_limit}')


def main() -> None:
    args = parse_args()
    ensure_schema(reset_db=args.reset_db)

    db = SessionLocal()
    try:
        centers_created = 0
        members_created = 0
        centers = []
        for index in range(max(0, args.centers)):
            name = CENTER_NAMES[index % len(CENTER_NAMES)]
            if index >= len(CENTER_NAMES):
                name = f'{name} {index // len(CENTER_NAMES) + 1}'
            center = seed_center(db, name)
            centers.append(center)
            centers_created += 1
            members_created += seed_members(db, center, max(0, args.members))

        if args.rotate:
            for center in centers:
                started = time.perf_counter()
                new_code = rotate_access_code(db, center.id)
                duration_ms = (time.perf_counter() - started) * 1000.0
                print(f'Rotated {center.name} -> {new_code} in {duration_ms:.1f} ms')

        summarize(
            db,
            created_counts={
                'centers_created': centers_created,
                'members_created': members_created,
            },
        )
    finally:
        db.close()


if __name__ == '__main__':
    main()
