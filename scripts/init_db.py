from pathlib import Path
import sys


# Ensure imports work when running this file directly: `python scripts/init_db.py`.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from membership_engine.core.roles import GLOBAL_ADMIN
from membership_engine.db import Base, SessionLocal, engine
from membership_engine.models import Center
from membership_engine.services.center_registry_service import create_center
from membership_engine.services.class_catalog_service import add_custom_class, add_standard_class
from membership_engine.services.consistency_coordinator import join_center
from membership_engine.services.membership_directory_service import register_user, set_role


Base.metadata.create_all(bind=engine)

db = SessionLocal()
try:
    if not db.query(Center).first():
        admin = register_user(db, name='Platform Admin', email='admin@example.org')
        set_role(db, admin.id, GLOBAL_ADMIN)

        center = create_center(db, 'IES Demo')
        add_standard_class(db, center.id, '4eso', 'B')
        add_standard_class(db, center.id, '1bach', 'A')
        add_custom_class(db, center.id, 'Robotics')

        for name, class_name in (('Aina', '4ESO-B'), ('Marc', '4ESO-B'), ('Laia', 'Robotics')):
            student = register_user(db, name=name)
            join_center(db, student.id, center.code, class_name=class_name)
        print(f'Seeded center {center.name} with code {center.code}; admin id={admin.id}')
finally:
    db.close()

print('DB initialized with sample data.')
