import tempfile
import unittest
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from membership_engine.core.errors import NotFoundError, ValidationError
from membership_engine.core.roles import CENTER_ADMIN, ClassAdmin
from membership_engine.db import Base
from membership_engine.models import Center, User
from membership_engine.services import membership_directory_service as directory


class MembershipDirectoryTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_membership_directory.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        self.db = self._session_factory()
        self.db.query(User).delete()
        self.db.query(Center).delete()
        center = Center(name='IES Directory', code='321-654')
        self.db.add(center)
        self.db.commit()
        self.center_id = center.id
        rows = [
            User(name='Aina', role='student', organization_id=self.center_id, center='321-654', course='4eso', class_name='B'),
            User(name='Marc', role='admin-4ESO-B', organization_id=self.center_id, center='321-654', course='4ESO', class_name='b'),
            User(name='Laia', role='student', organization_id=self.center_id, center='321-654', course='management', class_name='Robotics'),
            User(name='Pau', role='admin-robotics', organization_id=self.center_id, center='321-654', course='default', class_name='default'),
            User(name='Nil', role='student', organization_id='other', center='999-999', course='4eso', class_name='B'),
        ]
        self.db.add_all(rows)
        self.db.commit()
        self.ids = {row.name: row.id for row in rows}

    def tearDown(self):
        self.db.close()

    def test_register_user_starts_personal(self):
        user = directory.register_user(self.db, name=' Julia ', email=' Julia@Example.org ')
        self.assertEqual(user.name, 'Julia')
        self.assertEqual(user.email, 'julia@example.org')
        self.assertEqual(user.role, 'student')
        self.assertEqual(user.organization_id, '')
        self.assertEqual((user.center, user.course, user.class_name), ('personal', 'personal', 'personal'))
        with self.assertRaises(ValidationError):
            directory.register_user(self.db, name='')

    def test_find_by_organization_and_class(self):
        members = directory.find_by_organization(self.db, self.center_id)
        self.assertEqual(sorted(row.name for row in members), ['Aina', 'Laia', 'Marc', 'Pau'])
        in_class = directory.find_by_class(self.db, self.center_id, '4eso', 'B')
        self.assertEqual(sorted(row.name for row in in_class), ['Aina', 'Marc'])
        self.assertEqual(directory.find_by_organization(self.db, ''), [])

    def test_find_class_members_uses_membership_encoding(self):
        standard = directory.find_class_members(self.db, self.center_id, '4ESO-B')
        self.assertEqual(sorted(row.name for row in standard), ['Aina', 'Marc'])
        custom = directory.find_class_members(self.db, self.center_id, 'robotics')
        self.assertEqual([row.name for row in custom], ['Laia'])

    def test_find_by_access_code(self):
        self.assertEqual(len(directory.find_by_access_code(self.db, '321-654')), 4)
        self.assertEqual(directory.find_by_access_code(self.db, ''), [])

    def test_find_by_role_and_class_admins(self):
        admins = directory.find_class_admins(self.db, self.center_id, '4eso-b')
        self.assertEqual([row.name for row in admins], ['Marc'])
        robotics_admins = directory.find_class_admins(self.db, self.center_id, 'Robotics')
        self.assertEqual([row.name for row in robotics_admins], ['Pau'])
        self.assertEqual(
            [row.name for row in directory.find_by_role(self.db, ClassAdmin('4ESO-B'), center_id=self.center_id)],
            ['Marc'],
        )

    def test_non_ascii_class_names_match_case_insensitively(self):
        self.db.add_all([
            User(name='Ona', role='admin-ÉTICA', organization_id=self.center_id, center='321-654', course='management', class_name='Ética'),
            User(name='Biel', role='student', organization_id=self.center_id, center='321-654', course='MANAGEMENT', class_name='ÉTICA'),
        ])
        self.db.commit()

        members = directory.find_class_members(self.db, self.center_id, 'ética')
        self.assertEqual(sorted(row.name for row in members), ['Biel', 'Ona'])
        self.assertEqual(
            [row.name for row in directory.find_by_role(self.db, ClassAdmin('Ética'), center_id=self.center_id)],
            ['Ona'],
        )
        self.assertEqual([row.name for row in directory.find_class_admins(self.db, self.center_id, 'ÉTICA')], ['Ona'])

    def test_single_document_updates(self):
        user_id = self.ids['Aina']
        directory.set_role(self.db, user_id, CENTER_ADMIN)
        directory.set_banned(self.db, user_id, True)
        directory.set_membership(
            self.db,
            user_id,
            organization_id='',
            course='personal',
            class_name='personal',
            center='personal',
        )
        user = directory.get_user(self.db, user_id)
        payload = directory.serialize_user(user)
        self.assertEqual(payload['role'], 'center-admin')
        self.assertTrue(payload['isBanned'])
        self.assertEqual(payload['organizationId'], '')
        self.assertEqual(payload['className'], 'personal')

    def test_get_user_missing(self):
        with self.assertRaises(NotFoundError):
            directory.get_user(self.db, 'missing')


if __name__ == '__main__':
    unittest.main()
