import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from membership_engine.core.class_names import class_key
from membership_engine.core.errors import AccessDeniedError, NotFoundError, ValidationError
from membership_engine.db import Base
from membership_engine.models import CascadeRun, Center, ClassDefinition, User
from membership_engine.services import center_registry_service as registry


class CenterRegistryTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_center_registry.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        self.db = self._session_factory()
        self.db.query(CascadeRun).delete()
        self.db.query(User).delete()
        self.db.query(ClassDefinition).delete()
        self.db.query(Center).delete()
        self.db.commit()

    def tearDown(self):
        self.db.close()

    def _member(self, center: Center, name: str, **fields) -> User:
        values = {
            'name': name,
            'role': 'student',
            'organization_id': center.id,
            'center': center.code,
            'course': 'default',
            'class_name': 'default',
        }
        values.update(fields)
        user = User(**values)
        self.db.add(user)
        self.db.commit()
        return user

    def test_generate_code_format(self):
        for _ in range(50):
            code = registry.generate_code()
            self.assertTrue(registry.is_valid_access_code(code), code)
            first, second = code.split('-')
            self.assertTrue(100 <= int(first) <= 999)
            self.assertTrue(100 <= int(second) <= 999)
        self.assertFalse(registry.is_valid_access_code('12-3456'))
        self.assertFalse(registry.is_valid_access_code(None))

    def test_create_center_defaults(self):
        center = registry.create_center(self.db, '  IES Demo  ')
        self.assertEqual(center.name, 'IES Demo')
        self.assertTrue(registry.is_valid_access_code(center.code))
        self.assertFalse(center.is_pinned)
        self.assertEqual(center.classes, [])
        payload = registry.serialize_center(center)
        self.assertEqual(payload['code'], center.code)
        self.assertEqual(payload['classes'], [])
        self.assertFalse(payload['isPinned'])

    def test_create_center_requires_name(self):
        with self.assertRaises(ValidationError):
            registry.create_center(self.db, '   ')
        self.assertEqual(self.db.query(Center).count(), 0)

    def test_create_center_denied_for_center_admin(self):
        actor = User(id='x', role='center-admin', organization_id='c1', is_banned=False)
        with self.assertRaises(AccessDeniedError):
            registry.create_center(self.db, 'IES Blocked', actor=actor)

    def test_unique_code_retries_on_collision(self):
        registry.create_center(self.db, 'IES One')
        taken = self.db.query(Center).first().code
        codes = iter([taken, taken, '555-666'])
        with patch('membership_engine.services.center_registry_service.generate_code', side_effect=lambda: next(codes)):
            self.assertEqual(registry.generate_unique_code(self.db), '555-666')

    def test_unique_code_gives_up_after_max_attempts(self):
        center = registry.create_center(self.db, 'IES One')
        with patch('membership_engine.services.center_registry_service.generate_code', return_value=center.code):
            with self.assertRaises(ValidationError):
                registry.generate_unique_code(self.db, max_attempts=3)

    def test_center_name_taken_ignores_school_prefix(self):
        registry.create_center(self.db, 'IES Miramar')
        self.assertTrue(registry.is_center_name_taken(self.db, 'miramar'))
        self.assertTrue(registry.is_center_name_taken(self.db, 'Institut Miramar'))
        self.assertFalse(registry.is_center_name_taken(self.db, 'Montsant'))
        self.assertFalse(registry.is_center_name_taken(self.db, ''))

    def test_list_centers_puts_pinned_first(self):
        first = registry.create_center(self.db, 'IES Alpha')
        second = registry.create_center(self.db, 'IES Beta')
        self.assertTrue(registry.toggle_pinned(self.db, second.id))
        ordered = [row.id for row in registry.list_centers(self.db)]
        self.assertEqual(ordered, [second.id, first.id])
        self.assertFalse(registry.toggle_pinned(self.db, second.id))

    def test_direct_field_updates(self):
        center = registry.create_center(self.db, 'IES Alpha')
        registry.rename_center(self.db, center.id, 'IES Gamma')
        registry.set_image_url(self.db, center.id, ' https://img.example/a.png ')
        fresh = registry.get_center(self.db, center.id)
        self.assertEqual(fresh.name, 'IES Gamma')
        self.assertEqual(fresh.image_url, 'https://img.example/a.png')
        with self.assertRaises(ValidationError):
            registry.rename_center(self.db, center.id, '')

    def test_get_center_missing(self):
        with self.assertRaises(NotFoundError):
            registry.get_center(self.db, 'nope')

    def test_find_center_by_code_rejects_ambiguous_codes(self):
        self.db.add_all([Center(name='A', code='123-456'), Center(name='B', code='123-456')])
        self.db.commit()
        self.assertEqual(len(registry.find_centers_by_code(self.db, '123-456')), 2)
        self.assertIsNone(registry.find_center_by_code(self.db, '123-456'))
        self.assertIsNone(registry.find_center_by_code(self.db, 'bad'))

    def test_rotate_access_code_updates_members(self):
        center = registry.create_center(self.db, 'IES Alpha')
        old_code = center.code
        members = [self._member(center, f'm{i}') for i in range(3)]
        new_code = registry.rotate_access_code(self.db, center.id)
        self.assertNotEqual(new_code, old_code)
        self.assertEqual(registry.get_center(self.db, center.id).code, new_code)
        for member in members:
            self.db.refresh(member)
            self.assertEqual(member.center, new_code)

    def test_delete_center_detaches_members_by_default(self):
        center = registry.create_center(self.db, 'IES Alpha')
        member = self._member(center, 'm1', role='center-admin', course='4eso', class_name='B')
        member_id = member.id
        registry.delete_center(self.db, center.id)
        self.assertEqual(self.db.query(Center).count(), 0)
        self.db.expire_all()
        member = self.db.query(User).filter(User.id == member_id).one()
        self.assertEqual(member.organization_id, '')
        self.assertEqual(member.center, 'personal')
        self.assertEqual(member.course, 'personal')
        self.assertEqual(member.class_name, 'personal')
        self.assertEqual(member.role, 'student')

    def test_delete_center_legacy_mode_leaves_members(self):
        center = registry.create_center(self.db, 'IES Alpha')
        self.db.add(ClassDefinition(center_id=center.id, name='Choir', name_key=class_key('Choir'), position=0))
        self.db.commit()
        member = self._member(center, 'm1')
        member_id, center_id = member.id, center.id
        registry.delete_center(self.db, center_id, detach_members=False)
        self.assertEqual(self.db.query(Center).count(), 0)
        self.assertEqual(self.db.query(ClassDefinition).count(), 0)
        self.db.expire_all()
        member = self.db.query(User).filter(User.id == member_id).one()
        self.assertEqual(member.organization_id, center_id)


if __name__ == '__main__':
    unittest.main()
