import tempfile
import unittest
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from membership_engine.core.errors import AccessDeniedError, NotFoundError, ValidationError
from membership_engine.db import Base
from membership_engine.models import CascadeRun, Center, ClassDefinition, User
from membership_engine.services import class_catalog_service as catalog
from membership_engine.services.center_registry_service import create_center, serialize_center


class ClassCatalogTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_class_catalog.db'
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
        self.center = create_center(self.db, 'IES Catalog')
        self.center_id = self.center.id

    def tearDown(self):
        self.db.close()

    def test_duplicate_class_is_rejected(self):
        catalog.add_class(self.db, self.center_id, '4eso-B')
        with self.assertRaises(ValidationError) as ctx:
            catalog.add_class(self.db, self.center_id, '4eso-B')
        self.assertEqual(str(ctx.exception), 'duplicate')
        self.assertEqual(len(catalog.list_classes(self.db, self.center_id)), 1)

    def test_duplicate_check_is_case_insensitive(self):
        catalog.add_custom_class(self.db, self.center_id, 'Robotics')
        with self.assertRaises(ValidationError):
            catalog.add_custom_class(self.db, self.center_id, '  ROBOTICS ')
        catalog.add_standard_class(self.db, self.center_id, '4eso', 'b')
        with self.assertRaises(ValidationError):
            catalog.add_class(self.db, self.center_id, '4ESO-b')

    def test_standard_path_validates_pattern(self):
        row = catalog.add_standard_class(self.db, self.center_id, '1bach', 'a')
        self.assertEqual(row.name, '1BACH-A')
        with self.assertRaises(ValidationError):
            catalog.add_standard_class(self.db, self.center_id, '5eso', 'A')
        with self.assertRaises(ValidationError):
            catalog.add_class(self.db, self.center_id, 'Robotics', kind='standard')
        with self.assertRaises(ValidationError):
            catalog.add_custom_class(self.db, self.center_id, '   ')

    def test_add_class_to_missing_center(self):
        with self.assertRaises(NotFoundError):
            catalog.add_custom_class(self.db, 'missing', 'Choir')

    def test_classes_keep_insertion_order_and_defaults(self):
        for name in ('Choir', '2ESO-A', 'Chess'):
            catalog.add_class(self.db, self.center_id, name)
        rows = catalog.list_classes(self.db, self.center_id)
        self.assertEqual([row.name for row in rows], ['Choir', '2ESO-A', 'Chess'])
        self.assertEqual([row.position for row in rows], [0, 1, 2])
        payload = catalog.serialize_class(rows[0])
        self.assertTrue(payload['isChatEnabled'])
        self.assertFalse(payload['isPinned'])
        self.assertEqual(payload['kind'], 'custom')
        self.assertEqual(catalog.serialize_class(rows[1])['kind'], 'standard')
        self.db.expire_all()
        center_payload = serialize_center(self.db.query(Center).filter(Center.id == self.center_id).one())
        self.assertEqual([item['name'] for item in center_payload['classes']], ['Choir', '2ESO-A', 'Chess'])

    def test_direct_updates_on_single_class(self):
        catalog.add_custom_class(self.db, self.center_id, 'Choir')
        catalog.add_custom_class(self.db, self.center_id, 'Chess')
        self.assertFalse(catalog.toggle_chat_enabled(self.db, self.center_id, 'choir'))
        self.assertTrue(catalog.toggle_class_pinned(self.db, self.center_id, 'CHOIR'))
        catalog.set_class_image(self.db, self.center_id, 'Choir', 'https://img.example/choir.png')
        catalog.set_class_description(self.db, self.center_id, 'Choir', 'Tuesday rehearsals')
        choir = catalog.get_class(self.db, self.center_id, 'Choir')
        chess = catalog.get_class(self.db, self.center_id, 'Chess')
        self.assertFalse(choir.chat_enabled)
        self.assertTrue(choir.is_pinned)
        self.assertEqual(choir.image_url, 'https://img.example/choir.png')
        self.assertEqual(choir.description, 'Tuesday rehearsals')
        self.assertTrue(chess.chat_enabled)
        self.assertFalse(chess.is_pinned)

    def test_update_on_missing_class(self):
        with self.assertRaises(NotFoundError):
            catalog.toggle_class_pinned(self.db, self.center_id, 'Nope')

    def test_class_admin_may_edit_only_own_class(self):
        catalog.add_custom_class(self.db, self.center_id, 'Choir')
        catalog.add_custom_class(self.db, self.center_id, 'Chess')
        actor = User(id='a1', role='admin-Choir', organization_id=self.center_id, is_banned=False)
        catalog.set_class_description(self.db, self.center_id, 'Choir', 'ok', actor=actor)
        with self.assertRaises(AccessDeniedError):
            catalog.set_class_description(self.db, self.center_id, 'Chess', 'no', actor=actor)
        with self.assertRaises(AccessDeniedError):
            catalog.remove_class(self.db, self.center_id, 'Choir', actor=actor)

    def test_remove_class_sweeps_members(self):
        catalog.add_standard_class(self.db, self.center_id, '4eso', 'B')
        member = User(
            name='Aina',
            role='admin-4ESO-B',
            organization_id=self.center_id,
            center=self.center.code,
            course='4eso',
            class_name='B',
        )
        self.db.add(member)
        self.db.commit()
        member_id = member.id

        result = catalog.remove_class(self.db, self.center_id, '4eso-b')
        self.assertEqual(result.status, 'completed')
        self.assertEqual(catalog.list_classes(self.db, self.center_id), [])
        self.db.expire_all()
        member = self.db.query(User).filter(User.id == member_id).one()
        self.assertEqual((member.course, member.class_name, member.role), ('default', 'default', 'student'))


if __name__ == '__main__':
    unittest.main()
