import tempfile
import unittest
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from membership_engine.core.errors import PartialCascadeError
from membership_engine.core.router_guard import http_error_for
from membership_engine.db import Base, get_db
from membership_engine.models import CascadeRun, Center, ClassDefinition, User
from membership_engine.route_logging import EndpointNameRoute
from membership_engine.routers import cascades, centers, classes, members
from membership_engine.services.center_registry_service import is_valid_access_code


class MembershipApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_membership_api.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

        app = FastAPI()
        for module in (centers, classes, members, cascades):
            app.include_router(module.router)

        def override_get_db():
            db = cls._session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls):
        cls.client.close()
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        db = self._session_factory()
        try:
            for table in (CascadeRun, User, ClassDefinition, Center):
                db.query(table).delete()
            db.commit()
            center = Center(name='IES Api', code='246-810')
            db.add(center)
            db.commit()
            self.center_id = center.id
            users = {
                'root': User(name='root', role='admin'),
                'boss': User(name='boss', role='center-admin', organization_id=self.center_id, center='246-810', course='default', class_name='default'),
                'student': User(name='student'),
                'banned': User(name='banned', is_banned=True),
            }
            db.add_all(users.values())
            db.commit()
            self.ids = {key: row.id for key, row in users.items()}
        finally:
            db.close()

    def _as(self, key: str) -> dict:
        return {'x-actor-id': self.ids[key]}

    def test_actor_header_is_required(self):
        self.assertEqual(self.client.get('/api/users/me').status_code, 401)
        self.assertEqual(self.client.get('/api/users/me', headers={'x-actor-id': 'ghost'}).status_code, 401)
        self.assertEqual(self.client.get('/api/users/me', headers=self._as('banned')).status_code, 403)
        response = self.client.get('/api/users/me', headers=self._as('boss'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['role'], 'center-admin')

    def test_register_needs_no_actor(self):
        response = self.client.post('/api/users', json={'name': 'Julia'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['center'], 'personal')

    def test_only_global_admin_creates_centers(self):
        response = self.client.post('/api/centers', json={'name': 'IES Nou'}, headers=self._as('root'))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(is_valid_access_code(response.json()['code']))
        denied = self.client.post('/api/centers', json={'name': 'IES Altre'}, headers=self._as('boss'))
        self.assertEqual(denied.status_code, 403)

    def test_missing_center_is_404(self):
        response = self.client.get('/api/centers/missing', headers=self._as('root'))
        self.assertEqual(response.status_code, 404)

    def test_class_lifecycle_over_http(self):
        url = f'/api/centers/{self.center_id}/classes'
        created = self.client.post(url, json={'name': '4ESO-B'}, headers=self._as('boss'))
        self.assertEqual(created.status_code, 200)
        duplicate = self.client.post(url, json={'name': '4eso-b'}, headers=self._as('boss'))
        self.assertEqual(duplicate.status_code, 400)

        joined = self.client.post(
            f'/api/users/{self.ids["student"]}/join',
            json={'access_code': '246-810', 'class_name': '4ESO-B'},
            headers=self._as('student'),
        )
        self.assertEqual(joined.status_code, 200)
        self.assertEqual((joined.json()['course'], joined.json()['className']), ('4eso', 'B'))

        deleted = self.client.delete(f'{url}/4ESO-B', headers=self._as('boss'))
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(deleted.json()['status'], 'completed')

        student = self.client.get(f'/api/users/{self.ids["student"]}', headers=self._as('boss'))
        self.assertEqual(student.json()['className'], 'default')

    def test_role_change_rejects_unknown_roles(self):
        self.client.post(
            f'/api/users/{self.ids["student"]}/join',
            json={'access_code': '246-810'},
            headers=self._as('student'),
        )
        bad = self.client.put(
            f'/api/users/{self.ids["student"]}/role',
            json={'role': 'teacher'},
            headers=self._as('boss'),
        )
        self.assertEqual(bad.status_code, 400)
        too_high = self.client.put(
            f'/api/users/{self.ids["student"]}/role',
            json={'role': 'admin'},
            headers=self._as('boss'),
        )
        self.assertEqual(too_high.status_code, 403)

    def test_audit_reports_consistent_center(self):
        response = self.client.get(f'/api/centers/{self.center_id}/audit', headers=self._as('boss'))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['consistent'])
        self.assertEqual(
            self.client.get('/api/cascades/incomplete', headers=self._as('root')).json(),
            [],
        )

    def test_api_routes_carry_request_labels(self):
        for module in (centers, classes, members, cascades):
            for route in module.router.routes:
                self.assertIsInstance(route, EndpointNameRoute, route.path)
        api_routes = [route for route in self.client.app.routes if getattr(route, 'path', '').startswith('/api/')]
        self.assertTrue(api_routes)
        for route in api_routes:
            self.assertIsInstance(route, EndpointNameRoute, route.path)

    def test_partial_cascade_maps_to_conflict(self):
        error = PartialCascadeError(
            run_id='run-1',
            operation='propagate_code_change',
            batches_committed=1,
            batches_total=3,
            reason='disk I/O error',
        )
        http_error = http_error_for(error)
        self.assertEqual(http_error.status_code, 409)
        self.assertEqual(http_error.detail['run_id'], 'run-1')


if __name__ == '__main__':
    unittest.main()
