"""Shared fixtures for API and service tests: fresh schema per test and seeded accounts."""

import unittest

from fastapi.testclient import TestClient

from gleaner_users.acl import ADMIN_ROLE, SqlAclStore
from gleaner_users.core.config import settings
from gleaner_users.core.database import SessionLocal, engine
from gleaner_users.main import app
from gleaner_users.models import Base
from gleaner_users.services.authorization import api_resources, seed_admin_role
from gleaner_users.services.users import create_user

PASSWORD = "correct-horse-battery"


class DatabaseTestCase(unittest.TestCase):
    """Creates every table before each test and drops them afterwards."""

    def setUp(self) -> None:
        Base.metadata.create_all(bind=engine)
        self.db = SessionLocal()
        self.acl = SqlAclStore(self.db)

    def tearDown(self) -> None:
        self.db.close()
        Base.metadata.drop_all(bind=engine)

    def make_user(self, username: str, roles: tuple[str, ...] = ()) -> int:
        user = create_user(
            self.db, self.acl, username, f"{username}@example.org", PASSWORD, roles=roles
        )
        return user.id


class ApiTestCase(DatabaseTestCase):
    """DatabaseTestCase plus a TestClient, an admin and a plain user."""

    def setUp(self) -> None:
        super().setUp()
        self.client = TestClient(app)
        seed_admin_role(self.acl, api_resources(app, settings.API_PREFIX))
        self.db.commit()
        self.admin_id = self.make_user("root", roles=(ADMIN_ROLE,))
        self.user_id = self.make_user("alice")

    def url(self, path: str) -> str:
        return f"{settings.API_PREFIX}{path}"

    def login(self, username: str, password: str = PASSWORD) -> str:
        response = self.client.post(self.url("/login"), json={"username": username, "password": password})
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["user"]["token"]

    def auth(self, username: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.login(username)}"}
