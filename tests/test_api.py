"""End-to-end API tests through FastAPI's TestClient on an in-memory SQLite database."""

import unittest
from unittest.mock import AsyncMock, patch

from gleaner_users.acl import SqlAclStore
from gleaner_users.core.errors import AclStoreError
from gleaner_users.schemas.signup import BulkImportResponse
from gleaner_users.services.bulk_import import import_users_csv

from helpers import PASSWORD, ApiTestCase

GAMES_APP = {
    "name": "g",
    "prefix": "games",
    "host": "http://games:8080",
    "roles": [
        {"roles": "student", "allows": [{"resources": ["/x", "/games/:gameId"], "permissions": ["get"]}]}
    ],
    "anonymous": ["/public"],
    "autoroles": ["student"],
}


class TestLoginLogout(ApiTestCase):
    def test_login_returns_user_and_token(self) -> None:
        response = self.client.post(self.url("/login"), json={"username": "root", "password": PASSWORD})
        self.assertEqual(response.status_code, 200)
        user = response.json()["user"]
        self.assertEqual(user["username"], "root")
        self.assertEqual(user["roles"], ["admin"])
        self.assertTrue(user["token"])
        self.assertNotIn("password_hash", user)

    def test_bad_credentials_render_message(self) -> None:
        response = self.client.post(self.url("/login"), json={"username": "root", "password": "nope-nope"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"message": "Invalid username or password."})

    def test_missing_identifier_is_400(self) -> None:
        response = self.client.post(self.url("/login"), json={"password": PASSWORD})
        self.assertEqual(response.status_code, 400)
        self.assertIn("message", response.json())

    def test_throttled_login_is_429(self) -> None:
        for _ in range(3):
            self.client.post(self.url("/login"), json={"username": "alice", "password": "wrong-one"})
        response = self.client.post(self.url("/login"), json={"username": "alice", "password": PASSWORD})
        self.assertEqual(response.status_code, 429)

    def test_logout_revokes_token(self) -> None:
        headers = self.auth("alice")
        self.assertEqual(self.client.get(self.url(f"/users/{self.user_id}"), headers=headers).status_code, 200)
        response = self.client.delete(self.url("/logout"), headers=headers)
        self.assertEqual(response.status_code, 200)
        response = self.client.get(self.url(f"/users/{self.user_id}"), headers=headers)
        self.assertEqual(response.status_code, 401)

    def test_missing_token_is_401(self) -> None:
        response = self.client.get(self.url("/users"))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"message": "Not authenticated"})


class TestSignup(ApiTestCase):
    def test_signup_creates_account(self) -> None:
        response = self.client.post(
            self.url("/signup"),
            json={"username": "dan", "email": "dan@example.org", "password": PASSWORD, "first": "Dan"},
        )
        self.assertEqual(response.status_code, 201, response.text)
        body = response.json()
        self.assertEqual(body["name"]["first"], "Dan")
        self.assertFalse(body["verification"]["complete"])
        self.login("dan")

    def test_signup_with_prefix_assigns_autoroles(self) -> None:
        self.client.post(self.url("/applications"), json=GAMES_APP, headers=self.auth("root"))
        response = self.client.post(
            self.url("/signup"),
            json={"username": "dan", "email": "dan@example.org", "password": PASSWORD, "prefix": "games"},
        )
        self.assertEqual(response.status_code, 201, response.text)
        self.assertEqual(response.json()["roles"], ["student"])

    def test_duplicate_username_is_400(self) -> None:
        response = self.client.post(
            self.url("/signup"),
            json={"username": "alice", "email": "new@example.org", "password": PASSWORD},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"message": "That username is already taken."})

    @patch("gleaner_users.services.bulk_import.send_mail", return_value=False)
    def test_massive_signup_reports_row_errors(self, send_mail) -> None:
        content = b"username,email,password\nann,ann@example.org,password-ann\nbad-row\ncat,cat@example.org,\n"
        response = self.client.post(
            self.url("/signup/massive"),
            files={"csv": ("users.csv", content, "text/csv")},
            headers=self.auth("root"),
        )
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body["total"], 3)
        self.assertEqual(body["successCount"], 2)
        self.assertEqual(body["errorCount"], 1)
        self.assertEqual(body["errors"][0]["row"], 2)
        send_mail.assert_called_once()

    def test_massive_signup_runs_in_worker_thread(self) -> None:
        result = BulkImportResponse(msn="0 of 0 users created.", total=0, success_count=0, error_count=0)
        with patch("gleaner_users.api.auth.run_in_threadpool", new=AsyncMock(return_value=result)) as pool:
            response = self.client.post(
                self.url("/signup/massive"),
                files={"csv": ("users.csv", b"username,email\n", "text/csv")},
                headers=self.auth("root"),
            )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertIs(pool.await_args.args[0], import_users_csv)

    def test_massive_signup_requires_permission(self) -> None:
        response = self.client.post(
            self.url("/signup/massive"),
            files={"csv": ("users.csv", b"username,email\n", "text/csv")},
            headers=self.auth("alice"),
        )
        self.assertEqual(response.status_code, 403)


class TestUsers(ApiTestCase):
    def test_list_requires_permission(self) -> None:
        self.assertEqual(self.client.get(self.url("/users"), headers=self.auth("alice")).status_code, 403)

    def test_admin_lists_users_with_paging(self) -> None:
        response = self.client.get(self.url("/users?limit=1&sort=-username"), headers=self.auth("root"))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(len(body["data"]), 1)
        self.assertEqual(body["data"][0]["username"], "root")
        self.assertEqual(body["pages"]["total"], 2)
        self.assertTrue(body["pages"]["has_next"])

    def test_list_selected_fields(self) -> None:
        response = self.client.get(self.url("/users?fields=username roles"), headers=self.auth("root"))
        self.assertEqual(set(response.json()["data"][0]), {"id", "username", "roles"})

    def test_user_may_read_and_edit_self(self) -> None:
        headers = self.auth("alice")
        response = self.client.put(
            self.url(f"/users/{self.user_id}"), json={"name": {"last": "Liddell"}}, headers=headers
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["name"]["last"], "Liddell")

    def test_user_changes_own_password(self) -> None:
        response = self.client.put(
            self.url(f"/users/{self.user_id}/password"),
            json={"password": PASSWORD, "newPassword": "a-brand-new-secret"},
            headers=self.auth("alice"),
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.login("alice", "a-brand-new-secret")

    def test_wrong_current_password_is_401(self) -> None:
        response = self.client.put(
            self.url(f"/users/{self.user_id}/password"),
            json={"password": "not-my-password", "newPassword": "a-brand-new-secret"},
            headers=self.auth("alice"),
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"message": "Incorrect password."})
        self.login("alice")

    def test_short_new_password_is_400(self) -> None:
        response = self.client.put(
            self.url(f"/users/{self.user_id}/password"),
            json={"password": PASSWORD, "newPassword": "short"},
            headers=self.auth("alice"),
        )
        self.assertEqual(response.status_code, 400)

    def test_user_may_not_change_other_password(self) -> None:
        response = self.client.put(
            self.url(f"/users/{self.admin_id}/password"),
            json={"password": PASSWORD, "newPassword": "a-brand-new-secret"},
            headers=self.auth("alice"),
        )
        self.assertEqual(response.status_code, 403)
        self.login("root")

    def test_user_may_not_read_other(self) -> None:
        response = self.client.get(self.url(f"/users/{self.admin_id}"), headers=self.auth("alice"))
        self.assertEqual(response.status_code, 403)
        self.assertIn("message", response.json())

    def test_unknown_user_is_400(self) -> None:
        response = self.client.get(self.url("/users/999"), headers=self.auth("root"))
        self.assertEqual(response.status_code, 400)

    def test_delete_removes_account_and_roles(self) -> None:
        self.acl.add_user_roles("alice", "student")
        self.db.commit()
        response = self.client.delete(self.url(f"/users/{self.user_id}"), headers=self.auth("root"))
        self.assertEqual(response.status_code, 200)
        self.db.expire_all()
        self.assertEqual(self.acl.user_roles("alice"), [])

    def test_add_roles_requires_every_role_to_exist(self) -> None:
        self.acl.allow("student", "/x", "get")
        self.db.commit()
        headers = self.auth("root")
        response = self.client.post(
            self.url(f"/users/{self.user_id}/roles"), json=["student", "ghost"], headers=headers
        )
        self.assertEqual(response.status_code, 400)
        self.db.expire_all()
        self.assertEqual(self.acl.user_roles("alice"), [])
        response = self.client.post(self.url(f"/users/{self.user_id}/roles"), json=["student"], headers=headers)
        self.assertEqual(response.status_code, 200)
        response = self.client.get(self.url(f"/users/{self.user_id}/roles"), headers=headers)
        self.assertEqual(response.json(), ["student"])

    def test_admin_cannot_remove_own_admin_role(self) -> None:
        response = self.client.delete(self.url(f"/users/{self.admin_id}/roles/admin"), headers=self.auth("root"))
        self.assertEqual(response.status_code, 403)
        self.db.expire_all()
        self.assertEqual(self.acl.user_roles("root"), ["admin"])

    def test_self_shortcut_does_not_cover_role_removal(self) -> None:
        self.acl.add_user_roles("alice", "student")
        self.db.commit()
        response = self.client.delete(
            self.url(f"/users/{self.user_id}/roles/student"), headers=self.auth("alice")
        )
        self.assertEqual(response.status_code, 403)

    def test_permission_check(self) -> None:
        self.acl.allow("student", "/games/:gameId", "get")
        self.acl.add_user_roles("alice", "student")
        self.db.commit()
        headers = self.auth("root")
        allowed = self.client.get(self.url(f"/users/{self.user_id}/games/42/get"), headers=headers)
        denied = self.client.get(self.url(f"/users/{self.user_id}/games/42/put"), headers=headers)
        self.assertIs(allowed.json(), True)
        self.assertIs(denied.json(), False)


class TestRoles(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.headers = self.auth("root")
        response = self.client.post(
            self.url("/roles"),
            json={"roles": "coach", "allows": [{"resources": "/games/:gameId", "permissions": "get put"}]},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200, response.text)

    def test_get_role(self) -> None:
        response = self.client.get(self.url("/roles/coach"), headers=self.headers)
        self.assertEqual(response.json(), {"/games/:gameId": ["get", "put"]})
        self.assertIn("coach", self.client.get(self.url("/roles"), headers=self.headers).json())

    def test_resource_permissions_round(self) -> None:
        base = self.url("/roles/coach/resources/games/:gameId/permissions")
        self.assertEqual(self.client.get(base, headers=self.headers).json(), ["get", "put"])
        response = self.client.post(base, json={"permissions": ["delete"]}, headers=self.headers)
        self.assertEqual(response.json(), ["delete", "get", "put"])
        response = self.client.delete(f"{base}/put", headers=self.headers)
        self.assertEqual(response.json(), ["delete", "get"])

    def test_remove_resource(self) -> None:
        response = self.client.delete(self.url("/roles/coach/resources/games/:gameId"), headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {})
        self.assertEqual(
            self.client.get(self.url("/roles/coach/resources"), headers=self.headers).json(), []
        )

    def test_delete_role_removes_it_from_users(self) -> None:
        self.client.post(self.url(f"/users/{self.user_id}/roles"), json=["coach"], headers=self.headers)
        response = self.client.delete(self.url("/roles/coach"), headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(self.url(f"/users/{self.user_id}/roles"), headers=self.headers).json(), [])

    def test_admin_role_cannot_be_deleted(self) -> None:
        self.assertEqual(self.client.delete(self.url("/roles/admin"), headers=self.headers).status_code, 403)

    def test_unknown_role_is_400(self) -> None:
        self.assertEqual(self.client.get(self.url("/roles/ghost"), headers=self.headers).status_code, 400)


class TestApplicationsAndGateway(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        response = self.client.post(self.url("/applications"), json=GAMES_APP, headers=self.auth("root"))
        self.assertEqual(response.status_code, 200, response.text)
        self.application_id = response.json()["id"]

    def test_list_and_get(self) -> None:
        headers = self.auth("root")
        body = self.client.get(self.url("/applications"), headers=headers).json()
        self.assertEqual(body["items"]["total"], 1)
        response = self.client.get(self.url(f"/applications/{self.application_id}"), headers=headers)
        self.assertEqual(response.json()["prefix"], "games")

    def test_anonymous_route_passes_without_token(self) -> None:
        response = self.client.get(self.url("/authorize/games/public"))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["anonymous"])

    def test_protected_route_needs_token(self) -> None:
        self.assertEqual(self.client.get(self.url("/authorize/games/x")).status_code, 401)

    def test_role_decides_and_user_is_forwarded(self) -> None:
        headers = self.auth("alice")
        self.assertEqual(self.client.get(self.url("/authorize/games/games/7"), headers=headers).status_code, 403)
        self.acl.add_user_roles("alice", "student")
        self.db.commit()
        response = self.client.get(self.url("/authorize/games/games/7"), headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["X-Username"], "alice")
        response = self.client.get(
            self.url("/authorize/games/games/7"), headers={**headers, "X-Original-Method": "PUT"}
        )
        self.assertEqual(response.status_code, 403)

    def test_unknown_prefix_is_400(self) -> None:
        self.assertEqual(self.client.get(self.url("/authorize/nope/x")).status_code, 400)

    def test_delete_application(self) -> None:
        headers = self.auth("root")
        response = self.client.delete(self.url(f"/applications/{self.application_id}"), headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(self.url("/authorize/games/public")).status_code, 400)


class TestStoreFailure(ApiTestCase):
    def test_acl_store_failure_is_503(self) -> None:
        headers = self.auth("root")
        with patch.object(SqlAclStore, "is_allowed", side_effect=AclStoreError("ACL store unavailable")):
            response = self.client.get(self.url("/users"), headers=headers)
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json(), {"message": "ACL store unavailable"})


class TestHealth(ApiTestCase):
    def test_health(self) -> None:
        response = self.client.get(self.url("/health"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["database"], "connected")
        self.assertIn("X-Request-Id", response.headers)


if __name__ == "__main__":
    unittest.main()
