"""Unit tests for route-to-resource mapping and the admin grant set."""

import unittest

from gleaner_users.acl import ADMIN_ROLE, MemoryAclStore
from gleaner_users.core.config import settings
from gleaner_users.core.errors import ForbiddenError
from gleaner_users.main import app
from gleaner_users.services.authorization import (
    PUBLIC_RESOURCES,
    api_resources,
    is_allowed,
    is_anonymous_route,
    require_allowed,
    route_resource,
    seed_admin_role,
)


class TestRouteResource(unittest.TestCase):
    def test_strips_prefix_and_rewrites_params(self) -> None:
        self.assertEqual(route_resource("/api/users/{user_id}/roles", "/api"), "/users/:user_id/roles")

    def test_path_converter_is_dropped(self) -> None:
        self.assertEqual(
            route_resource("/api/roles/{role}/resources/{resource:path}", "/api"),
            "/roles/:role/resources/:resource",
        )

    def test_empty_prefix(self) -> None:
        self.assertEqual(route_resource("/roles/{role}", ""), "/roles/:role")


class TestApiResources(unittest.TestCase):
    """The admin grant set covers every gated endpoint and none of the public ones."""

    def test_contains_gated_routes(self) -> None:
        resources = api_resources(app, settings.API_PREFIX)
        for expected in ("/users", "/users/:user_id", "/users/:user_id/roles", "/roles", "/applications", "/signup/massive"):
            self.assertIn(expected, resources)

    def test_excludes_public_routes(self) -> None:
        resources = set(api_resources(app, settings.API_PREFIX))
        self.assertFalse(resources & PUBLIC_RESOURCES)

    def test_seeded_admin_may_call_everything(self) -> None:
        acl = MemoryAclStore()
        resources = seed_admin_role(acl, api_resources(app, settings.API_PREFIX))
        acl.add_user_roles("root", ADMIN_ROLE)
        for resource in resources:
            self.assertTrue(acl.is_allowed("root", resource, "delete"), resource)


class TestIsAllowed(unittest.TestCase):
    def setUp(self) -> None:
        self.acl = MemoryAclStore()
        self.acl.allow("student", "/x", "get")
        self.acl.add_user_roles("bob", "student")

    def test_method_is_lower_cased(self) -> None:
        self.assertTrue(is_allowed(self.acl, "bob", "/x", "GET"))

    def test_anonymous_caller_is_denied(self) -> None:
        self.assertFalse(is_allowed(self.acl, None, "/x", "get"))

    def test_require_allowed_raises_forbidden(self) -> None:
        with self.assertRaises(ForbiddenError):
            require_allowed(self.acl, "bob", "/x", "PUT")

    def test_anonymous_route_patterns(self) -> None:
        self.assertTrue(is_anonymous_route(["/public/:page"], "/public/about"))
        self.assertFalse(is_anonymous_route(["/public/:page"], "/private/about"))


if __name__ == "__main__":
    unittest.main()
