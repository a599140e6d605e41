"""Test configuration: point settings at an in-memory SQLite database before the app is imported."""

import os

os.environ["APP_ENV"] = "dev"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ACL_BACKEND"] = "sql"
os.environ["JWT_SECRET"] = "test-secret-key-for-unit-tests-only"
os.environ["LOGIN_MAX_FAILED_ATTEMPTS"] = "3"
os.environ["SMTP_HOST"] = ""
os.environ.pop("ADMIN_USERNAME", None)
