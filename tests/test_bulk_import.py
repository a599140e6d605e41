"""Tests for CSV bulk import: per-row failures never stop the batch."""

import unittest
from unittest.mock import patch

from sqlalchemy.exc import DataError

from gleaner_users.core.config import get_settings
from gleaner_users.core.errors import ValidationError
from gleaner_users.models import User
from gleaner_users.services import bulk_import
from gleaner_users.services.bulk_import import RowError, import_users_csv, parse_row

from helpers import DatabaseTestCase

HEADER = "username,email,password,first,last\n"


def _csv(*rows: str) -> bytes:
    return (HEADER + "\n".join(rows) + "\n").encode("utf-8")


class TestParseRow(unittest.TestCase):
    def test_valid_row(self) -> None:
        values = parse_row({"username": " dan ", "email": "dan@example.org", "password": ""}, 3)
        self.assertEqual(values["username"], "dan")
        self.assertEqual(values["password"], "")

    def test_missing_username(self) -> None:
        with self.assertRaises(RowError):
            parse_row({"username": "", "email": "x@example.org"}, 2)

    def test_invalid_email(self) -> None:
        with self.assertRaises(RowError) as ctx:
            parse_row({"username": "dan", "email": "not-an-email"}, 2)
        self.assertIn("Invalid email", ctx.exception.reason)

    def test_short_password(self) -> None:
        with self.assertRaises(RowError):
            parse_row({"username": "dan", "email": "dan@example.org", "password": "short"}, 3)

    def test_overlong_name_part(self) -> None:
        with self.assertRaises(RowError) as ctx:
            parse_row({"username": "dan", "email": "dan@example.org", "first": "x" * 300}, 3)
        self.assertIn("first", ctx.exception.reason)

    def test_extra_columns(self) -> None:
        with self.assertRaises(RowError):
            parse_row({"username": "dan", "email": "dan@example.org", None: ["surplus"]}, 2)


@patch("gleaner_users.services.bulk_import.send_mail", return_value=False)
class TestImportUsersCsv(DatabaseTestCase):
    def test_malformed_row_is_reported_and_others_are_created(self, send_mail) -> None:
        content = _csv(
            "ann,ann@example.org,password-ann,Ann,Lee",
            "ben,ben@example.org",
            "cat,cat@example.org,password-cat,Cat,Roe",
        )
        result = import_users_csv(self.db, self.acl, content, get_settings())
        self.assertEqual(result.total, 3)
        self.assertEqual(result.success_count, 2)
        self.assertEqual(result.error_count, 1)
        self.assertEqual(result.errors[0].row, 2)
        self.assertEqual(
            sorted(u.username for u in self.db.query(User).all()), ["ann", "cat"]
        )
        send_mail.assert_not_called()

    def test_overlong_name_does_not_stop_later_rows(self, send_mail) -> None:
        content = _csv(
            "ann,ann@example.org,password-ann,Ann,Lee",
            "ben,ben@example.org,password-ben," + "B" * 300 + ",Roe",
            "cat,cat@example.org,password-cat,Cat,Roe",
        )
        result = import_users_csv(self.db, self.acl, content, get_settings())
        self.assertEqual(result.success_count, 2)
        self.assertEqual([e.row for e in result.errors], [2])
        self.assertEqual(sorted(u.username for u in self.db.query(User).all()), ["ann", "cat"])

    def test_database_error_on_one_row_is_reported(self, send_mail) -> None:
        real_create_user = bulk_import.create_user

        def create_user(db, acl, username, *args, **kwargs):
            if username == "ben":
                raise DataError("INSERT INTO users", {}, Exception("value too long"))
            return real_create_user(db, acl, username, *args, **kwargs)

        content = _csv(
            "ann,ann@example.org,password-ann,,",
            "ben,ben@example.org,password-ben,,",
            "cat,cat@example.org,password-cat,,",
        )
        with patch.object(bulk_import, "create_user", side_effect=create_user):
            result = import_users_csv(self.db, self.acl, content, get_settings())
        self.assertEqual(result.success_count, 2)
        self.assertEqual(result.errors[0].row, 2)
        self.assertEqual(sorted(u.username for u in self.db.query(User).all()), ["ann", "cat"])

    def test_blank_lines_keep_file_row_numbers(self, send_mail) -> None:
        content = _csv("ann,ann@example.org,password-ann,,", "", "bad-row")
        result = import_users_csv(self.db, self.acl, content, get_settings())
        self.assertEqual(result.total, 2)
        self.assertEqual([e.row for e in result.errors], [3])

    def test_duplicate_username_is_a_row_error(self, send_mail) -> None:
        self.make_user("ann")
        content = _csv(
            "ann,other@example.org,password-ann,,",
            "ben,ben@example.org,password-ben,,",
        )
        result = import_users_csv(self.db, self.acl, content, get_settings())
        self.assertEqual(result.success_count, 1)
        self.assertEqual([e.row for e in result.errors], [1])
        self.assertIn("already", result.errors[0].reason)

    def test_missing_password_is_generated_and_mailed(self, send_mail) -> None:
        content = _csv("dan,dan@example.org,,Dan,")
        result = import_users_csv(self.db, self.acl, content, get_settings())
        self.assertEqual(result.success_count, 1)
        send_mail.assert_called_once()
        self.assertEqual(send_mail.call_args.args[1], "dan@example.org")

    def test_serialized_counts_use_camel_case(self, send_mail) -> None:
        result = import_users_csv(self.db, self.acl, _csv("eve,eve@example.org,password-eve,,"), get_settings())
        body = result.model_dump(by_alias=True)
        self.assertEqual(body["successCount"], 1)
        self.assertEqual(body["errorCount"], 0)
        self.assertIn("msn", body)

    def test_header_without_email_is_rejected(self, send_mail) -> None:
        with self.assertRaises(ValidationError):
            import_users_csv(self.db, self.acl, b"username,password\nann,password-ann\n", get_settings())

    def test_empty_file_is_rejected(self, send_mail) -> None:
        with self.assertRaises(ValidationError):
            import_users_csv(self.db, self.acl, b"", get_settings())


if __name__ == "__main__":
    unittest.main()
