"""Bulk account creation from CSV. Every row is attempted; failures are reported per row."""

import csv
import io
import logging
from typing import TYPE_CHECKING

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gleaner_users.acl import AclStore
from gleaner_users.core.errors import ConflictError, ValidationError
from gleaner_users.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    generate_password,
)
from gleaner_users.schemas.signup import BulkImportResponse, ImportRowError
from gleaner_users.services.applications import resolve_autoroles
from gleaner_users.services.mailer import MailDeliveryError, send_mail
from gleaner_users.services.users import create_user

if TYPE_CHECKING:
    from gleaner_users.core.config import Settings

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("username", "email")
OPTIONAL_COLUMNS = ("password", "first", "middle", "last")
NAME_COLUMNS = ("first", "middle", "last")
NAME_MAX_LEN = 255

_email_adapter = TypeAdapter(EmailStr)


class RowError(Exception):
    """A single CSV row cannot be turned into an account."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ValidationError("The CSV file must be UTF-8 encoded.") from e


def _reader(text: str) -> csv.DictReader:
    reader = csv.DictReader(io.StringIO(text, newline=""), skipinitialspace=True)
    if not reader.fieldnames:
        raise ValidationError("The CSV file is empty.")
    reader.fieldnames = [name.strip().lower() for name in reader.fieldnames]
    missing = [c for c in REQUIRED_COLUMNS if c not in reader.fieldnames]
    if missing:
        raise ValidationError(f"The CSV header must include: {', '.join(missing)}")
    return reader


def parse_row(row: dict, columns: int) -> dict[str, str]:
    """Validate one DictReader row; raises RowError with the reason it is unusable."""
    if None in row or any(value is None for value in row.values()):
        raise RowError(f"Malformed row: expected {columns} columns")
    values = {key: (row.get(key) or "").strip() for key in REQUIRED_COLUMNS + OPTIONAL_COLUMNS}
    if not values["username"]:
        raise RowError("Missing username")
    if len(values["username"]) > USERNAME_MAX_LEN:
        raise RowError("Username is too long")
    if not values["email"]:
        raise RowError("Missing email")
    try:
        _email_adapter.validate_python(values["email"])
    except PydanticValidationError as e:
        raise RowError(f"Invalid email '{values['email']}'") from e
    password = values["password"]
    if password and not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
        raise RowError(
            f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters"
        )
    for key in NAME_COLUMNS:
        if len(values[key]) > NAME_MAX_LEN:
            raise RowError(f"Name part '{key}' is longer than {NAME_MAX_LEN} characters")
    return values


def _send_generated_password(settings: "Settings", email: str, username: str, password: str) -> None:
    body = (
        f"Hi {username},\n\n"
        "An account has been created for you.\n\n"
        f"Username: {username}\n"
        f"Password: {password}\n\n"
        f"Sign in at {settings.PUBLIC_BASE_URL}/login and change it.\n"
    )
    try:
        send_mail(settings, email, "Your new account", body)
    except MailDeliveryError as e:
        # The account stays; the owner can still use the password reset flow.
        logger.error("Could not mail generated password to user=%s: %s", username, e.message)


def import_users_csv(
    db: Session,
    acl: AclStore,
    content: bytes,
    settings: "Settings",
    prefix: str | None = None,
) -> BulkImportResponse:
    """
    Create one account per data row. Rows are committed one by one, so a
    failing row neither stops the import nor undoes earlier rows.

    Reported row numbers are the 1-based line of the row in the file, header
    excluded; blank lines are skipped but still counted.
    """
    reader = _reader(_decode(content))
    columns = len(reader.fieldnames)
    roles = resolve_autoroles(db, acl, prefix)

    total = 0
    created = 0
    errors: list[ImportRowError] = []
    for row in reader:
        total += 1
        index = reader.line_num - 1
        try:
            values = parse_row(row, columns)
            password = values["password"] or generate_password()
            create_user(
                db,
                acl,
                values["username"],
                values["email"],
                password,
                first=values["first"],
                middle=values["middle"],
                last=values["last"],
                roles=roles,
            )
        except RowError as e:
            errors.append(ImportRowError(row=index, reason=e.reason))
            continue
        except (ConflictError, ValidationError) as e:
            errors.append(ImportRowError(row=index, reason=e.message))
            continue
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("CSV import row %s not stored: %s", index, type(e).__name__)
            errors.append(ImportRowError(row=index, reason="The account could not be stored."))
            continue
        created += 1
        if not values["password"]:
            _send_generated_password(settings, values["email"], values["username"], password)

    logger.info("CSV import: total=%s created=%s errors=%s", total, created, len(errors))
    return BulkImportResponse(
        msn=f"{created} of {total} users created.",
        total=total,
        success_count=created,
        error_count=len(errors),
        errors=errors,
    )
