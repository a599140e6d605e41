"""
Create a user (e.g. first admin). Run from project root:
  python -m gleaner_users.scripts.create_user USERNAME EMAIL PASSWORD [--admin] [--role ROLE ...]
Example:
  python -m gleaner_users.scripts.create_user admin admin@example.org your-secure-password --admin

--admin also installs the admin role grants for every API resource.
"""
import argparse
import sys

from gleaner_users.acl import ADMIN_ROLE, SqlAclStore
from gleaner_users.core.config import get_settings
from gleaner_users.core.database import SessionLocal
from gleaner_users.core.errors import UsersApiError
from gleaner_users.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN, USERNAME_MAX_LEN
from gleaner_users.services.authorization import api_resources
from gleaner_users.services.bootstrap import ensure_admin
from gleaner_users.services.users import create_user


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a Gleaner Users account.")
    parser.add_argument("username", help=f"Username (1-{USERNAME_MAX_LEN} chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("--admin", action="store_true", help="Give the account the admin role")
    parser.add_argument("--role", action="append", default=[], help="Existing role to assign (repeatable)")
    args = parser.parse_args()

    settings = get_settings()
    if settings.ACL_BACKEND != "sql":
        print("Roles can only be seeded from the CLI with ACL_BACKEND=sql.", file=sys.stderr)
        return 1

    username = args.username.strip()
    if not username or len(username) > USERNAME_MAX_LEN:
        print("Invalid username length.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    db = SessionLocal()
    acl = SqlAclStore(db)
    try:
        missing = [role for role in args.role if not acl.exists_role(role)]
        if missing:
            print(f"Unknown role(s): {', '.join(missing)}", file=sys.stderr)
            return 1
        if args.admin:
            from gleaner_users.main import app

            ensure_admin(db, acl, api_resources(app, settings.API_PREFIX))
        roles = args.role + ([ADMIN_ROLE] if args.admin else [])
        user = create_user(db, acl, username, args.email, args.password, roles=roles)
        print(f"Created user '{user.username}' (id={user.id}) with roles {roles or '[]'}.")
        return 0
    except UsersApiError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
