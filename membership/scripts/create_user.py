"""
Create an account (e.g. the first admin). Run from project root:
  python -m membership.scripts.create_user EMAIL PASSWORD FIRST_NAME LAST_NAME [role]
Example:
  python -m membership.scripts.create_user admin@example.org your-secure-password Awa Diop admin
"""
import argparse
import sys

from membership.core.config import get_settings
from membership.core.database import SessionLocal
from membership.core.errors import ConflictError
from membership.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    hash_password,
    is_valid_email,
    normalize_email,
)
from membership.models.user import ROLE_ADMIN, ROLE_MEMBER
from membership.services.directory import UserDirectory


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a membership account (no enrollment needed).")
    parser.add_argument("email", help="Account email")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("first_name")
    parser.add_argument("last_name")
    parser.add_argument("role", nargs="?", default=ROLE_MEMBER, choices=[ROLE_MEMBER, ROLE_ADMIN])
    args = parser.parse_args(argv)

    email = normalize_email(args.email)
    if not is_valid_email(email):
        print("Invalid email address.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    settings = get_settings()
    db = SessionLocal()
    try:
        directory = UserDirectory(db)
        try:
            directory.create(
                email=email,
                first_name=args.first_name.strip(),
                last_name=args.last_name.strip(),
                password_hash=hash_password(args.password, settings.BCRYPT_ROUNDS),
                role=args.role,
            )
        except ConflictError:
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        db.commit()
        print(f"Created user '{email}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
