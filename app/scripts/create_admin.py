"""
Create the first admin account (there is no registration UI). Run from project root:
  python -m app.scripts.create_admin USERNAME EMAIL PASSWORD
Re-set the password of an existing admin:
  python -m app.scripts.create_admin admin admin@example.com new-secure-password --reset-password
"""
import argparse
import logging
import sys

from app.core.config import settings
from app.core.database import SessionLocal
from app.core.logging import configure_logging
from app.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN, USERNAME_MAX_LEN, USERNAME_MIN_LEN
from app.models import ROLE_ADMIN
from app.schemas.users import normalize_email
from app.services.users import create_user, get_user_by_email, get_user_by_username

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create or update an MSKTF admin account.")
    parser.add_argument("username", help=f"Username ({USERNAME_MIN_LEN}-{USERNAME_MAX_LEN} chars)")
    parser.add_argument("email", help="Email address used for password resets")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument(
        "--reset-password",
        action="store_true",
        help="If the admin already exists, replace its password instead of failing.",
    )
    args = parser.parse_args(argv)
    configure_logging(settings)

    username = args.username.strip()
    if not (USERNAME_MIN_LEN <= len(username) <= USERNAME_MAX_LEN):
        print("Invalid username length.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1
    try:
        email = normalize_email(args.email)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        existing = get_user_by_username(db, username)
        if existing is not None:
            if not args.reset_password:
                print(f"User '{username}' already exists.", file=sys.stderr)
                return 1
            if existing.role != ROLE_ADMIN:
                print(f"User '{username}' is not an admin.", file=sys.stderr)
                return 1
            existing.password = args.password
            existing.needs_password_change = False
            existing.refresh_token = None
            db.commit()
            logger.info("Admin password updated", extra={"user_id": existing.id})
            print(f"Updated password for admin '{username}'.")
            return 0
        if get_user_by_email(db, email) is not None:
            print(f"Email '{email}' is already in use.", file=sys.stderr)
            return 1
        user = create_user(
            db,
            username=username,
            email=email,
            password=args.password,
            role=ROLE_ADMIN,
            needs_password_change=False,
        )
        logger.info("Admin created", extra={"user_id": user.id})
        print(f"Created admin '{username}' (id {user.id}).")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
