"""Create a user directly in the configured database.

Bootstraps the first admin account, or any account when self-registration
roles are disabled (REGISTRATION_ROLE_ENABLED=false).

Usage:
  python scripts/create_user.py --email admin@example.com --full-name "Site Admin" --role admin
  (the password is prompted for unless --password is given)
"""

import argparse
import getpass
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from pydantic import validate_email  # noqa: E402
from pydantic_core import PydanticCustomError  # noqa: E402
from sqlalchemy.exc import IntegrityError  # noqa: E402

from auth.models import User  # noqa: E402
from auth.store import UserStore  # noqa: E402
from auth.tokens import hash_password  # noqa: E402
from core.config import get_settings  # noqa: E402
from core.db import Database  # noqa: E402


def main() -> int:
    ap = argparse.ArgumentParser(description="Create a Pharmabolt user.")
    ap.add_argument("--email", required=True)
    ap.add_argument("--full-name", required=True)
    ap.add_argument("--password", help="omit to be prompted")
    ap.add_argument("--role", choices=["user", "admin"], default="user")
    ap.add_argument("--phone-no", default="n/a")
    ap.add_argument("--address", default="n/a")
    ap.add_argument("--city", default="n/a")
    ap.add_argument("--state", default="n/a")
    args = ap.parse_args()

    try:
        email = validate_email(args.email.strip())[1]
    except PydanticCustomError:
        print(f"{args.email} is not a valid email address.", file=sys.stderr)
        return 1

    password = args.password or getpass.getpass("Password: ")
    if len(password) < 8:
        print("Password must be at least 8 characters.", file=sys.stderr)
        return 1

    db = Database.from_settings(get_settings())
    db.create_all()
    try:
        with db.connect() as conn:
            store = UserStore(conn)
            if store.email_taken(email):
                print(f"A user with email {email} already exists.", file=sys.stderr)
                return 1
            user_id = store.create_user(
                User(
                    full_name=args.full_name,
                    email=email,
                    phone_no=args.phone_no,
                    hashed_password=hash_password(password),
                    address=args.address,
                    city=args.city,
                    state=args.state,
                    role=args.role,
                )
            )
    except IntegrityError:
        print(f"A user with email {email} already exists.", file=sys.stderr)
        return 1
    finally:
        db.close()

    print(f"Created user id={user_id} email={email} role={args.role}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
