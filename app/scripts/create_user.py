"""Create a FinanceTracker user.

Usage:
    python -m app.scripts.create_user --email me@example.com --password <password> [--name "Me"]
"""

from __future__ import annotations

import argparse
import sys

from app.db.session import SessionLocal
from app.services.auth import EmailTakenError, create_user


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a FinanceTracker user")
    parser.add_argument("--email", required=True, help="Email for the new user")
    parser.add_argument("--password", required=True, help="Password (min 8 characters)")
    parser.add_argument("--name", default=None, help="Display name")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        try:
            user = create_user(db, args.email, args.password, args.name)
        except EmailTakenError:
            print(f"User '{args.email.strip().lower()}' already exists.")
            sys.exit(1)
        except ValueError as e:
            print(f"Invalid input: {e}")
            sys.exit(2)
        print(f"User '{user.email}' created successfully (id={user.id}).")
    finally:
        db.close()


if __name__ == "__main__":
    main()
