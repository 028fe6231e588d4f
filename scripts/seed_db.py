"""
Seed script for staff accounts (admins and workers).

Self-service registration only ever creates citizens, so this is how worker
and admin accounts get into the mock DB or Firestore.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Force mock DB even if FIREBASE configured: python scripts/seed_db.py --apply --force-mock
  - Other seed file: python scripts/seed_db.py --file path/to/seed.json

Behavior:
  - Loads `db_seed.json` from repo root: {"users": [{name, email, password, role, phone?}, ...]}
  - Creates each account through UserService, already verified, with a bcrypt hash.
  - Accounts whose email already exists are skipped.

NOTE: When applying to real Firestore, ensure `FIREBASE_CREDENTIALS_PATH` and `USE_MOCK_DB=false` are set in `.env`.
"""

import argparse
import json
import os
from typing import Dict, List

from civic_api.config.firebase import get_db
from civic_api.core.errors import ConflictError
from civic_api.core.permissions import parse_role
from civic_api.core.settings import settings
from civic_api.services.user_service import UserService

REQUIRED_FIELDS = ("name", "email", "password", "role")


def load_seed(path: str = "./db_seed.json") -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def validate_accounts(accounts: List[Dict]) -> List[str]:
    """Return a list of problems; empty when every entry can be created."""
    problems = []
    for index, account in enumerate(accounts):
        missing = [field for field in REQUIRED_FIELDS if not account.get(field)]
        if missing:
            problems.append(f"users[{index}] is missing {missing}")
            continue
        try:
            parse_role(account["role"])
        except ValueError as e:
            problems.append(f"users[{index}]: {e}")
    return problems


def seed_accounts(user_service: UserService, accounts: List[Dict], apply: bool = False) -> int:
    created = 0
    for account in accounts:
        print(f"Preparing: {account['role']} {account['email']}")
        if not apply:
            continue
        try:
            user = user_service.create_user(
                account["name"],
                account["email"],
                account["password"],
                phone=account.get("phone"),
                role=parse_role(account["role"]),
                is_verified=True,
            )
        except ConflictError:
            print(f"Skipped (already exists): {account['email']}")
            continue
        created += 1
        print(f"Wrote: users/{user['id']}")
    return created


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--force-mock", action="store_true", help="Force use of mock DB even if FIREBASE configured")
    parser.add_argument("--file", default=os.path.join(os.getcwd(), "db_seed.json"), help="Seed file path")
    args = parser.parse_args()

    if not os.path.exists(args.file):
        print(f"Seed file not found: {args.file}")
        return

    accounts = load_seed(args.file).get("users", [])
    problems = validate_accounts(accounts)
    if problems:
        for problem in problems:
            print(f"Invalid seed entry: {problem}")
        return

    if args.force_mock:
        print("Forcing mock DB usage for this run.")
        settings.USE_MOCK_DB = True

    created = seed_accounts(UserService(db=get_db()), accounts, apply=args.apply)

    if args.apply:
        print(f"Seeding completed. {created} account(s) created.")
    else:
        print("Dry run complete. Re-run with --apply to write to DB.")


if __name__ == "__main__":
    main()
