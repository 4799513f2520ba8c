"""
Seed the local user directory: adds users and team-group memberships so a
development instance can be used behind a fake identity header.

Usage:
    python scripts/seed_directory.py user u-alice alice@example.com --name Alice
    python scripts/seed_directory.py member team-1 u-alice --role admin
    python scripts/seed_directory.py --db data/focusflow.db user u-bob bob@example.com
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Make sure the package root is on the path when run as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

from focusflow.config import config
from focusflow.store.database import Database
from focusflow.store.directory import UserDirectory


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed FocusFlow users and memberships")
    parser.add_argument("--db", type=Path, default=config.database_path, help="SQLite file")
    sub = parser.add_subparsers(dest="command", required=True)

    user = sub.add_parser("user", help="Add or update a user")
    user.add_argument("user_id")
    user.add_argument("email")
    user.add_argument("--name", default=None)

    member = sub.add_parser("member", help="Add a user to a team group")
    member.add_argument("group_id")
    member.add_argument("user_id")
    member.add_argument("--role", choices=["member", "admin"], default="member")

    args = parser.parse_args()

    db = Database(args.db)
    db.migrate()
    directory = UserDirectory(db)

    if args.command == "user":
        added = directory.add_user(args.user_id, args.email, args.name)
        print(f"User {added.id} <{added.email}> saved to {args.db}")
    else:
        directory.add_membership(args.group_id, args.user_id, args.role)
        print(f"{args.user_id} is now {args.role} of {args.group_id}")


if __name__ == "__main__":
    main()
