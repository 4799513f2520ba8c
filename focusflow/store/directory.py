"""
Read access to the identity-side tables (User, Membership).

Both tables belong to the account and group services; the focus-session core
only resolves users and looks up group admins. ``add_user`` and
``add_membership`` exist for local seeding and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .database import Database


@dataclass
class User:
    id: str
    name: Optional[str]
    email: str

    @property
    def display_name(self) -> str:
        return (self.name or self.email).strip()


class UserDirectory:

    def __init__(self, db: Database):
        self._db = db

    def find_by_email(self, email: str) -> Optional[User]:
        normalized = (email or "").strip().lower()
        if not normalized:
            return None
        with self._db.connect() as conn:
            row = conn.execute(
                'SELECT id, name, email FROM "User" WHERE lower(email) = ? LIMIT 1',
                (normalized,),
            ).fetchone()
        return User(row["id"], row["name"], row["email"]) if row else None

    def get(self, user_id: str) -> Optional[User]:
        with self._db.connect() as conn:
            row = conn.execute(
                'SELECT id, name, email FROM "User" WHERE id = ? LIMIT 1', (user_id,)
            ).fetchone()
        return User(row["id"], row["name"], row["email"]) if row else None

    def group_admin_emails(self, group_id: str) -> List[str]:
        with self._db.connect() as conn:
            rows = conn.execute(
                """
                SELECT u.email
                FROM "Membership" m
                INNER JOIN "User" u ON u.id = m.user_id
                WHERE m.group_id = ? AND m.role = 'admin'
                ORDER BY m.id
                """,
                (group_id,),
            ).fetchall()
        return [row["email"] for row in rows if row["email"]]

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_user(self, user_id: str, email: str, name: Optional[str] = None) -> User:
        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT INTO "User" (id, name, email) VALUES (?, ?, ?)
                ON CONFLICT (id) DO UPDATE SET name = excluded.name, email = excluded.email
                """,
                (user_id, name, email.strip().lower()),
            )
        return User(user_id, name, email.strip().lower())

    def add_membership(self, group_id: str, user_id: str, role: str = "member") -> None:
        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT INTO "Membership" (group_id, user_id, role) VALUES (?, ?, ?)
                ON CONFLICT (group_id, user_id) DO UPDATE SET role = excluded.role
                """,
                (group_id, user_id, role),
            )
