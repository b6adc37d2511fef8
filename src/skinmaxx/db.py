"""SQLite database for the skinmaxx scan journal."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Iterator
from uuid import uuid4

from skinmaxx.config import DEFAULT_DB_NAME
from skinmaxx.errors import NotFoundError
from skinmaxx.scoring.types import (
    AgingStructure,
    AnalysisResult,
    Clarity,
    PigmentationTone,
    SkinType,
    SurfaceTexture,
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT UNIQUE NOT NULL,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS scans (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    score INTEGER NOT NULL,
    skin_age INTEGER NOT NULL,
    skin_type TEXT NOT NULL,
    surface_texture TEXT NOT NULL,
    pigmentation_tone TEXT NOT NULL,
    clarity TEXT NOT NULL,
    aging_structure TEXT NOT NULL,
    radiance_score INTEGER NOT NULL,
    has_radiance_bonus INTEGER NOT NULL,
    smile_probability REAL NOT NULL DEFAULT 0,
    image_uri TEXT NOT NULL,
    image_hash TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);
CREATE INDEX IF NOT EXISTS idx_scans_user_id ON scans(user_id);
CREATE INDEX IF NOT EXISTS idx_scans_created_at ON scans(created_at DESC);
"""

# Journal sort orders; score ties fall back to newest first.
HISTORY_ORDERS = {
    "newest": "created_at DESC, rowid DESC",
    "oldest": "created_at ASC, rowid ASC",
    "highest": "score DESC, created_at DESC, rowid DESC",
    "lowest": "score ASC, created_at DESC, rowid DESC",
}


@dataclass(frozen=True)
class User:
    """An account that owns scans."""

    id: str
    email: str
    name: str
    created_at: datetime


@dataclass(frozen=True)
class Scan:
    """A persisted analysis: the result plus ownership and image reference."""

    id: str
    user_id: str
    result: AnalysisResult
    image_uri: str
    created_at: datetime
    image_hash: str | None = None

    def to_wire(self) -> dict[str, Any]:
        data = self.result.to_wire()
        data.update(
            {
                "id": self.id,
                "userId": self.user_id,
                "imageUri": self.image_uri,
                "imageHash": self.image_hash,
                "createdAt": self.created_at.isoformat(),
            }
        )
        return data


class Database:
    """SQLite database wrapper for users and their scans."""

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection with foreign keys enforced."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    def init_schema(self) -> None:
        """Initialize database schema."""
        with self.connection() as conn:
            conn.executescript(SCHEMA)
            conn.commit()

    # Users

    def create_user(self, email: str, name: str) -> User:
        """Insert a new user. Raises sqlite3.IntegrityError on duplicate email."""
        user = User(
            id=f"user_{uuid4().hex}",
            email=email.strip().lower(),
            name=name,
            created_at=datetime.now(UTC),
        )
        with self.connection() as conn:
            conn.execute(
                "INSERT INTO users (id, email, name, created_at) VALUES (?, ?, ?, ?)",
                (user.id, user.email, user.name, user.created_at.isoformat()),
            )
            conn.commit()
        return user

    def get_user(self, user_id: str) -> User | None:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE id = ?", (user_id,)
            ).fetchone()
            return self._row_to_user(row) if row else None

    def get_user_by_email(self, email: str) -> User | None:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", (email.strip().lower(),)
            ).fetchone()
            return self._row_to_user(row) if row else None

    def delete_user(self, user_id: str) -> bool:
        """Delete a user; their scans go with them."""
        with self.connection() as conn:
            cur = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            conn.commit()
            return cur.rowcount > 0

    def count_users(self) -> int:
        with self.connection() as conn:
            row = conn.execute("SELECT COUNT(*) as cnt FROM users").fetchone()
            return row["cnt"] if row else 0

    # Scans

    def save_scan(
        self,
        user_id: str,
        result: AnalysisResult,
        image_uri: str,
        image_hash: str | None = None,
    ) -> Scan:
        """Persist an analysis result for a user.

        Raises:
            NotFoundError: The user does not exist.
        """
        if self.get_user(user_id) is None:
            raise NotFoundError(f"Unknown user: {user_id}")

        scan = Scan(
            id=f"scan_{uuid4().hex}",
            user_id=user_id,
            result=result,
            image_uri=image_uri,
            image_hash=image_hash,
            created_at=datetime.now(UTC),
        )
        with self.connection() as conn:
            conn.execute(
                """
                INSERT INTO scans (
                    id, user_id, score, skin_age, skin_type,
                    surface_texture, pigmentation_tone, clarity, aging_structure,
                    radiance_score, has_radiance_bonus, smile_probability,
                    image_uri, image_hash, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    scan.id,
                    scan.user_id,
                    result.score,
                    result.skin_age,
                    result.skin_type.value,
                    json.dumps(result.surface_texture.to_wire()),
                    json.dumps(result.pigmentation_tone.to_wire()),
                    json.dumps(result.clarity.to_wire()),
                    json.dumps(result.aging_structure.to_wire()),
                    result.radiance_score,
                    1 if result.has_radiance_bonus else 0,
                    result.smile_probability,
                    scan.image_uri,
                    scan.image_hash,
                    scan.created_at.isoformat(),
                ),
            )
            conn.commit()
        return scan

    def get_scan(self, scan_id: str) -> Scan | None:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM scans WHERE id = ?", (scan_id,)
            ).fetchone()
            return self._row_to_scan(row) if row else None

    def get_history(self, user_id: str, order: str = "newest") -> list[Scan]:
        """All scans for a user, newest first unless `order` says otherwise.

        `order` is one of HISTORY_ORDERS: newest, oldest, highest, lowest.
        """
        if order not in HISTORY_ORDERS:
            raise ValueError(f"Unknown history order: {order}")
        with self.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM scans WHERE user_id = ? "
                f"ORDER BY {HISTORY_ORDERS[order]}",
                (user_id,),
            ).fetchall()
            return [self._row_to_scan(row) for row in rows]

    def delete_scan(self, user_id: str, scan_id: str) -> bool:
        """Delete one of the user's scans. False if it was not theirs."""
        with self.connection() as conn:
            cur = conn.execute(
                "DELETE FROM scans WHERE id = ? AND user_id = ?", (scan_id, user_id)
            )
            conn.commit()
            return cur.rowcount > 0

    def count_scans(self, user_id: str | None = None) -> int:
        with self.connection() as conn:
            if user_id is None:
                row = conn.execute("SELECT COUNT(*) as cnt FROM scans").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) as cnt FROM scans WHERE user_id = ?", (user_id,)
                ).fetchone()
            return row["cnt"] if row else 0

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_scan(self, row: sqlite3.Row) -> Scan:
        """Convert a database row to Scan."""
        result = AnalysisResult(
            score=row["score"],
            skin_age=row["skin_age"],
            skin_type=SkinType(row["skin_type"]),
            surface_texture=SurfaceTexture.from_wire(json.loads(row["surface_texture"])),
            pigmentation_tone=PigmentationTone.from_wire(
                json.loads(row["pigmentation_tone"])
            ),
            clarity=Clarity.from_wire(json.loads(row["clarity"])),
            aging_structure=AgingStructure.from_wire(json.loads(row["aging_structure"])),
            radiance_score=row["radiance_score"],
            has_radiance_bonus=bool(row["has_radiance_bonus"]),
            smile_probability=row["smile_probability"],
        )
        return Scan(
            id=row["id"],
            user_id=row["user_id"],
            result=result,
            image_uri=row["image_uri"],
            image_hash=row["image_hash"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


def get_db(db_path: Path | str = DEFAULT_DB_NAME) -> Database:
    """Open the database at db_path, creating the schema if needed."""
    db = Database(db_path)
    db.init_schema()
    return db
