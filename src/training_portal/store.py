"""SQLite-backed profile store.

The progress and recommendation functions never touch storage: callers
load a profile here, pass it through the pure functions, then save the
returned profile. ``save`` accepts the version the caller read so that
two overlapping read-modify-write cycles on one profile cannot silently
overwrite each other.
"""
import json
import logging
from datetime import datetime
from typing import Optional

from training_portal.db import DEFAULT_DB_PATH, get_connection, init_db
from training_portal.errors import NotFoundError, ProfileConflictError
from training_portal.models import UserProfile, profile_from_dict, profile_to_dict

logger = logging.getLogger(__name__)

ACTIVE_PROFILE_KEY = "active_profile_id"


class ProfileStore:
    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path
        init_db(db_path)

    def create(self, profile: UserProfile) -> None:
        now = datetime.now().isoformat()
        conn = get_connection(self.db_path)
        try:
            conn.execute(
                "INSERT INTO profiles (id, name, data, version, created_at, updated_at) VALUES (?, ?, ?, 1, ?, ?)",
                (profile.id, profile.name, json.dumps(profile_to_dict(profile)), now, now),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("Created profile %s", profile.id)

    def get(self, profile_id: str) -> Optional[UserProfile]:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT data FROM profiles WHERE id = ?", (profile_id,)).fetchone()
        conn.close()
        return profile_from_dict(json.loads(row["data"])) if row else None

    def load(self, profile_id: str) -> UserProfile:
        profile = self.get(profile_id)
        if profile is None:
            raise NotFoundError("Profile", profile_id)
        return profile

    def get_version(self, profile_id: str) -> int:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT version FROM profiles WHERE id = ?", (profile_id,)).fetchone()
        conn.close()
        if row is None:
            raise NotFoundError("Profile", profile_id)
        return row["version"]

    def save(self, profile: UserProfile, expected_version: int | None = None) -> int:
        """Persist ``profile`` and return its new version.

        When ``expected_version`` is given the write only succeeds if the
        stored version still matches; otherwise ProfileConflictError is raised
        and nothing is written.
        """
        conn = get_connection(self.db_path)
        try:
            row = conn.execute("SELECT version FROM profiles WHERE id = ?", (profile.id,)).fetchone()
            if row is None:
                raise NotFoundError("Profile", profile.id)
            current = row["version"]
            if expected_version is not None and expected_version != current:
                raise ProfileConflictError(profile.id, expected_version, current)
            cursor = conn.execute(
                "UPDATE profiles SET name = ?, data = ?, version = ?, updated_at = ? WHERE id = ? AND version = ?",
                (
                    profile.name,
                    json.dumps(profile_to_dict(profile)),
                    current + 1,
                    datetime.now().isoformat(),
                    profile.id,
                    current,
                ),
            )
            if cursor.rowcount == 0:
                actual = conn.execute("SELECT version FROM profiles WHERE id = ?", (profile.id,)).fetchone()
                raise ProfileConflictError(profile.id, current, actual["version"] if actual else -1)
            conn.commit()
        finally:
            conn.close()
        logger.debug("Saved profile %s at version %d", profile.id, current + 1)
        return current + 1

    def delete(self, profile_id: str) -> None:
        conn = get_connection(self.db_path)
        conn.execute("DELETE FROM profiles WHERE id = ?", (profile_id,))
        conn.execute(
            "DELETE FROM user_settings WHERE key = ? AND value = ?", (ACTIVE_PROFILE_KEY, profile_id)
        )
        conn.commit()
        conn.close()
        logger.info("Deleted profile %s", profile_id)

    def list_ids(self) -> list[str]:
        conn = get_connection(self.db_path)
        rows = conn.execute("SELECT id FROM profiles ORDER BY created_at, id").fetchall()
        conn.close()
        return [r["id"] for r in rows]

    def get_setting(self, key: str, default: str = None) -> str | None:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
        conn.close()
        return row["value"] if row else default

    def set_setting(self, key: str, value: str) -> None:
        conn = get_connection(self.db_path)
        conn.execute(
            "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
            (key, value, value),
        )
        conn.commit()
        conn.close()

    def get_active_profile_id(self) -> str | None:
        return self.get_setting(ACTIVE_PROFILE_KEY)

    def set_active_profile_id(self, profile_id: str) -> None:
        self.set_setting(ACTIVE_PROFILE_KEY, profile_id)
