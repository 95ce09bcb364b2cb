from __future__ import annotations

import sqlite3
import time
from pathlib import Path
from typing import Any, Dict, Optional


class DeploymentState:
    """Journal SQLite du dernier déploiement de chaque projet."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def ensure_schema(self) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS deployments (
                    project TEXT PRIMARY KEY,
                    ref TEXT NOT NULL,
                    status TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    message TEXT
                )
                """
            )

    def upsert_status(self, project: str, ref: str, status: str, message: str) -> None:
        timestamp = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO deployments(project, ref, status, updated_at, message)
                VALUES(?, ?, ?, ?, ?)
                ON CONFLICT(project) DO UPDATE SET
                    ref=excluded.ref,
                    status=excluded.status,
                    updated_at=excluded.updated_at,
                    message=excluded.message
                """,
                (project, ref, status, timestamp, message),
            )

    def get(self, project: str) -> Optional[Dict[str, Any]]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                "SELECT project, ref, status, message, updated_at FROM deployments WHERE project = ?",
                (project,),
            ).fetchone()
            return dict(row) if row else None
