"""SQLite storage for submitted reports."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import aiosqlite

from ..intake.models import NewReport
from ..intake.pipeline import generate_report_id

logger = logging.getLogger(__name__)

DEFAULT_STATUS_ID = 1
RECEIVED_ACTION_LABEL = "Report received"
RECEIVED_DESCRIPTION = "Automatically accepted by the system"


class Database:
    """Async SQLite database for reports, their images and timelines."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def connect(self):
        """Establish database connection and create tables."""
        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row
        # Best-effort because some SQLite builds/settings may reject these pragmas.
        try:
            await self._connection.execute("PRAGMA journal_mode=WAL")
            await self._connection.execute("PRAGMA synchronous=NORMAL")
            await self._connection.execute("PRAGMA busy_timeout=5000")
            await self._connection.execute("PRAGMA foreign_keys=ON")
            await self._connection.commit()
        except Exception:
            pass
        await self._create_tables()

    async def close(self):
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def _create_tables(self):
        async with self._lock:
            await self._connection.executescript(
                """
                    CREATE TABLE IF NOT EXISTS users (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        email TEXT UNIQUE NOT NULL,
                        last_login_at TIMESTAMP,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    );

                    CREATE TABLE IF NOT EXISTS reports (
                        id TEXT PRIMARY KEY,
                        user_id INTEGER,
                        url TEXT NOT NULL,
                        title TEXT,
                        description TEXT,
                        platform_id INTEGER,
                        category_id INTEGER,
                        status_id INTEGER DEFAULT 1,
                        risk_score INTEGER DEFAULT 0,
                        report_count INTEGER DEFAULT 1,
                        view_count INTEGER DEFAULT 0,
                        source_ip TEXT,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (user_id) REFERENCES users(id)
                    );

                    CREATE TABLE IF NOT EXISTS report_images (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        report_id TEXT NOT NULL,
                        image_url TEXT NOT NULL,
                        display_order INTEGER DEFAULT 0,
                        FOREIGN KEY (report_id) REFERENCES reports(id) ON DELETE CASCADE
                    );

                    CREATE TABLE IF NOT EXISTS report_timeline (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        report_id TEXT NOT NULL,
                        action_label TEXT NOT NULL,
                        description TEXT,
                        occurred_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (report_id) REFERENCES reports(id) ON DELETE CASCADE
                    );

                    CREATE INDEX IF NOT EXISTS idx_reports_created ON reports(created_at);
                    CREATE INDEX IF NOT EXISTS idx_report_images_report ON report_images(report_id, display_order);
                    CREATE INDEX IF NOT EXISTS idx_report_timeline_report ON report_timeline(report_id);
                """
            )
            await self._connection.commit()

    async def create_report(self, report: NewReport, *, report_id: Optional[str] = None) -> dict:
        """Insert a report with its images and an initial timeline entry.

        The submitter is upserted by email. Returns the stored report.
        """
        report_id = report_id or generate_report_id()
        async with self._lock:
            try:
                await self._connection.execute(
                    """
                    INSERT INTO users (email, last_login_at)
                    VALUES (?, CURRENT_TIMESTAMP)
                    ON CONFLICT(email) DO UPDATE SET last_login_at = CURRENT_TIMESTAMP
                    """,
                    (report.email,),
                )
                cursor = await self._connection.execute(
                    "SELECT id FROM users WHERE email = ?",
                    (report.email,),
                )
                user_row = await cursor.fetchone()

                await self._connection.execute(
                    """
                    INSERT INTO reports (
                        id, user_id, url, title, description, platform_id, category_id,
                        status_id, risk_score, report_count, source_ip
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0, 1, ?)
                    """,
                    (
                        report_id,
                        user_row["id"] if user_row else None,
                        report.url,
                        report.title,
                        report.description,
                        report.platform_id,
                        report.category_id,
                        DEFAULT_STATUS_ID,
                        report.source_ip,
                    ),
                )
                if report.image_urls:
                    await self._connection.executemany(
                        """
                        INSERT INTO report_images (report_id, image_url, display_order)
                        VALUES (?, ?, ?)
                        """,
                        [(report_id, url, index) for index, url in enumerate(report.image_urls)],
                    )
                await self._connection.execute(
                    """
                    INSERT INTO report_timeline (report_id, action_label, description)
                    VALUES (?, ?, ?)
                    """,
                    (report_id, RECEIVED_ACTION_LABEL, RECEIVED_DESCRIPTION),
                )
                await self._connection.commit()
            except Exception:
                await self._connection.rollback()
                raise

        logger.info("Created report %s (%d images)", report_id, len(report.image_urls))
        created = await self.get_report(report_id)
        return created or {"id": report_id}

    async def get_report(self, report_id: str) -> Optional[dict]:
        """Get a report with its images (display order) and timeline (newest first)."""
        async with self._lock:
            cursor = await self._connection.execute(
                "SELECT * FROM reports WHERE id = ?",
                (report_id,),
            )
            row = await cursor.fetchone()
            if not row:
                return None
            report = dict(row)

            cursor = await self._connection.execute(
                """
                SELECT id, image_url, display_order
                FROM report_images
                WHERE report_id = ?
                ORDER BY display_order ASC, id ASC
                """,
                (report_id,),
            )
            report["images"] = [dict(r) for r in await cursor.fetchall()]

            cursor = await self._connection.execute(
                """
                SELECT id, action_label, description, occurred_at
                FROM report_timeline
                WHERE report_id = ?
                ORDER BY occurred_at DESC, id DESC
                """,
                (report_id,),
            )
            report["timeline"] = [dict(r) for r in await cursor.fetchall()]
        return report

    async def increment_view_count(self, report_id: str) -> None:
        async with self._lock:
            await self._connection.execute(
                "UPDATE reports SET view_count = view_count + 1 WHERE id = ?",
                (report_id,),
            )
            await self._connection.commit()

    async def update_report_status(self, report_id: str, status_id: int) -> bool:
        """Set a report's status. Returns False when the report does not exist."""
        async with self._lock:
            cursor = await self._connection.execute(
                """
                UPDATE reports
                SET status_id = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (int(status_id), report_id),
            )
            await self._connection.commit()
            return cursor.rowcount > 0

    async def delete_report(self, report_id: str) -> bool:
        """Delete a report with its images and timeline."""
        async with self._lock:
            await self._connection.execute("DELETE FROM report_images WHERE report_id = ?", (report_id,))
            await self._connection.execute("DELETE FROM report_timeline WHERE report_id = ?", (report_id,))
            cursor = await self._connection.execute("DELETE FROM reports WHERE id = ?", (report_id,))
            await self._connection.commit()
            return cursor.rowcount > 0

    async def count_reports(self) -> int:
        async with self._lock:
            cursor = await self._connection.execute("SELECT COUNT(*) AS count FROM reports")
            row = await cursor.fetchone()
            return int(row["count"] or 0)
