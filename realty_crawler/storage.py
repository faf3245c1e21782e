"""
SQLite store of ad ids that have already been reported.

Keyed by (provider, ad_id) so ids only need to be unique per provider.
first_seen records when an ad was first reported.
"""

import logging
import os
import sqlite3
from datetime import datetime, timezone
from typing import Iterable

logger = logging.getLogger(__name__)


class SeenStore:
    """Persistent "already seen" set for the new-ads diff."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.conn = None

    def open(self):
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path)
        self._ensure_schema()
        return self

    def _ensure_schema(self):
        self.conn.execute('''
            CREATE TABLE IF NOT EXISTS seen_ads (
                provider TEXT NOT NULL,
                ad_id TEXT NOT NULL,
                first_seen TEXT NOT NULL,
                PRIMARY KEY (provider, ad_id)
            )
        ''')
        self.conn.commit()

    def load_seen(self, provider: str) -> set[str]:
        cursor = self.conn.execute(
            'SELECT ad_id FROM seen_ads WHERE provider = ?', (provider,)
        )
        return {row[0] for row in cursor.fetchall()}

    def mark_seen(self, provider: str, ad_ids: Iterable[str]) -> int:
        """Record ids as seen; returns how many were new to the store."""
        now = datetime.now(timezone.utc).isoformat()
        before = self.conn.total_changes
        self.conn.executemany(
            'INSERT OR IGNORE INTO seen_ads (provider, ad_id, first_seen) VALUES (?, ?, ?)',
            [(provider, ad_id, now) for ad_id in ad_ids],
        )
        self.conn.commit()
        return self.conn.total_changes - before

    def count(self, provider: str = None) -> int:
        if provider:
            cursor = self.conn.execute('SELECT COUNT(*) FROM seen_ads WHERE provider = ?', (provider,))
        else:
            cursor = self.conn.execute('SELECT COUNT(*) FROM seen_ads')
        return cursor.fetchone()[0]

    def close(self):
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
